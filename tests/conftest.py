import sqlite3

import pytest

from kazaro.config import CatalogMapping
from kazaro.infra.migrations import apply_migrations
from kazaro.infra.views import create_views
from kazaro.infra.schema_discovery import resolve_catalog_schema


def seed_legacy_catalog(db_path: str) -> None:
    """Base heredada: catálogo, categorías, empleados y servicios."""
    conn = sqlite3.connect(db_path)
    conn.executescript(
        """
        CREATE TABLE Categorias (
            CategoriaID INTEGER PRIMARY KEY,
            Nombre      TEXT
        );
        CREATE TABLE Productos (
            ProductoID  INTEGER PRIMARY KEY,
            Nombre      TEXT NOT NULL,
            Codigo      TEXT,
            Precio      REAL,
            Stock       INTEGER,
            CategoriaID INTEGER REFERENCES Categorias(CategoriaID)
        );
        CREATE TABLE Empleados (
            EmpleadoID INTEGER PRIMARY KEY,
            Nombre     TEXT,
            Apellido   TEXT,
            username   TEXT
        );
        CREATE TABLE Servicios (
            ServiciosID    INTEGER PRIMARY KEY,
            ServicioNombre TEXT
        );

        INSERT INTO Categorias VALUES (1, 'Descartables'), (2, 'Inyectables');
        INSERT INTO Productos VALUES
            (1, 'Guantes de látex', 'G-01', 10.0, 10,   1),
            (2, 'Jeringa 5ml',      'J-05',  2.5, 100,  2),
            (3, 'Barbijo',          'B-01',  1.0, 0,    1),
            (4, 'Alcohol en gel',   'A-01',  NULL, NULL, 2);
        INSERT INTO Empleados VALUES
            (7, 'Ana',  'Pérez', 'aperez'),
            (8, 'Luis', 'Gómez', 'lgomez'),
            (9, '',     '',      'mrojas');
        INSERT INTO Servicios VALUES (3, 'Guardia'), (4, 'Pediatría'), (5, 'Quirófano');
        """
    )
    conn.commit()
    conn.close()


@pytest.fixture
def db_path(tmp_path):
    path = str(tmp_path / "kazaro_test.db")
    seed_legacy_catalog(path)
    apply_migrations(path)
    create_views(path)
    return path


@pytest.fixture
def schema(db_path):
    # mapeo vacío: ignora variables KAZARO_* del entorno
    return resolve_catalog_schema(db_path, CatalogMapping())


def stock_of(db_path: str, product_id: int):
    conn = sqlite3.connect(db_path)
    try:
        return conn.execute("SELECT Stock FROM Productos WHERE ProductoID = ?", (product_id,)).fetchone()[0]
    finally:
        conn.close()


def count(db_path: str, table: str) -> int:
    conn = sqlite3.connect(db_path)
    try:
        return conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0]
    finally:
        conn.close()
