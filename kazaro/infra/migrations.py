# kazaro/infra/migrations.py
"""
Migraciones de esquema usando PRAGMA user_version.

V1: Pedidos y PedidoItems
V2: columnas agregadas después (ServicioID, Codigo, Status, ClosedAt);
    también corre sobre bases heredadas que ya traían V1 sin versión
V3: tablas pivot (supervisor/servicio, servicio/producto, visibilidad por
    rol), presupuestos por servicio e ingresos de stock

La reparación de exclusividad supervisor/servicio corre en cada arranque
y no depende de la versión.
"""

from __future__ import annotations

from typing import List

from .db import connect
from kazaro.infra.logger import log_database_operation, log_system_event


SCHEMA_V1: List[str] = [
    # Cabecera del pedido
    """
    CREATE TABLE IF NOT EXISTS Pedidos (
        PedidoID   INTEGER PRIMARY KEY AUTOINCREMENT,
        EmpleadoID INTEGER NOT NULL,
        Rol        TEXT,
        Nota       TEXT,
        Total      REAL,
        Fecha      TEXT DEFAULT (datetime('now'))
    );
    """,
    # Líneas (snapshot del producto al momento de la compra)
    """
    CREATE TABLE IF NOT EXISTS PedidoItems (
        PedidoItemID INTEGER PRIMARY KEY AUTOINCREMENT,
        PedidoID     INTEGER NOT NULL,
        ProductoID   INTEGER NOT NULL,
        Nombre       TEXT,
        Precio       REAL,
        Cantidad     INTEGER NOT NULL,
        Subtotal     REAL
    );
    """,
]

SCHEMA_V3: List[str] = [
    # Supervisor ⇄ Servicio (un servicio tiene a lo sumo un supervisor)
    """
    CREATE TABLE IF NOT EXISTS supervisor_services (
        id          INTEGER PRIMARY KEY AUTOINCREMENT,
        EmpleadoID  INTEGER NOT NULL,
        ServicioID  INTEGER NOT NULL
    );
    """,
    # Servicio ⇄ Producto
    """
    CREATE TABLE IF NOT EXISTS service_products (
        ServicioID INTEGER NOT NULL,
        ProductoID INTEGER NOT NULL,
        UNIQUE (ServicioID, ProductoID)
    );
    """,
    # Producto ⇄ Rol
    """
    CREATE TABLE IF NOT EXISTS ProductRoleVisibility (
        product_id INTEGER NOT NULL,
        role       TEXT NOT NULL CHECK (role IN ('administrativo', 'supervisor', 'admin')),
        PRIMARY KEY (product_id, role)
    );
    """,
    # Presupuesto por servicio
    """
    CREATE TABLE IF NOT EXISTS service_budgets (
        ServicioID  INTEGER PRIMARY KEY,
        Presupuesto REAL NOT NULL DEFAULT 0,
        MaxPct      REAL NOT NULL DEFAULT 5
    );
    """,
    # Ingresos futuros de stock
    """
    CREATE TABLE IF NOT EXISTS IncomingStock (
        id         INTEGER PRIMARY KEY AUTOINCREMENT,
        product_id INTEGER NOT NULL,
        qty        INTEGER NOT NULL CHECK (qty > 0),
        eta        TEXT NOT NULL,
        created_at TEXT DEFAULT (datetime('now'))
    );
    """,
]

SUPERVISOR_UNIQUE_INDEX = "ux_supervisor_services_servicio"


def _ensure_column(conn, table: str, column: str, ddl: str) -> None:
    """Agrega la columna si no existe (comparación sin mayúsculas)."""
    cur = conn.execute(f"PRAGMA table_info({table});")
    cols = [str(r[1]).lower() for r in cur.fetchall()]  # r[1] es el nombre
    if column.lower() not in cols:
        conn.execute(f"ALTER TABLE {table} ADD COLUMN {ddl};")
        log_database_operation(table, "ALTER", column=column)


def _index_exists(conn, name: str) -> bool:
    row = conn.execute(
        "SELECT 1 FROM sqlite_master WHERE type='index' AND name=?", (name,)
    ).fetchone()
    return row is not None


def _apply_v1(conn) -> None:
    for sql in SCHEMA_V1:
        conn.executescript(sql)


def _apply_v2(conn) -> None:
    _ensure_column(conn, "Pedidos", "ServicioID", "ServicioID INTEGER NULL")
    _ensure_column(conn, "Pedidos", "Status", "Status TEXT DEFAULT 'open'")
    _ensure_column(conn, "Pedidos", "ClosedAt", "ClosedAt TEXT NULL")
    _ensure_column(conn, "PedidoItems", "Codigo", "Codigo TEXT")


def _apply_v3(conn) -> None:
    for sql in SCHEMA_V3:
        conn.executescript(sql)


def repair_supervisor_exclusivity(conn) -> int:
    """
    Garantiza que cada ServicioID aparezca en una sola fila de
    `supervisor_services`.

    Si el índice único todavía no existe, borra los duplicados conservando
    la fila de mayor id (la asignación más reciente) y crea el índice.
    Con el índice presente no hace nada.

    Returns:
        Cantidad de filas eliminadas.
    """
    if _index_exists(conn, SUPERVISOR_UNIQUE_INDEX):
        return 0
    cur = conn.execute(
        """
        DELETE FROM supervisor_services
        WHERE ServicioID IN (
            SELECT ServicioID FROM supervisor_services
            GROUP BY ServicioID HAVING COUNT(*) > 1
        )
        AND id NOT IN (
            SELECT MAX(id) FROM supervisor_services GROUP BY ServicioID
        )
        """
    )
    removed = cur.rowcount if cur.rowcount and cur.rowcount > 0 else 0
    conn.execute(
        f"CREATE UNIQUE INDEX IF NOT EXISTS {SUPERVISOR_UNIQUE_INDEX} "
        "ON supervisor_services(ServicioID);"
    )
    if removed:
        log_database_operation("supervisor_services", "DELETE", removed, reason="repair_duplicates")
    log_system_event("Índice único supervisor_services creado", {"removed": removed})
    return removed


def apply_migrations(db_path: str) -> None:
    """Aplica migraciones incrementales según PRAGMA user_version."""
    with connect(db_path) as conn:
        ver = conn.execute("PRAGMA user_version;").fetchone()[0] or 0
        start = ver

        if ver < 1:
            _apply_v1(conn)
            conn.execute("PRAGMA user_version = 1;")
            ver = 1

        if ver < 2:
            _apply_v2(conn)
            conn.execute("PRAGMA user_version = 2;")
            ver = 2

        if ver < 3:
            _apply_v3(conn)
            conn.execute("PRAGMA user_version = 3;")
            ver = 3

        repair_supervisor_exclusivity(conn)

        if ver != start:
            log_system_event("Migraciones aplicadas", {"from": start, "to": ver, "db": db_path})
