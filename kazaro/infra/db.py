# kazaro/infra/db.py
"""
Utilidades de conexión SQLite.
"""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from kazaro.config import BUSY_TIMEOUT_MS


def _open(db_path: str, isolation_level) -> sqlite3.Connection:
    conn = sqlite3.connect(
        db_path,
        timeout=BUSY_TIMEOUT_MS / 1000.0,
        isolation_level=isolation_level,
    )
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON;")
    conn.execute("PRAGMA journal_mode = WAL;")
    conn.execute(f"PRAGMA busy_timeout = {int(BUSY_TIMEOUT_MS)};")
    return conn


@contextmanager
def connect(db_path: str) -> Iterator[sqlite3.Connection]:
    """
    Context manager para abrir conexión SQLite con:
    - foreign_keys ON, journal WAL y busy_timeout
    - row_factory = sqlite3.Row
    - commit al salir (rollback en caso de excepción)
    """
    conn = _open(db_path, "")
    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


@contextmanager
def connect_readonly(db_path: str) -> Iterator[sqlite3.Connection]:
    """
    Conexión de sólo lectura (`mode=ro`).

    No crea el archivo si no existe (FileNotFoundError) y no ejecuta
    PRAGMAs persistentes: el journal_mode de la base queda como estaba.
    """
    path = Path(db_path)
    if not path.is_file():
        raise FileNotFoundError(db_path)
    conn = sqlite3.connect(
        f"{path.resolve().as_uri()}?mode=ro",
        uri=True,
        timeout=BUSY_TIMEOUT_MS / 1000.0,
    )
    conn.row_factory = sqlite3.Row
    try:
        yield conn
    finally:
        conn.close()


@contextmanager
def transaction(db_path: str) -> Iterator[sqlite3.Connection]:
    """
    Transacción explícita `BEGIN IMMEDIATE`.

    Toma el lock de escritura al inicio: un segundo escritor espera
    (busy_timeout) en vez de fallar a mitad de la transacción.
    Cualquier excepción hace ROLLBACK completo.
    """
    conn = _open(db_path, None)
    try:
        conn.execute("BEGIN IMMEDIATE;")
        try:
            yield conn
        except Exception:
            conn.execute("ROLLBACK;")
            raise
        conn.execute("COMMIT;")
    finally:
        conn.close()


def table_info(conn: sqlite3.Connection, table: str):
    """PRAGMA table_info como lista de dicts (vacía si la tabla no existe)."""
    try:
        cur = conn.execute(f"PRAGMA table_info({qid(table)});")
    except sqlite3.DatabaseError:
        return []
    return [dict(r) for r in cur.fetchall()]


def qid(name: str) -> str:
    """Quote de identificadores SQL (SQLite). `rowid` queda sin comillas."""
    if str(name).lower() in ("rowid", "oid", "_rowid_"):
        return str(name)
    return '"' + str(name).replace('"', '""') + '"'
