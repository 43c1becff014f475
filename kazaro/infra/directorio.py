# kazaro/infra/directorio.py
"""
Lecturas sobre tablas maestras heredadas (Empleados, Servicios).

Kazaro no administra estas tablas: sólo resuelve nombres para mostrar.
Si la tabla o la fila no existen se devuelve un texto de respaldo.
"""

from __future__ import annotations

import sqlite3
from typing import Any, Dict, List, Optional

from kazaro.infra.db import qid, table_info
from kazaro.infra.schema_discovery import pick_col


SERVICE_TABLES = ("Servicios", "Servicos")
SERVICE_ID_CANDIDATES = ["ServiciosID", "ServicioID", "IdServicio", "ServiceID", "servicio_id", "id"]
SERVICE_NAME_CANDIDATES = ["ServicioNombre", "Nombre", "Servicio", "Descripcion", "Detalle", "Titulo", "NombreServicio"]

EMPLOYEE_ID_CANDIDATES = ["EmpleadoID", "EmpleadosID", "IdEmpleado", "empleado_id", "id"]


def _services_table(conn: sqlite3.Connection) -> Optional[Dict[str, str]]:
    for table in SERVICE_TABLES:
        info = table_info(conn, table)
        if not info:
            continue
        id_col = (
            pick_col(info, SERVICE_ID_CANDIDATES)
            or next((c["name"] for c in info if c.get("pk") == 1), None)
        )
        if not id_col:
            return None
        name_col = pick_col(info, SERVICE_NAME_CANDIDATES) or id_col
        return {"table": table, "id": id_col, "name": name_col}
    return None


def list_services(conn: sqlite3.Connection) -> List[Dict[str, Any]]:
    """Servicios de la tabla maestra ({id, name}), ordenados por nombre."""
    svc = _services_table(conn)
    if not svc:
        return []
    rows = conn.execute(
        f"""
        SELECT {qid(svc['id'])} AS id,
               COALESCE(NULLIF(TRIM({qid(svc['name'])}), ''), CAST({qid(svc['id'])} AS TEXT)) AS name
        FROM {qid(svc['table'])}
        ORDER BY name COLLATE NOCASE
        """
    ).fetchall()
    return [dict(r) for r in rows]


def service_name(conn: sqlite3.Connection, servicio_id: Any) -> str:
    """Nombre del servicio; '—' sin id, el propio id si no hay tabla/fila."""
    if servicio_id is None or str(servicio_id).strip() == "":
        return "—"
    svc = _services_table(conn)
    if svc:
        row = conn.execute(
            f"""
            SELECT NULLIF(TRIM({qid(svc['name'])}), '') AS name
            FROM {qid(svc['table'])}
            WHERE CAST({qid(svc['id'])} AS TEXT) = CAST(? AS TEXT)
            LIMIT 1
            """,
            (servicio_id,),
        ).fetchone()
        if row and row["name"]:
            return str(row["name"])
    return str(servicio_id)


def employee_display_name(conn: sqlite3.Connection, empleado_id: Any) -> str:
    """'Nombre Apellido', o username/Email, o 'Empleado {id}'."""
    fallback = f"Empleado {empleado_id}"
    if empleado_id is None:
        return "Desconocido"
    info = table_info(conn, "Empleados")
    if not info:
        return fallback
    id_col = pick_col(info, EMPLOYEE_ID_CANDIDATES) or next(
        (c["name"] for c in info if c.get("pk") == 1), None
    )
    if not id_col:
        return fallback
    row = conn.execute(
        f"SELECT * FROM Empleados WHERE CAST({qid(id_col)} AS TEXT) = CAST(? AS TEXT) LIMIT 1",
        (empleado_id,),
    ).fetchone()
    if row is None:
        return fallback
    data = dict(row)
    first = pick_col(info, ["Nombre", "nombre", "first_name"])
    last = pick_col(info, ["Apellido", "apellido", "last_name"])
    full = " ".join(
        str(data.get(c) or "").strip() for c in (first, last) if c
    ).strip()
    if full:
        return full
    for alt in ("username", "Email", "email"):
        col = pick_col(info, [alt])
        if col and data.get(col):
            return str(data[col])
    return fallback
