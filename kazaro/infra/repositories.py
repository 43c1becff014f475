# kazaro/infra/repositories.py
"""
Repositorios (DAO) para acceso y manipulación de datos en SQLite.

Clases:
- CatalogRepo           (tabla de productos descubierta)
- PedidoRepo
- SupervisorServiceRepo
- ServiceProductRepo
- RoleVisibilityRepo
- BudgetRepo
- IncomingStockRepo
- ReporteRepo

Los métodos que reciben `conn` corren dentro de una transacción abierta
por el caso de uso; el resto abre su propia conexión.
"""

from __future__ import annotations

import sqlite3
from typing import Any, Dict, Iterable, List, Optional, Sequence

from .db import connect, qid
from kazaro.domain.errors import InvalidProductError, ProductNotFoundError
from kazaro.domain.models import CatalogSchema, PedidoItem
from kazaro.infra.directorio import employee_display_name, service_name


def _rows(cur) -> List[Dict[str, Any]]:
    return [dict(r) for r in cur.fetchall()]


# -------------------------
# Catálogo
# -------------------------

class CatalogRepo:
    """Acceso a la tabla de productos a través de un `CatalogSchema`."""

    def __init__(self, db_path: str, schema: CatalogSchema):
        self.db_path = db_path
        self.schema = schema
        self.t = qid(schema.products_table)
        self.id = qid(schema.id_col)
        self.name = qid(schema.name_col)

    # --- helpers de SQL ---

    def _select_cols(self) -> str:
        s = self.schema
        if s.category_col:
            cat = f"p.{qid(s.category_col)} AS categoryId"
        elif s.category_name_col:
            cat = f"p.{qid(s.category_name_col)} AS categoryId"
        else:
            cat = "'__all__' AS categoryId"
        return ", ".join([
            f"p.{self.id} AS id",
            f"p.{self.name} AS name",
            cat,
            f"COALESCE(p.{qid(s.code_col)}, '') AS code" if s.code_col else "'' AS code",
            f"p.{qid(s.price_col)} AS price" if s.price_col else "NULL AS price",
            f"p.{qid(s.stock_col)} AS stock" if s.stock_col else "NULL AS stock",
        ])

    def _writable(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Traduce claves lógicas (name/price/...) a columnas reales presentes."""
        s = self.schema
        role_cols = {
            "name": s.name_col,
            "price": s.price_col,
            "stock": s.stock_col,
            "code": s.code_col,
            "category": s.category_col,
        }
        out: Dict[str, Any] = {}
        for key, col in role_cols.items():
            if col and key in data and data[key] is not None:
                out[col] = data[key]
        return out

    # --- lecturas ---

    def list_categories(self) -> List[Dict[str, Any]]:
        s = self.schema
        with connect(self.db_path) as c:
            if s.categories_table and s.category_col and s.cat_id_col and s.cat_name_col:
                ct, cid, cname = qid(s.categories_table), qid(s.cat_id_col), qid(s.cat_name_col)
                cur = c.execute(
                    f"""
                    SELECT c.{cid} AS id, c.{cname} AS name, COUNT(p.{qid(s.category_col)}) AS count
                    FROM {ct} c
                    LEFT JOIN {self.t} p ON p.{qid(s.category_col)} = c.{cid}
                    GROUP BY c.{cid}, c.{cname}
                    ORDER BY c.{cname} COLLATE NOCASE
                    """
                )
                return _rows(cur)
            if s.category_name_col and not s.category_col:
                cn = qid(s.category_name_col)
                cur = c.execute(
                    f"""
                    SELECT {cn} AS id, {cn} AS name, COUNT(*) AS count
                    FROM {self.t}
                    GROUP BY {cn}
                    ORDER BY {cn} COLLATE NOCASE
                    """
                )
                return _rows(cur)
            if s.category_col:
                cc = qid(s.category_col)
                cur = c.execute(
                    f"""
                    SELECT {cc} AS id, 'Categoría ' || {cc} AS name, COUNT(*) AS count
                    FROM {self.t}
                    GROUP BY {cc}
                    ORDER BY {cc}
                    """
                )
                return _rows(cur)
            total = c.execute(f"SELECT COUNT(*) FROM {self.t}").fetchone()[0]
            return [{"id": "__all__", "name": "Todos", "count": total}]

    def list_products(
        self,
        category_id: Any = "__all__",
        q: str = "",
        service_id: Optional[Any] = None,
        role: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        s = self.schema
        where: List[str] = []
        params: List[Any] = []

        if category_id not in (None, "", "__all__"):
            if s.category_col:
                where.append(f"p.{qid(s.category_col)} = ?")
                params.append(category_id)
            elif s.category_name_col:
                where.append(f"p.{qid(s.category_name_col)} = ?")
                params.append(category_id)

        like = f"%{(q or '').strip()}%"
        if s.code_col:
            where.append(f"(p.{self.name} LIKE ? OR p.{qid(s.code_col)} LIKE ?)")
            params.extend([like, like])
        else:
            where.append(f"p.{self.name} LIKE ?")
            params.append(like)

        with connect(self.db_path) as c:
            if service_id is not None and ServiceProductRepo.has_catalog(c, service_id):
                where.append(
                    f"CAST(p.{self.id} AS TEXT) IN ("
                    "SELECT CAST(ProductoID AS TEXT) FROM service_products "
                    "WHERE CAST(ServicioID AS TEXT) = CAST(? AS TEXT))"
                )
                params.append(service_id)

            if role:
                # sin filas de visibilidad: visible para todos
                where.append(
                    f"(NOT EXISTS (SELECT 1 FROM ProductRoleVisibility v WHERE v.product_id = p.{self.id})"
                    f" OR EXISTS (SELECT 1 FROM ProductRoleVisibility v"
                    f" WHERE v.product_id = p.{self.id} AND v.role = ?))"
                )
                params.append(str(role).strip().lower())

            cur = c.execute(
                f"""
                SELECT {self._select_cols()}
                FROM {self.t} p
                WHERE {' AND '.join(where)}
                ORDER BY p.{self.name} COLLATE NOCASE
                """,
                params,
            )
            return _rows(cur)

    def get(self, product_id: Any) -> Optional[Dict[str, Any]]:
        with connect(self.db_path) as c:
            row = c.execute(
                f"SELECT {self._select_cols()} FROM {self.t} p WHERE p.{self.id} = ?",
                (product_id,),
            ).fetchone()
            return dict(row) if row else None

    def low_stock(self, threshold: int = 0) -> List[Dict[str, Any]]:
        if not self.schema.stock_col:
            return []
        st = qid(self.schema.stock_col)
        with connect(self.db_path) as c:
            cur = c.execute(
                f"""
                SELECT {self._select_cols()}
                FROM {self.t} p
                WHERE p.{st} IS NOT NULL AND p.{st} <= ?
                ORDER BY p.{st} ASC, p.{self.name} COLLATE NOCASE
                """,
                (threshold,),
            )
            return _rows(cur)

    # --- escritura (admin) ---

    def _insert(self, c: sqlite3.Connection, data: Dict[str, Any]) -> Any:
        cols = self._writable(data)
        if data.get("id") is not None and self.schema.id_col.lower() != "rowid":
            cols = {self.schema.id_col: data["id"], **cols}
        names = ", ".join(qid(k) for k in cols)
        marks = ", ".join("?" for _ in cols)
        cur = c.execute(f"INSERT INTO {self.t} ({names}) VALUES ({marks})", list(cols.values()))
        row = c.execute(
            f"SELECT {self.id} FROM {self.t} WHERE rowid = ?", (cur.lastrowid,)
        ).fetchone()
        return row[0] if row else cur.lastrowid

    def _update(self, c: sqlite3.Connection, product_id: Any, data: Dict[str, Any]) -> int:
        cols = self._writable(data)
        if not cols:
            raise InvalidProductError("No hay campos para actualizar")
        sets = ", ".join(f"{qid(k)} = ?" for k in cols)
        cur = c.execute(
            f"UPDATE {self.t} SET {sets} WHERE {self.id} = ?",
            [*cols.values(), product_id],
        )
        return cur.rowcount

    def exists(self, c: sqlite3.Connection, product_id: Any) -> bool:
        return c.execute(
            f"SELECT 1 FROM {self.t} WHERE {self.id} = ? LIMIT 1", (product_id,)
        ).fetchone() is not None

    def create(self, data: Dict[str, Any]) -> Any:
        name = str(data.get("name") or "").strip()
        if not name:
            raise InvalidProductError("El nombre del producto es obligatorio")
        with connect(self.db_path) as c:
            return self._insert(c, {**data, "name": name})

    def update(self, product_id: Any, data: Dict[str, Any]) -> None:
        if "name" in data and data["name"] is not None and not str(data["name"]).strip():
            raise InvalidProductError("El nombre del producto no puede quedar vacío")
        with connect(self.db_path) as c:
            if self._update(c, product_id, data) == 0:
                raise ProductNotFoundError(product_id)

    def delete(self, product_id: Any) -> None:
        with connect(self.db_path) as c:
            cur = c.execute(f"DELETE FROM {self.t} WHERE {self.id} = ?", (product_id,))
            if cur.rowcount == 0:
                raise ProductNotFoundError(product_id)
            c.execute("DELETE FROM ProductRoleVisibility WHERE product_id = ?", (product_id,))
            c.execute(
                "DELETE FROM service_products WHERE CAST(ProductoID AS TEXT) = CAST(? AS TEXT)",
                (product_id,),
            )

    def adjust_stock(self, product_id: Any, delta: int) -> int:
        """`stock = COALESCE(stock, 0) + delta`; el resultado no puede ser negativo."""
        if not self.schema.stock_col:
            raise InvalidProductError("El catálogo no tiene columna de stock")
        st = qid(self.schema.stock_col)
        with connect(self.db_path) as c:
            cur = c.execute(
                f"UPDATE {self.t} SET {st} = COALESCE({st}, 0) + ? "
                f"WHERE {self.id} = ? AND COALESCE({st}, 0) + ? >= 0",
                (delta, product_id, delta),
            )
            if cur.rowcount == 0:
                if not self.exists(c, product_id):
                    raise ProductNotFoundError(product_id)
                raise InvalidProductError("El stock no puede quedar negativo")
            return int(self.stock_of(c, product_id))

    def import_rows(self, rows: Iterable[Dict[str, Any]]) -> Dict[str, int]:
        """Actualiza filas cuyo id existe e inserta el resto (una transacción)."""
        updated = inserted = skipped = 0
        with connect(self.db_path) as c:
            for r in rows:
                pid = r.get("id")
                if pid is not None and self.exists(c, pid):
                    if self._writable(r):
                        self._update(c, pid, r)
                        updated += 1
                    else:
                        skipped += 1
                    continue
                if not str(r.get("name") or "").strip():
                    skipped += 1
                    continue
                self._insert(c, r)
                inserted += 1
        return {"updated": updated, "inserted": inserted, "skipped": skipped}

    # --- dentro de transacción (pedidos / ingresos) ---

    def fetch_for_order(self, c: sqlite3.Connection, product_id: Any) -> Optional[Dict[str, Any]]:
        s = self.schema
        row = c.execute(
            f"""
            SELECT p.{self.name} AS name,
                   {f'p.{qid(s.price_col)}' if s.price_col else 'NULL'} AS price,
                   {f'p.{qid(s.code_col)}' if s.code_col else 'NULL'} AS code,
                   {f'p.{qid(s.stock_col)}' if s.stock_col else 'NULL'} AS stock
            FROM {self.t} p
            WHERE p.{self.id} = ?
            """,
            (product_id,),
        ).fetchone()
        return dict(row) if row else None

    def decrement_stock(self, c: sqlite3.Connection, product_id: Any, qty: int) -> bool:
        """
        Descuento condicional: sólo si alcanza el stock. False si no se tocó ninguna fila.

        Stock NULL = producto sin control de stock: la fila se acepta y el
        valor sigue en NULL.
        """
        st = qid(self.schema.stock_col)
        cur = c.execute(
            f"UPDATE {self.t} SET {st} = {st} - ? "
            f"WHERE {self.id} = ? AND ({st} IS NULL OR {st} >= ?)",
            (qty, product_id, qty),
        )
        return cur.rowcount > 0

    def increment_stock(self, c: sqlite3.Connection, product_id: Any, qty: int) -> bool:
        st = qid(self.schema.stock_col)
        cur = c.execute(
            f"UPDATE {self.t} SET {st} = COALESCE({st}, 0) + ? WHERE {self.id} = ?",
            (qty, product_id),
        )
        return cur.rowcount > 0

    def stock_of(self, c: sqlite3.Connection, product_id: Any) -> int:
        st = qid(self.schema.stock_col)
        row = c.execute(
            f"SELECT COALESCE({st}, 0) FROM {self.t} WHERE {self.id} = ?", (product_id,)
        ).fetchone()
        return int(row[0]) if row else 0


# -------------------------
# Pedidos
# -------------------------

class PedidoRepo:
    def __init__(self, db_path: str):
        self.db_path = db_path

    def insert_header(
        self,
        c: sqlite3.Connection,
        employee_id: Any,
        role: str,
        note: str,
        service_id: Optional[Any] = None,
    ) -> int:
        cur = c.execute(
            """
            INSERT INTO Pedidos (EmpleadoID, Rol, Nota, Total, ServicioID, Status)
            VALUES (?, ?, ?, 0, ?, 'open')
            """,
            (employee_id, role, note, service_id),
        )
        return int(cur.lastrowid)

    def insert_item(self, c: sqlite3.Connection, item: PedidoItem) -> None:
        c.execute(
            """
            INSERT INTO PedidoItems (PedidoID, ProductoID, Nombre, Precio, Cantidad, Subtotal, Codigo)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (item.pedido_id, item.product_id, item.nombre, item.precio,
             item.cantidad, item.subtotal, item.codigo),
        )

    def set_total(self, c: sqlite3.Connection, pedido_id: int, total: float) -> int:
        cur = c.execute("UPDATE Pedidos SET Total = ? WHERE PedidoID = ?", (total, pedido_id))
        return cur.rowcount

    def get_full(self, pedido_id: Any) -> Optional[Dict[str, Any]]:
        with connect(self.db_path) as c:
            cab = c.execute(
                """
                SELECT PedidoID, EmpleadoID, Rol, Nota, Total, Fecha, ServicioID,
                       COALESCE(Status, 'open') AS Status, ClosedAt
                FROM Pedidos WHERE PedidoID = ? LIMIT 1
                """,
                (pedido_id,),
            ).fetchone()
            if cab is None:
                return None
            items = c.execute(
                """
                SELECT PedidoItemID AS id,
                       ProductoID   AS productId,
                       Nombre       AS nombre,
                       Precio       AS precio,
                       Cantidad     AS cantidad,
                       Subtotal     AS subtotal,
                       COALESCE(Codigo, '') AS codigo
                FROM PedidoItems
                WHERE PedidoID = ?
                ORDER BY PedidoItemID
                """,
                (pedido_id,),
            ).fetchall()
            cab = dict(cab)
            cab["EmpleadoNombre"] = employee_display_name(c, cab["EmpleadoID"])
            cab["ServicioNombre"] = service_name(c, cab["ServicioID"])
            return {"cab": cab, "items": [dict(i) for i in items]}

    def list_by_status(self, status: str = "open", limit: int = 100) -> List[Dict[str, Any]]:
        with connect(self.db_path) as c:
            rows = _rows(c.execute(
                """
                SELECT PedidoID AS id, EmpleadoID AS empleadoId, Rol AS rol, Fecha AS fecha,
                       COALESCE(Total, 0) AS total, ServicioID AS servicioId,
                       COALESCE(Status, 'open') AS status
                FROM Pedidos
                WHERE COALESCE(Status, 'open') = ?
                ORDER BY Fecha DESC, PedidoID DESC
                LIMIT ?
                """,
                (status, limit),
            ))
            names: Dict[Any, str] = {}
            for r in rows:
                emp = r["empleadoId"]
                if emp not in names:
                    names[emp] = employee_display_name(c, emp)
                r["empleadoNombre"] = names[emp]
                r["displayId"] = str(r["id"]).zfill(7)
            return rows

    def update_status(self, pedido_id: Any, status: str) -> int:
        with connect(self.db_path) as c:
            if status == "closed":
                cur = c.execute(
                    "UPDATE Pedidos SET Status = ?, ClosedAt = datetime('now') WHERE PedidoID = ?",
                    (status, pedido_id),
                )
            else:
                cur = c.execute(
                    "UPDATE Pedidos SET Status = ?, ClosedAt = NULL WHERE PedidoID = ?",
                    (status, pedido_id),
                )
            return cur.rowcount

    def update_total(self, pedido_id: Any, total: float) -> int:
        with connect(self.db_path) as c:
            return self.set_total(c, pedido_id, total)

    def delete(self, pedido_id: Any) -> int:
        with connect(self.db_path) as c:
            c.execute("DELETE FROM PedidoItems WHERE PedidoID = ?", (pedido_id,))
            cur = c.execute("DELETE FROM Pedidos WHERE PedidoID = ?", (pedido_id,))
            return cur.rowcount


# -------------------------
# Supervisor ⇄ Servicio
# -------------------------

class SupervisorServiceRepo:
    def __init__(self, db_path: str):
        self.db_path = db_path

    def owner(self, c: sqlite3.Connection, service_id: Any) -> Optional[int]:
        row = c.execute(
            "SELECT EmpleadoID FROM supervisor_services WHERE ServicioID = ? LIMIT 1",
            (service_id,),
        ).fetchone()
        return row[0] if row else None

    def owners(self, c: sqlite3.Connection, service_ids: Sequence[Any]) -> Dict[Any, int]:
        out: Dict[Any, int] = {}
        for sid in service_ids:
            emp = self.owner(c, sid)
            if emp is not None:
                out[sid] = emp
        return out

    def insert(self, c: sqlite3.Connection, employee_id: Any, service_id: Any) -> int:
        cur = c.execute(
            "INSERT INTO supervisor_services (EmpleadoID, ServicioID) VALUES (?, ?)",
            (employee_id, service_id),
        )
        return int(cur.lastrowid)

    def delete_service(self, c: sqlite3.Connection, service_id: Any) -> int:
        cur = c.execute("DELETE FROM supervisor_services WHERE ServicioID = ?", (service_id,))
        return cur.rowcount

    def delete_by_id(self, assignment_id: Any) -> int:
        with connect(self.db_path) as c:
            return c.execute(
                "DELETE FROM supervisor_services WHERE id = ?", (assignment_id,)
            ).rowcount

    def delete_pair(self, employee_id: Any, service_id: Any) -> int:
        with connect(self.db_path) as c:
            return c.execute(
                "DELETE FROM supervisor_services WHERE EmpleadoID = ? AND ServicioID = ?",
                (employee_id, service_id),
            ).rowcount

    def list(self, employee_id: Optional[Any] = None) -> List[Dict[str, Any]]:
        sql = "SELECT id, EmpleadoID AS empleadoId, ServicioID AS servicioId FROM supervisor_services"
        params: List[Any] = []
        if employee_id is not None:
            sql += " WHERE EmpleadoID = ?"
            params.append(employee_id)
        sql += " ORDER BY EmpleadoID, ServicioID"
        with connect(self.db_path) as c:
            rows = _rows(c.execute(sql, params))
            for r in rows:
                r["empleadoNombre"] = employee_display_name(c, r["empleadoId"])
                r["servicioNombre"] = service_name(c, r["servicioId"])
            return rows


# -------------------------
# Servicio ⇄ Producto
# -------------------------

class ServiceProductRepo:
    def __init__(self, db_path: str):
        self.db_path = db_path

    @staticmethod
    def has_catalog(c: sqlite3.Connection, service_id: Any) -> bool:
        return c.execute(
            "SELECT 1 FROM service_products WHERE CAST(ServicioID AS TEXT) = CAST(? AS TEXT) LIMIT 1",
            (service_id,),
        ).fetchone() is not None

    def get(self, service_id: Any) -> List[Any]:
        with connect(self.db_path) as c:
            cur = c.execute(
                "SELECT ProductoID FROM service_products WHERE ServicioID = ? ORDER BY ProductoID",
                (service_id,),
            )
            return [r[0] for r in cur.fetchall()]

    def replace(self, service_id: Any, product_ids: Iterable[Any]) -> Dict[str, int]:
        """Deja exactamente `product_ids` asignados al servicio (diff)."""
        wanted = list(dict.fromkeys(product_ids))
        with connect(self.db_path) as c:
            current = {
                r[0] for r in c.execute(
                    "SELECT ProductoID FROM service_products WHERE ServicioID = ?", (service_id,)
                ).fetchall()
            }
            to_add = [p for p in wanted if p not in current]
            to_remove = [p for p in current if p not in set(wanted)]
            c.executemany(
                "INSERT OR IGNORE INTO service_products (ServicioID, ProductoID) VALUES (?, ?)",
                [(service_id, p) for p in to_add],
            )
            c.executemany(
                "DELETE FROM service_products WHERE ServicioID = ? AND ProductoID = ?",
                [(service_id, p) for p in to_remove],
            )
        return {"added": len(to_add), "removed": len(to_remove)}


# -------------------------
# Producto ⇄ Rol
# -------------------------

class RoleVisibilityRepo:
    def __init__(self, db_path: str):
        self.db_path = db_path

    def get(self, product_id: Any) -> List[str]:
        with connect(self.db_path) as c:
            cur = c.execute(
                "SELECT role FROM ProductRoleVisibility WHERE product_id = ? ORDER BY role",
                (product_id,),
            )
            return [r[0] for r in cur.fetchall()]

    def replace(self, product_id: Any, roles: Sequence[str]) -> None:
        with connect(self.db_path) as c:
            c.execute("DELETE FROM ProductRoleVisibility WHERE product_id = ?", (product_id,))
            c.executemany(
                "INSERT INTO ProductRoleVisibility (product_id, role) VALUES (?, ?)",
                [(product_id, r) for r in roles],
            )


# -------------------------
# Presupuestos
# -------------------------

class BudgetRepo:
    def __init__(self, db_path: str):
        self.db_path = db_path

    def list(self) -> List[Dict[str, Any]]:
        with connect(self.db_path) as c:
            rows = _rows(c.execute(
                """
                SELECT ServicioID AS servicioId, Presupuesto AS presupuesto, MaxPct AS maxPct
                FROM service_budgets
                ORDER BY ServicioID
                """
            ))
            for r in rows:
                r["servicioNombre"] = service_name(c, r["servicioId"])
            return rows

    def get(self, service_id: Any) -> Optional[Dict[str, Any]]:
        with connect(self.db_path) as c:
            row = c.execute(
                """
                SELECT ServicioID AS servicioId, Presupuesto AS presupuesto, MaxPct AS maxPct
                FROM service_budgets
                WHERE CAST(ServicioID AS TEXT) = CAST(? AS TEXT)
                """,
                (service_id,),
            ).fetchone()
            return dict(row) if row else None

    def upsert(self, service_id: Any, budget: float, max_pct: float) -> None:
        with connect(self.db_path) as c:
            c.execute(
                """
                INSERT INTO service_budgets (ServicioID, Presupuesto, MaxPct)
                VALUES (?, ?, ?)
                ON CONFLICT(ServicioID) DO UPDATE SET
                    Presupuesto = excluded.Presupuesto,
                    MaxPct = excluded.MaxPct
                """,
                (service_id, budget, max_pct),
            )


# -------------------------
# Ingresos de stock
# -------------------------

class IncomingStockRepo:
    def __init__(self, db_path: str):
        self.db_path = db_path

    def list(self, product_id: Optional[Any] = None) -> List[Dict[str, Any]]:
        sql = "SELECT id, product_id AS productId, qty, eta FROM IncomingStock"
        params: List[Any] = []
        if product_id is not None:
            sql += " WHERE product_id = ?"
            params.append(product_id)
        sql += " ORDER BY eta, id"
        with connect(self.db_path) as c:
            return _rows(c.execute(sql, params))

    def create(self, product_id: Any, qty: int, eta: str) -> int:
        with connect(self.db_path) as c:
            cur = c.execute(
                "INSERT INTO IncomingStock (product_id, qty, eta) VALUES (?, ?, ?)",
                (product_id, qty, eta),
            )
            return int(cur.lastrowid)

    def delete(self, incoming_id: Any) -> int:
        with connect(self.db_path) as c:
            return c.execute("DELETE FROM IncomingStock WHERE id = ?", (incoming_id,)).rowcount

    def get(self, c: sqlite3.Connection, incoming_id: Any) -> Optional[Dict[str, Any]]:
        row = c.execute(
            "SELECT id, product_id AS productId, qty, eta FROM IncomingStock WHERE id = ?",
            (incoming_id,),
        ).fetchone()
        return dict(row) if row else None

    def remove(self, c: sqlite3.Connection, incoming_id: Any) -> int:
        return c.execute("DELETE FROM IncomingStock WHERE id = ?", (incoming_id,)).rowcount


# -------------------------
# Informes
# -------------------------

class ReporteRepo:
    """Agregaciones sobre Pedidos/PedidoItems en un rango [start, end)."""

    def __init__(self, db_path: str):
        self.db_path = db_path

    @staticmethod
    def _scope(alias: str, service_id: Optional[Any]) -> str:
        base = f"{alias}.Fecha >= ? AND {alias}.Fecha < ?"
        if service_id is None:
            return base
        return base + f" AND CAST({alias}.ServicioID AS TEXT) = CAST(? AS TEXT)"

    @staticmethod
    def _params(start: str, end: str, service_id: Optional[Any]) -> tuple:
        return (start, end) if service_id is None else (start, end, service_id)

    def totals(self, start: str, end: str, service_id: Optional[Any] = None) -> Dict[str, Any]:
        p = self._params(start, end, service_id)
        with connect(self.db_path) as c:
            orders = c.execute(
                f"SELECT COUNT(*) FROM Pedidos p WHERE {self._scope('p', service_id)}", p
            ).fetchone()[0]
            items = c.execute(
                f"SELECT COALESCE(SUM(Cantidad), 0) FROM vw_pedido_items p WHERE {self._scope('p', service_id)}",
                p,
            ).fetchone()[0]
            amount = c.execute(
                f"SELECT COALESCE(SUM(Total), 0) FROM Pedidos p WHERE {self._scope('p', service_id)}", p
            ).fetchone()[0]
        return {
            "ordersCount": int(orders or 0),
            "itemsCount": int(items or 0),
            "amount": float(amount or 0),
        }

    def top_services(self, start: str, end: str, limit: int = 10) -> List[Dict[str, Any]]:
        with connect(self.db_path) as c:
            rows = _rows(c.execute(
                """
                SELECT p.ServicioID AS serviceId,
                       COUNT(DISTINCT p.PedidoID) AS pedidos,
                       COALESCE(SUM(i.Cantidad), 0) AS qty,
                       COALESCE(SUM(i.Subtotal), 0) AS amount
                FROM Pedidos p
                LEFT JOIN PedidoItems i ON i.PedidoID = p.PedidoID
                WHERE p.Fecha >= ? AND p.Fecha < ?
                GROUP BY p.ServicioID
                ORDER BY amount DESC
                LIMIT ?
                """,
                (start, end, limit),
            ))
            for r in rows:
                r["serviceName"] = service_name(c, r["serviceId"])
                r["qty"] = int(r["qty"] or 0)
                r["amount"] = float(r["amount"] or 0)
            return rows

    def top_products(self, start: str, end: str, limit: int = 10, service_id: Optional[Any] = None) -> List[Dict[str, Any]]:
        with connect(self.db_path) as c:
            rows = _rows(c.execute(
                f"""
                SELECT COALESCE(p.ProductoID, 0) AS productId,
                       COALESCE(MAX(p.Codigo), '') AS code,
                       COALESCE(MAX(p.Nombre), '') AS name,
                       COUNT(DISTINCT p.PedidoID) AS pedidos,
                       COALESCE(SUM(p.Cantidad), 0) AS qty,
                       COALESCE(SUM(p.Subtotal), 0) AS amount
                FROM vw_pedido_items p
                WHERE {self._scope('p', service_id)}
                GROUP BY p.ProductoID, LOWER(p.Nombre), LOWER(p.Codigo)
                ORDER BY amount DESC
                LIMIT ?
                """,
                (*self._params(start, end, service_id), limit),
            ))
        for r in rows:
            r["qty"] = int(r["qty"] or 0)
            r["amount"] = float(r["amount"] or 0)
        return rows

    def by_day(self, start: str, end: str, service_id: Optional[Any] = None) -> List[Dict[str, Any]]:
        with connect(self.db_path) as c:
            rows = _rows(c.execute(
                f"""
                SELECT SUBSTR(p.Fecha, 1, 10) AS day,
                       COUNT(*) AS pedidos,
                       COALESCE(SUM(p.Total), 0) AS monto
                FROM Pedidos p
                WHERE {self._scope('p', service_id)}
                GROUP BY day
                ORDER BY day
                """,
                self._params(start, end, service_id),
            ))
        for r in rows:
            r["monto"] = float(r["monto"] or 0)
        return rows

    def orders(self, start: str, end: str, service_id: Any) -> List[Dict[str, Any]]:
        with connect(self.db_path) as c:
            rows = _rows(c.execute(
                f"""
                SELECT p.PedidoID AS id, p.Fecha AS fecha, COALESCE(p.Total, 0) AS total
                FROM Pedidos p
                WHERE {self._scope('p', service_id)}
                ORDER BY p.Fecha DESC, p.PedidoID DESC
                """,
                self._params(start, end, service_id),
            ))
        for r in rows:
            r["total"] = float(r["total"])
        return rows
