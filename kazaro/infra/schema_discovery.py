# kazaro/infra/schema_discovery.py
"""
Descubrimiento del esquema del catálogo.

La base de productos es heredada y sus nombres de tabla/columna varían.
Este módulo inspecciona `sqlite_master`, `PRAGMA table_info` y
`PRAGMA foreign_key_list` (sólo lectura) para decidir:

- qué tabla es el catálogo de productos (puntaje por columnas presentes);
- qué columna cumple cada rol (id, nombre, precio, stock, código,
  categoría, nombre de categoría);
- cuál es la tabla de categorías, si existe.

`discover_schema` devuelve un dict (contrato estable, útil para
diagnóstico). `resolve_catalog_schema` lo convierte una sola vez en un
`CatalogSchema` inmutable, o respeta un mapeo explícito si está definido.
"""

from __future__ import annotations

import sqlite3
import unicodedata
from typing import Any, Dict, List, Optional, Sequence

from kazaro.config import CatalogMapping, catalog_mapping_from_env
from kazaro.domain.errors import SchemaDiscoveryError
from kazaro.domain.models import CatalogSchema
from kazaro.infra.db import connect_readonly, qid, table_info
from kazaro.infra.logger import log_system_event


NAME_CANDIDATES = [
    "Nombre", "NombreProducto", "Nombre_Producto", "Descripcion", "Detalle",
    "Producto", "Titulo", "title", "name",
]
CODE_CANDIDATES = ["Codigo", "CodigoProducto", "Codigo_Producto", "SKU", "code"]
PRICE_CANDIDATES = ["Precio", "Price", "Costo", "Importe", "Valor"]
STOCK_CANDIDATES = ["Stock", "Existencia", "Cantidad", "Disponibilidad"]
CAT_CANDIDATES = [
    "CategoriaID", "IdCategoria", "categoria_id",
    "RubroID", "FamiliaID",
    "CategoriaProductoID", "IdCategoriaProducto", "categoria_producto_id",
    "ServicioID", "IdServicio", "servicio_id",
    "SeccionID", "IdSeccion", "seccion_id",
    "GrupoID", "IdGrupo", "grupo_id",
    "TipoID", "IdTipo", "tipo_id",
    "ClasificacionID", "IdClasificacion", "clasificacion_id",
    "CategoryID",
]
CATNAME_CANDIDATES = [
    "Categoria", "CategoriaNombre", "NombreCategoria", "Rubro", "Familia",
    "Servicio", "Seccion", "Grupo", "Tipo", "Clasificacion",
    "categoria_nombre", "nombre_categoria",
]
PRODUCT_ID_CANDIDATES = ["ProductoID", "IdProducto", "producto_id", "ArticuloID", "ItemID", "id"]

CAT_TABLE_ID_CANDIDATES = [
    "CategoriaID", "IdCategoria", "categoria_id",
    "RubroID", "FamiliaID", "ServicioID", "SeccionID",
    "GrupoID", "TipoID", "ClasificacionID", "id",
]
CAT_TABLE_NAME_CANDIDATES = [
    "Nombre", "NombreCategoria", "Categoria", "Rubro", "Familia", "Servicio",
    "Seccion", "Grupo", "Tipo", "Clasificacion", "Descripcion", "Detalle",
    "name", "titulo",
]
CAT_TABLE_NAME_HINTS = ["categor", "rubro", "famil", "servi", "secci", "grup", "tipo", "clasif"]

# Tablas que nunca son catálogo: personas, pedidos y tablas propias de Kazaro
EXCLUDED_TABLES = {
    "empleados", "roles", "roles_empleados", "usuarios", "logs",
    "pedidos", "pedidoitems",
    "supervisor_services", "service_products", "productrolevisibility",
    "service_budgets", "incomingstock", "sqlite_sequence",
}

# Umbral del puntaje de una tabla de categorías hallada por join
CAT_JOIN_MIN_SCORE = 10


# -------------------------
# Helpers
# -------------------------

def _norm(s: Any) -> str:
    """Minúsculas, sin espacios extremos ni diacríticos."""
    decomposed = unicodedata.normalize("NFD", str(s if s is not None else ""))
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return stripped.lower().strip()


def pick_col(info: Sequence[Dict[str, Any]], candidates: Sequence[str]) -> Optional[str]:
    """Primer candidato (en orden) que coincide con una columna real."""
    by_norm = {}
    for c in info:
        by_norm.setdefault(_norm(c["name"]), c["name"])
    for cand in candidates:
        real = by_norm.get(_norm(cand))
        if real:
            return real
    return None


def _is_text(col: Dict[str, Any]) -> bool:
    return "TEXT" in str(col.get("type") or "").upper()


def _all_tables(conn: sqlite3.Connection) -> List[str]:
    rows = conn.execute(
        "SELECT name FROM sqlite_master WHERE type='table' AND name NOT LIKE 'sqlite_%' ORDER BY name"
    ).fetchall()
    return [r[0] for r in rows]


def _has_rows(conn: sqlite3.Connection, table: str) -> bool:
    try:
        return conn.execute(f"SELECT 1 FROM {qid(table)} LIMIT 1").fetchone() is not None
    except sqlite3.DatabaseError:
        return False


def _fk_list(conn: sqlite3.Connection, table: str) -> List[Dict[str, Any]]:
    try:
        return [dict(r) for r in conn.execute(f"PRAGMA foreign_key_list({qid(table)});").fetchall()]
    except sqlite3.DatabaseError:
        return []


def _excluded(table: str) -> bool:
    return table.lower() in EXCLUDED_TABLES


# -------------------------
# Tabla de productos
# -------------------------

def score_product_table(conn: sqlite3.Connection, table: str) -> int:
    """
    Puntaje de una tabla como catálogo de productos.

    nombre (o cualquier columna TEXT) +4, precio +2, código +1,
    categoría +2. Tablas vacías o excluidas valen 0.
    """
    if _excluded(table):
        return 0
    info = table_info(conn, table)
    if not info or not _has_rows(conn, table):
        return 0
    score = 0
    if pick_col(info, NAME_CANDIDATES) or any(_is_text(c) for c in info):
        score += 4
    if pick_col(info, PRICE_CANDIDATES):
        score += 2
    if pick_col(info, CODE_CANDIDATES):
        score += 1
    if pick_col(info, CAT_CANDIDATES) or pick_col(info, CATNAME_CANDIDATES):
        score += 2
    return score


def choose_product_table(conn: sqlite3.Connection) -> Optional[str]:
    """Tabla con mayor puntaje (> 0); ante empate gana la primera por nombre."""
    best, best_score = None, 0
    for t in _all_tables(conn):
        s = score_product_table(conn, t)
        if s > best_score:
            best, best_score = t, s
    return best


# -------------------------
# Tabla de categorías
# -------------------------

def _category_table_by_fk(conn, products: str, cat_col: str) -> Optional[Dict[str, str]]:
    for fk in _fk_list(conn, products):
        if str(fk.get("from", "")).lower() != cat_col.lower():
            continue
        target = fk.get("table")
        info = table_info(conn, target)
        if not info:
            return None
        pk = next((c["name"] for c in info if c.get("pk") == 1), None)
        cat_id = fk.get("to") or pk or pick_col(info, ["CategoriaID", "IdCategoria", "id"])
        cat_name = pick_col(info, CATNAME_CANDIDATES + [
            "Descripcion", "Nombre", "name", "Titulo", "title",
        ])
        if cat_id and cat_name:
            return {"table": target, "cat_id": cat_id, "cat_name": cat_name}
        return None
    return None


def _category_table_by_join(conn, products: str, cat_col: str) -> Optional[Dict[str, str]]:
    best = None
    for t in _all_tables(conn):
        if t == products or _excluded(t) or not _has_rows(conn, t):
            continue
        info = table_info(conn, t)
        cat_id = pick_col(info, CAT_TABLE_ID_CANDIDATES)
        cat_name = pick_col(info, CAT_TABLE_NAME_CANDIDATES)
        if not cat_id or not cat_name:
            continue
        try:
            join_ok = conn.execute(
                f"SELECT 1 FROM {qid(products)} p JOIN {qid(t)} c "
                f"ON p.{qid(cat_col)} = c.{qid(cat_id)} LIMIT 1"
            ).fetchone() is not None
        except sqlite3.DatabaseError:
            join_ok = False
        score = 3 if any(h in t.lower() for h in CAT_TABLE_NAME_HINTS) else 0
        if join_ok:
            score += 10
        if best is None or score > best[0]:
            best = (score, {"table": t, "cat_id": cat_id, "cat_name": cat_name})
    if best and best[0] >= CAT_JOIN_MIN_SCORE:
        return best[1]
    return None


def find_category_table(conn, products: str, cat_col: Optional[str]) -> Optional[Dict[str, str]]:
    if not cat_col:
        return None
    return _category_table_by_fk(conn, products, cat_col) or _category_table_by_join(conn, products, cat_col)


# -------------------------
# Columnas
# -------------------------

def _resolve_columns(info: List[Dict[str, Any]], fixed: Optional[Dict[str, str]] = None) -> Dict[str, Optional[str]]:
    fixed = fixed or {}

    prod_id = fixed.get("id")
    if not prod_id:
        prod_id = (
            next((c["name"] for c in info if c.get("pk") == 1), None)
            or pick_col(info, PRODUCT_ID_CANDIDATES)
            or "rowid"
        )

    prod_name = fixed.get("name") or pick_col(info, NAME_CANDIDATES)
    if not prod_name:
        any_text = next((c["name"] for c in info if _is_text(c)), None)
        prod_name = any_text or info[0]["name"]

    def role(key: str, candidates: Sequence[str]) -> Optional[str]:
        return fixed.get(key) or pick_col(info, candidates)

    return {
        "id": prod_id,
        "name": prod_name,
        "price": role("price", PRICE_CANDIDATES),
        "stock": role("stock", STOCK_CANDIDATES),
        "code": role("code", CODE_CANDIDATES),
        "category": role("category", CAT_CANDIDATES),
        "category_name": pick_col(info, CATNAME_CANDIDATES),
    }


def _discover(conn: sqlite3.Connection) -> Dict[str, Any]:
    products = choose_product_table(conn)
    if not products:
        return {
            "ok": False,
            "reason": "No se encontró ninguna tabla que parezca catálogo de productos.",
        }
    info = table_info(conn, products)
    cols = _resolve_columns(info)
    cat = find_category_table(conn, products, cols["category"])
    cols["cat_id"] = cat["cat_id"] if cat else None
    cols["cat_name"] = cat["cat_name"] if cat else None
    return {
        "ok": True,
        "tables": {"products": products, "categories": cat["table"] if cat else None},
        "cols": cols,
    }


def discover_schema(db_path: str) -> Dict[str, Any]:
    """
    Detecta tabla y columnas del catálogo.

    Returns:
        ``{"ok": True, "tables": {...}, "cols": {...}}`` o
        ``{"ok": False, "reason": str}``.

    Abre la base en sólo lectura: no crea el archivo ni cambia el
    journal_mode.
    """
    try:
        with connect_readonly(db_path) as conn:
            return _discover(conn)
    except FileNotFoundError:
        return {"ok": False, "reason": f"La base no existe: {db_path}"}


def _schema_from_dict(result: Dict[str, Any]) -> CatalogSchema:
    cols = result["cols"]
    return CatalogSchema(
        products_table=result["tables"]["products"],
        id_col=cols["id"],
        name_col=cols["name"],
        price_col=cols.get("price"),
        stock_col=cols.get("stock"),
        code_col=cols.get("code"),
        category_col=cols.get("category"),
        category_name_col=cols.get("category_name"),
        categories_table=result["tables"].get("categories"),
        cat_id_col=cols.get("cat_id"),
        cat_name_col=cols.get("cat_name"),
    )


def _from_mapping(conn: sqlite3.Connection, mapping: CatalogMapping) -> Dict[str, Any]:
    table = mapping.products_table
    real_table = next((t for t in _all_tables(conn) if t.lower() == table.lower()), None)
    if not real_table:
        raise SchemaDiscoveryError(f"Tabla de productos inexistente: {table}")
    info = table_info(conn, real_table)
    names = {c["name"].lower(): c["name"] for c in info}

    fixed: Dict[str, str] = {}
    for role, col in mapping.columns.items():
        if col.lower() in ("rowid", "oid", "_rowid_") and role == "id":
            fixed[role] = col
            continue
        real = names.get(col.lower())
        if not real:
            raise SchemaDiscoveryError(
                f"Columna '{col}' ({role}) no existe en la tabla {real_table}"
            )
        fixed[role] = real

    cols = _resolve_columns(info, fixed)
    cat = find_category_table(conn, real_table, cols["category"])
    cols["cat_id"] = cat["cat_id"] if cat else None
    cols["cat_name"] = cat["cat_name"] if cat else None
    return {
        "ok": True,
        "tables": {"products": real_table, "categories": cat["table"] if cat else None},
        "cols": cols,
    }


def resolve_catalog_schema(db_path: str, mapping: Optional[CatalogMapping] = None) -> CatalogSchema:
    """
    Resuelve el esquema del catálogo una sola vez.

    Si hay mapeo explícito (argumento o variables KAZARO_PRODUCT*), se
    valida contra la tabla real y las columnas no informadas se completan
    por heurística. Si no, se usa `discover_schema`.

    Raises:
        SchemaDiscoveryError: sin tabla plausible o mapeo inválido.
    """
    if mapping is None:
        mapping = catalog_mapping_from_env()

    try:
        with connect_readonly(db_path) as conn:
            if mapping.is_set:
                result = _from_mapping(conn, mapping)
                source = "mapping"
            else:
                result = _discover(conn)
                source = "heuristic"
    except FileNotFoundError:
        result = {"ok": False, "reason": f"La base no existe: {db_path}"}
        source = None

    if not result.get("ok"):
        log_system_event("Descubrimiento de catálogo fallido", {"reason": result.get("reason")}, level="error")
        raise SchemaDiscoveryError(result.get("reason") or "Esquema de catálogo no disponible")

    schema = _schema_from_dict(result)
    log_system_event("Esquema de catálogo resuelto", {"source": source, **schema.as_dict()})
    return schema
