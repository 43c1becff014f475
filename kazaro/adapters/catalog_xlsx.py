# kazaro/adapters/catalog_xlsx.py
"""
Importación/exportación del catálogo de productos en XLSX (pandas).

- export_products_xlsx: vuelca id/nombre/código/precio/stock/categoría.
- load_products_from_xlsx: lee la planilla y normaliza cabeceras
  (acentos, mayúsculas, sinónimos) a claves lógicas.
- import_products: actualiza los productos cuyo id existe e inserta el resto.
"""

from __future__ import annotations

import re
import unicodedata
from pathlib import Path
from typing import Any, Dict, List, Optional

import pandas as pd

from kazaro.config import DB_PATH
from kazaro.domain.models import CatalogSchema
from kazaro.infra.repositories import CatalogRepo
from kazaro.infra.logger import log_file_operation, log_transaction


EXPORT_COLUMNS = ["id", "nombre", "codigo", "precio", "stock", "categoria"]

HEADER_ALIASES = {
    "id": "id",
    "producto id": "id",
    "productoid": "id",
    "id producto": "id",

    "nombre": "name",
    "producto": "name",
    "descripcion": "name",
    "detalle": "name",
    "name": "name",

    "codigo": "code",
    "cod": "code",
    "sku": "code",
    "code": "code",

    "precio": "price",
    "precio unitario": "price",
    "costo": "price",
    "valor": "price",
    "price": "price",

    "stock": "stock",
    "existencia": "stock",
    "cantidad": "stock",

    "categoria": "category",
    "categoria id": "category",
    "categoriaid": "category",
    "rubro": "category",
    "category": "category",
}


# ---------------------------
# utilitarios de normalización
# ---------------------------

def _slug(s: Any) -> str:
    """Cabecera en minúsculas, sin acentos, sólo alfanuméricos separados por espacio."""
    if s is None:
        return ""
    s = unicodedata.normalize("NFD", str(s).strip().lower())
    s = "".join(ch for ch in s if not unicodedata.combining(ch))
    s = re.sub(r"[^a-z0-9]+", " ", s)
    return re.sub(r"\s+", " ", s).strip()


def _safe_get(row, key):
    val = row.get(key)
    if val is None or pd.isna(val):
        return None
    s = str(val).strip()
    return s or None


def _to_number(val: Optional[str]) -> Optional[float]:
    if val is None:
        return None
    s = val.replace(" ", "")
    # 1.234,56 -> 1234.56 ; 12,5 -> 12.5
    if "," in s and "." in s:
        s = s.replace(".", "").replace(",", ".")
    elif "," in s:
        s = s.replace(",", ".")
    try:
        return float(s)
    except ValueError:
        return None


def _to_int(val: Optional[str]) -> Optional[int]:
    num = _to_number(val)
    if num is None or not num.is_integer():
        return None
    return int(num)


def _id_value(val: Optional[str]) -> Any:
    as_int = _to_int(val)
    return as_int if as_int is not None else val


def _normalize_columns(df: pd.DataFrame) -> pd.DataFrame:
    new_cols = {}
    for col in df.columns:
        key = _slug(col)
        new_cols[col] = HEADER_ALIASES.get(key, key)
    return df.rename(columns=new_cols)


# ---------------------------
# API pública
# ---------------------------

def export_products_xlsx(schema: CatalogSchema, path: str, db_path: str = DB_PATH) -> int:
    """Escribe el catálogo completo en `path`. Devuelve cantidad de filas."""
    rows = CatalogRepo(db_path, schema).list_products()
    df = pd.DataFrame(
        [
            {
                "id": r["id"],
                "nombre": r["name"],
                "codigo": r["code"],
                "precio": r["price"],
                "stock": r["stock"],
                "categoria": r["categoryId"],
            }
            for r in rows
        ],
        columns=EXPORT_COLUMNS,
    )
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    df.to_excel(path, index=False, sheet_name="Productos")
    log_file_operation("export", str(path), len(df))
    return len(df)


def load_products_from_xlsx(path: str) -> List[Dict[str, Any]]:
    """Lee XLSX de productos.

    Claves de salida por fila (ausentes como None):
      - id: int | str
      - name: str
      - code: str
      - price: float
      - stock: int
      - category: int | str

    Filas completamente vacías se descartan.
    """
    df = pd.read_excel(path, dtype="string")
    df = _normalize_columns(df)
    out: List[Dict[str, Any]] = []
    for _, row in df.iterrows():
        rec = {
            "id": _id_value(_safe_get(row, "id")),
            "name": _safe_get(row, "name"),
            "code": _safe_get(row, "code"),
            "price": _to_number(_safe_get(row, "price")),
            "stock": _to_int(_safe_get(row, "stock")),
            "category": _id_value(_safe_get(row, "category")),
        }
        if all(v is None for v in rec.values()):
            continue
        out.append(rec)
    log_file_operation("read", str(path), len(out))
    return out


def import_products(schema: CatalogSchema, rows: List[Dict[str, Any]], db_path: str = DB_PATH) -> Dict[str, int]:
    """Actualiza por id o inserta. Devuelve ``{"updated", "inserted", "skipped"}``."""
    try:
        result = CatalogRepo(db_path, schema).import_rows(rows)
    except Exception as e:
        log_transaction("import_productos", {"rows": len(rows)}, error=str(e))
        raise
    log_transaction("import_productos", {"rows": len(rows)}, result=result)
    return result
