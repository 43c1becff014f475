# kazaro/config.py
"""
Configuraciones globales y valores por defecto del sistema Kazaro.

Todas las variables pueden sobrescribirse por entorno (prefijo KAZARO_).
"""

import os
from dataclasses import dataclass, field
from typing import Dict, Optional


# Ruta por defecto de la base SQLite
DB_PATH = os.environ.get("KAZARO_DB_PATH") or os.path.join(os.getcwd(), "Kazaro.db")

# Tiempo que el driver espera un lock antes de devolver "database is locked"
BUSY_TIMEOUT_MS = int(os.environ.get("KAZARO_BUSY_TIMEOUT_MS", "5000"))


@dataclass
class DefaultConfig:
    """Valores por defecto para parámetros del sistema."""
    max_pct_pedido: float = 5.0  # % del presupuesto del servicio por pedido
    low_stock_threshold: int = 0
    top_n_servicios: int = 10
    top_n_productos: int = 10
    top_n_productos_servicio: int = 15


@dataclass(frozen=True)
class CatalogMapping:
    """
    Mapeo explícito tabla/columnas del catálogo.

    Si `products_table` está definido, reemplaza la detección heurística.
    Las columnas no informadas se resuelven igual por heurística sobre esa tabla.
    """
    products_table: Optional[str] = None
    columns: Dict[str, str] = field(default_factory=dict)

    @property
    def is_set(self) -> bool:
        return bool(self.products_table)


_MAPPING_ENV = {
    "id": "KAZARO_PRODUCT_ID_COL",
    "name": "KAZARO_PRODUCT_NAME_COL",
    "price": "KAZARO_PRODUCT_PRICE_COL",
    "stock": "KAZARO_PRODUCT_STOCK_COL",
    "code": "KAZARO_PRODUCT_CODE_COL",
    "category": "KAZARO_PRODUCT_CATEGORY_COL",
}


def catalog_mapping_from_env(environ=None) -> CatalogMapping:
    """Lee el mapeo explícito del catálogo desde variables de entorno."""
    env = os.environ if environ is None else environ
    table = (env.get("KAZARO_PRODUCTS_TABLE") or "").strip() or None
    cols = {}
    for role, var in _MAPPING_ENV.items():
        val = (env.get(var) or "").strip()
        if val:
            cols[role] = val
    return CatalogMapping(products_table=table, columns=cols)


# Instancia global de los valores por defecto
DEFAULTS = DefaultConfig()
