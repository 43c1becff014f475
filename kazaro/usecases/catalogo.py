# kazaro/usecases/catalogo.py
"""
UC: Catálogo de productos.

- consulta: categorías y productos (filtros por categoría, texto,
  servicio y rol)
- administración: alta/baja/modificación, ajuste de stock
- pivots: visibilidad por rol y catálogo por servicio
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional

from kazaro.config import DB_PATH
from kazaro.domain.errors import InvalidProductError, ProductNotFoundError
from kazaro.domain.models import CatalogSchema
from kazaro.domain.policies import filtrar_roles
from kazaro.infra.repositories import CatalogRepo, RoleVisibilityRepo, ServiceProductRepo
from kazaro.infra.logger import log_database_operation, log_transaction


def list_categories(schema: CatalogSchema, db_path: str = DB_PATH) -> List[Dict[str, Any]]:
    return CatalogRepo(db_path, schema).list_categories()


def list_products(
    schema: CatalogSchema,
    category_id: Any = "__all__",
    q: str = "",
    service_id: Optional[Any] = None,
    role: Optional[str] = None,
    db_path: str = DB_PATH,
) -> List[Dict[str, Any]]:
    """
    Productos visibles.

    - `service_id`: si el servicio tiene catálogo propio, sólo esos productos.
    - `role`: productos con filas de visibilidad exigen ese rol; el resto
      se ve con cualquier rol.
    """
    return CatalogRepo(db_path, schema).list_products(category_id, q, service_id, role)


def get_product(schema: CatalogSchema, product_id: Any, db_path: str = DB_PATH) -> Dict[str, Any]:
    prod = CatalogRepo(db_path, schema).get(product_id)
    if prod is None:
        raise ProductNotFoundError(product_id)
    return prod


def create_product(schema: CatalogSchema, data: Dict[str, Any], db_path: str = DB_PATH) -> Any:
    new_id = CatalogRepo(db_path, schema).create(data)
    log_database_operation(schema.products_table, "INSERT", 1, id=new_id)
    return new_id


def update_product(schema: CatalogSchema, product_id: Any, data: Dict[str, Any], db_path: str = DB_PATH) -> None:
    fields = {k: v for k, v in data.items() if v is not None}
    CatalogRepo(db_path, schema).update(product_id, fields)
    log_database_operation(schema.products_table, "UPDATE", 1, id=product_id, fields=sorted(fields))


def delete_product(schema: CatalogSchema, product_id: Any, db_path: str = DB_PATH) -> None:
    CatalogRepo(db_path, schema).delete(product_id)
    log_database_operation(schema.products_table, "DELETE", 1, id=product_id)


def adjust_stock(schema: CatalogSchema, product_id: Any, delta: int, db_path: str = DB_PATH) -> int:
    """Suma `delta` (con signo) al stock. Devuelve el stock resultante."""
    if isinstance(delta, bool) or not isinstance(delta, int):
        raise InvalidProductError("delta debe ser un entero")
    data = {"product_id": product_id, "delta": delta}
    try:
        stock = CatalogRepo(db_path, schema).adjust_stock(product_id, delta)
    except Exception as e:
        log_transaction("ajuste_stock", data, error=str(e))
        raise
    log_transaction("ajuste_stock", data, result={"stock": stock})
    return stock


# -------------------------
# Visibilidad por rol
# -------------------------

def get_product_roles(product_id: Any, db_path: str = DB_PATH) -> List[str]:
    return RoleVisibilityRepo(db_path).get(product_id)


def set_product_roles(product_id: Any, roles: Iterable[str], db_path: str = DB_PATH) -> List[str]:
    """Reemplaza el conjunto de roles (sólo administrativo/supervisor/admin)."""
    clean = filtrar_roles(roles)
    if not clean:
        raise InvalidProductError("Debe indicar al menos un rol válido")
    RoleVisibilityRepo(db_path).replace(product_id, clean)
    log_database_operation("ProductRoleVisibility", "REPLACE", len(clean), product_id=product_id)
    return clean


# -------------------------
# Catálogo por servicio
# -------------------------

def get_service_products(service_id: Any, db_path: str = DB_PATH) -> List[Any]:
    return ServiceProductRepo(db_path).get(service_id)


def set_service_products(service_id: Any, product_ids: Iterable[Any], db_path: str = DB_PATH) -> Dict[str, int]:
    diff = ServiceProductRepo(db_path).replace(service_id, product_ids)
    log_database_operation("service_products", "REPLACE", diff["added"] + diff["removed"],
                           service_id=service_id, **diff)
    return diff
