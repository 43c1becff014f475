# kazaro/domain/models.py
"""
Modelos (dataclasses) del dominio.

Observación:
- Los repositorios devuelven diccionarios; las dataclasses sirven para
  tipado y para los objetos que deben ser inmutables (esquema del
  catálogo, ítems de pedido ya registrados).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class CatalogSchema:
    """Tabla/columnas físicas que cumplen cada rol del catálogo."""
    products_table: str
    id_col: str
    name_col: str
    price_col: Optional[str] = None
    stock_col: Optional[str] = None
    code_col: Optional[str] = None
    category_col: Optional[str] = None
    category_name_col: Optional[str] = None
    categories_table: Optional[str] = None
    cat_id_col: Optional[str] = None
    cat_name_col: Optional[str] = None

    @property
    def tracks_stock(self) -> bool:
        return self.stock_col is not None

    def as_dict(self) -> Dict[str, Any]:
        return {
            "ok": True,
            "tables": {
                "products": self.products_table,
                "categories": self.categories_table,
            },
            "cols": {
                "id": self.id_col,
                "name": self.name_col,
                "price": self.price_col,
                "stock": self.stock_col,
                "code": self.code_col,
                "category": self.category_col,
                "category_name": self.category_name_col,
                "cat_id": self.cat_id_col,
                "cat_name": self.cat_name_col,
            },
        }


@dataclass
class ItemPedido:
    """Línea del carrito enviada al registrar un pedido."""
    product_id: int
    qty: int


@dataclass
class NuevoPedido:
    """Datos de entrada del registro de pedido."""
    employee_id: int
    role: str
    items: List[ItemPedido]
    note: str = ""
    service_id: Optional[int] = None


@dataclass(frozen=True)
class PedidoItem:
    """Copia del producto al momento de la compra (no referencia viva)."""
    pedido_id: int
    product_id: int
    nombre: Optional[str]
    precio: float
    cantidad: int
    subtotal: float
    codigo: str = ""
