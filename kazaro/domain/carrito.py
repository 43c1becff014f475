"""
Carrito de compras del lado cliente.

Acumula cantidades por producto y calcula el total con los precios del
catálogo. `to_items()` devuelve las líneas en el formato que espera el
registro de pedidos.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from kazaro.domain.models import ItemPedido


@dataclass
class LineaCarrito:
    product_id: Any
    nombre: Optional[str]
    precio: float
    qty: int
    codigo: str = ""

    @property
    def subtotal(self) -> float:
        return round(self.precio * self.qty, 2)


@dataclass
class Carrito:
    lineas: Dict[Any, LineaCarrito] = field(default_factory=dict)

    def add(self, producto: Dict[str, Any], qty: int = 1) -> LineaCarrito:
        """Suma `qty` unidades de un producto (dict con id/name/price/code)."""
        if qty < 1:
            raise ValueError("qty debe ser >= 1")
        pid = producto["id"]
        linea = self.lineas.get(pid)
        if linea is None:
            linea = LineaCarrito(
                product_id=pid,
                nombre=producto.get("name"),
                precio=float(producto.get("price") or 0),
                qty=0,
                codigo=producto.get("code") or "",
            )
            self.lineas[pid] = linea
        linea.qty += qty
        return linea

    def set_qty(self, product_id: Any, qty: int) -> None:
        if product_id not in self.lineas:
            raise KeyError(product_id)
        if qty <= 0:
            self.remove(product_id)
            return
        self.lineas[product_id].qty = qty

    def remove(self, product_id: Any) -> None:
        self.lineas.pop(product_id, None)

    def clear(self) -> None:
        self.lineas.clear()

    def lines(self) -> List[LineaCarrito]:
        return list(self.lineas.values())

    @property
    def total(self) -> float:
        return round(sum(l.subtotal for l in self.lineas.values()), 2)

    def is_empty(self) -> bool:
        return not self.lineas

    def to_items(self) -> List[ItemPedido]:
        return [ItemPedido(product_id=l.product_id, qty=l.qty) for l in self.lineas.values()]
