"""
Errores de dominio de Kazaro.

Cada error lleva un `code` estable y un `status` al estilo HTTP para que
la capa de presentación (CLI u otra) pueda traducirlo sin inspeccionar
mensajes.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional


class KazaroError(Exception):
    code = "KAZARO_ERROR"
    status = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.code, "message": self.message}


class SchemaDiscoveryError(KazaroError):
    """No hay una tabla de productos plausible (o el mapeo explícito es inválido)."""
    code = "SCHEMA_DISCOVERY_FAILED"
    status = 500


class InvalidOrderError(KazaroError):
    code = "INVALID_ORDER"
    status = 400


class ProductNotFoundError(KazaroError):
    code = "PRODUCT_NOT_FOUND"
    status = 400

    def __init__(self, product_id: Any):
        super().__init__(f"Producto no encontrado: {product_id}")
        self.product_id = product_id

    def to_dict(self) -> Dict[str, Any]:
        return {**super().to_dict(), "productId": self.product_id}


class OutOfStockError(KazaroError):
    code = "OUT_OF_STOCK"
    status = 400

    def __init__(self, product_id: Any, name: Optional[str], available: int):
        super().__init__(
            f"Stock insuficiente para '{name}' (disponible: {available})"
        )
        self.product_id = product_id
        self.name = name
        self.available = available

    def to_dict(self) -> Dict[str, Any]:
        return {
            **super().to_dict(),
            "productId": self.product_id,
            "name": self.name,
            "available": self.available,
        }


class AssignmentConflictError(KazaroError):
    code = "SERVICE_TAKEN"
    status = 409

    def __init__(self, message: str, conflicts: List[Dict[str, Any]]):
        super().__init__(message)
        self.conflicts = conflicts

    def to_dict(self) -> Dict[str, Any]:
        return {**super().to_dict(), "conflicts": self.conflicts}


class OrderNotFoundError(KazaroError):
    code = "ORDER_NOT_FOUND"
    status = 404

    def __init__(self, pedido_id: Any):
        super().__init__(f"Pedido no encontrado: {pedido_id}")
        self.pedido_id = pedido_id


class InvalidProductError(KazaroError):
    code = "INVALID_PRODUCT"
    status = 400


class InvalidBudgetError(KazaroError):
    code = "INVALID_BUDGET"
    status = 400


class InvalidIncomingError(KazaroError):
    code = "INVALID_INCOMING"
    status = 400


class InvalidAssignmentError(KazaroError):
    code = "INVALID_ASSIGNMENT"
    status = 400
