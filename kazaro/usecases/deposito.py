# kazaro/usecases/deposito.py
"""
UC: Depósito.

- estados del pedido: open → preparing → closed (y reopen)
- productos con stock bajo
- ingresos futuros de stock y su confirmación
- mantenimiento de pedidos (ver, borrar, corregir total)
"""

from __future__ import annotations

import math
from typing import Any, Dict, List, Optional

from kazaro.config import DB_PATH, DEFAULTS
from kazaro.domain.errors import (
    InvalidIncomingError, InvalidOrderError, OrderNotFoundError, ProductNotFoundError
)
from kazaro.domain.models import CatalogSchema
from kazaro.domain.policies import ESTADOS_PEDIDO, estado_para_accion, normalizar_eta
from kazaro.infra.db import transaction
from kazaro.infra.repositories import CatalogRepo, IncomingStockRepo, PedidoRepo
from kazaro.infra.logger import log_pedido, log_transaction, log_database_operation


def list_orders(status: str = "open", db_path: str = DB_PATH) -> List[Dict[str, Any]]:
    key = (status or "open").strip().lower()
    if key not in ESTADOS_PEDIDO:
        raise InvalidOrderError(f"Estado inválido: {status}")
    return PedidoRepo(db_path).list_by_status(key)


def set_order_status(pedido_id: Any, action: str, db_path: str = DB_PATH) -> str:
    """Aplica prepare/close/reopen. Devuelve el nuevo estado."""
    try:
        estado = estado_para_accion(action)
    except ValueError as e:
        raise InvalidOrderError(str(e)) from e
    if PedidoRepo(db_path).update_status(pedido_id, estado) == 0:
        raise OrderNotFoundError(pedido_id)
    log_pedido("status", pedido_id=pedido_id, status=estado)
    return estado


def low_stock(schema: CatalogSchema, threshold: Optional[int] = None, db_path: str = DB_PATH) -> List[Dict[str, Any]]:
    """Productos con stock <= umbral, de menor a mayor."""
    if threshold is None:
        threshold = DEFAULTS.low_stock_threshold
    return CatalogRepo(db_path, schema).low_stock(threshold)


# -------------------------
# Ingresos
# -------------------------

def list_incoming(product_id: Optional[Any] = None, db_path: str = DB_PATH) -> List[Dict[str, Any]]:
    return IncomingStockRepo(db_path).list(product_id)


def create_incoming(product_id: Any, qty: Any, eta: Optional[str], db_path: str = DB_PATH) -> int:
    try:
        q = int(qty)
    except (TypeError, ValueError):
        raise InvalidIncomingError(f"Cantidad inválida: {qty!r}")
    if isinstance(qty, bool) or q <= 0 or (isinstance(qty, float) and not qty.is_integer()):
        raise InvalidIncomingError("La cantidad debe ser un entero > 0")
    eta_norm = normalizar_eta(eta)
    if not eta_norm:
        raise InvalidIncomingError("La fecha estimada (eta) es obligatoria")
    new_id = IncomingStockRepo(db_path).create(product_id, q, eta_norm)
    log_database_operation("IncomingStock", "INSERT", 1, id=new_id, product_id=product_id, qty=q)
    return new_id


def delete_incoming(incoming_id: Any, db_path: str = DB_PATH) -> bool:
    removed = IncomingStockRepo(db_path).delete(incoming_id)
    log_database_operation("IncomingStock", "DELETE", removed, id=incoming_id)
    return removed > 0


def confirm_incoming(schema: CatalogSchema, incoming_id: Any, db_path: str = DB_PATH) -> Dict[str, Any]:
    """Suma la cantidad al stock del producto y borra el ingreso (una transacción)."""
    if not schema.tracks_stock:
        raise InvalidIncomingError("El catálogo no tiene columna de stock")
    incoming = IncomingStockRepo(db_path)
    catalog = CatalogRepo(db_path, schema)
    with transaction(db_path) as conn:
        rec = incoming.get(conn, incoming_id)
        if rec is None:
            raise InvalidIncomingError(f"Ingreso no encontrado: {incoming_id}")
        if not catalog.increment_stock(conn, rec["productId"], rec["qty"]):
            raise ProductNotFoundError(rec["productId"])
        incoming.remove(conn, incoming_id)
        stock = catalog.stock_of(conn, rec["productId"])

    log_transaction("confirmar_ingreso", rec, result={"stock": stock})
    return {"ok": True, "productId": rec["productId"], "qty": rec["qty"], "stock": stock}


# -------------------------
# Mantenimiento de pedidos
# -------------------------

def get_full_order(pedido_id: Any, db_path: str = DB_PATH) -> Dict[str, Any]:
    full = PedidoRepo(db_path).get_full(pedido_id)
    if full is None:
        raise OrderNotFoundError(pedido_id)
    return full


def delete_order(pedido_id: Any, db_path: str = DB_PATH) -> None:
    """Borra cabecera e ítems. No repone stock."""
    if PedidoRepo(db_path).delete(pedido_id) == 0:
        raise OrderNotFoundError(pedido_id)
    log_pedido("delete", pedido_id=pedido_id)


def set_order_total(pedido_id: Any, total: Any, db_path: str = DB_PATH) -> None:
    """
    Corrección manual del total (admin).

    Reemplaza el total calculado: después de esto `Total` puede no
    coincidir con la suma de los subtotales de las líneas.
    """
    try:
        value = float(total)
    except (TypeError, ValueError):
        raise InvalidOrderError(f"Total no numérico: {total!r}")
    if not math.isfinite(value) or value < 0:
        raise InvalidOrderError(f"Total inválido: {total!r}")
    if PedidoRepo(db_path).update_total(pedido_id, value) == 0:
        raise OrderNotFoundError(pedido_id)
    log_pedido("total", pedido_id=pedido_id, total=value)
