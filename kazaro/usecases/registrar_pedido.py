# kazaro/usecases/registrar_pedido.py
"""
UC: Registrar PEDIDO.

Flujo (una sola transacción BEGIN IMMEDIATE):
1. valida ítems antes de tocar la base (qty entero >= 1, al menos uno);
2. inserta la cabecera con total 0;
3. por ítem: lee el producto, descuenta stock de forma condicional
   (`stock >= qty`; stock NULL = sin control, no se descuenta) e inserta
   el snapshot de la línea;
4. actualiza el total y confirma.

Cualquier error deshace todo: ni cabecera, ni líneas, ni descuentos.
El tope de presupuesto del servicio NO se revalida acá (lo chequea el
cliente antes de enviar).
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, Optional

from kazaro.config import DB_PATH
from kazaro.domain.errors import KazaroError, OutOfStockError, ProductNotFoundError
from kazaro.domain.models import CatalogSchema, NuevoPedido, PedidoItem
from kazaro.domain.policies import validar_items
from kazaro.infra.db import transaction
from kazaro.infra.repositories import CatalogRepo, PedidoRepo
from kazaro.infra.logger import (
    log_transaction, log_pedido, log_database_operation, log_system_event
)


def submit_order(
    schema: CatalogSchema,
    employee_id: Any,
    role: str,
    items: Iterable[Any],
    note: str = "",
    service_id: Optional[Any] = None,
    db_path: str = DB_PATH,
) -> Dict[str, Any]:
    """
    Registra un pedido y descuenta stock de forma atómica.

    Returns:
        ``{"pedido_id": int, "total": float}``

    Raises:
        InvalidOrderError: ítems vacíos o cantidad inválida (nada se escribe).
        ProductNotFoundError: un producto no existe.
        OutOfStockError: el stock no alcanza para una línea.
    """
    lineas = validar_items(items)
    data = {
        "employee_id": employee_id,
        "role": role,
        "service_id": service_id,
        "items": [(l.product_id, l.qty) for l in lineas],
    }
    log_pedido("submit", empleado_id=employee_id, service_id=service_id, lineas=len(lineas))

    catalog = CatalogRepo(db_path, schema)
    pedidos = PedidoRepo(db_path)

    try:
        with transaction(db_path) as conn:
            pedido_id = pedidos.insert_header(conn, employee_id, role, note or "", service_id)
            total = 0.0

            for linea in lineas:
                prod = catalog.fetch_for_order(conn, linea.product_id)
                if prod is None:
                    raise ProductNotFoundError(linea.product_id)

                if schema.tracks_stock:
                    if not catalog.decrement_stock(conn, linea.product_id, linea.qty):
                        available = catalog.stock_of(conn, linea.product_id)
                        raise OutOfStockError(linea.product_id, prod["name"], available)

                precio = float(prod["price"] or 0)
                subtotal = round(precio * linea.qty, 2)
                item = PedidoItem(
                    pedido_id=pedido_id,
                    product_id=linea.product_id,
                    nombre=prod["name"],
                    precio=precio,
                    cantidad=linea.qty,
                    subtotal=subtotal,
                    codigo=str(prod["code"] or ""),
                )
                pedidos.insert_item(conn, item)
                total += subtotal

            total = round(total, 2)
            pedidos.set_total(conn, pedido_id, total)

    except KazaroError as e:
        log_pedido("rollback", empleado_id=employee_id, error=e.code, detail=e.message)
        log_transaction("pedido", data, error=f"{e.code}: {e.message}")
        raise
    except Exception as e:
        log_system_event("Error registrando pedido", {"error": str(e), **data}, level="error")
        log_transaction("pedido", data, error=str(e))
        raise

    log_database_operation("Pedidos", "INSERT", 1, pedido_id=pedido_id)
    log_database_operation("PedidoItems", "INSERT", len(lineas), pedido_id=pedido_id)
    log_pedido("created", pedido_id=pedido_id, empleado_id=employee_id, total=total)
    log_transaction("pedido", data, result={"pedido_id": pedido_id, "total": total})
    return {"pedido_id": pedido_id, "total": total}


def run_registrar_pedido(schema: CatalogSchema, pedido: NuevoPedido, db_path: str = DB_PATH) -> Dict[str, Any]:
    """Variante que recibe un `NuevoPedido`."""
    return submit_order(
        schema,
        employee_id=pedido.employee_id,
        role=pedido.role,
        items=pedido.items,
        note=pedido.note,
        service_id=pedido.service_id,
        db_path=db_path,
    )
