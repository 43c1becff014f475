"""
Reglas de negocio de pedidos, presupuestos y depósito.

Funciones puras: no tocan la base. Las usan los casos de uso antes de
abrir una transacción y la CLI al chequear el tope de presupuesto.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional

from kazaro.domain.errors import InvalidOrderError
from kazaro.domain.models import ItemPedido


ROLES_PERMITIDOS = ("administrativo", "supervisor", "admin")

ESTADOS_PEDIDO = ("open", "preparing", "closed")

# acción del depósito -> estado resultante
TRANSICIONES_ESTADO = {
    "prepare": "preparing",
    "close": "closed",
    "reopen": "open",
}


def _as_int_qty(raw: Any) -> Optional[int]:
    # bool es subclase de int; no es una cantidad válida
    if isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw
    if isinstance(raw, float) and raw.is_integer():
        return int(raw)
    if isinstance(raw, str) and raw.strip().lstrip("-").isdigit():
        return int(raw.strip())
    return None


def validar_items(items: Optional[Iterable[Any]]) -> List[ItemPedido]:
    """Normaliza y valida las líneas de un pedido.

    Acepta ``ItemPedido`` o dicts ``{"product_id", "qty"}`` (también
    ``productId``/``cantidad``, como los manda el carrito).

    Reglas:
        - al menos un ítem;
        - ``qty`` entero y ``>= 1``;
        - ``product_id`` presente.

    Raises:
        InvalidOrderError: si alguna regla no se cumple.
    """
    if items is None:
        raise InvalidOrderError("El pedido no tiene ítems")
    out: List[ItemPedido] = []
    for idx, it in enumerate(items):
        if isinstance(it, ItemPedido):
            pid, raw_qty = it.product_id, it.qty
        elif isinstance(it, dict):
            pid = it.get("product_id", it.get("productId"))
            raw_qty = it.get("qty", it.get("cantidad"))
        else:
            raise InvalidOrderError(f"Ítem {idx} inválido")

        if pid is None or pid == "":
            raise InvalidOrderError(f"Ítem {idx} sin producto")
        qty = _as_int_qty(raw_qty)
        if qty is None:
            raise InvalidOrderError(f"Cantidad inválida en ítem {idx}: {raw_qty!r}")
        if qty < 1:
            raise InvalidOrderError(f"La cantidad debe ser >= 1 (ítem {idx}: {qty})")
        out.append(ItemPedido(product_id=pid, qty=qty))

    if not out:
        raise InvalidOrderError("El pedido no tiene ítems")
    return out


def tope_pedido(presupuesto: Optional[float], max_pct: Optional[float]) -> Optional[float]:
    """Monto máximo de un pedido: ``presupuesto * max_pct / 100``.

    Devuelve ``None`` si el servicio no tiene presupuesto cargado.
    """
    if presupuesto is None or max_pct is None:
        return None
    try:
        p = float(presupuesto)
        pct = float(max_pct)
    except (TypeError, ValueError):
        return None
    if p <= 0 or pct <= 0:
        return None
    return round(p * pct / 100.0, 2)


def excede_tope(total: float, presupuesto: Optional[float], max_pct: Optional[float]) -> bool:
    """True si ``total`` supera el tope por pedido del servicio."""
    tope = tope_pedido(presupuesto, max_pct)
    if tope is None:
        return False
    return float(total) > tope


def estado_para_accion(accion: str) -> str:
    """Traduce la acción del depósito (prepare/close/reopen) al nuevo estado."""
    key = (accion or "").strip().lower()
    if key not in TRANSICIONES_ESTADO:
        raise ValueError(
            f"Acción inválida: {accion!r} (use {', '.join(TRANSICIONES_ESTADO)})"
        )
    return TRANSICIONES_ESTADO[key]


def filtrar_roles(roles: Iterable[str]) -> List[str]:
    """Deja sólo roles permitidos, en minúsculas y sin duplicados (orden estable)."""
    seen: Dict[str, None] = {}
    for r in roles or []:
        key = str(r or "").strip().lower()
        if key in ROLES_PERMITIDOS and key not in seen:
            seen[key] = None
    return list(seen)


def normalizar_eta(eta: Optional[str]) -> Optional[str]:
    """Fecha ``YYYY-MM-DD`` pasa a ``YYYY-MM-DD 00:00:00``; 'T' se reemplaza por espacio."""
    if eta is None:
        return None
    s = str(eta).strip().replace("T", " ")
    if not s:
        return None
    if len(s) == 10:
        return s + " 00:00:00"
    return s
