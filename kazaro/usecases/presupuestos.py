# kazaro/usecases/presupuestos.py
"""
UC: Presupuestos por servicio.

El tope por pedido (`presupuesto * max_pct / 100`) lo consulta el
cliente antes de enviar un pedido; el registro no lo revalida.
"""

from __future__ import annotations

import math
from typing import Any, Dict, List, Optional

from kazaro.config import DB_PATH, DEFAULTS
from kazaro.domain.errors import InvalidBudgetError
from kazaro.domain.policies import excede_tope, tope_pedido
from kazaro.infra.repositories import BudgetRepo
from kazaro.infra.logger import log_database_operation


def list_budgets(db_path: str = DB_PATH) -> List[Dict[str, Any]]:
    return BudgetRepo(db_path).list()


def get_budget(service_id: Any, db_path: str = DB_PATH) -> Optional[Dict[str, Any]]:
    return BudgetRepo(db_path).get(service_id)


def set_budget(service_id: Any, budget: Any, max_pct: Any = None, db_path: str = DB_PATH) -> Dict[str, Any]:
    """Alta/actualización (budget >= 0, max_pct > 0; por defecto 5%)."""
    if max_pct is None:
        max_pct = DEFAULTS.max_pct_pedido
    try:
        b = float(budget)
        pct = float(max_pct)
    except (TypeError, ValueError):
        raise InvalidBudgetError("Presupuesto o porcentaje no numérico")
    if not math.isfinite(b) or b < 0:
        raise InvalidBudgetError("Presupuesto inválido")
    if not math.isfinite(pct) or pct <= 0:
        raise InvalidBudgetError("Porcentaje máximo inválido")
    BudgetRepo(db_path).upsert(service_id, b, pct)
    log_database_operation("service_budgets", "UPSERT", 1, service_id=service_id, budget=b, max_pct=pct)
    return {"servicioId": service_id, "presupuesto": b, "maxPct": pct}


def order_cap(budget: Optional[float], max_pct: Optional[float] = None) -> Optional[float]:
    """Monto máximo de un pedido para el presupuesto dado."""
    if max_pct is None:
        max_pct = DEFAULTS.max_pct_pedido
    return tope_pedido(budget, max_pct)


def exceeds_cap(total: float, budget: Optional[float], max_pct: Optional[float] = None) -> bool:
    if max_pct is None:
        max_pct = DEFAULTS.max_pct_pedido
    return excede_tope(total, budget, max_pct)


def cap_for_service(service_id: Any, db_path: str = DB_PATH) -> Optional[float]:
    """Tope por pedido del servicio, o None si no tiene presupuesto cargado."""
    row = get_budget(service_id, db_path)
    if not row:
        return None
    return order_cap(row["presupuesto"], row["maxPct"])
