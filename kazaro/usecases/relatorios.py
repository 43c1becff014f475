# kazaro/usecases/relatorios.py
"""
Informes de pedidos:
- mensual: totales, top servicios, top productos, serie diaria
- por servicio: lo mismo acotado a un servicio, más la lista de pedidos
  y la utilización del presupuesto

Los rangos son semiabiertos [start, end) en texto 'YYYY-MM-DD HH:MM:SS',
comparables con `Pedidos.Fecha` (datetime('now'), UTC).

Sólo lectura: asumen migraciones y views ya aplicadas (`kazaro migrate`).
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple

from kazaro.config import DB_PATH, DEFAULTS
from kazaro.infra.db import connect
from kazaro.infra.directorio import service_name
from kazaro.infra.repositories import BudgetRepo, ReporteRepo
from kazaro.infra.logger import log_system_event


_FMT = "%Y-%m-%d %H:%M:%S"


def month_range(year: Optional[int] = None, month: Optional[int] = None) -> Dict[str, Any]:
    """Primer instante del mes y primer instante del mes siguiente (UTC)."""
    now = datetime.now(timezone.utc)
    y = int(year) if year else now.year
    m = int(month) if month else now.month
    if not 1 <= m <= 12:
        raise ValueError(f"Mes inválido: {month}")
    start = datetime(y, m, 1)
    end = datetime(y + 1, 1, 1) if m == 12 else datetime(y, m + 1, 1)
    return {"year": y, "month": m, "start": start.strftime(_FMT), "end": end.strftime(_FMT)}


def _explicit_range(period: Dict[str, Any], start: Optional[str], end: Optional[str]) -> Tuple[str, str]:
    s = f"{str(start).strip()} 00:00:00" if start else period["start"]
    e = f"{str(end).strip()} 23:59:59" if end else period["end"]
    return s, e


def monthly_report(year: Optional[int] = None, month: Optional[int] = None, db_path: str = DB_PATH) -> Dict[str, Any]:
    period = month_range(year, month)
    start, end = period["start"], period["end"]
    log_system_event("monthly_report", {"start": start, "end": end})

    repo = ReporteRepo(db_path)
    return {
        "ok": True,
        "period": period,
        "totals": repo.totals(start, end),
        "top_services": repo.top_services(start, end, DEFAULTS.top_n_servicios),
        "top_products": repo.top_products(start, end, DEFAULTS.top_n_productos),
        "by_day": repo.by_day(start, end),
    }


def service_report(
    service_id: Any,
    year: Optional[int] = None,
    month: Optional[int] = None,
    start: Optional[str] = None,
    end: Optional[str] = None,
    db_path: str = DB_PATH,
) -> Dict[str, Any]:
    """
    Informe de un servicio.

    `start`/`end` (YYYY-MM-DD) reemplazan el mes: desde `start 00:00:00`
    hasta `end 23:59:59`. `utilization = amount / budget` sólo si el
    presupuesto es > 0.
    """
    period = month_range(year, month)
    s, e = _explicit_range(period, start, end)
    period = {**period, "start": s, "end": e}
    log_system_event("service_report", {"service_id": service_id, "start": s, "end": e})

    repo = ReporteRepo(db_path)
    totals = repo.totals(s, e, service_id)

    budget_row = BudgetRepo(db_path).get(service_id)
    budget = float(budget_row["presupuesto"]) if budget_row else None
    utilization = totals["amount"] / budget if budget and budget > 0 else None

    with connect(db_path) as c:
        name = service_name(c, service_id)

    return {
        "ok": True,
        "period": period,
        "service": {"id": service_id, "name": name, "budget": budget, "utilization": utilization},
        "totals": totals,
        "top_products": repo.top_products(s, e, DEFAULTS.top_n_productos_servicio, service_id),
        "by_day": repo.by_day(s, e, service_id),
        "orders": repo.orders(s, e, service_id),
    }
