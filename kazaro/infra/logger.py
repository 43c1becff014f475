# kazaro/infra/logger.py
"""
Logging de Kazaro.

Un logger por área, cada uno con su archivo bajo `kazaro/logs/`:

    transactions  operaciones completas (pedido, ajuste de stock, importación)
    pedidos       ciclo de vida de pedidos
    asignaciones  supervisor ⇄ servicio
    database      escrituras puntuales sobre tablas
    system        eventos generales y archivos

Nada se escribe salvo que ENABLE_LOGGING (o ENABLE_OUTPUT) esté activo.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional


ENABLE_LOGGING = False
ENABLE_OUTPUT = False

LOG_FORMAT = "%(asctime)s | %(name)s | %(levelname)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

LOGS_DIR = Path(__file__).resolve().parent.parent / "logs"

# área -> archivo
LOG_FILES = {
    "transactions": "transactions.log",
    "pedidos": "pedidos.log",
    "asignaciones": "asignaciones.log",
    "database": "database.log",
    "system": "system.log",
}


def _enabled() -> bool:
    return ENABLE_LOGGING or ENABLE_OUTPUT


def setup_logger(name: str, log_file: str, level: int = logging.INFO) -> logging.Logger:
    """
    Devuelve el logger `name` escribiendo en `log_file`.

    Reemplaza handlers previos (llamarlo dos veces no duplica líneas) y no
    propaga al root logger. El archivo se crea recién con el primer registro.
    """
    Path(log_file).parent.mkdir(parents=True, exist_ok=True)

    lg = logging.getLogger(name)
    lg.setLevel(level)
    lg.propagate = False
    for h in list(lg.handlers):
        lg.removeHandler(h)
        h.close()

    handler = logging.FileHandler(log_file, encoding="utf-8", delay=True)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
    lg.addHandler(handler)
    return lg


def _area_logger(area: str) -> logging.Logger:
    return setup_logger(f"kazaro.{area}", str(LOGS_DIR / LOG_FILES[area]))


transaction_logger = _area_logger("transactions")
pedidos_logger = _area_logger("pedidos")
asignaciones_logger = _area_logger("asignaciones")
database_logger = _area_logger("database")
system_logger = _area_logger("system")


def log_transaction(operation: str, data: Dict[str, Any], result: Optional[Any] = None, error: Optional[str] = None) -> None:
    """
    Registra una operación completa.

    Args:
        operation: nombre de la operación (pedido, ajuste_stock, ...)
        data: entrada de la operación
        result: resultado, si terminó bien
        error: mensaje, si falló (se registra como ERROR)
    """
    if not _enabled():
        return
    if error:
        transaction_logger.error(f"TRANSACTION_FAILED: {operation} - {error} - Data: {data}")
        return
    transaction_logger.info(f"TRANSACTION_SUCCESS: {operation} - Result: {result} - Data: {data}")


def log_pedido(action: str, pedido_id: Optional[int] = None, empleado_id: Optional[int] = None, **kwargs) -> None:
    """Acción sobre un pedido: submit, created, rollback, status, total, delete."""
    if not _enabled():
        return
    payload = {"action": action, "pedido_id": pedido_id, "empleado_id": empleado_id, **kwargs}
    pedidos_logger.info(f"PEDIDO_{action.upper()}: {payload}")


def log_asignacion(action: str, empleado_id: Optional[int], servicio_id: Optional[int], **kwargs) -> None:
    if not _enabled():
        return
    payload = {"action": action, "empleado_id": empleado_id, "servicio_id": servicio_id, **kwargs}
    asignaciones_logger.info(f"ASIGNACION_{action.upper()}: {payload}")


def log_database_operation(table: str, operation: str, affected_rows: int = 0, **kwargs) -> None:
    """Escritura sobre `table` (INSERT, UPDATE, DELETE, UPSERT, REPLACE)."""
    if not _enabled():
        return
    payload = {"table": table, "affected_rows": affected_rows, **kwargs}
    database_logger.info(f"DB_{operation}: {payload}")


def log_system_event(event: str, details: Optional[Dict[str, Any]] = None, level: str = "info") -> None:
    """Evento general; `level` es el nombre del método del logger (info, warning, error)."""
    if not _enabled():
        return
    emit = getattr(system_logger, level.lower(), system_logger.info)
    emit(f"SYSTEM_EVENT: {event} - {details or {}}")


def log_file_operation(operation: str, file_path: str, rows_processed: int = 0, **kwargs) -> None:
    """Lectura/escritura de planillas."""
    if not _enabled():
        return
    payload = {
        "file_path": file_path,
        "rows_processed": rows_processed,
        "at": datetime.now().isoformat(timespec="seconds"),
        **kwargs,
    }
    system_logger.info(f"FILE_{operation.upper()}: {payload}")


def get_log_summary(log_type: str = "transactions", lines: int = 100) -> Optional[str]:
    """Últimas `lines` líneas del log del área, o None con el logging apagado."""
    if not _enabled():
        return None
    fname = LOG_FILES.get(log_type)
    path = LOGS_DIR / fname if fname else None
    if path is None or not path.exists():
        return f"Log {log_type} no encontrado."
    tail = path.read_text(encoding="utf-8").splitlines(keepends=True)[-lines:]
    return "".join(tail)
