import logging

import pytest

from kazaro.infra import logger as klog


@pytest.fixture
def logs_tmp(tmp_path, monkeypatch):
    monkeypatch.setattr(klog, "LOGS_DIR", tmp_path)
    monkeypatch.setattr(klog, "ENABLE_LOGGING", True)
    created = []
    for attr, fname in [
        ("pedidos_logger", "pedidos.log"),
        ("transaction_logger", "transactions.log"),
        ("system_logger", "system.log"),
    ]:
        lg = klog.setup_logger(f"kazaro.test.{attr}", str(tmp_path / fname))
        monkeypatch.setattr(klog, attr, lg)
        created.append(lg)
    yield tmp_path
    for lg in created:
        for h in list(lg.handlers):
            h.close()
            lg.removeHandler(h)


def test_disabled_logging_writes_nothing(tmp_path, monkeypatch):
    monkeypatch.setattr(klog, "ENABLE_LOGGING", False)
    monkeypatch.setattr(klog, "ENABLE_OUTPUT", False)
    klog.log_pedido("submit", pedido_id=1)
    assert klog.get_log_summary("pedidos") is None


def test_log_pedido_and_summary(logs_tmp):
    klog.log_pedido("submit", pedido_id=12, empleado_id=7, total=30.0)
    klog.log_transaction("registrar_pedido", {"items": 2}, error="sin stock")
    klog.log_system_event("monthly_report", {"start": "2025-03-01 00:00:00"}, level="warning")

    pedidos = klog.get_log_summary("pedidos", 10)
    assert "PEDIDO_SUBMIT" in pedidos
    assert "'pedido_id': 12" in pedidos

    tx = klog.get_log_summary("transactions", 10)
    assert "TRANSACTION_FAILED: registrar_pedido - sin stock" in tx

    system = klog.get_log_summary("system", 10)
    assert "WARNING" in system

    assert klog.get_log_summary("asignaciones") == "Log asignaciones no encontrado."


def test_setup_logger_replaces_handlers(tmp_path):
    lg = klog.setup_logger("kazaro.test.dup", str(tmp_path / "a.log"))
    lg = klog.setup_logger("kazaro.test.dup", str(tmp_path / "b.log"))
    assert len(lg.handlers) == 1
    assert lg.propagate is False
    assert lg.level == logging.INFO
    lg.handlers[0].close()
