import pytest

from kazaro.infra.db import connect
from kazaro.usecases.presupuestos import set_budget
from kazaro.usecases.registrar_pedido import submit_order
from kazaro.usecases.relatorios import month_range, monthly_report, service_report


def _pedido_en(db_path, schema, fecha, service_id, items):
    res = submit_order(schema, 7, "supervisor", items, service_id=service_id, db_path=db_path)
    with connect(db_path) as c:
        c.execute("UPDATE Pedidos SET Fecha = ? WHERE PedidoID = ?", (fecha, res["pedido_id"]))
    return res


@pytest.fixture
def marzo(db_path, schema):
    _pedido_en(db_path, schema, "2025-03-01 00:00:00", 3, [{"product_id": 1, "qty": 2}])   # 20
    _pedido_en(db_path, schema, "2025-03-15 12:30:00", 3, [{"product_id": 2, "qty": 4}])   # 10
    _pedido_en(db_path, schema, "2025-03-15 18:00:00", 4, [{"product_id": 2, "qty": 2}])   # 5
    _pedido_en(db_path, schema, "2025-03-31 23:59:59", None, [{"product_id": 1, "qty": 1}])  # 10
    # fuera del rango [2025-03-01, 2025-04-01)
    _pedido_en(db_path, schema, "2025-04-01 00:00:00", 3, [{"product_id": 1, "qty": 1}])
    _pedido_en(db_path, schema, "2025-02-28 23:59:59", 3, [{"product_id": 1, "qty": 1}])
    return db_path


def test_month_range_is_half_open():
    assert month_range(2025, 3) == {
        "year": 2025, "month": 3,
        "start": "2025-03-01 00:00:00", "end": "2025-04-01 00:00:00",
    }
    assert month_range(2024, 12)["end"] == "2025-01-01 00:00:00"
    with pytest.raises(ValueError):
        month_range(2025, 13)


def test_monthly_report(marzo):
    rep = monthly_report(2025, 3, db_path=marzo)
    assert rep["totals"] == {"ordersCount": 4, "itemsCount": 9, "amount": 45.0}

    services = {s["serviceId"]: s for s in rep["top_services"]}
    assert services[3]["amount"] == 30.0
    assert services[3]["pedidos"] == 2
    assert services[3]["serviceName"] == "Guardia"
    assert services[None]["serviceName"] == "—"
    assert rep["top_services"][0]["serviceId"] == 3

    top = rep["top_products"][0]
    assert (top["productId"], top["code"], top["qty"], top["amount"]) == (1, "G-01", 3, 30.0)

    assert rep["by_day"] == [
        {"day": "2025-03-01", "pedidos": 1, "monto": 20.0},
        {"day": "2025-03-15", "pedidos": 2, "monto": 15.0},
        {"day": "2025-03-31", "pedidos": 1, "monto": 10.0},
    ]


def test_service_report_with_budget(marzo):
    set_budget(3, 300, db_path=marzo)
    rep = service_report(3, 2025, 3, db_path=marzo)
    assert rep["service"]["name"] == "Guardia"
    assert rep["service"]["budget"] == 300.0
    assert rep["service"]["utilization"] == pytest.approx(30.0 / 300.0)
    assert rep["totals"]["ordersCount"] == 2
    assert [o["total"] for o in rep["orders"]] == [10.0, 20.0]


def test_service_report_without_budget_and_explicit_dates(marzo):
    rep = service_report(3, start="2025-02-28", end="2025-03-01", db_path=marzo)
    assert rep["period"]["start"] == "2025-02-28 00:00:00"
    assert rep["period"]["end"] == "2025-03-01 23:59:59"
    assert rep["service"]["utilization"] is None
    assert rep["totals"]["ordersCount"] == 2


def test_reports_do_not_touch_the_schema(marzo):
    def _schema_rows():
        with connect(marzo) as c:
            objs = c.execute("SELECT type, name, sql FROM sqlite_master ORDER BY type, name").fetchall()
            # schema_version sube con cualquier DROP/CREATE, aunque el SQL quede igual
            version = c.execute("PRAGMA schema_version").fetchone()[0]
        return [tuple(r) for r in objs], version

    before = _schema_rows()
    monthly_report(2025, 3, db_path=marzo)
    service_report(3, 2025, 3, db_path=marzo)
    assert _schema_rows() == before
