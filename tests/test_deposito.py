import pytest

from kazaro.domain.errors import InvalidIncomingError, InvalidOrderError, OrderNotFoundError
from kazaro.infra.db import connect
from kazaro.usecases.deposito import (
    confirm_incoming, create_incoming, delete_incoming, delete_order, get_full_order,
    list_incoming, list_orders, low_stock, set_order_status, set_order_total,
)
from kazaro.usecases.registrar_pedido import submit_order

from conftest import count, stock_of


def _pedido(db_path, schema, employee_id=7, service_id=3):
    return submit_order(
        schema, employee_id, "supervisor", [{"product_id": 2, "qty": 2}],
        service_id=service_id, db_path=db_path,
    )["pedido_id"]


def test_status_workflow(db_path, schema):
    pid = _pedido(db_path, schema)
    open_orders = list_orders("open", db_path=db_path)
    assert [o["id"] for o in open_orders] == [pid]
    assert open_orders[0]["empleadoNombre"] == "Ana Pérez"
    assert open_orders[0]["displayId"] == str(pid).zfill(7)

    assert set_order_status(pid, "prepare", db_path=db_path) == "preparing"
    assert list_orders("open", db_path=db_path) == []
    assert [o["id"] for o in list_orders("preparing", db_path=db_path)] == [pid]

    assert set_order_status(pid, "close", db_path=db_path) == "closed"
    with connect(db_path) as c:
        closed_at = c.execute("SELECT ClosedAt FROM Pedidos WHERE PedidoID = ?", (pid,)).fetchone()[0]
    assert closed_at is not None

    assert set_order_status(pid, "reopen", db_path=db_path) == "open"
    with connect(db_path) as c:
        closed_at = c.execute("SELECT ClosedAt FROM Pedidos WHERE PedidoID = ?", (pid,)).fetchone()[0]
    assert closed_at is None


def test_status_errors(db_path):
    with pytest.raises(OrderNotFoundError):
        set_order_status(12345, "close", db_path=db_path)
    with pytest.raises(InvalidOrderError):
        set_order_status(1, "archivar", db_path=db_path)
    with pytest.raises(InvalidOrderError):
        list_orders("perdido", db_path=db_path)


def test_low_stock_sorted_ascending(db_path, schema):
    rows = low_stock(schema, 10, db_path=db_path)
    # stock NULL (sin control) no aparece
    assert [(r["id"], r["stock"]) for r in rows] == [(3, 0), (1, 10)]
    assert [r["id"] for r in low_stock(schema, db_path=db_path)] == [3]


def test_incoming_confirm_increments_and_deletes(db_path, schema):
    inc_id = create_incoming(3, 12, "2025-06-01", db_path=db_path)
    other = create_incoming(3, 4, "2025-05-20T10:00:00", db_path=db_path)

    rows = list_incoming(3, db_path=db_path)
    assert [r["id"] for r in rows] == [other, inc_id]
    assert rows[1]["eta"] == "2025-06-01 00:00:00"
    assert rows[0]["eta"] == "2025-05-20 10:00:00"

    res = confirm_incoming(schema, inc_id, db_path=db_path)
    assert res["stock"] == 12
    assert stock_of(db_path, 3) == 12
    assert [r["id"] for r in list_incoming(3, db_path=db_path)] == [other]

    with pytest.raises(InvalidIncomingError):
        confirm_incoming(schema, inc_id, db_path=db_path)
    assert stock_of(db_path, 3) == 12

    assert delete_incoming(other, db_path=db_path) is True
    assert delete_incoming(other, db_path=db_path) is False


@pytest.mark.parametrize("qty,eta", [(0, "2025-01-01"), (-2, "2025-01-01"), (2.5, "2025-01-01"), (3, ""), (3, None)])
def test_incoming_validation(db_path, qty, eta):
    with pytest.raises(InvalidIncomingError):
        create_incoming(1, qty, eta, db_path=db_path)


def test_order_maintenance(db_path, schema):
    pid = _pedido(db_path, schema, service_id=4)
    full = get_full_order(pid, db_path=db_path)
    assert full["cab"]["ServicioNombre"] == "Pediatría"
    assert full["items"][0]["nombre"] == "Jeringa 5ml"
    assert full["items"][0]["codigo"] == "J-05"

    set_order_total(pid, 99.5, db_path=db_path)
    assert get_full_order(pid, db_path=db_path)["cab"]["Total"] == 99.5

    delete_order(pid, db_path=db_path)
    assert count(db_path, "Pedidos") == 0
    assert count(db_path, "PedidoItems") == 0
    with pytest.raises(OrderNotFoundError):
        get_full_order(pid, db_path=db_path)
    with pytest.raises(OrderNotFoundError):
        delete_order(pid, db_path=db_path)


@pytest.mark.parametrize("total", [float("nan"), float("inf"), -1, "mucho", None])
def test_set_order_total_rejects_invalid(db_path, schema, total):
    pid = _pedido(db_path, schema)
    with pytest.raises(InvalidOrderError):
        set_order_total(pid, total, db_path=db_path)
    assert get_full_order(pid, db_path=db_path)["cab"]["Total"] == 5.0
