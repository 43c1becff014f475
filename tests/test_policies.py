import pytest

from kazaro.domain.carrito import Carrito
from kazaro.domain.errors import InvalidOrderError
from kazaro.domain.models import ItemPedido
from kazaro.domain.policies import (
    estado_para_accion, excede_tope, filtrar_roles, normalizar_eta, tope_pedido, validar_items,
)


def test_validar_items_accepts_dicts_and_dataclasses():
    items = validar_items([
        {"product_id": 1, "qty": 2},
        {"productId": "7", "cantidad": "3"},
        ItemPedido(product_id=9, qty=1.0),
    ])
    assert items == [ItemPedido(1, 2), ItemPedido("7", 3), ItemPedido(9, 1)]


@pytest.mark.parametrize(
    "items",
    [
        None,
        [],
        [{"product_id": 1, "qty": 0}],
        [{"product_id": 1, "qty": -1}],
        [{"product_id": 1, "qty": 1.5}],
        [{"product_id": 1, "qty": True}],
        [{"product_id": 1, "qty": "dos"}],
        [{"product_id": None, "qty": 1}],
        [{"qty": 1}],
        ["1:2"],
    ],
)
def test_validar_items_rejects(items):
    with pytest.raises(InvalidOrderError):
        validar_items(items)


def test_tope_pedido():
    assert tope_pedido(10000, 5) == 500.0
    assert tope_pedido(None, 5) is None
    assert tope_pedido(0, 5) is None
    assert tope_pedido(1000, 0) is None
    assert excede_tope(501, 10000, 5)
    assert not excede_tope(500, 10000, 5)
    assert not excede_tope(10 ** 6, None, 5)


def test_estado_para_accion():
    assert estado_para_accion("prepare") == "preparing"
    assert estado_para_accion(" CLOSE ") == "closed"
    assert estado_para_accion("reopen") == "open"
    with pytest.raises(ValueError):
        estado_para_accion("cancel")


def test_filtrar_roles():
    assert filtrar_roles(["Admin", "admin", "invitado", "supervisor", None]) == ["admin", "supervisor"]
    assert filtrar_roles([]) == []


def test_normalizar_eta():
    assert normalizar_eta("2025-06-01") == "2025-06-01 00:00:00"
    assert normalizar_eta("2025-06-01T08:30:00") == "2025-06-01 08:30:00"
    assert normalizar_eta("  ") is None
    assert normalizar_eta(None) is None


def test_carrito():
    guantes = {"id": 1, "name": "Guantes", "price": 10.0, "code": "G-01"}
    alcohol = {"id": 4, "name": "Alcohol", "price": None}

    cart = Carrito()
    assert cart.is_empty()
    cart.add(guantes, 2)
    cart.add(guantes)
    cart.add(alcohol, 5)
    assert cart.lineas[1].qty == 3
    assert cart.total == 30.0

    cart.set_qty(4, 0)
    assert [l.product_id for l in cart.lines()] == [1]
    assert cart.to_items() == [ItemPedido(1, 3)]

    with pytest.raises(ValueError):
        cart.add(guantes, 0)
    with pytest.raises(KeyError):
        cart.set_qty(99, 1)

    cart.clear()
    assert cart.is_empty()
