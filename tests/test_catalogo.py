import pytest

from kazaro.domain.errors import InvalidProductError, ProductNotFoundError
from kazaro.usecases.catalogo import (
    adjust_stock, create_product, delete_product, get_product, get_product_roles,
    get_service_products, list_categories, list_products, set_product_roles,
    set_service_products, update_product,
)

from conftest import stock_of


def _ids(rows):
    return sorted(r["id"] for r in rows)


def test_list_categories_from_category_table(db_path, schema):
    cats = list_categories(schema, db_path=db_path)
    assert cats == [
        {"id": 1, "name": "Descartables", "count": 2},
        {"id": 2, "name": "Inyectables", "count": 2},
    ]


def test_list_products_by_category_and_search(db_path, schema):
    assert _ids(list_products(schema, db_path=db_path)) == [1, 2, 3, 4]
    assert _ids(list_products(schema, category_id=1, db_path=db_path)) == [1, 3]
    assert _ids(list_products(schema, q="jeringa", db_path=db_path)) == [2]
    # también busca por código
    assert _ids(list_products(schema, q="B-01", db_path=db_path)) == [3]

    row = list_products(schema, q="Guantes", db_path=db_path)[0]
    assert row == {
        "id": 1, "name": "Guantes de látex", "categoryId": 1,
        "code": "G-01", "price": 10.0, "stock": 10,
    }


def test_service_catalog_restricts_products(db_path, schema):
    # sin catálogo propio: ve todo
    assert _ids(list_products(schema, service_id=3, db_path=db_path)) == [1, 2, 3, 4]

    diff = set_service_products(3, [1, 2], db_path=db_path)
    assert diff == {"added": 2, "removed": 0}
    assert _ids(list_products(schema, service_id=3, db_path=db_path)) == [1, 2]
    # otro servicio sin filas sigue viendo todo
    assert _ids(list_products(schema, service_id=4, db_path=db_path)) == [1, 2, 3, 4]

    diff = set_service_products(3, [2, 4], db_path=db_path)
    assert diff == {"added": 1, "removed": 1}
    assert get_service_products(3, db_path=db_path) == [2, 4]


def test_role_visibility_filters_only_restricted_products(db_path, schema):
    set_product_roles(2, ["admin", "Supervisor", "invitado"], db_path=db_path)
    assert get_product_roles(2, db_path=db_path) == ["admin", "supervisor"]

    assert _ids(list_products(schema, role="administrativo", db_path=db_path)) == [1, 3, 4]
    assert _ids(list_products(schema, role="supervisor", db_path=db_path)) == [1, 2, 3, 4]
    # sin rol no se filtra
    assert _ids(list_products(schema, db_path=db_path)) == [1, 2, 3, 4]

    with pytest.raises(InvalidProductError):
        set_product_roles(2, ["invitado"], db_path=db_path)


def test_create_update_delete_product(db_path, schema):
    new_id = create_product(
        schema, {"name": "  Gasa estéril ", "price": 3.0, "stock": 20, "code": "G-02", "category": 1},
        db_path=db_path,
    )
    prod = get_product(schema, new_id, db_path=db_path)
    assert prod["name"] == "Gasa estéril"
    assert prod["stock"] == 20

    update_product(schema, new_id, {"price": 3.5, "name": None}, db_path=db_path)
    prod = get_product(schema, new_id, db_path=db_path)
    assert prod["price"] == 3.5
    assert prod["name"] == "Gasa estéril"

    with pytest.raises(InvalidProductError):
        update_product(schema, new_id, {}, db_path=db_path)

    delete_product(schema, new_id, db_path=db_path)
    with pytest.raises(ProductNotFoundError):
        get_product(schema, new_id, db_path=db_path)
    with pytest.raises(ProductNotFoundError):
        delete_product(schema, new_id, db_path=db_path)


def test_create_requires_name(db_path, schema):
    with pytest.raises(InvalidProductError):
        create_product(schema, {"name": "   ", "price": 1}, db_path=db_path)


def test_adjust_stock(db_path, schema):
    assert adjust_stock(schema, 1, 5, db_path=db_path) == 15
    assert adjust_stock(schema, 1, -15, db_path=db_path) == 0
    # stock NULL se toma como 0
    assert adjust_stock(schema, 4, 3, db_path=db_path) == 3

    with pytest.raises(InvalidProductError):
        adjust_stock(schema, 1, -1, db_path=db_path)
    assert stock_of(db_path, 1) == 0

    with pytest.raises(ProductNotFoundError):
        adjust_stock(schema, 999, 1, db_path=db_path)
