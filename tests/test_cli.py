import json

import pytest
from typer.testing import CliRunner

from kazaro.adapters.cli import app

from conftest import count, stock_of

runner = CliRunner()


@pytest.fixture(autouse=True)
def _sin_mapeo(monkeypatch):
    monkeypatch.delenv("KAZARO_PRODUCTS_TABLE", raising=False)


def test_cli_migrate_on_empty_db(tmp_path):
    db = str(tmp_path / "vacia.db")
    result = runner.invoke(app, ["migrate", "--db", db])
    assert result.exit_code == 0, result.output
    assert "Migraciones aplicadas" in result.stdout
    # idempotente
    result = runner.invoke(app, ["migrate", "--db", db])
    assert result.exit_code == 0, result.output


def test_cli_schema_json(db_path):
    result = runner.invoke(app, ["schema", "--db", db_path, "--json"])
    assert result.exit_code == 0, result.output
    data = json.loads(result.stdout)
    assert data["ok"] is True
    assert data["tables"]["products"] == "Productos"
    assert data["cols"]["stock"] == "Stock"


def test_cli_pedido_crear_and_ver(db_path):
    result = runner.invoke(
        app,
        ["pedido", "crear", "--db", db_path, "--empleado", "7", "--rol", "supervisor",
         "--item", "1:2", "--item", "2:4", "--servicio", "3", "--json"],
    )
    assert result.exit_code == 0, result.output
    data = json.loads(result.stdout)
    assert data["total"] == 30.0
    assert stock_of(db_path, 1) == 8

    result = runner.invoke(app, ["pedido", "ver", str(data["pedido_id"]), "--db", db_path, "--json"])
    assert result.exit_code == 0, result.output
    full = json.loads(result.stdout)
    assert [i["productId"] for i in full["items"]] == [1, 2]


def test_cli_pedido_out_of_stock_exits_with_error(db_path):
    result = runner.invoke(
        app, ["pedido", "crear", "--db", db_path, "--empleado", "7", "--rol", "supervisor", "--item", "1:11"],
    )
    assert result.exit_code == 1
    assert count(db_path, "Pedidos") == 0
    assert stock_of(db_path, 1) == 10


def test_cli_pedido_over_budget_cap_is_rejected(db_path):
    result = runner.invoke(app, ["admin", "presupuesto", "set", "3", "100", "--db", db_path])
    assert result.exit_code == 0, result.output

    result = runner.invoke(app, ["admin", "presupuesto", "ver", "3", "--db", db_path, "--json"])
    assert result.exit_code == 0, result.output
    assert json.loads(result.stdout)["tope"] == 5.0

    result = runner.invoke(
        app,
        ["pedido", "crear", "--db", db_path, "--empleado", "7", "--rol", "supervisor",
         "--item", "1:1", "--servicio", "3"],
    )
    assert result.exit_code == 1
    assert count(db_path, "Pedidos") == 0
    assert stock_of(db_path, 1) == 10


def test_cli_assignment_conflict_exit_code(db_path):
    result = runner.invoke(app, ["admin", "asignar", "7", "3", "--db", db_path])
    assert result.exit_code == 0, result.output

    result = runner.invoke(app, ["admin", "asignar", "8", "3", "--db", db_path])
    assert result.exit_code == 2

    result = runner.invoke(app, ["admin", "reasignar", "8", "3", "--db", db_path])
    assert result.exit_code == 0, result.output

    result = runner.invoke(app, ["admin", "asignaciones", "--db", db_path, "--json"])
    rows = json.loads(result.stdout)
    assert [(r["empleadoId"], r["servicioId"]) for r in rows] == [(8, 3)]


def test_cli_servicios_json(db_path):
    result = runner.invoke(app, ["admin", "servicios", "--db", db_path, "--json"])
    assert result.exit_code == 0, result.output
    assert json.loads(result.stdout) == [
        {"id": 3, "name": "Guardia"},
        {"id": 4, "name": "Pediatría"},
        {"id": 5, "name": "Quirófano"},
    ]


def test_cli_rel_mensual_json(db_path):
    runner.invoke(
        app, ["pedido", "crear", "--db", db_path, "--empleado", "7", "--rol", "supervisor", "--item", "2:2"],
    )
    result = runner.invoke(app, ["rel", "mensual", "--db", db_path, "--json"])
    assert result.exit_code == 0, result.output
    data = json.loads(result.stdout)
    assert data["totals"]["ordersCount"] == 1
    assert data["totals"]["amount"] == 5.0
    assert data["top_products"][0]["productId"] == 2


def test_cli_deposito_ingresos(db_path):
    result = runner.invoke(app, ["deposito", "ingresos", "crear", "3", "6", "2025-07-01", "--db", db_path])
    assert result.exit_code == 0, result.output

    result = runner.invoke(app, ["deposito", "ingresos", "listar", "--db", db_path, "--json"])
    inc = json.loads(result.stdout)[0]
    assert inc["eta"] == "2025-07-01 00:00:00"

    result = runner.invoke(app, ["deposito", "ingresos", "confirmar", str(inc["id"]), "--db", db_path])
    assert result.exit_code == 0, result.output
    assert stock_of(db_path, 3) == 6
