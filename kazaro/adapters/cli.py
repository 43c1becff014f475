# kazaro/adapters/cli.py
"""
CLI de Kazaro (Typer).

Comandos principales:
- migrate                          -> aplica migraciones y crea views
- schema                           -> muestra el esquema del catálogo detectado
- catalogo categorias|productos    -> consulta del catálogo
- catalogo exportar|importar       -> catálogo en XLSX
- pedido crear|ver                 -> registrar y consultar pedidos
- admin ...                        -> productos, asignaciones, pivots, presupuestos
- deposito ...                     -> estados, stock bajo, ingresos, mantenimiento
- rel mensual|servicio             -> informes
- logs                             -> últimas líneas de un log
"""

from __future__ import annotations

import json
from functools import wraps
from typing import Any, Dict, List, Optional

import typer
from rich.console import Console
from rich.table import Table
from rich.panel import Panel
from rich import box

from kazaro.config import DB_PATH, DEFAULTS
from kazaro.domain.carrito import Carrito
from kazaro.domain.errors import InvalidOrderError, KazaroError
from kazaro.domain.policies import validar_items
from kazaro.infra.db import connect
from kazaro.infra.directorio import list_services
from kazaro.infra.logger import get_log_summary
from kazaro.infra.migrations import apply_migrations
from kazaro.infra.views import create_views
from kazaro.infra.schema_discovery import discover_schema, resolve_catalog_schema
from kazaro.adapters.catalog_xlsx import (
    export_products_xlsx, import_products, load_products_from_xlsx
)
from kazaro.usecases import asignaciones as uc_asig
from kazaro.usecases import catalogo as uc_cat
from kazaro.usecases import deposito as uc_dep
from kazaro.usecases import presupuestos as uc_pres
from kazaro.usecases.registrar_pedido import submit_order
from kazaro.usecases.relatorios import monthly_report, service_report


app = typer.Typer(help="Kazaro — pedidos de insumos médicos")
console = Console()

DB_OPT = typer.Option(DB_PATH, "--db", help="Ruta del SQLite")
JSON_OPT = typer.Option(False, "--json", help="Salida JSON")


# -----------------------
# util
# -----------------------

def _print_json(obj) -> None:
    typer.echo(json.dumps(obj, ensure_ascii=False, indent=2, default=str))


def _fmt(val: Any) -> str:
    if val is None:
        return "-"
    if isinstance(val, float):
        return f"{val:,.2f}".replace(",", "X").replace(".", ",").replace("X", ".")
    return str(val)


def _display_table(data: Any, title: str = "Resultado") -> None:
    """Muestra listas de dicts como tabla Rich; dicts como Campo/Valor."""
    if not data:
        console.print(Panel("Sin datos", title=title, border_style="yellow"))
        return

    if isinstance(data, list) and isinstance(data[0], dict):
        table = Table(title=title, box=box.ROUNDED)
        columns = list(data[0].keys())
        for column in columns:
            if column.lower() in ("price", "precio", "stock", "qty", "total", "amount", "monto", "subtotal", "cantidad"):
                table.add_column(column, justify="right")
            else:
                table.add_column(column)
        for row in data:
            table.add_row(*[_fmt(row.get(c)) for c in columns])
        console.print(table)
        return

    if isinstance(data, dict):
        table = Table(title=title, box=box.ROUNDED)
        table.add_column("Campo")
        table.add_column("Valor")
        for k, v in data.items():
            table.add_row(str(k), _fmt(v) if not isinstance(v, (dict, list)) else json.dumps(v, ensure_ascii=False, default=str))
        console.print(table)
        return

    _print_json(data)


def _show(data: Any, title: str, as_json: bool) -> None:
    if as_json:
        _print_json(data)
    else:
        _display_table(data, title=title)


def _handle_errors(fn):
    """Traduce errores de dominio a panel rojo + código de salida (2 en conflictos)."""
    @wraps(fn)
    def wrapper(*args, **kwargs):
        try:
            return fn(*args, **kwargs)
        except KazaroError as e:
            console.print(Panel(e.message, title=e.code, border_style="red"))
            extra = e.to_dict()
            if len(extra) > 2:
                console.print_json(json.dumps(extra, ensure_ascii=False, default=str))
            raise typer.Exit(code=2 if e.status == 409 else 1)
    return wrapper


def _prepare_db(db_path: str) -> None:
    apply_migrations(db_path)
    create_views(db_path)


def _schema(db_path: str):
    apply_migrations(db_path)
    return resolve_catalog_schema(db_path)


def _parse_item(raw: str) -> Dict[str, Any]:
    """'ID:QTY' -> {"product_id", "qty"} (QTY por defecto 1)."""
    pid, _, qty = raw.partition(":")
    pid = pid.strip()
    if not pid:
        raise InvalidOrderError(f"Ítem inválido: {raw!r}")
    product_id: Any = int(pid) if pid.lstrip("-").isdigit() else pid
    return {"product_id": product_id, "qty": qty.strip() if qty else 1}


# -----------------------
# infra
# -----------------------

@app.command("migrate")
def cmd_migrate(db_path: str = DB_OPT):
    """Aplica migraciones y recrea las views auxiliares."""
    _prepare_db(db_path)
    typer.echo(f">> Migraciones aplicadas y views creadas en: {db_path}")


@app.command("schema")
def cmd_schema(db_path: str = DB_OPT, as_json: bool = JSON_OPT):
    """Muestra tabla/columnas detectadas del catálogo."""
    res = discover_schema(db_path)
    if as_json:
        _print_json(res)
        return
    if not res.get("ok"):
        console.print(Panel(res.get("reason", ""), title="Esquema no detectado", border_style="red"))
        raise typer.Exit(code=1)
    _display_table({**res["tables"], **res["cols"]}, title="Esquema del catálogo")


@app.command("logs")
def cmd_logs(
    tipo: str = typer.Argument("transactions", help="transactions | pedidos | asignaciones | database | system"),
    lineas: int = typer.Option(50, help="Cantidad de líneas"),
):
    """Últimas líneas de un log (requiere ENABLE_LOGGING)."""
    out = get_log_summary(tipo, lineas)
    typer.echo(out if out is not None else "Logging deshabilitado.")


# -----------------------
# catálogo
# -----------------------

cat_app = typer.Typer(help="Catálogo de productos")
app.add_typer(cat_app, name="catalogo")


@cat_app.command("categorias")
@_handle_errors
def cmd_categorias(db_path: str = DB_OPT, as_json: bool = JSON_OPT):
    """Lista categorías con cantidad de productos."""
    _show(uc_cat.list_categories(_schema(db_path), db_path=db_path), "Categorías", as_json)


@cat_app.command("productos")
@_handle_errors
def cmd_productos(
    categoria: str = typer.Option("__all__", help="Id de categoría"),
    q: str = typer.Option("", help="Texto a buscar en nombre/código"),
    servicio: Optional[int] = typer.Option(None, help="Restringe al catálogo del servicio"),
    rol: Optional[str] = typer.Option(None, help="administrativo | supervisor | admin"),
    db_path: str = DB_OPT,
    as_json: bool = JSON_OPT,
):
    """Lista productos visibles."""
    rows = uc_cat.list_products(
        _schema(db_path), category_id=categoria, q=q, service_id=servicio, role=rol, db_path=db_path
    )
    _show(rows, "Productos", as_json)


@cat_app.command("exportar")
@_handle_errors
def cmd_exportar(path: str = typer.Argument(..., help="XLSX de destino"), db_path: str = DB_OPT):
    """Exporta el catálogo a XLSX."""
    n = export_products_xlsx(_schema(db_path), path, db_path=db_path)
    typer.echo(f">> {n} productos exportados a {path}")


@cat_app.command("importar")
@_handle_errors
def cmd_importar(path: str = typer.Argument(..., help="XLSX de productos"), db_path: str = DB_OPT):
    """Importa productos desde XLSX (actualiza por id o inserta)."""
    rows = load_products_from_xlsx(path)
    res = import_products(_schema(db_path), rows, db_path=db_path)
    _display_table(res, title="Importación de productos")


# -----------------------
# pedidos
# -----------------------

pedido_app = typer.Typer(help="Pedidos")
app.add_typer(pedido_app, name="pedido")


@pedido_app.command("crear")
@_handle_errors
def cmd_pedido_crear(
    empleado: int = typer.Option(..., help="Id del empleado"),
    rol: str = typer.Option(..., help="Rol con el que pide"),
    item: List[str] = typer.Option(..., "--item", help="PRODUCTO_ID:CANTIDAD (repetible)"),
    nota: str = typer.Option("", help="Nota del pedido"),
    servicio: Optional[int] = typer.Option(None, help="Servicio que imputa el pedido"),
    db_path: str = DB_OPT,
    as_json: bool = JSON_OPT,
):
    """Arma el carrito, chequea el tope del servicio y registra el pedido."""
    schema = _schema(db_path)
    lineas = validar_items([_parse_item(i) for i in item])

    carrito = Carrito()
    for l in lineas:
        carrito.add(uc_cat.get_product(schema, l.product_id, db_path=db_path), l.qty)

    if servicio is not None:
        budget = uc_pres.get_budget(servicio, db_path=db_path)
        if budget and uc_pres.exceeds_cap(carrito.total, budget["presupuesto"], budget["maxPct"]):
            cap = uc_pres.order_cap(budget["presupuesto"], budget["maxPct"])
            raise InvalidOrderError(
                f"El pedido ({_fmt(carrito.total)}) supera el tope del servicio ({_fmt(cap)})"
            )

    res = submit_order(
        schema, employee_id=empleado, role=rol, items=carrito.to_items(),
        note=nota, service_id=servicio, db_path=db_path,
    )
    _show(res, "Pedido registrado", as_json)


@pedido_app.command("ver")
@_handle_errors
def cmd_pedido_ver(pedido_id: int = typer.Argument(...), db_path: str = DB_OPT, as_json: bool = JSON_OPT):
    """Cabecera e ítems de un pedido."""
    apply_migrations(db_path)
    full = uc_dep.get_full_order(pedido_id, db_path=db_path)
    if as_json:
        _print_json(full)
        return
    _display_table(full["cab"], title=f"Pedido {str(pedido_id).zfill(7)}")
    _display_table(full["items"], title="Ítems")


# -----------------------
# admin
# -----------------------

admin_app = typer.Typer(help="Administración")
app.add_typer(admin_app, name="admin")

producto_app = typer.Typer(help="Productos")
admin_app.add_typer(producto_app, name="producto")


@producto_app.command("ver")
@_handle_errors
def cmd_producto_ver(product_id: int = typer.Argument(...), db_path: str = DB_OPT, as_json: bool = JSON_OPT):
    _show(uc_cat.get_product(_schema(db_path), product_id, db_path=db_path), "Producto", as_json)


@producto_app.command("crear")
@_handle_errors
def cmd_producto_crear(
    nombre: str = typer.Option(..., help="Nombre"),
    precio: Optional[float] = typer.Option(None),
    stock: Optional[int] = typer.Option(None),
    codigo: Optional[str] = typer.Option(None),
    categoria: Optional[int] = typer.Option(None),
    db_path: str = DB_OPT,
):
    """Alta de producto."""
    new_id = uc_cat.create_product(
        _schema(db_path),
        {"name": nombre, "price": precio, "stock": stock, "code": codigo, "category": categoria},
        db_path=db_path,
    )
    typer.echo(f">> Producto creado: {new_id}")


@producto_app.command("editar")
@_handle_errors
def cmd_producto_editar(
    product_id: int = typer.Argument(...),
    nombre: Optional[str] = typer.Option(None),
    precio: Optional[float] = typer.Option(None),
    stock: Optional[int] = typer.Option(None),
    codigo: Optional[str] = typer.Option(None),
    categoria: Optional[int] = typer.Option(None),
    db_path: str = DB_OPT,
):
    """Modifica sólo los campos informados."""
    uc_cat.update_product(
        _schema(db_path), product_id,
        {"name": nombre, "price": precio, "stock": stock, "code": codigo, "category": categoria},
        db_path=db_path,
    )
    typer.echo(f">> Producto {product_id} actualizado.")


@producto_app.command("borrar")
@_handle_errors
def cmd_producto_borrar(product_id: int = typer.Argument(...), db_path: str = DB_OPT):
    uc_cat.delete_product(_schema(db_path), product_id, db_path=db_path)
    typer.echo(f">> Producto {product_id} eliminado.")


@producto_app.command("stock")
@_handle_errors
def cmd_producto_stock(
    product_id: int = typer.Argument(...),
    delta: int = typer.Argument(..., help="Ajuste con signo (ej.: 10 o -3)"),
    db_path: str = DB_OPT,
):
    """Ajusta el stock sumando DELTA."""
    stock = uc_cat.adjust_stock(_schema(db_path), product_id, delta, db_path=db_path)
    typer.echo(f">> Stock de {product_id}: {stock}")


@admin_app.command("asignar")
@_handle_errors
def cmd_asignar(
    empleado: int = typer.Argument(...),
    servicios: List[int] = typer.Argument(..., help="Uno o más ids de servicio"),
    db_path: str = DB_OPT,
):
    """Asigna servicios a un supervisor (conflicto si ya tienen otro)."""
    apply_migrations(db_path)
    if len(servicios) == 1:
        res = uc_asig.assign(empleado, servicios[0], db_path=db_path)
    else:
        res = uc_asig.assign_many(empleado, servicios, db_path=db_path)
    _display_table(res, title="Asignación")


@admin_app.command("reasignar")
@_handle_errors
def cmd_reasignar(
    empleado: int = typer.Argument(...),
    servicio: int = typer.Argument(...),
    db_path: str = DB_OPT,
):
    """Mueve el servicio al supervisor indicado."""
    apply_migrations(db_path)
    _display_table(uc_asig.reassign(empleado, servicio, db_path=db_path), title="Reasignación")


@admin_app.command("reasignar-lote")
@_handle_errors
def cmd_reasignar_lote(
    desde: int = typer.Argument(..., help="Supervisor de origen"),
    hasta: int = typer.Argument(..., help="Supervisor de destino"),
    servicios: List[int] = typer.Argument(...),
    db_path: str = DB_OPT,
):
    """Pasa varios servicios de un supervisor a otro."""
    apply_migrations(db_path)
    _display_table(uc_asig.reassign_bulk(desde, hasta, servicios, db_path=db_path), title="Reasignación")


@admin_app.command("desasignar")
@_handle_errors
def cmd_desasignar(
    id: Optional[int] = typer.Option(None, "--id", help="Id de la fila de asignación"),
    empleado: Optional[int] = typer.Option(None),
    servicio: Optional[int] = typer.Option(None),
    db_path: str = DB_OPT,
):
    apply_migrations(db_path)
    removed = uc_asig.unassign(id=id, employee_id=empleado, service_id=servicio, db_path=db_path)
    typer.echo(">> Asignación eliminada." if removed else ">> No había asignación.")


@admin_app.command("servicios")
def cmd_servicios(db_path: str = DB_OPT, as_json: bool = JSON_OPT):
    """Servicios de la tabla maestra."""
    with connect(db_path) as c:
        rows = list_services(c)
    _show(rows, "Servicios", as_json)


@admin_app.command("asignaciones")
@_handle_errors
def cmd_asignaciones(
    empleado: Optional[int] = typer.Option(None),
    db_path: str = DB_OPT,
    as_json: bool = JSON_OPT,
):
    apply_migrations(db_path)
    _show(uc_asig.list_assignments(empleado, db_path=db_path), "Asignaciones", as_json)


sp_app = typer.Typer(help="Catálogo por servicio")
admin_app.add_typer(sp_app, name="sp")


@sp_app.command("ver")
@_handle_errors
def cmd_sp_ver(servicio: int = typer.Argument(...), db_path: str = DB_OPT, as_json: bool = JSON_OPT):
    apply_migrations(db_path)
    ids = uc_cat.get_service_products(servicio, db_path=db_path)
    _show(ids if as_json else [{"productId": i} for i in ids], f"Productos del servicio {servicio}", as_json)


@sp_app.command("set")
@_handle_errors
def cmd_sp_set(
    servicio: int = typer.Argument(...),
    productos: List[int] = typer.Argument(...),
    db_path: str = DB_OPT,
):
    """Deja exactamente esos productos en el catálogo del servicio."""
    apply_migrations(db_path)
    _display_table(uc_cat.set_service_products(servicio, productos, db_path=db_path), title="Catálogo del servicio")


roles_app = typer.Typer(help="Visibilidad de productos por rol")
admin_app.add_typer(roles_app, name="roles")


@roles_app.command("ver")
@_handle_errors
def cmd_roles_ver(product_id: int = typer.Argument(...), db_path: str = DB_OPT):
    apply_migrations(db_path)
    roles = uc_cat.get_product_roles(product_id, db_path=db_path)
    typer.echo(", ".join(roles) if roles else "(visible para todos)")


@roles_app.command("set")
@_handle_errors
def cmd_roles_set(
    product_id: int = typer.Argument(...),
    roles: List[str] = typer.Argument(..., help="administrativo | supervisor | admin"),
    db_path: str = DB_OPT,
):
    apply_migrations(db_path)
    clean = uc_cat.set_product_roles(product_id, roles, db_path=db_path)
    typer.echo(f">> Roles de {product_id}: {', '.join(clean)}")


pres_app = typer.Typer(help="Presupuestos por servicio")
admin_app.add_typer(pres_app, name="presupuesto")


@pres_app.command("ver")
@_handle_errors
def cmd_presupuesto_ver(
    servicio: Optional[int] = typer.Argument(None),
    db_path: str = DB_OPT,
    as_json: bool = JSON_OPT,
):
    apply_migrations(db_path)
    if servicio is None:
        _show(uc_pres.list_budgets(db_path=db_path), "Presupuestos", as_json)
        return
    row = uc_pres.get_budget(servicio, db_path=db_path)
    if row:
        row = {**row, "tope": uc_pres.order_cap(row["presupuesto"], row["maxPct"])}
    _show(row, f"Presupuesto del servicio {servicio}", as_json)


@pres_app.command("set")
@_handle_errors
def cmd_presupuesto_set(
    servicio: int = typer.Argument(...),
    monto: float = typer.Argument(...),
    max_pct: float = typer.Option(DEFAULTS.max_pct_pedido, "--max-pct", help="% máximo por pedido"),
    db_path: str = DB_OPT,
):
    apply_migrations(db_path)
    _display_table(uc_pres.set_budget(servicio, monto, max_pct, db_path=db_path), title="Presupuesto")


# -----------------------
# depósito
# -----------------------

dep_app = typer.Typer(help="Depósito")
app.add_typer(dep_app, name="deposito")


@dep_app.command("pedidos")
@_handle_errors
def cmd_dep_pedidos(
    estado: str = typer.Option("open", help="open | preparing | closed"),
    db_path: str = DB_OPT,
    as_json: bool = JSON_OPT,
):
    apply_migrations(db_path)
    _show(uc_dep.list_orders(estado, db_path=db_path), f"Pedidos ({estado})", as_json)


@dep_app.command("estado")
@_handle_errors
def cmd_dep_estado(
    pedido_id: int = typer.Argument(...),
    accion: str = typer.Argument(..., help="prepare | close | reopen"),
    db_path: str = DB_OPT,
):
    apply_migrations(db_path)
    estado = uc_dep.set_order_status(pedido_id, accion, db_path=db_path)
    typer.echo(f">> Pedido {pedido_id}: {estado}")


@dep_app.command("bajo-stock")
@_handle_errors
def cmd_dep_bajo_stock(
    umbral: int = typer.Option(DEFAULTS.low_stock_threshold, help="Stock máximo a listar"),
    db_path: str = DB_OPT,
    as_json: bool = JSON_OPT,
):
    _show(uc_dep.low_stock(_schema(db_path), umbral, db_path=db_path), f"Stock <= {umbral}", as_json)


@dep_app.command("borrar")
@_handle_errors
def cmd_dep_borrar(pedido_id: int = typer.Argument(...), db_path: str = DB_OPT):
    """Elimina un pedido y sus ítems."""
    apply_migrations(db_path)
    uc_dep.delete_order(pedido_id, db_path=db_path)
    typer.echo(f">> Pedido {pedido_id} eliminado.")


@dep_app.command("total")
@_handle_errors
def cmd_dep_total(pedido_id: int = typer.Argument(...), total: float = typer.Argument(...), db_path: str = DB_OPT):
    """Corrige el total de un pedido."""
    apply_migrations(db_path)
    uc_dep.set_order_total(pedido_id, total, db_path=db_path)
    typer.echo(f">> Total del pedido {pedido_id}: {_fmt(float(total))}")


ing_app = typer.Typer(help="Ingresos futuros de stock")
dep_app.add_typer(ing_app, name="ingresos")


@ing_app.command("listar")
@_handle_errors
def cmd_ing_listar(
    producto: Optional[int] = typer.Option(None),
    db_path: str = DB_OPT,
    as_json: bool = JSON_OPT,
):
    apply_migrations(db_path)
    _show(uc_dep.list_incoming(producto, db_path=db_path), "Ingresos", as_json)


@ing_app.command("crear")
@_handle_errors
def cmd_ing_crear(
    producto: int = typer.Argument(...),
    cantidad: int = typer.Argument(...),
    eta: str = typer.Argument(..., help="YYYY-MM-DD [HH:MM:SS]"),
    db_path: str = DB_OPT,
):
    apply_migrations(db_path)
    new_id = uc_dep.create_incoming(producto, cantidad, eta, db_path=db_path)
    typer.echo(f">> Ingreso registrado: {new_id}")


@ing_app.command("borrar")
@_handle_errors
def cmd_ing_borrar(incoming_id: int = typer.Argument(...), db_path: str = DB_OPT):
    apply_migrations(db_path)
    ok = uc_dep.delete_incoming(incoming_id, db_path=db_path)
    typer.echo(">> Ingreso eliminado." if ok else ">> Ingreso inexistente.")


@ing_app.command("confirmar")
@_handle_errors
def cmd_ing_confirmar(incoming_id: int = typer.Argument(...), db_path: str = DB_OPT):
    """Suma el ingreso al stock y lo elimina."""
    res = uc_dep.confirm_incoming(_schema(db_path), incoming_id, db_path=db_path)
    typer.echo(f">> Stock de {res['productId']}: {res['stock']}")


# -----------------------
# informes
# -----------------------

rel_app = typer.Typer(help="Informes de pedidos")
app.add_typer(rel_app, name="rel")


@rel_app.command("mensual")
@_handle_errors
def rel_mensual(
    anio: Optional[int] = typer.Option(None, "--anio", help="Año (por defecto el actual)"),
    mes: Optional[int] = typer.Option(None, "--mes", help="Mes 1-12 (por defecto el actual)"),
    db_path: str = DB_OPT,
    as_json: bool = JSON_OPT,
):
    """Totales, top servicios, top productos y serie diaria del mes."""
    _prepare_db(db_path)
    res = monthly_report(anio, mes, db_path=db_path)
    if as_json:
        _print_json(res)
        return
    p = res["period"]
    _display_table(res["totals"], title=f"Informe {p['month']:02d}/{p['year']}")
    _display_table(res["top_services"], title="Top servicios")
    _display_table(res["top_products"], title="Top productos")
    _display_table(res["by_day"], title="Por día")


@rel_app.command("servicio")
@_handle_errors
def rel_servicio(
    servicio: int = typer.Argument(...),
    anio: Optional[int] = typer.Option(None, "--anio"),
    mes: Optional[int] = typer.Option(None, "--mes"),
    desde: Optional[str] = typer.Option(None, "--desde", help="YYYY-MM-DD (reemplaza el mes)"),
    hasta: Optional[str] = typer.Option(None, "--hasta", help="YYYY-MM-DD (reemplaza el mes)"),
    db_path: str = DB_OPT,
    as_json: bool = JSON_OPT,
):
    """Informe de un servicio con utilización del presupuesto."""
    _prepare_db(db_path)
    res = service_report(servicio, anio, mes, start=desde, end=hasta, db_path=db_path)
    if as_json:
        _print_json(res)
        return
    _display_table({**res["service"], **res["totals"]}, title=f"Servicio {res['service']['name']}")
    _display_table(res["top_products"], title="Top productos")
    _display_table(res["orders"], title="Pedidos")


# Entry point:
def main():
    app()


if __name__ == "__main__":
    main()
