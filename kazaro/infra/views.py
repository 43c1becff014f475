# kazaro/infra/views.py
"""
Creación de views auxiliares para los informes.

Views creadas:
- vw_pedido_items:   línea de pedido con fecha y servicio de la cabecera.
- vw_pedidos_resumen: cabecera con cantidad de líneas y unidades.

Obs.:
- Las views asumen que las migraciones V1→V3 ya fueron aplicadas.
- También se crean índices útiles si no existen.
"""

from __future__ import annotations

from .db import connect


def create_views(db_path: str) -> None:
    with connect(db_path) as c:
        c.executescript(
            """
            DROP VIEW IF EXISTS vw_pedido_items;
            CREATE VIEW vw_pedido_items AS
            SELECT
                i.PedidoItemID,
                i.PedidoID,
                p.Fecha,
                p.ServicioID,
                i.ProductoID,
                COALESCE(i.Nombre, '') AS Nombre,
                COALESCE(i.Codigo, '') AS Codigo,
                COALESCE(i.Precio, 0)  AS Precio,
                i.Cantidad,
                COALESCE(i.Subtotal, 0) AS Subtotal
            FROM PedidoItems i
            JOIN Pedidos p ON p.PedidoID = i.PedidoID;

            DROP VIEW IF EXISTS vw_pedidos_resumen;
            CREATE VIEW vw_pedidos_resumen AS
            SELECT
                p.PedidoID,
                p.EmpleadoID,
                p.Rol,
                p.ServicioID,
                p.Fecha,
                COALESCE(p.Status, 'open') AS Status,
                COALESCE(p.Total, 0)       AS Total,
                COUNT(i.PedidoItemID)      AS lineas,
                COALESCE(SUM(i.Cantidad), 0) AS unidades
            FROM Pedidos p
            LEFT JOIN PedidoItems i ON i.PedidoID = p.PedidoID
            GROUP BY p.PedidoID;
            """
        )

        c.executescript(
            """
            CREATE INDEX IF NOT EXISTS idx_pedidos_fecha     ON Pedidos(Fecha);
            CREATE INDEX IF NOT EXISTS idx_pedidos_servicio  ON Pedidos(ServicioID);
            CREATE INDEX IF NOT EXISTS idx_pedidos_status    ON Pedidos(Status);
            CREATE INDEX IF NOT EXISTS idx_items_pedido      ON PedidoItems(PedidoID);
            CREATE INDEX IF NOT EXISTS idx_supserv_emp       ON supervisor_services(EmpleadoID);
            CREATE INDEX IF NOT EXISTS idx_incoming_product  ON IncomingStock(product_id);
            """
        )
