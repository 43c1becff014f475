# app.py
"""
Entrypoint de la aplicación.

Uso:
  python app.py migrate --db Kazaro.db
  python app.py schema
  python app.py catalogo productos --q guante
  python app.py pedido crear --empleado 7 --rol supervisor --servicio 3 --item 12:2
  python app.py rel mensual --anio 2025 --mes 3
"""

from kazaro.adapters.cli import main

if __name__ == "__main__":
    main()
