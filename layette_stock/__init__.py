# ==============================================================================
# LAYETTE STOCK - Backend de pedidos e inventario para tienda de ropa de bebé
# ==============================================================================
# Paquete principal. La app Flask se construye con create_app() en main.py;
# wsgi.py (raíz del repo) la expone para Gunicorn.
# ==============================================================================

__version__ = '1.0.0'
