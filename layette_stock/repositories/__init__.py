# ==============================================================================
# CAPA DE REPOSITORIOS - Acceso a datos
# ==============================================================================
# Esta capa encapsula todo el acceso a la base de datos (SQLAlchemy).
# Los repositorios nunca hacen commit: la transacción la abre el servicio
# con transaction(session).
#
# ESTRUCTURA:
# ├── interfaces.py          → Protocolos (contratos usados por los servicios)
# ├── base.py                → BaseRepository + transaction()
# ├── product_repository.py  → products (stock)
# ├── order_repository.py    → orders + order_lines
# ├── revenue_repository.py  → revenue_entries
# └── client_repository.py   → clients (solo lectura)
# ==============================================================================

from layette_stock.repositories.interfaces import (
    IProductRepository,
    IOrderRepository,
    IRevenueRepository,
)

from layette_stock.repositories.base import BaseRepository, transaction
from layette_stock.repositories.product_repository import ProductRepository
from layette_stock.repositories.order_repository import OrderRepository
from layette_stock.repositories.revenue_repository import RevenueRepository
from layette_stock.repositories.client_repository import ClientRepository

__all__ = [
    # Interfaces
    'IProductRepository',
    'IOrderRepository',
    'IRevenueRepository',

    # Base
    'BaseRepository',
    'transaction',

    # Implementaciones
    'ProductRepository',
    'OrderRepository',
    'RevenueRepository',
    'ClientRepository',
]
