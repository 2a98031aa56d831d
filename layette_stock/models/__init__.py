# ==============================================================================
# CAPA DE MODELOS - Estructuras de datos del sistema
# ==============================================================================
# Modelos SQLAlchemy (tablas) y la tabla de impacto por estado de pedido.
# ==============================================================================

from .entities import (
    # Catálogo
    Product,
    Client,

    # Pedidos
    Order,
    OrderLine,
    OrderStatus,
    StatusImpact,
    STATUS_POLICY,
    REVENUE_STATUSES,
    DISCOUNT_SPEC_LENGTH,
    impact_of,

    # Ingresos
    RevenueEntry,
)

__all__ = [
    # Catálogo
    'Product',
    'Client',

    # Pedidos
    'Order',
    'OrderLine',
    'OrderStatus',
    'StatusImpact',
    'STATUS_POLICY',
    'REVENUE_STATUSES',
    'DISCOUNT_SPEC_LENGTH',
    'impact_of',

    # Ingresos
    'RevenueEntry',
]
