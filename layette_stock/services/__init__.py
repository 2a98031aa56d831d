# ==============================================================================
# CAPA DE SERVICIOS - Lógica de negocio
# ==============================================================================
# Esta capa contiene TODA la lógica de negocio de pedidos y stock.
#
# PRINCIPIOS:
# 1. Los servicios orquestan operaciones entre repositorios
# 2. Validan la entrada ANTES de abrir una transacción
# 3. Las rutas (controllers) solo llaman a servicios
# 4. Cada mutación es una sola transacción: todo o nada
#
# ESTRUCTURA:
# ├── pricing_service.py   → Totales de pedido (bruto, remise, neto)
# ├── inventory_service.py → Ledger de stock
# ├── revenue_service.py   → Montos de entrada
# ├── order_service.py     → Máquina de estados de pedidos
# └── stats_service.py     → Beneficios e ingresos (solo lectura)
# ==============================================================================

from layette_stock.services.pricing_service import (
    LineInput,
    OrderTotals,
    compute_totals,
    normalize_lines,
    parse_discount,
)
from layette_stock.services.inventory_service import StockLedger
from layette_stock.services.revenue_service import RevenueRecorder
from layette_stock.services.order_service import OrderService
from layette_stock.services.stats_service import StatsService, compute_benefit

__all__ = [
    'LineInput',
    'OrderTotals',
    'compute_totals',
    'normalize_lines',
    'parse_discount',
    'StockLedger',
    'RevenueRecorder',
    'OrderService',
    'StatsService',
    'compute_benefit',
]
