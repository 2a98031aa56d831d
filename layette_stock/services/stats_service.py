# ==============================================================================
# SERVICIO DE ESTADÍSTICAS - Beneficios e ingresos
# ==============================================================================
# Reportes de solo lectura para el dashboard admin.
#
# REGLA PRINCIPAL: solo los pedidos con ingreso cuentan.
# - payee    ✅
# - expediee ✅
# - livree    ❌ (descuenta stock pero no genera ingreso)
# - en_attente ❌
# - annulee    ❌
#
# Beneficio = total neto − Σ(precio de compra × cantidad)
#
# Los reportes nunca fallan hacia el dashboard: ante un error de BD o un
# monto almacenado que no se puede redondear se registra
# BenefitComputationDegraded en el log y se devuelve un resultado vacío.
# ==============================================================================

import logging
import threading
import time
from decimal import Decimal
from typing import Any, Callable, Dict, Iterable, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from layette_stock.errors import BenefitComputationDegraded
from layette_stock.models import Order, OrderStatus
from layette_stock.repositories.interfaces import IOrderRepository, IRevenueRepository
from layette_stock.services.pricing_service import ZERO, parse_decimal, to_money


logger = logging.getLogger(__name__)


def compute_benefit(net_total: Any, lines: Iterable[Dict[str, Any]]) -> Decimal:
    """
    Beneficio de un pedido.

    Args:
        net_total: Total neto del pedido (ya con la remise aplicada)
        lines: Dicts con purchasePrice y quantity (precio faltante = 0)

    Returns:
        net_total − Σ(purchasePrice × quantity), con 2 decimales

    Ejemplo:
        compute_benefit(1800, [{'purchasePrice': 400, 'quantity': 2}]) → 1000.00
    """
    return to_money((parse_decimal(net_total) or ZERO) - purchase_total(lines))


def purchase_total(lines: Iterable[Dict[str, Any]]) -> Decimal:
    """Σ(precio de compra × cantidad) de las líneas."""
    total = ZERO
    for line in lines:
        price = parse_decimal(line.get('purchasePrice')) or ZERO
        quantity = parse_decimal(line.get('quantity')) or ZERO
        total += price * quantity
    return to_money(total)


class _TTLCache:
    """
    Caché en memoria con expiración por clave.

    ttl <= 0 desactiva el caché (get siempre retorna None).
    """

    def __init__(self, ttl: int):
        self.ttl = ttl
        self._data: Dict[str, tuple] = {}
        self._lock = threading.RLock()

    def get(self, key: str) -> Optional[Any]:
        if self.ttl <= 0:
            return None
        with self._lock:
            entry = self._data.get(key)
            if entry is None:
                return None
            expires_at, value = entry
            if time.monotonic() >= expires_at:
                del self._data[key]
                return None
            return value

    def set(self, key: str, value: Any) -> None:
        if self.ttl <= 0:
            return
        with self._lock:
            self._data[key] = (time.monotonic() + self.ttl, value)

    def clear(self) -> None:
        with self._lock:
            self._data.clear()


class StatsService:
    """
    Servicio de reportes financieros.

    Responsabilidades:
    - Beneficio por pedido con ingreso
    - Resumen de ingresos y pedidos por estado
    - Productos más vendidos
    """

    def __init__(
        self,
        session: Session,
        order_repo: IOrderRepository,
        revenue_repo: IRevenueRepository,
        benefits_limit: int = 50,
        cache_ttl: int = 30
    ):
        """
        Inicializa el servicio.

        Args:
            session: Sesión SQLAlchemy (rollback si una consulta falla)
            order_repo: Repositorio de pedidos
            revenue_repo: Repositorio de montos de entrada
            benefits_limit: Máximo de pedidos en el reporte de beneficios
            cache_ttl: Segundos de validez del caché (0 = sin caché)
        """
        self.session = session
        self.order_repo = order_repo
        self.revenue_repo = revenue_repo
        self.benefits_limit = benefits_limit
        self._cache = _TTLCache(cache_ttl)

    def invalidate(self) -> None:
        """Descarta los reportes en caché (llamar después de cada mutación)."""
        self._cache.clear()

    def _report(self, key: str, builder: Callable[[], Any], fallback: Any) -> Any:
        cached = self._cache.get(key)
        if cached is not None:
            return cached
        try:
            value = builder()
        except (SQLAlchemyError, ArithmeticError) as exc:
            self.session.rollback()
            logger.warning('%s', BenefitComputationDegraded(f'Reporte {key} sin datos: {exc}'))
            return fallback
        self._cache.set(key, value)
        return value

    # =========================================================================
    # BENEFICIOS
    # =========================================================================

    @staticmethod
    def _benefit_row(order: Order) -> Dict[str, Any]:
        lines = []
        for line in order.lines:
            product = line.product
            lines.append({
                'productId': line.product_id,
                'productName': product.name if product is not None else None,
                'quantity': line.quantity,
                'unitPrice': float(to_money(line.unit_price)),
                'purchasePrice': float(to_money(product.purchase_price or 0)) if product is not None else 0.0,
            })

        purchase = purchase_total(lines)
        return {
            'orderId': order.id,
            'clientId': order.client_id,
            'status': OrderStatus(order.status).value,
            'createdAt': order.created_at.isoformat() if order.created_at else None,
            'total': float(to_money(order.total)),
            'discount': float(to_money(order.discount)),
            'purchaseTotal': float(purchase),
            'benefit': float(compute_benefit(order.total, lines)),
            'lines': lines,
        }

    def order_benefits(self) -> List[Dict[str, Any]]:
        """
        Beneficio de los pedidos con ingreso, más recientes primero.

        Returns:
            [{orderId, total, discount, purchaseTotal, benefit, lines}]
            o [] si la BD falla
        """
        return self._report(
            'benefits',
            lambda: [
                self._benefit_row(order)
                for order in self.order_repo.revenue_bearing(limit=self.benefits_limit)
            ],
            [],
        )

    # =========================================================================
    # INGRESOS
    # =========================================================================

    def _build_revenue_summary(self) -> Dict[str, Any]:
        counts = self.order_repo.count_by_status()
        benefit = sum(
            (Decimal(str(row['benefit'])) for row in map(self._benefit_row, self.order_repo.revenue_bearing())),
            ZERO,
        )
        return {
            'totalRevenue': float(to_money(self.order_repo.revenue_total())),
            'recordedRevenue': float(to_money(self.revenue_repo.total())),
            'totalBenefit': float(to_money(benefit)),
            'ordersByStatus': counts,
            'pendingOrders': counts.get(OrderStatus.EN_ATTENTE.value, 0),
        }

    def revenue_summary(self) -> Dict[str, Any]:
        """
        Resumen de ingresos para el dashboard.

        Returns:
            {totalRevenue, recordedRevenue, totalBenefit, ordersByStatus, pendingOrders}
        """
        return self._report(
            'revenue',
            self._build_revenue_summary,
            {
                'totalRevenue': 0.0,
                'recordedRevenue': 0.0,
                'totalBenefit': 0.0,
                'ordersByStatus': {status.value: 0 for status in OrderStatus},
                'pendingOrders': 0,
            },
        )

    def top_products(self, limit: int = 5) -> List[Dict[str, Any]]:
        """Productos más vendidos (cantidad) en pedidos con ingreso."""
        return self._report(
            f'top:{limit}',
            lambda: self.order_repo.quantities_sold(limit=limit),
            [],
        )
