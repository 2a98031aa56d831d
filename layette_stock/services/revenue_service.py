# ==============================================================================
# SERVICIO DE MONTOS DE ENTRADA
# ==============================================================================
# Registra un monto de entrada por línea mientras el pedido está en un
# estado con ingreso (payee, expediee) y los elimina al salir de él.
# Siempre se ejecuta dentro de la transacción del pedido.
# ==============================================================================

from decimal import Decimal
from typing import Any, Dict, Iterable, List

from layette_stock.repositories.interfaces import IRevenueRepository
from layette_stock.services.pricing_service import to_money


class RevenueRecorder:
    """Registro de montos de entrada de pedidos."""

    def __init__(self, revenue_repo: IRevenueRepository):
        self.revenue_repo = revenue_repo

    def record_for_lines(self, order_id: str, lines: Iterable) -> List[Any]:
        """
        Registra un monto por línea (precio_unitario × cantidad).

        Args:
            order_id: ID del pedido
            lines: Líneas con product_id, quantity y unit_price

        Returns:
            Montos creados
        """
        return [
            self.revenue_repo.add_entry(
                order_id,
                line.product_id,
                to_money(Decimal(str(line.unit_price)) * line.quantity),
            )
            for line in lines
        ]

    def remove_for_order(self, order_id: str) -> int:
        """Elimina todos los montos del pedido; retorna cuántos había."""
        return self.revenue_repo.delete_for_order(order_id)

    def entries_for_order(self, order_id: str) -> List[Dict[str, Any]]:
        return [entry.to_dict() for entry in self.revenue_repo.for_order(order_id)]
