# ==============================================================================
# REPOSITORIO DE MONTOS DE ENTRADA
# ==============================================================================
# Encapsula el acceso a revenue_entries (una fila por línea de pedido
# mientras el pedido está en un estado con ingreso).
# ==============================================================================

from decimal import Decimal
from typing import List

from sqlalchemy import delete, func, select

from layette_stock.models import RevenueEntry
from layette_stock.repositories.base import BaseRepository


class RevenueRepository(BaseRepository):
    """Repositorio para montos de entrada."""

    model = RevenueEntry

    def add_entry(self, order_id: str, product_id: str, amount: Decimal) -> RevenueEntry:
        entry = RevenueEntry(order_id=order_id, product_id=product_id, amount=amount)
        self.session.add(entry)
        return entry

    def delete_for_order(self, order_id: str) -> int:
        """
        Elimina todos los montos de un pedido.

        Returns:
            Cantidad de filas eliminadas
        """
        self.session.flush()
        result = self.session.execute(
            delete(RevenueEntry)
            .where(RevenueEntry.order_id == order_id)
            .execution_options(synchronize_session='evaluate')
        )
        return result.rowcount

    def for_order(self, order_id: str) -> List[RevenueEntry]:
        stmt = (
            select(RevenueEntry)
            .where(RevenueEntry.order_id == order_id)
            .order_by(RevenueEntry.created_at.asc())
        )
        return list(self.session.scalars(stmt))

    def total(self) -> Decimal:
        """Suma de todos los montos de entrada registrados."""
        value = self.session.scalar(select(func.coalesce(func.sum(RevenueEntry.amount), 0)))
        return Decimal(str(value or 0))
