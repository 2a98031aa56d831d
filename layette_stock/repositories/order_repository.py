# ==============================================================================
# REPOSITORIO DE PEDIDOS
# ==============================================================================
# Encapsula el acceso a orders y order_lines.
# Las líneas se reemplazan completas, nunca se editan parcialmente.
# ==============================================================================

from typing import Dict, Iterable, List, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import selectinload

from layette_stock.models import Order, OrderLine, OrderStatus, Product, REVENUE_STATUSES
from layette_stock.repositories.base import BaseRepository


class OrderRepository(BaseRepository):
    """Repositorio para pedidos y sus líneas."""

    model = Order

    def get_for_update(self, order_id: str) -> Optional[Order]:
        """
        Carga un pedido bloqueando su fila hasta el fin de la transacción
        (SELECT ... FOR UPDATE; sin efecto en SQLite).
        """
        stmt = (
            select(Order)
            .where(Order.id == order_id)
            .options(selectinload(Order.lines))
            .with_for_update()
        )
        return self.session.scalars(stmt).first()

    def get_with_lines(self, order_id: str) -> Optional[Order]:
        """Carga un pedido con sus líneas y productos (lectura)."""
        stmt = (
            select(Order)
            .where(Order.id == order_id)
            .options(selectinload(Order.lines).selectinload(OrderLine.product))
        )
        return self.session.scalars(stmt).first()

    def replace_lines(self, order: Order, lines: Iterable) -> List[OrderLine]:
        """
        Reemplaza TODAS las líneas de un pedido.

        Args:
            order: Pedido (ya persistido)
            lines: LineInput con product_id, quantity, unit_price
        """
        order.lines.clear()
        self.session.flush()
        order.lines.extend(
            OrderLine(
                product_id=line.product_id,
                quantity=line.quantity,
                unit_price=line.unit_price,
                position=position,
            )
            for position, line in enumerate(lines)
        )
        self.session.flush()
        return list(order.lines)

    def delete_order(self, order: Order) -> None:
        """Elimina las líneas y luego el pedido."""
        order.lines.clear()
        self.session.flush()
        self.delete(order)

    def list_recent(
        self,
        client_id: Optional[str] = None,
        status: Optional[OrderStatus] = None,
        limit: Optional[int] = 100,
    ) -> List[Order]:
        """
        Lista pedidos del más reciente al más antiguo.

        Args:
            client_id: Filtrar por cliente
            status: Filtrar por estado
            limit: Máximo de pedidos (None = sin límite)
        """
        stmt = select(Order).options(selectinload(Order.lines).selectinload(OrderLine.product))
        if client_id:
            stmt = stmt.where(Order.client_id == client_id)
        if status is not None:
            stmt = stmt.where(Order.status == status)
        stmt = stmt.order_by(Order.created_at.desc())
        if limit:
            stmt = stmt.limit(limit)
        return list(self.session.scalars(stmt))

    def revenue_bearing(self, limit: Optional[int] = None) -> List[Order]:
        """Pedidos en estados con ingreso (payee, expediee), más recientes primero."""
        stmt = (
            select(Order)
            .where(Order.status.in_(sorted(REVENUE_STATUSES)))
            .options(selectinload(Order.lines).selectinload(OrderLine.product))
            .order_by(Order.created_at.desc())
        )
        if limit:
            stmt = stmt.limit(limit)
        return list(self.session.scalars(stmt))

    def count_by_status(self) -> Dict[str, int]:
        """Cantidad de pedidos por estado (todos los estados, 0 si no hay)."""
        counts = {status.value: 0 for status in OrderStatus}
        rows = self.session.execute(select(Order.status, func.count(Order.id)).group_by(Order.status))
        for status, count in rows:
            counts[OrderStatus(status).value] = count
        return counts

    def revenue_total(self):
        """Suma de totales netos de los pedidos con ingreso."""
        return self.session.scalar(
            select(func.coalesce(func.sum(Order.total), 0))
            .where(Order.status.in_(sorted(REVENUE_STATUSES)))
        )

    def quantities_sold(self, limit: int = 5) -> List[Dict]:
        """
        Cantidades vendidas por producto en pedidos con ingreso.

        Returns:
            Lista [{productId, name, quantity}] ordenada de mayor a menor
        """
        quantity = func.sum(OrderLine.quantity).label('quantity')
        stmt = (
            select(Product.id, Product.name, quantity)
            .join(OrderLine, OrderLine.product_id == Product.id)
            .join(Order, Order.id == OrderLine.order_id)
            .where(Order.status.in_(sorted(REVENUE_STATUSES)))
            .group_by(Product.id, Product.name)
            .order_by(quantity.desc(), Product.name.asc())
            .limit(limit)
        )
        return [
            {'productId': pid, 'name': name, 'quantity': int(qty or 0)}
            for pid, name, qty in self.session.execute(stmt)
        ]
