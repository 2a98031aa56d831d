# ==============================================================================
# SERVICIO DE PEDIDOS - Máquina de estados
# ==============================================================================
# Centraliza el ciclo de vida completo de un pedido (commande).
#
# FLUJO DE CADA MUTACIÓN:
# 1. Validar entrada (sin transacción abierta)      → ValidationError
# 2. Abrir UNA transacción
# 3. Cargar y bloquear el pedido                    → OrderNotFound
# 4. Revertir los efectos del estado anterior       (STATUS_POLICY)
# 5. Reemplazar líneas y recalcular totales
# 6. Aplicar los efectos del nuevo estado           (STATUS_POLICY)
# 7. Commit, o rollback completo ante cualquier error
#
# EFECTOS POR ESTADO (models.STATUS_POLICY):
#   en_attente / annulee → ninguno
#   livree               → stock
#   expediee / payee     → stock + montos de entrada
# ==============================================================================

import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from layette_stock.errors import OrderNotFound, ValidationError
from layette_stock.models import DISCOUNT_SPEC_LENGTH, Order, OrderStatus, impact_of
from layette_stock.performance_logger import profile_function
from layette_stock.repositories.base import transaction
from layette_stock.repositories.client_repository import ClientRepository
from layette_stock.repositories.interfaces import IOrderRepository
from layette_stock.services.inventory_service import StockLedger
from layette_stock.services.pricing_service import (
    MAX_AMOUNT,
    LineInput,
    OrderTotals,
    compute_totals,
    normalize_lines,
)
from layette_stock.services.revenue_service import RevenueRecorder


logger = logging.getLogger(__name__)


def _discount_spec(discount: Any) -> Optional[str]:
    """
    Remise tal como se ingresó, para guardarla en remise_saisie.

    Raises:
        ValidationError: Si no cabe en la columna (nunca se trunca)
    """
    if discount is None or isinstance(discount, bool):
        return None
    text = str(discount).strip()
    if len(text) > DISCOUNT_SPEC_LENGTH:
        raise ValidationError(f'La remise no puede superar {DISCOUNT_SPEC_LENGTH} caracteres')
    return text or None


def _require_totals_in_range(totals: OrderTotals) -> OrderTotals:
    if totals.gross > MAX_AMOUNT:
        raise ValidationError(f'El total del pedido supera el máximo ({MAX_AMOUNT})')
    return totals


class OrderService:
    """
    Servicio para gestión de pedidos.

    Responsabilidades:
    - Crear, modificar y eliminar pedidos en una sola transacción
    - Reconciliar stock y montos de entrada según el estado
    - Consultas de pedidos para el panel admin
    """

    def __init__(
        self,
        session: Session,
        order_repo: IOrderRepository,
        client_repo: ClientRepository,
        ledger: StockLedger,
        revenue: RevenueRecorder,
        strict_lines: bool = False,
        list_limit: int = 100
    ):
        """
        Inicializa el servicio de pedidos.

        Args:
            session: Sesión SQLAlchemy (dueña de la transacción)
            order_repo: Repositorio de pedidos
            client_repo: Repositorio de clientes (solo lectura)
            ledger: Ledger de stock
            revenue: Registro de montos de entrada
            strict_lines: Rechazar el pedido si alguna línea es inválida
            list_limit: Máximo de pedidos por listado
        """
        self.session = session
        self.order_repo = order_repo
        self.client_repo = client_repo
        self.ledger = ledger
        self.revenue = revenue
        self.strict_lines = strict_lines
        self.list_limit = list_limit

    # =========================================================================
    # VALIDACIÓN (antes de abrir la transacción)
    # =========================================================================

    def _require_client(self, client_id: Any) -> str:
        if client_id is None or str(client_id).strip() == '':
            raise ValidationError('El cliente es obligatorio')
        return str(client_id).strip()

    def _require_status(self, status: Any) -> OrderStatus:
        if status is None or str(status).strip() == '':
            raise ValidationError('El estado es obligatorio')
        parsed = OrderStatus.parse(status)
        if parsed is None:
            valid = ', '.join(s.value for s in OrderStatus)
            raise ValidationError(f'Estado inválido: {status} (válidos: {valid})')
        return parsed

    def _require_lines(self, lines: Any) -> List[LineInput]:
        if not lines or not isinstance(lines, (list, tuple)):
            raise ValidationError('El pedido debe tener al menos una línea')

        valid, rejected = normalize_lines(lines)
        if rejected:
            detail = '; '.join(f"línea {r['index'] + 1}: {r['reason']}" for r in rejected)
            if self.strict_lines:
                raise ValidationError(f'Líneas inválidas ({detail})')
            logger.warning('Se ignoran %d líneas inválidas: %s', len(rejected), detail)

        if not valid:
            raise ValidationError('El pedido no tiene líneas válidas')
        return valid

    # =========================================================================
    # RECONCILIACIÓN (única rutina que consulta STATUS_POLICY)
    # =========================================================================

    def _apply_effects(self, order_id: str, status: OrderStatus, lines: List[LineInput]) -> None:
        """Aplica los efectos de entrar en `status` con estas líneas."""
        impact = impact_of(status)
        if impact.stock:
            for line in lines:
                self.ledger.decrement(line.product_id, line.quantity)
        if impact.revenue:
            self.revenue.record_for_lines(order_id, lines)

    def _reverse_effects(self, order_id: str, status: OrderStatus, lines: List[LineInput]) -> None:
        """Revierte exactamente lo que _apply_effects hizo para `status`."""
        impact = impact_of(status)
        if impact.stock:
            for line in lines:
                self.ledger.increment(line.product_id, line.quantity)
        if impact.revenue:
            self.revenue.remove_for_order(order_id)

    @staticmethod
    def _snapshot(order: Order) -> List[LineInput]:
        """Líneas persistidas como LineInput (precio unitario conservado)."""
        return [
            LineInput(
                product_id=line.product_id,
                quantity=line.quantity,
                unit_price=Decimal(str(line.unit_price)),
            )
            for line in order.lines
        ]

    def _load_locked(self, order_id: str) -> Order:
        order = self.order_repo.get_for_update(order_id)
        if order is None:
            raise OrderNotFound(order_id)
        return order

    # =========================================================================
    # MUTACIONES
    # =========================================================================

    @profile_function(name='Crear pedido')
    def create_order(
        self,
        client_id: Any,
        status: Any,
        lines: Any,
        discount: Any = None,
        address: Optional[str] = None
    ) -> str:
        """
        Crea un pedido con sus líneas y aplica los efectos de su estado.

        Args:
            client_id: ID o email del cliente
            status: Estado inicial (en_attente, payee, expediee, livree, annulee)
            lines: Lista de líneas {productId, quantity, unitPrice}
            discount: Remise ("10%" o monto)
            address: Dirección de entrega

        Returns:
            ID del pedido creado

        Raises:
            ValidationError: Datos inválidos (no se abre transacción)
            OrderTransactionFailed: Error de BD o de stock (todo revertido)
            InsufficientStock: Si el stock no alcanza y no se permite negativo
        """
        client_ref = self._require_client(client_id)
        new_status = self._require_status(status)
        line_inputs = self._require_lines(lines)
        discount_spec = _discount_spec(discount)
        totals = _require_totals_in_range(compute_totals(line_inputs, discount))

        with transaction(self.session):
            order = self.order_repo.add(Order(
                client_id=client_ref,
                status=new_status,
                gross_total=totals.gross,
                discount=totals.discount,
                discount_spec=discount_spec,
                total=totals.net,
                address=address,
            ))
            self.order_repo.replace_lines(order, line_inputs)
            self._apply_effects(order.id, new_status, line_inputs)
            order_id = order.id

        logger.info(
            'Pedido %s creado (%s, %d líneas, total %s)',
            order_id, new_status.value, len(line_inputs), totals.net,
        )
        return order_id

    @profile_function(name='Modificar pedido')
    def update_order(
        self,
        order_id: str,
        status: Any = None,
        lines: Any = None,
        discount: Any = None,
        client_id: Any = None,
        address: Optional[str] = None
    ) -> None:
        """
        Modifica un pedido: revierte el estado anterior por completo y
        aplica el nuevo.

        Los campos omitidos (None) conservan su valor actual:
        - status: mismo estado
        - lines: mismas líneas (con sus precios originales)
        - discount: la remise tal como se ingresó al crear/modificar

        Raises:
            ValidationError: Datos inválidos (no se abre transacción)
            OrderNotFound: Si el pedido no existe
            OrderTransactionFailed: Error de BD o de stock (todo revertido)
        """
        new_status = self._require_status(status) if status is not None else None
        new_lines = self._require_lines(lines) if lines is not None else None
        client_ref = self._require_client(client_id) if client_id is not None else None
        _discount_spec(discount)  # largo de la remise, antes de abrir la transacción

        with transaction(self.session):
            order = self._load_locked(order_id)
            old_status = OrderStatus(order.status)
            old_lines = self._snapshot(order)

            self._reverse_effects(order.id, old_status, old_lines)

            target_status = new_status or old_status
            target_lines = new_lines if new_lines is not None else old_lines
            if discount is not None:
                discount_input = discount
            elif order.discount_spec is not None:
                discount_input = order.discount_spec
            else:
                discount_input = order.discount
            totals = _require_totals_in_range(compute_totals(target_lines, discount_input))

            self.order_repo.replace_lines(order, target_lines)
            order.status = target_status
            order.gross_total = totals.gross
            order.discount = totals.discount
            order.discount_spec = _discount_spec(discount_input)
            order.total = totals.net
            if client_ref is not None:
                order.client_id = client_ref
            if address is not None:
                order.address = address

            self._apply_effects(order.id, target_status, target_lines)

        logger.info(
            'Pedido %s modificado (%s → %s, total %s)',
            order_id, old_status.value, target_status.value, totals.net,
        )

    @profile_function(name='Eliminar pedido')
    def delete_order(self, order_id: str) -> None:
        """
        Elimina un pedido restaurando el stock y sus montos de entrada.

        Raises:
            OrderNotFound: Si el pedido no existe
            OrderTransactionFailed: Error de BD o de stock (todo revertido)
        """
        with transaction(self.session):
            order = self._load_locked(order_id)
            status = OrderStatus(order.status)
            self._reverse_effects(order.id, status, self._snapshot(order))
            self.order_repo.delete_order(order)

        logger.info('Pedido %s eliminado (estado %s)', order_id, status.value)

    # =========================================================================
    # CONSULTAS
    # =========================================================================

    def get_order(self, order_id: str) -> Dict[str, Any]:
        """
        Obtiene un pedido con sus líneas y el nombre del cliente.

        Raises:
            OrderNotFound: Si el pedido no existe
        """
        order = self.order_repo.get_with_lines(order_id)
        if order is None:
            raise OrderNotFound(order_id)

        data = order.to_dict()
        client = self.client_repo.find_by_reference(order.client_id)
        data['clientName'] = client.full_name if client else None
        data['clientEmail'] = client.email if client else None
        data['discountSpec'] = order.discount_spec
        return data

    def list_orders(
        self,
        client_id: Optional[str] = None,
        status: Any = None,
        limit: Optional[int] = None
    ) -> List[Dict[str, Any]]:
        """
        Lista pedidos, del más reciente al más antiguo.

        Args:
            client_id: Filtrar por cliente
            status: Filtrar por estado
            limit: Máximo de pedidos (por defecto ORDERS_LIST_LIMIT)
        """
        status_filter = self._require_status(status) if status else None
        if limit is None or limit <= 0:
            limit = self.list_limit
        orders = self.order_repo.list_recent(client_id=client_id, status=status_filter, limit=limit)
        return [order.to_dict() for order in orders]

    def preview_totals(self, lines: Any, discount: Any = None) -> Dict[str, float]:
        """
        Calcula los totales que tendría un pedido, sin guardarlo.

        Returns:
            {gross, discount, net}
        """
        if lines is not None and not isinstance(lines, (list, tuple)):
            raise ValidationError('Las líneas deben ser una lista')
        return compute_totals(lines, discount).to_dict()
