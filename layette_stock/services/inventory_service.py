# ==============================================================================
# SERVICIO DE INVENTARIO - Ledger de stock
# ==============================================================================
# Único punto por donde cambia products.stock:
# - decrement / increment: dentro de la transacción del pedido
# - set_stock: edición explícita del admin (transacción propia)
#
# Si ALLOW_NEGATIVE_STOCK es False, decrement usa un UPDATE condicional
# (stock - q >= 0) y lanza InsufficientStock cuando no afecta filas.
# ==============================================================================

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from layette_stock.errors import InsufficientStock, ProductNotFound, ValidationError
from layette_stock.repositories.base import transaction
from layette_stock.repositories.interfaces import IProductRepository
from layette_stock.services.pricing_service import MAX_QUANTITY, parse_decimal


logger = logging.getLogger(__name__)


class StockLedger:
    """
    Ledger de stock de productos.

    Responsabilidades:
    - Ajustes relativos de stock por transición de pedido
    - Edición explícita de stock
    - Consulta de productos con stock bajo
    """

    def __init__(
        self,
        product_repo: IProductRepository,
        session: Session,
        allow_negative: bool = True
    ):
        """
        Inicializa el ledger.

        Args:
            product_repo: Repositorio de productos
            session: Sesión SQLAlchemy (para la edición explícita)
            allow_negative: Permitir que el stock quede negativo
        """
        self.product_repo = product_repo
        self.session = session
        self.allow_negative = allow_negative

    # =========================================================================
    # AJUSTES DENTRO DE UNA TRANSACCIÓN DE PEDIDO
    # =========================================================================

    def decrement(self, product_id: str, quantity: int) -> None:
        """
        Descuenta stock (stock = stock - quantity).

        Raises:
            ProductNotFound: Si el producto no existe
            InsufficientStock: Si el stock no alcanza y no se permite negativo
        """
        floor = None if self.allow_negative else 0
        affected = self.product_repo.adjust_stock(product_id, -quantity, floor=floor)
        if affected:
            return
        if floor is not None and self.product_repo.exists(product_id):
            raise InsufficientStock(product_id, quantity)
        raise ProductNotFound(product_id)

    def increment(self, product_id: str, quantity: int) -> None:
        """
        Restaura stock (stock = stock + quantity).

        Raises:
            ProductNotFound: Si el producto no existe
        """
        if not self.product_repo.adjust_stock(product_id, quantity):
            raise ProductNotFound(product_id)

    # =========================================================================
    # EDICIÓN EXPLÍCITA
    # =========================================================================

    def set_stock(self, product_id: str, quantity: Any) -> int:
        """
        Fija el stock de un producto (edición del admin).

        Args:
            product_id: ID del producto
            quantity: Nuevo stock (entero entre 0 y MAX_QUANTITY)

        Returns:
            Stock guardado

        Raises:
            ValidationError: Si la cantidad no es un entero entre 0 y MAX_QUANTITY
            ProductNotFound: Si el producto no existe
        """
        number = parse_decimal(quantity)
        if number is None or number != number.to_integral_value() or not 0 <= number <= MAX_QUANTITY:
            raise ValidationError(f'El stock debe ser un entero entre 0 y {MAX_QUANTITY}')
        value = int(number)

        # Verificación fuera de la transacción: se responde 404, no 500
        if not self.product_repo.exists(product_id):
            raise ProductNotFound(product_id)

        with transaction(self.session):
            self.product_repo.set_stock(product_id, value)

        logger.info('Stock de %s fijado en %s', product_id, value)
        return value

    # =========================================================================
    # CONSULTAS
    # =========================================================================

    def get_stock(self, product_id: str) -> Optional[int]:
        """Stock actual o None si el producto no existe."""
        return self.product_repo.get_stock(product_id)

    def low_stock(self, threshold: int = 10) -> List[Dict[str, Any]]:
        """
        Productos con stock por debajo del umbral.

        Args:
            threshold: Umbral (stock < threshold)

        Returns:
            Lista de productos serializados, del menor stock al mayor
        """
        return [product.to_dict() for product in self.product_repo.below_threshold(threshold)]
