# ==============================================================================
# REPOSITORIO DE PRODUCTOS
# ==============================================================================
# Encapsula el acceso a la tabla products.
# Los ajustes de stock son sentencias UPDATE relativas (stock = stock ± q)
# para no depender del valor leído previamente.
# ==============================================================================

from typing import List, Optional

from sqlalchemy import select, update

from layette_stock.models import Product
from layette_stock.repositories.base import BaseRepository


class ProductRepository(BaseRepository):
    """Repositorio para productos y su stock."""

    model = Product

    def adjust_stock(self, product_id: str, delta: int, floor: Optional[int] = None) -> int:
        """
        Suma `delta` al stock de un producto en una sola sentencia.

        Args:
            product_id: ID del producto
            delta: Cantidad a sumar (negativa para descontar)
            floor: Si se indica, solo actualiza cuando el resultado queda >= floor

        Returns:
            Filas afectadas (0 si no existe o si el guard de floor lo impidió)
        """
        stmt = (
            update(Product)
            .where(Product.id == product_id)
            .values(stock=Product.stock + delta)
            .execution_options(synchronize_session=False)
        )
        if floor is not None:
            stmt = stmt.where(Product.stock + delta >= floor)
        rowcount = self.session.execute(stmt).rowcount
        self._expire_stock(product_id)
        return rowcount

    def set_stock(self, product_id: str, quantity: int) -> None:
        """Fija el stock de un producto (edición explícita)."""
        stmt = (
            update(Product)
            .where(Product.id == product_id)
            .values(stock=quantity)
            .execution_options(synchronize_session=False)
        )
        self.session.execute(stmt)
        self._expire_stock(product_id)

    def _expire_stock(self, product_id: str) -> None:
        # El UPDATE no pasa por el ORM: la instancia en memoria queda desactualizada
        key = self.session.identity_key(Product, product_id)
        instance = self.session.identity_map.get(key)
        if instance is not None:
            self.session.expire(instance, ['stock'])

    def get_stock(self, product_id: str) -> Optional[int]:
        """Stock actual leído de la BD, o None si el producto no existe."""
        return self.session.scalar(select(Product.stock).where(Product.id == product_id))

    def below_threshold(self, threshold: int) -> List[Product]:
        """Productos con stock menor al umbral, del más crítico al menos."""
        stmt = (
            select(Product)
            .where(Product.stock < threshold)
            .order_by(Product.stock.asc(), Product.name.asc())
        )
        return list(self.session.scalars(stmt))

    def find_by_name(self, name: str) -> Optional[Product]:
        return self.session.scalar(select(Product).where(Product.name == name))
