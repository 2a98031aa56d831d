# ==============================================================================
# INTERFACES DE REPOSITORIOS
# ==============================================================================
#
# Contratos que usan los servicios. Permiten:
#
# 1. INDEPENDENCIA DE ALMACENAMIENTO
#    - Los servicios dependen de estos protocolos, no de SQLAlchemy
#
# 2. TESTING
#    - Un doble de prueba solo necesita implementar estos métodos
#
# ==============================================================================

from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Protocol, runtime_checkable


@runtime_checkable
class IProductRepository(Protocol):
    """Contrato del ledger de stock."""

    def adjust_stock(self, product_id: str, delta: int, floor: Optional[int] = None) -> int:
        """Suma delta al stock; retorna filas afectadas."""
        ...

    def set_stock(self, product_id: str, quantity: int) -> None:
        """Fija el stock."""
        ...

    def get_stock(self, product_id: str) -> Optional[int]:
        """Stock actual o None."""
        ...

    def exists(self, record_id: Any) -> bool:
        """Verifica si el producto existe."""
        ...

    def below_threshold(self, threshold: int) -> List[Any]:
        """Productos con stock bajo."""
        ...


@runtime_checkable
class IOrderRepository(Protocol):
    """Contrato de persistencia de pedidos."""

    def get_for_update(self, order_id: str) -> Optional[Any]:
        """Carga y bloquea un pedido."""
        ...

    def get_with_lines(self, order_id: str) -> Optional[Any]:
        """Carga un pedido con líneas."""
        ...

    def add(self, record: Any) -> Any:
        """Agrega un pedido."""
        ...

    def replace_lines(self, order: Any, lines: Iterable) -> List[Any]:
        """Reemplaza todas las líneas."""
        ...

    def delete_order(self, order: Any) -> None:
        """Elimina líneas y pedido."""
        ...

    def list_recent(self, client_id=None, status=None, limit=100) -> List[Any]:
        """Lista pedidos recientes."""
        ...

    def revenue_bearing(self, limit: Optional[int] = None) -> List[Any]:
        """Pedidos con ingreso."""
        ...

    def count_by_status(self) -> Dict[str, int]:
        """Pedidos por estado."""
        ...

    def revenue_total(self) -> Any:
        """Suma de totales netos con ingreso."""
        ...

    def quantities_sold(self, limit: int = 5) -> List[Dict]:
        """Cantidades vendidas por producto."""
        ...


@runtime_checkable
class IRevenueRepository(Protocol):
    """Contrato de montos de entrada."""

    def add_entry(self, order_id: str, product_id: str, amount: Decimal) -> Any:
        """Registra un monto."""
        ...

    def delete_for_order(self, order_id: str) -> int:
        """Elimina los montos de un pedido."""
        ...

    def for_order(self, order_id: str) -> List[Any]:
        """Montos de un pedido."""
        ...

    def total(self) -> Decimal:
        """Suma de montos."""
        ...
