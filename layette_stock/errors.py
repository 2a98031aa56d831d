# ==============================================================================
# ERRORES DEL DOMINIO DE PEDIDOS
# ==============================================================================
# Cada error lleva el código HTTP con el que la capa web lo responde.
# Las operaciones que mutan (crear/modificar/eliminar) solo propagan estos
# tipos; los reportes nunca los lanzan hacia el dashboard.
# ==============================================================================


class OrderError(Exception):
    """Error base del dominio de pedidos."""

    status_code = 500

    def __init__(self, message: str = None):
        super().__init__(message or self.__class__.__doc__)
        self.message = message or self.__class__.__doc__


class ValidationError(OrderError):
    """Datos de pedido inválidos."""

    status_code = 400


class OrderNotFound(OrderError):
    """Pedido no encontrado."""

    status_code = 404

    def __init__(self, order_id: str):
        super().__init__(f'Pedido {order_id} no encontrado')
        self.order_id = order_id


class ProductNotFound(OrderError):
    """Producto no encontrado."""

    status_code = 404

    def __init__(self, product_id: str):
        super().__init__(f'Producto {product_id} no encontrado')
        self.product_id = product_id


class InsufficientStock(OrderError):
    """Stock insuficiente."""

    status_code = 409

    def __init__(self, product_id: str, requested: int):
        super().__init__(
            f'Stock insuficiente para el producto {product_id} (solicitado: {requested})'
        )
        self.product_id = product_id
        self.requested = requested


class OrderTransactionFailed(OrderError):
    """Error interno al procesar el pedido."""

    status_code = 500


class BenefitComputationDegraded(Warning):
    """
    Aviso (no error) de que un reporte se calculó con datos incompletos.
    Solo se registra en el log; los reportes devuelven resultados vacíos.
    """
