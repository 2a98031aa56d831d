# ==============================================================================
# CONTENEDOR DE DEPENDENCIAS - Inyección de servicios
# ==============================================================================
# Este módulo proporciona una forma centralizada de obtener instancias
# de repositorios y servicios. Facilita:
#   - Inyección de dependencias
#   - Testing (se pueden reemplazar repositorios en el contenedor)
#   - Configuración por app (cada app Flask tiene su propio contenedor)
#
# El contenedor vive en app.extensions['layette_container'], no en una
# variable global: dos apps (por ejemplo en tests) no comparten estado.
# ==============================================================================

from typing import Any, Mapping, Optional

from flask import current_app
from sqlalchemy.orm import Session

# ═══════════════════════════════════════════════════════════════════════════════
# REPOSITORIOS - Capa de persistencia (SQLAlchemy)
# ═══════════════════════════════════════════════════════════════════════════════
from layette_stock.repositories import (
    ClientRepository,
    OrderRepository,
    ProductRepository,
    RevenueRepository,
)

# ═══════════════════════════════════════════════════════════════════════════════
# SERVICIOS - Capa de lógica de negocio
# ═══════════════════════════════════════════════════════════════════════════════
from layette_stock.services import (
    OrderService,
    RevenueRecorder,
    StatsService,
    StockLedger,
)


EXTENSION_KEY = 'layette_container'


class AppContainer:
    """
    Contenedor de dependencias de la aplicación.

    Crea cada repositorio y servicio una sola vez (lazy loading).

    Uso:
        container = AppContainer(db.session, app.config)
        order_service = container.order_service
        stats_service = container.stats_service
    """

    def __init__(self, session: Session, config: Mapping[str, Any]):
        """
        Inicializa el contenedor.

        Args:
            session: Sesión SQLAlchemy (db.session, con scope por contexto)
            config: Configuración de la app (app.config)
        """
        self.session = session
        self.config = config

        # Repositorios (lazy loading)
        self._product_repo: Optional[ProductRepository] = None
        self._order_repo: Optional[OrderRepository] = None
        self._revenue_repo: Optional[RevenueRepository] = None
        self._client_repo: Optional[ClientRepository] = None

        # Servicios (lazy loading)
        self._stock_ledger: Optional[StockLedger] = None
        self._revenue_recorder: Optional[RevenueRecorder] = None
        self._order_service: Optional[OrderService] = None
        self._stats_service: Optional[StatsService] = None

    # =========================================================================
    # REPOSITORIOS
    # =========================================================================

    @property
    def product_repo(self) -> ProductRepository:
        if self._product_repo is None:
            self._product_repo = ProductRepository(self.session)
        return self._product_repo

    @property
    def order_repo(self) -> OrderRepository:
        if self._order_repo is None:
            self._order_repo = OrderRepository(self.session)
        return self._order_repo

    @property
    def revenue_repo(self) -> RevenueRepository:
        if self._revenue_repo is None:
            self._revenue_repo = RevenueRepository(self.session)
        return self._revenue_repo

    @property
    def client_repo(self) -> ClientRepository:
        if self._client_repo is None:
            self._client_repo = ClientRepository(self.session)
        return self._client_repo

    # =========================================================================
    # SERVICIOS
    # =========================================================================

    @property
    def stock_ledger(self) -> StockLedger:
        """Ledger de stock."""
        if self._stock_ledger is None:
            self._stock_ledger = StockLedger(
                self.product_repo,
                self.session,
                allow_negative=self.config.get('ALLOW_NEGATIVE_STOCK', True)
            )
        return self._stock_ledger

    @property
    def revenue_recorder(self) -> RevenueRecorder:
        """Registro de montos de entrada."""
        if self._revenue_recorder is None:
            self._revenue_recorder = RevenueRecorder(self.revenue_repo)
        return self._revenue_recorder

    @property
    def order_service(self) -> OrderService:
        """Servicio de pedidos."""
        if self._order_service is None:
            self._order_service = OrderService(
                self.session,
                self.order_repo,
                self.client_repo,
                self.stock_ledger,
                self.revenue_recorder,
                strict_lines=self.config.get('STRICT_ORDER_LINES', False),
                list_limit=self.config.get('ORDERS_LIST_LIMIT', 100)
            )
        return self._order_service

    @property
    def stats_service(self) -> StatsService:
        """Servicio de estadísticas (mantiene su caché entre peticiones)."""
        if self._stats_service is None:
            self._stats_service = StatsService(
                self.session,
                self.order_repo,
                self.revenue_repo,
                benefits_limit=self.config.get('BENEFITS_LIMIT', 50),
                cache_ttl=self.config.get('STATS_CACHE_TTL', 30)
            )
        return self._stats_service


def init_container(app, session: Session) -> AppContainer:
    """Crea el contenedor de la app y lo registra en app.extensions."""
    container = AppContainer(session, app.config)
    app.extensions[EXTENSION_KEY] = container
    return container


def get_container() -> AppContainer:
    """
    Obtiene el contenedor de la app Flask activa.

    Returns:
        Instancia del contenedor
    """
    return current_app.extensions[EXTENSION_KEY]
