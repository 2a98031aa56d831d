# ==============================================================================
# REPOSITORIO DE CLIENTES
# ==============================================================================
# Solo lectura desde el subsistema de pedidos: un pedido guarda client_id,
# que puede ser el ID del cliente o su email.
# ==============================================================================

from typing import Optional

from sqlalchemy import or_, select

from layette_stock.models import Client
from layette_stock.repositories.base import BaseRepository


class ClientRepository(BaseRepository):
    """Repositorio para clientes."""

    model = Client

    def find_by_reference(self, reference: str) -> Optional[Client]:
        """
        Busca un cliente por ID o por email.

        Args:
            reference: Valor guardado en orders.client_id
        """
        if not reference:
            return None
        stmt = select(Client).where(or_(Client.id == reference, Client.email == reference))
        return self.session.scalar(stmt)
