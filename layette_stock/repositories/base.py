# ==============================================================================
# REPOSITORIO BASE - Funcionalidad común sobre la sesión SQLAlchemy
# ==============================================================================
# Los repositorios NO hacen commit: solo agregan/consultan dentro de la
# transacción abierta por el servicio con transaction(session).
# ==============================================================================

import logging
from contextlib import contextmanager
from typing import Any, Iterator, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from layette_stock.errors import (
    InsufficientStock,
    OrderError,
    OrderNotFound,
    OrderTransactionFailed,
    ValidationError,
)


logger = logging.getLogger(__name__)

# Errores de negocio que se propagan tal cual después del rollback.
# Cualquier otro error de BD o del ledger se reporta como OrderTransactionFailed.
PROPAGATED_ERRORS = (OrderNotFound, InsufficientStock, ValidationError, OrderTransactionFailed)


@contextmanager
def transaction(session: Session) -> Iterator[Session]:
    """
    Ejecuta un bloque como UNA transacción de base de datos.

    - Sin errores: commit
    - Con cualquier error: rollback completo (stock, líneas y montos incluidos)

    Uso:
        with transaction(db.session):
            ...

    Raises:
        OrderNotFound, InsufficientStock, ValidationError: tal cual
        OrderTransactionFailed: para errores de BD o de ajuste de stock
    """
    try:
        yield session
        session.commit()
    except PROPAGATED_ERRORS:
        session.rollback()
        raise
    except (SQLAlchemyError, OrderError) as exc:
        session.rollback()
        logger.error('Transacción revertida: %s', exc, exc_info=True)
        raise OrderTransactionFailed() from exc
    except Exception:
        session.rollback()
        raise


class BaseRepository:
    """
    Clase base para todos los repositorios.

    Las subclases definen `model` con la clase SQLAlchemy que manejan.
    """

    model = None

    def __init__(self, session: Session):
        """
        Inicializa el repositorio con la sesión de BD.

        Args:
            session: Sesión SQLAlchemy (db.session en la app Flask)
        """
        self.session = session

    def get_by_id(self, record_id: Any) -> Optional[Any]:
        """
        Obtiene un registro por su ID.

        Returns:
            Instancia del modelo o None si no existe
        """
        if record_id is None:
            return None
        return self.session.get(self.model, record_id)

    def exists(self, record_id: Any) -> bool:
        """Verifica si un registro existe."""
        return self.get_by_id(record_id) is not None

    def add(self, record: Any) -> Any:
        """
        Agrega un registro y hace flush para obtener su ID.

        Returns:
            El mismo registro, ya con ID asignado
        """
        self.session.add(record)
        self.session.flush()
        return record

    def delete(self, record: Any) -> None:
        """Elimina un registro (dentro de la transacción actual)."""
        self.session.delete(record)
        self.session.flush()
