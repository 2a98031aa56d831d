# ==============================================================================
# ENTIDADES DEL DOMINIO - Modelos SQLAlchemy
# ==============================================================================
# Cada entidad representa un concepto del negocio. Los nombres de columnas
# conservan el esquema relacional existente (nom, prix_achat, remise...);
# los atributos Python usan nombres descriptivos.
# ==============================================================================

import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from layette_stock.extensions import db


def _new_id() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _money(value) -> float:
    """Convierte un Decimal de BD a float con 2 decimales para JSON."""
    return round(float(value or 0), 2)


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


# ==============================================================================
# ENUMERACIONES - Estados de pedido y su impacto
# ==============================================================================

class OrderStatus(str, Enum):
    """Estados posibles de un pedido (enum plano, cualquier transición es válida)."""
    EN_ATTENTE = 'en_attente'  # Pendiente
    PAYEE = 'payee'            # Pagado
    EXPEDIEE = 'expediee'      # Enviado
    LIVREE = 'livree'          # Entregado
    ANNULEE = 'annulee'        # Anulado

    @classmethod
    def parse(cls, value: Any) -> Optional['OrderStatus']:
        """Retorna el estado correspondiente o None si el valor no es válido."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip())
        except ValueError:
            return None


@dataclass(frozen=True)
class StatusImpact:
    """
    Efectos secundarios de un estado.

    Attributes:
        stock: Entrar/salir del estado descuenta/restaura stock
        revenue: Entrar/salir del estado registra/elimina montos de entrada
    """
    stock: bool
    revenue: bool


# Tabla única de impacto por estado. Toda la reconciliación la consulta.
STATUS_POLICY: Dict[OrderStatus, StatusImpact] = {
    OrderStatus.EN_ATTENTE: StatusImpact(stock=False, revenue=False),
    OrderStatus.ANNULEE: StatusImpact(stock=False, revenue=False),
    OrderStatus.LIVREE: StatusImpact(stock=True, revenue=False),
    OrderStatus.EXPEDIEE: StatusImpact(stock=True, revenue=True),
    OrderStatus.PAYEE: StatusImpact(stock=True, revenue=True),
}

REVENUE_STATUSES = frozenset(s for s, impact in STATUS_POLICY.items() if impact.revenue)

# Largo máximo de la remise tal como se ingresó (columna remise_saisie)
DISCOUNT_SPEC_LENGTH = 32


def impact_of(status: OrderStatus) -> StatusImpact:
    """Impacto de un estado según STATUS_POLICY."""
    return STATUS_POLICY[OrderStatus(status)]


# ==============================================================================
# CATÁLOGO
# ==============================================================================

class Product(db.Model):
    """
    Producto del catálogo (layette).

    El stock solo cambia a través del StockLedger: transiciones de pedidos
    o edición explícita de stock.
    """
    __tablename__ = 'products'

    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    name = db.Column('nom', db.String(255), nullable=False)
    purchase_price = db.Column('prix_achat', db.Numeric(10, 2), nullable=False, default=0)
    sale_price = db.Column('prix', db.Numeric(10, 2), nullable=False, default=0)
    stock = db.Column(db.Integer, nullable=False, default=0, index=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)

    def __repr__(self):
        return f'<Product {self.name} stock={self.stock}>'

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'purchasePrice': _money(self.purchase_price),
            'salePrice': _money(self.sale_price),
            'stock': self.stock,
        }


class Client(db.Model):
    """Cliente de la tienda. Los pedidos lo referencian por id o por email."""
    __tablename__ = 'clients'

    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    last_name = db.Column('nom', db.String(255), nullable=False)
    first_name = db.Column('prenom', db.String(255), default='')
    email = db.Column(db.String(255), unique=True, nullable=False)
    phone = db.Column('telephone', db.String(50))
    address = db.Column('adresse', db.Text)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)

    @property
    def full_name(self) -> str:
        return f'{self.first_name or ""} {self.last_name}'.strip()


# ==============================================================================
# PEDIDOS
# ==============================================================================

class Order(db.Model):
    """
    Pedido (commande).

    Totales monetarios con 2 decimales:
        gross_total: suma de las líneas
        discount: monto de remise aplicado
        total: neto = max(0, gross_total - discount)
    discount_spec guarda la remise tal como se ingresó ("10%" o "300")
    para recalcularla si las líneas cambian.
    """
    __tablename__ = 'orders'

    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    client_id = db.Column(db.String(255), nullable=False, index=True)
    status = db.Column(
        db.Enum(
            OrderStatus,
            name='order_status',
            native_enum=False,
            validate_strings=True,
            values_callable=lambda enum: [member.value for member in enum],
        ),
        nullable=False,
        default=OrderStatus.EN_ATTENTE,
        index=True,
    )
    gross_total = db.Column('total_brut', db.Numeric(10, 2), nullable=False, default=0)
    discount = db.Column('remise', db.Numeric(10, 2), nullable=False, default=0)
    discount_spec = db.Column('remise_saisie', db.String(DISCOUNT_SPEC_LENGTH))
    total = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    address = db.Column('adresse', db.Text)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow, index=True)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    lines = db.relationship(
        'OrderLine',
        back_populates='order',
        cascade='all, delete-orphan',
        passive_deletes=True,
        order_by='OrderLine.position',
    )

    def __repr__(self):
        return f'<Order {self.id} {self.status}>'

    def to_dict(self, include_lines: bool = True) -> Dict[str, Any]:
        data = {
            'id': self.id,
            'clientId': self.client_id,
            'status': OrderStatus(self.status).value,
            'grossTotal': _money(self.gross_total),
            'discount': _money(self.discount),
            'total': _money(self.total),
            'address': self.address,
            'createdAt': _iso(self.created_at),
            'updatedAt': _iso(self.updated_at),
        }
        if include_lines:
            data['lines'] = [line.to_dict() for line in self.lines]
        return data


class OrderLine(db.Model):
    """
    Línea de pedido (orderitem).

    unit_price es una foto del precio al momento del pedido; nunca se
    modifica, las líneas se reemplazan completas al actualizar el pedido.
    """
    __tablename__ = 'order_lines'

    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    order_id = db.Column(
        db.String(36), db.ForeignKey('orders.id', ondelete='CASCADE'), nullable=False, index=True
    )
    product_id = db.Column(db.String(36), db.ForeignKey('products.id'), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False, default=0)
    quantity = db.Column(db.Integer, nullable=False)
    unit_price = db.Column(db.Numeric(10, 2), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)

    __table_args__ = (
        db.CheckConstraint('quantity > 0', name='ck_order_lines_quantity_positive'),
    )

    order = db.relationship('Order', back_populates='lines')
    product = db.relationship('Product')

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'id': self.id,
            'productId': self.product_id,
            'quantity': self.quantity,
            'unitPrice': _money(self.unit_price),
            'lineTotal': _money((self.unit_price or 0) * self.quantity),
        }
        if self.product is not None:
            data['productName'] = self.product.name
            data['purchasePrice'] = _money(self.product.purchase_price)
        return data


class RevenueEntry(db.Model):
    """Monto de entrada (ingreso reconocido) de una línea de pedido."""
    __tablename__ = 'revenue_entries'

    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    order_id = db.Column(
        db.String(36), db.ForeignKey('orders.id', ondelete='CASCADE'), nullable=False, index=True
    )
    product_id = db.Column(db.String(36), db.ForeignKey('products.id'), nullable=False, index=True)
    amount = db.Column(db.Numeric(10, 2), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'orderId': self.order_id,
            'productId': self.product_id,
            'amount': _money(self.amount),
            'createdAt': _iso(self.created_at),
        }
