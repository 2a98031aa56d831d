# ==============================================================================
# APLICACIÓN FLASK - API admin de pedidos y stock
# ==============================================================================
# Las rutas solo parsean JSON y llaman a servicios del contenedor.
# Toda la lógica de negocio vive en services/.
#
# RUTAS (prefijo /api/admin):
#   GET    /orders                  → listar pedidos
#   GET    /orders/benefits         → beneficio por pedido
#   POST   /orders/preview          → previsualizar totales
#   GET    /orders/<id>             → ver pedido
#   POST   /orders                  → crear pedido
#   PUT    /orders/<id>             → modificar pedido
#   DELETE /orders/<id>             → eliminar pedido
#   PUT    /products/<id>/stock     → fijar stock
#   GET    /stocks/low              → stock bajo
#   GET    /stats/revenue           → resumen de ingresos
#   GET    /stats/top-products      → productos más vendidos
#
# ERRORES: {"error": mensaje} con el status_code de cada OrderError
# ==============================================================================

import logging
from decimal import Decimal
from typing import Any, Dict, Mapping, Optional

import click
from flask import Blueprint, Flask, request
from flask.cli import with_appcontext

from layette_stock.app_container import get_container, init_container
from layette_stock.config import build_config
from layette_stock.errors import OrderError, ValidationError
from layette_stock.extensions import db
from layette_stock.models import Client, Product
from layette_stock.performance_logger import configure_logging, init_profiling


logger = logging.getLogger(__name__)

api = Blueprint('api', __name__, url_prefix='/api/admin')

# Productos de demostración (catálogo inicial de la tienda)
DEMO_PRODUCTS = [
    {'name': 'Body Rose Premium', 'sale_price': Decimal('15000'), 'purchase_price': Decimal('10000'), 'stock': 25},
    {'name': 'Pyjama Étoiles', 'sale_price': Decimal('18000'), 'purchase_price': Decimal('12000'), 'stock': 15},
    {'name': 'Bonnet Bleu Ciel', 'sale_price': Decimal('5000'), 'purchase_price': Decimal('2000'), 'stock': 30},
]


# ═══════════════════════════════════════════════════════════════════════════
# HELPERS DE PETICIÓN
# ═══════════════════════════════════════════════════════════════════════════

def _json_body() -> Dict[str, Any]:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError('El cuerpo debe ser un objeto JSON')
    return data


def _pick(data: Mapping[str, Any], *keys: str) -> Any:
    """Primer valor presente entre varias claves (camelCase o formulario original)."""
    for key in keys:
        if key in data:
            return data[key]
    return None


def _int_arg(name: str) -> Optional[int]:
    raw = request.args.get(name)
    if raw is None or raw.strip() == '':
        return None
    try:
        return int(raw)
    except ValueError:
        raise ValidationError(f'Parámetro {name} inválido: {raw}')


def _stats_changed() -> None:
    """Descarta los reportes en caché después de una mutación."""
    get_container().stats_service.invalidate()


# ═══════════════════════════════════════════════════════════════════════════
# PEDIDOS
# ═══════════════════════════════════════════════════════════════════════════

@api.route('/orders', methods=['GET'])
def list_orders():
    """Lista pedidos (?client_id=&status=&limit=)."""
    return get_container().order_service.list_orders(
        client_id=request.args.get('client_id') or request.args.get('clientId'),
        status=request.args.get('status') or None,
        limit=_int_arg('limit'),
    )


@api.route('/orders/benefits', methods=['GET'])
def order_benefits():
    """Beneficio de los pedidos con ingreso (nunca responde error)."""
    return get_container().stats_service.order_benefits()


@api.route('/orders/preview', methods=['POST'])
def preview_order():
    data = _json_body()
    return get_container().order_service.preview_totals(
        _pick(data, 'lines', 'items', 'orderitems'),
        _pick(data, 'discount', 'remise'),
    )


@api.route('/orders/<order_id>', methods=['GET'])
def get_order(order_id):
    return get_container().order_service.get_order(order_id)


@api.route('/orders', methods=['POST'])
def create_order():
    """
    Crea un pedido.

    Body JSON:
    {
        "clientId": "...",
        "status": "payee",
        "lines": [{"productId": "...", "quantity": 2, "unitPrice": 1000}],
        "discount": "10%",
        "address": "..."
    }
    """
    data = _json_body()
    order_id = get_container().order_service.create_order(
        client_id=_pick(data, 'clientId', 'client_id'),
        status=_pick(data, 'status', 'statut'),
        lines=_pick(data, 'lines', 'items', 'orderitems'),
        discount=_pick(data, 'discount', 'remise'),
        address=_pick(data, 'address', 'adresse'),
    )
    _stats_changed()
    return {'orderId': order_id}, 201


@api.route('/orders/<order_id>', methods=['PUT'])
def update_order(order_id):
    """Modifica un pedido; los campos omitidos conservan su valor."""
    data = _json_body()
    get_container().order_service.update_order(
        order_id,
        status=_pick(data, 'status', 'statut'),
        lines=_pick(data, 'lines', 'items', 'orderitems'),
        discount=_pick(data, 'discount', 'remise'),
        client_id=_pick(data, 'clientId', 'client_id'),
        address=_pick(data, 'address', 'adresse'),
    )
    _stats_changed()
    return {}


@api.route('/orders/<order_id>', methods=['DELETE'])
def delete_order(order_id):
    get_container().order_service.delete_order(order_id)
    _stats_changed()
    return {}


# ═══════════════════════════════════════════════════════════════════════════
# STOCK
# ═══════════════════════════════════════════════════════════════════════════

@api.route('/products/<product_id>/stock', methods=['PUT'])
def set_product_stock(product_id):
    """Fija el stock de un producto. Body: {"stock": 12}"""
    data = _json_body()
    stock = get_container().stock_ledger.set_stock(product_id, _pick(data, 'stock', 'quantity'))
    return {'productId': product_id, 'stock': stock}


@api.route('/stocks/low', methods=['GET'])
def low_stock():
    """Productos con stock por debajo del umbral (?threshold=)."""
    threshold = _int_arg('threshold')
    if threshold is None:
        threshold = get_container().config['LOW_STOCK_THRESHOLD']
    return get_container().stock_ledger.low_stock(threshold)


# ═══════════════════════════════════════════════════════════════════════════
# ESTADÍSTICAS
# ═══════════════════════════════════════════════════════════════════════════

@api.route('/stats/revenue', methods=['GET'])
def revenue_stats():
    return get_container().stats_service.revenue_summary()


@api.route('/stats/top-products', methods=['GET'])
def top_products():
    limit = _int_arg('limit') or 5
    return get_container().stats_service.top_products(limit)


# ═══════════════════════════════════════════════════════════════════════════
# MANEJO DE ERRORES
# ═══════════════════════════════════════════════════════════════════════════

def _handle_order_error(exc: OrderError):
    if exc.status_code >= 500:
        logger.error('Error %s en %s %s: %s', exc.status_code, request.method, request.path, exc.message)
    else:
        logger.info('Petición rechazada (%s) en %s %s: %s', exc.status_code, request.method, request.path, exc.message)
    return {'error': exc.message}, exc.status_code


# ═══════════════════════════════════════════════════════════════════════════
# COMANDOS CLI
# ═══════════════════════════════════════════════════════════════════════════

@click.command('init-db')
@with_appcontext
def init_db_command():
    """Crea las tablas de la base de datos."""
    db.create_all()
    click.echo('Base de datos inicializada')


@click.command('seed-demo')
@with_appcontext
@click.option('--with-client/--no-client', default=True, help='Crear también un cliente de prueba.')
def seed_demo_command(with_client):
    """Inserta los productos de demostración (si no existen)."""
    db.create_all()
    container = get_container()
    created = 0
    for item in DEMO_PRODUCTS:
        if container.product_repo.find_by_name(item['name']) is None:
            db.session.add(Product(**item))
            created += 1

    if with_client and container.client_repo.find_by_reference('client@layettes.test') is None:
        db.session.add(Client(
            last_name='Dupont',
            first_name='Marie',
            email='client@layettes.test',
            address='12 rue des Lilas',
        ))

    db.session.commit()
    click.echo(f'{created} productos creados')


# ═══════════════════════════════════════════════════════════════════════════
# FÁBRICA DE LA APP
# ═══════════════════════════════════════════════════════════════════════════

def create_app(config_overrides: Optional[Mapping[str, Any]] = None) -> Flask:
    """
    Crea y configura la app Flask.

    Args:
        config_overrides: Valores que reemplazan la configuración del entorno
                          (usado por los tests)

    Returns:
        App lista para servir
    """
    app = Flask(__name__)
    app.config.update(build_config())
    if config_overrides:
        app.config.update(config_overrides)

    configure_logging(app)

    if not app.config.get('SECRET_KEY_FROM_ENV') and not app.config.get('TESTING'):
        logger.warning('LAYETTE_SECRET_KEY no definida: usando clave de desarrollo')

    db.init_app(app)
    init_container(app, db.session)
    init_profiling(app)

    app.register_blueprint(api)
    app.register_error_handler(OrderError, _handle_order_error)

    app.cli.add_command(init_db_command)
    app.cli.add_command(seed_demo_command)

    return app
