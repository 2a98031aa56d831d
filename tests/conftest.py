from decimal import Decimal

import pytest

from layette_stock.app_container import get_container
from layette_stock.extensions import db
from layette_stock.main import create_app
from layette_stock.models import Client, Product


@pytest.fixture
def app(tmp_path):
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite://',
        'ENABLE_PROFILING': False,
        'STATS_CACHE_TTL': 0,
        'LOGS_DIR': str(tmp_path / 'logs'),
    })
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def http(app):
    with app.test_client() as c:
        yield c


@pytest.fixture
def container(app):
    return get_container()


@pytest.fixture
def service(container):
    return container.order_service


@pytest.fixture
def products(app):
    """Three catalog products: body (stock 25), pyjama (15), bonnet (30)."""
    items = {
        'body': Product(name='Body Rose Premium', sale_price=Decimal('15000'),
                        purchase_price=Decimal('10000'), stock=25),
        'pyjama': Product(name='Pyjama Étoiles', sale_price=Decimal('18000'),
                          purchase_price=Decimal('12000'), stock=15),
        'bonnet': Product(name='Bonnet Bleu Ciel', sale_price=Decimal('5000'),
                          purchase_price=Decimal('2000'), stock=30),
    }
    db.session.add_all(items.values())
    db.session.commit()
    return {key: product.id for key, product in items.items()}


@pytest.fixture
def customer(app):
    client = Client(last_name='Dupont', first_name='Marie', email='marie@example.com')
    db.session.add(client)
    db.session.commit()
    return client.id


@pytest.fixture
def stock_of(container):
    """Current stock read straight from the database."""
    return container.stock_ledger.get_stock


@pytest.fixture
def revenue_of(container):
    """Revenue entries (as dicts) recorded for an order."""
    return container.revenue_recorder.entries_for_order
