import pytest
from sqlalchemy.exc import OperationalError

from layette_stock.errors import InsufficientStock, OrderTransactionFailed
from layette_stock.extensions import db
from layette_stock.models import Order, OrderLine, RevenueEntry


def _boom(*args, **kwargs):
    raise OperationalError('UPDATE', {}, Exception('database is locked'))


def _line(product_id, quantity, price=1000):
    return {'productId': product_id, 'quantity': quantity, 'unitPrice': price}


def test_create_rolls_back_stock_when_revenue_insert_fails(container, service, products, stock_of, monkeypatch):
    monkeypatch.setattr(container.revenue_repo, 'add_entry', _boom)

    with pytest.raises(OrderTransactionFailed) as excinfo:
        service.create_order('c1', 'payee', [_line(products['body'], 2), _line(products['bonnet'], 1)])

    assert isinstance(excinfo.value.__cause__, OperationalError)
    assert excinfo.value.message == 'Error interno al procesar el pedido.'
    assert stock_of(products['body']) == 25
    assert stock_of(products['bonnet']) == 30
    assert db.session.query(Order).count() == 0
    assert db.session.query(OrderLine).count() == 0


def test_update_rolls_back_everything(container, service, products, stock_of, revenue_of, monkeypatch):
    order_id = service.create_order('c1', 'payee', [_line(products['body'], 2, 15000)])
    assert stock_of(products['body']) == 23

    monkeypatch.setattr(container.stock_ledger, 'decrement', _boom)
    with pytest.raises(OrderTransactionFailed):
        service.update_order(order_id, status='livree', lines=[_line(products['pyjama'], 4)])

    assert stock_of(products['body']) == 23
    assert stock_of(products['pyjama']) == 15
    order = service.get_order(order_id)
    assert order['status'] == 'payee'
    assert [line['productId'] for line in order['lines']] == [products['body']]
    assert [e['amount'] for e in revenue_of(order_id)] == [30000]


def test_delete_rolls_back_stock_restore(container, service, products, stock_of, revenue_of, monkeypatch):
    order_id = service.create_order('c1', 'expediee', [_line(products['bonnet'], 3)])

    monkeypatch.setattr(container.order_repo, 'delete_order', _boom)
    with pytest.raises(OrderTransactionFailed):
        service.delete_order(order_id)

    assert stock_of(products['bonnet']) == 27
    assert len(revenue_of(order_id)) == 1
    assert service.get_order(order_id)['status'] == 'expediee'


def test_unknown_product_fails_whole_order(service, products, stock_of):
    with pytest.raises(OrderTransactionFailed):
        service.create_order('c1', 'livree', [_line(products['body'], 2), _line('no-such-product', 1)])

    assert stock_of(products['body']) == 25
    assert db.session.query(Order).count() == 0


def test_unknown_product_in_pending_order_violates_foreign_key(service, products):
    with pytest.raises(OrderTransactionFailed):
        service.create_order('c1', 'en_attente', [_line('no-such-product', 1)])

    assert db.session.query(Order).count() == 0


def test_negative_stock_allowed_by_default(service, products, stock_of):
    service.create_order('c1', 'payee', [_line(products['pyjama'], 20)])
    assert stock_of(products['pyjama']) == -5


def test_insufficient_stock_when_guard_enabled(container, service, products, stock_of):
    container.stock_ledger.allow_negative = False

    with pytest.raises(InsufficientStock) as excinfo:
        service.create_order('c1', 'payee', [_line(products['body'], 2), _line(products['pyjama'], 16)])

    assert excinfo.value.status_code == 409
    assert excinfo.value.product_id == products['pyjama']
    assert stock_of(products['body']) == 25
    assert stock_of(products['pyjama']) == 15
    assert db.session.query(Order).count() == 0
    assert db.session.query(RevenueEntry).count() == 0


def test_guard_allows_exact_stock(container, service, products, stock_of):
    container.stock_ledger.allow_negative = False
    service.create_order('c1', 'livree', [_line(products['pyjama'], 15)])
    assert stock_of(products['pyjama']) == 0
