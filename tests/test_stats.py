import logging
from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError

from layette_stock.services.stats_service import StatsService, compute_benefit


def _line(product_id, quantity, price):
    return {'productId': product_id, 'quantity': quantity, 'unitPrice': price}


def _boom(*args, **kwargs):
    raise OperationalError('SELECT', {}, Exception('no such table: orders'))


def test_compute_benefit():
    assert compute_benefit(1800, [{'purchasePrice': 400, 'quantity': 2}]) == 1000
    assert compute_benefit('1800', [{'quantity': 2}]) == 1800
    assert compute_benefit(100, [{'purchasePrice': 400, 'quantity': 1}]) == -300


def test_order_benefits_only_revenue_bearing(container, service, products):
    service.create_order('c1', 'en_attente', [_line(products['body'], 1, 15000)])
    service.create_order('c1', 'livree', [_line(products['body'], 1, 15000)])
    paid = service.create_order('c1', 'payee', [
        _line(products['body'], 2, 15000),
        _line(products['bonnet'], 1, 5000),
    ], discount='10%')

    rows = container.stats_service.order_benefits()

    assert [row['orderId'] for row in rows] == [paid]
    row = rows[0]
    assert row['total'] == pytest.approx(31500)
    assert row['discount'] == pytest.approx(3500)
    assert row['purchaseTotal'] == pytest.approx(22000)
    assert row['benefit'] == pytest.approx(9500)
    assert [line['productName'] for line in row['lines']] == ['Body Rose Premium', 'Bonnet Bleu Ciel']


def test_order_benefits_empty(container):
    assert container.stats_service.order_benefits() == []


def test_benefits_fail_open(container, monkeypatch, caplog):
    monkeypatch.setattr(container.order_repo, 'revenue_bearing', _boom)

    with caplog.at_level(logging.WARNING, logger='layette_stock'):
        assert container.stats_service.order_benefits() == []

    assert 'benefits' in caplog.text


def test_revenue_summary(container, service, products):
    service.create_order('c1', 'en_attente', [_line(products['body'], 1, 15000)])
    service.create_order('c1', 'expediee', [_line(products['pyjama'], 1, 18000)])
    service.create_order('c1', 'payee', [_line(products['bonnet'], 2, 5000)], discount=1000)

    summary = container.stats_service.revenue_summary()

    assert summary['totalRevenue'] == pytest.approx(27000)
    assert summary['recordedRevenue'] == pytest.approx(28000)
    assert summary['totalBenefit'] == pytest.approx(27000 - 12000 - 4000)
    assert summary['pendingOrders'] == 1
    assert summary['ordersByStatus'] == {
        'en_attente': 1, 'payee': 1, 'expediee': 1, 'livree': 0, 'annulee': 0,
    }


def test_revenue_summary_fail_open(container, monkeypatch):
    monkeypatch.setattr(container.order_repo, 'count_by_status', _boom)
    summary = container.stats_service.revenue_summary()
    assert summary['totalRevenue'] == 0.0
    assert summary['pendingOrders'] == 0


def test_top_products(container, service, products):
    service.create_order('c1', 'payee', [_line(products['bonnet'], 5, 5000), _line(products['body'], 1, 15000)])
    service.create_order('c1', 'expediee', [_line(products['body'], 2, 15000)])
    service.create_order('c1', 'livree', [_line(products['pyjama'], 9, 18000)])

    top = container.stats_service.top_products(limit=2)

    assert top == [
        {'productId': products['bonnet'], 'name': 'Bonnet Bleu Ciel', 'quantity': 5},
        {'productId': products['body'], 'name': 'Body Rose Premium', 'quantity': 3},
    ]


def test_reports_cached_until_invalidated(container, service, products):
    stats = StatsService(
        container.session, container.order_repo, container.revenue_repo, cache_ttl=60,
    )
    assert stats.order_benefits() == []

    service.create_order('c1', 'payee', [_line(products['body'], 1, 15000)])
    assert stats.order_benefits() == []

    stats.invalidate()
    assert len(stats.order_benefits()) == 1


def test_revenue_summary_fail_open_on_unroundable_amount(container, monkeypatch, caplog):
    monkeypatch.setattr(container.order_repo, 'revenue_total', lambda: Decimal('1e70'))

    with caplog.at_level(logging.WARNING, logger='layette_stock'):
        summary = container.stats_service.revenue_summary()

    assert summary['totalRevenue'] == 0.0
    assert 'revenue' in caplog.text
