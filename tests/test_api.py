import pytest

from layette_stock.errors import OrderTransactionFailed


def _create(http, products, status='payee', **extra):
    body = {
        'clientId': 'c1',
        'status': status,
        'lines': [{'productId': products['body'], 'quantity': 2, 'unitPrice': 15000}],
    }
    body.update(extra)
    r = http.post('/api/admin/orders', json=body)
    assert r.status_code == 201, r.get_json()
    return r.get_json()['orderId']


def test_create_get_update_delete(http, products, stock_of):
    order_id = _create(http, products, discount='10%', address='Rue 1')
    assert stock_of(products['body']) == 23

    r = http.get(f'/api/admin/orders/{order_id}')
    assert r.status_code == 200
    data = r.get_json()
    assert data['total'] == pytest.approx(27000)
    assert data['lines'][0]['productId'] == products['body']

    r = http.put(f'/api/admin/orders/{order_id}', json={'status': 'annulee'})
    assert r.status_code == 200
    assert r.get_json() == {}
    assert stock_of(products['body']) == 25

    r = http.delete(f'/api/admin/orders/{order_id}')
    assert r.status_code == 200
    assert r.get_json() == {}
    assert http.get(f'/api/admin/orders/{order_id}').status_code == 404


def test_create_with_original_form_keys(http, products, stock_of):
    r = http.post('/api/admin/orders', json={
        'client_id': 'c1',
        'statut': 'livree',
        'items': [{'produit_id': products['pyjama'], 'quantite': 3, 'prix_unitaire': 18000}],
        'remise': 4000,
        'adresse': 'Rue 2',
    })
    assert r.status_code == 201
    order = http.get(f"/api/admin/orders/{r.get_json()['orderId']}").get_json()
    assert order['total'] == pytest.approx(50000)
    assert order['address'] == 'Rue 2'
    assert stock_of(products['pyjama']) == 12


@pytest.mark.parametrize('body', [
    {},
    {'clientId': 'c1', 'status': 'payee'},
    {'clientId': 'c1', 'status': 'perdu', 'lines': [{'productId': 'x', 'quantity': 1, 'unitPrice': 1}]},
    {'status': 'payee', 'lines': [{'productId': 'x', 'quantity': 1, 'unitPrice': 1}]},
])
def test_create_validation_returns_400(http, body):
    r = http.post('/api/admin/orders', json=body)
    assert r.status_code == 400
    assert r.get_json()['error']


def test_non_object_body_returns_400(http):
    assert http.post('/api/admin/orders', json=[1, 2]).status_code == 400


def test_unknown_order_returns_404(http):
    assert http.put('/api/admin/orders/missing', json={'status': 'payee'}).status_code == 404
    assert http.delete('/api/admin/orders/missing').status_code == 404
    r = http.get('/api/admin/orders/missing')
    assert r.status_code == 404
    assert 'missing' in r.get_json()['error']


def test_transaction_failure_returns_generic_500(http, products, container, monkeypatch):
    def fail(*args, **kwargs):
        raise OrderTransactionFailed()

    monkeypatch.setattr(container.order_service, 'create_order', fail)
    r = http.post('/api/admin/orders', json={'clientId': 'c1', 'status': 'payee', 'lines': []})
    assert r.status_code == 500
    assert r.get_json() == {'error': 'Error interno al procesar el pedido.'}


def test_unknown_product_returns_500(http, products):
    r = http.post('/api/admin/orders', json={
        'clientId': 'c1', 'status': 'payee',
        'lines': [{'productId': 'ghost', 'quantity': 1, 'unitPrice': 10}],
    })
    assert r.status_code == 500
    assert r.get_json() == {'error': 'Error interno al procesar el pedido.'}


def test_insufficient_stock_returns_409(http, products, container):
    container.stock_ledger.allow_negative = False
    r = http.post('/api/admin/orders', json={
        'clientId': 'c1', 'status': 'payee',
        'lines': [{'productId': products['pyjama'], 'quantity': 99, 'unitPrice': 10}],
    })
    assert r.status_code == 409


def test_list_orders(http, products):
    first = _create(http, products, status='en_attente')
    second = _create(http, products, clientId='c2')

    r = http.get('/api/admin/orders')
    assert r.status_code == 200
    assert {o['id'] for o in r.get_json()} == {first, second}

    assert [o['id'] for o in http.get('/api/admin/orders?client_id=c2').get_json()] == [second]
    assert [o['id'] for o in http.get('/api/admin/orders?status=en_attente').get_json()] == [first]
    assert http.get('/api/admin/orders?limit=abc').status_code == 400


def test_preview(http):
    r = http.post('/api/admin/orders/preview', json={
        'lines': [{'unitPrice': 500, 'quantity': 3}], 'discount': 300,
    })
    assert r.status_code == 200
    assert r.get_json() == {'gross': 1500.0, 'discount': 300.0, 'net': 1200.0}


def test_preview_with_huge_discount_floors_net(http):
    r = http.post('/api/admin/orders/preview', json={
        'lines': [{'unitPrice': 500, 'quantity': 3}], 'discount': 1e30,
    })
    assert r.status_code == 200
    assert r.get_json() == {'gross': 1500.0, 'discount': 1500.0, 'net': 0.0}


def test_create_with_out_of_range_price_returns_400(http, products, stock_of):
    r = http.post('/api/admin/orders', json={
        'clientId': 'c1', 'status': 'payee',
        'lines': [{'productId': products['body'], 'quantity': 1, 'unitPrice': 1e27}],
    })
    assert r.status_code == 400
    assert r.get_json()['error']
    assert stock_of(products['body']) == 25


def test_benefits_endpoint(http, products):
    order_id = _create(http, products)
    r = http.get('/api/admin/orders/benefits')
    assert r.status_code == 200
    rows = r.get_json()
    assert rows[0]['orderId'] == order_id
    assert rows[0]['benefit'] == pytest.approx(30000 - 20000)


def test_benefits_reflect_new_orders_with_cache(app, http, products, container):
    container.stats_service._cache.ttl = 60
    assert http.get('/api/admin/orders/benefits').get_json() == []
    _create(http, products)
    assert len(http.get('/api/admin/orders/benefits').get_json()) == 1


def test_set_stock_endpoint(http, products, stock_of):
    r = http.put(f"/api/admin/products/{products['body']}/stock", json={'stock': 4})
    assert r.status_code == 200
    assert r.get_json() == {'productId': products['body'], 'stock': 4}
    assert stock_of(products['body']) == 4

    assert http.put(f"/api/admin/products/{products['body']}/stock", json={'stock': -2}).status_code == 400
    assert http.put('/api/admin/products/missing/stock', json={'stock': 2}).status_code == 404


def test_low_stock_endpoint(http, products):
    http.put(f"/api/admin/products/{products['pyjama']}/stock", json={'stock': 9})

    r = http.get('/api/admin/stocks/low')
    assert r.status_code == 200
    assert [p['id'] for p in r.get_json()] == [products['pyjama']]

    r = http.get('/api/admin/stocks/low?threshold=26')
    assert {p['id'] for p in r.get_json()} == {products['pyjama'], products['body']}


def test_stats_endpoints(http, products):
    _create(http, products)

    r = http.get('/api/admin/stats/revenue')
    assert r.status_code == 200
    assert r.get_json()['totalRevenue'] == pytest.approx(30000)

    r = http.get('/api/admin/stats/top-products?limit=1')
    assert r.status_code == 200
    assert r.get_json() == [{'productId': products['body'], 'name': 'Body Rose Premium', 'quantity': 2}]
