def test_record_movement_returns_created(client, make_product):
    product = make_product(stock=10)

    resp = client.post('/inventory/movements', json={
        'product_id': product.id, 'quantity': -3, 'type': 'sale', 'reference_id': 'ORD-9',
    })

    assert resp.status_code == 201
    body = resp.json()
    assert body['success'] is True
    assert body['new_stock'] == 7
    assert body['movement_id'] is not None

def test_record_movement_insufficient_stock(client, make_product):
    product = make_product(stock=1)

    resp = client.post('/inventory/movements', json={'product_id': product.id, 'quantity': -2, 'type': 'sale'})

    assert resp.status_code == 409
    detail = resp.json()['detail']
    assert detail['code'] == 'insufficient_stock'
    assert (detail['available'], detail['requested']) == (1, 2)

def test_record_movement_rejects_unknown_type(client, make_product):
    product = make_product()

    resp = client.post('/inventory/movements', json={'product_id': product.id, 'quantity': 1, 'type': 'gift'})

    assert resp.status_code == 422

def test_restock_foreign_product_is_not_found(client, make_product, stock_of):
    product = make_product(seller_id=2, stock=1)

    resp = client.post(f'/sellers/1/products/{product.id}/restock', json={'quantity': 5})

    assert resp.status_code == 404
    assert stock_of(product.id) == 1

def test_restock_and_adjust(client, make_product, stock_of):
    product = make_product(stock=1)

    restock = client.post(f'/sellers/1/products/{product.id}/restock', json={'quantity': 5})
    assert restock.status_code == 200
    assert restock.json()['new_stock'] == 6

    bad = client.post(f'/sellers/1/products/{product.id}/restock', json={'quantity': 0})
    assert bad.status_code == 400
    assert bad.json()['detail']['code'] == 'invalid_quantity'

    adjust = client.post(f'/sellers/1/products/{product.id}/adjust', json={'target_quantity': 2, 'reason': 'Count'})
    assert adjust.status_code == 200
    assert adjust.json()['new_stock'] == 2
    assert stock_of(product.id) == 2

def test_order_debit_and_release(client, make_product, stock_of):
    shirt = make_product(stock=5)
    jacket = make_product(stock=0)

    debit = client.post('/orders/ORD-1/stock/debit', json={'items': [
        {'product_id': shirt.id, 'quantity': 2},
        {'product_id': jacket.id, 'quantity': 1},
    ]})
    assert debit.status_code == 200
    result = debit.json()
    assert result['all_succeeded'] is False
    assert [line['success'] for line in result['results']] == [True, False]
    assert stock_of(shirt.id) == 3

    mismatched = client.post('/orders/ORD-2/stock/release', json=result)
    assert mismatched.status_code == 400

    released = client.post('/orders/ORD-1/stock/release', json=result)
    assert released.status_code == 200
    assert released.json()['all_succeeded'] is True
    assert stock_of(shirt.id) == 5

def test_order_credit(client, make_product, stock_of):
    product = make_product(stock=0)

    resp = client.post('/orders/ORD-3/stock/credit', json={
        'items': [{'product_id': product.id, 'quantity': 2}], 'kind': 'cancellation',
    })

    assert resp.status_code == 200
    assert stock_of(product.id) == 2

def test_order_lines_need_positive_quantity(client, make_product):
    product = make_product()

    resp = client.post('/orders/ORD-4/stock/debit', json={'items': [{'product_id': product.id, 'quantity': 0}]})

    assert resp.status_code == 422

def test_bulk_update(client, make_product, stock_of):
    a = make_product(stock=4)
    foreign = make_product(seller_id=3, stock=4)

    resp = client.post('/sellers/1/inventory/bulk-update', json={'updates': [
        {'product_id': a.id, 'new_quantity': 10},
        {'product_id': foreign.id, 'new_quantity': 0},
    ]})

    assert resp.status_code == 200
    body = resp.json()
    assert (body['success'], body['failed']) == (1, 1)
    assert stock_of(a.id) == 10
    assert stock_of(foreign.id) == 4

def test_duplicate_sku_conflict(client, make_product):
    make_product(sku='DUP')
    product = make_product()

    resp = client.put(f'/sellers/1/products/{product.id}/sku', json={'sku': 'DUP'})

    assert resp.status_code == 409
    assert resp.json()['detail']['code'] == 'duplicate_sku'

def test_blank_sku_is_rejected(client, make_product):
    product = make_product()

    resp = client.put(f'/sellers/1/products/{product.id}/sku', json={'sku': '   '})

    assert resp.status_code == 422

def test_negative_threshold(client, make_product):
    product = make_product()

    resp = client.put(f'/sellers/1/products/{product.id}/threshold', json={'threshold': -4})

    assert resp.status_code == 400

def test_seller_read_views(client, make_product):
    low = make_product(stock=1, threshold=5)
    make_product(stock=50, threshold=5)
    client.post(f'/sellers/1/products/{low.id}/restock', json={'quantity': 1})

    summary = client.get('/sellers/1/inventory/summary').json()
    assert summary['total_products'] == 2
    assert summary['low_stock_count'] == 1

    alerts = client.get('/sellers/1/inventory/alerts').json()
    assert [a['product_id'] for a in alerts] == [low.id]

    movements = client.get('/sellers/1/inventory/movements', params={'type': 'restock'}).json()
    assert movements['total'] == 1
    assert movements['movements'][0]['type'] == 'restock'

    products = client.get('/sellers/1/inventory/products').json()
    assert products[0]['product_id'] == low.id

    audit = client.get('/sellers/1/inventory/audit').json()
    assert all(entry['consistent'] for entry in audit)

def test_inventory_overview_sections(client, make_product):
    make_product(stock=0)

    full = client.get('/sellers/1/inventory')
    assert full.status_code == 200
    body = full.json()
    assert {'summary', 'alerts', 'movements', 'products'} <= body.keys()

    only_alerts = client.get('/sellers/1/inventory', params={'section': 'alerts'}).json()
    assert 'alerts' in only_alerts
    assert 'summary' not in only_alerts
    assert only_alerts['alerts'][0]['severity'] == 'critical'

def test_liveness_and_root(client):
    assert client.get('/health/live').status_code == 200
    resp = client.get('/')
    assert resp.status_code == 200
    assert resp.json()['status'] == 'running'
