from sqlalchemy import select

from tests.test_utils_seed import auth_headers, ensure_catalog, ensure_product
from mdm import get_db
from mdm.models.catalog import CatalogProduct
from mdm.models.product import Product
from mdm.models.outbox import OutboxEvent
from mdm.models.product_cache import ProductCacheEntry

PERMS = ['PRODUCT.MANAGE']


def _create(client, headers, **payload):
    resp = client.post('/api/products', json=payload, headers=headers)
    assert resp.status_code == 201, resp.get_json()
    return resp.get_json()


def test_product_crud(client, app_instance, side_effects):
    headers = auth_headers(app_instance, PERMS)
    p = _create(client, headers, sku='CRUD-1', name='Crud Widget', basePrice=49.5, type='Hardware')
    assert p['status'] == 'draft'
    assert p['basePrice'] == 49.5
    assert p['available'] is True

    got = client.get(f"/api/products/{p['id']}", headers=headers)
    assert got.status_code == 200
    assert got.get_json()['sku'] == 'CRUD-1'

    upd = client.put(f"/api/products/{p['id']}", json={'name': 'Crud Widget 2'}, headers=headers)
    assert upd.status_code == 200
    assert upd.get_json()['name'] == 'Crud Widget 2'
    assert upd.get_json()['basePrice'] == 49.5

    dele = client.delete(f"/api/products/{p['id']}", headers=headers)
    assert dele.status_code == 200
    assert dele.get_json() == {'message': 'Product deleted successfully', 'id': p['id']}
    assert client.get(f"/api/products/{p['id']}", headers=headers).status_code == 404


def test_product_validation_errors(client, app_instance, side_effects):
    headers = auth_headers(app_instance, PERMS)
    resp = client.post('/api/products', json={'name': 'No Sku'}, headers=headers)
    assert resp.status_code == 400
    assert 'SKU is required' in resp.get_json()['error']['detail']
    resp = client.post('/api/products', json={'sku': 'VAL-1', 'name': 'Neg', 'basePrice': -1}, headers=headers)
    assert resp.status_code == 400
    resp = client.post('/api/products', json={'sku': 'VAL-2', 'name': 'Bad', 'status': 'launched'}, headers=headers)
    assert resp.status_code == 400
    resp = client.post('/api/products', json={'sku': 'VAL-3', 'name': 'Web', 'webDisplay': True}, headers=headers)
    assert resp.status_code == 400
    assert 'slug' in resp.get_json()['error']['detail']
    resp = client.post('/api/products', json={'sku': 'VAL-4', 'name': 'Seat', 'seatBasedPricing': True}, headers=headers)
    assert resp.status_code == 400
    resp = client.post('/api/products', json={'sku': 'VAL-5', 'name': 'Flag', 'available': 'yes'}, headers=headers)
    assert resp.status_code == 400
    # nothing was written
    assert side_effects['messages'].calls == []


def test_duplicate_sku_conflict(client, app_instance, side_effects):
    headers = auth_headers(app_instance, PERMS)
    _create(client, headers, sku='DUP-1', name='First')
    resp = client.post('/api/products', json={'sku': 'DUP-1', 'name': 'Second'}, headers=headers)
    assert resp.status_code == 409
    other = _create(client, headers, sku='DUP-2', name='Other')
    resp = client.put(f"/api/products/{other['id']}", json={'sku': 'DUP-1'}, headers=headers)
    assert resp.status_code == 409
    rows = get_db().execute(select(Product).where(Product.sku.in_(['DUP-1', 'DUP-2']))).scalars().all()
    assert sorted((r.sku, r.name) for r in rows) == [('DUP-1', 'First'), ('DUP-2', 'Other')]
    assert client.get(f"/api/products/{other['id']}", headers=headers).get_json()['sku'] == 'DUP-2'


def test_update_and_delete_unknown_product(client, app_instance, side_effects):
    headers = auth_headers(app_instance, PERMS)
    assert client.put('/api/products/missing-id', json={'name': 'x'}, headers=headers).status_code == 404
    assert client.delete('/api/products/missing-id', headers=headers).status_code == 404


def test_create_active_product_syncs_cache(client, app_instance, side_effects):
    headers = auth_headers(app_instance, PERMS)
    _create(client, headers, sku='FX-ACTIVE', name='Active', status='active', basePrice=10)
    assert side_effects['product_cache'].names() == ['sync_active_product']
    assert side_effects['messages'].names() == ['publish_created']
    assert side_effects['realtime'].names() == ['stream_business_event']

    _create(client, headers, sku='FX-DRAFT', name='Draft')
    # draft products are never cached
    assert side_effects['product_cache'].names() == ['sync_active_product']


def test_update_side_effects_follow_status(client, app_instance, side_effects):
    headers = auth_headers(app_instance, PERMS)
    p = _create(client, headers, sku='FX-FLOW', name='Flow', basePrice=10)
    cache = side_effects['product_cache']

    # draft -> active: transition + launch streamed, cache synced
    client.put(f"/api/products/{p['id']}", json={'status': 'active'}, headers=headers)
    assert side_effects['realtime'].names()[-2:] == ['stream_workflow_transition', 'stream_product_launch']
    assert cache.names() == ['sync_active_product']
    synced = cache.calls[0][1][0]
    assert synced['id'] == p['id'] and synced['status'] == 'active' and synced['basePrice'] == 10

    # active, insignificant change (sku only): no cache work
    client.put(f"/api/products/{p['id']}", json={'sku': 'FX-FLOW-2'}, headers=headers)
    assert cache.names() == ['sync_active_product']

    # active, significant change: cache resynced
    client.put(f"/api/products/{p['id']}", json={'basePrice': 12}, headers=headers)
    assert cache.names() == ['sync_active_product', 'sync_active_product']
    resynced = cache.calls[1][1][0]
    assert resynced['basePrice'] == 12 and resynced['sku'] == 'FX-FLOW-2'

    # active -> deprecated: removed from cache
    client.put(f"/api/products/{p['id']}", json={'status': 'deprecated'}, headers=headers)
    assert cache.names()[-1] == 'remove_product'
    assert cache.calls[-1][1] == (p['id'],)
    assert side_effects['messages'].names().count('publish_updated') == 4


def test_failing_side_effects_do_not_fail_the_write(client, app_instance, monkeypatch):
    from tests.conftest import Recorder
    for name in ('product_cache', 'messages', 'realtime'):
        monkeypatch.setitem(app_instance.extensions, f'mdm.{name}', Recorder(fail=True))
    headers = auth_headers(app_instance, PERMS)
    resp = client.post('/api/products', json={'sku': 'FX-FAIL', 'name': 'Resilient', 'status': 'active'}, headers=headers)
    assert resp.status_code == 201
    pid = resp.get_json()['id']
    assert client.get(f'/api/products/{pid}', headers=headers).status_code == 200


def test_real_services_write_cache_and_outbox(client, app_instance):
    headers = auth_headers(app_instance, PERMS)
    p = _create(client, headers, sku='REAL-1', name='Real', status='active', basePrice=5)
    session = get_db()
    entry = session.get(ProductCacheEntry, p['id'])
    assert entry is not None and entry.sku == 'REAL-1'
    subjects = [e.subject for e in session.query(OutboxEvent).filter_by(aggregate_id=p['id'])]
    assert subjects == ['product.created']

    client.put(f"/api/products/{p['id']}", json={'status': 'archived'}, headers=headers)
    session = get_db()
    assert session.get(ProductCacheEntry, p['id']) is None
    subjects = [e.subject for e in session.query(OutboxEvent).filter_by(aggregate_id=p['id']).order_by(OutboxEvent.id)]
    assert subjects == ['product.created', 'product.deactivated']


def test_delete_removes_catalog_links(client, app_instance, side_effects):
    headers = auth_headers(app_instance, PERMS)
    product = ensure_product('LINKED-1')
    catalog = ensure_catalog('PRODLINK')
    session = get_db()
    session.add(CatalogProduct(catalog_id=catalog.id, product_id=product.id, pricing_mode='none', discount_percentage=0.0))
    session.commit()
    assert client.delete(f'/api/products/{product.id}', headers=headers).status_code == 200
    assert get_db().query(CatalogProduct).filter_by(product_id=product.id).count() == 0


def test_list_filters_and_sort(client, app_instance, side_effects):
    headers = auth_headers(app_instance, PERMS)
    _create(client, headers, sku='LST-B', name='Lst Beta', type='Software', basePrice=20)
    _create(client, headers, sku='LST-A', name='Lst Alpha', type='Software', basePrice=30, status='active')
    _create(client, headers, sku='LST-C', name='Lst Gamma', type='Service', basePrice=10)

    body = client.get('/api/products?search=lst-', headers=headers).get_json()
    assert [p['sku'] for p in body['items']] == ['LST-A', 'LST-B', 'LST-C']
    body = client.get('/api/products?search=Lst&type=Software&sortBy=basePrice&sortOrder=DESC', headers=headers).get_json()
    assert [p['sku'] for p in body['items']] == ['LST-A', 'LST-B']
    body = client.get('/api/products?search=Lst&status=active', headers=headers).get_json()
    assert [p['sku'] for p in body['items']] == ['LST-A']
    # 'all' means no filter
    body = client.get('/api/products?search=Lst&status=all', headers=headers).get_json()
    assert body['total'] == 3

    assert client.get('/api/products?status=bogus', headers=headers).status_code == 400
    assert client.get('/api/products?sortBy=nope', headers=headers).status_code == 400
    assert client.get('/api/products?sortOrder=sideways', headers=headers).status_code == 400
    assert client.get('/api/products?available=maybe', headers=headers).status_code == 400


def test_analytics_and_types(client, app_instance, side_effects):
    headers = auth_headers(app_instance, PERMS)
    _create(client, headers, sku='ANA-1', name='Ana', type='Analytics', status='active')
    summary = client.get('/api/products/analytics/summary', headers=headers).get_json()
    assert summary['totalProducts'] >= 1
    assert set(summary['byStatus']) == {'draft', 'active', 'deprecated', 'archived'}
    assert summary['byType'].get('Analytics', 0) >= 1
    types = client.get('/api/products/types/list', headers=headers).get_json()['types']
    assert 'Analytics' in types
    assert types == sorted(types)
