from tests.test_utils_seed import auth_headers, ensure_catalog, ensure_product
from mdm import get_db
from mdm.models.product import Product

PERMS = ['CATALOG.MANAGE']


def _link(client, headers, catalog_id, product_id, **extra):
    resp = client.post('/api/catalogproduct', json={'catalogId': catalog_id, 'productId': product_id, **extra},
                       headers=headers)
    assert resp.status_code == 201, resp.get_json()
    return resp.get_json()


def test_link_with_discount_and_override(client, app_instance):
    catalog = ensure_catalog('CP-PRICE')
    p1 = ensure_product('CP-PRICE-1', base_price=200.0)
    p2 = ensure_product('CP-PRICE-2', base_price=50.0)
    headers = auth_headers(app_instance, PERMS)

    disc = _link(client, headers, catalog.id, p1.id, discountPercentage=25)
    assert disc['pricingMode'] == 'discount'
    assert disc['finalPrice'] == 150.0
    assert disc['pricingBadge'] == '25% Disc.'
    assert disc['productSku'] == 'CP-PRICE-1'

    over = _link(client, headers, catalog.id, p2.id, pricingMode='override', overridePrice=45, discountPercentage=10)
    assert over['pricingMode'] == 'override'
    assert over['discountPercentage'] == 0.0
    assert over['finalPrice'] == 45.0
    assert over['pricingBadge'] == 'Override'

    # switching modes clears the other value
    upd = client.put(f"/api/catalogproduct/{over['id']}", json={'pricingMode': 'discount', 'discountPercentage': 10},
                     headers=headers).get_json()
    assert upd['overridePrice'] is None
    assert upd['finalPrice'] == 45.0
    reset = client.put(f"/api/catalogproduct/{over['id']}", json={'pricingMode': 'none'}, headers=headers).get_json()
    assert reset['finalPrice'] == 50.0 and reset['pricingBadge'] == 'Base'


def test_dual_pricing_without_mode_rejected(client, app_instance):
    catalog = ensure_catalog('CP-DUAL')
    product = ensure_product('CP-DUAL-1', base_price=100.0)
    headers = auth_headers(app_instance, PERMS)
    resp = client.post('/api/catalogproduct', json={'catalogId': catalog.id, 'productId': product.id,
                                                   'overridePrice': 75, 'discountPercentage': 20}, headers=headers)
    assert resp.status_code == 400
    assert 'not both' in resp.get_json()['error']['detail']

    row = _link(client, headers, catalog.id, product.id, discountPercentage=20)
    resp = client.put(f"/api/catalogproduct/{row['id']}", json={'overridePrice': 50, 'discountPercentage': 10},
                      headers=headers)
    assert resp.status_code == 400
    kept = client.get(f'/api/catalogproduct/catalog/{catalog.id}/products', headers=headers).get_json()['items'][0]
    assert kept['pricingMode'] == 'discount'
    assert kept['discountPercentage'] == 20.0 and kept['overridePrice'] is None


def test_link_errors(client, app_instance):
    catalog = ensure_catalog('CP-ERR')
    product = ensure_product('CP-ERR-1')
    headers = auth_headers(app_instance, PERMS)
    assert client.post('/api/catalogproduct', json={'catalogId': catalog.id}, headers=headers).status_code == 400
    assert client.post('/api/catalogproduct', json={'catalogId': 999999, 'productId': product.id},
                       headers=headers).status_code == 404
    assert client.post('/api/catalogproduct', json={'catalogId': catalog.id, 'productId': 'nope'},
                       headers=headers).status_code == 404
    resp = client.post('/api/catalogproduct', json={'catalogId': catalog.id, 'productId': product.id,
                                                   'discountPercentage': 150}, headers=headers)
    assert resp.status_code == 400
    resp = client.post('/api/catalogproduct', json={'catalogId': catalog.id, 'productId': product.id,
                                                   'minQuantity': 5, 'maxQuantity': 2}, headers=headers)
    assert resp.status_code == 400
    _link(client, headers, catalog.id, product.id)
    again = client.post('/api/catalogproduct', json={'catalogId': catalog.id, 'productId': product.id}, headers=headers)
    assert again.status_code == 409
    assert again.get_json()['error']['detail'] == 'Product already exists in catalog'


def test_catalog_listing_uses_page_size(client, app_instance):
    catalog = ensure_catalog('CP-LIST')
    headers = auth_headers(app_instance, PERMS)
    for i in range(3):
        p = ensure_product(f'CP-LIST-{i}', name=f'Listed {i}')
        _link(client, headers, catalog.id, p.id, isActive=i != 2)
    body = client.get(f'/api/catalogproduct/catalog/{catalog.id}/products?pageSize=2', headers=headers).get_json()
    assert body['limit'] == 2 and body['total'] == 3 and body['totalPages'] == 2
    assert [r['productName'] for r in body['items']] == ['Listed 0', 'Listed 1']
    body = client.get(f'/api/catalogproduct/catalog/{catalog.id}/products?isActive=false', headers=headers).get_json()
    assert [r['productSku'] for r in body['items']] == ['CP-LIST-2']
    body = client.get(f'/api/catalogproduct/catalog/{catalog.id}/products?searchTerm=list-1', headers=headers).get_json()
    assert body['total'] == 1
    assert client.get('/api/catalogproduct/catalog/999999/products', headers=headers).status_code == 404


def test_product_catalogs_exists_and_stats(client, app_instance):
    c1 = ensure_catalog('CP-MULTI-1', priority=1)
    c2 = ensure_catalog('CP-MULTI-2', priority=2)
    product = ensure_product('CP-MULTI')
    headers = auth_headers(app_instance, PERMS)
    _link(client, headers, c2.id, product.id, overridePrice=10)
    _link(client, headers, c1.id, product.id, isFeatured=True)
    items = client.get(f'/api/catalogproduct/product/{product.id}/catalogs', headers=headers).get_json()['items']
    assert [i['catalogCode'] for i in items] == ['CP-MULTI-1', 'CP-MULTI-2']

    exists = client.get(f'/api/catalogproduct/exists?catalogId={c1.id}&productId={product.id}', headers=headers)
    assert exists.get_json() == {'exists': True}
    missing = client.get(f'/api/catalogproduct/exists?catalogId={c1.id}&productId=other', headers=headers)
    assert missing.get_json() == {'exists': False}
    assert client.get('/api/catalogproduct/exists?catalogId=x&productId=1', headers=headers).status_code == 400

    stats = client.get(f'/api/catalogproduct/stats?catalogId={c2.id}', headers=headers).get_json()
    assert stats['totalProducts'] == 1 and stats['withOverridePrice'] == 1 and stats['withDiscount'] == 0
    stats = client.get(f'/api/catalogproduct/stats?catalogId={c1.id}', headers=headers).get_json()
    assert stats['featuredProducts'] == 1


def test_bulk_add_remove_and_activation(client, app_instance):
    catalog = ensure_catalog('CP-BULK')
    products = [ensure_product(f'CP-BULK-{i}') for i in range(3)]
    headers = auth_headers(app_instance, PERMS)
    first = _link(client, headers, catalog.id, products[0].id)

    resp = client.post('/api/catalogproduct/bulk-add', json={
        'catalogId': catalog.id, 'productIds': [p.id for p in products] + ['ghost', products[1].id],
    }, headers=headers)
    assert resp.status_code == 200
    body = resp.get_json()
    assert body['added'] == [products[1].id, products[2].id]
    assert body['skipped'] == [products[0].id]
    assert body['notFound'] == ['ghost']
    assert client.post('/api/catalogproduct/bulk-add', json={'catalogId': catalog.id, 'productIds': []},
                       headers=headers).status_code == 400

    off = client.post(f"/api/catalogproduct/{first['id']}/deactivate", headers=headers).get_json()
    assert off['isActive'] is False
    on = client.post(f"/api/catalogproduct/{first['id']}/activate", headers=headers).get_json()
    assert on['isActive'] is True

    removed = client.post(f'/api/catalogproduct/catalog/{catalog.id}/bulk-remove',
                          json={'productIds': [products[0].id, products[1].id]}, headers=headers).get_json()
    assert removed['removed'] == 2
    dele = client.delete(f'/api/catalogproduct/catalog/{catalog.id}/product/{products[2].id}', headers=headers)
    assert dele.status_code == 200
    assert client.delete(f'/api/catalogproduct/catalog/{catalog.id}/product/{products[2].id}',
                         headers=headers).status_code == 404


def test_row_reads_live_product_price(client, app_instance):
    catalog = ensure_catalog('CP-LIVE')
    product = ensure_product('CP-LIVE-1', base_price=80.0)
    headers = auth_headers(app_instance, PERMS)
    row = _link(client, headers, catalog.id, product.id, discountPercentage=50)
    assert row['finalPrice'] == 40.0
    session = get_db()
    session.get(Product, product.id).base_price = 100.0
    session.commit()
    again = client.get(f"/api/catalogproduct/{row['id']}", headers=headers).get_json()
    assert again['finalPrice'] == 50.0
    assert again['productBasePrice'] == 100.0
