from tests.test_utils_seed import auth_headers, ensure_catalog, ensure_channel, ensure_currency, ensure_region

PERMS = ['CATALOG.MANAGE']


def _headers(app):
    return auth_headers(app, PERMS)


def test_catalog_crud_by_codes(client, app_instance):
    ensure_region('CATNA')
    ensure_channel('CATWEB')
    ensure_currency('USD')
    ensure_currency('EUR')
    headers = _headers(app_instance)
    resp = client.post('/api/catalogs', json={
        'code': 'CAT-CRUD', 'name': 'Crud Catalog', 'regionCode': 'CATNA', 'channelCode': 'CATWEB', 'priority': 3,
    }, headers=headers)
    assert resp.status_code == 201, resp.get_json()
    cat = resp.get_json()
    assert cat['regionCode'] == 'CATNA' and cat['channelCode'] == 'CATWEB'
    # currency defaults to USD when it exists
    assert cat['currencyCode'] == 'USD'
    assert cat['status'] == 'active' and cat['isActive'] is True
    assert cat['isReadyForActivation'] is True

    got = client.get(f"/api/catalogs/{cat['id']}", headers=headers)
    assert got.status_code == 200 and got.get_json()['priority'] == 3

    upd = client.put(f"/api/catalogs/{cat['id']}", json={'currencyCode': 'EUR', 'status': 'inactive'}, headers=headers)
    assert upd.status_code == 200
    assert upd.get_json()['currencyCode'] == 'EUR'
    assert upd.get_json()['isActive'] is False

    dele = client.delete(f"/api/catalogs/{cat['id']}", headers=headers)
    assert dele.status_code == 200
    assert client.get(f"/api/catalogs/{cat['id']}", headers=headers).status_code == 404


def test_catalog_validation(client, app_instance):
    ensure_region('CATVR')
    headers = _headers(app_instance)
    assert client.post('/api/catalogs', json={'name': 'No code'}, headers=headers).status_code == 400
    resp = client.post('/api/catalogs', json={'code': 'CAT-BADREG', 'name': 'x', 'regionCode': 'NOPE'}, headers=headers)
    assert resp.status_code == 400
    assert "Unknown region code 'NOPE'" in resp.get_json()['error']['detail']
    resp = client.post('/api/catalogs', json={
        'code': 'CAT-DATES', 'name': 'x', 'regionCode': 'CATVR',
        'effectiveFrom': '2026-06-01T00:00:00Z', 'effectiveTo': '2026-01-01T00:00:00Z',
    }, headers=headers)
    assert resp.status_code == 400
    resp = client.post('/api/catalogs', json={'code': 'CAT-BADST', 'name': 'x', 'status': 'retired'}, headers=headers)
    assert resp.status_code == 400
    resp = client.post('/api/catalogs', json={'code': 'CAT-BADDT', 'name': 'x', 'effectiveFrom': 'soon'}, headers=headers)
    assert resp.status_code == 400
    assert client.put('/api/catalogs/999999', json={'name': 'x'}, headers=headers).status_code == 404


def test_duplicate_code_in_scope_conflicts(client, app_instance):
    ensure_region('CATDR')
    ensure_channel('CATDC')
    ensure_channel('CATDC2')
    headers = _headers(app_instance)
    body = {'code': 'CAT-DUP', 'name': 'Dup', 'regionCode': 'CATDR', 'channelCode': 'CATDC'}
    assert client.post('/api/catalogs', json=body, headers=headers).status_code == 201
    assert client.post('/api/catalogs', json=body, headers=headers).status_code == 409
    # same code in another channel is a different catalog
    other = client.post('/api/catalogs', json={**body, 'channelCode': 'CATDC2'}, headers=headers)
    assert other.status_code == 201
    moved = client.put(f"/api/catalogs/{other.get_json()['id']}", json={'channelCode': 'CATDC'}, headers=headers)
    assert moved.status_code == 409


def test_default_catalog_is_unique_per_scope(client, app_instance):
    ensure_region('CATDEF')
    ensure_channel('CATDEFC')
    headers = _headers(app_instance)
    base = {'name': 'Default', 'regionCode': 'CATDEF', 'channelCode': 'CATDEFC', 'isDefault': True}
    first = client.post('/api/catalogs', json={**base, 'code': 'CAT-DEF-1'}, headers=headers).get_json()
    second = client.post('/api/catalogs', json={**base, 'code': 'CAT-DEF-2'}, headers=headers).get_json()
    assert second['isDefault'] is True
    assert client.get(f"/api/catalogs/{first['id']}", headers=headers).get_json()['isDefault'] is False


def test_catalog_list_filters(client, app_instance):
    ensure_catalog('CATLST-A', region_code='CATLR', channel_code='CATLC', priority=2)
    ensure_catalog('CATLST-B', region_code='CATLR', channel_code='CATLC', priority=1)
    ensure_catalog('CATLST-C', region_code='CATLR2', channel_code='CATLC')
    headers = _headers(app_instance)
    body = client.get('/api/catalogs?region=CATLR&search=CATLST', headers=headers).get_json()
    assert [c['code'] for c in body['items']] == ['CATLST-B', 'CATLST-A']
    body = client.get('/api/catalogs?region=all&search=CATLST&sortBy=code&sortOrder=DESC', headers=headers).get_json()
    assert [c['code'] for c in body['items']] == ['CATLST-C', 'CATLST-B', 'CATLST-A']
    body = client.get('/api/catalogs?channel=CATLC&search=CATLST&status=active', headers=headers).get_json()
    assert body['total'] == 3
    # unknown region yields an empty page rather than an error
    body = client.get('/api/catalogs?region=ZZZ', headers=headers).get_json()
    assert body['items'] == [] and body['total'] == 0
    body = client.get('/api/catalogs?region=ZZZ&page=3&limit=500', headers=headers).get_json()
    assert body['page'] == 3 and body['limit'] == 100 and body['items'] == []
    assert client.get('/api/catalogs?region=ZZZ&page=abc', headers=headers).status_code == 400
    assert client.get('/api/catalogs?status=gone', headers=headers).status_code == 400


def test_lookups(client, app_instance):
    ensure_region('CATLK', name='Lookup Region')
    ensure_currency('JPY')
    ensure_channel('CATLKC', name='Lookup Channel')
    headers = auth_headers(app_instance, ['CATALOG.READ'])
    regions = client.get('/api/catalogs/regions', headers=headers).get_json()['regions']
    assert 'CATLK' in [r['code'] for r in regions]
    currencies = client.get('/api/catalogs/currencies', headers=headers).get_json()['currencies']
    assert 'JPY' in [c['code'] for c in currencies]
    channels = client.get('/api/catalogs/channels', headers=headers).get_json()['channels']
    assert 'CATLKC' in [c['code'] for c in channels]


def test_channels_api(client, app_instance):
    headers = _headers(app_instance)
    resp = client.post('/api/channels', json={'code': 'CHN-API', 'name': 'Api Channel'}, headers=headers)
    assert resp.status_code == 201
    ch = resp.get_json()
    assert ch['isActive'] is True
    assert client.post('/api/channels', json={'code': 'CHN-API', 'name': 'Again'}, headers=headers).status_code == 409
    assert client.post('/api/channels', json={'code': 'CHN-X'}, headers=headers).status_code == 400

    upd = client.put(f"/api/channels/{ch['id']}", json={'isActive': False, 'description': 'paused'}, headers=headers)
    assert upd.get_json()['isActive'] is False
    assert client.put(f"/api/channels/{ch['id']}", json={'name': ''}, headers=headers).status_code == 400
    assert client.get('/api/channels/999999', headers=headers).status_code == 404

    listing = client.get('/api/channels?search=CHN-API', headers=headers).get_json()
    assert [c['code'] for c in listing['items']] == ['CHN-API']
    # inactive channels drop out of the catalog lookup
    lookup = client.get('/api/catalogs/channels', headers=headers).get_json()['channels']
    assert 'CHN-API' not in [c['code'] for c in lookup]


def test_read_permission_cannot_write(client, app_instance):
    headers = auth_headers(app_instance, ['CATALOG.READ'])
    resp = client.post('/api/catalogs', json={'code': 'CAT-RO', 'name': 'x'}, headers=headers)
    assert resp.status_code == 403
