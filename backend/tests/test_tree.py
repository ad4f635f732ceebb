import pytest

from mdm.routes.tree import parse_node_id, language_from_code
from tests.test_utils_seed import auth_headers

PERMS = ['TREE.MANAGE']


def _create(client, headers, **body):
    resp = client.post('/api/tree/create-node', json=body, headers=headers)
    assert resp.status_code == 201, resp.get_json()
    return resp.get_json()


def _find(tree, node_id):
    stack = list(tree)
    while stack:
        node = stack.pop()
        if node['id'] == node_id:
            return node
        stack.extend(node['children'])
    return None


def test_parse_node_id():
    assert parse_node_id('country_12') == ('country', 12)
    assert parse_node_id('locale_3') == ('locale', 3)
    for bad in ('country', 'planet_1', 'region_x', '12'):
        with pytest.raises(ValueError):
            parse_node_id(bad)
    assert language_from_code('pt-BR') == 'pt'
    assert language_from_code('EN_us') == 'en'


def test_build_region_country_locale(client, app_instance):
    headers = auth_headers(app_instance, PERMS)
    region = _create(client, headers, nodeType='region', name='Tree Region', code='TRG')
    country = _create(client, headers, nodeType='country', name='Treeland', code='TL', parentId=region['id'],
                      properties={'continent': 'Europe', 'supportsShipping': False})
    assert country['metadata']['supportsShipping'] is False
    primary = _create(client, headers, nodeType='locale', name='Treelandic', code='tl_TL', parentId=country['id'],
                      properties={'isPrimary': True, 'currency': 'EUR'})
    assert primary['metadata']['isPrimary'] is True
    assert primary['metadata']['priority'] == 1
    assert primary['metadata']['languageCode'] == 'tl'
    second = _create(client, headers, nodeType='locale', name='English (Treeland)', code='en_TL',
                     parentId=country['id'])
    assert second['metadata']['isPrimary'] is False
    assert second['metadata']['currency'] == 'USD'

    body = client.get('/api/tree', headers=headers).get_json()
    node = _find(body['tree'], country['id'])
    assert [c['metadata']['code'] for c in node['children']] == ['tl_TL', 'en_TL']
    # no stored profile: screening fills in the compliance fields
    assert node['metadata']['complianceRisk'] == 'Low'
    assert body['totalLocales'] >= 2

    bare = client.get('/api/tree?includeCompliance=false', headers=headers).get_json()
    assert 'complianceRisk' not in _find(bare['tree'], country['id'])['metadata']
    assert client.get('/api/tree?includeInactive=perhaps', headers=headers).status_code == 400


def test_create_node_errors(client, app_instance):
    headers = auth_headers(app_instance, PERMS)
    region = _create(client, headers, nodeType='region', name='Err Region', code='TERR')
    country = _create(client, headers, nodeType='country', name='Errland', code='TE', parentId=region['id'])
    _create(client, headers, nodeType='locale', name='Errish', code='te_TE', parentId=country['id'])

    def post(**body):
        return client.post('/api/tree/create-node', json=body, headers=headers)

    assert post(nodeType='region', name='x').status_code == 400
    assert post(nodeType='planet', name='x', code='PX').status_code == 400
    assert post(nodeType='region', name='Again', code='TERR').status_code == 409
    assert post(nodeType='country', name='x', code='TX').status_code == 400
    assert post(nodeType='country', name='x', code='TX', parentId=country['id']).status_code == 400
    assert post(nodeType='country', name='x', code='TX', parentId='region_999999').status_code == 404
    # locale codes collide case-insensitively
    dup = post(nodeType='locale', name='x', code='TE_te', parentId=country['id'])
    assert dup.status_code == 409
    # bare numeric parent ids are accepted
    numeric = post(nodeType='country', name='Numland', code='TN', parentId=region['id'].split('_')[1])
    assert numeric.status_code == 201


def test_get_and_update_node(client, app_instance):
    headers = auth_headers(app_instance, PERMS)
    region = _create(client, headers, nodeType='region', name='Upd Region', code='TUPD')
    country = _create(client, headers, nodeType='country', name='Updland', code='TU', parentId=region['id'])
    first = _create(client, headers, nodeType='locale', name='Updish', code='tu_TU', parentId=country['id'],
                    properties={'isPrimary': True})
    other = _create(client, headers, nodeType='locale', name='Other', code='en_TU', parentId=country['id'])

    got = client.get(f"/api/tree/node/{region['id']}", headers=headers)
    assert got.status_code == 200 and got.get_json()['children'][0]['id'] == country['id']
    assert client.get('/api/tree/node/bogus', headers=headers).status_code == 400
    assert client.get('/api/tree/node/locale_999999', headers=headers).status_code == 404

    upd = client.put(f"/api/tree/node/{other['id']}", json={'name': 'English', 'properties': {'isPrimary': True}},
                     headers=headers).get_json()
    assert upd['name'] == 'English' and upd['metadata']['isPrimary'] is True
    node = client.get(f"/api/tree/node/{first['id']}", headers=headers).get_json()
    assert node['metadata']['isPrimary'] is False
    assert client.put(f"/api/tree/node/{country['id']}", json={'name': ''}, headers=headers).status_code == 400
    off = client.put(f"/api/tree/node/{country['id']}", json={'properties': {'isActive': False}}, headers=headers)
    assert off.get_json()['isActive'] is False


def test_bulk_operations(client, app_instance):
    headers = auth_headers(app_instance, PERMS)
    region = _create(client, headers, nodeType='region', name='Bulk Region', code='TBLK')
    country = _create(client, headers, nodeType='country', name='Bulkland', code='TB', parentId=region['id'])
    primary = _create(client, headers, nodeType='locale', name='Bulkish', code='tb_TB', parentId=country['id'],
                      properties={'isPrimary': True})
    extra = _create(client, headers, nodeType='locale', name='Extra', code='en_TB', parentId=country['id'])

    def bulk(operation, ids):
        return client.post('/api/tree/bulk-operations', json={'operation': operation, 'nodeIds': ids}, headers=headers)

    resp = bulk('deactivate', [extra['id'], 'locale_999999', 'nonsense'])
    body = resp.get_json()
    assert body['succeeded'] == 1 and body['failed'] == 2
    assert client.get(f"/api/tree/node/{extra['id']}", headers=headers).get_json()['isActive'] is False
    assert bulk('activate', [extra['id']]).get_json()['succeeded'] == 1

    exported = bulk('export', [country['id']]).get_json()['results'][0]
    assert exported['success'] is True and exported['data']['metadata']['code'] == 'TB'

    body = bulk('delete', [primary['id'], extra['id']]).get_json()
    results = {r['nodeId']: r for r in body['results']}
    assert results[primary['id']]['success'] is False
    assert results[primary['id']]['message'] == 'Cannot delete primary locale'
    assert results[extra['id']]['success'] is True
    assert client.get(f"/api/tree/node/{extra['id']}", headers=headers).status_code == 404
    assert client.get(f"/api/tree/node/{primary['id']}", headers=headers).status_code == 200

    assert bulk('explode', [extra['id']]).status_code == 400
    assert bulk('delete', []).status_code == 400


def test_single_primary_locale_per_country(client, app_instance):
    headers = auth_headers(app_instance, PERMS)
    region = _create(client, headers, nodeType='region', name='Prio Region', code='TPRI')
    country = _create(client, headers, nodeType='country', name='Prioland', code='TP', parentId=region['id'])
    first = _create(client, headers, nodeType='locale', name='Prio One', code='tp_TP', parentId=country['id'],
                    properties={'priority': 1})
    second = _create(client, headers, nodeType='locale', name='Prio Two', code='en_TP', parentId=country['id'],
                     properties={'priority': 1})
    assert second['metadata']['isPrimary'] is True

    node = client.get(f"/api/tree/node/{country['id']}", headers=headers).get_json()
    primaries = [c['id'] for c in node['children'] if c['metadata']['isPrimary']]
    assert primaries == [second['id']]
    assert node['metadata']['defaultLocaleId'] == int(second['id'].split('_')[1])
    demoted = client.get(f"/api/tree/node/{first['id']}", headers=headers).get_json()
    assert demoted['metadata']['isPrimary'] is False and demoted['metadata']['priority'] != 1

    client.put(f"/api/tree/node/{first['id']}", json={'properties': {'priority': 1}}, headers=headers)
    node = client.get(f"/api/tree/node/{country['id']}", headers=headers).get_json()
    assert [c['id'] for c in node['children'] if c['metadata']['isPrimary']] == [first['id']]


def test_bulk_delete_refuses_parents_of_primary_locale(client, app_instance):
    headers = auth_headers(app_instance, PERMS)
    region = _create(client, headers, nodeType='region', name='Hold Region', code='THLD')
    country = _create(client, headers, nodeType='country', name='Holdland', code='TH', parentId=region['id'])
    primary = _create(client, headers, nodeType='locale', name='Holdish', code='th_TH', parentId=country['id'],
                      properties={'isPrimary': True})
    empty = _create(client, headers, nodeType='country', name='Emptyland', code='TQ', parentId=region['id'])

    body = client.post('/api/tree/bulk-operations', json={'operation': 'delete',
                                                          'nodeIds': [country['id'], region['id'], empty['id']]},
                       headers=headers).get_json()
    results = {r['nodeId']: r for r in body['results']}
    assert results[country['id']]['success'] is False
    assert 'th_TH' in results[country['id']]['message']
    assert results[region['id']]['success'] is False
    assert results[empty['id']]['success'] is True
    assert body['succeeded'] == 1
    assert client.get(f"/api/tree/node/{primary['id']}", headers=headers).status_code == 200
    assert client.get(f"/api/tree/node/{empty['id']}", headers=headers).status_code == 404
