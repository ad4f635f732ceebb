from tests.test_utils_seed import auth_headers


def test_unknown_path_returns_error_json(client):
    resp = client.get('/non-existent-path')
    # Flask default 404 should be wrapped by error handler
    assert resp.status_code == 404
    body = resp.get_json()
    assert body['error']['status'] == 404
    assert 'detail' in body['error']


def test_internal_error_shape(client, app_instance, monkeypatch):
    headers = auth_headers(app_instance, ['DICT.READ'])
    import mdm.routes.data_dictionary as dict_mod

    class BoomSession:
        def execute(self, *a, **k):
            raise RuntimeError('explode')

    monkeypatch.setattr(dict_mod, 'get_db', lambda: BoomSession())
    resp = client.get('/api/data-dictionary/categories', headers=headers)
    assert resp.status_code == 500
    body = resp.get_json()
    assert body['error']['status'] == 500
    assert body['error']['title'] == 'Internal Server Error'
    assert 'explode' not in body['error']['detail']


def test_health_endpoints(client):
    assert client.get('/healthz').get_json() == {'status': 'ok'}
    body = client.get('/api/products/health').get_json()
    assert body['status'] == 'healthy'
