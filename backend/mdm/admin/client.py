"""HTTP client used by the admin screens.

Wraps a requests.Session with bearer auth and maps non-2xx responses onto
ApiError carrying the server's error detail verbatim.
"""
from __future__ import annotations
import logging
from typing import Any, Dict, Optional

import requests

log = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0


class ApiError(Exception):
    def __init__(self, status: int, message: str):
        self.status = status
        self.message = message
        super().__init__(f'HTTP {status}: {message}')


def _error_detail(resp) -> str:
    try:
        body = resp.json()
    except ValueError:
        return resp.text or f'HTTP {resp.status_code}'
    if isinstance(body, dict):
        err = body.get('error')
        if isinstance(err, dict) and err.get('detail'):
            return err['detail']
        if isinstance(err, str):
            return err
        if body.get('message'):
            return body['message']
    return f'HTTP {resp.status_code}'


class ApiClient:

    def __init__(self, base_url: str = '', token: Optional[str] = None,
                 session: Optional[requests.Session] = None, timeout: float = DEFAULT_TIMEOUT):
        self.base_url = base_url.rstrip('/')
        self.token = token
        self.session = session or requests.Session()
        self.timeout = timeout

    def request(self, method: str, path: str, params: Optional[Dict[str, Any]] = None,
                json: Any = None, timeout: Optional[float] = None) -> Any:
        headers = {'Accept': 'application/json'}
        if self.token:
            headers['Authorization'] = f'Bearer {self.token}'
        resp = self.session.request(method, f'{self.base_url}{path}', params=params, json=json,
                                    headers=headers, timeout=timeout or self.timeout)
        if resp.status_code >= 400:
            detail = _error_detail(resp)
            log.info('%s %s failed: %s %s', method, path, resp.status_code, detail)
            raise ApiError(resp.status_code, detail)
        if not resp.content:
            return {}
        return resp.json()

    def get(self, path: str, params=None, timeout=None):
        return self.request('GET', path, params=params, timeout=timeout)

    def post(self, path: str, json=None, params=None):
        return self.request('POST', path, params=params, json=json)

    def put(self, path: str, json=None):
        return self.request('PUT', path, json=json)

    def delete(self, path: str):
        return self.request('DELETE', path)

    def login(self, email: str, password: str) -> str:
        self.token = self.post('/iam/auth/login', json={'email': email, 'password': password})['access_token']
        return self.token

    # --- screens ---

    def list_products(self, **params):
        return self.get('/api/products', params=params)

    def get_product(self, product_id: str, timeout: Optional[float] = None):
        return self.get(f'/api/products/{product_id}', timeout=timeout)

    def catalog_products(self, catalog_id: int, page: int = 1, page_size: int = 20, **params):
        return self.get(f'/api/catalogproduct/catalog/{catalog_id}/products',
                        params=dict(params, page=page, pageSize=page_size))

    def get_tree(self, include_compliance: bool = True, include_inactive: bool = False):
        return self.get('/api/tree', params={'includeCompliance': str(include_compliance).lower(),
                                             'includeInactive': str(include_inactive).lower()})

    def create_node(self, node_type: str, name: str, code: str, parent_id=None, properties=None):
        return self.post('/api/tree/create-node', json={
            'nodeType': node_type, 'name': name, 'code': code,
            'parentId': parent_id, 'properties': properties or {},
        })

    def bulk_tree_operation(self, operation: str, node_ids):
        return self.post('/api/tree/bulk-operations', json={'operation': operation, 'nodeIds': list(node_ids)})

    def list_jobs(self, limit: int = 50, **params):
        return self.get('/api/catalogmanagement/jobs', params=dict(params, limit=limit))['jobs']

    def list_workflow_jobs(self, limit: int = 50):
        return self.get('/api/catalogmanagement/workflow-jobs', params={'limit': limit})['jobs']
