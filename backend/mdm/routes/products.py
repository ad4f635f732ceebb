from __future__ import annotations
from functools import wraps
from flask import Blueprint, request, abort, current_app
from werkzeug.exceptions import HTTPException
from sqlalchemy import select, or_
from mdm import get_db
from mdm.models.product import Product
from mdm.decorators.auth import require_permissions
from mdm.decorators.audit import audit_log
from mdm.services.policy import current_user_id
from mdm.services import products as svc
from mdm.utils.listing import apply_pagination, make_cached_list_response, make_cached_item_response, handle_conditional, latest_of
from mdm.utils.filters import apply_filters
from mdm.utils.sorting import apply_sort_by
from mdm.utils.validation import parse_bool

products_bp = Blueprint('products', __name__)

SORT_FIELDS = {
    'name': Product.name,
    'sku': Product.sku,
    'status': Product.status,
    'type': Product.type,
    'basePrice': Product.base_price,
    'createdAt': Product.created_at,
    'updatedAt': Product.updated_at,
}


def product_errors(fn):
    """Map service failures of product writes onto 409 / 400.

    Unexpected errors surface as 400 with their message.
    """
    @wraps(fn)
    def wrapper(*args, **kwargs):
        try:
            return fn(*args, **kwargs)
        except HTTPException:
            raise
        except svc.DuplicateSkuError as e:
            abort(409, description=str(e))
        except svc.ProductValidationError as e:
            abort(400, description=str(e))
        except Exception as e:  # surfaced to the caller, see DESIGN.md
            current_app.logger.exception('Product operation failed')
            get_db().rollback()
            abort(400, description=str(e))
    return wrapper


def _filtered_query():
    session = get_db()
    q = session.query(Product)
    filter_specs = {
        'search': {'op': lambda qu, v: qu.filter(or_(
            Product.name.ilike(f'%{v}%'), Product.description.ilike(f'%{v}%'), Product.sku.ilike(f'%{v}%')))},
        'status': {'op': lambda qu, v: qu.filter(Product.status==v), 'validate': lambda v: v in Product.ALL_STATUSES},
        'type': {'op': lambda qu, v: qu.filter(Product.type==v)},
        'available': {'coerce': parse_bool, 'op': lambda qu, v: qu.filter(Product.available.is_(v))},
        'webDisplay': {'coerce': parse_bool, 'op': lambda qu, v: qu.filter(Product.web_display.is_(v))},
        'licenseRequired': {'coerce': parse_bool, 'op': lambda qu, v: qu.filter(Product.license_required.is_(v))},
        'contractItem': {'coerce': parse_bool, 'op': lambda qu, v: qu.filter(Product.contract_item.is_(v))},
    }
    q = apply_filters(q, filter_specs, request.args)
    return apply_sort_by(q, request.args.get('sortBy'), request.args.get('sortOrder'), SORT_FIELDS, 'name', Product.id)


def _list_response():
    paged_q, total, page, limit = apply_pagination(_filtered_query())
    rows = paged_q.all()
    latest_ts = latest_of(rows)
    resp, etag = make_cached_list_response([svc.product_dto(p) for p in rows], total, page, limit, latest_ts)
    return resp, etag, latest_ts


@products_bp.get('')
@require_permissions('PRODUCT.READ')
def list_products():
    resp, etag, latest_ts = _list_response()
    cond = handle_conditional(etag, latest_ts)
    if cond:
        return cond
    return resp


@products_bp.route('', methods=['HEAD'])
@require_permissions('PRODUCT.READ')
def head_products():
    resp, etag, latest_ts = _list_response()
    cond = handle_conditional(etag, latest_ts)
    if cond:
        cond.set_data(b'')
        return cond
    resp.set_data(b'')
    return resp


@products_bp.get('/health')
def products_health():
    return {'status': 'healthy', 'service': 'product-mdm'}


@products_bp.get('/analytics/summary')
@require_permissions('PRODUCT.READ')
def analytics_summary():
    return svc.analytics_summary(get_db())


@products_bp.get('/types/list')
@require_permissions('PRODUCT.READ')
def list_types():
    return {'types': svc.product_types(get_db())}


@products_bp.route('/<product_id>', methods=['GET', 'HEAD'])
@require_permissions('PRODUCT.READ')
def get_product(product_id: str):
    p = _load(product_id)
    resp = make_cached_item_response(svc.product_dto(p), p.updated_at)
    if request.method == 'HEAD':
        resp.set_data(b'')
    return resp


@products_bp.post('')
@require_permissions('PRODUCT.MANAGE')
@audit_log('PRODUCT.CREATE', entity='Product', entity_id_key='id', meta_keys=['sku', 'status'])
@product_errors
def create_product():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        abort(400, description='JSON object body required')
    user_id = current_user_id()
    product = svc.create_product(get_db(), data, user_id)
    dto = svc.product_dto(product)
    svc.after_create(dto, user_id)
    return dto, 201


@products_bp.put('/<product_id>')
@require_permissions('PRODUCT.MANAGE')
@audit_log('PRODUCT.UPDATE', entity='Product', entity_id_key='id', diff_keys=['status', 'basePrice', 'name', 'sku'],
           pre_fetch=lambda a, kw: _prefetch_product(kw.get('product_id')))
@product_errors
def update_product(product_id: str):
    session = get_db()
    p = _load(product_id)
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        abort(400, description='JSON object body required')
    user_id = current_user_id()
    dto, before = svc.update_product(session, p, data, user_id)
    svc.after_update(dto, before, user_id)
    return dto


@products_bp.delete('/<product_id>')
@require_permissions('PRODUCT.MANAGE')
@audit_log('PRODUCT.DELETE', entity='Product', entity_id_key='id')
@product_errors
def delete_product(product_id: str):
    p = _load(product_id)
    dto = svc.delete_product(get_db(), p)
    svc.after_delete(dto, current_user_id())
    return {'message': 'Product deleted successfully', 'id': dto['id']}


def _load(product_id: str) -> Product:
    p = get_db().execute(select(Product).where(Product.id==product_id)).scalar_one_or_none()
    if not p:
        abort(404, description=f"Product with ID '{product_id}' not found")
    return p


def _prefetch_product(product_id: str):
    p = get_db().execute(select(Product).where(Product.id==product_id)).scalar_one_or_none()
    if not p:
        return {}
    return {'status': p.status, 'basePrice': p.base_price, 'name': p.name, 'sku': p.sku}
