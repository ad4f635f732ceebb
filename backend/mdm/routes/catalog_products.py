from __future__ import annotations
from flask import Blueprint, request, abort
from sqlalchemy import select, or_
from sqlalchemy.exc import IntegrityError
from mdm import get_db
from mdm.models.catalog import Catalog, CatalogProduct
from mdm.models.product import Product
from mdm.decorators.auth import require_permissions
from mdm.decorators.audit import audit_log
from mdm.services.policy import current_user_id
from mdm.services.pricing import calculate_final_price, pricing_badge, normalize_pricing, infer_mode
from mdm.utils.listing import apply_pagination, make_cached_list_response, handle_conditional, latest_of, iso
from mdm.utils.filters import apply_filters
from mdm.utils.validation import parse_bool, optional_number, require_fields

catalog_products_bp = Blueprint('catalog_products', __name__)


def _cp_json(cp: CatalogProduct):
    live = cp.product
    base_price = live.base_price if live is not None else cp.product_base_price
    return {
        'id': cp.id,
        'catalogId': cp.catalog_id,
        'productId': cp.product_id,
        'isActive': cp.is_active,
        'pricingMode': cp.pricing_mode,
        'overridePrice': cp.override_price,
        'discountPercentage': cp.discount_percentage,
        'finalPrice': calculate_final_price(base_price, cp.override_price, cp.discount_percentage, cp.pricing_mode),
        'pricingBadge': pricing_badge(cp.override_price, cp.discount_percentage, cp.pricing_mode),
        'isFeatured': cp.is_featured,
        'minQuantity': cp.min_quantity,
        'maxQuantity': cp.max_quantity,
        'fulfillmentMethod': cp.fulfillment_method,
        'supportLevel': cp.support_level,
        'customName': cp.custom_name,
        'localSkuCode': cp.local_sku_code,
        'productSku': live.sku if live is not None else cp.product_sku,
        'productName': live.name if live is not None else cp.product_name,
        'productBasePrice': base_price,
        'localeWorkflowStatus': cp.locale_workflow_status,
        'contentWorkflowStatus': cp.content_workflow_status,
        'localizedContentCount': cp.localized_content_count,
        'createdAt': iso(cp.created_at),
        'updatedAt': iso(cp.updated_at),
    }


def _int_arg(name: str, required: bool = True):
    raw = request.args.get(name)
    if raw in (None, ''):
        if required:
            abort(400, description=f'{name} required')
        return None
    try:
        return int(raw)
    except ValueError:
        abort(400, description=f'{name} must be int')


def _apply_pricing(data: dict, cp: CatalogProduct):
    """Write exactly one pricing mode; untouched when the payload names none."""
    if not any(k in data for k in ('pricingMode', 'overridePrice', 'discountPercentage')):
        return
    override = optional_number(data, 'overridePrice')
    discount = optional_number(data, 'discountPercentage')
    mode = data.get('pricingMode') or None
    try:
        cp.pricing_mode, cp.override_price, cp.discount_percentage = normalize_pricing(mode, override, discount)
    except ValueError as e:
        abort(400, description=str(e))


def _apply_attributes(data: dict, cp: CatalogProduct):
    if 'isActive' in data:
        cp.is_active = bool(data['isActive'])
    if 'isFeatured' in data:
        cp.is_featured = bool(data['isFeatured'])
    for key, attr in (('minQuantity', 'min_quantity'), ('maxQuantity', 'max_quantity')):
        if key in data:
            val = optional_number(data, key)
            setattr(cp, attr, int(val) if val is not None else None)
    if cp.min_quantity is not None and cp.max_quantity is not None and cp.min_quantity > cp.max_quantity:
        abort(400, description='minQuantity must not exceed maxQuantity')
    for key, attr in (('fulfillmentMethod', 'fulfillment_method'), ('supportLevel', 'support_level'),
                      ('customName', 'custom_name'), ('localSkuCode', 'local_sku_code')):
        if key in data:
            setattr(cp, attr, data[key])


def _find_pair(catalog_id, product_id):
    return get_db().execute(
        select(CatalogProduct).where(CatalogProduct.catalog_id==catalog_id, CatalogProduct.product_id==product_id)
    ).scalar_one_or_none()


def _snapshot_product(cp: CatalogProduct, p: Product):
    cp.product_sku = p.sku
    cp.product_name = p.name
    cp.product_base_price = p.base_price


@catalog_products_bp.get('/catalog/<int:catalog_id>/products')
@require_permissions('CATALOG.READ')
def list_catalog_products(catalog_id: int):
    session = get_db()
    if not session.get(Catalog, catalog_id):
        abort(404, description=f'Catalog {catalog_id} not found')
    q = session.query(CatalogProduct).filter(CatalogProduct.catalog_id==catalog_id)
    filter_specs = {
        'searchTerm': {'op': lambda qu, v: qu.filter(or_(
            CatalogProduct.product_sku.ilike(f'%{v}%'), CatalogProduct.product_name.ilike(f'%{v}%'),
            CatalogProduct.custom_name.ilike(f'%{v}%'), CatalogProduct.local_sku_code.ilike(f'%{v}%')))},
        'isActive': {'coerce': parse_bool, 'op': lambda qu, v: qu.filter(CatalogProduct.is_active.is_(v))},
    }
    q = apply_filters(q, filter_specs, request.args)
    q = q.order_by(CatalogProduct.product_name.asc(), CatalogProduct.id.asc())
    paged_q, total, page, limit = apply_pagination(q, limit_arg='pageSize')
    rows = paged_q.all()
    latest_ts = latest_of(rows)
    resp, etag = make_cached_list_response([_cp_json(cp) for cp in rows], total, page, limit, latest_ts)
    cond = handle_conditional(etag, latest_ts)
    if cond:
        return cond
    return resp


@catalog_products_bp.get('/product/<product_id>/catalogs')
@require_permissions('CATALOG.READ')
def list_product_catalogs(product_id: str):
    rows = get_db().execute(
        select(CatalogProduct, Catalog).join(Catalog, Catalog.id==CatalogProduct.catalog_id)
        .where(CatalogProduct.product_id==product_id).order_by(Catalog.priority, Catalog.id)
    ).all()
    return {'items': [
        dict(_cp_json(cp), catalogCode=c.code, catalogName=c.name) for cp, c in rows
    ]}


@catalog_products_bp.get('/exists')
@require_permissions('CATALOG.READ')
def pair_exists():
    catalog_id = _int_arg('catalogId')
    product_id = request.args.get('productId')
    if not product_id:
        abort(400, description='productId required')
    return {'exists': _find_pair(catalog_id, product_id) is not None}


@catalog_products_bp.get('/stats')
@require_permissions('CATALOG.READ')
def catalog_stats():
    catalog_id = _int_arg('catalogId')
    rows = get_db().execute(select(CatalogProduct).where(CatalogProduct.catalog_id==catalog_id)).scalars().all()
    active = sum(1 for cp in rows if cp.is_active)
    modes = [cp.pricing_mode or infer_mode(cp.override_price, cp.discount_percentage) for cp in rows]
    return {
        'catalogId': catalog_id,
        'totalProducts': len(rows),
        'activeProducts': active,
        'inactiveProducts': len(rows) - active,
        'featuredProducts': sum(1 for cp in rows if cp.is_featured),
        'withOverridePrice': modes.count(CatalogProduct.PRICING_OVERRIDE),
        'withDiscount': modes.count(CatalogProduct.PRICING_DISCOUNT),
    }


@catalog_products_bp.get('/<int:cp_id>')
@require_permissions('CATALOG.READ')
def get_catalog_product(cp_id: int):
    return _cp_json(_load(cp_id))


@catalog_products_bp.post('')
@require_permissions('CATALOG.MANAGE')
@audit_log('CATALOGPRODUCT.CREATE', entity='CatalogProduct', entity_id_key='id', meta_keys=['catalogId', 'productId', 'pricingMode'])
def create_catalog_product():
    data = request.get_json(silent=True) or {}
    require_fields(data, 'catalogId', 'productId')
    session = get_db()
    catalog = session.get(Catalog, data['catalogId'])
    if not catalog:
        abort(404, description=f"Catalog {data['catalogId']} not found")
    product = session.get(Product, data['productId'])
    if not product:
        abort(404, description=f"Product with ID '{data['productId']}' not found")
    if _find_pair(catalog.id, product.id):
        abort(409, description='Product already exists in catalog')
    cp = CatalogProduct(catalog_id=catalog.id, product_id=product.id, is_active=bool(data.get('isActive', True)),
                        pricing_mode=CatalogProduct.PRICING_NONE, discount_percentage=0.0, is_featured=False,
                        localized_content_count=0, created_by=current_user_id())
    _snapshot_product(cp, product)
    _apply_attributes(data, cp)
    _apply_pricing(data, cp)
    session.add(cp)
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        abort(409, description='Product already exists in catalog')
    return _cp_json(cp), 201


@catalog_products_bp.put('/<int:cp_id>')
@require_permissions('CATALOG.MANAGE')
@audit_log('CATALOGPRODUCT.UPDATE', entity='CatalogProduct', entity_id_key='id',
           diff_keys=['isActive', 'pricingMode', 'overridePrice', 'discountPercentage'],
           pre_fetch=lambda a, kw: _prefetch(kw.get('cp_id')))
def update_catalog_product(cp_id: int):
    cp = _load(cp_id)
    data = request.get_json(silent=True) or {}
    _apply_attributes(data, cp)
    _apply_pricing(data, cp)
    get_db().commit()
    return _cp_json(cp)


@catalog_products_bp.delete('/catalog/<int:catalog_id>/product/<product_id>')
@require_permissions('CATALOG.MANAGE')
@audit_log('CATALOGPRODUCT.DELETE', entity='CatalogProduct', entity_id_key='id')
def delete_catalog_product(catalog_id: int, product_id: str):
    session = get_db()
    cp = _find_pair(catalog_id, product_id)
    if not cp:
        abort(404, description='Product not found in catalog')
    cp_id = cp.id
    session.delete(cp)
    session.commit()
    return {'message': 'Product removed from catalog', 'id': cp_id}


@catalog_products_bp.post('/bulk-add')
@require_permissions('CATALOG.MANAGE')
@audit_log('CATALOGPRODUCT.BULK_ADD', entity='Catalog', entity_id_key='catalogId',
           meta_builder=lambda data, rv, a, kw: {'added': len(data.get('added', []))})
def bulk_add():
    data = request.get_json(silent=True) or {}
    require_fields(data, 'catalogId')
    product_ids = data.get('productIds')
    if not isinstance(product_ids, list) or not product_ids:
        abort(400, description='productIds must be a non-empty list')
    session = get_db()
    catalog = session.get(Catalog, data['catalogId'])
    if not catalog:
        abort(404, description=f"Catalog {data['catalogId']} not found")
    added, skipped, not_found = [], [], []
    user_id = current_user_id()
    for pid in dict.fromkeys(product_ids):
        product = session.get(Product, pid)
        if product is None:
            not_found.append(pid)
            continue
        if _find_pair(catalog.id, pid):
            skipped.append(pid)
            continue
        cp = CatalogProduct(catalog_id=catalog.id, product_id=pid, is_active=bool(data.get('isActive', True)),
                            pricing_mode=CatalogProduct.PRICING_NONE, discount_percentage=0.0,
                            is_featured=False, localized_content_count=0, created_by=user_id)
        _snapshot_product(cp, product)
        session.add(cp)
        session.flush()
        added.append(pid)
    session.commit()
    return {'catalogId': catalog.id, 'added': added, 'skipped': skipped, 'notFound': not_found}


@catalog_products_bp.post('/catalog/<int:catalog_id>/bulk-remove')
@require_permissions('CATALOG.MANAGE')
@audit_log('CATALOGPRODUCT.BULK_REMOVE', entity='Catalog', entity_id_key='catalogId',
           meta_builder=lambda data, rv, a, kw: {'removed': data.get('removed', 0)})
def bulk_remove(catalog_id: int):
    data = request.get_json(silent=True) or {}
    product_ids = data.get('productIds')
    if not isinstance(product_ids, list) or not product_ids:
        abort(400, description='productIds must be a non-empty list')
    session = get_db()
    rows = session.execute(
        select(CatalogProduct).where(CatalogProduct.catalog_id==catalog_id, CatalogProduct.product_id.in_(product_ids))
    ).scalars().all()
    for cp in rows:
        session.delete(cp)
    session.commit()
    return {'catalogId': catalog_id, 'removed': len(rows)}


@catalog_products_bp.post('/<int:cp_id>/activate')
@require_permissions('CATALOG.MANAGE')
@audit_log('CATALOGPRODUCT.ACTIVATE', entity='CatalogProduct', entity_id_key='id')
def activate(cp_id: int):
    return _set_active(cp_id, True)


@catalog_products_bp.post('/<int:cp_id>/deactivate')
@require_permissions('CATALOG.MANAGE')
@audit_log('CATALOGPRODUCT.DEACTIVATE', entity='CatalogProduct', entity_id_key='id')
def deactivate(cp_id: int):
    return _set_active(cp_id, False)


def _set_active(cp_id: int, active: bool):
    cp = _load(cp_id)
    cp.is_active = active
    get_db().commit()
    return _cp_json(cp)


def _load(cp_id: int) -> CatalogProduct:
    cp = get_db().get(CatalogProduct, cp_id)
    if not cp:
        abort(404, description=f'Catalog product {cp_id} not found')
    return cp


def _prefetch(cp_id):
    cp = get_db().get(CatalogProduct, cp_id) if cp_id is not None else None
    if not cp:
        return {}
    return {'isActive': cp.is_active, 'pricingMode': cp.pricing_mode,
            'overridePrice': cp.override_price, 'discountPercentage': cp.discount_percentage}

