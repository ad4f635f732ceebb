"""Product master data: validation, persistence and change fan-out.

Blueprints call the functions here and translate the exceptions into HTTP
statuses (DuplicateSkuError -> 409, ProductValidationError -> 400).
After every committed write the fan-out helpers push the change to the
business log, the real-time stream, the outbox and the product cache, each
independently and best-effort.
"""
from __future__ import annotations
from typing import Any, Dict, List, Optional, Tuple

from flask import current_app
from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError

from mdm import get_service
from mdm.models.product import Product
from mdm.models.catalog import CatalogProduct
from mdm.services.side_effects import best_effort


class ProductValidationError(ValueError):
    def __init__(self, errors: List[str]):
        self.errors = errors
        super().__init__('Product validation failed: ' + '; '.join(errors))


class DuplicateSkuError(ValueError):
    def __init__(self, sku: str):
        self.sku = sku
        super().__init__(f"Product with SKU '{sku}' already exists")


# payload key -> model attribute
FIELD_MAP = {
    'sku': 'sku',
    'name': 'name',
    'description': 'description',
    'longDescription': 'long_description',
    'type': 'type',
    'class': 'product_class',
    'subtype': 'subtype',
    'basePrice': 'base_price',
    'costPrice': 'cost_price',
    'available': 'available',
    'webDisplay': 'web_display',
    'licenseRequired': 'license_required',
    'contractItem': 'contract_item',
    'seatBasedPricing': 'seat_based_pricing',
    'canBeFulfilled': 'can_be_fulfilled',
    'avaTaxCode': 'ava_tax_code',
    'slug': 'slug',
    'status': 'status',
}
NUMBER_FIELDS = {'base_price', 'cost_price'}
BOOL_FIELDS = {'available', 'web_display', 'license_required', 'contract_item', 'seat_based_pricing', 'can_be_fulfilled'}

# Changes to these keep an active product's cached copy stale
SIGNIFICANT_FIELDS = (
    'name', 'description', 'type', 'basePrice', 'costPrice', 'webDisplay', 'canBeFulfilled',
    'contractItem', 'licenseRequired', 'seatBasedPricing', 'avaTaxCode', 'slug',
    'longDescription', 'available',
)

CACHE_SYNC = 'sync'
CACHE_REMOVE = 'remove'


def product_dto(p: Product) -> Dict[str, Any]:
    return {
        'id': p.id,
        'sku': p.sku,
        'name': p.name,
        'description': p.description,
        'longDescription': p.long_description,
        'type': p.type,
        'class': p.product_class,
        'subtype': p.subtype,
        'basePrice': p.base_price,
        'costPrice': p.cost_price,
        'available': p.available,
        'webDisplay': p.web_display,
        'licenseRequired': p.license_required,
        'contractItem': p.contract_item,
        'seatBasedPricing': p.seat_based_pricing,
        'canBeFulfilled': p.can_be_fulfilled,
        'avaTaxCode': p.ava_tax_code,
        'slug': p.slug,
        'status': p.status,
        'createdBy': p.created_by,
        'updatedBy': p.updated_by,
        'createdAt': p.created_at.isoformat() if p.created_at else None,
        'updatedAt': p.updated_at.isoformat() if p.updated_at else None,
    }


def _coerce(data: Dict[str, Any]) -> Tuple[Dict[str, Any], List[str]]:
    """Map provided payload keys onto model attributes; collect type errors."""
    values: Dict[str, Any] = {}
    errors: List[str] = []
    for key, attr in FIELD_MAP.items():
        if key not in data:
            continue
        raw = data[key]
        if attr in NUMBER_FIELDS:
            if raw is None or raw == '':
                values[attr] = None
                continue
            try:
                values[attr] = float(raw)
            except (TypeError, ValueError):
                errors.append(f'{key} must be a number')
        elif attr in BOOL_FIELDS:
            if not isinstance(raw, bool):
                errors.append(f'{key} must be a boolean')
            else:
                values[attr] = raw
        else:
            values[attr] = raw.strip() if isinstance(raw, str) else raw
    return values, errors


def validate_values(values: Dict[str, Any]) -> List[str]:
    """Business rules over the complete (merged) attribute set."""
    errors = []
    if not values.get('sku'):
        errors.append('SKU is required')
    if not values.get('name'):
        errors.append('Name is required')
    if values.get('status') not in Product.ALL_STATUSES:
        errors.append(f"Status must be one of {', '.join(Product.ALL_STATUSES)}")
    base = values.get('base_price')
    if base is not None and base < 0:
        errors.append('Base price cannot be negative')
    cost = values.get('cost_price')
    if cost is not None and cost < 0:
        errors.append('Cost price cannot be negative')
    if values.get('seat_based_pricing') and not (base or 0) > 0:
        errors.append('Seat-based pricing requires a base price greater than zero')
    if values.get('web_display') and not values.get('slug'):
        errors.append('Web display requires a slug')
    return errors


def _sku_taken(session, sku: str, exclude_id: Optional[str] = None) -> bool:
    stmt = select(Product.id).where(Product.sku == sku)
    if exclude_id:
        stmt = stmt.where(Product.id != exclude_id)
    return session.execute(stmt).first() is not None


def _snapshot(p: Product) -> Dict[str, Any]:
    return {attr: getattr(p, attr) for attr in FIELD_MAP.values()}


def create_product(session, data: Dict[str, Any], user_id: Optional[int]) -> Product:
    values, errors = _coerce(data)
    values.setdefault('status', Product.STATUS_DRAFT)
    if values.get('base_price') is None:
        values['base_price'] = 0.0
    errors += validate_values(dict(_defaults(), **values))
    if errors:
        raise ProductValidationError(errors)
    if _sku_taken(session, values['sku']):
        raise DuplicateSkuError(values['sku'])
    product = Product(**values, created_by=user_id, updated_by=user_id)
    session.add(product)
    try:
        session.commit()
    except IntegrityError:
        # lost a race with a concurrent insert of the same SKU
        session.rollback()
        raise DuplicateSkuError(values['sku'])
    return product


def _defaults() -> Dict[str, Any]:
    return {'available': True, 'web_display': False, 'license_required': False, 'contract_item': False,
            'seat_based_pricing': False, 'can_be_fulfilled': True}


def update_product(session, product: Product, data: Dict[str, Any], user_id: Optional[int]) -> Tuple[Dict[str, Any], Dict[str, Any]]:
    """Partial update of the provided fields. Returns (after, before) DTOs."""
    before = product_dto(product)
    values, errors = _coerce(data)
    if 'base_price' in values and values['base_price'] is None:
        errors.append('basePrice cannot be null')
    merged = dict(_snapshot(product), **values)
    errors += validate_values(merged)
    if errors:
        raise ProductValidationError(errors)
    if 'sku' in values and values['sku'] != product.sku and _sku_taken(session, values['sku'], product.id):
        raise DuplicateSkuError(values['sku'])
    for attr, val in values.items():
        setattr(product, attr, val)
    product.updated_by = user_id
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        raise DuplicateSkuError(values.get('sku', product.sku))
    return product_dto(product), before


def delete_product(session, product: Product) -> Dict[str, Any]:
    dto = product_dto(product)
    for link in session.execute(select(CatalogProduct).where(CatalogProduct.product_id == product.id)).scalars():
        session.delete(link)
    session.delete(product)
    session.commit()
    return dto


def significant_changes(before: Dict[str, Any], after: Dict[str, Any]) -> List[str]:
    return [k for k in SIGNIFICANT_FIELDS if before.get(k) != after.get(k)]


def cache_action(was_status: Optional[str], now_status: str, significant: bool) -> Optional[str]:
    """Decide what the product cache needs after an update."""
    was_active = was_status == Product.STATUS_ACTIVE
    is_active = now_status == Product.STATUS_ACTIVE
    if is_active and (not was_active or significant):
        return CACHE_SYNC
    if was_active and not is_active:
        return CACHE_REMOVE
    return None


# ---------------- Fan-out after committed writes ---------------- #

def after_create(dto: Dict[str, Any], user_id: Optional[int]):
    details = f"Product {dto['sku']} ({dto['name']}) created by user {user_id}"
    best_effort('business-log', current_app.logger.info, 'Business Event: ProductCreated - %s', details)
    best_effort('realtime', get_service('realtime').stream_business_event, 'ProductCreated', details)
    best_effort('message', get_service('messages').publish_created, dto)
    if dto['status'] == Product.STATUS_ACTIVE:
        best_effort('cache-sync', get_service('product_cache').sync_active_product, dto)


def after_update(dto: Dict[str, Any], before: Dict[str, Any], user_id: Optional[int]):
    realtime = get_service('realtime')
    if before['status'] != dto['status']:
        best_effort('realtime', realtime.stream_workflow_transition, dto['sku'], before['status'], dto['status'], user_id)
        if dto['status'] == Product.STATUS_ACTIVE:
            best_effort('realtime', realtime.stream_product_launch, dto['sku'])
    best_effort('message', get_service('messages').publish_updated, dto, before)
    action = cache_action(before['status'], dto['status'], bool(significant_changes(before, dto)))
    cache = get_service('product_cache')
    if action == CACHE_SYNC:
        best_effort('cache-sync', cache.sync_active_product, dto)
    elif action == CACHE_REMOVE:
        best_effort('cache-remove', cache.remove_product, dto['id'])


def after_delete(dto: Dict[str, Any], user_id: Optional[int]):
    best_effort('business-log', current_app.logger.info, 'Business Event: ProductDeleted - %s',
                f"Product {dto['sku']} deleted by user {user_id}")
    best_effort('message', get_service('messages').publish_deleted, dto)
    if dto['status'] == Product.STATUS_ACTIVE:
        best_effort('cache-remove', get_service('product_cache').remove_product, dto['id'])


# ---------------- Read models ---------------- #

def analytics_summary(session) -> Dict[str, Any]:
    by_status = dict(session.execute(select(Product.status, func.count()).group_by(Product.status)).all())
    by_type = dict(session.execute(
        select(func.coalesce(Product.type, 'unspecified'), func.count()).group_by(Product.type)
    ).all())
    total = sum(by_status.values())
    return {
        'totalProducts': total,
        'byStatus': {s: by_status.get(s, 0) for s in Product.ALL_STATUSES},
        'byType': by_type,
        'webDisplayCount': session.execute(select(func.count()).where(Product.web_display.is_(True))).scalar_one(),
        'availableCount': session.execute(select(func.count()).where(Product.available.is_(True))).scalar_one(),
    }


def product_types(session) -> List[str]:
    rows = session.execute(
        select(Product.type).where(Product.type.is_not(None), Product.type != '').distinct()
    ).scalars()
    return sorted(rows)
