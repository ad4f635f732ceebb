from __future__ import annotations
from flask import Blueprint, request, abort
from sqlalchemy import select, or_, update, false
from sqlalchemy.exc import IntegrityError
from mdm import get_db
from mdm.models.catalog import Catalog, Channel
from mdm.models.geo import Region, Currency
from mdm.decorators.auth import require_permissions
from mdm.decorators.audit import audit_log
from mdm.services.policy import current_user_id
from mdm.utils.listing import apply_pagination, make_cached_list_response, make_cached_item_response, handle_conditional, latest_of, iso
from mdm.utils.filters import apply_filters
from mdm.utils.sorting import apply_sort_by
from mdm.utils.validation import validate_status, optional_datetime, require_fields

catalogs_bp = Blueprint('catalogs', __name__)
channels_bp = Blueprint('channels', __name__)

DEFAULT_CURRENCY = 'USD'

SORT_FIELDS = {
    'name': Catalog.name,
    'code': Catalog.code,
    'priority': Catalog.priority,
    'status': Catalog.status,
    'createdAt': Catalog.created_at,
    'updatedAt': Catalog.updated_at,
}


def _catalog_json(c: Catalog):
    return {
        'id': c.id,
        'code': c.code,
        'name': c.name,
        'description': c.description,
        'regionId': c.region_id,
        'regionCode': c.region.code if c.region else None,
        'channelId': c.channel_id,
        'channelCode': c.channel.code if c.channel else None,
        'currencyId': c.currency_id,
        'currencyCode': c.currency.code if c.currency else None,
        'effectiveFrom': iso(c.effective_from),
        'effectiveTo': iso(c.effective_to),
        'priority': c.priority,
        'status': c.status,
        'isActive': c.is_active,
        'isDefault': c.is_default,
        'isCurrentlyEffective': c.is_currently_effective(),
        'isReadyForActivation': c.is_ready_for_activation(),
        'createdAt': iso(c.created_at),
        'updatedAt': iso(c.updated_at),
    }


def _channel_json(ch: Channel):
    return {'id': ch.id, 'code': ch.code, 'name': ch.name, 'description': ch.description, 'isActive': ch.is_active}


def _by_code(model, code):
    return get_db().execute(select(model).where(model.code==code)).scalar_one_or_none()


@catalogs_bp.get('')
@require_permissions('CATALOG.READ')
def list_catalogs():
    session = get_db()
    q = session.query(Catalog)
    region_code = request.args.get('region')
    if region_code and region_code.lower() != 'all':
        region = _by_code(Region, region_code)
        # unknown region matches nothing
        q = q.filter(Catalog.region_id==region.id) if region is not None else q.filter(false())
    filter_specs = {
        'status': {'op': lambda qu, v: qu.filter(Catalog.status==v), 'validate': lambda v: v in Catalog.ALL_STATUSES},
        'channel': {'op': lambda qu, v: qu.filter(Catalog.channel.has(Channel.code==v))},
        'search': {'op': lambda qu, v: qu.filter(or_(Catalog.code.ilike(f'%{v}%'), Catalog.name.ilike(f'%{v}%')))},
    }
    q = apply_filters(q, filter_specs, request.args)
    q = apply_sort_by(q, request.args.get('sortBy'), request.args.get('sortOrder'), SORT_FIELDS, 'priority', Catalog.id)
    paged_q, total, page, limit = apply_pagination(q)
    rows = paged_q.all()
    latest_ts = latest_of(rows)
    resp, etag = make_cached_list_response([_catalog_json(c) for c in rows], total, page, limit, latest_ts)
    cond = handle_conditional(etag, latest_ts)
    if cond:
        return cond
    return resp


@catalogs_bp.get('/channels')
@require_permissions('CATALOG.READ')
def lookup_channels():
    rows = get_db().execute(select(Channel).where(Channel.is_active.is_(True)).order_by(Channel.name)).scalars().all()
    return {'channels': [_channel_json(ch) for ch in rows]}


@catalogs_bp.get('/regions')
@require_permissions('CATALOG.READ')
def lookup_regions():
    rows = get_db().execute(select(Region).where(Region.is_active.is_(True)).order_by(Region.name)).scalars().all()
    return {'regions': [{'id': r.id, 'code': r.code, 'name': r.name} for r in rows]}


@catalogs_bp.get('/currencies')
@require_permissions('CATALOG.READ')
def lookup_currencies():
    rows = get_db().execute(select(Currency).where(Currency.is_active.is_(True)).order_by(Currency.code)).scalars().all()
    return {'currencies': [{'id': c.id, 'code': c.code, 'name': c.name, 'symbol': c.symbol} for c in rows]}


@catalogs_bp.get('/<int:catalog_id>')
@require_permissions('CATALOG.READ')
def get_catalog(catalog_id: int):
    c = _load(catalog_id)
    return make_cached_item_response(_catalog_json(c), c.updated_at)


def _resolve_scope(data, c: Catalog):
    """Apply region/channel/currency references given by id or code."""
    session = get_db()
    if 'regionCode' in data and data['regionCode']:
        region = _by_code(Region, data['regionCode'])
        if region is None:
            abort(400, description=f"Unknown region code '{data['regionCode']}'")
        c.region_id = region.id
    elif 'regionId' in data:
        if data['regionId'] is not None and not session.get(Region, data['regionId']):
            abort(400, description='regionId invalid')
        c.region_id = data['regionId']
    if 'channelCode' in data and data['channelCode']:
        channel = _by_code(Channel, data['channelCode'])
        if channel is None:
            abort(400, description=f"Unknown channel code '{data['channelCode']}'")
        c.channel_id = channel.id
    elif 'channelId' in data:
        if data['channelId'] is not None and not session.get(Channel, data['channelId']):
            abort(400, description='channelId invalid')
        c.channel_id = data['channelId']
    if 'currencyCode' in data and data['currencyCode']:
        currency = _by_code(Currency, data['currencyCode'])
        if currency is None:
            abort(400, description=f"Unknown currency code '{data['currencyCode']}'")
        c.currency_id = currency.id
    elif 'currencyId' in data:
        if data['currencyId'] is not None and not session.get(Currency, data['currencyId']):
            abort(400, description='currencyId invalid')
        c.currency_id = data['currencyId']


def _apply_fields(data, c: Catalog):
    for key, attr in (('code', 'code'), ('name', 'name'), ('description', 'description')):
        if key in data:
            setattr(c, attr, data[key])
    if 'priority' in data:
        try:
            c.priority = int(data['priority'])
        except (TypeError, ValueError):
            abort(400, description='priority must be an integer')
    if 'effectiveFrom' in data:
        c.effective_from = optional_datetime(data, 'effectiveFrom')
    if 'effectiveTo' in data:
        c.effective_to = optional_datetime(data, 'effectiveTo')
    if c.effective_from and c.effective_to and c.effective_from > c.effective_to:
        abort(400, description='effectiveFrom must not be after effectiveTo')
    if 'status' in data:
        c.status = validate_status(data['status'], Catalog.ALL_STATUSES)
        c.is_active = c.status == Catalog.STATUS_ACTIVE
    elif 'isActive' in data:
        c.is_active = bool(data['isActive'])
    if 'isDefault' in data:
        c.is_default = bool(data['isDefault'])


def _duplicate(c: Catalog) -> bool:
    stmt = select(Catalog.id).where(Catalog.code==c.code, Catalog.region_id==c.region_id, Catalog.channel_id==c.channel_id)
    if c.id:
        stmt = stmt.where(Catalog.id != c.id)
    return get_db().execute(stmt).first() is not None


def _clear_other_defaults(c: Catalog):
    get_db().execute(
        update(Catalog)
        .where(Catalog.region_id==c.region_id, Catalog.channel_id==c.channel_id, Catalog.id != c.id, Catalog.is_default.is_(True))
        .values(is_default=False)
    )


def _commit_catalog(c: Catalog):
    session = get_db()
    if _duplicate(c):
        session.rollback()
        abort(409, description=f"Catalog code '{c.code}' already exists for this region and channel")
    try:
        session.flush()
        if c.is_default:
            _clear_other_defaults(c)
        session.commit()
    except IntegrityError:
        session.rollback()
        abort(409, description=f"Catalog code '{c.code}' already exists for this region and channel")


@catalogs_bp.post('')
@require_permissions('CATALOG.MANAGE')
@audit_log('CATALOG.CREATE', entity='Catalog', entity_id_key='id', meta_keys=['code', 'status'])
def create_catalog():
    data = request.get_json(silent=True) or {}
    require_fields(data, 'code', 'name')
    session = get_db()
    c = Catalog(status=Catalog.STATUS_ACTIVE, is_active=True, priority=1, is_default=False)
    _apply_fields(data, c)
    _resolve_scope(data, c)
    if c.currency_id is None:
        usd = _by_code(Currency, DEFAULT_CURRENCY)
        c.currency_id = usd.id if usd else None
    user_id = current_user_id()
    c.created_by = user_id
    c.updated_by = user_id
    session.add(c)
    _commit_catalog(c)
    return _catalog_json(c), 201


@catalogs_bp.put('/<int:catalog_id>')
@require_permissions('CATALOG.MANAGE')
@audit_log('CATALOG.UPDATE', entity='Catalog', entity_id_arg='catalog_id', diff_keys=['status', 'isDefault', 'name'],
           pre_fetch=lambda a, kw: _prefetch_catalog(kw.get('catalog_id')))
def update_catalog(catalog_id: int):
    c = _load(catalog_id)
    data = request.get_json(silent=True) or {}
    _apply_fields(data, c)
    _resolve_scope(data, c)
    if not c.code or not c.name:
        abort(400, description='code, name required')
    c.updated_by = current_user_id()
    _commit_catalog(c)
    return _catalog_json(c)


@catalogs_bp.delete('/<int:catalog_id>')
@require_permissions('CATALOG.MANAGE')
@audit_log('CATALOG.DELETE', entity='Catalog', entity_id_arg='catalog_id')
def delete_catalog(catalog_id: int):
    session = get_db()
    c = _load(catalog_id)
    session.delete(c)
    session.commit()
    return {'message': 'Catalog deleted successfully', 'id': catalog_id}


def _load(catalog_id: int) -> Catalog:
    c = get_db().get(Catalog, catalog_id)
    if not c:
        abort(404, description=f'Catalog {catalog_id} not found')
    return c


def _prefetch_catalog(catalog_id):
    c = get_db().get(Catalog, catalog_id) if catalog_id is not None else None
    if not c:
        return {}
    return {'status': c.status, 'isDefault': c.is_default, 'name': c.name}


# ---------------- Channels ---------------- #

@channels_bp.get('')
@require_permissions('CATALOG.READ')
def list_channels():
    q = get_db().query(Channel)
    q = apply_filters(q, {
        'search': {'op': lambda qu, v: qu.filter(or_(Channel.code.ilike(f'%{v}%'), Channel.name.ilike(f'%{v}%')))},
    }, request.args)
    paged_q, total, page, limit = apply_pagination(q.order_by(Channel.name, Channel.id))
    rows = paged_q.all()
    latest_ts = latest_of(rows)
    resp, etag = make_cached_list_response([_channel_json(ch) for ch in rows], total, page, limit, latest_ts)
    cond = handle_conditional(etag, latest_ts)
    if cond:
        return cond
    return resp


@channels_bp.get('/<int:channel_id>')
@require_permissions('CATALOG.READ')
def get_channel(channel_id: int):
    return _channel_json(_load_channel(channel_id))


@channels_bp.post('')
@require_permissions('CATALOG.MANAGE')
@audit_log('CHANNEL.CREATE', entity='Channel', entity_id_key='id', meta_keys=['code'])
def create_channel():
    data = request.get_json(silent=True) or {}
    require_fields(data, 'code', 'name')
    session = get_db()
    if _by_code(Channel, data['code']):
        abort(409, description=f"Channel code '{data['code']}' already exists")
    ch = Channel(code=data['code'], name=data['name'], description=data.get('description'),
                 is_active=bool(data.get('isActive', True)))
    session.add(ch)
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        abort(409, description=f"Channel code '{data['code']}' already exists")
    return _channel_json(ch), 201


@channels_bp.put('/<int:channel_id>')
@require_permissions('CATALOG.MANAGE')
@audit_log('CHANNEL.UPDATE', entity='Channel', entity_id_arg='channel_id')
def update_channel(channel_id: int):
    session = get_db()
    ch = _load_channel(channel_id)
    data = request.get_json(silent=True) or {}
    if 'name' in data:
        if not data['name']:
            abort(400, description='name required')
        ch.name = data['name']
    if 'description' in data:
        ch.description = data['description']
    if 'isActive' in data:
        ch.is_active = bool(data['isActive'])
    session.commit()
    return _channel_json(ch)


def _load_channel(channel_id: int) -> Channel:
    ch = get_db().get(Channel, channel_id)
    if not ch:
        abort(404, description=f'Channel {channel_id} not found')
    return ch
