from __future__ import annotations
from typing import Optional, Tuple
from flask import Blueprint, request, abort, current_app
from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from mdm import get_db, get_service
from mdm.models.geo import Region, Country, CountryCompliance, Locale
from mdm.decorators.auth import require_permissions
from mdm.decorators.audit import audit_log
from mdm.utils.validation import parse_bool, require_fields

tree_bp = Blueprint('tree', __name__)

NODE_MODELS = {'region': Region, 'country': Country, 'locale': Locale}
BULK_OPERATIONS = ('activate', 'deactivate', 'delete', 'export')

DEFAULT_LOCALE_CURRENCY = 'USD'
DEFAULT_DATE_FORMAT = 'MM/dd/yyyy'


def parse_node_id(node_id) -> Tuple[str, int]:
    """'country_12' -> ('country', 12); ValueError when malformed."""
    kind, sep, raw = str(node_id).partition('_')
    if not sep or kind not in NODE_MODELS or not raw.isdigit():
        raise ValueError(f"Invalid node id '{node_id}'")
    return kind, int(raw)


def _flag(name: str, default: bool) -> bool:
    raw = request.args.get(name)
    if raw in (None, ''):
        return default
    try:
        return parse_bool(raw)
    except ValueError:
        abort(400, description=f'{name} invalid')


def _compliance_fields(country: Country):
    profile: Optional[CountryCompliance] = country.compliance
    if profile is not None:
        return {
            'complianceRisk': profile.compliance_risk_level,
            'hasSanctions': profile.has_trade_sanctions,
            'hasExportRestrictions': profile.has_export_restrictions,
            'requiresExportLicense': profile.requires_export_license,
            'regulatoryNotes': profile.regulatory_notes,
        }
    return get_service('compliance').annotation(country.code)


def _locale_node(loc: Locale):
    return {
        'id': f'locale_{loc.id}',
        'name': loc.name,
        'type': 'locale',
        'isActive': loc.is_active,
        'children': [],
        'metadata': {
            'code': loc.code,
            'nativeName': loc.native_name,
            'languageCode': loc.language_code,
            'countryCode': loc.country_code,
            'currency': loc.currency,
            'isRtl': loc.is_rtl,
            'isPrimary': loc.is_primary,
            'priority': loc.priority_in_country,
            'dateFormat': loc.date_format,
            'numberFormat': loc.number_format or {},
        },
    }


def _country_node(c: Country, include_inactive: bool, include_compliance: bool):
    meta = {
        'code': c.code,
        'nativeName': c.native_name,
        'continent': c.continent,
        'phonePrefix': c.phone_prefix,
        'supportsShipping': c.supports_shipping,
        'supportsBilling': c.supports_billing,
        'defaultLocaleId': c.default_locale_id,
    }
    if include_compliance:
        meta.update(_compliance_fields(c))
    return {
        'id': f'country_{c.id}',
        'name': c.name,
        'type': 'country',
        'isActive': c.is_active,
        'children': [_locale_node(loc) for loc in c.locales if include_inactive or loc.is_active],
        'metadata': meta,
    }


def _region_node(r: Region, include_inactive: bool, include_compliance: bool):
    return {
        'id': f'region_{r.id}',
        'name': r.name,
        'type': 'region',
        'isActive': r.is_active,
        'children': [_country_node(c, include_inactive, include_compliance)
                     for c in r.countries if include_inactive or c.is_active],
        'metadata': {'code': r.code, 'description': r.description},
    }


def _node_json(kind: str, obj, include_compliance: bool = True):
    if kind == 'region':
        return _region_node(obj, True, include_compliance)
    if kind == 'country':
        return _country_node(obj, True, include_compliance)
    return _locale_node(obj)


@tree_bp.get('')
@require_permissions('TREE.READ')
def get_tree():
    include_compliance = _flag('includeCompliance', True)
    include_inactive = _flag('includeInactive', False)
    stmt = select(Region).order_by(Region.name)
    if not include_inactive:
        stmt = stmt.where(Region.is_active.is_(True))
    regions = get_db().execute(stmt).scalars().all()
    tree = [_region_node(r, include_inactive, include_compliance) for r in regions]
    countries = [c for r in tree for c in r['children']]
    return {
        'tree': tree,
        'totalRegions': len(tree),
        'totalCountries': len(countries),
        'totalLocales': sum(len(c['children']) for c in countries),
    }


def _load_node(node_id):
    try:
        kind, pk = parse_node_id(node_id)
    except ValueError as e:
        abort(400, description=str(e))
    obj = get_db().get(NODE_MODELS[kind], pk)
    if obj is None:
        abort(404, description=f'Node {node_id} not found')
    return kind, obj


@tree_bp.get('/node/<node_id>')
@require_permissions('TREE.READ')
def get_node(node_id: str):
    kind, obj = _load_node(node_id)
    return _node_json(kind, obj)


def _parent(parent_id, expected: str):
    if parent_id in (None, ''):
        abort(400, description=f'parentId required for a {expected} parent')
    if isinstance(parent_id, int) or str(parent_id).isdigit():
        parent_id = f'{expected}_{parent_id}'
    kind, obj = _load_node(parent_id)
    if kind != expected:
        abort(400, description=f'parentId must reference a {expected}')
    return obj


def language_from_code(code: str) -> str:
    return code.replace('-', '_').split('_', 1)[0].lower()


def _locale_code_taken(code: str, exclude_id: Optional[int] = None) -> bool:
    stmt = select(Locale.id).where(func.lower(Locale.code)==code.lower())
    if exclude_id:
        stmt = stmt.where(Locale.id != exclude_id)
    return get_db().execute(stmt).first() is not None


def _apply_locale_properties(loc: Locale, props: dict):
    for key, attr in (('nativeName', 'native_name'), ('languageCode', 'language_code'),
                      ('currency', 'currency'), ('dateFormat', 'date_format'), ('numberFormat', 'number_format')):
        if key in props and props[key] is not None:
            setattr(loc, attr, props[key])
    if 'isRtl' in props:
        loc.is_rtl = bool(props['isRtl'])
    if 'isActive' in props:
        loc.is_active = bool(props['isActive'])
    if 'priority' in props:
        try:
            loc.priority_in_country = int(props['priority'])
        except (TypeError, ValueError):
            abort(400, description='priority must be an integer')


def _make_primary(loc: Locale, country: Country):
    """Point the country at loc; any other priority-1 sibling is demoted."""
    siblings = get_db().execute(
        select(Locale).where(Locale.country_id==country.id, Locale.id != loc.id,
                             Locale.priority_in_country==Locale.PRIMARY_PRIORITY)
    ).scalars()
    for other in siblings:
        other.priority_in_country = Locale.DEFAULT_PRIORITY
    country.default_locale_id = loc.id
    loc.priority_in_country = Locale.PRIMARY_PRIORITY


def _wants_primary(loc: Locale, props: dict) -> bool:
    return bool(props.get('isPrimary')) or loc.priority_in_country == Locale.PRIMARY_PRIORITY


def _primary_locales_below(kind: str, obj) -> list:
    stmt = select(Locale)
    if kind == 'country':
        stmt = stmt.where(Locale.country_id==obj.id)
    else:
        stmt = stmt.join(Country, Locale.country_id==Country.id).where(Country.region_id==obj.id)
    return [loc.code for loc in get_db().execute(stmt).scalars() if loc.is_primary]


def _apply_country_properties(c: Country, props: dict):
    for key, attr in (('nativeName', 'native_name'), ('continent', 'continent'), ('phonePrefix', 'phone_prefix')):
        if key in props:
            setattr(c, attr, props[key])
    for key, attr in (('supportsShipping', 'supports_shipping'), ('supportsBilling', 'supports_billing'),
                      ('isActive', 'is_active')):
        if key in props:
            setattr(c, attr, bool(props[key]))


@tree_bp.post('/create-node')
@require_permissions('TREE.MANAGE')
@audit_log('TREE.NODE.CREATE', entity='TreeNode', entity_id_key='id', meta_keys=['type', 'name'])
def create_node():
    data = request.get_json(silent=True) or {}
    require_fields(data, 'nodeType', 'name', 'code')
    node_type = data['nodeType']
    props = data.get('properties') or {}
    if not isinstance(props, dict):
        abort(400, description='properties must be an object')
    session = get_db()
    code = str(data['code']).strip()
    if node_type == 'region':
        if session.execute(select(Region.id).where(Region.code==code)).first():
            abort(409, description=f"Region code '{code}' already exists")
        obj = Region(code=code, name=data['name'], description=props.get('description'),
                     is_active=bool(props.get('isActive', True)))
    elif node_type == 'country':
        region = _parent(data.get('parentId'), 'region')
        if session.execute(select(Country.id).where(Country.code==code)).first():
            abort(409, description=f"Country code '{code}' already exists")
        obj = Country(code=code, name=data['name'], region_id=region.id, is_active=True)
        _apply_country_properties(obj, props)
    elif node_type == 'locale':
        country = _parent(data.get('parentId'), 'country')
        if _locale_code_taken(code):
            abort(409, description=f"Locale code '{code}' already exists")
        obj = Locale(code=code, name=data['name'], country_id=country.id, region_id=country.region_id,
                     country_code=country.code, language_code=language_from_code(code),
                     currency=DEFAULT_LOCALE_CURRENCY, date_format=DEFAULT_DATE_FORMAT, number_format={},
                     is_rtl=False, priority_in_country=Locale.DEFAULT_PRIORITY, is_active=True)
        _apply_locale_properties(obj, props)
    else:
        abort(400, description="nodeType must be one of region, country, locale")
    session.add(obj)
    try:
        session.flush()
        if node_type == 'locale' and _wants_primary(obj, props):
            _make_primary(obj, country)
        session.commit()
    except IntegrityError:
        session.rollback()
        abort(409, description=f"{node_type} code '{code}' already exists")
    current_app.logger.info('Tree node created: %s %s', node_type, code)
    return _node_json(node_type, obj), 201


@tree_bp.put('/node/<node_id>')
@require_permissions('TREE.MANAGE')
@audit_log('TREE.NODE.UPDATE', entity='TreeNode', entity_id_arg='node_id')
def update_node(node_id: str):
    kind, obj = _load_node(node_id)
    data = request.get_json(silent=True) or {}
    props = data.get('properties') or {}
    if not isinstance(props, dict):
        abort(400, description='properties must be an object')
    if 'name' in data:
        if not data['name']:
            abort(400, description='name required')
        obj.name = data['name']
    if kind == 'region':
        if 'description' in props:
            obj.description = props['description']
        if 'isActive' in props:
            obj.is_active = bool(props['isActive'])
    elif kind == 'country':
        _apply_country_properties(obj, props)
    else:
        _apply_locale_properties(obj, props)
        if _wants_primary(obj, props):
            _make_primary(obj, obj.country)
    get_db().commit()
    return _node_json(kind, obj)


def _bulk_one(operation: str, node_id: str):
    try:
        kind, pk = parse_node_id(node_id)
    except ValueError as e:
        return {'nodeId': node_id, 'success': False, 'message': str(e)}
    session = get_db()
    obj = session.get(NODE_MODELS[kind], pk)
    if obj is None:
        return {'nodeId': node_id, 'success': False, 'message': 'Node not found'}
    if operation == 'export':
        return {'nodeId': node_id, 'success': True, 'data': _node_json(kind, obj, include_compliance=False)}
    if operation == 'delete':
        if kind == 'locale' and obj.is_primary:
            return {'nodeId': node_id, 'success': False, 'message': 'Cannot delete primary locale'}
        if kind != 'locale':
            held = _primary_locales_below(kind, obj)
            if held:
                return {'nodeId': node_id, 'success': False,
                        'message': f"Cannot delete {kind} holding primary locale(s): {', '.join(held)}"}
        session.delete(obj)
    else:
        obj.is_active = operation == 'activate'
    return {'nodeId': node_id, 'success': True}


@tree_bp.post('/bulk-operations')
@require_permissions('TREE.MANAGE')
@audit_log('TREE.BULK', entity='TreeNode',
           meta_builder=lambda data, rv, a, kw: {'operation': data.get('operation'), 'succeeded': data.get('succeeded')})
def bulk_operations():
    data = request.get_json(silent=True) or {}
    operation = data.get('operation')
    if operation not in BULK_OPERATIONS:
        abort(400, description=f"operation must be one of {', '.join(BULK_OPERATIONS)}")
    node_ids = data.get('nodeIds')
    if not isinstance(node_ids, list) or not node_ids:
        abort(400, description='nodeIds must be a non-empty list')
    results = [_bulk_one(operation, nid) for nid in node_ids]
    get_db().commit()
    return {
        'operation': operation,
        'results': results,
        'succeeded': sum(1 for r in results if r['success']),
        'failed': sum(1 for r in results if not r['success']),
    }
