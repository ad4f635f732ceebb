from flask import Blueprint, request, abort
from flask_jwt_extended import create_access_token, jwt_required, get_jwt_identity
from sqlalchemy import select, delete, or_
from sqlalchemy.exc import IntegrityError
from mdm.models.authz import User, Role, Permission, UserRole
from mdm.models.audit import AuditLog
from mdm.models.data_dictionary import MAINTENANCE_ROLE_LABELS
from mdm import get_db
from mdm.services.policy import compute_effective_permissions
from mdm.utils.listing import apply_pagination, handle_conditional, make_cached_list_response, latest_of, iso
from mdm.utils.filters import apply_filters
from mdm.utils.validation import parse_bool, require_fields
from mdm.decorators.audit import audit_log
from mdm.decorators.auth import require_permissions

iam_bp = Blueprint('iam', __name__)


def _user_json(u: User):
    return {
        'id': u.id,
        'name': u.name,
        'email': u.email,
        'isActive': u.is_active,
        'maintenanceRole': u.maintenance_role,
        'locale': u.locale,
        'roles': sorted(ur.role.name for ur in u.user_roles),
        'updatedAt': iso(u.updated_at),
    }


def _cached(items, total, page, limit, latest_ts):
    resp, etag = make_cached_list_response(items, total, page, limit, latest_ts)
    cond = handle_conditional(etag, latest_ts)
    if cond:
        return cond
    return resp


@iam_bp.get('/permissions')
@require_permissions('ADMIN.ROLE.MANAGE')
def list_permissions():
    paged_q, total, page, limit = apply_pagination(get_db().query(Permission).order_by(Permission.id.asc()))
    rows = paged_q.all()
    items = [{'id': p.id, 'code': p.code, 'service': p.service, 'action': p.action} for p in rows]
    return _cached(items, total, page, limit, latest_of(rows))


@iam_bp.get('/roles')
@require_permissions('ADMIN.ROLE.MANAGE')
def list_roles():
    paged_q, total, page, limit = apply_pagination(get_db().query(Role).order_by(Role.id.asc()))
    rows = paged_q.all()
    items = [
        {'id': r.id, 'name': r.name, 'isSystem': r.is_system, 'permissions': sorted(rp.permission.code for rp in r.permissions)}
        for r in rows
    ]
    return _cached(items, total, page, limit, latest_of(rows))


# --- Users ---

@iam_bp.get('/users')
@require_permissions('ADMIN.USER.MANAGE')
def list_users():
    q = get_db().query(User)
    q = apply_filters(q, {
        'search': {'op': lambda qu, v: qu.filter(or_(User.name.ilike(f'%{v}%'), User.email.ilike(f'%{v}%')))},
        'isActive': {'coerce': parse_bool, 'op': lambda qu, v: qu.filter(User.is_active.is_(v))},
        'maintenanceRole': {'op': lambda qu, v: qu.filter(User.maintenance_role==v)},
    }, request.args)
    paged_q, total, page, limit = apply_pagination(q.order_by(User.name.asc(), User.id.asc()))
    rows = paged_q.all()
    return _cached([_user_json(u) for u in rows], total, page, limit, latest_of(rows))


def _resolve_roles(session, role_names):
    if not isinstance(role_names, list):
        abort(400, description='roles must be a list of role names')
    roles = session.execute(select(Role).where(Role.name.in_(role_names))).scalars().all() if role_names else []
    missing = set(role_names) - {r.name for r in roles}
    if missing:
        abort(400, description=f'Unknown roles: {sorted(missing)}')
    return roles


def _set_roles(session, user: User, roles):
    session.execute(delete(UserRole).where(UserRole.user_id==user.id))
    for r in roles:
        session.add(UserRole(user_id=user.id, role_id=r.id))


def _validate_maintenance_role(data):
    role = data.get('maintenanceRole')
    if role is not None and role not in MAINTENANCE_ROLE_LABELS:
        abort(400, description='maintenanceRole invalid')


@iam_bp.post('/users')
@require_permissions('ADMIN.USER.MANAGE')
@audit_log('USER.CREATE', entity='User', entity_id_key='id', meta_keys=['email', 'roles'])
def create_user():
    data = request.get_json(silent=True) or {}
    require_fields(data, 'name', 'email', 'password')
    _validate_maintenance_role(data)
    session = get_db()
    if session.execute(select(User.id).where(User.email==data['email'])).first():
        abort(409, description=f"User with email '{data['email']}' already exists")
    roles = _resolve_roles(session, data.get('roles') or [])
    user = User(name=data['name'], email=data['email'], is_active=bool(data.get('isActive', True)),
                maintenance_role=data.get('maintenanceRole'), locale=data.get('locale') or 'en_US')
    user.set_password(data['password'])
    session.add(user)
    try:
        session.flush()
        _set_roles(session, user, roles)
        session.commit()
    except IntegrityError:
        session.rollback()
        abort(409, description=f"User with email '{data['email']}' already exists")
    session.refresh(user)
    return _user_json(user), 201


@iam_bp.put('/users/<int:user_id>')
@require_permissions('ADMIN.USER.MANAGE')
@audit_log('USER.UPDATE', entity='User', entity_id_key='id', diff_keys=['isActive', 'roles', 'maintenanceRole'],
           pre_fetch=lambda a, kw: _prefetch_user(kw.get('user_id')))
def update_user(user_id: int):
    session = get_db()
    user = session.get(User, user_id)
    if not user:
        abort(404, description=f'User {user_id} not found')
    data = request.get_json(silent=True) or {}
    _validate_maintenance_role(data)
    if 'name' in data:
        if not data['name']:
            abort(400, description='name cannot be empty')
        user.name = data['name']
    if 'isActive' in data:
        user.is_active = bool(data['isActive'])
    if 'maintenanceRole' in data:
        user.maintenance_role = data['maintenanceRole']
    if 'locale' in data and data['locale']:
        user.locale = data['locale']
    if data.get('password'):
        user.set_password(data['password'])
    if 'roles' in data:
        _set_roles(session, user, _resolve_roles(session, data['roles']))
    session.commit()
    session.refresh(user)
    return _user_json(user)


def _prefetch_user(user_id):
    user = get_db().get(User, user_id) if user_id is not None else None
    if not user:
        return {}
    return {'isActive': user.is_active, 'maintenanceRole': user.maintenance_role,
            'roles': sorted(ur.role.name for ur in user.user_roles)}


# --- Auth ---

@iam_bp.post('/auth/login')
def login():
    data = request.get_json(silent=True) or {}
    email = data.get('email'); password = data.get('password')
    if not email or not password:
        abort(400, description='email & password required')
    session = get_db()
    user = session.execute(select(User).where(User.email==email)).scalar_one_or_none()
    if not user or not user.is_active or not user.verify_password(password):
        abort(401, description='invalid credentials')
    eff = compute_effective_permissions(user.id)
    claims = {
        'roles': eff['roles'],
        'perms': eff['perms'],
        'maintenance_role': user.maintenance_role,
        'locale': user.locale,
    }
    # JWT identity must be a string (flask-jwt-extended v4 requirement)
    token = create_access_token(identity=str(user.id), additional_claims=claims)
    return {'access_token': token}


@iam_bp.get('/auth/me')
@jwt_required()
def me():
    user = get_db().get(User, int(get_jwt_identity()))
    if not user:
        abort(404)
    eff = compute_effective_permissions(user.id)
    return dict(_user_json(user), perms=eff['perms'])


# --- Audit Log Listing ---

@iam_bp.get('/audit/logs')
@require_permissions('ADMIN.AUDIT.READ')
def list_audit_logs():
    q = get_db().query(AuditLog)
    q = apply_filters(q, {
        'actorUserId': {'coerce': int, 'op': lambda qu, v: qu.filter(AuditLog.actor_user_id==v)},
        'action': {'op': lambda qu, v: qu.filter(AuditLog.action==v)},
        'entity': {'op': lambda qu, v: qu.filter(AuditLog.entity==v)},
        'entityId': {'op': lambda qu, v: qu.filter(AuditLog.entity_id==v)},
    }, request.args)
    paged_q, total, page, limit = apply_pagination(q.order_by(AuditLog.id.desc()))
    rows = paged_q.all()
    items = [
        {
            'id': r.id,
            'actorUserId': r.actor_user_id,
            'action': r.action,
            'entity': r.entity,
            'entityId': r.entity_id,
            'meta': r.meta,
            'createdAt': iso(r.created_at),
        } for r in rows
    ]
    # newest row first, so its timestamp invalidates the ETag when logs arrive
    return _cached(items, total, page, limit, rows[0].created_at if rows else None)
