"""Test seeding utilities to reduce duplication.

These helpers centralize creation of users, roles, permissions and the
reference rows (regions, countries, currencies, channels) most MDM tests
need. All of them are idempotent on their natural key.
"""
from typing import Iterable, Dict, List, Optional
from flask_jwt_extended import create_access_token
from mdm import get_db
from mdm.models.authz import User, Role, Permission, RolePermission, UserRole


def jwt_headers(user_id: int, perms: List[str]):
    """Bearer header with direct claims; must run inside an app context."""
    token = create_access_token(identity=str(user_id), additional_claims={'perms': perms, 'roles': []})
    return {'Authorization': f'Bearer {token}'}


def auth_headers(app, perms: List[str], user_id: int = 1):
    with app.app_context():
        return jwt_headers(user_id, perms)


def ensure_permissions(codes: Iterable[str]):
    """Ensure each permission code exists; return dict code->Permission."""
    session = get_db()
    out: Dict[str, Permission] = {}
    for code in codes:
        obj = session.query(Permission).filter_by(code=code).one_or_none()
        if not obj:
            if '.' not in code:
                raise ValueError(f"Permission code '{code}' missing SERVICE.ACTION pattern")
            service, action = code.split('.', 1)
            obj = Permission(code=code, service=service, action=action, description_i18n={'en': code})
            session.add(obj); session.flush()
        out[code] = obj
    session.commit()
    return out


def ensure_user(email: str, name: Optional[str] = None, password: str = 'pw') -> User:
    session = get_db()
    u = session.query(User).filter_by(email=email).one_or_none()
    if not u:
        u = User(name=name or email.split('@')[0], email=email, password_hash='')
        u.set_password(password)
        session.add(u); session.commit(); session.refresh(u)
    return u


def ensure_role(name: str, perm_codes: Iterable[str] = ()) -> Role:
    session = get_db()
    role = session.query(Role).filter_by(name=name).one_or_none()
    perms = ensure_permissions(perm_codes) if perm_codes else {}
    if not role:
        role = Role(name=name, is_system=False, description_i18n={'en': name})
        session.add(role); session.flush()
    existing_perm_ids = {rp.permission_id for rp in session.query(RolePermission).filter_by(role_id=role.id)}
    for p in perms.values():
        if p.id not in existing_perm_ids:
            session.add(RolePermission(role_id=role.id, permission_id=p.id))
    session.commit()
    return role


def ensure_user_role_assignment(user: User, role: Role):
    session = get_db()
    if not session.query(UserRole).filter_by(user_id=user.id, role_id=role.id).one_or_none():
        session.add(UserRole(user_id=user.id, role_id=role.id)); session.commit()


def seed_user_with_perms(email: str, perms: List[str], role_name: str) -> User:
    """User + role carrying perms, for tests that go through /iam/auth/login."""
    user = ensure_user(email)
    role = ensure_role(role_name, perms)
    ensure_user_role_assignment(user, role)
    return user


def login(client, email: str, password: str = 'pw'):
    resp = client.post('/iam/auth/login', json={'email': email, 'password': password})
    assert resp.status_code == 200, resp.get_json()
    return {'Authorization': f"Bearer {resp.get_json()['access_token']}"}


# ---------------- Domain helpers ---------------- #

def ensure_product(sku: str, name: str = None, base_price: float = 100.0, status: str = 'draft', **extra):
    """Idempotently ensure a Product exists (by SKU) without going through the API."""
    from mdm.models.product import Product
    session = get_db()
    prod = session.query(Product).filter_by(sku=sku).one_or_none()
    if not prod:
        prod = Product(sku=sku, name=name or sku, base_price=base_price, status=status, **extra)
        session.add(prod); session.commit(); session.refresh(prod)
    return prod


def ensure_region(code: str, name: str = None):
    from mdm.models.geo import Region
    session = get_db()
    region = session.query(Region).filter_by(code=code).one_or_none()
    if not region:
        region = Region(code=code, name=name or code, is_active=True)
        session.add(region); session.commit(); session.refresh(region)
    return region


def ensure_country(code: str, region_code: str, name: str = None):
    from mdm.models.geo import Country
    session = get_db()
    country = session.query(Country).filter_by(code=code).one_or_none()
    if not country:
        region = ensure_region(region_code)
        country = Country(code=code, name=name or code, region_id=region.id, is_active=True)
        session.add(country); session.commit(); session.refresh(country)
    return country


def ensure_currency(code: str, name: str = None):
    from mdm.models.geo import Currency
    session = get_db()
    cur = session.query(Currency).filter_by(code=code).one_or_none()
    if not cur:
        cur = Currency(code=code, name=name or code, is_active=True)
        session.add(cur); session.commit(); session.refresh(cur)
    return cur


def ensure_channel(code: str, name: str = None):
    from mdm.models.catalog import Channel
    session = get_db()
    ch = session.query(Channel).filter_by(code=code).one_or_none()
    if not ch:
        ch = Channel(code=code, name=name or code, is_active=True)
        session.add(ch); session.commit(); session.refresh(ch)
    return ch


def ensure_catalog(code: str, region_code: str = 'NA', channel_code: str = 'WEB', **extra):
    from mdm.models.catalog import Catalog
    session = get_db()
    region = ensure_region(region_code)
    channel = ensure_channel(channel_code)
    cat = session.query(Catalog).filter_by(code=code, region_id=region.id, channel_id=channel.id).one_or_none()
    if not cat:
        cat = Catalog(code=code, name=extra.pop('name', code), region_id=region.id, channel_id=channel.id,
                      status='active', is_active=True, priority=extra.pop('priority', 1), **extra)
        session.add(cat); session.commit(); session.refresh(cat)
    return cat


__all__ = [
    'jwt_headers', 'auth_headers', 'ensure_permissions', 'ensure_user', 'ensure_role',
    'ensure_user_role_assignment', 'seed_user_with_perms', 'login', 'ensure_product', 'ensure_region',
    'ensure_country', 'ensure_currency', 'ensure_channel', 'ensure_catalog',
]
