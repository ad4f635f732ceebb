from __future__ import annotations
from typing import Set
from flask_jwt_extended import get_jwt
from sqlalchemy import select
from mdm.models.authz import UserRole, RolePermission, Permission, Role
from mdm import get_db


def current_permissions() -> Set[str]:
    claims = get_jwt()
    return set(claims.get('perms', []))


def _granted(code: str, perms: Set[str]) -> bool:
    if code in perms:
        return True
    if code.endswith('.READ'):
        return code[:-len('READ')] + 'MANAGE' in perms
    return False


def missing_permissions(*codes: str):
    perms = current_permissions()
    return [c for c in codes if not _granted(c, perms)]


def has_permissions(*codes: str) -> bool:
    return not missing_permissions(*codes)


def compute_effective_permissions(user_id: int):
    session = get_db()
    role_ids = {ur.role_id for ur in session.execute(select(UserRole).where(UserRole.user_id==user_id)).scalars()}
    perm_codes = set()
    if role_ids:
        role_perms = session.execute(select(RolePermission).where(RolePermission.role_id.in_(role_ids))).scalars().all()
        perm_ids = [rp.permission_id for rp in role_perms]
        if perm_ids:
            for p in session.execute(select(Permission).where(Permission.id.in_(perm_ids))).scalars():
                perm_codes.add(p.code)
    # Owner wildcard support (if role named Owner present)
    owner_role = session.execute(select(Role).where(Role.name=='Owner')).scalar_one_or_none()
    if owner_role and owner_role.id in role_ids:
        for p in session.execute(select(Permission)).scalars():
            perm_codes.add(p.code)
    return {
        'roles': sorted(role_ids),
        'perms': sorted(perm_codes),
    }


def current_user_id():
    """Identity from the JWT as int, None when the token carries none."""
    ident = get_jwt().get('sub')
    try:
        return int(ident) if ident is not None else None
    except (TypeError, ValueError):
        return None
