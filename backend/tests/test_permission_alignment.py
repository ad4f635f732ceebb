from mdm.constants.permissions import ALL_PERMISSION_CODES, ROLE_PRESETS
from mdm.openapi import build_openapi_spec


def _documented_permissions():
    perms = set()
    for ops in build_openapi_spec()['paths'].values():
        for op in ops.values():
            perms.update(op.get('x-required-permissions', []))
    return perms


def test_documented_permissions_are_known_codes():
    unknown = sorted(_documented_permissions() - set(ALL_PERMISSION_CODES))
    assert not unknown, f"Endpoints reference undeclared permissions: {unknown}"


def test_domain_permissions_exist_in_some_role():
    # Roles (exclude wildcard Owner); ADMIN.* stays with Owner only
    role_map = {r: set(p for p in codes if p != '*') for r, codes in ROLE_PRESETS.items() if r != 'Owner'}
    all_role_perms = set().union(*role_map.values())
    missing = sorted(p for p in _documented_permissions() if not p.startswith('ADMIN.') and p not in all_role_perms)
    assert not missing, f"Permissions not present in any concrete role: {missing}"
