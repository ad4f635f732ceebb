"""Central enum-like definitions to avoid typos in permission/service strings.
Extend cautiously; never rename codes silently. Create new ones and deprecate old via migration if needed.
"""
from __future__ import annotations
from typing import List, Dict

SERVICES = ['PRODUCT', 'CATALOG', 'TREE', 'DICT', 'JOBS', 'COMPLIANCE', 'ADMIN']

SERVICE_ACTIONS = {
    'PRODUCT': ['READ', 'MANAGE'],
    'CATALOG': ['READ', 'MANAGE'],
    'TREE': ['READ', 'MANAGE'],
    'DICT': ['READ'],
    'JOBS': ['READ', 'MANAGE'],
    'COMPLIANCE': ['READ'],
    'ADMIN': ['USER.MANAGE', 'ROLE.MANAGE', 'AUDIT.READ'],
}


def build_all_permission_codes() -> List[str]:
    codes: List[str] = []
    for svc, actions in SERVICE_ACTIONS.items():
        for act in actions:
            codes.append(f"{svc}.{act}")
    return codes

ALL_PERMISSION_CODES = build_all_permission_codes()

READ_ONLY_CODES = [c for c in ALL_PERMISSION_CODES if c.endswith('.READ') and not c.startswith('ADMIN.')]

ROLE_PRESETS: Dict[str, List[str]] = {
    'Viewer': READ_ONLY_CODES,
    'ProductMarketing': ['PRODUCT.READ', 'PRODUCT.MANAGE', 'DICT.READ', 'CATALOG.READ'],
    'PricingManager': [
        'PRODUCT.READ', 'CATALOG.READ', 'CATALOG.MANAGE', 'DICT.READ',
        'TREE.READ', 'TREE.MANAGE', 'COMPLIANCE.READ', 'JOBS.READ',
    ],
    'Operations': ['JOBS.READ', 'JOBS.MANAGE', 'PRODUCT.READ', 'CATALOG.READ'],
    'Owner': ['*'],
}
