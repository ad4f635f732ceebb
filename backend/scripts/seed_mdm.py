#!/usr/bin/env python
"""Idempotent seed script for permissions, roles and reference data.

Usage:
    python backend/scripts/seed_mdm.py                    # seed normally
    python backend/scripts/seed_mdm.py --show-roles       # print role -> permission counts
    python backend/scripts/seed_mdm.py --dry-run          # run logic then rollback (no DB changes)
    python backend/scripts/seed_mdm.py --skip-reference   # permissions, roles and admin only
"""
from __future__ import annotations
import os, sys, argparse, textwrap, json, hashlib
from sqlalchemy import select, text
from werkzeug.security import generate_password_hash

# Allow running from repo root
sys.path.append(os.path.abspath('backend'))

from mdm import create_app, get_db  # type: ignore
from mdm.models.authz import Base, Permission, Role, RolePermission, User, UserRole
from mdm.models.geo import Region, Country, Locale, Currency
from mdm.models.catalog import Channel
from mdm.models.data_dictionary import DataDictionary
from mdm.models import audit, product, product_cache, jobs, outbox  # noqa: F401  create_all targets
from mdm.constants.permissions import SERVICE_ACTIONS, ROLE_PRESETS, build_all_permission_codes
from mdm.services.compliance import REGION_COUNTRIES
from mdm.admin.locales import COUNTRY_DEFAULTS

REGION_NAMES = {
    'AMER': 'Americas',
    'LATAM': 'Latin America',
    'EMEA': 'Europe, Middle East & Africa',
    'APAC': 'Asia Pacific',
}

CHANNELS = [
    ('DIRECT', 'Direct Sales'),
    ('ONLINE', 'Online Store'),
    ('PARTNER', 'Partner / Reseller'),
]

CURRENCIES = [
    ('USD', 'US Dollar', '$'), ('CAD', 'Canadian Dollar', 'C$'), ('MXN', 'Mexican Peso', '$'),
    ('EUR', 'Euro', '€'), ('GBP', 'Pound Sterling', '£'), ('CHF', 'Swiss Franc', 'CHF'),
    ('JPY', 'Japanese Yen', '¥'), ('CNY', 'Chinese Yuan', '¥'), ('AUD', 'Australian Dollar', 'A$'),
    ('BRL', 'Brazilian Real', 'R$'), ('RUB', 'Russian Ruble', '₽'),
]

# (column, display, type, category, role, required, schemas, extras)
DICTIONARY = [
    ('sku', 'SKU', 'string', 'Identity', 'system', True, ('ProductMDM', 'PricingMDM', 'Ecommerce'),
     {'max_length': 64, 'validation_pattern': r'^[A-Z0-9-]+$', 'is_system_field': True}),
    ('name', 'Product Name', 'string', 'Identity', 'product_marketing', True, ('ProductMDM', 'Ecommerce'),
     {'max_length': 255, 'min_length': 2}),
    ('description', 'Description', 'text', 'Content', 'product_marketing', False, ('ProductMDM', 'Ecommerce'), {}),
    ('type', 'Product Type', 'string', 'Classification', 'product_marketing', True, ('ProductMDM',),
     {'allowed_values': ['Software', 'Hardware', 'Service', 'Subscription']}),
    ('base_price', 'Base Price', 'decimal', 'Pricing', 'product_finance', True, ('ProductMDM', 'PricingMDM'), {}),
    ('cost_price', 'Cost Price', 'decimal', 'Pricing', 'product_finance', False, ('PricingMDM',), {}),
    ('license_required', 'License Required', 'boolean', 'Legal', 'product_legal', False, ('ProductMDM',), {}),
    ('contract_item', 'Contract Item', 'boolean', 'Contracts', 'product_contracts', False, ('ProductMDM',), {}),
    ('ava_tax_code', 'Tax Code', 'string', 'Pricing', 'product_finance', False, ('PricingMDM',),
     {'max_length': 32}),
    ('web_display', 'Web Display', 'boolean', 'Ecommerce', 'product_salesops', False, ('Ecommerce',), {}),
    ('slug', 'URL Slug', 'string', 'Ecommerce', 'product_salesops', False, ('Ecommerce',),
     {'validation_pattern': r'^[a-z0-9-]+$'}),
]


def ensure_permissions(session):
    existing = {p.code for p in session.execute(select(Permission)).scalars().all()}
    created = 0
    for svc, actions in SERVICE_ACTIONS.items():
        for act in actions:
            code = f"{svc}.{act}"
            if code not in existing:
                session.add(Permission(code=code, service=svc, action=act, description_i18n={"en": code.replace('.', ' - ')}))
                created += 1
    session.flush()
    return created


def ensure_roles(session):
    existing_roles = {r.name: r for r in session.execute(select(Role)).scalars().all()}
    created = 0
    for role_name in ROLE_PRESETS:
        if role_name not in existing_roles:
            role = Role(name=role_name, is_system=True, description_i18n={"en": role_name})
            session.add(role)
            existing_roles[role_name] = role
            created += 1
    session.flush()

    all_codes = set(build_all_permission_codes())
    for role_name, role in existing_roles.items():
        raw_codes = ROLE_PRESETS.get(role_name, [])
        desired_codes = all_codes if '*' in raw_codes else {c for c in raw_codes if '.' in c}
        current_codes = {rp.permission.code for rp in role.permissions}
        to_add = desired_codes - current_codes
        if to_add:
            perms_map = {p.code: p for p in session.execute(select(Permission).where(Permission.code.in_(list(to_add)))).scalars()}
            for code in sorted(to_add):
                if code not in perms_map:
                    print(f"[WARN] Missing permission referenced by role {role_name}: {code}")
                    continue
                session.add(RolePermission(role=role, permission=perms_map[code]))
    return created


def ensure_initial_admin(session):
    owner_role = session.execute(select(Role).where(Role.name == 'Owner')).scalar_one_or_none()
    if not owner_role:
        print('[WARN] Owner role missing; skipping admin user creation')
        return
    admin_email = os.getenv('SEED_ADMIN_EMAIL', 'admin@example.com')
    existing_admin = session.execute(select(User).where(User.email == admin_email)).scalar_one_or_none()
    if not existing_admin:
        user = User(name='Owner', email=admin_email, maintenance_role='system',
                    password_hash=generate_password_hash(os.getenv('SEED_ADMIN_PASSWORD', 'ChangeMe123!')))
        session.add(user)
        session.flush()
        session.add(UserRole(user_id=user.id, role_id=owner_role.id))
        print(f"[INFO] Created initial admin user {admin_email} with temporary password.")


def ensure_reference_data(session):
    """Regions, countries with a primary locale, currencies, channels, dictionary rows."""
    counts = {'regions': 0, 'countries': 0, 'locales': 0, 'currencies': 0, 'channels': 0, 'dictionary': 0}

    currencies = {c.code for c in session.execute(select(Currency)).scalars()}
    for code, name, symbol in CURRENCIES:
        if code not in currencies:
            session.add(Currency(code=code, name=name, symbol=symbol))
            counts['currencies'] += 1

    channels = {c.code for c in session.execute(select(Channel)).scalars()}
    for code, name in CHANNELS:
        if code not in channels:
            session.add(Channel(code=code, name=name))
            counts['channels'] += 1

    regions = {r.code: r for r in session.execute(select(Region)).scalars()}
    countries = {c.code for c in session.execute(select(Country)).scalars()}
    locales = {lc.code.lower() for lc in session.execute(select(Locale)).scalars()}
    for region_code, members in REGION_COUNTRIES.items():
        region = regions.get(region_code)
        if region is None:
            region = Region(code=region_code, name=REGION_NAMES.get(region_code, region_code))
            session.add(region)
            session.flush()
            regions[region_code] = region
            counts['regions'] += 1
        for country_code, country_name in members:
            if country_code in countries or country_code not in COUNTRY_DEFAULTS:
                continue
            country = Country(code=country_code, name=country_name, region_id=region.id)
            session.add(country)
            session.flush()
            countries.add(country_code)
            counts['countries'] += 1
            defaults = COUNTRY_DEFAULTS[country_code]
            locale_code = f"{defaults['languageCode']}_{country_code}"
            if locale_code.lower() in locales:
                continue
            locale = Locale(
                code=locale_code, name=f"{defaults['languageName']} ({country_name})",
                language_code=defaults['languageCode'], country_code=country_code,
                country_id=country.id, region_id=region.id, currency=defaults['currency'],
                date_format=defaults['dateFormat'], priority_in_country=Locale.PRIMARY_PRIORITY,
            )
            session.add(locale)
            session.flush()
            country.default_locale_id = locale.id
            locales.add(locale_code.lower())
            counts['locales'] += 1

    existing_columns = {d.column_name for d in session.execute(select(DataDictionary)).scalars()}
    for order, (column, display, dtype, category, role, required, schemas, extras) in enumerate(DICTIONARY, start=1):
        if column in existing_columns:
            continue
        entry = DataDictionary(
            column_name=column, display_name=display, data_type=dtype, category=category,
            maintenance_role=role, required_for_active=required, sort_order=order * 10,
            in_product_mdm='ProductMDM' in schemas, in_pricing_mdm='PricingMDM' in schemas,
            in_ecommerce='Ecommerce' in schemas, **extras,
        )
        session.add(entry)
        counts['dictionary'] += 1
    return counts


def summarize_roles(session):
    rows = []
    for role in session.execute(select(Role)).scalars().all():
        perms = [rp.permission.code for rp in role.permissions]
        rows.append((role.name, len(perms), sorted(perms)[:8]))
    return rows


def print_role_summary(session):
    rows = summarize_roles(session)
    if not rows:
        print("[INFO] No roles present.")
        return
    name_w = max(len(r[0]) for r in rows)
    print(f"{'Role'.ljust(name_w)} | Count | Sample (up to 8)")
    print('-' * (name_w + 40))
    for name, cnt, sample in rows:
        print(f"{name.ljust(name_w)} | {str(cnt).rjust(5)} | {', '.join(sample)}")


def build_role_permission_map(session):
    mapping = {}
    for role in session.execute(select(Role)).scalars().all():
        mapping[role.name] = sorted({rp.permission.code for rp in role.permissions})
    return mapping


def parse_args():
    p = argparse.ArgumentParser(
        description="Seed RBAC permissions, roles and MDM reference data",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent("""Examples:\n  seed normally: seed_mdm.py\n  dry run: seed_mdm.py --dry-run\n  show roles: seed_mdm.py --show-roles\n""")
    )
    p.add_argument('--show-roles', action='store_true', help='Print role permission counts after seeding')
    p.add_argument('--dry-run', action='store_true', help='Rollback after operations (no commit)')
    p.add_argument('--skip-reference', action='store_true', help='Skip regions, locales, channels and dictionary rows')
    p.add_argument('--export-json', nargs='?', const='-', metavar='FILE', help='Export role->permissions JSON (to FILE or stdout if omitted)')
    return p.parse_args()


def main():
    args = parse_args()
    app = create_app()
    with app.app_context():
        session = get_db()
        try:
            session.execute(text('SELECT 1 FROM permissions LIMIT 1'))
        except Exception:
            # Bootstrap schema when migrations have not run yet; prefer alembic upgrade
            session.rollback()
            Base.metadata.create_all(session.get_bind())
        finally:
            session.commit()

    with app.app_context():
        session = get_db()
        try:
            created_p = ensure_permissions(session)
            created_r = ensure_roles(session)
            ensure_initial_admin(session)
            ref_counts = {} if args.skip_reference else ensure_reference_data(session)
            role_perm_map = build_role_permission_map(session)
            if args.dry_run:
                session.rollback()
                print(f"[DRY-RUN] (rolled back) Permissions would create: {created_p}, Roles would create: {created_r}, Reference: {ref_counts}")
            else:
                session.commit()
                print(f"[DONE] Permissions created: {created_p}, Roles created: {created_r}, Reference: {ref_counts}")
            if args.show_roles:
                print('\nRole Permission Summary:')
                print_role_summary(session)
            if args.export_json is not None:
                canonical = json.dumps(role_perm_map, sort_keys=True, separators=(',', ':'))
                payload = {
                    'roles': role_perm_map,
                    'meta': {
                        'roles_checksum_sha256': hashlib.sha256(canonical.encode('utf-8')).hexdigest(),
                        'role_names_sorted': sorted(role_perm_map.keys()),
                        'dry_run': args.dry_run,
                    }
                }
                if args.export_json == '-':
                    print(json.dumps(payload, indent=2, sort_keys=True))
                else:
                    with open(args.export_json, 'w', encoding='utf-8') as f:
                        json.dump(payload, f, indent=2, sort_keys=True)
                    print(f"[INFO] Exported JSON to {args.export_json}")
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

if __name__ == '__main__':
    main()
