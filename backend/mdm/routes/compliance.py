from __future__ import annotations
from flask import Blueprint, request, abort
from sqlalchemy import select
from mdm import get_db, get_service
from mdm.models.geo import Country
from mdm.decorators.auth import require_permissions
from mdm.services.compliance import UnknownRegionError

compliance_bp = Blueprint('compliance', __name__)


@compliance_bp.get('/screen/country/<code>')
@require_permissions('COMPLIANCE.READ')
def screen_country(code: str):
    country = get_db().execute(select(Country).where(Country.code==code.upper())).scalar_one_or_none()
    name = request.args.get('countryName') or (country.name if country else None)
    result = get_service('compliance').screen_country(code, name)
    profile = country.compliance if country else None
    if profile is not None:
        result['storedProfile'] = {
            'complianceRisk': profile.compliance_risk_level,
            'hasTradeSanctions': profile.has_trade_sanctions,
            'hasExportRestrictions': profile.has_export_restrictions,
            'requiresExportLicense': profile.requires_export_license,
            'regulatoryNotes': profile.regulatory_notes,
        }
    return result


@compliance_bp.get('/assess/region/<code>')
@require_permissions('COMPLIANCE.READ')
def assess_region(code: str):
    try:
        return get_service('compliance').assess_region(code)
    except UnknownRegionError as e:
        abort(400, description=str(e))


@compliance_bp.get('/alerts')
@require_permissions('COMPLIANCE.READ')
def alerts():
    items = get_service('compliance').active_alerts()
    return {'alerts': items, 'total': len(items)}
