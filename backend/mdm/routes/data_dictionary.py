from __future__ import annotations
from flask import Blueprint, request, abort
from sqlalchemy import select, or_, and_
from mdm import get_db
from mdm.models.data_dictionary import DataDictionary, ALL_SCHEMAS
from mdm.decorators.auth import require_permissions
from mdm.utils.filters import apply_filters
from mdm.utils.listing import iso
from mdm.utils.validation import parse_bool

dictionary_bp = Blueprint('data_dictionary', __name__)


def _entry_json(d: DataDictionary):
    return {
        'id': d.id,
        'columnName': d.column_name,
        'displayName': d.display_name,
        'dataType': d.data_type,
        'description': d.description,
        'category': d.category,
        'requiredForActive': d.required_for_active,
        'maxLength': d.max_length,
        'minLength': d.min_length,
        'validationPattern': d.validation_pattern,
        'allowedValues': d.allowed_values or [],
        'maintenanceRole': d.maintenance_role,
        'maintenanceRoleLabel': d.maintenance_role_label,
        'schemas': d.schemas(),
        'sortOrder': d.sort_order,
        'isSystemField': d.is_system_field,
        'isEditable': d.is_editable,
        'canEdit': d.can_edit(),
        'updatedAt': iso(d.updated_at),
    }


def _search(qu, term):
    like = f'%{term}%'
    # NULL descriptions compare as NULL and never match
    return qu.filter(or_(
        DataDictionary.column_name.ilike(like),
        DataDictionary.display_name.ilike(like),
        and_(DataDictionary.description.is_not(None), DataDictionary.description.ilike(like)),
    ))


@dictionary_bp.get('')
@require_permissions('DICT.READ')
def list_entries():
    q = get_db().query(DataDictionary)
    filter_specs = {
        'category': {'op': lambda qu, v: qu.filter(DataDictionary.category==v)},
        'maintenanceRole': {'op': lambda qu, v: qu.filter(DataDictionary.maintenance_role==v)},
        'schema': {
            'validate': lambda v: v in ALL_SCHEMAS,
            'op': lambda qu, v: qu.filter(getattr(DataDictionary, DataDictionary.SCHEMA_COLUMNS[v]).is_(True)),
        },
        'requiredOnly': {
            'coerce': parse_bool,
            'op': lambda qu, v: qu.filter(DataDictionary.required_for_active.is_(True)) if v else qu,
        },
        'search': {'op': _search},
    }
    q = apply_filters(q, filter_specs, request.args)
    rows = q.order_by(DataDictionary.sort_order.asc(), DataDictionary.column_name.asc()).all()
    return {'dataDictionary': [_entry_json(d) for d in rows], 'source': 'api'}


@dictionary_bp.get('/categories')
@require_permissions('DICT.READ')
def list_categories():
    rows = get_db().execute(
        select(DataDictionary.category).where(DataDictionary.category.is_not(None)).distinct()
    ).scalars()
    return {'categories': sorted(rows)}


@dictionary_bp.get('/validation-rules')
@require_permissions('DICT.READ')
def validation_rules():
    rows = get_db().execute(select(DataDictionary).order_by(DataDictionary.sort_order, DataDictionary.column_name)).scalars()
    return {'validationRules': {
        d.column_name: {
            'required': d.required_for_active,
            'maxLength': d.max_length,
            'minLength': d.min_length,
            'pattern': d.validation_pattern,
            'allowedValues': d.allowed_values or [],
            'dataType': d.data_type,
        }
        for d in rows
    }}


@dictionary_bp.get('/<int:entry_id>')
@require_permissions('DICT.READ')
def get_entry(entry_id: int):
    d = get_db().get(DataDictionary, entry_id)
    if not d:
        abort(404, description=f'Data dictionary entry {entry_id} not found')
    return _entry_json(d)
