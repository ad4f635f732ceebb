from __future__ import annotations
from typing import Any, Dict, Optional
from flask_jwt_extended import get_jwt
from mdm import get_db
from mdm.models.audit import AuditLog
from mdm.services.policy import current_user_id


def add_audit(action: str, entity: Optional[str] = None, entity_id: Optional[str] = None, meta: Optional[Dict[str, Any]] = None):
    """Persist an audit log entry within the current DB session.

    Parameters:
      action: short action code e.g. PRODUCT.CREATE, CATALOG.UPDATE, TREE.NODE.CREATE
      entity: optional entity name (Product, Catalog, Locale, ...)
      entity_id: optional primary key string
      meta: additional JSON-safe dictionary (will be shallow copied)
    """
    session = get_db()
    claims = get_jwt() or {}
    log = AuditLog(
        actor_user_id=current_user_id() or 0,
        action=action,
        entity=entity,
        entity_id=str(entity_id) if entity_id is not None else None,
        perms_snapshot={'perms': claims.get('perms', [])},
        meta=dict(meta or {}),
    )
    session.add(log)
    # No commit here; caller's transaction boundary controls durability.
    return log
