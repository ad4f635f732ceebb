from __future__ import annotations
from flask import Blueprint, request, abort, current_app
from mdm import get_db
from mdm.models.outbox import OutboxEvent
from mdm.decorators.auth import require_permissions
from mdm.decorators.audit import audit_log
from mdm.services.messaging import OutboxRelay, publisher_from_config
from mdm.utils.filters import apply_filters
from mdm.utils.listing import apply_pagination, make_cached_list_response, iso
from mdm.utils.validation import parse_bool

outbox_bp = Blueprint('outbox', __name__)


def _event_json(e: OutboxEvent):
    return {
        'id': e.id,
        'eventId': e.event_id,
        'eventType': e.event_type,
        'subject': e.subject,
        'aggregateType': e.aggregate_type,
        'aggregateId': e.aggregate_id,
        'occurredAt': iso(e.occurred_at),
        'publishedAt': iso(e.published_at),
        'publishAttempts': e.publish_attempts,
        'lastError': e.last_error,
    }


@outbox_bp.get('')
@require_permissions('JOBS.READ')
def list_events():
    q = get_db().query(OutboxEvent)
    q = apply_filters(q, {
        'published': {'coerce': parse_bool, 'op': lambda qu, v: qu.filter(
            OutboxEvent.published_at.is_not(None) if v else OutboxEvent.published_at.is_(None))},
        'subject': {'op': lambda qu, v: qu.filter(OutboxEvent.subject==v)},
        'aggregateId': {'op': lambda qu, v: qu.filter(OutboxEvent.aggregate_id==v)},
    }, request.args)
    paged_q, total, page, limit = apply_pagination(q.order_by(OutboxEvent.id.asc()))
    rows = paged_q.all()
    return make_cached_list_response([_event_json(e) for e in rows], total, page, limit)[0]


@outbox_bp.post('/relay')
@require_permissions('JOBS.MANAGE')
@audit_log('OUTBOX.RELAY', entity='Outbox', meta_keys=['published', 'failed'])
def relay():
    raw = request.args.get('batchSize', '100')
    try:
        batch_size = max(1, min(int(raw), 500))
    except ValueError:
        abort(400, description='batchSize must be int')
    result = OutboxRelay(publisher_from_config(current_app.config)).relay(batch_size)
    current_app.logger.info('Outbox relay run: %s', result)
    return result
