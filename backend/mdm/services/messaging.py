"""Product domain messages via a transactional outbox.

ProductMessageService appends one OutboxEvent per product change. The
OutboxRelay later hands unpublished rows to a publisher in id order and
records publish_attempts / last_error, giving at-least-once delivery.
Consumers deduplicate on the envelope's eventId.
"""
from __future__ import annotations
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

import requests
from sqlalchemy import select

from mdm import get_db
from mdm.models.outbox import OutboxEvent

log = logging.getLogger(__name__)

SOURCE = 'product-mdm'
MESSAGE_VERSION = '1.0'


class ProductMessageService:

    def publish_created(self, product: Dict[str, Any]) -> OutboxEvent:
        return self._append('product.created', 'created', product)

    def publish_updated(self, product: Dict[str, Any], previous: Dict[str, Any]) -> OutboxEvent:
        # Status crossings get their own subjects
        if product.get('status') == 'active' and previous.get('status') != 'active':
            return self.publish_launched(product)
        if product.get('status') != 'active' and previous.get('status') == 'active':
            return self.publish_deactivated(product)
        return self._append('product.updated', 'updated', product)

    def publish_deleted(self, product: Dict[str, Any]) -> OutboxEvent:
        return self._append('product.deleted', 'deleted', product)

    def publish_launched(self, product: Dict[str, Any]) -> OutboxEvent:
        log.info('Publishing product launched message for %s (%s)', product.get('name'), product.get('id'))
        return self._append('product.launched', 'launched', product)

    def publish_deactivated(self, product: Dict[str, Any]) -> OutboxEvent:
        return self._append('product.deactivated', 'deactivated', product)

    def _append(self, subject: str, event_type: str, product: Dict[str, Any]) -> OutboxEvent:
        session = get_db()
        event = OutboxEvent(
            event_type=event_type,
            subject=subject,
            aggregate_type='Product',
            aggregate_id=str(product['id']),
            payload={
                'eventType': event_type,
                'source': SOURCE,
                'productId': product['id'],
                'sku': product.get('sku'),
                'name': product.get('name'),
                'status': product.get('status'),
                'data': product,
            },
            occurred_at=datetime.now(timezone.utc),
        )
        session.add(event)
        session.commit()
        log.info('Queued %s message for product %s (%s)', event_type, product['id'], product.get('sku'))
        return event


def envelope(event: OutboxEvent) -> Dict[str, Any]:
    """Wire form of an outbox row: headers plus the JSON body."""
    occurred = event.occurred_at
    if occurred is not None and occurred.tzinfo is None:
        occurred = occurred.replace(tzinfo=timezone.utc)
    return {
        'subject': event.subject,
        'headers': {
            'eventType': event.event_type,
            'productId': event.aggregate_id,
            'sku': (event.payload or {}).get('sku'),
            'source': SOURCE,
            'version': MESSAGE_VERSION,
            'messageId': event.event_id,
            'timestamp': str(int(occurred.timestamp())) if occurred else None,
        },
        'body': dict(event.payload or {}, eventId=event.event_id,
                     timestamp=occurred.isoformat() if occurred else None),
    }


class LogPublisher:
    """Publisher used when no broker endpoint is configured."""

    def __call__(self, message: Dict[str, Any]):
        log.info('Message %s on %s', message['headers']['messageId'], message['subject'])


class WebhookPublisher:
    """POSTs each envelope to an HTTP endpoint; non-2xx raises."""

    def __init__(self, url: str, timeout: float = 5.0, session: Optional[requests.Session] = None):
        self.url = url
        self.timeout = timeout
        self.session = session or requests.Session()

    def __call__(self, message: Dict[str, Any]):
        headers = {f'X-Message-{k}': v for k, v in message['headers'].items() if v is not None}
        headers['X-Message-Subject'] = message['subject']
        resp = self.session.post(self.url, json=message['body'], headers=headers, timeout=self.timeout)
        resp.raise_for_status()


class OutboxRelay:

    def __init__(self, publisher: Callable[[Dict[str, Any]], Any], max_attempts: int = 10):
        self.publisher = publisher
        self.max_attempts = max_attempts

    def pending(self, session, batch_size: int = 100) -> List[OutboxEvent]:
        stmt = (
            select(OutboxEvent)
            .where(OutboxEvent.published_at.is_(None), OutboxEvent.publish_attempts < self.max_attempts)
            .order_by(OutboxEvent.id.asc())
            .limit(batch_size)
        )
        return list(session.execute(stmt).scalars())

    def relay(self, batch_size: int = 100) -> Dict[str, int]:
        """Publish one batch. A failing row keeps its place and is retried next run."""
        session = get_db()
        published = failed = 0
        for event in self.pending(session, batch_size):
            event.publish_attempts = (event.publish_attempts or 0) + 1
            try:
                self.publisher(envelope(event))
            except Exception as exc:  # publisher errors are recorded on the row
                event.last_error = f'{type(exc).__name__}: {exc}'
                failed += 1
                log.warning('Publishing outbox event %s failed (attempt %s): %s',
                            event.event_id, event.publish_attempts, exc)
            else:
                event.published_at = datetime.now(timezone.utc)
                event.last_error = None
                published += 1
            session.commit()
        return {'published': published, 'failed': failed}


def publisher_from_config(config) -> Callable[[Dict[str, Any]], Any]:
    url = config.get('MESSAGE_WEBHOOK_URL')
    if url:
        return WebhookPublisher(url, timeout=config.get('SIDE_EFFECT_TIMEOUT_SECONDS', 5.0))
    return LogPublisher()
