from __future__ import annotations
import logging
from datetime import datetime, timezone
from typing import Optional

import requests

log = logging.getLogger(__name__)

_LEVELS = {'INFO': logging.INFO, 'WARNING': logging.WARNING, 'ERROR': logging.ERROR}


class RealTimeLogService:
    """Streams operational events to the dashboard log endpoint.

    With no base URL configured every event is written to the local logger
    only. HTTP failures raise; callers treat streaming as best-effort.
    """

    PUSH_PATH = '/api/logs/push'

    def __init__(self, base_url: str = '', service_name: str = 'Product MDM API', timeout: float = 5.0,
                 session: Optional[requests.Session] = None):
        self.base_url = (base_url or '').rstrip('/')
        self.service_name = service_name
        self.timeout = timeout
        self.session = session or requests.Session()

    def stream_log(self, level: str, source: str, message: str, exception: Optional[BaseException] = None):
        entry = {
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'level': level,
            'source': source,
            'message': message,
            'service': self.service_name,
            'exception': repr(exception) if exception else None,
        }
        log.log(_LEVELS.get(level.upper(), logging.INFO), '[%s] %s', source, message)
        if not self.base_url:
            return entry
        resp = self.session.post(f'{self.base_url}{self.PUSH_PATH}', json=entry, timeout=self.timeout)
        resp.raise_for_status()
        return entry

    def stream_business_event(self, event_type: str, details: str, level: str = 'INFO'):
        return self.stream_log(level, 'ProductMdm.BusinessEvents', f'Business Event: {event_type} - {details}')

    def stream_workflow_transition(self, sku: str, from_status: str, to_status: str, user_id):
        return self.stream_log('WARNING', 'ProductMdm.Workflow',
                               f'Product workflow transition: {sku} moved from {from_status} to {to_status} by user {user_id}')

    def stream_product_launch(self, sku: str):
        return self.stream_log('WARNING', 'ProductMdm.Launch', f'Product launched: {sku} published to staging environment')

    def stream_error(self, operation: str, error: str, exception: Optional[BaseException] = None):
        return self.stream_log('ERROR', 'ProductMdm.Error', f'Operation failed: {operation} - {error}', exception)
