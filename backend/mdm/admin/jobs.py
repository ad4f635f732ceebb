"""Jobs monitor: polls background and workflow jobs and decides what to show."""
from __future__ import annotations
import logging
import threading
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional

import requests

from mdm.admin.client import ApiClient, ApiError

log = logging.getLogger(__name__)

POLL_INTERVAL = 3.0
COMPLETED_WORKFLOW_WINDOW = timedelta(minutes=2)
DATE_RANGES = {
    '1h': timedelta(hours=1),
    '24h': timedelta(hours=24),
    '7d': timedelta(days=7),
    '30d': timedelta(days=30),
}
DEFAULT_DATE_RANGE = '24h'

IN_PROGRESS = {'pending', 'running', 'processing'}


def _parse(ts: Optional[str]) -> Optional[datetime]:
    if not ts:
        return None
    dt = datetime.fromisoformat(ts.replace('Z', '+00:00'))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def job_stats(background: List[Dict[str, Any]], workflow: List[Dict[str, Any]]) -> Dict[str, int]:
    """Counts over both job kinds; running workflow jobs count as processing."""
    statuses = [(j.get('status') or '').lower() for j in list(background) + list(workflow)]
    return {
        'total': len(statuses),
        'pending': statuses.count('pending'),
        'processing': statuses.count('processing') + statuses.count('running'),
        'completed': statuses.count('completed'),
        'failed': statuses.count('failed'),
    }


def is_visible(job: Dict[str, Any], workflow: bool, date_range: str = DEFAULT_DATE_RANGE,
               now: Optional[datetime] = None) -> bool:
    now = now or datetime.now(timezone.utc)
    status = (job.get('status') or '').lower()
    if status in IN_PROGRESS:
        return True
    if workflow:
        if status == 'completed':
            completed = _parse(job.get('completedAt'))
            return completed is not None and now - completed <= COMPLETED_WORKFLOW_WINDOW
        return True
    created = _parse(job.get('createdAt'))
    window = DATE_RANGES.get(date_range, DATE_RANGES[DEFAULT_DATE_RANGE])
    return created is None or now - created <= window


class JobsMonitor:

    def __init__(self, client: ApiClient, interval: float = POLL_INTERVAL, date_range: str = DEFAULT_DATE_RANGE,
                 clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc)):
        self.client = client
        self.interval = interval
        self.date_range = date_range
        self.clock = clock
        self.jobs: List[Dict[str, Any]] = []
        self.workflow_jobs: List[Dict[str, Any]] = []
        self.error: Optional[str] = None
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def poll_once(self) -> Dict[str, int]:
        """Refresh both lists; a failed list keeps its last data and is reported on error."""
        errors = []
        try:
            self.jobs = self.client.list_jobs()
        except (ApiError, requests.RequestException) as exc:
            log.warning('Loading background jobs failed: %s', exc)
            errors.append(str(exc))
        try:
            self.workflow_jobs = self.client.list_workflow_jobs()
        except (ApiError, requests.RequestException) as exc:
            log.warning('Loading workflow jobs failed: %s', exc)
            errors.append(str(exc))
        self.error = '; '.join(errors) or None
        return self.stats()

    def stats(self) -> Dict[str, int]:
        return job_stats(self.jobs, self.workflow_jobs)

    def visible_jobs(self, workflow: bool = True, status: str = 'all', job_type: str = 'all') -> List[Dict[str, Any]]:
        now = self.clock()
        out = []
        for job in (self.workflow_jobs if workflow else self.jobs):
            if not is_visible(job, workflow, self.date_range, now):
                continue
            job_status = (job.get('status') or '').lower()
            wanted = status.lower()
            if wanted != 'all' and job_status != wanted and not (wanted == 'processing' and job_status == 'running'):
                continue
            if job_type != 'all' and (job.get('type') or job.get('jobType')) != job_type:
                continue
            out.append(job)
        return out

    def start(self):
        if self._thread is not None:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name='jobs-monitor', daemon=True)
        self._thread.start()

    def _run(self):
        self.poll_once()
        while not self._stop.wait(self.interval):
            self.poll_once()

    def stop(self):
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=self.interval)
            self._thread = None
