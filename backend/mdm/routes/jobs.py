from __future__ import annotations
from datetime import datetime, timedelta, timezone
from flask import Blueprint, request, abort, current_app
from sqlalchemy import select
from mdm import get_db
from mdm.config.pagination import normalize_job_limit
from mdm.models.jobs import BackgroundJob, WorkflowJob
from mdm.decorators.auth import require_permissions
from mdm.decorators.audit import audit_log
from mdm.utils.listing import iso

jobs_bp = Blueprint('jobs', __name__)

# Workflow jobs running longer than this are treated as stuck
STUCK_AFTER = timedelta(minutes=5)


def _job_json(j: BackgroundJob):
    return {
        'id': j.id,
        'type': j.type,
        'status': j.status,
        'entityId': j.entity_id,
        'entityType': j.entity_type,
        'createdAt': iso(j.created_at),
        'startedAt': iso(j.started_at),
        'completedAt': iso(j.completed_at),
        'errorMessage': j.error_message,
        'result': j.result,
        'retryCount': j.retry_count,
        'maxRetries': j.max_retries,
        'createdBy': j.created_by,
    }


def _workflow_json(w: WorkflowJob):
    return {
        'id': w.id,
        'jobName': w.job_name,
        'jobType': w.job_type,
        'status': w.status,
        'totalItems': w.total_items,
        'completedItems': w.completed_items,
        'failedItems': w.failed_items,
        'progressPercentage': w.progress_percentage,
        'createdBy': w.created_by,
        'createdAt': iso(w.created_at),
        'startedAt': iso(w.started_at),
        'completedAt': iso(w.completed_at),
        'errorMessage': w.error_message,
        'catalogCode': w.catalog_code,
        'productSkus': w.product_skus or [],
        'localeCodes': w.locale_codes or [],
    }


def _limit() -> int:
    try:
        return normalize_job_limit(request.args.get('limit'))
    except ValueError as e:
        abort(400, description=str(e))


@jobs_bp.get('/jobs')
@require_permissions('JOBS.READ')
def list_jobs():
    stmt = select(BackgroundJob)
    if request.args.get('entityId'):
        stmt = stmt.where(BackgroundJob.entity_id==request.args['entityId'])
    if request.args.get('entityType'):
        stmt = stmt.where(BackgroundJob.entity_type==request.args['entityType'])
    rows = get_db().execute(
        stmt.order_by(BackgroundJob.created_at.desc(), BackgroundJob.id.desc()).limit(_limit())
    ).scalars().all()
    return {'jobs': [_job_json(j) for j in rows]}


@jobs_bp.get('/jobs/<int:job_id>')
@require_permissions('JOBS.READ')
def get_job(job_id: int):
    j = get_db().get(BackgroundJob, job_id)
    if not j:
        abort(404, description=f'Job {job_id} not found')
    return _job_json(j)


@jobs_bp.get('/workflow-jobs')
@require_permissions('JOBS.READ')
def list_workflow_jobs():
    rows = get_db().execute(
        select(WorkflowJob).order_by(WorkflowJob.created_at.desc(), WorkflowJob.id.desc()).limit(_limit())
    ).scalars().all()
    return {'jobs': [_workflow_json(w) for w in rows]}


def _as_utc(dt):
    if dt is not None and dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


@jobs_bp.post('/complete-stuck-workflow-jobs')
@require_permissions('JOBS.MANAGE')
@audit_log('JOBS.COMPLETE_STUCK', entity='WorkflowJob', meta_keys=['completed'])
def complete_stuck_workflow_jobs():
    session = get_db()
    now = datetime.now(timezone.utc)
    running = session.execute(select(WorkflowJob).where(WorkflowJob.status==WorkflowJob.STATUS_RUNNING)).scalars().all()
    completed = []
    for w in running:
        started = _as_utc(w.started_at or w.created_at)
        if started is None or now - started <= STUCK_AFTER:
            continue
        w.status = WorkflowJob.STATUS_COMPLETED
        w.progress_percentage = 100.0
        w.completed_items = w.total_items
        w.completed_at = now
        completed.append(w.id)
    session.commit()
    if completed:
        current_app.logger.info('Completed %d stuck workflow jobs: %s', len(completed), completed)
    return {'completed': len(completed), 'jobIds': completed}
