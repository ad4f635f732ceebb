from datetime import datetime, timedelta, timezone

from mdm import get_db
from mdm.models.jobs import BackgroundJob, WorkflowJob
from tests.test_utils_seed import auth_headers


def _now():
    return datetime.now(timezone.utc)


def test_background_jobs_listing(client, app_instance):
    session = get_db()
    older = BackgroundJob(type='CatalogSync', status='Completed', entity_id='JOBCAT-1', entity_type='Catalog',
                          created_at=_now() - timedelta(hours=1), result={'synced': 4})
    newer = BackgroundJob(type='CatalogSync', status='Failed', entity_id='JOBCAT-1', entity_type='Catalog',
                          created_at=_now(), error_message='timeout')
    session.add_all([older, newer]); session.commit()
    headers = auth_headers(app_instance, ['JOBS.READ'])

    jobs = client.get('/api/catalogmanagement/jobs?entityId=JOBCAT-1', headers=headers).get_json()['jobs']
    assert [j['id'] for j in jobs] == [newer.id, older.id]
    assert jobs[0]['errorMessage'] == 'timeout'
    assert jobs[1]['result'] == {'synced': 4}
    limited = client.get('/api/catalogmanagement/jobs?entityId=JOBCAT-1&limit=1', headers=headers).get_json()['jobs']
    assert len(limited) == 1
    assert client.get('/api/catalogmanagement/jobs?limit=lots', headers=headers).status_code == 400

    one = client.get(f'/api/catalogmanagement/jobs/{older.id}', headers=headers)
    assert one.status_code == 200 and one.get_json()['status'] == 'Completed'
    assert client.get('/api/catalogmanagement/jobs/999999', headers=headers).status_code == 404


def test_workflow_jobs_listing(client, app_instance):
    session = get_db()
    job = WorkflowJob(job_name='Localize JOBWF', job_type='localization', status='pending', total_items=3,
                      catalog_code='JOBWF', product_skus=['A', 'B'], locale_codes=['de_DE'])
    session.add(job); session.commit()
    headers = auth_headers(app_instance, ['JOBS.READ'])
    jobs = client.get('/api/catalogmanagement/workflow-jobs', headers=headers).get_json()['jobs']
    row = next(j for j in jobs if j['id'] == job.id)
    assert row['productSkus'] == ['A', 'B']
    assert row['localeCodes'] == ['de_DE']
    assert row['progressPercentage'] == 0.0


def test_complete_stuck_workflow_jobs(client, app_instance):
    session = get_db()
    stuck = WorkflowJob(job_name='Stuck', job_type='publish', status='running', total_items=10, completed_items=4,
                        started_at=_now() - timedelta(minutes=30))
    fresh = WorkflowJob(job_name='Fresh', job_type='publish', status='running', total_items=10,
                        started_at=_now() - timedelta(minutes=1))
    done = WorkflowJob(job_name='Done', job_type='publish', status='completed',
                       started_at=_now() - timedelta(hours=2))
    session.add_all([stuck, fresh, done]); session.commit()
    ids = (stuck.id, fresh.id, done.id)

    assert client.post('/api/catalogmanagement/complete-stuck-workflow-jobs',
                       headers=auth_headers(app_instance, ['JOBS.READ'])).status_code == 403
    resp = client.post('/api/catalogmanagement/complete-stuck-workflow-jobs',
                       headers=auth_headers(app_instance, ['JOBS.MANAGE']))
    assert resp.status_code == 200
    body = resp.get_json()
    assert stuck.id in body['jobIds']
    assert fresh.id not in body['jobIds'] and done.id not in body['jobIds']
    assert body['completed'] == len(body['jobIds'])

    session = get_db()
    rows = {w.id: w for w in session.query(WorkflowJob).filter(WorkflowJob.id.in_(ids))}
    assert rows[stuck.id].status == 'completed'
    assert rows[stuck.id].completed_items == 10
    assert rows[stuck.id].progress_percentage == 100.0
    assert rows[stuck.id].completed_at is not None
    assert rows[fresh.id].status == 'running'
