"""
Celery Tasks
Background report exports, so large Excel writes never block a request.
"""

import logging
import time
from datetime import datetime

from tableserve.celery_worker import celery_app
from tableserve.services.report_exporter import ReportExporter

logger = logging.getLogger(__name__)


@celery_app.task(
    bind=True,
    max_retries=3,
    default_retry_delay=5,
    autoretry_for=(OSError,),
    retry_backoff=True
)
def export_payment_report(self, organization_id: str, rows: list[dict]) -> dict:
    """
    Append paid-order rows to the organization's Excel report.

    Args:
        organization_id: Organization the report belongs to
        rows: Rows built by ``analytics.payment_report_rows``

    Returns:
        dict: Result of the export operation
    """
    task_id = self.request.id
    logger.info(f"Task {task_id}: exporting {len(rows)} payment rows for organization {organization_id}")
    start_time = time.time()

    result = ReportExporter.export_payments(organization_id, rows)

    elapsed = round(time.time() - start_time, 3)
    result['task_id'] = task_id
    result['processing_time_seconds'] = elapsed

    if result['success']:
        logger.info(f"Task {task_id}: report for {organization_id} done in {elapsed}s")
    else:
        logger.warning(f"Task {task_id}: report for {organization_id} failed - {result['message']}")

    return result


@celery_app.task
def health_check() -> dict:
    """
    Simple health check task to verify Celery is working.
    """
    return {
        'status': 'healthy',
        'worker': 'celery',
        'timestamp': datetime.now().isoformat()
    }
