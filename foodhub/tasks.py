"""
Celery Tasks
Background export of placed orders to the Excel ledger.
"""

import logging
import time
from datetime import datetime

from foodhub.celery_worker import celery_app
from foodhub.services.ledger import get_order_ledger

logger = logging.getLogger(__name__)


@celery_app.task(
    bind=True,
    max_retries=3,
    default_retry_delay=5,
    autoretry_for=(Exception,),
    retry_backoff=True
)
def export_order_to_ledger(self, order_data: dict) -> dict:
    """
    Append an order snapshot to the ledger workbook.

    Args:
        order_data: Flat order snapshot (see services.orders.ledger_payload)

    Returns:
        dict: Result of the export operation
    """
    task_id = self.request.id
    order_id = order_data.get('order_id', 'unknown')

    logger.info(f"Task {task_id}: exporting order #{order_id}")
    start_time = time.time()

    try:
        result = get_order_ledger().export_order(order_data)

        elapsed = round(time.time() - start_time, 3)
        result['task_id'] = task_id
        result['processing_time_seconds'] = elapsed

        if result['success']:
            logger.info(f"Task {task_id}: order #{order_id} exported in {elapsed}s")
        else:
            logger.warning(f"Task {task_id}: order #{order_id} not exported - {result['message']}")

        return result

    except Exception as e:
        elapsed = round(time.time() - start_time, 3)
        logger.error(f"Task {task_id}: order #{order_id} error after {elapsed}s - {e}")
        raise


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


@celery_app.task
def clear_order_ledger() -> dict:
    """
    Delete the ledger workbook (for testing/reset purposes).
    """
    success = get_order_ledger().clear_all()
    return {
        'success': success,
        'message': 'Order ledger cleared' if success else 'Failed to clear order ledger',
        'timestamp': datetime.now().isoformat()
    }
