"""
Celery tasks for timer-driven queue processing.
"""
import logging
from celery import shared_task

from distribution.services.processor import process_queue
from distribution.services.work_queue import sweep_stale_processing

logger = logging.getLogger(__name__)


@shared_task
def process_lead_queue(batch_size=None):
    """
    Process one batch of the lead queue.

    Returns the batch counters so they show up in the result backend.
    """
    result = process_queue(batch_size)
    return result.to_dict()


@shared_task
def sweep_stale_queue_items():
    """Return items stuck in processing to the retry path."""
    recovered = sweep_stale_processing()
    if recovered:
        logger.warning(f"Sweeper recovered {recovered} stale queue item(s)")
    return recovered
