"""
Queue processor: claims a batch of queued leads and distributes them in order.

Leads in a batch are processed sequentially because they share one
CapacityTracker whose counters change with every successful delivery.
"""
import logging
from dataclasses import asdict, dataclass
from typing import Dict, Optional

from django.conf import settings

from distribution.models import Lead, LeadQueueItem
from distribution.services.adapters import Adapter
from distribution.services.capacity import CapacityTracker
from distribution.services.orchestrator import OutcomeStatus, distribute_lead
from distribution.services.work_queue import (
    LEAD_NOT_FOUND,
    dequeue_batch,
    mark_completed,
    mark_failed,
    record_failure,
    renew_claim,
)

logger = logging.getLogger(__name__)


@dataclass
class BatchResult:
    processed: int = 0
    succeeded: int = 0
    failed: int = 0
    retried: int = 0

    def to_dict(self) -> dict:
        return asdict(self)


def clamp_batch_size(batch_size=None) -> int:
    """Clamp a requested batch size to 1..QUEUE_MAX_BATCH_SIZE."""
    default = getattr(settings, 'QUEUE_DEFAULT_BATCH_SIZE', 50)
    maximum = getattr(settings, 'QUEUE_MAX_BATCH_SIZE', 100)
    # bool is an int subclass, reject it explicitly
    if isinstance(batch_size, bool) or not isinstance(batch_size, int) or batch_size < 1:
        return default
    return min(batch_size, maximum)


def _count_failure(result: BatchResult, new_status) -> None:
    if new_status == LeadQueueItem.Status.FAILED:
        result.failed += 1
    elif new_status == LeadQueueItem.Status.PENDING:
        result.retried += 1


def process_queue(batch_size=None, registry: Optional[Dict[str, Adapter]] = None) -> BatchResult:
    """
    Process one batch of pending queue items.

    Workflow:
    1. Claim up to batch_size pending items
    2. Snapshot advertiser usage for the batch
    3. For each item: re-assert the claim (skip it if lost); missing lead ->
       failed; otherwise distribute the lead
    4. Success -> completed; terminal outcome -> failed; transient -> retry

    Args:
        batch_size: Requested batch size (clamped, default 50)
        registry: Optional adapter registry override

    Returns:
        BatchResult with per-batch counters
    """
    size = clamp_batch_size(batch_size)
    logger.info(f"Processing lead queue (batch size: {size})")

    result = BatchResult()
    items = dequeue_batch(size)
    if not items:
        logger.info("No pending items in queue")
        return result

    capacity = CapacityTracker.load()
    leads = Lead.objects.in_bulk([item.lead_id for item in items])

    for item in items:
        # A long batch may have been swept and its items re-claimed elsewhere
        if not renew_claim(item):
            continue

        lead = leads.get(item.lead_id)
        if lead is None:
            if mark_failed(item, LEAD_NOT_FOUND):
                result.failed += 1
            continue

        result.processed += 1
        try:
            outcome = distribute_lead(lead, capacity, registry=registry)
        except Exception as e:
            logger.error(f"Unexpected error processing lead {lead.id}: {e}", exc_info=True)
            _count_failure(result, record_failure(item, f"Processing error: {e}"))
            continue

        if outcome.success:
            mark_completed(item)
            result.succeeded += 1
        elif outcome.status == OutcomeStatus.NO_ELIGIBLE or not outcome.retryable:
            if mark_failed(item, outcome.error):
                result.failed += 1
        else:
            _count_failure(result, record_failure(item, outcome.error))

    logger.info(
        f"Processed {result.processed} leads: {result.succeeded} succeeded, "
        f"{result.failed} failed, {result.retried} retrying"
    )
    return result
