"""
Durable work queue for lead distribution.

Items move pending -> processing -> completed | failed, or back to pending
for another attempt. Claiming is a conditional update ("only if still
pending") tagged with a per-batch claim token, so concurrent processors never
receive the same item.
"""
import logging
import uuid
from datetime import timedelta
from typing import List, Optional, Union

from django.conf import settings
from django.db import transaction
from django.db.models import F, Q
from django.utils import timezone

from distribution.models import Lead, LeadQueueItem

logger = logging.getLogger(__name__)

LEAD_NOT_FOUND = 'Lead not found'
STALE_CLAIM = 'Processing interrupted before completion'


def enqueue(lead: Union[Lead, int], max_attempts: Optional[int] = None) -> LeadQueueItem:
    """
    Queue a lead for distribution.

    A lead has at most one queue item. An item that is already pending or
    processing is returned unchanged; a finished item is reset to pending
    with a fresh attempt budget.

    Args:
        lead: Lead instance or id
        max_attempts: Attempt budget (defaults to QUEUE_MAX_ATTEMPTS)

    Returns:
        The lead's queue item
    """
    lead_id = lead.id if isinstance(lead, Lead) else lead
    if max_attempts is None:
        max_attempts = getattr(settings, 'QUEUE_MAX_ATTEMPTS', 3)

    item, created = LeadQueueItem.objects.get_or_create(
        lead_id=lead_id,
        defaults={'max_attempts': max_attempts},
    )
    if created:
        logger.info(f"Lead {lead_id} enqueued (item {item.id})")
        return item

    if item.status in (LeadQueueItem.Status.PENDING, LeadQueueItem.Status.PROCESSING):
        logger.debug(f"Lead {lead_id} already queued with status {item.status}")
        return item

    item.status = LeadQueueItem.Status.PENDING
    item.attempts = 0
    item.max_attempts = max_attempts
    item.error_message = None
    item.claim_token = None
    item.claimed_at = None
    item.processed_at = None
    item.save()
    logger.info(f"Lead {lead_id} re-enqueued (item {item.id})")
    return item


def dequeue_batch(batch_size: int) -> List[LeadQueueItem]:
    """
    Claim up to batch_size of the oldest pending items.

    Returns:
        Claimed items, now in processing status, oldest first
    """
    if batch_size <= 0:
        return []

    token = uuid.uuid4()
    now = timezone.now()

    with transaction.atomic():
        candidate_ids = list(
            LeadQueueItem.objects
            .select_for_update(skip_locked=True)
            .filter(status=LeadQueueItem.Status.PENDING)
            .order_by('created_at', 'id')
            .values_list('id', flat=True)[:batch_size]
        )
        if not candidate_ids:
            return []

        claimed = (
            LeadQueueItem.objects
            .filter(id__in=candidate_ids, status=LeadQueueItem.Status.PENDING)
            .update(
                status=LeadQueueItem.Status.PROCESSING,
                claim_token=token,
                claimed_at=now,
                updated_at=now,
            )
        )

    logger.info(f"Claimed {claimed} queue item(s) (token={token})")
    return list(
        LeadQueueItem.objects
        .filter(claim_token=token, status=LeadQueueItem.Status.PROCESSING)
        .order_by('created_at', 'id')
    )


def _owned(item: LeadQueueItem):
    """Queryset matching the item only while it still carries our claim token."""
    return LeadQueueItem.objects.filter(id=item.id, claim_token=item.claim_token)


def renew_claim(item: LeadQueueItem) -> bool:
    """
    Re-assert ownership of a claimed item and refresh its heartbeat.

    Returns False when the item was swept or re-claimed by another processor
    since this batch claimed it; the caller must then leave it alone.
    """
    now = timezone.now()
    renewed = _owned(item).filter(status=LeadQueueItem.Status.PROCESSING).update(
        claimed_at=now,
        updated_at=now,
    )
    if not renewed:
        logger.warning(f"Queue item {item.id} no longer owned by this batch, skipping")
        return False
    item.claimed_at = now
    return True


def mark_completed(item: LeadQueueItem) -> bool:
    """
    Mark a delivered item completed.

    Also applies when the item was swept back to pending meanwhile, so the
    delivered lead is not picked up again. Returns False only if another
    processor holds the item now.
    """
    now = timezone.now()
    updated = (
        LeadQueueItem.objects
        .filter(id=item.id)
        .filter(Q(claim_token=item.claim_token) | Q(status=LeadQueueItem.Status.PENDING))
        .update(
            status=LeadQueueItem.Status.COMPLETED,
            error_message=None,
            processed_at=now,
            updated_at=now,
        )
    )
    if not updated:
        logger.error(f"Queue item {item.id} delivered but re-claimed by another processor")
        return False
    item.status = LeadQueueItem.Status.COMPLETED
    item.error_message = None
    item.processed_at = now
    return True


def mark_failed(item: LeadQueueItem, error: str) -> bool:
    """
    Terminal failure, no further attempts. The pass still counts as an attempt.

    Returns False when the item is no longer owned by the caller.
    """
    now = timezone.now()
    updated = _owned(item).update(
        status=LeadQueueItem.Status.FAILED,
        attempts=F('attempts') + 1,
        error_message=error,
        processed_at=now,
        updated_at=now,
    )
    if not updated:
        logger.warning(f"Queue item {item.id} lost its claim, failure not recorded: {error}")
        return False

    item.status = LeadQueueItem.Status.FAILED
    item.attempts += 1
    item.error_message = error
    item.processed_at = now
    logger.error(f"Queue item {item.id} FAILED: {error}")
    return True


def record_failure(item: LeadQueueItem, error: str) -> Optional[str]:
    """
    Count a failed processing pass.

    The item becomes failed once attempts reach max_attempts, otherwise it
    goes back to pending for a later batch. A lead whose item fails for good
    is marked rejected.

    Returns:
        The item's new status, or None if the item is no longer owned
    """
    now = timezone.now()
    attempts = item.attempts + 1
    terminal = attempts >= item.max_attempts

    if terminal:
        fields = {'status': LeadQueueItem.Status.FAILED, 'processed_at': now}
    else:
        fields = {'status': LeadQueueItem.Status.PENDING, 'claim_token': None}

    with transaction.atomic():
        updated = _owned(item).update(
            attempts=attempts,
            error_message=error,
            updated_at=now,
            **fields
        )
        if not updated:
            logger.warning(f"Queue item {item.id} lost its claim, failure not recorded: {error}")
            return None
        if terminal:
            Lead.objects.filter(id=item.lead_id).update(status=Lead.Status.REJECTED, updated_at=now)

    item.attempts = attempts
    item.error_message = error
    for name, value in fields.items():
        setattr(item, name, value)

    if terminal:
        logger.error(
            f"Queue item {item.id} FAILED after {item.attempts}/{item.max_attempts} attempts: {error}"
        )
    else:
        logger.warning(
            f"Queue item {item.id} will retry (attempt {item.attempts}/{item.max_attempts}): {error}"
        )
    return item.status


def sweep_stale_processing(older_than: Optional[timedelta] = None) -> int:
    """
    Recover items left in processing by a processor that died mid-batch.

    Each stale claim counts as one failed attempt.

    Returns:
        Number of items recovered
    """
    if older_than is None:
        older_than = timedelta(minutes=getattr(settings, 'QUEUE_STALE_PROCESSING_MINUTES', 15))
    cutoff = timezone.now() - older_than

    stale_items = list(
        LeadQueueItem.objects.filter(
            status=LeadQueueItem.Status.PROCESSING,
            claimed_at__lt=cutoff,
        )
    )

    recovered = 0
    for item in stale_items:
        with transaction.atomic():
            # Skip items whose processor finished or renewed its claim meanwhile
            still_stale = (
                LeadQueueItem.objects
                .select_for_update()
                .filter(
                    id=item.id,
                    status=LeadQueueItem.Status.PROCESSING,
                    claim_token=item.claim_token,
                    claimed_at__lt=cutoff,
                )
                .exists()
            )
            if not still_stale or record_failure(item, STALE_CLAIM) is None:
                continue
        recovered += 1

    if recovered:
        logger.info(f"Recovered {recovered} stale queue item(s)")
    return recovered
