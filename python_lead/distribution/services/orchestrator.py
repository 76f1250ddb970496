"""
Distribution orchestrator: deliver one lead with weighted failover.

Candidates are tried one at a time. Each outcome is persisted before the next
candidate is tried, so a lead is never offered to two advertisers at once.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from random import Random
from typing import Dict, Optional

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from distribution.models import (
    Advertiser,
    AdvertiserEmailRejection,
    Lead,
    LeadDistribution,
    RejectedLead,
)
from distribution.services.adapters import Adapter, DeliveryResult, get_adapter
from distribution.services.capacity import CapacityTracker
from distribution.services.eligibility import get_eligible_advertisers
from distribution.services.responses import (
    extract_autologin_url,
    extract_external_lead_id,
    parse_rejection_reason,
    truncate,
)
from distribution.services.selection import select_weighted

logger = logging.getLogger(__name__)

NO_ELIGIBLE_ADVERTISERS = 'No eligible advertisers'
ALL_ADVERTISERS_REJECTED = 'All advertisers rejected the lead'


class OutcomeStatus(str, Enum):
    SUCCESS = 'success'
    NO_ELIGIBLE = 'no_eligible'
    EXHAUSTED = 'exhausted'


@dataclass
class DistributionOutcome:
    """
    Result of routing one lead.

    retryable is set when the pool ran out because of transient problems
    (transport errors, missing adapters) rather than explicit rejections.
    """
    status: OutcomeStatus
    advertiser: Optional[Advertiser] = None
    distribution: Optional[LeadDistribution] = None
    error: Optional[str] = None
    attempts: int = 0
    retryable: bool = False

    @property
    def success(self) -> bool:
        return self.status == OutcomeStatus.SUCCESS


def _record_success(lead: Lead, advertiser: Advertiser, result: DeliveryResult, now: datetime) -> LeadDistribution:
    """Update the lead and write its distribution record in one transaction."""
    with transaction.atomic():
        lead.distributed_at = now
        lead.status = Lead.Status.NEW
        lead.save(update_fields=['distributed_at', 'status', 'updated_at'])

        return LeadDistribution.objects.create(
            lead=lead,
            advertiser=advertiser,
            affiliate_id=lead.affiliate_id,
            status=LeadDistribution.Status.SENT,
            response=truncate(result.response, getattr(settings, 'RESPONSE_MAX_LENGTH', 1000)),
            external_lead_id=extract_external_lead_id(result.response),
            autologin_url=extract_autologin_url(result.response),
            sent_at=now,
        )


def _record_rejection(lead: Lead, advertiser: Advertiser, reason: str, remember_email: bool) -> None:
    limit = getattr(settings, 'REJECTION_REASON_MAX_LENGTH', 500)
    RejectedLead.objects.create(lead=lead, advertiser=advertiser, reason=truncate(reason, limit))

    if remember_email and lead.email:
        AdvertiserEmailRejection.objects.update_or_create(
            email=lead.email.lower(),
            advertiser=advertiser,
            defaults={'rejection_reason': truncate(reason, limit)},
        )


def _mark_rejected(lead: Lead) -> None:
    lead.status = Lead.Status.REJECTED
    lead.save(update_fields=['status', 'updated_at'])


def distribute_lead(
    lead: Lead,
    capacity: CapacityTracker,
    registry: Optional[Dict[str, Adapter]] = None,
    now: Optional[datetime] = None,
    rng: Optional[Random] = None,
) -> DistributionOutcome:
    """
    Route a lead to exactly one advertiser, failing over on rejection.

    Workflow:
    1. Resolve eligible advertisers (empty -> lead rejected, NO_ELIGIBLE)
    2. Pick one by weight from the remaining pool
    3. Unregistered advertiser_type -> drop it and pick again
    4. Adapter accepts -> persist distribution + lead update, bump counters, SUCCESS
    5. Adapter refuses or raises -> persist rejection, drop it, pick again
    6. Pool empty -> EXHAUSTED; the lead is rejected unless a failure was
       transient, in which case the queue decides after its retries

    Args:
        lead: Lead to distribute
        capacity: Batch-scoped usage counters, updated on success
        registry: Optional adapter registry (defaults to the module registry)
        now: Evaluation instant (defaults to current time)
        rng: Optional random generator for weighted selection

    Returns:
        DistributionOutcome describing how routing ended
    """
    now = now or timezone.now()

    eligible = get_eligible_advertisers(lead, capacity, now=now)
    if not eligible:
        _mark_rejected(lead)
        logger.info(f"Lead {lead.id} REJECTED: {NO_ELIGIBLE_ADVERTISERS}")
        return DistributionOutcome(status=OutcomeStatus.NO_ELIGIBLE, error=NO_ELIGIBLE_ADVERTISERS)

    remaining = list(eligible)
    attempts = 0
    transient_failure = False
    last_error = None

    while remaining:
        selected = select_weighted(remaining, rng=rng)
        remaining = [candidate for candidate in remaining if candidate.id != selected.id]
        advertiser = selected.advertiser

        adapter = get_adapter(advertiser.advertiser_type, registry)
        if adapter is None:
            logger.warning(
                f"No adapter registered for type '{advertiser.advertiser_type}' "
                f"(advertiser {advertiser.id}), skipping"
            )
            transient_failure = True
            last_error = f"No adapter for advertiser type '{advertiser.advertiser_type}'"
            continue

        attempts += 1
        logger.info(f"Lead {lead.id}: delivery attempt #{attempts} to {advertiser.name}")

        try:
            result = adapter(lead, advertiser)
        except Exception as e:
            logger.error(f"Error distributing lead {lead.id} to {advertiser.name}: {e}", exc_info=True)
            transient_failure = True
            last_error = f"Delivery error: {e}"
            _record_rejection(lead, advertiser, last_error, remember_email=False)
            continue

        if result.success:
            distribution = _record_success(lead, advertiser, result, now)
            capacity.record_success(advertiser.id)
            logger.info(f"Lead {lead.id} DISTRIBUTED to {advertiser.name}")
            return DistributionOutcome(
                status=OutcomeStatus.SUCCESS,
                advertiser=advertiser,
                distribution=distribution,
                attempts=attempts,
            )

        reason = parse_rejection_reason(result.response)
        last_error = reason
        _record_rejection(lead, advertiser, reason, remember_email=True)
        logger.warning(f"Lead {lead.id} rejected by {advertiser.name}: {reason}")

    error = ALL_ADVERTISERS_REJECTED
    if transient_failure:
        # Left for the queue to retry; it rejects the lead once attempts run out
        if last_error:
            error = f"{ALL_ADVERTISERS_REJECTED} (last error: {last_error})"
        logger.info(f"Lead {lead.id} not delivered after {attempts} attempt(s), retryable")
    else:
        _mark_rejected(lead)
        logger.info(f"Lead {lead.id} REJECTED after {attempts} attempt(s)")
    return DistributionOutcome(
        status=OutcomeStatus.EXHAUSTED,
        error=error,
        attempts=attempts,
        retryable=transient_failure,
    )
