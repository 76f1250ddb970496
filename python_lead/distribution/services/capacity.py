"""
Per-advertiser usage counters for one queue processing batch.

Counts are loaded once from sent LeadDistribution rows at the start of a batch
and bumped in memory as deliveries succeed, so later leads in the same batch
see the updated usage. The tracker is discarded after the batch.

Caps are advisory across processes: two batches running at the same time
against an advertiser near its cap each see their own snapshot and may both
deliver, overshooting the cap by a small margin.
"""
import logging
from collections import Counter
from datetime import datetime, timedelta, timezone as dt_timezone
from typing import Optional

from django.db.models import Count
from django.utils import timezone

from distribution.models import LeadDistribution

logger = logging.getLogger(__name__)


def _count_sent_since(since: datetime) -> Counter:
    rows = (
        LeadDistribution.objects
        .filter(status=LeadDistribution.Status.SENT, created_at__gte=since)
        .values('advertiser_id')
        .annotate(total=Count('id'))
    )
    return Counter({row['advertiser_id']: row['total'] for row in rows})


class CapacityTracker:
    """Daily (since UTC midnight) and rolling-hour sent counts per advertiser."""

    def __init__(self, daily_counts=None, hourly_counts=None):
        self.daily_counts = Counter(daily_counts or {})
        self.hourly_counts = Counter(hourly_counts or {})

    @classmethod
    def load(cls, now: Optional[datetime] = None) -> 'CapacityTracker':
        """Snapshot current usage from persisted distributions."""
        now = now or timezone.now()
        start_of_day = now.astimezone(dt_timezone.utc).replace(
            hour=0, minute=0, second=0, microsecond=0
        )
        hour_ago = now - timedelta(hours=1)

        tracker = cls(_count_sent_since(start_of_day), _count_sent_since(hour_ago))
        logger.debug(
            f"Capacity snapshot: daily={dict(tracker.daily_counts)}, "
            f"hourly={dict(tracker.hourly_counts)}"
        )
        return tracker

    def daily_count(self, advertiser_id) -> int:
        return self.daily_counts[advertiser_id]

    def hourly_count(self, advertiser_id) -> int:
        return self.hourly_counts[advertiser_id]

    def has_capacity(self, advertiser_id, daily_cap: int, hourly_cap: Optional[int] = None) -> bool:
        """
        True if the advertiser is below both caps.
        A missing (None) hourly cap means unlimited; a cap of 0 blocks.
        """
        if self.daily_count(advertiser_id) >= daily_cap:
            return False
        if hourly_cap is not None and self.hourly_count(advertiser_id) >= hourly_cap:
            return False
        return True

    def record_success(self, advertiser_id) -> None:
        self.daily_counts[advertiser_id] += 1
        self.hourly_counts[advertiser_id] += 1
