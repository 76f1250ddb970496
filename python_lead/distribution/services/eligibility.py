"""
Rule resolution: which advertisers may receive a given lead right now.

Two mutually exclusive tiers:
- Affiliate rules: active rules for the lead's (affiliate, country). When any
  exist they are the only source consulted for that lead.
- Global settings: every active advertiser, filtered by its optional
  distribution setting (country / affiliate allow-lists, flat UTC window).

Both tiers then apply time windows and daily/hourly caps.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Set, Union

from django.conf import settings
from django.utils import timezone

from distribution.models import (
    Advertiser,
    AdvertiserDistributionSetting,
    AdvertiserEmailRejection,
    AffiliateDistributionRule,
    Lead,
)
from distribution.services.capacity import CapacityTracker
from distribution.services.schedule import is_schedule_open

logger = logging.getLogger(__name__)


@dataclass
class EligibleAdvertiser:
    """An advertiser that passed every filter, with its resolved weight."""
    advertiser: Advertiser
    weight: int
    source: str

    @property
    def id(self):
        return self.advertiser.id

    @property
    def name(self) -> str:
        return self.advertiser.name


@dataclass
class AffiliateScoped:
    """Lead is routed by its affiliate's rules only."""
    rules: List[AffiliateDistributionRule]
    kind: str = field(default='affiliate', init=False)


@dataclass
class GlobalScoped:
    """Lead is routed by advertiser defaults and global settings."""
    advertisers: List[Advertiser]
    settings_by_advertiser: Dict[int, AdvertiserDistributionSetting]
    kind: str = field(default='global', init=False)


EligibilitySource = Union[AffiliateScoped, GlobalScoped]


def _first_set(*values):
    """Return the first value that is not None."""
    for value in values:
        if value is not None:
            return value
    return None


def resolve_source(lead: Lead) -> EligibilitySource:
    """
    Decide once per lead which rule tier applies.

    Args:
        lead: Lead being routed

    Returns:
        AffiliateScoped with the matching active rules, or GlobalScoped
    """
    if lead.affiliate_id:
        rules = list(
            AffiliateDistributionRule.objects
            .select_related('advertiser')
            .filter(
                affiliate_id=lead.affiliate_id,
                country_code=lead.country_code,
                is_active=True,
            )
        )
        if rules:
            logger.debug(
                f"Lead {lead.id}: {len(rules)} affiliate rule(s) for "
                f"affiliate={lead.affiliate_id}, country={lead.country_code}"
            )
            return AffiliateScoped(rules=rules)

    advertisers = list(Advertiser.objects.filter(is_active=True))
    settings_by_advertiser = {
        s.advertiser_id: s
        for s in AdvertiserDistributionSetting.objects.filter(is_active=True)
    }
    return GlobalScoped(advertisers=advertisers, settings_by_advertiser=settings_by_advertiser)


def _prior_rejections(email: str) -> Set[int]:
    if not email:
        return set()
    return set(
        AdvertiserEmailRejection.objects
        .filter(email__iexact=email)
        .values_list('advertiser_id', flat=True)
    )


def _eligible_from_rules(
    source: AffiliateScoped,
    capacity: CapacityTracker,
    now: datetime,
    default_daily_cap: int,
    default_weight: int,
) -> List[EligibleAdvertiser]:
    eligible = []
    for rule in source.rules:
        adv = rule.advertiser
        if not adv.is_active:
            continue

        if not is_schedule_open(
            now,
            tz_name=rule.timezone,
            weekly_schedule=rule.weekly_schedule,
            start_time=rule.start_time,
            end_time=rule.end_time,
        ):
            logger.debug(f"Advertiser {adv.id} outside rule schedule")
            continue

        daily_cap = _first_set(rule.daily_cap, adv.daily_cap, default_daily_cap)
        hourly_cap = _first_set(rule.hourly_cap, adv.hourly_cap)
        if not capacity.has_capacity(adv.id, daily_cap, hourly_cap):
            logger.debug(f"Advertiser {adv.id} at cap (daily={daily_cap}, hourly={hourly_cap})")
            continue

        eligible.append(EligibleAdvertiser(
            advertiser=adv,
            weight=_first_set(rule.weight, default_weight),
            source=source.kind,
        ))
    return eligible


def _eligible_from_settings(
    source: GlobalScoped,
    lead: Lead,
    capacity: CapacityTracker,
    now: datetime,
    default_daily_cap: int,
    default_weight: int,
) -> List[EligibleAdvertiser]:
    eligible = []
    for adv in source.advertisers:
        setting = source.settings_by_advertiser.get(adv.id)

        daily_cap = _first_set(
            setting.default_daily_cap if setting else None,
            adv.daily_cap,
            default_daily_cap,
        )
        hourly_cap = _first_set(
            setting.default_hourly_cap if setting else None,
            adv.hourly_cap,
        )
        if not capacity.has_capacity(adv.id, daily_cap, hourly_cap):
            logger.debug(f"Advertiser {adv.id} at cap (daily={daily_cap}, hourly={hourly_cap})")
            continue

        if setting is None:
            eligible.append(EligibleAdvertiser(advertiser=adv, weight=default_weight, source=source.kind))
            continue

        if setting.countries and lead.country_code not in setting.countries:
            continue

        # Leads without an affiliate are not restricted by the affiliate allow-list
        if setting.affiliates and lead.affiliate_id:
            allowed = {str(a) for a in setting.affiliates}
            if str(lead.affiliate_id) not in allowed:
                continue

        if not is_schedule_open(now, start_time=setting.start_time, end_time=setting.end_time):
            continue

        eligible.append(EligibleAdvertiser(
            advertiser=adv,
            weight=_first_set(setting.base_weight, default_weight),
            source=source.kind,
        ))
    return eligible


def get_eligible_advertisers(
    lead: Lead,
    capacity: CapacityTracker,
    now: Optional[datetime] = None,
) -> List[EligibleAdvertiser]:
    """
    Compute the advertisers eligible for a lead with their resolved weights.

    Args:
        lead: Lead being routed
        capacity: Usage counters for the current batch
        now: Evaluation instant (defaults to current time)

    Returns:
        Eligible advertisers; an empty list is a normal outcome
    """
    now = now or timezone.now()
    default_daily_cap = getattr(settings, 'DEFAULT_DAILY_CAP', 100)
    default_weight = getattr(settings, 'DEFAULT_RULE_WEIGHT', 100)

    source = resolve_source(lead)
    if isinstance(source, AffiliateScoped):
        eligible = _eligible_from_rules(source, capacity, now, default_daily_cap, default_weight)
    else:
        eligible = _eligible_from_settings(source, lead, capacity, now, default_daily_cap, default_weight)

    rejected_before = _prior_rejections(lead.email)
    if rejected_before:
        eligible = [e for e in eligible if e.id not in rejected_before]

    logger.info(
        f"Lead {lead.id}: {len(eligible)} eligible advertiser(s) via {source.kind} tier"
    )
    return eligible
