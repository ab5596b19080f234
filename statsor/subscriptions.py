"""
Subscription policy: plan tiers, usage counters and resource creation limits.

Usage records live in the "subscriptions" collection, one entry per identity
keyed by the identity's stable id. Counters that can be derived from an
authoritative collection (e.g. teamsCreated from the team list) are resolved
through registered usage sources at read time, so a stale stored counter
never decides a quota check.
"""

import logging
from datetime import datetime
from typing import Callable, Dict, List, Optional

from . import config
from .errors import ValidationError
from .models import Identity, SubscriptionRecord, SubscriptionSummary
from .storage import Store

logger = logging.getLogger(__name__)

SUBSCRIPTIONS_KEY = "subscriptions"

UsageSource = Callable[[Identity], int]


def is_unlimited(limit: Optional[int]) -> bool:
    return limit is None or limit == config.UNLIMITED


class SubscriptionPolicy:
    def __init__(self, store: Store, plan_limits: Optional[Dict[str, Dict[str, int]]] = None,
                 default_tier: Optional[str] = None,
                 usage_counters: Optional[Dict[str, str]] = None):
        self.store = store
        self.plan_limits = plan_limits if plan_limits is not None else config.load_plan_limits()
        self.default_tier = default_tier or config.DEFAULT_TIER
        self.usage_counters = usage_counters if usage_counters is not None else dict(config.USAGE_COUNTERS)
        self._usage_sources: Dict[str, UsageSource] = {}

        if self.default_tier not in self.plan_limits:
            raise ValueError(f"Default tier '{self.default_tier}' is not in the plan table")

    # Storage helpers
    def _load_records(self) -> List[dict]:
        return [r for r in self.store.load_list(SUBSCRIPTIONS_KEY) if isinstance(r, dict)]

    def _find_record(self, identity: Identity) -> Optional[SubscriptionRecord]:
        for record_data in self._load_records():
            if record_data.get('user_id') == identity.id:
                try:
                    return SubscriptionRecord(**record_data)
                except (ValueError, TypeError) as e:
                    logger.warning(f"Skipping invalid subscription record for {identity.id}: {e}")
                    continue
        return None

    def _save_record(self, record: SubscriptionRecord) -> SubscriptionRecord:
        records = self._load_records()
        record_dict = record.model_dump(mode='json')

        for idx, record_data in enumerate(records):
            if record_data.get('user_id') == record.user_id:
                records[idx] = record_dict
                break
        else:
            records.append(record_dict)

        self.store.save(SUBSCRIPTIONS_KEY, records)
        return record

    def _get_or_create_record(self, identity: Identity) -> SubscriptionRecord:
        record = self._find_record(identity)
        if record is None:
            record = self.initialize_subscription(identity)
        return record

    # Derived usage
    def register_usage_source(self, counter: str, source: UsageSource) -> None:
        """Resolve counter from source at read time instead of the stored value"""
        self._usage_sources[counter] = source

    def _resolve_usage(self, identity: Identity, stored: Dict[str, int]) -> Dict[str, int]:
        usage = dict(stored)
        for counter, source in self._usage_sources.items():
            usage[counter] = source(identity)
        return usage

    def counter_for(self, kind: str) -> str:
        return self.usage_counters.get(kind, f"{kind}Created")

    # Policy
    def limits_for_tier(self, tier: str) -> Dict[str, int]:
        return dict(self.plan_limits.get(tier, self.plan_limits[self.default_tier]))

    def get_limit(self, tier: str, kind: str) -> int:
        return self.limits_for_tier(tier).get(kind, config.UNLIMITED)

    def tier_for(self, identity: Identity) -> str:
        record = self._find_record(identity)
        if record is None or record.tier not in self.plan_limits:
            return self.default_tier
        return record.tier

    def current_usage(self, identity: Identity, kind: str) -> int:
        record = self._find_record(identity)
        usage = self._resolve_usage(identity, record.usage if record else {})
        return usage.get(self.counter_for(kind), 0)

    def can_create_resource(self, identity: Identity, kind: str) -> bool:
        """True iff usage for kind is strictly below the identity's plan limit"""
        limit = self.get_limit(self.tier_for(identity), kind)
        if is_unlimited(limit):
            return True
        return self.current_usage(identity, kind) < limit

    def update_usage_stats(self, identity: Identity, counters: Dict[str, int]) -> SubscriptionRecord:
        """Overwrite the supplied counters; other counters are left alone"""
        record = self._get_or_create_record(identity)
        usage = dict(record.usage)
        for counter, value in counters.items():
            if not isinstance(value, int) or value < 0:
                raise ValidationError(f"Usage counter '{counter}' must be a non-negative integer")
            usage[counter] = value

        record = record.model_copy(update={
            'usage': usage,
            'updated_at': datetime.now().isoformat(),
        })
        return self._save_record(record)

    def get_subscription_summary(self, identity: Identity) -> SubscriptionSummary:
        record = self._get_or_create_record(identity)
        tier = record.tier if record.tier in self.plan_limits else self.default_tier
        limits = self.limits_for_tier(tier)
        usage = self._resolve_usage(identity, record.usage)

        usage_percentages = {}
        near_limit = {}
        for kind, limit in limits.items():
            used = usage.get(self.counter_for(kind), 0)
            if is_unlimited(limit):
                percent = 0.0
            elif limit == 0:
                percent = 100.0
            else:
                percent = round(used / limit * 100, 1)
            usage_percentages[kind] = percent
            near_limit[kind] = percent > config.NEAR_LIMIT_PERCENT

        return SubscriptionSummary(
            user_id=identity.id,
            tier=tier,
            limits=limits,
            usage=usage,
            usage_percentages=usage_percentages,
            near_limit=near_limit,
        )

    # Plan management
    def initialize_subscription(self, identity: Identity, tier: Optional[str] = None) -> SubscriptionRecord:
        """Create the identity's record on the given (default) tier if it has none"""
        existing = self._find_record(identity)
        if existing is not None:
            return existing

        tier = tier or self.default_tier
        if tier not in self.plan_limits:
            raise ValidationError(f"Unknown plan tier: {tier}")

        record = SubscriptionRecord(user_id=identity.id, email=identity.email, tier=tier)
        logger.info(f"Initialized '{tier}' subscription for {identity.id}")
        return self._save_record(record)

    def change_plan(self, identity: Identity, tier: str) -> SubscriptionRecord:
        if tier not in self.plan_limits:
            raise ValidationError(f"Unknown plan tier: {tier}")

        record = self._get_or_create_record(identity)
        record = record.model_copy(update={
            'tier': tier,
            'updated_at': datetime.now().isoformat(),
        })
        logger.info(f"Changed plan for {identity.id} to '{tier}'")
        return self._save_record(record)
