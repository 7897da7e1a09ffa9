"""
Eligibility — which contacts get work this run.

Default mode only touches contacts never attempted, so a run with no new
contacts costs nothing. Force mode also re-checks stale matches and retries
old misses.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import List, Tuple

from app.config import ENRICHMENT_STALENESS_DAYS, ENRICHMENT_RETRY_COOLDOWN_HOURS
from app.pipeline.base import as_utc


@dataclass(frozen=True)
class EnrichmentPolicy:
    staleness_window: timedelta = timedelta(days=ENRICHMENT_STALENESS_DAYS)
    retry_cooldown: timedelta = timedelta(hours=ENRICHMENT_RETRY_COOLDOWN_HOURS)

    def __post_init__(self):
        if self.retry_cooldown <= timedelta(0):
            raise ValueError("retry_cooldown must be positive")
        if self.retry_cooldown >= self.staleness_window:
            raise ValueError(
                f"retry_cooldown ({self.retry_cooldown}) must be shorter than "
                f"staleness_window ({self.staleness_window})"
            )

    def is_stale(self, enriched_at, now: datetime) -> bool:
        """Matched data older than the staleness window."""
        enriched_at = as_utc(enriched_at)
        return enriched_at is None or now - enriched_at > self.staleness_window

    def can_retry(self, enriched_at, now: datetime) -> bool:
        """A miss older than the retry cooldown."""
        enriched_at = as_utc(enriched_at)
        return enriched_at is None or now - enriched_at > self.retry_cooldown


DEFAULT_POLICY = EnrichmentPolicy()


def is_eligible(record, force: bool, now: datetime, policy: EnrichmentPolicy = DEFAULT_POLICY) -> bool:
    if record.enriched_at is None:
        return True
    if not force:
        return False
    if record.apollo_id:
        return policy.is_stale(record.enriched_at, now)
    return policy.can_retry(record.enriched_at, now)


def select_eligible(records, force: bool, now: datetime,
                    policy: EnrichmentPolicy = DEFAULT_POLICY) -> Tuple[List, int]:
    """Returns (eligible records in load order, number not selected)."""
    eligible = [r for r in records if is_eligible(r, force, now, policy)]
    return eligible, len(records) - len(eligible)
