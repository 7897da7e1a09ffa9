"""
Enrichment contracts.

Person and organization enrichment share one shape: look for a zero-cost
answer first, otherwise spend one provider call, then persist either the data
or a negative stamp. Each entity kind implements EntityAdapter; the cache /
breaker / fetch / persist sequence lives once in resolve_or_fetch().
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from app.pipeline.credit_breaker import BreakerOpenError, CreditBreaker
from app.services.apollo import ApolloClient, ApolloTransientError, QuotaExhaustedError


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite hands back naive datetimes; treat them as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


@dataclass
class BatchResult:
    """Counters for one enrichment run. Every contact lands in exactly one bucket."""
    total: int = 0
    enriched: int = 0
    skipped: int = 0
    errors: int = 0
    error_message: Optional[str] = None
    credits_used: int = 0

    def set_error_message(self, message: str):
        """First fatal condition wins."""
        if not self.error_message:
            self.error_message = message

    def snapshot(self) -> 'BatchResult':
        return replace(self)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'total': self.total,
            'enriched': self.enriched,
            'skipped': self.skipped,
            'errors': self.errors,
            'error_message': self.error_message,
            'credits_used': self.credits_used,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'BatchResult':
        return cls(
            total=data.get('total', 0),
            enriched=data.get('enriched', 0),
            skipped=data.get('skipped', 0),
            errors=data.get('errors', 0),
            error_message=data.get('error_message'),
            credits_used=data.get('credits_used', 0),
        )


class EntityKind(str, Enum):
    PERSON = 'person'
    ORGANIZATION = 'organization'


class Outcome(str, Enum):
    """What happened to one record."""
    # zero cost
    GENERIC = 'generic'                    # shared mailbox, stamped
    CACHE_HIT = 'cache_hit'                # copied from another record
    KNOWN_MISS = 'known_miss'              # another record already missed
    FRESH = 'fresh'                        # nothing to do yet
    BREAKER_OPEN = 'breaker_open'          # credits gone earlier in the run
    # one credit
    MATCHED = 'matched'
    NOT_FOUND = 'not_found'
    QUOTA_EXHAUSTED = 'quota_exhausted'
    FAILED = 'failed'                      # transient, left unstamped

    @property
    def counter(self) -> str:
        """BatchResult field this outcome is counted in."""
        if self in (Outcome.MATCHED, Outcome.CACHE_HIT):
            return 'enriched'
        if self is Outcome.FAILED:
            return 'errors'
        return 'skipped'

    @property
    def spent_credit(self) -> bool:
        return self in (Outcome.MATCHED, Outcome.NOT_FOUND)


class EntityAdapter(ABC):
    """
    Per-kind enrichment behaviour.

    Adapters mutate the ORM record in place; committing is the caller's job so
    one record = one transaction.
    """
    kind: EntityKind

    @abstractmethod
    def resolve_cached(self, session, record, now: datetime) -> Optional[Outcome]:
        """Apply any zero-cost answer. Returns None when a paid call is needed."""
        ...

    @abstractmethod
    def fetch(self, client: ApolloClient, record) -> Optional[Dict[str, Any]]:
        """One provider call. None means not found."""
        ...

    @abstractmethod
    def has_real_data(self, profile: Dict[str, Any]) -> bool:
        ...

    @abstractmethod
    def apply_profile(self, record, profile: Dict[str, Any], now: datetime):
        """Non-destructive merge + positive stamp."""
        ...

    def mark_attempted(self, record, now: datetime):
        """Negative stamp: attempted, nothing usable."""
        record.enriched_at = now

    def describe(self, record) -> str:
        return str(getattr(record, 'id', record))


def resolve_or_fetch(
    adapter: EntityAdapter,
    session,
    record,
    client: ApolloClient,
    breaker: CreditBreaker,
    now: datetime,
) -> Outcome:
    """
    Resolve one record at the lowest possible cost.

    Order: breaker → cache tiers → one paid call. Quota and transient errors
    leave the record unstamped so the next run retries it.
    """
    if breaker.tripped:
        return Outcome.BREAKER_OPEN

    cached = adapter.resolve_cached(session, record, now)
    if cached is not None:
        return cached

    try:
        profile = breaker.call(adapter.fetch, client, record)
    except BreakerOpenError:
        return Outcome.BREAKER_OPEN
    except QuotaExhaustedError:
        return Outcome.QUOTA_EXHAUSTED
    except ApolloTransientError:
        return Outcome.FAILED

    if profile and adapter.has_real_data(profile):
        adapter.apply_profile(record, profile, now)
        return Outcome.MATCHED

    adapter.mark_attempted(record, now)
    return Outcome.NOT_FOUND


def merge_fields(record, values: Dict[str, Any]) -> list:
    """Set only the provided, non-empty values. Returns the names written."""
    written = []
    for attr, value in values.items():
        if value is None or value == '' or value == []:
            continue
        setattr(record, attr, value)
        written.append(attr)
    return written
