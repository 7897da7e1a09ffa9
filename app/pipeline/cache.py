"""
Cache resolver — zero-cost answers before any paid person lookup.

Tiers, in order:
  1. generic mailbox (info@, support@, ...) → stamp, never looked up
  2. another contact with the same email already matched → copy its data
  3. another contact with the same email already missed → stamp only

The lookup spans every user's contacts: a professional profile belongs to the
email address, not to whoever imported it.
"""
import logging
import re
from datetime import datetime
from typing import Optional

from app.config import GENERIC_LOCAL_PARTS
from app.pipeline.base import Outcome
from app.pipeline.eligibility import DEFAULT_POLICY, EnrichmentPolicy
from app.services.store import find_matched_contact, find_unmatched_contact

logger = logging.getLogger('pipeline.cache')

# Fields a match carries over from one contact to another
ENRICHABLE_FIELDS = (
    'apollo_id', 'name', 'title', 'headline', 'linkedin_url', 'photo_url',
    'twitter_url', 'city', 'state', 'country',
)

_SEPARATOR_RE = re.compile(r'[._+\-]')


def is_generic_address(email: str) -> bool:
    """
    True for shared mailboxes: the local part is a generic word, or starts with
    one followed by a separator ("sales.eu@", "support_team@").
    """
    if not email or '@' not in email:
        return False
    local = email.split('@', 1)[0].strip().lower()
    if not local:
        return False
    if local in GENERIC_LOCAL_PARTS:
        return True
    head = _SEPARATOR_RE.split(local, 1)[0]
    return head != local and head in GENERIC_LOCAL_PARTS


def copy_match(target, source):
    """Copy a cached match onto target, never blanking a field target already has."""
    for attr in ENRICHABLE_FIELDS:
        value = getattr(source, attr)
        if value:
            setattr(target, attr, value)
    target.enriched_at = source.enriched_at


def resolve_from_cache(session, contact, now: datetime, force: bool = False,
                       policy: EnrichmentPolicy = DEFAULT_POLICY) -> Optional[Outcome]:
    """
    Apply the first cache tier that answers for this contact.

    In force mode a cache entry only counts while it is itself fresh, so a
    forced refresh is not satisfied by data just as old as the record's own.
    Returns None when a paid lookup is needed.
    """
    if is_generic_address(contact.email):
        contact.enriched_at = now
        return Outcome.GENERIC

    match = find_matched_contact(session, contact.email, exclude_id=contact.id)
    if match is not None and not (force and policy.is_stale(match.enriched_at, now)):
        copy_match(contact, match)
        logger.debug("Cache hit for %s from contact %s", contact.email, match.id)
        return Outcome.CACHE_HIT

    # A contact holding its own (stale) match is refreshed, not downgraded
    if contact.apollo_id:
        return None

    miss = find_unmatched_contact(session, contact.email, exclude_id=contact.id)
    if miss is not None and not (force and policy.can_retry(miss.enriched_at, now)):
        contact.enriched_at = miss.enriched_at
        logger.debug("Known no-match for %s (contact %s)", contact.email, miss.id)
        return Outcome.KNOWN_MISS

    return None
