"""
Person enrichment — one paid /people/match by email per contact, after the
cache resolver found nothing reusable.
"""
import logging
from datetime import datetime
from typing import Any, Dict, Optional

from app.pipeline.base import EntityAdapter, EntityKind, Outcome, merge_fields
from app.pipeline.cache import resolve_from_cache
from app.pipeline.eligibility import DEFAULT_POLICY, EnrichmentPolicy
from app.services.apollo import ApolloClient

logger = logging.getLogger('pipeline.person')


def person_fields(person: Dict[str, Any]) -> Dict[str, Any]:
    """Map an Apollo person onto Contact columns (name excluded)."""
    return {
        'title':        person.get('title'),
        'headline':     person.get('headline'),
        'linkedin_url': person.get('linkedin_url'),
        'photo_url':    person.get('photo_url'),
        'twitter_url':  person.get('twitter_url'),
        'city':         person.get('city'),
        'state':        person.get('state'),
        'country':      person.get('country'),
    }


def pick_name(current: Optional[str], provided: Optional[str]) -> Optional[str]:
    """
    Apollo's free tier masks surnames ("Jo***N"). A masked name only fills an
    empty slot; it never replaces a name we already have.
    """
    provided = (provided or '').strip()
    if not provided:
        return None
    if ApolloClient.is_obfuscated_name(provided) and (current or '').strip():
        return None
    return provided


class PersonAdapter(EntityAdapter):
    kind = EntityKind.PERSON

    def __init__(self, force: bool = False, policy: EnrichmentPolicy = DEFAULT_POLICY):
        self.force = force
        self.policy = policy

    def resolve_cached(self, session, record, now: datetime) -> Optional[Outcome]:
        return resolve_from_cache(session, record, now, force=self.force, policy=self.policy)

    def fetch(self, client: ApolloClient, record) -> Optional[Dict[str, Any]]:
        return client.match_person_by_email(record.email)

    def has_real_data(self, profile: Dict[str, Any]) -> bool:
        return ApolloClient.has_real_person_data(profile)

    def apply_profile(self, record, profile: Dict[str, Any], now: datetime):
        values = person_fields(profile)
        values['name'] = pick_name(record.name, profile.get('name'))
        written = merge_fields(record, values)
        record.apollo_id = profile['id']
        record.enriched_at = now
        logger.info("Matched %s: %s", record.email, ', '.join(written) or 'id only')

    def describe(self, record) -> str:
        return record.email
