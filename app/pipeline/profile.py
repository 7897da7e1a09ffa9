"""
User profile enrichment — fill the signed-in user's own empty profile fields
from one person match on their email. User-edited values are never replaced.
"""
import logging
from typing import Dict, List

from app.config import CONSUMER_EMAIL_DOMAINS
from app.models.user import User
from app.services.apollo import ApolloClient, ApolloError
from app.services.store import commit_unit

logger = logging.getLogger('pipeline.profile')

_PROFILE_FIELDS = (
    ('title', 'title'),
    ('linkedin_url', 'linkedin_url'),
    ('headline', 'headline'),
    ('city', 'city'),
    ('country', 'country'),
)


def _is_complete(user) -> bool:
    return all(getattr(user, attr) for attr, _ in _PROFILE_FIELDS)


def _current_employer(person: Dict) -> str:
    for job in person.get('employment_history') or []:
        if job.get('current') and job.get('organization_name'):
            return job['organization_name']
    return ''


def profile_updates(user, person: Dict) -> Dict[str, str]:
    """Values to write: only into empty fields."""
    updates = {}
    for attr, key in _PROFILE_FIELDS:
        if not getattr(user, attr) and person.get(key):
            updates[attr] = person[key]

    employer = _current_employer(person)
    if employer and (not user.company or not user.company_domain):
        if not user.company:
            updates['company'] = employer
        if not user.company_domain:
            email = user.email or ''
            email_domain = email.rsplit('@', 1)[1].lower() if '@' in email else ''
            if email_domain and email_domain not in CONSUMER_EMAIL_DOMAINS:
                updates['company_domain'] = email_domain
    return updates


def enrich_user_profile(session, user_id: str, client: ApolloClient = None) -> List[str]:
    """
    Returns the list of fields updated (empty when nothing changed).

    Provider errors are logged, not raised: a profile top-up is best effort.
    """
    user = session.get(User, user_id)
    if user is None:
        return []
    if _is_complete(user):
        logger.info("Profile already complete, skipping", extra={'user_id': user_id})
        return []

    client = client or ApolloClient.from_config()
    try:
        person = client.match_person_by_email(user.email)
    except ApolloError as e:
        logger.warning("Profile lookup failed: %s", e, extra={'user_id': user_id})
        return []

    if not ApolloClient.has_real_person_data(person):
        logger.info("No Apollo data for user profile", extra={'user_id': user_id})
        return []

    updates = profile_updates(user, person)
    for attr, value in updates.items():
        setattr(user, attr, value)
    if updates and not commit_unit(session, f'user {user_id}'):
        return []

    logger.info("Profile updated: %s", ', '.join(updates) or 'nothing new', extra={'user_id': user_id})
    return list(updates)
