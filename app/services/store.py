"""
Record store helpers — queries the enrichment pipeline needs.

Reads may span every user's contacts (the email cache is global); writes are
limited to the records of the run's user and committed one unit at a time.
"""
import logging
from typing import List, Optional

from sqlalchemy import func

from app.models.company import Company
from app.models.contact import Contact

logger = logging.getLogger('services.store')


def load_user_contacts(session, user_id: str) -> List[Contact]:
    """All contacts of a user with their company, most recently seen first."""
    return (
        session.query(Contact)
        .filter(Contact.user_id == user_id)
        .order_by(Contact.last_seen_at.desc(), Contact.id)
        .all()
    )


def _same_email(session, email: str, exclude_id: Optional[str]):
    q = session.query(Contact).filter(
        func.lower(Contact.email) == (email or '').strip().lower(),
        Contact.enriched_at.isnot(None),
    )
    if exclude_id is not None:
        q = q.filter(Contact.id != exclude_id)
    return q


def find_matched_contact(session, email: str, exclude_id: str = None) -> Optional[Contact]:
    """Most recently enriched contact (any user) with a provider match for this email."""
    return (
        _same_email(session, email, exclude_id)
        .filter(Contact.apollo_id.isnot(None))
        .order_by(Contact.enriched_at.desc())
        .first()
    )


def find_unmatched_contact(session, email: str, exclude_id: str = None) -> Optional[Contact]:
    """Most recent durable miss (any user) for this email."""
    return (
        _same_email(session, email, exclude_id)
        .filter(Contact.apollo_id.is_(None))
        .order_by(Contact.enriched_at.desc())
        .first()
    )


def get_company_by_domain(session, domain: str) -> Optional[Company]:
    return session.query(Company).filter_by(domain=domain).first()


def user_ids_with_contacts(session) -> List[str]:
    """Every user that owns at least one contact, in a stable order."""
    rows = session.query(Contact.user_id).distinct().order_by(Contact.user_id).all()
    return [user_id for (user_id,) in rows]


def commit_unit(session, label: str = '') -> bool:
    """
    Commit one unit of work. On failure roll back and report False so the
    caller can count an error instead of aborting the run.
    """
    try:
        session.commit()
        return True
    except Exception:
        session.rollback()
        logger.error("Failed to persist %s", label or 'enrichment unit', exc_info=True)
        return False


def get_enrichment_stats(session, user_id: str) -> dict:
    """Contact/company enrichment coverage for one user."""
    total_contacts = session.query(func.count(Contact.id)).filter(
        Contact.user_id == user_id,
    ).scalar() or 0
    matched_contacts = session.query(func.count(Contact.id)).filter(
        Contact.user_id == user_id,
        Contact.apollo_id.isnot(None),
    ).scalar() or 0
    attempted_contacts = session.query(func.count(Contact.id)).filter(
        Contact.user_id == user_id,
        Contact.enriched_at.isnot(None),
    ).scalar() or 0

    company_ids = (
        session.query(Contact.company_id)
        .filter(Contact.user_id == user_id, Contact.company_id.isnot(None))
        .distinct()
        .subquery()
    )
    total_companies = session.query(func.count(Company.id)).filter(
        Company.id.in_(company_ids.select()),
    ).scalar() or 0
    enriched_companies = session.query(func.count(Company.id)).filter(
        Company.id.in_(company_ids.select()),
        Company.enriched_at.isnot(None),
    ).scalar() or 0

    last_enriched = session.query(func.max(Contact.enriched_at)).filter(
        Contact.user_id == user_id,
    ).scalar()

    return {
        'contacts': {
            'total': total_contacts,
            'enriched': matched_contacts,
            'not_found': attempted_contacts - matched_contacts,
            'pending': total_contacts - attempted_contacts,
        },
        'companies': {
            'total': total_companies,
            'enriched': enriched_companies,
        },
        'last_enriched_at': last_enriched.isoformat() if last_enriched else None,
    }
