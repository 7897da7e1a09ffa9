"""
Organization enrichment — one paid /organizations/enrich per domain.

The Company row is keyed by domain and shared by every user, so it is its own
cache: a fresh or already-rich company is never looked up again.
"""
import logging
from datetime import datetime
from typing import Any, Dict, Optional

from app.models.company import Company
from app.pipeline.base import EntityAdapter, EntityKind, Outcome, as_utc, merge_fields, utcnow
from app.pipeline.eligibility import DEFAULT_POLICY, EnrichmentPolicy
from app.services.apollo import ApolloClient
from app.services.store import commit_unit, get_company_by_domain

logger = logging.getLogger('pipeline.organization')


def _as_text(value) -> Optional[str]:
    if value is None or value == '':
        return None
    return str(value)


def _parse_date(value) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(str(value).replace('Z', '+00:00'))
    except ValueError:
        logger.debug("Unparseable funding date %r", value)
        return None


def organization_fields(org: Dict[str, Any]) -> Dict[str, Any]:
    """Map an Apollo organization onto Company columns."""
    return {
        'name':               org.get('name'),
        'industry':           org.get('industry'),
        'employee_count':     org.get('estimated_num_employees'),
        'founded_year':       org.get('founded_year'),
        'description':        org.get('short_description'),
        'annual_revenue':     _as_text(org.get('annual_revenue')),
        'total_funding':      _as_text(org.get('total_funding')),
        'last_funding_round': org.get('latest_funding_stage'),
        'last_funding_date':  _parse_date(org.get('latest_funding_round_date')),
        'technologies':       org.get('keywords') or None,
        'linkedin_url':       org.get('linkedin_url'),
        'website_url':        org.get('website_url'),
        'logo':               org.get('logo_url'),
        'city':               org.get('city'),
        'state':              org.get('state'),
        'country':            org.get('country'),
    }


def has_rich_data(company) -> bool:
    return bool(company.industry or company.employee_count)


def is_company_fresh(company, now: datetime, force: bool = False,
                     policy: EnrichmentPolicy = DEFAULT_POLICY) -> bool:
    """
    Fresh = looked up within the staleness window (hit or miss), or, outside
    force mode, already carrying firmographics from an earlier source.
    """
    enriched_at = as_utc(company.enriched_at)
    if enriched_at is not None and not policy.is_stale(enriched_at, now):
        return True
    return not force and has_rich_data(company)


class OrganizationAdapter(EntityAdapter):
    kind = EntityKind.ORGANIZATION

    def __init__(self, force: bool = False, policy: EnrichmentPolicy = DEFAULT_POLICY):
        self.force = force
        self.policy = policy

    def resolve_cached(self, session, record, now: datetime) -> Optional[Outcome]:
        if is_company_fresh(record, now, force=self.force, policy=self.policy):
            return Outcome.FRESH
        return None

    def fetch(self, client: ApolloClient, record) -> Optional[Dict[str, Any]]:
        return client.enrich_organization_by_domain(record.domain)

    def has_real_data(self, profile: Dict[str, Any]) -> bool:
        return bool(profile.get('id'))

    def apply_profile(self, record, profile: Dict[str, Any], now: datetime):
        merge_fields(record, organization_fields(profile))
        record.apollo_id = profile['id']
        record.enriched_at = now
        logger.info("Company %s: %s employees, industry=%s",
                    record.domain, record.employee_count or '?', record.industry or '?')

    def describe(self, record) -> str:
        return record.domain


def normalize_domain(domain: str) -> str:
    domain = (domain or '').strip().lower()
    if domain.startswith('www.'):
        domain = domain[4:]
    return domain


def lookup_company(session, domain: str, client: ApolloClient = None, now: datetime = None) -> Dict[str, Any]:
    """
    Single company lookup for the API: stored row first, then one paid call
    that stores the company so later lookups are free.

    Returns {'company': {...}, 'source': 'db' | 'apollo' | 'none'}.
    """
    domain = normalize_domain(domain)
    company = get_company_by_domain(session, domain)
    if company is not None:
        return {'company': company_to_dict(company), 'source': 'db'}

    client = client or ApolloClient.from_config()
    org = client.enrich_organization_by_domain(domain)
    if org and org.get('id') and org.get('name'):
        company = Company(domain=domain, name=org['name'])
        OrganizationAdapter().apply_profile(company, org, now or utcnow())
        session.add(company)
        if commit_unit(session, f'company {domain}'):
            return {'company': company_to_dict(company), 'source': 'apollo'}

    return {'company': {'domain': domain, 'name': domain}, 'source': 'none'}


def company_to_dict(company) -> Dict[str, Any]:
    return {
        'id': company.id,
        'domain': company.domain,
        'name': company.name,
        'industry': company.industry,
        'employee_count': company.employee_count,
        'founded_year': company.founded_year,
        'description': company.description,
        'annual_revenue': company.annual_revenue,
        'total_funding': company.total_funding,
        'last_funding_round': company.last_funding_round,
        'last_funding_date': company.last_funding_date.isoformat() if company.last_funding_date else None,
        'technologies': company.technologies or [],
        'linkedin_url': company.linkedin_url,
        'website_url': company.website_url,
        'logo': company.logo,
        'city': company.city,
        'state': company.state,
        'country': company.country,
        'enriched_at': company.enriched_at.isoformat() if company.enriched_at else None,
    }
