"""
Domain grouping — one organization lookup per employer domain per run.
"""
from dataclasses import dataclass, field
from typing import List, Optional

from app.models.company import Company
from app.models.contact import Contact


@dataclass
class DomainGroup:
    domain: Optional[str]
    company: Optional[Company]
    contacts: List[Contact] = field(default_factory=list)

    @property
    def has_domain(self) -> bool:
        return self.company is not None


def group_by_domain(contacts) -> List[DomainGroup]:
    """
    Group contacts by their company's domain.

    Domains keep first-seen order and contacts keep load order. Contacts
    without a company form a final group with domain=None (email lookup only).
    """
    groups = {}
    no_domain = DomainGroup(domain=None, company=None)

    for contact in contacts:
        company = contact.company
        domain = (company.domain or '').strip().lower() if company is not None else ''
        if not domain:
            no_domain.contacts.append(contact)
            continue
        group = groups.get(domain)
        if group is None:
            group = groups[domain] = DomainGroup(domain=domain, company=company)
        group.contacts.append(contact)

    ordered = list(groups.values())
    if no_domain.contacts:
        ordered.append(no_domain)
    return ordered
