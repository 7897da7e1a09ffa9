"""
Company model — one row per employer domain, shared by every user's contacts.

enriched_at / apollo_id follow the same three states as Contact:
never attempted, attempted with no match, matched.
"""
import uuid

from sqlalchemy import Column, Integer, Text, DateTime, JSON
from sqlalchemy.orm import validates
from sqlalchemy.sql import func

from app.database import Base


class Company(Base):
    __tablename__ = 'companies'

    id = Column(Text, primary_key=True, default=lambda: str(uuid.uuid4()))
    domain = Column(Text, nullable=False, unique=True)
    name = Column(Text, nullable=False)
    apollo_id = Column(Text, nullable=True)
    enriched_at = Column(DateTime(timezone=True), nullable=True)

    # Firmographics
    industry = Column(Text, nullable=True)
    employee_count = Column(Integer, nullable=True)
    founded_year = Column(Integer, nullable=True)
    description = Column(Text, nullable=True)
    annual_revenue = Column(Text, nullable=True)
    total_funding = Column(Text, nullable=True)
    last_funding_round = Column(Text, nullable=True)
    last_funding_date = Column(DateTime(timezone=True), nullable=True)
    technologies = Column(JSON, nullable=True)

    # Presence + location
    linkedin_url = Column(Text, nullable=True)
    website_url = Column(Text, nullable=True)
    logo = Column(Text, nullable=True)
    city = Column(Text, nullable=True)
    state = Column(Text, nullable=True)
    country = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    @validates('domain')
    def _normalize_domain(self, key, domain):
        # Grouping and lookups key on the lowercase form
        return (domain or '').strip().lower()
