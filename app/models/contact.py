"""
Contact model — one row per (user, email), created by the calendar sync.

The email is the identity key for enrichment: a match found for one user's
contact is reused for every other user holding the same address.
"""
import uuid

from sqlalchemy import Column, Text, DateTime, ForeignKey, UniqueConstraint, Index
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from app.database import Base
from app.models.user import User  # noqa: F401  users must be in metadata for the user_id FK


class Contact(Base):
    __tablename__ = 'contacts'

    id = Column(Text, primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(Text, ForeignKey('users.id'), nullable=False)
    email = Column(Text, nullable=False)
    name = Column(Text, nullable=True)
    company_id = Column(Text, ForeignKey('companies.id'), nullable=True)

    # None = never attempted; set without apollo_id = provider had nothing
    apollo_id = Column(Text, nullable=True)
    enriched_at = Column(DateTime(timezone=True), nullable=True)

    title = Column(Text, nullable=True)
    headline = Column(Text, nullable=True)
    linkedin_url = Column(Text, nullable=True)
    photo_url = Column(Text, nullable=True)
    twitter_url = Column(Text, nullable=True)
    city = Column(Text, nullable=True)
    state = Column(Text, nullable=True)
    country = Column(Text, nullable=True)

    last_seen_at = Column(DateTime(timezone=True), server_default=func.now())
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    company = relationship('Company', lazy='joined')

    __table_args__ = (
        UniqueConstraint('user_id', 'email', name='uq_contact_user_email'),
        Index('ix_contacts_email', 'email'),
        Index('ix_contacts_user_id', 'user_id'),
    )
