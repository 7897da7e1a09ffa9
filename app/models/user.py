"""
User model — the account owning contacts. Only the profile fields filled by
enrich_user_profile() are mapped here.
"""
from sqlalchemy import Column, Text, DateTime
from sqlalchemy.sql import func

from app.database import Base


class User(Base):
    __tablename__ = 'users'

    id = Column(Text, primary_key=True)
    email = Column(Text, nullable=False, unique=True)
    name = Column(Text, nullable=True)
    title = Column(Text, nullable=True)
    company = Column(Text, nullable=True)
    company_domain = Column(Text, nullable=True)
    linkedin_url = Column(Text, nullable=True)
    headline = Column(Text, nullable=True)
    city = Column(Text, nullable=True)
    country = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
