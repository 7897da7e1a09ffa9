"""
Database engine + session factory.

Defaults to SQLite for local dev, Postgres in production. Contacts and
companies are written by the calendar sync; this service only updates them.
"""
from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, DeclarativeBase

from app.config import DATABASE_URL


class Base(DeclarativeBase):
    pass


# Hosting providers inject postgres:// but SQLAlchemy 2.x requires postgresql://
url = DATABASE_URL.replace('postgres://', 'postgresql://', 1)

# SQLite needs different engine kwargs than Postgres
if url.startswith('sqlite'):
    engine = create_engine(url, connect_args={'check_same_thread': False})
else:
    engine = create_engine(url, pool_pre_ping=True, pool_size=5, max_overflow=10)

SessionLocal = sessionmaker(bind=engine)


def get_session():
    """Return a new DB session."""
    return SessionLocal()


@contextmanager
def session_scope():
    """Session that is always closed; the caller decides when to commit."""
    session = get_session()
    try:
        yield session
    finally:
        session.close()
