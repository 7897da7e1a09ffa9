"""Shared test fixtures."""
from datetime import datetime, timedelta, timezone

import pytest
from unittest.mock import patch, MagicMock
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from app.database import Base
from app.services.apollo import ApolloTransientError, QuotaExhaustedError


NOW = datetime(2026, 3, 2, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def db_engine():
    """In-memory SQLite engine with schema created."""
    engine = create_engine('sqlite:///:memory:')
    import app.models.user
    import app.models.company
    import app.models.contact
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(db_engine):
    """SQLAlchemy session bound to in-memory SQLite. Rolls back after each test."""
    Session = sessionmaker(bind=db_engine)
    session = Session()
    yield session
    session.rollback()
    session.close()


@pytest.fixture(autouse=True)
def patch_get_session(db_session):
    """Route all get_session() calls to the test session.

    We disable close() so that route handlers calling session.close()
    in their finally blocks don't invalidate the shared test session.
    """
    _real_close = db_session.close
    db_session.close = lambda: None
    with patch('app.database.get_session', return_value=db_session):
        yield db_session
    db_session.close = _real_close


@pytest.fixture
def mock_redis():
    """Mock Redis client. Returns a MagicMock with common Redis methods."""
    mock = MagicMock()
    mock.get.return_value = None
    mock.setex.return_value = True
    mock.ping.return_value = True
    with patch('app.extensions.redis_client', mock):
        yield mock


@pytest.fixture
def app():
    """Flask test app."""
    from app import create_app
    app = create_app()
    app.config['TESTING'] = True
    yield app


@pytest.fixture
def client(app):
    """Flask test client."""
    with app.test_client() as c:
        yield c


@pytest.fixture
def now():
    return NOW


# ── Record factories ─────────────────────────────────────────────────────────

@pytest.fixture
def make_user(db_session):
    def _make(id='user-1', email=None, **fields):
        from app.models.user import User
        user = User(id=id, email=email or f'{id}@example.org', **fields)
        db_session.add(user)
        db_session.commit()
        return user
    return _make


@pytest.fixture
def make_company(db_session):
    def _make(domain='acme.com', name=None, **fields):
        from app.models.company import Company
        company = Company(domain=domain, name=name or domain, **fields)
        db_session.add(company)
        db_session.commit()
        return company
    return _make


@pytest.fixture
def make_contact(db_session):
    """Contacts get a descending last_seen_at so load order = creation order."""
    counter = {'n': 0}

    def _make(email, user_id='user-1', company=None, **fields):
        from app.models.contact import Contact
        counter['n'] += 1
        fields.setdefault('last_seen_at', NOW - timedelta(minutes=counter['n']))
        contact = Contact(
            user_id=user_id,
            email=email,
            company_id=company.id if company is not None else None,
            **fields,
        )
        db_session.add(contact)
        db_session.commit()
        return contact
    return _make


# ── Provider fake ────────────────────────────────────────────────────────────

class FakeApollo:
    """
    Stands in for ApolloClient. Responses are keyed by email / domain; a value
    may be a dict (found), None (not found) or an exception instance (raised).
    Unknown keys answer None.
    """

    def __init__(self, people=None, organizations=None):
        self.people = dict(people or {})
        self.organizations = dict(organizations or {})
        self.person_calls = []
        self.organization_calls = []

    @property
    def calls(self):
        return len(self.person_calls) + len(self.organization_calls)

    def _answer(self, value):
        if isinstance(value, Exception):
            raise value
        return value

    def match_person_by_email(self, email):
        self.person_calls.append(email)
        return self._answer(self.people.get(email))

    def enrich_organization_by_domain(self, domain):
        self.organization_calls.append(domain)
        return self._answer(self.organizations.get(domain))


def person(id='p-1', **fields):
    """Apollo person payload with enough data to count as a match."""
    data = {
        'id': id,
        'name': 'Jane Doe',
        'title': 'VP Engineering',
        'headline': 'Building things',
        'linkedin_url': f'https://linkedin.com/in/{id}',
        'photo_url': None,
        'city': 'Berlin',
        'country': 'Germany',
    }
    data.update(fields)
    return data


def organization(id='o-1', **fields):
    data = {
        'id': id,
        'name': 'Acme',
        'industry': 'Software',
        'estimated_num_employees': 120,
        'founded_year': 2015,
        'short_description': 'Makes anvils',
        'keywords': ['saas', 'b2b'],
    }
    data.update(fields)
    return data


@pytest.fixture
def make_apollo():
    """Factory for FakeApollo(people={...}, organizations={...})."""
    return FakeApollo


@pytest.fixture
def person_payload():
    return person


@pytest.fixture
def org_payload():
    return organization


@pytest.fixture
def quota_error():
    return QuotaExhaustedError('Insufficient credits', status_code=402)


@pytest.fixture
def transient_error():
    return ApolloTransientError('timed out')


# ── Redis fake ───────────────────────────────────────────────────────────────

class FakeRedis:
    """Minimal in-memory Redis fake for the run registry."""

    def __init__(self):
        self.store = {}
        self.ttls = {}

    def get(self, key):
        return self.store.get(key)

    def set(self, key, value, nx=False, ex=None):
        if nx and key in self.store:
            return None
        self.store[key] = value
        if ex is not None:
            self.ttls[key] = ex
        return True

    def setex(self, key, ttl, value):
        self.store[key] = value
        self.ttls[key] = ttl
        return True

    def delete(self, *keys):
        removed = 0
        for k in keys:
            if self.store.pop(k, None) is not None:
                removed += 1
            self.ttls.pop(k, None)
        return removed

    def exists(self, *keys):
        return sum(1 for k in keys if k in self.store)


@pytest.fixture
def fake_redis():
    """FakeRedis wired into the run registry."""
    fake = FakeRedis()
    with patch('app.models.enrichment_run.r', fake):
        yield fake
