"""Shared test fixtures."""
import importlib
from contextlib import ExitStack
from datetime import datetime, timezone
from unittest.mock import patch, MagicMock

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from lead_engine.database import Base, enable_sqlite_savepoints
from lead_engine.engine.settings import reset_engine_config

# Modules that bind get_session at import time
SESSION_CONSUMERS = [
    'lead_engine.database',
    'lead_engine.services.intelligence',
    'lead_engine.services.routing',
    'lead_engine.services.suggestions',
    'lead_engine.services.batch',
]


@pytest.fixture
def db_engine():
    """In-memory SQLite engine with schema created."""
    engine = enable_sqlite_savepoints(create_engine('sqlite:///:memory:'))
    for name in ('lead', 'contact', 'client', 'thread', 'meeting', 'suggestion'):
        importlib.import_module(f'lead_engine.models.{name}')
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

    We disable close() so that services calling session.close()
    in their finally blocks don't invalidate the shared test session.
    """
    _real_close = db_session.close
    db_session.close = lambda: None
    with ExitStack() as stack:
        for module in SESSION_CONSUMERS:
            stack.enter_context(patch(f'{module}.get_session', return_value=db_session))
        yield db_session
    db_session.close = _real_close


@pytest.fixture(autouse=True)
def _fresh_engine_config():
    """Engine config is cached per process; drop it around every test."""
    reset_engine_config()
    yield
    reset_engine_config()


class FakeRedis:
    """Minimal in-memory Redis fake for circuit breaker state."""

    def __init__(self):
        self.get_store = {}
        self.hash_store = {}

    def get(self, key):
        return self.get_store.get(key)

    def set(self, key, value):
        self.get_store[key] = str(value)

    def incr(self, key):
        val = int(self.get_store.get(key, 0)) + 1
        self.get_store[key] = str(val)
        return val

    def delete(self, *keys):
        for k in keys:
            self.get_store.pop(k, None)
            self.hash_store.pop(k, None)

    def hset(self, key, field, value):
        self.hash_store.setdefault(key, {})[field] = value

    def hincrby(self, key, field, amount):
        h = self.hash_store.setdefault(key, {})
        h[field] = str(int(h.get(field, 0)) + amount)

    def hgetall(self, key):
        return dict(self.hash_store.get(key, {}))

    def pipeline(self):
        return FakePipeline(self)


class FakePipeline:
    """Fake Redis pipeline that queues ops and applies them on execute()."""

    def __init__(self, redis):
        self._redis = redis
        self._ops = []

    def __getattr__(self, name):
        def _queue(*args):
            self._ops.append((name, args))
            return self
        return _queue

    def execute(self):
        for name, args in self._ops:
            getattr(self._redis, name)(*args)
        self._ops = []


@pytest.fixture
def fake_redis():
    """In-memory Redis fake with dict-backed storage."""
    return FakeRedis()


@pytest.fixture
def mock_redis():
    """Mock Redis client. Returns a MagicMock with common Redis methods."""
    mock = MagicMock()
    mock.get.return_value = None
    mock.hgetall.return_value = {}
    with patch('lead_engine.extensions.redis_client', mock):
        yield mock


@pytest.fixture
def app(fake_redis):
    """Flask test app with breakers backed by the Redis fake."""
    from lead_engine import create_app
    with patch('lead_engine.extensions.redis_client', fake_redis):
        app = create_app()
    app.config['TESTING'] = True
    yield app


@pytest.fixture
def client(app):
    """Flask test client."""
    with app.test_client() as c:
        yield c


# ── Factories ────────────────────────────────────────────────────────────────

@pytest.fixture
def make_lead(db_session):
    """Factory fixture: insert and commit a Lead row."""
    from lead_engine.models.lead import Lead

    def _make(**overrides):
        defaults = dict(
            contact_name='Sarah Chen',
            contact_email='sarah@techstart.io',
            company_name='TechStart',
            status='CONTACTED',
            source_type='REFERRAL',
            created_at=datetime(2026, 1, 1, tzinfo=timezone.utc),
        )
        defaults.update(overrides)
        lead = Lead(**defaults)
        db_session.add(lead)
        db_session.commit()
        return lead
    return _make


@pytest.fixture
def make_contact(db_session):
    """Factory fixture: insert a Contact, optionally linked to leads and clients."""
    from lead_engine.models.contact import Contact, ContactClient, ContactLead

    def _make(email, name='Contact', lead_ids=(), client_ids=(), **overrides):
        contact = Contact(name=name, email=email, **overrides)
        db_session.add(contact)
        db_session.flush()
        for lead_id in lead_ids:
            db_session.add(ContactLead(contact_id=contact.id, lead_id=lead_id))
        for client_id in client_ids:
            db_session.add(ContactClient(contact_id=contact.id, client_id=client_id))
        db_session.commit()
        return contact
    return _make


@pytest.fixture
def make_thread(db_session):
    """Factory fixture: insert a Thread with participants and optional messages.

    messages: list of dicts with Message column values (sent_at required).
    """
    from lead_engine.models.thread import Message, Thread

    def _make(participants=(), messages=(), **overrides):
        defaults = dict(subject='Project inquiry', message_count=len(messages))
        defaults.update(overrides)
        thread = Thread(**defaults)
        thread.participant_emails = list(participants)
        db_session.add(thread)
        db_session.flush()
        for m in messages:
            fields = dict(from_email='sarah@techstart.io', is_inbound=True)
            fields.update(m)
            db_session.add(Message(thread_id=thread.id, **fields))
        db_session.commit()
        return thread
    return _make


@pytest.fixture
def make_meeting(db_session):
    """Factory fixture: insert a Meeting with attendees."""
    from lead_engine.models.meeting import Meeting

    def _make(attendees=(), **overrides):
        defaults = dict(
            title='Discovery call',
            starts_at=datetime(2026, 2, 3, 15, 0, tzinfo=timezone.utc),
            status='COMPLETED',
            transcript_text='We discussed budget and a Q2 timeline.',
        )
        defaults.update(overrides)
        meeting = Meeting(**defaults)
        meeting.attendee_emails = list(attendees)
        db_session.add(meeting)
        db_session.commit()
        return meeting
    return _make


@pytest.fixture
def make_client(db_session):
    """Factory fixture: insert and commit a Client row."""
    from lead_engine.models.client import Client

    def _make(name='Acme Corp', **overrides):
        client = Client(name=name, **overrides)
        db_session.add(client)
        db_session.commit()
        return client
    return _make
