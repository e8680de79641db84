"""
Shared fixtures: an in-memory SQLite store, a seeded system owner, and a
small two-tenant hierarchy built through AccountService.
"""
import os

# Must be set before helpdesk.config is imported
os.environ.setdefault("METRICS_ENABLED", "false")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("AUTO_CREATE_DB", "false")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from types import SimpleNamespace

import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from helpdesk.db import Base, create_session_factory
from helpdesk.models.archive import ArchiveBase
from helpdesk.models.models import Account, BusinessType, Role
from helpdesk.schemas.accounts import AccountCreate
from helpdesk.schemas.tickets import TicketCreate
from helpdesk.services.accounts import AccountService
from helpdesk.services.tickets import TicketService


PASSWORD = "secret1"


def fake_hash(password: str) -> str:
    return "plain$" + password


def fake_verify(password: str, hashed: str) -> bool:
    return hashed == fake_hash(password)


def _memory_engine(metadata):
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    metadata.create_all(bind=engine)
    return engine


@pytest.fixture
def engine():
    engine = _memory_engine(Base.metadata)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def archive_db():
    engine = _memory_engine(ArchiveBase.metadata)
    session = create_session_factory(engine)()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture
def account_service(db):
    return AccountService(db, password_hasher=fake_hash, password_verifier=fake_verify)


@pytest.fixture
def ticket_service(db):
    return TicketService(db)


@pytest.fixture
def owner(db):
    """The root system owner; seeded directly since nobody can create it."""
    account = Account(
        username="owner",
        email="owner@example.com",
        password_hash=fake_hash(PASSWORD),
        role=Role.SYSTEM_OWNER,
        location="Head Office",
        department="Operations",
    )
    db.add(account)
    db.commit()
    return account


@pytest.fixture
def make_account(account_service):
    def _make(creator, role, username, **extra):
        if role == Role.SUPER_ADMIN:
            extra.setdefault("business_type", BusinessType.MEDIUM)
            extra.setdefault("location", "North")
        payload = AccountCreate(
            username=username,
            email=f"{username}@example.com",
            password=PASSWORD,
            role=role,
            **extra,
        )
        return account_service.create_account(payload, creator.id)

    return _make


@pytest.fixture
def make_ticket(ticket_service):
    def _make(creator, description="Printer is jammed", **extra):
        return ticket_service.create_ticket(TicketCreate(description=description, **extra), creator.id)

    return _make


@pytest.fixture
def tree(owner, make_account):
    """
    owner
    ├── super1 (medium) ── admin1 ─┬─ tech1 ── user1
    │                              └─ user2
    └── super2 (small)  ── admin2 ─── tech2 ── user3
    """
    super1 = make_account(owner, Role.SUPER_ADMIN, "super1")
    admin1 = make_account(super1, Role.ADMIN, "admin1")
    tech1 = make_account(admin1, Role.IT_PERSON, "tech1")
    user1 = make_account(tech1, Role.USER, "user1")
    user2 = make_account(admin1, Role.USER, "user2")

    super2 = make_account(owner, Role.SUPER_ADMIN, "super2", business_type=BusinessType.SMALL, location="South")
    admin2 = make_account(super2, Role.ADMIN, "admin2")
    tech2 = make_account(admin2, Role.IT_PERSON, "tech2")
    user3 = make_account(tech2, Role.USER, "user3")

    return SimpleNamespace(
        owner=owner,
        super1=super1,
        admin1=admin1,
        tech1=tech1,
        user1=user1,
        user2=user2,
        super2=super2,
        admin2=admin2,
        tech2=tech2,
        user3=user3,
    )
