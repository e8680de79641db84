import pytest
from fastapi.testclient import TestClient

from helpdesk.auth.security import create_access_token, get_password_hash
from helpdesk.main import create_app
from helpdesk.models.models import Account, Role


ROOT_PASSWORD = "rootpass"


@pytest.fixture
def client(session_factory):
    app = create_app(session_factory)
    with TestClient(app) as c:
        yield c


@pytest.fixture
def auth_headers():
    def _headers(account):
        token = create_access_token(str(account.id), account.role)
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture
def root(db):
    """A system owner with a real password hash, for login flows."""
    account = Account(
        username="root",
        email="root@example.com",
        password_hash=get_password_hash(ROOT_PASSWORD),
        role=Role.SYSTEM_OWNER,
    )
    db.add(account)
    db.commit()
    return account
