import pytest
from fastapi.testclient import TestClient

from reachmai.config import Settings
from reachmai.database import Database
from reachmai.main import create_app
from reachmai.models.profile import ProfileType
from reachmai.services.activation import ProfileActivationService
from reachmai.services.auth import AuthService
from reachmai.services.email import Notifier
from reachmai.services.gate import AuthGate
from reachmai.services.invitations import InvitationService
from reachmai.services.tokens import TokenService

SYS_ADMIN_USERNAME = "root-admin"
SYS_ADMIN_PASSWORD = "s3cret-admin-pass"
SYS_ADMIN_CREDENTIALS = {
    "sysAdminUsername": SYS_ADMIN_USERNAME,
    "sysAdminPassword": SYS_ADMIN_PASSWORD,
}


class RecordingNotifier(Notifier):
    """Keeps every message instead of sending it."""

    def __init__(self, succeed: bool = True):
        self.succeed = succeed
        self.sent = []

    def send(self, to, template, data):
        self.sent.append({"to": to, "template": template, "data": dict(data)})
        return self.succeed

    def last(self, template=None) -> dict:
        messages = [m for m in self.sent if template is None or m["template"] == template]
        assert messages, f"no {template or 'email'} sent"
        return messages[-1]


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        environment="test",
        database_url="sqlite:///:memory:",
        jwt_secret_key="test-signing-secret",
        sys_admin_username=SYS_ADMIN_USERNAME,
        sys_admin_password=SYS_ADMIN_PASSWORD,
        sendgrid_api_key="",
        frontend_base_url="https://portal.example.com",
    )


@pytest.fixture
def database(settings):
    database = Database(settings.database_url)
    database.init()
    yield database
    database.close()


@pytest.fixture
def db(database):
    session = database.session()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def tokens(settings):
    return TokenService.from_settings(settings)


@pytest.fixture
def gate(tokens, settings):
    return AuthGate.from_settings(tokens, settings)


@pytest.fixture
def invitation_service(db, tokens, notifier, settings):
    return InvitationService(db, tokens, notifier, settings)


@pytest.fixture
def activation_service(db, tokens, notifier, settings):
    return ProfileActivationService(db, tokens, notifier, settings)


@pytest.fixture
def app(settings, database, notifier):
    return create_app(settings=settings, database=database, notifier=notifier)


@pytest.fixture
def client(app):
    with TestClient(app) as client:
        yield client


@pytest.fixture
def admin_account(db):
    account, _ = AuthService.register(
        db,
        email="director@example.com",
        password="director-pass-1",
        profile_type=ProfileType.ADMIN,
        first_name="Dana",
        last_name="Director",
    )
    return account


@pytest.fixture
def student_account(db):
    account, _ = AuthService.register(
        db,
        email="student@example.com",
        password="student-pass-1",
        profile_type=ProfileType.STUDENT,
        first_name="Sam",
        last_name="Student",
    )
    return account


def login(client, email, password) -> dict:
    response = client.post("/api/auth/login", json={"email": email, "password": password})
    assert response.status_code == 200, response.text
    return response.json()


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers(client, admin_account):
    return bearer(login(client, "director@example.com", "director-pass-1")["token"])


@pytest.fixture
def student_headers(client, student_account):
    return bearer(login(client, "student@example.com", "student-pass-1")["token"])
