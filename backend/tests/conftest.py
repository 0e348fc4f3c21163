"""
Pytest configuration and fixtures for the backend tests.
"""
import os
import tempfile

# Settings are read at import time, so the environment has to be in place
# before any application module is imported.
_TEST_DIR = tempfile.mkdtemp(prefix="homeconnect-tests-")
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{os.path.join(_TEST_DIR, 'test.db')}"
os.environ["LOG_DIR"] = os.path.join(_TEST_DIR, "logs")
os.environ["SMTP_USERNAME"] = "mailer@example.com"
os.environ["SMTP_PASSWORD"] = "app-password"

from dataclasses import dataclass
from typing import AsyncGenerator, List, Optional

import pytest
from faker import Faker
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from main import app
from api.dependencies import get_mailer
from core.exceptions import EmailDeliveryError
from core.roles import DEFAULT_ROLE
from core.security import create_access_token, get_password_hash
from db.models.account import Account, CREDENTIAL_PROVIDER
from db.models.mixins import new_id
from db.models.user import User as UserModel
from db.session import Base, SessionLocal, engine

# Initialize Faker for test data generation
fake = Faker()

TEST_PASSWORD = "testpassword123"


@dataclass
class SentMail:
    kind: str
    to: str
    code: str
    expires_in_minutes: int


class RecordingMailer:
    """Stands in for the SMTP mailer and keeps every message it was asked to send."""

    def __init__(self):
        self.sent: List[SentMail] = []
        self.fail = False

    def _record(self, kind: str, to_email: str, code: str, expires_in_minutes: int) -> None:
        if self.fail:
            raise EmailDeliveryError("Cannot connect to the SMTP server. Check SMTP_HOST and SMTP_PORT")
        self.sent.append(SentMail(kind, to_email, code, expires_in_minutes))

    def send_otp_email(self, to_email: str, code: str, expires_in_minutes: int) -> None:
        self._record("signup", to_email, code, expires_in_minutes)

    def send_password_reset_email(self, to_email: str, code: str, expires_in_minutes: int) -> None:
        self._record("password-reset", to_email, code, expires_in_minutes)

    def last_code(self, to_email: str) -> Optional[str]:
        for mail in reversed(self.sent):
            if mail.to == to_email:
                return mail.code
        return None


@pytest.fixture(autouse=True)
async def setup_test_db():
    """Give every test empty tables."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    yield
    await engine.dispose()


@pytest.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async with SessionLocal() as session:
        yield session


@pytest.fixture
def mailer() -> RecordingMailer:
    return RecordingMailer()


@pytest.fixture
async def async_client(mailer: RecordingMailer) -> AsyncGenerator[AsyncClient, None]:
    """Create an async test client with the recording mailer injected."""
    app.dependency_overrides[get_mailer] = lambda: mailer

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


async def create_user(
    session: AsyncSession,
    email: Optional[str] = None,
    role: str = DEFAULT_ROLE,
    password: Optional[str] = TEST_PASSWORD,
    provider_id: str = CREDENTIAL_PROVIDER,
) -> UserModel:
    """Insert a user plus one linked account; password=None models a social-only login."""
    user = UserModel(
        id=new_id(),
        name=fake.name(),
        email=(email or fake.unique.email()).lower(),
        email_verified=True,
        role=role,
    )
    session.add(user)
    await session.flush()
    session.add(Account(
        id=new_id(),
        account_id=user.id,
        provider_id=provider_id,
        user_id=user.id,
        password=get_password_hash(password) if password else None,
    ))
    await session.commit()
    return user


def auth_headers(user: UserModel) -> dict:
    token = create_access_token({"sub": user.id, "email": user.email, "role": user.role})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def sample_submission_data():
    """Sample sell/lessor submission payload."""
    return {
        "fullName": fake.name(),
        "phoneNumber": "+251911000000",
        "woreda": "Jugol",
        "kebele": "04",
        "village": fake.city(),
        "identityDocumentUrl": "https://ik.imagekit.io/homeconnect/id-card.jpg",
        "homeMapUrl": "https://ik.imagekit.io/homeconnect/map.png",
    }
