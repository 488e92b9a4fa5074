"""Shared fixtures: in-memory SQLite database, seeded users, and an app client with overrides."""

from datetime import timedelta

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.database import get_db
from app.core.security import hash_password, utcnow
from app.main import app
from app.models import Base, Role, User, UserSession
from app.services.email import get_email_service
from app.services.permissions import seed_default_roles
from app.services.presence import presence

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

DEFAULT_PASSWORD = "correct-horse-battery"


def reset_database() -> None:
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


class FakeEmailService:
    """Records outgoing mail instead of talking to SMTP."""

    def __init__(self) -> None:
        self.otps: list[tuple[str, str]] = []
        self.verifications: list[tuple[str, str]] = []

    def send_password_reset_otp(
        self, to_email: str, otp: str, first_name: str, expires_minutes: int
    ) -> bool:
        self.otps.append((to_email, otp))
        return True

    def send_verification_email(self, to_email: str, token: str, first_name: str) -> bool:
        self.verifications.append((to_email, token))
        return True


def make_user(
    db,
    username: str = "alice",
    role_name: str | None = "user",
    *,
    password: str = DEFAULT_PASSWORD,
    is_verified: bool = True,
) -> User:
    """Insert a user, seeding the built-in roles first."""
    seed_default_roles(db)
    role = db.query(Role).filter(Role.name == role_name).first() if role_name else None
    user = User(
        first_name=username.title(),
        last_name="Tester",
        username=username,
        email=f"{username}@example.com",
        password_hash=hash_password(password),
        role_id=role.id if role is not None else None,
        is_verified=is_verified,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def age_session(db, session_id: str, minutes: int) -> None:
    """Move a session's last_activity `minutes` into the past."""
    db.query(UserSession).filter(UserSession.session_id == session_id).update(
        {UserSession.last_activity: utcnow() - timedelta(minutes=minutes)},
        synchronize_session=False,
    )
    db.commit()


def expire_session(db, session_id: str) -> None:
    db.query(UserSession).filter(UserSession.session_id == session_id).update(
        {UserSession.expires_at: utcnow() - timedelta(minutes=1)},
        synchronize_session=False,
    )
    db.commit()


def session_ids(db, user_id: int) -> set[str]:
    return {
        sid
        for (sid,) in db.query(UserSession.session_id).filter(UserSession.user_id == user_id).all()
    }


class ApiTestCase:
    """
    Mixin for unittest.TestCase: fresh schema, a TestClient with get_db and the email
    service overridden, and helpers for logging in and sending authenticated requests.
    """

    def setUp(self) -> None:
        reset_database()
        presence.clear()
        self.db = TestingSessionLocal()
        self.email = FakeEmailService()
        app.dependency_overrides[get_db] = override_get_db
        app.dependency_overrides[get_email_service] = lambda: self.email
        self.client = TestClient(app)

    def tearDown(self) -> None:
        app.dependency_overrides.clear()
        self.db.close()
        presence.clear()

    def login(
        self,
        identifier: str,
        password: str = DEFAULT_PASSWORD,
        headers: dict[str, str] | None = None,
    ):
        return self.client.post(
            "/api/v1/auth/login",
            json={"emailOrUserName": identifier, "password": password},
            headers=headers,
        )

    def login_ok(self, identifier: str, password: str = DEFAULT_PASSWORD) -> dict:
        resp = self.login(identifier, password)
        assert resp.status_code == 200, resp.text
        return resp.json()

    @staticmethod
    def auth_headers(body: dict) -> dict[str, str]:
        return {
            "X-Session-Id": body["session_id"],
            "Authorization": f"Bearer {body['access_token']}",
        }
