"""Shared fixtures: in-memory SQLite, fake Redis helpers, stub email."""

import os

os.environ["DATABASE_URL"] = "sqlite+pysqlite:///:memory:"
os.environ["EMAIL_USE_STUB"] = "true"
os.environ["RESEND_API_KEY"] = ""
os.environ["JWT_SECRET"] = "test-secret"
os.environ["CLINIC_TIMEZONE"] = "America/New_York"
os.environ.pop("ADMIN_PASSWORD", None)

from typing import Dict, Iterator, List, Optional  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.orm import Session  # noqa: E402

from medibook.main import app  # noqa: E402
from medibook.models import Base, Doctor, UserRole  # noqa: E402
from medibook.routers.deps import dispatcher_dependency  # noqa: E402
from medibook.services import auth as auth_mod  # noqa: E402
from medibook.services import session as session_mod  # noqa: E402
from medibook.services.auth import create_access_token, sign_up  # noqa: E402
from medibook.services.catalogue import seed_doctors  # noqa: E402
from medibook.services.db import SessionLocal, engine  # noqa: E402
from medibook.services.notifications import (  # noqa: E402
    NotificationDispatcher,
    NotificationRequest,
    NotificationResult,
)
from notification_service.resend_adapter import (  # noqa: E402
    EmailDeliveryError,
    ResendEmailAdapter,
)


class RecordingDispatcher(NotificationDispatcher):
    """Dispatcher over the stub adapter that remembers every request."""

    def __init__(self, adapter: Optional[ResendEmailAdapter] = None) -> None:
        super().__init__(
            adapter
            or ResendEmailAdapter(api_key="", sender="MediBook <test@medibook.com>", use_stub=True)
        )
        self.requests: List[NotificationRequest] = []

    def send(self, request: NotificationRequest) -> NotificationResult:
        self.requests.append(request)
        return super().send(request)


class FailingAdapter(ResendEmailAdapter):
    """Adapter whose provider always rejects the message."""

    def __init__(self) -> None:
        super().__init__(api_key="", sender="MediBook <test@medibook.com>", use_stub=True)

    def send_email(self, *, to: str, subject: str, html: str) -> str:
        raise EmailDeliveryError("provider unavailable")


@pytest.fixture(autouse=True)
def database() -> Iterator[None]:
    """Fresh schema for every test."""

    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def cache_store(monkeypatch: pytest.MonkeyPatch) -> Dict[str, str]:
    """Replace Redis helpers with an in-memory dict."""

    store: Dict[str, str] = {}

    def fake_cache_set(key: str, value: str, ex: Optional[int] = None) -> bool:
        store[key] = value
        return True

    def fake_cache_get(key: str) -> Optional[str]:
        return store.get(key)

    def fake_cache_delete(key: str) -> int:
        return 1 if store.pop(key, None) is not None else 0

    for module in (session_mod, auth_mod):
        monkeypatch.setattr(module, "cache_set", fake_cache_set)
        monkeypatch.setattr(module, "cache_get", fake_cache_get)
    monkeypatch.setattr(session_mod, "cache_delete", fake_cache_delete)
    return store


@pytest.fixture
def db_session() -> Iterator[Session]:
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def doctors(db_session: Session) -> List[Doctor]:
    seeded = seed_doctors(db_session)
    db_session.commit()
    return seeded


@pytest.fixture
def sarah_johnson(doctors: List[Doctor]) -> Doctor:
    return next(doctor for doctor in doctors if doctor.last_name == "Johnson")


@pytest.fixture
def dispatcher() -> RecordingDispatcher:
    return RecordingDispatcher()


@pytest.fixture
def failing_dispatcher() -> RecordingDispatcher:
    return RecordingDispatcher(FailingAdapter())


@pytest.fixture
def client(dispatcher: RecordingDispatcher) -> Iterator[TestClient]:
    app.dependency_overrides[dispatcher_dependency] = lambda: dispatcher
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def admin_headers(db_session: Session) -> Dict[str, str]:
    profile = sign_up(
        db_session,
        email="admin@clinic.com",
        password="Admin@1234",
        role=UserRole.ADMIN,
    )
    db_session.commit()
    token = create_access_token(profile).access_token
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def patient_headers(db_session: Session) -> Dict[str, str]:
    profile = sign_up(db_session, email="patient@example.com", password="secret123")
    db_session.commit()
    token = create_access_token(profile).access_token
    return {"Authorization": f"Bearer {token}"}
