"""
TMS Test Configuration

Shared fixtures for all tests: in-memory database, recording mailer,
HTTP client with dependency overrides and small model factories.
"""
import os
from datetime import datetime, timedelta
from typing import Dict, List, Optional

# Configure before anything imports the app
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["TMS_CONFIG_PATH"] = os.path.join(os.path.dirname(__file__), "missing-config.yml")
os.environ["CONFIG__REMINDERS__ENABLED"] = "false"
os.environ["JWT_SECRET"] = "test-secret"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from tms.auth.jwt import create_user_token
from tms.auth.passwords import hash_password
from tms.config import reload_config
from tms.db.database import build_engine, get_db, init_db
from tms.models.models import Client, Department, Project, Task, User
from tms.notifications.mailer import get_mailer
from tms.timeutil import utcnow

reload_config()

from tms.main import app  # noqa: E402

PASSWORD = "Secret#123"
_password_hash: Optional[str] = None


def password_hash() -> str:
    """bcrypt is slow; hash the shared test password once."""
    global _password_hash
    if _password_hash is None:
        _password_hash = hash_password(PASSWORD)
    return _password_hash


# =============================================================================
# FIXTURES: Database
# =============================================================================

@pytest.fixture
def engine():
    eng = build_engine("sqlite://", poolclass=StaticPool)
    init_db(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


# =============================================================================
# FIXTURES: Mail
# =============================================================================

class RecordingMailer:
    """Mailer that keeps every message instead of sending it."""

    def __init__(self, fail: bool = False):
        self.sent: List[Dict] = []
        self.fail = fail

    def send(self, to, subject, text, html=None) -> bool:
        recipients = [to] if isinstance(to, str) else list(to)
        self.sent.append({"to": recipients, "subject": subject, "text": text, "html": html})
        return not self.fail

    def subjects(self) -> List[str]:
        return [m["subject"] for m in self.sent]

    def recipients_of(self, subject: str) -> List[str]:
        return [addr for m in self.sent if m["subject"] == subject for addr in m["to"]]


@pytest.fixture
def mailer():
    return RecordingMailer()


@pytest.fixture
def failing_mailer():
    return RecordingMailer(fail=True)


# =============================================================================
# FIXTURES: HTTP client
# =============================================================================

@pytest.fixture
def client(session_factory, mailer):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_mailer] = lambda: mailer
    yield TestClient(app)
    app.dependency_overrides.clear()


def auth_headers(user: User) -> Dict[str, str]:
    return {"Authorization": f"Bearer {create_user_token(user)}"}


# =============================================================================
# FIXTURES: Factories
# =============================================================================

class Factory:
    """Creates committed rows with sensible defaults."""

    def __init__(self, db):
        self.db = db
        self._seq = 0

    def _next(self) -> int:
        self._seq += 1
        return self._seq

    def _save(self, obj):
        self.db.add(obj)
        self.db.commit()
        return obj

    def department(self, name: Optional[str] = None, color: str = "#112233") -> Department:
        return self._save(Department(name=name or f"department {self._next()}", color=color))

    def user(
        self,
        first_name: str = "Jane",
        last_name: str = "Doe",
        email: Optional[str] = None,
        role: str = "User",
        department: Optional[Department] = None,
    ) -> User:
        return self._save(User(
            first_name=first_name,
            last_name=last_name,
            email=email or f"user{self._next()}@example.com",
            password_hash=password_hash(),
            role=role,
            department_id=department.id if department else None,
        ))

    def admin(self, **kwargs) -> User:
        kwargs.setdefault("first_name", "Ada")
        kwargs.setdefault("last_name", "Admin")
        return self.user(role="Admin", **kwargs)

    def client(self, name: Optional[str] = None) -> Client:
        n = self._next()
        return self._save(Client(
            name=name or f"Client {n}",
            email=f"client{n}@example.com",
            address="1 Main Street",
            phone_number_one="+4912345678901",
        ))

    def project(
        self,
        client: Optional[Client] = None,
        departments: Optional[List[Department]] = None,
        members: Optional[List[User]] = None,
        start_date: Optional[datetime] = None,
        due_date: Optional[datetime] = None,
        status: str = "in progress",
        budget: float = 1000,
        name: Optional[str] = None,
    ) -> Project:
        now = utcnow()
        project = Project(
            name=name or f"Project {self._next()}",
            client_id=(client or self.client()).id,
            start_date=start_date or now - timedelta(days=1),
            due_date=due_date or now + timedelta(days=30),
            budget=budget,
            status=status,
        )
        project.departments = departments or []
        project.members = members or []
        return self._save(project)

    def task(
        self,
        project: Project,
        assignees: Optional[List[User]] = None,
        departments: Optional[List[Department]] = None,
        due_date: Optional[datetime] = None,
        status: str = "pending",
        title: Optional[str] = None,
        start_date: Optional[datetime] = None,
    ) -> Task:
        task = Task(
            title=title or f"Task {self._next()}",
            project_id=project.id,
            priority="medium",
            due_date=due_date or utcnow() + timedelta(days=5),
            status=status,
            start_date=start_date or utcnow() - timedelta(hours=1),
        )
        task.assignees = assignees or []
        task.departments = departments or []
        return self._save(task)


@pytest.fixture
def factory(db):
    return Factory(db)


@pytest.fixture
def department(factory):
    return factory.department(name="engineering")


@pytest.fixture
def admin(factory, department):
    return factory.admin(email="admin@example.com", department=department)


@pytest.fixture
def user(factory, department):
    return factory.user(first_name="John", last_name="Smith", email="john@example.com", department=department)


@pytest.fixture
def admin_headers(admin):
    return auth_headers(admin)


@pytest.fixture
def user_headers(user):
    return auth_headers(user)


@pytest.fixture
def headers_for():
    """Bearer headers for any user created in a test."""
    return auth_headers
