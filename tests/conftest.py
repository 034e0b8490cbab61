# tests/conftest.py

import os

# Point the application at a throwaway database before it is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ADMIN_API_TOKEN"] = ""
os.environ["DB_LOG_SLOW_QUERIES"] = "false"

import pytest  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402
from starlette.testclient import TestClient  # noqa: E402

from promoter_slots.auth import get_current_admin  # noqa: E402
from promoter_slots.database import Base, get_db  # noqa: E402
from promoter_slots.dependencies import get_meeting_provider, get_notifier  # noqa: E402
from promoter_slots.main import app  # noqa: E402

from .helpers import FakeMeetingProvider, FakeNotifier  # noqa: E402

# --- Test Database Setup ---
engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db_session():
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    yield session
    session.close()
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def meeting_provider():
    return FakeMeetingProvider()


@pytest.fixture
def notifier():
    return FakeNotifier()


# --- Test Client Fixtures ---
@pytest.fixture(scope="function")
def test_client(db_session, meeting_provider, notifier):
    """
    Provides a TestClient bound to the test session with the Google and
    email collaborators replaced by fakes.
    """

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_current_admin] = lambda: "admin"
    app.dependency_overrides[get_meeting_provider] = lambda: meeting_provider
    app.dependency_overrides[get_notifier] = lambda: notifier

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()
