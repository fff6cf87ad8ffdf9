"""
Test configuration and fixtures.
Each test gets a fresh in-memory SQLite database and low-cost settings.
"""
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import tenant_admin.models  # noqa: F401  registers the mappers
from tenant_admin.config import Settings
from tenant_admin.database import Base
from tenant_admin.main import create_app
from tests.factories import ALL_FACTORIES
from tests.utils import T0, FixedClock, RecordingMailDispatcher


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        _env_file=None,
        ENVIRONMENT="test",
        DATABASE_URL="sqlite://",
        JWT_SECRET_KEY="test-secret-key-that-is-long-enough-for-hs256",
        BCRYPT_ROUNDS=4,
        MAX_LOGIN_ATTEMPTS=5,
        ACCOUNT_LOCKOUT_MINUTES=15,
        MAIL_DISPATCH_ENABLED=False,
    )


@pytest.fixture
def db_engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db_session(db_engine):
    """Create a fresh database session for each test"""
    session = sessionmaker(autoflush=False, bind=db_engine)()
    for factory_class in ALL_FACTORIES:
        factory_class._meta.sqlalchemy_session = session

    yield session

    for factory_class in ALL_FACTORIES:
        factory_class._meta.sqlalchemy_session = None
    session.close()


@pytest.fixture
def other_session(db_engine):
    """Second session on the same database, for interleaving two callers"""
    session = sessionmaker(autoflush=False, bind=db_engine)()
    yield session
    session.close()


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(T0)


@pytest.fixture
def mailer() -> RecordingMailDispatcher:
    return RecordingMailDispatcher()


@pytest.fixture
def client(test_settings):
    with TestClient(create_app(test_settings), raise_server_exceptions=False) as test_client:
        yield test_client
