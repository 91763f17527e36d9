import os
from pathlib import Path

from dotenv import load_dotenv

env_file = Path(__file__).parent.parent / ".env.test"
load_dotenv(env_file)
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy import create_engine, event  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from pitchey.core import redis as redis_module  # noqa: E402
from pitchey.core.rate_limit import limiter  # noqa: E402
from pitchey.db.base import Base  # noqa: E402
from pitchey.db.session import get_db  # noqa: E402
from pitchey.main import app  # noqa: E402
from tests.utils.factories import create_session_factory, create_user_factory  # noqa: E402
from tests.utils.helpers import FakeRedis  # noqa: E402

limiter.enabled = False


@pytest.fixture
def memory_engine():
    """In-memory SQLite shared by every thread of a test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # pysqlite defers BEGIN on its own, which breaks SAVEPOINT; emit it explicitly
    @event.listens_for(engine, "connect")
    def _disable_pysqlite_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")

    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def db_session(memory_engine):
    session_factory = sessionmaker(bind=memory_engine, autocommit=False, autoflush=False)
    session = session_factory()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
async def test_app(db_session, fake_redis):
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    redis_module.redis_client = fake_redis

    yield app

    app.dependency_overrides.clear()
    redis_module.redis_client = None


@pytest.fixture
async def test_client(test_app):
    async with AsyncClient(transport=ASGITransport(app=test_app), base_url="http://test") as client:
        yield client


@pytest.fixture
def creator(db_session):
    return create_user_factory(
        db_session,
        user_id=7,
        email="creator@example.com",
        password="testpass123",
        user_type="creator",
        name="Casey Creator",
    )


@pytest.fixture
def investor(db_session):
    return create_user_factory(
        db_session,
        user_id=9,
        email="investor@example.com",
        password="testpass123",
        user_type="investor",
        name="Ivy Investor",
    )


@pytest.fixture
def creator_session(db_session, creator):
    return create_session_factory(db_session, creator)


@pytest.fixture
def investor_session(db_session, investor):
    return create_session_factory(db_session, investor)
