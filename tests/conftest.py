"""Shared fixtures: SQLite stands in for Postgres, clocks are pinned."""

import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("RATE_LIMIT_BACKEND", "postgres")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from datetime import datetime, timedelta, timezone
from typing import Dict, Optional, Tuple

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import prismstudio.databases.postgres.model as models
from prismstudio.databases.postgres.database import Base, get_db
from prismstudio.main import app
from prismstudio.models.rate_limit import RateLimitState

NOW = datetime(2026, 10, 17, 12, 0, 0, tzinfo=timezone.utc)


class Clock:
    """Mutable clock handed to components as their `now` callable."""

    def __init__(self, start: datetime = NOW):
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> None:
        self.current += timedelta(**kwargs)


class MemoryRateLimitStore:
    """Dict-backed store for exercising the limiter without a database."""

    def __init__(self):
        self.records: Dict[Tuple[str, str], RateLimitState] = {}

    async def get(self, ip_address: str, endpoint: str) -> Optional[RateLimitState]:
        return self.records.get((ip_address, endpoint))

    async def create(self, state: RateLimitState) -> None:
        self.records[(state.ip_address, state.endpoint)] = state

    async def save(self, state: RateLimitState) -> None:
        self.records[(state.ip_address, state.endpoint)] = state


@pytest.fixture
def clock() -> Clock:
    return Clock()


@pytest.fixture
def memory_store() -> MemoryRateLimitStore:
    return MemoryRateLimitStore()


@pytest.fixture
def engine():
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
def db_session(engine):
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make_certificate(db_session):
    """Insert a holder plus certificate and return the certificate."""

    def _make(
        certificate_id: str = "PS2506DS148",
        valid_until: Optional[datetime] = None,
        is_active: bool = True,
        domain: str = "data_science",
        **overrides,
    ) -> models.Certificate:
        user = models.User(
            name=overrides.pop("name", "Asha Verma"),
            email=overrides.pop("email", f"{certificate_id.lower()}@example.com"),
            domain=domain,
        )
        db_session.add(user)
        db_session.flush()

        fields = {
            "certificate_id": certificate_id,
            "user_id": user.id,
            "issued_at": NOW - timedelta(days=30),
            "valid_until": valid_until,
            "skills": ["Python", "Pandas"],
            "grade": "A",
            "cert_type": "standard",
            "cert_hash": "a" * 64,
            "is_verified": True,
            "is_active": is_active,
        }
        fields.update(overrides)
        certificate = models.Certificate(**fields)
        db_session.add(certificate)
        db_session.commit()
        return certificate

    return _make


@pytest.fixture
def client(db_session) -> TestClient:
    """Test client bound to the SQLite session."""

    def _get_db():
        yield db_session

    app.dependency_overrides[get_db] = _get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
