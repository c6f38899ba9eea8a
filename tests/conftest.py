import os

# db.py creates its engine at import time
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from models import Base


def _memory_engine():
    return create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )


@pytest.fixture
def engine():
    engine = _memory_engine()
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False, future=True)


@pytest.fixture
def empty_engine():
    """An engine with no tables, to simulate a store that rejects every query."""
    engine = _memory_engine()
    yield engine
    engine.dispose()


@pytest.fixture
def broken_session_factory(empty_engine):
    return sessionmaker(bind=empty_engine, autoflush=False, expire_on_commit=False, future=True)
