import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from fintrack import models  # noqa: F401  registers tables on Base.metadata
from fintrack.database import Base, get_db
from fintrack.main import app


@pytest.fixture(scope="function")
def db():
    """A fresh in-memory DB session per test.

    Foreign keys are left unenforced here so tests can fabricate dangling
    references; the production engine turns them on.
    """
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    Session = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = Session()

    yield session

    session.close()
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture(scope="function")
def client(db):
    """TestClient bound to the ``db`` fixture. Not used as a context manager,
    so the lifespan hook (which opens the real database) never runs."""

    def _override_get_db():
        yield db

    app.dependency_overrides[get_db] = _override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()
