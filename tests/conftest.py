"""
Shared fixtures. Tests run against an in-memory SQLite database.
"""
import os

# Must be set before config.settings is imported anywhere
os.environ["DATABASE_URL"] = "sqlite://"

import pytest

from database import Base, SessionLocal, engine
from database.seed import populate


@pytest.fixture
def db_session():
    """Fresh schema and an open session."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def seeded(db_session):
    """Demo data committed to the database; returns the reference ids."""
    ids = populate(db_session)
    db_session.commit()
    return ids

