"""Database connection and session management.

This module handles the database connection using SQLAlchemy. Tables are
created by ``init_db`` on application start.
"""

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from chathub.config import DATABASE_URL, DATA_DIR
from chathub.models.base import Base
# Import models to ensure they are registered with Base.metadata
import chathub.models  # noqa: F401

_connect_args = {}
if DATABASE_URL.startswith("sqlite"):
    _connect_args = {"check_same_thread": False}

engine = create_engine(DATABASE_URL, connect_args=_connect_args)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db() -> None:
    """Create all tables if they do not exist."""
    if DATABASE_URL.startswith("sqlite:///"):
        DATA_DIR.mkdir(parents=True, exist_ok=True)
    Base.metadata.create_all(bind=engine)


def get_db():
    """Dependency for getting a database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
