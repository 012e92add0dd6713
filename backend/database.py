"""
Database engine and session management.

Provides the declarative Base shared by all models and the get_db
dependency that hands one Session to each request.
"""

import logging
from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from config import DATABASE_URL

logger = logging.getLogger(__name__)

# SQLite needs check_same_thread disabled because FastAPI runs sync
# handlers in a threadpool
connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(DATABASE_URL, connect_args=connect_args, pool_pre_ping=True)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db() -> Generator[Session, None, None]:
    """Yield a database session and always close it afterwards."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db() -> None:
    """Create missing tables. Existing tables are left untouched."""
    # Import models so every table is registered on Base.metadata
    import models  # noqa: F401

    logger.info("Ensuring database tables exist")
    Base.metadata.create_all(bind=engine)
