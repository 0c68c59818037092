"""Database configuration and helpers for the noise monitor backend."""

from __future__ import annotations

import logging
import os

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

DATABASE_URL = os.getenv("NOISEMAP_DB_URL", "sqlite:///./noisemap.db")

logger = logging.getLogger("noisemap.db")


def build_engine(url: str) -> Engine:
    """Create an engine, allowing SQLite connections to cross worker threads."""

    return create_engine(
        url,
        connect_args={"check_same_thread": False} if url.startswith("sqlite") else {},
    )


engine = build_engine(DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def init_db(bind: Engine | None = None) -> None:
    """Create database tables if they do not exist."""

    import noisemap.db_models  # noqa: F401 - models are imported for side effects

    Base.metadata.create_all(bind=bind or engine)
    logger.debug("Database schema ensured")
