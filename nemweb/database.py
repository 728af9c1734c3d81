"""Database engine and session factory for the SQLite unit database.

WHAT:
    Builds the SQLAlchemy engine and sessionmaker from settings. Nothing is
    created at import time; `create_app()` builds both once and stores them
    on the AppContext.

USAGE:
    engine = create_db_engine("sqlite:////data/database.sqlite")
    SessionLocal = create_session_factory(engine)

REFERENCES:
    - nemweb/state.py: AppContext holding the engine
    - nemweb/deps.py: per-request session dependency
"""

import logging

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

logger = logging.getLogger(__name__)


def sqlite_url(path: str) -> str:
    """SQLAlchemy URL for a SQLite file path (or ":memory:")."""
    return f"sqlite:///{path}"


def create_db_engine(database_url: str) -> Engine:
    """Create the engine. SQLite connections are shared across FastAPI's threadpool."""
    if database_url.startswith("sqlite"):
        engine = create_engine(
            database_url,
            connect_args={"check_same_thread": False},
        )
    else:
        engine = create_engine(database_url, pool_pre_ping=True)

    logger.info(f"[DB] Engine created for {engine.url.render_as_string(hide_password=True)}")
    return engine


def create_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, autoflush=False, autocommit=False)
