"""
Database configuration and session management for scaffoldkit.
"""

import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from scaffoldkit.core.config import DatabaseSettings, get_config

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Base class for scaffolded database models."""
    pass


def create_engine_from_settings(settings: DatabaseSettings | None = None) -> Engine:
    """Create a synchronous engine from database settings."""
    settings = settings or get_config().database
    url = settings.resolve_database_url()
    engine = create_engine(url, echo=settings.echo_sql)
    logger.info(f"Database engine created: {engine.url.render_as_string(hide_password=True)}")
    return engine


def create_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(engine, class_=Session, expire_on_commit=False)


@contextmanager
def session_scope(factory: sessionmaker[Session]) -> Iterator[Session]:
    """
    Provide a transactional scope around a series of operations.

    Commits on success; rolls back and re-raises on error.
    """
    session = factory()
    try:
        yield session
        session.commit()
    except Exception as e:
        logger.error(f"Database session error: {e}")
        session.rollback()
        raise
    finally:
        session.close()


def init_db(engine: Engine, base: type[DeclarativeBase] = Base) -> None:
    """Create all tables known to the declarative base."""
    base.metadata.create_all(engine)
    logger.info(f"Initialized {len(base.metadata.tables)} tables")
