"""Database connection and session management."""

import logging
import os
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Generator, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from hr_org.utils.errors import DataIntegrityError, TransactionError

logger = logging.getLogger(__name__)


@dataclass
class DatabaseConfig:
    """Database configuration settings."""

    host: str = "localhost"
    port: int = 5432
    database: str = "hr_org"
    username: str = "postgres"
    password: str = ""
    pool_size: int = 5
    max_overflow: int = 10
    isolation_level: str = "SERIALIZABLE"
    echo: bool = False

    @classmethod
    def from_env(cls) -> "DatabaseConfig":
        """Create config from environment variables."""
        return cls(
            host=os.getenv("DB_HOST", "localhost"),
            port=int(os.getenv("DB_PORT", "5432")),
            database=os.getenv("DB_NAME", "hr_org"),
            username=os.getenv("DB_USER", "postgres"),
            password=os.getenv("DB_PASSWORD", ""),
            pool_size=int(os.getenv("DB_POOL_SIZE", "5")),
            max_overflow=int(os.getenv("DB_MAX_OVERFLOW", "10")),
            isolation_level=os.getenv("DB_ISOLATION_LEVEL", "SERIALIZABLE"),
            echo=os.getenv("DB_ECHO", "false").lower() == "true",
        )

    @property
    def url(self) -> str:
        """Generate SQLAlchemy database URL."""
        return f"postgresql://{self.username}:{self.password}@{self.host}:{self.port}/{self.database}"


# Module-level engine and session factory (initialized lazily)
_engine: Optional[Engine] = None
_session_factory: Optional[sessionmaker[Session]] = None


def get_engine(config: Optional[DatabaseConfig] = None) -> Engine:
    """
    Get or create the SQLAlchemy engine.

    Uses singleton pattern to reuse engine across requests. Connections run
    at the configured isolation level (SERIALIZABLE by default) so that
    concurrent capacity checks cannot both observe the same free slot.
    """
    global _engine

    if _engine is None:
        if config is None:
            config = DatabaseConfig.from_env()

        _engine = create_engine(
            config.url,
            pool_size=config.pool_size,
            max_overflow=config.max_overflow,
            isolation_level=config.isolation_level,
            echo=config.echo,
            pool_pre_ping=True,  # Verify connections before use
        )

    return _engine


def get_session_factory(config: Optional[DatabaseConfig] = None) -> sessionmaker[Session]:
    """
    Get or create the session factory.

    Uses singleton pattern to reuse factory across requests.
    """
    global _session_factory

    if _session_factory is None:
        engine = get_engine(config)
        _session_factory = sessionmaker(
            bind=engine,
            autocommit=False,
            autoflush=False,
            expire_on_commit=False,
        )

    return _session_factory


def get_db() -> Generator[Session, None, None]:
    """
    Dependency that provides a database session.

    Use with FastAPI's Depends() for automatic session management.
    Commits on success, rolls back on exception.
    """
    session_factory = get_session_factory()
    session = session_factory()

    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


@contextmanager
def transaction_scope(session: Session) -> Generator[Session, None, None]:
    """
    Run a unit of work on ``session`` and commit it as one transaction.

    Any exception rolls the whole unit back. Constraint violations become
    ``DataIntegrityError``, which is final. Other driver-level failures
    (serialization conflicts, lost connections, failed commits) are
    re-raised as ``TransactionError`` so callers can retry. Business
    errors propagate unchanged.
    """
    try:
        yield session
        session.commit()
    except IntegrityError as e:
        session.rollback()
        logger.warning("Transaction rolled back after constraint violation: %s", e.orig)
        raise DataIntegrityError(details={"reason": str(e.orig)}) from e
    except DBAPIError as e:
        session.rollback()
        logger.warning("Transaction rolled back after database failure: %s", e)
        raise TransactionError(details={"reason": type(e.orig).__name__ if e.orig else str(e)}) from e
    except Exception:
        session.rollback()
        raise


def dispose_engine() -> None:
    """
    Dispose of the engine and reset module state.

    Useful for testing and graceful shutdown.
    """
    global _engine, _session_factory

    if _engine is not None:
        _engine.dispose()
        _engine = None
        _session_factory = None
