"""Database package for connection and session management."""

from hr_org.database.database import (
    DatabaseConfig,
    dispose_engine,
    get_db,
    get_engine,
    get_session_factory,
    transaction_scope,
)

__all__ = [
    "DatabaseConfig",
    "dispose_engine",
    "get_db",
    "get_engine",
    "get_session_factory",
    "transaction_scope",
]
