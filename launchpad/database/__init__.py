"""Database package - connection and session management."""

from launchpad.database.base import Base
from launchpad.database.connection import (
    get_session,
    get_engine,
    configure_database,
    health_check,
    close_database,
    DatabaseConnection,
)

__all__ = [
    "Base",
    "get_session",
    "get_engine",
    "configure_database",
    "health_check",
    "close_database",
    "DatabaseConnection",
]
