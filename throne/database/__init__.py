"""
Database module initialization.
Exports database components for use throughout the application.
"""

from throne.database.base import Base
from throne.database.dependencies import get_db
from throne.database.session import (
    check_db_connection,
    close_db,
    create_engine,
    create_session_factory,
    create_tables,
    get_db_info,
    get_db_session,
    init_db,
)

__all__ = [
    # Connection management
    "init_db",
    "close_db",
    "create_engine",
    "create_session_factory",
    "create_tables",
    # Dependencies
    "get_db",
    "get_db_session",
    # Base classes
    "Base",
    # Utilities
    "check_db_connection",
    "get_db_info",
]
