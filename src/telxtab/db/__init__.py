"""Database module for SQLite persistence.

Provides:
- Database connection management
- Schema initialization
- Repository functions, one module per table group
"""

from telxtab.db.database import get_db, init_db

__all__ = ["get_db", "init_db"]
