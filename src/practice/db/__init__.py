"""Database module for SQLite persistence.

Provides:
- Database connection management
- Schema initialization
- SQLite-backed level store and content cache
"""

from practice.db.database import get_db, init_db

__all__ = ["get_db", "init_db"]
