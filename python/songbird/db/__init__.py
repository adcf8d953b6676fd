"""Database module for Songbird.

Provides engine creation, session management, transaction helpers, and ORM models.
"""

from songbird.db.engine import create_db_engine, get_engine
from songbird.db.models import Base, LikedSong, Song
from songbird.db.session import get_db, transaction

__all__ = [
    # Engine and session
    "create_db_engine",
    "get_engine",
    "get_db",
    "transaction",
    # Models
    "Base",
    "Song",
    "LikedSong",
]
