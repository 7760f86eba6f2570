"""
Database infrastructure package.

Used when storage_backend is "database"; the in-memory stores in
crisisline.infrastructure.storage are the default.
"""

from crisisline.infrastructure.database.connection import Base, DatabaseManager

__all__ = ["Base", "DatabaseManager"]
