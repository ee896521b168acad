"""Database layer for the finledger application."""

from finledger.database.base import Database
from finledger.database.factories import create_sqlite_database

__all__ = ["Database", "create_sqlite_database"]
