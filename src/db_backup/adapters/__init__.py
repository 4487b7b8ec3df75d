"""Database adapters package.

Provides the ``QueryGateway`` Protocol and the SQLAlchemy-backed
``MySQLGateway`` implementation.

Usage:
    from db_backup.adapters import QueryGateway, MySQLGateway
"""

from db_backup.adapters.base import QueryGateway
from db_backup.adapters.mysql import MySQLGateway

__all__ = [
    "QueryGateway",
    "MySQLGateway",
]
