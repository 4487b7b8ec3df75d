"""SQL rendering for schema objects and row data.

Usage:
    >>> from db_backup.render import SqlObjectRenderer, DataRenderer
"""

from db_backup.render.data import BATCH_SIZE, DataRenderer, sql_literal
from db_backup.render.objects import SqlObjectRenderer, quote_identifier, strip_definers

__all__ = [
    "BATCH_SIZE",
    "DataRenderer",
    "sql_literal",
    "SqlObjectRenderer",
    "quote_identifier",
    "strip_definers",
]
