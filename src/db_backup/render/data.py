"""Row data rendering as batched multi-row INSERT statements.

Rows are read through ``QueryGateway.stream`` so a table never has to fit in
memory; only the current batch is held.

Usage:
    from db_backup.render.data import DataRenderer, sql_literal

    sql = DataRenderer(gateway).render_table_data("orders")
    sql_literal("O'Brien")  # "'O\\'Brien'"
"""

import datetime as dt
import logging
from typing import Any

from db_backup.adapters.base import QueryGateway
from db_backup.render.objects import quote_identifier

logger = logging.getLogger(__name__)

BATCH_SIZE = 100

_ESCAPES = str.maketrans(
    {
        "\\": "\\\\",
        "\0": "\\0",
        "\n": "\\n",
        "\r": "\\r",
        "'": "\\'",
        '"': '\\"',
        "\x1a": "\\Z",
    }
)


def _format_timedelta(value: dt.timedelta) -> str:
    # MySQL TIME columns come back as timedelta and may exceed 24h or be negative
    total = int(value.total_seconds())
    sign = "-" if total < 0 else ""
    hours, remainder = divmod(abs(total), 3600)
    minutes, seconds = divmod(remainder, 60)
    text = f"{sign}{hours:02d}:{minutes:02d}:{seconds:02d}"
    if value.microseconds:
        text += f".{value.microseconds:06d}"
    return text


def sql_literal(value: Any) -> str:
    """Render one column value as a MySQL literal.

    - ``None`` becomes ``NULL``.
    - Strings are single-quoted with ``\\0 \\n \\r \\\\ ' " \\x1a`` escaped.
    - Booleans become ``1`` / ``0``.
    - Binary values become hex literals (``''`` when empty).
    - Dates, datetimes and times are quoted in their textual form.
    - Anything else (ints, floats, ``Decimal``) is written bare.

    Example:
        >>> sql_literal(None)
        'NULL'
        >>> sql_literal(True)
        '1'
        >>> sql_literal(b"\\x01\\xff")
        '0x01ff'
    """
    if value is None:
        return "NULL"
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, str):
        return "'" + value.translate(_ESCAPES) + "'"
    if isinstance(value, (bytes, bytearray, memoryview)):
        raw = bytes(value)
        return "0x" + raw.hex() if raw else "''"
    if isinstance(value, dt.timedelta):
        return f"'{_format_timedelta(value)}'"
    if isinstance(value, (dt.datetime, dt.date, dt.time)):
        return f"'{value}'"
    return str(value)


class DataRenderer:
    """Renders a table's rows as ``INSERT`` statements of up to ``batch_size`` rows.

    Args:
        gateway: Gateway used to stream ``SELECT *``.
        batch_size: Rows per ``INSERT`` statement.
    """

    def __init__(self, gateway: QueryGateway, batch_size: int = BATCH_SIZE):
        self._gateway = gateway
        self._batch_size = batch_size

    def render_table_data(self, name: str) -> str:
        """Render all rows of *name*.

        Returns an empty string for an empty table.  Otherwise the statements
        are wrapped once in ``LOCK TABLES`` / ``DISABLE KEYS`` and
        ``ENABLE KEYS`` / ``UNLOCK TABLES``, whatever the number of batches.
        """
        table = quote_identifier(name)
        logger.debug("Getting data for %s...", table)

        parts: list[str] = []
        columns = ""
        batch: list[str] = []
        row_count = 0

        for row in self._gateway.stream(f"SELECT * FROM {table}"):
            if row_count == 0:
                columns = ", ".join(quote_identifier(column) for column in row)
                parts.append(
                    f"\n--\n-- Dumping table data: {table}\n--\n"
                    f"LOCK TABLES {table} WRITE;\n"
                    f"/*!40000 ALTER TABLE {table} DISABLE KEYS */;\n"
                )

            batch.append("(" + ", ".join(sql_literal(v) for v in row.values()) + ")")
            row_count += 1

            if len(batch) >= self._batch_size:
                parts.append(self._insert(table, columns, batch))
                batch = []

        if batch:
            parts.append(self._insert(table, columns, batch))

        if row_count:
            parts.append(
                f"/*!40000 ALTER TABLE {table} ENABLE KEYS */;\n"
                "UNLOCK TABLES;\n"
            )

        logger.debug("Dumped %d rows from %s", row_count, table)
        return "".join(parts)

    @staticmethod
    def _insert(table: str, columns: str, batch: list[str]) -> str:
        return f"INSERT INTO {table} ({columns}) VALUES\n" + ",\n".join(batch) + ";\n"
