"""Query gateway protocol definition.

Defines the ``QueryGateway`` Protocol that the backup pipeline reads
through.  All methods are synchronous -- a backup run is a single
sequential pass over the schema.

Usage:
    from db_backup.adapters.base import QueryGateway

    def count_tables(gateway: QueryGateway) -> int:
        rows = gateway.execute("SHOW TABLES")
        return len(rows)
"""

from collections.abc import Iterator
from typing import Any, Protocol


class QueryGateway(Protocol):
    """Read-only query interface over a live database connection.

    Implementations hold one connection for their lifetime.  Connection
    failures surface as ``DatabaseConnectionError``; rejected statements as
    ``QueryError``.
    """

    def execute(self, sql: str, params: dict | tuple | None = None) -> list[dict[str, Any]]:
        """Run a query and return every row as a column-name mapping.

        Args:
            sql: SQL statement (introspection or ``SELECT``).
            params: Optional driver-level bound parameters.

        Returns:
            List of dicts, one per row, in server order.  Empty list if the
            query produced no rows.

        Example:
            rows = gateway.execute("SHOW CREATE TABLE `users`")
            ddl = rows[0]["Create Table"]
        """
        ...

    def execute_scalar(self, sql: str, params: dict | tuple | None = None) -> Any:
        """Run a query and return the first column of the first row.

        Returns:
            The value, or ``None`` when the query produced no rows.

        Example:
            version = gateway.execute_scalar("SELECT VERSION()")
        """
        ...

    def stream(self, sql: str) -> Iterator[dict[str, Any]]:
        """Run a query through a forward-only cursor and yield rows lazily.

        The result set is never materialized in memory.  The iterator must be
        exhausted (or closed) before the next query is issued.

        Example:
            for row in gateway.stream("SELECT * FROM `orders`"):
                handle(row)
        """
        ...

    def close(self) -> None:
        """Release the connection and any pooled resources."""
        ...
