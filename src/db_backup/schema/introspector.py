"""MySQL schema enumeration for backup runs.

This module queries the live database to list the objects a backup covers:
- Base tables (``SHOW FULL TABLES``)
- Views (``SHOW FULL TABLES``)
- Triggers, with their timing/event/table/statement metadata (``SHOW TRIGGERS``)
- Stored procedures and functions (``information_schema.ROUTINES``)

All queries go through a ``QueryGateway``.
"""

import logging

from db_backup.adapters.base import QueryGateway
from db_backup.schema.models import (
    ObjectKind,
    RoutineType,
    SchemaInventory,
    SchemaObjectRef,
)

logger = logging.getLogger(__name__)


class SchemaIntrospector:
    """Enumerates the schema objects of the connected database.

    Usage:
        introspector = SchemaIntrospector(gateway)
        inventory = introspector.introspect()
        for table in inventory.tables:
            print(table.name)
    """

    def __init__(self, gateway: QueryGateway):
        """Initialize with a query gateway.

        Args:
            gateway: Gateway connected to the database being backed up
        """
        self._gateway = gateway

    def introspect(self) -> SchemaInventory:
        """Enumerate tables, views, triggers and routines.

        Each list keeps server order; a name reported twice appears once.

        Returns:
            SchemaInventory for the connected database
        """
        inventory = SchemaInventory(
            tables=self._get_tables(),
            views=self._get_views(),
            triggers=self._get_triggers(),
            routines=self._get_routines(),
        )
        logger.debug(
            "Found %d tables, %d views, %d triggers, %d routines",
            len(inventory.tables),
            len(inventory.views),
            len(inventory.triggers),
            len(inventory.routines),
        )
        return inventory

    def _get_tables(self) -> list[SchemaObjectRef]:
        """Get all base table names."""
        return self._full_tables("BASE TABLE", ObjectKind.TABLE)

    def _get_views(self) -> list[SchemaObjectRef]:
        """Get all view names."""
        return self._full_tables("VIEW", ObjectKind.VIEW)

    def _full_tables(self, table_type: str, kind: ObjectKind) -> list[SchemaObjectRef]:
        rows = self._gateway.execute(
            "SHOW FULL TABLES WHERE Table_type = %s", (table_type,)
        )
        # First column is named Tables_in_<database>
        names = [next(iter(row.values())) for row in rows]
        return [SchemaObjectRef(name=name, kind=kind) for name in _unique(names)]

    def _get_triggers(self) -> list[SchemaObjectRef]:
        """Get triggers with the metadata needed to rebuild their definition."""
        triggers = []
        seen: set[str] = set()
        for row in self._gateway.execute("SHOW TRIGGERS"):
            name = row["Trigger"]
            if name in seen:
                continue
            seen.add(name)
            triggers.append(
                SchemaObjectRef(
                    name=name,
                    kind=ObjectKind.TRIGGER,
                    timing=row.get("Timing"),
                    event=row.get("Event"),
                    table=row.get("Table"),
                    statement=row.get("Statement"),
                )
            )
        return triggers

    def _get_routines(self) -> list[SchemaObjectRef]:
        """Get stored procedures and functions of the current schema."""
        query = """
            SELECT ROUTINE_NAME, ROUTINE_TYPE
            FROM information_schema.ROUTINES
            WHERE ROUTINE_SCHEMA = DATABASE()
        """
        routines = []
        seen: set[tuple[str, str]] = set()
        for row in self._gateway.execute(query):
            key = (row["ROUTINE_NAME"], row["ROUTINE_TYPE"])
            if key in seen:
                continue
            seen.add(key)
            routines.append(
                SchemaObjectRef(
                    name=row["ROUTINE_NAME"],
                    kind=ObjectKind.ROUTINE,
                    routine_type=RoutineType(row["ROUTINE_TYPE"]),
                )
            )
        return routines


def _unique(names: list[str]) -> list[str]:
    """Drop repeated names, keeping the first occurrence."""
    return list(dict.fromkeys(names))
