"""DDL rendering for tables, views, triggers and stored routines.

Each ``render_*`` method reads the server's own ``SHOW CREATE ...`` output and
wraps it so the object can be dropped and recreated when the script is
replayed.

Usage:
    from db_backup.render.objects import SqlObjectRenderer

    renderer = SqlObjectRenderer(gateway, remove_definers=True)
    sql = renderer.render_table_structure("users")
"""

import logging
import re

from db_backup.adapters.base import QueryGateway
from db_backup.errors import QueryError
from db_backup.schema.models import RoutineType, SchemaObjectRef

logger = logging.getLogger(__name__)

DEFINER_PATTERN = re.compile(r"DEFINER=`[^`]+`@`[^`]+`\s*", re.IGNORECASE)


def quote_identifier(name: str) -> str:
    """Backtick-quote an identifier, doubling embedded backticks.

    Example:
        >>> quote_identifier("order`items")
        '`order``items`'
    """
    return "`" + name.replace("`", "``") + "`"


def strip_definers(sql: str, count: int = 0) -> str:
    """Remove ``DEFINER=`user`@`host``` clauses.

    Args:
        sql: Statement text
        count: Maximum number of clauses to remove (0 removes all)

    Returns:
        Statement without the matched clauses
    """
    return DEFINER_PATTERN.sub("", sql, count=count)


def _banner(title: str) -> str:
    return f"\n--\n-- {title}\n--\n"


class SqlObjectRenderer:
    """Renders replayable DDL for schema objects.

    Args:
        gateway: Gateway used for the ``SHOW CREATE`` queries.
        remove_definers: Strip ``DEFINER=`` clauses so the script can be
            replayed by a different account.  Views lose every clause;
            triggers and routines lose the first one only.
    """

    def __init__(self, gateway: QueryGateway, remove_definers: bool = True):
        self._gateway = gateway
        self._remove_definers = remove_definers

    def render_table_structure(self, name: str) -> str:
        """Render ``DROP TABLE IF EXISTS`` followed by the table's CREATE statement."""
        table = quote_identifier(name)
        logger.debug("Getting structure for %s...", table)
        row = self._show_create(f"SHOW CREATE TABLE {table}")
        return (
            _banner(f"Table structure: {table}")
            + "\n"
            + f"DROP TABLE IF EXISTS {table};\n"
            + f"{row['Create Table']};\n\n"
        )

    def render_view(self, name: str) -> str:
        """Render a view inside a ``/*!50001 ... */`` version comment.

        The statement from ``SHOW CREATE VIEW`` already carries its
        ``ALGORITHM=`` and ``SQL SECURITY`` clauses, so it is wrapped as-is.
        """
        view = quote_identifier(name)
        logger.debug("Getting view structure for %s...", view)
        create_sql = self._show_create(f"SHOW CREATE VIEW {view}")["Create View"]

        if self._remove_definers:
            create_sql = strip_definers(create_sql)

        return (
            _banner(f"View structure: {view}")
            + "\n"
            + f"DROP VIEW IF EXISTS {view};\n"
            + f"/*!50001 {create_sql.strip()} */;\n\n"
        )

    def render_trigger(self, ref: SchemaObjectRef) -> str:
        """Render a trigger between ``DELIMITER ;;`` guards.

        The definition is taken from ``SQL Original Statement``, then
        ``Create Trigger``; when the server reports neither, it is rebuilt
        from the ``SHOW TRIGGERS`` metadata held by *ref*.
        """
        trigger = quote_identifier(ref.name)
        logger.debug("Getting trigger structure for %s...", trigger)
        row = self._show_create(f"SHOW CREATE TRIGGER {trigger}")

        create_sql = row.get("SQL Original Statement") or row.get("Create Trigger")
        if not create_sql:
            create_sql = (
                f"TRIGGER {trigger} {ref.timing} {ref.event} "
                f"ON {quote_identifier(ref.table or '')} FOR EACH ROW {ref.statement}"
            )

        if self._remove_definers:
            create_sql = strip_definers(create_sql, count=1)

        if not create_sql.lstrip().upper().startswith("CREATE "):
            create_sql = "CREATE " + create_sql

        return (
            _banner(f"Trigger: {trigger}")
            + f"DROP TRIGGER IF EXISTS {trigger};\n"
            + "DELIMITER ;;\n"
            + f"{create_sql};;\n"
            + "DELIMITER ;\n\n"
        )

    def render_routine(self, ref: SchemaObjectRef) -> str:
        """Render a stored procedure or function between delimiter guards.

        Returns an ``-- ERROR:`` comment line instead when the server does
        not report a definition (for instance when the account lacks the
        privilege to see the routine body).
        """
        routine_type = ref.routine_type or RoutineType.PROCEDURE
        kind = routine_type.value
        routine = quote_identifier(ref.name)
        logger.debug("Getting routine structure for %s (%s)...", routine, kind)

        rows = self._gateway.execute(f"SHOW CREATE {kind} {routine}")
        create_sql = rows[0].get(routine_type.create_field) if rows else None

        if not create_sql:
            logger.error("Could not get definition for %s (%s).", routine, kind)
            return f"-- ERROR: Could not get definition for {ref.name} ({kind}).\n"

        if self._remove_definers:
            create_sql = strip_definers(create_sql, count=1)

        return (
            _banner(f"{kind}: {routine}")
            + f"DROP {kind} IF EXISTS {routine};\n"
            + "DELIMITER ;;\n"
            + f"{create_sql};;\n"
            + "DELIMITER ;\n\n"
        )

    def _show_create(self, sql: str) -> dict:
        rows = self._gateway.execute(sql)
        if not rows:
            # Object dropped between enumeration and rendering
            raise QueryError(f"No definition returned by: {sql}")
        return rows[0]
