"""Shared fixtures: an in-memory stand-in for a MySQL query gateway."""

import re
from collections.abc import Iterator
from datetime import datetime, timedelta
from typing import Any

import pytest

from db_backup.config.models import BackupOptions, ConnectionSettings

_NAME_RE = re.compile(r"`((?:[^`]|``)*)`")


def _name(sql: str) -> str:
    match = _NAME_RE.search(sql)
    assert match, f"No quoted identifier in: {sql}"
    return match.group(1).replace("``", "`")


class FakeGateway:
    """Answers the introspection, SHOW CREATE and SELECT queries of a backup run.

    Args:
        tables: ``{name: (create_table_ddl, rows)}``
        views: ``{name: create_view_statement}``
        triggers: ``SHOW TRIGGERS`` rows; an optional ``"create"`` key holds the
            ``SHOW CREATE TRIGGER`` row (defaults to an ``SQL Original
            Statement`` built from the metadata)
        routines: ``[(name, "PROCEDURE" | "FUNCTION", definition_or_None)]``
        fail_on: ``{sql: exception}`` raised when that exact statement runs
    """

    def __init__(
        self,
        tables: dict[str, tuple[str, list[dict[str, Any]]]] | None = None,
        views: dict[str, str] | None = None,
        triggers: list[dict[str, Any]] | None = None,
        routines: list[tuple[str, str, str | None]] | None = None,
        version: str = "8.0.36",
        fail_on: dict[str, Exception] | None = None,
    ):
        self.tables = tables or {}
        self.views = views or {}
        self.triggers = triggers or []
        self.routines = routines or []
        self.version = version
        self.fail_on = fail_on or {}
        self.queries: list[str] = []
        self.closed = False

    def execute(self, sql: str, params: dict | tuple | None = None) -> list[dict[str, Any]]:
        self.queries.append(sql)
        if sql in self.fail_on:
            raise self.fail_on[sql]

        if sql.startswith("SHOW FULL TABLES"):
            table_type = params[0]
            names = self.tables if table_type == "BASE TABLE" else self.views
            return [{"Tables_in_shop": name, "Table_type": table_type} for name in names]
        if sql == "SHOW TRIGGERS":
            return [{k: v for k, v in t.items() if k != "create"} for t in self.triggers]
        if "information_schema.ROUTINES" in sql:
            return [
                {"ROUTINE_NAME": name, "ROUTINE_TYPE": kind} for name, kind, _ in self.routines
            ]
        if sql.startswith("SHOW CREATE TABLE"):
            name = _name(sql)
            return [{"Table": name, "Create Table": self.tables[name][0]}]
        if sql.startswith("SHOW CREATE VIEW"):
            name = _name(sql)
            return [{"View": name, "Create View": self.views[name]}]
        if sql.startswith("SHOW CREATE TRIGGER"):
            name = _name(sql)
            trigger = next(t for t in self.triggers if t["Trigger"] == name)
            if "create" in trigger:
                return [trigger["create"]]
            return [
                {
                    "Trigger": name,
                    "SQL Original Statement": (
                        f"CREATE DEFINER=`root`@`localhost` TRIGGER `{name}` "
                        f"{trigger['Timing']} {trigger['Event']} ON `{trigger['Table']}` "
                        f"FOR EACH ROW {trigger['Statement']}"
                    ),
                }
            ]
        match = re.match(r"SHOW CREATE (PROCEDURE|FUNCTION) ", sql)
        if match:
            kind = match.group(1)
            name = _name(sql)
            definition = next(d for n, k, d in self.routines if n == name and k == kind)
            field = f"Create {kind.capitalize()}"
            return [{kind.capitalize(): name, field: definition}]
        raise AssertionError(f"Unexpected query: {sql}")

    def execute_scalar(self, sql: str, params: dict | tuple | None = None) -> Any:
        self.queries.append(sql)
        if sql in self.fail_on:
            raise self.fail_on[sql]
        if sql == "SELECT VERSION()":
            return self.version
        if sql == "SELECT 1":
            return 1
        raise AssertionError(f"Unexpected scalar query: {sql}")

    def stream(self, sql: str) -> Iterator[dict[str, Any]]:
        self.queries.append(sql)
        if sql in self.fail_on:
            raise self.fail_on[sql]
        assert sql.startswith("SELECT * FROM "), sql
        yield from self.tables[_name(sql)][1]

    def close(self) -> None:
        self.closed = True


class FixedClock:
    """Clock returning a settable time; ``advance()`` moves it forward."""

    def __init__(self, start: datetime = datetime(2024, 3, 1, 12, 0, 0)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


# ------------------------------------------------------------------
# Fixtures
# ------------------------------------------------------------------


ITEMS_DDL = (
    "CREATE TABLE `items` (\n"
    "  `id` int NOT NULL AUTO_INCREMENT,\n"
    "  `name` varchar(50) DEFAULT NULL,\n"
    "  PRIMARY KEY (`id`)\n"
    ") ENGINE=InnoDB DEFAULT CHARSET=utf8mb4"
)

ITEMS_VIEW = (
    "CREATE ALGORITHM=UNDEFINED DEFINER=`root`@`localhost` SQL SECURITY DEFINER "
    "VIEW `items_view` AS select `items`.`id` AS `id` from `items`"
)


@pytest.fixture
def make_gateway():
    """Factory for ``FakeGateway`` instances."""
    return FakeGateway


@pytest.fixture
def items_gateway() -> FakeGateway:
    """Database with table ``items`` (two rows, one containing a quote) and view ``items_view``."""
    return FakeGateway(
        tables={
            "items": (
                ITEMS_DDL,
                [{"id": 1, "name": "a"}, {"id": 2, "name": "O'Brien"}],
            )
        },
        views={"items_view": ITEMS_VIEW},
    )


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def connection() -> ConnectionSettings:
    return ConnectionSettings(database="shop", user="backup", password="secret")


@pytest.fixture
def options() -> BackupOptions:
    return BackupOptions()
