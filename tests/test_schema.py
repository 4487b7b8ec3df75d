"""Tests for schema enumeration."""

from db_backup.schema.introspector import SchemaIntrospector
from db_backup.schema.models import ObjectKind, RoutineType


class TestSchemaIntrospector:
    """Test SchemaIntrospector.introspect()."""

    def test_tables_and_views(self, items_gateway):
        inventory = SchemaIntrospector(items_gateway).introspect()

        assert [t.name for t in inventory.tables] == ["items"]
        assert [v.name for v in inventory.views] == ["items_view"]
        assert inventory.tables[0].kind is ObjectKind.TABLE
        assert inventory.views[0].kind is ObjectKind.VIEW

    def test_table_type_is_bound_parameter(self, items_gateway):
        SchemaIntrospector(items_gateway).introspect()
        assert items_gateway.queries.count("SHOW FULL TABLES WHERE Table_type = %s") == 2

    def test_server_order_kept(self, make_gateway):
        gateway = make_gateway(tables={n: ("", []) for n in ["zeta", "alpha", "mid"]})

        inventory = SchemaIntrospector(gateway).introspect()

        assert [t.name for t in inventory.tables] == ["zeta", "alpha", "mid"]

    def test_duplicate_names_dropped(self, make_gateway):
        gateway = make_gateway()
        gateway.execute = lambda sql, params=None: (
            [{"Tables_in_shop": "a"}, {"Tables_in_shop": "b"}, {"Tables_in_shop": "a"}]
            if sql.startswith("SHOW FULL TABLES") and params == ("BASE TABLE",)
            else []
        )

        inventory = SchemaIntrospector(gateway).introspect()

        assert [t.name for t in inventory.tables] == ["a", "b"]

    def test_trigger_metadata(self, make_gateway):
        gateway = make_gateway(
            triggers=[
                {
                    "Trigger": "items_bi",
                    "Event": "INSERT",
                    "Table": "items",
                    "Statement": "SET NEW.id = 1",
                    "Timing": "BEFORE",
                }
            ]
        )

        (trigger,) = SchemaIntrospector(gateway).introspect().triggers

        assert trigger.name == "items_bi"
        assert trigger.kind is ObjectKind.TRIGGER
        assert trigger.timing == "BEFORE"
        assert trigger.event == "INSERT"
        assert trigger.table == "items"
        assert trigger.statement == "SET NEW.id = 1"

    def test_routines_with_type(self, make_gateway):
        gateway = make_gateway(
            routines=[("refresh", "PROCEDURE", "..."), ("double_it", "FUNCTION", "...")]
        )

        routines = SchemaIntrospector(gateway).introspect().routines

        assert [(r.name, r.routine_type) for r in routines] == [
            ("refresh", RoutineType.PROCEDURE),
            ("double_it", RoutineType.FUNCTION),
        ]

    def test_empty_database(self, make_gateway):
        inventory = SchemaIntrospector(make_gateway()).introspect()
        assert inventory.object_count == 0
