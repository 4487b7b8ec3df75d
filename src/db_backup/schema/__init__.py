"""Schema enumeration: object references and the introspector that builds them.

Usage:
    >>> from db_backup.schema import SchemaIntrospector, SchemaInventory
"""

from db_backup.schema.introspector import SchemaIntrospector
from db_backup.schema.models import (
    ObjectKind,
    RoutineType,
    SchemaInventory,
    SchemaObjectRef,
)

__all__ = [
    "SchemaIntrospector",
    "ObjectKind",
    "RoutineType",
    "SchemaInventory",
    "SchemaObjectRef",
]
