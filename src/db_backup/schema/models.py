"""Pydantic models describing the schema objects of one backup run."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class ObjectKind(str, Enum):
    """Kind of schema object."""

    TABLE = "TABLE"
    VIEW = "VIEW"
    TRIGGER = "TRIGGER"
    ROUTINE = "ROUTINE"


class RoutineType(str, Enum):
    """Kind of stored routine, as reported by information_schema.ROUTINES."""

    PROCEDURE = "PROCEDURE"
    FUNCTION = "FUNCTION"

    @property
    def create_field(self) -> str:
        """Column of ``SHOW CREATE <type>`` holding the definition."""
        return f"Create {self.value.capitalize()}"


# ============================================================================
# Schema Object References
# ============================================================================


class SchemaObjectRef(BaseModel):
    """Reference to one live schema object.

    Only the fields relevant to ``kind`` are populated: ``routine_type`` for
    routines; ``timing``, ``event``, ``table`` and ``statement`` for
    triggers (from ``SHOW TRIGGERS``).
    """

    model_config = ConfigDict(frozen=True)

    name: str
    kind: ObjectKind
    routine_type: RoutineType | None = None
    timing: str | None = None  # BEFORE, AFTER
    event: str | None = None  # INSERT, UPDATE, DELETE
    table: str | None = None
    statement: str | None = None


class SchemaInventory(BaseModel):
    """All objects of a schema, in the order they are backed up."""

    model_config = ConfigDict(frozen=True)

    tables: list[SchemaObjectRef] = Field(default_factory=list)
    views: list[SchemaObjectRef] = Field(default_factory=list)
    triggers: list[SchemaObjectRef] = Field(default_factory=list)
    routines: list[SchemaObjectRef] = Field(default_factory=list)

    @property
    def object_count(self) -> int:
        return len(self.tables) + len(self.views) + len(self.triggers) + len(self.routines)
