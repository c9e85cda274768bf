"""Enumerations used throughout the schema migration engine."""

from enum import StrEnum


class DiffType(StrEnum):
    """Classification of a structural difference between two schemas."""

    ADDED = "added"
    REMOVED = "removed"
    MODIFIED = "modified"
    UNCHANGED = "unchanged"

    @property
    def reversed(self) -> "DiffType":
        """The classification seen from the opposite direction."""
        mapping = {
            DiffType.ADDED: DiffType.REMOVED,
            DiffType.REMOVED: DiffType.ADDED,
        }
        return mapping.get(self, self)


class TableType(StrEnum):
    """Kind of relation held in a schema."""

    TABLE = "table"
    VIEW = "view"


class EndpointType(StrEnum):
    """Provenance of one side of a comparison. Used for reporting only."""

    CONNECTION = "connection"
    SNAPSHOT = "snapshot"


class TriggerTiming(StrEnum):
    """When a trigger fires relative to its event."""

    BEFORE = "BEFORE"
    AFTER = "AFTER"
    INSTEAD_OF = "INSTEAD OF"


class TriggerEvent(StrEnum):
    """Statement kind a trigger fires on."""

    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
