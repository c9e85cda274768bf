"""
Diff model: immutable tagged variants describing structural differences.

Every compared entity resolves to exactly one variant:
- Added      -> only `target` exists
- Removed    -> only `source` exists
- Modified   -> both exist and `changes` lists every differing field
- Unchanged  -> both exist and no field differs

The same four-way split applies to whole tables (`TableAdded`, `TableRemoved`,
`TableModified`, `TableUnchanged`); the last two also carry the nested column,
index, foreign key and trigger diffs plus an optional primary key change.

Invariants enforced at construction
-----------------------------------
- `Modified.changes` is never empty.
- `TableModified` always has at least one non-unchanged nested diff or a
  primary key change; `TableUnchanged` never does.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import datetime
from types import MappingProxyType
from typing import Any, ClassVar, Generic, TypeAlias, TypeVar

from src.enums import DiffType, EndpointType
from src.schema_migration.identifiers import TableKey, build_table_key
from src.schema_migration.models import (
    ColumnInfo,
    ForeignKeyInfo,
    IndexInfo,
    TableInfo,
    TriggerInfo,
)

EntityT = TypeVar("EntityT")

_NO_CHANGES: Mapping[str, FieldChange] = MappingProxyType({})


@dataclass(frozen=True)
class FieldChange:
    """A single field transition `from_` -> `to`."""

    from_: Any
    to: Any

    def reversed(self) -> FieldChange:
        return FieldChange(from_=self.to, to=self.from_)


# ---------- entity variants ----------


@dataclass(frozen=True)
class Added(Generic[EntityT]):
    """Entity present in the target only. `key` is the entity's identity key."""

    diff_type: ClassVar[DiffType] = DiffType.ADDED

    key: str
    target: EntityT

    @property
    def source(self) -> None:
        return None

    @property
    def changes(self) -> Mapping[str, FieldChange]:
        return _NO_CHANGES


@dataclass(frozen=True)
class Removed(Generic[EntityT]):
    """Entity present in the source only."""

    diff_type: ClassVar[DiffType] = DiffType.REMOVED

    key: str
    source: EntityT

    @property
    def target(self) -> None:
        return None

    @property
    def changes(self) -> Mapping[str, FieldChange]:
        return _NO_CHANGES


@dataclass(frozen=True)
class Modified(Generic[EntityT]):
    """Entity present on both sides with at least one differing field."""

    diff_type: ClassVar[DiffType] = DiffType.MODIFIED

    key: str
    source: EntityT
    target: EntityT
    changes: Mapping[str, FieldChange]

    def __post_init__(self) -> None:
        if not self.changes:
            raise ValueError(f"Modified diff for {self.key!r} requires at least one change.")
        object.__setattr__(self, "changes", MappingProxyType(dict(self.changes)))


@dataclass(frozen=True)
class Unchanged(Generic[EntityT]):
    """Entity present on both sides with identical compared fields."""

    diff_type: ClassVar[DiffType] = DiffType.UNCHANGED

    key: str
    source: EntityT
    target: EntityT

    @property
    def changes(self) -> Mapping[str, FieldChange]:
        return _NO_CHANGES


ColumnDiff: TypeAlias = (
    Added[ColumnInfo] | Removed[ColumnInfo] | Modified[ColumnInfo] | Unchanged[ColumnInfo]
)
IndexDiff: TypeAlias = (
    Added[IndexInfo] | Removed[IndexInfo] | Modified[IndexInfo] | Unchanged[IndexInfo]
)
ForeignKeyDiff: TypeAlias = (
    Added[ForeignKeyInfo]
    | Removed[ForeignKeyInfo]
    | Modified[ForeignKeyInfo]
    | Unchanged[ForeignKeyInfo]
)
TriggerDiff: TypeAlias = (
    Added[TriggerInfo] | Removed[TriggerInfo] | Modified[TriggerInfo] | Unchanged[TriggerInfo]
)
EntityDiff: TypeAlias = Added[Any] | Removed[Any] | Modified[Any] | Unchanged[Any]


def count_changed(diffs: Iterable[EntityDiff]) -> int:
    """Number of diffs whose type is not `unchanged`."""
    return sum(1 for diff in diffs if diff.diff_type != DiffType.UNCHANGED)


# ---------- table variants ----------


@dataclass(frozen=True)
class TableAdded:
    """Table or view present in the target only."""

    diff_type: ClassVar[DiffType] = DiffType.ADDED

    name: str
    schema: str
    target: TableInfo

    @property
    def source(self) -> None:
        return None

    @property
    def key(self) -> TableKey:
        return build_table_key(self.schema, self.name)


@dataclass(frozen=True)
class TableRemoved:
    """Table or view present in the source only."""

    diff_type: ClassVar[DiffType] = DiffType.REMOVED

    name: str
    schema: str
    source: TableInfo

    @property
    def target(self) -> None:
        return None

    @property
    def key(self) -> TableKey:
        return build_table_key(self.schema, self.name)


@dataclass(frozen=True)
class _TableComparison:
    """Shared shape of tables present on both sides."""

    name: str
    schema: str
    source: TableInfo
    target: TableInfo
    column_diffs: tuple[ColumnDiff, ...] = ()
    index_diffs: tuple[IndexDiff, ...] = ()
    foreign_key_diffs: tuple[ForeignKeyDiff, ...] = ()
    trigger_diffs: tuple[TriggerDiff, ...] = ()
    primary_key_change: FieldChange | None = None

    @property
    def key(self) -> TableKey:
        return build_table_key(self.schema, self.name)

    def has_changes(self) -> bool:
        """True when any nested diff is not unchanged or the primary key changed."""
        nested = (
            *self.column_diffs,
            *self.index_diffs,
            *self.foreign_key_diffs,
            *self.trigger_diffs,
        )
        return self.primary_key_change is not None or count_changed(nested) > 0


@dataclass(frozen=True)
class TableModified(_TableComparison):
    """Table present on both sides with at least one structural difference."""

    diff_type: ClassVar[DiffType] = DiffType.MODIFIED

    def __post_init__(self) -> None:
        if not self.has_changes():
            raise ValueError(f"Modified table {self.key!r} requires at least one change.")


@dataclass(frozen=True)
class TableUnchanged(_TableComparison):
    """Table present on both sides with identical structure."""

    diff_type: ClassVar[DiffType] = DiffType.UNCHANGED

    def __post_init__(self) -> None:
        if self.has_changes():
            raise ValueError(f"Unchanged table {self.key!r} must not carry changes.")


TableDiff: TypeAlias = TableAdded | TableRemoved | TableModified | TableUnchanged


# ---------- comparison result ----------


@dataclass(frozen=True)
class SchemaEndpoint:
    """Identity of one side of a comparison (display/reporting only)."""

    id: str
    name: str
    type: EndpointType


@dataclass(frozen=True)
class ComparisonSummary:
    """Aggregate counts over all table diffs."""

    source_tables: int = 0
    target_tables: int = 0
    tables_added: int = 0
    tables_removed: int = 0
    tables_modified: int = 0
    tables_unchanged: int = 0
    total_column_changes: int = 0
    total_index_changes: int = 0
    total_foreign_key_changes: int = 0
    total_trigger_changes: int = 0


@dataclass(frozen=True)
class SchemaComparisonResult:
    """Outcome of comparing a source schema snapshot against a target snapshot."""

    source: SchemaEndpoint
    target: SchemaEndpoint
    compared_at: datetime
    table_diffs: tuple[TableDiff, ...]
    summary: ComparisonSummary

    def get(self, key: TableKey) -> TableDiff | None:
        """Table diff for a 'schema.name' key, or None."""
        for table_diff in self.table_diffs:
            if table_diff.key == key:
                return table_diff
        return None
