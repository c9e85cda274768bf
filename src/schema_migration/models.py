"""
Schema snapshot models consumed by the comparator.

A snapshot is produced by a database adapter (live connection or persisted
snapshot) and handed over fully materialized. Nothing here owns a connection.

Conventions
-----------
- All models are frozen; sequences are stored as tuples.
- Identity keys: tables by `schema.name`, columns/indexes/triggers by name,
  foreign keys by their local column (at most one foreign key per column).
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field

from src.enums import TableType, TriggerEvent, TriggerTiming
from src.schema_migration.identifiers import DEFAULT_SCHEMA, build_table_key


@dataclass(frozen=True)
class ColumnInfo:
    """One column as reported by the adapter; `type` is the raw declared type."""

    name: str
    type: str
    nullable: bool = True
    default_value: str | None = None
    is_primary_key: bool = False


@dataclass(frozen=True)
class ForeignKeyInfo:
    """Single-column foreign key. `on_delete`/`on_update` are None when unspecified."""

    column: str
    referenced_table: str
    referenced_column: str
    on_delete: str | None = None
    on_update: str | None = None


@dataclass(frozen=True)
class IndexInfo:
    """Index with its ordered column list and the DDL it was created with."""

    name: str
    columns: tuple[str, ...]
    is_unique: bool = False
    sql: str = ""


@dataclass(frozen=True)
class TriggerInfo:
    """Trigger with the DDL it was created with."""

    name: str
    table_name: str
    timing: TriggerTiming
    event: TriggerEvent
    sql: str = ""


@dataclass(frozen=True)
class TableInfo:
    """A table or view with its structure. `sql` is the original CREATE statement."""

    name: str
    schema: str = DEFAULT_SCHEMA
    type: TableType = TableType.TABLE
    columns: tuple[ColumnInfo, ...] = ()
    primary_key: tuple[str, ...] = ()
    foreign_keys: tuple[ForeignKeyInfo, ...] = ()
    indexes: tuple[IndexInfo, ...] = ()
    triggers: tuple[TriggerInfo, ...] = ()
    row_count: int | None = None
    sql: str = ""

    @property
    def key(self) -> str:
        """Identity key shared by tables and views: 'schema.name'."""
        return build_table_key(self.schema, self.name)

    @property
    def is_view(self) -> bool:
        return self.type == TableType.VIEW

    @property
    def column_names(self) -> tuple[str, ...]:
        """Column names in declared order."""
        return tuple(column.name for column in self.columns)

    @property
    def has_composite_primary_key(self) -> bool:
        return len(self.primary_key) > 1


@dataclass(frozen=True)
class SchemaInfo:
    """One named namespace (e.g. 'main', an attached database)."""

    name: str = DEFAULT_SCHEMA
    tables: tuple[TableInfo, ...] = field(default_factory=tuple)
    views: tuple[TableInfo, ...] = field(default_factory=tuple)

    def relations(self) -> Iterator[TableInfo]:
        """Tables followed by views."""
        yield from self.tables
        yield from self.views
