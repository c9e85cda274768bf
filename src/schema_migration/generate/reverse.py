"""
Direction reversal of a diff tree.

Reversal is a structure-preserving map: every variant swaps `source` and
`target`, `added` and `removed` trade places, and every `FieldChange` swaps
`from_` and `to`. Applying it twice yields an equal tree.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import replace

from src.schema_migration.compare.comparator import summarize
from src.schema_migration.diffs import (
    Added,
    EntityDiff,
    FieldChange,
    Modified,
    Removed,
    SchemaComparisonResult,
    TableAdded,
    TableDiff,
    TableModified,
    TableRemoved,
    TableUnchanged,
    Unchanged,
)


def reverse_comparison(result: SchemaComparisonResult) -> SchemaComparisonResult:
    """Reverse every table diff and swap the endpoints; counts are recomputed."""
    table_diffs = reverse_table_diffs(result.table_diffs)
    return replace(
        result,
        source=result.target,
        target=result.source,
        table_diffs=table_diffs,
        summary=summarize(table_diffs),
    )


def reverse_table_diffs(table_diffs: Iterable[TableDiff]) -> tuple[TableDiff, ...]:
    return tuple(reverse_table_diff(table_diff) for table_diff in table_diffs)


def reverse_table_diff(table_diff: TableDiff) -> TableDiff:
    """Reverse one table diff including its nested diffs and primary key change."""
    if isinstance(table_diff, TableAdded):
        return TableRemoved(name=table_diff.name, schema=table_diff.schema, source=table_diff.target)
    if isinstance(table_diff, TableRemoved):
        return TableAdded(name=table_diff.name, schema=table_diff.schema, target=table_diff.source)
    if isinstance(table_diff, (TableModified, TableUnchanged)):
        pk_change = table_diff.primary_key_change
        return type(table_diff)(
            name=table_diff.name,
            schema=table_diff.schema,
            source=table_diff.target,
            target=table_diff.source,
            column_diffs=_reverse_all(table_diff.column_diffs),
            index_diffs=_reverse_all(table_diff.index_diffs),
            foreign_key_diffs=_reverse_all(table_diff.foreign_key_diffs),
            trigger_diffs=_reverse_all(table_diff.trigger_diffs),
            primary_key_change=pk_change.reversed() if pk_change is not None else None,
        )
    raise TypeError(f"Unsupported table diff: {type(table_diff).__name__}")


def reverse_diff(diff: EntityDiff) -> EntityDiff:
    """Reverse a column, index, foreign key or trigger diff."""
    if isinstance(diff, Added):
        return Removed(key=diff.key, source=diff.target)
    if isinstance(diff, Removed):
        return Added(key=diff.key, target=diff.source)
    if isinstance(diff, Modified):
        return Modified(
            key=diff.key,
            source=diff.target,
            target=diff.source,
            changes=_reverse_changes(diff.changes),
        )
    if isinstance(diff, Unchanged):
        return Unchanged(key=diff.key, source=diff.target, target=diff.source)
    raise TypeError(f"Unsupported diff: {type(diff).__name__}")


def _reverse_all(diffs: Iterable[EntityDiff]) -> tuple[EntityDiff, ...]:
    return tuple(reverse_diff(diff) for diff in diffs)


def _reverse_changes(changes: Mapping[str, FieldChange]) -> dict[str, FieldChange]:
    return {field_name: change.reversed() for field_name, change in changes.items()}
