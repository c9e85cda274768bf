"""
Structural comparison of two schema snapshots.

Principles
----------
- Pure: no I/O, no mutation of inputs; the only impure input is the clock
  used to stamp `compared_at` (injectable for tests).
- One pattern for every entity kind: match by identity key, then classify as
  added / removed / modified / unchanged. Only the compared fields differ.
- Stable order: keys of the source first (in source order), then keys that
  exist only in the target (in target order).
- Primary keys compare as sets, so reordering a composite key is not a change.

Output
------
`SchemaComparisonResult` holding one `TableDiff` per table key seen on either
side, plus aggregate counts (see `summarize`).
"""

from __future__ import annotations

import dataclasses
from collections.abc import Callable, Iterable, Mapping, Sequence
from datetime import datetime, timezone
from typing import Any, TypeVar

from src.enums import DiffType, EndpointType
from src.logger import LOGGER
from src.schema_migration.diffs import (
    Added,
    ComparisonSummary,
    EntityDiff,
    FieldChange,
    Modified,
    Removed,
    SchemaComparisonResult,
    SchemaEndpoint,
    TableAdded,
    TableDiff,
    TableModified,
    TableRemoved,
    TableUnchanged,
    Unchanged,
    count_changed,
)
from src.schema_migration.identifiers import DEFAULT_SCHEMA, TableKey
from src.schema_migration.models import SchemaInfo, TableInfo
from src.schema_migration.validation import validate_schemas

EntityT = TypeVar("EntityT")

# Fields compared per entity kind; identity keys are excluded.
COLUMN_FIELDS: tuple[str, ...] = ("type", "nullable", "default_value", "is_primary_key")
INDEX_FIELDS: tuple[str, ...] = ("columns", "is_unique")
FOREIGN_KEY_FIELDS: tuple[str, ...] = (
    "referenced_table",
    "referenced_column",
    "on_delete",
    "on_update",
)
TRIGGER_FIELDS: tuple[str, ...] = ("timing", "event", "sql")


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class SchemaComparator:
    """
    Compare source and target schema snapshots table by table.

    Workflow
    --------
    1. Flatten tables and views of every schema into a map keyed by 'schema.name'.
    2. For each key in the union: absent in source -> added, absent in target ->
       removed, otherwise compare the two tables.
    3. Summarize the table diffs in one pass.
    """

    def __init__(self, clock: Callable[[], datetime] | None = None) -> None:
        self._clock = clock or _utc_now

    def compare_schemas(
        self,
        source_schemas: Sequence[SchemaInfo],
        target_schemas: Sequence[SchemaInfo],
        source_id: str,
        source_name: str,
        source_type: EndpointType | str,
        target_id: str,
        target_name: str,
        target_type: EndpointType | str,
    ) -> SchemaComparisonResult:
        """Compare two snapshots; endpoint metadata is carried through for reporting."""
        validate_schemas(source_schemas)
        validate_schemas(target_schemas)

        source_tables = index_tables(source_schemas)
        target_tables = index_tables(target_schemas)

        table_diffs = tuple(
            diff_table(source_tables.get(key), target_tables.get(key))
            for key in _union_keys(source_tables, target_tables)
        )
        summary = summarize(table_diffs)

        LOGGER.info(
            "Compared %s -> %s: added=%d, removed=%d, modified=%d, unchanged=%d",
            source_name,
            target_name,
            summary.tables_added,
            summary.tables_removed,
            summary.tables_modified,
            summary.tables_unchanged,
        )
        return SchemaComparisonResult(
            source=SchemaEndpoint(source_id, source_name, EndpointType(source_type)),
            target=SchemaEndpoint(target_id, target_name, EndpointType(target_type)),
            compared_at=self._clock(),
            table_diffs=table_diffs,
            summary=summary,
        )


# ---------- tables ----------


def index_tables(schemas: Iterable[SchemaInfo]) -> dict[TableKey, TableInfo]:
    """Tables and views of all schemas keyed by 'schema.name'. Later duplicates win."""
    tables: dict[TableKey, TableInfo] = {}
    for schema in schemas:
        for table in schema.relations():
            tables[table.key] = table
    return tables


def diff_table(source: TableInfo | None, target: TableInfo | None) -> TableDiff:
    """Classify one table key. At least one side must be present."""
    if source is None and target is not None:
        return TableAdded(name=target.name, schema=target.schema or DEFAULT_SCHEMA, target=target)
    if target is None and source is not None:
        return TableRemoved(name=source.name, schema=source.schema or DEFAULT_SCHEMA, source=source)
    if source is None or target is None:
        raise ValueError("diff_table requires a source or a target table.")
    return compare_tables(source, target)


def compare_tables(source: TableInfo, target: TableInfo) -> TableModified | TableUnchanged:
    """Diff the nested structure of a table present on both sides."""
    column_diffs = diff_entities(
        source.columns, target.columns, key=lambda c: c.name, fields=COLUMN_FIELDS
    )
    index_diffs = diff_entities(
        source.indexes, target.indexes, key=lambda i: i.name, fields=INDEX_FIELDS
    )
    foreign_key_diffs = diff_entities(
        source.foreign_keys,
        target.foreign_keys,
        key=lambda fk: fk.column,
        fields=FOREIGN_KEY_FIELDS,
    )
    trigger_diffs = diff_entities(
        source.triggers, target.triggers, key=lambda t: t.name, fields=TRIGGER_FIELDS
    )
    primary_key_change = compare_primary_keys(source.primary_key, target.primary_key)

    parts = dict(
        name=source.name,
        schema=source.schema or DEFAULT_SCHEMA,
        source=source,
        target=target,
        column_diffs=column_diffs,
        index_diffs=index_diffs,
        foreign_key_diffs=foreign_key_diffs,
        trigger_diffs=trigger_diffs,
        primary_key_change=primary_key_change,
    )
    has_changes = primary_key_change is not None or any(
        count_changed(diffs)
        for diffs in (column_diffs, index_diffs, foreign_key_diffs, trigger_diffs)
    )
    table_diff = TableModified(**parts) if has_changes else TableUnchanged(**parts)
    LOGGER.debug("Table %s: %s", table_diff.key, table_diff.diff_type)
    return table_diff


def compare_primary_keys(
    source_columns: Sequence[str], target_columns: Sequence[str]
) -> FieldChange | None:
    """Order-insensitive comparison; the change keeps each side's declared order."""
    if sorted(source_columns) == sorted(target_columns):
        return None
    return FieldChange(from_=tuple(source_columns), to=tuple(target_columns))


# ---------- entities ----------


def diff_entities(
    source_items: Iterable[EntityT],
    target_items: Iterable[EntityT],
    key: Callable[[EntityT], str],
    fields: Sequence[str],
) -> tuple[EntityDiff, ...]:
    """Match entities by `key` and classify each; `fields` are compared pairwise."""
    source_by_key = {key(item): item for item in source_items}
    target_by_key = {key(item): item for item in target_items}

    diffs: list[EntityDiff] = []
    for item_key in _union_keys(source_by_key, target_by_key):
        source = source_by_key.get(item_key)
        target = target_by_key.get(item_key)
        if source is None:
            diffs.append(Added(key=item_key, target=target))
        elif target is None:
            diffs.append(Removed(key=item_key, source=source))
        else:
            changes = detect_changes(source, target, fields)
            if changes:
                diffs.append(Modified(key=item_key, source=source, target=target, changes=changes))
            else:
                diffs.append(Unchanged(key=item_key, source=source, target=target))
    return tuple(diffs)


def detect_changes(source: Any, target: Any, fields: Sequence[str]) -> dict[str, FieldChange]:
    """Return {field: FieldChange} for each field whose values differ; empty if none."""
    changes: dict[str, FieldChange] = {}
    for field_name in fields:
        before = getattr(source, field_name)
        after = getattr(target, field_name)
        if before != after:
            changes[field_name] = FieldChange(from_=before, to=after)
    return changes


# ---------- summary ----------


def summarize(table_diffs: Iterable[TableDiff]) -> ComparisonSummary:
    """Count tables per classification and nested entity changes in one pass."""
    counts = {field.name: 0 for field in dataclasses.fields(ComparisonSummary)}
    status_counter = {
        DiffType.ADDED: "tables_added",
        DiffType.REMOVED: "tables_removed",
        DiffType.MODIFIED: "tables_modified",
        DiffType.UNCHANGED: "tables_unchanged",
    }

    for table_diff in table_diffs:
        if table_diff.source is not None:
            counts["source_tables"] += 1
        if table_diff.target is not None:
            counts["target_tables"] += 1
        counts[status_counter[table_diff.diff_type]] += 1

        if isinstance(table_diff, (TableModified, TableUnchanged)):
            counts["total_column_changes"] += count_changed(table_diff.column_diffs)
            counts["total_index_changes"] += count_changed(table_diff.index_diffs)
            counts["total_foreign_key_changes"] += count_changed(table_diff.foreign_key_diffs)
            counts["total_trigger_changes"] += count_changed(table_diff.trigger_diffs)

    return ComparisonSummary(**counts)


# ---------- utilities ----------


def _union_keys(first: Mapping[str, Any], second: Mapping[str, Any]) -> list[str]:
    """Keys of `first` in order, then keys only in `second` in order."""
    return list(dict.fromkeys([*first, *second]))
