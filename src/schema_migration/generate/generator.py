"""
Migration SQL generation from a schema comparison.

Statements are emitted in a fixed dependency order. Each phase is a plain
function of the (possibly reversed) table diffs and returns a `PhaseOutput`:

    1. drop_triggers      removed/modified triggers, triggers of removed tables
    2. (recreation set)   tables rebuilt instead of altered, with warnings
    3. drop_indexes       removed/modified indexes, indexes of removed tables
    4. drop_tables        removed tables and views, replaced relations
    5. alter_tables       ADD COLUMN on tables that are not rebuilt
    6. recreate_tables    create-copy-drop-rename per rebuilt table
    7. create_tables      added tables and views, replaced relations
    8. create_indexes     indexes of new and rebuilt tables, added/modified ones
    9. create_triggers    triggers of new and rebuilt relations, added/modified ones

Removed tables, columns, indexes and triggers are only dropped when
`include_drop_statements` is set. Rebuilt tables lose every index and trigger
with the old table, so phases 8 and 9 recreate all of the target's.

`MigrationGenerator.generate_migration_sql` never raises: failures are
returned as `MigrationFailure`.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import ClassVar, TypeAlias

from src import settings
from src.enums import DiffType
from src.logger import LOGGER
from src.schema_migration.diffs import (
    SchemaComparisonResult,
    TableAdded,
    TableDiff,
    TableModified,
    TableRemoved,
)
from src.schema_migration.generate.recreation import (
    build_recreation_statements,
    find_tables_needing_recreation,
)
from src.schema_migration.generate.reverse import reverse_table_diffs
from src.schema_migration.identifiers import TableKey
from src.schema_migration.models import ColumnInfo, IndexInfo, TriggerInfo
from src.schema_migration.sql import (
    has_captured_sql,
    join_statements,
    sql_add_column,
    sql_create_index,
    sql_create_table,
    sql_create_trigger,
    sql_drop_index,
    sql_drop_table,
    sql_drop_trigger,
    sql_drop_view,
)

# ---------- request / response ----------


@dataclass(frozen=True)
class GenerateMigrationSQLRequest:
    """What to generate: forward (source -> target) unless `reverse`."""

    comparison_result: SchemaComparisonResult
    reverse: bool = False
    include_drop_statements: bool = False


@dataclass(frozen=True)
class MigrationSQL:
    """Successful generation. `sql` is `statements` joined into one script."""

    success: ClassVar[bool] = True

    sql: str
    statements: tuple[str, ...]
    warnings: tuple[str, ...]


@dataclass(frozen=True)
class MigrationFailure:
    """Generation failed; no statements are returned."""

    success: ClassVar[bool] = False

    error: str


GenerateMigrationSQLResponse: TypeAlias = MigrationSQL | MigrationFailure


@dataclass(frozen=True)
class PhaseOutput:
    """Statements and warnings contributed by one phase."""

    statements: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()


# ---------- public API ----------


class MigrationGenerator:
    """Turn a `SchemaComparisonResult` into an ordered list of DDL statements."""

    def __init__(self, recreation_suffix: str = settings.RECREATION_TABLE_SUFFIX) -> None:
        self.recreation_suffix = recreation_suffix

    def generate_migration_sql(
        self, request: GenerateMigrationSQLRequest
    ) -> GenerateMigrationSQLResponse:
        """Generate the migration; any exception becomes a `MigrationFailure`."""
        try:
            migration = self._generate(request)
        except Exception as exc:
            LOGGER.error("Migration SQL generation failed: %s", exc)
            return MigrationFailure(error=str(exc) or type(exc).__name__)

        LOGGER.info(
            "Migration generated: statements=%d, warnings=%d, reverse=%s",
            len(migration.statements),
            len(migration.warnings),
            request.reverse,
        )
        for warning in migration.warnings:
            LOGGER.warning("%s", warning)
        return migration

    def _generate(self, request: GenerateMigrationSQLRequest) -> MigrationSQL:
        table_diffs: Sequence[TableDiff] = request.comparison_result.table_diffs
        if request.reverse:
            table_diffs = reverse_table_diffs(table_diffs)
        include_drops = request.include_drop_statements

        recreated = find_tables_needing_recreation(table_diffs, include_drops)
        replaced = find_replaced_relations(table_diffs)
        rebuilt = recreated | replaced

        outputs = (
            drop_triggers(table_diffs, include_drops),
            recreation_warnings(table_diffs, recreated),
            drop_indexes(table_diffs, rebuilt, include_drops),
            drop_tables(table_diffs, replaced, include_drops),
            alter_tables(table_diffs, rebuilt),
            recreate_tables(table_diffs, recreated, include_drops, self.recreation_suffix),
            create_tables(table_diffs, replaced),
            create_indexes(table_diffs, rebuilt),
            create_triggers(table_diffs, rebuilt),
        )
        statements = tuple(s for output in outputs for s in output.statements)
        warnings = tuple(w for output in outputs for w in output.warnings)
        return MigrationSQL(sql=join_statements(statements), statements=statements, warnings=warnings)


def find_replaced_relations(table_diffs: Iterable[TableDiff]) -> frozenset[TableKey]:
    """Modified relations involving a view are dropped and created again, never altered."""
    return frozenset(
        table_diff.key
        for table_diff in table_diffs
        if isinstance(table_diff, TableModified)
        and (table_diff.source.is_view or table_diff.target.is_view)
    )


# ---------- phases: drops ----------


def drop_triggers(table_diffs: Iterable[TableDiff], include_drops: bool) -> PhaseOutput:
    statements: list[str] = []
    for table_diff in table_diffs:
        if isinstance(table_diff, TableRemoved) and include_drops:
            statements.extend(
                sql_drop_trigger(table_diff.schema, trigger.name)
                for trigger in table_diff.source.triggers
            )
        elif isinstance(table_diff, TableModified):
            for diff in table_diff.trigger_diffs:
                if diff.diff_type == DiffType.MODIFIED or (
                    diff.diff_type == DiffType.REMOVED and include_drops
                ):
                    statements.append(sql_drop_trigger(table_diff.schema, diff.source.name))
    return PhaseOutput(statements=tuple(statements))


def recreation_warnings(
    table_diffs: Iterable[TableDiff], recreated: frozenset[TableKey]
) -> PhaseOutput:
    warnings = tuple(
        f'Table "{table_diff.name}" requires recreation to apply changes (SQLite limitation). '
        "This involves creating a temporary table, copying data, and recreating the table."
        for table_diff in table_diffs
        if table_diff.key in recreated
    )
    return PhaseOutput(warnings=warnings)


def drop_indexes(
    table_diffs: Iterable[TableDiff], rebuilt: frozenset[TableKey], include_drops: bool
) -> PhaseOutput:
    """Indexes of rebuilt tables go away with the table and are not dropped here."""
    statements: list[str] = []
    for table_diff in table_diffs:
        if isinstance(table_diff, TableRemoved) and include_drops:
            statements.extend(
                sql_drop_index(table_diff.schema, index.name)
                for index in table_diff.source.indexes
            )
        elif isinstance(table_diff, TableModified) and table_diff.key not in rebuilt:
            for diff in table_diff.index_diffs:
                if diff.diff_type == DiffType.MODIFIED or (
                    diff.diff_type == DiffType.REMOVED and include_drops
                ):
                    statements.append(sql_drop_index(table_diff.schema, diff.source.name))
    return PhaseOutput(statements=tuple(statements))


def drop_tables(
    table_diffs: Iterable[TableDiff], replaced: frozenset[TableKey], include_drops: bool
) -> PhaseOutput:
    """Drop removed relations (flag required) and relations that are about to be replaced."""
    statements: list[str] = []
    warnings: list[str] = []
    for table_diff in table_diffs:
        removed = isinstance(table_diff, TableRemoved) and include_drops
        if not removed and table_diff.key not in replaced:
            continue
        relation = table_diff.source
        if relation.is_view:
            statements.append(sql_drop_view(table_diff.schema, relation.name))
            continue
        statements.append(sql_drop_table(table_diff.schema, relation.name))
        warnings.append(
            f'Dropping table "{relation.name}" will permanently delete all data. '
            "Make sure to backup data before running this migration."
        )
    return PhaseOutput(statements=tuple(statements), warnings=tuple(warnings))


# ---------- phases: in-place changes ----------


def alter_tables(table_diffs: Iterable[TableDiff], rebuilt: frozenset[TableKey]) -> PhaseOutput:
    """ADD COLUMN for added columns; anything else is reported, not applied."""
    statements: list[str] = []
    warnings: list[str] = []
    for table_diff in table_diffs:
        if not isinstance(table_diff, TableModified) or table_diff.key in rebuilt:
            continue
        for diff in table_diff.column_diffs:
            if diff.diff_type == DiffType.ADDED:
                statements.append(sql_add_column(table_diff.schema, table_diff.name, diff.target))
                warnings.extend(_add_column_warnings(table_diff.name, diff.target))
            elif diff.diff_type == DiffType.REMOVED:
                warnings.append(
                    f'Cannot drop column "{diff.key}" from table "{table_diff.name}" - '
                    "SQLite does not support ALTER TABLE DROP COLUMN. Table recreation required "
                    "(enable drop statements to rebuild the table)."
                )
            elif diff.diff_type == DiffType.MODIFIED:
                warnings.append(
                    f'Cannot modify column "{diff.key}" in table "{table_diff.name}" - '
                    "SQLite does not support ALTER TABLE MODIFY COLUMN. Table recreation required."
                )
        for diff in table_diff.foreign_key_diffs:
            if diff.diff_type == DiffType.ADDED:
                warnings.append(
                    f'Cannot add foreign key on column "{diff.key}" of table "{table_diff.name}" - '
                    "SQLite cannot add a constraint to an existing table. Table recreation required."
                )
    return PhaseOutput(statements=tuple(statements), warnings=tuple(warnings))


def _add_column_warnings(table_name: str, column: ColumnInfo) -> list[str]:
    """Columns SQLite refuses to add with ALTER TABLE ADD COLUMN."""
    warnings: list[str] = []
    if column.is_primary_key:
        warnings.append(
            f'Column "{column.name}" added to table "{table_name}" is a primary key column; '
            "SQLite cannot add PRIMARY KEY columns with ALTER TABLE."
        )
    if not column.nullable and column.default_value is None:
        warnings.append(
            f'Column "{column.name}" added to table "{table_name}" is NOT NULL without a '
            "default; SQLite rejects ALTER TABLE ADD COLUMN for it."
        )
    return warnings


def recreate_tables(
    table_diffs: Iterable[TableDiff],
    recreated: frozenset[TableKey],
    include_drops: bool,
    suffix: str = settings.RECREATION_TABLE_SUFFIX,
) -> PhaseOutput:
    statements: list[str] = []
    warnings: list[str] = []
    for table_diff in table_diffs:
        if table_diff.key not in recreated or not isinstance(table_diff, TableModified):
            continue
        statements.extend(build_recreation_statements(table_diff, suffix))
        if include_drops:
            continue
        for diff in (*table_diff.index_diffs, *table_diff.trigger_diffs):
            if diff.diff_type == DiffType.REMOVED:
                warnings.append(
                    f'"{diff.key}" on table "{table_diff.name}" is dropped together with the '
                    "old table during recreation."
                )
    return PhaseOutput(statements=tuple(statements), warnings=tuple(warnings))


# ---------- phases: creates ----------


def create_tables(table_diffs: Iterable[TableDiff], replaced: frozenset[TableKey]) -> PhaseOutput:
    """CREATE TABLE for added tables; captured CREATE VIEW for views."""
    statements: list[str] = []
    warnings: list[str] = []
    for table_diff in table_diffs:
        if not isinstance(table_diff, TableAdded) and table_diff.key not in replaced:
            continue
        relation = table_diff.target
        if not relation.is_view:
            statements.append(sql_create_table(relation))
        elif has_captured_sql(relation.sql):
            statements.append(relation.sql)
        else:
            warnings.append(f'View "{relation.name}" has no captured SQL and cannot be created.')
    return PhaseOutput(statements=tuple(statements), warnings=tuple(warnings))


def create_indexes(table_diffs: Iterable[TableDiff], rebuilt: frozenset[TableKey]) -> PhaseOutput:
    statements: list[str] = []
    for table_diff in table_diffs:
        for index in _indexes_to_create(table_diff, rebuilt):
            statements.append(sql_create_index(table_diff.schema, table_diff.name, index))
    return PhaseOutput(statements=tuple(statements))


def create_triggers(table_diffs: Iterable[TableDiff], rebuilt: frozenset[TableKey]) -> PhaseOutput:
    statements: list[str] = []
    warnings: list[str] = []
    for table_diff in table_diffs:
        for trigger in _triggers_to_create(table_diff, rebuilt):
            statements.append(sql_create_trigger(table_diff.schema, trigger))
            if not has_captured_sql(trigger.sql):
                warnings.append(
                    f'Trigger "{trigger.name}" has no captured SQL; emitted a placeholder '
                    "body that must be completed by hand."
                )
    return PhaseOutput(statements=tuple(statements), warnings=tuple(warnings))


def _indexes_to_create(
    table_diff: TableDiff, rebuilt: frozenset[TableKey]
) -> tuple[IndexInfo, ...]:
    if isinstance(table_diff, TableAdded):
        return table_diff.target.indexes
    if isinstance(table_diff, TableModified):
        if table_diff.key in rebuilt:
            return table_diff.target.indexes
        return tuple(
            diff.target
            for diff in table_diff.index_diffs
            if diff.diff_type in (DiffType.ADDED, DiffType.MODIFIED)
        )
    return ()


def _triggers_to_create(
    table_diff: TableDiff, rebuilt: frozenset[TableKey]
) -> tuple[TriggerInfo, ...]:
    if isinstance(table_diff, TableAdded):
        return table_diff.target.triggers
    if isinstance(table_diff, TableModified):
        if table_diff.key in rebuilt:
            return table_diff.target.triggers
        return tuple(
            diff.target
            for diff in table_diff.trigger_diffs
            if diff.diff_type in (DiffType.ADDED, DiffType.MODIFIED)
        )
    return ()

