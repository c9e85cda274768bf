"""
Table recreation for changes the dialect cannot apply in place.

SQLite offers `ADD COLUMN` and whole-table rebuilds only. Dropping or changing
a column, changing the primary key, or removing/changing a foreign key is done
by rebuilding the table:

    1. CREATE TABLE <table>_new (...)            -- desired (target) structure
    2. INSERT INTO <table>_new (common) SELECT common FROM <table>
    3. DROP TABLE <table>
    4. ALTER TABLE <table>_new RENAME TO <table>

Step 2 is omitted when the two sides share no column names.

Executor contract: the statements of one sequence must run inside a single
transaction (or savepoint) and must never be split or reordered; partial
execution loses data. This module does not wrap them.
"""

from __future__ import annotations

from collections.abc import Iterable

from src import settings
from src.enums import DiffType
from src.schema_migration.diffs import TableDiff, TableModified
from src.schema_migration.identifiers import TableKey, build_recreation_table_name
from src.schema_migration.models import TableInfo
from src.schema_migration.sql import (
    sql_copy_rows,
    sql_create_table,
    sql_drop_table,
    sql_rename_table,
)


def needs_recreation(table_diff: TableModified, include_drop_statements: bool) -> bool:
    """True when the table's changes cannot be expressed with ADD COLUMN alone."""
    column_types = {diff.diff_type for diff in table_diff.column_diffs}
    foreign_key_types = {diff.diff_type for diff in table_diff.foreign_key_diffs}

    if include_drop_statements and DiffType.REMOVED in column_types:
        return True
    if DiffType.MODIFIED in column_types:
        return True
    if table_diff.primary_key_change is not None:
        return True
    return bool(foreign_key_types & {DiffType.REMOVED, DiffType.MODIFIED})


def find_tables_needing_recreation(
    table_diffs: Iterable[TableDiff], include_drop_statements: bool
) -> frozenset[TableKey]:
    """Keys of modified tables (never views) that must be rebuilt."""
    return frozenset(
        table_diff.key
        for table_diff in table_diffs
        if isinstance(table_diff, TableModified)
        and not (table_diff.source.is_view or table_diff.target.is_view)
        and needs_recreation(table_diff, include_drop_statements)
    )


def common_column_names(source: TableInfo, target: TableInfo) -> tuple[str, ...]:
    """Column names present on both sides, in target order."""
    source_names = set(source.column_names)
    return tuple(name for name in target.column_names if name in source_names)


def build_recreation_statements(
    table_diff: TableModified, suffix: str = settings.RECREATION_TABLE_SUFFIX
) -> tuple[str, ...]:
    """The create-copy-drop-rename sequence rebuilding a table into its target shape."""
    table_name = table_diff.name
    schema = table_diff.schema
    temporary_name = build_recreation_table_name(table_name, suffix)

    statements = [sql_create_table(table_diff.target, table_name=temporary_name)]
    copy_rows = sql_copy_rows(
        schema,
        from_table=table_name,
        to_table=temporary_name,
        column_names=common_column_names(table_diff.source, table_diff.target),
    )
    if copy_rows is not None:
        statements.append(copy_rows)
    statements.append(sql_drop_table(schema, table_name))
    statements.append(sql_rename_table(schema, temporary_name, table_name))
    return tuple(statements)
