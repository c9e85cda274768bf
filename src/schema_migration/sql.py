"""
SQL string builders for the recreate-table dialect (SQLite).

All functions return fully-formed statements without a trailing semicolon.
Object names are emitted as captured and schema-qualified only outside the
default schema (see `format_qualified_name`).

Design guarantees
- Deterministic, side-effect free string generation.
- Captured index/trigger/view DDL is preferred verbatim when present.
- No business rules: the generator decides which statements to emit.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from src.schema_migration.identifiers import format_qualified_name
from src.schema_migration.models import (
    ColumnInfo,
    ForeignKeyInfo,
    IndexInfo,
    TableInfo,
    TriggerInfo,
)

STATEMENT_SEPARATOR = ";\n\n"
PLACEHOLDER_TRIGGER_BODY = "BEGIN SELECT NULL; END"


def has_captured_sql(sql: str | None) -> bool:
    """True when original DDL text was captured (non-blank)."""
    return bool(sql and sql.strip())


# ---------- columns & constraints ----------


def sql_column_definition(column: ColumnInfo, inline_primary_key: bool = False) -> str:
    """`name type [PRIMARY KEY] [NOT NULL] [DEFAULT value]`."""
    parts = [column.name, column.type]
    if inline_primary_key:
        parts.append("PRIMARY KEY")
    if not column.nullable:
        parts.append("NOT NULL")
    if column.default_value is not None:
        parts.append(f"DEFAULT {column.default_value}")
    return " ".join(part for part in parts if part)


def sql_foreign_key_constraint(foreign_key: ForeignKeyInfo) -> str:
    """FOREIGN KEY (col) REFERENCES table(col) [ON DELETE ...] [ON UPDATE ...]."""
    on_delete = f" ON DELETE {foreign_key.on_delete}" if foreign_key.on_delete else ""
    on_update = f" ON UPDATE {foreign_key.on_update}" if foreign_key.on_update else ""
    return (
        f"FOREIGN KEY ({foreign_key.column}) "
        f"REFERENCES {foreign_key.referenced_table}({foreign_key.referenced_column})"
        f"{on_delete}{on_update}"
    )


def _is_inline_primary_key(table: TableInfo, column: ColumnInfo) -> bool:
    """Single-column keys are declared inline; composite keys never are."""
    if table.has_composite_primary_key:
        return False
    return column.is_primary_key or table.primary_key == (column.name,)


# ---------- tables ----------


def sql_create_table(table: TableInfo, table_name: str | None = None) -> str:
    """CREATE TABLE from the table's columns, primary key and foreign keys.

    `table_name` overrides the created name (used for the recreation copy).
    """
    full = format_qualified_name(table.schema, table_name or table.name)
    definitions = [
        sql_column_definition(column, _is_inline_primary_key(table, column))
        for column in table.columns
    ]
    if table.has_composite_primary_key:
        definitions.append(f"PRIMARY KEY ({', '.join(table.primary_key)})")
    definitions.extend(sql_foreign_key_constraint(fk) for fk in table.foreign_keys)
    body = ",\n  ".join(definitions)
    return f"CREATE TABLE {full} (\n  {body}\n)"


def sql_drop_table(schema: str | None, table_name: str) -> str:
    return f"DROP TABLE {format_qualified_name(schema, table_name)}"


def sql_add_column(schema: str | None, table_name: str, column: ColumnInfo) -> str:
    """ALTER TABLE ... ADD COLUMN <definition>."""
    definition = sql_column_definition(column, inline_primary_key=column.is_primary_key)
    return f"ALTER TABLE {format_qualified_name(schema, table_name)} ADD COLUMN {definition}"


def sql_copy_rows(
    schema: str | None, from_table: str, to_table: str, column_names: Sequence[str]
) -> str | None:
    """INSERT INTO to (cols) SELECT cols FROM from. Returns None if no columns."""
    if not column_names:
        return None
    columns = ", ".join(column_names)
    return (
        f"INSERT INTO {format_qualified_name(schema, to_table)} ({columns}) "
        f"SELECT {columns} FROM {format_qualified_name(schema, from_table)}"
    )


def sql_rename_table(schema: str | None, table_name: str, new_name: str) -> str:
    """ALTER TABLE ... RENAME TO ...; the new name stays in the same schema."""
    return f"ALTER TABLE {format_qualified_name(schema, table_name)} RENAME TO {new_name}"


# ---------- views ----------


def sql_drop_view(schema: str | None, view_name: str) -> str:
    return f"DROP VIEW {format_qualified_name(schema, view_name)}"


# ---------- indexes ----------


def sql_create_index(schema: str | None, table_name: str, index: IndexInfo) -> str:
    """Captured DDL verbatim, else CREATE [UNIQUE] INDEX ... ON table (cols)."""
    if has_captured_sql(index.sql):
        return index.sql
    if not index.columns:
        raise ValueError(f"Index {index.name!r} requires at least one column.")
    unique = "UNIQUE " if index.is_unique else ""
    return (
        f"CREATE {unique}INDEX {format_qualified_name(schema, index.name)} "
        f"ON {table_name} ({', '.join(index.columns)})"
    )


def sql_drop_index(schema: str | None, index_name: str) -> str:
    return f"DROP INDEX {format_qualified_name(schema, index_name)}"


# ---------- triggers ----------


def sql_create_trigger(schema: str | None, trigger: TriggerInfo) -> str:
    """Captured DDL verbatim, else a header with an empty placeholder body."""
    if has_captured_sql(trigger.sql):
        return trigger.sql
    return (
        f"CREATE TRIGGER {format_qualified_name(schema, trigger.name)} "
        f"{trigger.timing} {trigger.event} ON {trigger.table_name} "
        f"{PLACEHOLDER_TRIGGER_BODY}"
    )


def sql_drop_trigger(schema: str | None, trigger_name: str) -> str:
    return f"DROP TRIGGER {format_qualified_name(schema, trigger_name)}"


# ---------- scripts ----------


def join_statements(statements: Iterable[str]) -> str:
    """Join with ';\\n\\n' and terminate with ';'. Empty input gives ''."""
    statements = list(statements)
    if not statements:
        return ""
    return STATEMENT_SEPARATOR.join(statements) + ";"
