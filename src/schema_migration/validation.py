"""
Fail-fast checks for schema snapshots handed to the comparator.

Malformed snapshots are a caller contract violation, not a recoverable runtime
condition: the first problem found raises `InvalidSchemaError`.

Checked
-------
- Tables, columns, indexes and triggers have non-empty names.
- Column names are unique within a table (they are the column identity key).
- A column carries at most one foreign key (foreign keys are keyed by column).
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable, Sequence

from src.schema_migration.models import SchemaInfo, TableInfo


class InvalidSchemaError(ValueError):
    """Raised when a schema snapshot violates the input contract."""


def validate_schemas(schemas: Sequence[SchemaInfo]) -> None:
    """Validate every table and view of every schema; raise on the first violation."""
    if schemas is None:
        raise InvalidSchemaError("Schema list must not be None.")
    for schema in schemas:
        for table in schema.relations():
            validate_table(table)


def validate_table(table: TableInfo) -> None:
    if not table.name:
        raise InvalidSchemaError("Table name must not be empty.")

    where = f"table {table.key!r}"
    _require_names(where, "column", (c.name for c in table.columns))
    _require_names(where, "index", (i.name for i in table.indexes))
    _require_names(where, "trigger", (t.name for t in table.triggers))

    duplicate_columns = _duplicates(c.name for c in table.columns)
    if duplicate_columns:
        raise InvalidSchemaError(
            f"Duplicate column names in {where}: {', '.join(duplicate_columns)}"
        )

    duplicate_fk_columns = _duplicates(fk.column for fk in table.foreign_keys)
    if duplicate_fk_columns:
        raise InvalidSchemaError(
            f"More than one foreign key per column in {where}: "
            f"{', '.join(duplicate_fk_columns)}"
        )


def _require_names(where: str, kind: str, names: Iterable[str]) -> None:
    if any(not name for name in names):
        raise InvalidSchemaError(f"Every {kind} in {where} must have a name.")


def _duplicates(names: Iterable[str]) -> list[str]:
    return [name for name, count in Counter(names).items() if count > 1]
