"""
Identifier utilities for the schema migration engine.

This module defines:
- The table identity key used to match relations across two snapshots.
- Helpers to format (optionally schema-qualified) object names for DDL.
- The builder for the temporary table name used during table recreation.

Conventions:
- Verbs: build_*, format_*.
- Names are emitted unquoted, exactly as captured from the adapter.
- The default schema ('main') is never written into DDL.
"""

from __future__ import annotations

from typing import TypeAlias

from src import settings

DEFAULT_SCHEMA = "main"

TableKey: TypeAlias = str


def build_table_key(schema: str | None, name: str) -> TableKey:
    """Identity key 'schema.name'; a missing schema counts as the default schema."""
    return f"{schema or DEFAULT_SCHEMA}.{name}"


def format_qualified_name(schema: str | None, name: str) -> str:
    """
    Return `name`, prefixed with `schema.` only when the schema is set and not the default.

    Examples:
        format_qualified_name("main", "users")  -> "users"
        format_qualified_name("temp", "users")  -> "temp.users"
        format_qualified_name(None, "users")    -> "users"
    """
    if schema and schema != DEFAULT_SCHEMA:
        return f"{schema}.{name}"
    return name


def build_recreation_table_name(
    table_name: str, suffix: str = settings.RECREATION_TABLE_SUFFIX
) -> str:
    """Name of the temporary table a recreated table is rebuilt into."""
    if not suffix:
        raise ValueError("Recreation table suffix must not be empty.")
    return f"{table_name}{suffix}"
