"""
Snapshot loading and report serialization.

Snapshots use the adapter's camelCase document shape and may be written as
YAML or JSON (both parsed with `yaml.safe_load`). Accepted roots:

- a list of schema objects
- a single schema object (has `tables` or `views`)
- `{"schemas": [...]}`

Reports (`comparison_to_dict`, `migration_to_dict`) mirror that shape so
collaborators can render them without importing these models.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml

from src.enums import TableType, TriggerEvent, TriggerTiming
from src.schema_migration.diffs import (
    EntityDiff,
    FieldChange,
    SchemaComparisonResult,
    TableAdded,
    TableDiff,
    TableRemoved,
)
from src.schema_migration.generate.generator import GenerateMigrationSQLResponse
from src.schema_migration.identifiers import DEFAULT_SCHEMA
from src.schema_migration.models import (
    ColumnInfo,
    ForeignKeyInfo,
    IndexInfo,
    SchemaInfo,
    TableInfo,
    TriggerInfo,
)


class SnapshotFormatError(ValueError):
    """Raised when a snapshot document does not have a recognised shape."""


# ---------- loading ----------


def load_schemas(path: str | Path) -> tuple[SchemaInfo, ...]:
    """Read a YAML/JSON snapshot file into schema models."""
    try:
        document = yaml.safe_load(Path(path).read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise SnapshotFormatError(f"Could not parse snapshot {path}: {exc}") from exc
    return schemas_from_document(document)


def schemas_from_document(document: Any) -> tuple[SchemaInfo, ...]:
    if isinstance(document, list):
        return tuple(schema_from_mapping(item) for item in document)
    if isinstance(document, Mapping):
        if "schemas" in document:
            return schemas_from_document(_require_list(document["schemas"], "schemas"))
        if "tables" in document or "views" in document:
            return (schema_from_mapping(document),)
    raise SnapshotFormatError(
        "Snapshot must be a list of schemas, a schema object or {'schemas': [...]}."
    )


def schema_from_mapping(data: Mapping[str, Any]) -> SchemaInfo:
    """Build a `SchemaInfo`; tables and views inherit the schema name when they omit one."""
    if not isinstance(data, Mapping):
        raise SnapshotFormatError(f"Schema entry must be a mapping, got {type(data).__name__}.")
    name = data.get("name") or DEFAULT_SCHEMA
    tables = _require_list(data.get("tables", []), "tables")
    views = _require_list(data.get("views", []), "views")
    return SchemaInfo(
        name=name,
        tables=tuple(table_from_mapping(t, name, TableType.TABLE) for t in tables),
        views=tuple(table_from_mapping(v, name, TableType.VIEW) for v in views),
    )


def table_from_mapping(
    data: Mapping[str, Any], schema: str = DEFAULT_SCHEMA, kind: TableType = TableType.TABLE
) -> TableInfo:
    if not isinstance(data, Mapping) or "name" not in data:
        raise SnapshotFormatError("Every table and view needs a 'name'.")
    name = data["name"]
    try:
        return _build_table(data, name, schema, kind)
    except KeyError as exc:
        raise SnapshotFormatError(f"Missing field {exc} in relation {name!r}.") from exc


def _build_table(
    data: Mapping[str, Any], name: str, schema: str, kind: TableType
) -> TableInfo:
    return TableInfo(
        name=name,
        schema=data.get("schema") or schema,
        type=TableType(data.get("type", kind)),
        columns=tuple(
            ColumnInfo(
                name=column["name"],
                type=column.get("type", ""),
                nullable=column.get("nullable", True),
                default_value=_optional_str(column.get("defaultValue")),
                is_primary_key=column.get("isPrimaryKey", False),
            )
            for column in data.get("columns", [])
        ),
        primary_key=tuple(data.get("primaryKey", [])),
        foreign_keys=tuple(
            ForeignKeyInfo(
                column=fk["column"],
                referenced_table=fk["referencedTable"],
                referenced_column=fk["referencedColumn"],
                on_delete=fk.get("onDelete"),
                on_update=fk.get("onUpdate"),
            )
            for fk in data.get("foreignKeys", [])
        ),
        indexes=tuple(
            IndexInfo(
                name=index["name"],
                columns=tuple(index.get("columns", [])),
                is_unique=index.get("isUnique", False),
                sql=index.get("sql") or "",
            )
            for index in data.get("indexes", [])
        ),
        triggers=tuple(
            TriggerInfo(
                name=trigger["name"],
                table_name=trigger.get("tableName", name),
                timing=TriggerTiming(trigger["timing"]),
                event=TriggerEvent(trigger["event"]),
                sql=trigger.get("sql") or "",
            )
            for trigger in data.get("triggers", [])
        ),
        row_count=data.get("rowCount"),
        sql=data.get("sql") or "",
    )


def _require_list(value: Any, field_name: str) -> list[Any]:
    if not isinstance(value, list):
        raise SnapshotFormatError(f"'{field_name}' must be a list.")
    return value


def _optional_str(value: Any) -> str | None:
    """Defaults are kept as SQL text; YAML scalars such as 0 or true are stringified."""
    if value is None:
        return None
    return str(value)


# ---------- serialization ----------


def comparison_to_dict(result: SchemaComparisonResult) -> dict[str, Any]:
    """camelCase report of a comparison, JSON-serializable."""
    return {
        "sourceId": result.source.id,
        "sourceName": result.source.name,
        "sourceType": str(result.source.type),
        "targetId": result.target.id,
        "targetName": result.target.name,
        "targetType": str(result.target.type),
        "comparedAt": result.compared_at.isoformat(),
        "tableDiffs": [table_diff_to_dict(table_diff) for table_diff in result.table_diffs],
        "summary": _to_camel_dict(result.summary),
    }


def table_diff_to_dict(table_diff: TableDiff) -> dict[str, Any]:
    data: dict[str, Any] = {
        "name": table_diff.name,
        "schema": table_diff.schema,
        "diffType": str(table_diff.diff_type),
        "source": _to_camel_dict(table_diff.source),
        "target": _to_camel_dict(table_diff.target),
    }
    if isinstance(table_diff, (TableAdded, TableRemoved)):
        return data

    data["columnDiffs"] = [_entity_diff_to_dict(d, "name") for d in table_diff.column_diffs]
    data["indexDiffs"] = [_entity_diff_to_dict(d, "name") for d in table_diff.index_diffs]
    data["foreignKeyDiffs"] = [
        _entity_diff_to_dict(d, "column") for d in table_diff.foreign_key_diffs
    ]
    data["triggerDiffs"] = [_entity_diff_to_dict(d, "name") for d in table_diff.trigger_diffs]
    if table_diff.primary_key_change is not None:
        data["primaryKeyChanges"] = _change_to_dict(table_diff.primary_key_change)
    return data


def migration_to_dict(response: GenerateMigrationSQLResponse) -> dict[str, Any]:
    """camelCase report of a generation response."""
    if not response.success:
        return {"success": False, "error": response.error}
    return {
        "success": True,
        "sql": response.sql,
        "statements": list(response.statements),
        "warnings": list(response.warnings),
    }


def _entity_diff_to_dict(diff: EntityDiff, key_field: str) -> dict[str, Any]:
    data: dict[str, Any] = {
        key_field: diff.key,
        "diffType": str(diff.diff_type),
        "source": _to_camel_dict(diff.source),
        "target": _to_camel_dict(diff.target),
    }
    if diff.changes:
        data["changes"] = {
            _camel(field_name): _change_to_dict(change)
            for field_name, change in diff.changes.items()
        }
    return data


def _change_to_dict(change: FieldChange) -> dict[str, Any]:
    return {"from": _plain(change.from_), "to": _plain(change.to)}


def _to_camel_dict(model: Any) -> dict[str, Any] | None:
    if model is None:
        return None
    return {
        _camel(field.name): _plain(getattr(model, field.name))
        for field in dataclasses.fields(model)
    }


def _plain(value: Any) -> Any:
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return _to_camel_dict(value)
    if isinstance(value, (list, tuple)):
        return [_plain(item) for item in value]
    if isinstance(value, str):
        return str(value)
    return value


def _camel(name: str) -> str:
    """snake_case -> camelCase ('default_value' -> 'defaultValue')."""
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)
