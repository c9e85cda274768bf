from __future__ import annotations

import logging
from dataclasses import replace

import pytest

import src.schema_migration.generate.generator as gen_mod
from src.enums import TriggerEvent, TriggerTiming
from src.schema_migration.generate.generator import (
    GenerateMigrationSQLRequest,
    MigrationFailure,
    MigrationGenerator,
    MigrationSQL,
)
from tests.factories import col, compare, fk, index, pk_col, schema, table, trigger, view

# ---------- helpers ----------


def users(*extra, **kwargs):
    return table("users", pk_col(), col("name"), *extra, **kwargs)


def generate(source, target, reverse=False, include_drops=False, generator=None):
    request = GenerateMigrationSQLRequest(
        comparison_result=compare(source, target),
        reverse=reverse,
        include_drop_statements=include_drops,
    )
    response = (generator or MigrationGenerator()).generate_migration_sql(request)
    assert isinstance(response, MigrationSQL), response
    return response


def position(statements, prefix):
    return next(i for i, s in enumerate(statements) if s.startswith(prefix))


# ---------- scenarios ----------


def test_added_column_is_altered_in_place():
    out = generate(schema(users()), schema(users(col("email"))))
    assert out.success is True
    assert out.statements == ("ALTER TABLE users ADD COLUMN email TEXT",)
    assert out.sql == "ALTER TABLE users ADD COLUMN email TEXT;"
    assert out.warnings == ()


def test_dropped_column_with_drops_rebuilds_the_table():
    source = schema(users())
    target = schema(table("users", pk_col(), col("email")))
    out = generate(source, target, include_drops=True)
    assert out.statements == (
        "CREATE TABLE users_new (\n  id INTEGER PRIMARY KEY NOT NULL,\n  email TEXT\n)",
        "INSERT INTO users_new (id) SELECT id FROM users",
        "DROP TABLE users",
        "ALTER TABLE users_new RENAME TO users",
    )
    assert any("requires recreation" in w and '"users"' in w for w in out.warnings)


def test_added_table_is_created():
    out = generate(schema(users()), schema(users(), table("archive", pk_col())))
    assert out.statements == ("CREATE TABLE archive (\n  id INTEGER PRIMARY KEY NOT NULL\n)",)


def test_removed_table_without_drops_is_silent():
    out = generate(schema(users(), table("legacy", pk_col())), schema(users()))
    assert out.statements == ()
    assert out.warnings == ()
    assert out.sql == ""


def test_column_type_change_rebuilds_with_warning():
    source = schema(table("orders", pk_col(), col("status", "TEXT")))
    target = schema(table("orders", pk_col(), col("status", "INTEGER")))
    out = generate(source, target)
    assert out.statements[0].startswith("CREATE TABLE orders_new")
    assert "status INTEGER" in out.statements[0]
    assert out.statements[1] == "INSERT INTO orders_new (id, status) SELECT id, status FROM orders"
    assert len(out.statements) == 4
    assert any('"orders"' in w and "SQLite limitation" in w for w in out.warnings)


def test_reverse_of_added_table_drops_it():
    source = schema(users())
    target = schema(users(), table("products", pk_col()))
    out = generate(source, target, reverse=True, include_drops=True)
    assert out.statements == ("DROP TABLE products",)
    assert any("permanently delete" in w and '"products"' in w for w in out.warnings)


# ---------- drops & warnings ----------


def test_removed_column_without_drops_is_only_warned():
    out = generate(schema(users(col("legacy"))), schema(users()))
    assert out.statements == ()
    assert any('Cannot drop column "legacy"' in w for w in out.warnings)


def test_removed_table_drops_triggers_and_indexes_first():
    legacy = table(
        "legacy",
        pk_col(),
        col("x"),
        indexes=(index("ix_legacy", "x"),),
        triggers=(trigger("trg_legacy", "legacy"),),
    )
    out = generate(schema(legacy), schema(), include_drops=True)
    assert out.statements == ("DROP TRIGGER trg_legacy", "DROP INDEX ix_legacy", "DROP TABLE legacy")


def test_removed_index_is_dropped_only_with_flag():
    source = schema(users(indexes=(index("ix_name", "name"),)))
    target = schema(users())
    assert generate(source, target).statements == ()
    assert generate(source, target, include_drops=True).statements == ("DROP INDEX ix_name",)


def test_modified_index_is_dropped_then_recreated():
    source = schema(users(indexes=(index("ix_name", "name"),)))
    target = schema(users(indexes=(index("ix_name", "name", is_unique=True),)))
    out = generate(source, target)
    assert out.statements == ("DROP INDEX ix_name", "CREATE UNIQUE INDEX ix_name ON users (name)")


def test_modified_trigger_is_dropped_then_recreated():
    source = schema(users(triggers=(trigger("trg", "users", sql="CREATE TRIGGER trg A"),)))
    target = schema(users(triggers=(trigger("trg", "users", sql="CREATE TRIGGER trg B"),)))
    out = generate(source, target)
    assert out.statements == ("DROP TRIGGER trg", "CREATE TRIGGER trg B")


def test_added_column_warnings():
    target = schema(users(col("code", nullable=False)))
    out = generate(schema(users()), target)
    assert out.statements == ("ALTER TABLE users ADD COLUMN code TEXT NOT NULL",)
    assert any("NOT NULL without a default" in w for w in out.warnings)


# ---------- recreation keeps indexes and triggers ----------


def test_rebuilt_table_recreates_all_target_indexes_and_triggers():
    source = schema(
        users(
            col("age", "TEXT"),
            indexes=(index("ix_name", "name"), index("ix_old", "age")),
            triggers=(trigger("trg", "users", sql="CREATE TRIGGER trg AFTER INSERT ON users BEGIN END"),),
        )
    )
    target = schema(
        users(
            col("age", "INTEGER"),
            indexes=(index("ix_name", "name"),),
            triggers=(trigger("trg", "users", sql="CREATE TRIGGER trg AFTER INSERT ON users BEGIN END"),),
        )
    )
    out = generate(source, target)
    statements = out.statements
    assert "DROP INDEX ix_old" not in statements
    assert statements[-2:] == (
        "CREATE INDEX ix_name ON users (name)",
        "CREATE TRIGGER trg AFTER INSERT ON users BEGIN END",
    )
    assert position(statements, "ALTER TABLE users_new") < position(statements, "CREATE INDEX")
    assert any('"ix_old"' in w and "recreation" in w for w in out.warnings)


def test_foreign_key_removal_triggers_recreation():
    source = schema(table("posts", pk_col(), col("u", "INTEGER"), foreign_keys=(fk("u", "users"),)))
    target = schema(table("posts", pk_col(), col("u", "INTEGER")))
    out = generate(source, target)
    assert out.statements[0].startswith("CREATE TABLE posts_new")
    assert "FOREIGN KEY" not in out.statements[0]


# ---------- ordering ----------


def test_phases_are_emitted_in_dependency_order():
    source = schema(
        table("a", pk_col(), col("x"), indexes=(index("ix_a", "x"),), triggers=(trigger("trg_a", "a", sql="T1"),)),
        table("b", pk_col(), col("y", "TEXT")),
        table("c", pk_col()),
        table("gone", pk_col()),
    )
    target = schema(
        table("a", pk_col(), col("x"), indexes=(index("ix_a", "x", is_unique=True),), triggers=(trigger("trg_a", "a", sql="T2"),)),
        table("b", pk_col(), col("y", "INTEGER")),
        table("c", pk_col(), col("z")),
        table("fresh", pk_col()),
    )
    statements = generate(source, target, include_drops=True).statements
    order = [
        position(statements, "DROP TRIGGER trg_a"),
        position(statements, "DROP INDEX ix_a"),
        position(statements, "DROP TABLE gone"),
        position(statements, "ALTER TABLE c ADD COLUMN"),
        position(statements, "CREATE TABLE b_new"),
        position(statements, "CREATE TABLE fresh"),
        position(statements, "CREATE UNIQUE INDEX ix_a"),
        position(statements, "T2"),
    ]
    assert order == sorted(order)


def test_added_table_gets_its_indexes_and_triggers():
    archive = table(
        "archive",
        pk_col(),
        col("ts"),
        indexes=(index("ix_ts", "ts"),),
        triggers=(trigger("trg_archive", "archive", TriggerTiming.BEFORE, TriggerEvent.DELETE),),
    )
    out = generate(schema(), schema(archive))
    assert out.statements[0].startswith("CREATE TABLE archive")
    assert out.statements[1] == "CREATE INDEX ix_ts ON archive (ts)"
    assert out.statements[2] == "CREATE TRIGGER trg_archive BEFORE DELETE ON archive BEGIN SELECT NULL; END"
    assert any('"trg_archive"' in w and "placeholder" in w for w in out.warnings)


def test_non_default_schema_is_qualified():
    source = schema(table("users", pk_col(), schema="aux"), name="aux")
    target = schema(table("users", pk_col(), col("email"), schema="aux", indexes=(index("ix_email", "email"),)), name="aux")
    out = generate(source, target)
    assert out.statements == (
        "ALTER TABLE aux.users ADD COLUMN email TEXT",
        "CREATE INDEX aux.ix_email ON users (email)",
    )


# ---------- views ----------


def test_views_are_created_from_captured_sql_and_dropped_with_flag():
    v = view("v_users", sql="CREATE VIEW v_users AS SELECT * FROM users")
    assert generate(schema(users()), schema(users(), views=(v,))).statements == (v.sql,)
    assert generate(schema(users(), views=(v,)), schema(users()), include_drops=True).statements == (
        "DROP VIEW v_users",
    )


def test_view_without_sql_is_warned():
    out = generate(schema(), schema(views=(view("v"),)))
    assert out.statements == ()
    assert any('View "v"' in w for w in out.warnings)


def test_modified_view_is_replaced():
    before = view("v", sql="CREATE VIEW v AS SELECT 1 AS a", columns=(col("a"),))
    after = view("v", sql="CREATE VIEW v AS SELECT 1 AS a, 2 AS b", columns=(col("a"), col("b")))
    out = generate(schema(views=(before,)), schema(views=(after,)))
    assert out.statements == ("DROP VIEW v", after.sql)


# ---------- reverse & failure ----------


def test_reverse_undoes_an_added_column_with_recreation():
    out = generate(schema(users()), schema(users(col("email"))), reverse=True, include_drops=True)
    assert out.statements[0] == "CREATE TABLE users_new (\n  id INTEGER PRIMARY KEY NOT NULL,\n  name TEXT\n)"
    assert out.statements[1] == "INSERT INTO users_new (id, name) SELECT id, name FROM users"


def test_unchanged_comparison_generates_nothing():
    out = generate(schema(users()), schema(users()), include_drops=True)
    assert (out.statements, out.warnings, out.sql) == ((), (), "")


def test_malformed_diff_becomes_a_failure(caplog):
    comparison = compare(schema(), schema(table("t", pk_col(), indexes=(index("ix"),))))
    request = GenerateMigrationSQLRequest(comparison_result=comparison)
    with caplog.at_level(logging.ERROR, logger="schema-migration"):
        response = MigrationGenerator().generate_migration_sql(request)
    assert isinstance(response, MigrationFailure)
    assert response.success is False
    assert "ix" in response.error
    assert any("failed" in r.getMessage() for r in caplog.records)


def test_broken_table_diff_never_raises():
    comparison = compare(schema(), schema())
    broken = replace(comparison, table_diffs=(object(),))
    request = GenerateMigrationSQLRequest(comparison_result=broken, reverse=True)
    assert MigrationGenerator().generate_migration_sql(request).success is False


def test_warnings_are_logged(monkeypatch):
    logged: list[str] = []

    class FakeLogger:
        def info(self, msg, *args):
            pass

        def warning(self, msg, *args):
            logged.append(msg % args)

        def error(self, msg, *args):
            pass

    monkeypatch.setattr(gen_mod, "LOGGER", FakeLogger())
    out = generate(schema(users(col("legacy"))), schema(users()))
    assert logged == list(out.warnings)


def test_custom_recreation_suffix():
    source = schema(table("t", pk_col(), col("a")))
    target = schema(table("t", pk_col(), col("a", "INTEGER")))
    out = generate(source, target, generator=MigrationGenerator(recreation_suffix="_tmp"))
    assert out.statements[-1] == "ALTER TABLE t_tmp RENAME TO t"


@pytest.mark.parametrize("include_drops", [False, True])
def test_sql_is_statements_joined(include_drops):
    out = generate(schema(users(col("legacy"))), schema(users(col("email"))), include_drops=include_drops)
    assert out.sql == ";\n\n".join(out.statements) + ";"


def test_view_turned_table_is_replaced_not_rebuilt():
    before = view("v", sql="CREATE VIEW v AS SELECT 'x' AS a", columns=(col("a", "TEXT"),))
    after = table("v", col("a", "INTEGER"))
    out = generate(schema(views=(before,)), schema(after))
    assert out.statements == ("DROP VIEW v", "CREATE TABLE v (\n  a INTEGER\n)")
    assert not any("requires recreation" in w for w in out.warnings)


# ---------- foreign keys on surviving tables ----------


def test_foreign_key_added_to_existing_column_is_warned():
    source = schema(table("posts", pk_col(), col("u", "INTEGER")))
    target = schema(table("posts", pk_col(), col("u", "INTEGER"), foreign_keys=(fk("u", "users"),)))
    out = generate(source, target)
    assert out.statements == ()
    assert any('foreign key on column "u"' in w and '"posts"' in w for w in out.warnings)


def test_foreign_key_added_with_new_column_is_warned():
    source = schema(table("posts", pk_col()))
    target = schema(table("posts", pk_col(), col("u", "INTEGER"), foreign_keys=(fk("u", "users"),)))
    out = generate(source, target)
    assert out.statements == ("ALTER TABLE posts ADD COLUMN u INTEGER",)
    assert any('foreign key on column "u"' in w for w in out.warnings)
