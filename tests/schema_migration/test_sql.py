import pytest

import src.schema_migration.sql as sql
from tests.factories import col, fk, index, pk_col, table, trigger


# ---- columns ----

def test_column_definition_full():
    column = col("age", "INTEGER", nullable=False, default_value="0")
    assert sql.sql_column_definition(column) == "age INTEGER NOT NULL DEFAULT 0"


def test_column_definition_inline_primary_key():
    assert sql.sql_column_definition(pk_col(), inline_primary_key=True) == (
        "id INTEGER PRIMARY KEY NOT NULL"
    )


def test_foreign_key_constraint_with_actions():
    out = sql.sql_foreign_key_constraint(fk("user_id", "users", on_delete="CASCADE", on_update="SET NULL"))
    assert out == "FOREIGN KEY (user_id) REFERENCES users(id) ON DELETE CASCADE ON UPDATE SET NULL"


# ---- tables ----

def test_create_table_with_single_column_key_and_foreign_key():
    t = table(
        "posts",
        pk_col(),
        col("user_id", "INTEGER"),
        foreign_keys=(fk("user_id", "users"),),
    )
    assert sql.sql_create_table(t) == (
        "CREATE TABLE posts (\n"
        "  id INTEGER PRIMARY KEY NOT NULL,\n"
        "  user_id INTEGER,\n"
        "  FOREIGN KEY (user_id) REFERENCES users(id)\n"
        ")"
    )


def test_create_table_composite_key_is_never_inline():
    t = table(
        "memberships",
        col("user_id", "INTEGER", is_primary_key=True),
        col("group_id", "INTEGER", is_primary_key=True),
    )
    out = sql.sql_create_table(t)
    assert "user_id INTEGER," in out
    assert "PRIMARY KEY (user_id, group_id)" in out
    assert out.count("PRIMARY KEY") == 1


def test_create_table_inline_key_from_primary_key_list():
    t = table("t", col("code"), primary_key=("code",))
    assert "code TEXT PRIMARY KEY" in sql.sql_create_table(t)


def test_create_table_name_override_and_schema():
    t = table("users", pk_col(), schema="aux")
    assert sql.sql_create_table(t, table_name="users_new").startswith("CREATE TABLE aux.users_new (")


def test_drop_table_and_rename():
    assert sql.sql_drop_table("main", "users") == "DROP TABLE users"
    assert sql.sql_rename_table("aux", "users_new", "users") == (
        "ALTER TABLE aux.users_new RENAME TO users"
    )


def test_add_column():
    assert sql.sql_add_column("main", "users", col("email", nullable=False, default_value="''")) == (
        "ALTER TABLE users ADD COLUMN email TEXT NOT NULL DEFAULT ''"
    )


def test_copy_rows_none_for_no_columns():
    assert sql.sql_copy_rows("main", "users", "users_new", ()) is None


def test_copy_rows_lists_columns_twice():
    assert sql.sql_copy_rows("main", "users", "users_new", ("id", "name")) == (
        "INSERT INTO users_new (id, name) SELECT id, name FROM users"
    )


# ---- indexes ----

def test_create_index_prefers_captured_sql():
    captured = "CREATE INDEX ix_email ON users (lower(email))"
    assert sql.sql_create_index("main", "users", index("ix_email", "email", sql=captured)) == captured


def test_create_index_synthesized_names_the_table():
    out = sql.sql_create_index("main", "users", index("ux_email", "email", "tenant", is_unique=True))
    assert out == "CREATE UNIQUE INDEX ux_email ON users (email, tenant)"


def test_create_index_without_columns_raises():
    with pytest.raises(ValueError):
        sql.sql_create_index("main", "users", index("ix_empty"))


def test_drop_index_is_schema_qualified():
    assert sql.sql_drop_index("aux", "ix") == "DROP INDEX aux.ix"
    assert sql.sql_drop_index("main", "ix") == "DROP INDEX ix"


# ---- triggers & views ----

def test_create_trigger_placeholder_body():
    out = sql.sql_create_trigger("main", trigger("trg_audit", "users"))
    assert out == "CREATE TRIGGER trg_audit AFTER INSERT ON users BEGIN SELECT NULL; END"


def test_create_trigger_prefers_captured_sql():
    captured = "CREATE TRIGGER trg AFTER DELETE ON users BEGIN DELETE FROM x; END"
    assert sql.sql_create_trigger("main", trigger("trg", "users", sql=captured)) == captured


def test_drop_trigger_and_view():
    assert sql.sql_drop_trigger("main", "trg") == "DROP TRIGGER trg"
    assert sql.sql_drop_view("aux", "v") == "DROP VIEW aux.v"


@pytest.mark.parametrize("value, expected", [(None, False), ("", False), ("  ", False), ("x", True)])
def test_has_captured_sql(value, expected):
    assert sql.has_captured_sql(value) is expected


# ---- scripts ----

def test_join_statements():
    assert sql.join_statements([]) == ""
    assert sql.join_statements(["A", "B"]) == "A;\n\nB;"
