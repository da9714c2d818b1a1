import pytest
from sqlalchemy import inspect

from adapters.sqla.catalog import SQLAlchemyCatalog
from uuidpk.config import UuidPolicy
from uuidpk.runner import IrreversibleMigration, Migration, MigrationRunner
from uuidpk.type_mapping import PrimaryKeyKind, classify_sql_type


def column_type(engine, table, column):
    with engine.connect() as conn:
        for c in SQLAlchemyCatalog(conn).columns(table):
            if c.name == column:
                return c.sql_type
    raise AssertionError(f"{table}.{column} not found")


class CreateUsers(Migration):
    version = "001"

    def up(self, schema):
        with schema.create_table("users", id="uuid") as t:
            t.string("name")

    def down(self, schema):
        schema.drop_table("users")


class CreatePosts(Migration):
    version = "002"

    def up(self, schema):
        with schema.create_table("posts") as t:
            t.string("title")
            t.references("user", null=False)

    def down(self, schema):
        schema.drop_table("posts")


def test_reference_to_uuid_table(engine, uuid_policy):
    result = MigrationRunner(engine, uuid_policy).run([CreateUsers(), CreatePosts()])
    assert result.applied == ["001 CreateUsers", "002 CreatePosts"]
    assert column_type(engine, "posts", "user_id") == "VARCHAR(36)"
    assert result.resolved == {"users": PrimaryKeyKind.UUID}


def test_reference_to_integer_table(engine, uuid_policy):
    class CreateLegacyItems(Migration):
        def up(self, schema):
            with schema.create_table("legacy_items", id="integer") as t:
                t.string("sku")

    class CreateOrders(Migration):
        def up(self, schema):
            with schema.create_table("orders") as t:
                t.references("legacy_item")

    MigrationRunner(engine, uuid_policy).run([CreateLegacyItems(), CreateOrders()])
    assert classify_sql_type(column_type(engine, "legacy_items", "id")) is PrimaryKeyKind.INTEGER
    assert classify_sql_type(column_type(engine, "orders", "legacy_item_id")) is PrimaryKeyKind.INTEGER


def test_polymorphic_reference_with_uuid_policy(engine, uuid_policy):
    class CreateComments(Migration):
        def up(self, schema):
            with schema.create_table("comments") as t:
                t.text("body")
                t.references("commentable", polymorphic=True)

    MigrationRunner(engine, uuid_policy).run([CreateComments()])
    assert column_type(engine, "comments", "commentable_id") == "VARCHAR(36)"
    assert column_type(engine, "comments", "commentable_type") == "VARCHAR(255)"
    # uuid policy also gives the table itself a uuid id
    assert column_type(engine, "comments", "id") == "VARCHAR(36)"


def test_polymorphic_reference_with_integer_policy(engine, integer_policy):
    class CreateComments(Migration):
        def up(self, schema):
            with schema.create_table("comments") as t:
                t.references("commentable", polymorphic=True)

    MigrationRunner(engine, integer_policy).run([CreateComments()])
    assert column_type(engine, "comments", "commentable_id") == "BIGINT"
    assert column_type(engine, "comments", "id") == "INTEGER"


def test_explicit_type_beats_uuid_target(engine, uuid_policy):
    class CreateCategoriesAndTags(Migration):
        def up(self, schema):
            with schema.create_table("categories", id="uuid") as t:
                t.string("title")
            with schema.create_table("tags") as t:
                t.references("category", type="string")

    MigrationRunner(engine, uuid_policy).run([CreateCategoriesAndTags()])
    assert column_type(engine, "tags", "category_id") == "VARCHAR(255)"


def test_add_reference_and_belongs_to_aliases(engine, uuid_policy):
    class AddRefs(Migration):
        def up(self, schema):
            with schema.create_table("base_models", id="integer") as t:
                t.string("description")
            schema.add_reference("base_models", "user")
            schema.add_belongs_to("base_models", "owner", to_table="users")
            with schema.create_table("memberships") as t:
                t.belongs_to("user")

    MigrationRunner(engine, uuid_policy).run([CreateUsers(), AddRefs()])
    assert column_type(engine, "base_models", "user_id") == "VARCHAR(36)"
    assert column_type(engine, "base_models", "owner_id") == "VARCHAR(36)"
    assert column_type(engine, "memberships", "user_id") == "VARCHAR(36)"


def test_missing_target_table_gets_default_type(engine, uuid_policy):
    class RefsNothing(Migration):
        def up(self, schema):
            with schema.create_table("orphans") as t:
                t.references("definitely_missing_table", null=False)

    MigrationRunner(engine, uuid_policy).run([RefsNothing()])
    assert column_type(engine, "orphans", "definitely_missing_table_id") == "BIGINT"


def test_cache_lives_for_one_run_only(engine, uuid_policy):
    class ForwardReference(Migration):
        def up(self, schema):
            with schema.create_table("gadgets") as t:
                t.references("widget")
            with schema.create_table("widgets", id="uuid") as t:
                t.string("name")
            # still the answer cached above, within this run
            with schema.create_table("gizmos") as t:
                t.references("widget")

    class LaterReference(Migration):
        def up(self, schema):
            with schema.create_table("sprockets") as t:
                t.references("widget")

    runner = MigrationRunner(engine, uuid_policy)
    first = runner.run([ForwardReference()])
    assert first.resolved["widgets"] is PrimaryKeyKind.UNKNOWN
    assert column_type(engine, "gizmos", "widget_id") == "BIGINT"

    second = runner.run([LaterReference()])
    assert second.resolved["widgets"] is PrimaryKeyKind.UUID
    assert column_type(engine, "sprockets", "widget_id") == "VARCHAR(36)"


def test_reference_indexes_and_foreign_keys(engine, uuid_policy):
    class WithFk(Migration):
        def up(self, schema):
            with schema.create_table("articles") as t:
                t.references("user", foreign_key=True)
                t.references("editor", to_table="users", index=False)

    MigrationRunner(engine, uuid_policy).run([CreateUsers(), WithFk()])
    insp = inspect(engine)
    fks = insp.get_foreign_keys("articles")
    assert [(fk["constrained_columns"], fk["referred_table"], fk["referred_columns"]) for fk in fks] == [
        (["user_id"], "users", ["id"]),
    ]
    indexed = {tuple(ix["column_names"]) for ix in insp.get_indexes("articles")}
    assert ("user_id",) in indexed
    assert ("editor_id",) not in indexed
    assert column_type(engine, "articles", "editor_id") == "VARCHAR(36)"


def test_polymorphic_foreign_key_is_rejected(engine, uuid_policy):
    class Bad(Migration):
        def up(self, schema):
            with schema.create_table("bad") as t:
                t.references("owner", polymorphic=True, foreign_key=True)

    with pytest.raises(ValueError):
        MigrationRunner(engine, uuid_policy).run([Bad()])


def test_down_runs_in_reverse(engine, uuid_policy):
    runner = MigrationRunner(engine, uuid_policy)
    runner.run([CreateUsers(), CreatePosts()])
    result = runner.run([CreateUsers(), CreatePosts()], direction="down")
    assert result.applied == ["002 CreatePosts", "001 CreateUsers"]
    assert inspect(engine).get_table_names() == []


def test_remove_reference(engine, uuid_policy):
    class AddThenRemove(Migration):
        def up(self, schema):
            with schema.create_table("notes") as t:
                t.text("body")
                t.references("notable", polymorphic=True)
            schema.remove_reference("notes", "notable", polymorphic=True)

    MigrationRunner(engine, uuid_policy).run([AddThenRemove()])
    names = [c["name"] for c in inspect(engine).get_columns("notes")]
    assert "notable_id" not in names and "notable_type" not in names


def test_irreversible_by_default(engine, uuid_policy):
    class OneWay(Migration):
        def up(self, schema):
            pass

    with pytest.raises(IrreversibleMigration):
        MigrationRunner(engine, uuid_policy).run([OneWay()], direction="down")


def test_unknown_direction(engine, uuid_policy):
    with pytest.raises(ValueError):
        MigrationRunner(engine, uuid_policy).run([], direction="sideways")


def test_statements_are_recorded(engine, uuid_policy):
    result = MigrationRunner(engine, UuidPolicy("uuid")).run([CreateUsers(), CreatePosts()])
    assert any(s.startswith("CREATE TABLE users") for s in result.statements)
    assert any("ix_posts_user_id" in s for s in result.statements)
