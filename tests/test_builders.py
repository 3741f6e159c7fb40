"""Tests for the fluent SELECT and DML builders."""

from __future__ import annotations

import pytest

from treeql import (
    DeleteBuilder,
    InsertBuilder,
    SelectBuilder,
    Table,
    TreeManager,
    UpdateBuilder,
    delete_from,
    insert_into,
    select,
    update,
)
from treeql.nodes import (
    Attribute,
    ConflictAction,
    Cte,
    In,
    JoinType,
    Literal,
    SelectCore,
    SetOperation,
    SetOpType,
    TableAlias,
)

USERS = Table("users")
POSTS = Table("posts")


def test_projection_is_replaced_not_appended():
    query = SelectBuilder(USERS.col("a")).select(USERS.col("b"))
    assert query.core.projections == [USERS.col("b")]


def test_plain_values_become_literals():
    query = SelectBuilder(1).from_(USERS).limit(10)
    assert query.core.projections == [Literal(1)]
    assert query.core.limit == Literal(10)


def test_from_accepts_table_name():
    assert SelectBuilder().from_("users").core.from_ == Table("users")


def test_distinct_and_distinct_on_clear_each_other():
    query = SelectBuilder().from_(USERS).distinct_on(USERS.col("a"))
    query.distinct()
    assert query.core.distinct is True
    assert query.core.distinct_on == []
    query.distinct_on(USERS.col("b"))
    assert query.core.distinct is False
    assert query.core.distinct_on == [USERS.col("b")]


def test_lists_append_in_call_order():
    query = (
        SelectBuilder()
        .from_(USERS)
        .where(USERS.col("a").eq(1))
        .where(USERS.col("b").eq(2))
        .order(USERS.col("a").asc())
        .order(USERS.col("b").desc())
    )
    assert [w.left.name for w in query.core.wheres] == ["a", "b"]
    assert [o.expr.name for o in query.core.orders] == ["a", "b"]


def test_join_is_attached_before_on():
    query = SelectBuilder().from_(USERS)
    context = query.join(POSTS)
    assert len(query.core.joins) == 1
    assert query.core.joins[0].on is None
    predicate = USERS.col("id").eq(POSTS.col("user_id"))
    assert context.on(predicate) is query
    assert query.core.joins[0].on == predicate
    assert query.core.joins[0].type is JoinType.INNER


def test_lateral_join_flag():
    query = SelectBuilder().from_(USERS)
    query.lateral_join(SelectBuilder().from_(POSTS).as_("p"))
    join = query.core.joins[0]
    assert join.lateral is True
    assert isinstance(join.right, TableAlias)


def test_clone_core_is_independent():
    query = SelectBuilder().from_(USERS).where(USERS.col("a").eq(1))
    clone = query.clone_core()
    clone.wheres.append(USERS.col("b").eq(2))
    clone.from_ = POSTS
    assert len(query.core.wheres) == 1
    assert query.core.from_ == USERS


def test_as_node_shares_the_statement():
    query = SelectBuilder().from_(USERS)
    assert query.as_node() is query.core


def test_builder_used_as_subquery_value(pg):
    sub = SelectBuilder(POSTS.col("user_id")).from_(POSTS)
    predicate = USERS.col("id").in_(sub)
    assert isinstance(predicate, In)
    assert predicate.values == [sub.core]


def test_set_operations_accept_builders():
    left = SelectBuilder().from_(USERS)
    right = SelectBuilder().from_(POSTS)
    op = left.union(right).intersect_all(SelectBuilder().from_("tags"))
    assert isinstance(op, SetOperation)
    assert op.op is SetOpType.INTERSECT_ALL
    assert isinstance(op.right, SelectCore)
    assert op.left.left is left.core
    assert op.left.right is right.core


def test_ctes_are_recorded():
    query = (
        SelectBuilder()
        .from_("recent")
        .with_("recent", SelectBuilder().from_(USERS), columns=["id"])
        .with_recursive("tree", SelectBuilder().from_(POSTS))
    )
    first, second = query.core.ctes
    assert isinstance(first, Cte)
    assert (first.name, first.recursive, first.columns) == ("recent", False, ["id"])
    assert (second.name, second.recursive) == ("tree", True)


def test_rendering_is_repeatable(pg):
    query = SelectBuilder().from_(USERS).where(USERS.col("a").eq(1))
    assert query.to_sql(pg) == query.to_sql(pg)


def test_factories_return_builders():
    assert isinstance(select(USERS.col("a")), SelectBuilder)
    assert isinstance(insert_into("users"), InsertBuilder)
    assert isinstance(update("users"), UpdateBuilder)
    assert isinstance(delete_from("users"), DeleteBuilder)


def test_tree_manager_requires_a_statement():
    with pytest.raises(TypeError):
        TreeManager()


# ---------------------------------------------------------------------------
# DML
# ---------------------------------------------------------------------------


def test_insert_columns_bind_to_target_table():
    stmt = InsertBuilder("users").columns("name", USERS.col("email"))
    assert stmt.stmt.into == USERS
    assert stmt.stmt.columns == [Attribute(USERS, "name"), Attribute(USERS, "email")]


def test_insert_into_can_be_retargeted():
    stmt = InsertBuilder("users").into(POSTS)
    assert stmt.stmt.into == POSTS


def test_on_conflict_do_update_builds_assignments():
    stmt = InsertBuilder(USERS).columns("email").values("a@x")
    result = stmt.on_conflict("email").do_update({"name": "Ann"})
    assert result is stmt
    clause = stmt.stmt.on_conflict
    assert clause.action is ConflictAction.DO_UPDATE
    assert clause.columns == [Attribute(USERS, "email")]
    assert [(a.column, a.value) for a in clause.assignments] == [
        (Attribute(USERS, "name"), Literal("Ann"))
    ]


def test_update_set_values_preserves_mapping_order(pg):
    stmt = UpdateBuilder("users").set_values({"name": "Ann", "email": "a@x"}).where(USERS.col("id").eq(1))
    assert stmt.to_sql(pg).sql == (
        'UPDATE "users" SET "name" = $1, "email" = $2 WHERE "users"."id" = $3'
    )


def test_delete_returning(pg):
    stmt = DeleteBuilder("users").where(USERS.col("id").eq(1)).returning(USERS.col("id"), USERS.col("name"))
    assert stmt.to_sql(pg).sql == (
        'DELETE FROM "users" WHERE "users"."id" = $1 RETURNING "users"."id", "users"."name"'
    )


def test_update_with_alias_qualifies_where(pg):
    u = USERS.alias("u")
    stmt = UpdateBuilder(u).set("name", "Ann").where(u.col("id").eq(1))
    assert stmt.to_sql(pg).sql == 'UPDATE "users" AS "u" SET "name" = $1 WHERE "u"."id" = $2'
