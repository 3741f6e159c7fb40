"""End-to-end scenarios: builder -> transformers -> rendered SQL and params."""

from __future__ import annotations

from treeql import (
    OPATransformer,
    SelectBuilder,
    SoftDelete,
    Table,
    count,
    sum_,
)
from treeql.nodes import NullsOrder
from tests.fixtures import FakeResponse, FakeSession, load_opa_response

USERS = Table("users")
POSTS = Table("posts")
ORDERS = Table("orders")


def test_filter_and_limit_are_bound(pg):
    query = SelectBuilder().from_(USERS).where(USERS.col("id").eq(42)).limit(10)
    sql, params = query.to_sql(pg)
    assert sql == 'SELECT * FROM "users" WHERE "users"."id" = $1 LIMIT $2'
    assert params == [42, 10]


def test_join_with_ordering(pg):
    query = (
        SelectBuilder(USERS.col("id"), USERS.col("name"))
        .from_(USERS)
        .join(POSTS)
        .on(USERS.col("id").eq(POSTS.col("user_id")))
        .where(USERS.col("active").eq(True))
        .order(USERS.col("name").desc(NullsOrder.LAST))
    )
    compiled = query.to_sql(pg)
    assert compiled.sql == (
        'SELECT "users"."id", "users"."name" FROM "users" '
        'INNER JOIN "posts" ON "users"."id" = "posts"."user_id" '
        'WHERE "users"."active" = $1 ORDER BY "users"."name" DESC NULLS LAST'
    )
    assert compiled.params == [True]
    assert compiled.dialect == "postgres"


def test_aggregate_filter_group_having(pg):
    query = (
        SelectBuilder(count(), sum_(ORDERS.col("total")).filter(ORDERS.col("status").eq("ok")))
        .from_(ORDERS)
        .group(ORDERS.col("region"))
        .having(count().gt(10))
    )
    sql, params = query.to_sql(pg)
    assert sql == (
        'SELECT COUNT(*), SUM("orders"."total") FILTER (WHERE "orders"."status" = $1) '
        'FROM "orders" GROUP BY "orders"."region" HAVING COUNT(*) > $2'
    )
    assert params == ["ok", 10]


def test_soft_delete_appends_null_check(pg):
    query = SelectBuilder().from_(USERS).where(USERS.col("active").eq(True)).use(SoftDelete())
    sql, params = query.to_sql(pg)
    assert sql == 'SELECT * FROM "users" WHERE "users"."active" = $1 AND "users"."deleted_at" IS NULL'
    assert params == [True]


def test_policy_filter_and_mask(pg):
    session = FakeSession(
        {
            "/v1/compile": FakeResponse(load_opa_response("compile_account")),
            "/v1/data/authz/orders/masks": FakeResponse(load_opa_response("masks_orders")),
        }
    )
    opa = OPATransformer.from_server(
        "http://opa.test:8181",
        "authz.orders.allow",
        input={"user": {"account": "acme"}},
        session=session,
    )
    query = (
        SelectBuilder(ORDERS.col("id"), ORDERS.col("account"), ORDERS.col("total"))
        .from_(ORDERS)
        .use(opa)
    )
    sql, params = query.to_sql(pg)
    assert sql == (
        'SELECT "orders"."id", "orders"."account", \'***\' AS "total" '
        'FROM "orders" WHERE "orders"."account" = $1'
    )
    assert params == ["acme"]


def test_mysql_regexp(my):
    query = SelectBuilder().from_(USERS).where(USERS.col("name").matches_regexp("^A"))
    sql, params = query.to_sql(my)
    assert sql == "SELECT * FROM `users` WHERE `users`.`name` REGEXP ?"
    assert params == ["^A"]


def test_dialect_name_selects_registered_visitor():
    query = SelectBuilder().from_(USERS).where(USERS.col("id").eq(1))
    assert query.to_sql("sqlite").sql == 'SELECT * FROM "users" WHERE "users"."id" = ?'
    assert query.to_sql("postgres").sql == 'SELECT * FROM "users" WHERE "users"."id" = $1'
