"""Shared pytest fixtures for treeql unit and integration tests."""
from __future__ import annotations

import pytest

from treeql import MySQLVisitor, PostgresVisitor, SQLiteVisitor, Table


@pytest.fixture()
def users() -> Table:
    return Table("users")


@pytest.fixture()
def posts() -> Table:
    return Table("posts")


@pytest.fixture()
def orders() -> Table:
    return Table("orders")


@pytest.fixture()
def pg() -> PostgresVisitor:
    """Parameterised Postgres renderer."""
    return PostgresVisitor()


@pytest.fixture()
def pg_inline() -> PostgresVisitor:
    """Postgres renderer with literals formatted inline."""
    return PostgresVisitor(parameterize=False)


@pytest.fixture()
def my() -> MySQLVisitor:
    return MySQLVisitor()


@pytest.fixture()
def sq() -> SQLiteVisitor:
    return SQLiteVisitor()
