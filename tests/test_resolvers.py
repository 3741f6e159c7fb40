"""Tests for the column resolvers used by mask expansion."""

from __future__ import annotations

import pytest

from treeql import mapping_resolver, sqlalchemy_resolver


def test_mapping_resolver():
    columns = {"orders": ("id", "total")}
    resolve = mapping_resolver(columns)
    assert resolve("orders") == ["id", "total"]
    assert resolve("missing") == []


def test_mapping_resolver_snapshots_input():
    columns = {"orders": ["id"]}
    resolve = mapping_resolver(columns)
    columns["orders"].append("total")
    resolve("orders").append("leaked")
    assert resolve("orders") == ["id"]


def test_sqlalchemy_metadata_resolver():
    sa = pytest.importorskip("sqlalchemy")
    metadata = sa.MetaData()
    sa.Table("orders", metadata, sa.Column("id", sa.Integer), sa.Column("total", sa.Float))
    resolve = sqlalchemy_resolver(metadata)
    assert resolve("orders") == ["id", "total"]
    assert resolve("missing") == []


def test_sqlalchemy_metadata_resolver_with_schema():
    sa = pytest.importorskip("sqlalchemy")
    metadata = sa.MetaData()
    sa.Table("orders", metadata, sa.Column("id", sa.Integer), schema="sales")
    assert sqlalchemy_resolver(metadata, schema="sales")("orders") == ["id"]
    assert sqlalchemy_resolver(metadata)("orders") == []


def test_sqlalchemy_engine_resolver():
    sa = pytest.importorskip("sqlalchemy")
    engine = sa.create_engine("sqlite://")
    metadata = sa.MetaData()
    sa.Table(
        "users",
        metadata,
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("name", sa.String),
        sa.Column("deleted_at", sa.String),
    )
    metadata.create_all(engine)
    assert sqlalchemy_resolver(engine)("users") == ["id", "name", "deleted_at"]
