"""Fluent INSERT, UPDATE and DELETE builders.

They mirror :class:`~treeql.builders.select.SelectBuilder`: mutators change
the wrapped statement in place and return the builder, and ``to_sql`` runs
the transformer pipeline on a copy before rendering.

Example::

    users = Table("users")
    stmt = (
        InsertBuilder(users)
        .columns("email", "name")
        .values("a@example.com", "Ann")
        .on_conflict("email")
        .do_update({"name": Table("excluded").col("name")})
        .returning(users.col("id"))
    )
"""
from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from treeql.builders.select import as_relation
from treeql.builders.tree import TreeManager
from treeql.nodes.base import Node
from treeql.nodes.expressions import to_node
from treeql.nodes.operators import ConflictAction
from treeql.nodes.relations import Attribute
from treeql.nodes.statements import (
    Assignment,
    DeleteStatement,
    InsertStatement,
    OnConflict,
    UpdateStatement,
)


def _column(relation: Node, column: Any) -> Node:
    if isinstance(column, str):
        return Attribute(relation, column)
    return to_node(column)


def _assignments(relation: Node, values: Mapping[Any, Any]) -> list[Assignment]:
    return [Assignment(_column(relation, c), to_node(v)) for c, v in values.items()]


# ---------------------------------------------------------------------------
# INSERT
# ---------------------------------------------------------------------------


class OnConflictContext:
    """Returned by :meth:`InsertBuilder.on_conflict`; picks the action."""

    def __init__(self, builder: InsertBuilder, clause: OnConflict) -> None:
        self._builder = builder
        self._clause = clause

    def do_nothing(self) -> InsertBuilder:
        self._clause.action = ConflictAction.DO_NOTHING
        return self._builder

    def do_update(
        self, values: Mapping[Any, Any], where: Node | None = None
    ) -> InsertBuilder:
        """``DO UPDATE SET col = value, ... [WHERE where]``."""
        self._clause.action = ConflictAction.DO_UPDATE
        self._clause.assignments = _assignments(self._builder.stmt.into, values)
        if where is not None:
            self._clause.wheres.append(where)
        return self._builder


class InsertBuilder(TreeManager):
    """Builds an :class:`~treeql.nodes.InsertStatement`.

    Args:
        into: Target table (name, :class:`~treeql.nodes.Table` or alias).
    """

    transform_hook = "transform_insert"

    def __init__(self, into: Any) -> None:
        super().__init__()
        self.stmt = InsertStatement(as_relation(into))

    @property
    def statement(self) -> InsertStatement:
        return self.stmt

    def into(self, table: Any) -> InsertBuilder:
        self.stmt.into = as_relation(table)
        return self

    def columns(self, *columns: Any) -> InsertBuilder:
        self.stmt.columns.extend(_column(self.stmt.into, c) for c in columns)
        return self

    def values(self, *row: Any) -> InsertBuilder:
        """Append one row; its length must match the column list."""
        self.stmt.values.append([to_node(v) for v in row])
        return self

    def from_select(self, query: Any) -> InsertBuilder:
        """Use ``INSERT ... SELECT`` instead of VALUES rows."""
        self.stmt.select = to_node(query)
        return self

    def on_conflict(self, *columns: Any) -> OnConflictContext:
        clause = OnConflict([_column(self.stmt.into, c) for c in columns])
        self.stmt.on_conflict = clause
        return OnConflictContext(self, clause)

    def returning(self, *exprs: Any) -> InsertBuilder:
        self.stmt.returning.extend(to_node(e) for e in exprs)
        return self


# ---------------------------------------------------------------------------
# UPDATE
# ---------------------------------------------------------------------------


class UpdateBuilder(TreeManager):
    """Builds an :class:`~treeql.nodes.UpdateStatement`."""

    transform_hook = "transform_update"

    def __init__(self, table: Any) -> None:
        super().__init__()
        self.stmt = UpdateStatement(as_relation(table))

    @property
    def statement(self) -> UpdateStatement:
        return self.stmt

    def set(self, column: Any, value: Any) -> UpdateBuilder:
        self.stmt.assignments.append(
            Assignment(_column(self.stmt.table, column), to_node(value))
        )
        return self

    def set_values(self, values: Mapping[Any, Any]) -> UpdateBuilder:
        self.stmt.assignments.extend(_assignments(self.stmt.table, values))
        return self

    def where(self, predicate: Node) -> UpdateBuilder:
        self.stmt.wheres.append(predicate)
        return self

    def returning(self, *exprs: Any) -> UpdateBuilder:
        self.stmt.returning.extend(to_node(e) for e in exprs)
        return self


# ---------------------------------------------------------------------------
# DELETE
# ---------------------------------------------------------------------------


class DeleteBuilder(TreeManager):
    """Builds a :class:`~treeql.nodes.DeleteStatement`."""

    transform_hook = "transform_delete"

    def __init__(self, table: Any) -> None:
        super().__init__()
        self.stmt = DeleteStatement(as_relation(table))

    @property
    def statement(self) -> DeleteStatement:
        return self.stmt

    def where(self, predicate: Node) -> DeleteBuilder:
        self.stmt.wheres.append(predicate)
        return self

    def returning(self, *exprs: Any) -> DeleteBuilder:
        self.stmt.returning.extend(to_node(e) for e in exprs)
        return self


def insert_into(table: Any) -> InsertBuilder:
    return InsertBuilder(table)


def update(table: Any) -> UpdateBuilder:
    return UpdateBuilder(table)


def delete_from(table: Any) -> DeleteBuilder:
    return DeleteBuilder(table)
