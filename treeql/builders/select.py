"""Fluent SELECT builder.

Example::

    users = Table("users")
    query = (
        SelectBuilder()
        .from_(users)
        .where(users.col("id").eq(42))
        .limit(10)
    )
    sql, params = query.to_sql(PostgresVisitor())
    # SELECT * FROM "users" WHERE "users"."id" = $1 LIMIT $2   [42, 10]

Every mutator changes the wrapped :class:`~treeql.nodes.SelectCore` in
place and returns the builder.  Single-valued setters replace; list
setters append, except :meth:`SelectBuilder.select`, which replaces the
projection list.
"""
from __future__ import annotations

import copy
from typing import Any

from treeql.builders.tree import TreeManager
from treeql.nodes.base import Node
from treeql.nodes.expressions import SqlLiteral, to_node
from treeql.nodes.functions import WindowDefinition
from treeql.nodes.operators import JoinType, LockMode, SetOpType
from treeql.nodes.relations import Table, TableAlias
from treeql.nodes.statements import Join, SelectCore, SetOperation


def as_relation(relation: Any) -> Node:
    """Accept a table name, a node, or a builder as a relation."""
    if isinstance(relation, str):
        return Table(relation)
    return to_node(relation)


class JoinContext:
    """Returned by :meth:`SelectBuilder.join`; supplies the ON predicate.

    The join is already attached to the statement, so forgetting ``on``
    surfaces as a render-time error rather than a silently dropped join.
    """

    def __init__(self, builder: SelectBuilder, join: Join) -> None:
        self._builder = builder
        self._join = join

    def on(self, predicate: Node) -> SelectBuilder:
        self._join.on = predicate
        return self._builder


class SelectBuilder(TreeManager):
    """Builds a :class:`~treeql.nodes.SelectCore`.

    Args:
        *projections: Optional initial projection list (same as calling
            :meth:`select`).
    """

    transform_hook = "transform_select"

    def __init__(self, *projections: Any) -> None:
        super().__init__()
        self.core = SelectCore()
        if projections:
            self.select(*projections)

    @property
    def statement(self) -> SelectCore:
        return self.core

    def clone_core(self) -> SelectCore:
        """Return a deep copy of the current statement."""
        return copy.deepcopy(self.core)

    # ------------------------------------------------------------------
    # Projection
    # ------------------------------------------------------------------

    def select(self, *exprs: Any) -> SelectBuilder:
        """Replace the projection list."""
        self.core.projections = [to_node(e) for e in exprs]
        return self

    def distinct(self) -> SelectBuilder:
        self.core.distinct = True
        self.core.distinct_on = []
        return self

    def distinct_on(self, *exprs: Any) -> SelectBuilder:
        self.core.distinct_on = [to_node(e) for e in exprs]
        self.core.distinct = False
        return self

    # ------------------------------------------------------------------
    # FROM and joins
    # ------------------------------------------------------------------

    def from_(self, relation: Any) -> SelectBuilder:
        self.core.from_ = as_relation(relation)
        return self

    def join(self, relation: Any, kind: JoinType = JoinType.INNER) -> JoinContext:
        """Start a join; call :meth:`JoinContext.on` to supply the predicate."""
        join = Join(as_relation(relation), kind)
        self.core.joins.append(join)
        return JoinContext(self, join)

    def left_join(self, relation: Any) -> JoinContext:
        return self.join(relation, JoinType.LEFT_OUTER)

    def cross_join(self, relation: Any) -> SelectBuilder:
        self.core.joins.append(Join(as_relation(relation), JoinType.CROSS))
        return self

    def lateral_join(self, relation: Any, kind: JoinType = JoinType.INNER) -> JoinContext:
        join = Join(as_relation(relation), kind, lateral=True)
        self.core.joins.append(join)
        return JoinContext(self, join)

    def string_join(self, raw: str) -> SelectBuilder:
        """Append a caller-supplied join fragment verbatim."""
        self.core.joins.append(Join(SqlLiteral(raw), JoinType.STRING))
        return self

    # ------------------------------------------------------------------
    # Filtering, grouping, ordering
    # ------------------------------------------------------------------

    def where(self, predicate: Node) -> SelectBuilder:
        self.core.wheres.append(predicate)
        return self

    def group(self, *exprs: Any) -> SelectBuilder:
        self.core.groups.extend(to_node(e) for e in exprs)
        return self

    def having(self, predicate: Node) -> SelectBuilder:
        self.core.havings.append(predicate)
        return self

    def window(self, *definitions: WindowDefinition) -> SelectBuilder:
        """Declare named windows for the ``WINDOW`` clause."""
        self.core.windows.extend(definitions)
        return self

    def order(self, *orderings: Any) -> SelectBuilder:
        self.core.orders.extend(to_node(o) for o in orderings)
        return self

    def limit(self, n: Any) -> SelectBuilder:
        self.core.limit = to_node(n)
        return self

    def offset(self, n: Any) -> SelectBuilder:
        self.core.offset = to_node(n)
        return self

    # ------------------------------------------------------------------
    # Locking, comments, hints
    # ------------------------------------------------------------------

    def lock(self, mode: LockMode = LockMode.FOR_UPDATE) -> SelectBuilder:
        self.core.lock = mode
        return self

    def skip_locked(self) -> SelectBuilder:
        self.core.skip_locked = True
        return self

    def comment(self, text: str) -> SelectBuilder:
        self.core.comment = text
        return self

    def hint(self, text: str) -> SelectBuilder:
        self.core.hints.append(text)
        return self

    # ------------------------------------------------------------------
    # Composition
    # ------------------------------------------------------------------

    def as_(self, name: str) -> TableAlias:
        """Use this query as a derived table: ``(SELECT ...) AS "name"``."""
        return TableAlias(self.core, name)

    def _set_op(self, other: Any, op: SetOpType) -> SetOperation:
        return SetOperation(self.core, to_node(other), op)

    def union(self, other: Any) -> SetOperation:
        return self._set_op(other, SetOpType.UNION)

    def union_all(self, other: Any) -> SetOperation:
        return self._set_op(other, SetOpType.UNION_ALL)

    def intersect(self, other: Any) -> SetOperation:
        return self._set_op(other, SetOpType.INTERSECT)

    def intersect_all(self, other: Any) -> SetOperation:
        return self._set_op(other, SetOpType.INTERSECT_ALL)

    def except_(self, other: Any) -> SetOperation:
        return self._set_op(other, SetOpType.EXCEPT)

    def except_all(self, other: Any) -> SetOperation:
        return self._set_op(other, SetOpType.EXCEPT_ALL)


def select(*projections: Any) -> SelectBuilder:
    """Shorthand for ``SelectBuilder(*projections)``."""
    return SelectBuilder(*projections)
