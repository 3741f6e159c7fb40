"""Statement records: SELECT cores, joins, CTEs, set operations, and DML.

Statement records are plain mutable dataclasses.  Builders fill them in;
transformers receive a deep copy and may append to or replace any list.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, NamedTuple

from treeql.nodes.base import Node
from treeql.nodes.expressions import to_node
from treeql.nodes.functions import WindowDefinition
from treeql.nodes.operators import ConflictAction, JoinType, LockMode, SetOpType
from treeql.nodes.relations import Table, TableAlias


class SetOperable:
    """Set-operation factories shared by SELECT cores and set operations."""

    def union(self, other: Any) -> SetOperation:
        return SetOperation(self, to_node(other), SetOpType.UNION)  # type: ignore[arg-type]

    def union_all(self, other: Any) -> SetOperation:
        return SetOperation(self, to_node(other), SetOpType.UNION_ALL)  # type: ignore[arg-type]

    def intersect(self, other: Any) -> SetOperation:
        return SetOperation(self, to_node(other), SetOpType.INTERSECT)  # type: ignore[arg-type]

    def intersect_all(self, other: Any) -> SetOperation:
        return SetOperation(self, to_node(other), SetOpType.INTERSECT_ALL)  # type: ignore[arg-type]

    def except_(self, other: Any) -> SetOperation:
        return SetOperation(self, to_node(other), SetOpType.EXCEPT)  # type: ignore[arg-type]

    def except_all(self, other: Any) -> SetOperation:
        return SetOperation(self, to_node(other), SetOpType.EXCEPT_ALL)  # type: ignore[arg-type]

    def alias(self, name: str) -> TableAlias:
        """Use this query as a derived table: ``(SELECT ...) AS "name"``."""
        return TableAlias(self, name)  # type: ignore[arg-type]


@dataclass
class Cte(Node):
    """One entry of a ``WITH`` list: ``"name" ("cols") AS (query)``."""

    __visit_name__ = "cte"

    name: str
    query: Node
    recursive: bool = False
    columns: list[str] = field(default_factory=list)


@dataclass
class Join(Node):
    """A join against the statement's FROM relation.

    ``on`` is required for every kind except ``CROSS``.  For ``STRING`` joins
    ``right`` is an opaque :class:`~treeql.nodes.expressions.SqlLiteral`.
    """

    __visit_name__ = "join"

    right: Node
    type: JoinType = JoinType.INNER
    on: Node | None = None
    lateral: bool = False


@dataclass
class SelectCore(SetOperable, Node):
    """The aggregate record behind a SELECT statement.

    An empty ``projections`` list renders as ``*``.  ``distinct`` and
    ``distinct_on`` are mutually exclusive.
    """

    __visit_name__ = "select_core"

    ctes: list[Cte] = field(default_factory=list)
    from_: Node | None = None
    joins: list[Join] = field(default_factory=list)
    projections: list[Node] = field(default_factory=list)
    wheres: list[Node] = field(default_factory=list)
    groups: list[Node] = field(default_factory=list)
    havings: list[Node] = field(default_factory=list)
    windows: list[WindowDefinition] = field(default_factory=list)
    orders: list[Node] = field(default_factory=list)
    distinct: bool = False
    distinct_on: list[Node] = field(default_factory=list)
    limit: Node | None = None
    offset: Node | None = None
    lock: LockMode | None = None
    skip_locked: bool = False
    comment: str | None = None
    hints: list[str] = field(default_factory=list)


@dataclass
class SetOperation(SetOperable, Node):
    """``left OP right``.  Left-deep chains are built by nesting."""

    __visit_name__ = "set_operation"

    left: Node
    right: Node
    op: SetOpType = SetOpType.UNION


# ---------------------------------------------------------------------------
# DML
# ---------------------------------------------------------------------------


@dataclass
class Assignment(Node):
    """``column = value`` inside ``SET`` lists."""

    __visit_name__ = "assignment"

    column: Node
    value: Node


@dataclass
class OnConflict(Node):
    """``ON CONFLICT (cols) DO NOTHING`` or ``DO UPDATE SET ... [WHERE ...]``."""

    __visit_name__ = "on_conflict"

    columns: list[Node] = field(default_factory=list)
    action: ConflictAction = ConflictAction.DO_NOTHING
    assignments: list[Assignment] = field(default_factory=list)
    wheres: list[Node] = field(default_factory=list)


@dataclass
class InsertStatement(Node):
    """``INSERT INTO``; either ``values`` rows or a ``select`` source."""

    __visit_name__ = "insert_statement"

    into: Node
    columns: list[Node] = field(default_factory=list)
    values: list[list[Node]] = field(default_factory=list)
    select: Node | None = None
    on_conflict: OnConflict | None = None
    returning: list[Node] = field(default_factory=list)
    ctes: list[Cte] = field(default_factory=list)


@dataclass
class UpdateStatement(Node):
    __visit_name__ = "update_statement"

    table: Node
    assignments: list[Assignment] = field(default_factory=list)
    wheres: list[Node] = field(default_factory=list)
    returning: list[Node] = field(default_factory=list)
    ctes: list[Cte] = field(default_factory=list)


@dataclass
class DeleteStatement(Node):
    __visit_name__ = "delete_statement"

    from_: Node
    wheres: list[Node] = field(default_factory=list)
    returning: list[Node] = field(default_factory=list)
    ctes: list[Cte] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Table enumeration
# ---------------------------------------------------------------------------


class TableRef(NamedTuple):
    """A base table referenced by a statement.

    Attributes:
        name: The underlying table name (aliases unwrapped).
        relation: The node as it appears in the statement (table or alias);
            use it to build correctly qualified attributes.
    """

    name: str
    relation: Node


def _table_ref(relation: Node | None) -> TableRef | None:
    if isinstance(relation, Table):
        return TableRef(relation.name, relation)
    if isinstance(relation, TableAlias) and isinstance(relation.relation, Table):
        return TableRef(relation.relation.name, relation)
    return None


def collect_tables(core: SelectCore) -> list[TableRef]:
    """Enumerate the base tables of a SELECT core.

    Walks FROM first, then the right-hand side of each join left to right.
    Aliases are unwrapped to their base table name; subqueries, aliased
    subqueries, and raw string joins are skipped.

    Args:
        core: The statement to inspect.

    Returns:
        An ordered list of :class:`TableRef`.
    """
    refs: list[TableRef] = []
    ref = _table_ref(core.from_)
    if ref is not None:
        refs.append(ref)
    for join in core.joins:
        if join.type is JoinType.STRING:
            continue
        ref = _table_ref(join.right)
        if ref is not None:
            refs.append(ref)
    return refs
