"""Scalar expressions, predicates, and the mixins that build them.

Three mixins give nodes their fluent surface:

``Predications``
    Comparison factories (``eq``, ``gt``, ``in_``, ``between``, ``is_null``,
    ``like``, ...), plus ``as_`` / ``asc`` / ``desc``.

``Arithmetics``
    Infix arithmetic, bitwise, and concatenation factories.

``Combinable``
    ``and_`` / ``or_`` / ``not_``.  ``or_`` always returns a
    :class:`Grouping` so an OR can be nested under an AND without losing
    its meaning.

Values handed to a factory are wrapped with :func:`to_node`: nodes pass
through, builders contribute their statement, and anything else becomes a
:class:`Literal`.
"""
from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field, replace
from typing import Any

from treeql.nodes.base import Node
from treeql.nodes.operators import (
    ComparisonOp,
    Direction,
    InfixOp,
    NullsOrder,
    UnaryOp,
)


def to_node(value: Any) -> Node:
    """Wrap ``value`` as a node.

    Nodes are returned unchanged.  Objects exposing ``as_node()`` (the query
    builders) contribute the node they wrap.  Everything else becomes a
    :class:`Literal`.
    """
    if isinstance(value, Node):
        return value
    as_node = getattr(value, "as_node", None)
    if callable(as_node):
        return as_node()
    return Literal(value)


def _to_nodes(values: Any) -> list[Node]:
    if isinstance(values, (str, bytes, Node)) or not isinstance(values, Iterable):
        return [to_node(values)]
    return [to_node(v) for v in values]


# ---------------------------------------------------------------------------
# Mixins
# ---------------------------------------------------------------------------


class Combinable:
    """Logical combinators shared by every boolean-valued node."""

    def and_(self, other: Node) -> And:
        return And(self, other)  # type: ignore[arg-type]

    def or_(self, other: Node) -> Grouping:
        return Grouping(Or(self, other))  # type: ignore[arg-type]

    def not_(self) -> Not:
        return Not(self)  # type: ignore[arg-type]


class Predications:
    """Predicate factories available on attributes and other expressions."""

    def _compare(self, value: Any, op: ComparisonOp) -> Comparison:
        return Comparison(self, to_node(value), op)  # type: ignore[arg-type]

    def eq(self, value: Any) -> Comparison:
        return self._compare(value, ComparisonOp.EQ)

    def not_eq(self, value: Any) -> Comparison:
        return self._compare(value, ComparisonOp.NOT_EQ)

    def gt(self, value: Any) -> Comparison:
        return self._compare(value, ComparisonOp.GT)

    def gt_eq(self, value: Any) -> Comparison:
        return self._compare(value, ComparisonOp.GT_EQ)

    def lt(self, value: Any) -> Comparison:
        return self._compare(value, ComparisonOp.LT)

    def lt_eq(self, value: Any) -> Comparison:
        return self._compare(value, ComparisonOp.LT_EQ)

    def like(self, pattern: Any) -> Comparison:
        """LIKE comparison.  The pattern is used as given; escape user data
        with :func:`treeql.quoting.escape_like_pattern` first."""
        return self._compare(pattern, ComparisonOp.LIKE)

    def not_like(self, pattern: Any) -> Comparison:
        return self._compare(pattern, ComparisonOp.NOT_LIKE)

    def matches_regexp(self, pattern: Any) -> Comparison:
        return self._compare(pattern, ComparisonOp.REGEXP)

    def does_not_match_regexp(self, pattern: Any) -> Comparison:
        return self._compare(pattern, ComparisonOp.NOT_REGEXP)

    def is_distinct_from(self, value: Any) -> Comparison:
        return self._compare(value, ComparisonOp.DISTINCT_FROM)

    def is_not_distinct_from(self, value: Any) -> Comparison:
        return self._compare(value, ComparisonOp.NOT_DISTINCT_FROM)

    def case_sensitive_eq(self, value: Any) -> Comparison:
        return self._compare(value, ComparisonOp.CASE_SENSITIVE_EQ)

    def case_insensitive_eq(self, value: Any) -> Comparison:
        return self._compare(value, ComparisonOp.CASE_INSENSITIVE_EQ)

    def contains(self, value: Any) -> Comparison:
        """Containment (``@>``), e.g. for arrays and JSONB."""
        return self._compare(value, ComparisonOp.CONTAINS)

    def overlaps(self, value: Any) -> Comparison:
        """Overlap (``&&``), e.g. for arrays and ranges."""
        return self._compare(value, ComparisonOp.OVERLAPS)

    def is_null(self) -> Unary:
        return Unary(self, UnaryOp.IS_NULL)  # type: ignore[arg-type]

    def is_not_null(self) -> Unary:
        return Unary(self, UnaryOp.IS_NOT_NULL)  # type: ignore[arg-type]

    def in_(self, values: Any) -> In:
        """IN over a list of values, or over a subquery."""
        return In(self, _to_nodes(values))  # type: ignore[arg-type]

    def not_in(self, values: Any) -> In:
        return In(self, _to_nodes(values), negate=True)  # type: ignore[arg-type]

    def between(self, low: Any, high: Any) -> Between:
        return Between(self, to_node(low), to_node(high))  # type: ignore[arg-type]

    def not_between(self, low: Any, high: Any) -> Between:
        return Between(self, to_node(low), to_node(high), negate=True)  # type: ignore[arg-type]

    # -- quantified forms -------------------------------------------------

    def eq_any(self, *values: Any) -> Node:
        return _group_or([self.eq(v) for v in values], self)

    def eq_all(self, *values: Any) -> Node:
        return _chain_and([self.eq(v) for v in values], self)

    def matches_any(self, *patterns: Any) -> Node:
        return _group_or([self.like(p) for p in patterns], self)

    def matches_all(self, *patterns: Any) -> Node:
        return _chain_and([self.like(p) for p in patterns], self)

    def in_any(self, *value_sets: Any) -> Node:
        return _group_or([self.in_(s) for s in value_sets], self)

    def in_all(self, *value_sets: Any) -> Node:
        return _chain_and([self.in_(s) for s in value_sets], self)

    # -- projection and ordering -----------------------------------------

    def as_(self, name: str) -> Alias:
        return Alias(self, name)  # type: ignore[arg-type]

    def asc(self, nulls: NullsOrder = NullsOrder.DEFAULT) -> Ordering:
        return Ordering(self, Direction.ASC, nulls)  # type: ignore[arg-type]

    def desc(self, nulls: NullsOrder = NullsOrder.DEFAULT) -> Ordering:
        return Ordering(self, Direction.DESC, nulls)  # type: ignore[arg-type]


class Arithmetics:
    """Infix arithmetic factories."""

    def _infix(self, other: Any, op: InfixOp) -> Infix:
        return Infix(self, to_node(other), op)  # type: ignore[arg-type]

    def plus(self, other: Any) -> Infix:
        return self._infix(other, InfixOp.PLUS)

    def minus(self, other: Any) -> Infix:
        return self._infix(other, InfixOp.MINUS)

    def multiply(self, other: Any) -> Infix:
        return self._infix(other, InfixOp.MULTIPLY)

    def divide(self, other: Any) -> Infix:
        return self._infix(other, InfixOp.DIVIDE)

    def bitwise_and(self, other: Any) -> Infix:
        return self._infix(other, InfixOp.BITWISE_AND)

    def bitwise_or(self, other: Any) -> Infix:
        return self._infix(other, InfixOp.BITWISE_OR)

    def bitwise_xor(self, other: Any) -> Infix:
        return self._infix(other, InfixOp.BITWISE_XOR)

    def shift_left(self, other: Any) -> Infix:
        return self._infix(other, InfixOp.SHIFT_LEFT)

    def shift_right(self, other: Any) -> Infix:
        return self._infix(other, InfixOp.SHIFT_RIGHT)

    def concat(self, other: Any) -> Infix:
        return self._infix(other, InfixOp.CONCAT)

    def bitwise_not(self) -> UnaryMath:
        return UnaryMath(self)  # type: ignore[arg-type]


class Expression(Predications, Arithmetics, Combinable, Node):
    """A value-producing node: supports predicates, arithmetic, and combinators."""


def _group_or(predicates: list[Node], subject: Any) -> Node:
    # No alternatives: an empty IN, which the renderer rejects.
    if not predicates:
        return In(subject, [])
    result = predicates[0]
    for predicate in predicates[1:]:
        result = Or(result, predicate)
    return Grouping(result)


def _chain_and(predicates: list[Node], subject: Any) -> Node:
    if not predicates:
        return In(subject, [])
    result = predicates[0]
    for predicate in predicates[1:]:
        result = And(result, predicate)
    return result


# ---------------------------------------------------------------------------
# Values
# ---------------------------------------------------------------------------


@dataclass
class Literal(Expression):
    """A Python value: ``int``, ``float``, ``bool``, ``str``, or ``None``.

    Rendered inline or as a bound parameter depending on the visitor mode.
    ``None`` always renders as ``NULL``.
    """

    __visit_name__ = "literal"

    value: Any


@dataclass
class BindParam(Expression):
    """An explicit bound parameter."""

    __visit_name__ = "bind_param"

    value: Any


@dataclass
class SqlLiteral(Expression):
    """A raw SQL fragment, emitted verbatim and never parameterised."""

    __visit_name__ = "sql_literal"

    raw: str


# ---------------------------------------------------------------------------
# Predicates
# ---------------------------------------------------------------------------


@dataclass
class Comparison(Combinable, Node):
    __visit_name__ = "comparison"

    left: Node
    right: Node
    op: ComparisonOp = ComparisonOp.EQ


@dataclass
class Unary(Combinable, Node):
    """``IS NULL`` / ``IS NOT NULL``."""

    __visit_name__ = "unary"

    expr: Node
    op: UnaryOp = UnaryOp.IS_NULL


@dataclass
class And(Combinable, Node):
    __visit_name__ = "and"

    left: Node
    right: Node


@dataclass
class Or(Combinable, Node):
    __visit_name__ = "or"

    left: Node
    right: Node


@dataclass
class Not(Combinable, Node):
    __visit_name__ = "not"

    expr: Node


@dataclass
class Grouping(Expression):
    """Explicit parentheses around ``expr``."""

    __visit_name__ = "grouping"

    expr: Node


@dataclass
class In(Combinable, Node):
    """``expr [NOT] IN (values)``.  A single subquery value renders as
    ``expr IN (SELECT ...)``."""

    __visit_name__ = "in"

    expr: Node
    values: list[Node] = field(default_factory=list)
    negate: bool = False


@dataclass
class Between(Combinable, Node):
    __visit_name__ = "between"

    expr: Node
    low: Node
    high: Node
    negate: bool = False


@dataclass
class Exists(Combinable, Node):
    __visit_name__ = "exists"

    subquery: Node
    negate: bool = False


def exists(subquery: Any) -> Exists:
    return Exists(to_node(subquery))


def not_exists(subquery: Any) -> Exists:
    return Exists(to_node(subquery), negate=True)


# ---------------------------------------------------------------------------
# Arithmetic
# ---------------------------------------------------------------------------


@dataclass
class Infix(Expression):
    __visit_name__ = "infix"

    left: Node
    right: Node
    op: InfixOp


@dataclass
class UnaryMath(Expression):
    """Bitwise NOT: ``~expr``."""

    __visit_name__ = "unary_math"

    expr: Node


# ---------------------------------------------------------------------------
# CASE, aliases, ordering
# ---------------------------------------------------------------------------


@dataclass
class Case(Expression):
    """``CASE [operand] WHEN ... THEN ... [ELSE ...] END``.

    ``when`` and ``else_`` return a new node; the original is left untouched.
    """

    __visit_name__ = "case"

    operand: Node | None = None
    whens: list[tuple[Node, Node]] = field(default_factory=list)
    default: Node | None = None

    def when(self, condition: Any, result: Any) -> Case:
        return replace(self, whens=[*self.whens, (to_node(condition), to_node(result))])

    def else_(self, result: Any) -> Case:
        return replace(self, default=to_node(result))


def case(operand: Any = None) -> Case:
    return Case(operand=to_node(operand) if operand is not None else None)


@dataclass
class Alias(Expression):
    """``expr AS "name"`` in a projection list."""

    __visit_name__ = "alias"

    expr: Node
    name: str


@dataclass
class Ordering(Node):
    __visit_name__ = "ordering"

    expr: Node
    direction: Direction = Direction.ASC
    nulls: NullsOrder = NullsOrder.DEFAULT

    def nulls_first(self) -> Ordering:
        return replace(self, nulls=NullsOrder.FIRST)

    def nulls_last(self) -> Ordering:
        return replace(self, nulls=NullsOrder.LAST)
