"""Function-call nodes: aggregates, named functions, window functions,
``OVER`` clauses, ``EXTRACT``, ``CAST``, and grouping sets.
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any

from treeql.nodes.base import Node
from treeql.nodes.expressions import Expression, SqlLiteral, to_node
from treeql.nodes.operators import (
    AggregateFunc,
    BoundType,
    ExtractField,
    FrameType,
    GroupingSetType,
    WindowFunc,
)

# ---------------------------------------------------------------------------
# Windows
# ---------------------------------------------------------------------------


@dataclass
class FrameBound:
    """One end of a window frame.  ``offset`` is set only for the
    ``N PRECEDING`` / ``N FOLLOWING`` forms."""

    type: BoundType
    offset: Node | None = None


def _frame_offset(n: Any) -> Node:
    # Integer offsets are emitted inline; MySQL rejects bound parameters here.
    if isinstance(n, int) and not isinstance(n, bool):
        return SqlLiteral(str(n))
    return to_node(n)


def unbounded_preceding() -> FrameBound:
    return FrameBound(BoundType.UNBOUNDED_PRECEDING)


def preceding(n: Any) -> FrameBound:
    return FrameBound(BoundType.PRECEDING, _frame_offset(n))


def current_row() -> FrameBound:
    return FrameBound(BoundType.CURRENT_ROW)


def following(n: Any) -> FrameBound:
    return FrameBound(BoundType.FOLLOWING, _frame_offset(n))


def unbounded_following() -> FrameBound:
    return FrameBound(BoundType.UNBOUNDED_FOLLOWING)


@dataclass
class WindowFrame:
    """``ROWS|RANGE start`` or ``ROWS|RANGE BETWEEN start AND end``."""

    type: FrameType
    start: FrameBound
    end: FrameBound | None = None


@dataclass
class WindowDefinition(Node):
    """An inline window specification, or a named one for the WINDOW clause.

    The fluent methods return new definitions::

        w = window("w").partition(emp.col("dept")).order(emp.col("salary").desc())
    """

    __visit_name__ = "window_definition"

    name: str | None = None
    partition_by: list[Node] = field(default_factory=list)
    order_by: list[Node] = field(default_factory=list)
    frame: WindowFrame | None = None

    def partition(self, *exprs: Any) -> WindowDefinition:
        return replace(self, partition_by=[*self.partition_by, *(to_node(e) for e in exprs)])

    def order(self, *orderings: Any) -> WindowDefinition:
        return replace(self, order_by=[*self.order_by, *(to_node(o) for o in orderings)])

    def rows(self, start: FrameBound, end: FrameBound | None = None) -> WindowDefinition:
        return replace(self, frame=WindowFrame(FrameType.ROWS, start, end))

    def range(self, start: FrameBound, end: FrameBound | None = None) -> WindowDefinition:
        return replace(self, frame=WindowFrame(FrameType.RANGE, start, end))


def window(name: str | None = None) -> WindowDefinition:
    return WindowDefinition(name=name)


@dataclass
class Over(Expression):
    """``func OVER (...)`` or ``func OVER "name"``."""

    __visit_name__ = "over"

    expr: Node
    window: WindowDefinition | None = None
    window_name: str | None = None


class Windowed:
    """Adds ``over`` / ``over_name`` to function nodes."""

    def over(self, definition: WindowDefinition | None = None) -> Over:
        return Over(self, window=definition)  # type: ignore[arg-type]

    def over_name(self, name: str) -> Over:
        return Over(self, window_name=name)  # type: ignore[arg-type]


# ---------------------------------------------------------------------------
# Functions
# ---------------------------------------------------------------------------


@dataclass
class Aggregate(Windowed, Expression):
    """``FUNC([DISTINCT] expr)``; ``expr=None`` renders ``FUNC(*)``."""

    __visit_name__ = "aggregate"

    func: AggregateFunc
    expr: Node | None = None
    distinct: bool = False
    filter_where: Node | None = None

    def filter(self, predicate: Node) -> Aggregate:
        """Return a copy with ``FILTER (WHERE predicate)``."""
        return replace(self, filter_where=predicate)


@dataclass
class NamedFunction(Windowed, Expression):
    """An arbitrary SQL function call.  The name is upper-cased and must
    consist of letters, digits, and underscores."""

    __visit_name__ = "named_function"

    name: str
    args: list[Node] = field(default_factory=list)
    distinct: bool = False

    def __post_init__(self) -> None:
        self.name = self.name.upper()


@dataclass
class WindowFunction(Windowed, Expression):
    __visit_name__ = "window_function"

    func: WindowFunc
    args: list[Node] = field(default_factory=list)


@dataclass
class Extract(Expression):
    __visit_name__ = "extract"

    field: ExtractField
    expr: Node


@dataclass
class Cast(Expression):
    """``CAST(expr AS type_name)``."""

    __visit_name__ = "cast"

    expr: Node
    type_name: str


@dataclass
class GroupingSet(Node):
    """``CUBE(...)``, ``ROLLUP(...)`` or ``GROUPING SETS (...)``.

    Each element of ``sets`` is a list of expressions.  For CUBE and ROLLUP a
    one-element list renders bare and a longer one renders parenthesised;
    GROUPING SETS always parenthesises, so ``[]`` renders ``()``.
    """

    __visit_name__ = "grouping_set"

    type: GroupingSetType
    sets: list[list[Node]] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _optional(expr: Any) -> Node | None:
    return None if expr is None else to_node(expr)


def count(expr: Any = None) -> Aggregate:
    return Aggregate(AggregateFunc.COUNT, _optional(expr))


def count_distinct(expr: Any) -> Aggregate:
    return Aggregate(AggregateFunc.COUNT, to_node(expr), distinct=True)


def sum_(expr: Any) -> Aggregate:
    return Aggregate(AggregateFunc.SUM, to_node(expr))


def avg(expr: Any) -> Aggregate:
    return Aggregate(AggregateFunc.AVG, to_node(expr))


def min_(expr: Any) -> Aggregate:
    return Aggregate(AggregateFunc.MIN, to_node(expr))


def max_(expr: Any) -> Aggregate:
    return Aggregate(AggregateFunc.MAX, to_node(expr))


def function(name: str, *args: Any, distinct: bool = False) -> NamedFunction:
    return NamedFunction(name, [to_node(a) for a in args], distinct=distinct)


def coalesce(*args: Any) -> NamedFunction:
    return function("COALESCE", *args)


def lower(expr: Any) -> NamedFunction:
    return function("LOWER", expr)


def upper(expr: Any) -> NamedFunction:
    return function("UPPER", expr)


def substring(expr: Any, start: Any, length: Any = None) -> NamedFunction:
    if length is None:
        return function("SUBSTRING", expr, start)
    return function("SUBSTRING", expr, start, length)


def cast(expr: Any, type_name: str) -> Cast:
    return Cast(to_node(expr), type_name)


def casted(value: Any, type_name: str) -> Cast:
    """Cast a plain Python value; the value follows the literal rendering path."""
    return Cast(to_node(value), type_name)


def extract(field_name: ExtractField | str, expr: Any) -> Extract:
    if not isinstance(field_name, ExtractField):
        field_name = ExtractField(field_name.upper())
    return Extract(field_name, to_node(expr))


def _window_func(func: WindowFunc, *args: Any) -> WindowFunction:
    return WindowFunction(func, [to_node(a) for a in args])


def _offset_args(expr: Any, offset: Any, default: Any) -> list[Any]:
    args = [expr]
    if offset is not None or default is not None:
        args.append(1 if offset is None else offset)
    if default is not None:
        args.append(default)
    return args


def row_number() -> WindowFunction:
    return _window_func(WindowFunc.ROW_NUMBER)


def rank() -> WindowFunction:
    return _window_func(WindowFunc.RANK)


def dense_rank() -> WindowFunction:
    return _window_func(WindowFunc.DENSE_RANK)


def cume_dist() -> WindowFunction:
    return _window_func(WindowFunc.CUME_DIST)


def percent_rank() -> WindowFunction:
    return _window_func(WindowFunc.PERCENT_RANK)


def ntile(buckets: Any) -> WindowFunction:
    return _window_func(WindowFunc.NTILE, buckets)


def lag(expr: Any, offset: Any = None, default: Any = None) -> WindowFunction:
    return _window_func(WindowFunc.LAG, *_offset_args(expr, offset, default))


def lead(expr: Any, offset: Any = None, default: Any = None) -> WindowFunction:
    return _window_func(WindowFunc.LEAD, *_offset_args(expr, offset, default))


def first_value(expr: Any) -> WindowFunction:
    return _window_func(WindowFunc.FIRST_VALUE, expr)


def last_value(expr: Any) -> WindowFunction:
    return _window_func(WindowFunc.LAST_VALUE, expr)


def nth_value(expr: Any, n: Any) -> WindowFunction:
    return _window_func(WindowFunc.NTH_VALUE, expr, n)


def _grouping_element(element: Any) -> list[Node]:
    if isinstance(element, (list, tuple)):
        return [to_node(e) for e in element]
    return [to_node(element)]


def cube(*elements: Any) -> GroupingSet:
    return GroupingSet(GroupingSetType.CUBE, [_grouping_element(e) for e in elements])


def rollup(*elements: Any) -> GroupingSet:
    return GroupingSet(GroupingSetType.ROLLUP, [_grouping_element(e) for e in elements])


def grouping_sets(*sets: Any) -> GroupingSet:
    return GroupingSet(GroupingSetType.GROUPING_SETS, [_grouping_element(s) for s in sets])
