"""Expression and predicate rendering.

``ExpressionVisitor`` renders every node that can appear inside a clause:
relations, attributes, literals, predicates, arithmetic, functions and
window specifications.  Statement-level nodes are rendered by
:class:`~treeql.compile.clause_visitor.ClauseVisitor`, which extends it.
"""
from __future__ import annotations

import re

from treeql.compile.base import SQLVisitor
from treeql.errors import MalformedAstError
from treeql.nodes.base import Node
from treeql.nodes.expressions import (
    Alias,
    And,
    Between,
    BindParam,
    Case,
    Comparison,
    Exists,
    Grouping,
    In,
    Infix,
    Literal,
    Not,
    Or,
    Ordering,
    SqlLiteral,
    Unary,
    UnaryMath,
)
from treeql.nodes.functions import (
    Aggregate,
    Cast,
    Extract,
    FrameBound,
    GroupingSet,
    NamedFunction,
    Over,
    WindowDefinition,
    WindowFrame,
    WindowFunction,
)
from treeql.nodes.operators import (
    BoundType,
    ComparisonOp,
    Direction,
    GroupingSetType,
    InfixOp,
    NullsOrder,
)
from treeql.nodes.relations import Attribute, Star, Table, TableAlias, relation_name
from treeql.nodes.statements import SelectCore, SetOperation

_FUNCTION_NAME = re.compile(r"^[A-Za-z0-9_]+$")
_TYPE_NAME = re.compile(r"^[A-Za-z0-9_ (),]+$")

# Infix operators whose relative precedence is the same in every dialect.
_ARITHMETIC_PRECEDENCE: dict[InfixOp, int] = {
    InfixOp.MULTIPLY: 2,
    InfixOp.DIVIDE: 2,
    InfixOp.PLUS: 1,
    InfixOp.MINUS: 1,
}


class ExpressionVisitor(SQLVisitor):
    """Shared rendering for expressions and predicates."""

    _COMPARISON_SQL: dict[ComparisonOp, str] = {
        ComparisonOp.EQ: "=",
        ComparisonOp.NOT_EQ: "!=",
        ComparisonOp.GT: ">",
        ComparisonOp.GT_EQ: ">=",
        ComparisonOp.LT: "<",
        ComparisonOp.LT_EQ: "<=",
        ComparisonOp.LIKE: "LIKE",
        ComparisonOp.NOT_LIKE: "NOT LIKE",
        ComparisonOp.REGEXP: "~",
        ComparisonOp.NOT_REGEXP: "!~",
        ComparisonOp.DISTINCT_FROM: "IS DISTINCT FROM",
        ComparisonOp.NOT_DISTINCT_FROM: "IS NOT DISTINCT FROM",
        ComparisonOp.CASE_SENSITIVE_EQ: "=",
        ComparisonOp.CASE_INSENSITIVE_EQ: "=",
        ComparisonOp.CONTAINS: "@>",
        ComparisonOp.OVERLAPS: "&&",
    }

    # ------------------------------------------------------------------
    # Relations
    # ------------------------------------------------------------------

    def visit_table(self, node: Table) -> str:
        return self.quote_identifier(node.name)

    def visit_table_alias(self, node: TableAlias) -> str:
        alias = self.quote_identifier(node.name)
        if isinstance(node.relation, Table):
            return f"{self.visit(node.relation)} AS {alias}"
        return f"({self.visit(node.relation)}) AS {alias}"

    def visit_attribute(self, node: Attribute) -> str:
        return f"{self._qualifier(node.relation, node)}.{self.quote_identifier(node.name)}"

    def visit_star(self, node: Star) -> str:
        if node.relation is None:
            return "*"
        return f"{self._qualifier(node.relation, node)}.*"

    def _qualifier(self, relation: Node, node: Node) -> str:
        name = relation_name(relation)
        if name is None:
            raise MalformedAstError(
                f"Column reference on {type(relation).__name__} needs a table or alias.",
                node=node,
            )
        return self.quote_identifier(name)

    # ------------------------------------------------------------------
    # Values
    # ------------------------------------------------------------------

    def visit_literal(self, node: Literal) -> str:
        return self.render_value(node.value)

    def visit_bind_param(self, node: BindParam) -> str:
        if self.parameterize:
            return self.bind(node.value)
        return self.format_literal(node.value)

    def visit_sql_literal(self, node: SqlLiteral) -> str:
        return node.raw

    # ------------------------------------------------------------------
    # Predicates
    # ------------------------------------------------------------------

    def visit_comparison(self, node: Comparison) -> str:
        left = self.operand(node.left)
        right = self.operand(node.right)
        if node.op is ComparisonOp.CASE_INSENSITIVE_EQ:
            return f"LOWER({left}) = LOWER({right})"
        return f"{left} {self._COMPARISON_SQL[node.op]} {right}"

    def visit_unary(self, node: Unary) -> str:
        return f"{self.operand(node.expr)} {node.op.value}"

    def visit_and(self, node: And) -> str:
        return f"{self.conjunct(node.left)} AND {self.conjunct(node.right)}"

    def visit_or(self, node: Or) -> str:
        return f"{self.visit(node.left)} OR {self.visit(node.right)}"

    def visit_not(self, node: Not) -> str:
        return f"NOT ({self.visit(node.expr)})"

    def visit_grouping(self, node: Grouping) -> str:
        return f"({self.visit(node.expr)})"

    def visit_in(self, node: In) -> str:
        if not node.values:
            raise MalformedAstError("IN requires at least one value.", node=node)
        expr = self.operand(node.expr)
        values = ", ".join(self.visit(v) for v in node.values)
        keyword = "NOT IN" if node.negate else "IN"
        return f"{expr} {keyword} ({values})"

    def visit_between(self, node: Between) -> str:
        expr = self.operand(node.expr)
        low = self.operand(node.low)
        high = self.operand(node.high)
        keyword = "NOT BETWEEN" if node.negate else "BETWEEN"
        return f"{expr} {keyword} {low} AND {high}"

    def visit_exists(self, node: Exists) -> str:
        prefix = "NOT EXISTS" if node.negate else "EXISTS"
        return f"{prefix} ({self.visit(node.subquery)})"

    def conjunct(self, node: Node) -> str:
        """Render one operand of an AND; a bare OR is parenthesised."""
        sql = self.visit(node)
        if isinstance(node, Or):
            return f"({sql})"
        return sql

    def operand(self, node: Node) -> str:
        """Render a value operand; subqueries are parenthesised."""
        sql = self.visit(node)
        if isinstance(node, (SelectCore, SetOperation)):
            return f"({sql})"
        return sql

    # ------------------------------------------------------------------
    # Arithmetic
    # ------------------------------------------------------------------

    def visit_infix(self, node: Infix) -> str:
        left = self._infix_operand(node.left, node.op, right_side=False)
        right = self._infix_operand(node.right, node.op, right_side=True)
        return f"{left} {node.op.value} {right}"

    def visit_unary_math(self, node: UnaryMath) -> str:
        expr = self.operand(node.expr)
        if isinstance(node.expr, (Infix, UnaryMath, Case)):
            expr = f"({expr})"
        return f"~{expr}"

    def _infix_operand(self, child: Node, parent_op: InfixOp, right_side: bool) -> str:
        sql = self.operand(child)
        if isinstance(child, (UnaryMath, Case)):
            return f"({sql})"
        if isinstance(child, Infix):
            child_rank = _ARITHMETIC_PRECEDENCE.get(child.op)
            parent_rank = _ARITHMETIC_PRECEDENCE.get(parent_op)
            if child_rank is None or parent_rank is None:
                return f"({sql})"
            if child_rank < parent_rank or (right_side and child_rank == parent_rank):
                return f"({sql})"
        return sql

    # ------------------------------------------------------------------
    # CASE, aliases, ordering
    # ------------------------------------------------------------------

    def visit_case(self, node: Case) -> str:
        parts = ["CASE"]
        if node.operand is not None:
            parts.append(self.operand(node.operand))
        for condition, result in node.whens:
            parts.append(f"WHEN {self.visit(condition)} THEN {self.operand(result)}")
        if node.default is not None:
            parts.append(f"ELSE {self.operand(node.default)}")
        parts.append("END")
        return " ".join(parts)

    def visit_alias(self, node: Alias) -> str:
        return f"{self.operand(node.expr)} AS {self.quote_identifier(node.name)}"

    def visit_ordering(self, node: Ordering) -> str:
        sql = f"{self.operand(node.expr)} {'DESC' if node.direction is Direction.DESC else 'ASC'}"
        if node.nulls is not NullsOrder.DEFAULT:
            sql = f"{sql} {node.nulls.value}"
        return sql

    # ------------------------------------------------------------------
    # Functions
    # ------------------------------------------------------------------

    def visit_aggregate(self, node: Aggregate) -> str:
        arg = "*" if node.expr is None else self.operand(node.expr)
        distinct = "DISTINCT " if node.distinct else ""
        sql = f"{node.func.value}({distinct}{arg})"
        if node.filter_where is not None:
            sql = f"{sql} FILTER (WHERE {self.visit(node.filter_where)})"
        return sql

    def visit_named_function(self, node: NamedFunction) -> str:
        if not _FUNCTION_NAME.match(node.name):
            raise MalformedAstError(f"Invalid SQL function name: {node.name!r}.", node=node)
        distinct = "DISTINCT " if node.distinct else ""
        args = ", ".join(self.operand(a) for a in node.args)
        return f"{node.name}({distinct}{args})"

    def visit_window_function(self, node: WindowFunction) -> str:
        args = ", ".join(self.operand(a) for a in node.args)
        return f"{node.func.value}({args})"

    def visit_over(self, node: Over) -> str:
        expr = self.visit(node.expr)
        if node.window_name is not None:
            if not self._context.window_declared(node.window_name):
                raise MalformedAstError(
                    f"OVER references unknown window '{node.window_name}'.", node=node
                )
            return f"{expr} OVER {self.quote_identifier(node.window_name)}"
        if node.window is None:
            return f"{expr} OVER ()"
        return f"{expr} OVER {self.visit(node.window)}"

    def visit_window_definition(self, node: WindowDefinition) -> str:
        return f"({self.window_body(node)})"

    def window_body(self, node: WindowDefinition) -> str:
        """Render the inside of a window specification (no parentheses)."""
        parts: list[str] = []
        if node.partition_by:
            parts.append("PARTITION BY " + ", ".join(self.operand(p) for p in node.partition_by))
        if node.order_by:
            parts.append("ORDER BY " + ", ".join(self.visit(o) for o in node.order_by))
        if node.frame is not None:
            parts.append(self._frame(node.frame))
        return " ".join(parts)

    def _frame(self, frame: WindowFrame) -> str:
        if frame.end is None:
            return f"{frame.type.value} {self._frame_bound(frame.start)}"
        return (
            f"{frame.type.value} BETWEEN {self._frame_bound(frame.start)}"
            f" AND {self._frame_bound(frame.end)}"
        )

    def _frame_bound(self, bound: FrameBound) -> str:
        if bound.type in (BoundType.PRECEDING, BoundType.FOLLOWING):
            if bound.offset is None:
                raise MalformedAstError(f"{bound.type.value} frame bound needs an offset.")
            return f"{self.visit(bound.offset)} {bound.type.value}"
        return bound.type.value

    def visit_extract(self, node: Extract) -> str:
        return f"EXTRACT({node.field.value} FROM {self.operand(node.expr)})"

    def visit_cast(self, node: Cast) -> str:
        if not _TYPE_NAME.match(node.type_name):
            raise MalformedAstError(f"Invalid SQL type name: {node.type_name!r}.", node=node)
        return f"CAST({self.operand(node.expr)} AS {node.type_name})"

    def visit_grouping_set(self, node: GroupingSet) -> str:
        if not node.sets:
            raise MalformedAstError(f"{node.type.value} requires at least one element.", node=node)
        if node.type is GroupingSetType.GROUPING_SETS:
            sets = ", ".join(
                "(" + ", ".join(self.visit(e) for e in element) + ")" for element in node.sets
            )
            return f"GROUPING SETS({sets})"
        elements: list[str] = []
        for element in node.sets:
            if not element:
                raise MalformedAstError(f"{node.type.value} elements cannot be empty.", node=node)
            if len(element) == 1:
                elements.append(self.visit(element[0]))
            else:
                elements.append("(" + ", ".join(self.visit(e) for e in element) + ")")
        return f"{node.type.value}({', '.join(elements)})"
