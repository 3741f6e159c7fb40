"""SQLite dialect visitor."""
from __future__ import annotations

from dataclasses import replace

from treeql.compile.clause_visitor import ClauseVisitor
from treeql.errors import MalformedAstError
from treeql.nodes.expressions import Comparison, SqlLiteral
from treeql.nodes.operators import ComparisonOp
from treeql.nodes.statements import SelectCore, SetOperation
from treeql.quoting import double_quote


class SQLiteVisitor(ClauseVisitor):
    """Renders trees as SQLite.

    Parameter style: ``?`` positional, compatible with Python's built-in
    ``sqlite3`` execution (``cursor.execute(sql, params)``).

    Note: ``REGEXP`` only works once the connection registers a ``regexp``
    user function.  Compound SELECTs are written without parentheses, as
    SQLite does not accept parenthesised branches, and OFFSET without LIMIT
    is written as ``LIMIT -1 OFFSET n``.  LIKE carries ``ESCAPE '\\'``.
    """

    _COMPARISON_SQL = {
        **ClauseVisitor._COMPARISON_SQL,
        ComparisonOp.REGEXP: "REGEXP",
        ComparisonOp.NOT_REGEXP: "NOT REGEXP",
        ComparisonOp.DISTINCT_FROM: "IS NOT",
        ComparisonOp.NOT_DISTINCT_FROM: "IS",
    }

    @property
    def dialect_name(self) -> str:
        return "sqlite"

    def quote_identifier(self, name: str) -> str:
        return double_quote(name)

    def placeholder(self, index: int) -> str:
        return "?"

    def visit_comparison(self, node: Comparison) -> str:
        if node.op in (ComparisonOp.CONTAINS, ComparisonOp.OVERLAPS):
            raise MalformedAstError(f"SQLite has no '{node.op.value}' operator.", node=node)
        if node.op is ComparisonOp.CASE_SENSITIVE_EQ:
            return f"{self.operand(node.left)} = {self.operand(node.right)} COLLATE BINARY"
        if node.op is ComparisonOp.CASE_INSENSITIVE_EQ:
            return f"{self.operand(node.left)} = {self.operand(node.right)} COLLATE NOCASE"
        if node.op in (ComparisonOp.LIKE, ComparisonOp.NOT_LIKE):
            # SQLite has no default LIKE escape character.
            return f"{super().visit_comparison(node)} ESCAPE '\\'"
        return super().visit_comparison(node)

    def visit_select_core(self, node: SelectCore) -> str:
        if node.distinct_on:
            raise MalformedAstError("SQLite does not support DISTINCT ON.", node=node)
        if node.lock is not None:
            raise MalformedAstError("SQLite does not support row locking clauses.", node=node)
        if node.offset is not None and node.limit is None:
            # OFFSET is only valid after LIMIT; -1 means no limit.
            node = replace(node, limit=SqlLiteral("-1"))
        return super().visit_select_core(node)

    def visit_set_operation(self, node: SetOperation) -> str:
        if isinstance(node.right, SetOperation):
            raise MalformedAstError(
                "SQLite compound SELECTs must nest on the left.", node=node
            )
        left = self.set_op_branch(node.left)
        right = self.set_op_branch(node.right)
        return f"{left} {node.op.value} {right}"
