"""MySQL dialect visitor."""
from __future__ import annotations

from treeql.compile.clause_visitor import ClauseVisitor
from treeql.errors import MalformedAstError
from treeql.nodes.expressions import Comparison, Infix
from treeql.nodes.operators import ComparisonOp, InfixOp
from treeql.nodes.statements import OnConflict, SelectCore
from treeql.quoting import backtick, escape_string


class MySQLVisitor(ClauseVisitor):
    """Renders trees as MySQL.

    Parameter style: ``?`` positional, compatible with ``mysqlclient`` and
    ``mysql-connector-python`` prepared statements.

    Identifiers are quoted with backticks (`` ` ``) rather than double-quotes.
    String literals also double backslashes, since MySQL treats ``\\`` as an
    escape character inside quoted strings.

    Note: ``||`` is logical OR in MySQL's default SQL mode, so concatenation
    is rendered as ``CONCAT(a, b)``.
    """

    _COMPARISON_SQL = {
        **ClauseVisitor._COMPARISON_SQL,
        ComparisonOp.REGEXP: "REGEXP",
        ComparisonOp.NOT_REGEXP: "NOT REGEXP",
        ComparisonOp.CASE_SENSITIVE_EQ: "= BINARY",
    }

    @property
    def dialect_name(self) -> str:
        return "mysql"

    def quote_identifier(self, name: str) -> str:
        return backtick(name)

    def placeholder(self, index: int) -> str:
        return "?"

    def escape_string(self, value: str) -> str:
        return escape_string(value.replace("\\", "\\\\"))

    def visit_comparison(self, node: Comparison) -> str:
        if node.op in (ComparisonOp.CONTAINS, ComparisonOp.OVERLAPS):
            raise MalformedAstError(f"MySQL has no '{node.op.value}' operator.", node=node)
        if node.op is ComparisonOp.CASE_INSENSITIVE_EQ:
            # Non-binary collations already compare case-insensitively.
            return f"{self.operand(node.left)} = {self.operand(node.right)}"
        if node.op is ComparisonOp.NOT_DISTINCT_FROM:
            return f"{self.operand(node.left)} <=> {self.operand(node.right)}"
        if node.op is ComparisonOp.DISTINCT_FROM:
            return f"NOT ({self.operand(node.left)} <=> {self.operand(node.right)})"
        return super().visit_comparison(node)

    def visit_infix(self, node: Infix) -> str:
        if node.op is InfixOp.CONCAT:
            return f"CONCAT({self.operand(node.left)}, {self.operand(node.right)})"
        return super().visit_infix(node)

    def visit_select_core(self, node: SelectCore) -> str:
        if node.distinct_on:
            raise MalformedAstError("MySQL does not support DISTINCT ON.", node=node)
        return super().visit_select_core(node)

    def visit_on_conflict(self, node: OnConflict) -> str:
        raise MalformedAstError("MySQL does not support ON CONFLICT.", node=node)
