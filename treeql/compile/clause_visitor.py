"""Statement and clause rendering.

``ClauseVisitor`` adds the statement-level nodes on top of
:class:`~treeql.compile.expression_visitor.ExpressionVisitor`: SELECT
cores, joins, CTEs, set operations, and the three DML statements.  Each
``visit_*`` method assembles one statement in canonical clause order.
"""
from __future__ import annotations

from treeql.compile.expression_visitor import ExpressionVisitor
from treeql.errors import MalformedAstError
from treeql.nodes.base import Node
from treeql.nodes.functions import WindowDefinition
from treeql.nodes.operators import ConflictAction, JoinType
from treeql.nodes.relations import Attribute
from treeql.nodes.statements import (
    Assignment,
    Cte,
    DeleteStatement,
    InsertStatement,
    Join,
    OnConflict,
    SelectCore,
    SetOperation,
    UpdateStatement,
)


def _sanitize_comment(text: str) -> str:
    return text.replace("*/", "* /")


class ClauseVisitor(ExpressionVisitor):
    """Shared rendering for SELECT cores, set operations, and DML."""

    # ------------------------------------------------------------------
    # SELECT
    # ------------------------------------------------------------------

    def visit_select_core(self, node: SelectCore) -> str:
        in_set_op = self._context.set_op_branch
        self._context.set_op_branch = False

        if node.from_ is None and not node.ctes and not in_set_op:
            raise MalformedAstError("SELECT requires a FROM relation.", node=node)
        if node.distinct and node.distinct_on:
            raise MalformedAstError(
                "DISTINCT and DISTINCT ON cannot be combined.", node=node
            )

        self._context.window_scopes.append({w.name for w in node.windows if w.name})
        try:
            return self._select_sql(node)
        finally:
            self._context.window_scopes.pop()

    def _select_sql(self, node: SelectCore) -> str:
        sql = ""
        if node.comment is not None:
            sql += f"/* {_sanitize_comment(node.comment)} */ "
        sql += self.with_prefix(node.ctes)

        sql += "SELECT "
        if node.hints:
            sql += f"/*+ {' '.join(_sanitize_comment(h) for h in node.hints)} */ "
        if node.distinct_on:
            sql += f"DISTINCT ON ({', '.join(self.operand(e) for e in node.distinct_on)}) "
        elif node.distinct:
            sql += "DISTINCT "
        if node.projections:
            sql += ", ".join(self.operand(p) for p in node.projections)
        else:
            sql += "*"

        if node.from_ is not None:
            sql += f" FROM {self.operand(node.from_)}"
        for join in node.joins:
            sql += f" {self.visit(join)}"
        if node.wheres:
            sql += f" WHERE {self.conjunction(node.wheres)}"
        if node.groups:
            sql += f" GROUP BY {', '.join(self.operand(g) for g in node.groups)}"
        if node.havings:
            sql += f" HAVING {self.conjunction(node.havings)}"
        if node.windows:
            sql += f" WINDOW {', '.join(self._named_window(w) for w in node.windows)}"
        if node.orders:
            sql += f" ORDER BY {', '.join(self.visit(o) for o in node.orders)}"
        if node.limit is not None:
            sql += f" LIMIT {self.visit(node.limit)}"
        if node.offset is not None:
            sql += f" OFFSET {self.visit(node.offset)}"
        if node.lock is not None:
            sql += f" {node.lock.value}"
            if node.skip_locked:
                sql += " SKIP LOCKED"
        return sql

    def _named_window(self, node: WindowDefinition) -> str:
        if not node.name:
            raise MalformedAstError("WINDOW clause entries must be named.", node=node)
        return f"{self.quote_identifier(node.name)} AS ({self.window_body(node)})"

    def conjunction(self, predicates: list[Node]) -> str:
        """AND-join a WHERE or HAVING list."""
        return " AND ".join(self.conjunct(p) for p in predicates)

    def visit_join(self, node: Join) -> str:
        if node.type is JoinType.STRING:
            return self.visit(node.right)
        sql = node.type.value
        if node.lateral:
            sql += " LATERAL"
        sql += f" {self.operand(node.right)}"
        if node.type is JoinType.CROSS:
            return sql
        if node.on is None:
            raise MalformedAstError(f"{node.type.value} requires an ON predicate.", node=node)
        return f"{sql} ON {self.visit(node.on)}"

    # ------------------------------------------------------------------
    # CTEs and set operations
    # ------------------------------------------------------------------

    def with_prefix(self, ctes: list[Cte]) -> str:
        """Render ``WITH [RECURSIVE] ...`` followed by a space, or ``""``."""
        if not ctes:
            return ""
        keyword = "WITH RECURSIVE" if any(c.recursive for c in ctes) else "WITH"
        return f"{keyword} {', '.join(self.visit(c) for c in ctes)} "

    def visit_cte(self, node: Cte) -> str:
        sql = self.quote_identifier(node.name)
        if node.columns:
            sql += f" ({', '.join(self.quote_identifier(c) for c in node.columns)})"
        return f"{sql} AS ({self.visit(node.query)})"

    def visit_set_operation(self, node: SetOperation) -> str:
        left = self.set_op_branch(node.left)
        right = self.set_op_branch(node.right)
        return f"({left}) {node.op.value} ({right})"

    def set_op_branch(self, node: Node) -> str:
        """Render one side of a set operation.

        A SELECT core placed directly under a set operation may omit FROM.
        """
        if isinstance(node, SelectCore):
            self._context.set_op_branch = True
        return self.visit(node)

    # ------------------------------------------------------------------
    # DML
    # ------------------------------------------------------------------

    def column_name(self, node: Node) -> str:
        """Render a DML target column unqualified."""
        if isinstance(node, Attribute):
            return self.quote_identifier(node.name)
        return self.visit(node)

    def returning(self, items: list[Node]) -> str:
        if not items:
            return ""
        return f" RETURNING {', '.join(self.operand(i) for i in items)}"

    def visit_assignment(self, node: Assignment) -> str:
        return f"{self.column_name(node.column)} = {self.operand(node.value)}"

    def visit_on_conflict(self, node: OnConflict) -> str:
        sql = "ON CONFLICT"
        if node.columns:
            sql += f" ({', '.join(self.column_name(c) for c in node.columns)})"
        if node.action is ConflictAction.DO_NOTHING:
            return f"{sql} DO NOTHING"
        if not node.assignments:
            raise MalformedAstError("DO UPDATE requires at least one assignment.", node=node)
        sql += f" DO UPDATE SET {', '.join(self.visit(a) for a in node.assignments)}"
        if node.wheres:
            sql += f" WHERE {self.conjunction(node.wheres)}"
        return sql

    def visit_insert_statement(self, node: InsertStatement) -> str:
        sql = f"{self.with_prefix(node.ctes)}INSERT INTO {self.visit(node.into)}"
        if node.columns:
            sql += f" ({', '.join(self.column_name(c) for c in node.columns)})"

        if node.select is not None:
            if node.values:
                raise MalformedAstError(
                    "INSERT cannot have both VALUES rows and a SELECT source.", node=node
                )
            sql += f" {self.visit(node.select)}"
        elif node.values:
            width = len(node.columns) if node.columns else len(node.values[0])
            rows: list[str] = []
            for row in node.values:
                if len(row) != width:
                    raise MalformedAstError(
                        f"INSERT row has {len(row)} values, expected {width}.",
                        node=node,
                    )
                rows.append(f"({', '.join(self.operand(v) for v in row)})")
            sql += f" VALUES {', '.join(rows)}"
        else:
            raise MalformedAstError("INSERT requires VALUES rows or a SELECT source.", node=node)

        if node.on_conflict is not None:
            sql += f" {self.visit(node.on_conflict)}"
        return sql + self.returning(node.returning)

    def visit_update_statement(self, node: UpdateStatement) -> str:
        if not node.assignments:
            raise MalformedAstError("UPDATE requires at least one SET assignment.", node=node)
        sql = f"{self.with_prefix(node.ctes)}UPDATE {self.visit(node.table)}"
        sql += f" SET {', '.join(self.visit(a) for a in node.assignments)}"
        if node.wheres:
            sql += f" WHERE {self.conjunction(node.wheres)}"
        return sql + self.returning(node.returning)

    def visit_delete_statement(self, node: DeleteStatement) -> str:
        sql = f"{self.with_prefix(node.ctes)}DELETE FROM {self.visit(node.from_)}"
        if node.wheres:
            sql += f" WHERE {self.conjunction(node.wheres)}"
        return sql + self.returning(node.returning)
