"""treeql rendering layer: node tree -> SQL text plus bound parameters."""
from treeql.compile.base import CompiledSQL, SQLVisitor
from treeql.compile.clause_visitor import ClauseVisitor
from treeql.compile.expression_visitor import ExpressionVisitor
from treeql.compile.mysql import MySQLVisitor
from treeql.compile.postgres import PostgresVisitor
from treeql.compile.registry import VisitorFactory
from treeql.compile.sqlite import SQLiteVisitor

__all__ = [
    "CompiledSQL",
    "SQLVisitor",
    "ExpressionVisitor",
    "ClauseVisitor",
    "PostgresVisitor",
    "MySQLVisitor",
    "SQLiteVisitor",
    "VisitorFactory",
]
