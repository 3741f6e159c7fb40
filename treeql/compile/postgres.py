"""PostgreSQL dialect visitor."""
from __future__ import annotations

from treeql.compile.clause_visitor import ClauseVisitor
from treeql.quoting import double_quote


class PostgresVisitor(ClauseVisitor):
    """Renders trees as PostgreSQL.

    Parameter style: ``$1``, ``$2``, ... numbered by bind order, compatible
    with ``asyncpg`` and server-side prepared statements.

    Every operator in the shared table is native to PostgreSQL, so only
    quoting and placeholders are defined here.
    """

    @property
    def dialect_name(self) -> str:
        return "postgres"

    def quote_identifier(self, name: str) -> str:
        return double_quote(name)

    def placeholder(self, index: int) -> str:
        return f"${index}"
