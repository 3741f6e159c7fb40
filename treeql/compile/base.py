"""Renderer abstractions: CompiledSQL and the SQLVisitor ABC.

The Template Method pattern (GoF) is used:
- ``SQLVisitor`` owns the render lifecycle (reset, traverse, collect
  parameters) and literal formatting.
- ``ExpressionVisitor`` and ``ClauseVisitor`` implement the shared
  ``visit_<kind>`` methods.
- ``PostgresVisitor``, ``MySQLVisitor`` and ``SQLiteVisitor`` override the
  dialect-specific steps (quoting, placeholder style, a handful of operator
  spellings).

Every recursive call goes through ``self.visit(child)``, so an override on
the concrete dialect class is used even when the call starts in shared code.
"""
from __future__ import annotations

import datetime
import decimal
import math
from abc import ABC, abstractmethod
from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any

from treeql.compile.context import RenderContext
from treeql.errors import MalformedAstError
from treeql.nodes.base import Node
from treeql.quoting import escape_string


@dataclass
class CompiledSQL:
    """The output of a successful render.

    Attributes:
        sql: The SQL text.
        params: Bound values, in placeholder order.  Empty in inline mode.
        dialect: The dialect that produced the text (``'postgres'``,
            ``'mysql'`` or ``'sqlite'``).

    Unpacks as ``(sql, params)``::

        sql, params = builder.to_sql(PostgresVisitor())
        cursor.execute(sql, params)
    """

    sql: str
    params: list[Any] = field(default_factory=list)
    dialect: str = ""

    def __iter__(self) -> Iterator[Any]:
        yield self.sql
        yield self.params


class SQLVisitor(ABC):
    """Abstract base for dialect-specific renderers.

    Args:
        parameterize: When ``True`` (the default) literal values are bound
            and replaced by placeholders.  When ``False`` they are formatted
            inline; use that only for debugging or trusted values.
    """

    def __init__(self, parameterize: bool = True) -> None:
        self.parameterize = parameterize
        self._context = RenderContext()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def compile(self, node: Node) -> CompiledSQL:
        """Render ``node`` and return its SQL text with bound parameters.

        The parameter vector is reset first.  If rendering fails the
        visitor is reset again, so no partial parameters remain visible.

        Raises:
            MalformedAstError: If the tree violates a render-time invariant.
        """
        self.reset()
        try:
            sql = self.visit(node)
        except Exception:
            self.reset()
            raise
        return CompiledSQL(sql=sql, params=list(self._context.params), dialect=self.dialect_name)

    def visit(self, node: Any) -> str:
        """Render a single node through this (outermost) visitor."""
        if not isinstance(node, Node):
            raise MalformedAstError(
                f"Expected an AST node, got {type(node).__name__}: {node!r}."
            )
        return node.accept(self)

    @property
    def params(self) -> list[Any]:
        """Bound parameters collected by the most recent render."""
        return list(self._context.params)

    def reset(self) -> None:
        """Discard all per-render state."""
        self._context = RenderContext()

    # ------------------------------------------------------------------
    # Dialect hooks
    # ------------------------------------------------------------------

    @property
    @abstractmethod
    def dialect_name(self) -> str:
        """Return the canonical dialect name."""

    @abstractmethod
    def quote_identifier(self, name: str) -> str:
        """Return a properly-quoted SQL identifier.

        Args:
            name: Unquoted identifier (table, column, alias, window name).

        Returns:
            Quoted identifier.
        """

    @abstractmethod
    def placeholder(self, index: int) -> str:
        """Return the bind placeholder for the ``index``-th parameter (1-based)."""

    def escape_string(self, value: str) -> str:
        """Escape a string for an inline single-quoted literal."""
        return escape_string(value)

    # ------------------------------------------------------------------
    # Literal handling
    # ------------------------------------------------------------------

    def bind(self, value: Any) -> str:
        """Append ``value`` to the parameter vector and return its placeholder."""
        return self.placeholder(self._context.add_param(value))

    def render_value(self, value: Any) -> str:
        """Render a Python value following the visitor's parameter mode.

        ``None`` is always ``NULL`` and never bound.
        """
        if value is None:
            return "NULL"
        if self.parameterize:
            return self.bind(value)
        return self.format_literal(value)

    def format_literal(self, value: Any) -> str:
        """Format ``value`` as an inline SQL literal.

        Raises:
            MalformedAstError: If the value has no SQL literal form.
        """
        if value is None:
            return "NULL"
        if isinstance(value, bool):
            return "TRUE" if value else "FALSE"
        if isinstance(value, int):
            return str(value)
        if isinstance(value, float):
            if math.isnan(value) or math.isinf(value):
                raise MalformedAstError(f"Non-finite float {value!r} has no SQL literal form.")
            return repr(value)
        if isinstance(value, decimal.Decimal):
            if not value.is_finite():
                raise MalformedAstError(f"Non-finite decimal {value!r} has no SQL literal form.")
            return str(value)
        if isinstance(value, str):
            return f"'{self.escape_string(value)}'"
        if isinstance(value, (datetime.date, datetime.time)):
            return f"'{value.isoformat()}'"
        raise MalformedAstError(
            f"Unsupported literal type {type(value).__name__}: {value!r}."
        )
