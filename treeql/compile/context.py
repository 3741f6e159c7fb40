"""Per-render state.

A visitor creates a fresh :class:`RenderContext` at the start of every
:meth:`~treeql.compile.base.SQLVisitor.compile` call, so nothing from an
earlier (or failed) render leaks into the next one.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class RenderContext:
    """Accumulates bound parameters and scope information during one render.

    Attributes:
        params: Bound values in left-to-right source order.
        window_scopes: One set of declared window names per SELECT core
            currently being rendered (innermost last).
        set_op_branch: ``True`` while the next SELECT core to be rendered is
            a direct branch of a set operation.
    """

    params: list[Any] = field(default_factory=list)
    window_scopes: list[set[str]] = field(default_factory=list)
    set_op_branch: bool = False

    def add_param(self, value: Any) -> int:
        """Store a bound value and return its 1-based position."""
        self.params.append(value)
        return len(self.params)

    def window_declared(self, name: str) -> bool:
        return bool(self.window_scopes) and name in self.window_scopes[-1]
