"""Visitor registry.

``VisitorFactory`` maps dialect names to :class:`SQLVisitor` subclasses so
that callers (and ``to_sql("postgres")``) can select a dialect by name, and
so a new dialect can be added without editing the package.

Usage::

    from treeql.compile.registry import VisitorFactory

    @VisitorFactory.register("cockroach")
    class CockroachVisitor(PostgresVisitor):
        ...

    visitor = VisitorFactory.create("cockroach", parameterize=False)
"""
from __future__ import annotations

from collections.abc import Callable
from typing import ClassVar

from treeql.compile.base import SQLVisitor
from treeql.errors import TreeQLError


class VisitorFactory:
    """Registry mapping dialect names to :class:`SQLVisitor` classes."""

    _visitors: ClassVar[dict[str, type[SQLVisitor]]] = {}

    @classmethod
    def register(cls, name: str) -> Callable[[type[SQLVisitor]], type[SQLVisitor]]:
        """Decorator that registers a visitor class under ``name``.

        Args:
            name: The dialect name (e.g. ``"postgres"``).

        Returns:
            A decorator that registers and returns the visitor class.
        """

        def decorator(visitor_cls: type[SQLVisitor]) -> type[SQLVisitor]:
            cls._visitors[name] = visitor_cls
            return visitor_cls

        return decorator

    @classmethod
    def register_class(cls, name: str, visitor_cls: type[SQLVisitor]) -> None:
        """Register a visitor class without using the decorator form."""
        cls._visitors[name] = visitor_cls

    @classmethod
    def create(cls, name: str, parameterize: bool = True) -> SQLVisitor:
        """Instantiate the visitor registered for ``name``.

        Args:
            name: The dialect name.
            parameterize: Passed through to the visitor.

        Returns:
            A fresh :class:`SQLVisitor` instance.

        Raises:
            TreeQLError: If no visitor is registered for ``name``.
        """
        visitor_cls = cls._visitors.get(name)
        if visitor_cls is None:
            registered = sorted(cls._visitors)
            raise TreeQLError(
                f"Unsupported dialect: '{name}'. Registered dialects: {registered}.",
                code="UNSUPPORTED_DIALECT",
            )
        return visitor_cls(parameterize=parameterize)

    @classmethod
    def registered_targets(cls) -> list[str]:
        """Return the sorted list of registered dialect names."""
        return sorted(cls._visitors)
