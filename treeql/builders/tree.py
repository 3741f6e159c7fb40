"""Shared builder machinery: transformer registration and rendering.

``TreeManager`` is the base of every statement builder.  It owns the
transformer list and implements :meth:`TreeManager.to_sql`, which

1. deep-copies the builder's statement, so the builder is never changed
   by rendering,
2. passes the copy through each registered transformer in order, each
   output feeding the next, and
3. hands the final tree to the visitor.

Any failure aborts the whole call; no partial SQL is returned.
"""
from __future__ import annotations

import copy
import logging
from abc import ABC, abstractmethod
from typing import Any, TypeVar

from treeql.compile.base import CompiledSQL, SQLVisitor
from treeql.compile.registry import VisitorFactory
from treeql.errors import TransformerRejectedError, TreeQLError
from treeql.nodes.base import Node
from treeql.nodes.expressions import to_node
from treeql.nodes.statements import Cte

logger = logging.getLogger(__name__)

_T = TypeVar("_T", bound="TreeManager")


class TreeManager(ABC):
    """Base class for the fluent statement builders.

    Subclasses set ``transform_hook`` to the name of the transformer method
    that handles their statement kind and expose the statement as
    :attr:`statement`.
    """

    transform_hook = "transform_select"

    def __init__(self) -> None:
        self._transformers: list[Any] = []

    @property
    @abstractmethod
    def statement(self) -> Node:
        """The statement record this builder fills in."""

    @property
    def transformers(self) -> tuple[Any, ...]:
        """Registered transformers, in application order."""
        return tuple(self._transformers)

    def use(self: _T, transformer: Any) -> _T:
        """Register a transformer to run on every :meth:`to_sql` call."""
        self._transformers.append(transformer)
        return self

    def with_(self: _T, name: str, query: Any, columns: list[str] | None = None) -> _T:
        """Add a common table expression: ``WITH name [(columns)] AS (query)``."""
        self.statement.ctes.append(Cte(name, to_node(query), columns=list(columns or [])))  # type: ignore[attr-defined]
        return self

    def with_recursive(
        self: _T, name: str, query: Any, columns: list[str] | None = None
    ) -> _T:
        """Add a recursive CTE; the statement renders ``WITH RECURSIVE``."""
        self.statement.ctes.append(  # type: ignore[attr-defined]
            Cte(name, to_node(query), recursive=True, columns=list(columns or []))
        )
        return self

    def as_node(self) -> Node:
        """Return the statement this builder wraps (shared, not copied)."""
        return self.statement

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def transformed(self) -> Node:
        """Return a transformed deep copy of the statement."""
        return self._apply(copy.deepcopy(self.statement))

    def to_sql(self, visitor: SQLVisitor | str) -> CompiledSQL:
        """Render the statement after running the transformer pipeline.

        Args:
            visitor: A visitor instance, or a registered dialect name such
                as ``"postgres"`` (parameterised mode).

        Returns:
            The SQL text with its bound parameters.

        Raises:
            TransformerRejectedError: If a transformer fails.
            MalformedAstError: If the final tree cannot be rendered.
        """
        if isinstance(visitor, str):
            visitor = VisitorFactory.create(visitor)
        return visitor.compile(self.transformed())

    def _apply(self, tree: Node) -> Node:
        # Iterate over a snapshot: a transformer cannot alter the pipeline.
        for transformer in list(self._transformers):
            name = type(transformer).__name__
            logger.debug("Applying transformer %s via %s", name, self.transform_hook)
            hook = getattr(transformer, self.transform_hook, None)
            if hook is None:
                raise TransformerRejectedError(
                    f"Transformer {name} does not implement {self.transform_hook}.",
                    transformer=transformer,
                )
            try:
                result = hook(tree)
            except TreeQLError:
                raise
            except Exception as exc:
                raise TransformerRejectedError(
                    f"Transformer {name} failed: {exc}", transformer=transformer
                ) from exc
            if result is None:
                raise TransformerRejectedError(
                    f"Transformer {name} returned no statement.", transformer=transformer
                )
            tree = result
        return tree
