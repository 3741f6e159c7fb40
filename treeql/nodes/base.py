"""Root of the node model.

Every AST node derives from :class:`Node`.  A node knows nothing about SQL
text; :meth:`Node.accept` only routes the node to the visitor method named
after its ``__visit_name__``.  Because the lookup goes through the visitor
instance, a dialect subclass that overrides ``visit_comparison`` is honoured
no matter which shared method triggered the traversal.
"""
from __future__ import annotations

from typing import TYPE_CHECKING, ClassVar

from treeql.errors import MalformedAstError

if TYPE_CHECKING:
    from treeql.compile.base import SQLVisitor


class Node:
    """Base class for all AST nodes."""

    __visit_name__: ClassVar[str] = "node"

    def accept(self, visitor: SQLVisitor) -> str:
        """Dispatch to ``visitor.visit_<kind>(self)`` and return the SQL text.

        Raises:
            MalformedAstError: If the visitor has no method for this node kind.
        """
        method = getattr(visitor, f"visit_{self.__visit_name__}", None)
        if method is None:
            raise MalformedAstError(
                f"{type(visitor).__name__} cannot render {type(self).__name__} nodes.",
                node=self,
            )
        return method(self)
