"""Relations (tables, aliases) and the column references bound to them."""
from __future__ import annotations

from dataclasses import dataclass

from treeql.nodes.base import Node
from treeql.nodes.expressions import Expression


@dataclass
class Table(Node):
    """A named base table.

    Example::

        users = Table("users")
        users.col("id").eq(42)
    """

    __visit_name__ = "table"

    name: str

    def col(self, name: str) -> Attribute:
        return Attribute(self, name)

    def alias(self, name: str) -> TableAlias:
        return TableAlias(self, name)

    def star(self) -> Star:
        return Star(self)


@dataclass
class TableAlias(Node):
    """A relation renamed with ``AS``.

    ``relation`` is usually a :class:`Table` but may be a subquery.  Columns
    obtained from an alias are qualified by the alias name.
    """

    __visit_name__ = "table_alias"

    relation: Node
    name: str

    def col(self, name: str) -> Attribute:
        return Attribute(self, name)

    def star(self) -> Star:
        return Star(self)


@dataclass
class Attribute(Expression):
    """A column qualified by its relation: ``"users"."id"``."""

    __visit_name__ = "attribute"

    relation: Node
    name: str


@dataclass
class Star(Node):
    """``*`` or ``"t".*``."""

    __visit_name__ = "star"

    relation: Node | None = None


def relation_name(relation: Node) -> str | None:
    """Return the name a column reference is qualified with, if any."""
    if isinstance(relation, Table):
        return relation.name
    if isinstance(relation, TableAlias):
        return relation.name
    return None


def table_source_name(relation: Node) -> str | None:
    """Return the base table name behind ``relation``.

    Aliases over a :class:`Table` unwrap to the table's own name; aliases
    over anything else keep the alias name.
    """
    if isinstance(relation, Table):
        return relation.name
    if isinstance(relation, TableAlias):
        if isinstance(relation.relation, Table):
            return relation.relation.name
        return relation.name
    return None
