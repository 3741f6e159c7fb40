"""treeql: composable SQL query building for Postgres, MySQL and SQLite.

Build the tree, transform it, render it.

Public API
----------
``SelectBuilder``, ``InsertBuilder``, ``UpdateBuilder``, ``DeleteBuilder``
    Fluent builders over the statement records.  ``to_sql(visitor)`` deep
    copies the statement, runs the registered transformers in order and
    renders the result.

``render``
    Render any node (a set operation, a bare predicate) for a dialect.

``PostgresVisitor``, ``MySQLVisitor``, ``SQLiteVisitor``
    Dialect renderers.  Parameterised by default: values are bound and
    replaced with ``$N`` (Postgres) or ``?`` (MySQL, SQLite).

``SoftDelete``, ``OPATransformer``
    Built-in transformers.

Re-exported types
-----------------
The node model (``Table``, ``Attribute``, ``SelectCore``, ...), function
helpers, ``CompiledSQL`` and all error classes.

Extensibility
-------------
New dialects can be registered via::

    from treeql.compile.registry import VisitorFactory

    @VisitorFactory.register("cockroach")
    class CockroachVisitor(PostgresVisitor):
        ...

After registration, ``to_sql("cockroach")`` and ``render(node, "cockroach")``
pick it up automatically.
"""
from __future__ import annotations

from treeql.builders import (
    DeleteBuilder,
    InsertBuilder,
    SelectBuilder,
    TreeManager,
    UpdateBuilder,
    delete_from,
    insert_into,
    select,
    update,
)
from treeql.compile.base import CompiledSQL, SQLVisitor
from treeql.compile.mysql import MySQLVisitor
from treeql.compile.postgres import PostgresVisitor
from treeql.compile.registry import VisitorFactory
from treeql.compile.sqlite import SQLiteVisitor
from treeql.errors import (
    MalformedAstError,
    PolicyBadResponseError,
    PolicyDenyError,
    PolicyError,
    PolicyMalformedExpressionError,
    PolicyUnreachableError,
    PolicyUnsupportedOperatorError,
    ResolverRequiredError,
    TransformerRejectedError,
    TreeQLError,
)
from treeql.nodes import (
    Attribute,
    Node,
    SelectCore,
    Star,
    Table,
    TableAlias,
    avg,
    case,
    cast,
    casted,
    coalesce,
    collect_tables,
    count,
    count_distinct,
    cube,
    exists,
    extract,
    function,
    grouping_sets,
    max_,
    min_,
    not_exists,
    rollup,
    sum_,
    window,
)
from treeql.plugins import (
    OPAClient,
    OPAConfig,
    OPATransformer,
    SoftDelete,
    SoftDeleteConfig,
    Transformer,
    mapping_resolver,
    sqlalchemy_resolver,
)

# ---------------------------------------------------------------------------
# Register built-in dialects with VisitorFactory
# ---------------------------------------------------------------------------

VisitorFactory.register_class("postgres", PostgresVisitor)
VisitorFactory.register_class("mysql", MySQLVisitor)
VisitorFactory.register_class("sqlite", SQLiteVisitor)

__all__ = [
    # Rendering
    "render",
    "CompiledSQL",
    "SQLVisitor",
    "VisitorFactory",
    "PostgresVisitor",
    "MySQLVisitor",
    "SQLiteVisitor",
    # Builders
    "TreeManager",
    "SelectBuilder",
    "InsertBuilder",
    "UpdateBuilder",
    "DeleteBuilder",
    "select",
    "insert_into",
    "update",
    "delete_from",
    # Nodes
    "Node",
    "Table",
    "TableAlias",
    "Attribute",
    "Star",
    "SelectCore",
    "collect_tables",
    "exists",
    "not_exists",
    "case",
    "cast",
    "casted",
    "extract",
    "function",
    "coalesce",
    "count",
    "count_distinct",
    "sum_",
    "avg",
    "min_",
    "max_",
    "window",
    "cube",
    "rollup",
    "grouping_sets",
    # Transformers
    "Transformer",
    "SoftDelete",
    "SoftDeleteConfig",
    "OPATransformer",
    "OPAClient",
    "OPAConfig",
    "mapping_resolver",
    "sqlalchemy_resolver",
    # Errors
    "TreeQLError",
    "MalformedAstError",
    "TransformerRejectedError",
    "PolicyError",
    "PolicyDenyError",
    "PolicyUnreachableError",
    "PolicyBadResponseError",
    "PolicyUnsupportedOperatorError",
    "PolicyMalformedExpressionError",
    "ResolverRequiredError",
]


def render(node: Node, dialect: str | SQLVisitor = "postgres", parameterize: bool = True) -> CompiledSQL:
    """Render a bare node for a dialect.

    Args:
        node: Any node, e.g. a set operation or a subquery.
        dialect: A registered dialect name or a visitor instance.
        parameterize: Used when ``dialect`` is a name.

    Returns:
        ``CompiledSQL`` with ``sql``, ``params`` and ``dialect``.

    Raises:
        MalformedAstError: If the tree cannot be rendered.
    """
    visitor = (
        VisitorFactory.create(dialect, parameterize=parameterize)
        if isinstance(dialect, str)
        else dialect
    )
    return visitor.compile(node)
