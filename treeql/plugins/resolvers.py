"""Column resolvers for mask expansion.

A column resolver maps a base table name to its ordered column names.  The
policy transformer needs one when masks apply to a ``SELECT *`` query,
because the star has to be expanded before individual columns can be
replaced.

SQLAlchemy resolver
-------------------
:func:`sqlalchemy_resolver` reads columns from a SQLAlchemy ``MetaData``
(already reflected or declared) or inspects an ``Engine`` on demand.

Install the optional dependency before using it::

    pip install "treeql[sqlalchemy]"
"""
from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from sqlalchemy import MetaData

ColumnResolver = Callable[[str], list[str]]


def mapping_resolver(columns: Mapping[str, Sequence[str]]) -> ColumnResolver:
    """Build a resolver from a static ``{table: [columns]}`` mapping.

    Unknown tables resolve to an empty list.

    Example::

        resolver = mapping_resolver({"orders": ["id", "account", "total"]})
    """
    snapshot = {table: list(cols) for table, cols in columns.items()}

    def resolve(table: str) -> list[str]:
        return list(snapshot.get(table, []))

    return resolve


def sqlalchemy_resolver(source: MetaData | Any, *, schema: str | None = None) -> ColumnResolver:
    """Build a resolver backed by SQLAlchemy.

    Args:
        source: A ``MetaData`` whose tables are already known, or anything
            :func:`sqlalchemy.inspect` accepts (an ``Engine`` or
            ``Connection``), which is inspected per call.
        schema: Optional schema name.

    Returns:
        A column resolver.

    Raises:
        ImportError: If ``sqlalchemy`` is not installed.

    Example::

        from sqlalchemy import create_engine
        engine = create_engine("sqlite:///app.db")
        opa = OPATransformer.from_server(..., column_resolver=sqlalchemy_resolver(engine))
    """
    try:
        from sqlalchemy import MetaData as _MetaData
        from sqlalchemy import inspect as _inspect
    except ImportError as exc:
        raise ImportError(
            "SQLAlchemy is required for sqlalchemy_resolver(). "
            'Install it with: pip install "treeql[sqlalchemy]"'
        ) from exc

    if isinstance(source, _MetaData):
        metadata = source

        def resolve_metadata(table: str) -> list[str]:
            key = f"{schema}.{table}" if schema else table
            sa_table = metadata.tables.get(key)
            if sa_table is None:
                return []
            return [column.name for column in sa_table.columns]

        return resolve_metadata

    inspector = _inspect(source)

    def resolve_inspector(table: str) -> list[str]:
        return [column["name"] for column in inspector.get_columns(table, schema=schema)]

    return resolve_inspector
