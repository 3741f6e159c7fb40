"""Soft-delete transformer.

Appends ``<relation>.<column> IS NULL`` to the WHERE list of a SELECT for
every referenced table that is subject to soft deletion, so rows marked as
deleted are filtered out without every query having to remember it.

Three configurations are supported:

* one column for every table (default ``deleted_at``)::

      SoftDelete()

* the same column, but only for whitelisted tables::

      SoftDelete(SoftDeleteConfig().with_tables("users", "posts"))

* a column per table (listed tables are added to the whitelist)::

      SoftDelete(SoftDeleteConfig().with_table_column("posts", "removed_at"))

Only SELECT statements are affected.  Conditions are qualified by the
relation as it appears in the query, so aliased tables stay correct.
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace

from treeql.nodes.relations import Attribute
from treeql.nodes.statements import SelectCore, collect_tables
from treeql.plugins.transformer import Transformer

DEFAULT_COLUMN = "deleted_at"


@dataclass
class SoftDeleteConfig:
    """Which tables are soft-deleted, and through which column.

    Attributes:
        column: Column used for tables without an entry in ``table_columns``.
        tables: Whitelist of table names.  Empty means every table.
        table_columns: Per-table column overrides.
    """

    column: str = DEFAULT_COLUMN
    tables: list[str] = field(default_factory=list)
    table_columns: dict[str, str] = field(default_factory=dict)

    def with_column(self, column: str) -> SoftDeleteConfig:
        return replace(self, column=column)

    def with_tables(self, *tables: str) -> SoftDeleteConfig:
        return replace(self, tables=[*self.tables, *tables])

    def with_table_column(self, table: str, column: str) -> SoftDeleteConfig:
        tables = self.tables if table in self.tables else [*self.tables, table]
        return replace(
            self, tables=tables, table_columns={**self.table_columns, table: column}
        )

    def column_for(self, table: str) -> str | None:
        """Return the soft-delete column for ``table``, or ``None`` if exempt."""
        if self.tables and table not in self.tables:
            return None
        return self.table_columns.get(table, self.column)


class SoftDelete(Transformer):
    """Filters soft-deleted rows out of SELECT statements.

    Args:
        config: Table and column selection; defaults to ``deleted_at`` on
            every table.
    """

    def __init__(self, config: SoftDeleteConfig | None = None) -> None:
        self.config = config or SoftDeleteConfig()

    def transform_select(self, core: SelectCore) -> SelectCore:
        for ref in collect_tables(core):
            column = self.config.column_for(ref.name)
            if column is None:
                continue
            core.wheres.append(Attribute(ref.relation, column).is_null())
        return core
