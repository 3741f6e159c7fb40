"""Transformer base class.

A transformer rewrites a statement between building and rendering.  The
builder calls the hook for its statement kind on a private deep copy, so a
transformer may mutate the tree it receives and return it, or return a new
tree.  Raising aborts ``to_sql``.

Example::

    class TenantScope(Transformer):
        def __init__(self, tenant_id: int) -> None:
            self.tenant_id = tenant_id

        def transform_select(self, core: SelectCore) -> SelectCore:
            for ref in collect_tables(core):
                core.wheres.append(ref.relation.col("tenant_id").eq(self.tenant_id))
            return core
"""
from __future__ import annotations

from treeql.nodes.statements import (
    DeleteStatement,
    InsertStatement,
    SelectCore,
    UpdateStatement,
)


class Transformer:
    """Identity transformer; subclasses override the hooks they need."""

    def transform_select(self, core: SelectCore) -> SelectCore:
        return core

    def transform_insert(self, stmt: InsertStatement) -> InsertStatement:
        return stmt

    def transform_update(self, stmt: UpdateStatement) -> UpdateStatement:
        return stmt

    def transform_delete(self, stmt: DeleteStatement) -> DeleteStatement:
        return stmt
