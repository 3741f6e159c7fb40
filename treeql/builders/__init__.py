"""Fluent statement builders."""
from treeql.builders.dml import (
    DeleteBuilder,
    InsertBuilder,
    OnConflictContext,
    UpdateBuilder,
    delete_from,
    insert_into,
    update,
)
from treeql.builders.select import JoinContext, SelectBuilder, select
from treeql.builders.tree import TreeManager

__all__ = [
    "TreeManager",
    "SelectBuilder",
    "JoinContext",
    "InsertBuilder",
    "OnConflictContext",
    "UpdateBuilder",
    "DeleteBuilder",
    "select",
    "insert_into",
    "update",
    "delete_from",
]
