"""Transformers that rewrite statements before rendering."""
from treeql.plugins.opa import OPAClient, OPAConfig, OPATransformer
from treeql.plugins.resolvers import ColumnResolver, mapping_resolver, sqlalchemy_resolver
from treeql.plugins.softdelete import SoftDelete, SoftDeleteConfig
from treeql.plugins.transformer import Transformer

__all__ = [
    "Transformer",
    "SoftDelete",
    "SoftDeleteConfig",
    "OPATransformer",
    "OPAClient",
    "OPAConfig",
    "ColumnResolver",
    "mapping_resolver",
    "sqlalchemy_resolver",
]
