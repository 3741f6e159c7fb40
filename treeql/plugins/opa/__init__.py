"""Open Policy Agent integration: row filters and column masks."""
from treeql.plugins.opa.client import ExplainResult, ExplainTranslation, OPAClient, OPAConfig
from treeql.plugins.opa.models import CompileResponse, PolicyExpression, PolicyInfo, PolicyTerm
from treeql.plugins.opa.transformer import OPATransformer, PolicyFunc, mask_literal
from treeql.plugins.opa.translate import translate_expression, translate_queries

__all__ = [
    "OPATransformer",
    "OPAClient",
    "OPAConfig",
    "ExplainResult",
    "ExplainTranslation",
    "PolicyFunc",
    "mask_literal",
    "translate_expression",
    "translate_queries",
    "CompileResponse",
    "PolicyExpression",
    "PolicyTerm",
    "PolicyInfo",
]
