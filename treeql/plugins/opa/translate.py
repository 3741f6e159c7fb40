"""Translate residual policy queries into predicate nodes.

Semantics of a query set:

* ``None`` or ``[]``: access denied, :class:`~treeql.errors.PolicyDenyError`.
* ``[[]]``: unconditional allow, no predicates.
* one query: one predicate per expression (AND-ed by the WHERE list).
* several queries: each AND-ed internally, the results OR-ed inside a
  single parenthesised predicate.  Any empty query makes the OR true, so
  the whole set is an unconditional allow.

Each expression is ``op(data_ref, value)`` with the operands in either
order.  The column is the last string element of the ref that starts with
``data``; it is qualified by the relation the table has in the query.
"""
from __future__ import annotations

import logging
from typing import Any

from treeql.errors import (
    PolicyDenyError,
    PolicyMalformedExpressionError,
    PolicyUnsupportedOperatorError,
)
from treeql.nodes.base import Node
from treeql.nodes.expressions import And, Grouping, Or
from treeql.nodes.relations import Attribute, table_source_name
from treeql.plugins.opa.models import PolicyExpression, PolicyTerm
from treeql.quoting import escape_like_pattern

logger = logging.getLogger(__name__)

_COMPARISONS = {
    "eq": "eq",
    "equal": "eq",
    "neq": "not_eq",
    "lt": "lt",
    "lte": "lt_eq",
    "gt": "gt",
    "gte": "gt_eq",
}

_LIKE_PATTERNS = {
    "startswith": "{}%",
    "endswith": "%{}",
    "contains": "%{}%",
}


def extract_operator(term: PolicyTerm) -> str:
    """Return the operator name: the last segment of the operator ref.

    Single-segment refs such as ``eq`` and dotted refs whose last element
    is a string are both accepted.
    """
    if term.type != "ref":
        raise PolicyMalformedExpressionError(
            f"Operator term must be a ref, got {term.type}.", term_type=term.type
        )
    parts = term.parts
    if not parts or parts[-1].type not in ("var", "string"):
        raise PolicyMalformedExpressionError("Operator ref must end with a name.")
    return parts[-1].value


def is_data_ref(term: PolicyTerm) -> bool:
    parts = term.parts
    return bool(parts) and parts[0].is_var("data")


def extract_column(term: PolicyTerm) -> str:
    """Return the last string element of a data ref."""
    for part in reversed(term.parts):
        if part.type == "string":
            return part.value
    raise PolicyMalformedExpressionError("Column ref has no string element.")


def split_operands(expr: PolicyExpression) -> tuple[str, Any]:
    """Return ``(column, value)`` for an expression, whatever the operand order."""
    if len(expr.terms) < 3:
        raise PolicyMalformedExpressionError(
            f"Expression has {len(expr.terms)} terms, need at least 3.",
            index=expr.index,
        )
    first, second = expr.terms[1], expr.terms[2]
    if is_data_ref(first):
        column_term, value_term = first, second
    elif is_data_ref(second):
        column_term, value_term = second, first
    else:
        raise PolicyMalformedExpressionError(
            "Expression has no data ref term.", index=expr.index
        )
    if value_term.type == "ref":
        raise PolicyMalformedExpressionError(
            "Value operand must be a scalar, got a ref.", index=expr.index
        )
    return extract_column(column_term), value_term.value


def translate_expression(expr: PolicyExpression, relation: Node) -> Node:
    """Translate one residual expression into a comparison on ``relation``.

    Raises:
        PolicyMalformedExpressionError: If the expression shape is not
            ``op(data_ref, value)``.
        PolicyUnsupportedOperatorError: If the operator has no translation.
    """
    if not expr.terms:
        raise PolicyMalformedExpressionError("Expression has no terms.", index=expr.index)
    op = extract_operator(expr.terms[0])
    column, value = split_operands(expr)
    attr = Attribute(relation, column)

    if op in _COMPARISONS:
        return getattr(attr, _COMPARISONS[op])(value)
    if op in _LIKE_PATTERNS:
        if not isinstance(value, str):
            raise PolicyMalformedExpressionError(
                f"{op} requires a string value, got {type(value).__name__}.", operator=op
            )
        return attr.like(_LIKE_PATTERNS[op].format(escape_like_pattern(value)))
    raise PolicyUnsupportedOperatorError(op)


def _conjunction(nodes: list[Node]) -> Node:
    result = nodes[0]
    for node in nodes[1:]:
        result = And(result, node)
    return result


def translate_queries(
    queries: list[list[PolicyExpression]] | None, relation: Node
) -> list[Node]:
    """Translate a full query set into WHERE predicates for one table.

    Raises:
        PolicyDenyError: If the query set is empty.
    """
    if not queries:
        table = table_source_name(relation) or "?"
        logger.warning("Policy denied access to table %s", table)
        raise PolicyDenyError(table)

    if len(queries) == 1:
        return [translate_expression(expr, relation) for expr in queries[0]]

    if any(not query for query in queries):
        return []

    groups = [
        _conjunction([translate_expression(expr, relation) for expr in query])
        for query in queries
    ]
    result = groups[0]
    for group in groups[1:]:
        result = Or(result, group)
    return [Grouping(result)]
