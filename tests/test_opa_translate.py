"""Tests for the policy wire models and the residual-query translator."""

from __future__ import annotations

import logging
from typing import Any

import pytest
from pydantic import ValidationError

from treeql import (
    PolicyDenyError,
    PolicyMalformedExpressionError,
    PolicyUnsupportedOperatorError,
    PostgresVisitor,
    Table,
)
from treeql.nodes import Comparison, Grouping
from treeql.plugins.opa.models import CompileResponse, PolicyExpression, PolicyTerm
from treeql.plugins.opa.translate import translate_expression, translate_queries
from tests.fixtures import load_opa_response

ORDERS = Table("orders")


def _data_ref(column: str = "account") -> dict[str, Any]:
    return {
        "type": "ref",
        "value": [
            {"type": "var", "value": "data"},
            {"type": "string", "value": "orders"},
            {"type": "var", "value": "$01"},
            {"type": "string", "value": column},
        ],
    }


def _expr(op: str, value: dict[str, Any], column: str = "account", reverse: bool = False) -> PolicyExpression:
    operator = {"type": "ref", "value": [{"type": "var", "value": op}]}
    operands = [value, _data_ref(column)] if reverse else [_data_ref(column), value]
    return PolicyExpression.model_validate({"index": 0, "terms": [operator, *operands]})


def _string(value: str) -> dict[str, Any]:
    return {"type": "string", "value": value}


def _sql(nodes) -> str:
    visitor = PostgresVisitor(parameterize=False)
    return " AND ".join(visitor.compile(n).sql for n in nodes)


def _queries(name: str):
    return CompileResponse.model_validate(load_opa_response(name)).result.queries


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------


def test_whole_number_floats_become_ints():
    assert PolicyTerm.model_validate({"type": "number", "value": 100.0}).value == 100
    assert isinstance(PolicyTerm.model_validate({"type": "number", "value": 100.0}).value, int)
    assert PolicyTerm.model_validate({"type": "number", "value": 1.5}).value == 1.5


def test_ref_parts_are_terms():
    term = PolicyTerm.model_validate(_data_ref())
    assert [p.type for p in term.parts] == ["var", "string", "var", "string"]
    assert term.parts[0].is_var("data")
    assert not term.parts[1].is_var()
    assert PolicyTerm.model_validate(_string("x")).parts == []


@pytest.mark.parametrize(
    "payload",
    [
        {"type": "string", "value": 3},
        {"type": "number", "value": "3"},
        {"type": "number", "value": True},
        {"type": "boolean", "value": "yes"},
        {"type": "ref", "value": "data"},
        {"type": "set", "value": []},
    ],
)
def test_mistyped_terms_are_rejected(payload):
    with pytest.raises(ValidationError):
        PolicyTerm.model_validate(payload)


def test_expression_term_shapes():
    bare = PolicyExpression.model_validate([_string("a"), _string("b")])
    assert len(bare.terms) == 2
    single = PolicyExpression.model_validate({"index": 3, "terms": _string("a")})
    assert single.index == 3
    assert len(single.terms) == 1
    assert PolicyExpression.model_validate({"terms": None}).terms == []


def test_compile_response_shapes():
    assert _queries("compile_deny") is None
    assert _queries("compile_allow") == [[]]
    assert len(_queries("compile_multi")) == 2


def test_unknown_response_keys_are_ignored():
    parsed = CompileResponse.model_validate({"result": {"queries": [[]], "support": []}, "metrics": {}})
    assert parsed.result.queries == [[]]


# ---------------------------------------------------------------------------
# Single expressions
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    ("op", "value", "expected"),
    [
        ("eq", _string("acme"), "\"orders\".\"account\" = 'acme'"),
        ("equal", _string("acme"), "\"orders\".\"account\" = 'acme'"),
        ("neq", _string("acme"), "\"orders\".\"account\" != 'acme'"),
        ("lt", {"type": "number", "value": 5}, '"orders"."account" < 5'),
        ("lte", {"type": "number", "value": 5}, '"orders"."account" <= 5'),
        ("gt", {"type": "number", "value": 5.5}, '"orders"."account" > 5.5'),
        ("gte", {"type": "number", "value": 5}, '"orders"."account" >= 5'),
        ("eq", {"type": "boolean", "value": True}, '"orders"."account" = TRUE'),
        ("eq", {"type": "null"}, '"orders"."account" = NULL'),
        ("startswith", _string("ac"), "\"orders\".\"account\" LIKE 'ac%'"),
        ("endswith", _string("me"), "\"orders\".\"account\" LIKE '%me'"),
        ("contains", _string("cm"), "\"orders\".\"account\" LIKE '%cm%'"),
    ],
)
def test_operators(op, value, expected):
    assert _sql([translate_expression(_expr(op, value), ORDERS)]) == expected


def test_reversed_operands():
    node = translate_expression(_expr("gt", {"type": "number", "value": 3}, reverse=True), ORDERS)
    assert isinstance(node, Comparison)
    assert _sql([node]) == '"orders"."account" > 3'


def test_like_patterns_escape_metacharacters():
    node = translate_expression(_expr("startswith", _string("50%_")), ORDERS)
    assert _sql([node]) == "\"orders\".\"account\" LIKE '50\\%\\_%'"


def test_columns_are_qualified_by_alias():
    node = translate_expression(_expr("eq", _string("acme")), ORDERS.alias("o"))
    assert _sql([node]) == "\"o\".\"account\" = 'acme'"


@pytest.mark.parametrize(
    "operator",
    [
        [{"type": "var", "value": "strings"}, _string("startswith")],
        [_string("startswith")],
    ],
)
def test_operator_name_is_the_last_ref_segment(operator):
    expr = PolicyExpression.model_validate(
        {"terms": [{"type": "ref", "value": operator}, _data_ref(), _string("ac")]}
    )
    assert _sql([translate_expression(expr, ORDERS)]) == "\"orders\".\"account\" LIKE 'ac%'"


def test_unsupported_operator():
    with pytest.raises(PolicyUnsupportedOperatorError) as exc_info:
        translate_expression(_expr("re_match", _string("^a")), ORDERS)
    assert exc_info.value.operator == "re_match"
    assert exc_info.value.code == "POLICY_UNSUPPORTED_OPERATOR"


@pytest.mark.parametrize(
    "terms",
    [
        [],
        [{"type": "ref", "value": [{"type": "var", "value": "eq"}]}, _data_ref()],
        [{"type": "ref", "value": [{"type": "var", "value": "eq"}]}, _string("a"), _string("b")],
        [{"type": "ref", "value": [{"type": "var", "value": "eq"}]}, _data_ref(), _data_ref("region")],
        [_string("eq"), _data_ref(), _string("a")],
        [{"type": "ref", "value": [{"type": "number", "value": 1}]}, _data_ref(), _string("a")],
    ],
)
def test_malformed_expressions(terms):
    expr = PolicyExpression.model_validate({"terms": terms})
    with pytest.raises(PolicyMalformedExpressionError):
        translate_expression(expr, ORDERS)


def test_like_requires_string_value():
    with pytest.raises(PolicyMalformedExpressionError):
        translate_expression(_expr("startswith", {"type": "number", "value": 1}), ORDERS)


def test_data_ref_without_string_column():
    ref = {"type": "ref", "value": [{"type": "var", "value": "data"}, {"type": "var", "value": "$01"}]}
    expr = PolicyExpression.model_validate(
        {"terms": [{"type": "ref", "value": [{"type": "var", "value": "eq"}]}, ref, _string("a")]}
    )
    with pytest.raises(PolicyMalformedExpressionError):
        translate_expression(expr, ORDERS)


# ---------------------------------------------------------------------------
# Query sets
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("queries", [None, []])
def test_empty_query_set_denies(queries, caplog):
    with caplog.at_level(logging.WARNING, logger="treeql.plugins.opa.translate"):
        with pytest.raises(PolicyDenyError) as exc_info:
            translate_queries(queries, ORDERS.alias("o"))
    assert exc_info.value.table == "orders"
    assert "denied access to table orders" in caplog.text


def test_unconditional_allow():
    assert translate_queries(_queries("compile_allow"), ORDERS) == []


def test_single_query_yields_one_predicate_per_expression():
    nodes = translate_queries(_queries("compile_account"), ORDERS)
    assert _sql(nodes) == "\"orders\".\"account\" = 'acme'"


def test_multiple_queries_are_or_ed_in_one_group():
    nodes = translate_queries(_queries("compile_multi"), ORDERS)
    assert len(nodes) == 1
    assert isinstance(nodes[0], Grouping)
    assert _sql(nodes) == (
        "(\"orders\".\"region\" = 'eu' AND \"orders\".\"total\" >= 100 "
        "OR \"orders\".\"account\" LIKE '50\\%\\_%')"
    )


def test_any_empty_query_allows_everything():
    queries = [[_expr("eq", _string("acme"))], []]
    assert translate_queries(queries, ORDERS) == []
