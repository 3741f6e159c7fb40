"""Tests for the decision-service client and the policy transformer."""

from __future__ import annotations

import json
import logging

import pytest
import requests
from pydantic import ValidationError

from treeql import (
    OPAClient,
    OPAConfig,
    OPATransformer,
    PolicyBadResponseError,
    PolicyDenyError,
    PolicyUnreachableError,
    ResolverRequiredError,
    SelectBuilder,
    SoftDelete,
    Table,
    TransformerRejectedError,
    count,
    mapping_resolver,
)
from treeql.plugins.opa.models import PolicyInfo
from treeql.plugins.opa.transformer import mask_literal
from tests.fixtures import FakeResponse, FakeSession, load_opa_response

BASE_URL = "http://opa.test:8181"
POLICY = "authz.orders.allow"
MASKS_PATH = "/v1/data/authz/orders/masks"
ORDERS = Table("orders")
USERS = Table("users")
ORDER_COLUMNS = {"orders": ["id", "account", "region", "total"]}


def _response(name: str) -> FakeResponse:
    return FakeResponse(load_opa_response(name))


def _session(compile_name: str = "compile_account", masks_name: str = "masks_none") -> FakeSession:
    return FakeSession({"/v1/compile": _response(compile_name), MASKS_PATH: _response(masks_name)})


def _client(session: FakeSession, **kwargs) -> OPAClient:
    return OPAClient.from_url(BASE_URL, POLICY, session=session, **kwargs)


def _transformer(session: FakeSession, **kwargs) -> OPATransformer:
    return OPATransformer.from_server(
        BASE_URL, POLICY, input={"user": {"account": "acme"}}, session=session, **kwargs
    )


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


def test_config_normalises_paths():
    config = OPAConfig(base_url="http://opa.test:8181/", policy_path="authz.orders.allow")
    assert config.base_url == BASE_URL
    assert config.policy_path == "data.authz.orders.allow"
    assert config.package_path == "authz.orders"
    assert config.masks_data_path == "authz/orders/masks"
    assert config.timeout == 5.0


def test_config_keeps_existing_data_prefix():
    assert OPAConfig(base_url=BASE_URL, policy_path="data.allow").package_path == "allow"


@pytest.mark.parametrize(
    "kwargs",
    [
        {"base_url": BASE_URL, "policy_path": ""},
        {"base_url": "  ", "policy_path": POLICY},
        {"base_url": BASE_URL, "policy_path": POLICY, "timeout": 0},
        {"base_url": BASE_URL, "policy_path": POLICY, "retries": 3},
    ],
)
def test_invalid_config(kwargs):
    with pytest.raises(ValidationError):
        OPAConfig(**kwargs)


# ---------------------------------------------------------------------------
# Compile
# ---------------------------------------------------------------------------


def test_compile_request_payload():
    session = _session()
    client = _client(session, input={"user": {"account": "acme"}}, timeout=2.5)
    client.compile("orders")
    method, url, body, timeout = session.calls[0]
    assert (method, url, timeout) == ("POST", f"{BASE_URL}/v1/compile", 2.5)
    assert body == {
        "query": "data.authz.orders.allow == true",
        "input": {"user": {"account": "acme"}},
        "unknowns": ["data.orders"],
    }


def test_compile_omits_empty_input():
    session = _session()
    _client(session, input={}).compile("orders")
    assert "input" not in session.bodies("/v1/compile")[0]


def test_compile_deny():
    with pytest.raises(PolicyDenyError):
        _client(_session("compile_deny")).compile("orders")


@pytest.mark.parametrize(
    ("route", "error"),
    [
        (FakeResponse({"error": "boom"}, status_code=500), PolicyBadResponseError),
        (FakeResponse.invalid_json(), PolicyBadResponseError),
        (FakeResponse([1, 2]), PolicyBadResponseError),
        (FakeResponse({"result": {"queries": [[{"terms": [{"type": "set"}]}]]}}), PolicyBadResponseError),
        (requests.ConnectionError("refused"), PolicyUnreachableError),
        (requests.Timeout("slow"), PolicyUnreachableError),
    ],
)
def test_compile_failures(route, error):
    with pytest.raises(error):
        _client(FakeSession({"/v1/compile": route})).compile("orders")


def test_bad_status_details():
    session = FakeSession({"/v1/compile": FakeResponse({"code": "internal"}, status_code=503)})
    with pytest.raises(PolicyBadResponseError) as exc_info:
        _client(session).compile("orders")
    assert exc_info.value.details["status"] == 503
    assert "internal" in exc_info.value.details["body"]


def test_timeout_message():
    session = FakeSession({"/v1/compile": requests.Timeout("slow")})
    with pytest.raises(PolicyUnreachableError, match="timed out"):
        _client(session).compile("orders")


# ---------------------------------------------------------------------------
# Masks
# ---------------------------------------------------------------------------


def test_fetch_masks_keeps_string_replacements_only():
    session = _session(masks_name="masks_orders")
    client = _client(session, input={"user": {"role": "analyst"}})
    assert client.fetch_masks() == {"orders": {"total": "***"}}
    assert session.bodies(MASKS_PATH) == [{"input": {"user": {"role": "analyst"}}}]


def test_undefined_masks_rule():
    assert _client(_session(masks_name="masks_none")).fetch_masks() == {}


@pytest.mark.parametrize(
    "body",
    [
        {"result": ["orders"]},
        {"result": {"orders": ["total"]}},
        {"result": {"orders": {"total": "***"}}},
    ],
)
def test_malformed_masks(body):
    session = FakeSession({MASKS_PATH: FakeResponse(body)})
    with pytest.raises(PolicyBadResponseError):
        _client(session).fetch_masks()


# ---------------------------------------------------------------------------
# Explain
# ---------------------------------------------------------------------------


def test_explain_multi_query():
    session = _session("compile_multi", "masks_orders")
    result = _client(session).explain("orders")
    assert result.query_count == 2
    assert result.expression_count == 3
    assert [t.sql for t in result.translations] == [
        "\"orders\".\"region\" = 'eu'",
        '"orders"."total" >= 100',
        "\"orders\".\"account\" LIKE '50\\%\\_%'",
    ]
    assert [t.operator for t in result.translations] == ["eq", "gte", "startswith"]
    assert result.translations[1].column == "total"
    assert len(result.conditions) == 1
    assert result.masks == {"orders": {"total": "***"}}
    assert json.loads(result.request_json)["unknowns"] == ["data.orders"]
    assert json.loads(result.raw_json) == load_opa_response("compile_multi")
    assert not result.access_denied
    assert not result.unconditional_allow


def test_explain_deny_and_allow():
    assert _client(_session("compile_deny")).explain("orders").access_denied
    allowed = _client(_session("compile_allow")).explain("orders")
    assert allowed.unconditional_allow
    assert allowed.conditions == []


def test_explain_records_untranslatable_expressions():
    body = {
        "result": {
            "queries": [
                [
                    {
                        "terms": [
                            {"type": "ref", "value": [{"type": "var", "value": "re_match"}]},
                            {"type": "string", "value": "^a"},
                            {
                                "type": "ref",
                                "value": [
                                    {"type": "var", "value": "data"},
                                    {"type": "string", "value": "orders"},
                                    {"type": "string", "value": "account"},
                                ],
                            },
                        ]
                    }
                ]
            ]
        }
    }
    session = FakeSession({"/v1/compile": FakeResponse(body), MASKS_PATH: _response("masks_none")})
    result = _client(session).explain("orders")
    (translation,) = result.translations
    assert translation.operator == "re_match"
    assert translation.column == "account"
    assert translation.sql is None
    assert "re_match" in translation.error
    assert result.conditions == []


def test_explain_tolerates_mask_failures(caplog):
    session = FakeSession(
        {
            "/v1/compile": _response("compile_account"),
            MASKS_PATH: FakeResponse({}, status_code=500),
        }
    )
    with caplog.at_level(logging.WARNING, logger="treeql.plugins.opa.client"):
        result = _client(session).explain("orders")
    assert result.masks == {}
    assert len(result.conditions) == 1
    assert "Could not fetch masks" in caplog.text


# ---------------------------------------------------------------------------
# Discovery
# ---------------------------------------------------------------------------


def test_discover_inputs():
    residual = {
        "result": {
            "queries": [
                [
                    {
                        "terms": [
                            {"type": "ref", "value": [{"type": "var", "value": "eq"}]},
                            {
                                "type": "ref",
                                "value": [
                                    {"type": "var", "value": "input"},
                                    {"type": "string", "value": "user"},
                                    {"type": "string", "value": "tenant"},
                                ],
                            },
                            {"type": "string", "value": "t1"},
                        ]
                    }
                ]
            ]
        }
    }
    session = FakeSession(
        {
            "/v1/compile": FakeResponse(residual),
            "/v1/policies": _response("policies"),
        }
    )
    client = OPAClient.from_url(BASE_URL, "authz.orders.include.allow", session=session)
    assert client.discover_inputs("data.orders") == ["user.account", "user.role", "user.tenant"]
    assert session.bodies("/v1/compile") == [
        {"query": "data.authz.orders.include.allow == true", "unknowns": ["input", "data.orders"]}
    ]
    assert session.calls[1][0] == "GET"


def test_discover_policies():
    session = FakeSession({"/v1/policies": _response("policies")})
    assert _client(session).discover_policies() == [
        PolicyInfo(
            package_path="authz.orders.include",
            rule_name="allow",
            full_path="data.authz.orders.include.allow",
        ),
        PolicyInfo(
            package_path="authz.orders.include",
            rule_name="masks",
            full_path="data.authz.orders.include.masks",
        ),
    ]


# ---------------------------------------------------------------------------
# Transformer: server mode
# ---------------------------------------------------------------------------


def test_transformer_needs_exactly_one_source():
    with pytest.raises(ValueError):
        OPATransformer()
    with pytest.raises(ValueError):
        OPATransformer(lambda table: [], client=_client(_session()))


def test_conditions_follow_table_aliases(pg):
    o = ORDERS.alias("o")
    query = SelectBuilder(o.col("id")).from_(o).use(_transformer(_session()))
    sql, params = query.to_sql(pg)
    assert sql == 'SELECT "o"."id" FROM "orders" AS "o" WHERE "o"."account" = $1'
    assert params == ["acme"]


def test_every_joined_table_is_compiled(pg):
    session = FakeSession(
        {
            "/v1/compile": [_response("compile_account"), _response("compile_allow")],
            MASKS_PATH: _response("masks_none"),
        }
    )
    query = (
        SelectBuilder(ORDERS.col("id"))
        .from_(ORDERS)
        .join(USERS)
        .on(ORDERS.col("account").eq(USERS.col("account")))
        .use(_transformer(session))
    )
    assert query.to_sql(pg).sql.endswith('WHERE "orders"."account" = $1')
    assert [b["unknowns"] for b in session.bodies("/v1/compile")] == [["data.orders"], ["data.users"]]
    assert len(session.bodies(MASKS_PATH)) == 1


def test_multi_query_conditions(pg):
    query = SelectBuilder(ORDERS.col("id")).from_(ORDERS).use(_transformer(_session("compile_multi")))
    sql, params = query.to_sql(pg)
    assert sql == (
        'SELECT "orders"."id" FROM "orders" WHERE ("orders"."region" = $1 '
        'AND "orders"."total" >= $2 OR "orders"."account" LIKE $3)'
    )
    assert params == ["eu", 100, "50\\%\\_%"]


def test_deny_aborts_before_masks(pg):
    session = _session("compile_deny")
    with pytest.raises(PolicyDenyError):
        SelectBuilder().from_(ORDERS).use(_transformer(session)).to_sql(pg)
    assert session.bodies(MASKS_PATH) == []


def test_transport_errors_surface_as_rejections(pg):
    session = FakeSession({"/v1/compile": requests.ConnectionError("refused")})
    with pytest.raises(TransformerRejectedError) as exc_info:
        SelectBuilder().from_(ORDERS).use(_transformer(session)).to_sql(pg)
    assert isinstance(exc_info.value, PolicyUnreachableError)


def test_masks_replace_explicit_columns(pg):
    o = ORDERS.alias("o")
    query = (
        SelectBuilder(o.col("id"), o.col("total"), count())
        .from_(o)
        .use(_transformer(_session(masks_name="masks_orders")))
    )
    assert query.to_sql(pg).sql == (
        'SELECT "o"."id", \'***\' AS "total", COUNT(*) FROM "orders" AS "o" WHERE "o"."account" = $1'
    )


def test_masks_replace_aliased_columns(pg):
    query = (
        SelectBuilder(ORDERS.col("total").as_("t"), ORDERS.col("id").as_("ref"))
        .from_(ORDERS)
        .use(_transformer(_session(masks_name="masks_orders")))
    )
    assert query.to_sql(pg).sql == (
        'SELECT \'***\' AS "t", "orders"."id" AS "ref" FROM "orders" WHERE "orders"."account" = $1'
    )


def test_masks_expand_star_with_resolver(pg):
    opa = _transformer(
        _session(masks_name="masks_orders"), column_resolver=mapping_resolver(ORDER_COLUMNS)
    )
    query = SelectBuilder().from_(ORDERS).use(opa)
    assert query.to_sql(pg).sql == (
        'SELECT "orders"."id", "orders"."account", "orders"."region", \'***\' AS "total" '
        'FROM "orders" WHERE "orders"."account" = $1'
    )


def test_star_without_masks_is_left_alone(pg):
    query = SelectBuilder().from_(ORDERS).use(_transformer(_session()))
    assert query.to_sql(pg).sql == 'SELECT * FROM "orders" WHERE "orders"."account" = $1'


def test_star_with_masks_requires_resolver(pg):
    query = SelectBuilder().from_(ORDERS).use(_transformer(_session(masks_name="masks_orders")))
    with pytest.raises(ResolverRequiredError) as exc_info:
        query.to_sql(pg)
    assert exc_info.value.table == "orders"


def test_resolver_without_columns(pg):
    opa = _transformer(_session(masks_name="masks_orders"), column_resolver=mapping_resolver({}))
    with pytest.raises(ResolverRequiredError, match="no columns"):
        SelectBuilder().from_(ORDERS).use(opa).to_sql(pg)


def test_failing_resolver(pg):
    def resolver(table: str) -> list[str]:
        raise LookupError(table)

    opa = _transformer(_session(masks_name="masks_orders"), column_resolver=resolver)
    with pytest.raises(ResolverRequiredError) as exc_info:
        SelectBuilder().from_(ORDERS).use(opa).to_sql(pg)
    assert isinstance(exc_info.value.__cause__, LookupError)


def test_mask_literal_escapes():
    assert mask_literal("it's", 'we"ird').raw == '\'it\'\'s\' AS "we""ird"'


def test_composes_with_soft_delete(pg):
    query = (
        SelectBuilder(ORDERS.col("id"))
        .from_(ORDERS)
        .use(SoftDelete())
        .use(_transformer(_session()))
    )
    assert query.to_sql(pg).sql == (
        'SELECT "orders"."id" FROM "orders" WHERE "orders"."deleted_at" IS NULL '
        'AND "orders"."account" = $1'
    )


# ---------------------------------------------------------------------------
# Transformer: policy-function mode
# ---------------------------------------------------------------------------


def test_policy_function_mode(pg):
    seen: list[str] = []

    def policy(table: str):
        seen.append(table)
        if table == "orders":
            return [ORDERS.col("account").eq("acme")]
        return None

    query = (
        SelectBuilder()
        .from_(ORDERS)
        .join(USERS)
        .on(ORDERS.col("account").eq(USERS.col("account")))
        .use(OPATransformer(policy))
    )
    sql, params = query.to_sql(pg)
    assert sql.endswith('WHERE "orders"."account" = $1')
    assert params == ["acme"]
    assert seen == ["orders", "users"]


def test_policy_function_errors_reject(pg):
    def policy(table: str):
        raise PermissionError(table)

    with pytest.raises(TransformerRejectedError) as exc_info:
        SelectBuilder().from_(ORDERS).use(OPATransformer(policy)).to_sql(pg)
    assert isinstance(exc_info.value.__cause__, PermissionError)


def test_transformer_without_a_source_rejects(pg):
    opa = OPATransformer(lambda table: [])
    opa.policy = None
    with pytest.raises(TransformerRejectedError) as exc_info:
        SelectBuilder().from_(ORDERS).use(opa).to_sql(pg)
    assert isinstance(exc_info.value.__cause__, ValueError)
