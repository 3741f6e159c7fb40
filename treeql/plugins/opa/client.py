"""HTTP client for an Open Policy Agent decision service.

``OPAClient`` wraps the three endpoints the policy transformer needs:

``POST /v1/compile``
    Partial evaluation of ``<policy_path> == true`` with ``data.<table>``
    unknown.  The residual queries become WHERE predicates.

``POST /v1/data/<package>/masks``
    The ``masks`` rule next to the policy rule, shaped as
    ``{table: {column: {"replace": {"value": "***"}}}}``.  Only string
    replacement values mask a column.

``GET /v1/policies``
    Policy sources, scanned by :meth:`OPAClient.discover_inputs` and
    :meth:`OPAClient.discover_policies`.

Transport failures raise :class:`~treeql.errors.PolicyUnreachableError`;
non-2xx statuses and unparseable bodies raise
:class:`~treeql.errors.PolicyBadResponseError`.

SECURITY: ``base_url`` is used as-is.  Use HTTPS in production so the
input document and the decisions are not sent in plain text.
"""
from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any

import requests
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from treeql.compile.postgres import PostgresVisitor
from treeql.errors import (
    PolicyBadResponseError,
    PolicyError,
    PolicyUnreachableError,
)
from treeql.nodes.base import Node
from treeql.nodes.relations import Table
from treeql.plugins.opa.models import CompileResponse, PolicyInfo, PolicyTerm
from treeql.plugins.opa.translate import (
    extract_operator,
    split_operands,
    translate_expression,
    translate_queries,
)

logger = logging.getLogger(__name__)

MaskMap = dict[str, dict[str, str]]

_INPUT_PATH = re.compile(r"\binput\.([a-zA-Z_][a-zA-Z0-9_]*(?:\.[a-zA-Z_][a-zA-Z0-9_]*)*)")
_PACKAGE_DECL = re.compile(r"^\s*package\s+(\S+)", re.MULTILINE)
_TOP_LEVEL_RULE = re.compile(r"^([a-z_][a-zA-Z0-9_]*)[\s{\[]", re.MULTILINE)
_REGO_KEYWORDS = frozenset({"package", "import", "default"})
_POLICY_KEYWORDS = ("include", "filter", "mask")


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class OPAConfig(BaseModel):
    """Connection settings for the decision service.

    Attributes:
        base_url: Server root, e.g. ``http://localhost:8181``.  A trailing
            slash is removed.
        policy_path: Rule to evaluate, e.g. ``data.authz.orders.allow``.
            The ``data.`` prefix is added when missing.
        input: Input document sent with every request.
        timeout: Per-request timeout in seconds.
    """

    model_config = ConfigDict(extra="forbid")

    base_url: str
    policy_path: str
    input: dict[str, Any] | None = None
    timeout: float = Field(default=5.0, gt=0)

    @field_validator("base_url")
    @classmethod
    def _strip_base_url(cls, value: str) -> str:
        value = value.strip().rstrip("/")
        if not value:
            raise ValueError("base_url must not be empty")
        return value

    @field_validator("policy_path")
    @classmethod
    def _data_prefix(cls, value: str) -> str:
        value = value.strip()
        if not value or value == "data.":
            raise ValueError("policy_path must not be empty")
        return value if value.startswith("data.") else f"data.{value}"

    @property
    def package_path(self) -> str:
        """The Rego package of the rule, e.g. ``authz.orders``."""
        path = self.policy_path[len("data."):]
        return path.rsplit(".", 1)[0] if "." in path else path

    @property
    def masks_data_path(self) -> str:
        """Data API path of the sibling ``masks`` rule."""
        return f"{self.package_path.replace('.', '/')}/masks"


# ---------------------------------------------------------------------------
# Explain
# ---------------------------------------------------------------------------


@dataclass
class ExplainTranslation:
    """How one residual expression was translated.

    ``sql`` is rendered inline with the Postgres visitor; it is ``None``
    when the expression could not be translated, and ``error`` says why.
    """

    operator: str | None
    column: str | None
    value: Any
    sql: str | None
    error: str | None = None


@dataclass
class ExplainResult:
    """Diagnostic view of one compile call for a table."""

    table: str
    request_json: str
    raw_json: str
    query_count: int = 0
    expression_count: int = 0
    translations: list[ExplainTranslation] = field(default_factory=list)
    conditions: list[Node] = field(default_factory=list)
    masks: MaskMap = field(default_factory=dict)
    unconditional_allow: bool = False
    access_denied: bool = False


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------


class OPAClient:
    """Talks to the decision service on behalf of the policy transformer.

    Args:
        config: Connection settings.
        session: Optional ``requests.Session`` (or compatible object with a
            ``request`` method); a new session is created when omitted.
    """

    def __init__(self, config: OPAConfig, session: requests.Session | None = None) -> None:
        self.config = config
        self._session = session if session is not None else requests.Session()

    @classmethod
    def from_url(
        cls,
        base_url: str,
        policy_path: str,
        input: dict[str, Any] | None = None,
        timeout: float = 5.0,
        session: requests.Session | None = None,
    ) -> OPAClient:
        config = OPAConfig(base_url=base_url, policy_path=policy_path, input=input, timeout=timeout)
        return cls(config, session=session)

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    def _request(self, method: str, path: str, payload: dict[str, Any] | None = None) -> tuple[dict[str, Any], str]:
        url = f"{self.config.base_url}{path}"
        logger.debug("Policy request %s %s", method, url)
        try:
            response = self._session.request(
                method, url, json=payload, timeout=self.config.timeout
            )
        except requests.Timeout as exc:
            raise PolicyUnreachableError(
                f"Policy request to {url} timed out after {self.config.timeout}s.", url=url
            ) from exc
        except requests.RequestException as exc:
            raise PolicyUnreachableError(f"Policy request to {url} failed: {exc}", url=url) from exc

        if not 200 <= response.status_code < 300:
            raise PolicyBadResponseError(
                f"Policy service returned status {response.status_code} for {url}.",
                url=url,
                status=response.status_code,
                body=response.text[:500],
            )
        try:
            body = response.json()
        except ValueError as exc:
            raise PolicyBadResponseError(
                f"Policy service returned invalid JSON for {url}.", url=url
            ) from exc
        if not isinstance(body, dict):
            raise PolicyBadResponseError(
                f"Policy service returned a JSON {type(body).__name__}, expected an object.",
                url=url,
            )
        return body, response.text

    def _compile_payload(self, table: str) -> dict[str, Any]:
        payload: dict[str, Any] = {"query": f"{self.config.policy_path} == true"}
        if self.config.input:
            payload["input"] = self.config.input
        payload["unknowns"] = [f"data.{table}"]
        return payload

    @staticmethod
    def _parse_compile(body: dict[str, Any]) -> CompileResponse:
        try:
            return CompileResponse.model_validate(body)
        except ValidationError as exc:
            raise PolicyBadResponseError(
                f"Malformed compile response: {exc.error_count()} validation error(s).",
                errors=exc.errors(include_url=False),
            ) from exc

    # ------------------------------------------------------------------
    # Decisions
    # ------------------------------------------------------------------

    def compile(self, table: str, relation: Node | None = None) -> list[Node]:
        """Return the WHERE predicates the policy imposes on ``table``.

        Args:
            table: Base table name, sent as the ``data.<table>`` unknown.
            relation: Node that qualifies the predicate columns (the table
                or its alias as used in the query).  Defaults to
                ``Table(table)``.

        Raises:
            PolicyDenyError: If the policy can never be satisfied.
        """
        logger.debug("Compiling policy %s for table %s", self.config.policy_path, table)
        body, _ = self._request("POST", "/v1/compile", self._compile_payload(table))
        parsed = self._parse_compile(body)
        return translate_queries(parsed.result.queries, relation or Table(table))

    def fetch_masks(self) -> MaskMap:
        """Return ``{table: {column: replacement}}`` from the masks rule.

        Columns whose ``replace.value`` is not a string are not masked.  An
        undefined rule yields an empty mapping.
        """
        payload: dict[str, Any] = {}
        if self.config.input:
            payload["input"] = self.config.input
        body, _ = self._request("POST", f"/v1/data/{self.config.masks_data_path}", payload)
        result = body.get("result")
        if result is None:
            return {}
        if not isinstance(result, dict):
            raise PolicyBadResponseError("Masks result must be an object.")

        masks: MaskMap = {}
        for table, columns in result.items():
            if not isinstance(columns, dict):
                raise PolicyBadResponseError(f"Masks for table '{table}' must be an object.")
            for column, action in columns.items():
                if not isinstance(action, dict):
                    raise PolicyBadResponseError(
                        f"Mask action for '{table}.{column}' must be an object."
                    )
                replace = action.get("replace")
                if not isinstance(replace, dict):
                    continue
                value = replace.get("value")
                if isinstance(value, str):
                    masks.setdefault(table, {})[column] = value
        return masks

    def explain(self, table: str) -> ExplainResult:
        """Describe how the policy for ``table`` translates to SQL.

        Masks are fetched best-effort; a failure there is logged and leaves
        ``masks`` empty.  Translation failures are recorded on the
        individual :class:`ExplainTranslation` entries instead of raised.
        """
        payload = self._compile_payload(table)
        body, raw = self._request("POST", "/v1/compile", payload)
        parsed = self._parse_compile(body)
        queries = parsed.result.queries or []

        try:
            masks = self.fetch_masks()
        except PolicyError as exc:
            logger.warning("Could not fetch masks while explaining %s: %s", table, exc)
            masks = {}

        result = ExplainResult(
            table=table,
            request_json=json.dumps(payload),
            raw_json=raw,
            query_count=len(queries),
            expression_count=sum(len(q) for q in queries),
            masks=masks,
        )
        if not queries:
            result.access_denied = True
            return result
        if len(queries) == 1 and not queries[0]:
            result.unconditional_allow = True
            return result

        relation = Table(table)
        visitor = PostgresVisitor(parameterize=False)
        for query in queries:
            for expr in query:
                result.translations.append(self._explain_expression(expr, relation, visitor))
        # Conditions stay empty when any expression failed to translate.
        if all(t.error is None for t in result.translations):
            result.conditions = translate_queries(queries, relation)
        return result

    @staticmethod
    def _explain_expression(expr: Any, relation: Node, visitor: PostgresVisitor) -> ExplainTranslation:
        operator = column = value = None
        try:
            operator = extract_operator(expr.terms[0]) if expr.terms else None
            column, value = split_operands(expr)
            sql = visitor.compile(translate_expression(expr, relation)).sql
        except PolicyError as exc:
            return ExplainTranslation(operator, column, value, None, error=str(exc))
        return ExplainTranslation(operator, column, value, sql)

    # ------------------------------------------------------------------
    # Discovery
    # ------------------------------------------------------------------

    def _policy_sources(self) -> list[str]:
        body, _ = self._request("GET", "/v1/policies")
        entries = body.get("result") or []
        if not isinstance(entries, list):
            raise PolicyBadResponseError("Policies result must be a list.")
        return [e["raw"] for e in entries if isinstance(e, dict) and isinstance(e.get("raw"), str)]

    def discover_inputs(self, *data_unknowns: str) -> list[str]:
        """List the ``input.*`` paths the policy reads, sorted.

        Paths come from the residuals of compiling the rule with ``input``
        unknown, plus a scan of the package source (mask rules rarely leave
        residuals).
        """
        payload = {
            "query": f"{self.config.policy_path} == true",
            "unknowns": ["input", *data_unknowns],
        }
        body, _ = self._request("POST", "/v1/compile", payload)
        parsed = self._parse_compile(body)

        seen: set[str] = set()
        for query in parsed.result.queries or []:
            for expr in query:
                for term in expr.terms:
                    path = _input_ref_path(term)
                    if path is not None:
                        seen.add(path)

        package_decl = f"package {self.config.package_path}"
        for source in self._policy_sources():
            if package_decl not in source:
                continue
            seen.update(_INPUT_PATH.findall(_strip_rego_comments(source)))
        return sorted(seen)

    def discover_policies(self) -> list[PolicyInfo]:
        """List rules in packages whose path mentions include, filter or mask."""
        found: list[PolicyInfo] = []
        for source in self._policy_sources():
            match = _PACKAGE_DECL.search(source)
            if match is None:
                continue
            package = match.group(1)
            if not any(keyword in package for keyword in _POLICY_KEYWORDS):
                continue
            for rule in _rule_names(source):
                found.append(
                    PolicyInfo(
                        package_path=package,
                        rule_name=rule,
                        full_path=f"data.{package}.{rule}",
                    )
                )
        return sorted(found, key=lambda p: p.full_path)


def _strip_rego_comments(source: str) -> str:
    return "\n".join(line.split("#", 1)[0] for line in source.split("\n"))


def _rule_names(source: str) -> list[str]:
    names = set(_TOP_LEVEL_RULE.findall(_strip_rego_comments(source)))
    return sorted(names - _REGO_KEYWORDS)


def _input_ref_path(term: PolicyTerm) -> str | None:
    parts = term.parts
    if len(parts) < 2 or not parts[0].is_var("input"):
        return None
    if any(p.type != "string" for p in parts[1:]):
        return None
    return ".".join(p.value for p in parts[1:])
