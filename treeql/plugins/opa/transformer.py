"""Policy transformer: row filtering and column masking from OPA.

Two modes are supported.

Server mode (:meth:`OPATransformer.from_server`)
    For each table in FROM and the joins, the decision service's Compile
    API is asked for the residual conditions under which the policy holds;
    they are appended to WHERE, qualified by the table's relation in the
    query (so aliases keep working).  Then the sibling ``masks`` rule is
    fetched once and masked columns in the projection are replaced by
    literals.

Policy-function mode (``OPATransformer(policy)``)
    A callable ``policy(table_name) -> list[Node]`` supplies the conditions
    directly.  Raising from the callable rejects the query.  No masking.

Example::

    opa = OPATransformer.from_server(
        "http://localhost:8181",
        "data.authz.orders.allow",
        input={"user": {"account": "acme"}},
        column_resolver=mapping_resolver({"orders": ["id", "account", "total"]}),
    )
    query = SelectBuilder().from_(orders).use(opa)
    query.to_sql(PostgresVisitor())
    # SELECT "orders"."id", "orders"."account", '***' AS "total" FROM "orders"
    #   WHERE "orders"."account" = $1
"""
from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

import requests

from treeql.errors import ResolverRequiredError
from treeql.nodes.base import Node
from treeql.nodes.expressions import Alias, SqlLiteral
from treeql.nodes.relations import Attribute, Star, table_source_name
from treeql.nodes.statements import SelectCore, TableRef, collect_tables
from treeql.plugins.opa.client import MaskMap, OPAClient, OPAConfig
from treeql.plugins.resolvers import ColumnResolver
from treeql.plugins.transformer import Transformer

logger = logging.getLogger(__name__)

PolicyFunc = Callable[[str], "list[Node] | None"]


def mask_literal(value: str, column: str) -> SqlLiteral:
    """Render ``'<value>' AS "<column>"``; never parameterised.

    Single quotes in the value and double quotes in the column are doubled.
    """
    escaped_value = value.replace("'", "''")
    escaped_column = column.replace('"', '""')
    return SqlLiteral(f"'{escaped_value}' AS \"{escaped_column}\"")


class OPATransformer(Transformer):
    """Injects policy conditions into SELECT statements.

    Args:
        policy: Callable for policy-function mode.
        client: :class:`OPAClient` for server mode.
        column_resolver: Supplies column lists when masks apply to a star
            projection.

    Exactly one of ``policy`` and ``client`` must be given.
    """

    def __init__(
        self,
        policy: PolicyFunc | None = None,
        *,
        client: OPAClient | None = None,
        column_resolver: ColumnResolver | None = None,
    ) -> None:
        if (policy is None) == (client is None):
            raise ValueError("OPATransformer needs exactly one of 'policy' or 'client'.")
        self.policy = policy
        self.client = client
        self.column_resolver = column_resolver

    @classmethod
    def from_server(
        cls,
        base_url: str,
        policy_path: str,
        input: dict[str, Any] | None = None,
        *,
        column_resolver: ColumnResolver | None = None,
        timeout: float = 5.0,
        session: requests.Session | None = None,
    ) -> OPATransformer:
        """Build a server-mode transformer.

        Raises:
            pydantic.ValidationError: If the connection settings are invalid.
        """
        config = OPAConfig(base_url=base_url, policy_path=policy_path, input=input, timeout=timeout)
        return cls(client=OPAClient(config, session=session), column_resolver=column_resolver)

    # ------------------------------------------------------------------
    # Transformer hook
    # ------------------------------------------------------------------

    def transform_select(self, core: SelectCore) -> SelectCore:
        refs = collect_tables(core)
        for ref in refs:
            core.wheres.extend(self._conditions(ref))

        if self.client is not None:
            masks = self.client.fetch_masks()
            if masks:
                logger.debug("Applying masks for tables %s", sorted(masks))
                self.apply_masks(core, refs, masks)
        return core

    def _conditions(self, ref: TableRef) -> list[Node]:
        if self.client is not None:
            return self.client.compile(ref.name, ref.relation)
        if self.policy is None:
            raise ValueError("OPATransformer has neither a policy nor a client.")
        return list(self.policy(ref.name) or [])

    # ------------------------------------------------------------------
    # Masking
    # ------------------------------------------------------------------

    def apply_masks(self, core: SelectCore, refs: list[TableRef], masks: MaskMap) -> None:
        """Rewrite ``core.projections`` so masked columns become literals."""
        is_star = not core.projections or any(isinstance(p, Star) for p in core.projections)
        if is_star:
            core.projections = self._expand_star(refs, masks)
        else:
            core.projections = [self._mask_projection(p, masks) for p in core.projections]

    def _expand_star(self, refs: list[TableRef], masks: MaskMap) -> list[Node]:
        expanded: list[Node] = []
        for ref in refs:
            if self.column_resolver is None:
                raise ResolverRequiredError(ref.name)
            try:
                columns = self.column_resolver(ref.name)
            except Exception as exc:
                raise ResolverRequiredError(ref.name, f"Resolver failed: {exc}") from exc
            if not columns:
                raise ResolverRequiredError(ref.name, "The resolver returned no columns.")

            table_masks = masks.get(ref.name, {})
            for column in columns:
                if column in table_masks:
                    expanded.append(mask_literal(table_masks[column], column))
                else:
                    expanded.append(Attribute(ref.relation, column))
        return expanded

    @staticmethod
    def _mask_projection(projection: Node, masks: MaskMap) -> Node:
        # An aliased column keeps its alias as the output name.
        if isinstance(projection, Alias) and isinstance(projection.expr, Attribute):
            column, name = projection.expr, projection.name
        elif isinstance(projection, Attribute):
            column, name = projection, projection.name
        else:
            return projection
        table = table_source_name(column.relation)
        if table is None:
            return projection
        value = masks.get(table, {}).get(column.name)
        if value is None:
            return projection
        return mask_literal(value, name)
