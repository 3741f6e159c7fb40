"""Custom exception hierarchy for treeql.

All public errors inherit from :class:`TreeQLError` so callers can catch the
base class for any treeql-specific failure.

``MalformedAstError`` is raised by the renderer.  Everything raised while the
transformer pipeline runs surfaces as a :class:`TransformerRejectedError`
(the policy errors are subclasses, so they keep their precise type).
"""
from __future__ import annotations

from typing import Any


class TreeQLError(Exception):
    """Base exception for all treeql errors.

    Args:
        message: Human-readable description.
        code: Machine-readable error code.
        details: Extra structured context.
    """

    code = "TREEQL_ERROR"

    def __init__(
        self,
        message: str,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        if code is not None:
            self.code = code
        self.details: dict[str, Any] = details or {}

    def to_error_response(self) -> dict[str, Any]:
        """Returns a structured error response suitable for logging or APIs."""
        return {
            "error": self.code,
            "message": str(self),
            "details": self.details,
        }


class MalformedAstError(TreeQLError):
    """Raised when a tree violates a render-time invariant.

    Args:
        message: Human-readable description.
        node: The node being rendered when the violation was found.
    """

    code = "MALFORMED_AST"

    def __init__(self, message: str, node: Any = None) -> None:
        details = {"node": type(node).__name__} if node is not None else {}
        super().__init__(message, details=details)
        self.node = node


class TransformerRejectedError(TreeQLError):
    """Raised when a transformer in the pipeline fails.

    Args:
        message: Human-readable description.
        transformer: The transformer that failed, when known.
    """

    code = "TRANSFORMER_REJECTED"

    def __init__(
        self,
        message: str,
        transformer: Any = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = dict(details or {})
        if transformer is not None:
            details.setdefault("transformer", type(transformer).__name__)
        super().__init__(message, details=details)
        self.transformer = transformer


# ---------------------------------------------------------------------------
# Policy errors
# ---------------------------------------------------------------------------


class PolicyError(TransformerRejectedError):
    """Base class for failures of the external-policy transformer."""

    code = "POLICY_ERROR"

    def __init__(self, message: str, **details: Any) -> None:
        super().__init__(message, details=details)


class PolicyDenyError(PolicyError):
    """Raised when the decision service denies access to a table."""

    code = "POLICY_DENY"

    def __init__(self, table: str) -> None:
        super().__init__(f"Access to table '{table}' denied by policy.", table=table)
        self.table = table


class PolicyUnreachableError(PolicyError):
    """Raised on network failures and timeouts talking to the decision service."""

    code = "POLICY_UNREACHABLE"


class PolicyBadResponseError(PolicyError):
    """Raised on non-2xx status codes or malformed JSON from the decision service."""

    code = "POLICY_BAD_RESPONSE"


class PolicyUnsupportedOperatorError(PolicyError):
    """Raised when a decision uses an operator the translator cannot express."""

    code = "POLICY_UNSUPPORTED_OPERATOR"

    def __init__(self, operator: str) -> None:
        super().__init__(f"Unsupported policy operator '{operator}'.", operator=operator)
        self.operator = operator


class PolicyMalformedExpressionError(PolicyError):
    """Raised when a decision expression has a shape the translator does not accept."""

    code = "POLICY_MALFORMED_EXPRESSION"


class ResolverRequiredError(PolicyError):
    """Raised when mask expansion needs a column list that is unavailable.

    Args:
        table: The table whose columns could not be resolved.
        reason: Optional explanation appended to the message.
    """

    code = "RESOLVER_REQUIRED"

    def __init__(self, table: str, reason: str | None = None) -> None:
        message = f"Column resolver required to expand masked projection for table '{table}'."
        if reason:
            message = f"{message} {reason}"
        super().__init__(message, table=table)
        self.table = table
