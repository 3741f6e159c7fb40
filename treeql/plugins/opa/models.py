"""Wire models for the policy decision service.

The Compile API returns residual queries as nested JSON::

    {"result": {"queries": [[{"index": 0, "terms": [
        {"type": "ref", "value": [{"type": "var", "value": "eq"}]},
        {"type": "ref", "value": [{"type": "var", "value": "data"},
                                   {"type": "string", "value": "orders"},
                                   {"type": "var", "value": "$01"},
                                   {"type": "string", "value": "account"}]},
        {"type": "string", "value": "acme"}]}]]}}

Pydantic v2 parses that into :class:`CompileResponse`; ``terms`` arriving
as a single object (a bare term) is normalised to a one-element list.
Term values are checked against their ``type`` so the translator can rely
on the Python type.
"""
from __future__ import annotations

import math
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

# Unknown keys from newer servers are tolerated.
_IGNORE = ConfigDict(extra="ignore")


class PolicyTerm(BaseModel):
    """One term of a residual expression.

    ``value`` is ``str`` for ``string``/``var``, ``int`` or ``float`` for
    ``number`` (whole numbers become ``int``), ``bool`` for ``boolean``,
    ``list[PolicyTerm]`` for ``ref`` and ``None`` for ``null``.
    """

    model_config = _IGNORE

    type: str
    value: Any = None

    @model_validator(mode="before")
    @classmethod
    def _typed_value(cls, data: Any) -> Any:
        if isinstance(data, PolicyTerm):
            data = data.model_dump()
        if not isinstance(data, dict):
            raise ValueError(f"term must be an object, got {type(data).__name__}")
        kind = data.get("type")
        value = data.get("value")
        if kind in ("string", "var"):
            if not isinstance(value, str):
                raise ValueError(f"{kind} term value must be a string")
        elif kind == "number":
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ValueError("number term value must be numeric")
            if isinstance(value, float) and math.isfinite(value) and value.is_integer():
                value = int(value)
        elif kind == "boolean":
            if not isinstance(value, bool):
                raise ValueError("boolean term value must be true or false")
        elif kind == "ref":
            if not isinstance(value, list):
                raise ValueError("ref term value must be a list of terms")
            value = [PolicyTerm.model_validate(part) for part in value]
        elif kind == "null":
            value = None
        else:
            raise ValueError(f"unknown term type {kind!r}")
        return {"type": kind, "value": value}

    @property
    def parts(self) -> list[PolicyTerm]:
        """The elements of a ``ref`` term; empty for other types."""
        return self.value if self.type == "ref" else []

    def is_var(self, name: str | None = None) -> bool:
        return self.type == "var" and (name is None or self.value == name)


class PolicyExpression(BaseModel):
    """A residual expression: an operator ref followed by its operands."""

    model_config = _IGNORE

    index: int = 0
    terms: list[PolicyTerm] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _bare_term_list(cls, data: Any) -> Any:
        if isinstance(data, list):
            return {"terms": data}
        return data

    @field_validator("terms", mode="before")
    @classmethod
    def _normalise_terms(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, dict):
            return [value]
        return value


class CompileResult(BaseModel):
    model_config = _IGNORE

    queries: list[list[PolicyExpression]] | None = None


class CompileResponse(BaseModel):
    """Body of ``POST /v1/compile``.  A missing ``queries`` list is a deny."""

    model_config = _IGNORE

    result: CompileResult = Field(default_factory=CompileResult)


class PolicyInfo(BaseModel):
    """A queryable rule discovered on the decision service."""

    model_config = ConfigDict(extra="forbid")

    package_path: str
    rule_name: str
    full_path: str
