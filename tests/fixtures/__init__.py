"""Test fixtures: recorded policy-service responses, sample DDL, a fake HTTP session."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

_FIXTURES_DIR = Path(__file__).parent
_INVALID_JSON = object()


def load_opa_response(name: str) -> dict[str, Any]:
    """Load a recorded decision-service response from ``opa/<name>.json``."""
    return json.loads((_FIXTURES_DIR / "opa" / f"{name}.json").read_text())


def load_ddl() -> str:
    """Return the sample SQLite DDL used by the integration tests."""
    return (_FIXTURES_DIR / "ddl_sqlite.sql").read_text()


class FakeResponse:
    """Minimal stand-in for ``requests.Response``."""

    def __init__(self, payload: Any = None, status_code: int = 200, text: str | None = None) -> None:
        self._payload = payload
        self.status_code = status_code
        if text is None:
            text = "" if payload is _INVALID_JSON else json.dumps(payload)
        self.text = text

    @classmethod
    def invalid_json(cls, text: str = "<html>oops</html>") -> FakeResponse:
        return cls(_INVALID_JSON, text=text)

    def json(self) -> Any:
        if self._payload is _INVALID_JSON:
            raise ValueError("Expecting value: line 1 column 1 (char 0)")
        return self._payload


class FakeSession:
    """Routes ``request`` calls by URL path to canned responses.

    A route value may be a :class:`FakeResponse`, an exception instance to
    raise, or a list of those consumed in order.  Every call is recorded in
    :attr:`calls` as ``(method, url, json, timeout)``.
    """

    def __init__(self, routes: dict[str, Any]) -> None:
        self.routes = routes
        self.calls: list[tuple[str, str, Any, Any]] = []

    def request(self, method: str, url: str, json: Any = None, timeout: Any = None) -> FakeResponse:
        self.calls.append((method, url, json, timeout))
        path = "/" + url.split("://", 1)[-1].split("/", 1)[1]
        route = self.routes[path]
        if isinstance(route, list):
            route = route.pop(0)
        if isinstance(route, Exception):
            raise route
        return route

    def bodies(self, path: str) -> list[Any]:
        """Request bodies sent to ``path``, in call order."""
        return [body for _, url, body, _ in self.calls if url.endswith(path)]
