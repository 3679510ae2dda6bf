"""Ordered path/method routing.

Rules are tried in declaration order; the first rule whose pattern matches
the whole request path and whose method equals the request method wins.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Mapping

from .errors import RouteNotFound


@dataclass(frozen=True)
class ApiRequest:
    method: str
    path: str
    query: Mapping[str, str] = field(default_factory=dict)
    body: bytes = b""


Handler = Callable[[ApiRequest], dict[str, Any]]


@dataclass(frozen=True)
class Rule:
    pattern: re.Pattern[str]
    method: str
    handler: Handler

    @classmethod
    def build(cls, pattern: str, method: str, handler: Handler) -> "Rule":
        return cls(re.compile(pattern), method.upper(), handler)

    def matches(self, method: str, path: str) -> bool:
        return self.method == method.upper() and self.pattern.fullmatch(path) is not None


class Router:
    def __init__(self, rules: Iterable[Rule]) -> None:
        self._rules = tuple(rules)

    def resolve(self, method: str, path: str) -> Handler:
        for rule in self._rules:
            if rule.matches(method, path):
                return rule.handler
        raise RouteNotFound()

    def dispatch(self, request: ApiRequest) -> dict[str, Any]:
        return self.resolve(request.method, request.path)(request)
