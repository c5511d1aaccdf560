"""
client/routes.py -- Which API routes the client treats as authenticated.

The session client only attempts a refresh-then-retry when a 401 comes back
from a route marked "protected". A 401 from /auth/login means bad
credentials, not an expired token, and must surface to the caller as-is.

Matching: exact path first, then the first rule whose path is a segment
prefix of the request path ("/auth/profile" covers "/auth/profile/avatar").
The root rule "/" only ever matches exactly.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Literal, Optional
from urllib.parse import urlsplit

RouteAuth = Literal["public", "protected", "auth-only"]


@dataclass(frozen=True)
class RouteRule:
    path: str
    auth: RouteAuth = "public"

    def covers(self, path: str) -> bool:
        if path == self.path:
            return True
        if self.path == "/":
            return False
        return path.startswith(self.path.rstrip("/") + "/")


class RouteTable:
    def __init__(self, rules: Iterable[RouteRule]) -> None:
        self.rules = tuple(rules)

    def find(self, path: str) -> Optional[RouteRule]:
        path = urlsplit(path).path or "/"
        for rule in self.rules:
            if rule.path == path:
                return rule
        for rule in self.rules:
            if rule.covers(path):
                return rule
        return None

    def requires_auth(self, path: str) -> bool:
        rule = self.find(path)
        return rule is not None and rule.auth == "protected"


DEFAULT_ROUTES = RouteTable(
    [
        RouteRule("/auth/register", "auth-only"),
        RouteRule("/auth/login", "auth-only"),
        RouteRule("/auth/refresh-token", "public"),
        RouteRule("/auth/logout", "protected"),
        RouteRule("/auth/profile", "protected"),
    ]
)
