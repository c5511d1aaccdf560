"""
client/session.py -- Session client with transparent refresh-on-401.

Every authorized call goes through SessionClient.request(), which composes:

  1. issue the request (Bearer header from the token cache when auth=True)
  2. inspect the response
  3. on 401 from a protected route, refresh the access token ONCE
  4. reissue the original request once with the new credential

The retry is an explicit loop with a single `retried` flag, not recursion:
no call ever produces more than two requests to its target, so a dead session
cannot trigger a refresh storm. refresh() itself bypasses the wrapper.

If the refresh fails, the session is over: the cached access token is
discarded, `location` is pointed at the login entry point, the optional
on_session_expired callback fires, and SessionExpiredError is raised.

Concurrent callers in different threads that hit 401 at the same time share
one refresh: the first takes the lock and rotates; the others find a new
token in the cache when they get the lock and retry with it directly.

The HTTP session must keep cookies between calls (requests.Session and
httpx.Client both do) because the refresh token travels as a cookie.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Optional

import requests

from client.errors import ApiError, SessionExpiredError
from client.routes import DEFAULT_ROUTES, RouteTable
from client.tokens import MemoryTokenCache

logger = logging.getLogger("authsession.client")

_DEFAULT_TIMEOUT = 10


class SessionClient:
    """Talks to the authsession API and keeps the login alive.

    Args:
        base_url:            API root, e.g. "http://localhost:3000/api/v1".
        http:                Cookie-keeping HTTP session. Defaults to requests.Session().
        cache:               Access token holder (get/set/clear). Defaults to MemoryTokenCache().
        routes:              RouteTable deciding which 401s may be refreshed.
        login_path:          Unauthenticated entry point to navigate to when the session ends.
        on_session_expired:  Called with login_path after the session is terminated.
    """

    def __init__(
        self,
        base_url: str,
        http: Any = None,
        cache: Any = None,
        routes: Optional[RouteTable] = None,
        login_path: str = "/login",
        on_session_expired: Optional[Callable[[str], None]] = None,
        timeout: float = _DEFAULT_TIMEOUT,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.http = http if http is not None else requests.Session()
        self.cache = cache if cache is not None else MemoryTokenCache()
        self.routes = routes if routes is not None else DEFAULT_ROUTES
        self.login_path = login_path
        self.timeout = timeout
        self.location: Optional[str] = None
        self._on_session_expired = on_session_expired
        self._refresh_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Core wrapper
    # ------------------------------------------------------------------

    def request(self, method: str, path: str, auth: bool = False, **kwargs) -> dict:
        """Send a request, refreshing and retrying once on 401 from a protected route.

        Returns the decoded JSON body of a 2xx response.

        Raises:
            ApiError:            non-2xx final response, or a non-JSON body.
            SessionExpiredError: 401 on a protected route and the refresh failed.
        """
        path = path if path.startswith("/") else f"/{path}"
        url = f"{self.base_url}{path}"
        extra_headers = dict(kwargs.pop("headers", None) or {})
        kwargs.setdefault("timeout", self.timeout)

        token = self.cache.get() if auth else None
        retried = False
        while True:
            headers = dict(extra_headers)
            if token:
                headers["Authorization"] = f"Bearer {token}"
            response = self.http.request(method, url, headers=headers, **kwargs)

            if response.status_code != 401 or retried or not self.routes.requires_auth(path):
                break

            retried = True
            logger.debug("401 from %s %s; refreshing access token", method, path)
            token = self._refresh_after(token)

        return self._parse(response)

    def _refresh_after(self, failed_token: Optional[str]) -> str:
        """Return a usable access token after failed_token was rejected."""
        with self._refresh_lock:
            current = self.cache.get()
            if current and current != failed_token:
                # Another caller rotated while we waited for the lock.
                return current
            try:
                return self.refresh()
            except ApiError as exc:
                logger.info("Refresh failed (%s); ending session", exc.message)
                self._end_session()

    def _end_session(self) -> None:
        self.cache.clear()
        self.location = self.login_path
        if self._on_session_expired is not None:
            self._on_session_expired(self.login_path)
        raise SessionExpiredError()

    @staticmethod
    def _parse(response) -> dict:
        try:
            body = response.json()
        except ValueError as exc:
            raise ApiError(response.status_code, "Invalid response format") from exc
        if not 200 <= response.status_code < 300:
            message = body.get("message") if isinstance(body, dict) else None
            raise ApiError(response.status_code, message or "An error occurred")
        return body

    # ------------------------------------------------------------------
    # API calls
    # ------------------------------------------------------------------

    def refresh(self) -> str:
        """Rotate the refresh cookie and cache the new access token.

        Goes straight to the HTTP session: a 401 here must never trigger
        another refresh.
        """
        response = self.http.request("POST", f"{self.base_url}/auth/refresh-token", timeout=self.timeout)
        body = self._parse(response)
        token = (body.get("data") or {}).get("accessToken")
        if not token:
            raise ApiError(response.status_code, "Refresh response did not include an access token")
        self.cache.set(token)
        return token

    def register(self, email: str, password: str, name: Optional[str] = None) -> dict:
        payload: dict = {"email": email, "password": password}
        if name is not None:
            payload["name"] = name
        body = self.request("POST", "/auth/register", json=payload)
        self._start(body)
        return body["data"]["user"]

    def login(self, email: str, password: str) -> dict:
        body = self.request("POST", "/auth/login", json={"email": email, "password": password})
        self._start(body)
        return body["data"]["user"]

    def logout(self) -> None:
        try:
            self.request("POST", "/auth/logout", auth=True)
        finally:
            self.cache.clear()

    def get_profile(self) -> dict:
        return self.request("GET", "/auth/profile", auth=True)["data"]["user"]

    def _start(self, body: dict) -> None:
        self.cache.set(body["data"]["accessToken"])
        self.location = None
