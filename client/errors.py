"""
client/errors.py -- Errors raised by the session client.

ApiError carries the server's status code and its "message" field so callers
can show it verbatim. SessionExpiredError means the refresh cycle failed and
the cached credential has been discarded: the user must log in again.
"""

from __future__ import annotations


class ApiError(Exception):
    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.message = message


class SessionExpiredError(ApiError):
    def __init__(self, message: str = "Your session has expired. Please log in again.") -> None:
        super().__init__(401, message)
