"""
client/tokens.py -- Client-side access token cache.

The refresh token never passes through here: it stays in the HTTP session's
cookie jar where the server put it. Only the short-lived access token is
cached, because it has to be copied into the Authorization header by hand.

Any object with get() / set(token) / clear() can stand in for
MemoryTokenCache (e.g. a keyring- or file-backed cache in a CLI).
"""

from __future__ import annotations

import threading
from typing import Optional


class MemoryTokenCache:
    """Thread-safe in-process holder for the current access token."""

    def __init__(self, token: Optional[str] = None) -> None:
        self._token = token
        self._lock = threading.Lock()

    def get(self) -> Optional[str]:
        with self._lock:
            return self._token

    def set(self, token: str) -> None:
        with self._lock:
            self._token = token

    def clear(self) -> None:
        with self._lock:
            self._token = None
