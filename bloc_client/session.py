from __future__ import annotations

import threading
from typing import Any, Mapping

from bloc_client.models import AuthState


class SessionContext:
    """In-memory view of the current auth session, shared by every client.

    The persisted token store remains the source of truth; this object is the
    cache the transport reads when it needs an ``Authorization`` header.
    """

    def __init__(self, token: str | None = None, user: Mapping[str, Any] | None = None):
        self._lock = threading.Lock()
        self._token = token
        self._user = dict(user) if user is not None else None

    @property
    def token(self) -> str | None:
        with self._lock:
            return self._token

    @property
    def user(self) -> dict[str, Any] | None:
        with self._lock:
            return dict(self._user) if self._user is not None else None

    def set_token(self, token: str) -> None:
        with self._lock:
            self._token = token

    def set_user(self, user: Mapping[str, Any] | None) -> None:
        with self._lock:
            self._user = dict(user) if user is not None else None

    def clear(self) -> None:
        with self._lock:
            self._token = None
            self._user = None

    def snapshot(self) -> AuthState:
        with self._lock:
            user = dict(self._user) if self._user is not None else None
            return AuthState(token=self._token, user=user)
