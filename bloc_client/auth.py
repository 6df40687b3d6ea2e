from __future__ import annotations

import logging
from typing import Any, Mapping

from bloc_client.config import AppSettings
from bloc_client.http import HttpClient
from bloc_client.models import ApiResponse, as_mapping
from bloc_client.session import SessionContext
from bloc_client.storage import KeyValueStore, StorageError

logger = logging.getLogger(__name__)

TOKEN_KEY = "auth_token"


class AuthenticationError(RuntimeError):
    pass


class TokenExpiredError(AuthenticationError):
    pass


class AuthSessionClient:
    def __init__(
        self,
        settings: AppSettings,
        http_client: HttpClient,
        store: KeyValueStore,
        session_context: SessionContext | None = None,
    ):
        self._settings = settings
        self._http_client = http_client
        self._store = store
        self._context = session_context or http_client.session_context

    @property
    def session_context(self) -> SessionContext:
        return self._context

    def login(self, email: str, password: str) -> ApiResponse[dict[str, Any]]:
        response = self._http_client.post(
            self._settings.login_path,
            data={"email": email, "password": password},
            parser=as_mapping,
        )
        self._capture_session(response)
        return response

    def register(
        self,
        email: str,
        password: str,
        first_name: str,
        last_name: str,
        phone: str | None = None,
    ) -> ApiResponse[dict[str, Any]]:
        payload: dict[str, Any] = {
            "email": email,
            "password": password,
            "first_name": first_name,
            "last_name": last_name,
        }
        if phone is not None:
            payload["phone"] = phone

        response = self._http_client.post(
            self._settings.register_path,
            data=payload,
            parser=as_mapping,
        )
        self._capture_session(response)
        return response

    def refresh_token(self) -> ApiResponse[dict[str, Any]]:
        """Exchange the current token for a new one.

        A failed refresh logs the session out locally and raises
        ``TokenExpiredError`` so callers can tell an expired session apart from
        an ordinary request failure.
        """
        response = self._http_client.post(
            self._settings.refresh_path,
            requires_auth=True,
            parser=as_mapping,
        )
        if response.is_success:
            self._capture_session(response)
            return response

        logger.info("Token refresh failed (status %s); clearing session", response.status_code)
        self.logout()
        raise TokenExpiredError(response.message or "Session expired")

    def logout(self) -> ApiResponse[bool]:
        response: ApiResponse[bool] = self._http_client.post(
            self._settings.logout_path,
            requires_auth=True,
            parser=lambda _data: True,
        )
        if not response.is_success:
            logger.info("Remote logout failed (%s); clearing local session anyway", response.message)

        self._context.clear()
        try:
            self._store.remove(TOKEN_KEY)
        except StorageError:
            logger.exception("Could not remove the stored token")
        return response

    def initialize_auth(self) -> None:
        token = self.get_stored_token()
        if token is not None:
            self._context.set_token(token)

    def is_logged_in(self) -> bool:
        return self.get_stored_token() is not None

    def get_stored_token(self) -> str | None:
        return self._store.get(TOKEN_KEY)

    def _capture_session(self, response: ApiResponse[dict[str, Any]]) -> None:
        if not response.is_success or not response.data:
            return

        token = response.data.get("token")
        if not isinstance(token, str) or not token:
            return

        self._store.set(TOKEN_KEY, token)
        self._context.set_token(token)

        user = response.data.get("user")
        if isinstance(user, Mapping):
            self._context.set_user(user)
