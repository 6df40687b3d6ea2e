from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import Any, Mapping

from bloc_client.apis import UserApiClient
from bloc_client.auth import AuthSessionClient, TokenExpiredError
from bloc_client.blocs.base import Bloc, Emitter

logger = logging.getLogger(__name__)


class AuthEvent:
    pass


@dataclass(frozen=True)
class AuthInitializeEvent(AuthEvent):
    pass


@dataclass(frozen=True)
class AuthLoginEvent(AuthEvent):
    email: str
    password: str


@dataclass(frozen=True)
class AuthRegisterEvent(AuthEvent):
    email: str
    password: str
    first_name: str
    last_name: str
    phone: str | None = None


@dataclass(frozen=True)
class AuthLogoutEvent(AuthEvent):
    pass


@dataclass(frozen=True)
class AuthRefreshTokenEvent(AuthEvent):
    pass


@dataclass(frozen=True)
class AuthCheckStatusEvent(AuthEvent):
    pass


class AuthBlocState:
    pass


@dataclass(frozen=True)
class AuthInitial(AuthBlocState):
    pass


@dataclass(frozen=True)
class AuthSplashLoading(AuthBlocState):
    pass


@dataclass(frozen=True)
class AuthLoading(AuthBlocState):
    pass


@dataclass(frozen=True)
class AuthAuthenticated(AuthBlocState):
    user: dict[str, Any] = field(default_factory=dict)
    token: str = ""


@dataclass(frozen=True)
class AuthUnauthenticated(AuthBlocState):
    pass


@dataclass(frozen=True)
class AuthError(AuthBlocState):
    message: str


@dataclass(frozen=True)
class AuthTokenExpired(AuthBlocState):
    pass


class AuthBloc(Bloc[AuthEvent, AuthBlocState]):
    """Drives sign-in, sign-out and session restoration.

    After a successful credential exchange the user profile is fetched. When
    that fetch fails the bloc still authenticates, using the ``user`` object of
    the login/register response if present and otherwise a minimal record built
    from the submitted fields.

    Every intent opens with a loading state, so its terminal state is emitted
    even when it equals the state the bloc was already in.
    """

    def __init__(self, auth_client: AuthSessionClient, user_client: UserApiClient):
        self._auth_client = auth_client
        self._user_client = user_client
        self._context = auth_client.session_context
        super().__init__(AuthInitial())
        self.on(AuthInitializeEvent, self._on_initialize)
        self.on(AuthLoginEvent, self._on_login)
        self.on(AuthRegisterEvent, self._on_register)
        self.on(AuthLogoutEvent, self._on_logout)
        self.on(AuthRefreshTokenEvent, self._on_refresh_token)
        self.on(AuthCheckStatusEvent, self._on_check_status)

    @property
    def is_authenticated(self) -> bool:
        return isinstance(self.state, AuthAuthenticated)

    @property
    def current_token(self) -> str | None:
        return self._context.token

    @property
    def current_user(self) -> dict[str, Any] | None:
        return self._context.user

    def _on_initialize(self, event: AuthInitializeEvent, emit: Emitter[AuthBlocState]) -> None:
        emit(AuthSplashLoading())
        try:
            self._auth_client.initialize_auth()
            if not self._auth_client.is_logged_in():
                emit(AuthUnauthenticated())
                return

            profile = self._user_client.get_user_profile()
            token = self._auth_client.get_stored_token()
            if profile.is_success and profile.data is not None and token:
                self._authenticate(emit, profile.data, token)
                return

            logger.info("Stored token was rejected (%s); signing out", profile.message)
            self._auth_client.logout()
            emit(AuthUnauthenticated())
        except Exception as error:
            logger.exception("Auth initialization failed")
            emit(AuthError(f"Failed to initialize authentication: {error}"))

    def _on_login(self, event: AuthLoginEvent, emit: Emitter[AuthBlocState]) -> None:
        emit(AuthLoading())
        try:
            response = self._auth_client.login(event.email, event.password)
            if not response.is_success or response.data is None:
                emit(AuthError(response.message or "Login failed"))
                return

            self._complete_sign_in(emit, response.data, {"email": event.email}, "Login")
        except Exception as error:
            logger.exception("Login failed")
            emit(AuthError(f"Login error: {error}"))

    def _on_register(self, event: AuthRegisterEvent, emit: Emitter[AuthBlocState]) -> None:
        emit(AuthLoading())
        try:
            response = self._auth_client.register(
                email=event.email,
                password=event.password,
                first_name=event.first_name,
                last_name=event.last_name,
                phone=event.phone,
            )
            if not response.is_success or response.data is None:
                emit(AuthError(response.message or "Registration failed"))
                return

            fallback_user = {
                "email": event.email,
                "firstName": event.first_name,
                "lastName": event.last_name,
            }
            if event.phone is not None:
                fallback_user["phone"] = event.phone
            self._complete_sign_in(emit, response.data, fallback_user, "Registration")
        except Exception as error:
            logger.exception("Registration failed")
            emit(AuthError(f"Registration error: {error}"))

    def _on_logout(self, event: AuthLogoutEvent, emit: Emitter[AuthBlocState]) -> None:
        emit(AuthLoading())
        try:
            self._auth_client.logout()
        except Exception:
            logger.exception("Logout failed; clearing local session")
        finally:
            self._context.clear()
        emit(AuthUnauthenticated())

    def _on_refresh_token(self, event: AuthRefreshTokenEvent, emit: Emitter[AuthBlocState]) -> None:
        emit(AuthLoading())
        try:
            self._auth_client.refresh_token()
        except TokenExpiredError as error:
            logger.info("Session expired: %s", error)
            emit(AuthTokenExpired())
            return
        except Exception:
            logger.exception("Token refresh failed")
            self._force_logout()
            emit(AuthTokenExpired())
            return

        token = self._context.token
        if not token:
            emit(AuthUnauthenticated())
            return

        profile = self._user_client.get_user_profile()
        if profile.is_success and profile.data is not None:
            user = profile.data
        else:
            user = self._context.user or {}
        self._authenticate(emit, user, token)

    def _on_check_status(self, event: AuthCheckStatusEvent, emit: Emitter[AuthBlocState]) -> None:
        emit(AuthLoading())
        try:
            user = self._context.user
            token = self._context.token
            if not self._auth_client.is_logged_in() or user is None or not token:
                emit(AuthUnauthenticated())
                return

            profile = self._user_client.get_user_profile()
            if profile.is_success and profile.data is not None:
                user = profile.data
            self._authenticate(emit, user, token)
        except Exception as error:
            logger.exception("Auth status check failed")
            emit(AuthError(f"Status check failed: {error}"))

    def _complete_sign_in(
        self,
        emit: Emitter[AuthBlocState],
        body: Mapping[str, Any],
        fallback_user: dict[str, Any],
        action: str,
    ) -> None:
        token = body.get("token")
        if not isinstance(token, str) or not token:
            emit(AuthError(f"{action} response did not include a token"))
            return

        profile = self._user_client.get_user_profile()
        if profile.is_success and profile.data is not None:
            user = profile.data
        else:
            logger.info("Profile fetch after %s failed: %s", action.lower(), profile.message)
            embedded = body.get("user")
            user = dict(embedded) if isinstance(embedded, Mapping) else fallback_user
        self._authenticate(emit, user, token)

    def _authenticate(self, emit: Emitter[AuthBlocState], user: Mapping[str, Any], token: str) -> None:
        self._context.set_user(user)
        emit(AuthAuthenticated(user=dict(user), token=token))

    def _force_logout(self) -> None:
        try:
            self._auth_client.logout()
        except Exception:
            logger.exception("Logout after failed refresh raised")
        finally:
            self._context.clear()
