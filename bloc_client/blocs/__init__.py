from .base import Bloc, Emitter
from .auth_bloc import (
    AuthAuthenticated,
    AuthBloc,
    AuthBlocState,
    AuthCheckStatusEvent,
    AuthError,
    AuthEvent,
    AuthInitial,
    AuthInitializeEvent,
    AuthLoading,
    AuthLoginEvent,
    AuthLogoutEvent,
    AuthRefreshTokenEvent,
    AuthRegisterEvent,
    AuthSplashLoading,
    AuthTokenExpired,
    AuthUnauthenticated,
)
from .api_bloc import (
    ApiBloc,
    ApiError,
    ApiEvent,
    ApiInitial,
    ApiLoading,
    ApiProgress,
    ApiState,
    ApiSuccess,
    DownloadFileEvent,
    GetUserProfileEvent,
    LoginEvent,
    SendFormDataEvent,
    UpdateUserProfileEvent,
    UploadFileEvent,
    UploadMultipleFilesEvent,
)

__all__ = [
    "Bloc",
    "Emitter",
    "AuthAuthenticated",
    "AuthBloc",
    "AuthBlocState",
    "AuthCheckStatusEvent",
    "AuthError",
    "AuthEvent",
    "AuthInitial",
    "AuthInitializeEvent",
    "AuthLoading",
    "AuthLoginEvent",
    "AuthLogoutEvent",
    "AuthRefreshTokenEvent",
    "AuthRegisterEvent",
    "AuthSplashLoading",
    "AuthTokenExpired",
    "AuthUnauthenticated",
    "ApiBloc",
    "ApiError",
    "ApiEvent",
    "ApiInitial",
    "ApiLoading",
    "ApiProgress",
    "ApiState",
    "ApiSuccess",
    "DownloadFileEvent",
    "GetUserProfileEvent",
    "LoginEvent",
    "SendFormDataEvent",
    "UpdateUserProfileEvent",
    "UploadFileEvent",
    "UploadMultipleFilesEvent",
]
