from __future__ import annotations

import logging

import requests

from bloc_client.apis import FileUploadApiClient, GenericApiClient, UserApiClient
from bloc_client.auth import AuthSessionClient
from bloc_client.blocs import ApiBloc, AuthBloc
from bloc_client.config import AppSettings, default_storage_path
from bloc_client.counter import CounterLocalDataSource
from bloc_client.http import HttpClient
from bloc_client.session import SessionContext
from bloc_client.storage import FileKeyValueStore, KeyValueStore

logger = logging.getLogger(__name__)


class ClientServices:
    """Process-wide clients shared by every bloc.

    Clients are created once; blocs are created per caller through the
    ``auth_bloc`` and ``api_bloc`` factories.
    """

    def __init__(
        self,
        settings: AppSettings,
        store: KeyValueStore,
        session: requests.Session | None = None,
    ):
        self._settings = settings
        self._store = store
        self._session_context = SessionContext()
        self._http_client = HttpClient(settings, self._session_context, session=session)
        self._auth_client = AuthSessionClient(settings, self._http_client, store, self._session_context)
        self._user_client = UserApiClient(settings, self._http_client)
        self._file_upload_client = FileUploadApiClient(settings, self._http_client)
        self._generic_client = GenericApiClient(self._http_client)
        self._counter_data_source = CounterLocalDataSource(store)

    @property
    def settings(self) -> AppSettings:
        return self._settings

    @property
    def session_context(self) -> SessionContext:
        return self._session_context

    @property
    def http_client(self) -> HttpClient:
        return self._http_client

    @property
    def auth_client(self) -> AuthSessionClient:
        return self._auth_client

    @property
    def user_client(self) -> UserApiClient:
        return self._user_client

    @property
    def file_upload_client(self) -> FileUploadApiClient:
        return self._file_upload_client

    @property
    def generic_client(self) -> GenericApiClient:
        return self._generic_client

    @property
    def counter_data_source(self) -> CounterLocalDataSource:
        return self._counter_data_source

    def auth_bloc(self) -> AuthBloc:
        return AuthBloc(self._auth_client, self._user_client)

    def api_bloc(self) -> ApiBloc:
        return ApiBloc(
            self._auth_client,
            self._user_client,
            self._file_upload_client,
            self._generic_client,
        )


def build_services(
    settings: AppSettings | None = None,
    store: KeyValueStore | None = None,
    session: requests.Session | None = None,
) -> ClientServices:
    settings = settings or AppSettings.from_env()
    if store is None:
        store = FileKeyValueStore(settings.storage_path or default_storage_path())
    logger.debug("Building client services for %s", settings.base_url)
    return ClientServices(settings, store, session=session)
