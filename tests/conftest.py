from __future__ import annotations

from http import HTTPStatus
import io
import json
from typing import Any
from urllib.parse import urlsplit

import pytest
import requests
from requests.adapters import BaseAdapter
from requests.structures import CaseInsensitiveDict

from bloc_client.config import AppSettings
from bloc_client.http import HttpClient
from bloc_client.services import ClientServices
from bloc_client.session import SessionContext
from bloc_client.storage import InMemoryKeyValueStore

BASE_URL = "https://api.example.test"


class RecordingAdapter(BaseAdapter):
    """Answers requests from a route table and keeps every prepared request."""

    def __init__(self):
        super().__init__()
        self.requests: list[requests.PreparedRequest] = []
        self.bodies: list[bytes] = []
        self.timeouts: list[Any] = []
        self._routes: dict[tuple[str, str], list[Any]] = {}

    def add(
        self,
        method: str,
        path: str,
        status: int = 200,
        json_body: Any = None,
        body: bytes | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        if body is None:
            body = b"" if json_body is None else json.dumps(json_body).encode("utf-8")
        response_headers = {"Content-Type": "application/json"}
        response_headers.update(headers or {})
        self._routes.setdefault((method.upper(), path), []).append((status, body, response_headers))

    def add_error(self, method: str, path: str, error: Exception) -> None:
        self._routes.setdefault((method.upper(), path), []).append(error)

    def calls_to(self, path: str) -> list[requests.PreparedRequest]:
        return [request for request in self.requests if urlsplit(request.url).path == path]

    def send(self, request, stream=False, timeout=None, verify=True, cert=None, proxies=None):
        body = request.body
        if body is None:
            consumed = b""
        elif isinstance(body, bytes):
            consumed = body
        elif isinstance(body, str):
            consumed = body.encode("utf-8")
        else:
            consumed = b"".join(body)
        self.requests.append(request)
        self.bodies.append(consumed)
        self.timeouts.append(timeout)

        path = urlsplit(request.url).path
        queued = self._routes.get((request.method, path))
        if not queued:
            return self._build_response(request, 404, json.dumps({"message": "no route"}).encode(), {})

        entry = queued.pop(0) if len(queued) > 1 else queued[0]
        if isinstance(entry, Exception):
            raise entry
        status, payload, headers = entry
        return self._build_response(request, status, payload, headers)

    @staticmethod
    def _build_response(request, status: int, payload: bytes, headers: dict[str, str]) -> requests.Response:
        response = requests.Response()
        response.status_code = status
        response.reason = HTTPStatus(status).phrase
        response.headers = CaseInsensitiveDict(headers)
        response.raw = io.BytesIO(payload)
        response.encoding = "utf-8"
        response.url = request.url
        response.request = request
        return response

    def close(self):
        pass


@pytest.fixture
def settings(tmp_path) -> AppSettings:
    return AppSettings(
        base_url=BASE_URL,
        connect_timeout_seconds=5,
        receive_timeout_seconds=7,
        storage_path=str(tmp_path / "prefs.json"),
    )


@pytest.fixture
def adapter() -> RecordingAdapter:
    return RecordingAdapter()


@pytest.fixture
def http_session(adapter) -> requests.Session:
    session = requests.Session()
    session.mount(BASE_URL, adapter)
    return session


@pytest.fixture
def session_context() -> SessionContext:
    return SessionContext()


@pytest.fixture
def http_client(settings, session_context, http_session) -> HttpClient:
    return HttpClient(settings, session_context, session=http_session, chunk_size=4)


@pytest.fixture
def store() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture
def services(settings, store, http_session):
    return ClientServices(settings, store, session=http_session)
