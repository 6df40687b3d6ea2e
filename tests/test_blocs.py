from __future__ import annotations

from dataclasses import dataclass
import threading

import pytest
import requests

from bloc_client.auth import TOKEN_KEY
from bloc_client.blocs import (
    ApiError,
    ApiLoading,
    ApiProgress,
    ApiSuccess,
    AuthAuthenticated,
    AuthCheckStatusEvent,
    AuthError,
    AuthInitializeEvent,
    AuthLoading,
    AuthLoginEvent,
    AuthLogoutEvent,
    AuthRefreshTokenEvent,
    AuthRegisterEvent,
    AuthSplashLoading,
    AuthTokenExpired,
    AuthUnauthenticated,
    Bloc,
    DownloadFileEvent,
    GetUserProfileEvent,
    SendFormDataEvent,
    UploadFileEvent,
)
from bloc_client.services import ClientServices
from bloc_client.storage import InMemoryKeyValueStore, StorageError


class _UnreadableStore(InMemoryKeyValueStore):
    def get(self, key):
        raise StorageError("disk unavailable")


def _collect(bloc):
    states = []
    bloc.listen(states.append)
    return states


@pytest.fixture
def auth_bloc(services):
    bloc = services.auth_bloc()
    yield bloc
    bloc.close()


@pytest.fixture
def api_bloc(services):
    bloc = services.api_bloc()
    yield bloc
    bloc.close()


@dataclass(frozen=True)
class _Step:
    name: str


class _RecorderBloc(Bloc[_Step, str]):
    def __init__(self, gate: threading.Event):
        self._gate = gate
        self.active = 0
        self.max_active = 0
        super().__init__("idle")
        self.on(_Step, self._on_step)

    def _on_step(self, event, emit):
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        self._gate.wait(timeout=5)
        emit(f"{event.name}:start")
        emit(f"{event.name}:done")
        self.active -= 1


def test_events_are_processed_in_order_without_overlap():
    gate = threading.Event()
    bloc = _RecorderBloc(gate)
    states = _collect(bloc)

    for name in ("a", "b", "c"):
        bloc.add(_Step(name))
    gate.set()
    bloc.wait_until_idle()
    bloc.close()

    assert states == ["a:start", "a:done", "b:start", "b:done", "c:start", "c:done"]
    assert bloc.state == "c:done"
    assert bloc.max_active == 1


def test_equal_consecutive_states_are_collapsed():
    class _Repeat(Bloc[_Step, str]):
        def __init__(self):
            super().__init__("idle")
            self.on(_Step, lambda event, emit: [emit("same"), emit("same")])

    bloc = _Repeat()
    states = _collect(bloc)
    bloc.add(_Step("x"))
    bloc.wait_until_idle()
    bloc.close()

    assert states == ["same"]


def test_closed_bloc_rejects_events_and_unknown_events_are_refused():
    bloc = _RecorderBloc(threading.Event())
    with pytest.raises(ValueError):
        bloc.add("not an event")
    bloc.close()
    with pytest.raises(RuntimeError):
        bloc.add(_Step("late"))


def test_handler_failure_does_not_stop_the_worker():
    class _Flaky(Bloc[_Step, str]):
        def __init__(self):
            super().__init__("idle")
            self.on(_Step, self._on_step)

        def _on_step(self, event, emit):
            if event.name == "boom":
                raise RuntimeError("boom")
            emit(event.name)

    bloc = _Flaky()
    bloc.add(_Step("boom"))
    bloc.add(_Step("after"))
    bloc.wait_until_idle()
    bloc.close()

    assert bloc.state == "after"


def test_initialize_without_token_is_unauthenticated_offline(auth_bloc, adapter):
    states = _collect(auth_bloc)

    auth_bloc.add(AuthInitializeEvent())
    auth_bloc.wait_until_idle()

    assert states == [AuthSplashLoading(), AuthUnauthenticated()]
    assert adapter.requests == []


def test_initialize_reports_unexpected_store_fault(settings, http_session, adapter):
    services = ClientServices(settings, _UnreadableStore(), session=http_session)
    bloc = services.auth_bloc()
    states = _collect(bloc)

    bloc.add(AuthInitializeEvent())
    bloc.wait_until_idle()
    bloc.close()

    assert states == [
        AuthSplashLoading(),
        AuthError("Failed to initialize authentication: disk unavailable"),
    ]
    assert adapter.requests == []


def test_initialize_with_valid_token_restores_session(auth_bloc, adapter, store):
    store.set(TOKEN_KEY, "T1")
    adapter.add("GET", "/user/profile", json_body={"id": 1})
    states = _collect(auth_bloc)

    auth_bloc.add(AuthInitializeEvent())
    auth_bloc.wait_until_idle()

    assert states == [AuthSplashLoading(), AuthAuthenticated(user={"id": 1}, token="T1")]
    assert adapter.requests[0].headers["Authorization"] == "Bearer T1"
    assert auth_bloc.is_authenticated
    assert auth_bloc.current_user == {"id": 1}


def test_initialize_with_rejected_token_clears_it(auth_bloc, adapter, store):
    store.set(TOKEN_KEY, "STALE")
    adapter.add("GET", "/user/profile", status=401)
    adapter.add("POST", "/auth/logout", status=401)
    states = _collect(auth_bloc)

    auth_bloc.add(AuthInitializeEvent())
    auth_bloc.wait_until_idle()

    assert states == [AuthSplashLoading(), AuthUnauthenticated()]
    assert store.get(TOKEN_KEY) is None


def test_login_then_profile_authenticates(auth_bloc, adapter):
    adapter.add("POST", "/auth/login", json_body={"token": "T1"})
    adapter.add("GET", "/user/profile", json_body={"id": 1, "email": "a@b.com"})
    states = _collect(auth_bloc)

    auth_bloc.add(AuthLoginEvent(email="a@b.com", password="pw"))
    auth_bloc.wait_until_idle()

    assert states == [AuthLoading(), AuthAuthenticated(user={"id": 1, "email": "a@b.com"}, token="T1")]
    assert adapter.calls_to("/user/profile")[0].headers["Authorization"] == "Bearer T1"
    assert auth_bloc.current_token == "T1"


def test_login_falls_back_to_embedded_user_when_profile_fails(auth_bloc, adapter):
    adapter.add("POST", "/auth/login", json_body={"token": "T1", "user": {"id": 9}})
    adapter.add("GET", "/user/profile", status=500)

    auth_bloc.add(AuthLoginEvent(email="a@b.com", password="pw"))
    auth_bloc.wait_until_idle()

    assert auth_bloc.state == AuthAuthenticated(user={"id": 9}, token="T1")


def test_login_falls_back_to_submitted_email_without_embedded_user(auth_bloc, adapter):
    adapter.add("POST", "/auth/login", json_body={"token": "T1"})
    adapter.add_error("GET", "/user/profile", requests.ConnectionError("offline"))

    auth_bloc.add(AuthLoginEvent(email="a@b.com", password="pw"))
    auth_bloc.wait_until_idle()

    assert auth_bloc.state == AuthAuthenticated(user={"email": "a@b.com"}, token="T1")


def test_login_failure_emits_server_message(auth_bloc, adapter):
    adapter.add("POST", "/auth/login", status=401)
    states = _collect(auth_bloc)

    auth_bloc.add(AuthLoginEvent(email="a@b.com", password="bad"))
    auth_bloc.wait_until_idle()

    assert states == [AuthLoading(), AuthError("Unauthorized. Please login again.")]


def test_login_without_token_in_response_is_an_error(auth_bloc, adapter):
    adapter.add("POST", "/auth/login", json_body={"ok": True})

    auth_bloc.add(AuthLoginEvent(email="a@b.com", password="pw"))
    auth_bloc.wait_until_idle()

    assert auth_bloc.state == AuthError("Login response did not include a token")


def test_register_falls_back_to_submitted_fields(auth_bloc, adapter):
    adapter.add("POST", "/auth/register", status=201, json_body={"token": "R1"})
    adapter.add("GET", "/user/profile", status=404)

    auth_bloc.add(AuthRegisterEvent(email="a@b.com", password="pw", first_name="Ada", last_name="Lovelace"))
    auth_bloc.wait_until_idle()

    assert auth_bloc.state == AuthAuthenticated(
        user={"email": "a@b.com", "firstName": "Ada", "lastName": "Lovelace"},
        token="R1",
    )


def test_register_failure_uses_default_message_when_server_is_silent(auth_bloc, adapter):
    adapter.add("POST", "/auth/register", status=409)

    auth_bloc.add(AuthRegisterEvent(email="a@b.com", password="pw", first_name="Ada", last_name="Lovelace"))
    auth_bloc.wait_until_idle()

    assert auth_bloc.state == AuthError("Something went wrong. Please try again.")


def test_refresh_rejected_emits_token_expired(auth_bloc, adapter, store):
    store.set(TOKEN_KEY, "OLD")
    adapter.add("POST", "/auth/refresh", status=401)
    adapter.add("POST", "/auth/logout", status=401)
    states = _collect(auth_bloc)

    auth_bloc.add(AuthRefreshTokenEvent())
    auth_bloc.wait_until_idle()

    assert states == [AuthLoading(), AuthTokenExpired()]
    assert store.get(TOKEN_KEY) is None
    assert auth_bloc.current_token is None


def test_every_failed_refresh_reaches_a_terminal_state(auth_bloc, adapter, store):
    store.set(TOKEN_KEY, "OLD")
    adapter.add("POST", "/auth/refresh", status=401)
    adapter.add("POST", "/auth/logout", status=401)
    states = _collect(auth_bloc)

    auth_bloc.add(AuthRefreshTokenEvent())
    auth_bloc.add(AuthRefreshTokenEvent())
    auth_bloc.wait_until_idle()

    assert states == [AuthLoading(), AuthTokenExpired(), AuthLoading(), AuthTokenExpired()]


def test_refresh_success_reauthenticates(auth_bloc, adapter, store):
    store.set(TOKEN_KEY, "OLD")
    adapter.add("POST", "/auth/refresh", json_body={"token": "NEW"})
    adapter.add("GET", "/user/profile", json_body={"id": 1})

    auth_bloc.add(AuthRefreshTokenEvent())
    auth_bloc.wait_until_idle()

    assert auth_bloc.state == AuthAuthenticated(user={"id": 1}, token="NEW")


def test_logout_always_ends_unauthenticated(auth_bloc, adapter, store):
    store.set(TOKEN_KEY, "T1")
    adapter.add_error("POST", "/auth/logout", requests.ConnectionError("offline"))
    states = _collect(auth_bloc)

    auth_bloc.add(AuthLogoutEvent())
    auth_bloc.wait_until_idle()

    assert states == [AuthLoading(), AuthUnauthenticated()]
    assert store.get(TOKEN_KEY) is None


def test_check_status_without_session_is_unauthenticated(auth_bloc, adapter):
    auth_bloc.add(AuthCheckStatusEvent())
    auth_bloc.wait_until_idle()

    assert auth_bloc.state == AuthUnauthenticated()
    assert adapter.requests == []


def test_check_status_keeps_cached_user_when_profile_fails(auth_bloc, adapter):
    adapter.add("POST", "/auth/login", json_body={"token": "T1", "user": {"id": 3}})
    adapter.add("GET", "/user/profile", status=503)

    auth_bloc.add(AuthLoginEvent(email="a@b.com", password="pw"))
    auth_bloc.add(AuthCheckStatusEvent())
    auth_bloc.wait_until_idle()

    assert auth_bloc.state == AuthAuthenticated(user={"id": 3}, token="T1")
    assert len(adapter.calls_to("/user/profile")) == 2


def test_api_bloc_profile_success(api_bloc, adapter):
    adapter.add("GET", "/user/profile", json_body={"id": 1})
    states = _collect(api_bloc)

    api_bloc.add(GetUserProfileEvent())
    api_bloc.wait_until_idle()

    assert states == [ApiLoading(), ApiSuccess({"id": 1}, message="User profile loaded successfully")]


def test_api_bloc_not_found_is_an_error_state(api_bloc, adapter):
    adapter.add("GET", "/user/profile", status=404)
    states = _collect(api_bloc)

    api_bloc.add(GetUserProfileEvent())
    api_bloc.wait_until_idle()

    assert states == [ApiLoading(), ApiError("Not found")]


def test_api_bloc_upload_reports_progress_before_success(api_bloc, adapter, tmp_path):
    photo = tmp_path / "photo.jpg"
    photo.write_bytes(b"x" * 40)
    adapter.add("POST", "/upload", json_body={"id": "p1"})
    states = _collect(api_bloc)

    api_bloc.add(UploadFileEvent(photo))
    api_bloc.wait_until_idle()

    assert states[0] == ApiLoading()
    assert states[-1] == ApiSuccess({"id": "p1"}, message="File uploaded successfully")
    progress = [state.progress for state in states if isinstance(state, ApiProgress)]
    assert progress and progress[-1] == 1.0
    assert progress == sorted(progress)
    assert all(0.0 <= value <= 1.0 for value in progress)


def test_api_bloc_rejected_upload_is_an_error(api_bloc, adapter, tmp_path):
    archive = tmp_path / "backup.zip"
    archive.write_bytes(b"PK")

    api_bloc.add(UploadFileEvent(archive))
    api_bloc.wait_until_idle()

    assert api_bloc.state == ApiError("File type 'zip' is not allowed")
    assert adapter.requests == []


def test_api_bloc_download_and_form(api_bloc, adapter, tmp_path):
    adapter.add(
        "GET",
        "/files/abc",
        body=b"hello",
        headers={"Content-Type": "application/octet-stream", "Content-Length": "5"},
    )
    adapter.add("POST", "/contact", json_body={"received": True})
    destination = tmp_path / "hello.txt"
    states = _collect(api_bloc)

    api_bloc.add(DownloadFileEvent("abc", destination))
    api_bloc.add(SendFormDataEvent({"subject": "Hi"}))
    api_bloc.wait_until_idle()

    assert states == [
        ApiLoading(),
        ApiProgress(1.0),
        ApiSuccess(str(destination), message="File downloaded successfully"),
        ApiLoading(),
        ApiSuccess({"received": True}, message="Form data sent successfully"),
    ]
    assert destination.read_text() == "hello"
