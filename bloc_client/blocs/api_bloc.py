from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Any, Callable

from bloc_client.apis import FileUploadApiClient, GenericApiClient, UserApiClient
from bloc_client.auth import AuthSessionClient
from bloc_client.blocs.base import Bloc, Emitter
from bloc_client.models import ApiResponse, PathLike, ProgressCallback, as_mapping

logger = logging.getLogger(__name__)


class ApiEvent:
    pass


@dataclass(frozen=True)
class GetUserProfileEvent(ApiEvent):
    pass


@dataclass(frozen=True)
class UpdateUserProfileEvent(ApiEvent):
    user_data: dict[str, Any]


@dataclass(frozen=True)
class UploadFileEvent(ApiEvent):
    file: PathLike
    field_name: str = "file"


@dataclass(frozen=True)
class UploadMultipleFilesEvent(ApiEvent):
    files: tuple[PathLike, ...]


@dataclass(frozen=True)
class SendFormDataEvent(ApiEvent):
    form_data: dict[str, Any]
    endpoint: str = "/contact"


@dataclass(frozen=True)
class DownloadFileEvent(ApiEvent):
    file_id: str
    save_path: PathLike


@dataclass(frozen=True)
class LoginEvent(ApiEvent):
    email: str
    password: str


class ApiState:
    pass


@dataclass(frozen=True)
class ApiInitial(ApiState):
    pass


@dataclass(frozen=True)
class ApiLoading(ApiState):
    pass


@dataclass(frozen=True)
class ApiProgress(ApiState):
    progress: float


@dataclass(frozen=True)
class ApiSuccess(ApiState):
    data: Any = None
    message: str = "Success"


@dataclass(frozen=True)
class ApiError(ApiState):
    message: str = "Something went wrong. Please try again."


class ApiBloc(Bloc[ApiEvent, ApiState]):
    def __init__(
        self,
        auth_client: AuthSessionClient,
        user_client: UserApiClient,
        file_upload_client: FileUploadApiClient,
        generic_client: GenericApiClient,
    ):
        self._auth_client = auth_client
        self._user_client = user_client
        self._file_upload_client = file_upload_client
        self._generic_client = generic_client
        super().__init__(ApiInitial())
        self.on(GetUserProfileEvent, self._on_get_user_profile)
        self.on(UpdateUserProfileEvent, self._on_update_user_profile)
        self.on(UploadFileEvent, self._on_upload_file)
        self.on(UploadMultipleFilesEvent, self._on_upload_multiple_files)
        self.on(SendFormDataEvent, self._on_send_form_data)
        self.on(DownloadFileEvent, self._on_download_file)
        self.on(LoginEvent, self._on_login)

    def _on_get_user_profile(self, event: GetUserProfileEvent, emit: Emitter[ApiState]) -> None:
        self._run_call(
            emit,
            self._user_client.get_user_profile,
            "User profile loaded successfully",
            "Failed to load user profile",
        )

    def _on_update_user_profile(self, event: UpdateUserProfileEvent, emit: Emitter[ApiState]) -> None:
        self._run_call(
            emit,
            lambda: self._user_client.update_user_profile(event.user_data),
            "User profile updated successfully",
            "Failed to update user profile",
        )

    def _on_upload_file(self, event: UploadFileEvent, emit: Emitter[ApiState]) -> None:
        self._run_call(
            emit,
            lambda: self._file_upload_client.upload_file(
                event.file,
                field_name=event.field_name,
                on_progress=self._progress_reporter(emit),
            ),
            "File uploaded successfully",
            "Failed to upload file",
        )

    def _on_upload_multiple_files(self, event: UploadMultipleFilesEvent, emit: Emitter[ApiState]) -> None:
        self._run_call(
            emit,
            lambda: self._file_upload_client.upload_files(
                list(event.files),
                on_progress=self._progress_reporter(emit),
            ),
            "Files uploaded successfully",
            "Failed to upload files",
        )

    def _on_send_form_data(self, event: SendFormDataEvent, emit: Emitter[ApiState]) -> None:
        self._run_call(
            emit,
            lambda: self._generic_client.send_form_data(
                event.endpoint,
                data=event.form_data,
                requires_auth=True,
                parser=as_mapping,
            ),
            "Form data sent successfully",
            "Failed to send form data",
        )

    def _on_download_file(self, event: DownloadFileEvent, emit: Emitter[ApiState]) -> None:
        self._run_call(
            emit,
            lambda: self._generic_client.download_file(
                f"/files/{event.file_id}",
                event.save_path,
                requires_auth=True,
                on_progress=self._progress_reporter(emit),
            ),
            "File downloaded successfully",
            "Failed to download file",
        )

    def _on_login(self, event: LoginEvent, emit: Emitter[ApiState]) -> None:
        self._run_call(
            emit,
            lambda: self._auth_client.login(event.email, event.password),
            "Login successful",
            "Login failed",
        )

    @staticmethod
    def _run_call(
        emit: Emitter[ApiState],
        call: Callable[[], ApiResponse[Any]],
        success_message: str,
        failure_message: str,
    ) -> None:
        emit(ApiLoading())
        try:
            response = call()
        except Exception as error:
            logger.exception("%s", failure_message)
            emit(ApiError(str(error)))
            return

        if response.is_success:
            emit(ApiSuccess(response.data, message=success_message))
        else:
            emit(ApiError(response.message or failure_message))

    @staticmethod
    def _progress_reporter(emit: Emitter[ApiState]) -> ProgressCallback:
        def report(transferred: int, total: int) -> None:
            if total <= 0:
                return
            emit(ApiProgress(min(1.0, max(0.0, transferred / total))))

        return report
