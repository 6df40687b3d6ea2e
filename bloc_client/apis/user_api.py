from __future__ import annotations

from typing import Any

from bloc_client.config import AppSettings
from bloc_client.http import HttpClient
from bloc_client.models import ApiResponse, FileUploadRequest, PathLike, as_mapping


class UserApiClient:
    def __init__(self, settings: AppSettings, http_client: HttpClient):
        self._settings = settings
        self._http_client = http_client

    @property
    def profile_path(self) -> str:
        return self._settings.profile_path

    def get_user_profile(self) -> ApiResponse[dict[str, Any]]:
        return self._http_client.get(
            self._settings.profile_path,
            requires_auth=True,
            parser=as_mapping,
        )

    def update_user_profile(self, user_data: dict[str, Any]) -> ApiResponse[dict[str, Any]]:
        return self._http_client.put(
            self._settings.profile_path,
            data=user_data,
            requires_auth=True,
            parser=as_mapping,
        )

    def upload_profile_picture(self, image_file: PathLike) -> ApiResponse[dict[str, Any]]:
        request = FileUploadRequest(
            endpoint=f"{self._settings.profile_path}/picture",
            file=image_file,
            field_name="profile_picture",
            requires_auth=True,
        )
        return self._http_client.upload_file(request, parser=as_mapping)

    def delete_account(self) -> ApiResponse[bool]:
        return self._http_client.delete(
            self._settings.profile_path,
            requires_auth=True,
            parser=lambda _data: True,
        )
