from __future__ import annotations

import logging
from typing import Any, Mapping, Sequence

from bloc_client.config import AppSettings
from bloc_client.http import HttpClient
from bloc_client.models import (
    ApiResponse,
    FileUploadRequest,
    MultiFileUploadRequest,
    PathLike,
    ProgressCallback,
    as_mapping,
)
from bloc_client.validation import Rejected, validate_upload, validate_uploads

logger = logging.getLogger(__name__)


class FileUploadApiClient:
    """Uploads restricted to the configured image, document and video types."""

    def __init__(self, settings: AppSettings, http_client: HttpClient):
        self._settings = settings
        self._http_client = http_client

    def upload_file(
        self,
        file: PathLike,
        custom_endpoint: str | None = None,
        field_name: str = "file",
        additional_fields: Mapping[str, Any] | None = None,
        requires_auth: bool = True,
        on_progress: ProgressCallback | None = None,
    ) -> ApiResponse[dict[str, Any]]:
        validation = validate_upload(
            file,
            self._settings.max_file_size,
            self._settings.allowed_file_types,
        )
        if isinstance(validation, Rejected):
            logger.info("Refusing to upload %s: %s", file, validation.reason)
            return ApiResponse.failure(message=validation.reason, status_code=400)

        request = FileUploadRequest(
            endpoint=custom_endpoint or self._settings.upload_path,
            file=file,
            field_name=field_name,
            additional_fields=additional_fields,
            requires_auth=requires_auth,
            on_progress=on_progress,
        )
        return self._http_client.upload_file(request, parser=as_mapping)

    def upload_files(
        self,
        files: Sequence[PathLike],
        custom_endpoint: str | None = None,
        field_name: str = "files",
        additional_fields: Mapping[str, Any] | None = None,
        requires_auth: bool = True,
        on_progress: ProgressCallback | None = None,
    ) -> ApiResponse[dict[str, Any]]:
        validation = validate_uploads(
            files,
            self._settings.max_file_size,
            self._settings.allowed_file_types,
        )
        if isinstance(validation, Rejected):
            logger.info("Refusing to upload %d file(s): %s", len(files), validation.reason)
            return ApiResponse.failure(message=validation.reason, status_code=400)

        request = MultiFileUploadRequest(
            endpoint=custom_endpoint or self._settings.upload_path,
            files=tuple(files),
            field_name=field_name,
            additional_fields=additional_fields,
            requires_auth=requires_auth,
            on_progress=on_progress,
        )
        return self._http_client.upload_files(request, parser=as_mapping)
