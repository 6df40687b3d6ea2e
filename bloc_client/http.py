from __future__ import annotations

import logging
import mimetypes
import os
from pathlib import Path
from typing import Any, Callable, Iterator, Mapping, Optional, Sequence, TypeVar

import requests
from urllib3 import encode_multipart_formdata

from bloc_client.config import AppSettings
from bloc_client.errors import ApiHttpError, FileValidationError, classify_error
from bloc_client.models import (
    ApiRequest,
    ApiResponse,
    FileUploadRequest,
    HttpMethod,
    MultiFileUploadRequest,
    PathLike,
    ProgressCallback,
)
from bloc_client.session import SessionContext
from bloc_client.validation import Rejected, validate_upload, validate_uploads

T = TypeVar("T")
Parser = Callable[[Any], T]

logger = logging.getLogger(__name__)

CONTENT_TYPE_JSON = "application/json"
CONTENT_TYPE_URL_ENCODED = "application/x-www-form-urlencoded"


class _ProgressBody:
    """Request body that reports ``(sent, total)`` as the transport consumes it."""

    def __init__(self, payload: bytes, on_progress: ProgressCallback, chunk_size: int):
        self._payload = payload
        self._on_progress = on_progress
        self._chunk_size = chunk_size

    def __len__(self) -> int:
        return len(self._payload)

    def __iter__(self) -> Iterator[bytes]:
        total = len(self._payload)
        sent = 0
        for start in range(0, total, self._chunk_size):
            chunk = self._payload[start:start + self._chunk_size]
            yield chunk
            sent += len(chunk)
            self._on_progress(sent, total)


class HttpClient:
    def __init__(
        self,
        settings: AppSettings,
        session_context: SessionContext | None = None,
        session: requests.Session | None = None,
        chunk_size: int = 64 * 1024,
    ):
        self._settings = settings
        self._context = session_context or SessionContext()
        self._chunk_size = chunk_size
        self._session = session or requests.Session()
        self._session.headers.update(
            {
                "Accept": CONTENT_TYPE_JSON,
                "Content-Type": CONTENT_TYPE_JSON,
            }
        )

    @property
    def session_context(self) -> SessionContext:
        return self._context

    def set_auth_token(self, token: str) -> None:
        self._context.set_token(token)

    def clear_auth_token(self) -> None:
        self._context.clear()

    def request(self, request: ApiRequest, parser: Optional[Parser[T]] = None) -> ApiResponse[T]:
        url = self._build_url(request.endpoint)
        logger.debug("%s %s", request.method.value, url)
        try:
            response = self._session.request(
                request.method.value,
                url,
                params=request.query_parameters,
                json=None if request.method is HttpMethod.GET else request.data,
                headers=self._build_headers(request.headers, request.requires_auth),
                timeout=self._resolve_timeout(request.timeout),
            )
            return self._handle_response(response, parser)
        except Exception as error:
            return self._handle_error(error, request.method.value, request.endpoint)

    def get(
        self,
        endpoint: str,
        query_parameters: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
        requires_auth: bool = False,
        parser: Optional[Parser[T]] = None,
    ) -> ApiResponse[T]:
        request = ApiRequest(
            endpoint=endpoint,
            method=HttpMethod.GET,
            query_parameters=query_parameters,
            headers=headers,
            requires_auth=requires_auth,
        )
        return self.request(request, parser=parser)

    def post(
        self,
        endpoint: str,
        data: Mapping[str, Any] | None = None,
        query_parameters: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
        requires_auth: bool = False,
        parser: Optional[Parser[T]] = None,
    ) -> ApiResponse[T]:
        return self._send_with_body(HttpMethod.POST, endpoint, data, query_parameters, headers, requires_auth, parser)

    def put(
        self,
        endpoint: str,
        data: Mapping[str, Any] | None = None,
        query_parameters: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
        requires_auth: bool = False,
        parser: Optional[Parser[T]] = None,
    ) -> ApiResponse[T]:
        return self._send_with_body(HttpMethod.PUT, endpoint, data, query_parameters, headers, requires_auth, parser)

    def patch(
        self,
        endpoint: str,
        data: Mapping[str, Any] | None = None,
        query_parameters: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
        requires_auth: bool = False,
        parser: Optional[Parser[T]] = None,
    ) -> ApiResponse[T]:
        return self._send_with_body(HttpMethod.PATCH, endpoint, data, query_parameters, headers, requires_auth, parser)

    def delete(
        self,
        endpoint: str,
        data: Mapping[str, Any] | None = None,
        query_parameters: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
        requires_auth: bool = False,
        parser: Optional[Parser[T]] = None,
    ) -> ApiResponse[T]:
        return self._send_with_body(HttpMethod.DELETE, endpoint, data, query_parameters, headers, requires_auth, parser)

    def _send_with_body(
        self,
        method: HttpMethod,
        endpoint: str,
        data: Mapping[str, Any] | None,
        query_parameters: Mapping[str, Any] | None,
        headers: Mapping[str, str] | None,
        requires_auth: bool,
        parser: Optional[Parser[T]],
    ) -> ApiResponse[T]:
        request = ApiRequest(
            endpoint=endpoint,
            method=method,
            query_parameters=query_parameters,
            data=data,
            headers=headers,
            requires_auth=requires_auth,
        )
        return self.request(request, parser=parser)

    def upload_file(self, request: FileUploadRequest, parser: Optional[Parser[T]] = None) -> ApiResponse[T]:
        validation = validate_upload(request.file, self._settings.max_file_size)
        if isinstance(validation, Rejected):
            logger.warning("Upload to %s rejected before sending: %s", request.endpoint, validation.reason)
            return ApiResponse.failure(message=validation.reason, status_code=500)

        try:
            fields: list[tuple[str, Any]] = [(request.field_name, self._file_part(request.file))]
            fields.extend(self._flat_fields(request.additional_fields))
            return self._post_multipart(
                request.endpoint,
                fields,
                headers=request.headers,
                requires_auth=request.requires_auth,
                on_progress=request.on_progress,
                parser=parser,
            )
        except Exception as error:
            return self._handle_error(error, "POST", request.endpoint)

    def upload_files(self, request: MultiFileUploadRequest, parser: Optional[Parser[T]] = None) -> ApiResponse[T]:
        validation = validate_uploads(request.files, self._settings.max_file_size)
        if isinstance(validation, Rejected):
            logger.warning("Upload to %s rejected before sending: %s", request.endpoint, validation.reason)
            return ApiResponse.failure(message=validation.reason, status_code=500)

        try:
            fields: list[tuple[str, Any]] = [
                (request.field_name, self._file_part(path)) for path in request.files
            ]
            fields.extend(self._flat_fields(request.additional_fields))
            return self._post_multipart(
                request.endpoint,
                fields,
                headers=request.headers,
                requires_auth=request.requires_auth,
                on_progress=request.on_progress,
                parser=parser,
            )
        except Exception as error:
            return self._handle_error(error, "POST", request.endpoint)

    def send_form_data(
        self,
        endpoint: str,
        data: Mapping[str, Any],
        query_parameters: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
        requires_auth: bool = False,
        parser: Optional[Parser[T]] = None,
    ) -> ApiResponse[T]:
        url = self._build_url(endpoint)
        logger.debug("POST %s (form)", url)
        try:
            request_headers = {"Content-Type": CONTENT_TYPE_URL_ENCODED, **(headers or {})}
            response = self._session.post(
                url,
                data=dict(data),
                params=query_parameters,
                headers=self._build_headers(request_headers, requires_auth),
                timeout=self._resolve_timeout(None),
            )
            return self._handle_response(response, parser)
        except Exception as error:
            return self._handle_error(error, "POST", endpoint)

    def send_multipart_form_data(
        self,
        endpoint: str,
        data: Mapping[str, Any],
        query_parameters: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
        requires_auth: bool = False,
        parser: Optional[Parser[T]] = None,
    ) -> ApiResponse[T]:
        try:
            return self._post_multipart(
                endpoint,
                self._flat_fields(data),
                headers=headers,
                requires_auth=requires_auth,
                query_parameters=query_parameters,
                parser=parser,
            )
        except Exception as error:
            return self._handle_error(error, "POST", endpoint)

    def download_file(
        self,
        endpoint: str,
        save_path: PathLike,
        query_parameters: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
        requires_auth: bool = False,
        on_progress: ProgressCallback | None = None,
    ) -> ApiResponse[str]:
        url = self._build_url(endpoint)
        destination = Path(save_path)
        logger.debug("GET %s -> %s", url, destination)
        try:
            with self._session.get(
                url,
                params=query_parameters,
                headers=self._build_headers(headers, requires_auth),
                timeout=self._resolve_timeout(None),
                stream=True,
            ) as response:
                if not 200 <= response.status_code < 300:
                    raise self._http_error(response)
                self._stream_to_file(response, destination, on_progress)

            return ApiResponse.success(
                data=str(destination),
                message="File downloaded successfully",
                status_code=response.status_code,
                headers=dict(response.headers),
            )
        except Exception as error:
            return self._handle_error(error, "GET", endpoint)

    def _stream_to_file(
        self,
        response: requests.Response,
        destination: Path,
        on_progress: ProgressCallback | None,
    ) -> None:
        try:
            total = int(response.headers.get("Content-Length", -1))
        except ValueError:
            total = -1

        destination.parent.mkdir(parents=True, exist_ok=True)
        received = 0
        try:
            with destination.open("wb") as handle:
                for chunk in response.iter_content(chunk_size=self._chunk_size):
                    if not chunk:
                        continue
                    handle.write(chunk)
                    received += len(chunk)
                    if on_progress is not None:
                        on_progress(received, total)
        except Exception:
            destination.unlink(missing_ok=True)
            raise

    def _post_multipart(
        self,
        endpoint: str,
        fields: Sequence[tuple[str, Any]],
        headers: Mapping[str, str] | None,
        requires_auth: bool,
        on_progress: ProgressCallback | None = None,
        query_parameters: Mapping[str, Any] | None = None,
        parser: Optional[Parser[T]] = None,
    ) -> ApiResponse[T]:
        url = self._build_url(endpoint)
        payload, content_type = encode_multipart_formdata(list(fields))
        body: Any = payload
        if on_progress is not None:
            body = _ProgressBody(payload, on_progress, self._chunk_size)

        request_headers = {**(headers or {}), "Content-Type": content_type}
        logger.debug("POST %s (multipart, %d bytes)", url, len(payload))
        response = self._session.post(
            url,
            data=body,
            params=query_parameters,
            headers=self._build_headers(request_headers, requires_auth),
            timeout=self._resolve_timeout(None),
        )
        return self._handle_response(response, parser)

    @staticmethod
    def _file_part(path: PathLike) -> tuple[str, bytes, str]:
        file_name = os.path.basename(os.fspath(path))
        mime_type = mimetypes.guess_type(file_name)[0] or "application/octet-stream"
        with open(path, "rb") as handle:
            return (file_name, handle.read(), mime_type)

    @staticmethod
    def _flat_fields(values: Mapping[str, Any] | None) -> list[tuple[str, str]]:
        fields: list[tuple[str, str]] = []
        for name, value in (values or {}).items():
            if isinstance(value, (Mapping, list, tuple, set)):
                raise FileValidationError(f"Form field '{name}' must be a flat value")
            if value is None:
                continue
            if isinstance(value, bool):
                value = "true" if value else "false"
            fields.append((name, str(value)))
        return fields

    def _build_url(self, endpoint: str) -> str:
        if endpoint.startswith(("http://", "https://")):
            return endpoint
        return f"{self._settings.base_url.rstrip('/')}/{endpoint.lstrip('/')}"

    def _build_headers(self, extra: Mapping[str, str] | None, requires_auth: bool) -> dict[str, str]:
        headers = dict(extra or {})
        token = self._context.token
        if requires_auth and token is not None:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    def _resolve_timeout(self, timeout: float | None) -> tuple[float, float]:
        if timeout is not None:
            return (timeout, timeout)
        return self._settings.timeout

    def _handle_response(self, response: requests.Response, parser: Optional[Parser[T]]) -> ApiResponse[T]:
        if not 200 <= response.status_code < 300:
            raise self._http_error(response)

        body = self._decode_body(response)
        data = parser(body) if parser is not None else body
        return ApiResponse.success(
            data=data,
            message=response.reason,
            status_code=response.status_code,
            headers=dict(response.headers),
        )

    def _http_error(self, response: requests.Response) -> ApiHttpError:
        return ApiHttpError(
            status_code=response.status_code,
            message=f"HTTP {response.status_code}: {response.text[:500]}",
            payload=self._decode_body(response),
        )

    @staticmethod
    def _decode_body(response: requests.Response) -> Any:
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return response.text

    @staticmethod
    def _handle_error(error: Exception, method: str, endpoint: str) -> ApiResponse[Any]:
        result = classify_error(error)
        if isinstance(error, (requests.RequestException, ApiHttpError, FileValidationError)):
            logger.warning(
                "%s %s failed: %s (status %s)",
                method,
                endpoint,
                result.message,
                result.status_code,
            )
        else:
            logger.exception("%s %s failed unexpectedly", method, endpoint)
        return result
