from __future__ import annotations

from typing import Any, Mapping

import requests

from bloc_client.models import ApiResponse


NETWORK_ERROR = "Network error. Please check your internet connection."
TIMEOUT_ERROR = "Request timeout. Please try again."
UNAUTHORIZED_ERROR = "Unauthorized. Please login again."
SERVER_ERROR = "Server error. Please try again later."
UNKNOWN_ERROR = "Something went wrong. Please try again."
CANCELLED_ERROR = "Request was cancelled"

STATUS_MESSAGES = {
    400: "Bad request",
    401: UNAUTHORIZED_ERROR,
    403: "Forbidden",
    404: "Not found",
    500: SERVER_ERROR,
}


class ApiHttpError(RuntimeError):
    def __init__(self, status_code: int, message: str, payload: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload


class FileValidationError(ValueError):
    pass


class RequestCancelledError(RuntimeError):
    pass


def classify_error(error: BaseException) -> ApiResponse[Any]:
    """Map any failure raised while talking to the API onto a failure envelope."""
    if isinstance(error, requests.Timeout):
        return ApiResponse.failure(message=TIMEOUT_ERROR, status_code=408)

    if isinstance(error, ApiHttpError):
        return _classify_status(error.status_code, error.payload)

    if isinstance(error, requests.HTTPError) and error.response is not None:
        return _classify_status(error.response.status_code, _safe_json(error.response))

    if isinstance(error, RequestCancelledError):
        return ApiResponse.failure(message=CANCELLED_ERROR, status_code=499)

    if isinstance(error, requests.ConnectionError):
        return ApiResponse.failure(message=NETWORK_ERROR, status_code=0)

    if isinstance(error, requests.RequestException):
        return ApiResponse.failure(message=UNKNOWN_ERROR, status_code=0)

    if isinstance(error, FileValidationError):
        return ApiResponse.failure(message=str(error), status_code=500)

    return ApiResponse.failure(message=str(error), status_code=0)


def _classify_status(status_code: int, payload: Any) -> ApiResponse[Any]:
    message = STATUS_MESSAGES.get(status_code)
    if message is None:
        message = _payload_message(payload) or UNKNOWN_ERROR
    return ApiResponse.failure(message=message, status_code=status_code)


def _payload_message(payload: Any) -> str | None:
    if not isinstance(payload, Mapping):
        return None
    message = payload.get("message")
    if message is None:
        return None
    return str(message).strip() or None


def _safe_json(response: requests.Response) -> Any:
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return None
