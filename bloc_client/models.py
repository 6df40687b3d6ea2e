from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Generic, Mapping, Optional, TypeVar, Union

T = TypeVar("T")

ProgressCallback = Callable[[int, int], None]
PathLike = Union[str, Path]


class HttpMethod(str, Enum):
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"


@dataclass(frozen=True)
class ApiResponse(Generic[T]):
    """Uniform result of every API call.

    Successful responses are built with ``ApiResponse.success`` and may still
    carry ``data=None`` for endpoints without a body. Failures never carry data.
    """

    is_success: bool
    data: Optional[T] = None
    message: str | None = None
    status_code: int | None = None
    headers: Mapping[str, str] | None = None

    @classmethod
    def success(
        cls,
        data: Optional[T] = None,
        message: str | None = None,
        status_code: int | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> "ApiResponse[T]":
        return cls(
            is_success=True,
            data=data,
            message=message,
            status_code=status_code,
            headers=headers,
        )

    @classmethod
    def failure(
        cls,
        message: str | None = None,
        status_code: int | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> "ApiResponse[T]":
        return cls(
            is_success=False,
            message=message,
            status_code=status_code,
            headers=headers,
        )


@dataclass(frozen=True)
class ApiRequest:
    endpoint: str
    method: HttpMethod
    query_parameters: Mapping[str, Any] | None = None
    data: Mapping[str, Any] | None = None
    headers: Mapping[str, str] | None = None
    requires_auth: bool = False
    timeout: float | None = None


@dataclass(frozen=True)
class FileUploadRequest:
    endpoint: str
    file: PathLike
    field_name: str = "file"
    additional_fields: Mapping[str, Any] | None = None
    headers: Mapping[str, str] | None = None
    requires_auth: bool = False
    on_progress: ProgressCallback | None = None


@dataclass(frozen=True)
class MultiFileUploadRequest:
    endpoint: str
    files: tuple[PathLike, ...]
    field_name: str = "files"
    additional_fields: Mapping[str, Any] | None = None
    headers: Mapping[str, str] | None = None
    requires_auth: bool = False
    on_progress: ProgressCallback | None = None


@dataclass(frozen=True)
class AuthState:
    token: str | None = None
    user: Mapping[str, Any] | None = None

    @property
    def is_authenticated(self) -> bool:
        return self.token is not None


@dataclass(frozen=True)
class CounterModel:
    value: int
    last_updated: datetime = field(default_factory=datetime.now)

    def to_json(self) -> dict[str, Any]:
        return {"value": self.value, "lastUpdated": self.last_updated.isoformat()}

    @staticmethod
    def from_json(payload: Mapping[str, Any]) -> "CounterModel":
        return CounterModel(
            value=int(payload["value"]),
            last_updated=datetime.fromisoformat(str(payload["lastUpdated"])),
        )


def as_mapping(data: Any) -> dict[str, Any]:
    """Decode a JSON body that must be an object; an empty body decodes to ``{}``."""
    if data is None:
        return {}
    if not isinstance(data, Mapping):
        raise TypeError(f"Expected a JSON object, got {type(data).__name__}")
    return dict(data)
