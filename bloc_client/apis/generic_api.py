from __future__ import annotations

from typing import Any, Mapping, Optional, TypeVar

from bloc_client.http import HttpClient, Parser
from bloc_client.models import ApiResponse, PathLike, ProgressCallback

T = TypeVar("T")


class GenericApiClient:
    """Thin pass-through for endpoints that have no dedicated client."""

    def __init__(self, http_client: HttpClient):
        self._http_client = http_client

    def get(
        self,
        endpoint: str,
        query_parameters: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
        requires_auth: bool = False,
        parser: Optional[Parser[T]] = None,
    ) -> ApiResponse[T]:
        return self._http_client.get(
            endpoint,
            query_parameters=query_parameters,
            headers=headers,
            requires_auth=requires_auth,
            parser=parser,
        )

    def post(
        self,
        endpoint: str,
        data: Mapping[str, Any] | None = None,
        query_parameters: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
        requires_auth: bool = False,
        parser: Optional[Parser[T]] = None,
    ) -> ApiResponse[T]:
        return self._http_client.post(
            endpoint,
            data=data,
            query_parameters=query_parameters,
            headers=headers,
            requires_auth=requires_auth,
            parser=parser,
        )

    def put(
        self,
        endpoint: str,
        data: Mapping[str, Any] | None = None,
        query_parameters: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
        requires_auth: bool = False,
        parser: Optional[Parser[T]] = None,
    ) -> ApiResponse[T]:
        return self._http_client.put(
            endpoint,
            data=data,
            query_parameters=query_parameters,
            headers=headers,
            requires_auth=requires_auth,
            parser=parser,
        )

    def patch(
        self,
        endpoint: str,
        data: Mapping[str, Any] | None = None,
        query_parameters: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
        requires_auth: bool = False,
        parser: Optional[Parser[T]] = None,
    ) -> ApiResponse[T]:
        return self._http_client.patch(
            endpoint,
            data=data,
            query_parameters=query_parameters,
            headers=headers,
            requires_auth=requires_auth,
            parser=parser,
        )

    def delete(
        self,
        endpoint: str,
        data: Mapping[str, Any] | None = None,
        query_parameters: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
        requires_auth: bool = False,
        parser: Optional[Parser[T]] = None,
    ) -> ApiResponse[T]:
        return self._http_client.delete(
            endpoint,
            data=data,
            query_parameters=query_parameters,
            headers=headers,
            requires_auth=requires_auth,
            parser=parser,
        )

    def send_form_data(
        self,
        endpoint: str,
        data: Mapping[str, Any],
        query_parameters: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
        requires_auth: bool = False,
        parser: Optional[Parser[T]] = None,
    ) -> ApiResponse[T]:
        return self._http_client.send_form_data(
            endpoint,
            data=data,
            query_parameters=query_parameters,
            headers=headers,
            requires_auth=requires_auth,
            parser=parser,
        )

    def send_multipart_form_data(
        self,
        endpoint: str,
        data: Mapping[str, Any],
        query_parameters: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
        requires_auth: bool = False,
        parser: Optional[Parser[T]] = None,
    ) -> ApiResponse[T]:
        return self._http_client.send_multipart_form_data(
            endpoint,
            data=data,
            query_parameters=query_parameters,
            headers=headers,
            requires_auth=requires_auth,
            parser=parser,
        )

    def download_file(
        self,
        endpoint: str,
        save_path: PathLike,
        query_parameters: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
        requires_auth: bool = False,
        on_progress: ProgressCallback | None = None,
    ) -> ApiResponse[str]:
        return self._http_client.download_file(
            endpoint,
            save_path,
            query_parameters=query_parameters,
            headers=headers,
            requires_auth=requires_auth,
            on_progress=on_progress,
        )
