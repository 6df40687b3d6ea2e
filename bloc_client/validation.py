"""Pre-flight checks for files that are about to be uploaded.

Validation never raises: it returns ``Ok`` or ``Rejected(reason)`` so callers
can refuse the upload before a request is built.
"""

from __future__ import annotations

from dataclasses import dataclass
import os
from typing import Iterable, Sequence, Union

from bloc_client.models import PathLike


@dataclass(frozen=True)
class Ok:
    @property
    def is_ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Rejected:
    reason: str

    @property
    def is_ok(self) -> bool:
        return False


ValidationResult = Union[Ok, Rejected]

FILE_MISSING = "File does not exist"
FILE_TOO_LARGE = "File size exceeds maximum limit"
FILES_MISSING = "One or more files do not exist"
FILES_TOO_LARGE = "One or more files exceed maximum size limit"


def file_extension(path: PathLike) -> str:
    name = os.path.basename(os.fspath(path)).lower()
    if "." not in name:
        return ""
    return name.rsplit(".", 1)[1]


def validate_upload(
    path: PathLike,
    max_size: int,
    allowed_extensions: Iterable[str] | None = None,
) -> ValidationResult:
    if not os.path.isfile(path):
        return Rejected(FILE_MISSING)

    if os.path.getsize(path) > max_size:
        return Rejected(f"{FILE_TOO_LARGE} of {_format_size(max_size)}")

    if allowed_extensions is not None:
        extension = file_extension(path)
        if extension not in {item.lower() for item in allowed_extensions}:
            return Rejected(f"File type '{extension or 'unknown'}' is not allowed")

    return Ok()


def validate_uploads(
    paths: Sequence[PathLike],
    max_size: int,
    allowed_extensions: Iterable[str] | None = None,
) -> ValidationResult:
    if not paths:
        return Rejected("No files to upload")

    allowed = list(allowed_extensions) if allowed_extensions is not None else None
    for path in paths:
        result = validate_upload(path, max_size, allowed)
        if isinstance(result, Ok):
            continue
        if result.reason == FILE_MISSING:
            return Rejected(FILES_MISSING)
        if result.reason.startswith(FILE_TOO_LARGE):
            return Rejected(f"{FILES_TOO_LARGE} of {_format_size(max_size)}")
        return Rejected(f"One or more files are invalid: {result.reason}")
    return Ok()


def _format_size(size: int) -> str:
    mebibytes = size / (1024 * 1024)
    if mebibytes >= 1:
        return f"{mebibytes:g} MiB"
    return f"{size} bytes"
