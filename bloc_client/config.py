from __future__ import annotations

from dataclasses import dataclass
import os
from pathlib import Path


class ConfigurationError(ValueError):
    pass


DEFAULT_IMAGE_TYPES = ("jpg", "jpeg", "png", "gif", "webp")
DEFAULT_DOCUMENT_TYPES = ("pdf", "doc", "docx", "txt")
DEFAULT_VIDEO_TYPES = ("mp4", "mov", "avi", "mkv")


def default_storage_path() -> str:
    return os.path.join(
        os.getenv("LOCALAPPDATA", os.getcwd()),
        "BlocClient",
        "preferences.json",
    )


@dataclass(frozen=True)
class AppSettings:
    base_url: str = "https://api.example.com"
    connect_timeout_seconds: float = 30.0
    receive_timeout_seconds: float = 30.0
    max_file_size: int = 10 * 1024 * 1024
    allowed_image_types: tuple[str, ...] = DEFAULT_IMAGE_TYPES
    allowed_document_types: tuple[str, ...] = DEFAULT_DOCUMENT_TYPES
    allowed_video_types: tuple[str, ...] = DEFAULT_VIDEO_TYPES
    login_path: str = "/auth/login"
    register_path: str = "/auth/register"
    refresh_path: str = "/auth/refresh"
    logout_path: str = "/auth/logout"
    profile_path: str = "/user/profile"
    upload_path: str = "/upload"
    storage_path: str = ""

    @property
    def allowed_file_types(self) -> tuple[str, ...]:
        return self.allowed_image_types + self.allowed_document_types + self.allowed_video_types

    @property
    def timeout(self) -> tuple[float, float]:
        return (self.connect_timeout_seconds, self.receive_timeout_seconds)

    @staticmethod
    def from_env() -> "AppSettings":
        _load_dotenv()

        base_url = os.getenv("BLOC_CLIENT_BASE_URL", "https://api.example.com").strip().rstrip("/")

        connect_timeout = _float_env("BLOC_CLIENT_CONNECT_TIMEOUT_SECONDS", 30.0)
        receive_timeout = _float_env("BLOC_CLIENT_RECEIVE_TIMEOUT_SECONDS", 30.0)
        max_file_size = _int_env("BLOC_CLIENT_MAX_FILE_SIZE_BYTES", 10 * 1024 * 1024)

        settings = AppSettings(
            base_url=base_url,
            connect_timeout_seconds=connect_timeout,
            receive_timeout_seconds=receive_timeout,
            max_file_size=max_file_size,
            allowed_image_types=_list_env("BLOC_CLIENT_ALLOWED_IMAGE_TYPES", DEFAULT_IMAGE_TYPES),
            allowed_document_types=_list_env("BLOC_CLIENT_ALLOWED_DOCUMENT_TYPES", DEFAULT_DOCUMENT_TYPES),
            allowed_video_types=_list_env("BLOC_CLIENT_ALLOWED_VIDEO_TYPES", DEFAULT_VIDEO_TYPES),
            login_path=os.getenv("BLOC_CLIENT_LOGIN_PATH", "/auth/login").strip(),
            register_path=os.getenv("BLOC_CLIENT_REGISTER_PATH", "/auth/register").strip(),
            refresh_path=os.getenv("BLOC_CLIENT_REFRESH_PATH", "/auth/refresh").strip(),
            logout_path=os.getenv("BLOC_CLIENT_LOGOUT_PATH", "/auth/logout").strip(),
            profile_path=os.getenv("BLOC_CLIENT_PROFILE_PATH", "/user/profile").strip(),
            upload_path=os.getenv("BLOC_CLIENT_UPLOAD_PATH", "/upload").strip(),
            storage_path=os.getenv("BLOC_CLIENT_STORAGE_PATH", "").strip() or default_storage_path(),
        )
        settings.validate()
        return settings

    def validate(self) -> None:
        if not self.base_url.startswith(("http://", "https://")):
            raise ConfigurationError("BLOC_CLIENT_BASE_URL must start with http:// or https://")

        path_fields = {
            "BLOC_CLIENT_LOGIN_PATH": self.login_path,
            "BLOC_CLIENT_REGISTER_PATH": self.register_path,
            "BLOC_CLIENT_REFRESH_PATH": self.refresh_path,
            "BLOC_CLIENT_LOGOUT_PATH": self.logout_path,
            "BLOC_CLIENT_PROFILE_PATH": self.profile_path,
            "BLOC_CLIENT_UPLOAD_PATH": self.upload_path,
        }
        invalid_paths = [name for name, value in path_fields.items() if not value.startswith("/")]
        if invalid_paths:
            raise ConfigurationError(
                "Endpoint paths must start with '/': " + ", ".join(invalid_paths)
            )

        if self.connect_timeout_seconds <= 0:
            raise ConfigurationError("BLOC_CLIENT_CONNECT_TIMEOUT_SECONDS must be greater than 0")

        if self.receive_timeout_seconds <= 0:
            raise ConfigurationError("BLOC_CLIENT_RECEIVE_TIMEOUT_SECONDS must be greater than 0")

        if self.max_file_size <= 0:
            raise ConfigurationError("BLOC_CLIENT_MAX_FILE_SIZE_BYTES must be greater than 0")


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as error:
        raise ConfigurationError(f"{name} must be an integer") from error


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError as error:
        raise ConfigurationError(f"{name} must be a number") from error


def _list_env(name: str, default: tuple[str, ...]) -> tuple[str, ...]:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    return tuple(item.strip().lstrip(".").lower() for item in raw.split(",") if item.strip())


def _load_dotenv() -> None:
    """Fill unset variables from the first-found ``.env`` files.

    Looks at ``BLOC_CLIENT_ENV_FILE``, then the working directory, then the
    project root. Values already in the environment win.
    """
    for path in _dotenv_paths():
        if not path.is_file():
            continue
        try:
            text = path.read_text(encoding="utf-8")
        except OSError:
            continue
        for name, value in _parse_dotenv(text):
            os.environ.setdefault(name, value)


def _dotenv_paths() -> list[Path]:
    explicit = os.getenv("BLOC_CLIENT_ENV_FILE", "").strip()
    paths = [Path(explicit).expanduser()] if explicit else []
    paths.append(Path.cwd() / ".env")
    paths.append(Path(__file__).resolve().parent.parent / ".env")
    return list(dict.fromkeys(path.resolve() for path in paths))


def _parse_dotenv(text: str) -> list[tuple[str, str]]:
    pairs = []
    for line in text.splitlines():
        name, sep, value = line.strip().partition("=")
        name = name.strip()
        if not sep or not name or name.startswith("#"):
            continue
        pairs.append((name, value.strip().strip("'\"")))
    return pairs
