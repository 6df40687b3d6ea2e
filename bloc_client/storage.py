from __future__ import annotations

from contextlib import contextmanager
import json
import logging
from pathlib import Path
import sys
import threading
from typing import Iterator, Protocol

from msal_extensions import CrossPlatLock, FilePersistence, FilePersistenceWithDataProtection
from msal_extensions.persistence import BasePersistence, PersistenceNotFound

logger = logging.getLogger(__name__)


class StorageError(RuntimeError):
    pass


class KeyValueStore(Protocol):
    def get(self, key: str) -> str | None:
        ...

    def set(self, key: str, value: str) -> None:
        ...

    def remove(self, key: str) -> None:
        ...


class InMemoryKeyValueStore:
    def __init__(self, initial: dict[str, str] | None = None):
        self._lock = threading.Lock()
        self._values: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        with self._lock:
            return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._values[key] = value

    def remove(self, key: str) -> None:
        with self._lock:
            self._values.pop(key, None)


class FileKeyValueStore:
    """String preferences kept as one JSON object in a local file.

    Every access goes through a cross-process lock file next to the data file,
    so a reader never sees the half-written file of a concurrent save.
    """

    def __init__(self, path: str, persistence: BasePersistence | None = None):
        self._path = path
        self._persistence = persistence or _open_persistence(path)
        self._lock_path = f"{path}.lockfile"
        self._thread_lock = threading.Lock()

    @property
    def path(self) -> str:
        return self._path

    def get(self, key: str) -> str | None:
        with self._locked():
            value = self._read().get(key)
        return None if value is None else str(value)

    def set(self, key: str, value: str) -> None:
        with self._locked():
            values = self._read()
            values[key] = value
            self._write(values)

    def remove(self, key: str) -> None:
        with self._locked():
            values = self._read()
            if key not in values:
                return
            del values[key]
            self._write(values)

    @contextmanager
    def _locked(self) -> Iterator[None]:
        with self._thread_lock, CrossPlatLock(self._lock_path):
            yield

    def _read(self) -> dict[str, str]:
        try:
            raw = self._persistence.load()
        except PersistenceNotFound:
            return {}

        if not raw:
            return {}

        try:
            parsed = json.loads(raw)
        except ValueError as error:
            raise StorageError(f"Preferences file is corrupt: {self._path}") from error

        if not isinstance(parsed, dict):
            raise StorageError(f"Preferences file must hold a JSON object: {self._path}")
        return parsed

    def _write(self, values: dict[str, str]) -> None:
        self._persistence.save(json.dumps(values, sort_keys=True))
        logger.debug("Saved %d preference(s) to %s", len(values), self._path)


def _open_persistence(path: str) -> BasePersistence:
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    if sys.platform == "win32":
        # DPAPI-encrypted at rest for the current Windows user.
        return FilePersistenceWithDataProtection(path)
    return FilePersistence(path)
