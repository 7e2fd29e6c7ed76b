"""Key-value backends for snapshot storage.

The engine never talks to a concrete storage medium; it is handed a
KeyValueStore port. Values are strings (JSON text) stored whole under a
single key.
"""

import os
import re
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path

from entitykit.core.exceptions import PersistenceError, PersistenceReadError, PersistenceWriteError

KEY_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.\-]{0,127}$")


class KeyValueStore(ABC):
    """Abstract base class for key-value backends."""

    @abstractmethod
    def get(self, key: str) -> str | None:
        """Return the value stored under ``key`` or None."""
        ...

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Replace the value stored under ``key``.

        Raises:
            PersistenceWriteError: If the backend rejects the write.
        """
        ...

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Delete ``key``. Returns False if it did not exist."""
        ...

    @abstractmethod
    def keys(self) -> list[str]:
        """All stored keys."""
        ...


class InMemoryKeyValueStore(KeyValueStore):
    """Dict-backed store with an optional size quota (like browser storage)."""

    def __init__(self, quota_bytes: int | None = None) -> None:
        self._data: dict[str, str] = {}
        self.quota_bytes = quota_bytes

    def _size_with(self, key: str, value: str) -> int:
        sizes = {k: len(k) + len(v) for k, v in self._data.items()}
        sizes[key] = len(key) + len(value)
        return sum(sizes.values())

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        if self.quota_bytes is not None and self._size_with(key, value) > self.quota_bytes:
            raise PersistenceWriteError(f"Storage quota of {self.quota_bytes} bytes exceeded writing '{key}'")
        self._data[key] = value

    def delete(self, key: str) -> bool:
        return self._data.pop(key, None) is not None

    def keys(self) -> list[str]:
        return list(self._data)


class JsonFileKeyValueStore(KeyValueStore):
    """One ``<key>.json`` file per key inside a directory.

    Writes go to a temporary file that is atomically renamed over the
    target, so a reader never sees a half-written snapshot.
    """

    SUFFIX = ".json"

    def __init__(self, directory: str | Path, encoding: str = "utf-8") -> None:
        self.directory = Path(directory)
        self.encoding = encoding

    def _path(self, key: str, error: type[PersistenceError] = PersistenceReadError) -> Path:
        if not KEY_PATTERN.match(key):
            raise error(f"Invalid storage key '{key}'")
        return self.directory / f"{key}{self.SUFFIX}"

    def get(self, key: str) -> str | None:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            return path.read_text(encoding=self.encoding)
        except (OSError, UnicodeDecodeError) as e:
            raise PersistenceReadError(f"Failed to read '{key}': {e}") from e

    def set(self, key: str, value: str) -> None:
        path = self._path(key, PersistenceWriteError)
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.directory, prefix=f".{key}.", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding=self.encoding) as handle:
                    handle.write(value)
                os.replace(tmp_name, path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise PersistenceWriteError(f"Failed to write '{key}': {e}") from e

    def delete(self, key: str) -> bool:
        path = self._path(key, PersistenceWriteError)
        if not path.exists():
            return False
        try:
            path.unlink()
        except OSError as e:
            raise PersistenceWriteError(f"Failed to delete '{key}': {e}") from e
        return True

    def keys(self) -> list[str]:
        if not self.directory.exists():
            return []
        return sorted(p.stem for p in self.directory.glob(f"*{self.SUFFIX}"))
