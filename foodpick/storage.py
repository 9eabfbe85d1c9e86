"""Key/document storage backends for persisted user state.

Each store (preference, history, user stats) owns one key and reads or
writes its whole document per call. Backends never interpret documents.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


class StateStorage(ABC):
    """Abstract key → JSON document storage."""

    @abstractmethod
    def read(self, key: str) -> Any | None:
        """Return the decoded document stored under *key*.

        Returns:
            The decoded document, or ``None`` if nothing is stored or the
            stored value cannot be decoded.
        """

    @abstractmethod
    def write(self, key: str, document: Any) -> None:
        """Replace the document stored under *key*."""

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove *key*. Deleting a missing key is a no-op."""


class MemoryStorage(StateStorage):
    """In-process storage, used by tests and ephemeral sessions.

    Documents are kept JSON-encoded so callers never share mutable state
    with the backend.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._data: dict[str, str] = {}

    def read(self, key: str) -> Any | None:
        with self._lock:
            raw = self._data.get(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError:
            logger.warning("Discarding undecodable document for key %r.", key)
            return None

    def write(self, key: str, document: Any) -> None:
        encoded = json.dumps(document, ensure_ascii=False)
        with self._lock:
            self._data[key] = encoded

    def write_raw(self, key: str, raw: str) -> None:
        """Store *raw* verbatim. Lets tests plant corrupt documents."""
        with self._lock:
            self._data[key] = raw

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)


class JsonFileStorage(StateStorage):
    """Stores each key as ``<directory>/<key>.json``.

    Writes go to a temporary file in the same directory and are moved into
    place with :func:`os.replace`, so a crash never leaves a half-written
    document behind.

    Args:
        directory: Where documents live. Created on first write.
    """

    def __init__(self, directory: str | os.PathLike[str]) -> None:
        self._directory = Path(directory)

    @property
    def directory(self) -> Path:
        return self._directory

    def read(self, key: str) -> Any | None:
        path = self._path(key)
        try:
            with path.open("r", encoding="utf-8") as fh:
                return json.load(fh)
        except FileNotFoundError:
            return None
        except (OSError, ValueError):
            logger.warning("Could not read state document %s; treating as absent.", path)
            return None

    def write(self, key: str, document: Any) -> None:
        self._directory.mkdir(parents=True, exist_ok=True)
        path = self._path(key)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{key}.", suffix=".tmp", dir=self._directory
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(document, fh, ensure_ascii=False, indent=2)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        logger.debug("Wrote state document %s.", path)

    def delete(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)

    def _path(self, key: str) -> Path:
        return self._directory / f"{key}.json"
