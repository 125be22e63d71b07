"""Persistence backends for session data.

A store maps string keys to raw bytes.  Reading a missing key gives ``None``,
and deleting a missing key does nothing.
"""

from __future__ import annotations

import abc
import os
import threading
from pathlib import Path
from typing import Callable, Iterable, Optional, Union


class Store(abc.ABC):
    """Key-value persistence for encoded sessions."""

    @abc.abstractmethod
    async def set(self, key: str, value: bytes) -> None:
        """Save the session data under ``key``."""

    @abc.abstractmethod
    async def get(self, key: str) -> Optional[bytes]:
        """Return the session data under ``key``, or ``None`` if there is none."""

    @abc.abstractmethod
    async def delete(self, key: str) -> None:
        """Remove the session data under ``key``."""


class StoreMemory(Store):
    """Thread-safe in-memory store; data is lost when the process ends."""

    def __init__(self) -> None:
        self._data: dict[str, bytes] = {}
        self._lock = threading.Lock()

    async def set(self, key: str, value: bytes) -> None:
        with self._lock:
            self._data[key] = bytes(value)

    async def get(self, key: str) -> Optional[bytes]:
        with self._lock:
            return self._data.get(key)

    async def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)


def _identity_transform(key: str) -> list[str]:
    return [key]


class StoreFile(Store):
    """Stores each session in its own ``.session`` file under a directory.

    ``transform`` turns a key into path components relative to the directory,
    which allows spreading sessions over subdirectories.
    """

    def __init__(
        self,
        directory: Union[str, os.PathLike],
        *,
        perms: int = 0o666,
        transform: Callable[[str], Iterable[str]] = _identity_transform,
    ) -> None:
        self.directory = Path(directory)
        self.perms = perms
        self.transform = transform

    def path_for(self, key: str) -> Path:
        """Return the file path that holds the session for ``key``."""
        base = self.directory.joinpath(*self.transform(key))
        return base.with_name(base.name + ".session")

    async def set(self, key: str, value: bytes) -> None:
        path = self.path_for(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, self.perms)
        with os.fdopen(fd, "wb") as fh:
            fh.write(value)

    async def get(self, key: str) -> Optional[bytes]:
        try:
            return self.path_for(key).read_bytes()
        except FileNotFoundError:
            return None

    async def delete(self, key: str) -> None:
        self.path_for(key).unlink(missing_ok=True)