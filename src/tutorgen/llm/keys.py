"""Lock-guarded pool of API credentials with round-robin rotation."""

from __future__ import annotations

import threading
from typing import Iterable

from ..config import parse_key_list
from ..errors import ConfigurationError

__all__ = ["KeyPool"]


class KeyPool:
    """Ordered, immutable set of credentials with a shared rotation cursor.

    The cursor starts at the first key and only ever moves forward (wrapping)
    when :meth:`advance` is called. One pool is meant to be shared by every
    pipeline run in a process, so reads and writes of the cursor happen under
    a lock.
    """

    def __init__(self, keys: Iterable[str]) -> None:
        self._keys = parse_key_list(list(keys))
        if not self._keys:
            raise ConfigurationError("KeyPool requires at least one API key")
        self._index = 0
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._keys)

    def __repr__(self) -> str:
        return f"KeyPool(size={len(self._keys)}, index={self.current_index})"

    @property
    def current_index(self) -> int:
        with self._lock:
            return self._index

    def current(self) -> str:
        with self._lock:
            return self._keys[self._index]

    def advance(self) -> None:
        with self._lock:
            self._index = (self._index + 1) % len(self._keys)
