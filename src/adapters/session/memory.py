"""
In-memory session store adapter - Implements SessionStore protocol.

Process-wide key/value state shared by every component of one browser
session. Values survive wizard re-creation (navigation, reload) but
not ``close()``, which stands in for the tab being closed.
"""

import logging
import threading

logger = logging.getLogger(__name__)


class InMemorySessionStore:
    """
    Implements SessionStore protocol with a dict.

    Uses structural subtyping - no explicit inheritance from Protocol.
    Reads and writes before ``open()`` or after ``close()`` fail loudly.
    """

    def __init__(self) -> None:
        self._values: dict[str, str] = {}
        self._open = False
        self._lock = threading.Lock()

    @property
    def is_open(self) -> bool:
        return self._open

    def open(self) -> None:
        with self._lock:
            self._open = True
        logger.debug("Session store opened")

    def close(self) -> None:
        """Wipe every key; nothing session-scoped may outlive the session."""
        with self._lock:
            self._values.clear()
            self._open = False
        logger.debug("Session store closed and wiped")

    def get(self, key: str) -> str | None:
        with self._lock:
            self._ensure_open()
            return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._ensure_open()
            self._values[key] = value

    def delete(self, key: str) -> None:
        with self._lock:
            self._ensure_open()
            self._values.pop(key, None)

    def keys(self) -> list[str]:
        with self._lock:
            return sorted(self._values)

    def _ensure_open(self) -> None:
        if not self._open:
            raise RuntimeError("Session store is not open")
