"""SessionRegistry — one in-flight agent call per conversation."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Callable

from loguru import logger


@dataclass
class SessionEntry:
    last_activity: float
    in_flight: bool = True


class SessionRegistry:
    """In-memory map of session key → in-flight marker.

    ``try_acquire`` is a plain (non-async) check-and-create, so on the event
    loop nothing can interleave between the check and the insert. The lock
    covers callers running on other threads. Entries are never persisted.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._entries: dict[str, SessionEntry] = {}
        self._lock = threading.Lock()

    def try_acquire(self, key: str) -> bool:
        """Mark ``key`` in flight. False if it already is."""
        with self._lock:
            if key in self._entries:
                return False
            self._entries[key] = SessionEntry(last_activity=self._clock())
            return True

    def release(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def sweep(self, now: float, ttl: float) -> int:
        """Drop entries idle for longer than ``ttl`` seconds. Returns count removed."""
        with self._lock:
            stale = [k for k, e in self._entries.items() if now - e.last_activity > ttl]
            for key in stale:
                del self._entries[key]
        if stale:
            logger.warning(f"Swept {len(stale)} stale session(s): {', '.join(stale)}")
        return len(stale)

    def now(self) -> float:
        return self._clock()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries
