"""In-memory registry of live battles and encounter sessions.

The engine functions themselves are synchronous and lock-free.  The only
shared state is this registry, and it provides the one concurrency
guarantee the engine needs: a single session is never processed by two
callers at once.  Different sessions proceed independently.

Sessions that nobody touches for ``idle_timeout_s`` seconds are dropped by
:meth:`SessionRegistry.sweep_idle`, so abandoned sessions do not leak.
"""

from __future__ import annotations

import logging
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Callable, Generic, Iterator, TypeVar

from dungeon_arena.errors import NotFoundError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class _Entry(Generic[T]):
    value: T
    last_seen: float
    lock: threading.Lock = field(default_factory=threading.Lock)


class SessionRegistry(Generic[T]):
    """Thread-safe map of session id -> session with per-session locking.

    Parameters
    ----------
    idle_timeout_s:
        Seconds after which an untouched session is swept.
    clock:
        Monotonic time source, injectable for tests.
    name:
        Label used in log messages (``"battles"``, ``"encounters"``).
    """

    def __init__(
        self,
        idle_timeout_s: float = 900.0,
        clock: Callable[[], float] = time.monotonic,
        name: str = "sessions",
    ) -> None:
        if idle_timeout_s <= 0:
            raise ValueError(f"idle_timeout_s must be > 0, got {idle_timeout_s}")
        self.idle_timeout_s = idle_timeout_s
        self.name = name
        self._clock = clock
        self._entries: dict[str, _Entry[T]] = {}
        self._guard = threading.Lock()

    # -- basic map operations ------------------------------------------------

    def create(self, session_id: str, value: T) -> T:
        """Register *value* under *session_id*.

        Raises
        ------
        ValueError
            If the id is already registered.
        """
        with self._guard:
            if session_id in self._entries:
                raise ValueError(f"{self.name}: {session_id!r} already exists")
            self._entries[session_id] = _Entry(value=value, last_seen=self._clock())
        return value

    def get(self, session_id: str) -> T:
        """Return the session and mark it as recently used.

        Raises
        ------
        NotFoundError
            If the id is not registered.
        """
        entry = self._entry(session_id)
        entry.last_seen = self._clock()
        return entry.value

    def remove(self, session_id: str) -> T | None:
        """Drop a session (disconnect, abandon, terminal state).

        Returns the removed session, or ``None`` if it was not registered.
        """
        with self._guard:
            entry = self._entries.pop(session_id, None)
        return entry.value if entry is not None else None

    def replace(self, session_id: str, value: T) -> None:
        """Swap the stored session for *value* (used to roll back a turn)."""
        self._entry(session_id).value = value

    def ids(self) -> list[str]:
        with self._guard:
            return list(self._entries)

    def __contains__(self, session_id: object) -> bool:
        with self._guard:
            return session_id in self._entries

    def __len__(self) -> int:
        with self._guard:
            return len(self._entries)

    # -- serialized access ---------------------------------------------------

    @contextmanager
    def acquire(self, session_id: str) -> Iterator[T]:
        """Hold the session's lock for the duration of the ``with`` block.

        Usage::

            with registry.acquire(session_id) as session:
                process_action(session, ...)

        Raises
        ------
        NotFoundError
            If the id is not registered.
        """
        entry = self._entry(session_id)
        with entry.lock:
            try:
                yield entry.value
            finally:
                entry.last_seen = self._clock()

    # -- expiry --------------------------------------------------------------

    def sweep_idle(self) -> list[str]:
        """Remove sessions idle for longer than ``idle_timeout_s``.

        Sessions currently held through :meth:`acquire` are never swept.
        Returns the removed ids.
        """
        now = self._clock()
        removed: list[str] = []
        with self._guard:
            for session_id, entry in list(self._entries.items()):
                if entry.lock.locked():
                    continue
                if now - entry.last_seen > self.idle_timeout_s:
                    del self._entries[session_id]
                    removed.append(session_id)
        if removed:
            logger.info("Swept %d idle %s: %s", len(removed), self.name, ", ".join(removed))
        return removed

    # -- internals -----------------------------------------------------------

    def _entry(self, session_id: str) -> _Entry[T]:
        with self._guard:
            entry = self._entries.get(session_id)
        if entry is None:
            raise NotFoundError(f"{self.name}: {session_id!r} not found")
        return entry

    def __repr__(self) -> str:
        return f"SessionRegistry(name={self.name!r}, sessions={len(self)})"
