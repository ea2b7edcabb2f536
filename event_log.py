"""
BeamMP Server Console - Event Log

Append-only status stream shared by the UI thread and background tasks.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable

_log = logging.getLogger("beammpconsole")


class EventLog:
    """Thread-safe, process-lifetime log of operator-facing status lines.

    Every append notifies the subscribers (the UI redraws and scrolls to the
    end) and is mirrored to the application logger.
    """

    def __init__(self):
        self._lock = threading.RLock()
        self._lines: list[str] = []
        self._subscribers: list[Callable[[str], None]] = []

    def subscribe(self, fn: Callable[[str], None]) -> None:
        with self._lock:
            self._subscribers.append(fn)

    def append(self, line: str) -> None:
        line = str(line).rstrip("\n")
        with self._lock:
            self._lines.append(line)
            # Subscribers are notified in append order
            for fn in self._subscribers:
                fn(line)
        _log.info(line)

    __call__ = append

    def lines(self) -> list[str]:
        with self._lock:
            return list(self._lines)

    def text(self) -> str:
        with self._lock:
            return "".join(f"{line}\n" for line in self._lines)
