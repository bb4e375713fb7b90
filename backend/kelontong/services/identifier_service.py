# Overview: Service-layer operations for identifiers; allocates product and transaction ids.

"""
Identifier Service - time-derived, strictly monotonic ids

UNIQUENESS RULES:
- Ids are decimal strings of milliseconds since the epoch.
- Two ids allocated in the same millisecond never collide: the later one is
  bumped to last + 1.
- After loading persisted data, observe() moves the floor past every numeric
  id already in use, so a clock that went backwards cannot reissue an id.
"""

from __future__ import annotations

from datetime import datetime
from typing import Callable, Iterable

from ..time_utils import to_epoch_ms, utcnow


class IdentifierGenerator:
    def __init__(self, clock: Callable[[], datetime] = utcnow):
        self._clock = clock
        self._last = 0

    def observe(self, existing_ids: Iterable[str]) -> None:
        """Raise the floor above ids that were allocated before this process started."""
        for value in existing_ids:
            if value.isdigit():
                self._last = max(self._last, int(value))

    def next_id(self) -> str:
        candidate = to_epoch_ms(self._clock())
        if candidate <= self._last:
            candidate = self._last + 1
        self._last = candidate
        return str(candidate)
