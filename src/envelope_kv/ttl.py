"""TTLManager — expiry arithmetic shared by lazy reads and the background sweep."""

from __future__ import annotations

import math
from collections.abc import Mapping
from typing import Any

from envelope_kv._internal.clock import Clock, SystemClock, now_ms


class TTLManager:
    """Computes expiry timestamps and decides liveness.

    All timestamps are epoch milliseconds.  ``ttl`` values are seconds; a
    ``None`` or non-positive ttl means "never expires".

    Parameters:
        clock: Injectable clock for testing.
    """

    def __init__(self, clock: Clock | None = None) -> None:
        self._clock = clock or SystemClock()

    @property
    def clock(self) -> Clock:
        return self._clock

    def now(self) -> int:
        return now_ms(self._clock)

    def compute_expiry(self, ttl: float | None, now: int | None = None) -> int | None:
        if ttl is None or ttl <= 0:
            return None
        base = self.now() if now is None else now
        return base + int(ttl * 1000)

    def is_live(self, meta: Mapping[str, Any] | None, now: int | None = None) -> bool:
        """``True`` if the entry never expires or its expiry is still ahead."""
        expires = (meta or {}).get("expires")
        if expires is None:
            return True
        current = self.now() if now is None else now
        return current <= expires

    def remaining(self, meta: Mapping[str, Any] | None, now: int | None = None) -> float:
        """Milliseconds until expiry, ``math.inf`` if never, clamped at zero."""
        expires = (meta or {}).get("expires")
        if expires is None:
            return math.inf
        current = self.now() if now is None else now
        return max(0, expires - current)
