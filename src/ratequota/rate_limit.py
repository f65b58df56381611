from __future__ import annotations

import asyncio
from collections import deque
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
import logging
import threading
import time

from .headers import HeaderNames, QuotaSnapshot, parse_quota


logger = logging.getLogger(__name__)

# Added to the server-reported reset time to absorb client/server clock skew.
SAFETY_MARGIN_SECONDS = 1

# Longest single sleep before re-checking; keeps far-off resets within platform limits.
MAX_SLEEP_SECONDS = 60.0


@dataclass(frozen=True, slots=True)
class LimiterState:
    limit: int
    remaining: int
    reset_at: float

    @property
    def reset_in(self) -> float:
        return max(self.reset_at - time.time(), 0.0)


def _to_epoch(value: float | datetime) -> float:
    if isinstance(value, datetime):
        return value.timestamp()
    return float(value)


class RateLimiter:
    """Sliding-window limiter driven by quota headers from the remote service.

    Admissions are recorded in a log holding at most ``limit`` timestamps.
    While the log has room an action is admitted immediately. Once it is full,
    the caller is told to wait until ``reset_at``; after ``reset_at`` the
    window is assumed to have rolled over and the oldest entry is recycled.

    ``update`` resynchronises the log from authoritative response metadata so
    that exactly the reported number of admissions remain.

    No fairness is provided between threads blocked in ``wait``: whichever
    wakes first takes the freed quota.
    """

    def __init__(
        self,
        limit: int,
        reset_at: float | datetime,
        *,
        header_names: HeaderNames | None = None,
    ) -> None:
        if limit < 0:
            raise ValueError("limit must be >= 0")
        self._limit = int(limit)
        self._reset_at = _to_epoch(reset_at)
        self.header_names = header_names or HeaderNames()
        self._times: deque[float] = deque()
        self._lock = threading.Lock()

    @property
    def limit(self) -> int:
        return self._limit

    @property
    def reset_at(self) -> float:
        return self._reset_at

    @property
    def remaining(self) -> int:
        with self._lock:
            return self._remaining_locked()

    def _remaining_locked(self) -> int:
        return min(max(self._limit - len(self._times), 0), self._limit)

    def state(self) -> LimiterState:
        with self._lock:
            return LimiterState(
                limit=self._limit,
                remaining=self._remaining_locked(),
                reset_at=self._reset_at,
            )

    def try_acquire(self) -> tuple[bool, float]:
        """Admit one action if quota allows.

        Returns ``(True, 0.0)`` when admitted, otherwise ``(False, seconds)``
        with a strictly positive estimate of how long to wait.
        """
        with self._lock:
            now = time.time()
            if len(self._times) < self._limit:
                self._times.append(now)
                return True, 0.0

            wait_seconds = self._reset_at - now
            if wait_seconds > 0:
                logger.debug("quota exhausted (limit=%d), retry in %.3fs", self._limit, wait_seconds)
                return False, wait_seconds

            # Window rolled over: recycle the oldest entry as freshly consumed.
            if self._times:
                self._times.popleft()
                self._times.append(now)
            return True, 0.0

    def wait(self, timeout: float | None = None) -> bool:
        """Block until an action is admitted.

        Re-checks after every sleep so imprecise estimates still end in
        admission. With ``timeout`` set, gives up and returns ``False`` once
        it has elapsed.
        """
        deadline = None if timeout is None else time.monotonic() + max(timeout, 0.0)
        while True:
            admitted, wait_seconds = self.try_acquire()
            if admitted:
                return True
            if deadline is not None:
                left = deadline - time.monotonic()
                if left <= 0:
                    return False
                wait_seconds = min(wait_seconds, left)
            time.sleep(min(wait_seconds, MAX_SLEEP_SECONDS))

    async def acquire(self) -> None:
        while True:
            admitted, wait_seconds = self.try_acquire()
            if admitted:
                return
            await asyncio.sleep(min(wait_seconds, MAX_SLEEP_SECONDS))

    def update(self, metadata: Mapping[str, str]) -> QuotaSnapshot:
        """Overwrite quota state from response metadata.

        Raises ``MissingFieldError`` before touching any state when a required
        field is absent or malformed.
        """
        snapshot = parse_quota(metadata, self.header_names)
        with self._lock:
            self._apply_locked(snapshot)
        return snapshot

    def _apply_locked(self, snapshot: QuotaSnapshot) -> None:
        if snapshot.limit is not None:
            limit = snapshot.limit
        else:
            limit = max(self._limit, snapshot.remaining)
        remaining = min(snapshot.remaining, limit)
        now = time.time()

        self._limit = limit
        self._reset_at = float(snapshot.reset + SAFETY_MARGIN_SECONDS)
        self._times = deque([now] * (limit - remaining))
        logger.debug(
            "quota updated: limit=%d remaining=%d reset_at=%d",
            limit,
            remaining,
            snapshot.reset + SAFETY_MARGIN_SECONDS,
        )
