from __future__ import annotations

import logging
from collections import defaultdict
from contextlib import contextmanager
from threading import RLock
from typing import DefaultDict, Iterator

logger = logging.getLogger(__name__)

UsageKey = tuple[str, str]


class UsageTracker:
    """Per-user, per-coupon redemption counts.

    Counts are keyed by ``(user_id, coupon_code)``, start at zero, and only ever
    grow. The selection engine holds :meth:`locked` across its usage check and the
    increment for the winner so concurrent selections cannot over-grant a limit.
    """

    def __init__(self) -> None:
        self._counts: DefaultDict[UsageKey, int] = defaultdict(int)
        self._lock = RLock()

    @contextmanager
    def locked(self) -> Iterator[None]:
        with self._lock:
            yield

    def usage_count(self, user_id: str, code: str) -> int:
        with self._lock:
            return self._counts.get((user_id, code), 0)

    def record_use(self, user_id: str, code: str) -> int:
        with self._lock:
            self._counts[(user_id, code)] += 1
            count = self._counts[(user_id, code)]
        logger.info("coupon_usage_recorded", extra={"user_id": user_id, "coupon_code": code, "usage_count": count})
        return count

    def usage_for_user(self, user_id: str) -> dict[str, int]:
        with self._lock:
            return {code: count for (uid, code), count in self._counts.items() if uid == user_id}

    def snapshot(self) -> dict[str, dict[str, int]]:
        result: dict[str, dict[str, int]] = {}
        with self._lock:
            for (user_id, code), count in self._counts.items():
                result.setdefault(user_id, {})[code] = count
        return result

    def clear(self) -> None:
        """Drop every count. Only meant for test isolation."""
        with self._lock:
            self._counts.clear()
