from __future__ import annotations

import logging
from threading import Lock

from coupon_engine.core import metrics
from coupon_engine.models.coupon import Coupon

logger = logging.getLogger(__name__)


class CouponCatalog:
    """In-memory coupon store keyed by code.

    Writes replace the whole record for a code; readers get a point-in-time copy.
    """

    def __init__(self) -> None:
        self._coupons: dict[str, Coupon] = {}
        self._lock = Lock()

    def upsert(self, coupon: Coupon) -> bool:
        """Store ``coupon`` under its code. Returns True when an existing coupon was replaced."""
        with self._lock:
            overwritten = coupon.code in self._coupons
            self._coupons[coupon.code] = coupon
        if overwritten:
            logger.warning("coupon_overwritten", extra={"coupon_code": coupon.code})
        logger.info(
            "coupon_upserted",
            extra={
                "coupon_code": coupon.code,
                "discount_type": coupon.discount_type.value,
                "discount_value": coupon.discount_value,
                "overwritten": overwritten,
            },
        )
        metrics.record_coupon_upserted(overwritten=overwritten)
        return overwritten

    def get(self, code: str) -> Coupon | None:
        with self._lock:
            return self._coupons.get(code)

    def snapshot(self) -> list[Coupon]:
        with self._lock:
            return list(self._coupons.values())

    def __len__(self) -> int:
        with self._lock:
            return len(self._coupons)

    def clear(self) -> None:
        with self._lock:
            self._coupons.clear()
