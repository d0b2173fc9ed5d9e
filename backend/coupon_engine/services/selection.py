from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Iterable

from coupon_engine.core import metrics
from coupon_engine.models.coupon import Cart, Coupon, DiscountType, EligibilityRules, InvalidCouponError, UserContext
from coupon_engine.services.discounts import compute_discount
from coupon_engine.services.eligibility import ineligibility_reason
from coupon_engine.services.usage import UsageTracker

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SelectionResult:
    coupon: Coupon | None
    discount: Decimal


@dataclass(frozen=True)
class RankedCoupon:
    coupon: Coupon
    discount: Decimal


NO_SELECTION = SelectionResult(coupon=None, discount=Decimal("0"))


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _amount(value: object) -> Decimal | None:
    if isinstance(value, bool) or not isinstance(value, (int, float, Decimal)):
        return None
    amount = Decimal(value)
    return amount if amount.is_finite() else None


def _check_invariants(coupon: Coupon) -> tuple[datetime, datetime]:
    """Validity window of ``coupon``, or ``InvalidCouponError`` if it cannot be ranked."""
    if coupon.discount_type not in tuple(DiscountType):
        raise InvalidCouponError(coupon.code, f"unknown discount type {coupon.discount_type!r}")
    value = _amount(coupon.discount_value)
    if value is None or value <= 0:
        raise InvalidCouponError(coupon.code, "discount_value must be a positive amount")
    if coupon.max_discount_amount is not None:
        cap = _amount(coupon.max_discount_amount)
        if cap is None or cap <= 0:
            raise InvalidCouponError(coupon.code, "max_discount_amount must be a positive amount")
    if not isinstance(coupon.eligibility, EligibilityRules):
        raise InvalidCouponError(coupon.code, "eligibility rules are missing")

    start, end = coupon.start_date, coupon.end_date
    if not isinstance(start, datetime) or not isinstance(end, datetime):
        raise InvalidCouponError(coupon.code, "validity window bounds must be datetimes")
    if start.tzinfo is None or end.tzinfo is None:
        raise InvalidCouponError(coupon.code, "validity window bounds must be timezone-aware")
    if start > end:
        raise InvalidCouponError(coupon.code, "start_date is after end_date")
    return start, end


def filter_valid(coupons: Iterable[Coupon], now: datetime) -> list[Coupon]:
    """Coupons whose inclusive validity window contains ``now``.

    Malformed entries that could never be ranked correctly are logged and left out.
    """
    now = _as_utc(now)
    kept: list[Coupon] = []
    for coupon in coupons:
        try:
            start, end = _check_invariants(coupon)
        except InvalidCouponError as exc:
            logger.error("coupon_invalid", extra={"coupon_code": exc.code, "reason": exc.reason})
            metrics.record_invalid_coupon()
            continue
        if start <= now <= end:
            kept.append(coupon)
        else:
            logger.debug(
                "coupon_skipped",
                extra={"coupon_code": coupon.code, "reason": "outside_validity_window", "now": now},
            )
    return kept


def filter_usage(coupons: Iterable[Coupon], user_id: str, tracker: UsageTracker) -> list[Coupon]:
    kept: list[Coupon] = []
    for coupon in coupons:
        limit = coupon.usage_limit_per_user
        if limit is not None:
            used = tracker.usage_count(user_id, coupon.code)
            if used >= int(limit):
                logger.debug(
                    "coupon_skipped",
                    extra={
                        "coupon_code": coupon.code,
                        "reason": "usage_limit_reached",
                        "user_id": user_id,
                        "usage_count": used,
                        "usage_limit": limit,
                    },
                )
                continue
        kept.append(coupon)
    return kept


def filter_eligible(coupons: Iterable[Coupon], user: UserContext, cart: Cart) -> list[Coupon]:
    return [coupon for coupon in coupons if ineligibility_reason(coupon, user, cart) is None]


def rank(coupons: Iterable[Coupon], cart: Cart) -> list[RankedCoupon]:
    """Best first: highest discount, then earliest end date, then smallest code."""
    ranked = [RankedCoupon(coupon=coupon, discount=compute_discount(coupon, cart)) for coupon in coupons]
    ranked.sort(key=lambda entry: (-entry.discount, entry.coupon.end_date, entry.coupon.code))
    return ranked


def select_best(
    coupons: Iterable[Coupon],
    user: UserContext,
    cart: Cart,
    *,
    now: datetime,
    tracker: UsageTracker,
) -> SelectionResult:
    """Pick the best coupon for ``user`` and ``cart`` and record one use of it.

    Returns ``NO_SELECTION`` (no coupon, zero discount) when nothing qualifies; in
    that case the tracker is left untouched.
    """
    active = filter_valid(coupons, now)
    with tracker.locked():
        usable = filter_usage(active, user.user_id, tracker)
        eligible = filter_eligible(usable, user, cart)
        if not eligible:
            logger.info(
                "no_eligible_coupon",
                extra={"user_id": user.user_id, "active": len(active), "usable": len(usable)},
            )
            metrics.record_selection(won=False)
            return NO_SELECTION

        best = rank(eligible, cart)[0]
        tracker.record_use(user.user_id, best.coupon.code)

    logger.info(
        "best_coupon_selected",
        extra={
            "user_id": user.user_id,
            "coupon_code": best.coupon.code,
            "discount": best.discount,
            "eligible": len(eligible),
        },
    )
    metrics.record_selection(won=True)
    return SelectionResult(coupon=best.coupon, discount=best.discount)
