from __future__ import annotations

from decimal import Decimal

from coupon_engine.models.coupon import Cart, Coupon, DiscountType, InvalidCouponError

_ZERO = Decimal("0")
_HUNDRED = Decimal("100")


def cart_value(cart: Cart) -> Decimal:
    return sum((Decimal(item.unit_price) * int(item.quantity) for item in cart.items), start=_ZERO)


def cart_item_count(cart: Cart) -> int:
    return sum(int(item.quantity) for item in cart.items)


def _raw_discount(coupon: Coupon, value: Decimal) -> Decimal:
    if coupon.discount_type == DiscountType.flat:
        return Decimal(coupon.discount_value)
    if coupon.discount_type == DiscountType.percent:
        raw = value * Decimal(coupon.discount_value) / _HUNDRED
        if coupon.max_discount_amount is not None:
            raw = min(raw, Decimal(coupon.max_discount_amount))
        return raw
    raise InvalidCouponError(coupon.code, f"unknown discount type {coupon.discount_type!r}")


def compute_discount(coupon: Coupon, cart: Cart) -> Decimal:
    """Monetary discount of ``coupon`` on ``cart``, never more than the cart is worth."""
    value = cart_value(cart)
    return max(_ZERO, min(_raw_discount(coupon, value), value))
