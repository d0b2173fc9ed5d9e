from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Iterable


class DiscountType(str, enum.Enum):
    flat = "FLAT"
    percent = "PERCENT"


class InvalidCouponError(ValueError):
    """A catalog entry violates an invariant the selection engine relies on."""

    def __init__(self, code: str, reason: str) -> None:
        super().__init__(f"Coupon {code!r} is invalid: {reason}")
        self.code = code
        self.reason = reason


def _lowercase_set(values: Iterable[str] | None) -> frozenset[str] | None:
    if values is None:
        return None
    return frozenset(str(value).lower() for value in values)


def _as_set(values: Iterable[str] | None) -> frozenset[str] | None:
    if values is None:
        return None
    return frozenset(values)


@dataclass(frozen=True)
class EligibilityRules:
    """Optional per-field restrictions; ``None`` means the field imposes nothing."""

    allowed_user_tiers: frozenset[str] | None = None
    min_lifetime_spend: Decimal | None = None
    min_orders_placed: int | None = None
    first_order_only: bool = False
    allowed_countries: frozenset[str] | None = None

    min_cart_value: Decimal | None = None
    applicable_categories: frozenset[str] | None = None
    excluded_categories: frozenset[str] | None = None
    min_items_count: int | None = None

    def __post_init__(self) -> None:
        # Categories are folded once here so checks never re-normalize the rule side.
        object.__setattr__(self, "allowed_user_tiers", _as_set(self.allowed_user_tiers))
        object.__setattr__(self, "allowed_countries", _as_set(self.allowed_countries))
        object.__setattr__(self, "applicable_categories", _lowercase_set(self.applicable_categories))
        object.__setattr__(self, "excluded_categories", _lowercase_set(self.excluded_categories))


@dataclass(frozen=True)
class Coupon:
    code: str
    description: str
    discount_type: DiscountType
    discount_value: Decimal
    start_date: datetime
    end_date: datetime
    max_discount_amount: Decimal | None = None
    usage_limit_per_user: int | None = None
    eligibility: EligibilityRules = field(default_factory=EligibilityRules)


@dataclass(frozen=True)
class UserContext:
    user_id: str
    user_tier: str
    country: str
    lifetime_spend: Decimal = Decimal("0")
    orders_placed: int = 0


@dataclass(frozen=True)
class CartItem:
    product_id: str
    category: str
    unit_price: Decimal
    quantity: int


@dataclass(frozen=True)
class Cart:
    items: tuple[CartItem, ...] = ()

    def categories(self) -> list[str]:
        return [item.category.lower() for item in self.items]
