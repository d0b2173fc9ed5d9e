from __future__ import annotations

import logging
from decimal import Decimal

from coupon_engine.models.coupon import Cart, Coupon, EligibilityRules, UserContext
from coupon_engine.services.discounts import cart_item_count, cart_value

logger = logging.getLogger(__name__)


def _user_reason(rules: EligibilityRules, user: UserContext) -> str | None:
    if rules.allowed_user_tiers is not None and user.user_tier not in rules.allowed_user_tiers:
        return "user_tier_not_allowed"
    if rules.min_lifetime_spend is not None and Decimal(user.lifetime_spend) < Decimal(rules.min_lifetime_spend):
        return "min_lifetime_spend_not_met"
    if rules.min_orders_placed is not None and int(user.orders_placed) < int(rules.min_orders_placed):
        return "min_orders_not_met"
    if rules.first_order_only and int(user.orders_placed) > 0:
        return "first_order_only"
    if rules.allowed_countries is not None and user.country not in rules.allowed_countries:
        return "country_not_allowed"
    return None


def _cart_reason(rules: EligibilityRules, cart: Cart) -> str | None:
    if rules.min_cart_value is not None and cart_value(cart) < Decimal(rules.min_cart_value):
        return "min_cart_value_not_met"
    if rules.applicable_categories is not None:
        if not any(category in rules.applicable_categories for category in cart.categories()):
            return "no_applicable_category"
    if rules.excluded_categories is not None:
        if any(category in rules.excluded_categories for category in cart.categories()):
            return "excluded_category_present"
    if rules.min_items_count is not None and cart_item_count(cart) < int(rules.min_items_count):
        return "min_items_not_met"
    return None


def check_user_eligibility(rules: EligibilityRules, user: UserContext) -> bool:
    return _user_reason(rules, user) is None


def check_cart_eligibility(rules: EligibilityRules, cart: Cart) -> bool:
    return _cart_reason(rules, cart) is None


def ineligibility_reason(coupon: Coupon, user: UserContext, cart: Cart) -> str | None:
    """Code of the first failing rule, or ``None`` when the coupon is eligible.

    User-side rules are checked before cart-side rules and evaluation stops at the
    first failure, so the reported code is stable for a given input.
    """
    rules = coupon.eligibility
    reason = _user_reason(rules, user) or _cart_reason(rules, cart)
    if reason is not None:
        logger.debug(
            "coupon_ineligible",
            extra={"coupon_code": coupon.code, "user_id": user.user_id, "reason": reason},
        )
    return reason


def is_eligible(coupon: Coupon, user: UserContext, cart: Cart) -> bool:
    return ineligibility_reason(coupon, user, cart) is None
