from coupon_engine.models.coupon import (
    Cart,
    CartItem,
    Coupon,
    DiscountType,
    EligibilityRules,
    InvalidCouponError,
    UserContext,
)  # noqa: F401
