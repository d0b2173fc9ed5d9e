from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from coupon_engine.models.coupon import Cart, CartItem, Coupon, DiscountType, EligibilityRules, UserContext


# Request bodies accept camelCase keys as well as the field names; errors report field names.
_ACCEPT_CAMEL_CASE = ConfigDict(alias_generator=to_camel, populate_by_name=True, loc_by_alias=False)


def _aware_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _sorted_or_none(values: frozenset[str] | None) -> list[str] | None:
    return sorted(values) if values is not None else None


class EligibilityIn(BaseModel):
    model_config = _ACCEPT_CAMEL_CASE

    allowed_user_tiers: list[str] | None = None
    min_lifetime_spend: Decimal | None = Field(default=None, ge=0)
    min_orders_placed: int | None = Field(default=None, ge=0)
    first_order_only: bool | None = False
    allowed_countries: list[str] | None = None
    min_cart_value: Decimal | None = Field(default=None, ge=0)
    applicable_categories: list[str] | None = None
    excluded_categories: list[str] | None = None
    min_items_count: int | None = Field(default=None, ge=0)

    def to_rules(self) -> EligibilityRules:
        return EligibilityRules(
            allowed_user_tiers=self.allowed_user_tiers,
            min_lifetime_spend=self.min_lifetime_spend,
            min_orders_placed=self.min_orders_placed,
            first_order_only=bool(self.first_order_only),
            allowed_countries=self.allowed_countries,
            min_cart_value=self.min_cart_value,
            applicable_categories=self.applicable_categories,
            excluded_categories=self.excluded_categories,
            min_items_count=self.min_items_count,
        )


class EligibilityRead(BaseModel):
    allowed_user_tiers: list[str] | None = None
    min_lifetime_spend: float | None = None
    min_orders_placed: int | None = None
    first_order_only: bool = False
    allowed_countries: list[str] | None = None
    min_cart_value: float | None = None
    applicable_categories: list[str] | None = None
    excluded_categories: list[str] | None = None
    min_items_count: int | None = None

    @classmethod
    def from_rules(cls, rules: EligibilityRules) -> "EligibilityRead":
        return cls(
            allowed_user_tiers=_sorted_or_none(rules.allowed_user_tiers),
            min_lifetime_spend=rules.min_lifetime_spend,
            min_orders_placed=rules.min_orders_placed,
            first_order_only=rules.first_order_only,
            allowed_countries=_sorted_or_none(rules.allowed_countries),
            min_cart_value=rules.min_cart_value,
            applicable_categories=_sorted_or_none(rules.applicable_categories),
            excluded_categories=_sorted_or_none(rules.excluded_categories),
            min_items_count=rules.min_items_count,
        )


class CouponCreate(BaseModel):
    model_config = _ACCEPT_CAMEL_CASE

    code: str = Field(min_length=1, max_length=64)
    description: str = Field(min_length=1, max_length=500)
    discount_type: DiscountType
    discount_value: Decimal = Field(gt=0)
    max_discount_amount: Decimal | None = Field(default=None, gt=0)
    start_date: datetime
    end_date: datetime
    usage_limit_per_user: int | None = Field(default=None, ge=0)
    eligibility: EligibilityIn | None = Field(default_factory=EligibilityIn)

    @field_validator("code")
    @classmethod
    def validate_code(cls, v: str) -> str:
        cleaned = (v or "").strip()
        if "/" in cleaned:
            raise ValueError("code cannot contain '/'")
        if not cleaned:
            raise ValueError("code cannot be empty")
        return cleaned

    @field_validator("start_date", "end_date")
    @classmethod
    def normalize_dates(cls, v: datetime) -> datetime:
        return _aware_utc(v)

    @model_validator(mode="after")
    def validate_window(self) -> "CouponCreate":
        if self.start_date > self.end_date:
            raise ValueError("start_date must be before or equal to end_date")
        return self

    def to_domain(self) -> Coupon:
        return Coupon(
            code=self.code,
            description=self.description,
            discount_type=self.discount_type,
            discount_value=self.discount_value,
            max_discount_amount=self.max_discount_amount,
            start_date=self.start_date,
            end_date=self.end_date,
            usage_limit_per_user=self.usage_limit_per_user,
            eligibility=(self.eligibility or EligibilityIn()).to_rules(),
        )


class CouponRead(BaseModel):
    code: str
    description: str
    discount_type: DiscountType
    discount_value: float
    max_discount_amount: float | None = None
    start_date: datetime
    end_date: datetime
    usage_limit_per_user: int | None = None
    eligibility: EligibilityRead

    @classmethod
    def from_domain(cls, coupon: Coupon) -> "CouponRead":
        return cls(
            code=coupon.code,
            description=coupon.description,
            discount_type=coupon.discount_type,
            discount_value=coupon.discount_value,
            max_discount_amount=coupon.max_discount_amount,
            start_date=coupon.start_date,
            end_date=coupon.end_date,
            usage_limit_per_user=coupon.usage_limit_per_user,
            eligibility=EligibilityRead.from_rules(coupon.eligibility),
        )


class CouponUpsertResponse(BaseModel):
    message: str
    coupon: CouponRead
    overwritten: bool


class CouponListResponse(BaseModel):
    count: int
    coupons: list[CouponRead] = Field(default_factory=list)


class UserContextIn(BaseModel):
    model_config = _ACCEPT_CAMEL_CASE

    user_id: str = Field(min_length=1)
    user_tier: str = Field(min_length=1)
    country: str = Field(min_length=1)
    lifetime_spend: Decimal = Field(default=Decimal("0"), ge=0)
    orders_placed: int = Field(default=0, ge=0)

    def to_domain(self) -> UserContext:
        return UserContext(
            user_id=self.user_id,
            user_tier=self.user_tier,
            country=self.country,
            lifetime_spend=self.lifetime_spend,
            orders_placed=self.orders_placed,
        )


class CartItemIn(BaseModel):
    model_config = _ACCEPT_CAMEL_CASE

    product_id: str = Field(min_length=1)
    category: str = Field(min_length=1)
    unit_price: Decimal = Field(gt=0)
    quantity: int = Field(ge=1)


class CartIn(BaseModel):
    model_config = _ACCEPT_CAMEL_CASE

    items: list[CartItemIn]

    def to_domain(self) -> Cart:
        return Cart(
            items=tuple(
                CartItem(
                    product_id=item.product_id,
                    category=item.category,
                    unit_price=item.unit_price,
                    quantity=item.quantity,
                )
                for item in self.items
            )
        )


class BestCouponRequest(BaseModel):
    model_config = _ACCEPT_CAMEL_CASE

    user_context: UserContextIn
    cart: CartIn


class BestCouponResponse(BaseModel):
    coupon: CouponRead | None = None
    discount: float = 0


class UserUsageRead(BaseModel):
    user_id: str
    usage: dict[str, int] = Field(default_factory=dict)
