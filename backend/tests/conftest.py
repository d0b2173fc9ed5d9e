import os
from collections.abc import Callable, Generator
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any

import pytest
from fastapi.testclient import TestClient

# Keep pytest output high-signal by disabling outbound Sentry capture in tests.
os.environ["SENTRY_DSN"] = ""

from coupon_engine.core import metrics
from coupon_engine.core.dependencies import get_catalog, get_now, get_usage_tracker
from coupon_engine.main import app
from coupon_engine.models.coupon import Cart, CartItem, Coupon, DiscountType, EligibilityRules, UserContext
from coupon_engine.services.catalog import CouponCatalog
from coupon_engine.services.usage import UsageTracker

FIXED_NOW = datetime(2026, 3, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def _reset_shared_state() -> Generator[None, None, None]:
    # The catalog, usage counts and counters are process-global and would leak across tests.
    get_catalog().clear()
    get_usage_tracker().clear()
    metrics.reset()
    yield
    get_catalog().clear()
    get_usage_tracker().clear()
    metrics.reset()
    app.dependency_overrides.clear()


@pytest.fixture
def now() -> datetime:
    return FIXED_NOW


@pytest.fixture
def catalog() -> CouponCatalog:
    return get_catalog()


@pytest.fixture
def tracker() -> UsageTracker:
    return get_usage_tracker()


@pytest.fixture
def client() -> Generator[TestClient, None, None]:
    app.dependency_overrides[get_now] = lambda: FIXED_NOW
    test_client = TestClient(app)
    yield test_client
    test_client.close()


@pytest.fixture
def make_coupon() -> Callable[..., Coupon]:
    def _make(code: str = "SAVE10", **overrides: Any) -> Coupon:
        eligibility = overrides.pop("eligibility", None) or EligibilityRules()
        fields: dict[str, Any] = {
            "code": code,
            "description": f"{code} coupon",
            "discount_type": DiscountType.flat,
            "discount_value": Decimal("10"),
            "start_date": FIXED_NOW - timedelta(days=30),
            "end_date": FIXED_NOW + timedelta(days=30),
            "eligibility": eligibility,
        }
        fields.update(overrides)
        return Coupon(**fields)

    return _make


@pytest.fixture
def make_cart() -> Callable[..., Cart]:
    def _make(*lines: tuple[str, str | int | Decimal, int]) -> Cart:
        """Each line is (category, unit_price, quantity)."""
        return Cart(
            items=tuple(
                CartItem(product_id=f"p{idx}", category=category, unit_price=Decimal(str(price)), quantity=qty)
                for idx, (category, price, qty) in enumerate(lines, start=1)
            )
        )

    return _make


@pytest.fixture
def user() -> UserContext:
    return UserContext(
        user_id="u1",
        user_tier="GOLD",
        country="IN",
        lifetime_spend=Decimal("5000"),
        orders_placed=3,
    )
