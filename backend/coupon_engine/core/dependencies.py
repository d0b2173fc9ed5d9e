from datetime import datetime, timezone

from coupon_engine.services.catalog import CouponCatalog
from coupon_engine.services.usage import UsageTracker

_catalog = CouponCatalog()
_usage_tracker = UsageTracker()


def get_catalog() -> CouponCatalog:
    """FastAPI dependency returning the process-wide coupon catalog."""
    return _catalog


def get_usage_tracker() -> UsageTracker:
    return _usage_tracker


def get_now() -> datetime:
    return datetime.now(timezone.utc)
