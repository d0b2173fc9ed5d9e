from fastapi import APIRouter, Depends

from coupon_engine.api.v1 import coupons
from coupon_engine.core.dependencies import get_catalog
from coupon_engine.core.metrics import snapshot as metrics_snapshot
from coupon_engine.services.catalog import CouponCatalog

api_router = APIRouter()

api_router.include_router(coupons.router)


@api_router.get("/health", tags=["health"])
def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@api_router.get("/health/ready", tags=["health"])
def readiness(catalog: CouponCatalog = Depends(get_catalog)) -> dict[str, object]:
    return {"status": "ready", "coupons": len(catalog)}


@api_router.get("/metrics", tags=["health"])
def metrics() -> dict[str, int]:
    return metrics_snapshot()
