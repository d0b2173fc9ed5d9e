from __future__ import annotations

import logging
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, status

from coupon_engine.core.dependencies import get_catalog, get_now, get_usage_tracker
from coupon_engine.schemas.coupons import (
    BestCouponRequest,
    BestCouponResponse,
    CouponCreate,
    CouponListResponse,
    CouponRead,
    CouponUpsertResponse,
    UserUsageRead,
)
from coupon_engine.services import selection
from coupon_engine.services.catalog import CouponCatalog
from coupon_engine.services.usage import UsageTracker

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/coupons", tags=["coupons"])


@router.get("", response_model=CouponListResponse)
def list_coupons(catalog: CouponCatalog = Depends(get_catalog)) -> CouponListResponse:
    coupons = [CouponRead.from_domain(coupon) for coupon in catalog.snapshot()]
    return CouponListResponse(count=len(coupons), coupons=coupons)


@router.post("", response_model=CouponUpsertResponse, status_code=status.HTTP_201_CREATED)
def upsert_coupon(payload: CouponCreate, catalog: CouponCatalog = Depends(get_catalog)) -> CouponUpsertResponse:
    coupon = payload.to_domain()
    overwritten = catalog.upsert(coupon)
    return CouponUpsertResponse(
        message="Coupon updated successfully" if overwritten else "Coupon created successfully",
        coupon=CouponRead.from_domain(coupon),
        overwritten=overwritten,
    )


@router.post("/best", response_model=BestCouponResponse)
def best_coupon(
    payload: BestCouponRequest,
    catalog: CouponCatalog = Depends(get_catalog),
    tracker: UsageTracker = Depends(get_usage_tracker),
    now: datetime = Depends(get_now),
) -> BestCouponResponse:
    user = payload.user_context.to_domain()
    cart = payload.cart.to_domain()
    logger.info(
        "best_coupon_requested",
        extra={"user_id": user.user_id, "cart_items": len(cart.items), "catalog_size": len(catalog)},
    )
    result = selection.select_best(catalog.snapshot(), user, cart, now=now, tracker=tracker)
    if result.coupon is None:
        return BestCouponResponse(coupon=None, discount=0)
    return BestCouponResponse(coupon=CouponRead.from_domain(result.coupon), discount=float(result.discount))


@router.get("/usage/{user_id}", response_model=UserUsageRead)
def user_usage(user_id: str, tracker: UsageTracker = Depends(get_usage_tracker)) -> UserUsageRead:
    return UserUsageRead(user_id=user_id, usage=tracker.usage_for_user(user_id))


@router.get("/{code}", response_model=CouponRead)
def get_coupon(code: str, catalog: CouponCatalog = Depends(get_catalog)) -> CouponRead:
    coupon = catalog.get(code)
    if coupon is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Coupon not found")
    return CouponRead.from_domain(coupon)
