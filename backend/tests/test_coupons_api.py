from datetime import datetime, timedelta, timezone
from typing import Any

from fastapi.testclient import TestClient

FIXED_NOW = datetime(2026, 3, 15, 12, 0, tzinfo=timezone.utc)


def coupon_payload(code: str = "SAVE100", **overrides: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "code": code,
        "description": "Test coupon",
        "discount_type": "FLAT",
        "discount_value": 100,
        "start_date": (FIXED_NOW - timedelta(days=10)).isoformat(),
        "end_date": (FIXED_NOW + timedelta(days=10)).isoformat(),
        "eligibility": {},
    }
    payload.update(overrides)
    return payload


def best_payload(*, user_id: str = "u1", items: list[dict[str, Any]] | None = None, **user: Any) -> dict[str, Any]:
    user_context = {"user_id": user_id, "user_tier": "GOLD", "country": "IN", "lifetime_spend": 5000, "orders_placed": 3}
    user_context.update(user)
    if items is None:
        items = [{"product_id": "p1", "category": "electronics", "unit_price": 1000, "quantity": 1}]
    return {"user_context": user_context, "cart": {"items": items}}


def test_create_and_list_coupons(client: TestClient) -> None:
    res = client.post("/api/v1/coupons", json=coupon_payload())
    assert res.status_code == 201, res.text
    body = res.json()
    assert body["message"] == "Coupon created successfully"
    assert body["overwritten"] is False
    assert body["coupon"]["code"] == "SAVE100"
    assert body["coupon"]["discount_value"] == 100

    listing = client.get("/api/v1/coupons").json()
    assert listing["count"] == 1
    assert listing["coupons"][0]["code"] == "SAVE100"


def test_list_is_empty_without_coupons(client: TestClient) -> None:
    assert client.get("/api/v1/coupons").json() == {"count": 0, "coupons": []}


def test_get_coupon_by_code_and_404(client: TestClient) -> None:
    client.post("/api/v1/coupons", json=coupon_payload("CODE1"))
    assert client.get("/api/v1/coupons/CODE1").json()["code"] == "CODE1"

    missing = client.get("/api/v1/coupons/NOPE")
    assert missing.status_code == 404
    assert missing.json() == {"detail": "Coupon not found", "code": None}


def test_categories_are_stored_lowercase(client: TestClient) -> None:
    client.post(
        "/api/v1/coupons",
        json=coupon_payload("CATS", eligibility={"applicable_categories": ["ELECTRONICS", "Fashion"]}),
    )
    stored = client.get("/api/v1/coupons/CATS").json()
    assert stored["eligibility"]["applicable_categories"] == ["electronics", "fashion"]


def test_upsert_overwrites_without_merging(client: TestClient) -> None:
    client.post(
        "/api/v1/coupons",
        json=coupon_payload("SAME", eligibility={"allowed_countries": ["US"], "min_items_count": 3}),
    )
    res = client.post("/api/v1/coupons", json=coupon_payload("SAME", discount_value=40))
    assert res.status_code == 201
    assert res.json()["overwritten"] is True
    assert res.json()["message"] == "Coupon updated successfully"

    stored = client.get("/api/v1/coupons/SAME").json()
    assert stored["discount_value"] == 40
    assert stored["eligibility"]["allowed_countries"] is None
    assert stored["eligibility"]["min_items_count"] is None
    assert client.get("/api/v1/coupons").json()["count"] == 1


def test_invalid_coupons_are_rejected(client: TestClient) -> None:
    invalid = [
        coupon_payload(code="   "),
        coupon_payload(code="A/B"),
        coupon_payload(discount_type="BOGO"),
        coupon_payload(discount_value=-10),
        coupon_payload(discount_value=0),
        coupon_payload(max_discount_amount=0),
        coupon_payload(start_date="not-a-date"),
        coupon_payload(start_date=(FIXED_NOW + timedelta(days=20)).isoformat()),
        coupon_payload(usage_limit_per_user=-1),
        coupon_payload(eligibility={"min_cart_value": -100}),
        coupon_payload(eligibility={"min_orders_placed": -1}),
        coupon_payload(description=""),
    ]
    for payload in invalid:
        res = client.post("/api/v1/coupons", json=payload)
        assert res.status_code == 422, payload
        assert res.json()["code"] == "validation_error"
    assert client.get("/api/v1/coupons").json()["count"] == 0


def test_best_coupon_picks_highest_discount(client: TestClient) -> None:
    client.post("/api/v1/coupons", json=coupon_payload("FLAT50", discount_value=50))
    client.post("/api/v1/coupons", json=coupon_payload("FLAT100", discount_value=100))

    res = client.post("/api/v1/coupons/best", json=best_payload())
    assert res.status_code == 200
    body = res.json()
    assert body["coupon"]["code"] == "FLAT100"
    assert body["discount"] == 100


def test_best_coupon_without_match_returns_null(client: TestClient) -> None:
    client.post(
        "/api/v1/coupons",
        json=coupon_payload("FASHION", eligibility={"applicable_categories": ["fashion"]}),
    )
    res = client.post("/api/v1/coupons/best", json=best_payload())
    assert res.status_code == 200
    assert res.json() == {"coupon": None, "discount": 0}


def test_best_coupon_matches_categories_case_insensitively(client: TestClient) -> None:
    client.post(
        "/api/v1/coupons",
        json=coupon_payload("ELEC", eligibility={"applicable_categories": ["ELECTRONICS"]}),
    )
    items = [{"product_id": "p1", "category": "Electronics", "unit_price": 200, "quantity": 1}]
    assert client.post("/api/v1/coupons/best", json=best_payload(items=items)).json()["coupon"]["code"] == "ELEC"


def test_expired_coupon_is_not_offered(client: TestClient) -> None:
    client.post(
        "/api/v1/coupons",
        json=coupon_payload(
            "OLD",
            discount_value=500,
            start_date=(FIXED_NOW - timedelta(days=30)).isoformat(),
            end_date=(FIXED_NOW - timedelta(days=1)).isoformat(),
        ),
    )
    assert client.post("/api/v1/coupons/best", json=best_payload()).json()["coupon"] is None


def test_usage_limit_and_usage_diagnostics(client: TestClient) -> None:
    client.post("/api/v1/coupons", json=coupon_payload("ONCE", usage_limit_per_user=1))

    first = client.post("/api/v1/coupons/best", json=best_payload()).json()
    second = client.post("/api/v1/coupons/best", json=best_payload()).json()
    other_user = client.post("/api/v1/coupons/best", json=best_payload(user_id="u2")).json()

    assert first["coupon"]["code"] == "ONCE"
    assert second == {"coupon": None, "discount": 0}
    assert other_user["coupon"]["code"] == "ONCE"
    assert client.get("/api/v1/coupons/usage/u1").json() == {"user_id": "u1", "usage": {"ONCE": 1}}
    assert client.get("/api/v1/coupons/usage/nobody").json() == {"user_id": "nobody", "usage": {}}


def test_usage_survives_coupon_overwrite(client: TestClient) -> None:
    client.post("/api/v1/coupons", json=coupon_payload("ONCE", usage_limit_per_user=1))
    client.post("/api/v1/coupons/best", json=best_payload())
    client.post("/api/v1/coupons", json=coupon_payload("ONCE", usage_limit_per_user=1, discount_value=20))
    assert client.post("/api/v1/coupons/best", json=best_payload()).json()["coupon"] is None


def test_best_coupon_validates_request_shape(client: TestClient) -> None:
    missing_user = client.post("/api/v1/coupons/best", json={"cart": {"items": []}})
    assert missing_user.status_code == 422

    missing_tier = best_payload()
    del missing_tier["user_context"]["user_tier"]
    assert client.post("/api/v1/coupons/best", json=missing_tier).status_code == 422

    bad_item = best_payload(items=[{"product_id": "p1", "category": "books", "unit_price": "abc", "quantity": 1}])
    assert client.post("/api/v1/coupons/best", json=bad_item).status_code == 422

    no_items = best_payload()
    no_items["cart"] = {}
    assert client.post("/api/v1/coupons/best", json=no_items).status_code == 422


def test_empty_cart_gets_no_discount(client: TestClient) -> None:
    client.post("/api/v1/coupons", json=coupon_payload("FLAT50", discount_value=50))
    body = client.post("/api/v1/coupons/best", json=best_payload(items=[])).json()
    assert body["coupon"]["code"] == "FLAT50"
    assert body["discount"] == 0


def test_camel_case_bodies_are_accepted(client: TestClient) -> None:
    res = client.post(
        "/api/v1/coupons",
        json={
            "code": "CAMEL",
            "description": "camelCase coupon",
            "discountType": "PERCENT",
            "discountValue": 10,
            "maxDiscountAmount": 50,
            "startDate": (FIXED_NOW - timedelta(days=1)).isoformat(),
            "endDate": (FIXED_NOW + timedelta(days=1)).isoformat(),
            "usageLimitPerUser": 1,
            "eligibility": {"allowedUserTiers": ["GOLD"], "minCartValue": 100},
        },
    )
    assert res.status_code == 201, res.text
    stored = res.json()["coupon"]
    assert stored["usage_limit_per_user"] == 1
    assert stored["eligibility"]["allowed_user_tiers"] == ["GOLD"]

    best = client.post(
        "/api/v1/coupons/best",
        json={
            "userContext": {"userId": "u1", "userTier": "GOLD", "country": "IN", "lifetimeSpend": 0, "ordersPlaced": 0},
            "cart": {"items": [{"productId": "p1", "category": "books", "unitPrice": 1000, "quantity": 1}]},
        },
    ).json()
    assert best["coupon"]["code"] == "CAMEL"
    assert best["discount"] == 50


def test_camel_case_errors_report_field_names(client: TestClient) -> None:
    res = client.post("/api/v1/coupons", json=coupon_payload(discount_value=-1))
    assert res.status_code == 422
    assert ("body", "discount_value") in {tuple(error["loc"]) for error in res.json()["detail"]}
