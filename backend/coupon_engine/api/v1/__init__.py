from coupon_engine.api.v1.routes import api_router  # noqa: F401
