from coupon_engine.middleware.request_log import RequestLoggingMiddleware  # noqa: F401
