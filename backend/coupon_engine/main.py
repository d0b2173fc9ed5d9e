import logging
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from coupon_engine.api.v1 import api_router
from coupon_engine.core.config import Settings, settings as default_settings
from coupon_engine.core.dependencies import get_catalog
from coupon_engine.core.logging_config import configure_logging
from coupon_engine.core.sentry import init_sentry
from coupon_engine.middleware import RequestLoggingMiddleware
from coupon_engine.schemas.error import ErrorResponse
from coupon_engine.seeds import seed_catalog

logger = logging.getLogger(__name__)


def get_application(config: Settings | None = None) -> FastAPI:
    config = config or default_settings
    configure_logging(config.log_json, config.log_level)
    init_sentry(config)
    tags_metadata = [
        {"name": "coupons", "description": "Coupon catalog and best-coupon selection"},
        {"name": "health", "description": "Liveness, readiness and counters"},
    ]
    app = FastAPI(
        title=config.app_name,
        version=config.app_version,
        openapi_tags=tags_metadata,
        swagger_ui_parameters={"displayRequestDuration": True},
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=config.cors_allow_credentials,
        allow_methods=config.cors_allow_methods,
        allow_headers=config.cors_allow_headers,
    )
    app.add_middleware(RequestLoggingMiddleware)
    app.include_router(api_router, prefix="/api/v1")

    if config.coupon_seed_file:
        seed_catalog(get_catalog(), Path(config.coupon_seed_file))

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        payload = ErrorResponse(detail=exc.detail, code=None)
        return JSONResponse(
            status_code=exc.status_code,
            content=jsonable_encoder(payload.model_dump()),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        errors = jsonable_encoder(exc.errors())
        logger.warning("request_validation_failed", extra={"path": request.url.path, "errors": errors})
        payload = ErrorResponse(detail=errors, code="validation_error")
        return JSONResponse(status_code=422, content=payload.model_dump())

    return app


app = get_application()
