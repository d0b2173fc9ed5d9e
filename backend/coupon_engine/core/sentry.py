from __future__ import annotations

import logging

from coupon_engine.core.config import Settings, settings as default_settings

logger = logging.getLogger(__name__)


def init_sentry(config: Settings | None = None) -> bool:
    """Initialise Sentry when a DSN is configured. Returns whether it was enabled."""
    config = config or default_settings
    if not (config.sentry_dsn or "").strip():
        return False

    import sentry_sdk
    from sentry_sdk.integrations import Integration
    from sentry_sdk.integrations.fastapi import FastApiIntegration
    from sentry_sdk.integrations.logging import LoggingIntegration

    integrations: list[Integration] = [FastApiIntegration()]
    if config.sentry_enable_logs:
        log_level_name = str(config.sentry_log_level or "error").strip().upper()
        event_level = getattr(logging, log_level_name, logging.ERROR)
        integrations.append(LoggingIntegration(level=event_level, event_level=event_level))

    sentry_sdk.init(
        dsn=config.sentry_dsn,
        environment=config.environment,
        release=config.app_version,
        traces_sample_rate=config.sentry_traces_sample_rate,
        integrations=integrations,
        attach_stacktrace=True,
        send_default_pii=False,
    )
    logger.info("sentry_enabled", extra={"environment": config.environment})
    return True
