"""Sentry error tracking configuration."""
import logging

import sentry_sdk
from sentry_sdk.integrations.celery import CeleryIntegration
from sentry_sdk.integrations.fastapi import FastApiIntegration

import config

logger = logging.getLogger(__name__)


def init_sentry() -> bool:
    """Initialize Sentry for the API and the mint workers. No-op without SENTRY_DSN."""
    if not config.SENTRY_DSN:
        return False

    production = config.ENVIRONMENT == "production"
    try:
        sentry_sdk.init(
            dsn=config.SENTRY_DSN,
            environment=config.ENVIRONMENT,
            integrations=[
                FastApiIntegration(transaction_style="endpoint"),
                CeleryIntegration(monitor_beat_tasks=True),
            ],
            traces_sample_rate=0.1 if production else 1.0,
            send_default_pii=False,
            attach_stacktrace=True,
            release=config.VERSION,
        )
    except Exception as e:
        logger.warning(f"Sentry initialization failed: {e}")
        return False
    return True
