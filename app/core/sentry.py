"""Sentry error tracking integration.

Initializes Sentry SDK if SENTRY_DSN env variable is set, and does nothing
otherwise. Gemini calls carry the API key as a ``key=`` query parameter, so
events are scrubbed of it before they leave the process.
"""

import logging
import re

from app.core.config import settings

logger = logging.getLogger(__name__)

FILTERED = "[Filtered]"

_KEY_PARAM = re.compile(r"(?P<name>\bkey=)[^&\s\"']+")


def redact_api_key(value):
    """Mask ``key=...`` query values (and the configured key itself) in a string."""
    if not isinstance(value, str):
        return value
    value = _KEY_PARAM.sub(rf"\g<name>{FILTERED}", value)
    if settings.gemini_api_key:
        value = value.replace(settings.gemini_api_key, FILTERED)
    return value


def scrub_event(event: dict, hint: dict | None = None) -> dict:
    """``before_send`` / ``before_breadcrumb`` hook: drop the API key from URLs and messages."""
    request = event.get("request")
    if isinstance(request, dict):
        for field in ("url", "query_string"):
            if field in request:
                request[field] = redact_api_key(request[field])

    data = event.get("data")
    if isinstance(data, dict):
        for name, value in data.items():
            data[name] = redact_api_key(value)

    if "message" in event:
        event["message"] = redact_api_key(event["message"])

    breadcrumbs = event.get("breadcrumbs")
    crumbs = breadcrumbs.get("values", []) if isinstance(breadcrumbs, dict) else breadcrumbs or []
    for crumb in crumbs:
        if isinstance(crumb, dict):
            scrub_event(crumb)

    for exc in (event.get("exception") or {}).get("values") or []:
        if isinstance(exc, dict) and "value" in exc:
            exc["value"] = redact_api_key(exc["value"])

    return event


def init_sentry() -> bool:
    """Initialize Sentry if SENTRY_DSN is configured. Returns whether it was."""
    if not settings.sentry_dsn:
        logger.debug("Sentry DSN not configured, skipping")
        return False

    import sentry_sdk
    from sentry_sdk.integrations.fastapi import FastApiIntegration

    sentry_sdk.init(
        dsn=settings.sentry_dsn,
        environment=settings.app_env,
        traces_sample_rate=0.1 if settings.app_env == "production" else 1.0,
        send_default_pii=False,
        before_send=scrub_event,
        before_breadcrumb=scrub_event,
        integrations=[
            FastApiIntegration(transaction_style="endpoint"),
        ],
    )
    sentry_sdk.set_tag("gemini.primary_model", settings.gemini_model)
    logger.info("Sentry initialized (env=%s)", settings.app_env)
    return True
