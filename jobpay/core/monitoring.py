"""Optional Sentry error reporting.

Enabled only when ``SENTRY_DSN`` is set. Events are tagged with the
installed package version and have customer phone numbers masked before
they leave the process.
"""
from __future__ import annotations

import logging
import re
from importlib.metadata import PackageNotFoundError, version
from typing import Any

import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration

from jobpay.core.config import settings

logger = logging.getLogger(__name__)

DISTRIBUTION = "jobpay-checkout"
_PHONE_KEYS = frozenset({"phone", "phone_number"})
_PHONE_PATTERN = re.compile(r"\+?(?:237)?[0-9]{9}")

_initialized = False


def release_name() -> str:
    """``<app-slug>@<package version>``, falling back to the environment name."""
    slug = re.sub(r"[^a-z0-9]+", "-", settings.APP_NAME.lower()).strip("-")
    try:
        return f"{slug}@{version(DISTRIBUTION)}"
    except PackageNotFoundError:
        return f"{slug}@{settings.ENV}"


def _mask(value: Any) -> Any:
    if isinstance(value, str):
        return _PHONE_PATTERN.sub(lambda m: "*" * (len(m.group()) - 3) + m.group()[-3:], value)
    if isinstance(value, dict):
        return {k: ("***" if k in _PHONE_KEYS else _mask(v)) for k, v in value.items()}
    if isinstance(value, list):
        return [_mask(v) for v in value]
    return value


def scrub_event(event: dict[str, Any], hint: dict[str, Any] | None = None) -> dict[str, Any]:
    """Sentry ``before_send`` hook: mask phone numbers in request data and messages."""
    request = event.get("request")
    if isinstance(request, dict):
        for key in ("data", "query_string", "url"):
            if key in request:
                request[key] = _mask(request[key])
    for key in ("message", "extra"):
        if key in event:
            event[key] = _mask(event[key])
    logentry = event.get("logentry")
    if isinstance(logentry, dict):
        event["logentry"] = _mask(logentry)
    return event


def init_monitoring() -> None:
    global _initialized
    if _initialized:
        return
    if settings.SENTRY_DSN:
        try:
            sentry_sdk.init(
                dsn=settings.SENTRY_DSN,
                integrations=[FastApiIntegration()],
                traces_sample_rate=settings.SENTRY_TRACES_SAMPLE_RATE,
                environment=settings.ENV,
                release=release_name(),
                send_default_pii=False,
                before_send=scrub_event,
            )
            logger.info("Sentry initialized release=%s", release_name())
        except Exception as exc:  # noqa: BLE001
            logger.warning("Failed to init Sentry: %s", exc)
    _initialized = True
