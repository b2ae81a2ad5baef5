"""HTTP exchange logging for debugging Trac logins.

log_exchange() is installed as a requests response hook when the relay runs
with --debug. Credentials never reach the log.
"""

from __future__ import annotations

from typing import Any
from urllib.parse import parse_qsl

import requests

from ..relay_logging import get_logger

logger = get_logger("http")

REDACTED = "***REDACTED***"
SENSITIVE_HEADERS = {"authorization", "cookie", "set-cookie"}
SENSITIVE_FIELDS = {"password", "__form_token"}


def redact_headers(headers: Any) -> dict[str, str]:
    """Copy headers with credential-bearing values masked."""
    return {
        name: REDACTED if name.lower() in SENSITIVE_HEADERS else value
        for name, value in headers.items()
    }


def redact_form_body(body: Any) -> str:
    """Render a request body with password fields masked."""
    if body is None:
        return ""
    if isinstance(body, bytes):
        body = body.decode("utf-8", errors="replace")
    if not isinstance(body, str):
        return f"<{type(body).__name__}>"

    fields = parse_qsl(body, keep_blank_values=True)
    if not fields:
        return body

    return "&".join(
        f"{name}={REDACTED if name.lower() in SENSITIVE_FIELDS else value}"
        for name, value in fields
    )


def log_exchange(response: requests.Response, *args: Any, **kwargs: Any) -> None:
    """Response hook logging the request and response of one HTTP exchange."""
    request = response.request

    logger.debug("HTTP ---> %s %s", request.method, request.url)
    for name, value in redact_headers(request.headers).items():
        logger.debug("%s: %s", name, value)
    if request.body:
        logger.debug("%s", redact_form_body(request.body))

    logger.debug("<--- HTTP %s %s", response.status_code, response.reason)
    for name, value in redact_headers(response.headers).items():
        logger.debug("%s: %s", name, value)
    logger.debug("%s", response.text)


def install_exchange_logging(session: requests.Session) -> None:
    """Attach log_exchange to a session, once."""
    hooks = session.hooks.setdefault("response", [])
    if log_exchange not in hooks:
        hooks.append(log_exchange)
