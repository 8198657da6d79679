"""
Error message sanitization for API responses.

Upstream URLs carry function keys in the query string (``?code=...``), so
anything that reaches a client passes through here first.
"""

from __future__ import annotations

import re

from customsops.observability.logging import get_logger

logger = get_logger(__name__)

# Patterns that might leak sensitive information
SENSITIVE_PATTERNS = [
    # File paths
    r"/[^\s]+\.(py|json)",
    r"[A-Za-z]:\\[^\s]+",
    # Stack trace indicators
    r"Traceback \(most recent call last\)",
    r"File \".*\"",
    r"line \d+",
    # Upstream hosts and keys
    r"https?://",
    r"[?&](code|sig|sp|sv)=",
    r"azurewebsites\.net",
    r"logic\.azure\.com",
    r"[A-Za-z0-9_-]{32,}",
    # Internal module names
    r"customsops\.[a-z_.]+",
]

GENERIC_MESSAGES = {
    400: "Invalid request. Please check your input and try again.",
    401: "Authentication required.",
    403: "Access denied.",
    404: "Resource not found.",
    422: "Invalid data format.",
    429: "Too many requests. Please try again later.",
    500: "An internal error occurred. Please try again later.",
    502: "Upstream service returned an error.",
    503: "Service temporarily unavailable.",
}


def sanitize_error_message(
    message: str,
    status_code: int = 500,
    allow_field_names: bool = True,
) -> str:
    """
    Sanitize an error message to prevent information leakage.

    Args:
        message: The original error message
        status_code: HTTP status code (used to select generic fallback)
        allow_field_names: Whether short plain validation messages may pass through

    Returns:
        Sanitized error message safe for client consumption
    """
    fallback = GENERIC_MESSAGES.get(status_code, "An error occurred.")
    if not message:
        return fallback

    for pattern in SENSITIVE_PATTERNS:
        if re.search(pattern, message, re.IGNORECASE):
            logger.warning("Sanitized sensitive error pattern: %s", pattern)
            return fallback

    if (
        status_code in (400, 404)
        and allow_field_names
        and len(message) < 100
        and not any(c in message for c in ["{", "}", "[", "]", "\n"])
    ):
        return message

    return fallback


def get_safe_error_detail(
    error: Exception,
    status_code: int = 500,
    context: str | None = None,
) -> str:
    """
    Log the full error and return a client-safe detail string.

    For 5xx codes the ``context`` string is used verbatim when given.
    """
    logger.error("Error (status=%d): %s - %s", status_code, type(error).__name__, str(error))

    if context and status_code >= 500:
        return context
    return sanitize_error_message(str(error), status_code)
