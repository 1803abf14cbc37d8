"""
Centralized error classification and sanitization.

Every failure that crosses the API boundary goes through ``classify`` so the
caller receives a stable code and a vendor-agnostic message. The full,
unredacted error is only ever written to the operator logs by ``log_error``.
"""

import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Pattern, Tuple

import httpx

from app.platform.errors import ConfigurationError, ParseError, UnparsableResponse
from app.platform.logger import StructuredLogger, get_structured_logger

_default_logger: Optional[StructuredLogger] = None


def _get_default_logger() -> StructuredLogger:
    global _default_logger
    if _default_logger is None:
        _default_logger = get_structured_logger("error_handler")
    return _default_logger


ERROR_CODES = (
    "TIMEOUT",
    "NETWORK_ERROR",
    "RATE_LIMIT",
    "AUTH_ERROR",
    "NOT_FOUND",
    "SERVER_ERROR",
    "PARSE_ERROR",
    "VALIDATION_ERROR",
    "UNKNOWN_ERROR",
)

# Checked in order; first match wins.
_CODE_RULES: List[Tuple[str, Tuple[str, ...]]] = [
    ("TIMEOUT", ("timeout", "timed out")),
    ("NETWORK_ERROR", ("network", "connection")),
    ("RATE_LIMIT", ("rate limit", "429", "too many requests")),
    ("AUTH_ERROR", ("unauthorized", "401", "403", "forbidden")),
    ("NOT_FOUND", ("not found", "404")),
    ("SERVER_ERROR", ("500", "502", "503", "504", "server", "service unavailable", "bad gateway")),
    ("PARSE_ERROR", ("parse", "json", "malformed")),
    ("VALIDATION_ERROR", ("validation", "invalid url")),
]

USER_MESSAGES: Dict[str, str] = {
    "TIMEOUT": "The analysis is taking longer than expected. Please try again in a moment.",
    "NETWORK_ERROR": (
        "Unable to connect to the analysis service. "
        "Please check your internet connection and try again."
    ),
    "RATE_LIMIT": "The service is currently busy. Please wait a moment and try again.",
    "AUTH_ERROR": "Authentication error. Please refresh the page and try again.",
    "NOT_FOUND": "The requested page could not be found. Please verify the URL is correct.",
    "SERVER_ERROR": (
        "An internal error occurred. Our team has been notified. "
        "Please try again in a few moments."
    ),
    "PARSE_ERROR": (
        "Unable to process the page data. "
        "Please verify the URL is accessible and try again."
    ),
    "VALIDATION_ERROR": "Invalid URL. Please provide a valid HTTP/HTTPS product page URL.",
    "UNKNOWN_ERROR": "An unexpected error occurred during analysis. Please try again.",
}

_TRANSIENT_MARKERS = (
    "timeout",
    "timed out",
    "network",
    "connection",
    "rate limit",
    "429",
    "502",
    "503",
    "504",
)

# Vendor-specific phrases first, generic ones after, so the longer match wins.
_REDACTIONS: List[Tuple[Pattern[str], str]] = [
    (re.compile(r"replicate\.com|replicate api", re.I), "AI service"),
    (re.compile(r"replicate", re.I), "AI service"),
    (re.compile(r"open\s?ai|chat\s?gpt|gpt-?\d+(\.\d+)?(-[a-z]+)?", re.I), "AI model"),
    (re.compile(r"prediction (failed|error|timeout)", re.I), "analysis processing"),
    (re.compile(r"model version|model hash", re.I), "service configuration"),
    (re.compile(r"googleapis\.com|pagespeedonline", re.I), "performance service"),
    (re.compile(r"google\s+page\s?speed(\s+insights)?", re.I), "performance analysis"),
    (re.compile(r"page\s?speed(\s+insights)?|lighthouse", re.I), "performance analysis"),
]


@dataclass(frozen=True)
class ClassifiedError:
    code: str
    user_message: str
    is_transient: bool
    message: str = ""

    def to_response(self) -> Dict[str, str]:
        return {"error": self.user_message, "code": self.code}


def error_text(error: Any) -> str:
    if isinstance(error, BaseException):
        text = str(error)
        return text or error.__class__.__name__
    return str(error) if error is not None else ""


def sanitize_message(message: str) -> str:
    """Strip references to the third-party services backing the analysis."""
    sanitized = message
    for pattern, replacement in _REDACTIONS:
        sanitized = pattern.sub(replacement, sanitized)
    return sanitized


def _code_for(error: Any) -> str:
    pinned = getattr(error, "code", None)
    if isinstance(pinned, str) and pinned in ERROR_CODES:
        return pinned
    if isinstance(error, httpx.TimeoutException):
        return "TIMEOUT"
    if isinstance(error, httpx.TransportError):
        return "NETWORK_ERROR"

    lowered = error_text(error).lower()
    for code, markers in _CODE_RULES:
        if any(marker in lowered for marker in markers):
            return code
    return "UNKNOWN_ERROR"


def is_transient(error: Any) -> bool:
    """True for failures worth retrying: timeouts, connectivity, throttling, gateway errors."""
    if isinstance(error, (ConfigurationError, ParseError, UnparsableResponse)):
        return False
    if isinstance(error, (httpx.TimeoutException, httpx.TransportError)):
        return True
    if _code_for(error) == "TIMEOUT":
        return True
    lowered = error_text(error).lower()
    return any(marker in lowered for marker in _TRANSIENT_MARKERS)


def should_retry(error: Any, attempt: int, max_attempts: int = 3) -> bool:
    if attempt >= max_attempts:
        return False
    return is_transient(error)


def get_backoff_delay(attempt: int, base_delay: float = 1.0, max_delay: float = 30.0) -> float:
    """Exponential backoff in seconds: min(base * 2^attempt, cap)."""
    return min(base_delay * (2 ** attempt), max_delay)


def classify(error: Any) -> ClassifiedError:
    code = _code_for(error)
    sanitized = sanitize_message(error_text(error))
    if code == "UNKNOWN_ERROR":
        user_message = sanitized or USER_MESSAGES["UNKNOWN_ERROR"]
    else:
        user_message = USER_MESSAGES[code]
    return ClassifiedError(
        code=code,
        user_message=user_message,
        is_transient=is_transient(error),
        message=sanitized,
    )


def log_error(
    error: Any,
    context: str,
    logger: Optional[StructuredLogger] = None,
    **fields: Any,
) -> ClassifiedError:
    """Log the unredacted error for operators and return its sanitized classification."""
    classified = classify(error)
    log = logger or _get_default_logger()
    exc_info = error if isinstance(error, BaseException) else None
    log.error(
        context,
        exc_info=exc_info,
        error_code=classified.code,
        original_error=error_text(error),
        original_error_type=type(error).__name__,
        sanitized_message=classified.message,
        **fields,
    )
    return classified


def create_error_response(error: Any) -> Dict[str, str]:
    """Safe, vendor-agnostic error payload for API consumers."""
    return classify(error).to_response()
