# src/hotkeys/error_classifier.py
"""Translate raw broker errors into user-facing messages."""
import re
from dataclasses import dataclass

from src.execution.errors import BrokerError

GENERIC_FAILURE_PREFIX = "Order failed"
MAX_RAW_MESSAGE_CHARS = 100


@dataclass(frozen=True)
class ErrorRule:
    """Regex pattern (case-insensitive) and the message it maps to."""

    pattern: str
    message: str

    def matches(self, raw: str) -> bool:
        return re.search(self.pattern, raw, re.IGNORECASE) is not None


# First match wins. Alpaca codes such as 40310000 contain "403", so the
# specific wording rules come before the status code rules.
ERROR_RULES: list[ErrorRule] = [
    ErrorRule(
        r"wash trade",
        "Wash trade blocked: an opposite-side order for this symbol is still open on this account.",
    ),
    ErrorRule(
        r"insufficient buying power",
        "Insufficient buying power for this order.",
    ),
    ErrorRule(
        r"insufficient (qty|quantity)|not enough shares",
        "Insufficient shares available to sell.",
    ),
    ErrorRule(
        r"client_order_id must be unique|duplicate client order",
        "Order already submitted under this client order ID. Check the account's orders.",
    ),
    ErrorRule(
        r"\b401\b|unauthorized|not configured",
        "Authentication failed. Please check your API credentials.",
    ),
    ErrorRule(
        r"\b403\b|forbidden|permission",
        "Access forbidden. Please verify your account permissions.",
    ),
    ErrorRule(r"\b404\b|not found", "Resource not found."),
    ErrorRule(r"\b422\b|unprocessable", "Invalid request data. Please check your input."),
    ErrorRule(r"\b429\b|rate limit|too many requests", "Rate limit exceeded. Please try again later."),
    ErrorRule(r"\b503\b|service unavailable", "Service unavailable. Please try again later."),
    ErrorRule(r"\b500\b|internal server error", "Server error. Please try again later."),
    ErrorRule(
        r"timed? ?out",
        "Connection timeout. Check the account's orders before retrying.",
    ),
    ErrorRule(
        r"connection|unable to connect|name resolution|network",
        "Network error. Please check your connection and try again.",
    ),
]


def classify_broker_error(raw: str | None, rules: list[ErrorRule] | None = None) -> str:
    """Map raw broker error text to a friendlier message.

    Unrecognized text is truncated and prefixed with a generic marker.
    Never raises.

    Args:
        raw: Error text from the broker or transport.
        rules: Rule table to use. Defaults to ERROR_RULES.

    Returns:
        User-facing error message.
    """
    text = (raw or "").strip()
    if not text:
        return f"{GENERIC_FAILURE_PREFIX}: Unknown error"

    for rule in ERROR_RULES if rules is None else rules:
        if rule.matches(text):
            return rule.message

    return f"{GENERIC_FAILURE_PREFIX}: {text[:MAX_RAW_MESSAGE_CHARS]}"


def describe_exception(error: BaseException) -> str:
    """Render an exception as raw text for classify_broker_error."""
    if isinstance(error, BrokerError):
        return str(error)
    message = str(error).strip()
    name = type(error).__name__
    return f"{name}: {message}" if message else name
