"""Shared error types for remote generation services."""

from enum import Enum
from typing import Optional

# Substrings that mark a payment-required / quota-exhausted failure
QUOTA_ERROR_TOKENS = ("payment required", "payment_required", "credits", "402")


class ErrorKind(str, Enum):
    """Failure class, set where the failure is detected."""

    RATE_LIMITED = "rate_limited"
    QUOTA_EXHAUSTED = "quota_exhausted"
    MALFORMED = "malformed"
    MISCONFIGURED = "misconfigured"
    FATAL = "fatal"


# Failures that are raised immediately, without retrying
FINAL_KINDS = (ErrorKind.QUOTA_EXHAUSTED, ErrorKind.MALFORMED, ErrorKind.MISCONFIGURED)


class SceneReelError(Exception):
    """Base error for scenereel services."""

    def __init__(
        self,
        message: str,
        kind: ErrorKind = ErrorKind.FATAL,
        status_code: Optional[int] = None,
    ):
        super().__init__(message)
        self.kind = kind
        self.status_code = status_code

    @property
    def is_retryable(self) -> bool:
        """Failures in FINAL_KINDS never get better on retry."""
        return self.kind not in FINAL_KINDS


def classify_error_message(message: str) -> ErrorKind:
    """Classify a free-form error message.

    Quota/payment wins over rate limiting when a message mentions both.
    Anything unrecognised is fatal.
    """
    text = message.lower()
    if any(token in text for token in QUOTA_ERROR_TOKENS):
        return ErrorKind.QUOTA_EXHAUSTED
    if "429" in text or ("rate" in text and "limit" in text):
        return ErrorKind.RATE_LIMITED
    return ErrorKind.FATAL


def kind_from_status(status_code: int, message: str = "") -> ErrorKind:
    """Map an HTTP error status (and its body) to an error kind."""
    if status_code == 402:
        return ErrorKind.QUOTA_EXHAUSTED
    if status_code == 429:
        return ErrorKind.RATE_LIMITED
    # Gateways sometimes wrap quota/rate errors in a generic status
    return classify_error_message(message)
