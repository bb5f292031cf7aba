"""Error taxonomy for Content Canvas.

Failures fall into four groups:

- **validation** — a required input is missing (empty prompt, no selected
  template, no base image).  Raised before any external call and never logged
  as a system fault.
- **upstream failure** — the generation capability raised.  The failure reason
  is classified into a category with its own user-facing message.
- **empty result** — the call succeeded but produced no usable image.  This is
  retryable and kept distinct from a hard failure.
- **partial aggregate failure** — some sub-calls of a concurrent join failed.
  Never surfaced while at least one sub-call succeeded, so it has no exception
  type of its own.

Nothing is retried automatically; retry is always a manual resubmission.
"""

import logging
from enum import Enum

import httpx

logger = logging.getLogger(__name__)


class ErrorCategory(str, Enum):
    """Category attached to a failed session or request."""

    VALIDATION = "validation"
    INVALID_CREDENTIALS = "invalid_credentials"
    SAFETY_BLOCKED = "safety_blocked"
    QUOTA_EXCEEDED = "quota_exceeded"
    TIMEOUT = "timeout"
    NETWORK = "network"
    EMPTY_RESULT = "empty_result"
    UNKNOWN = "unknown"

    @property
    def user_message(self) -> str:
        """Default message shown to the user for this category."""
        return USER_MESSAGES[self]

    @property
    def http_status(self) -> int:
        """HTTP status used by the API when the error escapes a session."""
        return HTTP_STATUS[self]

    @property
    def retryable(self) -> bool:
        """Whether resubmitting the same request may succeed."""
        return self not in (ErrorCategory.VALIDATION, ErrorCategory.INVALID_CREDENTIALS)


USER_MESSAGES: dict[ErrorCategory, str] = {
    ErrorCategory.VALIDATION: "Some required input is missing.",
    ErrorCategory.INVALID_CREDENTIALS: (
        "The Gemini API key is invalid or missing. Please check your configuration."
    ),
    ErrorCategory.SAFETY_BLOCKED: (
        "Your request was blocked due to the safety policy. "
        "Please modify your prompt and try again."
    ),
    ErrorCategory.QUOTA_EXCEEDED: (
        "You have exceeded your API quota. Please check your Google AI Studio account."
    ),
    ErrorCategory.TIMEOUT: (
        "The request to the AI model timed out. Please try again in a few moments."
    ),
    ErrorCategory.NETWORK: (
        "A network error occurred. Please check your internet connection and try again."
    ),
    ErrorCategory.EMPTY_RESULT: "The model did not return an image. Try adjusting your prompt.",
    ErrorCategory.UNKNOWN: "An unexpected error occurred. Please try again.",
}

HTTP_STATUS: dict[ErrorCategory, int] = {
    ErrorCategory.VALIDATION: 400,
    ErrorCategory.INVALID_CREDENTIALS: 401,
    ErrorCategory.SAFETY_BLOCKED: 422,
    ErrorCategory.QUOTA_EXCEEDED: 429,
    ErrorCategory.TIMEOUT: 504,
    ErrorCategory.NETWORK: 502,
    ErrorCategory.EMPTY_RESULT: 422,
    ErrorCategory.UNKNOWN: 500,
}

# Checked in order; the first matching needle wins.
_MESSAGE_RULES: tuple[tuple[ErrorCategory, tuple[str, ...]], ...] = (
    (
        ErrorCategory.INVALID_CREDENTIALS,
        ("api key not valid", "api_key_invalid", "permission denied", "unauthenticated"),
    ),
    (ErrorCategory.SAFETY_BLOCKED, ("safety", "blocked")),
    (ErrorCategory.QUOTA_EXCEEDED, ("quota", "resource_exhausted", "429")),
    (ErrorCategory.TIMEOUT, ("timeout", "timed out", "deadline exceeded")),
    (ErrorCategory.NETWORK, ("failed to fetch", "connection", "network")),
)


class ContentCanvasError(Exception):
    """Base class for errors raised by Content Canvas components.

    The message is intended to be displayed directly to the user.
    """

    category: ErrorCategory = ErrorCategory.UNKNOWN

    def __init__(self, message: str | None = None, category: ErrorCategory | None = None):
        if category is not None:
            self.category = category
        self.message = message or self.category.user_message
        super().__init__(self.message)


class ValidationError(ContentCanvasError):
    """User-friendly validation error raised before any external call."""

    category = ErrorCategory.VALIDATION


class GenerationError(ContentCanvasError):
    """Classified failure of the external generation capability."""


class EmptyResultError(ContentCanvasError):
    """The external call succeeded but produced no usable image."""

    category = ErrorCategory.EMPTY_RESULT


class SessionBusyError(ContentCanvasError):
    """A submission arrived while the session already had a request in flight."""

    category = ErrorCategory.VALIDATION

    def __init__(self, mode: str):
        super().__init__(f"A {mode} request is already in progress.")
        self.mode = mode


class ProvidersNotConfiguredError(ContentCanvasError):
    """No stock photo provider has a credential configured."""

    category = ErrorCategory.INVALID_CREDENTIALS

    def __init__(self):
        super().__init__(
            "No stock photo provider is configured. Set a Pexels, Unsplash or Pixabay key."
        )


def classify_error(error: BaseException) -> ErrorCategory:
    """Map an arbitrary upstream exception onto an :class:`ErrorCategory`.

    Args:
        error: Exception raised by the generation capability or an HTTP client

    Returns:
        The matching category, or ``ErrorCategory.UNKNOWN``
    """
    if isinstance(error, ContentCanvasError):
        return error.category
    if isinstance(error, (TimeoutError, httpx.TimeoutException)):
        return ErrorCategory.TIMEOUT
    if isinstance(error, (ConnectionError, httpx.TransportError)):
        return ErrorCategory.NETWORK

    message = str(error).lower()
    for category, needles in _MESSAGE_RULES:
        if any(needle in message for needle in needles):
            return category
    return ErrorCategory.UNKNOWN


def to_canvas_error(error: BaseException, **context) -> ContentCanvasError:
    """Classify an upstream exception and log it with context.

    Args:
        error: The exception to convert
        **context: Extra fields included in the log line (source, prompt, ...)

    Returns:
        A :class:`ContentCanvasError` carrying the category and user message
    """
    if isinstance(error, ContentCanvasError):
        return error

    category = classify_error(error)
    logger.error(f"Upstream failure ({category.value}): {error} context={context}")
    return GenerationError(category=category)
