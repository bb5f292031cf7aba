"""Per-mode generation sessions and their explicit state machine.

Each mode view (template stage, final stage, direct generation, editor) owns one
:class:`GenerationSession`.  A session's state is exactly one of:

- :class:`Idle` — nothing submitted yet
- :class:`Pending` — one request in flight
- :class:`Succeeded` — the last request produced images
- :class:`Failed` — the last request failed, with an :class:`ErrorCategory`

A session never holds a pending flag together with an error, or images together
with an error.  At most one request is in flight per session: a submission that
arrives while pending raises :class:`SessionBusyError` and leaves the state
untouched; it is not queued.  Precondition failures move straight to
``Failed(validation)`` without calling the generation capability.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union

from .capability import GenerationCapability, GenerationRequest
from .errors import (
    ContentCanvasError,
    EmptyResultError,
    ErrorCategory,
    SessionBusyError,
    to_canvas_error,
)

logger = logging.getLogger(__name__)


class SessionMode(str, Enum):
    TEMPLATE = "template"
    FINAL = "final"
    DIRECT = "direct"
    EDIT = "edit"


@dataclass(frozen=True)
class Submission:
    """The inputs actually sent with a request."""

    prompt: str
    negative_prompt: str = ""
    aspect_ratio: str = "1:1"
    submitted_at: float = field(default_factory=time.time)


@dataclass(frozen=True)
class Idle:
    status = "idle"


@dataclass(frozen=True)
class Pending:
    submission: Submission
    status = "pending"


@dataclass(frozen=True)
class Succeeded:
    submission: Submission
    images: tuple[str, ...]
    status = "succeeded"


@dataclass(frozen=True)
class Failed:
    category: ErrorCategory
    message: str
    submission: Submission | None = None
    status = "failed"


SessionState = Union[Idle, Pending, Succeeded, Failed]

SuccessHook = Callable[[Submission, tuple[str, ...]], None]


class GenerationSession:
    """State machine wrapping one mode's calls to the generation capability.

    Attributes
    ----------
    mode : SessionMode
        Which mode view owns this session
    capability : GenerationCapability
        External generation service
    on_success : SuccessHook | None
        Side effect run after a successful call (history, recent prompts)
    state : SessionState
        Current state
    """

    def __init__(
        self,
        mode: SessionMode,
        capability: GenerationCapability,
        on_success: SuccessHook | None = None,
    ) -> None:
        self.mode = mode
        self.capability = capability
        self.on_success = on_success
        self.state: SessionState = Idle()

    @property
    def is_pending(self) -> bool:
        return isinstance(self.state, Pending)

    @property
    def images(self) -> tuple[str, ...]:
        """Images of the last successful request, empty otherwise."""
        if isinstance(self.state, Succeeded):
            return self.state.images
        return ()

    def ensure_not_pending(self) -> None:
        """Refuse a new submission while a request is in flight.

        Raises:
            SessionBusyError: If the session is pending
        """
        if self.is_pending:
            logger.debug(f"Rejected {self.mode.value} submission while pending")
            raise SessionBusyError(self.mode.value)

    async def submit(
        self,
        submission: Submission,
        build_request: Callable[[], GenerationRequest],
        checks: Iterable[tuple[bool, str]] = (),
    ) -> SessionState:
        """Validate, dispatch and record one request.

        Args:
            submission: Prompt, negative prompt and aspect ratio being submitted
            build_request: Called only after all checks pass
            checks: Extra preconditions as (ok, message) pairs, evaluated in order
                after the non-empty prompt check

        Returns:
            The resulting state (``Succeeded`` or ``Failed``)

        Raises:
            SessionBusyError: If a request is already in flight
        """
        self.ensure_not_pending()

        failure = self._check_preconditions(submission, checks)
        if failure is not None:
            self.state = Failed(ErrorCategory.VALIDATION, failure, submission)
            return self.state

        self.state = Pending(submission)
        try:
            request = build_request()
            images = tuple(await self.capability.generate(request))
            if not images:
                raise EmptyResultError()
        except ContentCanvasError as e:
            self.state = Failed(e.category, e.message, submission)
            return self.state
        except Exception as e:
            error = to_canvas_error(e, source=f"{self.mode.value}_generation", prompt=submission.prompt)
            self.state = Failed(error.category, error.message, submission)
            return self.state

        self.state = Succeeded(submission, images)
        logger.info(f"{self.mode.value} generation succeeded with {len(images)} image(s)")
        if self.on_success is not None:
            # History bookkeeping never undoes a delivered result.
            try:
                self.on_success(submission, images)
            except Exception as e:
                logger.error(f"Post-generation hook failed for {self.mode.value}: {e}", exc_info=True)
        return self.state

    def reset(self) -> None:
        self.ensure_not_pending()
        self.state = Idle()

    @staticmethod
    def _check_preconditions(submission: Submission, checks: Iterable[tuple[bool, str]]) -> str | None:
        if not submission.prompt or not submission.prompt.strip():
            return "A prompt is required."
        for ok, message in checks:
            if not ok:
                return message
        return None

    def snapshot(self, include_images: bool = True) -> dict[str, Any]:
        """JSON-friendly view of the session for the API layer."""
        state = self.state
        data: dict[str, Any] = {"mode": self.mode.value, "status": state.status}

        submission = getattr(state, "submission", None)
        if submission is not None:
            data["prompt"] = submission.prompt
            data["negative_prompt"] = submission.negative_prompt
            data["aspect_ratio"] = submission.aspect_ratio

        if isinstance(state, Succeeded) and include_images:
            data["images"] = list(state.images)
        if isinstance(state, Failed):
            data["error"] = {
                "category": state.category.value,
                "message": state.message,
                "retryable": state.category.retryable,
            }
        return data
