"""Pure retry / fallback policy for funnel generation.

The orchestrator asks :func:`next_transition` what to do after every
attempt.  Nothing here sleeps, performs I/O or reads a clock, so the
policy can be exercised directly in tests.

States::

    idle -> attempting(1) -> success
                          -> retrying(n+1)        (retryable error, budget left)
                          -> fallback_attempting  (primary budget exhausted)
                          -> failed               (auth error, or fallback exhausted)
"""

from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional

from funnel_builder.core.constants import BACKOFF_BASE_MS
from funnel_builder.core.exceptions import AuthenticationFailureError


class GenerationState(str, Enum):
    idle = "idle"
    attempting = "attempting"
    retrying = "retrying"
    fallback_attempting = "fallback_attempting"
    success = "success"
    failed = "failed"


class GenerationPhase(str, Enum):
    primary = "primary"
    fallback = "fallback"


TERMINAL_STATES = frozenset({GenerationState.success, GenerationState.failed})


@dataclass(frozen=True)
class GenerationAttempt:
    """Ephemeral bookkeeping for one orchestrated call."""

    attempt_number: int
    max_attempts: int
    phase: GenerationPhase = GenerationPhase.primary
    last_error: Optional[str] = None
    backoff_delay_ms: int = 0


@dataclass(frozen=True)
class Transition:
    state: GenerationState
    attempt: GenerationAttempt


def backoff_delay_ms(attempt_number: int) -> int:
    """Delay to wait after attempt *attempt_number* fails: 1 s, 2 s, 4 s, ..."""
    if attempt_number < 1:
        raise ValueError("attempt_number starts at 1")
    return (2 ** (attempt_number - 1)) * BACKOFF_BASE_MS


def is_authentication_error(error: BaseException) -> bool:
    # Credential failures are typed where backend responses are read.
    return isinstance(error, AuthenticationFailureError)


def start(max_attempts: int) -> Transition:
    """Leave ``idle``: first primary attempt."""
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")
    return Transition(
        GenerationState.attempting,
        GenerationAttempt(attempt_number=1, max_attempts=max_attempts),
    )


def next_transition(
    attempt: GenerationAttempt,
    error: Optional[BaseException],
    fallback_attempts: int = 0,
) -> Transition:
    """Decide what follows *attempt*.

    *error* is ``None`` on success.  *fallback_attempts* is the attempt
    budget of the fallback path; ``0`` means there is no fallback.
    """
    if error is None:
        return Transition(GenerationState.success, attempt)

    failed = replace(attempt, last_error=f"{type(error).__name__}: {error}")

    if is_authentication_error(error):
        return Transition(GenerationState.failed, failed)

    if attempt.attempt_number < attempt.max_attempts:
        return Transition(
            GenerationState.retrying,
            replace(
                failed,
                attempt_number=attempt.attempt_number + 1,
                backoff_delay_ms=backoff_delay_ms(attempt.attempt_number),
            ),
        )

    if attempt.phase == GenerationPhase.primary and fallback_attempts > 0:
        return Transition(
            GenerationState.fallback_attempting,
            GenerationAttempt(
                attempt_number=1,
                max_attempts=fallback_attempts,
                phase=GenerationPhase.fallback,
                last_error=failed.last_error,
            ),
        )

    return Transition(GenerationState.failed, failed)
