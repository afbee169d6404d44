import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

from funnel_builder.core.constants import DEFAULT_FALLBACK_RETRIES
from funnel_builder.core.exceptions import (
    AuthenticationFailureError,
    ComplianceBlockingError,
    GenerationCancelledError,
    GenerationFailedError,
    GenerationTimeoutError,
    IncompleteFunnelError,
    InvalidInputError,
    PrimaryExhaustedError,
)
from funnel_builder.repositories.funnel_repository import FunnelRepository
from funnel_builder.schemas.funnel import (
    FunnelStructure,
    GenerationOptions,
    GenerationOutcome,
)
from funnel_builder.services.compliance import (
    ComplianceValidator,
    PassthroughComplianceValidator,
)
from funnel_builder.services.funnel_repair import validate_and_repair
from funnel_builder.services.generation_backend import (
    GenerationBackend,
    raise_for_result,
)
from funnel_builder.services.generation_policy import (
    GenerationAttempt,
    GenerationPhase,
    GenerationState,
    next_transition,
    start,
)

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]
Clock = Callable[[], float]


class GenerationOrchestrator:
    """Drive a generation backend to a servable :class:`FunnelStructure`.

    Attempts are strictly sequential.  Each one is raced against
    ``options.timeout_ms``; failures are retried with exponential
    backoff (see :mod:`funnel_builder.services.generation_policy`) until
    the primary budget of ``1 + options.retries`` attempts is spent,
    after which the fallback backend gets ``fallback_retries + 1``
    attempts.  Authentication failures are never retried.

    ``sleep`` and ``clock`` are injectable so the policy can be tested
    without real delays.
    """

    def __init__(
        self,
        primary: GenerationBackend,
        fallback: Optional[GenerationBackend] = None,
        compliance: Optional[ComplianceValidator] = None,
        funnel_repo: Optional[FunnelRepository] = None,
        fallback_retries: int = DEFAULT_FALLBACK_RETRIES,
        sleep: Sleep = asyncio.sleep,
        clock: Clock = time.monotonic,
    ) -> None:
        self._primary = primary
        self._fallback = fallback
        self._compliance: ComplianceValidator = (
            compliance or PassthroughComplianceValidator()
        )
        self._funnel_repo = funnel_repo
        self._fallback_retries = max(0, fallback_retries)
        self._sleep = sleep
        self._clock = clock

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def generate(
        self,
        prompt: str,
        context: Optional[Dict[str, Any]] = None,
        options: Optional[GenerationOptions] = None,
    ) -> GenerationOutcome:
        """Generate, validate and optionally persist a funnel.

        Raises:
            InvalidInputError: Blank prompt or missing ``user_id``.
            AuthenticationFailureError: The backend rejected our credentials.
            GenerationCancelledError: ``options.deadline_ms`` elapsed.
            GenerationFailedError: Primary and fallback paths are exhausted.
        """
        options = options or GenerationOptions()
        prompt = (prompt or "").strip()
        if not prompt:
            raise InvalidInputError("Prompt is required")
        if not options.user_id:
            raise InvalidInputError("user_id is required")

        call_context: Dict[str, Any] = {
            **(context or {}),
            "user_id": options.user_id,
            "funnel_type_id": options.funnel_type_id,
        }

        started = self._clock()
        deadline = (
            started + options.deadline_ms / 1000 if options.deadline_ms else None
        )
        fallback_attempts = self._fallback_retries + 1 if self._fallback else 0

        transition = start(1 + options.retries)
        attempts_made = 0
        primary_exhausted: Optional[PrimaryExhaustedError] = None

        logger.info(
            "Funnel generation started: prompt_length=%d retries=%d timeout_ms=%d",
            len(prompt),
            options.retries,
            options.timeout_ms,
        )

        while True:
            attempt = transition.attempt
            backend = (
                self._primary
                if attempt.phase == GenerationPhase.primary
                else self._fallback
            )
            timeout_s = self._attempt_timeout(options.timeout_ms, deadline)

            attempts_made += 1
            attempt_started = self._clock()
            error: Optional[Exception] = None
            result: Optional[Tuple[FunnelStructure, bool, List[str]]] = None
            try:
                result = await asyncio.wait_for(
                    self._attempt(backend, prompt, call_context), timeout=timeout_s
                )
            except asyncio.TimeoutError:
                error = GenerationTimeoutError(
                    f"Timeout: generation exceeded {timeout_s:.1f} seconds"
                )
            except Exception as exc:
                error = exc

            transition = next_transition(attempt, error, fallback_attempts)
            self._log_transition(attempt, transition.state, attempt_started, error)

            if transition.state == GenerationState.success:
                funnel, repaired, warnings = result
                funnel = await self._persist(funnel, options)
                logger.info(
                    "Funnel generation succeeded after %d attempt(s) in %.0fms",
                    attempts_made,
                    (self._clock() - started) * 1000,
                )
                return GenerationOutcome(
                    funnel=funnel,
                    repaired=repaired,
                    warnings=warnings,
                    attempts=attempts_made,
                    used_fallback=attempt.phase == GenerationPhase.fallback,
                )

            if transition.state == GenerationState.failed:
                if isinstance(error, AuthenticationFailureError):
                    raise error
                raise GenerationFailedError(
                    f"Funnel generation failed after {attempts_made} attempt(s): {error}",
                    last_error=error,
                    primary_error=primary_exhausted,
                ) from error

            if transition.state == GenerationState.fallback_attempting:
                primary_exhausted = PrimaryExhaustedError(
                    f"Primary generation exhausted after {attempt.max_attempts} "
                    f"attempt(s): {error}"
                )
                logger.warning("%s; switching to fallback", primary_exhausted.detail)
                continue

            # GenerationState.retrying
            delay_s = transition.attempt.backoff_delay_ms / 1000
            if deadline is not None and self._clock() + delay_s >= deadline:
                raise GenerationCancelledError(
                    "Generation deadline would elapse during backoff; "
                    f"last error: {error}"
                )
            logger.info("Waiting %dms before retry", transition.attempt.backoff_delay_ms)
            await self._sleep(delay_s)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _attempt(
        self,
        backend: GenerationBackend,
        prompt: str,
        context: Dict[str, Any],
    ) -> Tuple[FunnelStructure, bool, List[str]]:
        """One backend call plus structural and compliance validation."""
        result = raise_for_result(await backend.generate(prompt, context))
        funnel = result.funnel
        if not funnel.id or not funnel.name:
            raise IncompleteFunnelError("Generated funnel is missing its id or name")

        repair = validate_and_repair(funnel)
        funnel, repaired = repair.funnel, repair.repaired

        report = await self._compliance.validate(funnel)
        blocking = report.blocking_issues
        if blocking:
            raise ComplianceBlockingError(
                "; ".join(issue.message for issue in blocking)
            )

        warnings = [issue.message for issue in report.issues]
        if report.corrected_content is not None:
            corrected = validate_and_repair(report.corrected_content)
            funnel = corrected.funnel
            repaired = repaired or corrected.repaired
        for warning in warnings:
            logger.warning("Compliance warning on funnel %s: %s", funnel.id, warning)

        return funnel, repaired, warnings

    def _attempt_timeout(self, timeout_ms: int, deadline: Optional[float]) -> float:
        timeout_s = timeout_ms / 1000
        if deadline is None:
            return timeout_s
        remaining = deadline - self._clock()
        if remaining <= 0:
            raise GenerationCancelledError(
                "Generation deadline elapsed before the next attempt"
            )
        return min(timeout_s, remaining)

    async def _persist(
        self, funnel: FunnelStructure, options: GenerationOptions
    ) -> FunnelStructure:
        if not options.save_to_library or self._funnel_repo is None:
            return funnel
        try:
            saved = await self._funnel_repo.save_structure(
                funnel, user_id=options.user_id, funnel_type_id=options.funnel_type_id
            )
            await self._funnel_repo.commit()
        except Exception:
            logger.exception("Saving generated funnel %s failed", funnel.id)
            await self._funnel_repo.rollback()
            raise
        return saved

    def _log_transition(
        self,
        attempt: GenerationAttempt,
        state: GenerationState,
        attempt_started: float,
        error: Optional[Exception],
    ) -> None:
        elapsed_ms = (self._clock() - attempt_started) * 1000
        if error is None:
            logger.info(
                "Generation %s attempt %d/%d -> %s in %.0fms",
                attempt.phase.value,
                attempt.attempt_number,
                attempt.max_attempts,
                state.value,
                elapsed_ms,
            )
            return
        logger.warning(
            "Generation %s attempt %d/%d -> %s in %.0fms: %s: %s",
            attempt.phase.value,
            attempt.attempt_number,
            attempt.max_attempts,
            state.value,
            elapsed_ms,
            type(error).__name__,
            error,
        )
