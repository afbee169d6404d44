import asyncio
from typing import Any, Dict, List, Optional
from unittest.mock import AsyncMock

import pytest

from funnel_builder.core.exceptions import (
    AuthenticationFailureError,
    GenerationBackendError,
    GenerationCancelledError,
    GenerationFailedError,
    GenerationTimeoutError,
    InvalidInputError,
)
from funnel_builder.schemas.common import IssueSeverity, StepType
from funnel_builder.schemas.funnel import (
    BackendResult,
    ComplianceIssue,
    ComplianceReport,
    FunnelStep,
    FunnelStructure,
    GenerationOptions,
)
from funnel_builder.services.compliance import PhraseComplianceValidator
from funnel_builder.services.generation_orchestrator import GenerationOrchestrator


def _funnel(name: str = "Solar Quotes", orders=(1, 2)) -> FunnelStructure:
    return FunnelStructure(
        id="gen-1",
        name=name,
        steps=[
            FunnelStep(order=o, type=StepType.info, title=f"Step {o}") for o in orders
        ],
    )


class ScriptedBackend:
    """Replays a list of outcomes: a funnel, a raw ``BackendResult``, an
    exception, or ``"hang"``."""

    def __init__(self, outcomes: List[Any]):
        self._outcomes = list(outcomes)
        self.calls: List[Dict[str, Any]] = []

    async def generate(self, prompt: str, context: Dict[str, Any]) -> BackendResult:
        self.calls.append({"prompt": prompt, "context": dict(context)})
        outcome = self._outcomes.pop(0) if len(self._outcomes) > 1 else self._outcomes[0]
        if outcome == "hang":
            await asyncio.sleep(10)
        if isinstance(outcome, Exception):
            raise outcome
        if isinstance(outcome, BackendResult):
            return outcome
        return BackendResult(success=True, funnel=outcome)


class FakeClock:
    def __init__(self, start: float = 100.0):
        self.now = start

    def __call__(self) -> float:
        return self.now


def _options(**overrides) -> GenerationOptions:
    values = {"user_id": "0f1d3c8e-3a67-4a43-a5f6-0d9b7d2c4b11", "save_to_library": False}
    values.update(overrides)
    return GenerationOptions(**values)


def _orchestrator(primary, fallback=None, **kwargs) -> GenerationOrchestrator:
    kwargs.setdefault("sleep", AsyncMock())
    return GenerationOrchestrator(primary=primary, fallback=fallback, **kwargs)


class TestHappyPath:
    @pytest.mark.asyncio
    async def test_first_attempt_succeeds(self):
        primary = ScriptedBackend([_funnel()])
        orchestrator = _orchestrator(primary)

        outcome = await orchestrator.generate("Solar leads", options=_options())

        assert outcome.attempts == 1
        assert outcome.used_fallback is False
        assert outcome.repaired is False
        assert outcome.funnel.name == "Solar Quotes"

    @pytest.mark.asyncio
    async def test_context_carries_user_and_type(self):
        primary = ScriptedBackend([_funnel()])

        await _orchestrator(primary).generate(
            "  Solar leads ",
            context={"industry": "energy"},
            options=_options(funnel_type_id="quiz"),
        )

        call = primary.calls[0]
        assert call["prompt"] == "Solar leads"
        assert call["context"]["industry"] == "energy"
        assert call["context"]["funnel_type_id"] == "quiz"
        assert call["context"]["user_id"] == _options().user_id

    @pytest.mark.asyncio
    async def test_result_is_repaired(self):
        primary = ScriptedBackend([_funnel(orders=(3, 7))])

        outcome = await _orchestrator(primary).generate("x", options=_options())

        assert outcome.repaired is True
        assert [s.order for s in outcome.funnel.steps] == [1, 2]

    @pytest.mark.asyncio
    async def test_empty_result_gets_default_step(self):
        primary = ScriptedBackend([_funnel(orders=())])

        outcome = await _orchestrator(primary).generate("x", options=_options())

        assert len(outcome.funnel.steps) == 1
        assert outcome.funnel.steps[0].type == StepType.lead_capture


class TestRetries:
    @pytest.mark.asyncio
    async def test_always_timing_out_primary_then_fallback(self):
        primary = ScriptedBackend([GenerationTimeoutError()])
        fallback = ScriptedBackend([GenerationBackendError("fallback down")])
        sleep = AsyncMock()
        orchestrator = _orchestrator(primary, fallback, sleep=sleep)

        with pytest.raises(GenerationFailedError) as exc_info:
            await orchestrator.generate("x", options=_options(retries=2))

        assert len(primary.calls) == 3
        assert len(fallback.calls) == 1
        assert "fallback down" in str(exc_info.value)
        assert isinstance(exc_info.value.last_error, GenerationBackendError)
        assert exc_info.value.primary_error is not None
        assert [c.args[0] for c in sleep.await_args_list] == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_recovers_on_retry(self):
        primary = ScriptedBackend([GenerationBackendError("flaky"), _funnel()])

        outcome = await _orchestrator(primary).generate("x", options=_options())

        assert outcome.attempts == 2
        assert len(primary.calls) == 2

    @pytest.mark.asyncio
    async def test_fallback_success(self):
        primary = ScriptedBackend([GenerationBackendError()])
        fallback = ScriptedBackend([_funnel(name="Simple")])

        outcome = await _orchestrator(primary, fallback).generate(
            "x", options=_options(retries=1)
        )

        assert outcome.used_fallback is True
        assert outcome.attempts == 3
        assert outcome.funnel.name == "Simple"

    @pytest.mark.asyncio
    async def test_fallback_retries_are_configurable(self):
        primary = ScriptedBackend([GenerationBackendError()])
        fallback = ScriptedBackend([GenerationBackendError()])

        with pytest.raises(GenerationFailedError):
            await _orchestrator(primary, fallback, fallback_retries=2).generate(
                "x", options=_options(retries=0)
            )

        assert len(primary.calls) == 1
        assert len(fallback.calls) == 3

    @pytest.mark.asyncio
    async def test_no_fallback_configured(self):
        primary = ScriptedBackend([GenerationBackendError("nope")])

        with pytest.raises(GenerationFailedError):
            await _orchestrator(primary).generate("x", options=_options(retries=1))

        assert len(primary.calls) == 2

    @pytest.mark.asyncio
    async def test_hanging_attempt_is_timed_out(self):
        primary = ScriptedBackend(["hang"])

        with pytest.raises(GenerationFailedError) as exc_info:
            await _orchestrator(primary).generate(
                "x", options=_options(retries=0, timeout_ms=20)
            )

        assert isinstance(exc_info.value.last_error, GenerationTimeoutError)

    @pytest.mark.asyncio
    async def test_incomplete_funnel_is_retried(self):
        primary = ScriptedBackend([FunnelStructure(id="x"), _funnel()])

        outcome = await _orchestrator(primary).generate("x", options=_options())

        assert outcome.attempts == 2


class TestAuthentication:
    @pytest.mark.asyncio
    async def test_auth_failure_is_not_retried(self):
        primary = ScriptedBackend([AuthenticationFailureError("bad key")])
        fallback = ScriptedBackend([_funnel()])
        sleep = AsyncMock()

        with pytest.raises(AuthenticationFailureError):
            await _orchestrator(primary, fallback, sleep=sleep).generate(
                "x", options=_options(retries=3)
            )

        assert len(primary.calls) == 1
        assert fallback.calls == []
        sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unsuccessful_result_with_auth_error_is_not_retried(self):
        primary = ScriptedBackend([BackendResult(success=False, error="unauthorized")])
        fallback = ScriptedBackend([_funnel()])

        with pytest.raises(AuthenticationFailureError):
            await _orchestrator(primary, fallback).generate(
                "x", options=_options(retries=2)
            )

        assert len(primary.calls) == 1
        assert fallback.calls == []

    @pytest.mark.asyncio
    async def test_compliance_issue_mentioning_auth_is_retried(self):
        trademark = ComplianceReport(
            is_compliant=False,
            issues=[
                ComplianceIssue(
                    severity=IssueSeverity.error,
                    message="Unauthorized use of a trademark",
                )
            ],
        )
        primary = ScriptedBackend([_funnel()])

        outcome = await _orchestrator(
            primary,
            compliance=StubCompliance([trademark, ComplianceReport(is_compliant=True)]),
        ).generate("x", options=_options())

        assert outcome.attempts == 2
        assert len(primary.calls) == 2


class TestUnsuccessfulResult:
    @pytest.mark.asyncio
    async def test_funnel_from_failed_result_is_not_served(self):
        primary = ScriptedBackend(
            [
                BackendResult(success=False, error="quota exceeded", funnel=_funnel()),
                _funnel(name="Second try"),
            ]
        )

        outcome = await _orchestrator(primary).generate("x", options=_options())

        assert outcome.attempts == 2
        assert outcome.funnel.name == "Second try"

    @pytest.mark.asyncio
    async def test_backend_message_surfaces_in_failure(self):
        primary = ScriptedBackend([BackendResult(success=False, error="quota exceeded")])

        with pytest.raises(GenerationFailedError) as exc_info:
            await _orchestrator(primary).generate("x", options=_options(retries=1))

        assert len(primary.calls) == 2
        assert "quota exceeded" in str(exc_info.value)
        assert isinstance(exc_info.value.last_error, GenerationBackendError)

    @pytest.mark.asyncio
    async def test_success_without_funnel_is_retried(self):
        primary = ScriptedBackend([BackendResult(success=True), _funnel()])

        outcome = await _orchestrator(primary).generate("x", options=_options())

        assert outcome.attempts == 2


class StubCompliance:
    def __init__(self, reports: List[ComplianceReport]):
        self._reports = list(reports)

    async def validate(self, funnel: FunnelStructure) -> ComplianceReport:
        return self._reports.pop(0)


class TestCompliance:
    @pytest.mark.asyncio
    async def test_blocking_issue_forces_retry(self):
        blocking = ComplianceReport(
            is_compliant=False,
            issues=[ComplianceIssue(severity=IssueSeverity.error, message="no")],
        )
        clean = ComplianceReport(is_compliant=True)
        primary = ScriptedBackend([_funnel()])

        outcome = await _orchestrator(
            primary, compliance=StubCompliance([blocking, clean])
        ).generate("x", options=_options())

        assert outcome.attempts == 2
        assert outcome.warnings == []

    @pytest.mark.asyncio
    async def test_always_blocked_fails(self):
        primary = ScriptedBackend([_funnel(name="Guaranteed results for you")])

        with pytest.raises(GenerationFailedError):
            await _orchestrator(
                primary, compliance=PhraseComplianceValidator()
            ).generate("x", options=_options(retries=1))

        assert len(primary.calls) == 2

    @pytest.mark.asyncio
    async def test_warnings_surface_with_corrected_copy(self):
        primary = ScriptedBackend([_funnel(name="Go solar!!! Today!")])

        outcome = await _orchestrator(
            primary, compliance=PhraseComplianceValidator()
        ).generate("x", options=_options())

        assert outcome.attempts == 1
        assert len(outcome.warnings) == 1
        assert "exclamation" in outcome.warnings[0]
        assert outcome.funnel.name == "Go solar. Today!"


class TestDeadline:
    @pytest.mark.asyncio
    async def test_deadline_during_backoff_cancels(self):
        clock = FakeClock()
        primary = ScriptedBackend([GenerationBackendError()])
        sleep = AsyncMock()

        with pytest.raises(GenerationCancelledError):
            await _orchestrator(primary, sleep=sleep, clock=clock).generate(
                "x", options=_options(retries=2, deadline_ms=500)
            )

        assert len(primary.calls) == 1
        sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_deadline_already_elapsed_before_next_attempt(self):
        clock = FakeClock()

        async def advance(seconds: float) -> None:
            clock.now += seconds + 5

        primary = ScriptedBackend([GenerationBackendError()])

        with pytest.raises(GenerationCancelledError):
            await _orchestrator(primary, sleep=advance, clock=clock).generate(
                "x", options=_options(retries=2, deadline_ms=3_000)
            )

        assert len(primary.calls) == 1


class TestInputValidation:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("prompt", ["", "   ", None])
    async def test_blank_prompt(self, prompt: Optional[str]):
        primary = ScriptedBackend([_funnel()])

        with pytest.raises(InvalidInputError):
            await _orchestrator(primary).generate(prompt, options=_options())

        assert primary.calls == []

    @pytest.mark.asyncio
    async def test_missing_user(self):
        with pytest.raises(InvalidInputError):
            await _orchestrator(ScriptedBackend([_funnel()])).generate(
                "x", options=GenerationOptions()
            )


class TestPersistence:
    @pytest.mark.asyncio
    async def test_saved_copy_is_returned(self):
        saved = _funnel().model_copy(update={"id": "db-id", "share_token": "tok"})
        repo = AsyncMock()
        repo.save_structure = AsyncMock(return_value=saved)
        repo.commit = AsyncMock()

        outcome = await _orchestrator(
            ScriptedBackend([_funnel()]), funnel_repo=repo
        ).generate("x", options=_options(save_to_library=True, funnel_type_id="quiz"))

        assert outcome.funnel.share_token == "tok"
        repo.save_structure.assert_awaited_once()
        assert repo.save_structure.await_args.kwargs["funnel_type_id"] == "quiz"
        repo.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_failed_save_rolls_back(self):
        repo = AsyncMock()
        repo.save_structure = AsyncMock(side_effect=RuntimeError("db down"))

        with pytest.raises(RuntimeError):
            await _orchestrator(ScriptedBackend([_funnel()]), funnel_repo=repo).generate(
                "x", options=_options(save_to_library=True)
            )

        repo.rollback.assert_awaited_once()
        repo.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_not_saved_when_disabled(self):
        repo = AsyncMock()

        await _orchestrator(ScriptedBackend([_funnel()]), funnel_repo=repo).generate(
            "x", options=_options(save_to_library=False)
        )

        repo.save_structure.assert_not_awaited()
