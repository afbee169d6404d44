import pytest

from funnel_builder.core.exceptions import (
    AuthenticationFailureError,
    ComplianceBlockingError,
    GenerationBackendError,
    GenerationTimeoutError,
)
from funnel_builder.services.generation_policy import (
    TERMINAL_STATES,
    GenerationPhase,
    GenerationState,
    backoff_delay_ms,
    is_authentication_error,
    next_transition,
    start,
)


class TestBackoff:
    def test_doubles_from_one_second(self):
        assert [backoff_delay_ms(n) for n in (1, 2, 3, 4)] == [1000, 2000, 4000, 8000]

    def test_rejects_attempt_zero(self):
        with pytest.raises(ValueError):
            backoff_delay_ms(0)


class TestAuthClassification:
    def test_typed_error(self):
        assert is_authentication_error(AuthenticationFailureError()) is True

    @pytest.mark.parametrize(
        "error",
        [
            ComplianceBlockingError("Unauthorized use of a trademark"),
            GenerationBackendError("authentication service slow"),
            RuntimeError("Invalid API key"),
        ],
    )
    def test_message_text_is_not_classified(self, error):
        assert is_authentication_error(error) is False

    def test_compliance_error_mentioning_auth_is_retried(self):
        attempt = start(2).attempt

        transition = next_transition(
            attempt, ComplianceBlockingError("Unauthorized use of a trademark")
        )

        assert transition.state == GenerationState.retrying

    def test_plain_error(self):
        assert is_authentication_error(GenerationTimeoutError()) is False


class TestTransitions:
    """Walk the state machine without any I/O."""

    def test_start_requires_an_attempt(self):
        with pytest.raises(ValueError):
            start(0)

    def test_success(self):
        attempt = start(3).attempt
        assert next_transition(attempt, None).state == GenerationState.success

    def test_retry_increments_and_backs_off(self):
        attempt = start(3).attempt

        transition = next_transition(attempt, GenerationTimeoutError())

        assert transition.state == GenerationState.retrying
        assert transition.attempt.attempt_number == 2
        assert transition.attempt.backoff_delay_ms == 1000
        assert "GenerationTimeoutError" in transition.attempt.last_error

    def test_primary_attempts_are_bounded(self):
        transition = start(3)
        states = []
        while True:
            transition = next_transition(transition.attempt, GenerationBackendError())
            states.append(transition.state)
            if transition.state != GenerationState.retrying:
                break

        assert states == [
            GenerationState.retrying,
            GenerationState.retrying,
            GenerationState.failed,
        ]

    def test_backoff_grows_between_retries(self):
        transition = start(4)
        delays = []
        for _ in range(3):
            transition = next_transition(transition.attempt, GenerationBackendError())
            delays.append(transition.attempt.backoff_delay_ms)
        assert delays == sorted(delays)
        assert delays == [1000, 2000, 4000]

    def test_auth_error_fails_immediately(self):
        attempt = start(3).attempt

        transition = next_transition(attempt, AuthenticationFailureError(), 1)

        assert transition.state == GenerationState.failed
        assert transition.attempt.attempt_number == 1

    def test_exhausted_primary_switches_to_fallback(self):
        attempt = start(1).attempt

        transition = next_transition(attempt, GenerationBackendError("boom"), 1)

        assert transition.state == GenerationState.fallback_attempting
        assert transition.attempt.phase == GenerationPhase.fallback
        assert transition.attempt.attempt_number == 1
        assert transition.attempt.max_attempts == 1

    def test_exhausted_fallback_fails(self):
        fallback = next_transition(start(1).attempt, GenerationBackendError(), 1).attempt

        transition = next_transition(fallback, GenerationBackendError(), 1)

        assert transition.state == GenerationState.failed
        assert transition.state in TERMINAL_STATES
