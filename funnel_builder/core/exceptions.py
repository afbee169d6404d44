from typing import Optional


class FunnelBuilderError(Exception):
    """Base class for all funnel-builder domain exceptions.

    Every custom exception in this module inherits from here so that a
    single ``except FunnelBuilderError`` clause can catch any domain
    error.
    """

    def __init__(self, detail: str = "An error occurred"):
        self.detail = detail
        super().__init__(detail)


class InvalidInputError(FunnelBuilderError):
    """Raised when a caller passes structurally malformed input."""

    def __init__(self, detail: str = "Invalid input"):
        super().__init__(detail)


class DuplicateRuleNameError(FunnelBuilderError):
    """Raised when a scoring rule name is already taken.

    The score breakdown is keyed by rule name, so names must be unique.
    """

    def __init__(self, detail: str = "A scoring rule with this name already exists"):
        super().__init__(detail)


class ScoringRuleNotFoundError(FunnelBuilderError):
    """Raised when a requested scoring rule does not exist."""

    def __init__(self, detail: str = "Scoring rule not found"):
        super().__init__(detail)


class LeadNotFoundError(FunnelBuilderError):
    """Raised when a requested lead does not exist."""

    def __init__(self, detail: str = "Lead not found"):
        super().__init__(detail)


class FunnelNotFoundError(FunnelBuilderError):
    """Raised when a requested funnel does not exist or is not shared."""

    def __init__(self, detail: str = "Funnel not found"):
        super().__init__(detail)


class UnrecoverableFunnelError(FunnelBuilderError):
    """Raised when the repair pass receives something it cannot repair."""

    def __init__(self, detail: str = "Funnel structure cannot be repaired"):
        super().__init__(detail)


class FeatureAccessDeniedError(FunnelBuilderError):
    """Raised when the active access policy blocks a metered feature."""

    def __init__(self, detail: str = "Generation limit reached for this period"):
        super().__init__(detail)


# ---------------------------------------------------------------------------
# Generation
# ---------------------------------------------------------------------------


class GenerationError(FunnelBuilderError):
    """Base class for failures raised while generating a funnel."""

    def __init__(self, detail: str = "Funnel generation error"):
        super().__init__(detail)


class GenerationTimeoutError(GenerationError):
    """A single generation attempt exceeded its allotted time."""

    def __init__(self, detail: str = "Generation attempt timed out"):
        super().__init__(detail)


class GenerationCancelledError(GenerationTimeoutError):
    """The caller's overall deadline elapsed before generation finished."""

    def __init__(self, detail: str = "Generation deadline exceeded"):
        super().__init__(detail)


class AuthenticationFailureError(GenerationError):
    """The generation backend rejected our credentials. Never retried."""

    def __init__(self, detail: str = "Generation backend authentication failed"):
        super().__init__(detail)


class ComplianceBlockingError(GenerationError):
    """A generated funnel carries error-severity compliance issues."""

    def __init__(self, detail: str = "Generated content failed compliance validation"):
        super().__init__(detail)


class GenerationBackendError(GenerationError):
    """The backend failed, returned ``success=false`` or an unreadable body."""

    def __init__(self, detail: str = "Generation backend error"):
        super().__init__(detail)


class IncompleteFunnelError(GenerationError):
    """The backend returned a funnel without an id or name."""

    def __init__(self, detail: str = "Generated funnel is incomplete"):
        super().__init__(detail)


class PrimaryExhaustedError(GenerationError):
    """Internal marker: the primary path is done, the fallback takes over."""

    def __init__(self, detail: str = "Primary generation attempts exhausted"):
        super().__init__(detail)


class GenerationFailedError(GenerationError):
    """Both the primary and the fallback path failed.

    ``last_error`` keeps the underlying exception that ended the run;
    ``primary_error`` is set when the fallback path ran and failed too.
    """

    def __init__(
        self,
        detail: str = "Funnel generation failed after all attempts",
        last_error: Optional[BaseException] = None,
        primary_error: Optional[PrimaryExhaustedError] = None,
    ):
        self.last_error = last_error
        self.primary_error = primary_error
        super().__init__(detail)
