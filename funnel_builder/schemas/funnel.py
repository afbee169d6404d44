"""Funnel structure, generation and compliance schemas."""

from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from funnel_builder.core.constants import (
    DEFAULT_GENERATION_RETRIES,
    DEFAULT_GENERATION_TIMEOUT_MS,
)
from funnel_builder.schemas.common import IssueSeverity, StepType


# ---------------------------------------------------------------------------
# Funnel structure
# ---------------------------------------------------------------------------


class FunnelStep(BaseModel):
    """One screen of a funnel.

    ``order`` is not constrained here: generated payloads may carry gaps
    or duplicates, which the repair pass normalises to ``1..N``.
    """

    model_config = ConfigDict(populate_by_name=True)

    order: int
    type: StepType
    title: str
    description: Optional[str] = None
    fields_config: List[Dict[str, Any]] = Field(default_factory=list)
    settings: Dict[str, Any] = Field(default_factory=dict)


class FunnelStructure(BaseModel):
    id: Optional[str] = None
    name: Optional[str] = None
    description: Optional[str] = None
    share_token: Optional[str] = None
    steps: List[FunnelStep] = Field(default_factory=list)
    settings: Dict[str, Any] = Field(default_factory=dict)


class RepairResult(BaseModel):
    repaired: bool
    funnel: FunnelStructure


# ---------------------------------------------------------------------------
# Backend / compliance contracts
# ---------------------------------------------------------------------------


class BackendResult(BaseModel):
    """Response body of a generation backend."""

    success: bool
    funnel: Optional[FunnelStructure] = None
    error: Optional[str] = None


class ComplianceIssue(BaseModel):
    severity: IssueSeverity
    message: str
    field: Optional[str] = None


class ComplianceReport(BaseModel):
    is_compliant: bool
    issues: List[ComplianceIssue] = Field(default_factory=list)
    corrected_content: Optional[FunnelStructure] = None

    @property
    def blocking_issues(self) -> List[ComplianceIssue]:
        return [i for i in self.issues if i.severity == IssueSeverity.error]


# ---------------------------------------------------------------------------
# Generation request / response
# ---------------------------------------------------------------------------


class GenerationOptions(BaseModel):
    """Per-call knobs for the orchestrator.

    ``retries`` counts extra primary attempts beyond the first.
    ``deadline_ms`` is an optional overall budget across all attempts,
    backoffs and the fallback path.
    """

    user_id: Optional[str] = None
    funnel_type_id: Optional[str] = None
    save_to_library: bool = True
    timeout_ms: int = Field(DEFAULT_GENERATION_TIMEOUT_MS, gt=0)
    retries: int = Field(DEFAULT_GENERATION_RETRIES, ge=0, le=10)
    deadline_ms: Optional[int] = Field(None, gt=0)


class GenerateFunnelRequest(BaseModel):
    """Body for ``POST /funnels/generate``."""

    prompt: str = Field(..., min_length=1, max_length=8000)
    user_id: UUID
    funnel_type_id: Optional[str] = None
    context: Dict[str, Any] = Field(default_factory=dict)
    save_to_library: bool = True
    timeout_ms: Optional[int] = Field(None, gt=0, le=120_000)
    retries: Optional[int] = Field(None, ge=0, le=5)
    deadline_ms: Optional[int] = Field(None, gt=0)


class GenerationOutcome(BaseModel):
    funnel: FunnelStructure
    repaired: bool = False
    warnings: List[str] = Field(default_factory=list)
    attempts: int
    used_fallback: bool = False


class GenerateFunnelResponse(GenerationOutcome):
    success: bool = True
