"""Scoring-rule and lead-score Pydantic schemas."""

import math
from datetime import datetime
from typing import Dict, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator
from typing_extensions import Self

from funnel_builder.schemas.common import ConditionOperator, RuleType

_NUMERIC_OPERATORS = (ConditionOperator.less_than, ConditionOperator.greater_than)


# ---------------------------------------------------------------------------
# Rule administration
# ---------------------------------------------------------------------------


class ScoringRuleBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    rule_type: RuleType
    condition_operator: ConditionOperator
    condition_value: str = Field(..., min_length=1, max_length=255)
    points: int
    is_active: bool = True


class ScoringRuleCreate(ScoringRuleBase):
    """Body for ``POST /scoring/rules``."""

    @model_validator(mode="after")
    def validate_numeric_operand(self) -> Self:
        """Numeric operators need a numeric ``condition_value``.

        The engine would treat a non-numeric operand as "never applies";
        rejecting it here keeps such dead rules out of the table.
        """
        if self.condition_operator in _NUMERIC_OPERATORS:
            try:
                number = float(self.condition_value)
            except ValueError:
                number = math.nan
            if not math.isfinite(number):
                raise ValueError(
                    f"condition_value '{self.condition_value}' must be a finite number "
                    f"for operator {self.condition_operator.value}"
                )
        return self


class ScoringRuleUpdate(BaseModel):
    """Partial update; only the supplied fields change."""

    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    rule_type: Optional[RuleType] = None
    condition_operator: Optional[ConditionOperator] = None
    condition_value: Optional[str] = Field(None, min_length=1, max_length=255)
    points: Optional[int] = None
    is_active: Optional[bool] = None


class ScoringRuleOut(ScoringRuleBase):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# ---------------------------------------------------------------------------
# Evaluation
# ---------------------------------------------------------------------------


class LeadAttributes(BaseModel):
    """The subject being scored.

    Absent numeric fields are ``None`` and make the matching rule type
    skip; they are never treated as zero.
    """

    model_config = ConfigDict(from_attributes=True)

    response_time_minutes: Optional[float] = None
    message_length: Optional[int] = None
    source: Optional[str] = None
    tone: Optional[str] = None
    message: Optional[str] = None


class RuleOutcome(BaseModel):
    applies: bool
    points: int
    rule_type: str


class ScoreResult(BaseModel):
    total_score: int
    breakdown: Dict[str, RuleOutcome]


class EmailTemplateOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    subject: str


class SimulateScoringResponse(ScoreResult):
    suggested_template: Optional[EmailTemplateOut] = None


class LeadScoreOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    lead_id: UUID
    total_score: int
    score_breakdown: Dict[str, RuleOutcome]
    calculated_at: datetime
