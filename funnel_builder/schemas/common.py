from enum import Enum
from typing import Optional

from pydantic import BaseModel


class RuleType(str, Enum):
    """Lead attribute a scoring rule inspects."""

    response_time = "response_time"
    message_length = "message_length"
    source = "source"
    tone = "tone"


class ConditionOperator(str, Enum):
    less_than = "less_than"
    greater_than = "greater_than"
    equals = "equals"
    contains = "contains"


class StepType(str, Enum):
    lead_capture = "lead_capture"
    contact_form = "contact_form"
    quiz = "quiz"
    assessment = "assessment"
    survey = "survey"
    info = "info"
    calendar_booking = "calendar_booking"
    form = "form"
    thank_you = "thank_you"


class IssueSeverity(str, Enum):
    error = "error"
    warning = "warning"


class AccessMode(str, Enum):
    free = "free"
    metered = "metered"


class SuccessResponse(BaseModel):
    """Generic success response base."""

    success: bool = True
    message: Optional[str] = None
