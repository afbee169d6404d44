"""Lead capture schemas."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class LeadCreate(BaseModel):
    """A lead submitted through a published funnel."""

    name: Optional[str] = Field(None, max_length=255)
    email: Optional[EmailStr] = None
    message: Optional[str] = None
    source: Optional[str] = Field(None, max_length=100)
    tone: Optional[str] = Field(None, max_length=100)
    response_time_minutes: Optional[int] = Field(None, ge=0)
    source_funnel_id: Optional[UUID] = None


class LeadOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: Optional[str] = None
    email: Optional[str] = None
    source: Optional[str] = None
    message_length: Optional[int] = None
    response_time_minutes: Optional[int] = None
    lead_score: Optional[int] = None
    score_calculated_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
