from uuid import UUID

from fastapi import APIRouter, Depends, Request

from funnel_builder.api.deps import get_lead_capture_service, get_lead_scoring_service
from funnel_builder.core.rate_limit import limiter
from funnel_builder.schemas.lead import LeadCreate, LeadOut
from funnel_builder.schemas.scoring import LeadScoreOut
from funnel_builder.services.lead_capture_service import LeadCaptureService
from funnel_builder.services.lead_scoring import LeadScoringService

router = APIRouter(prefix="/leads", tags=["Leads"])


@router.post("", response_model=LeadOut, status_code=201)
@limiter.limit("10/minute")
async def capture_lead(
    request: Request,
    request_body: LeadCreate,
    service: LeadCaptureService = Depends(get_lead_capture_service),
) -> LeadOut:
    """Capture a lead submitted through a funnel.

    Rate-limited to 10 requests/minute per IP to prevent abuse.
    """
    lead = await service.capture_lead(request_body)
    return LeadOut.model_validate(lead)


@router.post("/{lead_id}/score", response_model=LeadScoreOut)
async def score_lead(
    lead_id: UUID,
    service: LeadScoringService = Depends(get_lead_scoring_service),
) -> LeadScoreOut:
    """Recalculate and store the score of an existing lead."""
    score = await service.score_lead(lead_id)
    return LeadScoreOut.model_validate(score)
