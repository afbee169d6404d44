from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends

from funnel_builder.api.deps import get_lead_scoring_service
from funnel_builder.schemas.common import SuccessResponse
from funnel_builder.schemas.scoring import (
    EmailTemplateOut,
    LeadAttributes,
    ScoringRuleCreate,
    ScoringRuleOut,
    ScoringRuleUpdate,
    SimulateScoringResponse,
)
from funnel_builder.services.lead_scoring import LeadScoringService

router = APIRouter(prefix="/scoring", tags=["Lead Scoring"])


@router.get("/rules", response_model=List[ScoringRuleOut])
async def list_rules(
    service: LeadScoringService = Depends(get_lead_scoring_service),
) -> List[ScoringRuleOut]:
    """List all scoring rules, seeding the defaults on first use."""
    rules = await service.list_rules()
    return [ScoringRuleOut.model_validate(rule) for rule in rules]


@router.post("/rules", response_model=ScoringRuleOut, status_code=201)
async def create_rule(
    body: ScoringRuleCreate,
    service: LeadScoringService = Depends(get_lead_scoring_service),
) -> ScoringRuleOut:
    rule = await service.create_rule(body)
    return ScoringRuleOut.model_validate(rule)


@router.put("/rules/{rule_id}", response_model=ScoringRuleOut)
async def update_rule(
    rule_id: UUID,
    body: ScoringRuleUpdate,
    service: LeadScoringService = Depends(get_lead_scoring_service),
) -> ScoringRuleOut:
    rule = await service.update_rule(rule_id, body)
    return ScoringRuleOut.model_validate(rule)


@router.delete("/rules/{rule_id}", response_model=SuccessResponse)
async def delete_rule(
    rule_id: UUID,
    service: LeadScoringService = Depends(get_lead_scoring_service),
) -> SuccessResponse:
    await service.delete_rule(rule_id)
    return SuccessResponse(success=True, message="Scoring rule deleted")


@router.post("/simulate", response_model=SimulateScoringResponse)
async def simulate_scoring(
    body: LeadAttributes,
    service: LeadScoringService = Depends(get_lead_scoring_service),
) -> SimulateScoringResponse:
    """Score sample attributes against the current rules without saving.

    Also suggests the follow-up email template for the resulting score.
    """
    result, template = await service.simulate(body)
    return SimulateScoringResponse(
        total_score=result.total_score,
        breakdown=result.breakdown,
        suggested_template=(
            EmailTemplateOut.model_validate(template) if template is not None else None
        ),
    )
