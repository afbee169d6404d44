from fastapi import APIRouter, Depends, Request

from funnel_builder.api.deps import get_funnel_service
from funnel_builder.core.rate_limit import limiter
from funnel_builder.schemas.funnel import (
    FunnelStructure,
    GenerateFunnelRequest,
    GenerateFunnelResponse,
    RepairResult,
)
from funnel_builder.services.funnel_service import FunnelService

router = APIRouter(prefix="/funnels", tags=["Funnels"])


@router.post("/generate", response_model=GenerateFunnelResponse)
@limiter.limit("5/minute")
async def generate_funnel(
    request: Request,
    request_body: GenerateFunnelRequest,
    service: FunnelService = Depends(get_funnel_service),
) -> GenerateFunnelResponse:
    """Generate a funnel from a prompt.

    Retries, fallback, repair and compliance checks happen inside the
    orchestrator; failures surface through the generation exception
    handlers.  Rate-limited to 5 requests/minute per IP.
    """
    outcome = await service.generate(request_body)
    return GenerateFunnelResponse(**outcome.model_dump())


@router.post("/repair", response_model=RepairResult)
async def repair_funnel(body: FunnelStructure) -> RepairResult:
    return FunnelService.repair(body)


@router.get("/shared/{share_token}", response_model=FunnelStructure)
async def get_shared_funnel(
    share_token: str,
    service: FunnelService = Depends(get_funnel_service),
) -> FunnelStructure:
    return await service.get_shared(share_token)
