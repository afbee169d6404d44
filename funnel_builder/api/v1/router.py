from fastapi import APIRouter

from funnel_builder.api.v1.endpoints import funnels, health, leads, scoring

router = APIRouter(prefix="/api/v1")

router.include_router(scoring.router)
router.include_router(leads.router)
router.include_router(funnels.router)
router.include_router(health.router)
