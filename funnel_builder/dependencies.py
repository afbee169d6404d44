import logging

from fastapi import Depends
from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncSession

from funnel_builder.core.config import settings
from funnel_builder.core.database import get_db
from funnel_builder.services.feature_access import FeatureAccessPolicy

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Redis client factory
# ---------------------------------------------------------------------------


async def get_redis_client() -> Redis:
    """Get an async Redis client instance using connection pooling."""
    try:
        client = Redis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
        )
        await client.ping()
        return client
    except Exception:
        logger.warning("Redis unavailable – caching disabled for this request")
        return None  # type: ignore[return-value]


async def get_cache_service(
    redis_client: Redis = Depends(get_redis_client),
):
    """Build a :class:`CacheService` backed by the shared Redis client."""
    from funnel_builder.core.cache import CacheService

    return CacheService(redis_client=redis_client)


# ---------------------------------------------------------------------------
# Repository factory functions (one per repository, each gets the shared db)
# ---------------------------------------------------------------------------


async def get_scoring_rule_repo(
    db: AsyncSession = Depends(get_db),
):
    from funnel_builder.repositories.scoring_rule_repository import (
        ScoringRuleRepository,
    )

    return ScoringRuleRepository(db)


async def get_lead_repo(
    db: AsyncSession = Depends(get_db),
):
    from funnel_builder.repositories.lead_repository import LeadRepository

    return LeadRepository(db)


async def get_lead_score_repo(
    db: AsyncSession = Depends(get_db),
):
    from funnel_builder.repositories.lead_score_repository import LeadScoreRepository

    return LeadScoreRepository(db)


async def get_email_template_repo(
    db: AsyncSession = Depends(get_db),
):
    from funnel_builder.repositories.email_template_repository import (
        EmailTemplateRepository,
    )

    return EmailTemplateRepository(db)


async def get_funnel_repo(
    db: AsyncSession = Depends(get_db),
):
    from funnel_builder.repositories.funnel_repository import FunnelRepository

    return FunnelRepository(db)


# ---------------------------------------------------------------------------
# Service factory functions
# ---------------------------------------------------------------------------


def get_feature_access_policy() -> FeatureAccessPolicy:
    return FeatureAccessPolicy.from_settings(settings)


async def get_lead_scoring_service(
    rule_repo=Depends(get_scoring_rule_repo),
    lead_repo=Depends(get_lead_repo),
    score_repo=Depends(get_lead_score_repo),
    template_repo=Depends(get_email_template_repo),
):
    """Build a :class:`LeadScoringService` with injected repositories."""
    from funnel_builder.services.lead_scoring import LeadScoringService

    return LeadScoringService(
        rule_repo=rule_repo,
        lead_repo=lead_repo,
        score_repo=score_repo,
        template_repo=template_repo,
    )


async def get_lead_capture_service(
    lead_repo=Depends(get_lead_repo),
):
    from funnel_builder.services.lead_capture_service import LeadCaptureService

    return LeadCaptureService(lead_repo=lead_repo)


async def get_generation_orchestrator(
    funnel_repo=Depends(get_funnel_repo),
):
    """Build a :class:`GenerationOrchestrator` wired to the configured backends."""
    from funnel_builder.services.compliance import build_compliance_validator
    from funnel_builder.services.generation_backend import (
        build_fallback_backend,
        build_primary_backend,
    )
    from funnel_builder.services.generation_orchestrator import GenerationOrchestrator

    return GenerationOrchestrator(
        primary=build_primary_backend(),
        fallback=build_fallback_backend(),
        compliance=build_compliance_validator(),
        funnel_repo=funnel_repo,
        fallback_retries=settings.FALLBACK_RETRIES,
    )


async def get_funnel_service(
    orchestrator=Depends(get_generation_orchestrator),
    funnel_repo=Depends(get_funnel_repo),
    access_policy: FeatureAccessPolicy = Depends(get_feature_access_policy),
    cache=Depends(get_cache_service),
):
    """Build a :class:`FunnelService` with injected dependencies."""
    from funnel_builder.services.funnel_service import FunnelService

    return FunnelService(
        orchestrator=orchestrator,
        funnel_repo=funnel_repo,
        access_policy=access_policy,
        cache=cache,
    )
