import logging
from typing import Optional

from funnel_builder.core.cache import CacheService
from funnel_builder.core.config import settings
from funnel_builder.core.constants import SHARED_FUNNEL_CACHE_PREFIX
from funnel_builder.core.exceptions import FunnelNotFoundError
from funnel_builder.repositories.funnel_repository import FunnelRepository
from funnel_builder.schemas.funnel import (
    FunnelStructure,
    GenerateFunnelRequest,
    GenerationOptions,
    GenerationOutcome,
    RepairResult,
)
from funnel_builder.services.feature_access import FeatureAccessPolicy
from funnel_builder.services.funnel_repair import validate_and_repair
from funnel_builder.services.generation_orchestrator import GenerationOrchestrator

logger = logging.getLogger(__name__)


class FunnelService:
    """Request-level funnel workflows.

    Dependencies are injected via the constructor so the class remains
    stateless and easily testable.
    """

    def __init__(
        self,
        orchestrator: GenerationOrchestrator,
        funnel_repo: FunnelRepository,
        access_policy: FeatureAccessPolicy,
        cache: Optional[CacheService] = None,
    ) -> None:
        self._orchestrator = orchestrator
        self._funnel_repo = funnel_repo
        self._access_policy = access_policy
        self._cache: CacheService = cache or CacheService()

    async def generate(self, request: GenerateFunnelRequest) -> GenerationOutcome:
        """Check the access policy, then run the orchestrated generation.

        Raises:
            FeatureAccessDeniedError: The user's plan does not allow it.
            GenerationError: Any terminal generation failure.
        """
        await self._access_policy.ensure_can_generate(request.user_id, self._funnel_repo)

        options = GenerationOptions(
            user_id=str(request.user_id),
            funnel_type_id=request.funnel_type_id,
            save_to_library=request.save_to_library,
            timeout_ms=request.timeout_ms or settings.GENERATION_TIMEOUT_MS,
            retries=(
                request.retries
                if request.retries is not None
                else settings.GENERATION_RETRIES
            ),
            deadline_ms=request.deadline_ms,
        )
        outcome = await self._orchestrator.generate(
            request.prompt, context=request.context, options=options
        )
        # a regenerated funnel may overwrite one that is already shared
        if outcome.funnel.share_token:
            await self._cache.delete(
                f"{SHARED_FUNNEL_CACHE_PREFIX}{outcome.funnel.share_token}"
            )
        logger.info(
            "Generated funnel %s for user %s", outcome.funnel.id, request.user_id
        )
        return outcome

    async def get_shared(self, share_token: str) -> FunnelStructure:
        """Return a public funnel by share token, served from cache when possible."""
        cache_key = f"{SHARED_FUNNEL_CACHE_PREFIX}{share_token}"
        cached = await self._cache.get_model(cache_key, FunnelStructure)
        if cached is not None:
            return cached

        funnel = await self._funnel_repo.get_public_by_share_token(share_token)
        if funnel is None:
            raise FunnelNotFoundError(f"No shared funnel for token {share_token}")

        structure = FunnelRepository.to_structure(funnel)
        await self._cache.set_model(cache_key, structure, ttl=settings.REDIS_CACHE_TTL)
        return structure

    @staticmethod
    def repair(funnel: FunnelStructure) -> RepairResult:
        return validate_and_repair(funnel)
