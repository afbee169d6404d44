import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

from funnel_builder.core.config import Settings
from funnel_builder.core.exceptions import FeatureAccessDeniedError
from funnel_builder.repositories.funnel_repository import FunnelRepository
from funnel_builder.schemas.common import AccessMode

logger = logging.getLogger(__name__)


def start_of_month(now: Optional[datetime] = None) -> datetime:
    now = now or datetime.now(timezone.utc)
    return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


@dataclass(frozen=True)
class FeatureAccessPolicy:
    """Decides whether a user may run a metered feature.

    Built per request from settings and passed in explicitly, so tests
    can exercise the free and metered policies side by side.
    """

    mode: AccessMode = AccessMode.free
    monthly_generation_limit: int = 10

    @classmethod
    def from_settings(cls, settings: Settings) -> "FeatureAccessPolicy":
        try:
            mode = AccessMode(settings.FEATURE_ACCESS_MODE.lower())
        except ValueError:
            logger.warning(
                "Unknown FEATURE_ACCESS_MODE %r; falling back to metered",
                settings.FEATURE_ACCESS_MODE,
            )
            mode = AccessMode.metered
        return cls(mode=mode, monthly_generation_limit=settings.MONTHLY_GENERATION_LIMIT)

    @property
    def is_free(self) -> bool:
        return self.mode == AccessMode.free

    def check_generation_allowed(self, generations_this_month: int) -> None:
        """Raise :class:`FeatureAccessDeniedError` once the limit is reached."""
        if self.is_free:
            return
        if generations_this_month >= self.monthly_generation_limit:
            raise FeatureAccessDeniedError(
                f"Monthly generation limit of {self.monthly_generation_limit} reached"
            )

    async def ensure_can_generate(
        self, user_id: UUID, funnel_repo: FunnelRepository
    ) -> None:
        if self.is_free:
            return
        used = await funnel_repo.count_created_since(user_id, start_of_month())
        self.check_generation_allowed(used)
