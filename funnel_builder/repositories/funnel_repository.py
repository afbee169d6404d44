import logging
import secrets
from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import select, func

from funnel_builder.core.constants import SHARE_TOKEN_BYTES
from funnel_builder.models.funnel import Funnel, FunnelStep
from funnel_builder.repositories.base import BaseRepository
from funnel_builder.schemas.funnel import FunnelStep as FunnelStepSchema
from funnel_builder.schemas.funnel import FunnelStructure

logger = logging.getLogger(__name__)


def _parse_uuid(value: Optional[str]) -> Optional[UUID]:
    if not value:
        return None
    try:
        return UUID(str(value))
    except ValueError:
        return None


class FunnelRepository(BaseRepository):
    """Encapsulates queries against ``funnels`` and ``funnel_steps``."""

    async def get_by_id(self, funnel_id: UUID) -> Optional[Funnel]:
        result = await self._db.execute(select(Funnel).where(Funnel.id == funnel_id))
        return result.scalar_one_or_none()

    async def get_public_by_share_token(self, share_token: str) -> Optional[Funnel]:
        result = await self._db.execute(
            select(Funnel).where(
                Funnel.share_token == share_token,
                Funnel.is_public.is_(True),
            )
        )
        return result.scalar_one_or_none()

    async def count_created_since(self, user_id: UUID, since: datetime) -> int:
        """Number of funnels *user_id* created at or after *since*."""
        result = await self._db.execute(
            select(func.count())
            .select_from(Funnel)
            .where(Funnel.user_id == user_id, Funnel.created_at >= since)
        )
        return int(result.scalar() or 0)

    async def save_structure(
        self,
        structure: FunnelStructure,
        user_id: str,
        funnel_type_id: Optional[str] = None,
    ) -> FunnelStructure:
        """Persist a generated funnel and return the stored version.

        Saving an id that *user_id* already owns replaces the record and
        its steps wholesale (last writer wins).  Generator ids that are
        not UUIDs, or that belong to another user, get a fresh id and
        share token.
        """
        owner_id = UUID(str(user_id))
        funnel_id = _parse_uuid(structure.id)
        funnel = await self.get_by_id(funnel_id) if funnel_id else None
        share_token = structure.share_token

        if funnel is not None and funnel.user_id != owner_id:
            logger.warning(
                "Funnel %s belongs to another user; saving as a new funnel", funnel.id
            )
            funnel, funnel_id, share_token = None, None, None

        if funnel is None:
            funnel = Funnel(
                id=funnel_id or uuid4(),
                user_id=owner_id,
                share_token=share_token or secrets.token_urlsafe(SHARE_TOKEN_BYTES),
            )
            self._db.add(funnel)
        else:
            logger.info("Overwriting existing funnel %s", funnel.id)
            funnel.steps.clear()
            await self._db.flush()

        funnel.name = structure.name
        funnel.description = structure.description
        funnel.settings = structure.settings
        funnel.funnel_type_id = funnel_type_id
        funnel.steps.extend(
            FunnelStep(
                step_order=step.order,
                step_type=step.type.value,
                title=step.title,
                description=step.description,
                fields_config=step.fields_config,
                settings=step.settings,
            )
            for step in structure.steps
        )
        await self._db.flush()
        return self.to_structure(funnel)

    @staticmethod
    def to_structure(funnel: Funnel) -> FunnelStructure:
        return FunnelStructure(
            id=str(funnel.id),
            name=funnel.name,
            description=funnel.description,
            share_token=funnel.share_token,
            settings=funnel.settings or {},
            steps=[
                FunnelStepSchema(
                    order=step.step_order,
                    type=step.step_type,
                    title=step.title,
                    description=step.description,
                    fields_config=step.fields_config or [],
                    settings=step.settings or {},
                )
                for step in sorted(funnel.steps, key=lambda s: s.step_order)
            ],
        )
