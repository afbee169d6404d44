import logging
from typing import Optional

from funnel_builder.models.lead import Lead
from funnel_builder.repositories.lead_repository import LeadRepository
from funnel_builder.schemas.lead import LeadCreate

logger = logging.getLogger(__name__)


class LeadCaptureService:
    """Stores leads submitted through published funnels."""

    def __init__(self, lead_repo: LeadRepository) -> None:
        self._lead_repo = lead_repo

    async def capture_lead(self, data: LeadCreate) -> Lead:
        """Persist a submission.

        ``message_length`` is derived from the message; it stays ``NULL``
        when no message was sent so length rules skip the lead.
        """
        message: Optional[str] = data.message
        lead = await self._lead_repo.create(
            **data.model_dump(),
            message_length=len(message) if message is not None else None,
        )
        await self._lead_repo.commit()
        logger.info("Captured lead %s from source %s", lead.id, data.source)
        return lead
