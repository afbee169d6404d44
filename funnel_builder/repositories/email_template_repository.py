from typing import List

from sqlalchemy import select

from funnel_builder.models.email_template import EmailTemplate
from funnel_builder.repositories.base import BaseRepository


class EmailTemplateRepository(BaseRepository):
    """Encapsulates queries against the ``email_templates`` table."""

    async def list_templates(self) -> List[EmailTemplate]:
        """Return templates oldest first so "first template" is stable."""
        result = await self._db.execute(
            select(EmailTemplate).order_by(EmailTemplate.created_at, EmailTemplate.name)
        )
        return list(result.scalars().all())
