from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from sqlalchemy import select, update

from funnel_builder.models.lead import Lead
from funnel_builder.repositories.base import BaseRepository


class LeadRepository(BaseRepository):
    """Encapsulates every SQL query that touches the ``leads`` table."""

    async def get_by_id(self, lead_id: UUID) -> Optional[Lead]:
        """Return a single lead by primary key, or ``None``."""
        result = await self._db.execute(select(Lead).where(Lead.id == lead_id))
        return result.scalar_one_or_none()

    async def create(self, **kwargs: Any) -> Lead:
        """Insert a new lead and return the model instance."""
        lead = Lead(**kwargs)
        self._db.add(lead)
        await self._db.flush()
        await self._db.refresh(lead)
        return lead

    async def update_score(
        self, lead_id: UUID, new_score: int, calculated_at: datetime
    ) -> None:
        """Stamp the latest score and its calculation time on the lead."""
        await self._db.execute(
            update(Lead)
            .where(Lead.id == lead_id)
            .values(lead_score=new_score, score_calculated_at=calculated_at)
        )
