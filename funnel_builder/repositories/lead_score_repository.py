from datetime import datetime
from typing import Any, Dict
from uuid import UUID

from sqlalchemy.dialects.postgresql import insert

from funnel_builder.models.lead_score import LeadScore
from funnel_builder.repositories.base import BaseRepository


class LeadScoreRepository(BaseRepository):
    """Encapsulates queries against the ``lead_scores`` table."""

    async def upsert(
        self,
        lead_id: UUID,
        total_score: int,
        score_breakdown: Dict[str, Any],
        calculated_at: datetime,
    ) -> LeadScore:
        """Insert or replace the single score row kept per lead."""
        stmt = insert(LeadScore).values(
            lead_id=lead_id,
            total_score=total_score,
            score_breakdown=score_breakdown,
            calculated_at=calculated_at,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[LeadScore.lead_id],
            set_={
                "total_score": stmt.excluded.total_score,
                "score_breakdown": stmt.excluded.score_breakdown,
                "calculated_at": stmt.excluded.calculated_at,
            },
        ).returning(LeadScore)
        result = await self._db.execute(
            stmt, execution_options={"populate_existing": True}
        )
        return result.scalar_one()
