import logging
from typing import Any, List, Optional
from uuid import UUID

from sqlalchemy import select, func

from funnel_builder.models.scoring_rule import ScoringRule
from funnel_builder.repositories.base import BaseRepository

logger = logging.getLogger(__name__)


class ScoringRuleRepository(BaseRepository):
    """Encapsulates queries against the ``lead_scoring_rules`` table."""

    async def get_all_rules(self) -> List[ScoringRule]:
        """Return every rule, newest first.

        The scoring engine filters inactive rules itself, so a scoring
        pass always reads the whole collection.
        """
        result = await self._db.execute(
            select(ScoringRule).order_by(ScoringRule.created_at.desc(), ScoringRule.name)
        )
        return list(result.scalars().all())

    async def get_by_id(self, rule_id: UUID) -> Optional[ScoringRule]:
        result = await self._db.execute(
            select(ScoringRule).where(ScoringRule.id == rule_id)
        )
        return result.scalar_one_or_none()

    async def get_by_name(self, name: str) -> Optional[ScoringRule]:
        """Case-insensitive lookup used to keep rule names unique."""
        result = await self._db.execute(
            select(ScoringRule).where(func.lower(ScoringRule.name) == name.lower())
        )
        return result.scalar_one_or_none()

    async def create(self, **kwargs: Any) -> ScoringRule:
        rule = ScoringRule(**kwargs)
        self._db.add(rule)
        await self._db.flush()
        await self._db.refresh(rule)
        return rule

    async def update(self, rule: ScoringRule, **changes: Any) -> ScoringRule:
        for field, value in changes.items():
            setattr(rule, field, value)
        await self._db.flush()
        await self._db.refresh(rule)
        return rule

    async def delete(self, rule: ScoringRule) -> None:
        await self._db.delete(rule)
        await self._db.flush()

    async def seed_if_empty(self) -> None:
        """Insert default scoring rules when the table is empty.

        The canonical rule definitions live in
        ``funnel_builder.core.default_scoring_rules.DEFAULT_SCORING_RULES``.
        """
        from funnel_builder.core.default_scoring_rules import DEFAULT_SCORING_RULES

        count_result = await self._db.execute(
            select(func.count()).select_from(ScoringRule)
        )
        if count_result.scalar():
            return  # rules already present

        logger.info("lead_scoring_rules table is empty — seeding defaults")
        for rule_data in DEFAULT_SCORING_RULES:
            self._db.add(ScoringRule(**rule_data))
        await self._db.flush()
        logger.info("Seeded %d default scoring rules", len(DEFAULT_SCORING_RULES))
