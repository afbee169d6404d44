import logging
import math
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple
from uuid import UUID

from funnel_builder.core.config import settings
from funnel_builder.core.constants import (
    BASIC_TEMPLATE_KEYWORD,
    PREMIUM_TEMPLATE_KEYWORD,
)
from funnel_builder.core.exceptions import (
    DuplicateRuleNameError,
    InvalidInputError,
    LeadNotFoundError,
    ScoringRuleNotFoundError,
)
from funnel_builder.models.email_template import EmailTemplate
from funnel_builder.models.lead_score import LeadScore
from funnel_builder.models.scoring_rule import ScoringRule
from funnel_builder.repositories.email_template_repository import EmailTemplateRepository
from funnel_builder.repositories.lead_repository import LeadRepository
from funnel_builder.repositories.lead_score_repository import LeadScoreRepository
from funnel_builder.repositories.scoring_rule_repository import ScoringRuleRepository
from funnel_builder.schemas.common import ConditionOperator
from funnel_builder.schemas.scoring import (
    LeadAttributes,
    ScoreResult,
    ScoringRuleCreate,
    ScoringRuleUpdate,
)
from funnel_builder.services.scoring_engine import compute_score

logger = logging.getLogger(__name__)

_NUMERIC_OPERATORS = {
    ConditionOperator.less_than.value,
    ConditionOperator.greater_than.value,
}


def suggest_template(
    score: int,
    templates: Sequence[EmailTemplate],
    threshold: Optional[int] = None,
) -> Optional[EmailTemplate]:
    """Pick a follow-up email template for *score*.

    Scores strictly above *threshold* prefer a "premium" template, the
    rest a "basic" one; either way the first template is the fallback.
    """
    if not templates:
        return None
    threshold = settings.PREMIUM_SCORE_THRESHOLD if threshold is None else threshold
    keyword = PREMIUM_TEMPLATE_KEYWORD if score > threshold else BASIC_TEMPLATE_KEYWORD
    for template in templates:
        if keyword in (template.name or "").lower():
            return template
    return templates[0]


class LeadScoringService:
    """Scoring-rule administration and lead scoring.

    Rules are read wholesale from ``lead_scoring_rules`` before every
    scoring pass; evaluation itself is delegated to the pure
    :func:`~funnel_builder.services.scoring_engine.compute_score`.
    """

    def __init__(
        self,
        rule_repo: ScoringRuleRepository,
        lead_repo: Optional[LeadRepository] = None,
        score_repo: Optional[LeadScoreRepository] = None,
        template_repo: Optional[EmailTemplateRepository] = None,
    ) -> None:
        self._rule_repo = rule_repo
        self._lead_repo = lead_repo
        self._score_repo = score_repo
        self._template_repo = template_repo
        self._rules_seeded = False

    async def _ensure_rules_seeded(self) -> None:
        """Seed default scoring rules if the table is empty (once per service)."""
        if self._rules_seeded:
            return
        await self._rule_repo.seed_if_empty()
        await self._rule_repo.commit()
        self._rules_seeded = True

    # ------------------------------------------------------------------
    # Rule administration
    # ------------------------------------------------------------------

    async def list_rules(self) -> List[ScoringRule]:
        await self._ensure_rules_seeded()
        return await self._rule_repo.get_all_rules()

    async def create_rule(self, data: ScoringRuleCreate) -> ScoringRule:
        """Create a rule, rejecting a name that is already taken.

        Raises:
            DuplicateRuleNameError: If another rule has the same name.
        """
        if await self._rule_repo.get_by_name(data.name):
            raise DuplicateRuleNameError(
                f"A scoring rule named '{data.name}' already exists"
            )
        rule = await self._rule_repo.create(**data.model_dump(mode="json"))
        await self._rule_repo.commit()
        logger.info("Created scoring rule %s (%s)", rule.name, rule.id)
        return rule

    async def update_rule(self, rule_id: UUID, data: ScoringRuleUpdate) -> ScoringRule:
        rule = await self._rule_repo.get_by_id(rule_id)
        if rule is None:
            raise ScoringRuleNotFoundError(f"Scoring rule {rule_id} not found")

        changes: Dict[str, Any] = data.model_dump(mode="json", exclude_unset=True)
        new_name = changes.get("name")
        if new_name and new_name.lower() != rule.name.lower():
            existing = await self._rule_repo.get_by_name(new_name)
            if existing is not None and existing.id != rule.id:
                raise DuplicateRuleNameError(
                    f"A scoring rule named '{new_name}' already exists"
                )

        operator = changes.get("condition_operator", rule.condition_operator)
        value = changes.get("condition_value", rule.condition_value)
        if operator in _NUMERIC_OPERATORS:
            try:
                number = float(value)
            except (TypeError, ValueError):
                number = math.nan
            if not math.isfinite(number):
                raise InvalidInputError(
                    f"condition_value '{value}' must be a finite number "
                    f"for operator {operator}"
                )

        rule = await self._rule_repo.update(rule, **changes)
        await self._rule_repo.commit()
        return rule

    async def delete_rule(self, rule_id: UUID) -> None:
        rule = await self._rule_repo.get_by_id(rule_id)
        if rule is None:
            raise ScoringRuleNotFoundError(f"Scoring rule {rule_id} not found")
        await self._rule_repo.delete(rule)
        await self._rule_repo.commit()

    # ------------------------------------------------------------------
    # Scoring
    # ------------------------------------------------------------------

    async def score_lead(self, lead_id: UUID) -> LeadScore:
        """Score a stored lead and persist the result.

        Raises:
            LeadNotFoundError: If the lead does not exist.
        """
        if self._lead_repo is None or self._score_repo is None:
            raise RuntimeError("score_lead needs lead and score repositories")

        lead = await self._lead_repo.get_by_id(lead_id)
        if lead is None:
            raise LeadNotFoundError(f"Lead {lead_id} not found")

        await self._ensure_rules_seeded()
        rules = await self._rule_repo.get_all_rules()
        result = compute_score(rules, LeadAttributes.model_validate(lead))

        calculated_at = datetime.now(timezone.utc)
        score = await self._score_repo.upsert(
            lead_id=lead_id,
            total_score=result.total_score,
            score_breakdown={
                name: outcome.model_dump() for name, outcome in result.breakdown.items()
            },
            calculated_at=calculated_at,
        )
        await self._lead_repo.update_score(lead_id, result.total_score, calculated_at)
        await self._lead_repo.commit()

        logger.info(
            "Lead %s scored %d (%d rules applied)",
            lead_id,
            result.total_score,
            sum(1 for o in result.breakdown.values() if o.applies),
        )
        return score

    async def simulate(
        self, attributes: LeadAttributes
    ) -> Tuple[ScoreResult, Optional[EmailTemplate]]:
        """Score ad-hoc attributes without persisting anything."""
        await self._ensure_rules_seeded()
        rules = await self._rule_repo.get_all_rules()
        result = compute_score(rules, attributes)

        templates: List[EmailTemplate] = []
        if self._template_repo is not None:
            templates = await self._template_repo.list_templates()
        return result, suggest_template(result.total_score, templates)
