from types import SimpleNamespace
from unittest.mock import AsyncMock
from uuid import uuid4

import pytest
from pydantic import ValidationError

from funnel_builder.core.default_scoring_rules import DEFAULT_SCORING_RULES
from funnel_builder.core.exceptions import (
    DuplicateRuleNameError,
    InvalidInputError,
    LeadNotFoundError,
    ScoringRuleNotFoundError,
)
from funnel_builder.schemas.scoring import (
    LeadAttributes,
    ScoringRuleCreate,
    ScoringRuleUpdate,
)
from funnel_builder.services.lead_scoring import LeadScoringService, suggest_template


def _rules_from_defaults():
    return [SimpleNamespace(is_active=True, **rule) for rule in DEFAULT_SCORING_RULES]


def _mock_rule_repo(rules=None, existing=None):
    """Create a mocked ScoringRuleRepository returning default rules."""
    repo = AsyncMock()
    repo.seed_if_empty = AsyncMock()
    repo.get_all_rules = AsyncMock(
        return_value=_rules_from_defaults() if rules is None else rules
    )
    repo.get_by_name = AsyncMock(return_value=existing)
    repo.get_by_id = AsyncMock(return_value=None)
    repo.create = AsyncMock(side_effect=lambda **data: SimpleNamespace(id=uuid4(), **data))
    repo.update = AsyncMock(side_effect=lambda rule, **changes: rule)
    return repo


def _template(name):
    return SimpleNamespace(id=uuid4(), name=name, subject=f"{name} subject")


@pytest.fixture
def rule_repo():
    return _mock_rule_repo()


class TestSuggestTemplate:
    """Template choice by score band."""

    def test_high_score_prefers_premium(self):
        templates = [_template("Basic Follow-up"), _template("Premium Follow-up")]
        assert suggest_template(75, templates, threshold=50).name == "Premium Follow-up"

    def test_low_score_prefers_basic(self):
        templates = [_template("Premium Follow-up"), _template("Basic Follow-up")]
        assert suggest_template(10, templates, threshold=50).name == "Basic Follow-up"

    def test_threshold_is_exclusive(self):
        templates = [_template("Premium"), _template("Basic")]
        assert suggest_template(50, templates, threshold=50).name == "Basic"

    def test_falls_back_to_first_template(self):
        templates = [_template("Welcome"), _template("Other")]
        assert suggest_template(99, templates, threshold=50).name == "Welcome"

    def test_no_templates(self):
        assert suggest_template(99, [], threshold=50) is None


class TestRuleAdministration:
    @pytest.mark.asyncio
    async def test_create_rule(self, rule_repo):
        service = LeadScoringService(rule_repo=rule_repo)
        body = ScoringRuleCreate(
            name="Webinar",
            rule_type="source",
            condition_operator="equals",
            condition_value="webinar",
            points=5,
        )

        rule = await service.create_rule(body)

        assert rule.name == "Webinar"
        assert rule_repo.create.await_args.kwargs["rule_type"] == "source"
        rule_repo.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_duplicate_name_rejected(self):
        repo = _mock_rule_repo(existing=SimpleNamespace(id=uuid4(), name="Fast Reply"))
        service = LeadScoringService(rule_repo=repo)
        body = ScoringRuleCreate(
            name="fast reply",
            rule_type="response_time",
            condition_operator="less_than",
            condition_value="5",
            points=1,
        )

        with pytest.raises(DuplicateRuleNameError):
            await service.create_rule(body)
        repo.create.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_update_missing_rule(self, rule_repo):
        service = LeadScoringService(rule_repo=rule_repo)

        with pytest.raises(ScoringRuleNotFoundError):
            await service.update_rule(uuid4(), ScoringRuleUpdate(points=3))

    @pytest.mark.parametrize("operand", ["nan", "inf", "-Infinity"])
    def test_create_rejects_non_finite_operand(self, operand):
        with pytest.raises(ValidationError):
            ScoringRuleCreate(
                name="Fast Reply",
                rule_type="response_time",
                condition_operator="less_than",
                condition_value=operand,
                points=5,
            )

    @pytest.mark.asyncio
    @pytest.mark.parametrize("operand", ["soon", "nan", "inf"])
    async def test_update_to_unusable_operand(self, rule_repo, operand):
        rule = SimpleNamespace(
            id=uuid4(),
            name="Fast Reply",
            condition_operator="less_than",
            condition_value="10",
        )
        rule_repo.get_by_id = AsyncMock(return_value=rule)
        service = LeadScoringService(rule_repo=rule_repo)

        with pytest.raises(InvalidInputError):
            await service.update_rule(rule.id, ScoringRuleUpdate(condition_value=operand))
        rule_repo.update.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_update_to_taken_name(self, rule_repo):
        rule = SimpleNamespace(
            id=uuid4(), name="A", condition_operator="equals", condition_value="x"
        )
        rule_repo.get_by_id = AsyncMock(return_value=rule)
        rule_repo.get_by_name = AsyncMock(return_value=SimpleNamespace(id=uuid4()))
        service = LeadScoringService(rule_repo=rule_repo)

        with pytest.raises(DuplicateRuleNameError):
            await service.update_rule(rule.id, ScoringRuleUpdate(name="B"))

    @pytest.mark.asyncio
    async def test_delete_missing_rule(self, rule_repo):
        with pytest.raises(ScoringRuleNotFoundError):
            await LeadScoringService(rule_repo=rule_repo).delete_rule(uuid4())

    @pytest.mark.asyncio
    async def test_rules_seeded_once(self, rule_repo):
        service = LeadScoringService(rule_repo=rule_repo)

        await service.list_rules()
        await service.list_rules()

        rule_repo.seed_if_empty.assert_awaited_once()


class TestScoreLead:
    @pytest.mark.asyncio
    async def test_scores_and_persists(self, rule_repo):
        lead_id = uuid4()
        lead = SimpleNamespace(
            id=lead_id,
            response_time_minutes=4,
            message_length=250,
            source="referral",
            tone=None,
            message="Urgent: need a quote",
        )
        lead_repo = AsyncMock()
        lead_repo.get_by_id = AsyncMock(return_value=lead)
        score_repo = AsyncMock()
        score_repo.upsert = AsyncMock(side_effect=lambda **kw: SimpleNamespace(**kw))
        service = LeadScoringService(rule_repo, lead_repo=lead_repo, score_repo=score_repo)

        score = await service.score_lead(lead_id)

        # Fast Reply 15 + Detailed Message 10 + Referral 20 + Urgent Tone 15
        assert score.total_score == 60
        assert score.score_breakdown["Fast Reply"]["applies"] is True
        assert score.score_breakdown["Slow Reply"]["applies"] is False
        lead_repo.update_score.assert_awaited_once()
        assert lead_repo.update_score.await_args.args[1] == 60
        lead_repo.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_missing_lead(self, rule_repo):
        lead_repo = AsyncMock()
        lead_repo.get_by_id = AsyncMock(return_value=None)
        service = LeadScoringService(rule_repo, lead_repo=lead_repo, score_repo=AsyncMock())

        with pytest.raises(LeadNotFoundError):
            await service.score_lead(uuid4())


class TestSimulate:
    @pytest.mark.asyncio
    async def test_simulate_suggests_template(self, rule_repo):
        template_repo = AsyncMock()
        template_repo.list_templates = AsyncMock(
            return_value=[_template("Basic Follow-up"), _template("Premium Follow-up")]
        )
        service = LeadScoringService(rule_repo, template_repo=template_repo)

        result, template = await service.simulate(
            LeadAttributes(
                response_time_minutes=2,
                message_length=300,
                source="referral",
                message="urgent",
            )
        )

        assert result.total_score == 60
        assert template.name == "Premium Follow-up"

    @pytest.mark.asyncio
    async def test_simulate_without_templates(self, rule_repo):
        result, template = await LeadScoringService(rule_repo).simulate(
            LeadAttributes(source="linkedin")
        )

        assert result.total_score == 10
        assert template is None
