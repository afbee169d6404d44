"""Repository layer – all database access goes through here.

Repositories encapsulate SQLAlchemy queries so that the service layer
only contains business logic.
"""

from funnel_builder.repositories.scoring_rule_repository import ScoringRuleRepository
from funnel_builder.repositories.lead_repository import LeadRepository
from funnel_builder.repositories.lead_score_repository import LeadScoreRepository
from funnel_builder.repositories.funnel_repository import FunnelRepository
from funnel_builder.repositories.email_template_repository import EmailTemplateRepository

__all__ = [
    "ScoringRuleRepository",
    "LeadRepository",
    "LeadScoreRepository",
    "FunnelRepository",
    "EmailTemplateRepository",
]
