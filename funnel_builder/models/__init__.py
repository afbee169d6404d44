from funnel_builder.models.base import Base
from funnel_builder.models.scoring_rule import ScoringRule
from funnel_builder.models.funnel import Funnel, FunnelStep
from funnel_builder.models.lead import Lead
from funnel_builder.models.lead_score import LeadScore
from funnel_builder.models.email_template import EmailTemplate

__all__ = [
    "Base",
    "ScoringRule",
    "Funnel",
    "FunnelStep",
    "Lead",
    "LeadScore",
    "EmailTemplate",
]
