"""Pydantic schemas package – re-exports for convenience."""

# Common enums
from funnel_builder.schemas.common import (
    RuleType as RuleType,
    ConditionOperator as ConditionOperator,
    StepType as StepType,
    IssueSeverity as IssueSeverity,
    AccessMode as AccessMode,
    SuccessResponse as SuccessResponse,
)

# Scoring schemas
from funnel_builder.schemas.scoring import (
    ScoringRuleCreate as ScoringRuleCreate,
    ScoringRuleUpdate as ScoringRuleUpdate,
    ScoringRuleOut as ScoringRuleOut,
    LeadAttributes as LeadAttributes,
    RuleOutcome as RuleOutcome,
    ScoreResult as ScoreResult,
    EmailTemplateOut as EmailTemplateOut,
    SimulateScoringResponse as SimulateScoringResponse,
    LeadScoreOut as LeadScoreOut,
)

# Lead schemas
from funnel_builder.schemas.lead import (
    LeadCreate as LeadCreate,
    LeadOut as LeadOut,
)

# Funnel schemas
from funnel_builder.schemas.funnel import (
    FunnelStep as FunnelStep,
    FunnelStructure as FunnelStructure,
    RepairResult as RepairResult,
    BackendResult as BackendResult,
    ComplianceIssue as ComplianceIssue,
    ComplianceReport as ComplianceReport,
    GenerationOptions as GenerationOptions,
    GenerateFunnelRequest as GenerateFunnelRequest,
    GenerationOutcome as GenerationOutcome,
    GenerateFunnelResponse as GenerateFunnelResponse,
)
