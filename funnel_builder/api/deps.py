"""API-layer dependency functions.

Re-exports all dependency factories from ``funnel_builder.dependencies``
so that endpoint modules only need to import from
``funnel_builder.api.deps``.
"""

from funnel_builder.dependencies import (
    # Repository factories
    get_scoring_rule_repo,
    get_lead_repo,
    get_lead_score_repo,
    get_email_template_repo,
    get_funnel_repo,
    # Service factories
    get_feature_access_policy,
    get_lead_scoring_service,
    get_lead_capture_service,
    get_generation_orchestrator,
    get_funnel_service,
    # Redis
    get_redis_client,
    get_cache_service,
)

__all__ = [
    "get_scoring_rule_repo",
    "get_lead_repo",
    "get_lead_score_repo",
    "get_email_template_repo",
    "get_funnel_repo",
    "get_feature_access_policy",
    "get_lead_scoring_service",
    "get_lead_capture_service",
    "get_generation_orchestrator",
    "get_funnel_service",
    "get_redis_client",
    "get_cache_service",
]
