from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func, text

from funnel_builder.models.base import Base
from funnel_builder.schemas.common import ConditionOperator, RuleType

RULE_TYPE_CHECK_CLAUSE: str = (
    f"rule_type IN ({', '.join(repr(t.value) for t in RuleType)})"
)
CONDITION_OPERATOR_CHECK_CLAUSE: str = (
    f"condition_operator IN ({', '.join(repr(o.value) for o in ConditionOperator)})"
)


class ScoringRule(Base):
    """Administrator-defined lead scoring rule.

    Each rule inspects one lead attribute (``rule_type``), compares it
    with ``condition_value`` using ``condition_operator`` and awards
    ``points`` (possibly negative) when the condition holds.  Rule names
    key the score breakdown, hence the unique constraint.
    """

    __tablename__ = "lead_scoring_rules"
    __table_args__ = (
        UniqueConstraint("name", name="uq_lead_scoring_rules_name"),
        CheckConstraint(RULE_TYPE_CHECK_CLAUSE, name="ck_lead_scoring_rules_rule_type"),
        CheckConstraint(
            CONDITION_OPERATOR_CHECK_CLAUSE,
            name="ck_lead_scoring_rules_condition_operator",
        ),
    )

    id = Column(
        UUID(as_uuid=True), primary_key=True, server_default=func.gen_random_uuid()
    )
    name = Column(String(100), nullable=False)
    description = Column(Text)
    rule_type = Column(String(50), nullable=False)
    condition_operator = Column(String(50), nullable=False)
    condition_value = Column(String(255), nullable=False)
    points = Column(Integer, nullable=False)
    is_active = Column(Boolean, nullable=False, server_default=text("true"))
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )
