from sqlalchemy import Column, DateTime, ForeignKey, Integer
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from funnel_builder.models.base import Base


class LeadScore(Base):
    """Latest score computed for a lead, one row per lead.

    ``score_breakdown`` maps rule name to ``{applies, points, rule_type}``.
    """

    __tablename__ = "lead_scores"

    id = Column(
        UUID(as_uuid=True), primary_key=True, server_default=func.gen_random_uuid()
    )
    lead_id = Column(
        UUID(as_uuid=True),
        ForeignKey("leads.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    total_score = Column(Integer, nullable=False)
    score_breakdown = Column(JSONB, nullable=False, server_default="{}")
    calculated_at = Column(DateTime(timezone=True), nullable=False)

    lead = relationship("Lead", back_populates="score")
