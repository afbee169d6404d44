from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text, Index
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from funnel_builder.models.base import Base


class Lead(Base):
    """Prospect captured through a published funnel.

    ``response_time_minutes`` and ``message_length`` stay ``NULL`` when
    unknown so the scoring engine can skip the matching rules instead of
    scoring them as zero.
    """

    __tablename__ = "leads"
    __table_args__ = (Index("ix_leads_source_funnel_id", "source_funnel_id"),)

    id = Column(
        UUID(as_uuid=True), primary_key=True, server_default=func.gen_random_uuid()
    )
    name = Column(String(255))
    email = Column(String(255))
    message = Column(Text)
    source = Column(String(100))
    tone = Column(String(100))
    response_time_minutes = Column(Integer)
    message_length = Column(Integer)
    lead_score = Column(Integer)
    score_calculated_at = Column(DateTime(timezone=True))
    source_funnel_id = Column(
        UUID(as_uuid=True), ForeignKey("funnels.id", ondelete="SET NULL")
    )
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    score = relationship(
        "LeadScore", back_populates="lead", uselist=False, cascade="all, delete-orphan"
    )
