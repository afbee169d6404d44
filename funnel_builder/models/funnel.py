from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func, text

from funnel_builder.models.base import Base


class Funnel(Base):
    """A generated (or hand-built) multi-step landing-page flow."""

    __tablename__ = "funnels"

    id = Column(
        UUID(as_uuid=True), primary_key=True, server_default=func.gen_random_uuid()
    )
    user_id = Column(UUID(as_uuid=True), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text)
    share_token = Column(String(64), nullable=False, unique=True)
    settings = Column(JSONB, nullable=False, server_default="{}")
    funnel_type_id = Column(String(100))
    is_public = Column(Boolean, nullable=False, server_default=text("true"))
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    steps = relationship(
        "FunnelStep",
        back_populates="funnel",
        cascade="all, delete-orphan",
        order_by="FunnelStep.step_order",
        lazy="selectin",
    )


class FunnelStep(Base):
    __tablename__ = "funnel_steps"
    __table_args__ = (
        UniqueConstraint("funnel_id", "step_order", name="uq_funnel_steps_order"),
    )

    id = Column(
        UUID(as_uuid=True), primary_key=True, server_default=func.gen_random_uuid()
    )
    funnel_id = Column(
        UUID(as_uuid=True), ForeignKey("funnels.id", ondelete="CASCADE"), nullable=False
    )
    step_order = Column(Integer, nullable=False)
    step_type = Column(String(50), nullable=False)
    title = Column(String(255), nullable=False)
    description = Column(Text)
    fields_config = Column(JSONB, nullable=False, server_default="[]")
    settings = Column(JSONB, nullable=False, server_default="{}")

    funnel = relationship("Funnel", back_populates="steps")
