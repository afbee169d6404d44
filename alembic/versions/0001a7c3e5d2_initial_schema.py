"""initial schema

Revision ID: 0001a7c3e5d2
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

from funnel_builder.models.scoring_rule import (
    CONDITION_OPERATOR_CHECK_CLAUSE,
    RULE_TYPE_CHECK_CLAUSE,
)

# revision identifiers, used by Alembic.
revision: str = "0001a7c3e5d2"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _uuid_pk() -> sa.Column:
    return sa.Column(
        "id",
        postgresql.UUID(as_uuid=True),
        primary_key=True,
        server_default=sa.text("gen_random_uuid()"),
    )


def _created_at() -> sa.Column:
    return sa.Column(
        "created_at", sa.DateTime(timezone=True), server_default=sa.func.now()
    )


def _updated_at() -> sa.Column:
    return sa.Column(
        "updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()
    )


def upgrade() -> None:
    op.create_table(
        "lead_scoring_rules",
        _uuid_pk(),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("description", sa.Text()),
        sa.Column("rule_type", sa.String(50), nullable=False),
        sa.Column("condition_operator", sa.String(50), nullable=False),
        sa.Column("condition_value", sa.String(255), nullable=False),
        sa.Column("points", sa.Integer(), nullable=False),
        sa.Column(
            "is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")
        ),
        _created_at(),
        _updated_at(),
        sa.UniqueConstraint("name", name="uq_lead_scoring_rules_name"),
        sa.CheckConstraint(RULE_TYPE_CHECK_CLAUSE, name="ck_lead_scoring_rules_rule_type"),
        sa.CheckConstraint(
            CONDITION_OPERATOR_CHECK_CLAUSE,
            name="ck_lead_scoring_rules_condition_operator",
        ),
    )

    op.create_table(
        "funnels",
        _uuid_pk(),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text()),
        sa.Column("share_token", sa.String(64), nullable=False, unique=True),
        sa.Column(
            "settings", postgresql.JSONB(), nullable=False, server_default="{}"
        ),
        sa.Column("funnel_type_id", sa.String(100)),
        sa.Column(
            "is_public", sa.Boolean(), nullable=False, server_default=sa.text("true")
        ),
        _created_at(),
        _updated_at(),
    )
    op.create_index("ix_funnels_user_id", "funnels", ["user_id"])

    op.create_table(
        "funnel_steps",
        _uuid_pk(),
        sa.Column(
            "funnel_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("funnels.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("step_order", sa.Integer(), nullable=False),
        sa.Column("step_type", sa.String(50), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text()),
        sa.Column(
            "fields_config", postgresql.JSONB(), nullable=False, server_default="[]"
        ),
        sa.Column(
            "settings", postgresql.JSONB(), nullable=False, server_default="{}"
        ),
        sa.UniqueConstraint("funnel_id", "step_order", name="uq_funnel_steps_order"),
    )

    op.create_table(
        "leads",
        _uuid_pk(),
        sa.Column("name", sa.String(255)),
        sa.Column("email", sa.String(255)),
        sa.Column("message", sa.Text()),
        sa.Column("source", sa.String(100)),
        sa.Column("tone", sa.String(100)),
        sa.Column("response_time_minutes", sa.Integer()),
        sa.Column("message_length", sa.Integer()),
        sa.Column("lead_score", sa.Integer()),
        sa.Column("score_calculated_at", sa.DateTime(timezone=True)),
        sa.Column(
            "source_funnel_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("funnels.id", ondelete="SET NULL"),
        ),
        _created_at(),
    )
    op.create_index("ix_leads_source_funnel_id", "leads", ["source_funnel_id"])

    op.create_table(
        "lead_scores",
        _uuid_pk(),
        sa.Column(
            "lead_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("leads.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
        sa.Column("total_score", sa.Integer(), nullable=False),
        sa.Column(
            "score_breakdown", postgresql.JSONB(), nullable=False, server_default="{}"
        ),
        sa.Column("calculated_at", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        "email_templates",
        _uuid_pk(),
        sa.Column("name", sa.String(150), nullable=False),
        sa.Column("subject", sa.String(255), nullable=False),
        sa.Column("body", sa.Text(), nullable=False),
        _created_at(),
    )


def downgrade() -> None:
    op.drop_table("email_templates")
    op.drop_table("lead_scores")
    op.drop_index("ix_leads_source_funnel_id", table_name="leads")
    op.drop_table("leads")
    op.drop_table("funnel_steps")
    op.drop_index("ix_funnels_user_id", table_name="funnels")
    op.drop_table("funnels")
    op.drop_table("lead_scoring_rules")
