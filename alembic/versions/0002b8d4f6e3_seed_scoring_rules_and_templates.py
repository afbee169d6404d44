"""seed default scoring rules and email templates

Revision ID: 0002b8d4f6e3
Revises: 0001a7c3e5d2
Create Date: 2026-10-19 09:05:00.000000

Rule values come from ``funnel_builder.core.default_scoring_rules``;
edit them there, not here.  Both inserts skip rows whose name already
exists, so the migration can be re-applied safely.
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

from funnel_builder.core.default_scoring_rules import (
    DEFAULT_EMAIL_TEMPLATES,
    DEFAULT_SCORING_RULES,
)

# revision identifiers, used by Alembic.
revision: str = "0002b8d4f6e3"
down_revision: Union[str, None] = "0001a7c3e5d2"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    insert_rule = sa.text(
        """
        INSERT INTO lead_scoring_rules
            (name, description, rule_type, condition_operator, condition_value, points)
        SELECT :name, :description, :rule_type, :condition_operator,
               :condition_value, :points
        WHERE NOT EXISTS (
            SELECT 1 FROM lead_scoring_rules WHERE name = :name
        )
        """
    )
    for rule in DEFAULT_SCORING_RULES:
        op.execute(insert_rule.bindparams(**rule))

    insert_template = sa.text(
        """
        INSERT INTO email_templates (name, subject, body)
        SELECT :name, :subject, :body
        WHERE NOT EXISTS (
            SELECT 1 FROM email_templates WHERE name = :name
        )
        """
    )
    for template in DEFAULT_EMAIL_TEMPLATES:
        op.execute(insert_template.bindparams(**template))


def downgrade() -> None:
    delete_rule = sa.text("DELETE FROM lead_scoring_rules WHERE name = :name")
    for rule in DEFAULT_SCORING_RULES:
        op.execute(delete_rule.bindparams(name=rule["name"]))

    delete_template = sa.text("DELETE FROM email_templates WHERE name = :name")
    for template in DEFAULT_EMAIL_TEMPLATES:
        op.execute(delete_template.bindparams(name=template["name"]))
