"""Risk exceptions and intake results tables.

Revision ID: a1c3e5f7b901
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa

revision = "a1c3e5f7b901"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # ── Risk Exceptions ──
    op.create_table(
        "risk_exceptions",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("organization_id", sa.String(64), nullable=False, index=True),
        sa.Column("project_id", sa.String(64), nullable=False),
        sa.Column("risk_id", sa.String(64), nullable=True),
        sa.Column("control_id", sa.String(64), nullable=True),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("justification", sa.Text, nullable=False),
        sa.Column("compensating_controls", sa.JSON, nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="requested"),
        sa.Column("requested_by", sa.String(64), nullable=False),
        sa.Column("requested_at", sa.DateTime(timezone=True),
                  server_default=sa.func.now()),
        sa.Column("approved_by", sa.String(64), nullable=True),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("duration_days", sa.Integer, nullable=False),
        sa.Column("expiry_reminder_sent", sa.Boolean, nullable=False,
                  server_default=sa.false()),
        sa.Column("notes", sa.Text, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True),
                  server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True),
                  server_default=sa.func.now()),
    )
    op.create_index("ix_risk_exceptions_org_project", "risk_exceptions",
                    ["organization_id", "project_id"])
    op.create_index("ix_risk_exceptions_org_status", "risk_exceptions",
                    ["organization_id", "status"])

    # ── Intake Results ──
    op.create_table(
        "intake_results",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("organization_id", sa.String(64), nullable=False, index=True),
        sa.Column("project_id", sa.String(64), nullable=False, index=True),
        sa.Column("responses", sa.JSON, nullable=False),
        sa.Column("total_score", sa.Integer, nullable=False),
        sa.Column("max_score", sa.Integer, nullable=False, server_default="100"),
        sa.Column("risk_path", sa.String(20), nullable=False),
        sa.Column("recommended_actions", sa.JSON, nullable=False),
        sa.Column("submitted_by", sa.String(64), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True),
                  server_default=sa.func.now()),
    )


def downgrade():
    op.drop_table("intake_results")
    op.drop_index("ix_risk_exceptions_org_status", table_name="risk_exceptions")
    op.drop_index("ix_risk_exceptions_org_project", table_name="risk_exceptions")
    op.drop_table("risk_exceptions")
