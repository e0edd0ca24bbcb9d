"""create_care_log_tables

Revision ID: 0001_care_log_tables
Revises:
Create Date: 2025-06-01 09:00:00.000000

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "0001_care_log_tables"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


care_log_status_enum = sa.Enum(
    "draft", "submitted", "invalidated", name="care_log_status_enum"
)
care_log_audit_action_enum = sa.Enum(
    "create",
    "update",
    "submit",
    "submit_section",
    "invalidate",
    name="care_log_audit_action_enum",
)


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "care_recipients",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("family_admin_id", sa.Uuid(), nullable=True),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column(
            "timezone",
            sa.String(length=64),
            server_default=sa.text("'Asia/Singapore'"),
            nullable=False,
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        op.f("ix_care_recipients_family_admin_id"),
        "care_recipients",
        ["family_admin_id"],
        unique=False,
    )

    op.create_table(
        "care_logs",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("care_recipient_id", sa.Uuid(), nullable=False),
        sa.Column("caregiver_id", sa.Uuid(), nullable=True),
        sa.Column("log_date", sa.Date(), nullable=False),
        sa.Column("status", care_log_status_enum, nullable=False),
        sa.Column("submitted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("invalidated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("invalidated_by", sa.Uuid(), nullable=True),
        sa.Column("invalidation_reason", sa.Text(), nullable=True),
        sa.Column("completed_sections", sa.JSON(), nullable=True),
        # Morning routine
        sa.Column("wake_time", sa.String(length=5), nullable=True),
        sa.Column("mood", sa.String(length=20), nullable=True),
        sa.Column("shower_time", sa.String(length=5), nullable=True),
        sa.Column("hair_wash", sa.Boolean(), nullable=True),
        # Vital signs
        sa.Column("blood_pressure", sa.String(length=20), nullable=True),
        sa.Column("pulse_rate", sa.Integer(), nullable=True),
        sa.Column("oxygen_level", sa.Integer(), nullable=True),
        sa.Column("blood_sugar", sa.Float(), nullable=True),
        sa.Column("vitals_time", sa.String(length=5), nullable=True),
        # Medications, meals and fluids
        sa.Column("medications", sa.JSON(), nullable=True),
        sa.Column("meals", sa.JSON(), nullable=True),
        sa.Column("fluids", sa.JSON(), nullable=True),
        sa.Column("total_fluid_intake", sa.Integer(), nullable=True),
        # Sleep and toileting
        sa.Column("afternoon_rest", sa.JSON(), nullable=True),
        sa.Column("night_sleep", sa.JSON(), nullable=True),
        sa.Column("bowel_movements", sa.JSON(), nullable=True),
        sa.Column("urination", sa.JSON(), nullable=True),
        # Fall risk & mobility
        sa.Column("balance_issues", sa.Integer(), nullable=True),
        sa.Column("near_falls", sa.String(length=20), nullable=True),
        sa.Column("actual_falls", sa.String(length=20), nullable=True),
        sa.Column("walking_pattern", sa.JSON(), nullable=True),
        sa.Column("freezing_episodes", sa.String(length=20), nullable=True),
        # Unaccompanied time
        sa.Column("unaccompanied_time", sa.JSON(), nullable=True),
        sa.Column("total_unaccompanied_minutes", sa.Integer(), nullable=True),
        sa.Column("unaccompanied_incidents", sa.Text(), nullable=True),
        # Safety, wellbeing & activity
        sa.Column("safety_checks", sa.JSON(), nullable=True),
        sa.Column("emergency_prep", sa.JSON(), nullable=True),
        sa.Column("spiritual_emotional", sa.JSON(), nullable=True),
        sa.Column("physical_activity", sa.JSON(), nullable=True),
        sa.Column("oral_care", sa.JSON(), nullable=True),
        sa.Column("morning_exercise_session", sa.JSON(), nullable=True),
        sa.Column("afternoon_exercise_session", sa.JSON(), nullable=True),
        # Emergency & notes
        sa.Column(
            "emergency_flag",
            sa.Boolean(),
            server_default=sa.text("false"),
            nullable=False,
        ),
        sa.Column("emergency_note", sa.Text(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        # Bookkeeping
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(
            ["care_recipient_id"], ["care_recipients.id"], ondelete="CASCADE"
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "care_recipient_id", "log_date", name="uq_care_logs_recipient_date"
        ),
    )
    op.create_index(
        op.f("ix_care_logs_care_recipient_id"),
        "care_logs",
        ["care_recipient_id"],
        unique=False,
    )
    op.create_index(op.f("ix_care_logs_log_date"), "care_logs", ["log_date"], unique=False)

    op.create_table(
        "care_log_audit",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("care_log_id", sa.Uuid(), nullable=False),
        sa.Column("changed_by", sa.Uuid(), nullable=False),
        sa.Column("changed_by_name", sa.String(length=200), nullable=True),
        sa.Column("action", care_log_audit_action_enum, nullable=False),
        sa.Column("section_submitted", sa.String(length=20), nullable=True),
        sa.Column("changes", sa.JSON(), nullable=False),
        sa.Column("snapshot", sa.JSON(), nullable=False),
        sa.Column("sequence", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["care_log_id"], ["care_logs.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "care_log_id", "sequence", name="uq_care_log_audit_log_sequence"
        ),
    )
    op.create_index(
        op.f("ix_care_log_audit_care_log_id"),
        "care_log_audit",
        ["care_log_id"],
        unique=False,
    )
    op.create_index(
        op.f("ix_care_log_audit_created_at"),
        "care_log_audit",
        ["created_at"],
        unique=False,
    )

    op.create_table(
        "care_log_views",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("care_log_id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("viewed_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["care_log_id"], ["care_logs.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("care_log_id", "user_id", name="uq_care_log_views_log_user"),
    )
    op.create_index(
        op.f("ix_care_log_views_care_log_id"),
        "care_log_views",
        ["care_log_id"],
        unique=False,
    )
    op.create_index(
        op.f("ix_care_log_views_user_id"),
        "care_log_views",
        ["user_id"],
        unique=False,
    )


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index(op.f("ix_care_log_views_user_id"), table_name="care_log_views")
    op.drop_index(op.f("ix_care_log_views_care_log_id"), table_name="care_log_views")
    op.drop_table("care_log_views")

    op.drop_index(op.f("ix_care_log_audit_created_at"), table_name="care_log_audit")
    op.drop_index(op.f("ix_care_log_audit_care_log_id"), table_name="care_log_audit")
    op.drop_table("care_log_audit")

    op.drop_index(op.f("ix_care_logs_log_date"), table_name="care_logs")
    op.drop_index(op.f("ix_care_logs_care_recipient_id"), table_name="care_logs")
    op.drop_table("care_logs")

    op.drop_index(op.f("ix_care_recipients_family_admin_id"), table_name="care_recipients")
    op.drop_table("care_recipients")

    care_log_audit_action_enum.drop(op.get_bind(), checkfirst=True)
    care_log_status_enum.drop(op.get_bind(), checkfirst=True)
