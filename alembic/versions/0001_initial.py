"""Initial HRMS schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-18
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


role_enum = sa.Enum("ADMIN", "HR", "EMPLOYEE", name="role")
leave_kind_enum = sa.Enum("REQUEST", "ALLOTMENT", "PENALTY", name="leave_kind")
leave_status_enum = sa.Enum("PENDING", "APPROVED", "REJECTED", name="leave_status")
half_day_type_enum = sa.Enum("FIRST_HALF", "SECOND_HALF", name="half_day_type")
attendance_status_enum = sa.Enum("PRESENT", "ABSENT", "LATE", "HALF_DAY", name="attendance_status")
finance_status_enum = sa.Enum("PENDING", "PAID", name="finance_status")
resignation_status_enum = sa.Enum(
    "PENDING",
    "APPROVED",
    "REJECTED",
    "IN_PROGRESS",
    "COMPLETED",
    name="resignation_status",
)
fnf_status_enum = sa.Enum("PENDING", "PROCESSING", "COMPLETED", name="fnf_status")
notification_type_enum = sa.Enum(
    "LEAVE_REQUESTED",
    "LEAVE_APPROVED",
    "LEAVE_REJECTED",
    "LEAVE_ALLOTTED",
    "PENALTY_APPLIED",
    "RESIGNATION_SUBMITTED",
    "RESIGNATION_DECIDED",
    "ANNOUNCEMENT",
    "ACCOUNT_APPROVED",
    "FEED_MENTION",
    "GENERAL",
    name="notification_type",
)

ALL_ENUMS = (
    role_enum,
    leave_kind_enum,
    leave_status_enum,
    half_day_type_enum,
    attendance_status_enum,
    finance_status_enum,
    resignation_status_enum,
    fnf_status_enum,
    notification_type_enum,
)

json_document = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("hashed_password", sa.String(length=255), nullable=False),
        sa.Column("full_name", sa.String(length=255), nullable=False),
        sa.Column("role", role_enum, nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("is_approved", sa.Boolean(), nullable=False),
        sa.Column("email_verified", sa.Boolean(), nullable=False),
        sa.Column("verification_token", sa.String(length=128), nullable=True),
        sa.Column("verification_token_expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("reset_token", sa.String(length=128), nullable=True),
        sa.Column("reset_token_expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_login_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("emp_id", sa.String(length=32), nullable=True),
        sa.Column("joining_year", sa.Integer(), nullable=True),
        sa.Column("designation", sa.String(length=120), nullable=True),
        sa.Column("mobile_number", sa.String(length=20), nullable=True),
        sa.Column("date_of_birth", sa.Date(), nullable=True),
        sa.Column("profile_image", sa.String(length=500), nullable=True),
        sa.Column("clock_in_time", sa.String(length=8), nullable=True),
        sa.Column("bank_name", sa.String(length=120), nullable=True),
        sa.Column("account_number", sa.String(length=40), nullable=True),
        sa.Column("ifsc_code", sa.String(length=20), nullable=True),
        sa.Column("pan_number", sa.String(length=20), nullable=True),
        sa.Column("aadhar_number", sa.String(length=20), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_users_id", "users", ["id"])
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_role", "users", ["role"])
    op.create_index("ix_users_is_active", "users", ["is_active"])
    op.create_index("ix_users_is_approved", "users", ["is_approved"])
    op.create_index("ix_users_verification_token", "users", ["verification_token"])
    op.create_index("ix_users_reset_token", "users", ["reset_token"])
    op.create_index("ix_users_emp_id", "users", ["emp_id"], unique=True)

    op.create_table(
        "leave_types",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("max_days", sa.Float(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("is_short_day", sa.Boolean(), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_leave_types_id", "leave_types", ["id"])
    op.create_index("ix_leave_types_name", "leave_types", ["name"], unique=True)

    op.create_table(
        "leaves",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("leave_type_id", sa.Integer(), sa.ForeignKey("leave_types.id"), nullable=False),
        sa.Column("kind", leave_kind_enum, nullable=False),
        sa.Column("status", leave_status_enum, nullable=False),
        sa.Column("days", sa.Float(), nullable=False),
        sa.Column("hours", sa.Integer(), nullable=False),
        sa.Column("minutes", sa.Integer(), nullable=False),
        sa.Column("remaining_days", sa.Float(), nullable=True),
        sa.Column("remaining_hours", sa.Integer(), nullable=True),
        sa.Column("remaining_minutes", sa.Integer(), nullable=True),
        sa.Column("carry_forward", sa.Boolean(), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("half_day_type", half_day_type_enum, nullable=True),
        sa.Column("short_day_time", sa.String(length=20), nullable=True),
        sa.Column("medical_report", sa.String(length=500), nullable=True),
        sa.Column("approved_by_user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("rejection_reason", sa.Text(), nullable=True),
        sa.Column("allotted_by_user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("allotted_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_leaves_id", "leaves", ["id"])
    op.create_index("ix_leaves_user_id", "leaves", ["user_id"])
    op.create_index("ix_leaves_leave_type_id", "leaves", ["leave_type_id"])
    op.create_index("ix_leaves_kind", "leaves", ["kind"])
    op.create_index("ix_leaves_status", "leaves", ["status"])

    op.create_table(
        "attendance",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("work_date", sa.Date(), nullable=False),
        sa.Column("clock_in", sa.DateTime(timezone=True), nullable=False),
        sa.Column("clock_out", sa.DateTime(timezone=True), nullable=True),
        sa.Column("hours_worked", sa.Float(), nullable=True),
        sa.Column("status", attendance_status_enum, nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("user_id", "work_date", name="uq_attendance_user_work_date"),
    )
    op.create_index("ix_attendance_id", "attendance", ["id"])
    op.create_index("ix_attendance_user_id", "attendance", ["user_id"])
    op.create_index("ix_attendance_work_date", "attendance", ["work_date"])

    op.create_table(
        "penalties",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("penalty_date", sa.Date(), nullable=False),
        sa.Column("late_arrival_date", sa.Date(), nullable=False),
        sa.Column("clock_in_time", sa.String(length=8), nullable=False),
        sa.Column("time_limit", sa.String(length=8), nullable=False),
        sa.Column("max_late_days", sa.Integer(), nullable=False),
        sa.Column("late_arrival_count", sa.Integer(), nullable=False),
        sa.Column("leave_deducted", sa.Float(), nullable=False),
        sa.Column("leave_id", sa.Integer(), sa.ForeignKey("leaves.id", ondelete="SET NULL"), nullable=True),
        sa.Column("reason", sa.Text(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("user_id", "penalty_date", name="uq_penalties_user_penalty_date"),
    )
    op.create_index("ix_penalties_id", "penalties", ["id"])
    op.create_index("ix_penalties_user_id", "penalties", ["user_id"])
    op.create_index("ix_penalties_penalty_date", "penalties", ["penalty_date"])

    op.create_table(
        "finance_records",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("month", sa.Integer(), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("base_salary", sa.Numeric(12, 2), nullable=False),
        sa.Column("allowances", sa.Numeric(12, 2), nullable=False),
        sa.Column("deductions", sa.Numeric(12, 2), nullable=False),
        sa.Column("bonus", sa.Numeric(12, 2), nullable=False),
        sa.Column("total_salary", sa.Numeric(12, 2), nullable=False),
        sa.Column("status", finance_status_enum, nullable=False),
        sa.Column("paid_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("payslip_url", sa.String(length=500), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("user_id", "month", "year", name="uq_finance_records_user_period"),
    )
    op.create_index("ix_finance_records_id", "finance_records", ["id"])
    op.create_index("ix_finance_records_user_id", "finance_records", ["user_id"])

    op.create_table(
        "resignations",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("resignation_date", sa.Date(), nullable=False),
        sa.Column("reason", sa.Text(), nullable=False),
        sa.Column("feedback", sa.Text(), nullable=True),
        sa.Column("assets", json_document, nullable=False),
        sa.Column("status", resignation_status_enum, nullable=False),
        sa.Column("approved_by_user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("rejection_reason", sa.Text(), nullable=True),
        sa.Column("notice_period_start_date", sa.Date(), nullable=True),
        sa.Column("notice_period_end_date", sa.Date(), nullable=True),
        sa.Column("notice_period_complied", sa.Boolean(), nullable=False),
        sa.Column("knowledge_transfer_completed", sa.Boolean(), nullable=False),
        sa.Column("handover_notes", sa.Text(), nullable=True),
        sa.Column("handover_completed_date", sa.Date(), nullable=True),
        sa.Column("assets_returned", sa.Boolean(), nullable=False),
        sa.Column("assets_return_date", sa.Date(), nullable=True),
        sa.Column("assets_return_notes", sa.Text(), nullable=True),
        sa.Column("clearances", json_document, nullable=False),
        sa.Column("exit_interview_completed", sa.Boolean(), nullable=False),
        sa.Column("exit_interview_date", sa.Date(), nullable=True),
        sa.Column("exit_interview_feedback", sa.Text(), nullable=True),
        sa.Column("fnf_status", fnf_status_enum, nullable=False),
        sa.Column("fnf_amount", sa.Numeric(12, 2), nullable=True),
        sa.Column("fnf_processed_date", sa.Date(), nullable=True),
        sa.Column("fnf_notes", sa.Text(), nullable=True),
        sa.Column("exit_documents", json_document, nullable=False),
        sa.Column("system_access_deactivated", sa.Boolean(), nullable=False),
        sa.Column("system_access_deactivated_date", sa.Date(), nullable=True),
        sa.Column("exit_closed", sa.Boolean(), nullable=False),
        sa.Column("exit_closed_date", sa.Date(), nullable=True),
        sa.Column("exit_closed_by_user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_resignations_id", "resignations", ["id"])
    op.create_index("ix_resignations_user_id", "resignations", ["user_id"])
    op.create_index("ix_resignations_status", "resignations", ["status"])

    op.create_table(
        "notifications",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("type", notification_type_enum, nullable=False),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("leave_id", sa.Integer(), sa.ForeignKey("leaves.id", ondelete="SET NULL"), nullable=True),
        sa.Column("read_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("dismissed", sa.Boolean(), nullable=False),
        sa.Column("dismissed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("payload_json", sa.JSON(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_notifications_id", "notifications", ["id"])
    op.create_index("ix_notifications_user_id", "notifications", ["user_id"])
    op.create_index("ix_notifications_type", "notifications", ["type"])
    op.create_index("ix_notifications_read_at", "notifications", ["read_at"])
    op.create_index("ix_notifications_dismissed", "notifications", ["dismissed"])

    op.create_table(
        "announcements",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("announcement_date", sa.Date(), nullable=False),
        sa.Column("created_by_user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_announcements_id", "announcements", ["id"])
    op.create_index("ix_announcements_announcement_date", "announcements", ["announcement_date"])

    op.create_table(
        "announcement_views",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "announcement_id",
            sa.Integer(),
            sa.ForeignKey("announcements.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("view_count", sa.Integer(), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("announcement_id", "user_id", name="uq_announcement_views_announcement_user"),
    )
    op.create_index("ix_announcement_views_id", "announcement_views", ["id"])
    op.create_index("ix_announcement_views_announcement_id", "announcement_views", ["announcement_id"])
    op.create_index("ix_announcement_views_user_id", "announcement_views", ["user_id"])

    op.create_table(
        "teams",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("leader_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("created_by_user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_teams_id", "teams", ["id"])
    op.create_index("ix_teams_leader_id", "teams", ["leader_id"])

    op.create_table(
        "team_members",
        sa.Column("team_id", sa.Integer(), sa.ForeignKey("teams.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    )

    op.create_table(
        "feed_posts",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("author_user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_feed_posts_id", "feed_posts", ["id"])
    op.create_index("ix_feed_posts_author_user_id", "feed_posts", ["author_user_id"])

    op.create_table(
        "feed_post_mentions",
        sa.Column("post_id", sa.Integer(), sa.ForeignKey("feed_posts.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    )

    op.create_table(
        "counters",
        sa.Column("name", sa.String(length=100), primary_key=True),
        sa.Column("seq", sa.Integer(), nullable=False),
    )

    op.create_table(
        "system_config",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("config_key", sa.String(length=100), nullable=False),
        sa.Column("config_value", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_system_config_id", "system_config", ["id"])
    op.create_index("ix_system_config_config_key", "system_config", ["config_key"], unique=True)

    op.create_table(
        "activity_logs",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("actor_user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("type", sa.String(length=100), nullable=False),
        sa.Column("message", sa.Text(), nullable=True),
        sa.Column("payload_json", sa.JSON(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_activity_logs_id", "activity_logs", ["id"])
    op.create_index("ix_activity_logs_actor_user_id", "activity_logs", ["actor_user_id"])
    op.create_index("ix_activity_logs_type", "activity_logs", ["type"])


def downgrade() -> None:
    for table in (
        "activity_logs",
        "system_config",
        "counters",
        "feed_post_mentions",
        "feed_posts",
        "team_members",
        "teams",
        "announcement_views",
        "announcements",
        "notifications",
        "resignations",
        "finance_records",
        "penalties",
        "attendance",
        "leaves",
        "leave_types",
        "users",
    ):
        op.drop_table(table)

    bind = op.get_bind()
    if bind.dialect.name == "postgresql":
        for enum in ALL_ENUMS:
            enum.drop(bind, checkfirst=True)
