"""initial classroom schema

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = "0001_initial_schema"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

UUID = postgresql.UUID(as_uuid=True)

user_role = sa.Enum("STUDENT", "TEACHER", "ADMIN", name="userrole")
notification_type = sa.Enum("ASSIGNMENT", "SUBMISSION", "MEETING", "SYSTEM", name="notificationtype")
learning_method = sa.Enum("ONLINE", "IN_PERSON", "BLENDED", name="learningmethod")
assignment_type = sa.Enum("essay", "exercise", "quiz", "recording", "other", name="assignmenttype")
submission_status = sa.Enum("draft", "submitted", "graded", name="submissionstatus")
attendance_status = sa.Enum("present", "absent", name="attendancestatus")
meeting_type = sa.Enum("ONE_ON_ONE", "GROUP", name="meetingtype")
meeting_status = sa.Enum("open", "confirmed", "cancelled", "completed", name="meetingstatus")


def _timestamps(updated: bool = True):
    columns = [sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now())]
    if updated:
        columns.append(sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True))
    return columns


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "users",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("email", sa.String(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("password_hash", sa.String(), nullable=False),
        sa.Column("role", user_role, nullable=False),
        sa.Column("phone", sa.String(), nullable=True),
        sa.Column("avatar_url", sa.String(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=True),
        sa.Column("failed_login_attempts", sa.Integer(), nullable=True),
        sa.Column("locked_until", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_login", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "user_sessions",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("user_id", UUID, sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("refresh_token", sa.String(), nullable=False),
        sa.Column("user_agent", sa.String(), nullable=True),
        sa.Column("ip_address", sa.String(), nullable=True),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        *_timestamps(updated=False),
    )
    op.create_index("ix_user_sessions_refresh_token", "user_sessions", ["refresh_token"], unique=True)

    op.create_table(
        "user_notification_preferences",
        sa.Column("id", UUID, primary_key=True),
        sa.Column(
            "user_id", UUID, sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True
        ),
        sa.Column("email_assignments", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("email_announcements", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("email_messages", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("email_reminders", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("push_assignments", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("push_announcements", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("push_messages", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("push_reminders", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )

    op.create_table(
        "notifications",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("user_id", UUID, sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("type", notification_type, nullable=False),
        sa.Column("related_id", UUID, nullable=True),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(updated=False),
    )
    op.create_index("ix_notifications_user_id", "notifications", ["user_id"])

    op.create_table(
        "classes",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("teacher_id", UUID, sa.ForeignKey("users.id"), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("learning_method", learning_method, nullable=True),
        sa.Column("max_students", sa.Integer(), nullable=False, server_default="30"),
        sa.Column("tags", sa.JSON(), nullable=True),
        sa.Column("schedule", sa.String(), nullable=True),
        sa.Column("image", sa.String(), nullable=True),
        sa.Column("meeting_url", sa.String(), nullable=True),
        sa.Column("contact_group", sa.String(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("end_date >= start_date", name="ck_classes_date_range"),
    )
    op.create_index("ix_classes_teacher_id", "classes", ["teacher_id"])

    op.create_table(
        "class_enrollments",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("class_id", UUID, sa.ForeignKey("classes.id", ondelete="CASCADE"), nullable=False),
        sa.Column("student_id", UUID, sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("enrolled_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("class_id", "student_id", name="uq_class_enrollment"),
    )
    op.create_index("ix_class_enrollments_class_id", "class_enrollments", ["class_id"])
    op.create_index("ix_class_enrollments_student_id", "class_enrollments", ["student_id"])

    op.create_table(
        "assignments",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("class_id", UUID, sa.ForeignKey("classes.id", ondelete="CASCADE"), nullable=False),
        sa.Column("teacher_id", UUID, sa.ForeignKey("users.id"), nullable=False),
        sa.Column("due_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("points", sa.Integer(), nullable=False, server_default="100"),
        sa.Column("assignment_type", assignment_type, nullable=False),
        *_timestamps(),
        sa.CheckConstraint("points >= 0", name="ck_assignments_points"),
    )
    op.create_index("ix_assignments_class_id", "assignments", ["class_id"])

    op.create_table(
        "assignment_files",
        sa.Column("id", UUID, primary_key=True),
        sa.Column(
            "assignment_id", UUID, sa.ForeignKey("assignments.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("file_name", sa.String(), nullable=False),
        sa.Column("file_size", sa.Integer(), nullable=False),
        sa.Column("file_type", sa.String(), nullable=True),
        sa.Column("file_url", sa.String(), nullable=False),
        sa.Column("storage_path", sa.String(), nullable=False),
        *_timestamps(),
    )

    op.create_table(
        "assignment_submissions",
        sa.Column("id", UUID, primary_key=True),
        sa.Column(
            "assignment_id", UUID, sa.ForeignKey("assignments.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("student_id", UUID, sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("content", sa.Text(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("status", submission_status, nullable=False),
        sa.Column("submitted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("grade", sa.Float(), nullable=True),
        sa.Column("feedback", sa.Text(), nullable=True),
        sa.Column("graded_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("assignment_id", "student_id", name="uq_submission_per_student"),
    )
    op.create_index("ix_assignment_submissions_assignment_id", "assignment_submissions", ["assignment_id"])
    op.create_index("ix_assignment_submissions_student_id", "assignment_submissions", ["student_id"])

    op.create_table(
        "submission_files",
        sa.Column("id", UUID, primary_key=True),
        sa.Column(
            "submission_id",
            UUID,
            sa.ForeignKey("assignment_submissions.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("file_name", sa.String(), nullable=False),
        sa.Column("file_size", sa.Integer(), nullable=False),
        sa.Column("file_type", sa.String(), nullable=True),
        sa.Column("file_url", sa.String(), nullable=False),
        sa.Column("storage_path", sa.String(), nullable=False),
        *_timestamps(),
    )

    op.create_table(
        "attendance_records",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("class_id", UUID, sa.ForeignKey("classes.id", ondelete="CASCADE"), nullable=False),
        sa.Column("student_id", UUID, sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("status", attendance_status, nullable=False),
        sa.Column("marked_by", UUID, sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        *_timestamps(updated=False),
        sa.UniqueConstraint("class_id", "student_id", "date", name="uq_attendance_per_day"),
    )
    op.create_index("ix_attendance_records_class_id", "attendance_records", ["class_id"])

    op.create_table(
        "course_materials",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("class_id", UUID, sa.ForeignKey("classes.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("file_name", sa.String(), nullable=False),
        sa.Column("file_type", sa.String(), nullable=False),
        sa.Column("file_size", sa.Integer(), nullable=False),
        sa.Column("file_url", sa.String(), nullable=False),
        sa.Column("storage_path", sa.String(), nullable=False),
        sa.Column("uploaded_by", UUID, sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        *_timestamps(updated=False),
    )
    op.create_index("ix_course_materials_class_id", "course_materials", ["class_id"])

    op.create_table(
        "meetings",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("type", meeting_type, nullable=False),
        sa.Column("start_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("is_online", sa.Boolean(), nullable=True),
        sa.Column("meeting_link", sa.String(), nullable=True),
        sa.Column("location", sa.String(), nullable=True),
        sa.Column("status", meeting_status, nullable=False),
        sa.Column("max_participants", sa.Integer(), nullable=False),
        sa.Column("teacher_id", UUID, sa.ForeignKey("users.id"), nullable=False),
        sa.Column("class_id", UUID, sa.ForeignKey("classes.id", ondelete="CASCADE"), nullable=True),
        sa.Column("student_id", UUID, sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        *_timestamps(updated=False),
        sa.CheckConstraint("end_time > start_time", name="ck_meetings_time_range"),
    )
    op.create_index("ix_meetings_start_time", "meetings", ["start_time"])
    op.create_index("ix_meetings_teacher_id", "meetings", ["teacher_id"])

    op.create_table(
        "meeting_participants",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("meeting_id", UUID, sa.ForeignKey("meetings.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", UUID, sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("joined_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("meeting_id", "user_id", name="uq_meeting_participant"),
    )


def downgrade() -> None:
    """Downgrade schema."""
    for table in (
        "meeting_participants",
        "meetings",
        "course_materials",
        "attendance_records",
        "submission_files",
        "assignment_submissions",
        "assignment_files",
        "assignments",
        "class_enrollments",
        "classes",
        "notifications",
        "user_notification_preferences",
        "user_sessions",
        "users",
    ):
        op.drop_table(table)

    bind = op.get_bind()
    for enum in (
        meeting_status,
        meeting_type,
        attendance_status,
        submission_status,
        assignment_type,
        learning_method,
        notification_type,
        user_role,
    ):
        enum.drop(bind, checkfirst=True)
