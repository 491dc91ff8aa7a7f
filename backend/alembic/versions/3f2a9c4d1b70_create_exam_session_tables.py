"""Create exam session, submission, question bank and config tables

Revision ID: 3f2a9c4d1b70
Revises:
Create Date: 2026-10-18 09:00:00.000000

exam_sessions carries UNIQUE(email, phone): one attempt per candidate ever,
and the constraint is what resolves concurrent starts for a new identity.
submissions.exam_session_id is unique so a session can never be promoted
twice.
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "3f2a9c4d1b70"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

session_status = sa.Enum("IN_PROGRESS", "PASSED", "FAILED", name="sessionstatus")
submission_status = sa.Enum(
    "DRAFT",
    "SUBMITTED",
    "UNDER_REVIEW",
    "APPROVED",
    "REJECTED",
    name="submissionstatus",
)
difficulty_level = sa.Enum("EASY", "MEDIUM", "HARD", name="difficultylevel")


def upgrade() -> None:
    op.create_table(
        "exam_sessions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("session_id", sa.String(length=36), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("phone", sa.String(length=10), nullable=False),
        sa.Column("current_step", sa.Integer(), nullable=False),
        sa.Column("form_data", sa.JSON(), nullable=False),
        sa.Column("mcq_score", sa.JSON(), nullable=True),
        sa.Column("status", session_status, nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("submission_id", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("version_id", sa.Integer(), nullable=False),
        sa.UniqueConstraint("email", "phone", name="uq_exam_sessions_identity"),
        sa.CheckConstraint(
            "current_step >= 1 AND current_step <= 4",
            name="ck_exam_sessions_current_step",
        ),
    )
    op.create_index("ix_exam_sessions_id", "exam_sessions", ["id"])
    op.create_index(
        "ix_exam_sessions_session_id", "exam_sessions", ["session_id"], unique=True
    )
    op.create_index("ix_exam_sessions_status", "exam_sessions", ["status"])

    op.create_table(
        "submissions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "exam_session_id",
            sa.Integer(),
            sa.ForeignKey("exam_sessions.id"),
            nullable=False,
            unique=True,
        ),
        sa.Column("personal_info", sa.JSON(), nullable=False),
        sa.Column("project_details", sa.JSON(), nullable=False),
        sa.Column("mcq_answers", sa.JSON(), nullable=False),
        sa.Column("mcq_score", sa.JSON(), nullable=False),
        sa.Column("status", submission_status, nullable=False),
        sa.Column("submitted_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_submissions_id", "submissions", ["id"])
    op.create_index("ix_submissions_status", "submissions", ["status"])

    op.create_table(
        "mcq_questions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("question", sa.Text(), nullable=False),
        sa.Column("options", sa.JSON(), nullable=False),
        sa.Column("correct_answer", sa.Integer(), nullable=False),
        sa.Column("category", sa.String(length=100), nullable=False),
        sa.Column("difficulty", difficulty_level, nullable=False),
        sa.Column("points", sa.Integer(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("correct_answer >= 0", name="ck_mcq_questions_correct_answer"),
    )
    op.create_index("ix_mcq_questions_id", "mcq_questions", ["id"])
    op.create_index("ix_mcq_questions_is_active", "mcq_questions", ["is_active"])
    op.create_index(
        "ix_mcq_questions_category_active", "mcq_questions", ["category", "is_active"]
    )

    op.create_table(
        "system_config",
        sa.Column("key", sa.String(length=100), primary_key=True),
        sa.Column("value", sa.JSON(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )


def downgrade() -> None:
    op.drop_table("system_config")
    op.drop_index("ix_mcq_questions_category_active", table_name="mcq_questions")
    op.drop_index("ix_mcq_questions_is_active", table_name="mcq_questions")
    op.drop_index("ix_mcq_questions_id", table_name="mcq_questions")
    op.drop_table("mcq_questions")
    op.drop_index("ix_submissions_status", table_name="submissions")
    op.drop_index("ix_submissions_id", table_name="submissions")
    op.drop_table("submissions")
    op.drop_index("ix_exam_sessions_status", table_name="exam_sessions")
    op.drop_index("ix_exam_sessions_session_id", table_name="exam_sessions")
    op.drop_index("ix_exam_sessions_id", table_name="exam_sessions")
    op.drop_table("exam_sessions")
    session_status.drop(op.get_bind(), checkfirst=True)
    submission_status.drop(op.get_bind(), checkfirst=True)
    difficulty_level.drop(op.get_bind(), checkfirst=True)
