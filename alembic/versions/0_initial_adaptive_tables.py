"""Initial migration - attempts, topic mastery, difficulty states, completion

Revision ID: 0_initial
Revises: 
Create Date: 2026-10-17 00:00:00.000000
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '0_initial'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

quiz_kind_enum = postgresql.ENUM('NORMAL', 'AI', name='quiz_kind_enum', create_type=False)
difficulty_level_enum = postgresql.ENUM(
    'BEGINNER', 'INTERMEDIATE', 'ADVANCED', name='difficulty_level_enum', create_type=False
)
trend_enum = postgresql.ENUM('IMPROVING', 'DECLINING', 'STABLE', name='trend_enum', create_type=False)


def upgrade() -> None:
    # ── Create enums ──────────────────────────────────────────────────
    op.execute("""
        DO $$ BEGIN
            CREATE TYPE quiz_kind_enum AS ENUM ('NORMAL', 'AI');
        EXCEPTION WHEN duplicate_object THEN null;
        END $$;
    """)
    op.execute("""
        DO $$ BEGIN
            CREATE TYPE difficulty_level_enum AS ENUM ('BEGINNER', 'INTERMEDIATE', 'ADVANCED');
        EXCEPTION WHEN duplicate_object THEN null;
        END $$;
    """)
    op.execute("""
        DO $$ BEGIN
            CREATE TYPE trend_enum AS ENUM ('IMPROVING', 'DECLINING', 'STABLE');
        EXCEPTION WHEN duplicate_object THEN null;
        END $$;
    """)

    # ── attempts table ────────────────────────────────────────────────
    op.create_table(
        'attempts',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('student_id', sa.String(64), nullable=False),
        sa.Column('course_id', sa.String(64), nullable=False),
        sa.Column('topic_name', sa.String(200), nullable=False),
        sa.Column('quiz_kind', quiz_kind_enum, nullable=False),
        sa.Column('quiz_id', sa.String(64), nullable=True),
        sa.Column('score', sa.Integer(), nullable=False),
        sa.Column('total_questions', sa.Integer(), nullable=False),
        sa.Column('difficulty_at_attempt', difficulty_level_enum, nullable=False),
        sa.Column('time_spent_seconds', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('attempted_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('recorded_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_attempts_student_course', 'attempts', ['student_id', 'course_id'])

    # ── topic_mastery table ───────────────────────────────────────────
    op.create_table(
        'topic_mastery',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('student_id', sa.String(64), nullable=False),
        sa.Column('course_id', sa.String(64), nullable=False),
        sa.Column('topic_name', sa.String(200), nullable=False),
        sa.Column('attempt_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('correct_total', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('questions_total', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('average_score_percent', sa.Float(), nullable=False, server_default='0'),
        sa.Column('time_spent_seconds_total', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('trend', trend_enum, nullable=False, server_default='STABLE'),
        sa.Column('weak_areas_json', sa.Text(), nullable=False, server_default='[]'),
        sa.Column('last_attempted_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('student_id', 'course_id', 'topic_name', name='uq_student_course_topic'),
    )

    # ── difficulty_states table ───────────────────────────────────────
    op.create_table(
        'difficulty_states',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('student_id', sa.String(64), nullable=False),
        sa.Column('course_id', sa.String(64), nullable=False),
        sa.Column('current_level', difficulty_level_enum, nullable=False, server_default='BEGINNER'),
        sa.Column('consecutive_high_scores', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('consecutive_low_scores', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('version', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('enrolled_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('student_id', 'course_id', name='uq_student_course_state'),
    )
    op.create_index('ix_difficulty_states_student_id', 'difficulty_states', ['student_id'])

    # ── topic_completion table ────────────────────────────────────────
    op.create_table(
        'topic_completion',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('student_id', sa.String(64), nullable=False),
        sa.Column('course_id', sa.String(64), nullable=False),
        sa.Column('topic_name', sa.String(200), nullable=False),
        sa.Column('completion_percent', sa.Float(), nullable=False, server_default='0'),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('student_id', 'course_id', 'topic_name', name='uq_student_course_completion'),
    )


def downgrade() -> None:
    op.drop_table('topic_completion')
    op.drop_index('ix_difficulty_states_student_id', table_name='difficulty_states')
    op.drop_table('difficulty_states')
    op.drop_table('topic_mastery')
    op.drop_index('ix_attempts_student_course', table_name='attempts')
    op.drop_table('attempts')
    op.execute("DROP TYPE IF EXISTS trend_enum")
    op.execute("DROP TYPE IF EXISTS difficulty_level_enum")
    op.execute("DROP TYPE IF EXISTS quiz_kind_enum")
