"""create trivia tables

Revision ID: 2026_10_19_01
Revises: 
Create Date: 2026-10-19
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "2026_10_19_01"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("username", sa.String(length=80), nullable=False),
        sa.Column("email", sa.String(length=120), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("username"),
        sa.UniqueConstraint("email"),
    )

    op.create_table(
        "answer_key_entries",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("container_id", sa.String(length=80), nullable=False),
        sa.Column("question_id", sa.String(length=64), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("question_type", sa.String(length=20), nullable=False),
        sa.Column("answer", sa.Text(), nullable=False),
        sa.Column("explanation", sa.Text(), nullable=True),
        sa.Column("prompt", sa.Text(), nullable=True),
        sa.Column("public_json", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("container_id", "question_id", name="uq_answer_key_container_question"),
    )
    op.create_index("ix_answer_key_entries_container_id", "answer_key_entries", ["container_id"])
    op.create_index("ix_answer_key_entries_expires_at", "answer_key_entries", ["expires_at"])

    op.create_table(
        "quiz_evaluations",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("evaluation_scope", sa.String(length=80), nullable=False),
        sa.Column("question_id", sa.String(length=64), nullable=False),
        sa.Column("container_id", sa.String(length=80), nullable=False),
        sa.Column("user_response", sa.Text(), nullable=False),
        sa.Column("is_correct", sa.Boolean(), nullable=True),
        sa.Column("canonical_answer", sa.Text(), nullable=True),
        sa.Column("explanation", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("evaluated_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("evaluation_scope", "question_id", name="uq_quiz_evaluation_scope_question"),
    )
    op.create_index("ix_quiz_evaluations_evaluation_scope", "quiz_evaluations", ["evaluation_scope"])

    op.create_table(
        "active_games",
        sa.Column("id", sa.String(length=64), primary_key=True, nullable=False),
        sa.Column("kind", sa.String(length=20), nullable=False),
        sa.Column("owner_id", sa.String(length=80), nullable=False),
        sa.Column("data", sa.JSON(), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_active_games_kind", "active_games", ["kind"])
    op.create_index("ix_active_games_owner_id", "active_games", ["owner_id"])
    op.create_index("ix_active_games_expires_at", "active_games", ["expires_at"])

    op.create_table(
        "quiz_sessions",
        sa.Column("id", sa.String(length=64), primary_key=True, nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("username", sa.String(length=80), nullable=True),
        sa.Column("game_mode", sa.String(length=20), nullable=False),
        sa.Column("category", sa.String(length=120), nullable=True),
        sa.Column("title", sa.String(length=200), nullable=True),
        sa.Column("num_questions", sa.Integer(), nullable=False),
        sa.Column("correct_answers", sa.Integer(), nullable=False),
        sa.Column("score_percentage", sa.Float(), nullable=False),
        sa.Column("time_taken", sa.Integer(), nullable=True),
        sa.Column("is_daily", sa.Boolean(), nullable=False),
        sa.Column("daily_date", sa.String(length=10), nullable=True),
        sa.Column("faceoff_share_code", sa.String(length=12), nullable=True),
        sa.Column("questions", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_quiz_sessions_user_id", "quiz_sessions", ["user_id"])
    op.create_index("ix_quiz_sessions_game_mode", "quiz_sessions", ["game_mode"])
    op.create_index("ix_quiz_sessions_faceoff_share_code", "quiz_sessions", ["faceoff_share_code"])
    op.create_index("ix_quiz_sessions_created_at", "quiz_sessions", ["created_at"])

    op.create_table(
        "survival_runs",
        sa.Column("id", sa.String(length=64), primary_key=True, nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("username", sa.String(length=80), nullable=True),
        sa.Column("mode", sa.String(length=10), nullable=False),
        sa.Column("category", sa.String(length=120), nullable=True),
        sa.Column("streak", sa.Integer(), nullable=False),
        sa.Column("categories_seen", sa.JSON(), nullable=False),
        sa.Column("questions_attempted", sa.JSON(), nullable=False),
        sa.Column("end_reason", sa.String(length=20), nullable=False),
        sa.Column("time_played_seconds", sa.Integer(), nullable=False),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("ended_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_survival_runs_user_id", "survival_runs", ["user_id"])
    op.create_index("ix_survival_runs_mode", "survival_runs", ["mode"])
    op.create_index("ix_survival_runs_category", "survival_runs", ["category"])
    op.create_index("ix_survival_runs_streak", "survival_runs", ["streak"])

    op.create_table(
        "jeopardy_games",
        sa.Column("id", sa.String(length=64), primary_key=True, nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("username", sa.String(length=80), nullable=True),
        sa.Column("board_size", sa.Integer(), nullable=False),
        sa.Column("categories", sa.JSON(), nullable=False),
        sa.Column("final_score", sa.Integer(), nullable=False),
        sa.Column("questions_answered", sa.Integer(), nullable=False),
        sa.Column("correct_answers", sa.Integer(), nullable=False),
        sa.Column("questions_attempted", sa.JSON(), nullable=False),
        sa.Column("completed", sa.Boolean(), nullable=False),
        sa.Column("time_played_seconds", sa.Integer(), nullable=False),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("ended_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_jeopardy_games_user_id", "jeopardy_games", ["user_id"])
    op.create_index("ix_jeopardy_games_board_size", "jeopardy_games", ["board_size"])
    op.create_index("ix_jeopardy_games_final_score", "jeopardy_games", ["final_score"])
    op.create_index("ix_jeopardy_games_completed", "jeopardy_games", ["completed"])

    op.create_table(
        "tower_progress",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("username", sa.String(length=80), nullable=True),
        sa.Column("current_floor", sa.Integer(), nullable=False),
        sa.Column("highest_floor", sa.Integer(), nullable=False),
        sa.Column("total_questions", sa.Integer(), nullable=False),
        sa.Column("total_correct", sa.Integer(), nullable=False),
        sa.Column("floors_passed", sa.Integer(), nullable=False),
        sa.Column("perfect_floors", sa.JSON(), nullable=False),
        sa.Column("perfect_completions", sa.Integer(), nullable=False),
        sa.Column("consecutive_perfect", sa.Integer(), nullable=False),
        sa.Column("clutch_passes", sa.Integer(), nullable=False),
        sa.Column("floor_attempts", sa.JSON(), nullable=False),
        sa.Column("category_stats", sa.JSON(), nullable=False),
        sa.Column("version_id", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_tower_progress_user_id", "tower_progress", ["user_id"], unique=True)
    op.create_index("ix_tower_progress_highest_floor", "tower_progress", ["highest_floor"])

    op.create_table(
        "tower_floor_attempts",
        sa.Column("id", sa.String(length=64), primary_key=True, nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("floor", sa.Integer(), nullable=False),
        sa.Column("tier", sa.Integer(), nullable=False),
        sa.Column("category", sa.String(length=120), nullable=False),
        sa.Column("score", sa.Integer(), nullable=False),
        sa.Column("total", sa.Integer(), nullable=False),
        sa.Column("passed", sa.Boolean(), nullable=False),
        sa.Column("perfect", sa.Boolean(), nullable=False),
        sa.Column("time_taken", sa.Integer(), nullable=True),
        sa.Column("questions", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_tower_floor_attempts_user_id", "tower_floor_attempts", ["user_id"])
    op.create_index("ix_tower_floor_attempts_floor", "tower_floor_attempts", ["floor"])
    op.create_index("ix_tower_floor_attempts_created_at", "tower_floor_attempts", ["created_at"])

    op.create_table(
        "tower_achievements",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("code", sa.String(length=40), nullable=False),
        sa.Column("unlocked_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("user_id", "code", name="uq_tower_achievement_user_code"),
    )
    op.create_index("ix_tower_achievements_user_id", "tower_achievements", ["user_id"])

    op.create_table(
        "faceoff_challenges",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("share_code", sa.String(length=12), nullable=False),
        sa.Column("creator_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("creator_username", sa.String(length=80), nullable=True),
        sa.Column("source_session_id", sa.String(length=64), nullable=False),
        sa.Column("title", sa.String(length=200), nullable=True),
        sa.Column("category", sa.String(length=120), nullable=True),
        sa.Column("quiz_data", sa.JSON(), nullable=False),
        sa.Column("settings", sa.JSON(), nullable=False),
        sa.Column("num_questions", sa.Integer(), nullable=False),
        sa.Column("creator_score", sa.Integer(), nullable=False),
        sa.Column("creator_time_taken", sa.Integer(), nullable=True),
        sa.Column("times_played", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("source_session_id"),
    )
    op.create_index("ix_faceoff_challenges_share_code", "faceoff_challenges", ["share_code"], unique=True)
    op.create_index("ix_faceoff_challenges_creator_id", "faceoff_challenges", ["creator_id"])
    op.create_index("ix_faceoff_challenges_expires_at", "faceoff_challenges", ["expires_at"])


def downgrade():
    op.drop_table("faceoff_challenges")
    op.drop_table("tower_achievements")
    op.drop_table("tower_floor_attempts")
    op.drop_table("tower_progress")
    op.drop_table("jeopardy_games")
    op.drop_table("survival_runs")
    op.drop_table("quiz_sessions")
    op.drop_table("active_games")
    op.drop_table("quiz_evaluations")
    op.drop_table("answer_key_entries")
    op.drop_table("users")
