# trivia/models.py
from __future__ import annotations

from datetime import datetime, timezone

from flask_login import UserMixin

from trivia.extensions import db, login_manager


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(db.Model, UserMixin):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(80), unique=True, nullable=False)
    email = db.Column(db.String(120), unique=True, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow, nullable=False)

    def __repr__(self) -> str:
        return f"<User {self.username}>"


@login_manager.user_loader
def load_user(user_id):
    try:
        return db.session.get(User, int(user_id))
    except (TypeError, ValueError):
        return None


class AnswerKeyEntry(db.Model):
    """One server-held answer. Never serialized to the client."""

    __tablename__ = "answer_key_entries"
    __table_args__ = (
        db.UniqueConstraint("container_id", "question_id", name="uq_answer_key_container_question"),
    )

    id = db.Column(db.Integer, primary_key=True)
    container_id = db.Column(db.String(80), index=True, nullable=False)
    question_id = db.Column(db.String(64), nullable=False)
    position = db.Column(db.Integer, nullable=False, default=0)
    question_type = db.Column(db.String(20), nullable=False)
    answer = db.Column(db.Text, nullable=False)
    explanation = db.Column(db.Text, nullable=True)
    prompt = db.Column(db.Text, nullable=True)
    # public payload (choices, category, difficulty) kept for faceoff snapshots
    public_json = db.Column(db.JSON, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow, nullable=False)
    expires_at = db.Column(db.DateTime(timezone=True), index=True, nullable=False)


class QuizEvaluation(db.Model):
    __tablename__ = "quiz_evaluations"
    __table_args__ = (
        db.UniqueConstraint("evaluation_scope", "question_id", name="uq_quiz_evaluation_scope_question"),
    )

    id = db.Column(db.Integer, primary_key=True)
    evaluation_scope = db.Column(db.String(80), index=True, nullable=False)
    question_id = db.Column(db.String(64), nullable=False)
    container_id = db.Column(db.String(80), nullable=False)
    user_response = db.Column(db.Text, nullable=False, default="")
    is_correct = db.Column(db.Boolean, nullable=True)  # NULL until the verdict is recorded
    canonical_answer = db.Column(db.Text, nullable=True)
    explanation = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow, nullable=False)
    evaluated_at = db.Column(db.DateTime(timezone=True), nullable=True)


class ActiveGame(db.Model):
    """In-flight run/game/play state, addressed by an opaque id with a bounded lifetime."""

    __tablename__ = "active_games"

    id = db.Column(db.String(64), primary_key=True)
    kind = db.Column(db.String(20), index=True, nullable=False)  # survival|jeopardy|tower|quiz|faceoff
    owner_id = db.Column(db.String(80), index=True, nullable=False)
    data = db.Column(db.JSON, nullable=False)
    version = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, nullable=False)
    expires_at = db.Column(db.DateTime(timezone=True), index=True, nullable=False)


class QuizSession(db.Model):
    """Completed play history. Written once, never updated."""

    __tablename__ = "quiz_sessions"

    id = db.Column(db.String(64), primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), index=True, nullable=True)
    username = db.Column(db.String(80), nullable=True)
    game_mode = db.Column(db.String(20), index=True, nullable=False, default="practice")
    category = db.Column(db.String(120), nullable=True)
    title = db.Column(db.String(200), nullable=True)
    num_questions = db.Column(db.Integer, nullable=False, default=0)
    correct_answers = db.Column(db.Integer, nullable=False, default=0)
    score_percentage = db.Column(db.Float, nullable=False, default=0.0)
    time_taken = db.Column(db.Integer, nullable=True)  # seconds
    is_daily = db.Column(db.Boolean, nullable=False, default=False)
    daily_date = db.Column(db.String(10), nullable=True)  # YYYY-MM-DD
    faceoff_share_code = db.Column(db.String(12), index=True, nullable=True)
    questions = db.Column(db.JSON, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow, index=True, nullable=False)

    def to_payload(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "username": self.username,
            "game_mode": self.game_mode,
            "category": self.category,
            "title": self.title,
            "num_questions": self.num_questions,
            "correct_answers": self.correct_answers,
            "score_percentage": self.score_percentage,
            "time_taken": self.time_taken,
            "is_daily": self.is_daily,
            "daily_date": self.daily_date,
            "faceoff_share_code": self.faceoff_share_code,
            "questions": self.questions or [],
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
