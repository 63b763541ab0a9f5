from __future__ import annotations

from trivia.extensions import db
from trivia.models import _utcnow


class JeopardyGame(db.Model):
    __tablename__ = "jeopardy_games"

    id = db.Column(db.String(64), primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), index=True, nullable=False)
    username = db.Column(db.String(80), nullable=True)
    board_size = db.Column(db.Integer, index=True, nullable=False)  # 3 or 5 categories
    categories = db.Column(db.JSON, nullable=False)
    final_score = db.Column(db.Integer, index=True, nullable=False, default=0)  # may be negative
    questions_answered = db.Column(db.Integer, nullable=False, default=0)
    correct_answers = db.Column(db.Integer, nullable=False, default=0)
    questions_attempted = db.Column(db.JSON, nullable=False, default=list)
    completed = db.Column(db.Boolean, index=True, nullable=False, default=False)
    time_played_seconds = db.Column(db.Integer, nullable=False, default=0)
    started_at = db.Column(db.DateTime(timezone=True), nullable=False)
    ended_at = db.Column(db.DateTime(timezone=True), default=_utcnow, nullable=False)

    def to_payload(self) -> dict:
        return {
            "game_id": self.id,
            "user_id": self.user_id,
            "username": self.username,
            "board_size": self.board_size,
            "categories": self.categories or [],
            "final_score": self.final_score,
            "questions_answered": self.questions_answered,
            "correct_answers": self.correct_answers,
            "questions_attempted": self.questions_attempted or [],
            "completed": self.completed,
            "time_played_seconds": self.time_played_seconds,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "ended_at": self.ended_at.isoformat() if self.ended_at else None,
        }
