from __future__ import annotations

from trivia.extensions import db
from trivia.models import _utcnow


class FaceoffChallenge(db.Model):
    """A frozen quiz shared by code. Never edited after creation except for the play counter."""

    __tablename__ = "faceoff_challenges"

    id = db.Column(db.Integer, primary_key=True)
    share_code = db.Column(db.String(12), unique=True, index=True, nullable=False)
    creator_id = db.Column(db.Integer, db.ForeignKey("users.id"), index=True, nullable=False)
    creator_username = db.Column(db.String(80), nullable=True)
    source_session_id = db.Column(db.String(64), unique=True, nullable=False)
    title = db.Column(db.String(200), nullable=True)
    category = db.Column(db.String(120), nullable=True)
    quiz_data = db.Column(db.JSON, nullable=False)  # includes answers: server side only
    settings = db.Column(db.JSON, nullable=False, default=dict)
    num_questions = db.Column(db.Integer, nullable=False)
    creator_score = db.Column(db.Integer, nullable=False)
    creator_time_taken = db.Column(db.Integer, nullable=True)
    times_played = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow, nullable=False)
    expires_at = db.Column(db.DateTime(timezone=True), index=True, nullable=False)

    def public_questions(self) -> list:
        hidden = {"correct_answer", "explanation"}
        return [{k: v for k, v in q.items() if k not in hidden} for q in (self.quiz_data or [])]

    def to_payload(self) -> dict:
        return {
            "share_code": self.share_code,
            "creator_username": self.creator_username,
            "title": self.title,
            "category": self.category,
            "settings": self.settings or {},
            "num_questions": self.num_questions,
            "creator_score": self.creator_score,
            "creator_time_taken": self.creator_time_taken,
            "times_played": self.times_played,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "expires_at": self.expires_at.isoformat() if self.expires_at else None,
        }
