from __future__ import annotations

from trivia.extensions import db
from trivia.models import _utcnow


class SurvivalRun(db.Model):
    """A finished survival run. Append-only."""

    __tablename__ = "survival_runs"

    id = db.Column(db.String(64), primary_key=True)  # the run id handed to the client
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), index=True, nullable=False)
    username = db.Column(db.String(80), nullable=True)
    mode = db.Column(db.String(10), index=True, nullable=False)  # mixed|category
    category = db.Column(db.String(120), index=True, nullable=True)
    streak = db.Column(db.Integer, index=True, nullable=False, default=0)
    categories_seen = db.Column(db.JSON, nullable=False, default=list)
    questions_attempted = db.Column(db.JSON, nullable=False, default=list)
    end_reason = db.Column(db.String(20), nullable=False, default="incorrect")  # incorrect|abandoned
    time_played_seconds = db.Column(db.Integer, nullable=False, default=0)
    started_at = db.Column(db.DateTime(timezone=True), nullable=False)
    ended_at = db.Column(db.DateTime(timezone=True), default=_utcnow, nullable=False)

    def to_payload(self) -> dict:
        return {
            "run_id": self.id,
            "user_id": self.user_id,
            "username": self.username,
            "mode": self.mode,
            "category": self.category,
            "streak": self.streak,
            "categories_seen": self.categories_seen or [],
            "questions_attempted": self.questions_attempted or [],
            "end_reason": self.end_reason,
            "time_played_seconds": self.time_played_seconds,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "ended_at": self.ended_at.isoformat() if self.ended_at else None,
        }
