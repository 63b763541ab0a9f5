from __future__ import annotations

from datetime import date, timedelta

from trivia.extensions import db
from trivia.models import _utcnow


class DailyStreak(db.Model):
    """Consecutive local days with a submitted daily quiz."""

    __tablename__ = "daily_streaks"

    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), primary_key=True)
    current_streak = db.Column(db.Integer, nullable=False, default=0)
    longest_streak = db.Column(db.Integer, nullable=False, default=0)
    last_completed_date = db.Column(db.Date, nullable=True)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)

    def record(self, day: date) -> None:
        last = self.last_completed_date
        if last is not None and day <= last:
            return
        if last is not None and day - last == timedelta(days=1):
            self.current_streak = (self.current_streak or 0) + 1
        else:
            self.current_streak = 1
        self.longest_streak = max(self.longest_streak or 0, self.current_streak)
        self.last_completed_date = day

    def current_as_of(self, today: date) -> int:
        # broken once a whole day has been skipped
        last = self.last_completed_date
        if last is None or last < today - timedelta(days=1):
            return 0
        return self.current_streak or 0

    def to_payload(self, today: date) -> dict:
        return {
            "current_streak": self.current_as_of(today),
            "longest_streak": self.longest_streak or 0,
            "last_completed_date": self.last_completed_date.isoformat() if self.last_completed_date else None,
        }
