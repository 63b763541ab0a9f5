from __future__ import annotations

from trivia.extensions import db
from trivia.models import _utcnow


class TowerProgress(db.Model):
    """Durable per-user climb. ``highest_floor`` never goes down."""

    __tablename__ = "tower_progress"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), unique=True, index=True, nullable=False)
    username = db.Column(db.String(80), nullable=True)
    current_floor = db.Column(db.Integer, nullable=False, default=1)
    highest_floor = db.Column(db.Integer, index=True, nullable=False, default=1)
    total_questions = db.Column(db.Integer, nullable=False, default=0)
    total_correct = db.Column(db.Integer, nullable=False, default=0)
    floors_passed = db.Column(db.Integer, nullable=False, default=0)
    perfect_floors = db.Column(db.JSON, nullable=False, default=list)
    perfect_completions = db.Column(db.Integer, nullable=False, default=0)
    consecutive_perfect = db.Column(db.Integer, nullable=False, default=0)
    clutch_passes = db.Column(db.Integer, nullable=False, default=0)  # passed at exactly the passing score
    floor_attempts = db.Column(db.JSON, nullable=False, default=dict)  # {"floor": count}
    category_stats = db.Column(db.JSON, nullable=False, default=dict)  # {category: {attempted, correct}}
    version_id = db.Column(db.Integer, nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)

    __mapper_args__ = {"version_id_col": version_id}

    @property
    def accuracy(self) -> float:
        if not self.total_questions:
            return 0.0
        return round(100.0 * self.total_correct / self.total_questions, 1)


class TowerFloorAttempt(db.Model):
    __tablename__ = "tower_floor_attempts"

    id = db.Column(db.String(64), primary_key=True)  # quiz id of the generated floor
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), index=True, nullable=False)
    floor = db.Column(db.Integer, index=True, nullable=False)
    tier = db.Column(db.Integer, nullable=False)
    category = db.Column(db.String(120), nullable=False)
    score = db.Column(db.Integer, nullable=False)
    total = db.Column(db.Integer, nullable=False)
    passed = db.Column(db.Boolean, nullable=False)
    perfect = db.Column(db.Boolean, nullable=False)
    time_taken = db.Column(db.Integer, nullable=True)
    questions = db.Column(db.JSON, nullable=False, default=list)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow, index=True, nullable=False)

    def to_payload(self) -> dict:
        return {
            "attempt_id": self.id,
            "floor": self.floor,
            "tier": self.tier,
            "category": self.category,
            "score": self.score,
            "total": self.total,
            "passed": self.passed,
            "perfect": self.perfect,
            "time_taken": self.time_taken,
            "questions": self.questions or [],
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class TowerAchievement(db.Model):
    __tablename__ = "tower_achievements"
    __table_args__ = (db.UniqueConstraint("user_id", "code", name="uq_tower_achievement_user_code"),)

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), index=True, nullable=False)
    code = db.Column(db.String(40), nullable=False)
    unlocked_at = db.Column(db.DateTime(timezone=True), default=_utcnow, nullable=False)
