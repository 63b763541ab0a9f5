# trivia/tower/achievements.py
from __future__ import annotations

from datetime import timedelta
from typing import Dict, List

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from trivia.extensions import db
from trivia.models import _utcnow

from .floors import PASSING_SCORE, QUESTIONS_PER_FLOOR
from .models import TowerAchievement, TowerFloorAttempt, TowerProgress

ACHIEVEMENTS: Dict[str, Dict[str, str]] = {
    "first_steps": {"name": "First Steps", "description": "Clear your first floor."},
    "apprentice": {"name": "Apprentice", "description": "Answer 25 questions correctly."},
    "scholar": {"name": "Scholar", "description": "Answer 100 questions correctly."},
    "archivist": {"name": "Archivist", "description": "Answer 300 questions correctly."},
    "perfect_signal": {"name": "Perfect Signal", "description": "Clear a floor without a single miss."},
    "clarity": {"name": "Clarity", "description": "Clear 10 floors perfectly."},
    "calibrator": {"name": "Calibrator", "description": "Clear 5 floors perfectly in a row."},
    "persistence": {"name": "Persistence", "description": "Clear a floor after failing it 5 times."},
    "clutch": {"name": "Clutch", "description": "Clear 10 floors with the bare minimum score."},
    "marathon": {"name": "Marathon", "description": "Clear 10 floors within two hours."},
    "tower_master": {"name": "Tower Master", "description": "Reach the top of the tower."},
}

MARATHON_WINDOW = timedelta(hours=2)
MARATHON_FLOORS = 10


def earned_codes(progress: TowerProgress, attempt: TowerFloorAttempt,
                 attempts_on_floor: int, recent_passes: int, total_floors: int) -> List[str]:
    earned = []
    if progress.floors_passed >= 1:
        earned.append("first_steps")
    for code, needed in (("apprentice", 25), ("scholar", 100), ("archivist", 300)):
        if progress.total_correct >= needed:
            earned.append(code)
    if progress.perfect_completions >= 1:
        earned.append("perfect_signal")
    if progress.perfect_completions >= 10:
        earned.append("clarity")
    if progress.consecutive_perfect >= 5:
        earned.append("calibrator")
    if attempt.passed and attempts_on_floor >= 6:
        earned.append("persistence")
    if progress.clutch_passes >= 10:
        earned.append("clutch")
    if recent_passes >= MARATHON_FLOORS:
        earned.append("marathon")
    if progress.highest_floor > total_floors:
        earned.append("tower_master")
    return earned


def award(progress: TowerProgress, attempt: TowerFloorAttempt, total_floors: int) -> List[str]:
    """Unlock whatever the latest floor earned. Failures are logged, never raised."""
    try:
        attempts_on_floor = int((progress.floor_attempts or {}).get(str(attempt.floor), 0))
        recent_passes = (TowerFloorAttempt.query
                         .filter(TowerFloorAttempt.user_id == progress.user_id,
                                 TowerFloorAttempt.passed.is_(True),
                                 TowerFloorAttempt.created_at >= _utcnow() - MARATHON_WINDOW)
                         .count())
        held = {a.code for a in TowerAchievement.query.filter_by(user_id=progress.user_id).all()}
        new_codes = [c for c in earned_codes(progress, attempt, attempts_on_floor, recent_passes, total_floors)
                     if c not in held]
        for code in new_codes:
            db.session.add(TowerAchievement(user_id=progress.user_id, code=code))
        db.session.commit()
        if new_codes:
            current_app.logger.info(f"[tower] user {progress.user_id} unlocked {', '.join(new_codes)}")
        return new_codes
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception(f"[tower] achievement check failed for user {progress.user_id}")
        return []


def list_for(user_id: int) -> List[dict]:
    rows = (TowerAchievement.query
            .filter_by(user_id=user_id)
            .order_by(TowerAchievement.unlocked_at.asc())
            .all())
    return [
        {
            "code": r.code,
            **ACHIEVEMENTS.get(r.code, {"name": r.code, "description": ""}),
            "unlocked_at": r.unlocked_at.isoformat() if r.unlocked_at else None,
        }
        for r in rows
    ]


def is_clutch(score: int) -> bool:
    return score == PASSING_SCORE


def is_perfect(score: int) -> bool:
    return score == QUESTIONS_PER_FLOOR
