# trivia/tower/engine.py
"""
Tower campaign.

Durable progress lives in ``tower_progress`` (optimistically locked through
``version_id``). Each generated floor is a five-question container whose id
doubles as the evaluation scope and the attempt id, so a floor can be
submitted once.
"""

from __future__ import annotations

import time
from typing import Any, Dict, List, Optional

from flask import current_app
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.exc import StaleDataError

from trivia import answer_keys, evaluation, game_state, generator
from trivia.errors import AlreadyAnsweredError, InvalidStateError, NotFoundError, ValidationError
from trivia.extensions import db
from trivia.history import record_stats
from trivia.leaderboard import top

from . import achievements
from .floors import PASSING_SCORE, QUESTIONS_PER_FLOOR, floor_info, is_valid_floor, total_floors
from .models import TowerFloorAttempt, TowerProgress

KIND = "tower"


def _ttl() -> int:
    return int(current_app.config.get("TOWER_TTL_SECONDS", 86400))


def get_or_create_progress(user_id: int, username: Optional[str]) -> TowerProgress:
    progress = TowerProgress.query.filter_by(user_id=user_id).first()
    if progress is not None:
        return progress
    progress = TowerProgress(user_id=user_id, username=username, current_floor=1, highest_floor=1,
                             perfect_floors=[], floor_attempts={}, category_stats={})
    db.session.add(progress)
    try:
        db.session.commit()
    except IntegrityError:
        # created by a concurrent request
        db.session.rollback()
        progress = TowerProgress.query.filter_by(user_id=user_id).first()
    return progress


def generate_floor(user_id: int, username: Optional[str], floor: int) -> Dict[str, Any]:
    if not is_valid_floor(floor):
        raise ValidationError(f"Floor must be between 1 and {total_floors()}.")
    progress = get_or_create_progress(user_id, username)
    if floor > progress.highest_floor:
        raise InvalidStateError(f"Floor {floor} is locked. Clear floor {progress.highest_floor} first.")

    info = floor_info(floor)
    _title, questions = generator.generate_batch(
        info.category,
        info.difficulty,
        QUESTIONS_PER_FLOOR,
        question_types=(generator.MULTIPLE_CHOICE,),
        context=f"Tower floor {floor} of {info.total_floors}, {info.tier_name}.",
    )

    quiz_id = game_state.new_id()
    question_ids = [game_state.new_question_id() for _ in questions]
    answer_keys.store(
        quiz_id,
        [q.key_entry(qid) for qid, q in zip(question_ids, questions)],
        _ttl(),
        commit=False,
    )
    game_state.create(KIND, str(user_id), {"floor": floor, "question_ids": question_ids,
                                           "started_at_ms": int(time.time() * 1000)},
                      _ttl(), state_id=quiz_id)
    db.session.commit()
    current_app.logger.info(f"[tower] user {user_id} generated floor {floor} as {quiz_id}")
    return {
        "quiz_id": quiz_id,
        "floor": info.to_payload(),
        "questions": [q.public_payload(qid) for qid, q in zip(question_ids, questions)],
    }


def _apply_result(progress: TowerProgress, floor: int, category: str, score: int) -> None:
    passed = score >= PASSING_SCORE
    perfect = achievements.is_perfect(score)

    progress.total_questions = (progress.total_questions or 0) + QUESTIONS_PER_FLOOR
    progress.total_correct = (progress.total_correct or 0) + score

    attempts = dict(progress.floor_attempts or {})
    attempts[str(floor)] = int(attempts.get(str(floor), 0)) + 1
    progress.floor_attempts = attempts

    stats = dict(progress.category_stats or {})
    cat = dict(stats.get(category) or {"attempted": 0, "correct": 0})
    cat["attempted"] += QUESTIONS_PER_FLOOR
    cat["correct"] += score
    stats[category] = cat
    progress.category_stats = stats

    if passed:
        progress.floors_passed = (progress.floors_passed or 0) + 1
        progress.highest_floor = max(progress.highest_floor or 1, floor + 1)
        progress.current_floor = min(floor + 1, total_floors())
        if achievements.is_clutch(score):
            progress.clutch_passes = (progress.clutch_passes or 0) + 1
    else:
        progress.current_floor = floor

    if perfect:
        progress.perfect_floors = sorted(set(progress.perfect_floors or []) | {floor})
        progress.perfect_completions = (progress.perfect_completions or 0) + 1
        progress.consecutive_perfect = (progress.consecutive_perfect or 0) + 1
    else:
        progress.consecutive_perfect = 0


def submit_floor(user_id: int, username: Optional[str], quiz_id: str,
                 answers: Dict[str, str], time_taken: Optional[int]) -> Dict[str, Any]:
    snap = game_state.load_owned(KIND, quiz_id, str(user_id))
    floor = int(snap.data["floor"])
    question_ids: List[str] = list(snap.data["question_ids"])
    info = floor_info(floor)
    progress = get_or_create_progress(user_id, username)
    keys = {k.question_id: k for k in answer_keys.entries_for(quiz_id)}

    results = []
    for qid in question_ids:
        response = answers.get(qid, "")
        verdict = evaluation.evaluate(quiz_id, quiz_id, qid, response, authenticated=True, commit=False)
        if not verdict.fresh:
            db.session.rollback()
            raise AlreadyAnsweredError("This floor has already been submitted.")
        key = keys.get(qid)
        results.append({
            **verdict.to_payload(),
            "prompt": key.prompt if key else None,
            "choices": (key.public.get("choices") if key else None) or [],
            "user_answer": response,
        })

    score = sum(1 for r in results if r["correct"])
    passed = score >= PASSING_SCORE
    attempt = TowerFloorAttempt(
        id=quiz_id,
        user_id=user_id,
        floor=floor,
        tier=info.tier,
        category=info.category,
        score=score,
        total=len(question_ids),
        passed=passed,
        perfect=achievements.is_perfect(score),
        time_taken=time_taken,
        questions=results,
    )
    db.session.add(attempt)

    previous_highest = progress.highest_floor
    _apply_result(progress, floor, info.category, score)

    game_state.delete(snap)
    answer_keys.invalidate(quiz_id)
    try:
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        raise AlreadyAnsweredError("This floor has already been submitted.") from exc
    except StaleDataError as exc:
        db.session.rollback()
        raise InvalidStateError("Your progress changed in another request. Try again.") from exc

    current_app.logger.info(f"[tower] user {user_id} floor {floor} score={score}/{len(question_ids)} passed={passed}")

    new_achievements = achievements.award(progress, attempt, total_floors())

    record_stats(
        quiz_id,
        user_id=user_id,
        username=username,
        game_mode=KIND,
        category=info.category,
        num_questions=len(question_ids),
        correct_answers=score,
        time_taken=time_taken,
        questions=results,
    )

    return {
        "attempt_id": quiz_id,
        "floor": info.to_payload(),
        "score": score,
        "total": len(question_ids),
        "passed": passed,
        "perfect": achievements.is_perfect(score),
        "results": results,
        "highest_floor": progress.highest_floor,
        "unlocked_floor": progress.highest_floor if progress.highest_floor > previous_highest else None,
        "new_achievements": [{"code": c, **achievements.ACHIEVEMENTS[c]} for c in new_achievements],
    }


def progress_payload(progress: TowerProgress) -> Dict[str, Any]:
    attempts = (TowerFloorAttempt.query
                .filter_by(user_id=progress.user_id)
                .order_by(TowerFloorAttempt.created_at.asc())
                .all())
    floor_stats: Dict[str, Dict[str, Any]] = {}
    for a in attempts:
        s = floor_stats.setdefault(str(a.floor), {"attempts": 0, "best_score": 0, "passed": False})
        s["attempts"] += 1
        s["best_score"] = max(s["best_score"], a.score)
        s["passed"] = s["passed"] or a.passed

    top_floor = total_floors()
    return {
        "user_id": progress.user_id,
        "current_floor": progress.current_floor,
        "highest_floor": progress.highest_floor,
        "total_floors": top_floor,
        "tower_complete": progress.highest_floor > top_floor,
        "current_floor_info": floor_info(min(progress.current_floor, top_floor)).to_payload(),
        "total_questions": progress.total_questions,
        "total_correct": progress.total_correct,
        "accuracy": progress.accuracy,
        "floors_passed": progress.floors_passed,
        "perfect_floors": progress.perfect_floors or [],
        "category_stats": progress.category_stats or {},
        "floor_stats": floor_stats,
        "achievements": achievements.list_for(progress.user_id),
    }


def get_progress(user_id: int, username: Optional[str]) -> Dict[str, Any]:
    return progress_payload(get_or_create_progress(user_id, username))


def get_attempt(user_id: int, attempt_id: str) -> TowerFloorAttempt:
    attempt = TowerFloorAttempt.query.filter_by(id=attempt_id, user_id=user_id).first()
    if attempt is None:
        raise NotFoundError("Attempt not found.")
    return attempt


def leaderboard(limit: int = 50) -> List[Dict[str, Any]]:
    rows = top(TowerProgress.query,
               TowerProgress.highest_floor.desc(),
               TowerProgress.total_correct.desc(),
               TowerProgress.updated_at.asc(),
               limit=limit)
    return [
        {
            "rank": i + 1,
            "username": r.username,
            "highest_floor": r.highest_floor,
            "total_correct": r.total_correct,
            "accuracy": r.accuracy,
            "perfect_floors": len(r.perfect_floors or []),
        }
        for i, r in enumerate(rows)
    ]
