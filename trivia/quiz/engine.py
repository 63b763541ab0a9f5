# trivia/quiz/engine.py
"""
Practice and daily quizzes, plus one-off disposable questions.

A generated quiz is an answer-key container (``quiz_id``). Playing it opens
a session (``session_id``), which is the evaluation scope. Submitting scores
the session from the server-side verdicts only and freezes it into a
``QuizSession`` row; that row is what a faceoff challenge is later built from.
"""

from __future__ import annotations

import time
from datetime import date
from typing import Any, Dict, List, Optional, Sequence

from flask import current_app
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from trivia import answer_keys, evaluation, game_state, generator
from trivia.categories import CATEGORIES, daily_category, local_today, random_category
from trivia.errors import NotFoundError, ValidationError
from trivia.extensions import db
from trivia.history import build_session
from trivia.models import QuizSession

from .models import DailyStreak

QUIZ_KIND = "quiz"
SINGLE_KIND = "single"
DIFFICULTIES = ("easy", "medium", "hard")
DAILY_NUM_QUESTIONS = 5
MAX_QUESTIONS = 20


def _ttl() -> int:
    return int(current_app.config.get("QUIZ_TTL_SECONDS", 86400))


def daily_challenge(user_id: Optional[int] = None) -> Dict[str, Any]:
    today = local_today()
    payload: Dict[str, Any] = {
        "date": today.isoformat(),
        "category": daily_category(today),
        "num_questions": DAILY_NUM_QUESTIONS,
    }
    if user_id is not None:
        done = (QuizSession.query
                .filter_by(user_id=user_id, is_daily=True, daily_date=today.isoformat())
                .first())
        payload["completed"] = done is not None
        payload["session_id"] = done.id if done else None
    return payload


def create_quiz(owner: str, category: Optional[str], num_questions: int, difficulty: str,
                question_types: Sequence[str], daily: bool = False) -> Dict[str, Any]:
    daily_date = None
    if daily:
        today = local_today()
        daily_date = today.isoformat()
        category = daily_category(today)
        num_questions = DAILY_NUM_QUESTIONS
    elif not category:
        category = random_category()
    elif category not in CATEGORIES:
        raise ValidationError(f"Unknown category: {category}.")

    if not 1 <= num_questions <= MAX_QUESTIONS:
        raise ValidationError(f"Number of questions must be between 1 and {MAX_QUESTIONS}.")
    if difficulty not in DIFFICULTIES:
        raise ValidationError(f'"difficulty" must be one of: {", ".join(DIFFICULTIES)}.')
    types = tuple(t for t in question_types if t in generator.QUESTION_TYPES)
    if not types or len(types) != len(question_types):
        raise ValidationError("Unknown question type.")

    title, questions = generator.generate_batch(category, difficulty, num_questions, question_types=types)

    quiz_id = game_state.new_id()
    question_ids = [game_state.new_question_id() for _ in questions]
    answer_keys.store(quiz_id, [q.key_entry(qid) for qid, q in zip(question_ids, questions)],
                      _ttl(), commit=False)
    snap = game_state.create(QUIZ_KIND, owner, {
        "quiz_id": quiz_id,
        "question_ids": question_ids,
        "title": title,
        "category": category,
        "difficulty": difficulty,
        "is_daily": daily,
        "daily_date": daily_date,
        "started_at_ms": int(time.time() * 1000),
    }, _ttl())
    db.session.commit()
    current_app.logger.info(f"[quiz] quiz {quiz_id} created category={category} daily={daily}")
    return {
        "quiz_id": quiz_id,
        "session_id": snap.id,
        "title": title,
        "category": category,
        "difficulty": difficulty,
        "is_daily": daily,
        "daily_date": daily_date,
        "questions": [q.public_payload(qid) for qid, q in zip(question_ids, questions)],
    }


def evaluate_answer(owner: str, session_id: str, question_id: str, response: str,
                    authenticated: bool) -> Dict[str, Any]:
    snap = game_state.load_owned(QUIZ_KIND, session_id, owner)
    if question_id not in snap.data.get("question_ids", []):
        raise NotFoundError("Question not found.")
    verdict = evaluation.evaluate(snap.data["quiz_id"], session_id, question_id, response,
                                  authenticated=authenticated)
    return verdict.to_payload()


def _question_records(quiz_id: str, scope: str) -> List[Dict[str, Any]]:
    answered = {e.question_id: e for e in evaluation.evaluations_for(scope)}
    records = []
    for key in answer_keys.entries_for(quiz_id):
        ev = answered.get(key.question_id)
        records.append({
            **key.public,
            "question_id": key.question_id,
            "correct_answer": key.answer,
            "explanation": key.explanation,
            "user_answer": ev.user_response if ev else None,
            "is_correct": bool(ev.is_correct) if ev else False,
        })
    return records


def submit_quiz(owner: str, user_id: int, username: Optional[str], session_id: str,
                time_taken: Optional[int]) -> Dict[str, Any]:
    existing = db.session.get(QuizSession, session_id)
    if existing is not None:
        if existing.user_id != user_id:
            raise NotFoundError()
        return {"duplicate": True, "session": existing.to_payload()}

    snap = game_state.load_owned(QUIZ_KIND, session_id, owner)
    data = snap.data
    questions = _question_records(data["quiz_id"], session_id)
    if not questions:
        raise NotFoundError()
    correct = sum(1 for q in questions if q["is_correct"])

    record = build_session(
        session_id,
        user_id=user_id,
        username=username,
        game_mode="daily" if data.get("is_daily") else "practice",
        category=data.get("category"),
        num_questions=len(questions),
        correct_answers=correct,
        time_taken=time_taken,
        questions=questions,
        title=data.get("title"),
        is_daily=bool(data.get("is_daily")),
        daily_date=data.get("daily_date"),
    )
    db.session.add(record)
    game_state.delete(snap)
    answer_keys.invalidate(data["quiz_id"])
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        existing = db.session.get(QuizSession, session_id)
        if existing is None:
            raise
        return {"duplicate": True, "session": existing.to_payload()}

    current_app.logger.info(f"[quiz] session {session_id} submitted {correct}/{len(questions)}")
    result = {"duplicate": False, "session": record.to_payload()}
    if data.get("is_daily") and data.get("daily_date"):
        result["streak"] = record_daily_streak(user_id, data["daily_date"])
    return result


def record_daily_streak(user_id: int, daily_date: str) -> Optional[Dict[str, Any]]:
    """Best-effort streak bump after a daily submit. Logged and dropped on failure."""
    try:
        streak = db.session.get(DailyStreak, user_id)
        if streak is None:
            streak = DailyStreak(user_id=user_id, current_streak=0, longest_streak=0)
            db.session.add(streak)
        streak.record(date.fromisoformat(daily_date))
        db.session.commit()
        return streak.to_payload(local_today())
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception(f"[quiz] could not update daily streak for user {user_id}")
        return None


def daily_streak(user_id: int) -> Dict[str, Any]:
    streak = db.session.get(DailyStreak, user_id)
    if streak is None:
        return {"current_streak": 0, "longest_streak": 0, "last_completed_date": None}
    return streak.to_payload(local_today())


def history(user_id: int, limit: int = 20) -> List[Dict[str, Any]]:
    rows = (QuizSession.query
            .filter_by(user_id=user_id)
            .order_by(QuizSession.created_at.desc())
            .limit(max(1, min(limit, 100)))
            .all())
    return [r.to_payload() for r in rows]


def history_detail(user_id: int, session_id: str) -> QuizSession:
    row = QuizSession.query.filter_by(id=session_id, user_id=user_id).first()
    if row is None:
        raise NotFoundError("Session not found.")
    return row


# ---------------------------------------------------------------------------
# Disposable single questions
# ---------------------------------------------------------------------------

def create_single_question(owner: str, category: Optional[str], difficulty: str,
                           question_type: Optional[str]) -> Dict[str, Any]:
    if category and category not in CATEGORIES:
        raise ValidationError(f"Unknown category: {category}.")
    if difficulty not in DIFFICULTIES:
        raise ValidationError(f'"difficulty" must be one of: {", ".join(DIFFICULTIES)}.')
    if question_type is not None and question_type not in generator.QUESTION_TYPES:
        raise ValidationError("Unknown question type.")

    category = category or random_category()
    raw = generator.generate(generator.QuestionSpec(category=category, difficulty=difficulty,
                                                    question_type=question_type))
    ttl = int(current_app.config.get("SINGLE_QUESTION_TTL_SECONDS", 900))
    container_id = game_state.new_id()
    question_id = game_state.new_question_id()
    answer_keys.store(container_id, [raw.key_entry(question_id)], ttl, commit=False)
    game_state.create(SINGLE_KIND, owner, {"question_id": question_id}, ttl, state_id=container_id)
    db.session.commit()
    return {"container_id": container_id, "question": raw.public_payload(question_id)}


def answer_single_question(owner: str, container_id: str, question_id: str, response: str,
                           authenticated: bool) -> Dict[str, Any]:
    snap = game_state.load_owned(SINGLE_KIND, container_id, owner)
    if snap.data.get("question_id") != question_id:
        raise NotFoundError("Question not found.")
    verdict = evaluation.evaluate(container_id, container_id, question_id, response,
                                  authenticated=authenticated, disposable=True, commit=False)
    if not verdict.fresh:
        return verdict.to_payload()
    game_state.delete(snap)
    db.session.commit()
    return verdict.to_payload()
