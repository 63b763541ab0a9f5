# trivia/history.py
"""Completed-session stats rows shared by every mode."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from trivia.extensions import db
from trivia.models import QuizSession


def build_session(session_id: str, *, user_id: Optional[int], username: Optional[str], game_mode: str,
                  category: Optional[str], num_questions: int, correct_answers: int,
                  time_taken: Optional[int], questions: List[Dict[str, Any]], **extra: Any) -> QuizSession:
    pct = round(100.0 * correct_answers / num_questions, 2) if num_questions else 0.0
    return QuizSession(
        id=session_id,
        user_id=user_id,
        username=username,
        game_mode=game_mode,
        category=category,
        num_questions=num_questions,
        correct_answers=correct_answers,
        score_percentage=pct,
        time_taken=time_taken,
        questions=questions,
        **extra,
    )


def record_stats(session_id: str, **fields: Any) -> bool:
    """Best-effort stats row. Logged and dropped on failure; never fails the caller."""
    try:
        if db.session.get(QuizSession, session_id) is not None:
            return False
        db.session.add(build_session(session_id, **fields))
        db.session.commit()
        return True
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception(f"[history] could not record stats row {session_id}")
        return False
