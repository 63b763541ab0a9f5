# trivia/faceoff/engine.py
"""
Faceoff: one player's finished quiz, replayed by anyone holding the code.

The challenge's answers live in a single shared container
(``faceoff:<share_code>``). Every play gets its own id, and that id (not
the container) is the evaluation scope, so each player answers each
question exactly once without touching anyone else's verdicts.
"""

from __future__ import annotations

import secrets
import string
import time
from datetime import timedelta
from typing import Any, Dict, List, Optional

from flask import current_app
from sqlalchemy.exc import IntegrityError

from trivia import answer_keys, evaluation, game_state
from trivia.answer_keys import KeyEntry
from trivia.errors import NotFoundError, ValidationError
from trivia.extensions import db
from trivia.history import build_session
from trivia.leaderboard import top
from trivia.models import QuizSession, _utcnow

from .models import FaceoffChallenge

KIND = "faceoff"
SHARE_CODE_LENGTH = 6
SHARE_CODE_ALPHABET = string.ascii_uppercase + string.digits
MAX_CODE_ATTEMPTS = 5
PUBLIC_FIELDS = ("question_id", "type", "prompt", "choices", "category", "difficulty")


def container_id(share_code: str) -> str:
    return f"faceoff:{share_code}"


def _ttl_days() -> int:
    return int(current_app.config.get("FACEOFF_TTL_DAYS", 30))


def _play_ttl() -> int:
    return int(current_app.config.get("QUIZ_TTL_SECONDS", 86400))


def new_share_code() -> str:
    return "".join(secrets.choice(SHARE_CODE_ALPHABET) for _ in range(SHARE_CODE_LENGTH))


def _live(share_code: str) -> FaceoffChallenge:
    challenge = (FaceoffChallenge.query
                 .filter(FaceoffChallenge.share_code == (share_code or "").upper(),
                         FaceoffChallenge.expires_at > _utcnow())
                 .first())
    if challenge is None:
        raise NotFoundError("This challenge has expired or does not exist.")
    return challenge


def _frozen_questions(session: QuizSession) -> List[Dict[str, Any]]:
    questions = []
    for q in session.questions or []:
        if not q.get("question_id") or not q.get("correct_answer"):
            continue
        frozen = {k: q.get(k) for k in PUBLIC_FIELDS if q.get(k) is not None}
        frozen["correct_answer"] = q["correct_answer"]
        frozen["explanation"] = q.get("explanation") or ""
        questions.append(frozen)
    return questions


def create_challenge(user_id: int, username: Optional[str], session_id: str) -> FaceoffChallenge:
    session = QuizSession.query.filter_by(id=session_id, user_id=user_id).first()
    if session is None:
        raise NotFoundError("Quiz session not found.")
    if session.game_mode not in ("practice", "daily"):
        raise ValidationError("Only practice and daily quizzes can become a faceoff.")

    existing = FaceoffChallenge.query.filter_by(source_session_id=session_id).first()
    if existing is not None:
        return existing

    quiz_data = _frozen_questions(session)
    if not quiz_data:
        raise ValidationError("This quiz has no questions to share.")

    days = _ttl_days()
    for _ in range(MAX_CODE_ATTEMPTS):
        code = new_share_code()
        if FaceoffChallenge.query.filter_by(share_code=code).first() is not None:
            continue
        challenge = FaceoffChallenge(
            share_code=code,
            creator_id=user_id,
            creator_username=username,
            source_session_id=session_id,
            title=session.title,
            category=session.category,
            quiz_data=quiz_data,
            settings={
                "category": session.category,
                "num_questions": len(quiz_data),
                "is_daily": session.is_daily,
            },
            num_questions=len(quiz_data),
            creator_score=session.correct_answers,
            creator_time_taken=session.time_taken,
            times_played=0,
            expires_at=_utcnow() + timedelta(days=days),
        )
        db.session.add(challenge)
        entries = [
            KeyEntry(
                question_id=q["question_id"],
                answer=q["correct_answer"],
                question_type=q.get("type") or "multiple_choice",
                explanation=q.get("explanation") or "",
                prompt=q.get("prompt") or "",
                public={k: v for k, v in q.items() if k in PUBLIC_FIELDS},
            )
            for q in quiz_data
        ]
        try:
            answer_keys.store(container_id(code), entries, days * 86400, commit=True)
        except IntegrityError:
            existing = FaceoffChallenge.query.filter_by(source_session_id=session_id).first()
            if existing is not None:
                return existing
            # share code taken between the check and the insert
            continue
        current_app.logger.info(f"[faceoff] challenge {code} created from session {session_id}")
        return challenge

    raise ValidationError("Could not allocate a share code. Please try again.")


def get_challenge(share_code: str) -> Dict[str, Any]:
    challenge = _live(share_code)
    return {"challenge": challenge.to_payload(), "questions": challenge.public_questions()}


def open_challenge(owner: str, share_code: str) -> Dict[str, Any]:
    challenge = _live(share_code)
    (FaceoffChallenge.query
     .filter(FaceoffChallenge.id == challenge.id)
     .update({"times_played": FaceoffChallenge.times_played + 1}, synchronize_session=False))
    snap = game_state.create(KIND, owner, {
        "share_code": challenge.share_code,
        "question_ids": [q["question_id"] for q in challenge.quiz_data or []],
        "started_at_ms": int(time.time() * 1000),
    }, _play_ttl())
    db.session.commit()
    return {
        "play_id": snap.id,
        "challenge": challenge.to_payload(),
        "questions": challenge.public_questions(),
    }


def answer(owner: str, play_id: str, question_id: str, response: str, authenticated: bool) -> Dict[str, Any]:
    snap = game_state.load_owned(KIND, play_id, owner)
    if question_id not in snap.data.get("question_ids", []):
        raise NotFoundError("Question not found.")
    verdict = evaluation.evaluate(container_id(snap.data["share_code"]), play_id, question_id, response,
                                  authenticated=authenticated)
    return verdict.to_payload()


def finish(owner: str, user_id: int, username: Optional[str], play_id: str,
           time_taken: Optional[int]) -> Dict[str, Any]:
    existing = db.session.get(QuizSession, play_id)
    if existing is not None:
        if existing.user_id != user_id:
            raise NotFoundError()
        return {"duplicate": True, "session": existing.to_payload()}

    snap = game_state.load_owned(KIND, play_id, owner)
    share_code = snap.data["share_code"]
    challenge = FaceoffChallenge.query.filter_by(share_code=share_code).first()
    if challenge is None:
        raise NotFoundError()

    answered = {e.question_id: e for e in evaluation.evaluations_for(play_id)}
    questions = []
    for q in challenge.quiz_data or []:
        ev = answered.get(q["question_id"])
        questions.append({
            **q,
            "user_answer": ev.user_response if ev else None,
            "is_correct": bool(ev.is_correct) if ev else False,
        })
    correct = sum(1 for q in questions if q["is_correct"])

    record = build_session(
        play_id,
        user_id=user_id,
        username=username,
        game_mode=KIND,
        category=challenge.category,
        num_questions=len(questions),
        correct_answers=correct,
        time_taken=time_taken,
        questions=questions,
        title=challenge.title,
        faceoff_share_code=share_code,
    )
    db.session.add(record)
    game_state.delete(snap)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        existing = db.session.get(QuizSession, play_id)
        if existing is None:
            raise
        return {"duplicate": True, "session": existing.to_payload()}

    current_app.logger.info(f"[faceoff] play {play_id} on {share_code} finished {correct}/{len(questions)}")
    return {
        "duplicate": False,
        "session": record.to_payload(),
        "creator_score": challenge.creator_score,
        "beat_creator": correct > challenge.creator_score,
    }


def leaderboard(share_code: str, limit: int = 50) -> Dict[str, Any]:
    challenge = _live(share_code)
    rows = top(
        QuizSession.query.filter(QuizSession.faceoff_share_code == challenge.share_code),
        QuizSession.correct_answers.desc(),
        QuizSession.time_taken.asc(),
        QuizSession.created_at.asc(),
        limit=limit,
    )
    return {
        "challenge": challenge.to_payload(),
        "leaderboard": [
            {
                "rank": i + 1,
                "username": r.username,
                "correct_answers": r.correct_answers,
                "num_questions": r.num_questions,
                "score_percentage": r.score_percentage,
                "time_taken": r.time_taken,
            }
            for i, r in enumerate(rows)
        ],
    }


def my_challenges(user_id: int) -> List[Dict[str, Any]]:
    rows = (FaceoffChallenge.query
            .filter_by(creator_id=user_id)
            .order_by(FaceoffChallenge.created_at.desc())
            .all())
    live_ids = {cid for (cid,) in (FaceoffChallenge.query
                                   .filter(FaceoffChallenge.creator_id == user_id,
                                           FaceoffChallenge.expires_at > _utcnow())
                                   .with_entities(FaceoffChallenge.id))}
    return [{**r.to_payload(), "active": r.id in live_ids} for r in rows]
