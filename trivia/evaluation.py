# trivia/evaluation.py
"""
At-most-once answer evaluation.

The verdict for a question is keyed by ``(evaluation_scope, question_id)``.
The scope is the individual play session (run id, game id, quiz session id,
faceoff play id), never the shared answer-key container: many players can
answer the same faceoff question, each exactly once.

The claim is an INSERT guarded by a unique constraint, so two racing
submissions cannot both observe "not answered yet". The loser rolls back
and gets the winner's verdict.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from flask import current_app
from sqlalchemy.exc import IntegrityError

from trivia import answer_keys
from trivia.answer_keys import KeyEntry
from trivia.errors import AlreadyAnsweredError, NotFoundError
from trivia.extensions import db
from trivia.generator import MULTIPLE_CHOICE, SHORT_ANSWER, TRUE_FALSE, judge_short_answer
from trivia.models import QuizEvaluation, _utcnow


@dataclass
class Verdict:
    question_id: str
    correct: bool
    canonical_answer: str
    explanation: str
    fresh: bool = True  # False when an earlier submission already decided this question

    def to_payload(self) -> Dict[str, object]:
        return {
            "question_id": self.question_id,
            "correct": self.correct,
            "correct_answer": self.canonical_answer,
            "explanation": self.explanation,
            "already_answered": not self.fresh,
        }


def normalize(value: object) -> str:
    return " ".join(str(value if value is not None else "").split()).lower()


def _fallback_explanation(key: KeyEntry, correct: bool) -> str:
    if key.explanation:
        return key.explanation
    return "Correct!" if correct else f"The correct answer is: {key.answer}"


def _judge(key: KeyEntry, response: str, authenticated: bool) -> Tuple[bool, Optional[str]]:
    expected = normalize(key.answer)
    given = normalize(response)

    if key.question_type in (MULTIPLE_CHOICE, TRUE_FALSE):
        return given == expected, None

    if key.question_type != SHORT_ANSWER:
        current_app.logger.warning(f"[eval] unknown question type {key.question_type!r}; using strict match")
        return given == expected, None

    if given == expected:
        return True, None
    # fuzzy grading is a signed-in feature; guests only get the exact match
    if not given or not authenticated:
        return False, None

    score, rationale = judge_short_answer(key.prompt, key.answer, response)
    threshold = float(current_app.config.get("FUZZY_ACCEPT_THRESHOLD", 0.85))
    accepted = score >= threshold
    current_app.logger.info(f"[eval] fuzzy score={score:.2f} accepted={accepted}")
    if rationale:
        return accepted, rationale
    if accepted:
        return True, "Correct! Your answer is acceptable."
    return False, f"Incorrect. The correct answer is: {key.answer}"


def _existing_verdict(scope: str, question_id: str) -> Verdict:
    row = QuizEvaluation.query.filter_by(evaluation_scope=scope, question_id=question_id).first()
    if row is None or row.is_correct is None:
        raise AlreadyAnsweredError()
    return Verdict(
        question_id=question_id,
        correct=bool(row.is_correct),
        canonical_answer=row.canonical_answer or "",
        explanation=row.explanation or "",
        fresh=False,
    )


def evaluate(container_id: str, scope: str, question_id: str, response: str, *,
             authenticated: bool, disposable: bool = False, commit: bool = True) -> Verdict:
    """
    Decide one answer, once.

    With ``commit=False`` the verdict is flushed but left for the caller to
    commit together with its own state transition; the caller must roll
    back if that transition fails.
    """
    key = answer_keys.lookup(container_id, question_id)
    if key is None:
        raise NotFoundError()

    row = QuizEvaluation(
        evaluation_scope=scope,
        question_id=question_id,
        container_id=container_id,
        user_response=str(response),
    )
    db.session.add(row)
    try:
        db.session.flush()
    except IntegrityError:
        db.session.rollback()
        current_app.logger.info(f"[eval] duplicate submission scope={scope} question={question_id}")
        return _existing_verdict(scope, question_id)

    try:
        correct, explanation = _judge(key, response, authenticated)
    except Exception:
        # release the claim so the player can retry
        db.session.rollback()
        raise

    row.is_correct = correct
    row.canonical_answer = key.answer
    row.explanation = explanation or _fallback_explanation(key, correct)
    row.evaluated_at = _utcnow()

    if disposable:
        answer_keys.invalidate(container_id)

    if commit:
        db.session.commit()
    else:
        db.session.flush()

    return Verdict(
        question_id=question_id,
        correct=correct,
        canonical_answer=key.answer,
        explanation=row.explanation,
        fresh=True,
    )


def verdicts_for(scope: str) -> Dict[str, bool]:
    rows = (QuizEvaluation.query
            .filter(QuizEvaluation.evaluation_scope == scope,
                    QuizEvaluation.is_correct.isnot(None))
            .all())
    return {r.question_id: bool(r.is_correct) for r in rows}


def evaluations_for(scope: str) -> List[QuizEvaluation]:
    return (QuizEvaluation.query
            .filter(QuizEvaluation.evaluation_scope == scope,
                    QuizEvaluation.is_correct.isnot(None))
            .order_by(QuizEvaluation.id.asc())
            .all())
