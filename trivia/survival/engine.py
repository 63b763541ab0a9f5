# trivia/survival/engine.py
"""
Survival: answer until the first miss.

A run is either ``ActiveRun`` (kept in the ephemeral state store) or
``TerminatedRun`` (written to ``survival_runs`` and gone from the state
store). The only transitions are:

    ActiveRun --correct--> ActiveRun(streak + 1)
    ActiveRun --incorrect--> TerminatedRun
    ActiveRun --abandon--> TerminatedRun
"""

from __future__ import annotations

import time
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from flask import current_app
from sqlalchemy import func

from trivia import answer_keys, evaluation, game_state, generator
from trivia.categories import CATEGORIES, random_category
from trivia.errors import InvalidStateError, NotFoundError, ValidationError
from trivia.extensions import db
from trivia.history import record_stats
from trivia.leaderboard import is_personal_best, personal_best, rank_for, top

from .models import SurvivalRun

KIND = "survival"
MODES = ("mixed", "category")


def _now_ms() -> int:
    return int(time.time() * 1000)


def _ttl() -> int:
    return int(current_app.config.get("SURVIVAL_TTL_SECONDS", 3600))


@dataclass
class PendingQuestion:
    question_id: str
    category: str
    difficulty: str
    question: Dict[str, Any]  # public payload only


@dataclass
class ActiveRun:
    user_id: int
    username: Optional[str]
    mode: str
    category: Optional[str]
    started_at_ms: int
    streak: int = 0
    categories_seen: List[str] = field(default_factory=list)
    questions_attempted: List[Dict[str, Any]] = field(default_factory=list)
    pending: Optional[PendingQuestion] = None

    @classmethod
    def from_data(cls, data: Dict[str, Any]) -> "ActiveRun":
        data = dict(data)
        pending = data.pop("pending", None)
        run = cls(**data)
        run.pending = PendingQuestion(**pending) if pending else None
        return run

    def to_data(self) -> Dict[str, Any]:
        return asdict(self)

    def public(self) -> Dict[str, Any]:
        return {
            "mode": self.mode,
            "category": self.category,
            "streak": self.streak,
            "categories_seen": list(self.categories_seen),
            "questions_answered": len(self.questions_attempted),
            "status": "active",
        }


@dataclass
class TerminatedRun:
    run: ActiveRun
    reason: str  # incorrect|abandoned
    ended_at_ms: int

    @property
    def streak(self) -> int:
        return self.run.streak


def _attempt(pending: PendingQuestion, response: str, verdict: evaluation.Verdict) -> Dict[str, Any]:
    return {
        "question_id": pending.question_id,
        "prompt": pending.question.get("prompt"),
        "category": pending.category,
        "difficulty": pending.difficulty,
        "user_answer": response,
        "correct_answer": verdict.canonical_answer,
        "is_correct": verdict.correct,
        "explanation": verdict.explanation,
    }


def answer_correct(run: ActiveRun, attempt: Dict[str, Any]) -> ActiveRun:
    seen = list(run.categories_seen)
    # only categories the player actually survived count
    if run.mode == "mixed" and attempt["category"] not in seen:
        seen.append(attempt["category"])
    return ActiveRun(
        user_id=run.user_id,
        username=run.username,
        mode=run.mode,
        category=run.category,
        started_at_ms=run.started_at_ms,
        streak=run.streak + 1,
        categories_seen=seen,
        questions_attempted=run.questions_attempted + [attempt],
        pending=None,
    )


def answer_incorrect(run: ActiveRun, attempt: Dict[str, Any]) -> TerminatedRun:
    finished = ActiveRun(
        user_id=run.user_id,
        username=run.username,
        mode=run.mode,
        category=run.category,
        started_at_ms=run.started_at_ms,
        streak=run.streak,
        categories_seen=list(run.categories_seen),
        questions_attempted=run.questions_attempted + [attempt],
        pending=None,
    )
    return TerminatedRun(run=finished, reason="incorrect", ended_at_ms=_now_ms())


def abandon(run: ActiveRun) -> TerminatedRun:
    return TerminatedRun(run=run, reason="abandoned", ended_at_ms=_now_ms())


# ---------------------------------------------------------------------------
# Operations
# ---------------------------------------------------------------------------

def start_run(user_id: int, username: Optional[str], mode: str, category: Optional[str], *,
              commit: bool = True) -> game_state.StateSnapshot:
    """With ``commit=False`` the run is only flushed; it lands with its first question."""
    if mode not in MODES:
        raise ValidationError('"mode" must be one of: mixed, category.')
    if mode == "category":
        if not category:
            raise ValidationError("Category is required for category mode.")
        if category not in CATEGORIES:
            raise ValidationError(f"Unknown category: {category}.")
    else:
        category = None

    run = ActiveRun(
        user_id=user_id,
        username=username,
        mode=mode,
        category=category,
        started_at_ms=_now_ms(),
    )
    snap = game_state.create(KIND, str(user_id), run.to_data(), _ttl())
    if commit:
        db.session.commit()
    current_app.logger.info(f"[survival] run {snap.id} started mode={mode} category={category}")
    return snap


def _difficulty_for(streak: int) -> str:
    return "easy" if streak < 3 else "medium"


def next_question(owner: str, run_id: str) -> Dict[str, Any]:
    snap = game_state.load_owned(KIND, run_id, owner)
    run = ActiveRun.from_data(snap.data)

    if run.pending:
        # unanswered question: hand it back instead of skipping it
        return {"run_id": run_id, "question": run.pending.question, "run": run.public()}

    category = run.category if run.mode == "category" else random_category()
    difficulty = _difficulty_for(run.streak)
    raw = generator.generate(generator.QuestionSpec(
        category=category,
        difficulty=difficulty,
        context="This is a survival game: players answer until they get one wrong. "
                "Make it challenging but fair.",
    ))

    question_id = game_state.new_question_id()
    public = raw.public_payload(question_id)
    answer_keys.store(run_id, [raw.key_entry(question_id)], _ttl(), commit=False)
    run.pending = PendingQuestion(question_id=question_id, category=category,
                                  difficulty=difficulty, question=public)
    game_state.save(snap, run.to_data(), ttl_seconds=_ttl())
    db.session.commit()
    return {"run_id": run_id, "question": public, "run": run.public()}


def submit_answer(owner: str, run_id: str, question_id: str, response: str,
                  authenticated: bool = True) -> Dict[str, Any]:
    snap = game_state.load_owned(KIND, run_id, owner)
    run = ActiveRun.from_data(snap.data)

    answered_ids = {a["question_id"] for a in run.questions_attempted}
    is_pending = run.pending is not None and run.pending.question_id == question_id
    if not is_pending and question_id not in answered_ids:
        raise InvalidStateError("That question is not waiting for an answer.")

    verdict = evaluation.evaluate(run_id, run_id, question_id, response,
                                  authenticated=authenticated, commit=False)
    if not verdict.fresh:
        return _replay(owner, run_id, verdict)
    if not is_pending:
        db.session.rollback()
        raise InvalidStateError("That question is not waiting for an answer.")

    attempt = _attempt(run.pending, response, verdict)
    if verdict.correct:
        advanced = answer_correct(run, attempt)
        game_state.save(snap, advanced.to_data(), ttl_seconds=_ttl())
        db.session.commit()
        return {"run_id": run_id, **verdict.to_payload(), "game_over": False, "run": advanced.public()}

    summary = _terminate(snap, answer_incorrect(run, attempt))
    return {"run_id": run_id, **verdict.to_payload(), "game_over": True, "run": summary}


def _replay(owner: str, run_id: str, verdict: evaluation.Verdict) -> Dict[str, Any]:
    """Stored verdict plus wherever the run stands now; the winning submit may have ended it."""
    try:
        snap = game_state.load_owned(KIND, run_id, owner)
    except NotFoundError:
        record = get_run(run_id)
        return {"run_id": run_id, **verdict.to_payload(), "game_over": True,
                "run": {**record.to_payload(), "status": "terminated"}}
    run = ActiveRun.from_data(snap.data)
    return {"run_id": run_id, **verdict.to_payload(), "game_over": False, "run": run.public()}


def end_run(owner: str, run_id: str) -> Dict[str, Any]:
    snap = game_state.load_owned(KIND, run_id, owner)
    run = ActiveRun.from_data(snap.data)
    return {"run_id": run_id, "game_over": True, "run": _terminate(snap, abandon(run))}


def _scope_query(mode: str, category: Optional[str]):
    query = SurvivalRun.query.filter(SurvivalRun.mode == mode)
    if mode == "category":
        query = query.filter(SurvivalRun.category == category)
    return query


def _terminate(snap: game_state.StateSnapshot, terminal: TerminatedRun) -> Dict[str, Any]:
    run = terminal.run
    started = datetime.fromtimestamp(run.started_at_ms / 1000, tz=timezone.utc)
    ended = datetime.fromtimestamp(terminal.ended_at_ms / 1000, tz=timezone.utc)
    record = SurvivalRun(
        id=snap.id,
        user_id=run.user_id,
        username=run.username,
        mode=run.mode,
        category=run.category,
        streak=run.streak,
        categories_seen=list(run.categories_seen),
        questions_attempted=list(run.questions_attempted),
        end_reason=terminal.reason,
        time_played_seconds=max(0, (terminal.ended_at_ms - run.started_at_ms) // 1000),
        started_at=started,
        ended_at=ended,
    )
    # critical: the finished run, the state removal and the key removal land together
    db.session.add(record)
    game_state.delete(snap)
    answer_keys.invalidate(snap.id)
    db.session.commit()
    current_app.logger.info(f"[survival] run {snap.id} over streak={run.streak} reason={terminal.reason}")

    scope = _scope_query(run.mode, run.category)
    rank = rank_for(scope, SurvivalRun.streak, run.streak)
    best = is_personal_best(scope.filter(SurvivalRun.user_id == run.user_id),
                            SurvivalRun.streak, run.streak, SurvivalRun.id, snap.id)

    record_stats(
        snap.id,
        user_id=run.user_id,
        username=run.username,
        game_mode=KIND,
        category=run.category or "Mixed",
        num_questions=len(run.questions_attempted),
        correct_answers=run.streak,
        time_taken=record.time_played_seconds,
        questions=list(run.questions_attempted),
    )

    return {
        **record.to_payload(),
        "status": "terminated",
        "rank": rank,
        "is_personal_best": best,
    }


def get_run(run_id: str) -> SurvivalRun:
    record = db.session.get(SurvivalRun, run_id)
    if record is None:
        raise NotFoundError("Run not found.")
    return record


def leaderboard(mode: str, category: Optional[str], limit: int = 50) -> List[Dict[str, Any]]:
    if mode not in MODES:
        raise ValidationError('"mode" must be one of: mixed, category.')
    if mode == "category" and not category:
        raise ValidationError("Category is required for category mode.")
    rows = top(_scope_query(mode, category), SurvivalRun.streak.desc(), SurvivalRun.ended_at.asc(), limit=limit)
    return [
        {
            "rank": i + 1,
            "run_id": r.id,
            "username": r.username,
            "streak": r.streak,
            "categories_seen": r.categories_seen or [],
            "time_played_seconds": r.time_played_seconds,
        }
        for i, r in enumerate(rows)
    ]


def stats(user_id: int) -> Dict[str, Any]:
    """Best streaks (mixed and per category) with their current ranks, plus totals."""
    mine = SurvivalRun.query.filter(SurvivalRun.user_id == user_id)

    mixed_best = personal_best(mine.filter(SurvivalRun.mode == "mixed"), SurvivalRun.streak) or 0
    mixed_rank = rank_for(_scope_query("mixed", None), SurvivalRun.streak, mixed_best) if mixed_best > 0 else None

    category_bests = []
    played = (mine.filter(SurvivalRun.mode == "category")
              .with_entities(SurvivalRun.category)
              .distinct()
              .all())
    for (category,) in played:
        best = personal_best(mine.filter(SurvivalRun.mode == "category", SurvivalRun.category == category),
                             SurvivalRun.streak) or 0
        rank = rank_for(_scope_query("category", category), SurvivalRun.streak, best) if best > 0 else None
        category_bests.append({"category": category, "streak": best, "rank": rank})
    category_bests.sort(key=lambda c: (-c["streak"], c["category"]))

    totals = mine.with_entities(func.count(SurvivalRun.id),
                                func.coalesce(func.sum(SurvivalRun.streak), 0),
                                func.coalesce(func.sum(SurvivalRun.time_played_seconds), 0)).one()
    recent = mine.order_by(SurvivalRun.ended_at.desc()).limit(10).all()
    return {
        "mixed_best_streak": mixed_best,
        "mixed_rank": mixed_rank,
        "category_bests": category_bests,
        "total_runs": int(totals[0]),
        "total_questions_survived": int(totals[1]),
        "total_time_played": int(totals[2]),
        "recent_runs": [
            {"run_id": r.id, "mode": r.mode, "category": r.category, "streak": r.streak,
             "ended_at": r.ended_at.isoformat() if r.ended_at else None}
            for r in recent
        ],
    }
