# trivia/jeopardy/engine.py
"""
Jeopardy board.

``InProgressGame`` lives in the ephemeral state store until every cell
(category x point value) has been answered, at which point it becomes a
``CompleteGame`` and is written to ``jeopardy_games``. A wrong answer costs
the cell's points and the score has no floor. An answered cell, right or
wrong, is closed for good.
"""

from __future__ import annotations

import time
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from flask import current_app
from sqlalchemy import func

from trivia import answer_keys, evaluation, game_state, generator
from trivia.categories import resolve_categories
from trivia.errors import InvalidStateError, UnauthorizedError, ValidationError
from trivia.extensions import db
from trivia.history import record_stats
from trivia.leaderboard import is_personal_best, personal_best, rank_for, top

from .models import JeopardyGame

KIND = "jeopardy"
BOARD_SIZES = (3, 5)
POINT_VALUES = (200, 400, 600, 800, 1000)
DIFFICULTY_BY_POINTS = {
    200: "very easy",
    400: "easy",
    600: "medium",
    800: "hard",
    1000: "very hard",
}


def cell_key(category: str, points: int) -> str:
    return f"{category}-{points}"


def _now_ms() -> int:
    return int(time.time() * 1000)


def _ttl() -> int:
    return int(current_app.config.get("JEOPARDY_TTL_SECONDS", 7200))


@dataclass
class PendingCell:
    question_id: str
    category: str
    points: int
    question: Dict[str, Any]

    @property
    def key(self) -> str:
        return cell_key(self.category, self.points)


@dataclass
class InProgressGame:
    user_id: int
    username: Optional[str]
    board_size: int
    categories: List[str]
    started_at_ms: int
    score: int = 0
    board_state: Dict[str, bool] = field(default_factory=dict)
    questions_attempted: List[Dict[str, Any]] = field(default_factory=list)
    pending: Optional[PendingCell] = None

    @classmethod
    def new(cls, user_id: int, username: Optional[str], categories: List[str]) -> "InProgressGame":
        board = {cell_key(c, p): False for c in categories for p in POINT_VALUES}
        return cls(user_id=user_id, username=username, board_size=len(categories),
                   categories=list(categories), started_at_ms=_now_ms(), board_state=board)

    @classmethod
    def from_data(cls, data: Dict[str, Any]) -> "InProgressGame":
        data = dict(data)
        pending = data.pop("pending", None)
        game = cls(**data)
        game.pending = PendingCell(**pending) if pending else None
        return game

    def to_data(self) -> Dict[str, Any]:
        return asdict(self)

    @property
    def total_cells(self) -> int:
        return self.board_size * len(POINT_VALUES)

    @property
    def cells_answered(self) -> int:
        return sum(1 for v in self.board_state.values() if v)

    @property
    def cells_remaining(self) -> int:
        return self.total_cells - self.cells_answered

    def is_answered(self, key: str) -> bool:
        return bool(self.board_state.get(key))

    def public(self) -> Dict[str, Any]:
        return {
            "board_size": self.board_size,
            "categories": list(self.categories),
            "point_values": list(POINT_VALUES),
            "score": self.score,
            "board_state": dict(self.board_state),
            "cells_remaining": self.cells_remaining,
            "current_question": self.pending.question if self.pending else None,
            "status": "in_progress",
        }


@dataclass
class CompleteGame:
    game: InProgressGame
    completed: bool  # False when the player ended the game early
    ended_at_ms: int


def answer_cell(game: InProgressGame, attempt: Dict[str, Any]) -> Union[InProgressGame, CompleteGame]:
    """Close the pending cell and apply +/- points. Returns a CompleteGame once the board is full."""
    pending = game.pending
    if pending is None:
        raise InvalidStateError("No question is open on this board.")
    if game.is_answered(pending.key):
        raise InvalidStateError("This cell has already been answered.")

    board = dict(game.board_state)
    board[pending.key] = True
    delta = pending.points if attempt["is_correct"] else -pending.points
    advanced = InProgressGame(
        user_id=game.user_id,
        username=game.username,
        board_size=game.board_size,
        categories=list(game.categories),
        started_at_ms=game.started_at_ms,
        score=game.score + delta,
        board_state=board,
        questions_attempted=game.questions_attempted + [attempt],
        pending=None,
    )
    if advanced.cells_answered >= advanced.total_cells:
        return CompleteGame(game=advanced, completed=True, ended_at_ms=_now_ms())
    return advanced


def end_early(game: InProgressGame) -> CompleteGame:
    return CompleteGame(game=game, completed=False, ended_at_ms=_now_ms())


# ---------------------------------------------------------------------------
# Operations
# ---------------------------------------------------------------------------

def start_game(user_id: int, username: Optional[str], board_size: int, categories: List[str]) -> game_state.StateSnapshot:
    if board_size not in BOARD_SIZES:
        raise ValidationError("Board size must be 3 or 5.")
    if not isinstance(categories, list) or not all(isinstance(c, str) and c.strip() for c in categories):
        raise ValidationError('"categories" must be a list of category names.')
    if len(categories) != board_size:
        raise ValidationError(f"Must provide exactly {board_size} categories.")
    resolved = resolve_categories([c.strip() for c in categories])
    if len({c.lower() for c in resolved}) != len(resolved):
        raise ValidationError("Categories must be unique.")

    game = InProgressGame.new(user_id, username, resolved)
    snap = game_state.create(KIND, str(user_id), game.to_data(), _ttl())
    db.session.commit()
    current_app.logger.info(f"[jeopardy] game {snap.id} started board_size={board_size}")
    return snap


def select_cell(owner: str, game_id: str, category: str, points: int) -> Dict[str, Any]:
    snap = game_state.load_owned(KIND, game_id, owner)
    game = InProgressGame.from_data(snap.data)

    if category not in game.categories:
        raise ValidationError("That category is not on this board.")
    if points not in POINT_VALUES:
        raise ValidationError("Invalid point value.")
    key = cell_key(category, points)
    if game.is_answered(key):
        raise InvalidStateError("This cell has already been answered.")
    if game.pending:
        if game.pending.key == key:
            return {"game_id": game_id, "question": game.pending.question, "game": game.public()}
        raise InvalidStateError("Answer the open question before picking another cell.")

    raw = generator.generate(generator.QuestionSpec(
        category=category,
        difficulty=DIFFICULTY_BY_POINTS[points],
        context=f"This is a {points}-point Jeopardy-style clue.",
    ))
    question_id = game_state.new_question_id()
    public = raw.public_payload(question_id, points=points)
    answer_keys.store(game_id, [raw.key_entry(question_id, points=points)], _ttl(), commit=False)
    game.pending = PendingCell(question_id=question_id, category=category, points=points, question=public)
    game_state.save(snap, game.to_data(), ttl_seconds=_ttl())
    db.session.commit()
    return {"game_id": game_id, "question": public, "game": game.public()}


def submit_answer(owner: str, game_id: str, question_id: str, response: str,
                  authenticated: bool = True) -> Dict[str, Any]:
    snap = game_state.load_owned(KIND, game_id, owner)
    game = InProgressGame.from_data(snap.data)

    answered_ids = {a["question_id"] for a in game.questions_attempted}
    is_pending = game.pending is not None and game.pending.question_id == question_id
    if not is_pending and question_id not in answered_ids:
        raise InvalidStateError("That question is not open on this board.")

    verdict = evaluation.evaluate(game_id, game_id, question_id, response,
                                  authenticated=authenticated, commit=False)
    if not verdict.fresh:
        return _replay(owner, game_id, verdict)
    if not is_pending:
        db.session.rollback()
        raise InvalidStateError("That question is not open on this board.")

    pending = game.pending
    attempt = {
        "question_id": question_id,
        "category": pending.category,
        "points": pending.points,
        "prompt": pending.question.get("prompt"),
        "user_answer": response,
        "correct_answer": verdict.canonical_answer,
        "is_correct": verdict.correct,
        "explanation": verdict.explanation,
    }
    points_change = pending.points if verdict.correct else -pending.points
    outcome = answer_cell(game, attempt)

    if isinstance(outcome, CompleteGame):
        summary = _complete(snap, outcome)
        return {"game_id": game_id, **verdict.to_payload(), "points_change": points_change,
                "game_complete": True, "cells_remaining": 0, "game": summary}

    game_state.save(snap, outcome.to_data(), ttl_seconds=_ttl())
    db.session.commit()
    return {"game_id": game_id, **verdict.to_payload(), "points_change": points_change,
            "game_complete": False, "cells_remaining": outcome.cells_remaining, "game": outcome.public()}


def _replay(owner: str, game_id: str, verdict: evaluation.Verdict) -> Dict[str, Any]:
    game = get_game(owner, game_id)
    return {"game_id": game_id, **verdict.to_payload(), "points_change": 0,
            "game_complete": game["status"] == "complete", "game": game}


def end_game(owner: str, game_id: str) -> Dict[str, Any]:
    snap = game_state.load_owned(KIND, game_id, owner)
    game = InProgressGame.from_data(snap.data)
    return {"game_id": game_id, "game_complete": False, "game": _complete(snap, end_early(game))}


def _complete(snap: game_state.StateSnapshot, done: CompleteGame) -> Dict[str, Any]:
    game = done.game
    correct = sum(1 for a in game.questions_attempted if a.get("is_correct"))
    record = JeopardyGame(
        id=snap.id,
        user_id=game.user_id,
        username=game.username,
        board_size=game.board_size,
        categories=list(game.categories),
        final_score=game.score,
        questions_answered=len(game.questions_attempted),
        correct_answers=correct,
        questions_attempted=list(game.questions_attempted),
        completed=done.completed,
        time_played_seconds=max(0, (done.ended_at_ms - game.started_at_ms) // 1000),
        started_at=datetime.fromtimestamp(game.started_at_ms / 1000, tz=timezone.utc),
        ended_at=datetime.fromtimestamp(done.ended_at_ms / 1000, tz=timezone.utc),
    )
    db.session.add(record)
    game_state.delete(snap)
    answer_keys.invalidate(snap.id)
    db.session.commit()
    current_app.logger.info(f"[jeopardy] game {snap.id} finished score={game.score} completed={done.completed}")

    rank = None
    best = False
    if done.completed:
        scope = JeopardyGame.query.filter(JeopardyGame.completed.is_(True),
                                          JeopardyGame.board_size == game.board_size)
        rank = rank_for(scope, JeopardyGame.final_score, game.score)
        best = is_personal_best(scope.filter(JeopardyGame.user_id == game.user_id),
                                JeopardyGame.final_score, game.score, JeopardyGame.id, snap.id)

    record_stats(
        snap.id,
        user_id=game.user_id,
        username=game.username,
        game_mode=KIND,
        category=", ".join(game.categories),
        num_questions=len(game.questions_attempted),
        correct_answers=correct,
        time_taken=record.time_played_seconds,
        questions=list(game.questions_attempted),
    )

    return {**record.to_payload(), "status": "complete", "rank": rank, "is_personal_best": best}


def get_game(owner: str, game_id: str) -> Dict[str, Any]:
    """Current board for an active game, or the stored result of a finished one."""
    record = db.session.get(JeopardyGame, game_id)
    if record is not None:
        if str(record.user_id) != owner:
            current_app.logger.warning(f"[jeopardy] owner mismatch on finished game {game_id}")
            raise UnauthorizedError()
        return {**record.to_payload(), "status": "complete" if record.completed else "ended"}
    snap = game_state.load_owned(KIND, game_id, owner)
    return InProgressGame.from_data(snap.data).public()


def leaderboard(board_size: int, limit: int = 50) -> List[Dict[str, Any]]:
    if board_size not in BOARD_SIZES:
        raise ValidationError("Board size must be 3 or 5.")
    scope = JeopardyGame.query.filter(JeopardyGame.completed.is_(True), JeopardyGame.board_size == board_size)
    rows = top(scope, JeopardyGame.final_score.desc(), JeopardyGame.ended_at.asc(), limit=limit)
    return [
        {
            "rank": i + 1,
            "game_id": r.id,
            "username": r.username,
            "final_score": r.final_score,
            "categories": r.categories or [],
            "correct_answers": r.correct_answers,
            "questions_answered": r.questions_answered,
        }
        for i, r in enumerate(rows)
    ]


def stats(user_id: int) -> Dict[str, Any]:
    """Best completed score and rank per board size, plus totals. Early-ended games do not count."""
    mine = JeopardyGame.query.filter(JeopardyGame.user_id == user_id, JeopardyGame.completed.is_(True))
    payload: Dict[str, Any] = {}
    for size in BOARD_SIZES:
        best = personal_best(mine.filter(JeopardyGame.board_size == size), JeopardyGame.final_score)
        rank = None
        if best is not None:
            scope = JeopardyGame.query.filter(JeopardyGame.completed.is_(True), JeopardyGame.board_size == size)
            rank = rank_for(scope, JeopardyGame.final_score, best)
        payload[f"best_score_{size}"] = best
        payload[f"rank_{size}"] = rank

    totals = mine.with_entities(func.count(JeopardyGame.id),
                                func.coalesce(func.sum(JeopardyGame.questions_answered), 0),
                                func.coalesce(func.sum(JeopardyGame.correct_answers), 0),
                                func.coalesce(func.sum(JeopardyGame.time_played_seconds), 0)).one()
    recent = mine.order_by(JeopardyGame.ended_at.desc()).limit(10).all()
    payload.update({
        "total_games": int(totals[0]),
        "total_questions_answered": int(totals[1]),
        "total_questions_correct": int(totals[2]),
        "total_time_played": int(totals[3]),
        "recent_games": [
            {"game_id": g.id, "board_size": g.board_size, "final_score": g.final_score,
             "correct_answers": g.correct_answers, "questions_answered": g.questions_answered,
             "ended_at": g.ended_at.isoformat() if g.ended_at else None}
            for g in recent
        ],
    })
    return payload
