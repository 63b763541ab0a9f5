# trivia/game_state.py
"""
Ephemeral run/game state kept in the database instead of process memory.

Every row carries a ``version``. ``save`` is a compare-and-swap: the UPDATE
only matches the version that was loaded, so two requests that started from
the same state cannot both move it forward.
"""

from __future__ import annotations

import copy
import uuid
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Dict, Optional

from flask import current_app

from trivia.errors import InvalidStateError, NotFoundError, UnauthorizedError
from trivia.extensions import db
from trivia.models import ActiveGame, _utcnow


@dataclass
class StateSnapshot:
    id: str
    kind: str
    owner_id: str
    data: Dict[str, Any]
    version: int


def new_id() -> str:
    return uuid.uuid4().hex


def _snapshot(row: ActiveGame) -> StateSnapshot:
    return StateSnapshot(
        id=row.id,
        kind=row.kind,
        owner_id=row.owner_id,
        data=copy.deepcopy(row.data or {}),
        version=row.version,
    )


def create(kind: str, owner_id: str, data: Dict[str, Any], ttl_seconds: int, *,
           state_id: Optional[str] = None) -> StateSnapshot:
    now = _utcnow()
    row = ActiveGame(
        id=state_id or new_id(),
        kind=kind,
        owner_id=owner_id,
        data=copy.deepcopy(data),
        version=1,
        created_at=now,
        updated_at=now,
        expires_at=now + timedelta(seconds=ttl_seconds),
    )
    db.session.add(row)
    db.session.flush()
    return _snapshot(row)


def load(kind: str, state_id: Optional[str]) -> StateSnapshot:
    if not state_id:
        raise NotFoundError()
    row = (db.session.query(ActiveGame)
           .filter(ActiveGame.id == state_id,
                   ActiveGame.kind == kind,
                   ActiveGame.expires_at > _utcnow())
           .populate_existing()
           .first())
    if row is None:
        raise NotFoundError()
    return _snapshot(row)


def load_owned(kind: str, state_id: Optional[str], owner_id: str) -> StateSnapshot:
    snap = load(kind, state_id)
    if snap.owner_id != owner_id:
        current_app.logger.warning(f"[state] owner mismatch on {kind} {state_id}")
        raise UnauthorizedError()
    return snap


def save(snapshot: StateSnapshot, data: Dict[str, Any], *, ttl_seconds: Optional[int] = None) -> StateSnapshot:
    """Compare-and-swap on version. Flushes only; the caller commits."""
    now = _utcnow()
    values: Dict[str, Any] = {
        "data": copy.deepcopy(data),
        "version": snapshot.version + 1,
        "updated_at": now,
    }
    if ttl_seconds:
        values["expires_at"] = now + timedelta(seconds=ttl_seconds)
    updated = (ActiveGame.query
               .filter(ActiveGame.id == snapshot.id,
                       ActiveGame.version == snapshot.version,
                       ActiveGame.expires_at > now)
               .update(values, synchronize_session=False))
    if updated != 1:
        raise InvalidStateError("This session was updated by another request. Refresh and try again.")
    return StateSnapshot(
        id=snapshot.id,
        kind=snapshot.kind,
        owner_id=snapshot.owner_id,
        data=copy.deepcopy(data),
        version=snapshot.version + 1,
    )


def delete(snapshot: StateSnapshot) -> None:
    """Remove the state, but only if nobody moved it since it was loaded."""
    deleted = (ActiveGame.query
               .filter(ActiveGame.id == snapshot.id, ActiveGame.version == snapshot.version)
               .delete(synchronize_session=False))
    if deleted != 1:
        raise InvalidStateError("This session was updated by another request. Refresh and try again.")


def purge_expired() -> int:
    deleted = (ActiveGame.query
               .filter(ActiveGame.expires_at <= _utcnow())
               .delete(synchronize_session=False))
    db.session.commit()
    return deleted


def new_question_id() -> str:
    return f"q_{uuid.uuid4().hex[:16]}"
