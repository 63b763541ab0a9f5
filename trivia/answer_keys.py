# trivia/answer_keys.py
"""
Server-held answer keys.

A container (quiz id, run id, game id, faceoff share) owns an ordered set of
entries. Entries are appended, never rewritten; the whole container shares a
single expiry, pushed forward each time something is appended. Expired rows
behave exactly like rows that never existed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Dict, Iterable, List, Optional

from flask import current_app
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError

from trivia.extensions import db
from trivia.models import AnswerKeyEntry, _utcnow


@dataclass
class KeyEntry:
    question_id: str
    answer: str
    question_type: str
    explanation: str = ""
    prompt: str = ""
    public: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_row(cls, row: AnswerKeyEntry) -> "KeyEntry":
        return cls(
            question_id=row.question_id,
            answer=row.answer,
            question_type=row.question_type,
            explanation=row.explanation or "",
            prompt=row.prompt or "",
            public=dict(row.public_json or {}),
        )


def store(container_id: str, entries: Iterable[KeyEntry], ttl_seconds: int, *, commit: bool = True) -> None:
    """Append entries to a container and extend its expiry. Failures propagate."""
    entries = list(entries)
    now = _utcnow()
    expires_at = now + timedelta(seconds=ttl_seconds)
    try:
        # leftovers from an expired incarnation of this container are dead weight
        (AnswerKeyEntry.query
         .filter(AnswerKeyEntry.container_id == container_id, AnswerKeyEntry.expires_at <= now)
         .delete(synchronize_session=False))
        live = (db.session.query(func.count(AnswerKeyEntry.id))
                .filter(AnswerKeyEntry.container_id == container_id)
                .scalar()) or 0
        if live:
            (AnswerKeyEntry.query
             .filter(AnswerKeyEntry.container_id == container_id)
             .update({"expires_at": expires_at}, synchronize_session=False))
        for offset, entry in enumerate(entries):
            db.session.add(AnswerKeyEntry(
                container_id=container_id,
                question_id=entry.question_id,
                position=live + offset,
                question_type=entry.question_type,
                answer=entry.answer,
                explanation=entry.explanation or "",
                prompt=entry.prompt or "",
                public_json=entry.public or None,
                created_at=now,
                expires_at=expires_at,
            ))
        if commit:
            db.session.commit()
        else:
            db.session.flush()
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception(f"[keys] failed to store {len(entries)} answer(s) for {container_id}")
        raise


def lookup(container_id: str, question_id: str) -> Optional[KeyEntry]:
    row = (AnswerKeyEntry.query
           .filter(AnswerKeyEntry.container_id == container_id,
                   AnswerKeyEntry.question_id == question_id,
                   AnswerKeyEntry.expires_at > _utcnow())
           .first())
    return KeyEntry.from_row(row) if row else None


def entries_for(container_id: str) -> List[KeyEntry]:
    rows = (AnswerKeyEntry.query
            .filter(AnswerKeyEntry.container_id == container_id,
                    AnswerKeyEntry.expires_at > _utcnow())
            .order_by(AnswerKeyEntry.position.asc())
            .all())
    return [KeyEntry.from_row(r) for r in rows]


def invalidate(container_id: str, *, commit: bool = False) -> int:
    deleted = (AnswerKeyEntry.query
               .filter(AnswerKeyEntry.container_id == container_id)
               .delete(synchronize_session=False))
    if commit:
        db.session.commit()
    return deleted


def purge_expired() -> int:
    deleted = (AnswerKeyEntry.query
               .filter(AnswerKeyEntry.expires_at <= _utcnow())
               .delete(synchronize_session=False))
    db.session.commit()
    return deleted
