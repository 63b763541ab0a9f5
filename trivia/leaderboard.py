# trivia/leaderboard.py
"""Read-only projections over completed sessions."""

from __future__ import annotations

from typing import Any, List

from sqlalchemy import func


def rank_for(query, column, value) -> int:
    """1 + number of records in ``query`` strictly better than ``value``."""
    return query.filter(column > value).count() + 1


def is_personal_best(owner_query, column, value, id_column, exclude_id: Any) -> bool:
    """Strictly better than every earlier record of the owner. No earlier record counts as a best."""
    prior = (owner_query
             .filter(id_column != exclude_id)
             .with_entities(func.max(column))
             .scalar())
    return prior is None or value > prior


def personal_best(owner_query, column):
    return owner_query.with_entities(func.max(column)).scalar()


def top(query, *order_by, limit: int = 50) -> List[Any]:
    limit = max(1, min(int(limit or 50), 100))
    return query.order_by(*order_by).limit(limit).all()
