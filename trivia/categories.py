# trivia/categories.py
from __future__ import annotations

import hashlib
import random
from datetime import date, datetime
from typing import List, Sequence

import pytz
from flask import current_app

CATEGORIES: List[str] = [
    "History",
    "Science",
    "Literature",
    "Film & TV",
    "Sports",
    "Geography",
    "Arts",
    "Technology",
    "General Knowledge",
    "Music",
    "Food & Drink",
    "Nature & Animals",
    "Mythology",
    "Space & Astronomy",
    "Video Games",
    "Politics & Government",
    "Business & Economics",
    "Health & Medicine",
    "Architecture",
    "Fashion",
    "Philosophy",
    "Psychology",
    "Linguistics & Languages",
    "Mathematics",
    "Chemistry",
    "Physics",
    "Biology",
    "Anime & Manga",
    "Comic Books & Graphic Novels",
    "Broadway & Theater",
]

RANDOM_CATEGORY = "random"


def random_category(rng: random.Random | None = None, exclude: Sequence[str] = ()) -> str:
    rng = rng or random
    pool = [c for c in CATEGORIES if c not in set(exclude)] or CATEGORIES
    return rng.choice(pool)


def resolve_categories(requested: Sequence[str], rng: random.Random | None = None) -> List[str]:
    """Replace "random" entries with distinct categories not already on the list."""
    resolved: List[str] = []
    explicit = [c for c in requested if c.lower() != RANDOM_CATEGORY]
    for name in requested:
        if name.lower() == RANDOM_CATEGORY:
            name = random_category(rng, exclude=explicit + resolved)
        resolved.append(name)
    return resolved


def local_today() -> date:
    """Today's date in the configured local timezone."""
    tz = pytz.timezone(current_app.config.get("TIME_ZONE") or "America/New_York")
    return datetime.now(tz).date()


def daily_category(day: date) -> str:
    """Deterministic category for a given date; the same for every player."""
    secret = current_app.config.get("DAILY_SECRET") or ""
    h = hashlib.sha256(f"daily-quiz-{day.isoformat()}|{secret}".encode()).digest()
    seed = int.from_bytes(h[:4], "little")
    return CATEGORIES[seed % len(CATEGORIES)]
