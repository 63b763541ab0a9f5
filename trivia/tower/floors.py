# trivia/tower/floors.py
"""Floor number -> (tier, difficulty, category). Pure and deterministic."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Sequence

from trivia.categories import CATEGORIES

QUESTIONS_PER_FLOOR = 5
PASSING_SCORE = 3

TIERS = {
    1: ("The Lower Archives", "easy"),
    2: ("The Middle Stacks", "medium"),
    3: ("The Upper Sanctum", "hard"),
}


@dataclass(frozen=True)
class FloorInfo:
    floor: int
    tier: int
    tier_name: str
    difficulty: str
    category: str
    total_floors: int

    def to_payload(self) -> dict:
        return asdict(self)


def total_floors(categories: Sequence[str] = CATEGORIES) -> int:
    return len(categories) * len(TIERS)


def is_valid_floor(floor: int, categories: Sequence[str] = CATEGORIES) -> bool:
    return 1 <= floor <= total_floors(categories)


def floor_info(floor: int, categories: Sequence[str] = CATEGORIES) -> FloorInfo:
    if not is_valid_floor(floor, categories):
        raise ValueError(f"floor {floor} is outside 1..{total_floors(categories)}")
    n = len(categories)
    tier = (floor - 1) // n + 1
    name, difficulty = TIERS[tier]
    return FloorInfo(
        floor=floor,
        tier=tier,
        tier_name=name,
        difficulty=difficulty,
        category=categories[(floor - 1) % n],
        total_floors=total_floors(categories),
    )
