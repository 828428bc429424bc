from __future__ import annotations

import logging
import random

from liferpg.catalog import active_items
from liferpg.clock import previous_day

logger = logging.getLogger(__name__)

DAILY_CHALLENGE_COUNT = 3


def ensure_daily_assignments(state: dict, day: str, rng: random.Random | None = None) -> list[str]:
    assigned = state["dailyAssignments"]
    existing = assigned.get(day)
    if existing and len(existing) == DAILY_CHALLENGE_COUNT:
        return existing

    rng = rng or random.Random()
    pool = [item["id"] for item in active_items(state, "challenge")]
    avoid = set(assigned.get(previous_day(day)) or [])
    candidates = [item_id for item_id in pool if item_id not in avoid]
    pick_from = candidates if len(candidates) >= DAILY_CHALLENGE_COUNT else pool

    selected = rng.sample(pick_from, min(DAILY_CHALLENGE_COUNT, len(pick_from)))
    assigned[day] = selected
    logger.debug("Assigned challenges for %s: %s", day, selected)
    return selected


def reroll_assignments(state: dict, day: str, rng: random.Random | None = None) -> list[str]:
    state["dailyAssignments"].pop(day, None)
    return ensure_daily_assignments(state, day, rng)
