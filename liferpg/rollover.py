from __future__ import annotations

import logging
import random
from datetime import datetime

from liferpg import quests
from liferpg.assignments import ensure_daily_assignments
from liferpg.clock import game_day_key
from liferpg.schema import empty_today

logger = logging.getLogger(__name__)


def close_out_day(state: dict, day: str) -> int:
    streak = state["streak"]
    profile = state["profile"]
    bucket = state["dailyAggregates"].get(day)
    if bucket and bucket.get("completionsCount", 0) > 0:
        streak["current"] += 1
        profile["bestStreak"] = max(profile["bestStreak"], streak["current"])
    else:
        streak["current"] = 0
    return streak["current"]


def ensure_game_day(state: dict, now: datetime, rng: random.Random | None = None) -> dict:
    """Bring ``state['today']`` up to the game day containing ``now``.

    Safe to call before every action: nothing changes while the game day is
    the same. The game day never moves backwards; a clock or reset-hour change
    that lands on an earlier day keeps the current one until time catches up.
    """
    game_day = game_day_key(now, state["settings"]["resetHourOffset"])
    today = state["today"]
    previous = today["day"]
    result = {"day": game_day, "previousDay": previous, "changed": False, "weekRolled": False, "streak": state["streak"]["current"]}

    if previous == game_day:
        return result
    if previous is not None and game_day < previous:
        logger.info("Game day %s is behind %s; keeping the current day", game_day, previous)
        result["day"] = previous
        return result

    if previous is not None:
        streak = close_out_day(state, previous)
        logger.info("Game day %s -> %s, streak now %d", previous, game_day, streak)
        state["today"] = empty_today(game_day)
    else:
        today["day"] = game_day
        logger.info("First game day initialized: %s", game_day)

    state["profile"]["lastActiveDay"] = game_day
    ensure_daily_assignments(state, game_day, rng)
    result["weekRolled"] = quests.roll_week(state, game_day)
    result["changed"] = True
    result["streak"] = state["streak"]["current"]
    return result
