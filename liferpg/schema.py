from __future__ import annotations

import copy
import logging
from datetime import datetime

from liferpg.catalog import ITEM_KINDS, COLLECTIONS, clamp_int, new_id, normalize_item
from liferpg.clock import game_day_key, iso_week_start, local_now

logger = logging.getLogger(__name__)

CURRENT_SCHEMA_VERSION = 2
OLDEST_SCHEMA_VERSION = 1

DEFAULT_SETTINGS = {"resetHourOffset": 4, "hapticsEnabled": True, "rerollCost": 20}

LOG_KINDS = ("task", "challenge", "purchase", "bonus")
AGGREGATE_FIELDS = ("pointsEarned", "completionsCount", "currencyEarned", "currencySpent")


def empty_today(day: str | None = None) -> dict:
    return {
        "day": day,
        "pointsToday": 0,
        "perTaskCompletionsToday": {},
        "challengeCompletedToday": [],
        "lastMilestoneAnnounced": 0,
        "rerolled": False,
    }


def empty_aggregate() -> dict:
    return {field: 0 for field in AGGREGATE_FIELDS}


def _week_containing(now: datetime | None, reset_hour_offset: int) -> str | None:
    if now is None:
        return None
    return iso_week_start(game_day_key(now, reset_hour_offset))


def default_state(now: datetime | None = None) -> dict:
    return {
        "schemaVersion": CURRENT_SCHEMA_VERSION,
        "settings": dict(DEFAULT_SETTINGS),
        "profile": {"currencyBalance": 0, "bestStreak": 0, "lastActiveDay": None, "nextLogSeq": 1},
        "today": empty_today(),
        "streak": {"current": 0},
        "tasks": [],
        "challenges": [],
        "shopItems": [],
        "dailyAssignments": {},
        "dailyAggregates": {},
        "log": [],
        "weeklyQuest": {
            "weekStartDay": _week_containing(now, DEFAULT_SETTINGS["resetHourOffset"]),
            "goals": [],
            "completed": False,
            "bonusGranted": False,
        },
    }


def _count(value, default: int = 0) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    return max(0, int(value))


def _signed(value) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    return int(value)


def _dict(value) -> dict:
    return value if isinstance(value, dict) else {}


def _list(value) -> list:
    return value if isinstance(value, list) else []


def _day_or_none(value) -> str | None:
    return value if isinstance(value, str) and value else None


def _unique_ids(values) -> list[str]:
    out: list[str] = []
    for value in _list(values):
        if isinstance(value, str) and value not in out:
            out.append(value)
    return out


def schema_version_of(raw: dict) -> int:
    version = raw.get("schemaVersion", raw.get("version"))
    if isinstance(version, bool) or not isinstance(version, (int, float)):
        return OLDEST_SCHEMA_VERSION
    return int(version)


def _upgrade_v1(data: dict, now: datetime | None) -> dict:
    settings = _dict(data.get("settings"))
    profile = _dict(data.get("profile"))
    today = _dict(data.get("today"))

    def legacy_item(raw: dict) -> dict:
        return {
            **raw,
            "pointsAwarded": raw.get("points"),
            "currencyAwarded": raw.get("coinsEarned"),
            "lastPurchasedDay": raw.get("lastBoughtDay"),
        }

    logs = [entry for entry in _list(data.get("logs")) if isinstance(entry, dict)]
    upgraded_log = []
    for index, entry in enumerate(logs):
        kind = entry.get("type")
        if kind == "purchase":
            points, currency = 0, -_count(entry.get("cost"))
        else:
            points, currency = _count(entry.get("points")), _count(entry.get("coins"))
        upgraded_log.append({
            "id": new_id(),
            "seq": len(logs) - index,
            "timestamp": entry.get("ts"),
            "kind": kind,
            "itemId": entry.get("id"),
            "itemName": entry.get("name"),
            "day": entry.get("day"),
            "pointsDelta": points,
            "currencyDelta": currency,
        })

    points_today = _count(today.get("points"))
    challenge_done = today.get("challengeDone")
    reset_hour = clamp_int(settings.get("resetHour"), 0, 23, DEFAULT_SETTINGS["resetHourOffset"])

    return {
        "schemaVersion": CURRENT_SCHEMA_VERSION,
        "settings": {
            "resetHourOffset": reset_hour,
            "hapticsEnabled": settings.get("haptics", DEFAULT_SETTINGS["hapticsEnabled"]),
            "rerollCost": settings.get("rerollCost"),
        },
        "profile": {
            "currencyBalance": profile.get("coins"),
            "bestStreak": profile.get("bestStreak"),
            "lastActiveDay": profile.get("lastActiveDay"),
        },
        "today": {
            "day": today.get("day"),
            "pointsToday": points_today,
            "perTaskCompletionsToday": today.get("doneCounts"),
            "challengeCompletedToday": [k for k, v in _dict(challenge_done).items() if v],
            "lastMilestoneAnnounced": (points_today // 100) * 100,
            "rerolled": today.get("rerolled"),
        },
        "streak": data.get("streak"),
        "tasks": [legacy_item(x) for x in _list(data.get("tasks")) if isinstance(x, dict)],
        "challenges": [legacy_item(x) for x in _list(data.get("challenges")) if isinstance(x, dict)],
        "shopItems": [legacy_item(x) for x in _list(data.get("shop")) if isinstance(x, dict)],
        "dailyAssignments": data.get("assigned"),
        "dailyAggregates": {
            day: {
                "pointsEarned": bucket.get("points"),
                "completionsCount": bucket.get("completions"),
                "currencyEarned": bucket.get("coinsEarned"),
                "currencySpent": bucket.get("coinsSpent"),
            }
            for day, bucket in _dict(data.get("progress")).items()
            if isinstance(bucket, dict)
        },
        "log": upgraded_log,
        "weeklyQuest": {
            "weekStartDay": _week_containing(now or local_now(), reset_hour),
            "goals": [],
            "completed": False,
            "bonusGranted": False,
        },
    }


def _normalize_goal(raw: dict) -> dict:
    target = clamp_int(raw.get("target"), 1, 10_000, 1)
    return {
        "id": str(raw.get("id") or new_id()),
        "label": str(raw.get("label") or "").strip(),
        "target": target,
        "tally": min(target, _count(raw.get("tally"))),
        "linkedItemIds": _unique_ids(raw.get("linkedItemIds")),
    }


def _normalize_entry(raw: dict) -> dict:
    return {
        "id": str(raw.get("id") or new_id()),
        "seq": _count(raw.get("seq")),
        "timestamp": raw.get("timestamp") if isinstance(raw.get("timestamp"), str) else None,
        "kind": raw.get("kind") if raw.get("kind") in LOG_KINDS else "task",
        "itemId": raw.get("itemId") if isinstance(raw.get("itemId"), str) else None,
        "itemName": raw.get("itemName") if isinstance(raw.get("itemName"), str) else "",
        "day": _day_or_none(raw.get("day")),
        "pointsDelta": _signed(raw.get("pointsDelta")),
        "currencyDelta": _signed(raw.get("currencyDelta")),
    }


def _normalize(data: dict) -> dict:
    settings = _dict(data.get("settings"))
    profile = _dict(data.get("profile"))
    today = _dict(data.get("today"))
    quest = _dict(data.get("weeklyQuest"))

    haptics = settings.get("hapticsEnabled")
    log = [_normalize_entry(entry) for entry in _list(data.get("log")) if isinstance(entry, dict)]
    next_seq = max([1, _count(profile.get("nextLogSeq"))] + [entry["seq"] + 1 for entry in log])

    state = {
        "schemaVersion": CURRENT_SCHEMA_VERSION,
        "settings": {
            "resetHourOffset": clamp_int(settings.get("resetHourOffset"), 0, 23, DEFAULT_SETTINGS["resetHourOffset"]),
            "hapticsEnabled": haptics if isinstance(haptics, bool) else DEFAULT_SETTINGS["hapticsEnabled"],
            "rerollCost": clamp_int(settings.get("rerollCost"), 0, 999, DEFAULT_SETTINGS["rerollCost"]),
        },
        "profile": {
            "currencyBalance": _count(profile.get("currencyBalance")),
            "bestStreak": _count(profile.get("bestStreak")),
            "lastActiveDay": _day_or_none(profile.get("lastActiveDay")),
            "nextLogSeq": next_seq,
        },
        "today": {
            "day": _day_or_none(today.get("day")),
            "pointsToday": _count(today.get("pointsToday")),
            "perTaskCompletionsToday": {
                str(k): _count(v) for k, v in _dict(today.get("perTaskCompletionsToday")).items()
            },
            "challengeCompletedToday": _unique_ids(today.get("challengeCompletedToday")),
            "lastMilestoneAnnounced": _count(today.get("lastMilestoneAnnounced")),
            "rerolled": today.get("rerolled") is True,
        },
        "streak": {"current": _count(_dict(data.get("streak")).get("current"))},
        "dailyAssignments": {
            str(day): _unique_ids(ids)[:3] for day, ids in _dict(data.get("dailyAssignments")).items()
        },
        "dailyAggregates": {
            str(day): {field: _count(_dict(bucket).get(field)) for field in AGGREGATE_FIELDS}
            for day, bucket in _dict(data.get("dailyAggregates")).items()
        },
        "log": log,
        "weeklyQuest": {
            "weekStartDay": _day_or_none(quest.get("weekStartDay")),
            "goals": [_normalize_goal(goal) for goal in _list(quest.get("goals")) if isinstance(goal, dict)],
            "completed": quest.get("completed") is True,
            "bonusGranted": quest.get("bonusGranted") is True or quest.get("completed") is True,
        },
    }
    for kind in ITEM_KINDS:
        key = COLLECTIONS[kind]
        state[key] = [normalize_item(kind, item) for item in _list(data.get(key)) if isinstance(item, dict)]
    return state


def is_current(state: dict) -> bool:
    return schema_version_of(state) == CURRENT_SCHEMA_VERSION


def migrate(raw: dict | None, now: datetime | None = None) -> dict:
    """Return ``raw`` upgraded to the current schema.

    ``None`` or a non-object yields a fresh default state. A document that
    reports a newer schema than this build knows is handed back untouched.
    """
    if not isinstance(raw, dict):
        return default_state(now)
    version = schema_version_of(raw)
    if version > CURRENT_SCHEMA_VERSION:
        logger.warning("State reports schema %s, newer than %s; loading as-is", version, CURRENT_SCHEMA_VERSION)
        return raw
    data = copy.deepcopy(raw)
    if version < CURRENT_SCHEMA_VERSION:
        logger.info("Migrating state from schema %s to %s", version, CURRENT_SCHEMA_VERSION)
        data = _upgrade_v1(data, now)
    return _normalize(data)
