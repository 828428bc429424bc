"""Points and currency ledger.

Every grant, spend and reverse touches three places together: the running
counters (``today.pointsToday``, ``profile.currencyBalance``), the per-day
aggregate bucket, and the newest-first completion log. Reversal floors every
counter at zero. The weekly quest bonus reaches the balance and the log only;
aggregates sum task and challenge entries.
"""

from __future__ import annotations

import logging

from liferpg import quests, signals
from liferpg.catalog import new_id
from liferpg.clock import utc_now_iso
from liferpg.milestones import check_milestone
from liferpg.schema import empty_aggregate

logger = logging.getLogger(__name__)

COMPLETION_KINDS = ("task", "challenge")


def ensure_aggregate(state: dict, day: str) -> dict:
    buckets = state["dailyAggregates"]
    if day not in buckets:
        buckets[day] = empty_aggregate()
    return buckets[day]


def _append_entry(state: dict, kind: str, item_id: str, name: str, day: str, points: int, currency: int) -> dict:
    profile = state["profile"]
    entry = {
        "id": new_id(),
        "seq": profile["nextLogSeq"],
        "timestamp": utc_now_iso(),
        "kind": kind,
        "itemId": item_id,
        "itemName": name,
        "day": day,
        "pointsDelta": points,
        "currencyDelta": currency,
    }
    profile["nextLogSeq"] += 1
    state["log"].insert(0, entry)
    return entry


def credit_quest_bonus(state: dict, day: str) -> list[dict]:
    bonus = quests.QUEST_BONUS_CURRENCY
    state["profile"]["currencyBalance"] += bonus
    _append_entry(state, "bonus", "weekly-quest", "Weekly quest bonus", day, 0, bonus)
    logger.info("Weekly quest completed for week of %s: +%d coins", state["weeklyQuest"]["weekStartDay"], bonus)
    return [signals.quest_completed(bonus)]


def grant(state: dict, points: int, currency: int, name: str, kind: str, item_id: str, day: str) -> list[dict]:
    if kind not in COMPLETION_KINDS:
        raise ValueError(f"grant() does not handle {kind!r} entries")
    state["today"]["pointsToday"] += points
    state["profile"]["currencyBalance"] += currency
    bucket = ensure_aggregate(state, day)
    bucket["pointsEarned"] += points
    bucket["currencyEarned"] += currency
    bucket["completionsCount"] += 1
    _append_entry(state, kind, item_id, name, day, points, currency)

    out = [signals.toast(f"+{points} pts, +{currency} coins"), *signals.haptic(state, signals.HAPTIC_GRANT_MS)]
    reached = check_milestone(state["today"])
    if reached is not None:
        out.append(signals.milestone(reached))
    if quests.on_completion(state, item_id):
        out.extend(credit_quest_bonus(state, day))
    return out


def spend(state: dict, cost: int, name: str, item_id: str, day: str) -> list[dict]:
    profile = state["profile"]
    profile["currencyBalance"] = max(0, profile["currencyBalance"] - cost)
    ensure_aggregate(state, day)["currencySpent"] += cost
    _append_entry(state, "purchase", item_id, name, day, 0, -cost)
    return [signals.toast(f"Spent {cost} coins"), *signals.haptic(state, signals.HAPTIC_SPEND_MS)]


def _matching_entry_index(state: dict, points: int, currency: int, kind: str, item_id: str, day: str, entry_id: str | None) -> int | None:
    for index, entry in enumerate(state["log"]):
        if entry["kind"] != kind or entry["itemId"] != item_id or entry["day"] != day:
            continue
        if entry_id is not None:
            if entry["id"] == entry_id:
                return index
        elif entry["pointsDelta"] == points and entry["currencyDelta"] == currency:
            return index
    return None


def reverse(state: dict, points: int, currency: int, kind: str, item_id: str, day: str, entry_id: str | None = None) -> list[dict]:
    """Undo one grant of ``points``/``currency`` for ``item_id`` on ``day``.

    With ``entry_id`` the log entry is matched by identity; without it the
    newest entry with the same amounts is removed. Counters are adjusted even
    when nothing in the log matches.
    """
    today = state["today"]
    profile = state["profile"]
    today["pointsToday"] = max(0, today["pointsToday"] - points)
    profile["currencyBalance"] = max(0, profile["currencyBalance"] - currency)
    bucket = ensure_aggregate(state, day)
    bucket["pointsEarned"] = max(0, bucket["pointsEarned"] - points)
    bucket["currencyEarned"] = max(0, bucket["currencyEarned"] - currency)
    bucket["completionsCount"] = max(0, bucket["completionsCount"] - 1)

    index = _matching_entry_index(state, points, currency, kind, item_id, day, entry_id)
    if index is None:
        logger.warning("No log entry matched reversal of %s %s on %s", kind, item_id, day)
    else:
        del state["log"][index]
    quests.on_reversal(state, item_id)
    return [signals.toast("Undone"), *signals.haptic(state, signals.HAPTIC_UNDO_MS)]
