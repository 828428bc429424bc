from __future__ import annotations

import logging

from liferpg.catalog import clamp_int, find_any_item, new_id
from liferpg.clock import iso_week_start
from liferpg.errors import ItemNotFoundError, ValidationError

logger = logging.getLogger(__name__)

QUEST_BONUS_CURRENCY = 100
TARGET_RANGE = (1, 10_000)


def roll_week(state: dict, day: str) -> bool:
    quest = state["weeklyQuest"]
    week_start = iso_week_start(day)
    if quest["weekStartDay"] == week_start:
        return False
    quest["weekStartDay"] = week_start
    quest["completed"] = False
    quest["bonusGranted"] = False
    for goal in quest["goals"]:
        goal["tally"] = 0
    logger.info("Weekly quest rolled over to week of %s (%d goals)", week_start, len(quest["goals"]))
    return True


def all_goals_met(quest: dict) -> bool:
    goals = quest["goals"]
    return bool(goals) and all(goal["tally"] >= goal["target"] for goal in goals)


def _settle(quest: dict) -> bool:
    """Sync ``completed`` with the tallies; True when the weekly bonus is now due."""
    met = all_goals_met(quest)
    if not met:
        quest["completed"] = False
        return False
    if quest["completed"]:
        return False
    quest["completed"] = True
    if quest["bonusGranted"]:
        return False
    quest["bonusGranted"] = True
    return True


def on_completion(state: dict, item_id: str) -> bool:
    quest = state["weeklyQuest"]
    touched = False
    for goal in quest["goals"]:
        if item_id in goal["linkedItemIds"]:
            goal["tally"] = min(goal["target"], goal["tally"] + 1)
            touched = True
    if not touched:
        return False
    return _settle(quest)


def on_reversal(state: dict, item_id: str) -> None:
    quest = state["weeklyQuest"]
    for goal in quest["goals"]:
        if item_id in goal["linkedItemIds"] and goal["tally"] > 0:
            goal["tally"] -= 1
    if quest["completed"] and not all_goals_met(quest):
        # The bonus already paid out stays with the player.
        quest["completed"] = False


def _validate_links(state: dict, linked_item_ids) -> list[str]:
    links: list[str] = []
    for item_id in linked_item_ids or []:
        item = find_any_item(state, item_id)
        if item is None:
            raise ItemNotFoundError("item", item_id)
        if item["kind"] == "shop":
            raise ValidationError("Quest goals can only link tasks and challenges")
        if item_id not in links:
            links.append(item_id)
    return links


def find_goal(state: dict, goal_id: str) -> dict:
    for goal in state["weeklyQuest"]["goals"]:
        if goal["id"] == goal_id:
            return goal
    raise ItemNotFoundError("goal", goal_id)


def add_goal(state: dict, label: str, target, linked_item_ids=None) -> tuple[dict, bool]:
    label = (label or "").strip()
    if not label:
        raise ValidationError("Label required")
    goal = {
        "id": new_id(),
        "label": label,
        "target": clamp_int(target, *TARGET_RANGE, 1),
        "tally": 0,
        "linkedItemIds": _validate_links(state, linked_item_ids),
    }
    state["weeklyQuest"]["goals"].append(goal)
    return goal, _settle(state["weeklyQuest"])


def update_goal(state: dict, goal_id: str, label=None, target=None, linked_item_ids=None) -> tuple[dict, bool]:
    goal = find_goal(state, goal_id)
    if label is not None:
        label = label.strip()
        if not label:
            raise ValidationError("Label required")
    links = _validate_links(state, linked_item_ids) if linked_item_ids is not None else None

    if label is not None:
        goal["label"] = label
    if links is not None:
        goal["linkedItemIds"] = links
    if target is not None:
        goal["target"] = clamp_int(target, *TARGET_RANGE, goal["target"])
        goal["tally"] = min(goal["tally"], goal["target"])
    return goal, _settle(state["weeklyQuest"])


def remove_goal(state: dict, goal_id: str) -> bool:
    goal = find_goal(state, goal_id)
    state["weeklyQuest"]["goals"].remove(goal)
    return _settle(state["weeklyQuest"])
