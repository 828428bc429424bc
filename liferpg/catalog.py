from __future__ import annotations

import uuid

from liferpg.clock import day_diff
from liferpg.errors import ItemNotFoundError, ValidationError

ITEM_KINDS = ("task", "challenge", "shop")
COLLECTIONS = {"task": "tasks", "challenge": "challenges", "shop": "shopItems"}

DEFAULT_POINTS = 10
DEFAULT_COST = 20
POINTS_RANGE = (1, 999)
CURRENCY_RANGE = (0, 999)
PER_DAY_CAP_RANGE = (1, 10)
COST_RANGE = (1, 999)
COOLDOWN_RANGE = (0, 30)


def new_id() -> str:
    return uuid.uuid4().hex


def clamp_int(value, low: int, high: int, default: int) -> int:
    if isinstance(value, bool):
        return default
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    return max(low, min(high, number))


def _common_fields(kind: str, raw: dict) -> dict:
    category = raw.get("category")
    return {
        "id": str(raw.get("id") or new_id()),
        "kind": kind,
        "name": str(raw.get("name") or "").strip(),
        "active": raw.get("active") is not False,
        "category": category.strip() or None if isinstance(category, str) else None,
    }


def _reward_fields(raw: dict) -> dict:
    points = clamp_int(raw.get("pointsAwarded"), *POINTS_RANGE, DEFAULT_POINTS)
    currency = raw.get("currencyAwarded")
    if currency is None or currency == "":
        currency = points
    return {"pointsAwarded": points, "currencyAwarded": clamp_int(currency, *CURRENCY_RANGE, points)}


def _task_fields(raw: dict) -> dict:
    fields = _reward_fields(raw)
    fields["perDayCap"] = clamp_int(raw.get("perDayCap"), *PER_DAY_CAP_RANGE, 1)
    return fields


def _challenge_fields(raw: dict) -> dict:
    return _reward_fields(raw)


def _shop_fields(raw: dict) -> dict:
    last = raw.get("lastPurchasedDay")
    return {
        "cost": clamp_int(raw.get("cost"), *COST_RANGE, DEFAULT_COST),
        "cooldownDays": clamp_int(raw.get("cooldownDays"), *COOLDOWN_RANGE, 0),
        "lastPurchasedDay": last if isinstance(last, str) and last else None,
    }


_VARIANT_FIELDS = {
    "task": _task_fields,
    "challenge": _challenge_fields,
    "shop": _shop_fields,
}


def normalize_item(kind: str, raw: dict) -> dict:
    if kind not in _VARIANT_FIELDS:
        raise ValidationError(f"Unknown item kind: {kind}")
    return {**_common_fields(kind, raw), **_VARIANT_FIELDS[kind](raw)}


def collection(state: dict, kind: str) -> list[dict]:
    if kind not in COLLECTIONS:
        raise ValidationError(f"Unknown item kind: {kind}")
    return state[COLLECTIONS[kind]]


def find_item(state: dict, kind: str, item_id: str) -> dict:
    for item in collection(state, kind):
        if item["id"] == item_id:
            return item
    raise ItemNotFoundError(kind, item_id)


def find_any_item(state: dict, item_id: str) -> dict | None:
    for kind in ITEM_KINDS:
        for item in state[COLLECTIONS[kind]]:
            if item["id"] == item_id:
                return item
    return None


def active_items(state: dict, kind: str) -> list[dict]:
    return [item for item in collection(state, kind) if item.get("active") is not False]


def item_rewards(item: dict) -> tuple[int, int]:
    if item["kind"] == "shop":
        raise ValidationError("Shop items do not award points")
    return item["pointsAwarded"], item["currencyAwarded"]


def create_item(state: dict, kind: str, **fields) -> dict:
    fields.pop("id", None)
    fields.pop("kind", None)
    item = normalize_item(kind, fields)
    if not item["name"]:
        raise ValidationError("Name required")
    collection(state, kind).append(item)
    return item


def update_item(state: dict, kind: str, item_id: str, **changes) -> dict:
    item = find_item(state, kind, item_id)
    changes.pop("id", None)
    changes.pop("kind", None)
    if "name" in changes and not str(changes["name"] or "").strip():
        raise ValidationError("Name required")
    item.update(normalize_item(kind, {**item, **changes}))
    return item


def set_item_active(state: dict, kind: str, item_id: str, active: bool) -> dict:
    item = find_item(state, kind, item_id)
    item["active"] = bool(active)
    return item


def cooldown_blocks(item: dict, day: str) -> bool:
    cooldown = item.get("cooldownDays") or 0
    last = item.get("lastPurchasedDay")
    return cooldown > 0 and bool(last) and day_diff(day, last) <= cooldown - 1
