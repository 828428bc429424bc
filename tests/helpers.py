from __future__ import annotations

from datetime import datetime

from liferpg.catalog import normalize_item
from liferpg.schema import default_state


def make_state(day: str | None = "2024-01-01") -> dict:
    state = default_state()
    state["today"]["day"] = day
    if day is not None:
        state["weeklyQuest"]["weekStartDay"] = "2024-01-01"
    return state


def add_item(state: dict, kind: str, item_id: str, **fields) -> dict:
    item = normalize_item(kind, {"id": item_id, "name": fields.pop("name", item_id), **fields})
    key = {"task": "tasks", "challenge": "challenges", "shop": "shopItems"}[kind]
    state[key].append(item)
    return item


class FakeClock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now
