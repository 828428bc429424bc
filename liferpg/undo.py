from __future__ import annotations

import logging

from liferpg import ledger
from liferpg.errors import CrossDayUndoError, ItemNotFoundError, UndoNotSupportedError, ValidationError

logger = logging.getLogger(__name__)


def find_entry(state: dict, entry_id: str) -> dict:
    for entry in state["log"]:
        if entry["id"] == entry_id:
            return entry
    raise ItemNotFoundError("log entry", entry_id)


def _clear_task_marker(state: dict, item_id: str) -> None:
    counts = state["today"]["perTaskCompletionsToday"]
    remaining = counts.get(item_id, 0) - 1
    if remaining > 0:
        counts[item_id] = remaining
    else:
        counts.pop(item_id, None)


def _clear_challenge_marker(state: dict, item_id: str) -> None:
    done = state["today"]["challengeCompletedToday"]
    if item_id in done:
        done.remove(item_id)


_MARKER_CLEARERS = {
    "task": _clear_task_marker,
    "challenge": _clear_challenge_marker,
}


def undo_entry(state: dict, entry_id: str, day: str) -> list[dict]:
    entry = find_entry(state, entry_id)
    if entry["day"] != day:
        raise CrossDayUndoError(entry["day"], day)
    clear_marker = _MARKER_CLEARERS.get(entry["kind"])
    if clear_marker is None:
        raise UndoNotSupportedError(f"{entry['kind'].capitalize()} entries cannot be undone")

    clear_marker(state, entry["itemId"])
    logger.info("Undoing %s %s (%s) on %s", entry["kind"], entry["itemId"], entry["id"], day)
    return ledger.reverse(
        state,
        entry["pointsDelta"],
        entry["currencyDelta"],
        entry["kind"],
        entry["itemId"],
        entry["day"],
        entry_id=entry["id"],
    )


def undo_latest(state: dict, kind: str, item_id: str, day: str) -> list[dict]:
    for entry in state["log"]:
        if entry["kind"] == kind and entry["itemId"] == item_id and entry["day"] == day:
            return undo_entry(state, entry["id"], day)
    raise ValidationError("Nothing to undo today")
