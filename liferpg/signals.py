from __future__ import annotations

HAPTIC_GRANT_MS = 40
HAPTIC_SPEND_MS = 20
HAPTIC_UNDO_MS = 10
HAPTIC_REJECT_MS = 8


def toast(message: str) -> dict:
    return {"type": "toast", "message": message}


def haptic(state: dict, ms: int) -> list[dict]:
    if not state["settings"].get("hapticsEnabled"):
        return []
    return [{"type": "haptic", "ms": ms}]


def milestone(value: int) -> dict:
    return {"type": "milestone", "value": value, "message": f"{value} points today!"}


def quest_completed(bonus: int) -> dict:
    return {"type": "quest_completed", "bonus": bonus, "message": f"Weekly boss defeated! +{bonus} coins"}
