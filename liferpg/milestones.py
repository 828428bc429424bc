from __future__ import annotations

MILESTONE_STEP = 100


def check_milestone(today: dict) -> int | None:
    """Return the milestone crossed by today's points, or None if it was already announced."""
    reached = (today["pointsToday"] // MILESTONE_STEP) * MILESTONE_STEP
    if reached > 0 and reached > today["lastMilestoneAnnounced"]:
        today["lastMilestoneAnnounced"] = reached
        return reached
    return None
