from __future__ import annotations

from liferpg.catalog import active_items
from liferpg.clock import last_n_days


def stats_snapshot(state: dict, day: str) -> dict:
    aggregates = state["dailyAggregates"]

    def bucket(d: str) -> dict:
        return aggregates.get(d) or {}

    return {
        "day": day,
        "pointsToday": state["today"]["pointsToday"],
        "currencyBalance": state["profile"]["currencyBalance"],
        "streak": state["streak"]["current"],
        "bestStreak": state["profile"]["bestStreak"],
        "completionsLast7Days": sum(bucket(d).get("completionsCount", 0) for d in last_n_days(day, 7)),
        "points30": [{"day": d, "points": bucket(d).get("pointsEarned", 0)} for d in last_n_days(day, 30)],
        "heatmap90": [{"day": d, "completions": bucket(d).get("completionsCount", 0)} for d in last_n_days(day, 90)],
    }


def today_snapshot(state: dict) -> dict:
    today = state["today"]
    day = today["day"]
    challenges = {item["id"]: item for item in state["challenges"]}
    assigned = [
        {**challenges[item_id], "done": item_id in today["challengeCompletedToday"]}
        for item_id in state["dailyAssignments"].get(day, [])
        if item_id in challenges
    ]
    tasks = [
        {**task, "doneToday": today["perTaskCompletionsToday"].get(task["id"], 0)}
        for task in active_items(state, "task")
    ]
    return {
        "day": day,
        "pointsToday": today["pointsToday"],
        "currencyBalance": state["profile"]["currencyBalance"],
        "streak": state["streak"]["current"],
        "rerolled": today["rerolled"],
        "rerollCost": state["settings"]["rerollCost"],
        "challenges": assigned,
        "tasks": tasks,
        "shop": active_items(state, "shop"),
        "weeklyQuest": state["weeklyQuest"],
        "recentLog": state["log"][:12],
    }
