from __future__ import annotations

import asyncio
import logging

from liferpg.session import GameSession
from liferpg.storage import SqliteStateStore

logger = logging.getLogger(__name__)


async def run_day_rollover(session: GameSession | None = None) -> dict:
    session = session or GameSession(SqliteStateStore())
    result = await session.activate()
    state = session.state
    return {
        "today": result["day"],
        "previousDay": result["previousDay"],
        "rolledOver": result["changed"],
        "weekRolled": result["weekRolled"],
        "streak": state["streak"]["current"],
        "assigned": state["dailyAssignments"].get(result["day"], []),
    }


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    summary = asyncio.run(run_day_rollover())
    logger.info(
        "Prepared %s (rolled over: %s, new week: %s, streak %d, %d challenges assigned)",
        summary["today"],
        summary["rolledOver"],
        summary["weekRolled"],
        summary["streak"],
        len(summary["assigned"]),
    )


if __name__ == "__main__":
    main()
