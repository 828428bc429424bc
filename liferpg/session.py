"""Application session: owns the in-memory state and runs every user command.

Each command follows the same pipeline under one lock: bring the game day up
to date, validate and mutate through the engine modules, then await the save
before the next command may start. User errors leave the state untouched and
come back as a failed ``CommandResult`` instead of an exception.
"""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable

from liferpg import catalog, ledger, quests, signals
from liferpg.assignments import ensure_daily_assignments, reroll_assignments
from liferpg.clock import local_now
from liferpg.errors import (
    AlreadyCompletedError,
    CooldownActiveError,
    ImportFailedError,
    InsufficientFundsError,
    LifeRPGError,
    RerollUnavailableError,
    StorageError,
    UnsupportedSchemaError,
    ValidationError,
)
from liferpg.rollover import ensure_game_day
from liferpg.schema import default_state, is_current, migrate, schema_version_of
from liferpg.serialization import export_text, import_text
from liferpg.stats import stats_snapshot, today_snapshot
from liferpg.storage import StateStore
from liferpg.undo import undo_entry, undo_latest

logger = logging.getLogger(__name__)


@dataclass
class CommandResult:
    ok: bool
    message: str = ""
    signals: list[dict] = field(default_factory=list)
    data: dict | None = None
    error: str = ""


Action = Callable[[dict, str], "list[dict] | None"]


class GameSession:
    def __init__(
        self,
        store: StateStore,
        clock: Callable[[], datetime] = local_now,
        rng: random.Random | None = None,
    ) -> None:
        self.store = store
        self.clock = clock
        self.rng = rng
        self.state: dict | None = None
        self._lock = asyncio.Lock()

    def _require_state(self) -> dict:
        if self.state is None:
            raise RuntimeError("Session not activated")
        return self.state

    async def activate(self) -> dict:
        async with self._lock:
            raw = await self.store.load()
            now = self.clock()
            state = migrate(raw, now)
            if not is_current(state):
                logger.error("Refusing to run on stored state with schema %s", schema_version_of(state))
                raise UnsupportedSchemaError(schema_version_of(state))
            rollover = ensure_game_day(state, now, self.rng)
            await self.store.save(state)
            self.state = state
            logger.info("Session activated on game day %s", self.state["today"]["day"])
            return rollover

    async def _run(self, name: str, action: Action) -> CommandResult:
        async with self._lock:
            state = self._require_state()
            rollover = ensure_game_day(state, self.clock(), self.rng)
            day = state["today"]["day"]
            try:
                out = action(state, day) or []
            except StorageError:
                raise
            except LifeRPGError as exc:
                logger.info("%s rejected: %s", name, exc)
                if rollover["changed"]:
                    await self.store.save(state)
                return CommandResult(
                    ok=False,
                    message=str(exc),
                    error=type(exc).__name__,
                    signals=[signals.toast(str(exc)), *signals.haptic(state, signals.HAPTIC_REJECT_MS)],
                )
            await self.store.save(state)
            return CommandResult(ok=True, signals=out)

    async def _read(self, view: Callable[[dict], Any]) -> Any:
        async with self._lock:
            state = self._require_state()
            if ensure_game_day(state, self.clock(), self.rng)["changed"]:
                await self.store.save(state)
            return view(state)

    # Views

    async def today(self) -> dict:
        return await self._read(today_snapshot)

    async def stats(self) -> dict:
        return await self._read(lambda state: stats_snapshot(state, state["today"]["day"]))

    async def export(self) -> str:
        return await self._read(export_text)

    # Completions

    async def complete_task(self, task_id: str) -> CommandResult:
        def action(state: dict, day: str) -> list[dict]:
            task = catalog.find_item(state, "task", task_id)
            if not task["active"]:
                raise ValidationError(f"{task['name']} is archived")
            counts = state["today"]["perTaskCompletionsToday"]
            if counts.get(task_id, 0) >= task["perDayCap"]:
                raise AlreadyCompletedError(f"{task['name']} is already done today")
            counts[task_id] = counts.get(task_id, 0) + 1
            points, currency = catalog.item_rewards(task)
            return ledger.grant(state, points, currency, task["name"], "task", task_id, day)

        return await self._run("complete_task", action)

    async def complete_challenge(self, challenge_id: str) -> CommandResult:
        def action(state: dict, day: str) -> list[dict]:
            challenge = catalog.find_item(state, "challenge", challenge_id)
            if challenge_id not in state["dailyAssignments"].get(day, []):
                raise ValidationError(f"{challenge['name']} is not assigned today")
            done = state["today"]["challengeCompletedToday"]
            if challenge_id in done:
                raise AlreadyCompletedError(f"{challenge['name']} is already done today")
            done.append(challenge_id)
            points, currency = catalog.item_rewards(challenge)
            return ledger.grant(state, points, currency, challenge["name"], "challenge", challenge_id, day)

        return await self._run("complete_challenge", action)

    async def undo(self, entry_id: str) -> CommandResult:
        return await self._run("undo", lambda state, day: undo_entry(state, entry_id, day))

    async def undo_latest(self, kind: str, item_id: str) -> CommandResult:
        return await self._run("undo_latest", lambda state, day: undo_latest(state, kind, item_id, day))

    # Spending

    async def purchase(self, item_id: str) -> CommandResult:
        def action(state: dict, day: str) -> list[dict]:
            item = catalog.find_item(state, "shop", item_id)
            if not item["active"]:
                raise ValidationError(f"{item['name']} is archived")
            if catalog.cooldown_blocks(item, day):
                raise CooldownActiveError(item["name"], item["cooldownDays"])
            balance = state["profile"]["currencyBalance"]
            if balance < item["cost"]:
                raise InsufficientFundsError(balance, item["cost"])
            out = ledger.spend(state, item["cost"], item["name"], item_id, day)
            item["lastPurchasedDay"] = day
            return out

        return await self._run("purchase", action)

    async def reroll(self) -> CommandResult:
        def action(state: dict, day: str) -> list[dict]:
            cost = state["settings"]["rerollCost"]
            if state["today"]["rerolled"]:
                raise RerollUnavailableError("Already rerolled today")
            if not state["dailyAssignments"].get(day):
                raise RerollUnavailableError("No challenges to reroll")
            balance = state["profile"]["currencyBalance"]
            if balance < cost:
                raise InsufficientFundsError(balance, cost)
            out = ledger.spend(state, cost, "Reroll", "reroll", day)
            state["today"]["rerolled"] = True
            reroll_assignments(state, day, self.rng)
            return out

        return await self._run("reroll", action)

    # Catalog and settings

    async def create_item(self, kind: str, **fields) -> CommandResult:
        created: dict = {}

        def action(state: dict, day: str) -> list[dict]:
            created.update(catalog.create_item(state, kind, **fields))
            if kind == "challenge":
                ensure_daily_assignments(state, day, self.rng)
            return [signals.toast("Added")]

        result = await self._run("create_item", action)
        result.data = created or None
        return result

    async def update_item(self, kind: str, item_id: str, **changes) -> CommandResult:
        def action(state: dict, day: str) -> list[dict]:
            catalog.update_item(state, kind, item_id, **changes)
            return [signals.toast("Updated")]

        return await self._run("update_item", action)

    async def set_item_active(self, kind: str, item_id: str, active: bool) -> CommandResult:
        def action(state: dict, day: str) -> list[dict]:
            catalog.set_item_active(state, kind, item_id, active)
            if kind == "challenge" and active:
                ensure_daily_assignments(state, day, self.rng)
            return [signals.toast("Activated" if active else "Archived")]

        return await self._run("set_item_active", action)

    async def update_settings(self, reset_hour_offset=None, haptics_enabled=None, reroll_cost=None) -> CommandResult:
        def action(state: dict, day: str) -> list[dict]:
            settings = state["settings"]
            if reset_hour_offset is not None:
                settings["resetHourOffset"] = catalog.clamp_int(reset_hour_offset, 0, 23, settings["resetHourOffset"])
            if haptics_enabled is not None:
                settings["hapticsEnabled"] = bool(haptics_enabled)
            if reroll_cost is not None:
                settings["rerollCost"] = catalog.clamp_int(reroll_cost, 0, 999, settings["rerollCost"])
            ensure_game_day(state, self.clock(), self.rng)
            return [signals.toast("Saved")]

        return await self._run("update_settings", action)

    # Weekly quest goals

    async def add_goal(self, label: str, target, linked_item_ids=None) -> CommandResult:
        def action(state: dict, day: str) -> list[dict]:
            _, bonus_due = quests.add_goal(state, label, target, linked_item_ids)
            return ledger.credit_quest_bonus(state, day) if bonus_due else []

        return await self._run("add_goal", action)

    async def update_goal(self, goal_id: str, label=None, target=None, linked_item_ids=None) -> CommandResult:
        def action(state: dict, day: str) -> list[dict]:
            _, bonus_due = quests.update_goal(state, goal_id, label, target, linked_item_ids)
            return ledger.credit_quest_bonus(state, day) if bonus_due else []

        return await self._run("update_goal", action)

    async def remove_goal(self, goal_id: str) -> CommandResult:
        def action(state: dict, day: str) -> list[dict]:
            bonus_due = quests.remove_goal(state, goal_id)
            return ledger.credit_quest_bonus(state, day) if bonus_due else []

        return await self._run("remove_goal", action)

    # Whole-state replacement

    async def import_state(self, text: str) -> CommandResult:
        async with self._lock:
            now = self.clock()
            try:
                imported = import_text(text, now)
            except ImportFailedError as exc:
                logger.warning("Import rejected: %s", exc)
                return CommandResult(
                    ok=False,
                    message="Import failed",
                    signals=[signals.toast("Import failed")],
                    error=type(exc).__name__,
                )
            ensure_game_day(imported, now, self.rng)
            await self.store.save(imported)
            self.state = imported
            logger.info("Imported state with %d log entries", len(imported.get("log", [])))
            return CommandResult(ok=True, signals=[signals.toast("Imported")])

    async def wipe(self) -> CommandResult:
        async with self._lock:
            await self.store.clear()
            now = self.clock()
            fresh = default_state(now)
            ensure_game_day(fresh, now, self.rng)
            await self.store.save(fresh)
            self.state = fresh
            logger.warning("State wiped back to defaults")
            return CommandResult(ok=True, signals=[signals.toast("Wiped")])
