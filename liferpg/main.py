from __future__ import annotations

import logging

from fastapi import Depends, FastAPI, Form, Request
from fastapi.responses import JSONResponse, PlainTextResponse

from liferpg.errors import StorageError
from liferpg.session import CommandResult, GameSession
from liferpg.storage import SqliteStateStore

logger = logging.getLogger(__name__)

app = FastAPI(title="LifeRPG")


async def get_session(request: Request) -> GameSession:
    session = getattr(request.app.state, "session", None)
    if session is None:
        session = GameSession(SqliteStateStore())
        await session.activate()
        request.app.state.session = session
    return session


@app.on_event("startup")
async def startup() -> None:
    session = GameSession(SqliteStateStore())
    try:
        await session.activate()
    except StorageError as exc:
        logger.error("State unavailable at startup: %s", exc)
        return
    app.state.session = session


@app.exception_handler(StorageError)
async def storage_error_handler(request: Request, exc: StorageError) -> JSONResponse:
    logger.error("Storage failure during %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse({"ok": False, "message": "Storage unavailable, last action not saved"}, status_code=503)


def respond(result: CommandResult) -> JSONResponse:
    if result.ok:
        status = 200
    elif result.error == "ItemNotFoundError":
        status = 404
    else:
        status = 400
    return JSONResponse(
        {"ok": result.ok, "message": result.message, "signals": result.signals, "data": result.data},
        status_code=status,
    )


def _optional_fields(**fields: str | None) -> dict:
    return {key: value for key, value in fields.items() if value is not None}


def _split_ids(raw: str) -> list[str]:
    return [part.strip() for part in raw.split(",") if part.strip()]


@app.get("/api/today", response_class=JSONResponse)
async def today(session: GameSession = Depends(get_session)) -> JSONResponse:
    return JSONResponse(await session.today())


@app.get("/api/stats", response_class=JSONResponse)
async def stats(session: GameSession = Depends(get_session)) -> JSONResponse:
    return JSONResponse(await session.stats())


@app.post("/api/tasks/{task_id}/complete")
async def complete_task(task_id: str, session: GameSession = Depends(get_session)) -> JSONResponse:
    return respond(await session.complete_task(task_id))


@app.post("/api/tasks/{task_id}/undo-latest")
async def undo_task(task_id: str, session: GameSession = Depends(get_session)) -> JSONResponse:
    return respond(await session.undo_latest("task", task_id))


@app.post("/api/challenges/{challenge_id}/complete")
async def complete_challenge(challenge_id: str, session: GameSession = Depends(get_session)) -> JSONResponse:
    return respond(await session.complete_challenge(challenge_id))


@app.post("/api/challenges/{challenge_id}/undo-latest")
async def undo_challenge(challenge_id: str, session: GameSession = Depends(get_session)) -> JSONResponse:
    return respond(await session.undo_latest("challenge", challenge_id))


@app.post("/api/log/{entry_id}/undo")
async def undo_entry(entry_id: str, session: GameSession = Depends(get_session)) -> JSONResponse:
    return respond(await session.undo(entry_id))


@app.post("/api/shop/{item_id}/purchase")
async def purchase(item_id: str, session: GameSession = Depends(get_session)) -> JSONResponse:
    return respond(await session.purchase(item_id))


@app.post("/api/reroll")
async def reroll(session: GameSession = Depends(get_session)) -> JSONResponse:
    return respond(await session.reroll())


@app.post("/api/items/{kind}")
async def create_item(
    kind: str,
    name: str = Form(...),
    points_awarded: str | None = Form(None),
    currency_awarded: str | None = Form(None),
    per_day_cap: str | None = Form(None),
    cost: str | None = Form(None),
    cooldown_days: str | None = Form(None),
    category: str | None = Form(None),
    session: GameSession = Depends(get_session),
) -> JSONResponse:
    fields = _optional_fields(
        pointsAwarded=points_awarded,
        currencyAwarded=currency_awarded,
        perDayCap=per_day_cap,
        cost=cost,
        cooldownDays=cooldown_days,
        category=category,
    )
    return respond(await session.create_item(kind, name=name, **fields))


@app.post("/api/items/{kind}/{item_id}")
async def update_item(
    kind: str,
    item_id: str,
    name: str | None = Form(None),
    points_awarded: str | None = Form(None),
    currency_awarded: str | None = Form(None),
    per_day_cap: str | None = Form(None),
    cost: str | None = Form(None),
    cooldown_days: str | None = Form(None),
    category: str | None = Form(None),
    session: GameSession = Depends(get_session),
) -> JSONResponse:
    fields = _optional_fields(
        name=name,
        pointsAwarded=points_awarded,
        currencyAwarded=currency_awarded,
        perDayCap=per_day_cap,
        cost=cost,
        cooldownDays=cooldown_days,
        category=category,
    )
    return respond(await session.update_item(kind, item_id, **fields))


@app.post("/api/items/{kind}/{item_id}/active")
async def set_item_active(
    kind: str,
    item_id: str,
    active: bool = Form(...),
    session: GameSession = Depends(get_session),
) -> JSONResponse:
    return respond(await session.set_item_active(kind, item_id, active))


@app.post("/api/settings")
async def save_settings(
    reset_hour_offset: int | None = Form(None),
    haptics_enabled: bool | None = Form(None),
    reroll_cost: int | None = Form(None),
    session: GameSession = Depends(get_session),
) -> JSONResponse:
    return respond(
        await session.update_settings(
            reset_hour_offset=reset_hour_offset,
            haptics_enabled=haptics_enabled,
            reroll_cost=reroll_cost,
        )
    )


@app.post("/api/quest/goals")
async def add_goal(
    label: str = Form(...),
    target: int = Form(...),
    linked_item_ids: str = Form(""),
    session: GameSession = Depends(get_session),
) -> JSONResponse:
    return respond(await session.add_goal(label, target, _split_ids(linked_item_ids)))


@app.post("/api/quest/goals/{goal_id}")
async def update_goal(
    goal_id: str,
    label: str | None = Form(None),
    target: int | None = Form(None),
    linked_item_ids: str | None = Form(None),
    session: GameSession = Depends(get_session),
) -> JSONResponse:
    links = _split_ids(linked_item_ids) if linked_item_ids is not None else None
    return respond(await session.update_goal(goal_id, label, target, links))


@app.post("/api/quest/goals/{goal_id}/delete")
async def remove_goal(goal_id: str, session: GameSession = Depends(get_session)) -> JSONResponse:
    return respond(await session.remove_goal(goal_id))


@app.get("/export")
async def export_save(session: GameSession = Depends(get_session)) -> PlainTextResponse:
    return PlainTextResponse(await session.export(), media_type="application/json")


@app.post("/import")
async def import_save(payload: str = Form(...), session: GameSession = Depends(get_session)) -> JSONResponse:
    return respond(await session.import_state(payload))


@app.post("/wipe")
async def wipe(session: GameSession = Depends(get_session)) -> JSONResponse:
    return respond(await session.wipe())
