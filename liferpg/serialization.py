from __future__ import annotations

import json
from datetime import datetime

from liferpg.errors import ImportFailedError
from liferpg.schema import OLDEST_SCHEMA_VERSION, is_current, migrate, schema_version_of


def export_text(state: dict) -> str:
    return json.dumps(state, indent=2)


def import_text(text: str, now: datetime | None = None) -> dict:
    try:
        payload = json.loads(text)
    except (TypeError, ValueError) as exc:
        raise ImportFailedError("Invalid JSON") from exc
    if not isinstance(payload, dict):
        raise ImportFailedError("Invalid data")
    if "schemaVersion" not in payload and not payload.get("version"):
        payload["version"] = OLDEST_SCHEMA_VERSION
    state = migrate(payload, now)
    if not is_current(state):
        raise ImportFailedError(f"Unsupported schema version {schema_version_of(state)}")
    return state
