from __future__ import annotations

from datetime import date, datetime, timedelta, timezone


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def local_now() -> datetime:
    return datetime.now()


def parse_day(day_key: str) -> date:
    return date.fromisoformat(day_key)


def game_day_key(now: datetime, reset_hour_offset: int) -> str:
    """Return the game day for ``now`` when the day starts ``reset_hour_offset`` hours after midnight.

    Aware datetimes are converted to local time first, so 01:00 with a 4h offset
    still belongs to the previous calendar day.
    """
    if now.tzinfo is not None:
        now = now.astimezone().replace(tzinfo=None)
    shifted = now - timedelta(hours=reset_hour_offset)
    return shifted.date().isoformat()


def iso_week_start(day_key: str) -> str:
    d = parse_day(day_key)
    return (d - timedelta(days=d.weekday())).isoformat()


def previous_day(day_key: str) -> str:
    return (parse_day(day_key) - timedelta(days=1)).isoformat()


def day_diff(a: str, b: str) -> int:
    return (parse_day(a) - parse_day(b)).days


def last_n_days(day_key: str, n: int) -> list[str]:
    end = parse_day(day_key)
    return [(end - timedelta(days=i)).isoformat() for i in range(n - 1, -1, -1)]
