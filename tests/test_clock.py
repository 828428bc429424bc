from __future__ import annotations

import unittest
from datetime import datetime, timedelta, timezone

from liferpg.clock import day_diff, game_day_key, iso_week_start, last_n_days, previous_day


class GameDayKeyTests(unittest.TestCase):
    def test_hours_before_reset_belong_to_previous_day(self) -> None:
        self.assertEqual(game_day_key(datetime(2024, 1, 2, 1, 0), 4), "2024-01-01")
        self.assertEqual(game_day_key(datetime(2024, 1, 2, 3, 59), 4), "2024-01-01")

    def test_reset_hour_starts_new_day(self) -> None:
        self.assertEqual(game_day_key(datetime(2024, 1, 2, 4, 0), 4), "2024-01-02")

    def test_zero_offset_is_calendar_day(self) -> None:
        self.assertEqual(game_day_key(datetime(2024, 3, 1, 0, 0), 0), "2024-03-01")
        self.assertEqual(game_day_key(datetime(2024, 2, 29, 23, 59), 0), "2024-02-29")

    def test_aware_datetime_is_converted_to_local_time(self) -> None:
        aware = datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc)
        local = aware.astimezone().replace(tzinfo=None)
        self.assertEqual(game_day_key(aware, 4), (local - timedelta(hours=4)).date().isoformat())


class WeekAndDayMathTests(unittest.TestCase):
    def test_iso_week_start_is_monday_on_or_before(self) -> None:
        self.assertEqual(iso_week_start("2024-01-01"), "2024-01-01")
        self.assertEqual(iso_week_start("2024-01-03"), "2024-01-01")
        self.assertEqual(iso_week_start("2024-01-07"), "2024-01-01")
        self.assertEqual(iso_week_start("2024-01-08"), "2024-01-08")

    def test_iso_week_start_crosses_year_boundary(self) -> None:
        self.assertEqual(iso_week_start("2025-01-01"), "2024-12-30")

    def test_day_helpers(self) -> None:
        self.assertEqual(previous_day("2024-03-01"), "2024-02-29")
        self.assertEqual(day_diff("2024-01-04", "2024-01-01"), 3)
        self.assertEqual(last_n_days("2024-01-03", 3), ["2024-01-01", "2024-01-02", "2024-01-03"])


if __name__ == "__main__":
    unittest.main()
