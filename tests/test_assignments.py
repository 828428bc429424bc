from __future__ import annotations

import random
import unittest

from liferpg.assignments import ensure_daily_assignments, reroll_assignments
from tests.helpers import add_item, make_state


def state_with_pool(ids: str, day: str = "2024-01-02") -> dict:
    state = make_state(day)
    for item_id in ids:
        add_item(state, "challenge", item_id)
    return state


class DailyAssignmentTests(unittest.TestCase):
    def test_avoids_previous_day_when_pool_is_large(self) -> None:
        for seed in range(20):
            state = state_with_pool("ABCDEF")
            state["dailyAssignments"]["2024-01-01"] = ["A", "B", "C"]

            picked = ensure_daily_assignments(state, "2024-01-02", random.Random(seed))

            self.assertEqual(len(set(picked)), 3)
            self.assertTrue(set(picked) <= {"D", "E", "F"})

    def test_falls_back_to_full_pool_when_candidates_short(self) -> None:
        state = state_with_pool("ABCD")
        state["dailyAssignments"]["2024-01-01"] = ["A", "B", "C"]

        picked = ensure_daily_assignments(state, "2024-01-02", random.Random(1))

        self.assertEqual(len(set(picked)), 3)
        self.assertTrue(set(picked) <= set("ABCD"))

    def test_small_pool_assigns_everything_available(self) -> None:
        state = state_with_pool("AB")
        picked = ensure_daily_assignments(state, "2024-01-02", random.Random(1))
        self.assertEqual(sorted(picked), ["A", "B"])

    def test_empty_pool_assigns_nothing(self) -> None:
        state = state_with_pool("")
        self.assertEqual(ensure_daily_assignments(state, "2024-01-02"), [])

    def test_archived_challenges_are_skipped(self) -> None:
        state = state_with_pool("ABCD")
        state["challenges"][0]["active"] = False

        picked = ensure_daily_assignments(state, "2024-01-02", random.Random(3))

        self.assertEqual(sorted(picked), ["B", "C", "D"])

    def test_existing_full_assignment_is_kept(self) -> None:
        state = state_with_pool("ABCDEF")
        state["dailyAssignments"]["2024-01-02"] = ["F", "E", "D"]

        self.assertEqual(ensure_daily_assignments(state, "2024-01-02"), ["F", "E", "D"])

    def test_reroll_draws_a_fresh_assignment(self) -> None:
        state = state_with_pool("ABCDEF")
        state["dailyAssignments"]["2024-01-02"] = ["F", "E", "D"]

        picked = reroll_assignments(state, "2024-01-02", random.Random(5))

        self.assertEqual(len(set(picked)), 3)
        self.assertEqual(state["dailyAssignments"]["2024-01-02"], picked)


if __name__ == "__main__":
    unittest.main()
