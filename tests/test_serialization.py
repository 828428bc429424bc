from __future__ import annotations

import json
import unittest
from datetime import datetime

from liferpg.errors import ImportFailedError
from liferpg.schema import migrate
from liferpg.serialization import export_text, import_text

NOW = datetime(2024, 1, 10, 12, 0)


class SerializationTests(unittest.TestCase):
    def test_export_is_complete_json(self) -> None:
        state = migrate(None, NOW)
        self.assertEqual(json.loads(export_text(state)), state)

    def test_export_import_round_trip(self) -> None:
        state = migrate(None, NOW)
        state["profile"]["currencyBalance"] = 12
        self.assertEqual(import_text(export_text(state), NOW), state)

    def test_malformed_json_is_rejected(self) -> None:
        with self.assertRaises(ImportFailedError):
            import_text("{not json", NOW)

    def test_non_object_is_rejected(self) -> None:
        for text in ("[1, 2]", "42", "null", '"state"'):
            with self.assertRaises(ImportFailedError):
                import_text(text, NOW)

    def test_newer_schema_is_rejected(self) -> None:
        with self.assertRaises(ImportFailedError):
            import_text(json.dumps({"schemaVersion": 3}), NOW)

    def test_missing_version_is_treated_as_oldest(self) -> None:
        state = import_text(json.dumps({"profile": {"coins": 5}}), NOW)
        self.assertEqual(state["profile"]["currencyBalance"], 5)
        self.assertEqual(state["weeklyQuest"]["weekStartDay"], "2024-01-08")


if __name__ == "__main__":
    unittest.main()
