from __future__ import annotations

import asyncio
import json
import tempfile
import unittest
from pathlib import Path

from fastapi.testclient import TestClient

import liferpg.main as main
import liferpg.storage as storage
from liferpg.errors import StorageError
from liferpg.schema import default_state
from liferpg.session import GameSession
from liferpg.storage import MemoryStateStore, SqliteStateStore


class BrokenStore(MemoryStateStore):
    async def save(self, state: dict) -> None:
        raise StorageError("disk full")


class ApiTests(unittest.TestCase):
    def setUp(self) -> None:
        self.tmp = tempfile.TemporaryDirectory()
        self.old_db = storage.DB_PATH
        storage.DB_PATH = Path(self.tmp.name) / "test.sqlite3"
        main.app.state.session = None
        self.client = TestClient(main.app)

    def tearDown(self) -> None:
        main.app.state.session = None
        storage.DB_PATH = self.old_db
        self.tmp.cleanup()

    def create(self, kind: str, **fields) -> dict:
        response = self.client.post(f"/api/items/{kind}", data=fields)
        self.assertEqual(response.status_code, 200, response.text)
        return response.json()["data"]

    def test_today_view_on_fresh_install(self) -> None:
        response = self.client.get("/api/today")

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["currencyBalance"], 0)
        self.assertEqual(body["streak"], 0)
        self.assertEqual(body["challenges"], [])
        self.assertIsNotNone(body["day"])

    def test_complete_task_flow(self) -> None:
        task = self.create("task", name="Walk", points_awarded="10")

        response = self.client.post(f"/api/tasks/{task['id']}/complete")
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.json()["ok"])
        self.assertEqual(self.client.get("/api/today").json()["currencyBalance"], 10)

        response = self.client.post(f"/api/tasks/{task['id']}/complete")
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["message"], "Walk is already done today")

        response = self.client.post(f"/api/tasks/{task['id']}/undo-latest")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(self.client.get("/api/today").json()["currencyBalance"], 0)

    def test_unknown_item_is_404(self) -> None:
        response = self.client.post("/api/tasks/missing/complete")
        self.assertEqual(response.status_code, 404)
        self.assertFalse(response.json()["ok"])

    def test_purchase_without_funds(self) -> None:
        item = self.create("shop", name="Movie", cost="50")

        response = self.client.post(f"/api/shop/{item['id']}/purchase")

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["message"], "Not enough coins")

    def test_state_persists_in_sqlite(self) -> None:
        self.create("challenge", name="Plank")

        main.app.state.session = None
        body = self.client.get("/api/today").json()

        self.assertEqual([c["name"] for c in body["challenges"]], ["Plank"])

    def test_quest_goal_and_stats(self) -> None:
        task = self.create("task", name="Walk")
        response = self.client.post("/api/quest/goals", data={"label": "Walk once", "target": "1", "linked_item_ids": task["id"]})
        self.assertEqual(response.status_code, 200)

        response = self.client.post(f"/api/tasks/{task['id']}/complete")
        self.assertIn("quest_completed", [signal["type"] for signal in response.json()["signals"]])

        stats = self.client.get("/api/stats").json()
        self.assertEqual(stats["currencyBalance"], 110)
        self.assertEqual(stats["completionsLast7Days"], 1)

    def test_settings_validation(self) -> None:
        response = self.client.post("/api/settings", data={"reset_hour_offset": "6", "haptics_enabled": "false"})

        self.assertEqual(response.status_code, 200)
        session = main.app.state.session
        self.assertEqual(session.state["settings"]["resetHourOffset"], 6)
        self.assertFalse(session.state["settings"]["hapticsEnabled"])

    def test_export_and_import(self) -> None:
        self.create("task", name="Walk")
        exported = self.client.get("/export")
        self.assertEqual(exported.status_code, 200)
        self.assertEqual(json.loads(exported.text)["tasks"][0]["name"], "Walk")

        self.assertEqual(self.client.post("/wipe").status_code, 200)
        self.assertEqual(self.client.get("/api/today").json()["tasks"], [])

        response = self.client.post("/import", data={"payload": exported.text})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(self.client.get("/api/today").json()["tasks"][0]["name"], "Walk")

    def test_invalid_import_is_400(self) -> None:
        response = self.client.post("/import", data={"payload": "[1, 2, 3]"})

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["message"], "Import failed")

    def test_newer_stored_schema_is_503(self) -> None:
        asyncio.run(SqliteStateStore().save({"schemaVersion": 3}))
        asyncio.run(main.startup())
        self.assertIsNone(main.app.state.session)

        response = self.client.get("/api/today")

        self.assertEqual(response.status_code, 503)
        self.assertIsNone(main.app.state.session)

    def test_import_of_newer_schema_is_400(self) -> None:
        response = self.client.post("/import", data={"payload": json.dumps({"schemaVersion": 3})})

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["message"], "Import failed")

    def test_storage_failure_is_503(self) -> None:
        session = GameSession(BrokenStore())
        session.state = default_state()
        main.app.state.session = session

        response = self.client.post("/api/items/task", data={"name": "Walk"})

        self.assertEqual(response.status_code, 503)


if __name__ == "__main__":
    unittest.main()
