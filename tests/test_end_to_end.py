import tempfile
import unittest
from pathlib import Path

import httpx

from pinboard.client.app import PinboardClient
from pinboard.client.config import ClientSettings
from pinboard.main import app
from pinboard.routers.api import get_cloud_replica
from tests.support import memory_session_factory, override_db


class TestClientAgainstBackend(unittest.IsolatedAsyncioTestCase):
    """Two devices sharing one backend, talking HTTP through the ASGI app."""

    def setUp(self) -> None:
        override_db(app, memory_session_factory())
        app.dependency_overrides[get_cloud_replica] = lambda: None
        self.addCleanup(app.dependency_overrides.clear)
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)

    def _device(self, name: str) -> PinboardClient:
        settings = ClientSettings(
            API_BASE="http://backend",
            STATE_FILE=str(Path(self._tmp.name) / f"{name}.json"),
            SYNC_GRACE_SECONDS=0,
        )
        client = PinboardClient(settings, transport=httpx.ASGITransport(app=app))
        self.addAsyncCleanup(client.close)
        return client

    async def test_pin_created_on_one_device_reaches_the_other(self) -> None:
        alice, bob = self._device("alice"), self._device("bob")
        await alice.start(poll=False)
        await bob.start(poll=False)

        pin = await alice.create_pin({"x": 1, "y": 2, "z": 3}, "crack in beam")
        await bob.scheduler.poll_once()

        self.assertNotEqual(alice.device_id, bob.device_id)
        self.assertEqual([p.id for p in bob.pins], [pin.id])
        self.assertEqual(bob.pins[0].author, alice.device_id)
        self.assertIn(pin.id, alice.remote.revisions)

    async def test_clear_on_one_device_removes_everywhere_after_pull(self) -> None:
        alice, bob = self._device("alice"), self._device("bob")
        await alice.start(poll=False)
        for i in range(3):
            await alice.create_pin({"x": i, "y": 0, "z": 0}, f"pin {i}")
        await bob.start(poll=False)
        self.assertEqual(len(bob.pins), 3)

        failed = await alice.clear_all_pins()
        await bob.scheduler.poll_once()

        self.assertEqual(failed, 0)
        self.assertEqual(alice.pins, [])
        self.assertEqual(bob.pins, [])
        self.assertEqual(bob.state.view_ids, set())

    async def test_deleted_id_absent_from_next_list(self) -> None:
        alice = self._device("alice")
        await alice.start(poll=False)
        pin = await alice.create_pin({"x": 0, "y": 0, "z": 0}, "temp")

        await alice.remote.delete(pin.id)
        await alice.remote.delete(pin.id)  # not found is fine

        self.assertNotIn(pin.id, [p.id for p in await alice.remote.list()])

    async def test_manual_sync_without_cloud_reports_failure(self) -> None:
        alice = self._device("alice")
        await alice.start(poll=False)

        status = await alice.sync()

        self.assertEqual(status, "Sync failed: API error: 503")

    async def test_device_id_and_cache_survive_restart(self) -> None:
        alice = self._device("alice")
        await alice.start(poll=False)
        await alice.create_pin({"x": 0, "y": 0, "z": 0}, "kept")

        again = self._device("alice")

        self.assertEqual(again.device_id, alice.device_id)
        self.assertEqual([p.text for p in again.store.load()], ["kept"])


if __name__ == "__main__":
    unittest.main()
