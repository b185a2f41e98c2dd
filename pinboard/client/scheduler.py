from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Optional

from .errors import RemoteError
from .remote import RemotePinStore
from .state import PinState

logger = logging.getLogger(__name__)


class SyncScheduler:
    """Drives fetch + full replacement on startup, on a timer, and on demand.

    Triggers may overlap. Each fetch takes a sequence number when it starts and
    the state drops results older than the newest one applied, so the most
    recently started fetch that completes decides the client state.
    """

    def __init__(
        self,
        state: PinState,
        remote: RemotePinStore,
        poll_interval: float = 5.0,
        grace_seconds: float = 1.0,
    ) -> None:
        self.state = state
        self.remote = remote
        self.poll_interval = poll_interval
        self.grace_seconds = grace_seconds
        self._poll_task: Optional[asyncio.Task] = None
        self._in_flight = 0

    @property
    def polling(self) -> bool:
        return self._poll_task is not None and not self._poll_task.done()

    async def fetch_and_reconcile(self) -> bool:
        seq = self.state.next_fetch_seq()
        if self._in_flight:
            logger.debug("Fetch #%d overlaps %d fetch(es) in flight", seq, self._in_flight)
        self._in_flight += 1
        try:
            pins = await self.remote.list()
        finally:
            self._in_flight -= 1
        return self.state.apply_remote(pins, seq)

    async def startup(self) -> None:
        # cached pins first, no network wait
        self.state.load_cached()
        self.state.set_status("Connecting to backend...")
        try:
            await self.fetch_and_reconcile()
        except RemoteError as exc:
            logger.warning("Backend unavailable, using cached pins: %s", exc)
            self.state.set_status(f"Using {len(self.state.pins)} cached pins (backend offline)")
            return
        self.state.set_status(f"Loaded {len(self.state.pins)} pins from database")

    async def poll_once(self) -> None:
        try:
            await self.fetch_and_reconcile()
        except RemoteError as exc:
            # offline: keep quiet
            logger.debug("Poll failed: %s", exc)

    async def _poll_loop(self) -> None:
        while True:
            await asyncio.sleep(self.poll_interval)
            await self.poll_once()

    def start(self) -> None:
        if not self.polling:
            self._poll_task = asyncio.create_task(self._poll_loop())

    async def stop(self) -> None:
        task, self._poll_task = self._poll_task, None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    async def manual_sync(self) -> str:
        """Backend cloud sync, settle, pull, then best-effort status."""
        try:
            self.state.set_status("Triggering cloud sync...")
            await self.remote.trigger_sync()
            await asyncio.sleep(self.grace_seconds)
            await self.fetch_and_reconcile()
        except RemoteError as exc:
            logger.error("Sync failed: %s", exc)
            self.state.set_status(f"Sync failed: {exc}")
            return self.state.status

        count = len(self.state.pins)
        try:
            status = await self.remote.get_sync_status()
        except RemoteError as exc:
            logger.warning("Sync status unavailable: %s", exc)
            self.state.set_status(f"Synced. {count} pins loaded")
            return self.state.status

        cloud = status.get("cloudDocCount") if isinstance(status, dict) else None
        self.state.set_status(f"Synced. Local: {count} pins | Cloud: {'?' if cloud is None else cloud} docs")
        return self.state.status
