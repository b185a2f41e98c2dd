from __future__ import annotations

from pathlib import Path
from typing import Optional

import httpx

from ..schemas import Pin
from .config import ClientSettings, client_settings
from .device import get_or_create_device_id
from .lifecycle import PinLifecycle, PositionLike
from .local_store import LocalPinStore
from .remote import RemotePinStore
from .scheduler import SyncScheduler
from .state import PinRenderer, PinState
from .storage import KeyValueFile


class PinboardClient:
    """One client installation: device id, cache, backend client, state, scheduler."""

    def __init__(
        self,
        settings: Optional[ClientSettings] = None,
        renderer: Optional[PinRenderer] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.settings = settings or client_settings
        self.kv = KeyValueFile(Path(self.settings.STATE_FILE))
        self.device_id = get_or_create_device_id(self.kv)
        self.store = LocalPinStore(self.kv)
        self.state = PinState(self.store, renderer)
        self.remote = RemotePinStore(self.settings.API_BASE, timeout=self.settings.REQUEST_TIMEOUT, transport=transport)
        self.scheduler = SyncScheduler(
            self.state,
            self.remote,
            poll_interval=self.settings.POLL_INTERVAL,
            grace_seconds=self.settings.SYNC_GRACE_SECONDS,
        )
        self.lifecycle = PinLifecycle(self.state, self.remote, self.scheduler, self.device_id)

    async def __aenter__(self) -> "PinboardClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    @property
    def pins(self) -> list[Pin]:
        return self.state.pins

    @property
    def status(self) -> str:
        return self.state.status

    async def start(self, poll: bool = True) -> None:
        await self.scheduler.startup()
        if poll:
            self.scheduler.start()

    async def create_pin(self, position: PositionLike, text: str) -> Pin:
        return await self.lifecycle.create_pin(position, text)

    async def clear_all_pins(self) -> int:
        return await self.lifecycle.clear_all_pins()

    async def sync(self) -> str:
        return await self.scheduler.manual_sync()

    async def close(self) -> None:
        await self.scheduler.stop()
        await self.remote.aclose()
