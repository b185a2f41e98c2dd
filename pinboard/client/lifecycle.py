from __future__ import annotations

import asyncio
import logging
from typing import Callable, Mapping, Union

from ..schemas import Pin, Position
from .device import new_pin_id, now_ms
from .errors import RemoteError
from .remote import RemotePinStore
from .scheduler import SyncScheduler
from .state import PinState

logger = logging.getLogger(__name__)

PositionLike = Union[Position, Mapping[str, float]]


class PinLifecycle:
    """Create and bulk-clear, as invoked by the picking front end."""

    def __init__(
        self,
        state: PinState,
        remote: RemotePinStore,
        scheduler: SyncScheduler,
        device_id: str,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self.state = state
        self.remote = remote
        self.scheduler = scheduler
        self.device_id = device_id
        self.clock = clock

    async def create_pin(self, position: PositionLike, text: str) -> Pin:
        created = self.clock()
        pin = Pin(
            id=new_pin_id(self.device_id, created),
            author=self.device_id,
            time=created,
            pos=Position.model_validate(position),
            text=(text or "").strip(),
        )

        # optimistic: visible and cached before the backend hears of it
        self.state.upsert_local(pin)
        self.state.set_status("Ready for sync")
        try:
            await self.remote.create(pin)
            await self.scheduler.fetch_and_reconcile()
        except RemoteError as exc:
            # no retry queue; the local copy stands until a pull replaces it
            logger.error("Failed to save pin %s to backend: %s", pin.id, exc)
            self.state.set_status("Pin saved locally (backend offline)")
        return pin

    async def _delete_quietly(self, pin_id: str) -> bool:
        try:
            await self.remote.delete(pin_id)
            return True
        except RemoteError as exc:
            logger.warning("Failed to delete %s: %s", pin_id, exc)
            return False

    async def clear_all_pins(self) -> int:
        """Delete every known pin everywhere; returns how many deletes failed.

        Not reconciled afterwards: a failed delete leaves the pin on the backend
        and the next pull brings it back.
        """
        self.state.set_status("Deleting all pins...")
        results = await asyncio.gather(*(self._delete_quietly(pin.id) for pin in list(self.state.pins)))
        self.state.clear()
        self.state.set_status("All pins deleted")
        return sum(1 for ok in results if not ok)
