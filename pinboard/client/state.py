"""Client-side pin set and the full-replacement reconciliation.

The in-memory set only changes through ``upsert_local`` (optimistic writes),
``apply_remote`` (the backend is authoritative) and ``clear``. Every change is
mirrored into the local cache and the renderer, which owns one on-screen
representation per pin id.
"""

from __future__ import annotations

import logging
from typing import Dict, Optional, Protocol, Sequence

from ..merge import merge_pins
from ..schemas import Pin
from .local_store import LocalPinStore

logger = logging.getLogger(__name__)


class PinRenderer(Protocol):
    def add(self, pin: Pin) -> None: ...

    def update_text(self, pin: Pin) -> None: ...

    def remove(self, pin_id: str) -> None: ...


class NullRenderer:
    def add(self, pin: Pin) -> None:
        pass

    def update_text(self, pin: Pin) -> None:
        pass

    def remove(self, pin_id: str) -> None:
        pass


class LoggingRenderer:
    """Renderer for headless clients: reports representation changes."""

    def add(self, pin: Pin) -> None:
        logger.info("+ %s %r at (%.3f, %.3f, %.3f)", pin.id, pin.text, pin.pos.x, pin.pos.y, pin.pos.z)

    def update_text(self, pin: Pin) -> None:
        logger.info("~ %s %r", pin.id, pin.text)

    def remove(self, pin_id: str) -> None:
        logger.info("- %s", pin_id)


class PinState:
    def __init__(self, store: LocalPinStore, renderer: Optional[PinRenderer] = None) -> None:
        self.store = store
        self.renderer = renderer or NullRenderer()
        self.pins: list[Pin] = []
        self.status = ""
        self._views: Dict[str, Pin] = {}
        self._fetch_seq = 0
        self._applied_seq = 0

    @property
    def view_ids(self) -> set[str]:
        return set(self._views)

    def set_status(self, message: str) -> None:
        self.status = message
        logger.info("status: %s", message)

    def next_fetch_seq(self) -> int:
        self._fetch_seq += 1
        return self._fetch_seq

    def load_cached(self) -> list[Pin]:
        self.pins = self.store.load()
        for pin in self.pins:
            self._ensure_view(pin)
        return self.pins

    def upsert_local(self, pin: Pin) -> None:
        for idx, existing in enumerate(self.pins):
            if existing.id == pin.id:
                self.pins[idx] = pin
                break
        else:
            self.pins.append(pin)
        self.store.save(self.pins)
        self._ensure_view(pin)

    def apply_remote(self, remote: Sequence[Pin], seq: Optional[int] = None) -> bool:
        """Make the client set equal to the fetched backend set.

        Duplicate ids in the fetched set collapse to the newest copy, so ids
        stay unique in client state.

        ``seq`` is the fetch sequence number; a result older than one already
        applied is discarded and False is returned.
        """
        if seq is not None:
            if seq < self._applied_seq:
                logger.debug("Discarding stale fetch #%d (already applied #%d)", seq, self._applied_seq)
                return False
            self._applied_seq = seq

        fetched = merge_pins([], remote)
        fetched_ids = {pin.id for pin in fetched}
        for pin_id in list(self._views):
            if pin_id not in fetched_ids:
                self._teardown(pin_id)

        self.pins = fetched
        self.store.save(self.pins)
        for pin in self.pins:
            self._ensure_view(pin)
        return True

    def clear(self) -> None:
        self.pins = []
        self.store.save(self.pins)
        for pin_id in list(self._views):
            self._teardown(pin_id)

    def _ensure_view(self, pin: Pin) -> None:
        existing = self._views.get(pin.id)
        self._views[pin.id] = pin
        if existing is None:
            self.renderer.add(pin)
        elif existing.text != pin.text:
            # id and position never change
            self.renderer.update_text(pin)

    def _teardown(self, pin_id: str) -> None:
        self._views.pop(pin_id, None)
        self.renderer.remove(pin_id)
