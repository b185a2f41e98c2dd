from __future__ import annotations

import json
import logging
from typing import Optional, Sequence

from pydantic import ValidationError

from ..schemas import Pin
from .errors import CorruptLocalData
from .storage import KeyValueFile

logger = logging.getLogger(__name__)

PINS_KEY = "pins.list.v1"


class LocalPinStore:
    """Device-local cache of the last known pin set. No uniqueness checks."""

    def __init__(self, kv: KeyValueFile) -> None:
        self.kv = kv

    def load(self) -> list[Pin]:
        try:
            return self._decode(self.kv.get(PINS_KEY))
        except (CorruptLocalData, OSError) as exc:
            logger.warning("Ignoring unreadable pin cache: %s", exc)
            return []

    def save(self, pins: Sequence[Pin]) -> None:
        raw = json.dumps([pin.model_dump() for pin in pins])
        try:
            self.kv.set(PINS_KEY, raw)
        except OSError as exc:
            logger.warning("Could not write pin cache to %s: %s", self.kv.path, exc)

    @staticmethod
    def _decode(raw: Optional[str]) -> list[Pin]:
        if raw is None:
            return []
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise CorruptLocalData("cached pins are not valid JSON") from exc
        if not isinstance(data, list):
            raise CorruptLocalData("cached pins are not a list")
        try:
            return [Pin.model_validate(item) for item in data]
        except ValidationError as exc:
            raise CorruptLocalData(f"cached pin is malformed: {exc}") from exc
