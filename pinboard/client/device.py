from __future__ import annotations

import logging
import time
import uuid

from .errors import CorruptLocalData
from .storage import KeyValueFile

logger = logging.getLogger(__name__)

DEVICE_ID_KEY = "pins.deviceId"

def now_ms() -> int:
    return int(time.time() * 1000)

def new_device_id() -> str:
    return f"pi-{uuid.uuid4().hex[:13]}-{now_ms():x}"

def new_pin_id(device_id: str, created_ms: int) -> str:
    return f"{device_id}-{created_ms:x}-{uuid.uuid4().hex[:12]}"

def get_or_create_device_id(kv: KeyValueFile) -> str:
    """Stable id for this installation; a fresh one per session if it cannot be stored."""
    try:
        existing = kv.get(DEVICE_ID_KEY)
    except (CorruptLocalData, OSError) as exc:
        logger.warning("Device id unreadable, generating a new one: %s", exc)
        existing = None
    if existing:
        return existing

    device_id = new_device_id()
    try:
        kv.set(DEVICE_ID_KEY, device_id)
    except OSError as exc:
        logger.warning("Could not persist device id %s: %s", device_id, exc)
    return device_id
