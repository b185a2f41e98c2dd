from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Dict, Optional

from .errors import CorruptLocalData

logger = logging.getLogger(__name__)


class KeyValueFile:
    """String key/value pairs in one JSON file, rewritten atomically.

    Readers never see a partial write: the new content goes to a temp file in
    the same directory and replaces the old file in one rename.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path).expanduser()

    def _read_all(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise CorruptLocalData(f"{self.path} is not valid JSON") from exc
        if not isinstance(raw, dict):
            raise CorruptLocalData(f"{self.path} does not hold an object")
        return raw

    def get(self, key: str) -> Optional[str]:
        value = self._read_all().get(key)
        return value if isinstance(value, str) else None

    def set(self, key: str, value: str) -> None:
        try:
            data = self._read_all()
        except CorruptLocalData as exc:
            logger.warning("Discarding unreadable local storage: %s", exc)
            data = {}
        data[key] = value
        self._write_all(data)

    def _write_all(self, data: Dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=self.path.name, dir=str(self.path.parent))
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(data, handle, sort_keys=True)
            os.replace(tmp_name, self.path)
        finally:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
