"""Last-writer-wins merge of pin sets, keyed by pin id.

For every incoming item:
- id unknown to the stored set -> ADD
- id known and incoming ``time`` strictly greater -> REPLACE
- otherwise the stored item is KEPT (ties keep the stored item)

A missing or falsy ``time`` counts as 0. The decision per id only compares
times, so applying a batch twice changes nothing and batches merged in any
order converge. Works on ``Pin`` models and on raw document dicts.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping


def item_id(item: Any) -> str:
    if isinstance(item, Mapping):
        return str(item.get("_id") or item.get("id") or "")
    return item.id


def item_time(item: Any) -> int:
    if isinstance(item, Mapping):
        value = item.get("time")
    else:
        value = getattr(item, "time", None)
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


@dataclass
class MergeResult:
    pins: list = field(default_factory=list)
    inserted: list[str] = field(default_factory=list)
    replaced: list[str] = field(default_factory=list)

    @property
    def changed(self) -> list[str]:
        return self.inserted + self.replaced

    @property
    def by_id(self) -> dict:
        return {item_id(p): p for p in self.pins}


def merge_with_changes(local: Iterable[Any], incoming: Iterable[Any]) -> MergeResult:
    # dict keeps insertion order: stored order first, new ids in incoming order
    by_id: dict[str, Any] = {}
    for item in local:
        by_id[item_id(item)] = item

    inserted: list[str] = []
    replaced: list[str] = []
    for item in incoming:
        key = item_id(item)
        if not key:
            continue
        existing = by_id.get(key)
        if existing is None:
            by_id[key] = item
            if key not in inserted:
                inserted.append(key)
        elif item_time(item) > item_time(existing):
            by_id[key] = item
            if key not in inserted and key not in replaced:
                replaced.append(key)

    return MergeResult(pins=list(by_id.values()), inserted=inserted, replaced=replaced)


def merge_pins(local: Iterable[Any], incoming: Iterable[Any]) -> list:
    return merge_with_changes(local, incoming).pins
