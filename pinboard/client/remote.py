from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Sequence
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from ..schemas import Pin
from .errors import NotFound, RemoteError

logger = logging.getLogger(__name__)


def _docs_from_payload(data: Any) -> list:
    # bare array, or a CouchDB-style {"rows": [{"doc": {...}}]} envelope
    if isinstance(data, list):
        return data
    if isinstance(data, dict):
        return [row.get("doc", row) if isinstance(row, dict) else row for row in data.get("rows", [])]
    return []


class RemotePinStore:
    """Async client of the backend document API."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._client = httpx.AsyncClient(base_url=base_url, timeout=timeout, transport=transport)
        # last known document revision per pin id
        self.revisions: Dict[str, str] = {}

    async def __aenter__(self) -> "RemotePinStore":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            raise RemoteError(f"{method} {url} failed: {exc}") from exc
        if response.status_code == 404:
            raise NotFound(f"{method} {url}: not found", status_code=404)
        if response.is_error:
            raise RemoteError(f"API error: {response.status_code}", status_code=response.status_code)
        return response

    @staticmethod
    def _json(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            raise RemoteError(f"invalid JSON from {response.request.url}") from exc

    def _remember_rev(self, pin_id: str, result: Any) -> None:
        if not isinstance(result, dict):
            return
        rev = result.get("rev") or result.get("_rev")
        if rev:
            self.revisions[pin_id] = rev

    async def list(self) -> list[Pin]:
        """All documents that carry a position, as pins."""
        response = await self._request("GET", "/api/documents")
        pins = []
        for doc in _docs_from_payload(self._json(response)):
            if not isinstance(doc, dict) or not doc.get("pos"):
                continue
            pin_id = doc.get("_id") or doc.get("id")
            try:
                pin = Pin.model_validate({**doc, "id": pin_id})
            except ValidationError as exc:
                logger.warning("Skipping malformed pin document %r: %s", pin_id, exc)
                continue
            self._remember_rev(pin.id, doc)
            pins.append(pin)
        return pins

    async def create(self, pin: Pin) -> Dict[str, Any]:
        response = await self._request("POST", "/api/documents", json=pin.to_document())
        result = self._json(response)
        self._remember_rev(pin.id, result)
        return result

    async def delete(self, pin_id: str) -> None:
        try:
            await self._request("DELETE", f"/api/documents/{quote(pin_id, safe='')}")
        except NotFound:
            logger.debug("Pin %s already gone", pin_id)
        self.revisions.pop(pin_id, None)

    async def push(self, pins: Sequence[Pin]) -> int:
        """Batch merge-on-write; returns the backend's pin count."""
        response = await self._request("POST", "/pins", json=[pin.model_dump() for pin in pins])
        result = self._json(response)
        if not isinstance(result, dict):
            raise RemoteError("unexpected response to pin batch")
        return int(result.get("count", 0))

    async def trigger_sync(self) -> Dict[str, Any]:
        response = await self._request("POST", "/api/sync")
        return self._json(response)

    async def get_sync_status(self) -> Dict[str, Any]:
        response = await self._request("GET", "/api/sync/status")
        return self._json(response)
