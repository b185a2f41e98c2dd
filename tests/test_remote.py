import json
import unittest

import httpx

from pinboard.client.errors import NotFound, RemoteError
from pinboard.client.remote import RemotePinStore
from tests.support import make_pin

POS = {"x": 1, "y": 2, "z": 3}


class TestRemotePinStore(unittest.IsolatedAsyncioTestCase):
    def _store(self, handler) -> RemotePinStore:
        self.requests = []

        def recording(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return handler(request)

        store = RemotePinStore("http://backend", transport=httpx.MockTransport(recording))
        self.addAsyncCleanup(store.aclose)
        return store

    async def test_list_keeps_positioned_documents_and_normalizes_id(self) -> None:
        docs = [
            {"_id": "a", "_rev": "1-x", "type": "pin", "author": "pi-1", "time": 5, "pos": POS, "text": "t"},
            {"id": "b", "time": 7, "pos": POS},
            {"_id": "settings", "theme": "dark"},
            {"_id": "broken", "pos": {"x": "nope"}},
        ]
        store = self._store(lambda request: httpx.Response(200, json=docs))

        pins = await store.list()

        self.assertEqual([p.id for p in pins], ["a", "b"])
        self.assertEqual(pins[0].text, "t")
        self.assertEqual(store.revisions, {"a": "1-x"})
        self.assertEqual(self.requests[0].url.path, "/api/documents")

    async def test_list_accepts_rows_envelope(self) -> None:
        payload = {"rows": [{"id": "a", "doc": {"_id": "a", "time": 1, "pos": POS}}]}
        store = self._store(lambda request: httpx.Response(200, json=payload))

        pins = await store.list()

        self.assertEqual([p.id for p in pins], ["a"])

    async def test_list_non_success_raises(self) -> None:
        store = self._store(lambda request: httpx.Response(503))

        with self.assertRaises(RemoteError) as ctx:
            await store.list()
        self.assertEqual(ctx.exception.status_code, 503)

    async def test_connection_refused_raises_remote_error(self) -> None:
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        store = self._store(refuse)

        with self.assertRaises(RemoteError):
            await store.list()

    async def test_create_posts_pin_document(self) -> None:
        store = self._store(lambda request: httpx.Response(200, json={"ok": True, "id": "a", "rev": "1-abc"}))

        await store.create(make_pin("a", 10, text="hi"))

        body = json.loads(self.requests[0].content)
        self.assertEqual(self.requests[0].method, "POST")
        self.assertEqual(body["_id"], "a")
        self.assertEqual(body["type"], "pin")
        self.assertEqual(body["pos"], {"x": 1.0, "y": 2.0, "z": 3.0})
        self.assertEqual(store.revisions["a"], "1-abc")

    async def test_create_failure_raises(self) -> None:
        store = self._store(lambda request: httpx.Response(500))

        with self.assertRaises(RemoteError):
            await store.create(make_pin("a", 10))

    async def test_delete_not_found_is_success(self) -> None:
        store = self._store(lambda request: httpx.Response(404, json={"detail": "not_found"}))
        store.revisions["a/b"] = "1-x"

        await store.delete("a/b")

        self.assertEqual(self.requests[0].url.raw_path, b"/api/documents/a%2Fb")
        self.assertNotIn("a/b", store.revisions)

    async def test_delete_other_failure_raises(self) -> None:
        store = self._store(lambda request: httpx.Response(500))

        with self.assertRaises(RemoteError) as ctx:
            await store.delete("a")
        self.assertNotIsInstance(ctx.exception, NotFound)

    async def test_sync_and_status(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/api/sync":
                return httpx.Response(200, json={"ok": True, "pulled": 1})
            return httpx.Response(200, json={"cloudDocCount": 4})

        store = self._store(handler)

        self.assertEqual((await store.trigger_sync())["pulled"], 1)
        self.assertEqual((await store.get_sync_status())["cloudDocCount"], 4)
        self.assertEqual([r.method for r in self.requests], ["POST", "GET"])

    async def test_push_returns_backend_count(self) -> None:
        store = self._store(lambda request: httpx.Response(200, json={"ok": True, "count": 3}))

        count = await store.push([make_pin("a", 1)])

        self.assertEqual(count, 3)
        self.assertEqual(self.requests[0].url.path, "/pins")
        self.assertEqual(json.loads(self.requests[0].content)[0]["id"], "a")


if __name__ == "__main__":
    unittest.main()
