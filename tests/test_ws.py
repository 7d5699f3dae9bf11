import asyncio
from types import SimpleNamespace

import pytest
from fastapi import WebSocketDisconnect

from citystate.transport.ws import ws_device
from citystate.transport.ws_manager import WSManager


class FakeSocket:
    """Accepts the hello, then fails every later send like a closed socket."""

    def __init__(self, app, incoming):
        self.app = app
        self.headers = {}
        self.incoming = list(incoming)
        self.sent = []

    async def accept(self):
        pass

    async def close(self, code=1000):
        pass

    async def send_json(self, data):
        if self.sent:
            raise RuntimeError("Cannot call send once a close message has been sent")
        self.sent.append(data)

    async def receive_json(self):
        # let the event pump run between messages
        for _ in range(5):
            await asyncio.sleep(0)
        if not self.incoming:
            raise WebSocketDisconnect(code=1000)
        return self.incoming.pop(0)


@pytest.mark.asyncio
async def test_failed_send_still_unregisters_device(repo, validator, settings):
    wsman = WSManager()
    app = SimpleNamespace(state=SimpleNamespace(settings=settings, repo=repo, validator=validator, wsman=wsman))
    ws = FakeSocket(app, [{"type": "start_classic"}])

    await ws_device(ws, "dev-1")

    assert ws.sent[0]["type"] == "hello"
    assert await wsman.size() == 0


@pytest.mark.asyncio
async def test_reconnect_replaces_older_connection(repo, validator, settings):
    wsman = WSManager()
    app = SimpleNamespace(state=SimpleNamespace(settings=settings, repo=repo, validator=validator, wsman=wsman))

    class HangingSocket(FakeSocket):
        def __init__(self, app):
            super().__init__(app, [])
            self.closed_with = None
            self.release = asyncio.Event()

        async def close(self, code=1000):
            self.closed_with = code
            self.release.set()

        async def receive_json(self):
            await self.release.wait()
            raise WebSocketDisconnect(code=1000)

    first = HangingSocket(app)
    task = asyncio.create_task(ws_device(first, "dev-1"))
    for _ in range(10):
        await asyncio.sleep(0)
    assert await wsman.size() == 1

    await ws_device(FakeSocket(app, []), "dev-1")
    await asyncio.wait_for(task, timeout=1)

    assert first.closed_with == 4000
    assert await wsman.size() == 0
