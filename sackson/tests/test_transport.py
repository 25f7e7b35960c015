"""
Tests for the WebSocket transport against a local server.
"""

import asyncio

import websockets

from ..session.transport import WebSocketConnection
from .conftest import envelope


def test_delivers_frames_in_order_and_sends():
    """Frames reach handlers in arrival order and close fires once."""
    received, closes, from_client = [], [], []

    async def handler(ws):
        await ws.send(envelope("ctl", rol="mng"))
        await ws.send(envelope("add", val=["ann"]).encode("utf-8"))
        from_client.append(await ws.recv())

    async def scenario():
        async with websockets.serve(handler, "127.0.0.1", 0) as server:
            port = server.sockets[0].getsockname()[1]
            connection = WebSocketConnection(f"ws://127.0.0.1:{port}", open_timeout=5)

            def on_message(text):
                received.append(text)
                if len(received) == 2:
                    connection.send("ack")

            connection.on_message(on_message)
            connection.on_close(lambda: closes.append(True))
            await asyncio.wait_for(connection.run(), timeout=5)

    asyncio.run(scenario())

    assert received == [envelope("ctl", rol="mng"), envelope("add", val=["ann"])]
    assert from_client == ["ack"]
    assert closes == [True]


def test_connection_failure_fires_close():
    closes = []
    connection = WebSocketConnection("ws://127.0.0.1:1", open_timeout=2)
    connection.on_close(lambda: closes.append(True))

    asyncio.run(connection.run())

    assert closes == [True]
    assert not connection.connected


def test_send_before_connect_is_dropped():
    connection = WebSocketConnection("ws://127.0.0.1:1")
    connection.send("hello")
    assert not connection.connected
