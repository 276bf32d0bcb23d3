"""
Integration tests for the WebSocket editor endpoint.

Tests /ws/editor/{theme_id} — auth, operation replies, collaborator fan-out,
flushing live edits on disconnect.
"""

from __future__ import annotations

import asyncio
import json

import pytest
from fastapi import WebSocketDisconnect
from fastapi.testclient import TestClient

from backend.main import app
from themeforge.kernel.tests.factories import HOME_PAGE_ID, THEME_ID

URL = f"/ws/editor/{THEME_ID}"


@pytest.fixture
def client(services):
    """Return a synchronous TestClient for WS testing."""
    return TestClient(app)


def receive(ws) -> dict:
    return json.loads(ws.receive_text())


def send(ws, **msg) -> None:
    ws.send_text(json.dumps(msg))


class TestWebSocketConnect:
    def test_rejects_missing_token(self, client):
        with client.websocket_connect(URL) as ws:
            with pytest.raises(WebSocketDisconnect) as exc:
                ws.receive_text()
        assert exc.value.code == 1008

    def test_rejects_invalid_token(self, client):
        with client.websocket_connect(f"{URL}?token=garbage") as ws:
            with pytest.raises(WebSocketDisconnect) as exc:
                ws.receive_text()
        assert exc.value.code == 1008

    def test_unknown_theme(self, client, token):
        with client.websocket_connect(f"/ws/editor/missing?token={token}") as ws:
            with pytest.raises(WebSocketDisconnect) as exc:
                ws.receive_text()
        assert exc.value.code == 4404

    def test_hello_with_query_token(self, client, token):
        with client.websocket_connect(f"{URL}?token={token}") as ws:
            hello = receive(ws)
        assert hello["type"] == "hello"
        assert hello["themeId"] == THEME_ID
        assert hello["userId"] == "user-alice"
        assert hello["users"] == [{"userId": "user-alice", "name": "Alice"}]

    def test_hello_with_session_cookie(self, client, token):
        client.cookies.set("session", token)
        with client.websocket_connect(URL) as ws:
            assert receive(ws)["userId"] == "user-alice"


class TestWebSocketOperations:
    def test_add_block(self, client, token):
        with client.websocket_connect(f"{URL}?token={token}") as ws:
            receive(ws)
            send(ws, type="addBlock", requestId="r1", pageId=HOME_PAGE_ID, blockType="cta", props={"heading": "Hi"})
            reply = receive(ws)
        assert reply["type"] == "result"
        assert reply["requestId"] == "r1"
        assert reply["op"] == "addBlock"
        assert reply["result"]["type"] == "cta"
        assert reply["result"]["order"] == 2

    def test_move_then_undo(self, client, token, services):
        with client.websocket_connect(f"{URL}?token={token}") as ws:
            receive(ws)
            send(ws, type="moveBlock", requestId="r1", blockId="hero-1", position=1)
            assert receive(ws)["result"]["order"] == 1
            send(ws, type="undo", requestId="r2")
            reply = receive(ws)
        assert reply["result"]["entry"]["operation"] == "move"
        assert reply["result"]["history"]["canRedo"] is True

        theme = asyncio.run(services.store.get_theme(THEME_ID))
        assert [b.id for b in theme.get_page(HOME_PAGE_ID).children_of(None)] == ["hero-1", "features-1"]

    def test_session_closed_on_disconnect(self, client, token, services):
        with client.websocket_connect(f"{URL}?token={token}") as ws:
            receive(ws)
            send(ws, type="updateBlock", requestId="r1", blockId="hero-1", props={"subtitle": "New"})
            receive(ws)
            assert services.editor.registry.get(THEME_ID, "user-alice") is not None

        assert services.editor.registry.get(THEME_ID, "user-alice") is None
        assert THEME_ID not in services.editor._locks

    def test_unknown_block(self, client, token):
        with client.websocket_connect(f"{URL}?token={token}") as ws:
            receive(ws)
            send(ws, type="removeBlock", requestId="r1", blockId="ghost")
            reply = receive(ws)
        assert reply["type"] == "error"
        assert reply["requestId"] == "r1"
        assert reply["status"] == 404

    def test_missing_block_id(self, client, token):
        with client.websocket_connect(f"{URL}?token={token}") as ws:
            receive(ws)
            send(ws, type="duplicateBlock", requestId="r1")
            assert receive(ws)["status"] == 422

    def test_invalid_arguments(self, client, token):
        with client.websocket_connect(f"{URL}?token={token}") as ws:
            receive(ws)
            send(ws, type="addBlock", requestId="r1", blockType="text")
            reply = receive(ws)
        assert reply["type"] == "error"
        assert reply["status"] == 422
        assert "pageId" in reply["error"]

    def test_unknown_message_type(self, client, token):
        with client.websocket_connect(f"{URL}?token={token}") as ws:
            receive(ws)
            send(ws, type="teleport", requestId="r1")
            assert receive(ws)["status"] == 422

    def test_malformed_message_is_ignored(self, client, token):
        with client.websocket_connect(f"{URL}?token={token}") as ws:
            receive(ws)
            ws.send_text("not json")
            send(ws, type="history", requestId="r1")
            reply = receive(ws)
        assert reply["op"] == "history"
        assert reply["result"]["history"] == []


class TestWebSocketCollaboration:
    def test_other_users_receive_events(self, client, token, other_token):
        with client.websocket_connect(f"{URL}?token={other_token}") as bob:
            receive(bob)
            with client.websocket_connect(f"{URL}?token={token}") as alice:
                hello = receive(alice)
                assert [u["userId"] for u in hello["users"]] == ["user-bob", "user-alice"]
                joined = receive(bob)
                assert joined == {"type": "userJoined", "userId": "user-alice", "name": "Alice"}

                send(alice, type="updateBlock", requestId="r1", blockId="hero-1", props={"subtitle": "New"})
                # The author gets only the reply, never its own event.
                assert receive(alice)["type"] == "result"

                event = receive(bob)
                assert event["type"] == "blockUpdated"
                assert event["userId"] == "user-alice"
                assert event["blockId"] == "hero-1"
                assert event["block"]["props"]["subtitle"] == "New"
                assert "historyEntryId" in event

            left = receive(bob)
            assert left["type"] == "userLeft"
            assert left["userId"] == "user-alice"

    def test_live_edits_are_transient_and_flushed_on_disconnect(self, client, token, other_token, services):
        with client.websocket_connect(f"{URL}?token={other_token}") as bob:
            receive(bob)
            with client.websocket_connect(f"{URL}?token={token}") as alice:
                receive(alice)
                receive(bob)

                send(alice, type="inlineEdit", requestId="r1", blockId="hero-1", field="title", value="Draft")
                assert receive(alice)["result"]["props"]["title"] == "Draft"

                live = receive(bob)
                assert live["type"] == "inlineEdit"
                assert live["transient"] is True
                assert live["value"] == "Draft"

                theme = asyncio.run(services.store.get_theme(THEME_ID))
                assert theme.find_block("hero-1")[1].props["title"] == "Welcome"

            saved = receive(bob)
            assert saved["type"] == "blockUpdated"
            assert saved["block"]["props"]["title"] == "Draft"
            assert receive(bob)["type"] == "userLeft"

        theme = asyncio.run(services.store.get_theme(THEME_ID))
        assert theme.find_block("hero-1")[1].props["title"] == "Draft"
