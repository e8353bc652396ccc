"""
Tests for the event bus bridge over WebSocket.

Frames from one client are handled in order, so a ping/pong round trip
marks the point where every earlier frame has been processed.
"""

import pytest
from fastapi.testclient import TestClient

from webserver.bridge import LocalEventBus, configure
from webserver.controllers.http import create_app


@pytest.fixture
def bus() -> LocalEventBus:
    return LocalEventBus()


@pytest.fixture
def bridge_client(make_config, bus):
    """Factory for a test client with the bridge mounted."""

    def _make(**bridge_options) -> TestClient:
        app = create_app(make_config(bridge=True), configure(**bridge_options), bus)
        return TestClient(app)

    return _make


def sync(ws) -> None:
    """Wait until the server has handled every frame sent so far."""
    ws.send_json({"type": "ping"})
    assert ws.receive_json() == {"type": "pong"}


class TestFrames:
    """Tests for frame parsing and dispatch."""

    def test_ping(self, bridge_client):
        with bridge_client().websocket_connect("/eventbus") as ws:
            sync(ws)

    def test_custom_prefix(self, bridge_client):
        with bridge_client(sock_prefix="/bus").websocket_connect("/bus") as ws:
            sync(ws)

    def test_invalid_json(self, bridge_client):
        with bridge_client().websocket_connect("/eventbus") as ws:
            ws.send_text("{not json")
            assert ws.receive_json() == {"type": "err", "body": "invalid_json"}

    def test_missing_address(self, bridge_client):
        with bridge_client().websocket_connect("/eventbus") as ws:
            ws.send_json({"type": "send", "body": {}})
            assert ws.receive_json() == {"type": "err", "body": "missing_address"}

    def test_unknown_type(self, bridge_client):
        with bridge_client().websocket_connect("/eventbus") as ws:
            ws.send_json({"type": "shout", "address": "a"})
            assert ws.receive_json() == {"type": "err", "address": "a", "body": "unknown_type"}

    def test_binary_frame(self, bridge_client):
        with bridge_client().websocket_connect("/eventbus") as ws:
            ws.send_bytes(b"\x00\x01")
            assert ws.receive_json() == {"type": "err", "body": "invalid_json"}
            sync(ws)

    def test_static_files_still_served(self, bridge_client):
        client = bridge_client()
        response = client.get("/bar.txt", headers={"accept-encoding": "identity"})

        assert response.status_code == 200
        assert response.text == "plain bar"


class TestInbound:
    """Tests for client -> bus traffic."""

    def test_deny_all_by_default(self, bridge_client, bus):
        received = []
        bus.register("chat.send", received.append)

        with bridge_client().websocket_connect("/eventbus") as ws:
            ws.send_json({"type": "send", "address": "chat.send", "body": {"text": "hi"}})
            assert ws.receive_json() == {"type": "err", "address": "chat.send", "body": "access_denied"}

        assert received == []

    def test_permitted_publish(self, bridge_client, bus):
        first, second = [], []
        bus.register("chat.room", first.append)
        bus.register("chat.room", second.append)

        with bridge_client(raw_inbound=[{"address_re": "chat\\..+"}]).websocket_connect("/eventbus") as ws:
            ws.send_json({"type": "publish", "address": "chat.room", "body": {"text": "hi"}})
            sync(ws)

        assert [m.body for m in first] == [{"text": "hi"}]
        assert [m.body for m in second] == [{"text": "hi"}]

    def test_send_with_reply(self, bridge_client, bus):
        bus.register("echo", lambda message: message.reply({"echo": message.body}))

        with bridge_client(raw_inbound=[{"address": "echo"}]).websocket_connect("/eventbus") as ws:
            ws.send_json({"type": "send", "address": "echo", "body": "ping", "replyAddress": "r-1"})
            assert ws.receive_json() == {"address": "r-1", "body": {"echo": "ping"}}

    def test_match_constraint(self, bridge_client, bus):
        received = []
        bus.register("orders", received.append)
        rules = [{"address": "orders", "match": {"action": "find"}}]

        with bridge_client(raw_inbound=rules).websocket_connect("/eventbus") as ws:
            ws.send_json({"type": "send", "address": "orders", "body": {"action": "delete"}})
            assert ws.receive_json()["body"] == "access_denied"
            ws.send_json({"type": "send", "address": "orders", "body": {"action": "find"}})
            sync(ws)

        assert [m.body for m in received] == [{"action": "find"}]

    def test_failing_handler_reports_internal_error(self, bridge_client, bus):
        def broken(message):
            raise ValueError("boom")

        bus.register("x", broken)

        with bridge_client(raw_inbound=[{"address": "x"}]).websocket_connect("/eventbus") as ws:
            ws.send_json({"type": "send", "address": "x", "body": 1})
            assert ws.receive_json() == {"type": "err", "address": "x", "body": "internal_error"}
            ws.send_json({"type": "send", "address": "x", "body": 2, "replyAddress": "r-3"})
            assert ws.receive_json() == {"type": "err", "address": "r-3", "body": "internal_error"}
            sync(ws)

    def test_publish_reaches_subscribers_after_a_failing_one(self, bridge_client, bus):
        received = []

        def broken(message):
            raise ValueError("boom")

        bus.register("chat.room", broken)
        bus.register("chat.room", received.append)

        with bridge_client(raw_inbound=[{"address": "chat.room"}]).websocket_connect("/eventbus") as ws:
            ws.send_json({"type": "publish", "address": "chat.room", "body": "hi"})
            sync(ws)

        assert [m.body for m in received] == ["hi"]

    def test_send_without_handlers(self, bridge_client):
        with bridge_client(raw_inbound=[{"address": "nobody"}]).websocket_connect("/eventbus") as ws:
            ws.send_json({"type": "send", "address": "nobody", "body": 1, "replyAddress": "r-2"})
            assert ws.receive_json() == {"type": "err", "address": "r-2", "body": "no_handlers"}


class TestAuthorisation:
    """Tests for rules with requires_auth."""

    @pytest.fixture
    def auth_calls(self, bus):
        calls = []

        def responder(message):
            calls.append(message.body["sessionID"])
            status = "ok" if message.body["sessionID"] == "good" else "denied"
            message.reply({"status": status})

        bus.register("auth.check", responder)
        bus.register("orders", lambda message: message.reply("done"))
        return calls

    def _client(self, bridge_client, **options):
        return bridge_client(
            raw_inbound=[{"address": "orders", "requires_auth": True}],
            auth_address="auth.check",
            **options,
        )

    def test_missing_session_id(self, bridge_client, auth_calls):
        with self._client(bridge_client).websocket_connect("/eventbus") as ws:
            ws.send_json({"type": "send", "address": "orders", "body": {}})
            assert ws.receive_json() == {"type": "err", "address": "orders", "body": "auth_required"}

        assert auth_calls == []

    def test_non_string_session_id(self, bridge_client, auth_calls):
        with self._client(bridge_client).websocket_connect("/eventbus") as ws:
            ws.send_json({"type": "send", "address": "orders", "body": {}, "sessionID": ["a"]})
            assert ws.receive_json() == {"type": "err", "address": "orders", "body": "auth_required"}
            sync(ws)

        assert auth_calls == []

    def test_failing_auth_responder_denies(self, bridge_client, bus):
        def broken(message):
            raise RuntimeError("auth store down")

        bus.register("auth.check", broken)
        bus.register("orders", lambda message: message.reply("done"))

        with self._client(bridge_client).websocket_connect("/eventbus") as ws:
            ws.send_json({"type": "send", "address": "orders", "body": {}, "sessionID": "good"})
            assert ws.receive_json()["body"] == "auth_required"
            sync(ws)

    def test_rejected_session(self, bridge_client, auth_calls):
        with self._client(bridge_client).websocket_connect("/eventbus") as ws:
            ws.send_json({"type": "send", "address": "orders", "body": {}, "sessionID": "bad"})
            assert ws.receive_json()["body"] == "auth_required"

        assert auth_calls == ["bad"]

    def test_authorised_session_is_cached(self, bridge_client, auth_calls):
        frame = {"type": "send", "address": "orders", "body": {}, "sessionID": "good", "replyAddress": "r"}

        with self._client(bridge_client).websocket_connect("/eventbus") as ws:
            ws.send_json(frame)
            assert ws.receive_json() == {"address": "r", "body": "done"}
            ws.send_json(frame)
            assert ws.receive_json() == {"address": "r", "body": "done"}

        assert auth_calls == ["good"]

    def test_expired_authorisation_is_rechecked(self, bridge_client, auth_calls):
        frame = {"type": "send", "address": "orders", "body": {}, "sessionID": "good", "replyAddress": "r"}

        with self._client(bridge_client, auth_timeout_millis=0).websocket_connect("/eventbus") as ws:
            ws.send_json(frame)
            assert ws.receive_json()["body"] == "done"
            ws.send_json(frame)
            assert ws.receive_json()["body"] == "done"

        assert auth_calls == ["good", "good"]

    def test_no_auth_responder_denies(self, bridge_client, bus):
        bus.register("orders", lambda message: message.reply("done"))

        with self._client(bridge_client).websocket_connect("/eventbus") as ws:
            ws.send_json({"type": "send", "address": "orders", "body": {}, "sessionID": "good"})
            assert ws.receive_json()["body"] == "auth_required"


class TestOutbound:
    """Tests for bus -> client traffic."""

    def test_registered_client_receives_permitted(self, bridge_client, bus):
        with bridge_client(raw_outbound=[{"address": "news"}]) as client:
            with client.websocket_connect("/eventbus") as ws:
                ws.send_json({"type": "register", "address": "news"})
                sync(ws)

                client.portal.call(bus.publish, "news", {"headline": "hello"})
                assert ws.receive_json() == {"address": "news", "body": {"headline": "hello"}}

    def test_denied_outbound_is_dropped(self, bridge_client, bus):
        with bridge_client(raw_outbound=[{"address": "news"}]) as client:
            with client.websocket_connect("/eventbus") as ws:
                ws.send_json({"type": "register", "address": "secret"})
                sync(ws)

                client.portal.call(bus.publish, "secret", {"key": "hunter2"})
                # Next frame is the pong, not the secret
                sync(ws)

    def test_unregister(self, bridge_client, bus):
        with bridge_client(raw_outbound=[{"address": "news"}]).websocket_connect("/eventbus") as ws:
            ws.send_json({"type": "register", "address": "news"})
            sync(ws)
            assert bus.handler_count("news") == 1

            ws.send_json({"type": "unregister", "address": "news"})
            sync(ws)
            assert bus.handler_count("news") == 0

    def test_disconnect_unregisters(self, bridge_client, bus):
        with bridge_client(raw_outbound=[{"address": "news"}]) as client:
            with client.websocket_connect("/eventbus") as ws:
                ws.send_json({"type": "register", "address": "news"})
                ws.send_json({"type": "register", "address": "weather"})
                sync(ws)
                assert bus.handler_count("news") == 1

        assert bus.handler_count("news") == 0
        assert bus.handler_count("weather") == 0
