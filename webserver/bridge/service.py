"""
Event Bus Bridge

Relays JSON frames between WebSocket clients and the event bus, enforcing
the permitted rule sets of a BridgeConfig.

Client frames:
    {"type": "send" | "publish", "address": ..., "body": ...,
     "replyAddress": ..., "sessionID": ...}
    {"type": "register" | "unregister", "address": ...}
    {"type": "ping"}

Server frames:
    {"address": ..., "body": ...}              delivery or relayed reply
    {"type": "pong"}
    {"type": "err", "address": ..., "body": <reason>}
"""

import json
import time
import uuid
from typing import Any, Optional

from fastapi import WebSocket, WebSocketDisconnect

from webserver.bridge.config import BridgeConfig
from webserver.bridge.eventbus import EventBus, Handler, Message
from webserver.bridge.rules import find_permitting_rule
from webserver.configs.constants import DEFAULT_REPLY_TIMEOUT
from webserver.configs.logging import get_logger
from webserver.exceptions import EventBusError, NoHandlersError, ReplyTimeoutError

logger = get_logger("bridge")


class BridgeSession:
    """One connected client and the bus handlers it registered."""

    def __init__(self, websocket: WebSocket):
        self.id = uuid.uuid4().hex[:12]
        self.websocket = websocket
        self.handlers: dict[str, Handler] = {}

    async def send_frame(self, frame: dict[str, Any]) -> None:
        await self.websocket.send_text(json.dumps(frame))

    async def send_error(self, reason: str, address: Optional[str] = None) -> None:
        frame: dict[str, Any] = {"type": "err", "body": reason}
        if address is not None:
            frame["address"] = address
        await self.send_frame(frame)


class EventBusBridge:
    """
    Bridge between WebSocket clients and an event bus.

    One instance serves every connection. Authorisations are cached per
    client-supplied sessionID for ``auth_timeout_millis``.
    """

    def __init__(
        self,
        config: BridgeConfig,
        bus: EventBus,
        reply_timeout: float = DEFAULT_REPLY_TIMEOUT,
    ):
        self.config = config
        self.bus = bus
        self.reply_timeout = reply_timeout
        # sessionID -> monotonic expiry time
        self._authorised: dict[str, float] = {}

    # -------------------------------------------------------------------------
    # Connection lifecycle
    # -------------------------------------------------------------------------

    async def handle_socket(self, websocket: WebSocket) -> None:
        """Serve one client connection until it closes."""
        await websocket.accept()
        session = BridgeSession(websocket)
        logger.info(f"Bridge client connected: {session.id}")
        try:
            while True:
                message = await websocket.receive()
                if message["type"] == "websocket.disconnect":
                    raise WebSocketDisconnect(message.get("code", 1000))
                raw = message.get("text")
                if raw is None:
                    logger.debug(f"Binary frame from {session.id}")
                    await session.send_error("invalid_json")
                    continue
                await self.handle_frame(session, raw)
        except WebSocketDisconnect:
            logger.info(f"Bridge client disconnected: {session.id}")
        finally:
            self._close_session(session)

    def _close_session(self, session: BridgeSession) -> None:
        for address, handler in session.handlers.items():
            self.bus.unregister(address, handler)
        session.handlers.clear()

    # -------------------------------------------------------------------------
    # Frame dispatch
    # -------------------------------------------------------------------------

    async def handle_frame(self, session: BridgeSession, raw: str) -> None:
        try:
            frame = json.loads(raw)
        except json.JSONDecodeError:
            logger.debug(f"Invalid JSON from {session.id}")
            await session.send_error("invalid_json")
            return
        if not isinstance(frame, dict):
            await session.send_error("invalid_json")
            return

        msg_type = frame.get("type")
        if msg_type == "ping":
            await session.send_frame({"type": "pong"})
            return

        address = frame.get("address")
        if not isinstance(address, str) or not address:
            await session.send_error("missing_address")
            return

        if msg_type in ("send", "publish"):
            await self._handle_inbound(session, msg_type, address, frame)
        elif msg_type == "register":
            self._register(session, address)
        elif msg_type == "unregister":
            self._unregister(session, address)
        else:
            logger.debug(f"Unknown frame type from {session.id}: {msg_type}")
            await session.send_error("unknown_type", address)

    # -------------------------------------------------------------------------
    # Inbound: client -> bus
    # -------------------------------------------------------------------------

    async def _handle_inbound(self, session: BridgeSession, msg_type: str, address: str, frame: dict) -> None:
        body = frame.get("body")
        rule = find_permitting_rule(self.config.inbound_rules, address, body)
        if rule is None:
            logger.debug(f"Inbound {msg_type} to {address} denied for {session.id}")
            await session.send_error("access_denied", address)
            return

        if rule.requires_auth:
            session_id = frame.get("sessionID")
            if not isinstance(session_id, str) or not session_id or not await self.authorise(session_id):
                logger.debug(f"Inbound {msg_type} to {address} needs auth, {session.id} not authorised")
                await session.send_error("auth_required", address)
                return

        reply_address = frame.get("replyAddress")
        reply = None
        try:
            if msg_type == "publish":
                await self.bus.publish(address, body)
            elif reply_address:
                reply = await self.bus.request(address, body, timeout=self.reply_timeout)
            else:
                await self.bus.send(address, body)
        except NoHandlersError:
            await session.send_error("no_handlers", reply_address or address)
            return
        except ReplyTimeoutError:
            await session.send_error("reply_timeout", reply_address or address)
            return
        except Exception:
            logger.exception(f"Bus handler on {address} failed for {session.id}")
            await session.send_error("internal_error", reply_address or address)
            return

        if msg_type == "send" and reply_address:
            await session.send_frame({"address": reply_address, "body": reply})

    async def authorise(self, session_id: str) -> bool:
        """
        Check a sessionID with the auth responder, using the cache first.

        A reply of ``{"status": "ok"}`` authorises the session for the
        configured timeout. Anything else, or no responder, denies.
        """
        now = time.monotonic()
        expiry = self._authorised.get(session_id)
        if expiry is not None:
            if expiry > now:
                return True
            del self._authorised[session_id]

        try:
            reply = await self.bus.request(
                self.config.auth_address,
                {"sessionID": session_id},
                timeout=self.reply_timeout,
            )
        except EventBusError as e:
            logger.warning(f"Authorisation via {self.config.auth_address} failed: {e}")
            return False
        except Exception:
            logger.exception(f"Auth responder on {self.config.auth_address} failed")
            return False

        if isinstance(reply, dict) and reply.get("status") == "ok":
            self._authorised[session_id] = time.monotonic() + self.config.auth_timeout_seconds
            return True
        return False

    # -------------------------------------------------------------------------
    # Outbound: bus -> client
    # -------------------------------------------------------------------------

    def _register(self, session: BridgeSession, address: str) -> None:
        if address in session.handlers:
            return

        async def deliver(message: Message) -> None:
            if find_permitting_rule(self.config.outbound_rules, message.address, message.body) is None:
                logger.debug(f"Outbound message on {message.address} denied for {session.id}")
                return
            await session.send_frame({"address": message.address, "body": message.body})

        session.handlers[address] = deliver
        self.bus.register(address, deliver)

    def _unregister(self, session: BridgeSession, address: str) -> None:
        handler = session.handlers.pop(address, None)
        if handler is not None:
            self.bus.unregister(address, handler)
