"""
Event Bus

The bridge talks to the bus only through the EventBus protocol. Production
deployments inject their own bus; LocalEventBus is the in-process default.
"""

import asyncio
import inspect
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional, Protocol, Union

from webserver.configs.constants import DEFAULT_REPLY_TIMEOUT
from webserver.configs.logging import get_logger
from webserver.exceptions import NoHandlersError, ReplyTimeoutError

logger = get_logger("eventbus")


@dataclass
class Message:
    """A message delivered to a handler."""

    address: str
    body: Any
    _reply: Optional[Callable[[Any], None]] = field(default=None, repr=False)

    @property
    def expects_reply(self) -> bool:
        return self._reply is not None

    def reply(self, body: Any) -> None:
        """Answer a request. Ignored if the sender didn't ask for a reply."""
        if self._reply is not None:
            self._reply(body)


Handler = Callable[[Message], Union[None, Awaitable[None]]]


class EventBus(Protocol):
    """Address-based publish/subscribe with point-to-point requests."""

    async def publish(self, address: str, body: Any) -> None:
        ...

    async def send(self, address: str, body: Any) -> None:
        ...

    async def request(self, address: str, body: Any, timeout: float = DEFAULT_REPLY_TIMEOUT) -> Any:
        ...

    def register(self, address: str, handler: Handler) -> None:
        ...

    def unregister(self, address: str, handler: Handler) -> None:
        ...


class LocalEventBus:
    """
    In-process event bus running on the current asyncio loop.

    publish delivers to every handler on the address, logging and skipping
    any that raise. send and request deliver to one handler, rotating
    round-robin, and let its exceptions propagate to the caller.
    """

    def __init__(self) -> None:
        self._handlers: dict[str, list[Handler]] = defaultdict(list)
        self._next: dict[str, int] = defaultdict(int)

    def register(self, address: str, handler: Handler) -> None:
        self._handlers[address].append(handler)
        logger.debug(f"Registered handler on {address}")

    def unregister(self, address: str, handler: Handler) -> None:
        handlers = self._handlers.get(address)
        if not handlers or handler not in handlers:
            return
        handlers.remove(handler)
        if not handlers:
            del self._handlers[address]
            self._next.pop(address, None)
        logger.debug(f"Unregistered handler on {address}")

    def handler_count(self, address: str) -> int:
        return len(self._handlers.get(address, ()))

    async def publish(self, address: str, body: Any) -> None:
        for handler in list(self._handlers.get(address, ())):
            try:
                await self._deliver(handler, Message(address=address, body=body))
            except Exception:
                logger.exception(f"Handler on {address} failed during publish")

    async def send(self, address: str, body: Any) -> None:
        handler = self._pick(address)
        await self._deliver(handler, Message(address=address, body=body))

    async def request(self, address: str, body: Any, timeout: float = DEFAULT_REPLY_TIMEOUT) -> Any:
        handler = self._pick(address)
        future: asyncio.Future = asyncio.get_running_loop().create_future()

        def _reply(reply_body: Any) -> None:
            if not future.done():
                future.set_result(reply_body)

        await self._deliver(handler, Message(address=address, body=body, _reply=_reply))
        try:
            return await asyncio.wait_for(future, timeout)
        except asyncio.TimeoutError as e:
            raise ReplyTimeoutError(f"No reply within {timeout}s", address) from e

    def _pick(self, address: str) -> Handler:
        handlers = self._handlers.get(address)
        if not handlers:
            raise NoHandlersError("No handlers registered", address)
        index = self._next[address] % len(handlers)
        self._next[address] = index + 1
        return handlers[index]

    async def _deliver(self, handler: Handler, message: Message) -> None:
        result = handler(message)
        if inspect.isawaitable(result):
            await result
