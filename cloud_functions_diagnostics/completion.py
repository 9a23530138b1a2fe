"""Wait for a response to be fully handed to the server."""

import asyncio
import logging
from typing import Any, Callable, Optional, Protocol

from starlette.types import Message, Receive, Send

logger = logging.getLogger(__name__)

TERMINAL_SIGNALS = ("error", "end", "finish")

Listener = Callable[..., None]


class Stream(Protocol):
    """Anything that emits terminal signals and knows when it has ended."""

    writable_ended: bool

    def add_listener(self, signal: str, listener: Listener) -> None: ...

    def remove_listener(self, signal: str, listener: Listener) -> None: ...


async def wait_for_completion(stream: Stream) -> Stream:
    """
    Wait until the stream reaches a terminal state.

    The first of the ``error``, ``end`` and ``finish`` signals settles the wait,
    any signal after that is ignored. An ``error`` signal raises the error it
    carries.
    """
    if stream.writable_ended:
        return stream

    future: asyncio.Future = asyncio.get_running_loop().create_future()
    is_complete = False

    def complete(error: Optional[BaseException] = None) -> None:
        nonlocal is_complete

        if is_complete:
            return

        is_complete = True

        for signal in TERMINAL_SIGNALS:
            stream.remove_listener(signal, complete)

        if error is not None:
            future.set_exception(error)
        else:
            future.set_result(stream)

    for signal in TERMINAL_SIGNALS:
        stream.add_listener(signal, complete)

    return await future


class ResponseStream:
    """
    Observe one ASGI response.

    Wraps the server's ``receive`` and ``send`` callables and emits:

    - ``finish`` when the last body message has been handed to the server
    - ``end`` when the client disconnects or the application returns
    - ``error`` when the server fails to send a message
    """

    def __init__(self, receive: Receive, send: Send):
        """Wrap the server's channels."""
        self._receive = receive
        self._send = send
        self._listeners: dict[str, list[Listener]] = {
            signal: [] for signal in TERMINAL_SIGNALS
        }

        self.writable_ended = False
        self.status_code: Optional[int] = None
        self.bytes_read = 0
        self.bytes_written = 0

    def add_listener(self, signal: str, listener: Listener) -> None:
        """Call ``listener`` when ``signal`` is emitted."""
        self._listeners[signal].append(listener)

    def remove_listener(self, signal: str, listener: Listener) -> None:
        """Stop calling ``listener`` for ``signal``."""
        try:
            self._listeners[signal].remove(listener)
        except ValueError:
            pass

    def emit(self, signal: str, *args: Any) -> None:
        """Call every listener registered for ``signal``."""
        for listener in list(self._listeners[signal]):
            listener(*args)

    def end(self) -> None:
        """Mark the response as over, e.g. because the application returned."""
        if self.writable_ended:
            return
        self.writable_ended = True
        self.emit("end")

    async def receive(self) -> Message:
        """Receive a message from the client."""
        message = await self._receive()

        if message["type"] == "http.request":
            self.bytes_read += len(message.get("body", b""))
        elif message["type"] == "http.disconnect":
            logger.debug("Client disconnected before the response completed")
            self.end()

        return message

    async def send(self, message: Message) -> None:
        """Send a message to the client."""
        try:
            await self._send(message)
        except Exception as e:
            self.emit("error", e)
            raise

        if message["type"] == "http.response.start":
            self.status_code = message.get("status")
        elif message["type"] == "http.response.body":
            self.bytes_written += len(message.get("body", b""))
            if not message.get("more_body", False):
                self._finish()
        elif message["type"] == "http.response.pathsend":
            self._finish()

    def _finish(self) -> None:
        if self.writable_ended:
            return
        self.writable_ended = True
        self.emit("finish")
