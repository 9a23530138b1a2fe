"""
Cloud Functions plugin.

Wraps HTTP (ASGI) and CloudEvent function handlers so unhandled errors are
reported, a session is recorded per invocation and pending deliveries are
flushed before the invocation completes.
"""

import asyncio
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from functools import partial
from typing import Any, Callable

from starlette.requests import Request
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from .completion import ResponseStream, wait_for_completion
from .config import FLUSH_TIMEOUT_MS, HandlerOptions
from .executor import DiagnosticsClient, execute
from .normalizer import normalize_handler
from .request_info import get_request_info
from .session import SessionPlugin

logger = logging.getLogger(__name__)


class CloudFunctionsPlugin:
    """Plugin providing the handler wrappers."""

    name = "cloud_functions"

    @staticmethod
    def load(client: Any) -> "CloudFunctionsHandlers":
        """Prepare the client for per-invocation reporting."""
        client.load_plugin(SessionPlugin)

        # Reset the app duration between invocations, if the plugin is loaded
        app_duration = client.get_plugin("app_duration")
        if app_duration:
            app_duration.reset()

        return CloudFunctionsHandlers(client)


@dataclass
class CloudFunctionsHandlers:
    """Handler factories bound to a client."""

    client: DiagnosticsClient

    def create_http_handler(
        self, flush_timeout_ms: int = FLUSH_TIMEOUT_MS
    ) -> Callable[[ASGIApp], ASGIApp]:
        """Return a decorator that wraps an ASGI app."""
        options = HandlerOptions(flush_timeout_ms=flush_timeout_ms)
        return partial(wrap_http_handler, self.client, options.flush_timeout_ms)

    def create_cloud_event_handler(
        self, flush_timeout_ms: int = FLUSH_TIMEOUT_MS
    ) -> Callable[[Callable], Callable]:
        """Return a decorator that wraps a CloudEvent handler."""
        options = HandlerOptions(flush_timeout_ms=flush_timeout_ms)
        return partial(wrap_cloud_event_handler, self.client, options.flush_timeout_ms)


def wrap_http_handler(
    client: DiagnosticsClient, flush_timeout_ms: int, handler: ASGIApp
) -> ASGIApp:
    """Wrap an ASGI app handling HTTP requests."""

    async def _handler(scope: Scope, receive: Receive, send: Send) -> None:
        stream = ResponseStream(receive, send)

        # Listen before the app runs, it may disconnect or fail to send midway
        completion = asyncio.ensure_future(wait_for_completion(stream))
        await asyncio.sleep(0)

        try:
            await handler(scope, stream.receive, stream.send)
        except BaseException:
            # The app's own error is what gets reported
            if completion.done():
                completion.exception()
            else:
                completion.cancel()
            raise

        # Once the app returns it can't write to the response anymore
        stream.end()
        await completion

    async def wrapped(scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            logger.debug(f"Passing {scope['type']} scope through unwrapped")
            await handler(scope, receive, send)
            return

        body, receive_replayed = await _buffer_body(receive)
        # Replace, don't merge, so nothing carries over from a previous request
        client.clear_metadata("request")
        client.add_metadata("request", get_request_info(Request(scope), body))

        await execute(client, flush_timeout_ms, _handler, scope, receive_replayed, send)

    return wrapped


def wrap_cloud_event_handler(
    client: DiagnosticsClient, flush_timeout_ms: int, handler: Callable
) -> Callable:
    """Wrap a CloudEvent handler, with or without a completion callback."""
    _handler = normalize_handler(handler)

    async def wrapped(cloud_event: Any) -> Any:
        client.clear_metadata("cloudevent")
        client.add_metadata("cloudevent", _cloud_event_metadata(cloud_event))

        return await execute(client, flush_timeout_ms, _handler, cloud_event)

    return wrapped


def _cloud_event_metadata(cloud_event: Any) -> Mapping[str, Any]:
    if isinstance(cloud_event, Mapping):
        return dict(cloud_event)
    return {"data": cloud_event}


async def _buffer_body(receive: Receive) -> tuple[bytes, Receive]:
    """Read the whole request body and return a ``receive`` that replays it."""
    body = b""
    messages: list[Message] = []

    while True:
        message = await receive()
        messages.append(message)
        if message["type"] != "http.request":
            break
        body += message.get("body", b"")
        if not message.get("more_body", False):
            break

    async def receive_replayed() -> Message:
        if messages:
            return messages.pop(0)
        return await receive()

    return body, receive_replayed
