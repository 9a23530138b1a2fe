"""Utilities for testing."""

import asyncio
from dataclasses import dataclass, field
from typing import Any, Callable

import httpx
from starlette.requests import Request
from starlette.responses import PlainTextResponse
from starlette.types import ASGIApp, Receive, Scope, Send


@dataclass
class RecordingDelivery:
    """Delivery that keeps every payload it is asked to send."""

    events: list[dict] = field(default_factory=list)
    sessions: list[dict] = field(default_factory=list)
    delay: float = 0.0

    async def send_event(self, payload: dict) -> None:
        """Record an event payload."""
        if self.delay:
            await asyncio.sleep(self.delay)
        self.events.append(payload)

    async def send_session(self, payload: dict) -> None:
        """Record a session payload."""
        if self.delay:
            await asyncio.sleep(self.delay)
        self.sessions.append(payload)

    def error_messages(self) -> list[str]:
        """Messages of every delivered error."""
        return [
            error["errorMessage"]
            for payload in self.events
            for event in payload["events"]
            for error in event["errors"]
        ]


def http_function_host(handler: ASGIApp) -> ASGIApp:
    """Serve an HTTP function, turning an escaped error into a 500 response."""

    async def app(scope: Scope, receive: Receive, send: Send) -> None:
        try:
            await handler(scope, receive, send)
        except Exception as e:
            await PlainTextResponse(str(e), status_code=500)(scope, receive, send)

    return app


def cloud_event_function_host(handler: Callable[[Any], Any]) -> ASGIApp:
    """Serve a CloudEvent function that receives the JSON request body."""

    async def app(scope: Scope, receive: Receive, send: Send) -> None:
        request = Request(scope, receive)
        try:
            result = await handler(await request.json())
        except Exception as e:
            response = PlainTextResponse(str(e), status_code=500)
        else:
            response = PlainTextResponse(str(result))
        await response(scope, receive, send)

    return app


def asgi_client(app: ASGIApp) -> httpx.AsyncClient:
    """HTTP client talking to an ASGI app in process."""
    return httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app), base_url="http://testserver"
    )
