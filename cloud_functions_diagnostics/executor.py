"""Run one invocation: session, handler, error report and flush."""

import logging
from typing import Any, Awaitable, Callable, Mapping, Protocol

logger = logging.getLogger(__name__)

PLUGIN_NAME = "cloud functions plugin"

# Server integrations that start their own sessions
SERVER_PLUGIN_NAMES = ("asgi", "fastapi", "flask", "starlette")

HANDLED_STATE = {
    "severity": "error",
    "unhandled": True,
    "severityReason": {"type": "unhandledException"},
}


class DiagnosticsClient(Protocol):
    """What the executor needs from a diagnostics client."""

    config: Any
    logger: Any

    def add_metadata(self, section: str, data: Mapping[str, Any]) -> None: ...

    def clear_metadata(self, section: str) -> None: ...

    def get_plugin(self, name: str) -> Any: ...

    def start_session(self) -> None: ...

    def create_event(
        self,
        error: Any,
        tolerate_non_errors: bool,
        handled_state: dict,
        component: str,
        frames_to_skip: int,
    ) -> Any: ...

    def submit_event(self, event: Any) -> None: ...

    async def flush(self, timeout_ms: int) -> None: ...


def is_server_plugin_loaded(client: DiagnosticsClient) -> bool:
    """Check if a server integration that tracks its own sessions is loaded."""
    return any(client.get_plugin(name) for name in SERVER_PLUGIN_NAMES)


async def execute(
    client: DiagnosticsClient,
    flush_timeout_ms: int,
    handler: Callable[..., Awaitable[Any]],
    *args: Any,
) -> Any:
    """
    Run ``handler`` with diagnostics around it.

    A session is started first when automatic session tracking is on. If the
    handler raises, the error is reported when automatic error detection is on
    and then re-raised unchanged. In every case pending deliveries are flushed
    before returning; a failed flush is logged and never changes the outcome.
    """
    config = client.config

    # Server integrations start sessions themselves, don't count them twice
    if config.auto_track_sessions and not is_server_plugin_loaded(client):
        client.start_session()

    try:
        return await handler(*args)
    except Exception as e:
        if config.auto_detect_errors and config.enabled_error_types.unhandled_exceptions:
            event = client.create_event(e, True, HANDLED_STATE, PLUGIN_NAME, 1)
            client.submit_event(event)
        else:
            logger.debug(f"Not reporting {type(e).__name__}, error detection is off")

        raise
    finally:
        try:
            await client.flush(flush_timeout_ms)
        except Exception as e:
            client.logger.error(f"Delivery may be unsuccessful: {e}")
