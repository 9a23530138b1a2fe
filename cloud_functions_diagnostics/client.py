"""
Reference diagnostics client.

Collects metadata, builds events and sessions, and hands them to a delivery
while keeping track of deliveries that are still in flight so they can be
flushed before an invocation completes.
"""

import platform
import socket
from typing import Any, Callable, Iterable, Mapping, Optional

from .config import ClientConfiguration
from .delivery import Delivery, HttpDelivery
from .event import HANDLED_EXCEPTION, Event
from .inflight import InFlightTracker
from .monitoring import logger as default_logger
from .session import Session

NOTIFIER = {
    "name": "cloud-functions-diagnostics",
    "version": "0.1.0",
}

OnError = Callable[[Event], Optional[bool]]


class _NoSessionDelegate:
    def start_session(self, client: "Client", session: Session) -> None:
        client.logger.warning("No session implementation is installed")


class Client:
    """Diagnostics client shared by every invocation of a function."""

    def __init__(
        self,
        config: Optional[ClientConfiguration] = None,
        *,
        plugins: Iterable[Any] = (),
        delivery: Optional[Delivery] = None,
        logger: Any = None,
    ):
        """Create a client and load its plugins."""
        self.config = config or ClientConfiguration()
        self.logger = logger or default_logger
        self.delivery: Delivery = delivery or HttpDelivery(self.config)
        self.session_delegate: Any = _NoSessionDelegate()

        self._metadata: dict[str, dict] = {}
        self._plugins: dict[str, Any] = {}
        self._on_error: list[OnError] = []
        self._session: Optional[Session] = None
        self._in_flight = InFlightTracker()

        for plugin in plugins:
            self.load_plugin(plugin)

    #
    # Metadata
    #

    def add_metadata(self, section: str, data: Mapping[str, Any]) -> None:
        """Merge ``data`` into a metadata section."""
        self._metadata.setdefault(section, {}).update(data)

    def get_metadata(self, section: str, key: Optional[str] = None) -> Any:
        """Return a metadata section, or one key of it."""
        values = self._metadata.get(section)
        if key is None or values is None:
            return values
        return values.get(key)

    def clear_metadata(self, section: str, key: Optional[str] = None) -> None:
        """Remove a metadata section, or one key of it."""
        if key is None:
            self._metadata.pop(section, None)
        else:
            self._metadata.get(section, {}).pop(key, None)

    #
    # Plugins & callbacks
    #

    def load_plugin(self, plugin: Any) -> Any:
        """Load a plugin and remember what it returned under its name."""
        result = plugin.load(self)
        self._plugins[plugin.name] = result
        return result

    def get_plugin(self, name: str) -> Any:
        """Return a loaded plugin, or None."""
        return self._plugins.get(name)

    def add_on_error(self, callback: OnError) -> None:
        """Run ``callback`` on every event; returning False drops the event."""
        self._on_error.append(callback)

    #
    # Sessions
    #

    def start_session(self) -> None:
        """Start a new session and pass it to the session delegate."""
        self._session = Session()
        self.session_delegate.start_session(self, self._session)

    def deliver_session(self, session: Session) -> None:
        """Queue delivery of a session."""
        payload = {
            "notifier": NOTIFIER,
            "app": self._app(),
            "device": self._device(),
            "sessions": [session.to_payload()],
        }
        self._in_flight.track(self._send("session", self.delivery.send_session, payload))

    #
    # Events
    #

    def create_event(
        self,
        error: Any,
        tolerate_non_errors: bool,
        handled_state: dict,
        component: Optional[str] = None,
        frames_to_skip: int = 0,
    ) -> Event:
        """Build an event for ``error``."""
        return Event.create(
            error, tolerate_non_errors, handled_state, component, frames_to_skip
        )

    def notify(self, error: Any) -> None:
        """Report a handled error."""
        self.submit_event(self.create_event(error, True, HANDLED_EXCEPTION, "notify", 1))

    def submit_event(self, event: Event) -> None:
        """Run error callbacks on ``event`` and queue its delivery."""
        event.app = {**self._app(), **event.app}
        event.device = {**self._device(), **event.device}
        event.metadata = {
            **{section: dict(values) for section, values in self._metadata.items()},
            **event.metadata,
        }

        for callback in self._on_error:
            try:
                if callback(event) is False:
                    return
            except Exception as e:
                self.logger.error(f"Error occurred in on_error callback: {e}")

        if self._session is not None:
            event.session = self._session.track(event.unhandled)

        payload = {
            "apiKey": self.config.api_key,
            "notifier": NOTIFIER,
            "events": [event.to_payload()],
        }
        self._in_flight.track(self._send("event", self.delivery.send_event, payload))

    #
    # Delivery
    #

    async def flush(self, timeout_ms: int) -> None:
        """Wait for in-flight deliveries, raising FlushTimeoutError after ``timeout_ms``."""
        await self._in_flight.flush(timeout_ms)

    async def _send(self, kind: str, send: Callable, payload: dict) -> None:
        try:
            await send(payload)
        except Exception as e:
            self.logger.error(f"Failed to send {kind}: {e}")

    def _app(self) -> dict:
        app = {"releaseStage": self.config.release_stage}
        if self.config.app_version:
            app["version"] = self.config.app_version
        if self.config.app_type:
            app["type"] = self.config.app_type
        return app

    def _device(self) -> dict:
        return {
            "hostname": socket.gethostname(),
            "runtimeVersions": {"python": platform.python_version()},
        }
