"""Report how long the app has been running when an event is created."""

from time import monotonic
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .client import Client
    from .event import Event


class AppDuration:
    """Clock started when the plugin loads, restartable per invocation."""

    def __init__(self):
        """Start the clock."""
        self.started_at = monotonic()

    def reset(self) -> None:
        """Restart the clock."""
        self.started_at = monotonic()

    def add_duration(self, event: "Event") -> None:
        """Add ``app.duration`` in milliseconds to the event."""
        event.app["duration"] = round((monotonic() - self.started_at) * 1000)


class AppDurationPlugin:
    """Add ``app.duration`` to every event."""

    name = "app_duration"

    @staticmethod
    def load(client: "Client") -> AppDuration:
        """Start the clock and hook it into the client's error callbacks."""
        duration = AppDuration()
        client.add_on_error(duration.add_duration)
        return duration
