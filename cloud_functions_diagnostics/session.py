"""Sessions, one per invocation."""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .client import Client


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Session:
    """A record of one invocation, used for crash rate reporting."""

    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    started_at: datetime = field(default_factory=_now)
    handled: int = 0
    unhandled: int = 0

    def track(self, unhandled: bool) -> dict:
        """Count an event against this session and describe the session for it."""
        if unhandled:
            self.unhandled += 1
        else:
            self.handled += 1

        return {
            "id": self.id,
            "startedAt": self.started_at.isoformat(),
            "events": {"handled": self.handled, "unhandled": self.unhandled},
        }

    def to_payload(self) -> dict:
        """Serialize the session for delivery."""
        return {"id": self.id, "startedAt": self.started_at.isoformat()}


class PerInvocationSessionDelegate:
    """Deliver every session as soon as it starts."""

    def start_session(self, client: "Client", session: Session) -> None:
        """Send ``session`` right away."""
        client.deliver_session(session)


class SessionPlugin:
    """Install the per-invocation session delegate on a client."""

    name = "session"

    @staticmethod
    def load(client: "Client") -> PerInvocationSessionDelegate:
        """Replace the client's session delegate."""
        delegate = PerInvocationSessionDelegate()
        client.session_delegate = delegate
        return delegate
