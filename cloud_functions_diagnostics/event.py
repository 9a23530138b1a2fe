"""Error reports sent to the diagnostics backend."""

import traceback
from dataclasses import dataclass, field
from typing import Any, Optional

HANDLED_EXCEPTION = {
    "severity": "warning",
    "unhandled": False,
    "severityReason": {"type": "handledException"},
}


def _stacktrace(frames: traceback.StackSummary) -> list[dict]:
    # Innermost frame first
    return [
        {
            "file": frame.filename,
            "lineNumber": frame.lineno,
            "method": frame.name,
            "code": frame.line,
        }
        for frame in reversed(frames)
    ]


@dataclass
class Event:
    """One error report."""

    errors: list[dict]
    severity: str = "warning"
    unhandled: bool = False
    severity_reason: dict = field(default_factory=dict)
    original_error: Optional[BaseException] = None
    component: Optional[str] = None
    metadata: dict[str, dict] = field(default_factory=dict)
    app: dict[str, Any] = field(default_factory=dict)
    device: dict[str, Any] = field(default_factory=dict)
    session: Optional[dict] = None

    @classmethod
    def create(
        cls,
        maybe_error: Any,
        tolerate_non_errors: bool,
        handled_state: dict,
        component: Optional[str] = None,
        frames_to_skip: int = 0,
    ) -> "Event":
        """
        Build an event from something that was raised or reported.

        Args:
            maybe_error: The exception, or any other value when ``tolerate_non_errors``
            tolerate_non_errors: Convert non-exception values instead of rejecting them
            handled_state: ``severity``, ``unhandled`` and ``severityReason`` of the event
            component: Name of the integration that created the event
            frames_to_skip: Frames to drop from a generated stacktrace

        Returns
        -------
            The event
        """
        metadata: dict[str, dict] = {}

        if isinstance(maybe_error, BaseException):
            error = maybe_error
            frames = traceback.extract_tb(error.__traceback__)
        elif tolerate_non_errors:
            error = Exception(str(maybe_error))
            metadata["error"] = {"nonErrorValue": repr(maybe_error)}
            # The error was never raised, so use the stack of the caller
            frames = traceback.StackSummary.from_list(
                traceback.extract_stack()[: -(frames_to_skip + 1)]
            )
        else:
            raise TypeError(f"Expected an exception, got {type(maybe_error).__name__}")

        return cls(
            errors=[
                {
                    "errorClass": type(error).__name__,
                    "errorMessage": str(error),
                    "stacktrace": _stacktrace(frames),
                    "type": "python",
                }
            ],
            severity=handled_state["severity"],
            unhandled=handled_state["unhandled"],
            severity_reason=dict(handled_state["severityReason"]),
            original_error=error,
            component=component,
            metadata=metadata,
        )

    def to_payload(self) -> dict:
        """Serialize the event for delivery."""
        payload = {
            "errors": self.errors,
            "severity": self.severity,
            "unhandled": self.unhandled,
            "severityReason": self.severity_reason,
            "metaData": self.metadata,
            "app": self.app,
            "device": self.device,
        }
        if self.session is not None:
            payload["session"] = self.session
        return payload
