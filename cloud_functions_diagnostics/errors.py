"""Errors raised by the diagnostics wrappers."""


class FlushTimeoutError(TimeoutError):
    """Pending deliveries did not complete within the flush timeout."""

    def __init__(self, timeout_ms: int):
        """Build the error for the given timeout."""
        self.timeout_ms = timeout_ms
        super().__init__(f"flush timed out after {timeout_ms}ms")
