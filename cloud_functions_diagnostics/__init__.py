"""
Cloud Functions diagnostics package.

Wraps HTTP and CloudEvent function handlers so that unhandled errors are
reported, sessions are tracked per invocation and pending deliveries are
flushed before each invocation completes.
"""

from .app_duration import AppDurationPlugin
from .client import Client
from .config import FLUSH_TIMEOUT_MS, ClientConfiguration
from .errors import FlushTimeoutError
from .plugin import CloudFunctionsHandlers, CloudFunctionsPlugin

__all__ = [
    "AppDurationPlugin",
    "Client",
    "ClientConfiguration",
    "CloudFunctionsHandlers",
    "CloudFunctionsPlugin",
    "FLUSH_TIMEOUT_MS",
    "FlushTimeoutError",
]
