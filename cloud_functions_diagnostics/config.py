"""Configuration for the diagnostics client and handler wrappers."""

from typing import Optional

from pydantic import BaseModel, Field, HttpUrl, NonNegativeInt
from pydantic_settings import BaseSettings, SettingsConfigDict

FLUSH_TIMEOUT_MS = 2000


class EnabledErrorTypes(BaseModel):
    """Kinds of error that are detected automatically."""

    unhandled_exceptions: bool = True
    unhandled_rejections: bool = True


class Endpoints(BaseModel):
    """Diagnostics backend URLs."""

    notify: HttpUrl = Field("https://notify.bugsnag.com", validate_default=True)
    sessions: HttpUrl = Field("https://sessions.bugsnag.com", validate_default=True)


class ClientConfiguration(BaseSettings):
    """Settings of the reference diagnostics client.

    Values can be supplied as keyword arguments or through ``DIAGNOSTICS_``
    prefixed environment variables, e.g. ``DIAGNOSTICS_API_KEY`` or
    ``DIAGNOSTICS_ENABLED_ERROR_TYPES__UNHANDLED_EXCEPTIONS``. A ``.env`` file
    in the working directory is read as well.
    """

    api_key: str = ""
    app_version: Optional[str] = None
    app_type: Optional[str] = None
    release_stage: str = "production"

    auto_track_sessions: bool = True
    auto_detect_errors: bool = True
    enabled_error_types: EnabledErrorTypes = Field(default_factory=EnabledErrorTypes)

    endpoints: Endpoints = Field(default_factory=Endpoints)
    delivery_timeout: float = Field(
        10.0, description="Seconds to wait for a single delivery request"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="DIAGNOSTICS_",
        env_nested_delimiter="__",
        extra="ignore",
    )


class HandlerOptions(BaseModel):
    """Options accepted by the handler factories."""

    flush_timeout_ms: NonNegativeInt = FLUSH_TIMEOUT_MS
