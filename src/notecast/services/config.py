"""Configuration models for notecast.

One YAML file describes the identity, relay selection, timeouts, the
Blossom server, and publishing defaults. Every section has defaults, so a
partial file (or none at all) is valid as long as the secret key
environment variable is set.

See Also:
    [load_yaml()][notecast.core.yaml.load_yaml]: Safe YAML loading used by
        [from_yaml()][notecast.services.config.NotecastConfig.from_yaml].
    [KeysConfig][notecast.utils.keys.KeysConfig]: Loads the secret key from
        the environment at validation time.

Examples:
    ```yaml
    identity:
      keys_env: NOSTR_SECRET_KEY
    relays:
      source: nip65
      discovery: [wss://relay.damus.io, wss://nos.lol]
    upload:
      enabled: true
      server_url: https://blossom.example
    ```
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Self

from pydantic import BaseModel, Field, field_validator, model_validator

from notecast.core.metrics import MetricsConfig
from notecast.core.yaml import load_yaml
from notecast.models.constants import RelaySource
from notecast.models.relay import normalize_relay_urls
from notecast.nips.blossom import DEFAULT_MAX_RESPONSE_SIZE, DEFAULT_UPLOAD_TIMEOUT
from notecast.nips.event_builders import (
    DEFAULT_CLIENT_TAG,
    LONG_NOTE_THRESHOLD,
    UPLOAD_AUTHORIZATION_TTL,
)
from notecast.utils.keys import KeysConfig


DEFAULT_MANUAL_RELAYS = ["wss://relay.damus.io"]
DEFAULT_DISCOVERY_RELAYS = ["wss://relay.damus.io", "wss://nos.lol", "wss://relay.nostr.band"]


# =============================================================================
# Sections
# =============================================================================


class RelaysConfig(BaseModel):
    """Which relays to publish to and where to look up metadata.

    ``manual`` publishes to the configured list. ``nip65`` publishes to the
    write relays of the user's kind 10002 list, looked up on ``discovery``.
    Profile lookups always use ``discovery``.
    """

    source: RelaySource = Field(default=RelaySource.MANUAL)
    manual: list[str] = Field(default_factory=lambda: list(DEFAULT_MANUAL_RELAYS))
    discovery: list[str] = Field(default_factory=lambda: list(DEFAULT_DISCOVERY_RELAYS))
    allow_insecure: bool = Field(
        default=False, description="Retry without certificate checks on TLS failures"
    )

    @field_validator("manual", "discovery", mode="before")
    @classmethod
    def _split_string(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [part.strip() for part in value.split(",") if part.strip()]
        return value

    @field_validator("manual", "discovery")
    @classmethod
    def _normalize(cls, value: list[str]) -> list[str]:
        return normalize_relay_urls(value)


class TimeoutsConfig(BaseModel):
    """Network timeouts in seconds."""

    connect: float = Field(default=10.0, gt=0.0, le=120.0)
    publish: float = Field(default=10.0, gt=0.0, le=120.0)
    fetch_soft: float = Field(default=5.0, gt=0.0, le=120.0)
    fetch_hard: float = Field(default=10.0, gt=0.0, le=300.0)

    @model_validator(mode="after")
    def _soft_within_hard(self) -> Self:
        if self.fetch_soft > self.fetch_hard:
            raise ValueError(
                f"timeouts.fetch_soft ({self.fetch_soft}) must not exceed "
                f"timeouts.fetch_hard ({self.fetch_hard})"
            )
        return self


class UploadConfig(BaseModel):
    """Blossom upload settings. ``server_url`` is required when enabled."""

    enabled: bool = False
    server_url: str | None = None
    authorization_ttl: int = Field(default=UPLOAD_AUTHORIZATION_TTL, ge=30, le=3600)
    timeout: float = Field(default=DEFAULT_UPLOAD_TIMEOUT, gt=0.0, le=600.0)
    max_response_size: int = Field(default=DEFAULT_MAX_RESPONSE_SIZE, ge=1024)
    resources_dir: Path | None = Field(
        default=None, description="Directory of <resource_id>.<ext> attachment files"
    )

    @field_validator("server_url")
    @classmethod
    def _strip_slash(cls, value: str | None) -> str | None:
        if value is None:
            return None
        value = value.strip().rstrip("/")
        if not value.startswith(("http://", "https://")):
            raise ValueError(f"upload.server_url must be an http(s) URL, got {value!r}")
        return value

    @model_validator(mode="after")
    def _require_server(self) -> Self:
        if self.enabled and not self.server_url:
            raise ValueError("upload.server_url is required when upload.enabled is true")
        return self


class PublishConfig(BaseModel):
    """Record composition defaults."""

    client_tag: str = Field(default=DEFAULT_CLIENT_TAG, min_length=1)
    long_note_threshold: int = Field(default=LONG_NOTE_THRESHOLD, ge=0)


# =============================================================================
# Root
# =============================================================================


class NotecastConfig(BaseModel):
    """Root configuration.

    Attributes:
        identity: Secret key source; keys are loaded during validation.
        relays: Relay selection.
        timeouts: Network timeouts.
        upload: Blossom upload settings.
        publish: Record composition defaults.
        metrics: Textfile metrics exposition.
    """

    identity: KeysConfig = Field(default_factory=lambda: KeysConfig.model_validate({}))
    relays: RelaysConfig = Field(default_factory=RelaysConfig)
    timeouts: TimeoutsConfig = Field(default_factory=TimeoutsConfig)
    upload: UploadConfig = Field(default_factory=UploadConfig)
    publish: PublishConfig = Field(default_factory=PublishConfig)
    metrics: MetricsConfig = Field(default_factory=MetricsConfig)

    @classmethod
    def from_yaml(cls, config_path: str | Path) -> Self:
        """Load and validate a YAML configuration file."""
        return cls.from_dict(load_yaml(config_path))

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        return cls(**data)
