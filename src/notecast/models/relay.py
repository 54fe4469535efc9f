"""
Validated relay URL model.

Parses and normalizes WebSocket URLs with RFC 3986 validation. Unlike a
crawler, a publisher talks to relays the user chose, so local and private
hosts (``ws://localhost:4869``) are accepted; only the structure is checked.

See Also:
    [RelaysConfig][notecast.services.config.RelaysConfig]: Validates configured
        relay lists through this model.
    [RelayList][notecast.models.metadata.RelayList]: NIP-65 entries that
        are parsed with this model.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import ClassVar

from rfc3986 import uri_reference
from rfc3986.exceptions import UnpermittedComponentError, ValidationError
from rfc3986.validators import Validator


@dataclass(frozen=True, slots=True)
class Relay:
    """Immutable, normalized relay WebSocket URL.

    The scheme and host are lowercased, default ports are dropped, duplicate
    slashes in the path are collapsed, and a trailing slash is removed.

    Attributes:
        raw_url: The URL exactly as provided.
        url: Normalized URL (computed).
        scheme: ``ws`` or ``wss`` (computed).
        host: Hostname or IP address without brackets (computed).
        port: Explicit non-default port, or ``None`` (computed).
        path: Normalized path, or ``None`` (computed).

    Raises:
        ValueError: If the URL is not a valid ``ws``/``wss`` URL, or carries
            a query string or fragment.

    Examples:
        ```python
        Relay("WSS://Relay.Damus.io/").url      # 'wss://relay.damus.io'
        Relay("ws://localhost:4869").port       # 4869
        Relay("https://example.com")            # ValueError
        ```
    """

    _PORT_WS: ClassVar[int] = 80
    _PORT_WSS: ClassVar[int] = 443

    raw_url: str
    url: str = field(init=False)
    scheme: str = field(init=False)
    host: str = field(init=False)
    port: int | None = field(init=False)
    path: str | None = field(init=False)

    def __post_init__(self) -> None:
        if not isinstance(self.raw_url, str):
            raise TypeError(f"raw_url must be a str, got {type(self.raw_url).__name__}")
        if "\x00" in self.raw_url:
            raise ValueError("Relay URL contains null bytes")

        uri = uri_reference(self.raw_url.strip()).normalize()
        validator = (
            Validator()
            .require_presence_of("scheme", "host")
            .allow_schemes("ws", "wss")
            .check_validity_of("scheme", "host", "port", "path")
        )
        try:
            validator.validate(uri)
        except UnpermittedComponentError:
            raise ValueError(f"Invalid scheme: must be ws or wss ({self.raw_url})") from None
        except ValidationError as e:
            raise ValueError(f"Invalid URL: {e}") from None

        if uri.query:
            raise ValueError(f"Relay URL must not contain a query string: ?{uri.query}")
        if uri.fragment:
            raise ValueError(f"Relay URL must not contain a fragment: #{uri.fragment}")

        scheme = uri.scheme
        host = uri.host.strip("[]")
        port = int(uri.port) if uri.port else None
        default_port = self._PORT_WSS if scheme == "wss" else self._PORT_WS
        if port == default_port:
            port = None

        path = uri.path or ""
        while "//" in path:
            path = path.replace("//", "/")
        normalized_path = path.rstrip("/") or None

        formatted_host = f"[{host}]" if ":" in host else host
        authority = f"{formatted_host}:{port}" if port else formatted_host

        object.__setattr__(self, "url", f"{scheme}://{authority}{normalized_path or ''}")
        object.__setattr__(self, "scheme", scheme)
        object.__setattr__(self, "host", host)
        object.__setattr__(self, "port", port)
        object.__setattr__(self, "path", normalized_path)

    @property
    def is_secure(self) -> bool:
        """Whether the relay uses TLS (``wss``)."""
        return self.scheme == "wss"

    def __str__(self) -> str:
        return self.url


def normalize_relay_urls(urls: list[str]) -> list[str]:
    """Normalize a list of relay URLs, dropping duplicates but keeping order.

    Raises:
        ValueError: If any URL is invalid.
    """
    seen: set[str] = set()
    normalized: list[str] = []
    for raw in urls:
        url = Relay(raw).url
        if url not in seen:
            seen.add(url)
            normalized.append(url)
    return normalized
