"""notecast exception hierarchy.

Typed exceptions for every failure category. Only local validation failures
and total relay unreachability propagate to the caller of an operation;
per-relay and per-upload failures are raised inside the engines and folded
into [EndpointOutcome][notecast.models.outcome.EndpointOutcome] and
[UploadResult][notecast.models.outcome.UploadResult] values.

Exception hierarchy:

```text
NotecastError (base -- never raised directly)
├── ConfigurationError             -- bad YAML, missing settings
│   └── NoRelaysConfiguredError    -- empty publish relay list
├── InvalidCredentialFormatError   -- secret key fails the local shape check
├── NoReachableEndpointsError      -- every relay connection attempt failed
├── EndpointOperationError         -- one relay failed (connect/publish/subscribe)
│   ├── EndpointTimeoutError       -- no answer within the timeout
│   └── PublishRejectedError       -- relay answered OK=false
└── UploadError                    -- one blob upload failed
    ├── SourcePayloadMissingError  -- file or resource absent before upload
    ├── UploadTransportError       -- network failure talking to the server
    ├── UploadRejectedError        -- non-2xx HTTP status
    └── UploadResponseError        -- 2xx body without a usable URL
```

Note:
    This module imports nothing from the package, so the ``utils`` and
    ``nips`` layers may raise these exceptions without breaking layering.
"""

from __future__ import annotations


class NotecastError(Exception):
    """Base exception for all notecast errors. Never raised directly."""


# ---------------------------------------------------------------------------
# Local validation
# ---------------------------------------------------------------------------


class ConfigurationError(NotecastError):
    """Invalid or missing configuration (YAML, env vars, CLI flags)."""


class NoRelaysConfiguredError(ConfigurationError):
    """No relay to publish to after resolving the configured relay source."""


class InvalidCredentialFormatError(NotecastError):
    """The secret key does not look like an ``nsec1`` bech32 or hex key.

    Raised before any network activity. The message is safe to show to the
    user and never contains the key itself.
    """


# ---------------------------------------------------------------------------
# Relays
# ---------------------------------------------------------------------------


class NoReachableEndpointsError(NotecastError):
    """Every relay connection attempt of a fetch operation failed.

    Attributes:
        urls: The relay URLs that were attempted, in configured order.
    """

    def __init__(self, urls: list[str]) -> None:
        self.urls = list(urls)
        super().__init__(f"Could not connect to any relays ({len(self.urls)} attempted)")


class EndpointOperationError(NotecastError):
    """A single relay failed to connect, publish, or subscribe.

    Never aborts sibling relays: the engines catch it per relay.

    Attributes:
        url: The relay URL the failure belongs to.
    """

    def __init__(self, url: str, message: str) -> None:
        self.url = url
        super().__init__(message)


class EndpointTimeoutError(EndpointOperationError):
    """The relay did not connect or acknowledge within the timeout."""


class PublishRejectedError(EndpointOperationError):
    """The relay answered the publish with ``OK false``."""


# ---------------------------------------------------------------------------
# Uploads
# ---------------------------------------------------------------------------


class UploadError(NotecastError):
    """Base for a single failed blob upload.

    Attributes:
        source_id: Identifier of the payload (resource ID or file path).
    """

    def __init__(self, source_id: str, message: str) -> None:
        self.source_id = source_id
        super().__init__(message)


class SourcePayloadMissingError(UploadError):
    """The file or resource to upload does not exist."""


class UploadTransportError(UploadError):
    """Network failure while talking to the blob server."""


class UploadRejectedError(UploadError):
    """The blob server answered with a non-2xx status.

    Attributes:
        status: HTTP status code.
        body: Server error text, possibly truncated.
    """

    def __init__(self, source_id: str, status: int, body: str) -> None:
        self.status = status
        self.body = body
        super().__init__(source_id, f"Server responded with {status}: {body}")


class UploadResponseError(UploadError):
    """The blob server answered 2xx but the body carries no usable URL."""
