"""Pure frozen dataclasses for notecast.

The models layer sits at the bottom of the dependency graph and performs
no I/O. Everything else in the package builds on these value types.

Attributes:
    Record: Signed Nostr event, immutable once signed.
    RecordTemplate: Unsigned record content handed to the signer.
    RecordFilter: NIP-01 subscription filter (kinds, authors, limit).
    Relay: Validated and normalized relay WebSocket URL.
    EndpointOutcome: Result of one relay publish attempt.
    BroadcastReport: Ordered per-relay outcomes of one broadcast.
    Found: Fetch query resolved with a match.
    NotFound: Fetch query resolved without a match.
    UploadResult: Result of one blob upload.
    BatchUploadResult: Ordered upload results plus the success mapping.
    ProfileMetadata: Parsed kind 0 profile fields.
    RelayList: Parsed kind 10002 relay list.
    Note: Markdown note to publish.
    Resource: Binary attachment of a note.
"""

from .constants import (
    ConnectionState,
    EventKind,
    PublishMode,
    RelaySource,
    RewriteStyle,
)
from .metadata import ProfileMetadata, RelayList, RelayListEntry
from .note import Note, Resource
from .outcome import (
    BatchUploadResult,
    BroadcastReport,
    EndpointOutcome,
    FetchResult,
    Found,
    NotFound,
    NotFoundReason,
    UploadResult,
)
from .record import Record, RecordFilter, RecordTemplate
from .relay import Relay, normalize_relay_urls


__all__ = [
    "BatchUploadResult",
    "BroadcastReport",
    "ConnectionState",
    "EndpointOutcome",
    "EventKind",
    "FetchResult",
    "Found",
    "NotFound",
    "NotFoundReason",
    "Note",
    "ProfileMetadata",
    "PublishMode",
    "Record",
    "RecordFilter",
    "RecordTemplate",
    "Relay",
    "RelayList",
    "RelayListEntry",
    "RelaySource",
    "Resource",
    "RewriteStyle",
    "UploadResult",
    "normalize_relay_urls",
]
