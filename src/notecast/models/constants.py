"""Shared constants for the models layer.

Defines enumerations used across model, protocol, and service modules.
Keeping them here avoids circular imports between the layers.

See Also:
    [Record][notecast.models.record.Record]: Carries an
        [EventKind][notecast.models.constants.EventKind] in its ``kind`` field.
    [rewrite()][notecast.utils.markdown.rewrite]: Consumes
        [RewriteStyle][notecast.models.constants.RewriteStyle].
"""

from __future__ import annotations

from enum import IntEnum, StrEnum


class EventKind(IntEnum):
    """Nostr event kinds produced or consumed by notecast.

    Attributes:
        SET_METADATA: Kind 0 -- user profile metadata (NIP-01).
        TEXT_NOTE: Kind 1 -- plain short note (NIP-01).
        RELAY_LIST: Kind 10002 -- relay list metadata (NIP-65).
        BLOSSOM_AUTH: Kind 24242 -- Blossom upload authorization (BUD-01/02).
        LONG_FORM: Kind 30023 -- long-form article (NIP-23).
    """

    SET_METADATA = 0
    TEXT_NOTE = 1
    RELAY_LIST = 10_002
    BLOSSOM_AUTH = 24_242
    LONG_FORM = 30_023


EVENT_KIND_MAX = 65_535


class ConnectionState(StrEnum):
    """Lifecycle state of a single relay connection.

    A connection moves ``disconnected -> connecting -> connected`` on
    success or ``connecting -> failed`` on error, and returns to
    ``disconnected`` once closed.
    """

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    FAILED = "failed"


class RewriteStyle(StrEnum):
    """Output style for replaced image references.

    Attributes:
        PLAIN_URL: The whole ``![alt](ref)`` construct becomes the bare URL.
            Used for kind 1 notes, whose clients render links, not markdown.
        MARKDOWN_IMAGE: The alt text is kept and only the target changes.
            Used for kind 30023 articles.
    """

    PLAIN_URL = "plain_url"
    MARKDOWN_IMAGE = "markdown_image"


class PublishMode(StrEnum):
    """How a note is composed into a record."""

    REGULAR = "regular"
    LONG_FORM = "longform"

    @property
    def kind(self) -> EventKind:
        """Event kind produced for this mode."""
        return EventKind.LONG_FORM if self is PublishMode.LONG_FORM else EventKind.TEXT_NOTE

    @property
    def rewrite_style(self) -> RewriteStyle:
        """Image reference style used for this mode."""
        if self is PublishMode.LONG_FORM:
            return RewriteStyle.MARKDOWN_IMAGE
        return RewriteStyle.PLAIN_URL


class RelaySource(StrEnum):
    """Where the publish relay list comes from."""

    MANUAL = "manual"
    NIP65 = "nip65"
