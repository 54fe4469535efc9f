"""
Profile (kind 0) and relay list (kind 10002) metadata parsed from records.

Both parsers raise ``ValueError`` for records that cannot be interpreted.
The fetch layer treats that as "this record does not match" and keeps
waiting for a later candidate, so malformed metadata never surfaces as an
error to the caller.

See Also:
    [fetch_profile()][notecast.services.profile.fetch_profile]: Uses both
        parsers as fetch query matchers.
"""

from __future__ import annotations

import json
from dataclasses import dataclass

from .constants import EventKind
from .record import Record
from .relay import Relay


@dataclass(frozen=True, slots=True)
class ProfileMetadata:
    """Display fields extracted from a kind 0 record.

    Attributes:
        name: ``name`` or, when empty, ``display_name``.
        picture: Profile picture URL, empty if absent.
        about: Free-text bio, empty if absent.
    """

    name: str = ""
    picture: str = ""
    about: str = ""

    @classmethod
    def from_record(cls, record: Record) -> ProfileMetadata:
        """Parse the JSON content of a kind 0 record.

        Raises:
            ValueError: If the record is not kind 0 or its content is not a
                JSON object.
        """
        if record.kind != EventKind.SET_METADATA:
            raise ValueError(f"expected kind 0, got {record.kind}")
        data = json.loads(record.content)
        if not isinstance(data, dict):
            raise ValueError("profile content must be a JSON object")

        def _str(key: str) -> str:
            value = data.get(key)
            return value if isinstance(value, str) else ""

        return cls(
            name=_str("name") or _str("display_name"),
            picture=_str("picture"),
            about=_str("about"),
        )


@dataclass(frozen=True, slots=True)
class RelayListEntry:
    """One ``r`` tag of a NIP-65 relay list.

    Attributes:
        url: Normalized relay URL.
        read: Whether the user reads from this relay.
        write: Whether the user writes to this relay.
    """

    url: str
    read: bool = True
    write: bool = True


@dataclass(frozen=True, slots=True)
class RelayList:
    """NIP-65 relay list of a user.

    Only ``wss://`` entries are kept; entries that fail URL validation are
    skipped silently. A marker of ``read`` or ``write`` restricts the entry
    to that direction; no marker means both.
    """

    entries: tuple[RelayListEntry, ...] = ()

    @classmethod
    def from_record(cls, record: Record) -> RelayList:
        """Parse the ``r`` tags of a kind 10002 record.

        Raises:
            ValueError: If the record is not kind 10002.
        """
        if record.kind != EventKind.RELAY_LIST:
            raise ValueError(f"expected kind 10002, got {record.kind}")

        entries: list[RelayListEntry] = []
        seen: set[str] = set()
        for tag in record.tags:
            if tag[0] != "r" or len(tag) < 2 or not tag[1].startswith("wss://"):  # noqa: PLR2004
                continue
            try:
                url = Relay(tag[1]).url
            except ValueError:
                continue
            if url in seen:
                continue
            seen.add(url)
            marker = tag[2] if len(tag) > 2 else None  # noqa: PLR2004
            entries.append(
                RelayListEntry(url=url, read=marker != "write", write=marker != "read")
            )
        return cls(entries=tuple(entries))

    @property
    def urls(self) -> list[str]:
        return [e.url for e in self.entries]

    @property
    def write_urls(self) -> list[str]:
        """Relays the user publishes to (``write`` marker or no marker)."""
        return [e.url for e in self.entries if e.write]

    @property
    def read_urls(self) -> list[str]:
        return [e.url for e in self.entries if e.read]
