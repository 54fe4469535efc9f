"""
Immutable Nostr records, unsigned templates, and subscription filters.

[Record][notecast.models.record.Record] is the signed, content-addressed
message that is broadcast to relays and received from subscriptions. Its
``signature`` is only valid over the exact serialization of the other fields
at signing time, so the model is frozen and its tags are stored as nested
tuples.

[RecordTemplate][notecast.models.record.RecordTemplate] is the unsigned input
of the identity layer, and [RecordFilter][notecast.models.record.RecordFilter]
is the NIP-01 filter sent with ``REQ`` messages.

See Also:
    [sign_record()][notecast.utils.keys.sign_record]: Turns a template into
        a signed record.
    [RelayConnection][notecast.utils.transport.RelayConnection]: Sends and
        receives records on the wire.
"""

from __future__ import annotations

import json
import time
from dataclasses import dataclass, field
from typing import Any

from ._validation import (
    freeze_tags,
    validate_hex,
    validate_instance,
    validate_kind,
    validate_timestamp,
)
from .constants import EVENT_KIND_MAX


Tags = tuple[tuple[str, ...], ...]


def _tag_values(tags: Tags, name: str) -> list[str]:
    return [tag[1] for tag in tags if tag[0] == name and len(tag) > 1]


@dataclass(frozen=True, slots=True)
class RecordTemplate:
    """Unsigned record content, ready to be signed by the identity layer.

    Attributes:
        kind: Event kind.
        content: Event content string.
        tags: Ordered tags; each tag is a non-empty sequence of strings whose
            first element is the discriminator (``"d"``, ``"x"``, ...).
        created_at: Unix timestamp in seconds. Defaults to now.
    """

    kind: int
    content: str = ""
    tags: Tags = ()
    created_at: int = field(default_factory=lambda: int(time.time()))

    def __post_init__(self) -> None:
        validate_kind(self.kind, "kind", EVENT_KIND_MAX)
        validate_instance(self.content, str, "content")
        validate_timestamp(self.created_at, "created_at")
        object.__setattr__(self, "tags", freeze_tags(self.tags))

    def tag_values(self, name: str) -> list[str]:
        """Return the second element of every tag named *name*, in order."""
        return _tag_values(self.tags, name)


@dataclass(frozen=True, slots=True)
class Record:
    """Signed Nostr event.

    Instances are produced by [sign_record()][notecast.utils.keys.sign_record]
    or parsed from relay messages via
    [from_dict()][notecast.models.record.Record.from_dict]. Construction only
    checks shape (hex lengths, tag structure); cryptographic verification is
    done by [verify_record()][notecast.utils.keys.verify_record].

    Examples:
        ```python
        record = Record.from_json(raw)
        record.first_tag("d")        # 'my-article-1700000000'
        record.tag_values("r")       # ['wss://relay.damus.io', ...]
        ```
    """

    id: str
    pubkey: str
    created_at: int
    kind: int
    tags: Tags
    content: str
    signature: str

    def __post_init__(self) -> None:
        validate_hex(self.id, "id", 64)
        validate_hex(self.pubkey, "pubkey", 64)
        validate_hex(self.signature, "signature", 128)
        validate_timestamp(self.created_at, "created_at")
        validate_kind(self.kind, "kind", EVENT_KIND_MAX)
        validate_instance(self.content, str, "content")
        object.__setattr__(self, "tags", freeze_tags(self.tags))

    def tag_values(self, name: str) -> list[str]:
        """Return the second element of every tag named *name*, in order."""
        return _tag_values(self.tags, name)

    def first_tag(self, name: str) -> str | None:
        """Return the value of the first tag named *name*, or ``None``."""
        values = self.tag_values(name)
        return values[0] if values else None

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the NIP-01 wire object (``sig`` key for the signature)."""
        return {
            "id": self.id,
            "pubkey": self.pubkey,
            "created_at": self.created_at,
            "kind": self.kind,
            "tags": [list(tag) for tag in self.tags],
            "content": self.content,
            "sig": self.signature,
        }

    def to_json(self) -> str:
        """Serialize to compact NIP-01 JSON."""
        return json.dumps(self.to_dict(), separators=(",", ":"), ensure_ascii=False)

    @classmethod
    def from_dict(cls, data: Any) -> Record:
        """Build a record from a NIP-01 wire object.

        Raises:
            TypeError: If *data* is not a mapping or a field has the wrong type.
            ValueError: If a required field is missing or malformed.
        """
        if not isinstance(data, dict):
            raise TypeError(f"record must be an object, got {type(data).__name__}")
        try:
            return cls(
                id=data["id"],
                pubkey=data["pubkey"],
                created_at=data["created_at"],
                kind=data["kind"],
                tags=data.get("tags", []),
                content=data.get("content", ""),
                signature=data["sig"],
            )
        except KeyError as e:
            raise ValueError(f"record is missing field {e.args[0]!r}") from None

    @classmethod
    def from_json(cls, raw: str) -> Record:
        """Parse a record from NIP-01 JSON.

        Raises:
            ValueError: If *raw* is not valid JSON or not a valid record.
        """
        return cls.from_dict(json.loads(raw))


@dataclass(frozen=True, slots=True)
class RecordFilter:
    """NIP-01 subscription filter restricted to kinds, authors, and limit.

    Examples:
        ```python
        f = RecordFilter(kinds=(0,), authors=(pubkey,), limit=1)
        f.to_dict()  # {'kinds': [0], 'authors': ['ab...'], 'limit': 1}
        ```
    """

    kinds: tuple[int, ...] = ()
    authors: tuple[str, ...] = ()
    limit: int | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "kinds", tuple(self.kinds))
        object.__setattr__(self, "authors", tuple(self.authors))
        for kind in self.kinds:
            validate_kind(kind, "kinds[]", EVENT_KIND_MAX)
        for author in self.authors:
            validate_hex(author, "authors[]", 64)
        if self.limit is not None:
            validate_timestamp(self.limit, "limit")

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the filter object sent in a ``REQ`` message."""
        data: dict[str, Any] = {}
        if self.kinds:
            data["kinds"] = list(self.kinds)
        if self.authors:
            data["authors"] = list(self.authors)
        if self.limit is not None:
            data["limit"] = self.limit
        return data

    def matches(self, record: Record) -> bool:
        """Check a record against the kind and author constraints locally."""
        if self.kinds and record.kind not in self.kinds:
            return False
        return not (self.authors and record.pubkey not in self.authors)
