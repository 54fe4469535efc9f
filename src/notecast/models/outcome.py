"""
Structured results of broadcast, fetch, and upload operations.

Every operation that touches several endpoints or items returns one of
these frozen value types instead of raising, so callers can render partial
success. Only local validation failures and total unreachability surface as
exceptions (see [notecast.core.exceptions][notecast.core.exceptions]).

See Also:
    [broadcast()][notecast.services.broadcast.broadcast]: Produces
        [BroadcastReport][notecast.models.outcome.BroadcastReport].
    [FetchAggregator][notecast.services.fetch.FetchAggregator]: Produces
        [FetchResult][notecast.models.outcome.FetchResult] values.
    [BlossomClient.upload_batch()][notecast.nips.blossom.BlossomClient.upload_batch]: Produces
        [BatchUploadResult][notecast.models.outcome.BatchUploadResult].
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from types import MappingProxyType
from typing import Generic, TypeVar


T = TypeVar("T")


# ---------------------------------------------------------------------------
# Broadcast
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class EndpointOutcome:
    """Result of one publish attempt against one relay.

    Attributes:
        url: Relay URL exactly as configured.
        success: ``True`` if the relay acknowledged the record.
        error_message: Cause of the failure, ``None`` on success.
    """

    url: str
    success: bool
    error_message: str | None = None

    @classmethod
    def ok(cls, url: str) -> EndpointOutcome:
        return cls(url=url, success=True)

    @classmethod
    def failed(cls, url: str, error_message: str) -> EndpointOutcome:
        return cls(url=url, success=False, error_message=error_message)


@dataclass(frozen=True, slots=True)
class BroadcastReport:
    """Per-relay outcomes of one broadcast, in configured relay order.

    Attributes:
        record_id: ID of the broadcast record.
        outcomes: One outcome per configured relay URL.
    """

    record_id: str
    outcomes: tuple[EndpointOutcome, ...]

    @property
    def succeeded(self) -> tuple[EndpointOutcome, ...]:
        return tuple(o for o in self.outcomes if o.success)

    @property
    def failed(self) -> tuple[EndpointOutcome, ...]:
        return tuple(o for o in self.outcomes if not o.success)

    @property
    def success_count(self) -> int:
        return len(self.succeeded)

    @property
    def any_success(self) -> bool:
        return any(o.success for o in self.outcomes)


# ---------------------------------------------------------------------------
# Fetch
# ---------------------------------------------------------------------------


class NotFoundReason(StrEnum):
    """Why a fetch query resolved without a match."""

    SOFT_DEADLINE = "soft_deadline"
    HARD_DEADLINE = "hard_deadline"


@dataclass(frozen=True, slots=True)
class Found(Generic[T]):
    """A fetch query resolved with the first accepted match."""

    value: T
    relay_url: str | None = None

    @property
    def found(self) -> bool:
        return True


@dataclass(frozen=True, slots=True)
class NotFound:
    """A fetch query resolved without a match before its deadline."""

    reason: NotFoundReason = NotFoundReason.SOFT_DEADLINE

    @property
    def found(self) -> bool:
        return False


FetchResult = Found[T] | NotFound


# ---------------------------------------------------------------------------
# Upload
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class UploadResult:
    """Result of uploading one payload to a blob server.

    Attributes:
        source_id: Identifier of the uploaded source (resource ID or path).
        url: URL returned by the server, empty on failure.
        success: Whether the upload succeeded.
        error_message: Cause of the failure, ``None`` on success.
    """

    source_id: str
    url: str = ""
    success: bool = False
    error_message: str | None = None

    @classmethod
    def ok(cls, source_id: str, url: str) -> UploadResult:
        return cls(source_id=source_id, url=url, success=True)

    @classmethod
    def failed(cls, source_id: str, error_message: str) -> UploadResult:
        return cls(source_id=source_id, success=False, error_message=error_message)


@dataclass(frozen=True, slots=True)
class BatchUploadResult:
    """Outcome of a sequential batch upload.

    ``results`` keeps every per-item result in input order; ``mapping`` holds
    only the successful ``source_id -> url`` pairs and is read-only.
    """

    results: tuple[UploadResult, ...] = ()
    mapping: MappingProxyType[str, str] = field(
        default_factory=lambda: MappingProxyType({})
    )

    @classmethod
    def from_results(cls, results: list[UploadResult]) -> BatchUploadResult:
        mapping = {r.source_id: r.url for r in results if r.success and r.url}
        return cls(results=tuple(results), mapping=MappingProxyType(mapping))

    @property
    def failed(self) -> tuple[UploadResult, ...]:
        return tuple(r for r in self.results if not r.success)
