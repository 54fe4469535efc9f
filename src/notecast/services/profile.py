"""Profile snapshot: kind 0 metadata and the kind 10002 relay list, fetched together.

Both queries share one [FetchAggregator][notecast.services.fetch.FetchAggregator]
call, so one hard deadline bounds the whole lookup. Malformed profile JSON is
skipped like any other non-matching record.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from notecast.models.constants import EventKind
from notecast.models.metadata import ProfileMetadata, RelayList
from notecast.models.record import RecordFilter
from notecast.services.fetch import FetchAggregator, FetchQuery


if TYPE_CHECKING:
    from notecast.models.outcome import FetchResult


PROFILE_QUERY = "profile"
RELAY_LIST_QUERY = "relay_list"


@dataclass(frozen=True, slots=True)
class ProfileSnapshot:
    """What the relays know about one public key.

    Attributes:
        pubkey: Hex public key.
        npub: Bech32 public key.
        profile: Kind 0 lookup result.
        relay_list: Kind 10002 lookup result.
    """

    pubkey: str
    npub: str
    profile: FetchResult[ProfileMetadata]
    relay_list: FetchResult[RelayList]


def profile_queries(pubkey: str) -> dict[str, FetchQuery[object]]:
    """Build the two named queries for *pubkey*."""
    return {
        PROFILE_QUERY: FetchQuery(
            RecordFilter(kinds=(EventKind.SET_METADATA,), authors=(pubkey,), limit=1),
            ProfileMetadata.from_record,
        ),
        RELAY_LIST_QUERY: FetchQuery(
            RecordFilter(kinds=(EventKind.RELAY_LIST,), authors=(pubkey,), limit=1),
            RelayList.from_record,
        ),
    }


async def fetch_profile(
    pubkey: str,
    npub: str,
    urls: list[str],
    aggregator: FetchAggregator,
) -> ProfileSnapshot:
    """Fetch the profile and relay list of *pubkey* concurrently.

    Raises:
        NoReachableEndpointsError: If none of *urls* could be connected.
    """
    results = await aggregator.fetch_many(urls, profile_queries(pubkey))
    return ProfileSnapshot(
        pubkey=pubkey,
        npub=npub,
        profile=results[PROFILE_QUERY],
        relay_list=results[RELAY_LIST_QUERY],
    )


async def fetch_relay_list(
    pubkey: str,
    urls: list[str],
    aggregator: FetchAggregator,
) -> FetchResult[RelayList]:
    """Fetch only the NIP-65 relay list of *pubkey*."""
    query = profile_queries(pubkey)[RELAY_LIST_QUERY]
    results = await aggregator.fetch_many(urls, {RELAY_LIST_QUERY: query})
    return results[RELAY_LIST_QUERY]
