"""
Unit tests for services.fetch module.

Tests:
- FetchAggregator construction (soft/hard validation)
- NoReachableEndpointsError for empty and fully unreachable relay sets
- First match wins; later matches are ignored
- Parser rejections count as non-matches
- Soft deadline: NotFound never earlier than the soft timeout
- Hard deadline: bounds the connect phase and overrides long soft timeouts
- fetch_many: several named queries over one connection set
"""

from __future__ import annotations

import asyncio
import json

import pytest

from notecast.core.exceptions import NoReachableEndpointsError
from notecast.models import (
    EventKind,
    Found,
    NotFound,
    NotFoundReason,
    ProfileMetadata,
    Record,
    RecordFilter,
)
from notecast.services.fetch import FetchAggregator, FetchQuery
from tests.conftest import FAKE_PUBKEY, make_fake_record
from tests.unit.services.conftest import FakeNetwork, FakeRelay


URL_A = "wss://a.example"
URL_B = "wss://b.example"

PROFILE_FILTER = RecordFilter(kinds=(EventKind.SET_METADATA,), authors=(FAKE_PUBKEY,), limit=1)


def _profile(name: str, record_id: str = "1" * 64) -> Record:
    return make_fake_record(id=record_id, kind=0, content=json.dumps({"name": name}))


def _aggregator(network: FakeNetwork, **kwargs: float) -> FetchAggregator:
    kwargs.setdefault("soft_timeout", 0.2)
    kwargs.setdefault("hard_timeout", 1.0)
    return FetchAggregator(connection_factory=network, **kwargs)


# ============================================================================
# Construction
# ============================================================================


class TestInit:
    """FetchAggregator argument validation."""

    def test_soft_above_hard_rejected(self) -> None:
        with pytest.raises(ValueError, match="soft_timeout"):
            FetchAggregator(soft_timeout=5.0, hard_timeout=1.0)

    def test_soft_equal_hard_allowed(self) -> None:
        FetchAggregator(soft_timeout=2.0, hard_timeout=2.0)


# ============================================================================
# Reachability
# ============================================================================


class TestReachability:
    """Total unreachability is the only raised failure."""

    async def test_empty_url_list(self, network: FakeNetwork) -> None:
        """Zero relays raise NoReachableEndpointsError."""
        with pytest.raises(NoReachableEndpointsError, match="0 attempted"):
            await _aggregator(network).fetch_first([], PROFILE_FILTER)

    async def test_all_unreachable(self) -> None:
        """Every relay failing to connect raises with the attempted URLs."""
        network = FakeNetwork(
            {URL_A: FakeRelay(connect_error="refused"), URL_B: FakeRelay(connect_error="refused")}
        )

        with pytest.raises(NoReachableEndpointsError) as exc_info:
            await _aggregator(network).fetch_first([URL_A, URL_B], PROFILE_FILTER)

        assert exc_info.value.urls == [URL_A, URL_B]
        assert all(c.closed for c in network.connections)

    async def test_one_reachable_is_enough(self) -> None:
        """A single reachable relay lets the fetch run."""
        network = FakeNetwork(
            {URL_A: FakeRelay(connect_error="refused"), URL_B: FakeRelay(records=[_profile("bob")])}
        )

        result = await _aggregator(network).fetch_first([URL_A, URL_B], PROFILE_FILTER)

        assert isinstance(result, Found)
        assert result.relay_url == URL_B

    async def test_no_queries_returns_empty(self, network: FakeNetwork) -> None:
        """fetch_many with no queries does not even connect."""
        assert await _aggregator(network).fetch_many([URL_A], {}) == {}
        assert network.connections == []


# ============================================================================
# Matching
# ============================================================================


class TestMatching:
    """First accepted record wins."""

    async def test_first_match_wins(self) -> None:
        """The earliest delivered record resolves the query."""
        network = FakeNetwork(
            {
                URL_A: FakeRelay(records=[_profile("slow", "2" * 64)], deliver_delay=0.1),
                URL_B: FakeRelay(records=[_profile("fast", "3" * 64)], deliver_delay=0.01),
            }
        )

        result = await _aggregator(network, soft_timeout=0.5).fetch_first(
            [URL_A, URL_B], PROFILE_FILTER
        )

        assert result.found
        assert result.value.id == "3" * 64  # type: ignore[union-attr]
        assert result.relay_url == URL_B  # type: ignore[union-attr]

    async def test_resolves_before_soft_deadline(self) -> None:
        """A match returns as soon as it arrives."""
        network = FakeNetwork({URL_A: FakeRelay(records=[_profile("alice")])})
        loop = asyncio.get_running_loop()
        start = loop.time()

        result = await _aggregator(network, soft_timeout=0.8, hard_timeout=1.0).fetch_first(
            [URL_A], PROFILE_FILTER
        )

        assert result.found
        assert loop.time() - start < 0.5

    async def test_filter_applied_locally(self) -> None:
        """Records of another kind never match."""
        network = FakeNetwork({URL_A: FakeRelay(records=[make_fake_record(kind=1)])})

        result = await _aggregator(network, soft_timeout=0.05).fetch_first(
            [URL_A], PROFILE_FILTER
        )

        assert isinstance(result, NotFound)

    async def test_malformed_content_is_non_match(self) -> None:
        """A parser error skips the record and a later valid one still wins."""
        broken = make_fake_record(id="4" * 64, kind=0, content="{not json")
        network = FakeNetwork(
            {
                URL_A: FakeRelay(records=[broken]),
                URL_B: FakeRelay(records=[_profile("carol", "5" * 64)], deliver_delay=0.03),
            }
        )
        query = FetchQuery(PROFILE_FILTER, ProfileMetadata.from_record)

        results = await _aggregator(network, soft_timeout=0.5).fetch_many(
            [URL_A, URL_B], {"profile": query}
        )

        assert results["profile"].found
        assert results["profile"].value == ProfileMetadata(name="carol")  # type: ignore[union-attr]

    async def test_only_malformed_resolves_not_found(self) -> None:
        """Malformed metadata never surfaces as an error."""
        broken = make_fake_record(kind=0, content="[1, 2]")
        network = FakeNetwork({URL_A: FakeRelay(records=[broken])})
        query = FetchQuery(PROFILE_FILTER, ProfileMetadata.from_record)

        results = await _aggregator(network, soft_timeout=0.05).fetch_many(
            [URL_A], {"profile": query}
        )

        assert results["profile"] == NotFound(NotFoundReason.SOFT_DEADLINE)


# ============================================================================
# Deadlines
# ============================================================================


class TestDeadlines:
    """Soft and hard deadline behavior."""

    async def test_not_found_no_earlier_than_soft(self) -> None:
        """An empty relay resolves NotFound only once the soft deadline passed."""
        network = FakeNetwork({URL_A: FakeRelay()})
        loop = asyncio.get_running_loop()
        start = loop.time()

        result = await _aggregator(network, soft_timeout=0.1, hard_timeout=1.0).fetch_first(
            [URL_A], PROFILE_FILTER
        )

        assert result == NotFound(NotFoundReason.SOFT_DEADLINE)
        assert loop.time() - start >= 0.1 - 0.005

    async def test_per_query_soft_timeout(self) -> None:
        """fetch_first can override the aggregator soft timeout."""
        network = FakeNetwork({URL_A: FakeRelay()})
        loop = asyncio.get_running_loop()
        start = loop.time()

        result = await _aggregator(network, soft_timeout=0.8, hard_timeout=1.0).fetch_first(
            [URL_A], PROFILE_FILTER, soft_timeout=0.05
        )

        assert not result.found
        assert loop.time() - start < 0.5

    async def test_hard_deadline_caps_long_soft(self) -> None:
        """A query soft timeout longer than the hard deadline is cut short."""
        network = FakeNetwork({URL_A: FakeRelay()})
        query = FetchQuery(PROFILE_FILTER, soft_timeout=5.0)

        results = await _aggregator(network, soft_timeout=0.1, hard_timeout=0.15).fetch_many(
            [URL_A], {"q": query}
        )

        assert results["q"] == NotFound(NotFoundReason.HARD_DEADLINE)

    async def test_hard_deadline_covers_connect(self) -> None:
        """Slow handshakes count against the hard deadline."""
        network = FakeNetwork({URL_A: FakeRelay(connect_delay=1.0)})

        with pytest.raises(NoReachableEndpointsError):
            await _aggregator(network, soft_timeout=0.05, hard_timeout=0.1).fetch_first(
                [URL_A], PROFILE_FILTER
            )

    async def test_late_record_ignored(self) -> None:
        """A record delivered after the deadline does not change the result."""
        network = FakeNetwork({URL_A: FakeRelay(records=[_profile("late")], deliver_delay=0.3)})

        result = await _aggregator(network, soft_timeout=0.05).fetch_first(
            [URL_A], PROFILE_FILTER
        )

        assert not result.found
        assert all(c.closed for c in network.connections)


# ============================================================================
# Multiple queries
# ============================================================================


class TestFetchMany:
    """Named queries share connections and resolve independently."""

    async def test_queries_resolve_independently(self) -> None:
        """One query found, the other NotFound."""
        network = FakeNetwork({URL_A: FakeRelay(records=[_profile("dave")])})
        queries = {
            "profile": FetchQuery(PROFILE_FILTER, ProfileMetadata.from_record),
            "relays": FetchQuery(
                RecordFilter(kinds=(EventKind.RELAY_LIST,), authors=(FAKE_PUBKEY,)),
                soft_timeout=0.05,
            ),
        }

        results = await _aggregator(network).fetch_many([URL_A], queries)

        assert results["profile"].found
        assert not results["relays"].found
        assert len(network.connections) == 1
        assert len(network.connections[0].subscribed) == 2

    async def test_connections_closed_after_success(self) -> None:
        network = FakeNetwork(
            {URL_A: FakeRelay(records=[_profile("erin")]), URL_B: FakeRelay()}
        )

        await _aggregator(network).fetch_first([URL_A, URL_B], PROFILE_FILTER)

        assert all(c.closed for c in network.connections)

    async def test_subscriptions_bounded_by_hard_deadline(self) -> None:
        """Each relay stream is opened with at most the remaining hard budget."""
        network = FakeNetwork({URL_A: FakeRelay(records=[_profile("fay")])})

        await _aggregator(network, hard_timeout=0.5).fetch_first([URL_A], PROFILE_FILTER)

        (timeout,) = network.connections[0].subscribe_timeouts
        assert 0.0 < timeout <= 0.5
