"""Shared fixtures for services tests.

Provides an in-memory relay network: ``FakeNetwork`` is passed as the
``connection_factory`` of the engines and hands out ``FakeConnection``
objects whose behavior is scripted per URL.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import pytest

from notecast.core.exceptions import (
    EndpointOperationError,
    EndpointTimeoutError,
    PublishRejectedError,
)


if TYPE_CHECKING:
    from collections.abc import Callable

    from notecast.models.record import Record, RecordFilter


# ============================================================================
# Fake Relays
# ============================================================================


@dataclass
class FakeRelay:
    """Scripted behavior of one relay URL.

    Attributes:
        connect_error: Message of the ``EndpointOperationError`` raised on
            connect, or an exception instance to raise as is.
        connect_delay: Seconds before the handshake completes.
        reject: ``OK false`` message returned on publish.
        publish_delay: Seconds before ``OK`` arrives.
        records: Stored records delivered to matching subscriptions.
        deliver_delay: Seconds between subscribe and delivery.
    """

    connect_error: str | BaseException | None = None
    connect_delay: float = 0.0
    reject: str | None = None
    publish_delay: float = 0.0
    records: list[Record] = field(default_factory=list)
    deliver_delay: float = 0.0


class FakeConnection:
    """Stand-in for ``RelayConnection`` with the same async surface."""

    def __init__(self, url: str, relay: FakeRelay) -> None:
        self.url = url
        self._relay = relay
        self.connected = False
        self.closed = False
        self.published: list[Record] = []
        self.subscribed: list[RecordFilter] = []
        self.subscribe_timeouts: list[float] = []
        self._handles: list[asyncio.TimerHandle] = []

    async def connect(self, timeout: float = 10.0, *, allow_insecure: bool = False) -> None:
        relay = self._relay
        try:
            await asyncio.wait_for(asyncio.sleep(relay.connect_delay), timeout)
        except TimeoutError:
            raise EndpointTimeoutError(self.url, f"Connection timeout after {timeout}s") from None
        if isinstance(relay.connect_error, BaseException):
            raise relay.connect_error
        if relay.connect_error is not None:
            raise EndpointOperationError(self.url, relay.connect_error)
        self.connected = True

    async def publish(self, record: Record, timeout: float = 10.0) -> None:
        if not self.connected:
            raise EndpointOperationError(self.url, "Not connected")
        try:
            await asyncio.wait_for(asyncio.sleep(self._relay.publish_delay), timeout)
        except TimeoutError:
            raise EndpointTimeoutError(self.url, f"No acknowledgment within {timeout}s") from None
        if self._relay.reject is not None:
            raise PublishRejectedError(self.url, self._relay.reject)
        self.published.append(record)

    async def subscribe(
        self,
        record_filter: RecordFilter,
        on_record: Callable[[Record], None],
        on_eose: Callable[[], None] | None = None,
        *,
        timeout: float = 10.0,
    ) -> None:
        if not self.connected:
            raise EndpointOperationError(self.url, "Not connected")
        self.subscribed.append(record_filter)
        self.subscribe_timeouts.append(timeout)

        def _deliver() -> None:
            for record in self._relay.records:
                if record_filter.matches(record):
                    on_record(record)
            if on_eose is not None:
                on_eose()

        loop = asyncio.get_running_loop()
        self._handles.append(loop.call_later(self._relay.deliver_delay, _deliver))

    async def close(self) -> None:
        for handle in self._handles:
            handle.cancel()
        self._handles.clear()
        self.connected = False
        self.closed = True


class FakeNetwork:
    """Connection factory over a table of scripted relays.

    URLs missing from the table behave like healthy, empty relays.
    """

    def __init__(self, relays: dict[str, FakeRelay] | None = None) -> None:
        self.relays = dict(relays or {})
        self.connections: list[FakeConnection] = []

    def __call__(self, url: str) -> FakeConnection:
        connection = FakeConnection(url, self.relays.setdefault(url, FakeRelay()))
        self.connections.append(connection)
        return connection

    def opened(self, url: str) -> list[FakeConnection]:
        return [c for c in self.connections if c.url == url]


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def network() -> FakeNetwork:
    return FakeNetwork()
