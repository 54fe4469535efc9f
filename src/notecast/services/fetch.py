"""First-match-wins record fetching across many relays.

[FetchAggregator][notecast.services.fetch.FetchAggregator] runs one or more
named queries against a shared set of relay connections:

1. **Connect** to every URL concurrently. If none connects the operation
   fails with [NoReachableEndpointsError][notecast.core.exceptions.NoReachableEndpointsError].
2. **Subscribe** every query on every connection. The first record that a
   query's parser accepts resolves that query; later matches are ignored.
3. **Wait** for each query until its soft deadline (counted from the moment
   it was subscribed) or the hard deadline of the whole operation, whichever
   comes first. A query that runs out of time resolves to
   [NotFound][notecast.models.outcome.NotFound]; it never raises.

``EOSE`` is informational only. Every connection is closed once all queries
are resolved, whichever path resolved them.

See Also:
    [fetch_profile()][notecast.services.profile.fetch_profile]: Runs the
        profile and relay list queries together.
    [Deadline][notecast.utils.deadline.Deadline]: The single timing
        primitive threaded through the wait.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from notecast.core.exceptions import EndpointOperationError, NoReachableEndpointsError
from notecast.core.logger import Logger
from notecast.models.outcome import FetchResult, Found, NotFound, NotFoundReason
from notecast.models.record import Record, RecordFilter
from notecast.utils.deadline import Deadline
from notecast.utils.transport import DEFAULT_TIMEOUT, RelayConnection


T = TypeVar("T")

ConnectionFactory = Callable[[str], RelayConnection]

DEFAULT_SOFT_TIMEOUT = 5.0
DEFAULT_HARD_TIMEOUT = 10.0

_SINGLE_QUERY = "record"


def _identity(record: Record) -> Any:
    return record


@dataclass(frozen=True, slots=True)
class FetchQuery(Generic[T]):
    """One named search of a fetch operation.

    Attributes:
        filter: Filter sent to every relay.
        parse: Turns a candidate record into the result value. Raising
            ``ValueError``, ``TypeError`` or ``KeyError`` marks the record as
            a non-match and the search goes on.
        soft_timeout: Per-query soft deadline in seconds; ``None`` uses the
            aggregator default.
    """

    filter: RecordFilter
    parse: Callable[[Record], T] = _identity
    soft_timeout: float | None = None


class FetchAggregator:
    """Races subscriptions across relays under nested deadlines.

    Every call opens its own connections and closes them before returning;
    nothing is shared between calls.

    Args:
        connect_timeout: Per-relay handshake timeout.
        soft_timeout: Default per-query soft deadline.
        hard_timeout: Deadline of a whole call, connect phase included.
        allow_insecure: Retry without certificate checks on TLS failures.
        connection_factory: Builds the connection for a URL (test seam).

    Raises:
        ValueError: If ``soft_timeout`` exceeds ``hard_timeout``.
    """

    def __init__(
        self,
        *,
        connect_timeout: float = DEFAULT_TIMEOUT,
        soft_timeout: float = DEFAULT_SOFT_TIMEOUT,
        hard_timeout: float = DEFAULT_HARD_TIMEOUT,
        allow_insecure: bool = False,
        connection_factory: ConnectionFactory = RelayConnection,
    ) -> None:
        if soft_timeout > hard_timeout:
            raise ValueError(
                f"soft_timeout ({soft_timeout}) must not exceed hard_timeout ({hard_timeout})"
            )
        self._connect_timeout = connect_timeout
        self._soft_timeout = soft_timeout
        self._hard_timeout = hard_timeout
        self._allow_insecure = allow_insecure
        self._connection_factory = connection_factory
        self._logger = Logger("fetch")

    async def fetch_first(
        self,
        urls: list[str],
        record_filter: RecordFilter,
        *,
        soft_timeout: float | None = None,
    ) -> FetchResult[Record]:
        """Return the first record matching *record_filter* on any relay.

        Raises:
            NoReachableEndpointsError: If no relay could be connected.
        """
        query: FetchQuery[Record] = FetchQuery(record_filter, soft_timeout=soft_timeout)
        results = await self.fetch_many(urls, {_SINGLE_QUERY: query})
        return results[_SINGLE_QUERY]

    async def fetch_many(
        self,
        urls: list[str],
        queries: Mapping[str, FetchQuery[Any]],
    ) -> dict[str, FetchResult[Any]]:
        """Run several named queries over one set of connections.

        Returns:
            One result per query name.

        Raises:
            NoReachableEndpointsError: If no relay could be connected.
        """
        if not queries:
            return {}

        hard = Deadline.after(self._hard_timeout)
        start = time.monotonic()
        connections = [self._connection_factory(url) for url in urls]
        try:
            connected = await self._connect_all(connections, hard)
            if not connected:
                self._logger.warning("fetch_no_reachable_relays", relays=len(urls))
                raise NoReachableEndpointsError(urls)

            loop = asyncio.get_running_loop()
            futures: dict[str, asyncio.Future[Found[Any]]] = {
                name: loop.create_future() for name in queries
            }
            for connection in connected:
                await self._subscribe_all(connection, queries, futures, hard)

            names = list(queries)
            resolved = await asyncio.gather(
                *(self._wait(name, queries[name], futures[name], hard) for name in names)
            )
            results = dict(zip(names, resolved, strict=True))
        finally:
            await asyncio.gather(*(c.close() for c in connections))

        self._logger.info(
            "fetch_completed",
            relays=len(urls),
            connected=len(connected),
            found=sum(1 for r in results.values() if r.found),
            queries=len(results),
            duration=round(time.monotonic() - start, 3),
        )
        return results

    # -- Phases ----------------------------------------------------------------

    async def _connect_one(self, connection: RelayConnection, hard: Deadline) -> bool:
        timeout = min(self._connect_timeout, hard.remaining)
        try:
            await connection.connect(timeout, allow_insecure=self._allow_insecure)
        except EndpointOperationError as e:
            self._logger.debug("fetch_connect_failed", relay=connection.url, error=str(e))
            return False
        except asyncio.CancelledError:
            raise
        # Intentionally broad: one relay's unexpected failure must not abort the others
        except Exception as e:  # noqa: BLE001
            self._logger.warning(
                "fetch_connect_error",
                relay=connection.url,
                error_type=type(e).__name__,
                error=str(e),
            )
            return False
        return True

    async def _connect_all(
        self, connections: list[RelayConnection], hard: Deadline
    ) -> list[RelayConnection]:
        flags = await asyncio.gather(*(self._connect_one(c, hard) for c in connections))
        return [c for c, ok in zip(connections, flags, strict=True) if ok]

    async def _subscribe_all(
        self,
        connection: RelayConnection,
        queries: Mapping[str, FetchQuery[Any]],
        futures: dict[str, asyncio.Future[Found[Any]]],
        hard: Deadline,
    ) -> None:
        url = connection.url
        for name, query in queries.items():
            future = futures[name]

            def _on_record(
                record: Record,
                name: str = name,
                query: FetchQuery[Any] = query,
                future: asyncio.Future[Found[Any]] = future,
            ) -> None:
                if future.done():
                    return
                try:
                    value = query.parse(record)
                except (ValueError, TypeError, KeyError) as e:
                    self._logger.debug("fetch_record_rejected", query=name, relay=url, error=str(e))
                    return
                future.set_result(Found(value, relay_url=url))
                self._logger.debug("fetch_query_matched", query=name, relay=url)

            def _on_eose(name: str = name) -> None:
                self._logger.debug("fetch_eose", query=name, relay=url)

            try:
                await connection.subscribe(
                    query.filter, _on_record, _on_eose, timeout=hard.remaining
                )
            except EndpointOperationError as e:
                self._logger.debug("fetch_subscribe_failed", query=name, relay=url, error=str(e))

    async def _wait(
        self,
        name: str,
        query: FetchQuery[Any],
        future: asyncio.Future[Found[Any]],
        hard: Deadline,
    ) -> FetchResult[Any]:
        soft_seconds = query.soft_timeout if query.soft_timeout is not None else self._soft_timeout
        soft = Deadline.after(soft_seconds)
        deadline = Deadline.earliest(soft, hard)
        try:
            async with asyncio.timeout_at(deadline.when):
                result = await future
        except TimeoutError:
            reason = (
                NotFoundReason.HARD_DEADLINE if deadline == hard else NotFoundReason.SOFT_DEADLINE
            )
            self._logger.info("fetch_query_resolved", query=name, found=False, reason=reason)
            return NotFound(reason=reason)

        self._logger.info("fetch_query_resolved", query=name, found=True, relay=result.relay_url)
        return result
