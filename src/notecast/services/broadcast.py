"""Concurrent fan-out publish of one signed record to many relays.

One task per relay URL, all started together. Each task opens its own
[RelayConnection][notecast.utils.transport.RelayConnection], publishes,
waits for ``OK``, and always closes the connection. Results are written into
a per-index slot, so the report follows the configured URL order whatever
the completion order.

A failing relay never affects its siblings and never raises out of
[broadcast()][notecast.services.broadcast.broadcast]: its failure becomes an
[EndpointOutcome][notecast.models.outcome.EndpointOutcome]. There are no
retries.

See Also:
    [Publisher][notecast.services.publisher.Publisher]: Calls this after
        composing and signing the note.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable
from typing import TYPE_CHECKING

from notecast.core.exceptions import EndpointOperationError
from notecast.core.logger import Logger
from notecast.models.outcome import BroadcastReport, EndpointOutcome
from notecast.utils.transport import DEFAULT_TIMEOUT, RelayConnection


if TYPE_CHECKING:
    from notecast.models.record import Record


ConnectionFactory = Callable[[str], RelayConnection]

_logger = Logger("broadcast")


async def _publish_one(  # noqa: PLR0913
    record: Record,
    url: str,
    *,
    connect_timeout: float,
    publish_timeout: float,
    allow_insecure: bool,
    connection_factory: ConnectionFactory,
) -> EndpointOutcome:
    connection = connection_factory(url)
    try:
        await connection.connect(connect_timeout, allow_insecure=allow_insecure)
        await connection.publish(record, publish_timeout)
    except EndpointOperationError as e:
        _logger.warning("relay_publish_failed", relay=url, error=str(e))
        return EndpointOutcome.failed(url, str(e))
    except asyncio.CancelledError:
        raise
    # Intentionally broad: one relay's unexpected failure must not abort the others
    except Exception as e:  # noqa: BLE001
        _logger.error("relay_publish_error", relay=url, error_type=type(e).__name__, error=str(e))
        return EndpointOutcome.failed(url, f"{type(e).__name__}: {e}")
    finally:
        await connection.close()

    _logger.debug("relay_publish_ok", relay=url)
    return EndpointOutcome.ok(url)


async def broadcast(  # noqa: PLR0913
    record: Record,
    urls: list[str],
    *,
    connect_timeout: float = DEFAULT_TIMEOUT,
    publish_timeout: float = DEFAULT_TIMEOUT,
    allow_insecure: bool = False,
    connection_factory: ConnectionFactory = RelayConnection,
) -> BroadcastReport:
    """Publish *record* to every URL concurrently and report per relay.

    Args:
        record: Signed record; never modified.
        urls: Relay URLs in configured order. Duplicates are published to
            twice and reported twice.
        connect_timeout: Per-relay handshake timeout in seconds.
        publish_timeout: Per-relay wait for the ``OK`` acknowledgment.
        allow_insecure: Retry without certificate checks on TLS failures.
        connection_factory: Builds the connection for a URL (test seam).

    Returns:
        A [BroadcastReport][notecast.models.outcome.BroadcastReport] with
        exactly ``len(urls)`` outcomes in the order of *urls*.
    """
    _logger.info("broadcast_started", record_id=record.id, kind=record.kind, relays=len(urls))
    start = time.monotonic()

    slots: list[EndpointOutcome | None] = [None] * len(urls)

    async def _run(index: int, url: str) -> None:
        slots[index] = await _publish_one(
            record,
            url,
            connect_timeout=connect_timeout,
            publish_timeout=publish_timeout,
            allow_insecure=allow_insecure,
            connection_factory=connection_factory,
        )

    await asyncio.gather(*(_run(i, url) for i, url in enumerate(urls)))

    outcomes = tuple(
        slot if slot is not None else EndpointOutcome.failed(url, "No outcome recorded")
        for slot, url in zip(slots, urls, strict=True)
    )
    report = BroadcastReport(record_id=record.id, outcomes=outcomes)
    _logger.info(
        "broadcast_completed",
        record_id=record.id,
        relays=len(urls),
        succeeded=report.success_count,
        failed=len(report.failed),
        duration=round(time.monotonic() - start, 3),
    )
    return report
