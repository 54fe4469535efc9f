"""Relay connections backed by ``nostr_sdk.Client``.

[RelayConnection][notecast.utils.transport.RelayConnection] owns one
``nostr_sdk.Client`` with exactly one relay added. It is opened and closed
by a single broadcast or fetch operation and never shared, so a misbehaving
relay can only affect the operation that opened it.

The client handles the NIP-01 framing (``EVENT``/``OK``/``REQ``/``EOSE``/
``CLOSED``), matches acknowledgments to published records, and verifies the
signature of every record it receives. This module only converts between
[Record][notecast.models.record.Record] values and ``nostr_sdk`` types and
maps the per-relay output to typed errors.

Note:
    The TLS fallback follows a two-phase approach: first attempt a fully
    verified connection, then retry with
    [InsecureWebSocketTransport][notecast.utils.transport.InsecureWebSocketTransport]
    only if the failure is certificate-related and ``allow_insecure=True``.

See Also:
    [broadcast()][notecast.services.broadcast.broadcast]: Opens one
        connection per relay to publish a record.
    [FetchAggregator][notecast.services.fetch.FetchAggregator]: Opens one
        connection per relay to race subscriptions.
"""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
import ssl
from collections.abc import Callable
from dataclasses import dataclass
from datetime import timedelta
from datetime import timedelta as Duration  # noqa: N812
from typing import Any, Final

import aiohttp
from nostr_sdk import (
    Client,
    ClientBuilder,
    ConnectionMode,
    CustomWebSocketTransport,
    Filter,
    Kind,
    NostrSdkError,
    PublicKey,
    RelayUrl,
    WebSocketAdapter,
    WebSocketAdapterWrapper,
    WebSocketMessage,
    uniffi_set_event_loop,
)
from nostr_sdk import Event as NostrEvent

from notecast.core.exceptions import (
    EndpointOperationError,
    EndpointTimeoutError,
    PublishRejectedError,
)
from notecast.models.constants import ConnectionState
from notecast.models.record import Record, RecordFilter


DEFAULT_TIMEOUT: Final[float] = 10.0

_CLOSE_TIMEOUT = 5.0
_WS_RECV_TIMEOUT = 60.0

logger = logging.getLogger("utils.transport")

# Silence nostr-sdk UniFFI callback stack traces (handled by our code)
logging.getLogger("nostr_sdk").setLevel(logging.CRITICAL)

RecordCallback = Callable[[Record], None]
EoseCallback = Callable[[], None]


# Multi-word patterns so unrelated errors (e.g. DNS "cannot verify hostname")
# do not trigger the insecure retry.
_SSL_ERROR_PATTERNS: tuple[str, ...] = (
    "ssl certificate",
    "certificate verify",
    "certificate has expired",
    "self signed certificate",
    "self-signed certificate",
    "unable to get local issuer",
    "x509",
    "tlsv1 alert",
    "ssl handshake",
    "tls handshake failed",
    "certificate_unknown",
    "certificate_expired",
    "ssl error",
    "tls error",
    "cert verify failed",
)


def _is_ssl_error(error_message: str) -> bool:
    error_lower = error_message.lower()
    return any(pattern in error_lower for pattern in _SSL_ERROR_PATTERNS)


def _is_timeout(error_message: str) -> bool:
    return "timeout" in error_message.lower() or "timed out" in error_message.lower()


# =============================================================================
# Conversions
# =============================================================================


def to_nostr_filter(record_filter: RecordFilter) -> Filter:
    """Build the ``nostr_sdk.Filter`` equivalent of *record_filter*."""
    f = Filter()
    if record_filter.kinds:
        f = f.kinds([Kind(k) for k in record_filter.kinds])
    if record_filter.authors:
        f = f.authors([PublicKey.parse(a) for a in record_filter.authors])
    if record_filter.limit is not None:
        f = f.limit(record_filter.limit)
    return f


def from_nostr_event(event: NostrEvent) -> Record:
    """Convert a received ``nostr_sdk.Event`` into a record.

    Raises:
        ValueError: If the event does not form a valid record.
    """
    return Record.from_dict(json.loads(event.as_json()))


# =============================================================================
# Insecure Transport
# =============================================================================


class InsecureWebSocketAdapter(WebSocketAdapter):
    """aiohttp WebSocket adapter for ``nostr_sdk`` with no certificate checks.

    Warning:
        Only used after a verified connection has failed with a certificate
        error and the configuration allows insecure relays.
    """

    def __init__(
        self,
        ws: aiohttp.ClientWebSocketResponse,
        session: aiohttp.ClientSession,
        recv_timeout: float = _WS_RECV_TIMEOUT,
    ) -> None:
        self._ws = ws
        self._session = session
        self._recv_timeout = recv_timeout

    async def send(self, msg: WebSocketMessage) -> None:
        if msg.is_text():
            await self._ws.send_str(msg.text)
        elif msg.is_binary():
            await self._ws.send_bytes(msg.bytes)
        elif msg.is_ping():
            await self._ws.ping(msg.bytes)
        elif msg.is_pong():
            await self._ws.pong(msg.bytes)

    async def recv(self) -> WebSocketMessage | None:
        """Return the next frame, or None once the socket is closed or idle."""
        try:
            msg = await asyncio.wait_for(self._ws.receive(), timeout=self._recv_timeout)
        except TimeoutError:
            return None

        if msg.type == aiohttp.WSMsgType.TEXT:
            return WebSocketMessage.TEXT(msg.data)
        if msg.type == aiohttp.WSMsgType.BINARY:
            return WebSocketMessage.BINARY(msg.data)
        if msg.type == aiohttp.WSMsgType.PING:
            return WebSocketMessage.PING(msg.data)
        if msg.type == aiohttp.WSMsgType.PONG:
            return WebSocketMessage.PONG(msg.data)
        return None

    async def close_connection(self) -> None:
        # aiohttp can raise ClientError, ServerDisconnectedError, etc. during
        # close; broad suppression is intentional for teardown.
        with contextlib.suppress(Exception):
            await asyncio.wait_for(self._ws.close(), timeout=_CLOSE_TIMEOUT)
        with contextlib.suppress(Exception):
            await asyncio.wait_for(self._session.close(), timeout=_CLOSE_TIMEOUT)


class InsecureWebSocketTransport(CustomWebSocketTransport):
    """``nostr_sdk`` WebSocket transport with certificate verification disabled.

    Injected through ``ClientBuilder.websocket_transport()``. The UniFFI event
    loop must be set with ``uniffi_set_event_loop()`` before it is used.
    """

    async def connect(
        self,
        url: str,
        _mode: ConnectionMode,
        timeout: Duration,  # noqa: ASYNC109
    ) -> WebSocketAdapterWrapper:
        """Open an unverified WebSocket to *url*.

        Raises:
            OSError: On any connection failure.
        """
        ssl_context = ssl.create_default_context()
        ssl_context.check_hostname = False
        ssl_context.verify_mode = ssl.CERT_NONE

        session = aiohttp.ClientSession(
            connector=aiohttp.TCPConnector(ssl=ssl_context),
            timeout=aiohttp.ClientTimeout(total=timeout.total_seconds()),
        )
        try:
            ws = await session.ws_connect(url)
        except TimeoutError:
            await session.close()
            raise OSError(f"Connection timeout: {url}") from None
        except (aiohttp.ClientError, OSError) as e:
            await session.close()
            raise OSError(f"Connection failed: {e}") from e
        except asyncio.CancelledError:
            await session.close()
            raise

        return WebSocketAdapterWrapper(InsecureWebSocketAdapter(ws, session))

    def support_ping(self) -> bool:
        return True


def create_client(*, insecure: bool = False) -> Client:
    """Create a read/write ``nostr_sdk.Client`` without a signer.

    Records are signed before they reach the transport, so no keys are
    needed here.
    """
    builder = ClientBuilder()
    if insecure:
        # Required for custom WebSocket transport UniFFI callbacks
        uniffi_set_event_loop(asyncio.get_running_loop())
        builder = builder.websocket_transport(InsecureWebSocketTransport())
    return builder.build()


# =============================================================================
# Connection
# =============================================================================


@dataclass(slots=True)
class Subscription:
    """A record stream opened on one relay connection.

    Attributes:
        filter: Filter sent to the relay; also applied locally to every
            incoming record.
        task: Task feeding the stream's records into the callback.
    """

    filter: RecordFilter
    task: asyncio.Task[None]


class RelayConnection:
    """A ``nostr_sdk.Client`` connected to exactly one relay.

    Examples:
        ```python
        async with RelayConnection("wss://nos.lol") as conn:
            await conn.connect(timeout=10.0)
            await conn.publish(record, timeout=10.0)
        ```
    """

    def __init__(self, url: str) -> None:
        self._url = url
        self._relay_url: RelayUrl | None = None
        self._client: Client | None = None
        self._state = ConnectionState.DISCONNECTED
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def url(self) -> str:
        return self._url

    @property
    def state(self) -> ConnectionState:
        return self._state

    async def __aenter__(self) -> RelayConnection:
        return self

    async def __aexit__(self, *_exc: object) -> None:
        await self.close()

    # -- Connect ---------------------------------------------------------------

    async def connect(
        self,
        timeout: float = DEFAULT_TIMEOUT,  # noqa: ASYNC109
        *,
        allow_insecure: bool = False,
    ) -> None:
        """Connect the client to the relay.

        Raises:
            EndpointTimeoutError: If the handshake does not finish in time.
            EndpointOperationError: On any other connection failure.
        """
        if self._state == ConnectionState.CONNECTED:
            return
        self._state = ConnectionState.CONNECTING
        try:
            self._relay_url = RelayUrl.parse(self._url)
            error = await self._try_connect(timeout, insecure=False)
            if error is not None and allow_insecure and _is_ssl_error(error):
                logger.warning("ssl_fallback_insecure url=%s error=%s", self._url, error)
                error = await self._try_connect(timeout, insecure=True)
        except (NostrSdkError, OSError, ValueError) as e:
            self._state = ConnectionState.FAILED
            await self._shutdown()
            raise EndpointOperationError(self._url, f"Connection failed: {e}") from e
        except asyncio.CancelledError:
            self._state = ConnectionState.FAILED
            await self._shutdown()
            raise

        if error is not None:
            self._state = ConnectionState.FAILED
            if _is_timeout(error):
                raise EndpointTimeoutError(self._url, f"Connection timeout after {timeout}s")
            raise EndpointOperationError(self._url, f"Connection failed: {error}")

        self._state = ConnectionState.CONNECTED
        logger.debug("relay_connected url=%s", self._url)

    async def _try_connect(self, timeout: float, *, insecure: bool) -> str | None:  # noqa: ASYNC109
        """Run one connection attempt; return the relay's error or None."""
        await self._shutdown()
        client = create_client(insecure=insecure)
        self._client = client
        await client.add_relay(self._relay_url)
        output = await client.try_connect(timedelta(seconds=timeout))
        if self._relay_url in output.success:
            return None
        error = str(output.failed.get(self._relay_url, "Unknown error"))
        logger.debug("connect_failed url=%s insecure=%s error=%s", self._url, insecure, error)
        await self._shutdown()
        return error

    def _require_client(self) -> Client:
        if self._client is None or self._state != ConnectionState.CONNECTED:
            raise EndpointOperationError(self._url, "Not connected")
        return self._client

    # -- Publish ---------------------------------------------------------------

    async def publish(self, record: Record, timeout: float = DEFAULT_TIMEOUT) -> None:  # noqa: ASYNC109
        """Send a record and wait for the relay's acknowledgment.

        Raises:
            EndpointTimeoutError: If no acknowledgment arrives within *timeout*.
            PublishRejectedError: If the relay refuses the record.
            EndpointOperationError: If the connection is not open or fails.
        """
        client = self._require_client()
        try:
            event = NostrEvent.from_json(record.to_json())
            async with asyncio.timeout(timeout):
                output = await client.send_event(event)
        except TimeoutError:
            raise EndpointTimeoutError(
                self._url, f"No acknowledgment within {timeout}s"
            ) from None
        except (NostrSdkError, OSError, ValueError) as e:
            raise EndpointOperationError(self._url, f"Publish failed: {e}") from e

        if self._relay_url in output.success:
            return
        message = output.failed.get(self._relay_url)
        if message is None:
            raise EndpointOperationError(self._url, "No response from relay")
        message = str(message)
        if _is_timeout(message):
            raise EndpointTimeoutError(self._url, f"No acknowledgment within {timeout}s")
        raise PublishRejectedError(self._url, message or "Relay rejected the record")

    # -- Subscribe -------------------------------------------------------------

    async def subscribe(
        self,
        record_filter: RecordFilter,
        on_record: RecordCallback,
        on_eose: EoseCallback | None = None,
        *,
        timeout: float = DEFAULT_TIMEOUT,  # noqa: ASYNC109
    ) -> Subscription:
        """Stream records matching *record_filter* into *on_record*.

        The stream ends when the relay has sent its stored records or after
        *timeout* seconds; *on_eose* is then called once. Records that do not
        form a valid record or do not match the filter are skipped.

        Raises:
            EndpointOperationError: If the connection is not open or the
                subscription cannot be opened.
        """
        client = self._require_client()
        try:
            stream = await client.stream_events(
                to_nostr_filter(record_filter), timeout=timedelta(seconds=max(timeout, 0.0))
            )
        except (NostrSdkError, OSError, TimeoutError, ValueError) as e:
            raise EndpointOperationError(self._url, f"Subscribe failed: {e}") from e

        task = asyncio.create_task(self._pump(stream, record_filter, on_record, on_eose))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return Subscription(filter=record_filter, task=task)

    async def _pump(
        self,
        stream: Any,
        record_filter: RecordFilter,
        on_record: RecordCallback,
        on_eose: EoseCallback | None,
    ) -> None:
        try:
            while (event := await stream.next()) is not None:
                try:
                    record = from_nostr_event(event)
                except (TypeError, ValueError) as e:
                    logger.debug("relay_invalid_record url=%s error=%s", self._url, e)
                    continue
                if record_filter.matches(record):
                    on_record(record)
        except (NostrSdkError, OSError, TimeoutError) as e:
            logger.debug("relay_stream_failed url=%s error=%s", self._url, e)
            return
        if on_eose is not None:
            on_eose()

    # -- Close -----------------------------------------------------------------

    async def _shutdown(self) -> None:
        client, self._client = self._client, None
        if client is not None:
            # nostr-sdk Rust FFI can raise arbitrary exception types during shutdown.
            with contextlib.suppress(Exception):
                await asyncio.wait_for(client.shutdown(), timeout=_CLOSE_TIMEOUT)

    async def close(self) -> None:
        """Stop every stream and shut the client down. Idempotent."""
        tasks = list(self._tasks)
        self._tasks.clear()
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.wait(tasks, timeout=_CLOSE_TIMEOUT)

        had_client = self._client is not None
        await self._shutdown()
        if self._state != ConnectionState.FAILED:
            self._state = ConnectionState.DISCONNECTED
        if had_client:
            logger.debug("relay_closed url=%s", self._url)
