"""Blossom (BUD-02) blob upload client.

Uploads a payload to ``PUT {server}/{sha256}`` authorized by a signed
kind 24242 record sent as ``Authorization: Nostr <base64 JSON>``. Every
failure is folded into an [UploadResult][notecast.models.outcome.UploadResult]
with a distinct message per cause:

```text
File not found: <path>                       source payload missing
Upload request failed: <error>               transport failure
Server responded with <status>: <body>       non-2xx status
Unable to parse Blossom server response: ... 2xx without a usable URL
```

Uploads are never retried, and a batch runs strictly one upload at a time
so a single server is not flooded.

See Also:
    [build_upload_authorization()][notecast.nips.event_builders.build_upload_authorization]:
        Builds the authorization template.
    [Publisher][notecast.services.publisher.Publisher]: Uploads a note's
        attachments before composing the record.

Examples:
    ```python
    async with BlossomClient("https://blossom.example", keys) as client:
        result = await client.upload_file("photo.png")
        batch = await client.upload_batch(resource_ids=["0123abcd"], store=store)
    ```
"""

from __future__ import annotations

import base64
import hashlib
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol

import aiohttp

from notecast.core.exceptions import (
    SourcePayloadMissingError,
    UploadError,
    UploadRejectedError,
    UploadResponseError,
    UploadTransportError,
)
from notecast.models.note import Resource
from notecast.models.outcome import BatchUploadResult, UploadResult
from notecast.nips.event_builders import UPLOAD_AUTHORIZATION_TTL, build_upload_authorization
from notecast.utils.http import read_bounded_json, read_bounded_text
from notecast.utils.keys import sign_record


if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Iterable

    from nostr_sdk import Keys

    from notecast.models.record import Record


logger = logging.getLogger("nips.blossom")

DEFAULT_UPLOAD_TIMEOUT = 60.0
DEFAULT_MAX_RESPONSE_SIZE = 64 * 1024
_MAX_ERROR_BODY = 4096

DEFAULT_CONTENT_TYPE = "application/octet-stream"

_CONTENT_TYPES: dict[str, str] = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".webp": "image/webp",
    ".svg": "image/svg+xml",
}


# =============================================================================
# Pure helpers
# =============================================================================


def sha256_hex(payload: bytes) -> str:
    """Return the lowercase hex SHA-256 of *payload* (the blob address)."""
    return hashlib.sha256(payload).hexdigest()


def guess_content_type(filename: str, mime_type: str | None = None) -> str:
    """Pick the upload ``Content-Type``.

    A MIME type already known for the payload wins; otherwise common image
    extensions are mapped, and anything else is ``application/octet-stream``.
    """
    if mime_type:
        return mime_type
    return _CONTENT_TYPES.get(Path(filename).suffix.lower(), DEFAULT_CONTENT_TYPE)


def encode_authorization(record: Record) -> str:
    """Encode a signed authorization record as an ``Authorization`` header value."""
    token = base64.b64encode(record.to_json().encode("utf-8")).decode("ascii")
    return f"Nostr {token}"


def parse_upload_response(data: Any, source_id: str) -> str:
    """Extract the blob URL from a successful upload response body.

    Accepted shapes are ``{"status": "success", "url": ...}`` and a plain
    ``{"url": ...}`` blob descriptor.

    Raises:
        UploadResponseError: For any other shape.
    """
    if not isinstance(data, dict):
        raise UploadResponseError(
            source_id, "Unable to parse Blossom server response: not a JSON object"
        )
    status = data.get("status")
    if status is not None and status != "success":
        message = data.get("message") or status
        raise UploadResponseError(
            source_id, f"Unable to parse Blossom server response: status {message}"
        )
    url = data.get("url")
    if not isinstance(url, str) or not url:
        raise UploadResponseError(source_id, "Unable to parse Blossom server response: URL not found")
    return url


# =============================================================================
# Single upload
# =============================================================================


async def _put_blob(  # noqa: PLR0913
    session: aiohttp.ClientSession,
    payload: bytes,
    *,
    filename: str,
    server_url: str,
    keys: Keys,
    source_id: str,
    mime_type: str | None,
    ttl: int,
    max_response_size: int,
) -> str:
    digest = sha256_hex(payload)
    authorization = sign_record(build_upload_authorization(digest, filename, ttl=ttl), keys)
    headers = {
        "Content-Type": guess_content_type(filename, mime_type),
        "Authorization": encode_authorization(authorization),
        "Accept": "application/json",
    }
    request_url = f"{server_url.rstrip('/')}/{digest}"
    logger.debug("blossom_put url=%s size=%d", request_url, len(payload))

    try:
        async with session.put(request_url, data=payload, headers=headers) as response:
            if not 200 <= response.status < 300:  # noqa: PLR2004
                body = await read_bounded_text(response, _MAX_ERROR_BODY)
                raise UploadRejectedError(source_id, response.status, body)
            try:
                data = await read_bounded_json(response, max_response_size)
            except ValueError as e:
                raise UploadResponseError(
                    source_id, f"Unable to parse Blossom server response: {e}"
                ) from e
    except (aiohttp.ClientError, TimeoutError) as e:
        reason = str(e) or type(e).__name__
        raise UploadTransportError(source_id, f"Upload request failed: {reason}") from e

    return parse_upload_response(data, source_id)


@asynccontextmanager
async def _session_scope(
    session: aiohttp.ClientSession | None, timeout: float  # noqa: ASYNC109
) -> AsyncIterator[aiohttp.ClientSession]:
    if session is not None:
        yield session
        return
    async with aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=timeout)) as own:
        yield own


async def upload_blob(  # noqa: PLR0913
    payload: bytes,
    server_url: str,
    keys: Keys,
    *,
    filename: str,
    source_id: str | None = None,
    mime_type: str | None = None,
    ttl: int = UPLOAD_AUTHORIZATION_TTL,
    timeout: float = DEFAULT_UPLOAD_TIMEOUT,  # noqa: ASYNC109
    max_response_size: int = DEFAULT_MAX_RESPONSE_SIZE,
    session: aiohttp.ClientSession | None = None,
) -> UploadResult:
    """Upload one payload and return its result. Never raises for upload failures.

    Args:
        payload: Raw bytes to upload.
        server_url: Blossom server base URL.
        keys: Keys signing the kind 24242 authorization.
        filename: Name used for the content type guess and the
            authorization content (``"Upload <filename>"``).
        source_id: Identifier reported in the result; defaults to *filename*.
        mime_type: Known MIME type, overriding the extension guess.
        ttl: Authorization lifetime in seconds.
        timeout: Total request timeout when a session is created here.
        max_response_size: Upper bound on the success body size.
        session: Reuse an open session instead of creating one.
    """
    sid = source_id or filename
    try:
        async with _session_scope(session, timeout) as active:
            url = await _put_blob(
                active,
                payload,
                filename=filename,
                server_url=server_url,
                keys=keys,
                source_id=sid,
                mime_type=mime_type,
                ttl=ttl,
                max_response_size=max_response_size,
            )
    except UploadError as e:
        logger.warning("upload_failed source=%s error=%s", sid, e)
        return UploadResult.failed(sid, str(e))

    logger.info("upload_succeeded source=%s url=%s", sid, url)
    return UploadResult.ok(sid, url)


# =============================================================================
# Sources
# =============================================================================


class ResourceStore(Protocol):
    """Lookup of note attachments by resource ID."""

    def load(self, resource_id: str) -> Resource:
        """Return the resource, or raise ``SourcePayloadMissingError``."""
        ...


class DirectoryResourceStore:
    """Resources stored as ``<root>/<resource_id>.<ext>`` files.

    Args:
        root: Directory holding the resource files.
    """

    def __init__(self, root: str | Path) -> None:
        self._root = Path(root)

    @property
    def root(self) -> Path:
        return self._root

    def load(self, resource_id: str) -> Resource:
        if not resource_id or "/" in resource_id or "\\" in resource_id:
            raise SourcePayloadMissingError(resource_id, f"Resource not found: {resource_id}")
        candidates = sorted(self._root.glob(f"{resource_id}.*"))
        exact = self._root / resource_id
        if exact.is_file():
            candidates.insert(0, exact)
        for path in candidates:
            if path.is_file():
                return Resource(
                    resource_id=resource_id,
                    payload=path.read_bytes(),
                    filename=path.name,
                )
        raise SourcePayloadMissingError(resource_id, f"Resource not found: {resource_id}")


def _read_file(path: Path, source_id: str) -> bytes:
    try:
        return path.read_bytes()
    except (FileNotFoundError, IsADirectoryError):
        raise SourcePayloadMissingError(source_id, f"File not found: {path}") from None


# =============================================================================
# Client
# =============================================================================


class BlossomClient:
    """Uploads files and resources to one Blossom server with one key pair.

    Usable as an async context manager to share one HTTP session across a
    batch; without it each upload opens its own session.

    Args:
        server_url: Blossom server base URL.
        keys: Signing keys.
        ttl: Authorization lifetime in seconds.
        timeout: Total per-request timeout in seconds.
        max_response_size: Upper bound on a success body.
        base_dir: Directory that relative file paths are resolved against.
    """

    def __init__(  # noqa: PLR0913
        self,
        server_url: str,
        keys: Keys,
        *,
        ttl: int = UPLOAD_AUTHORIZATION_TTL,
        timeout: float = DEFAULT_UPLOAD_TIMEOUT,  # noqa: ASYNC109
        max_response_size: int = DEFAULT_MAX_RESPONSE_SIZE,
        base_dir: str | Path | None = None,
    ) -> None:
        self._server_url = server_url.rstrip("/")
        self._keys = keys
        self._ttl = ttl
        self._timeout = timeout
        self._max_response_size = max_response_size
        self._base_dir = Path(base_dir) if base_dir is not None else None
        self._session: aiohttp.ClientSession | None = None

    @property
    def server_url(self) -> str:
        return self._server_url

    async def __aenter__(self) -> BlossomClient:
        self._session = aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=self._timeout))
        return self

    async def __aexit__(self, *_exc: object) -> None:
        if self._session is not None:
            await self._session.close()
            self._session = None

    @asynccontextmanager
    async def _batch_session(self) -> AsyncIterator[None]:
        if self._session is not None:
            yield
            return
        async with self:
            yield

    async def upload_bytes(
        self,
        payload: bytes,
        filename: str,
        *,
        source_id: str | None = None,
        mime_type: str | None = None,
    ) -> UploadResult:
        return await upload_blob(
            payload,
            self._server_url,
            self._keys,
            filename=filename,
            source_id=source_id,
            mime_type=mime_type,
            ttl=self._ttl,
            timeout=self._timeout,
            max_response_size=self._max_response_size,
            session=self._session,
        )

    async def upload_file(self, path: str | Path) -> UploadResult:
        """Upload a local file; the result's ``source_id`` is *path* as given."""
        source_id = str(path)
        resolved = Path(path)
        if self._base_dir is not None and not resolved.is_absolute():
            resolved = self._base_dir / resolved
        try:
            payload = _read_file(resolved, source_id)
        except SourcePayloadMissingError as e:
            logger.warning("upload_failed source=%s error=%s", source_id, e)
            return UploadResult.failed(source_id, str(e))
        return await self.upload_bytes(payload, resolved.name, source_id=source_id)

    async def upload_resource(self, resource_id: str, store: ResourceStore) -> UploadResult:
        """Upload a stored resource; its own MIME type overrides the guess."""
        try:
            resource = store.load(resource_id)
        except SourcePayloadMissingError as e:
            logger.warning("upload_failed source=%s error=%s", resource_id, e)
            return UploadResult.failed(resource_id, str(e))
        return await self.upload_bytes(
            resource.payload,
            resource.filename,
            source_id=resource_id,
            mime_type=resource.mime_type,
        )

    async def iter_uploads(
        self,
        *,
        resource_ids: Iterable[str] = (),
        paths: Iterable[str] = (),
        store: ResourceStore | None = None,
    ) -> AsyncIterator[UploadResult]:
        """Upload sources one at a time, yielding each result as it completes.

        Resources are uploaded first, then local paths, each in input order.
        """
        resource_ids = list(resource_ids)
        if resource_ids and store is None:
            raise ValueError("a resource store is required to upload resource IDs")
        async with self._batch_session():
            for resource_id in resource_ids:
                yield await self.upload_resource(resource_id, store)  # type: ignore[arg-type]
            for path in paths:
                yield await self.upload_file(path)

    async def upload_batch(
        self,
        *,
        resource_ids: Iterable[str] = (),
        paths: Iterable[str] = (),
        store: ResourceStore | None = None,
    ) -> BatchUploadResult:
        """Upload sources sequentially and collect every per-item result."""
        results = [
            result
            async for result in self.iter_uploads(
                resource_ids=resource_ids, paths=paths, store=store
            )
        ]
        batch = BatchUploadResult.from_results(results)
        logger.info(
            "upload_batch_completed total=%d succeeded=%d", len(results), len(batch.mapping)
        )
        return batch
