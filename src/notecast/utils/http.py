"""HTTP utilities for notecast.

Bounded reading of aiohttp response bodies, so a misbehaving blob server
cannot exhaust memory with an oversized reply.

Note:
    This module sits in the ``utils`` layer and depends only on stdlib and
    ``aiohttp``. It is importable from both ``nips`` and ``services``.

See Also:
    [upload_blob()][notecast.nips.blossom.upload_blob]: Reads upload
        responses through these helpers.
"""

from __future__ import annotations

import json
from typing import Any

import aiohttp


async def read_bounded(response: aiohttp.ClientResponse, max_size: int) -> bytes:
    """Read an entire response body with size enforcement.

    Accumulates chunks until EOF or the size limit is exceeded, which also
    handles chunked transfer-encoding where one read may return fewer bytes
    than are available.

    Raises:
        ValueError: If the response body exceeds *max_size*.
    """
    chunks: list[bytes] = []
    total = 0
    while True:
        chunk = await response.content.read(max_size + 1 - total)
        if not chunk:
            break
        total += len(chunk)
        if total > max_size:
            raise ValueError(f"Response body too large: >{max_size} bytes")
        chunks.append(chunk)
    return b"".join(chunks)


async def read_bounded_text(response: aiohttp.ClientResponse, max_size: int) -> str:
    """Read a body as text, truncating instead of failing when it is too large.

    Used for error bodies, where a partial message is still useful.
    """
    chunks: list[bytes] = []
    total = 0
    while total < max_size:
        chunk = await response.content.read(max_size - total)
        if not chunk:
            break
        total += len(chunk)
        chunks.append(chunk)
    return b"".join(chunks).decode(response.charset or "utf-8", errors="replace")


async def read_bounded_json(response: aiohttp.ClientResponse, max_size: int) -> Any:
    """Read and parse a JSON response body with size enforcement.

    Raises:
        ValueError: If the body exceeds *max_size* or is not valid JSON
            (``json.JSONDecodeError`` is a ``ValueError``).
    """
    body = await read_bounded(response, max_size)
    return json.loads(body)
