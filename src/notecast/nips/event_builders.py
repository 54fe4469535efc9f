"""Record templates for every kind notecast publishes.

Standalone functions that turn a note (or an upload) into an unsigned
[RecordTemplate][notecast.models.record.RecordTemplate]. Signing is left to
[sign_record()][notecast.utils.keys.sign_record] so the builders stay pure
and testable without keys.

See Also:
    [Publisher][notecast.services.publisher.Publisher]: Chooses between the
        kind 1 and kind 30023 builders.
    [upload_blob()][notecast.nips.blossom.upload_blob]: Signs the kind 24242
        authorization built here.
"""

from __future__ import annotations

import re
import time

from notecast.models.constants import EventKind, PublishMode
from notecast.models.record import RecordTemplate


# =============================================================================
# Constants
# =============================================================================

DEFAULT_CLIENT_TAG = "notecast"
LONG_NOTE_THRESHOLD = 256
UPLOAD_AUTHORIZATION_TTL = 300

_SLUG_MAX_LENGTH = 30
_SUMMARY_MAX_LENGTH = 100

_NON_WORD_RE = re.compile(r"[^\w\s]", re.ASCII)
_WHITESPACE_RE = re.compile(r"\s+")


# =============================================================================
# Helpers
# =============================================================================


def make_slug(title: str, created_at: int) -> str:
    """Build the NIP-23 ``d`` identifier for an article.

    The title is lowercased, stripped of punctuation, whitespace runs become
    hyphens, the result is cut to 30 characters, and ``-<created_at>`` is
    appended so republishing a title never replaces an older article.

    Examples:
        ```python
        make_slug("Hello, World!", 1700000000)  # 'hello-world-1700000000'
        ```
    """
    base = _WHITESPACE_RE.sub("-", _NON_WORD_RE.sub("", title.lower()))
    return f"{base[:_SLUG_MAX_LENGTH]}-{created_at}"


def make_summary(body: str) -> str:
    """Return the first paragraph, or the first 100 characters plus ``...``."""
    paragraph_end = body.find("\n\n")
    if paragraph_end > 0:
        return body[:paragraph_end].strip()
    summary = body[:_SUMMARY_MAX_LENGTH].strip()
    return summary + "..." if len(body) > _SUMMARY_MAX_LENGTH else summary


def suggest_publish_mode(body: str, threshold: int = LONG_NOTE_THRESHOLD) -> PublishMode:
    """Suggest long-form publishing for bodies longer than *threshold* characters."""
    return PublishMode.LONG_FORM if len(body) > threshold else PublishMode.REGULAR


# =============================================================================
# Kind 1 (NIP-01)
# =============================================================================


def build_text_note(
    title: str,
    body: str,
    *,
    client_tag: str = DEFAULT_CLIENT_TAG,
    created_at: int | None = None,
) -> RecordTemplate:
    """Build a kind 1 note whose content is ``"<title>\\n\\n<body>"``."""
    return RecordTemplate(
        kind=EventKind.TEXT_NOTE,
        content=f"{title}\n\n{body}",
        tags=(("client", client_tag),),
        created_at=created_at if created_at is not None else int(time.time()),
    )


# =============================================================================
# Kind 30023 (NIP-23)
# =============================================================================


def build_long_form(
    title: str,
    body: str,
    *,
    client_tag: str = DEFAULT_CLIENT_TAG,
    created_at: int | None = None,
) -> RecordTemplate:
    """Build a kind 30023 long-form article.

    Tags, in order: ``client``, ``d`` (see
    [make_slug()][notecast.nips.event_builders.make_slug]), ``title``,
    ``summary``, ``published_at``. The body is the content as is.
    """
    now = created_at if created_at is not None else int(time.time())
    return RecordTemplate(
        kind=EventKind.LONG_FORM,
        content=body,
        tags=(
            ("client", client_tag),
            ("d", make_slug(title, now)),
            ("title", title),
            ("summary", make_summary(body)),
            ("published_at", str(now)),
        ),
        created_at=now,
    )


def build_note(
    mode: PublishMode,
    title: str,
    body: str,
    *,
    client_tag: str = DEFAULT_CLIENT_TAG,
    created_at: int | None = None,
) -> RecordTemplate:
    """Dispatch to the builder for *mode*."""
    builder = build_long_form if mode == PublishMode.LONG_FORM else build_text_note
    return builder(title, body, client_tag=client_tag, created_at=created_at)


# =============================================================================
# Kind 24242 (Blossom BUD-02)
# =============================================================================


def build_upload_authorization(
    sha256: str,
    filename: str,
    *,
    ttl: int = UPLOAD_AUTHORIZATION_TTL,
    created_at: int | None = None,
) -> RecordTemplate:
    """Build the kind 24242 record authorizing one upload of blob *sha256*.

    The ``expiration`` tag is ``created_at + ttl``; servers reject the
    authorization after that instant.
    """
    now = created_at if created_at is not None else int(time.time())
    return RecordTemplate(
        kind=EventKind.BLOSSOM_AUTH,
        content=f"Upload {filename}",
        tags=(
            ("t", "upload"),
            ("x", sha256),
            ("expiration", str(now + ttl)),
        ),
        created_at=now,
    )
