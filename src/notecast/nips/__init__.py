"""NIP and BUD protocol layer: record composition and Blossom uploads.

Attributes:
    build_text_note: Kind 1 note template (NIP-01).
    build_long_form: Kind 30023 article template (NIP-23).
    build_upload_authorization: Kind 24242 upload authorization (BUD-02).
    BlossomClient: Sequential Blossom uploader for files and resources.
        See [BlossomClient][notecast.nips.blossom.BlossomClient].
    upload_blob: Single authenticated ``PUT`` of one payload.

See Also:
    [notecast.utils.keys][notecast.utils.keys]: Signs the templates built
        here.
"""

from .blossom import (
    BlossomClient,
    DirectoryResourceStore,
    ResourceStore,
    encode_authorization,
    guess_content_type,
    parse_upload_response,
    sha256_hex,
    upload_blob,
)
from .event_builders import (
    DEFAULT_CLIENT_TAG,
    LONG_NOTE_THRESHOLD,
    UPLOAD_AUTHORIZATION_TTL,
    build_long_form,
    build_note,
    build_text_note,
    build_upload_authorization,
    make_slug,
    make_summary,
    suggest_publish_mode,
)


__all__ = [
    "DEFAULT_CLIENT_TAG",
    "LONG_NOTE_THRESHOLD",
    "UPLOAD_AUTHORIZATION_TTL",
    "BlossomClient",
    "DirectoryResourceStore",
    "ResourceStore",
    "build_long_form",
    "build_note",
    "build_text_note",
    "build_upload_authorization",
    "encode_authorization",
    "guess_content_type",
    "make_slug",
    "make_summary",
    "parse_upload_response",
    "sha256_hex",
    "suggest_publish_mode",
    "upload_blob",
]
