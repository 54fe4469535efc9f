"""Utilities layer: identity, relay transport, HTTP, deadlines, and markdown.

Sits beside ``core`` and ``nips`` in the diamond DAG. Depends on
``notecast.models`` and on ``notecast.core.exceptions`` for its error
types.

Attributes:
    KeysConfig: Pydantic model that loads keys from an environment variable.
        See [KeysConfig][notecast.utils.keys.KeysConfig].
    sign_record: Sign a [RecordTemplate][notecast.models.record.RecordTemplate].
    RelayConnection: One NIP-01 WebSocket connection to one relay.
        See [RelayConnection][notecast.utils.transport.RelayConnection].
    Deadline: Absolute loop-clock deadline.
    rewrite: Replace image references with uploaded URLs.

Examples:
    ```python
    from notecast.utils.keys import KeysConfig
    from notecast.utils.transport import RelayConnection
    ```
"""

from .deadline import Deadline
from .http import read_bounded, read_bounded_json, read_bounded_text
from .keys import (
    ENV_SECRET_KEY,
    KeysConfig,
    derive_public_key,
    load_keys_from_env,
    parse_secret_key,
    public_key_npub,
    sign_record,
    validate_secret_key_format,
    verify_record,
)
from .markdown import extract_local_image_paths, extract_resource_ids, rewrite
from .transport import DEFAULT_TIMEOUT, RelayConnection, Subscription


__all__ = [
    "DEFAULT_TIMEOUT",
    "ENV_SECRET_KEY",
    "Deadline",
    "KeysConfig",
    "RelayConnection",
    "Subscription",
    "derive_public_key",
    "extract_local_image_paths",
    "extract_resource_ids",
    "load_keys_from_env",
    "parse_secret_key",
    "public_key_npub",
    "read_bounded",
    "read_bounded_json",
    "read_bounded_text",
    "rewrite",
    "sign_record",
    "validate_secret_key_format",
    "verify_record",
]
