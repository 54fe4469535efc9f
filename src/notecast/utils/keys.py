"""Nostr identity: key loading, signing, and verification.

Wraps ``nostr_sdk`` so the rest of notecast only deals with
[RecordTemplate][notecast.models.record.RecordTemplate] and
[Record][notecast.models.record.Record] values. Secret keys are accepted as
``nsec1`` bech32 strings or 64-character hex.

Warning:
    Secret keys must **never** be stored in configuration files or logged.
    They are read from an environment variable named in the config, and
    error messages produced here never echo the key.

Note:
    Key loading happens eagerly at config validation time via
    [KeysConfig][notecast.utils.keys.KeysConfig]'s model validator, so a
    missing or malformed key stops the CLI before any network activity.

Examples:
    ```python
    import os

    os.environ["NOSTR_SECRET_KEY"] = "nsec1..."  # pragma: allowlist secret
    keys = load_keys_from_env("NOSTR_SECRET_KEY")
    record = sign_record(RecordTemplate(kind=1, content="hi"), keys)
    ```
"""

from __future__ import annotations

import json
import os
import re
from typing import Any

from nostr_sdk import Event as NostrEvent
from nostr_sdk import EventBuilder, Keys, Kind, Tag, Timestamp
from pydantic import BaseModel, Field, model_validator

from notecast.core.exceptions import ConfigurationError, InvalidCredentialFormatError
from notecast.models.record import Record, RecordTemplate


ENV_SECRET_KEY = "NOSTR_SECRET_KEY"  # pragma: allowlist secret

_NSEC_PREFIX = "nsec1"
_NSEC_MIN_LENGTH = 50
_NSEC_MAX_LENGTH = 70
_HEX_KEY_RE = re.compile(r"^[0-9a-fA-F]{64}$")


def validate_secret_key_format(value: str) -> str:
    """Check the surface shape of a secret key before decoding it.

    Accepts ``nsec1`` bech32 strings between 50 and 70 characters and
    64-character hex strings. Surrounding whitespace is stripped.

    Returns:
        The stripped key.

    Raises:
        InvalidCredentialFormatError: If the value has neither shape.
    """
    if not isinstance(value, str):
        raise InvalidCredentialFormatError("Secret key must be a string")
    key = value.strip()
    if key.startswith(_NSEC_PREFIX) and _NSEC_MIN_LENGTH <= len(key) <= _NSEC_MAX_LENGTH:
        return key
    if _HEX_KEY_RE.match(key):
        return key
    raise InvalidCredentialFormatError(
        "Invalid secret key format. Expected an nsec1... key or 64 hex characters"
    )


def parse_secret_key(value: str) -> Keys:
    """Decode a secret key into a ``nostr_sdk.Keys`` pair.

    Raises:
        InvalidCredentialFormatError: If the shape check fails or the key
            does not decode (bad checksum, out-of-range scalar).
    """
    key = validate_secret_key_format(value)
    try:
        return Keys.parse(key)
    # Intentionally broad: nostr_sdk raises its own FFI error types
    except Exception:
        raise InvalidCredentialFormatError("Secret key could not be decoded") from None


def derive_public_key(keys: Keys) -> str:
    """Return the hex public key of *keys*."""
    return keys.public_key().to_hex()


def public_key_npub(keys: Keys) -> str:
    """Return the ``npub1`` bech32 public key of *keys*."""
    return keys.public_key().to_bech32()


def sign_record(template: RecordTemplate, keys: Keys) -> Record:
    """Sign an unsigned template and return the immutable record.

    The template's ``created_at`` is kept, so the record ID is deterministic
    for a given template and key.
    """
    builder = (
        EventBuilder(Kind(int(template.kind)), template.content)
        .tags([Tag.parse(list(tag)) for tag in template.tags])
        .custom_created_at(Timestamp.from_secs(template.created_at))
    )
    event = builder.sign_with_keys(keys)
    return Record.from_dict(json.loads(event.as_json()))


def verify_record(record: Record) -> bool:
    """Check the ID and Schnorr signature of a record.

    Returns:
        ``False`` for any record ``nostr_sdk`` refuses to parse or verify.
    """
    try:
        return bool(NostrEvent.from_json(record.to_json()).verify())
    # Intentionally broad: a malformed record is simply not valid
    except Exception:
        return False


def load_keys_from_env(env_var: str) -> Keys:
    """Load Nostr keys from an environment variable.

    Raises:
        ConfigurationError: If the variable is unset or empty.
        InvalidCredentialFormatError: If the value is not a usable key.
    """
    value = os.getenv(env_var)
    if not value:
        raise ConfigurationError(
            f"{env_var} environment variable is required (nsec1... or 64 hex characters)"
        )
    return parse_secret_key(value)


class KeysConfig(BaseModel):
    """Pydantic model that auto-loads Nostr keys from an environment variable.

    Attributes:
        keys_env: Environment variable name for the secret key.
        keys: Loaded ``nostr_sdk.Keys`` instance.

    Warning:
        The ``keys`` field holds a live secret key. Do not serialize this
        model to logs or JSON.
    """

    model_config = {"arbitrary_types_allowed": True}

    keys_env: str = Field(
        default=ENV_SECRET_KEY,
        min_length=1,
        description="Environment variable name for the secret key",
    )
    keys: Keys = Field(description="Keys loaded from keys_env")

    @model_validator(mode="before")
    @classmethod
    def _load_keys_from_env(cls, data: Any) -> Any:
        if data is None:
            data = {}
        if isinstance(data, dict) and "keys" not in data:
            data = dict(data)
            data["keys"] = load_keys_from_env(data.get("keys_env", ENV_SECRET_KEY))
        return data
