r"""notecast -- publish markdown notes to Nostr relays.

Uploads a note's images to a Blossom server, rewrites the references,
signs the note as a kind 1 note or a kind 30023 article, and broadcasts it
to every configured relay with per-relay accounting.

Architecture follows a **diamond DAG** dependency structure where imports
flow strictly downward:

```text
              services         Broadcast, fetch, profile, publisher
             /   |   \
          core  nips  utils    Logging/metrics, record builders/Blossom, transport/keys
             \   |   /
              models           Pure frozen dataclasses (zero I/O)
```

Note:
    Top-level imports (``from notecast import Publisher``) use lazy loading
    and resolve on first access.
"""

import importlib
from importlib.metadata import version as _get_version


__version__ = _get_version("notecast")

__all__ = [
    "BroadcastReport",
    "FetchAggregator",
    "Logger",
    "Note",
    "NotecastConfig",
    "PublishMode",
    "Publisher",
    "Record",
    "RecordFilter",
    "RelayConnection",
    "broadcast",
    "rewrite",
    "upload_blob",
]

_LAZY_IMPORTS: dict[str, tuple[str, str]] = {
    "Logger": ("notecast.core", "Logger"),
    "BroadcastReport": ("notecast.models", "BroadcastReport"),
    "Note": ("notecast.models", "Note"),
    "PublishMode": ("notecast.models", "PublishMode"),
    "Record": ("notecast.models", "Record"),
    "RecordFilter": ("notecast.models", "RecordFilter"),
    "upload_blob": ("notecast.nips", "upload_blob"),
    "RelayConnection": ("notecast.utils", "RelayConnection"),
    "rewrite": ("notecast.utils", "rewrite"),
    "FetchAggregator": ("notecast.services", "FetchAggregator"),
    "NotecastConfig": ("notecast.services", "NotecastConfig"),
    "Publisher": ("notecast.services", "Publisher"),
    "broadcast": ("notecast.services.broadcast", "broadcast"),
}


def __getattr__(name: str) -> object:
    if name in _LAZY_IMPORTS:
        module_path, attr_name = _LAZY_IMPORTS[name]
        module = importlib.import_module(module_path)
        value = getattr(module, attr_name)
        globals()[name] = value  # Cache for subsequent access
        return value
    raise AttributeError(f"module 'notecast' has no attribute {name!r}")


def __dir__() -> list[str]:
    return __all__
