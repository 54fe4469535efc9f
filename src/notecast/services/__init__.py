"""Services layer: broadcast, fetch, profile lookup, and the publisher.

Top of the diamond DAG; may import from every other layer.

Attributes:
    broadcast: Module with the concurrent publish of one record to many
        relays. See [broadcast()][notecast.services.broadcast.broadcast].
    FetchAggregator: First-match-wins queries under soft and hard deadlines.
        See [FetchAggregator][notecast.services.fetch.FetchAggregator].
    fetch_profile: Concurrent kind 0 and kind 10002 lookup.
    Publisher: Upload, rewrite, compose, sign, and broadcast a note.
        See [Publisher][notecast.services.publisher.Publisher].
    NotecastConfig: Root configuration model.
"""

from .config import (
    NotecastConfig,
    PublishConfig,
    RelaysConfig,
    TimeoutsConfig,
    UploadConfig,
)
from .fetch import FetchAggregator, FetchQuery
from .profile import ProfileSnapshot, fetch_profile, fetch_relay_list
from .publisher import PublishJob, Publisher, PublishReport


__all__ = [
    "FetchAggregator",
    "FetchQuery",
    "NotecastConfig",
    "ProfileSnapshot",
    "PublishConfig",
    "PublishJob",
    "PublishReport",
    "Publisher",
    "RelaysConfig",
    "TimeoutsConfig",
    "UploadConfig",
    "fetch_profile",
    "fetch_relay_list",
]
