"""Note publishing: upload attachments, rewrite, compose, sign, and broadcast.

[Publisher][notecast.services.publisher.Publisher] ties the engines
together for one identity and one configuration:

```text
resolve relays -> upload attachments (sequential) -> rewrite body
    -> compose record (kind 1 or 30023) -> sign -> broadcast
```

Local validation failures (no relays, bad key) raise before any upload or
publish. Everything that happens per relay or per attachment is reported in
the returned [PublishReport][notecast.services.publisher.PublishReport].

[PublishJob][notecast.services.publisher.PublishJob] runs a publish in the
background. Dismissing the job only hides its result; the upload and
broadcast work always runs to completion.

See Also:
    [broadcast()][notecast.services.broadcast.broadcast]: Fan-out publish.
    [BlossomClient][notecast.nips.blossom.BlossomClient]: Attachment uploads.
    [FetchAggregator][notecast.services.fetch.FetchAggregator]: NIP-65 relay
        discovery and profile lookups.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from notecast.core.exceptions import NoRelaysConfiguredError
from notecast.core.logger import Logger
from notecast.core.metrics import record_broadcast, record_fetch, record_uploads, track_duration
from notecast.models.constants import PublishMode, RelaySource
from notecast.models.outcome import BatchUploadResult
from notecast.nips.blossom import BlossomClient, DirectoryResourceStore, ResourceStore
from notecast.nips.event_builders import build_note, suggest_publish_mode
from notecast.services.broadcast import broadcast
from notecast.services.fetch import FetchAggregator
from notecast.services.profile import (
    PROFILE_QUERY,
    RELAY_LIST_QUERY,
    ProfileSnapshot,
    fetch_profile,
    fetch_relay_list,
)
from notecast.utils.keys import derive_public_key, public_key_npub, sign_record
from notecast.utils.markdown import extract_local_image_paths, extract_resource_ids, rewrite
from notecast.utils.transport import RelayConnection


if TYPE_CHECKING:
    from notecast.models.note import Note
    from notecast.models.outcome import BroadcastReport
    from notecast.models.record import Record
    from notecast.services.config import NotecastConfig


ConnectionFactory = Callable[[str], RelayConnection]

NO_MANUAL_RELAYS_MESSAGE = "Please enter at least one relay in the manual relay list setting."
NO_NIP65_RELAYS_MESSAGE = (
    "No NIP-65 relays found. Please switch to manual relay mode "
    "or update your NIP-65 relay list on Nostr."
)


@dataclass(frozen=True, slots=True)
class PublishReport:
    """Everything that happened while publishing one note.

    Attributes:
        record: The signed record that was broadcast.
        mode: Regular note or long-form article.
        uploads: Per-attachment upload results.
        broadcast: Per-relay publish outcomes.
    """

    record: Record
    mode: PublishMode
    uploads: BatchUploadResult
    broadcast: BroadcastReport

    @property
    def success(self) -> bool:
        """True if at least one relay accepted the record."""
        return self.broadcast.any_success


@dataclass(eq=False)
class PublishJob:
    """Handle on a publish running in the background.

    ``dismiss()`` flips ``displayed`` to False and nothing else; awaiting
    ``result()`` never cancels the underlying task, even if the awaiting
    coroutine is itself cancelled.
    """

    task: asyncio.Task[PublishReport]
    displayed: bool = field(default=True)

    def dismiss(self) -> None:
        self.displayed = False

    @property
    def done(self) -> bool:
        return self.task.done()

    async def result(self) -> PublishReport:
        return await asyncio.shield(self.task)


class Publisher:
    """Publishes notes for one identity.

    Args:
        config: Validated configuration; keys come from ``config.identity``.
        store: Resource store for ``:/<id>`` attachments. Defaults to a
            [DirectoryResourceStore][notecast.nips.blossom.DirectoryResourceStore]
            over ``upload.resources_dir`` when that is set.
        base_dir: Directory local image paths are resolved against.
        connection_factory: Builds relay connections (test seam).
    """

    def __init__(
        self,
        config: NotecastConfig,
        *,
        store: ResourceStore | None = None,
        base_dir: str | Path | None = None,
        connection_factory: ConnectionFactory = RelayConnection,
    ) -> None:
        self._config = config
        self._keys = config.identity.keys
        if store is None and config.upload.resources_dir is not None:
            store = DirectoryResourceStore(config.upload.resources_dir)
        self._store = store
        self._base_dir = Path(base_dir) if base_dir is not None else None
        self._connection_factory = connection_factory
        self._jobs: set[asyncio.Task[PublishReport]] = set()
        self._logger = Logger("publisher")

    @property
    def config(self) -> NotecastConfig:
        return self._config

    @property
    def pubkey(self) -> str:
        return derive_public_key(self._keys)

    @property
    def npub(self) -> str:
        return public_key_npub(self._keys)

    def _aggregator(self) -> FetchAggregator:
        timeouts = self._config.timeouts
        return FetchAggregator(
            connect_timeout=timeouts.connect,
            soft_timeout=timeouts.fetch_soft,
            hard_timeout=timeouts.fetch_hard,
            allow_insecure=self._config.relays.allow_insecure,
            connection_factory=self._connection_factory,
        )

    # -- Metadata --------------------------------------------------------------

    async def fetch_profile(self) -> ProfileSnapshot:
        """Look up this identity's profile and relay list on the discovery relays.

        Raises:
            NoReachableEndpointsError: If no discovery relay could be connected.
        """
        with track_duration("profile"):
            snapshot = await fetch_profile(
                self.pubkey, self.npub, self._config.relays.discovery, self._aggregator()
            )
        record_fetch(PROFILE_QUERY, snapshot.profile)
        record_fetch(RELAY_LIST_QUERY, snapshot.relay_list)
        return snapshot

    async def resolve_relays(self) -> list[str]:
        """Return the relays to publish to for the configured source.

        Raises:
            NoRelaysConfiguredError: If the resolved list is empty.
            NoReachableEndpointsError: If ``nip65`` discovery reaches no relay.
        """
        relays_config = self._config.relays
        if relays_config.source == RelaySource.MANUAL:
            if not relays_config.manual:
                raise NoRelaysConfiguredError(NO_MANUAL_RELAYS_MESSAGE)
            return list(relays_config.manual)

        result = await fetch_relay_list(self.pubkey, relays_config.discovery, self._aggregator())
        record_fetch(RELAY_LIST_QUERY, result)
        urls = result.value.write_urls if result.found else []  # type: ignore[union-attr]
        if not urls:
            raise NoRelaysConfiguredError(NO_NIP65_RELAYS_MESSAGE)
        self._logger.info("relays_resolved", source=str(relays_config.source), relays=len(urls))
        return urls

    # -- Uploads ---------------------------------------------------------------

    async def upload_attachments(self, body: str) -> BatchUploadResult:
        """Upload every attachment referenced in *body*, one at a time.

        Returns an empty result when uploads are disabled.
        """
        upload = self._config.upload
        if not upload.enabled or not upload.server_url:
            return BatchUploadResult()

        resource_ids = extract_resource_ids(body)
        if resource_ids and self._store is None:
            self._logger.warning("resources_skipped", count=len(resource_ids), reason="no_store")
            resource_ids = []
        paths = extract_local_image_paths(body)
        if not resource_ids and not paths:
            return BatchUploadResult()

        client = BlossomClient(
            upload.server_url,
            self._keys,
            ttl=upload.authorization_ttl,
            timeout=upload.timeout,
            max_response_size=upload.max_response_size,
            base_dir=self._base_dir,
        )
        batch = await client.upload_batch(resource_ids=resource_ids, paths=paths, store=self._store)
        for failed in batch.failed:
            self._logger.warning(
                "attachment_upload_failed", source=failed.source_id, error=failed.error_message
            )
        return batch

    # -- Publish ---------------------------------------------------------------

    async def publish(self, note: Note, mode: PublishMode | None = None) -> PublishReport:
        """Publish *note* and report per attachment and per relay.

        Args:
            note: Title and markdown body.
            mode: Regular or long-form; ``None`` picks long-form for bodies
                longer than ``publish.long_note_threshold``.

        Raises:
            NoRelaysConfiguredError: If there is no relay to publish to.
            NoReachableEndpointsError: If ``nip65`` discovery reaches no relay.
        """
        if mode is None:
            mode = suggest_publish_mode(note.body, self._config.publish.long_note_threshold)

        with track_duration("publish"):
            relays = await self.resolve_relays()
            uploads = await self.upload_attachments(note.body)
            body = note.body
            if uploads.mapping:
                body = rewrite(body, uploads.mapping, mode.rewrite_style)

            template = build_note(
                mode, note.title, body, client_tag=self._config.publish.client_tag
            )
            record = sign_record(template, self._keys)
            self._logger.info("record_signed", record_id=record.id, kind=record.kind, mode=str(mode))

            report = await broadcast(
                record,
                relays,
                connect_timeout=self._config.timeouts.connect,
                publish_timeout=self._config.timeouts.publish,
                allow_insecure=self._config.relays.allow_insecure,
                connection_factory=self._connection_factory,
            )

        record_uploads(uploads)
        record_broadcast(report)
        return PublishReport(record=record, mode=mode, uploads=uploads, broadcast=report)

    def submit(self, note: Note, mode: PublishMode | None = None) -> PublishJob:
        """Start :meth:`publish` in the background and return its job handle."""
        task = asyncio.create_task(self.publish(note, mode))
        self._jobs.add(task)
        task.add_done_callback(self._jobs.discard)
        return PublishJob(task)
