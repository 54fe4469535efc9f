"""Markdown note and attachment resource models."""

from __future__ import annotations

from dataclasses import dataclass

from ._validation import validate_instance


@dataclass(frozen=True, slots=True)
class Note:
    """A markdown note to publish.

    Attributes:
        title: Note title; becomes the first line of a kind 1 note or the
            ``title`` tag of a kind 30023 article.
        body: Markdown body, possibly containing image references.
    """

    title: str
    body: str

    def __post_init__(self) -> None:
        validate_instance(self.title, str, "title")
        validate_instance(self.body, str, "body")


@dataclass(frozen=True, slots=True)
class Resource:
    """Binary attachment returned by a resource store.

    Attributes:
        resource_id: Identifier used in ``![alt](:/<id>)`` references.
        payload: Raw file bytes.
        filename: Original file name, used for the content type guess and
            the authorization record content.
        mime_type: MIME type known to the store, if any.
    """

    resource_id: str
    payload: bytes
    filename: str
    mime_type: str | None = None

    def __post_init__(self) -> None:
        validate_instance(self.payload, bytes, "payload")
