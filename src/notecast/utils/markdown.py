"""Markdown image reference extraction and rewriting.

Notes reference attachments either by resource ID (``![alt](:/<hex id>)``,
the layout used by desktop note apps) or by a local file path
(``![alt](images/photo.png)``). After the attachments are uploaded,
[rewrite()][notecast.utils.markdown.rewrite] swaps each mapped reference
for its public URL.

Examples:
    ```python
    text = "Intro\\n\\n![cat](:/0123abcd)\\n\\n\\n\\nOutro"
    rewrite(text, {"0123abcd": "https://cdn/x.png"}, RewriteStyle.PLAIN_URL)
    # 'Intro\\n\\nhttps://cdn/x.png\\n\\nOutro'
    ```
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from notecast.models.constants import RewriteStyle


if TYPE_CHECKING:
    from collections.abc import Mapping


_RESOURCE_REF_RE = re.compile(r"!\[[^\]]*\]\(\s*:/([a-f0-9]+)\s*\)")
_IMAGE_TARGET_RE = re.compile(r"!\[[^\]]*\]\(\s*([^)\s]+)\s*\)")
_SCHEME_RE = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.-]*:")
_EXCESS_NEWLINES_RE = re.compile(r"\n{3,}")


def _unique(values: list[str]) -> list[str]:
    return list(dict.fromkeys(values))


def extract_resource_ids(text: str) -> list[str]:
    """Return the resource IDs referenced as ``![..](:/<id>)``, first-seen order."""
    return _unique(_RESOURCE_REF_RE.findall(text))


def extract_local_image_paths(text: str) -> list[str]:
    """Return image targets that are local paths, first-seen order.

    Targets with a URI scheme (``https:``, ``data:``) and resource
    references (``:/<id>``) are excluded.
    """
    paths = [
        target
        for target in _IMAGE_TARGET_RE.findall(text)
        if not target.startswith(":/") and not _SCHEME_RE.match(target)
    ]
    return _unique(paths)


def _reference_pattern(source_id: str) -> re.Pattern[str]:
    return re.compile(r"!\[([^\]]*)\]\(\s*(?::/)?" + re.escape(source_id) + r"\s*\)(\s*\n*)")


def _normalize_trailing(trailing: str) -> str:
    return "\n\n" if "\n\n\n" in trailing else trailing


def rewrite(text: str, mapping: Mapping[str, str], style: RewriteStyle) -> str:
    """Replace every mapped image reference with its uploaded URL.

    Args:
        text: Markdown source.
        mapping: ``source_id -> url`` for successful uploads. A source ID is
            a resource ID (matched with or without the ``:/`` prefix) or a
            local path.
        style: ``PLAIN_URL`` replaces the whole image construct with the bare
            URL; ``MARKDOWN_IMAGE`` keeps the alt text and swaps the target.

    Returns:
        The rewritten text. Whitespace after a replaced reference holding
        three or more newlines becomes exactly two, and a final pass
        collapses every run of three or more newlines to two. Unmapped
        references are left as they are; applying the same mapping twice
        gives the same result.
    """
    for source_id, url in mapping.items():
        if not source_id:
            continue

        def _replace(match: re.Match[str], url: str = url) -> str:
            alt, trailing = match.group(1), match.group(2)
            head = url if style == RewriteStyle.PLAIN_URL else f"![{alt}]({url})"
            return head + _normalize_trailing(trailing)

        text = _reference_pattern(source_id).sub(_replace, text)

    return _EXCESS_NEWLINES_RE.sub("\n\n", text)
