"""YAML frontmatter for synced pages."""

from __future__ import annotations

import yaml

from ..sync.models import RemoteDocument
from ..sync.regions import CONFLUENCE_END_MARKER, CONFLUENCE_START_MARKER


def build_frontmatter_fields(document: RemoteDocument) -> dict:
    """Return the frontmatter mapping for *document*, in output order.

    ``created`` falls back to ``last_modified`` when the API gave no
    creation time.
    """
    return {
        "title": document.title,
        "confluence_id": document.id,
        "confluence_space": document.space_key,
        "confluence_url": document.url,
        "author": document.author,
        "created": document.created or document.last_modified,
        "updated": document.last_modified,
        "tags": list(document.labels),
    }


def build_frontmatter(document: RemoteDocument) -> str:
    """Serialise the page metadata as a ``---`` delimited YAML block."""
    body = yaml.safe_dump(
        build_frontmatter_fields(document),
        sort_keys=False,
        allow_unicode=True,
        default_flow_style=False,
        width=10**6,
    )
    return f"---\n{body}---"


def combine_content(frontmatter: str, markdown: str) -> str:
    """Join frontmatter and body, wrapping the body in the region markers.

    The result is the remote-owned part of a file; the writer appends the
    user-owned tail.
    """
    return (
        f"{frontmatter}\n\n"
        f"{CONFLUENCE_START_MARKER}\n"
        f"{markdown}\n"
        f"{CONFLUENCE_END_MARKER}"
    )
