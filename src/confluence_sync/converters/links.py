"""Rewrite Confluence page links in converted Markdown as wikilinks."""

from __future__ import annotations

import logging
import re
from typing import Mapping

from .common import generate_slug

logger = logging.getLogger(__name__)

_MARKDOWN_PAGE_LINK = re.compile(
    r"\[([^\]]+)\]\(([^)]*/wiki/(?:spaces/[^/)]+/)?pages/(\d+)[^)]*)\)"
)


def file_stem(filename: str) -> str:
    return filename.rsplit("/", 1)[-1].removesuffix(".md")


def resolve_title_link(title: str, title_files: Mapping[str, str] | None = None) -> str:
    """Return the file stem a link to the page titled *title* should target.

    Pages known to *title_files* (title to synced file name) use their
    actual file; any other title falls back to its slug, the name the page
    gets once it is synced.
    """
    filename = (title_files or {}).get(title)
    if filename:
        return file_stem(filename)
    return generate_slug(title)


def transform_links(markdown: str, page_files: Mapping[str, str]) -> str:
    """Replace ``[text](.../pages/<id>/...)`` links with ``[[file|text]]``.

    *page_files* maps page ids to synced file names (with or without
    ``.md``). Links to pages that were never synced keep their URL and get
    an HTML comment naming the missing page id.
    """

    def _rewrite(match: re.Match) -> str:
        text, page_id = match.group(1), match.group(3)
        filename = page_files.get(page_id)
        if not filename:
            return f"{match.group(0)} <!-- unsynced page {page_id} -->"
        stem = file_stem(filename)
        if text in (stem, filename):
            return f"[[{stem}]]"
        return f"[[{stem}|{text}]]"

    result, count = _MARKDOWN_PAGE_LINK.subn(_rewrite, markdown)
    if count:
        logger.debug("Rewrote %d Confluence page links", count)
    return result
