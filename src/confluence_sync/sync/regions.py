"""Split synced files into their remote-owned and user-owned regions.

A synced file looks like::

    ---
    <frontmatter>
    ---

    <!-- CONFLUENCE_START -->
    <converted page body>
    <!-- CONFLUENCE_END -->

    ## Local Notes
    ...

Everything between the markers is overwritten on every sync; everything
after the end marker belongs to the user. This module is pure text
parsing; it performs no I/O.
"""

from __future__ import annotations

import re

from .models import ParsedFileContent

CONFLUENCE_START_MARKER = "<!-- CONFLUENCE_START -->"
CONFLUENCE_END_MARKER = "<!-- CONFLUENCE_END -->"

LOCAL_NOTES_HEADING = "## Local Notes"
LOCAL_NOTES_TEMPLATE = f"{LOCAL_NOTES_HEADING}\n\n\n## Backlinks\n"

_FRONTMATTER = re.compile(r"^---\r?\n([\s\S]*?)---\r?\n")


def parse_file_content(text: str) -> ParsedFileContent:
    """Split *text* around the region markers.

    When either marker is missing, or the start marker does not precede the
    end marker, the whole input is returned as remote-owned content with
    ``has_markers=False``. Text before the start marker (the frontmatter)
    is not part of the result; see ``extract_frontmatter``.
    """
    start = text.find(CONFLUENCE_START_MARKER)
    end = text.find(CONFLUENCE_END_MARKER)

    if start == -1 or end == -1 or start >= end:
        return ParsedFileContent(
            confluence_content=text, local_notes="", has_markers=False
        )

    return ParsedFileContent(
        confluence_content=text[start + len(CONFLUENCE_START_MARKER) : end].strip(),
        local_notes=text[end + len(CONFLUENCE_END_MARKER) :].strip(),
        has_markers=True,
    )


def extract_frontmatter(text: str) -> tuple[str, str]:
    """Return ``(frontmatter, body)``.

    ``frontmatter`` includes both ``---`` delimiter lines and is ``""``
    when the text does not start with a frontmatter block.
    """
    match = _FRONTMATTER.match(text)
    if not match:
        return "", text
    return match.group(0), text[match.end() :]


def resolve_local_notes(existing: str | None) -> str:
    """Pick the user-owned tail to write after fresh remote content.

    Args:
        existing: Current file text, or None when the file does not exist.

    Returns:
        The stored user section verbatim when the file carries markers and
        a non-empty tail, otherwise the default local notes template.
    """
    if existing is None:
        return LOCAL_NOTES_TEMPLATE
    parsed = parse_file_content(existing)
    if parsed.has_markers and parsed.local_notes:
        return parsed.local_notes
    return LOCAL_NOTES_TEMPLATE
