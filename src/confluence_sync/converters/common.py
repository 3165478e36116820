"""Common utilities for storage-format conversion."""

import re

# =============================================================================
# Code Block Language Mapping
# =============================================================================
#
# Confluence code macros carry a ``language`` parameter whose values follow
# the macro's own brush names (``js``, ``c#``, ``none`` ...). Markdown code
# fences expect highlighter names, so known brushes are normalised and
# unknown ones pass through unchanged.
# =============================================================================

_CONFLUENCE_TO_MARKDOWN_LANG: dict[str, str] = {
    # Shell variants
    "shell": "bash",
    "sh": "bash",
    "powershell": "powershell",
    # JavaScript / TypeScript
    "js": "javascript",
    "ts": "typescript",
    # C family
    "c#": "csharp",
    "c++": "cpp",
    # Markup
    "html/xml": "xml",
    "actionscript3": "actionscript",
    # "No highlighting" in the macro editor
    "none": "",
    "text": "text",
    "plain": "text",
    "plaintext": "text",
}


def confluence_to_markdown_lang(language: str | None) -> str:
    """
    Convert a Confluence code macro language to a Markdown fence language.

    Args:
        language: Value of the macro's ``language`` parameter, or None.

    Returns:
        Fence language identifier, or ``""`` when there is none.

    Examples:
        >>> confluence_to_markdown_lang("js")
        'javascript'
        >>> confluence_to_markdown_lang("Python")
        'python'
        >>> confluence_to_markdown_lang(None)
        ''
    """
    if not language:
        return ""
    lang = language.strip().lower()
    return _CONFLUENCE_TO_MARKDOWN_LANG.get(lang, lang)


# =============================================================================
# Slugs
# =============================================================================

SLUG_MAX_LENGTH = 200


def generate_slug(title: str) -> str:
    """
    Turn a page title into a lowercase, file-system-safe slug.

    Word characters are kept (including non-Latin scripts), runs of spaces,
    underscores and dashes collapse into one dash. Titles that reduce to
    nothing become ``"untitled"``.

    Examples:
        >>> generate_slug("Release Notes (v2.0)!")
        'release-notes-v20'
        >>> generate_slug("   ")
        'untitled'
    """
    if not title or not title.strip():
        return "untitled"
    slug = title.strip().lower()
    slug = re.sub(r"[^\w\s-]", "", slug)
    slug = re.sub(r"[\s_-]+", "-", slug)
    slug = slug.strip("-")
    if not slug:
        return "untitled"
    return slug[:SLUG_MAX_LENGTH].rstrip("-") or "untitled"
