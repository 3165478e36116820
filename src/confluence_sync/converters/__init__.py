"""Conversion from Confluence storage format to vault Markdown."""

from .common import confluence_to_markdown_lang, generate_slug
from .links import resolve_title_link, transform_links
from .macros import (
    DrawioExtractor,
    ExtractedMacro,
    MacroExtractor,
    MacroScanner,
    PlantUMLExtractor,
)
from .metadata import build_frontmatter, combine_content
from .storage_to_markdown import (
    ConfluenceMarkdownConverter,
    StorageToMarkdownConverter,
)

__all__ = [
    "ConfluenceMarkdownConverter",
    "DrawioExtractor",
    "ExtractedMacro",
    "MacroExtractor",
    "MacroScanner",
    "PlantUMLExtractor",
    "StorageToMarkdownConverter",
    "build_frontmatter",
    "combine_content",
    "confluence_to_markdown_lang",
    "generate_slug",
    "resolve_title_link",
    "transform_links",
]
