"""Incremental Confluence to Markdown vault sync."""

__version__ = "0.3.0"
