"""Unified configuration schema for confluence_sync.

Defines Pydantic models for the unified config structure with dedicated
sections for the Confluence connection, the sync behaviour and logging.
Includes an adapter function producing the ``Config`` dataclass used by
``ConfluenceClient``.

Usage:
    from confluence_sync.config_schema import (
        UnifiedConfig, build_config, to_legacy_config,
    )

    raw = load_hierarchical_config()
    unified = build_config(raw)
    legacy = to_legacy_config(unified, cli_overrides={"url": "https://..."})
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field

if TYPE_CHECKING:
    from .config import Config

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Section models
# ---------------------------------------------------------------------------


class ConfluenceConfig(BaseModel):
    """Confluence connection settings.

    All fields are optional to support zero-config: env vars and CLI args
    can supply them at runtime instead.
    """

    url: str | None = Field(
        default=None, description="Confluence site URL"
    )
    email: str | None = Field(
        default=None, description="Account e-mail for API token auth"
    )
    api_token: str | None = Field(default=None, description="API token")
    insecure: bool = Field(
        default=False,
        description="Disable SSL verification (development only)",
    )
    debug: bool = Field(default=False, description="Enable debug mode")
    page_size: int = Field(
        default=50,
        ge=1,
        le=250,
        description="Results per search request (1-250)",
    )

    model_config = {"frozen": True}


class SyncFilters(BaseModel):
    """Query filter narrowing which pages are synced.

    Attributes:
        enabled: When False the filter is ignored and every page matches.
        space_keys: Space keys to include (empty = all spaces).
        labels: Labels to include (empty = no label filter).
        root_page_ids: Numeric page ids whose subtrees are included.
    """

    enabled: bool = False
    space_keys: list[str] = Field(default_factory=list)
    labels: list[str] = Field(default_factory=list)
    root_page_ids: list[str] = Field(default_factory=list)

    model_config = {"frozen": True}


class SyncConfig(BaseModel):
    """Sync behaviour settings.

    Paths are relative to the vault root unless absolute.
    """

    vault_root: str = Field(
        default=".", description="Root directory of the local vault"
    )
    sync_path: str = Field(
        default="confluence/",
        description="Folder (inside the vault) receiving synced pages",
    )
    attachments_path: str = Field(
        default="attachments/",
        description="Folder (inside the vault) receiving attachments",
    )
    history_path: str = Field(
        default=".confluence_sync/sync-history.json",
        description="Sync history ledger location (inside the vault)",
    )
    force_full_sync: bool = Field(
        default=False,
        description="Re-sync every page regardless of timestamps",
    )
    download_attachments: bool = Field(
        default=False,
        description="Download page attachments and rewrite their URLs",
    )
    show_notifications: bool = Field(
        default=True,
        description="Report background change checks to the user",
    )
    check_interval_minutes: int = Field(
        default=30,
        ge=1,
        description="Polling interval for background change checks",
    )
    search_limit: int = Field(
        default=500,
        ge=1,
        description="Maximum number of pages fetched per sync pass",
    )
    filters: SyncFilters = Field(default_factory=SyncFilters)

    model_config = {"frozen": True}


class LoggingConfig(BaseModel):
    """Logging configuration.

    Attributes:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        file: Optional log file path.
    """

    level: str = Field(default="INFO", description="Log level")
    file: str | None = Field(default=None, description="Log file path")

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Top-level unified config
# ---------------------------------------------------------------------------


class UnifiedConfig(BaseModel):
    """Top-level unified configuration.

    Aggregates all config sections. Every section has sensible defaults,
    so ``UnifiedConfig()`` (zero-config) is always valid.
    """

    confluence: ConfluenceConfig = Field(default_factory=ConfluenceConfig)
    sync: SyncConfig = Field(default_factory=SyncConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Factory function
# ---------------------------------------------------------------------------


def build_config(raw_data: dict) -> UnifiedConfig:
    """Construct a ``UnifiedConfig`` from the raw dict returned by
    ``load_hierarchical_config()``.

    Handles missing sections gracefully; anything absent gets defaults.

    Args:
        raw_data: Merged configuration dictionary.

    Returns:
        Validated ``UnifiedConfig`` instance.
    """
    if not raw_data:
        return UnifiedConfig()

    return UnifiedConfig(**raw_data)


# ---------------------------------------------------------------------------
# Adapter: UnifiedConfig -> Config dataclass
# ---------------------------------------------------------------------------


def to_legacy_config(
    unified: UnifiedConfig,
    cli_overrides: dict | None = None,
) -> Config:
    """Convert a ``UnifiedConfig`` into the ``Config`` dataclass,
    applying CLI overrides on top.

    The precedence applied here is:
        CLI override > unified config value > empty

    CLI overrides dict keys: url, email, api_token, insecure, debug.

    Args:
        unified: The unified config produced by ``build_config()``.
        cli_overrides: Optional dict of CLI argument values.

    Returns:
        ``Config`` dataclass instance (NOT validated; caller should run
        ``validate_config()`` separately if needed).
    """
    # Imported here to avoid a circular import
    from .config import Config

    overrides = cli_overrides or {}

    return Config(
        confluence_url=overrides.get("url") or unified.confluence.url or "",
        email=overrides.get("email") or unified.confluence.email or "",
        api_token=overrides.get("api_token")
        or unified.confluence.api_token
        or "",
        insecure=overrides.get("insecure", False)
        or unified.confluence.insecure,
        debug=overrides.get("debug", False) or unified.confluence.debug,
        page_size=unified.confluence.page_size,
    )
