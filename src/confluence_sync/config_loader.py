"""
YAML configuration file discovery and loading for confluence_sync.

Looks for config files by convention, resolves ``!include`` directives,
expands ``${VAR}`` / ``${VAR:-default}`` references and merges the
discovered files so that the project-level file wins.

Usage:
    from confluence_sync.config_loader import load_hierarchical_config

    raw = load_hierarchical_config()
"""

import logging
import os
import re
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "CONFLUENCE_SYNC_CONFIG"
PROJECT_CONFIG_DIR = ".confluence_sync"
CONFIG_FILE_NAME = "config.yml"

_ENV_REF = re.compile(r"\$\{([^}:]+?)(?::-(.*?))?\}")


def expand_env_refs(value: str) -> str:
    """Substitute ``${VAR}`` and ``${VAR:-default}`` with environment values.

    An unset or empty variable falls back to *default*, or to an empty
    string when no default is given. Unterminated ``${`` is left alone.
    """

    def _lookup(match: re.Match) -> str:
        current = os.environ.get(match.group(1))
        if current:
            return current
        return match.group(2) if match.group(2) is not None else ""

    return _ENV_REF.sub(_lookup, value)


def _expand_tree(node: Any) -> Any:
    if isinstance(node, str):
        return expand_env_refs(node)
    if isinstance(node, dict):
        return {key: _expand_tree(val) for key, val in node.items()}
    if isinstance(node, list):
        return [_expand_tree(item) for item in node]
    return node


class IncludeLoader(yaml.SafeLoader):
    """SafeLoader that understands ``!include relative/or/absolute.yml``.

    Registered on a subclass so the global ``yaml.SafeLoader`` is untouched.
    Each instance carries the chain of files being loaded to catch cycles.
    """

    include_chain: tuple[Path, ...] = ()


def _construct_include(loader: IncludeLoader, node: yaml.ScalarNode) -> Any:
    target = Path(loader.construct_scalar(node))
    if not target.is_absolute():
        target = Path(loader.name).resolve().parent / target
    target = target.resolve()

    if target in loader.include_chain:
        cycle = " -> ".join(str(p) for p in (*loader.include_chain, target))
        raise ValueError(f"Circular include detected: {cycle}")
    if not target.exists():
        raise FileNotFoundError(
            f"Include file not found: {target} "
            f"(referenced from {Path(loader.name).resolve()})"
        )
    return load_yaml_file(target, _chain=(*loader.include_chain, target))


IncludeLoader.add_constructor("!include", _construct_include)


def load_yaml_file(path: Path, *, _chain: tuple[Path, ...] = ()) -> Any:
    """Parse one YAML file, following ``!include`` directives."""
    path = path.resolve()
    with open(path, "r", encoding="utf-8") as fh:
        loader = IncludeLoader(fh)
        loader.include_chain = _chain or (path,)
        try:
            return loader.get_single_data()
        finally:
            loader.dispose()


def discover_config_files() -> list[Path]:
    """Return the config files that exist, highest precedence first.

    Candidates:
        1. The path named by ``CONFLUENCE_SYNC_CONFIG``.
        2. ``./.confluence_sync/config.yml`` or ``config.yaml`` (project level).
        3. ``~/.config/confluence_sync/config.yml`` (user level).
    """
    candidates: list[Path] = []

    explicit = os.environ.get(CONFIG_ENV_VAR)
    if explicit:
        candidates.append(Path(explicit).expanduser().resolve())

    project_dir = Path.cwd() / PROJECT_CONFIG_DIR
    project_file = project_dir / CONFIG_FILE_NAME
    if not project_file.exists():
        project_file = project_dir / "config.yaml"
    candidates.append(project_file)
    candidates.append(
        Path.home() / ".config" / "confluence_sync" / CONFIG_FILE_NAME
    )

    return [p for p in candidates if p.exists()]


_STARTER_CONFIG = """\
# confluence-sync configuration
#
# Connection settings can also come from environment variables:
#   CONFLUENCE_URL, CONFLUENCE_EMAIL, CONFLUENCE_API_TOKEN,
#   CONFLUENCE_INSECURE, CONFLUENCE_PAGE_SIZE
#
# confluence:
#   url: https://acme.atlassian.net
#   email: me@acme.com
#   api_token: ${CONFLUENCE_API_TOKEN}
#   page_size: 50
#
# sync:
#   vault_root: ~/vault
#   sync_path: confluence/
#   attachments_path: attachments/
#   download_attachments: false
#   check_interval_minutes: 30
#   filters:
#     enabled: true
#     space_keys: [ENG]
#     labels: []
#     root_page_ids: []
#
# logging:
#   level: INFO
#   file: null
"""


def ensure_config(target: Path | None = None) -> Path:
    """Return the active config file, writing a commented starter if none exists."""
    existing = discover_config_files()
    if existing:
        logger.debug("Config file already exists: %s", existing[0])
        return existing[0]

    config_path = target or Path.cwd() / PROJECT_CONFIG_DIR / CONFIG_FILE_NAME
    config_path.parent.mkdir(parents=True, exist_ok=True)
    config_path.write_text(_STARTER_CONFIG, encoding="utf-8")
    logger.info("Created starter config: %s", config_path)
    return config_path


def load_hierarchical_config() -> dict[str, Any]:
    """Load all discovered config files and merge them.

    Files are applied from lowest to highest precedence; top-level sections
    of a higher-precedence file replace the same sections from lower ones.
    Env var references are expanded after merging. With no config files,
    an empty dict is returned.
    """
    paths = discover_config_files()
    if not paths:
        logger.debug("No config files found, using defaults")
        return {}

    merged: dict[str, Any] = {}
    for path in reversed(paths):
        logger.debug("Loading config: %s", path)
        try:
            data = load_yaml_file(path)
        except (OSError, ValueError, yaml.YAMLError):
            logger.exception("Failed to load config file %s", path)
            raise

        if isinstance(data, dict):
            merged.update(data)
        elif data is not None:
            logger.warning(
                "Config file %s has a non-mapping root (%s), skipping",
                path,
                type(data).__name__,
            )

    return _expand_tree(merged)
