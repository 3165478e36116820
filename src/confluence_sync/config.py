"""Connection configuration for the Confluence client.

Reads Confluence connection settings from CLI args, environment variables,
.env files, and YAML config file fallbacks.

Precedence (highest to lowest):
    CLI args > Environment variables > .env file > YAML config > Built-in defaults

Environment variables:
    CONFLUENCE_URL: Confluence site URL, e.g. https://acme.atlassian.net (required)
    CONFLUENCE_EMAIL: Account e-mail used for API token auth (required)
    CONFLUENCE_API_TOKEN: API token (required)
    CONFLUENCE_INSECURE: Skip SSL verification (optional, default: false)
    CONFLUENCE_PAGE_SIZE: Results per search request (optional, default: 50)
"""

import logging
import os
from dataclasses import dataclass
from urllib.parse import urlparse

logger = logging.getLogger(__name__)


@dataclass
class Config:
    confluence_url: str
    email: str
    api_token: str
    insecure: bool = False
    debug: bool = False
    page_size: int = 50


def validate_config(config: Config) -> None:
    """Validate configuration values and raise ValueError if invalid.

    Args:
        config: Config instance to validate.

    Raises:
        ValueError: If URL format is invalid or credentials are empty.
    """
    config.confluence_url = config.confluence_url.strip()

    if not config.confluence_url.startswith(("http://", "https://")):
        raise ValueError(
            f"Invalid Confluence URL '{config.confluence_url}': must start with http:// or https://"
        )

    parsed = urlparse(config.confluence_url)
    if not parsed.hostname:
        raise ValueError(
            f"Invalid Confluence URL '{config.confluence_url}': URL must include a hostname"
        )

    config.confluence_url = config.confluence_url.removesuffix("/")
    # Cloud sites are addressed by host; the client appends /wiki itself
    config.confluence_url = config.confluence_url.removesuffix("/wiki")

    if not config.email.strip():
        raise ValueError(
            "Confluence e-mail cannot be empty. Set CONFLUENCE_EMAIL environment variable."
        )

    if not config.api_token.strip():
        raise ValueError(
            "Confluence API token cannot be empty. Set CONFLUENCE_API_TOKEN environment variable."
        )

    if config.insecure:
        logger.warning(
            "WARNING: SSL verification disabled (insecure=True). Use only for development."
        )


def _get_bool_env(key: str) -> bool | None:
    """Return True/False from env var, or None if unset."""
    val = os.getenv(key)
    if val is None:
        return None
    return val.lower() in ("true", "1", "yes", "on")


def load_config(
    url: str | None = None,
    email: str | None = None,
    api_token: str | None = None,
    insecure: bool = False,
    debug: bool = False,
    yaml_fallbacks: dict | None = None,
) -> Config:
    """Load configuration with unified precedence.

    Resolution order for each field (highest to lowest):
        CLI arg > env var / .env > yaml_fallbacks > built-in default

    The caller is responsible for calling ``load_dotenv()`` before this
    function so that .env values are available via ``os.getenv()``.

    Args:
        url: Override Confluence URL.
        email: Override account e-mail.
        api_token: Override API token.
        insecure: Skip SSL verification (CLI flag).
        debug: Enable debug logging (CLI flag).
        yaml_fallbacks: Values from the YAML ``confluence`` section, used
            when CLI arg and env var are both unset.

    Returns:
        Validated Config instance.

    Raises:
        ValueError: If URL, e-mail or token is missing after checking all
            sources, or a numeric value is out of range.
    """
    fb = yaml_fallbacks or {}

    confluence_url = url or os.getenv("CONFLUENCE_URL") or fb.get("url")
    if not confluence_url:
        raise ValueError(
            "Confluence URL not found. Set CONFLUENCE_URL environment variable, "
            "pass --url CLI argument, or add 'url' to config.yml."
        )

    final_email = email or os.getenv("CONFLUENCE_EMAIL") or fb.get("email")
    if not final_email:
        raise ValueError(
            "Confluence e-mail not found. Set CONFLUENCE_EMAIL environment variable, "
            "pass --email CLI argument, or add 'email' to config.yml."
        )

    final_token = (
        api_token or os.getenv("CONFLUENCE_API_TOKEN") or fb.get("api_token")
    )
    if not final_token:
        raise ValueError(
            "Confluence API token not found. Set CONFLUENCE_API_TOKEN environment variable "
            "or add 'api_token' to config.yml."
        )

    if insecure:
        final_insecure = True
    else:
        env_insecure = _get_bool_env("CONFLUENCE_INSECURE")
        if env_insecure is not None:
            final_insecure = env_insecure
        else:
            final_insecure = bool(fb.get("insecure", False))

    if debug:
        final_debug = True
    else:
        env_debug = _get_bool_env("CONFLUENCE_DEBUG")
        if env_debug is not None:
            final_debug = env_debug
        else:
            final_debug = bool(fb.get("debug", False))

    page_size_raw = os.getenv("CONFLUENCE_PAGE_SIZE")
    if page_size_raw is not None:
        try:
            final_page_size = int(page_size_raw)
        except ValueError:
            raise ValueError(
                f"Invalid CONFLUENCE_PAGE_SIZE '{page_size_raw}': must be a number between 1 and 250"
            ) from None
        if not (1 <= final_page_size <= 250):
            raise ValueError(
                f"Invalid CONFLUENCE_PAGE_SIZE '{page_size_raw}': must be a number between 1 and 250"
            )
    elif "page_size" in fb:
        final_page_size = int(fb["page_size"])
    else:
        final_page_size = 50

    config = Config(
        confluence_url=confluence_url.strip(),
        email=final_email.strip(),
        api_token=final_token.strip(),
        insecure=final_insecure,
        debug=final_debug,
        page_size=final_page_size,
    )

    validate_config(config)

    return config
