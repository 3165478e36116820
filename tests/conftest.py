"""Shared pytest fixtures for confluence-sync tests."""

from __future__ import annotations

import posixpath
from typing import Any
from unittest.mock import MagicMock

import pytest
from dotenv import load_dotenv

from confluence_sync.config import Config
from confluence_sync.sync.models import Attachment, RemoteDocument

load_dotenv()


def pytest_addoption(parser):
    """Add custom CLI options for test filtering."""
    parser.addoption(
        "--run-live",
        action="store_true",
        default=False,
        help="Run tests that require a live Confluence site",
    )


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "live: mark test as requiring a live Confluence site"
    )


def pytest_collection_modifyitems(config, items):
    """Skip live tests unless --run-live is passed."""
    if config.getoption("--run-live"):
        return
    skip_live = pytest.mark.skip(reason="need --run-live option to run")
    for item in items:
        if "live" in item.keywords:
            item.add_marker(skip_live)


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


class InMemoryAdapter:
    """``FileAdapter`` over a dict; folders are tracked separately."""

    def __init__(self, files: dict[str, str] | None = None) -> None:
        self.files: dict[str, str] = dict(files or {})
        self.binaries: dict[str, bytes] = {}
        self.folders: set[str] = set()
        self.writes: list[str] = []
        self.fail_writes: set[str] = set()

    async def exists(self, path: str) -> bool:
        path = path.rstrip("/")
        return (
            path in self.files
            or path in self.binaries
            or path in self.folders
        )

    async def read(self, path: str) -> str:
        if path not in self.files:
            raise FileNotFoundError(path)
        return self.files[path]

    async def write(self, path: str, content: str) -> None:
        if path in self.fail_writes:
            raise OSError(f"disk full: {path}")
        self.writes.append(path)
        self.files[path] = content

    async def create_folder(self, path: str) -> None:
        path = path.rstrip("/")
        while path:
            self.folders.add(path)
            path = posixpath.dirname(path)

    async def create_binary(self, path: str, data: bytes) -> None:
        if path in self.fail_writes:
            raise OSError(f"disk full: {path}")
        self.binaries[path] = data


class FakeConfluenceClient:
    """Minimal ``RemoteClient`` replacement serving canned pages."""

    def __init__(
        self,
        documents: list[RemoteDocument] | None = None,
        attachments: dict[str, list[Attachment]] | None = None,
        downloads: dict[str, bytes] | None = None,
    ) -> None:
        self.documents = list(documents or [])
        self.attachments = attachments or {}
        self.downloads = downloads or {}
        self.search_error: Exception | None = None
        self.connected = False
        self.search_calls: list[tuple[str, int]] = []

    def search_pages(
        self, cql: str = "type = page", limit: int = 50
    ) -> list[RemoteDocument]:
        self.search_calls.append((cql, limit))
        if self.search_error is not None:
            raise self.search_error
        self.connected = True
        return self.documents[:limit]

    def get_attachments(self, page_id: str) -> list[Attachment]:
        return self.attachments.get(page_id, [])

    def download_attachment(self, url: str) -> bytes:
        return self.downloads[url]

    def validate_connection(self) -> str:
        self.connected = True
        return "Test User"

    def is_connected(self) -> bool:
        return self.connected


def make_document(page_id: str = "1", **overrides: Any) -> RemoteDocument:
    """Build a RemoteDocument with sensible defaults."""
    defaults: dict[str, Any] = {
        "id": page_id,
        "title": f"Page {page_id}",
        "space_key": "ENG",
        "content": f"<p>Body of page {page_id}</p>",
        "version": 1,
        "last_modified": "2024-01-01T00:00:00.000Z",
        "author": "Ada",
        "url": f"https://acme.atlassian.net/wiki/spaces/ENG/pages/{page_id}",
        "labels": [],
    }
    defaults.update(overrides)
    return RemoteDocument(**defaults)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def mock_config():
    """Create a Config instance for testing."""
    return Config(
        confluence_url="https://acme.atlassian.net",
        email="ada@acme.com",
        api_token="secret-token",
        insecure=False,
    )


@pytest.fixture
def mock_confluence_client(mock_config):
    """Create a mock ConfluenceClient instance for testing."""
    from confluence_sync.core.client import ConfluenceClient

    client = MagicMock(spec=ConfluenceClient)
    client.config = mock_config
    return client


@pytest.fixture
def adapter():
    return InMemoryAdapter()


@pytest.fixture
def fake_client():
    return FakeConfluenceClient()


@pytest.fixture
def make_doc():
    """Factory fixture for RemoteDocument instances."""
    return make_document


@pytest.fixture
def client_factory():
    """Factory fixture for FakeConfluenceClient instances."""
    return FakeConfluenceClient
