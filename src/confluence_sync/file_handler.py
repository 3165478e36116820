"""File handler module: vault-rooted path resolution and encoding-aware I/O.

``LocalFileAdapter`` implements the ``FileAdapter`` capability on a real
directory. The sync functions do plain file I/O; the async adapter methods
bridge them through ``run_sync()``.
"""

from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import Protocol

from charset_normalizer import from_bytes

from .core.async_utils import run_sync
from .errors import PathTraversalError

# =============================================================================
# Capability
# =============================================================================


class FileAdapter(Protocol):
    """Vault file operations the sync core depends on.

    Paths are vault-relative strings using ``/`` separators. ``write`` and
    ``create_binary`` overwrite existing files without failing.
    """

    async def exists(self, path: str) -> bool: ...

    async def read(self, path: str) -> str: ...

    async def write(self, path: str, content: str) -> None: ...

    async def create_folder(self, path: str) -> None: ...

    async def create_binary(self, path: str, data: bytes) -> None: ...


# =============================================================================
# Path Resolution
# =============================================================================


def resolve_in_root(root: Path, relative: str) -> Path:
    """Resolve a vault-relative path and ensure it stays inside *root*.

    Raises:
        PathTraversalError: If the resolved path escapes *root*.
    """
    root_resolved = root.resolve()
    resolved = (root_resolved / relative).resolve()
    if not resolved.is_relative_to(root_resolved):
        raise PathTraversalError(
            f"Path escapes the vault: {relative}",
            {"path": relative, "root": str(root_resolved)},
        )
    return resolved


# =============================================================================
# File Read/Write
# =============================================================================


def read_file_with_encoding(path: Path) -> tuple[str, str]:
    """Read a file with automatic encoding detection.

    Defaults to UTF-8 for empty files or when detection fails.

    Returns:
        Tuple of (content_string, detected_encoding).
    """
    raw = path.read_bytes()
    if not raw:
        return ("", "utf-8")

    result = from_bytes(raw).best()
    if result is None:
        encoding = "utf-8"
        content = raw.decode(encoding, errors="replace")
    else:
        encoding = result.encoding
        if encoding == "ascii":
            encoding = "utf-8"
        content = str(result)
    return (content, encoding)


def write_bytes_atomic(path: Path, data: bytes) -> int:
    """Replace *path* with *data*, creating parent directories as needed.

    Writes to a temporary sibling then ``os.replace()``s it over the
    target, so readers see either the old or the new file.

    Returns:
        Number of bytes written.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(
        dir=str(path.parent), prefix=f".{path.name}.", suffix=".tmp"
    )
    try:
        with os.fdopen(fd, "wb") as fh:
            fh.write(data)
        os.replace(tmp_path, str(path))
    except BaseException:
        if os.path.exists(tmp_path):
            os.unlink(tmp_path)
        raise
    return len(data)


def write_file(path: Path, content: str, encoding: str = "utf-8") -> int:
    """Write text to a file atomically. Returns the number of bytes written."""
    return write_bytes_atomic(path, content.encode(encoding))


# =============================================================================
# Local adapter
# =============================================================================


class LocalFileAdapter:
    """``FileAdapter`` backed by a directory on disk.

    Args:
        root: Vault root directory. All paths are resolved inside it.
    """

    def __init__(self, root: Path | str) -> None:
        self.root = Path(root).expanduser()

    def resolve(self, path: str) -> Path:
        return resolve_in_root(self.root, path)

    async def exists(self, path: str) -> bool:
        return await run_sync(self.resolve(path).exists)

    async def read(self, path: str) -> str:
        content, _encoding = await run_sync(
            read_file_with_encoding, self.resolve(path)
        )
        return content

    async def write(self, path: str, content: str) -> None:
        await run_sync(write_file, self.resolve(path), content)

    async def create_folder(self, path: str) -> None:
        target = self.resolve(path)
        await run_sync(target.mkdir, parents=True, exist_ok=True)

    async def create_binary(self, path: str, data: bytes) -> None:
        await run_sync(write_bytes_atomic, self.resolve(path), data)
