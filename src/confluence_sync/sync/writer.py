"""Merge fresh remote content with the user-owned tail and write it.

``DocumentWriter.write_file`` receives the remote-owned part of a file
(frontmatter, start marker, body, end marker) and appends the tail it
resolves from the existing file:

* new file -> the local notes template;
* existing file with markers -> its stored tail verbatim (the template
  when that tail is empty);
* existing file without markers (legacy) -> the template.

Paths are validated before any I/O; adapter failures surface as
``FileWriteError``.
"""

from __future__ import annotations

import logging
import posixpath

from ..errors import ConfluenceSyncError, FileWriteError, PathTraversalError
from ..file_handler import FileAdapter
from ..validators import validate_relative_path
from .regions import resolve_local_notes

logger = logging.getLogger(__name__)

SECTION_SEPARATOR = "\n\n"


def check_path(path: str) -> None:
    """Raise ``PathTraversalError`` for paths that could leave the vault."""
    is_valid, message = validate_relative_path(path)
    if not is_valid:
        raise PathTraversalError(
            f"Invalid file path: {message}", {"path": path}
        )


class DocumentWriter:
    """Write synced pages and binary artifacts through a ``FileAdapter``."""

    def __init__(
        self, adapter: FileAdapter, log: logging.Logger | None = None
    ) -> None:
        self._adapter = adapter
        self.logger = log or logger

    async def write_file(self, path: str, remote_content: str) -> str:
        """Write *remote_content* plus the resolved user tail to *path*.

        Returns:
            The full text written.

        Raises:
            PathTraversalError: *path* failed validation (nothing written).
            FileWriteError: Reading or writing the file failed.
        """
        check_path(path)
        try:
            await self._ensure_parent(path)
            existing = (
                await self._adapter.read(path)
                if await self._adapter.exists(path)
                else None
            )
            tail = resolve_local_notes(existing)
            content = remote_content.rstrip("\n") + SECTION_SEPARATOR + tail
            if not content.endswith("\n"):
                content += "\n"
            await self._adapter.write(path, content)
        except FileWriteError:
            raise
        except (OSError, ConfluenceSyncError) as e:
            raise FileWriteError(
                f"Failed to write {path}: {e}", {"path": path}
            ) from e

        self.logger.debug(
            "%s %s", "Updated" if existing is not None else "Created", path
        )
        return content

    async def write_binary(self, path: str, data: bytes) -> None:
        """Create or replace a binary file (diagrams, attachments)."""
        check_path(path)
        try:
            await self._ensure_parent(path)
            await self._adapter.create_binary(path, data)
        except FileWriteError:
            raise
        except (OSError, ConfluenceSyncError) as e:
            raise FileWriteError(
                f"Failed to write {path}: {e}", {"path": path}
            ) from e
        self.logger.debug("Wrote %d bytes to %s", len(data), path)

    async def _ensure_parent(self, path: str) -> None:
        folder = posixpath.dirname(path.replace("\\", "/"))
        if folder and not await self._adapter.exists(folder):
            await self._adapter.create_folder(folder)
