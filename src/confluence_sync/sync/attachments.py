"""Download page attachments into the vault and point links at the copies."""

from __future__ import annotations

import logging
import re
from typing import Callable

from ..core.async_utils import run_sync
from ..core.client import RemoteClient
from ..errors import ConfluenceSyncError
from .mapper import PathMapper
from .writer import DocumentWriter

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]


class AttachmentDownloader:
    """Copy a page's attachments into ``<attachments folder>/<page slug>/``.

    A failed attachment is logged and skipped; its links keep pointing at
    Confluence.
    """

    def __init__(
        self,
        client: RemoteClient,
        writer: DocumentWriter,
        mapper: PathMapper,
        log: logging.Logger | None = None,
    ) -> None:
        self.client = client
        self.writer = writer
        self.mapper = mapper
        self.logger = log or logger

    async def download_attachments(
        self,
        page_id: str,
        page_slug: str,
        on_progress: ProgressCallback | None = None,
    ) -> dict[str, str]:
        """Download every attachment of *page_id*.

        Returns:
            Mapping from download URL and from attachment title to the
            vault-relative local path.
        """
        url_to_path: dict[str, str] = {}
        try:
            attachments = await run_sync(self.client.get_attachments, page_id)
        except ConfluenceSyncError as e:
            self.logger.warning(
                "Could not list attachments of page %s: %s", page_id, e
            )
            return url_to_path

        if not attachments:
            return url_to_path

        self.logger.info(
            "Downloading %d attachments for page %s", len(attachments), page_id
        )
        for index, attachment in enumerate(attachments, start=1):
            if on_progress is not None:
                on_progress(index, len(attachments))
            local_path = self.mapper.attachment_path(page_slug, attachment.title)
            try:
                data = await run_sync(
                    self.client.download_attachment, attachment.download_url
                )
                await self.writer.write_binary(local_path, data)
            except ConfluenceSyncError as e:
                self.logger.warning(
                    "Failed to download %s: %s", attachment.title, e
                )
                continue
            url_to_path[attachment.download_url] = local_path
            url_to_path[attachment.title] = local_path
            self.logger.debug("Downloaded %s -> %s", attachment.title, local_path)

        return url_to_path


def replace_attachment_urls(markdown: str, url_to_path: dict[str, str]) -> str:
    """Point Markdown links, ``<img src>`` and ``![[name]]`` embeds at local copies."""
    result = markdown
    for url, local_path in url_to_path.items():
        escaped = re.escape(url)
        result = re.sub(
            r"\]\(" + escaped + r"(\s+\"[^\"]*\")?\)",
            lambda m: f"]({local_path}{m.group(1) or ''})",
            result,
        )
        result = result.replace(f'src="{url}"', f'src="{local_path}"')
        result = result.replace(f"![[{url}]]", f"![[{local_path}]]")
    return result
