"""Confluence storage format to Markdown conversion.

The bulk HTML-to-Markdown pass uses ``markdownify`` with a converter
subclass adding Confluence rules. Diagram macros are cut out before that
pass and restored after it (see ``macros``).
"""

from __future__ import annotations

import html
import logging
from typing import Any, Awaitable, Callable, Mapping

from bs4 import BeautifulSoup
from markdownify import ATX, MarkdownConverter

from ..errors import ConfluenceSyncError, ConversionError
from ..sync.models import RemoteDocument
from .common import confluence_to_markdown_lang, generate_slug
from .links import resolve_title_link
from .macros import DrawioExtractor, MacroScanner, PlantUMLExtractor

logger = logging.getLogger(__name__)

BinaryWriter = Callable[[str, bytes], Awaitable[None]]


class _CodeMacroScanner(MacroScanner):
    macro_name = "code"
    label_param = "language"


class _NoFormatMacroScanner(MacroScanner):
    macro_name = "noformat"
    label_param = "title"


def _code_language(el: Any) -> str:
    return confluence_to_markdown_lang(el.get("data-language"))


class ConfluenceMarkdownConverter(MarkdownConverter):
    """markdownify converter with Confluence rules.

    * ``<pre data-language=...>`` (rewritten code macros) become fenced
      blocks tagged with the macro language.
    * Tables are surrounded by blank lines.
    * ``<img data-embed>`` (rewritten ``ac:image`` attachments) become
      ``![[file]]`` embeds.
    * ``<a data-wikilink>`` (rewritten ``ac:link`` page links) become
      ``[[file-stem|Link text]]`` wikilinks, the page title standing in
      for missing link text.
    """

    def __init__(self, **options: Any) -> None:
        options.setdefault("heading_style", ATX)
        options.setdefault("bullets", "-")
        options.setdefault("strong_em_symbol", "*")
        options.setdefault("escape_misc", False)
        options.setdefault("code_language_callback", _code_language)
        super().__init__(**options)

    def convert_table(self, el: Any, text: str, *args: Any, **kwargs: Any) -> str:
        rendered = super().convert_table(el, text, *args, **kwargs)
        return "\n\n" + rendered.strip("\n") + "\n\n"

    def convert_img(self, el: Any, text: str, *args: Any, **kwargs: Any) -> str:
        if el.get("data-embed"):
            return f"![[{el.get('src', '')}]]"
        return super().convert_img(el, text, *args, **kwargs)

    def convert_a(self, el: Any, text: str, *args: Any, **kwargs: Any) -> str:
        target = el.get("data-wikilink")
        if target:
            label = text.strip() or el.get("data-title", "")
            if not label or label == target:
                return f"[[{target}]]"
            return f"[[{target}|{label}]]"
        return super().convert_a(el, text, *args, **kwargs)


class StorageToMarkdownConverter:
    """Convert storage-format pages to Markdown.

    Args:
        binary_writer: Async callable ``(path, data)`` used to persist
            draw.io diagrams next to the page. When None, diagrams are
            still embedded but not written.
        log: Logger for conversion diagnostics.
    """

    def __init__(
        self,
        binary_writer: BinaryWriter | None = None,
        log: logging.Logger | None = None,
    ) -> None:
        self.binary_writer = binary_writer
        self.logger = log or logger
        self.plantuml = PlantUMLExtractor(self.logger)
        self.drawio = DrawioExtractor(self.logger)
        self._code = _CodeMacroScanner(self.logger)
        self._noformat = _NoFormatMacroScanner(self.logger)
        self._markdown = ConfluenceMarkdownConverter()

    async def convert_document(
        self,
        document: RemoteDocument,
        *,
        page_slug: str | None = None,
        diagram_folder: str = "",
        title_files: Mapping[str, str] | None = None,
    ) -> str:
        """Convert one page, persisting its draw.io diagrams.

        Args:
            document: Page to convert.
            page_slug: Slug used to name diagram files (defaults to the
                slug of the page title).
            diagram_folder: Vault-relative folder receiving diagram files.
            title_files: Page titles mapped to their synced file names, for
                resolving ``ac:link`` page links.

        Returns:
            Trimmed Markdown, or ``""`` for an empty page.

        Raises:
            ConversionError: The conversion failed; carries the page id.
        """
        if not document.content or not document.content.strip():
            return ""

        try:
            markup = document.content

            diagrams_as_code = self.plantuml.extract_macros(markup)
            if diagrams_as_code:
                markup = self.plantuml.replace_with_placeholders(
                    markup, diagrams_as_code
                )

            diagram_files: list[str] = []
            diagrams = self.drawio.extract_macros(markup)
            if diagrams:
                slug = page_slug or generate_slug(document.title)
                diagram_files = [
                    self.drawio.generate_filename(slug, i)
                    for i in range(len(diagrams))
                ]
                await self._persist_diagrams(
                    diagrams, diagram_files, diagram_folder
                )
                markup = self.drawio.replace_with_placeholders(markup, diagrams)

            text = self.convert_html(markup, title_files)
            text = self.plantuml.restore_placeholders(text, diagrams_as_code)
            text = self.drawio.restore_placeholders(text, diagram_files)
            return text.strip()
        except ConfluenceSyncError:
            raise
        except Exception as e:
            self.logger.error(
                "Failed to convert page %s: %s", document.id, e
            )
            raise ConversionError(
                f"Markdown conversion failed for page {document.id}: {e}",
                page_id=document.id,
            ) from e

    async def _persist_diagrams(
        self, diagrams: list, filenames: list[str], folder: str
    ) -> None:
        if self.binary_writer is None:
            self.logger.warning(
                "No binary writer configured; %d draw.io diagrams not saved",
                len(diagrams),
            )
            return
        prefix = folder.strip("/")
        for macro, filename in zip(diagrams, filenames):
            path = f"{prefix}/{filename}" if prefix else filename
            await self.binary_writer(path, macro.payload.encode("utf-8"))
            self.logger.debug("Saved draw.io diagram %s", path)

    def convert_html(
        self, markup: str, title_files: Mapping[str, str] | None = None
    ) -> str:
        """Convert storage markup to Markdown without macro handling."""
        if not markup or not markup.strip():
            return ""
        markup = self._rewrite_code_macros(markup)
        soup = self._prepare(markup, title_files)
        return self._markdown.convert_soup(soup).strip()

    def _rewrite_code_macros(self, markup: str) -> str:
        for extractor in (self._code, self._noformat):
            macros = extractor.extract_macros(markup)
            for macro in reversed(macros):
                language = (
                    macro.label if extractor is self._code and macro.label else ""
                )
                block = (
                    f'<pre data-language="{html.escape(language)}">'
                    f"{html.escape(macro.payload)}</pre>"
                )
                markup = markup[: macro.start] + block + markup[macro.end :]
        return markup

    @staticmethod
    def _prepare(
        markup: str, title_files: Mapping[str, str] | None = None
    ) -> BeautifulSoup:
        soup = BeautifulSoup(markup, "html.parser")

        # Annotated text stays verbatim; the comment anchor is dropped
        for marker in soup.find_all("ac:inline-comment-marker"):
            marker.unwrap()

        for image in soup.find_all("ac:image"):
            attachment = image.find("ri:attachment")
            if attachment is not None and attachment.get("ri:filename"):
                embed = soup.new_tag("img", src=attachment["ri:filename"])
                embed["data-embed"] = "1"
                image.replace_with(embed)
            else:
                url = image.find("ri:url")
                if url is not None and url.get("ri:value"):
                    image.replace_with(
                        soup.new_tag("img", src=url["ri:value"], alt="")
                    )
                else:
                    image.decompose()

        for link in soup.find_all("ac:link"):
            page = link.find("ri:page")
            if page is None or not page.get("ri:content-title"):
                link.unwrap()
                continue
            body = link.find(
                ["ac:plain-text-link-body", "ac:link-body"]
            )
            anchor = soup.new_tag("a")
            title = page["ri:content-title"]
            anchor["data-wikilink"] = resolve_title_link(title, title_files)
            anchor["data-title"] = title
            anchor.string = body.get_text() if body is not None else ""
            link.replace_with(anchor)

        for param in soup.find_all("ac:parameter"):
            param.decompose()

        return soup
