"""Placeholder-based extraction of diagram macros from storage markup.

Diagram macros do not survive HTML-to-Markdown conversion, so they are cut
out of the raw markup beforehand, replaced with numbered placeholder
paragraphs, and restored into their final Markdown form afterwards.

Extraction is regex based and lives entirely behind ``MacroExtractor``;
callers only use ``extract_macros``, ``replace_with_placeholders`` and
``restore_placeholders``.
"""

from __future__ import annotations

import html
import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Sequence

logger = logging.getLogger(__name__)

_CDATA_BODY = re.compile(
    r"<ac:plain-text-body>\s*<!\[CDATA\[([\s\S]*?)\]\]>\s*</ac:plain-text-body>",
    re.IGNORECASE,
)
_RAW_BODY = re.compile(
    r"<ac:plain-text-body>([\s\S]*?)</ac:plain-text-body>", re.IGNORECASE
)


@dataclass
class ExtractedMacro:
    """One macro occurrence found in the raw markup.

    ``start``/``end`` are offsets into the markup the macro was extracted
    from; they are only valid for that exact string.
    """

    payload: str
    label: str | None
    start: int
    end: int


class MacroScanner:
    """Finds ``<ac:structured-macro ac:name="...">`` blocks of one macro type.

    Subclasses set ``macro_name`` (the ``ac:name`` value) and
    ``label_param`` (the parameter holding an optional caption). Scanning
    only; see ``MacroExtractor`` for the placeholder round trip.
    """

    macro_name: str = ""
    label_param: str = ""

    def __init__(self, log: logging.Logger | None = None) -> None:
        self.logger = log or logger
        self._macro_pattern = re.compile(
            r'<ac:structured-macro\s+ac:name="'
            + re.escape(self.macro_name)
            + r'"[^>]*>([\s\S]*?)</ac:structured-macro>',
            re.IGNORECASE,
        )
        self._label_pattern = re.compile(
            r'<ac:parameter\s+ac:name="'
            + re.escape(self.label_param)
            + r'">([^<]+)</ac:parameter>',
            re.IGNORECASE,
        )

    def extract_macros(self, markup: str) -> list[ExtractedMacro]:
        """Return every macro occurrence with a non-empty payload, front to back."""
        macros: list[ExtractedMacro] = []
        for match in self._macro_pattern.finditer(markup):
            inner = match.group(1)
            payload = self._extract_payload(inner)
            if not payload:
                continue
            label_match = self._label_pattern.search(inner)
            macros.append(
                ExtractedMacro(
                    payload=payload,
                    label=label_match.group(1).strip() if label_match else None,
                    start=match.start(),
                    end=match.end(),
                )
            )
        if macros:
            self.logger.debug(
                "Found %d %s macros", len(macros), self.macro_name
            )
        return macros

    @staticmethod
    def _extract_payload(inner: str) -> str:
        cdata = _CDATA_BODY.search(inner)
        if cdata:
            return cdata.group(1).strip()
        raw = _RAW_BODY.search(inner)
        if raw:
            return html.unescape(raw.group(1)).strip()
        return ""


class MacroExtractor(MacroScanner, ABC):
    """A ``MacroScanner`` that also swaps macros for placeholders and back.

    Subclasses add ``placeholder_name`` (the upper-case token embedded in
    placeholders) and implement ``render``.
    """

    placeholder_name: str = ""

    def __init__(self, log: logging.Logger | None = None) -> None:
        super().__init__(log)
        # Markdown converters escape underscores, so accept both forms
        u = r"\\?_"
        self._placeholder_pattern = re.compile(
            u
            + u
            + u.join(re.escape(part) for part in self.placeholder_name.split("_"))
            + u
            + "PLACEHOLDER"
            + u
            + r"(\d+)"
            + u
            + u
        )

    def placeholder(self, index: int) -> str:
        return f"<p>__{self.placeholder_name}_PLACEHOLDER_{index}__</p>"

    def replace_with_placeholders(
        self, markup: str, macros: Sequence[ExtractedMacro]
    ) -> str:
        """Swap each macro for its placeholder paragraph.

        Processed back to front so earlier offsets stay valid; placeholder
        *i* always stands for ``macros[i]``.
        """
        result = markup
        for index in range(len(macros) - 1, -1, -1):
            macro = macros[index]
            result = (
                result[: macro.start]
                + self.placeholder(index)
                + result[macro.end :]
            )
        return result

    @abstractmethod
    def render(self, index: int, replacement: Any) -> str:
        """Final Markdown for placeholder *index*."""

    def restore_placeholders(
        self, text: str, replacements: Sequence[Any]
    ) -> str:
        """Replace placeholder *i* with ``render(i, replacements[i])``.

        Placeholders without a matching replacement are left untouched.
        """

        def _restore(match: re.Match) -> str:
            index = int(match.group(1))
            if index >= len(replacements):
                return match.group(0)
            return self.render(index, replacements[index])

        return self._placeholder_pattern.sub(_restore, text)


class PlantUMLExtractor(MacroExtractor):
    """PlantUML macros, restored as fenced ``plantuml`` code blocks."""

    macro_name = "plantuml"
    label_param = "title"
    placeholder_name = "PLANTUML"

    def render(self, index: int, macro: ExtractedMacro) -> str:
        block = f"```plantuml\n{macro.payload}\n```"
        if macro.label:
            return f"<!-- {macro.label} -->\n{block}"
        return block


class DrawioExtractor(MacroExtractor):
    """draw.io macros, saved as sibling ``.drawio`` files and embedded."""

    macro_name = "drawio"
    label_param = "name"
    placeholder_name = "DRAWIO"

    @staticmethod
    def generate_filename(page_slug: str, index: int) -> str:
        return f"{page_slug}-diagram-{index}.drawio"

    def render(self, index: int, filename: str) -> str:
        return f"![[{filename}]]"
