"""Tests for the storage-format to Markdown pipeline."""

from __future__ import annotations

import re
from unittest.mock import patch

import pytest

from confluence_sync.converters.common import (
    confluence_to_markdown_lang,
    generate_slug,
)
from confluence_sync.converters.storage_to_markdown import (
    StorageToMarkdownConverter,
)
from confluence_sync.errors import ConversionError


def _code_macro(language: str | None, body: str) -> str:
    param = (
        f'<ac:parameter ac:name="language">{language}</ac:parameter>'
        if language
        else ""
    )
    return (
        f'<ac:structured-macro ac:name="code">{param}'
        f"<ac:plain-text-body><![CDATA[{body}]]></ac:plain-text-body>"
        "</ac:structured-macro>"
    )


@pytest.fixture
def converter():
    return StorageToMarkdownConverter()


class TestConvertHtml:
    def test_empty(self, converter):
        assert converter.convert_html("") == ""
        assert converter.convert_html("   ") == ""

    def test_headings_are_atx(self, converter):
        assert converter.convert_html("<h2>Setup</h2>") == "## Setup"

    def test_code_macro_language(self, converter):
        result = converter.convert_html(_code_macro("js", "const a = 1;"))
        assert "```javascript\nconst a = 1;\n```" in result

    def test_code_macro_without_language(self, converter):
        result = converter.convert_html(_code_macro(None, "x < y"))
        assert "```\nx < y\n```" in result

    def test_noformat_macro(self, converter):
        markup = (
            '<ac:structured-macro ac:name="noformat">'
            "<ac:plain-text-body><![CDATA[raw *text*]]></ac:plain-text-body>"
            "</ac:structured-macro>"
        )
        assert "```\nraw *text*\n```" in converter.convert_html(markup)

    def test_table_surrounded_by_blank_lines(self, converter):
        markup = (
            "<p>Before</p>"
            "<table><tbody>"
            "<tr><th>A</th><th>B</th></tr>"
            "<tr><td>1</td><td>2</td></tr>"
            "</tbody></table>"
            "<p>After</p>"
        )
        result = converter.convert_html(markup)
        assert "| A | B |" in result
        assert "| 1 | 2 |" in result
        assert re.search(r"Before\n\n+\| A \| B \|", result)
        assert re.search(r"\| 1 \| 2 \|\n\n+After", result)

    def test_inline_comment_marker_unwrapped(self, converter):
        markup = (
            "<p>Some <ac:inline-comment-marker ac:ref=\"abc\">annotated"
            "</ac:inline-comment-marker> text</p>"
        )
        assert converter.convert_html(markup) == "Some annotated text"

    def test_attachment_image_becomes_embed(self, converter):
        markup = '<ac:image><ri:attachment ri:filename="shot.png" /></ac:image>'
        assert converter.convert_html(markup) == "![[shot.png]]"

    def test_url_image(self, converter):
        markup = '<ac:image><ri:url ri:value="https://x.test/a.png" /></ac:image>'
        assert "https://x.test/a.png" in converter.convert_html(markup)

    def test_page_link_becomes_wikilink(self, converter):
        markup = (
            '<p><ac:link><ri:page ri:content-title="Other Page" />'
            "<ac:link-body>see here</ac:link-body></ac:link></p>"
        )
        assert converter.convert_html(markup) == "[[other-page|see here]]"

    def test_page_link_without_body_uses_title(self, converter):
        markup = '<p><ac:link><ri:page ri:content-title="Other Page" /></ac:link></p>'
        assert converter.convert_html(markup) == "[[other-page|Other Page]]"

    def test_page_link_to_synced_file(self, converter):
        markup = (
            '<p><ac:link><ri:page ri:content-title="Notes" />'
            "<ac:link-body>notes</ac:link-body></ac:link></p>"
        )
        result = converter.convert_html(markup, {"Notes": "notes-2.md"})
        assert result == "[[notes-2|notes]]"

    def test_unknown_macro_keeps_body_text(self, converter):
        markup = (
            '<ac:structured-macro ac:name="info">'
            '<ac:parameter ac:name="icon">true</ac:parameter>'
            "<ac:rich-text-body><p>Heads up</p></ac:rich-text-body>"
            "</ac:structured-macro>"
        )
        result = converter.convert_html(markup)
        assert "Heads up" in result
        assert "true" not in result


class TestConvertDocument:
    async def test_empty_document(self, converter, make_doc):
        assert await converter.convert_document(make_doc("1", content="")) == ""

    async def test_plantuml_survives_conversion(self, converter, make_doc):
        content = (
            "<p>Intro_text</p>"
            '<ac:structured-macro ac:name="plantuml">'
            '<ac:parameter ac:name="title">Flow</ac:parameter>'
            "<ac:plain-text-body><![CDATA[@startuml\nA -> B\n@enduml]]>"
            "</ac:plain-text-body></ac:structured-macro>"
            "<p>Outro</p>"
        )
        result = await converter.convert_document(make_doc("1", content=content))
        assert "<!-- Flow -->\n```plantuml\n@startuml\nA -> B\n@enduml\n```" in result
        assert "PLACEHOLDER" not in result
        assert result.endswith("Outro")

    async def test_drawio_saved_and_embedded(self, make_doc):
        written: list[tuple[str, bytes]] = []

        async def writer(path: str, data: bytes) -> None:
            written.append((path, data))

        converter = StorageToMarkdownConverter(binary_writer=writer)
        content = (
            '<ac:structured-macro ac:name="drawio">'
            '<ac:parameter ac:name="name">arch</ac:parameter>'
            "<ac:plain-text-body><![CDATA[<mxfile/>]]></ac:plain-text-body>"
            "</ac:structured-macro>"
        )
        result = await converter.convert_document(
            make_doc("1", content=content),
            page_slug="my-page",
            diagram_folder="confluence",
        )
        assert result == "![[my-page-diagram-0.drawio]]"
        assert written == [("confluence/my-page-diagram-0.drawio", b"<mxfile/>")]

    async def test_drawio_slug_defaults_to_title(self, converter, make_doc):
        content = (
            '<ac:structured-macro ac:name="drawio">'
            "<ac:plain-text-body><![CDATA[<mxfile/>]]></ac:plain-text-body>"
            "</ac:structured-macro>"
        )
        result = await converter.convert_document(
            make_doc("1", title="Big Picture", content=content)
        )
        assert result == "![[big-picture-diagram-0.drawio]]"

    async def test_failure_is_conversion_error(self, converter, make_doc):
        with patch.object(
            converter, "convert_html", side_effect=RuntimeError("boom")
        ):
            with pytest.raises(ConversionError) as exc_info:
                await converter.convert_document(make_doc("7"))
        assert exc_info.value.page_id == "7"


class TestCommon:
    @pytest.mark.parametrize(
        "language, expected",
        [
            ("js", "javascript"),
            ("Python", "python"),
            ("c#", "csharp"),
            ("shell", "bash"),
            ("none", ""),
            (None, ""),
            ("rust", "rust"),
        ],
    )
    def test_language_mapping(self, language, expected):
        assert confluence_to_markdown_lang(language) == expected

    @pytest.mark.parametrize(
        "title, expected",
        [
            ("Release Notes (v2.0)!", "release-notes-v20"),
            ("  Hello   World  ", "hello-world"),
            ("snake_case title", "snake-case-title"),
            ("Ünïcödé Seite", "ünïcödé-seite"),
            ("!!!", "untitled"),
            ("", "untitled"),
        ],
    )
    def test_generate_slug(self, title, expected):
        assert generate_slug(title) == expected

    def test_slug_length_capped(self):
        assert len(generate_slug("a" * 500)) == 200
