"""Tests for the WordprocessingML body helpers."""

from __future__ import annotations

import pytest
from docx.oxml.ns import qn

from templatehelper.host.errors import ErrorCode, MarkupError
from templatehelper.host.markup import (
    W_NAMESPACE,
    content_elements,
    markup_from_paragraphs,
    paragraphs_from_markup,
    parse_body,
)


def test_markup_keeps_tabs_breaks_and_empty_paragraphs() -> None:
    markup = markup_from_paragraphs(["a\tb", "line\nbreak", ""])

    assert markup.startswith("<w:body")
    assert paragraphs_from_markup(markup) == ["a\tb", "line\nbreak", ""]


def test_parse_body_accepts_a_document_wrapper() -> None:
    markup = (
        f'<w:document xmlns:w="{W_NAMESPACE}"><w:body>'
        "<w:p><w:r><w:t>Hi</w:t></w:r><w:r><w:t xml:space=\"preserve\"> there</w:t></w:r></w:p>"
        "<w:sectPr/></w:body></w:document>"
    )

    body = parse_body(markup)

    assert body.tag == qn("w:body")
    assert [element.tag for element in content_elements(body)] == [qn("w:p")]
    assert paragraphs_from_markup(markup) == ["Hi there"]


@pytest.mark.parametrize(
    "markup",
    [
        "",
        "   ",
        "<w:body",
        "<html><body/></html>",
        f'<w:document xmlns:w="{W_NAMESPACE}"><w:p/></w:document>',
    ],
)
def test_parse_body_rejects_unusable_markup(markup: str) -> None:
    with pytest.raises(MarkupError) as excinfo:
        parse_body(markup)

    assert excinfo.value.error_code == ErrorCode.INVALID_MARKUP


def test_syntax_errors_carry_the_failing_line() -> None:
    with pytest.raises(MarkupError) as excinfo:
        parse_body(f'<w:body xmlns:w="{W_NAMESPACE}">\n<w:p>\n</w:body>')

    assert "line" in excinfo.value.debug_info


def test_built_markup_declares_the_wordprocessing_prefix() -> None:
    body = parse_body(markup_from_paragraphs(["Intro"]))

    assert body.nsmap["w"] == W_NAMESPACE
    assert body[0].tag == f"{{{W_NAMESPACE}}}p"
