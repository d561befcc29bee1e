"""WordprocessingML body markup helpers built on lxml."""

from __future__ import annotations

from typing import Iterable, Sequence

from docx.oxml.ns import nsmap, qn
from lxml import etree

from .errors import MarkupError

W_NAMESPACE = nsmap["w"]
XML_SPACE = qn("xml:space")
NSMAP = {"w": W_NAMESPACE}

_PARSER = etree.XMLParser(resolve_entities=False, no_network=True, huge_tree=False)


def parse_body(markup: str) -> etree._Element:
    """Parse ``markup`` and return its ``w:body`` element.

    Accepts either a bare ``w:body`` or a ``w:document`` wrapping one.
    """
    if not markup or not markup.strip():
        raise MarkupError(message="Markup is empty")
    try:
        root = etree.fromstring(markup.encode("utf-8"), _PARSER)
    except etree.XMLSyntaxError as exc:
        raise MarkupError(
            message=f"Markup is not well-formed XML: {exc}",
            debug_info={"line": exc.lineno},
        ) from exc

    if root.tag == qn("w:body"):
        return root
    if root.tag == qn("w:document"):
        body = root.find(qn("w:body"))
        if body is not None:
            return body
        raise MarkupError(message="The w:document element has no w:body")
    raise MarkupError(
        message="Markup root must be w:body or w:document",
        details={"root": str(root.tag)},
    )


def content_elements(body: etree._Element) -> list[etree._Element]:
    """Return the block-level children of ``body`` apart from section properties."""

    return [
        child
        for child in body
        if isinstance(child.tag, str) and child.tag != qn("w:sectPr")
    ]


def paragraph_text(paragraph: etree._Element) -> str:
    """Flatten the visible text of a ``w:p`` element."""

    pieces: list[str] = []
    for node in paragraph.iter(qn("w:t"), qn("w:tab"), qn("w:br"), qn("w:cr")):
        if node.tag == qn("w:t"):
            pieces.append(node.text or "")
        elif node.tag == qn("w:tab"):
            pieces.append("\t")
        else:
            pieces.append("\n")
    return "".join(pieces)


def paragraphs_from_markup(markup: str) -> list[str]:
    body = parse_body(markup)
    return [
        paragraph_text(element)
        for element in content_elements(body)
        if element.tag == qn("w:p")
    ]


def append_run_content(run: etree._Element, text: str) -> None:
    """Write ``text`` into ``run`` using ``w:t``, ``w:tab`` and ``w:br`` children."""

    buffer: list[str] = []

    def flush() -> None:
        if buffer:
            node = etree.SubElement(run, qn("w:t"))
            node.text = "".join(buffer)
            node.set(XML_SPACE, "preserve")
            buffer.clear()

    for char in text:
        if char == "\t":
            flush()
            etree.SubElement(run, qn("w:tab"))
        elif char == "\n":
            flush()
            etree.SubElement(run, qn("w:br"))
        else:
            buffer.append(char)
    flush()


def build_body(paragraphs: Iterable[str]) -> etree._Element:
    body = etree.Element(qn("w:body"), nsmap=NSMAP)
    for text in paragraphs:
        paragraph = etree.SubElement(body, qn("w:p"))
        if text:
            append_run_content(etree.SubElement(paragraph, qn("w:r")), text)
    return body


def serialize(element: etree._Element) -> str:
    return etree.tostring(element, encoding="unicode")


def markup_from_paragraphs(paragraphs: Sequence[str]) -> str:
    """Render plain paragraphs as a ``w:body`` markup string."""

    return serialize(build_body(paragraphs))


__all__ = [
    "NSMAP",
    "W_NAMESPACE",
    "append_run_content",
    "build_body",
    "content_elements",
    "markup_from_paragraphs",
    "paragraph_text",
    "paragraphs_from_markup",
    "parse_body",
    "serialize",
]
