"""Document engine backed by a python-docx ``Document``."""

from __future__ import annotations

import logging
from copy import deepcopy
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from docx import Document
from docx.document import Document as DocxDocument
from docx.oxml import OxmlElement, parse_xml
from docx.oxml.ns import qn
from docx.text.paragraph import Paragraph
from lxml import etree

from ..core.ranges import TextRange
from . import markup as wml
from .engine import DocumentEngine
from .types import InsertLocation

LOGGER = logging.getLogger(__name__)

_T = qn("w:t")
_TAB = qn("w:tab")
_PTAB = qn("w:ptab")
_BR = qn("w:br")
_CR = qn("w:cr")
_NO_BREAK_HYPHEN = qn("w:noBreakHyphen")


class DocxEngine(DocumentEngine):
    """Engine that edits the top-level paragraphs of a Word document.

    Paragraph text is the concatenation of the paragraph's direct runs; text
    inside hyperlinks, fields and tables is not searchable. Replacing a span
    keeps the formatting of the run the span starts in and only touches
    ``w:t`` text nodes, so field characters and drawings in the same run survive.
    """

    def __init__(self, document: DocxDocument | None = None, *, path: Path | str | None = None) -> None:
        super().__init__()
        self.document = document if document is not None else Document()
        self.path = Path(path) if path is not None else None

    @classmethod
    def open(cls, path: Path | str) -> DocxEngine:
        """Load ``path``, or start a blank document when the file is missing."""

        target = Path(path).expanduser()
        if target.exists():
            LOGGER.debug("Opening %s", target)
            return cls(Document(str(target)), path=target)
        LOGGER.debug("%s does not exist; starting a blank document", target)
        return cls(Document(), path=target)

    def save(self, path: Path | str | None = None) -> Path:
        target = Path(path).expanduser() if path is not None else self.path
        if target is None:
            raise ValueError("No path given and the engine was not opened from a file")
        target.parent.mkdir(parents=True, exist_ok=True)
        self.document.save(str(target))
        LOGGER.info("Saved %s", target)
        return target

    def _body(self) -> Any:
        return self.document.element.body

    # ------------------------------------------------------------------
    # Storage primitives
    # ------------------------------------------------------------------
    def paragraph_texts(self) -> list[str]:
        return ["".join(piece.text for piece in _pieces(paragraph)) for paragraph in self.document.paragraphs]

    def _write_span(self, paragraph: int, text_range: TextRange, text: str) -> None:
        target = self.document.paragraphs[paragraph]
        pieces = _pieces(target)
        start, end = text_range.start, text_range.end

        anchor = _anchor_piece(pieces, start, end)
        if anchor is None:
            if text:
                _insert_text_node(target, pieces, start, text)
        else:
            head = _clamp(start - anchor.start, anchor)
            tail = _clamp(end - anchor.start, anchor)
            _set_text(anchor.node, anchor.text[:head] + text + anchor.text[tail:])

        for piece in pieces:
            if piece is anchor or piece.end <= start or piece.start >= end:
                continue
            if piece.editable:
                head = _clamp(start - piece.start, piece)
                tail = _clamp(end - piece.start, piece)
                _set_text(piece.node, piece.text[:head] + piece.text[tail:])
            else:
                piece.node.getparent().remove(piece.node)

    def _insert_paragraph_at(self, index: int, text: str) -> None:
        paragraphs = self.document.paragraphs
        if index >= len(paragraphs):
            self.document.add_paragraph(text)
        else:
            paragraphs[index].insert_paragraph_before(text)

    def _clear_body(self) -> None:
        self._remove_content()
        self.document.add_paragraph()

    def get_ooxml(self) -> str:
        return wml.serialize(self._body())

    def _import_markup(self, markup: str, location: InsertLocation) -> int:
        incoming = [
            parse_xml(etree.tostring(element))
            for element in wml.content_elements(wml.parse_body(markup))
        ]
        body = self._body()
        if location is InsertLocation.REPLACE:
            self._remove_content()

        if location is InsertLocation.START:
            for offset, element in enumerate(incoming):
                body.insert(offset, element)
        else:
            sect_pr = body.find(qn("w:sectPr"))
            for element in incoming:
                if sect_pr is not None:
                    sect_pr.addprevious(element)
                else:
                    body.append(element)

        if location is InsertLocation.REPLACE and not self.document.paragraphs:
            self.document.add_paragraph()
        return sum(1 for element in incoming if element.tag == qn("w:p"))

    def _checkpoint_content(self) -> list[Any]:
        return [deepcopy(child) for child in self._body()]

    def _restore_content(self, state: list[Any]) -> None:
        body = self._body()
        for child in list(body):
            body.remove(child)
        for child in state:
            body.append(deepcopy(child))

    def _remove_content(self) -> None:
        body = self._body()
        for child in list(body):
            if child.tag != qn("w:sectPr"):
                body.remove(child)



@dataclass(slots=True)
class _Piece:
    """A run child that contributes characters to the paragraph text."""

    node: Any
    text: str
    start: int
    editable: bool

    @property
    def end(self) -> int:
        return self.start + len(self.text)


def _child_text(child: Any) -> str | None:
    tag = child.tag
    if tag == _T:
        return child.text or ""
    if tag in (_TAB, _PTAB):
        return "\t"
    if tag == _CR:
        return "\n"
    if tag == _BR:
        # page and column breaks carry no text
        return "\n" if child.get(qn("w:type"), "textWrapping") == "textWrapping" else None
    if tag == _NO_BREAK_HYPHEN:
        return "-"
    return None


def _pieces(paragraph: Paragraph) -> list[_Piece]:
    """Map the paragraph's direct runs to text-bearing nodes with their offsets.

    Field characters, drawings, footnote references and other run children
    contribute no text and never appear here, so edits leave them in place.
    """
    pieces: list[_Piece] = []
    offset = 0
    for run in paragraph.runs:
        for child in run._r:
            text = _child_text(child)
            if text is None:
                continue
            pieces.append(_Piece(child, text, offset, child.tag == _T))
            offset += len(text)
    return pieces


def _anchor_piece(pieces: list[_Piece], start: int, end: int) -> _Piece | None:
    """Pick the ``w:t`` node that receives the new text for ``[start, end)``."""

    texts = [piece for piece in pieces if piece.editable]
    for piece in texts:
        if piece.start < end and piece.end > start:
            return piece
    for piece in texts:
        if piece.start <= start < piece.end:
            return piece
    for piece in texts:
        if piece.start <= end and piece.end >= start:
            return piece
    return None


def _insert_text_node(paragraph: Paragraph, pieces: list[_Piece], start: int, text: str) -> None:
    following = next((piece for piece in pieces if piece.start >= start), None)
    if following is not None:
        node = OxmlElement("w:t")
        following.node.addprevious(node)
    elif paragraph.runs:
        node = OxmlElement("w:t")
        paragraph.runs[-1]._r.append(node)
    else:
        paragraph.add_run(text)
        return
    _set_text(node, text)


def _set_text(node: Any, text: str) -> None:
    node.text = text
    node.set(qn("xml:space"), "preserve")


def _clamp(offset: int, piece: _Piece) -> int:
    return max(0, min(offset, len(piece.text)))


__all__ = ["DocxEngine"]
