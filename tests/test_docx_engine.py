"""Tests for the python-docx backed engine."""

from __future__ import annotations

from pathlib import Path

import pytest
from docx import Document
from docx.oxml import OxmlElement
from docx.oxml.ns import qn
from lxml import etree

from templatehelper.host.context import DocumentHost
from templatehelper.host.docx_engine import DocxEngine
from templatehelper.host.markup import markup_from_paragraphs, paragraphs_from_markup
from templatehelper.host.types import InsertLocation
from templatehelper.services.word_document import WordDocumentService


def _engine(*paragraphs: str) -> DocxEngine:
    document = Document()
    for text in paragraphs:
        document.add_paragraph(text)
    return DocxEngine(document)


def test_replace_across_runs_keeps_the_first_run_formatting() -> None:
    document = Document()
    paragraph = document.add_paragraph()
    paragraph.add_run("The c").bold = True
    paragraph.add_run("at sat.")
    engine = DocxEngine(document)

    hits = engine.search("cat")
    engine.replace(hits[0], "dog")

    assert engine.paragraph_texts() == ["The dog sat."]
    runs = paragraph.runs
    assert runs[0].text == "The dog"
    assert runs[0].bold is True
    assert runs[1].text == " sat."


@pytest.mark.asyncio
async def test_replace_keeps_field_characters_sharing_the_run() -> None:
    document = Document()
    run = document.add_paragraph().add_run("cat ")
    field = OxmlElement("w:fldChar")
    field.set(qn("w:fldCharType"), "begin")
    run._r.append(field)
    service = WordDocumentService(DocumentHost(DocxEngine(document)))

    outcome = await service.replace_excluding("cat", "dog")

    assert outcome.ok
    assert [etree.QName(child).localname for child in run._r] == ["t", "fldChar"]
    assert run._r[0].text == "dog "
    assert field.get(qn("w:fldCharType")) == "begin"


def test_tabs_count_as_text_and_go_when_matched() -> None:
    document = Document()
    run = document.add_paragraph().add_run("x\ty")
    engine = DocxEngine(document)
    assert engine.paragraph_texts() == ["x\ty"]

    engine.replace(engine.search("x\ty")[0], "z")

    assert engine.paragraph_texts() == ["z"]
    assert run._r.find(qn("w:tab")) is None


def test_text_inserted_into_a_run_without_text_nodes() -> None:
    document = Document()
    paragraph = document.add_paragraph()
    run = paragraph.add_run()
    run._r.append(OxmlElement("w:fldChar"))
    engine = DocxEngine(document)

    engine.insert_text(engine.paragraph_range(0), "Total", InsertLocation.END)

    assert engine.paragraph_texts() == ["Total"]
    assert [etree.QName(child).localname for child in run._r] == ["fldChar", "t"]


def test_replacements_in_one_paragraph_stay_aligned() -> None:
    engine = _engine("cat and cat", "no match here")

    for hit in engine.search("cat"):
        engine.replace(hit, "tiger")

    assert engine.paragraph_texts() == ["tiger and tiger", "no match here"]


def test_clear_leaves_one_empty_paragraph_and_section_properties() -> None:
    engine = _engine("one", "two")

    engine.clear()

    assert engine.paragraph_texts() == [""]
    assert engine.document.element.body.find(qn("w:sectPr")) is not None


def test_body_markup_lists_every_paragraph() -> None:
    engine = _engine("Intro", "Body")

    markup = engine.get_ooxml()

    assert paragraphs_from_markup(markup) == ["Intro", "Body"]


def test_markup_import_replaces_the_body_before_section_properties() -> None:
    engine = _engine("Old")

    engine.insert_ooxml(markup_from_paragraphs(["One", "Two"]), InsertLocation.REPLACE)

    assert engine.paragraph_texts() == ["One", "Two"]
    assert list(engine.document.element.body)[-1].tag == qn("w:sectPr")


def test_markup_import_at_start_keeps_existing_handles() -> None:
    engine = _engine("Body")
    handle = engine.paragraph_range(0)

    engine.insert_ooxml(markup_from_paragraphs(["Title"]), InsertLocation.START)

    assert engine.paragraph_texts() == ["Title", "Body"]
    assert engine.range_text(handle) == "Body"


def test_checkpoint_restores_the_body() -> None:
    engine = _engine("keep me")
    checkpoint = engine.checkpoint()

    engine.clear()
    engine.restore(checkpoint)

    assert engine.paragraph_texts() == ["keep me"]


def test_open_missing_file_starts_blank_and_saves(tmp_path: Path) -> None:
    target = tmp_path / "fresh.docx"
    engine = DocxEngine.open(target)

    engine.insert_paragraph("Hello", InsertLocation.END)
    saved = engine.save()

    assert saved == target
    assert DocxEngine.open(target).paragraph_texts() == ["Hello"]


def test_save_requires_a_destination() -> None:
    with pytest.raises(ValueError):
        _engine("text").save()
