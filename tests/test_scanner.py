import asyncio

import pytest

from conftest import FakeDocument, FakePage, run
from highlight_anchor.core.errors import ExtractionFailure, InvalidSearchTerm
from highlight_anchor.core.scanner import build_word_pattern, scan_document, scan_page

VIEWPORT = {"page_number": 1, "viewport_width": 600.0, "viewport_height": 800.0}


def test_scan_page_reference_run() -> None:
    runs = [run("In this paper we present", x=0, y=700, width=120, height=10)]

    positions = scan_page(runs, 1, VIEWPORT, "In")

    assert len(positions) == 1
    pos = positions[0]
    assert pos["page_number"] == 1
    assert pos["bounding_rect"] == {"x1": 0.0, "y1": 90.0, "x2": 10.0, "y2": 100.0, "width": 600.0, "height": 800.0}
    assert pos["rects"] == [{"x1": 0.0, "y1": 90.0, "x2": 10.0, "y2": 100.0, "width": 10.0, "height": 10.0}]


def test_scan_page_offsets_by_match_start() -> None:
    # 24 chars over 120 units -> 5 units per char; "paper" starts at index 8
    runs = [run("In this paper we present", x=50, y=700, width=120, height=10)]

    (pos,) = scan_page(runs, 1, VIEWPORT, "paper")

    assert pos["bounding_rect"]["x1"] == pytest.approx(90.0)
    assert pos["bounding_rect"]["x2"] == pytest.approx(115.0)
    assert pos["rects"][0]["width"] == pytest.approx(25.0)


@pytest.mark.parametrize("text", ["Inside the box", "within reach", "INFO", "in this"])
def test_whole_word_case_sensitive(text) -> None:
    assert scan_page([run(text)], 1, VIEWPORT, "In") == []


def test_counts_every_non_overlapping_occurrence() -> None:
    runs = [run("In and In, then (In)", width=200)]

    positions = scan_page(runs, 1, VIEWPORT, "In")

    assert len(positions) == 3
    for pos in positions:
        rect = pos["bounding_rect"]
        assert rect["x2"] > rect["x1"]
        assert rect["y2"] > rect["y1"]
    xs = [p["bounding_rect"]["x1"] for p in positions]
    assert xs == sorted(xs)


def test_overlapping_occurrences_resume_after_match() -> None:
    assert len(scan_page([run("aa aa")], 1, VIEWPORT, "aa")) == 2
    assert scan_page([run("aaa")], 1, VIEWPORT, "aa") == []


def test_metacharacters_are_literal() -> None:
    assert len(scan_page([run("see a.b here")], 1, VIEWPORT, "a.b")) == 1
    assert scan_page([run("see axb here")], 1, VIEWPORT, "a.b") == []
    assert len(scan_page([run("f(x) or f(y)")], 1, VIEWPORT, "f(x")) == 1


def test_empty_runs_and_pages_contribute_nothing() -> None:
    assert scan_page([], 1, VIEWPORT, "In") == []
    assert scan_page([run("", width=0)], 1, VIEWPORT, "In") == []


def test_runs_contribute_independently() -> None:
    runs = [run("In one", y=700), run("nothing here", y=680), run("also In", y=660)]

    positions = scan_page(runs, 3, VIEWPORT, "In")

    assert [p["bounding_rect"]["y2"] for p in positions] == [100.0, 140.0]
    assert all(p["page_number"] == 3 for p in positions)


def test_empty_word_is_rejected() -> None:
    with pytest.raises(InvalidSearchTerm):
        build_word_pattern("")
    with pytest.raises(InvalidSearchTerm):
        scan_page([run("In")], 1, VIEWPORT, "")


def test_scan_document_concatenates_in_page_order() -> None:
    doc = FakeDocument([
        FakePage([run("In page one")]),
        FakePage([]),
        FakePage([run("In and In")], width=300, height=400),
    ])

    positions = asyncio.run(scan_document(doc, "In"))

    assert [p["page_number"] for p in positions] == [1, 3, 3]
    assert positions[1]["bounding_rect"]["width"] == 300.0
    assert positions[1]["bounding_rect"]["y2"] == pytest.approx(400.0 - 700.0)
    assert doc.requested == [1, 2, 3]


def test_scan_document_honours_page_range() -> None:
    doc = FakeDocument([FakePage([run("In")]), FakePage([run("In")]), FakePage([run("In")])])

    positions = asyncio.run(scan_document(doc, "In", page_range="2-3"))

    assert [p["page_number"] for p in positions] == [2, 3]
    assert doc.requested == [2, 3]


def test_scan_document_propagates_extraction_failure() -> None:
    doc = FakeDocument([FakePage([run("In")]), FakePage([], error=RuntimeError("decoder fault"))])

    with pytest.raises(ExtractionFailure) as info:
        asyncio.run(scan_document(doc, "In"))

    assert info.value.page_number == 2
    assert isinstance(info.value.cause, RuntimeError)


def test_scan_document_validates_word_before_loading_pages() -> None:
    doc = FakeDocument([FakePage([run("In")])])

    with pytest.raises(InvalidSearchTerm):
        asyncio.run(scan_document(doc, ""))

    assert doc.requested == []


def test_offsets_count_utf16_code_units() -> None:
    # two astral characters take four code units: 7 units over 70 -> 10 per unit
    runs = [run("\U0001d465\U0001d466 In", x=0, width=70)]

    (pos,) = scan_page(runs, 1, VIEWPORT, "In")

    assert pos["bounding_rect"]["x1"] == pytest.approx(50.0)
    assert pos["bounding_rect"]["x2"] == pytest.approx(70.0)
    assert pos["rects"][0]["width"] == pytest.approx(20.0)
