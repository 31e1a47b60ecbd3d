from __future__ import annotations

from core.text import html_to_text


def test_strips_inline_markup() -> None:
    assert html_to_text("<p>Hello <b>world</b></p>") == "Hello world"


def test_line_breaks_and_blocks() -> None:
    assert html_to_text("first<br>second") == "first\nsecond"
    assert html_to_text("<p>one</p><p>two</p>") == "one\ntwo"


def test_decodes_entities_and_collapses_whitespace() -> None:
    assert html_to_text("<div>  Patch   3.23 &amp; more  </div>") == "Patch 3.23 & more"


def test_plain_text_passes_through() -> None:
    assert html_to_text("just text") == "just text"
    assert html_to_text("") == ""
