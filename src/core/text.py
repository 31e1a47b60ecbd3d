"""Chat body normalization (core domain)."""

from __future__ import annotations

import re

from bs4 import BeautifulSoup

BLOCK_TAGS = ("p", "div", "li", "blockquote", "pre", "h1", "h2", "h3", "h4", "h5", "h6")


def _collapse_whitespace(text: str) -> str:
    return re.sub(r"\s+", " ", text).strip()


def html_to_text(raw: str) -> str:
    """Strip markup from a chat body, keeping line breaks between blocks."""

    if not raw:
        return ""
    soup = BeautifulSoup(raw, "html.parser")
    for br in soup.find_all("br"):
        br.replace_with("\n")
    for block in soup.find_all(BLOCK_TAGS):
        block.append("\n")
    lines = (_collapse_whitespace(line) for line in soup.get_text().splitlines())
    return "\n".join(line for line in lines if line)
