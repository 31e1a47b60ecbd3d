"""Lobby DOM extraction.

Reads chat entries and the MOTD panel from the signed-in lobby page and maps
them onto core models.
"""

from __future__ import annotations

from typing import Any, Iterable, Optional

from adapters.spectrum_session import SpectrumSession, translate_detached
from core.models import ChatItem, MotdEntry

_ITEMS_SCRIPT = """
(sel) => Array.from(document.querySelectorAll(sel.message_item)).map((node) => {
  const author = node.querySelector(sel.message_author);
  const body = node.querySelector(sel.message_body);
  const time = node.querySelector(sel.message_time);
  return {
    id: node.getAttribute(sel.message_id_attribute) || "",
    author: author ? author.textContent.trim() : "",
    body: body ? body.innerHTML : "",
    time: time ? (time.getAttribute("datetime") || time.textContent.trim()) : "",
  };
})
"""

_MOTD_SCRIPT = """
(sel) => {
  const panel = document.querySelector(sel.motd);
  if (!panel) {
    return null;
  }
  const title = panel.querySelector(sel.motd_title);
  const body = panel.querySelector(sel.motd_body);
  const time = panel.querySelector(sel.motd_time);
  return {
    title: title ? title.textContent.trim() : "",
    body: body ? body.textContent.trim() : "",
    time: time ? (time.getAttribute("datetime") || time.textContent.trim()) : "",
  };
}
"""


def _to_item(raw: dict[str, Any]) -> ChatItem:
    return ChatItem(
        id=str(raw.get("id") or "").strip(),
        author=str(raw.get("author") or "").strip(),
        body=str(raw.get("body") or ""),
        time=str(raw.get("time") or "").strip(),
    )


def select_new_items(raw_items: Iterable[dict[str, Any]], last_item_id: str) -> list[ChatItem]:
    """Keep the entries that come strictly after ``last_item_id``.

    Entries are in page order (oldest first). When the cursor id is still on
    the page, everything after it is new. Otherwise numeric ids are compared
    numerically, and with no usable cursor everything visible is returned.
    """

    items = [item for item in (_to_item(raw) for raw in raw_items) if item.id]
    if not last_item_id:
        return items

    ids = [item.id for item in items]
    if last_item_id in ids:
        return items[ids.index(last_item_id) + 1 :]

    if last_item_id.isdigit():
        threshold = int(last_item_id)
        return [item for item in items if item.id.isdigit() and int(item.id) > threshold]

    return items


def build_motd(raw: Optional[dict[str, Any]]) -> Optional[MotdEntry]:
    if not raw:
        return None
    body = str(raw.get("body") or "").strip()
    if not body:
        return None
    return MotdEntry(
        title=str(raw.get("title") or "").strip(),
        body=body,
        time=str(raw.get("time") or "").strip(),
    )


class SpectrumExtractor:
    """Extractor adapter over the lobby page."""

    def __init__(self, selectors: dict[str, str]) -> None:
        self._selectors = selectors

    async def fetch_new_items(self, session: SpectrumSession, last_item_id: str) -> list[ChatItem]:
        with translate_detached():
            raw_items = await session.page.evaluate(_ITEMS_SCRIPT, self._selectors)
        return select_new_items(raw_items or [], last_item_id)

    async def fetch_motd(self, session: SpectrumSession) -> Optional[MotdEntry]:
        with translate_detached():
            raw = await session.page.evaluate(_MOTD_SCRIPT, self._selectors)
        return build_motd(raw)
