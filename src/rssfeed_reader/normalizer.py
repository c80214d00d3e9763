"""Map loosely typed feed entries onto the canonical Item model.

Raw entries come from feedparser, but the same logical field can still show
up in different shapes depending on the document and the XML mapping that
produced it:

    "Hello"                              plain text
    {"#text": "Hello", "type": "html"}   text node with attributes
    {"value": "Hello"}                   feedparser *_detail style
    [{"href": "...", "rel": "alternate"}] list of link elements

The helpers below unwrap those shapes. Nothing in this module raises for
missing or oddly shaped fields; defaults are applied instead.
"""

import hashlib
from collections.abc import Mapping
from typing import Any, Literal

from rssfeed_reader.models import Item

UNTITLED = "Untitled"

IdFallback = Literal["index", "content"]

_TEXT_KEYS = ("#text", "value")
_HREF_KEYS = ("href", "@href")


def unwrap_text(value: Any) -> str | None:
    """Return the text carried by a raw value, or None if there is none."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        return value.strip() or None
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, Mapping):
        for key in _TEXT_KEYS:
            if key in value:
                text = unwrap_text(value[key])
                if text:
                    return text
        return None
    if isinstance(value, (list, tuple)):
        for element in value:
            text = unwrap_text(element)
            if text:
                return text
    return None


def unwrap_href(value: Any) -> str | None:
    """Return the href of an Atom-style link value (mapping or list of them)."""
    if isinstance(value, Mapping):
        for key in _HREF_KEYS:
            href = value.get(key)
            if isinstance(href, str) and href.strip():
                return href.strip()
        return None
    if isinstance(value, (list, tuple)):
        links = [v for v in value if isinstance(v, Mapping)]
        # Atom: rel defaults to "alternate" when absent
        alternates = [v for v in links if v.get("rel", v.get("@rel", "alternate")) == "alternate"]
        for link in alternates + links:
            href = unwrap_href(link)
            if href:
                return href
        for element in value:
            if isinstance(element, str) and element.strip():
                return element.strip()
    return None


def _first(raw: Mapping, *keys: str) -> str | None:
    """First non-empty text among the given fields."""
    for key in keys:
        if key in raw:
            text = unwrap_text(raw[key])
            if text:
                return text
    return None


def _link(raw: Mapping) -> str:
    # feedparser copies a permalink guid into "link" when no <link> element
    # was seen; such an entry has no "links" list.
    if raw.get("guidislink") and not raw.get("links"):
        return ""
    link = raw.get("link")
    href = unwrap_href(link)
    if href:
        return href
    if isinstance(link, str) and link.strip():
        return link.strip()
    return unwrap_href(raw.get("links")) or ""


def content_id(title: str | None, link: str | None) -> str | None:
    """Stable id derived from an entry's title and link."""
    if not title and not link:
        return None
    digest = hashlib.sha256(f"{title or ''}\n{link or ''}".encode()).hexdigest()
    return f"sha256:{digest[:16]}"


def normalize_item(raw: Any, index: int, id_fallback: IdFallback = "index") -> Item:
    """Build an Item from one raw entry and its position in the fetched batch.

    Args:
        raw: The entry as produced by the parser.
        index: Zero-based position of the entry within the batch.
        id_fallback: What to use as id when the entry has no guid/id:
            "index" (position in the batch) or "content" (hash of title+link).

    Returns:
        An Item with archived/read left False for reconciliation to fill in.
    """
    if not isinstance(raw, Mapping):
        raw = {}

    title = _first(raw, "title")
    link = _link(raw)

    item_id = _first(raw, "guid", "id")
    if item_id is None and id_fallback == "content":
        item_id = content_id(title, link)
    if item_id is None:
        item_id = str(index)

    return Item(
        id=item_id,
        title=title or UNTITLED,
        link=link,
        publish_date=_first(raw, "pubDate", "updated", "published"),
        summary=_first(raw, "description", "summary") or "",
    )


def normalize_items(entries: list, id_fallback: IdFallback = "index") -> list[Item]:
    """Normalize a whole fetched batch, keeping feed order."""
    return [
        normalize_item(entry, index, id_fallback)
        for index, entry in enumerate(entries)
    ]
