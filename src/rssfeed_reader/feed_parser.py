"""RSS/Atom feed parsing using feedparser."""

import io
import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass, field

import feedparser

from rssfeed_reader.errors import FormatError

logger = logging.getLogger(__name__)

_COMMENT_RE = re.compile(rb"<!--.*?-->", re.DOTALL)
_ELEMENT_RE = re.compile(rb"<([A-Za-z_][\w.\-]*:)?([A-Za-z_][\w.\-]*)")
_ROOT_SCAN_BYTES = 4096


@dataclass
class ParsedFeed:
    """Result of parsing an RSS/Atom document."""

    title: str | None
    entries: list[Mapping]
    version: str = ""
    warnings: list[str] = field(default_factory=list)


def parse_feed(data: bytes | str) -> ParsedFeed:
    """Parse raw RSS, Atom or bare-channel XML into loosely typed entries.

    Individual entries are returned as feedparser produced them; nothing is
    dropped here; the normalizer fills in defaults for missing fields.

    Args:
        data: The raw document, as fetched. Text is encoded as UTF-8.

    Returns:
        ParsedFeed with the feed title (if any) and its entries.

    Raises:
        FormatError: If neither a channel nor a feed root is present.
    """
    if isinstance(data, str):
        data = data.encode("utf-8")
    data = data or b""
    # A stream is never mistaken for a URL or path. No base URI is passed,
    # so guids stay as written instead of being resolved against the feed URL.
    parsed = feedparser.parse(io.BytesIO(data))

    version = parsed.get("version", "")
    if not version and root_element(data) != "channel":
        if parsed.get("bozo"):
            logger.debug("Rejected document: %s", parsed.get("bozo_exception"))
        raise FormatError("unexpected feed format")

    warnings: list[str] = []
    if parsed.get("bozo"):
        warnings.append(f"Feed has formatting issues: {parsed.get('bozo_exception')}")

    channel = parsed.get("feed") or {}
    return ParsedFeed(
        title=channel.get("title") or None,
        entries=as_list(parsed.get("entries")),
        version=version,
        warnings=warnings,
    )


def root_element(data: bytes) -> str | None:
    """Local name of the document's first element, lowercased.

    feedparser recognizes rss, RDF and feed roots by setting a version;
    a bare <channel> root leaves the version empty, so it is checked here.
    """
    head = _COMMENT_RE.sub(b"", data[:_ROOT_SCAN_BYTES])
    match = _ELEMENT_RE.search(head)
    if match is None:
        return None
    return match.group(2).decode("ascii", "replace").lower()


def as_list(value) -> list:
    """Return value as a list: a single mapping becomes a one-element list."""
    if value is None:
        return []
    if isinstance(value, Mapping):
        return [value]
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]
