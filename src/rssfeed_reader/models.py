"""Data models for RSS Feed Reader."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Literal

HomeViewMode = Literal["single", "all"]

DEFAULT_SOURCE_NAME = "New Source"
DEFAULT_REFRESH_MINUTES = 15
DEFAULT_HOME_VIEW_MODE: HomeViewMode = "all"

# source_id -> item_id -> ItemMeta
MetaStore = dict[str, dict[str, "ItemMeta"]]


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class Source:
    """Represents a subscribed RSS/Atom source."""

    id: str
    url: str
    name: str = DEFAULT_SOURCE_NAME
    created_at: str = field(default_factory=_utc_now_iso)


@dataclass
class Item:
    """Represents a single entry from a fetched feed."""

    id: str
    title: str
    link: str = ""
    publish_date: str | None = None
    summary: str = ""
    archived: bool = False
    read: bool = False


@dataclass
class ItemMeta:
    """Persisted user state of one item."""

    archived: bool = False
    read: bool = False


@dataclass
class FeedStore:
    """Everything that is written to durable storage as one snapshot."""

    sources: list[Source] = field(default_factory=list)
    selected_id: str | None = None
    refresh_minutes: int = DEFAULT_REFRESH_MINUTES
    home_view_mode: HomeViewMode = DEFAULT_HOME_VIEW_MODE
    meta: MetaStore = field(default_factory=dict)
