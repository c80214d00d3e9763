"""SQLite-backed snapshot storage for RSS Feed Reader."""

import json
import logging
import sqlite3

from rssfeed_reader.models import (
    DEFAULT_HOME_VIEW_MODE,
    DEFAULT_REFRESH_MINUTES,
    DEFAULT_SOURCE_NAME,
    FeedStore,
    ItemMeta,
    MetaStore,
    Source,
)

logger = logging.getLogger(__name__)

STORAGE_KEY = "rssfeed_reader:feed_store"

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS kv_store (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    updated_at TEXT NOT NULL DEFAULT (datetime('now'))
);
"""


class Database:
    """Opaque key -> string blob store on top of SQLite."""

    def __init__(self, db_path: str):
        self.db_path = db_path
        self._conn: sqlite3.Connection | None = None

    def connect(self) -> None:
        """Open database connection and initialize schema."""
        self._conn = sqlite3.connect(self.db_path, check_same_thread=False)
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.row_factory = sqlite3.Row
        self._conn.executescript(SCHEMA_SQL)
        self._conn.commit()

    def close(self) -> None:
        """Close database connection."""
        if self._conn:
            self._conn.close()
            self._conn = None

    @property
    def conn(self) -> sqlite3.Connection:
        if self._conn is None:
            raise RuntimeError("Database not connected. Call connect() first.")
        return self._conn

    def get(self, key: str) -> str | None:
        """Return the blob stored under key, or None."""
        row = self.conn.execute(
            "SELECT value FROM kv_store WHERE key = ?", (key,)
        ).fetchone()
        return row["value"] if row else None

    def set(self, key: str, value: str) -> None:
        """Overwrite the blob stored under key."""
        self.conn.execute(
            """INSERT INTO kv_store (key, value, updated_at)
               VALUES (?, ?, datetime('now'))
               ON CONFLICT(key) DO UPDATE SET
                   value = excluded.value,
                   updated_at = excluded.updated_at""",
            (key, value),
        )
        self.conn.commit()

    # --- Snapshot operations ---

    def load_store(self) -> FeedStore:
        """Load the persisted snapshot, falling back to an empty store.

        Read or decode failures are logged and never raised.
        """
        try:
            raw = self.get(STORAGE_KEY)
        except sqlite3.Error as e:
            logger.error("Store load error: %s", e)
            return FeedStore()
        if not raw:
            return FeedStore()
        try:
            return decode_store(raw)
        except (ValueError, TypeError, KeyError, AttributeError) as e:
            logger.error("Store decode error, starting empty: %s", e)
            return FeedStore()

    def save_store(self, store: FeedStore) -> bool:
        """Write the whole snapshot. Returns False (and logs) on failure."""
        try:
            self.set(STORAGE_KEY, encode_store(store))
        except (sqlite3.Error, RuntimeError) as e:
            logger.error("Store save error: %s", e)
            return False
        return True


# --- Helper functions ---


def encode_store(store: FeedStore) -> str:
    """Serialize a FeedStore to its JSON snapshot form."""
    return json.dumps({
        "sources": [
            {
                "id": s.id,
                "name": s.name,
                "url": s.url,
                "createdAt": s.created_at,
            }
            for s in store.sources
        ],
        "selectedId": store.selected_id,
        "refreshMinutes": store.refresh_minutes,
        "homeViewMode": store.home_view_mode,
        "meta": {
            source_id: {
                item_id: {"archived": m.archived, "read": m.read}
                for item_id, m in items.items()
            }
            for source_id, items in store.meta.items()
        },
    })


def decode_store(raw: str) -> FeedStore:
    """Parse a JSON snapshot. Missing fields get their defaults."""
    data = json.loads(raw)
    sources = [
        Source(
            id=str(s["id"]),
            name=str(s.get("name") or "").strip() or DEFAULT_SOURCE_NAME,
            url=s["url"],
            created_at=s.get("createdAt") or "",
        )
        for s in data.get("sources") or []
    ]
    refresh_minutes = data.get("refreshMinutes")
    if refresh_minutes is None:
        refresh_minutes = DEFAULT_REFRESH_MINUTES
    home_view_mode = data.get("homeViewMode")
    if home_view_mode not in ("single", "all"):
        home_view_mode = DEFAULT_HOME_VIEW_MODE
    return FeedStore(
        sources=sources,
        selected_id=data.get("selectedId"),
        refresh_minutes=refresh_minutes,
        home_view_mode=home_view_mode,
        meta=_decode_meta(data.get("meta") or {}),
    )


def _decode_meta(raw: dict) -> MetaStore:
    return {
        str(source_id): {
            str(item_id): ItemMeta(
                archived=bool(m.get("archived", False)),
                read=bool(m.get("read", False)),
            )
            for item_id, m in items.items()
        }
        for source_id, items in raw.items()
    }
