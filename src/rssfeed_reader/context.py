"""Source registry and refresh scheduling for RSS Feed Reader.

FeedContext owns the configured sources, the current selection, the
per-source item lists and the read/archived metadata. It drives the
fetch -> parse -> normalize -> reconcile pipeline and writes a snapshot to
the store after every mutation.
"""

import asyncio
import copy
import logging
import math
import uuid

from rssfeed_reader.database import Database
from rssfeed_reader.errors import FeedError, ValidationError
from rssfeed_reader.feed_parser import parse_feed
from rssfeed_reader.fetcher import FeedFetcher, validate_url
from rssfeed_reader.models import (
    DEFAULT_HOME_VIEW_MODE,
    DEFAULT_REFRESH_MINUTES,
    DEFAULT_SOURCE_NAME,
    FeedStore,
    HomeViewMode,
    Item,
    ItemMeta,
    MetaStore,
    Source,
)
from rssfeed_reader.normalizer import IdFallback, normalize_items
from rssfeed_reader.poller import AutoRefresher
from rssfeed_reader import reconcile

logger = logging.getLogger(__name__)

MIN_REFRESH_MINUTES = 1
MAX_REFRESH_MINUTES = 120


def clamp_refresh_minutes(value) -> int:
    """Round to the nearest whole minute (halves up) and clamp to [1, 120].

    Zero, missing or non-numeric values count as 1.
    """
    try:
        minutes = float(value)
    except (TypeError, ValueError):
        minutes = 0.0
    if math.isnan(minutes) or minutes == 0:
        minutes = 1.0
    if math.isinf(minutes):
        return MAX_REFRESH_MINUTES if minutes > 0 else MIN_REFRESH_MINUTES
    rounded = math.floor(minutes + 0.5)
    return max(MIN_REFRESH_MINUTES, min(MAX_REFRESH_MINUTES, rounded))


class FeedContext:
    """Single owner of feed reader state.

    Call `init()` once inside the event loop to load the persisted snapshot
    and start auto-refresh, and `dispose()` to stop the timer and flush
    pending writes.
    """

    def __init__(
        self,
        store: Database,
        fetcher: FeedFetcher,
        id_fallback: IdFallback = "index",
    ):
        self._store = store
        self._fetcher = fetcher
        self._id_fallback = id_fallback

        self._sources: list[Source] = []
        self._selected_id: str | None = None
        self._refresh_minutes = DEFAULT_REFRESH_MINUTES
        self._home_view_mode: HomeViewMode = DEFAULT_HOME_VIEW_MODE
        self._meta: MetaStore = {}
        self._items: dict[str, list[Item]] = {}

        self.error: str | None = None
        self._manual_fetches = 0
        # source_id -> number of the latest fetch started for it
        self._generation: dict[str, int] = {}
        self._in_flight: dict[str, int] = {}

        self._timer = AutoRefresher(self._on_tick)
        self._save_task: asyncio.Task | None = None
        self._dirty = False

    # --- Lifecycle ---

    async def init(self, fetch: bool = True) -> None:
        """Load the persisted snapshot and arm auto-refresh.

        Args:
            fetch: Whether to immediately fetch the selected source.
        """
        store = await asyncio.to_thread(self._store.load_store)
        self._sources = list(store.sources)
        self._refresh_minutes = clamp_refresh_minutes(store.refresh_minutes)
        self._home_view_mode = store.home_view_mode
        self._meta = store.meta
        ids = {s.id for s in self._sources}
        self._selected_id = store.selected_id if store.selected_id in ids else None
        logger.info(
            "Loaded %d sources (selected: %s, refresh: %d min)",
            len(self._sources),
            self._selected_id,
            self._refresh_minutes,
        )

        self._rearm_timer()
        source = self.selected_source
        if fetch and source is not None:
            await self._load_source(source, silent=False)

    async def dispose(self) -> None:
        """Stop auto-refresh and wait for pending store writes."""
        await self._timer.stop()
        await self.flush()

    async def flush(self) -> None:
        """Wait until the latest state has been handed to the store."""
        while self._save_task is not None and not self._save_task.done():
            await self._save_task

    # --- Read state ---

    @property
    def sources(self) -> list[Source]:
        return list(self._sources)

    @property
    def selected_source(self) -> Source | None:
        return self._find(self._selected_id)

    @property
    def items(self) -> list[Item]:
        """Items of the selected source."""
        if self._selected_id is None:
            return []
        return self._items.get(self._selected_id, [])

    @property
    def visible_items(self) -> list[Item]:
        return [item for item in self.items if not item.archived]

    @property
    def archived_items(self) -> list[Item]:
        return [item for item in self.items if item.archived]

    @property
    def loading(self) -> bool:
        return self._manual_fetches > 0

    @property
    def refresh_minutes(self) -> int:
        return self._refresh_minutes

    @property
    def home_view_mode(self) -> HomeViewMode:
        return self._home_view_mode

    @property
    def timer_armed(self) -> bool:
        return self._timer.armed

    def items_for(self, source_id: str) -> list[Item]:
        return self._items.get(source_id, [])

    def all_items(self) -> list[tuple[Source, Item]]:
        """Every loaded item across all sources, in source order."""
        return [
            (source, item)
            for source in self._sources
            for item in self._items.get(source.id, [])
        ]

    def get_item_meta(self, source_id: str, item_id: str) -> ItemMeta | None:
        return reconcile.get_meta(self._meta, source_id, item_id)

    def snapshot(self) -> FeedStore:
        """A detached copy of everything that gets persisted."""
        return copy.deepcopy(
            FeedStore(
                sources=self._sources,
                selected_id=self._selected_id,
                refresh_minutes=self._refresh_minutes,
                home_view_mode=self._home_view_mode,
                meta=self._meta,
            )
        )

    # --- Registry operations ---

    async def add_source(self, name: str, url: str) -> bool:
        """Subscribe to a new source, select it and fetch it.

        Returns:
            False if the URL is invalid (nothing is changed) or the first
            fetch failed; True otherwise.
        """
        try:
            url = validate_url(url)
        except ValidationError as e:
            logger.warning("Rejected source URL %r: %s", url, e)
            self.error = str(e)
            return False

        source = Source(
            id=uuid.uuid4().hex,
            name=(name or "").strip() or DEFAULT_SOURCE_NAME,
            url=url,
        )
        self._sources.append(source)
        self._selected_id = source.id
        self._items[source.id] = []
        logger.info("Added source '%s' (%s)", source.name, source.url)
        self._persist()
        self._rearm_timer()

        return await self._load_source(source, silent=False)

    async def remove_source(self, source_id: str) -> bool:
        """Remove a source and purge its metadata.

        If it was selected, the first remaining source is selected and
        fetched. Returns False if no such source exists.
        """
        source = self._find(source_id)
        if source is None:
            return False

        self._sources.remove(source)
        purged = reconcile.purge_source(self._meta, source_id)
        self._items.pop(source_id, None)
        self._generation.pop(source_id, None)
        logger.info("Removed source '%s' (%d metadata entries purged)", source.name, purged)

        if self._selected_id != source_id:
            self._persist()
            return True

        next_source = self._sources[0] if self._sources else None
        if next_source is None:
            self._selected_id = None
            self._persist()
            self._rearm_timer()
            return True

        self._selected_id = next_source.id
        self._items[next_source.id] = []
        self._persist()
        self._rearm_timer()
        await self._load_source(next_source, silent=False)
        return True

    async def select_source(self, source_id: str) -> None:
        """Switch selection and fetch the newly selected source."""
        if source_id == self._selected_id:
            return
        source = self._find(source_id)
        if source is None:
            return

        self._selected_id = source_id
        self._items[source_id] = []
        self._persist()
        self._rearm_timer()
        await self._load_source(source, silent=False)

    def set_refresh_interval_minutes(self, minutes) -> int:
        """Set the auto-refresh period. Returns the effective (clamped) value."""
        self._refresh_minutes = clamp_refresh_minutes(minutes)
        self._persist()
        self._rearm_timer()
        return self._refresh_minutes

    def set_home_view_mode(self, mode: HomeViewMode) -> None:
        if mode not in ("single", "all"):
            raise ValueError(f"Unknown home view mode: {mode!r}")
        self._home_view_mode = mode
        self._persist()

    async def refresh(self) -> bool:
        """Fetch the selected source. Returns False if nothing is selected."""
        source = self.selected_source
        if source is None:
            return False
        return await self._load_source(source, silent=False)

    async def refresh_all(self) -> bool:
        """Fetch every source concurrently. Returns True if all succeeded."""
        self.error = None
        results = await asyncio.gather(
            *(
                self._load_source(source, silent=False, reset_error=False)
                for source in self._sources
            )
        )
        return all(results)

    # --- Item state ---

    def toggle_archive(self, item_id: str, source_id: str | None = None) -> ItemMeta | None:
        """Flip an item's archived flag. Defaults to the selected source."""
        return self._toggle(reconcile.toggle_archived, item_id, source_id)

    def toggle_read(self, item_id: str, source_id: str | None = None) -> ItemMeta | None:
        """Flip an item's read flag. Defaults to the selected source."""
        return self._toggle(reconcile.toggle_read, item_id, source_id)

    def _toggle(self, toggle, item_id: str, source_id: str | None) -> ItemMeta | None:
        source_id = source_id or self._selected_id
        if source_id is None or self._find(source_id) is None:
            return None
        updated = toggle(self._meta, self._items.get(source_id, []), source_id, item_id)
        self._persist()
        return updated

    # --- Pipeline ---

    async def _load_source(
        self, source: Source, silent: bool, reset_error: bool = True
    ) -> bool:
        """Fetch, parse, normalize and reconcile one source.

        Manual fetches drive `loading` and `error`; silent ones only log.
        A result is applied only if no newer fetch of the same source was
        started meanwhile and the source still exists. On failure the
        previous item list is kept.
        """
        generation = self._generation.get(source.id, 0) + 1
        self._generation[source.id] = generation
        self._in_flight[source.id] = self._in_flight.get(source.id, 0) + 1
        if not silent:
            self._manual_fetches += 1
            if reset_error:
                self.error = None

        try:
            data = await self._fetcher.fetch(source.url)
            parsed = await asyncio.to_thread(parse_feed, data)
            fresh = normalize_items(parsed.entries, self._id_fallback)
        except FeedError as e:
            self._record_failure(source, silent, generation, str(e))
            return False
        except Exception as e:
            logger.exception("Unexpected error loading '%s'", source.name)
            self._record_failure(source, silent, generation, str(e) or type(e).__name__)
            return False
        finally:
            self._in_flight[source.id] -= 1
            if not self._in_flight[source.id]:
                del self._in_flight[source.id]
            if not silent:
                self._manual_fetches -= 1

        if self._generation.get(source.id) != generation:
            logger.debug("Discarding superseded result for '%s'", source.name)
            return True
        if self._find(source.id) is None:
            logger.debug("Discarding result for removed source '%s'", source.name)
            return True

        for warning in parsed.warnings:
            logger.debug("Feed '%s': %s", source.name, warning)

        self._items[source.id] = reconcile.reconcile(self._meta, source.id, fresh)
        logger.info("Feed '%s': %d items", source.name, len(fresh))
        return True

    def _record_failure(self, source: Source, silent: bool, generation: int, message: str) -> None:
        if silent:
            logger.info("Background refresh of '%s' failed: %s", source.name, message)
            return
        logger.warning("Feed '%s' error: %s", source.name, message)
        if self._generation.get(source.id) == generation:
            self.error = message

    async def _on_tick(self) -> None:
        """Silent refresh: the selected source, or every source in "all" mode."""
        if self._home_view_mode == "all":
            targets = list(self._sources)
        else:
            source = self.selected_source
            targets = [source] if source else []

        targets = [s for s in targets if s.id not in self._in_flight]
        if targets:
            await asyncio.gather(*(self._load_source(s, silent=True) for s in targets))

    def _rearm_timer(self) -> None:
        if self._selected_id is None:
            self._timer.disarm()
        else:
            self._timer.arm(self._refresh_minutes * 60)

    # --- Persistence ---

    def _persist(self) -> None:
        """Schedule a whole-snapshot write; writes are coalesced."""
        self._dirty = True
        if self._save_task is not None and not self._save_task.done():
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._dirty = False
            self._store.save_store(self.snapshot())
            return
        self._save_task = loop.create_task(self._save_pending())

    async def _save_pending(self) -> None:
        while self._dirty:
            self._dirty = False
            await asyncio.to_thread(self._store.save_store, self.snapshot())

    def _find(self, source_id: str | None) -> Source | None:
        if source_id is None:
            return None
        for source in self._sources:
            if source.id == source_id:
                return source
        return None
