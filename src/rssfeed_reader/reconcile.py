"""Merge freshly fetched items with persisted per-item user state."""

from dataclasses import replace

from rssfeed_reader.models import Item, ItemMeta, MetaStore


def reconcile(meta: MetaStore, source_id: str, items: list[Item]) -> list[Item]:
    """Carry archived/read flags over from metadata onto a new item list.

    Items without a metadata entry come back unread and unarchived. The
    metadata map is only read; entries are never created here, and entries
    for items missing from this batch are left in place.
    """
    source_meta = meta.get(source_id, {})
    merged = []
    for item in items:
        m = source_meta.get(item.id)
        merged.append(
            replace(
                item,
                archived=m.archived if m else False,
                read=m.read if m else False,
            )
        )
    return merged


def get_meta(meta: MetaStore, source_id: str, item_id: str) -> ItemMeta | None:
    """Look up the stored state of one item, if any was ever recorded."""
    return meta.get(source_id, {}).get(item_id)


def toggle_archived(
    meta: MetaStore, items: list[Item], source_id: str, item_id: str
) -> ItemMeta:
    """Flip the archived flag of an item in both the list and the metadata."""
    return _toggle(meta, items, source_id, item_id, "archived")


def toggle_read(
    meta: MetaStore, items: list[Item], source_id: str, item_id: str
) -> ItemMeta:
    """Flip the read flag of an item in both the list and the metadata."""
    return _toggle(meta, items, source_id, item_id, "read")


def _toggle(
    meta: MetaStore, items: list[Item], source_id: str, item_id: str, flag: str
) -> ItemMeta:
    source_meta = meta.setdefault(source_id, {})
    current = source_meta.get(item_id) or ItemMeta()
    updated = replace(current, **{flag: not getattr(current, flag)})
    source_meta[item_id] = updated

    for item in items:
        if item.id == item_id:
            setattr(item, flag, getattr(updated, flag))
    return updated


def purge_source(meta: MetaStore, source_id: str) -> int:
    """Drop every metadata entry of a source. Returns how many were removed."""
    return len(meta.pop(source_id, {}))
