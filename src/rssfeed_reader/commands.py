"""Command implementations for the RSS Feed Reader prompt.

Each command takes the FeedContext and the already-split arguments and
returns a JSON string describing the outcome.
"""

import json
import shlex

from rssfeed_reader.context import FeedContext
from rssfeed_reader.models import Item, Source

SUMMARY_PREVIEW_CHARS = 200


def _error(message: str, **extra) -> str:
    return json.dumps({"status": "error", "message": message, **extra})


def _item_to_dict(item: Item, source: Source | None = None) -> dict:
    data = {
        "id": item.id,
        "title": item.title,
        "link": item.link,
        "summary": (item.summary or "")[:SUMMARY_PREVIEW_CHARS],
        "publish_date": item.publish_date,
        "read": item.read,
        "archived": item.archived,
    }
    if source is not None:
        data["source"] = source.name
        data["source_id"] = source.id
    return data


def _resolve_source(ctx: FeedContext, identifier: str) -> Source | str:
    """Find a source by id, exact URL, or case-insensitive name substring.

    Returns the Source, or a JSON error string.
    """
    sources = ctx.sources
    for source in sources:
        if identifier in (source.id, source.url):
            return source

    needle = identifier.lower()
    matches = [s for s in sources if needle in s.name.lower()]
    if not matches:
        return _error(f"No source found matching '{identifier}'")
    if len(matches) > 1:
        exact = [s for s in matches if s.name.lower() == needle]
        if len(exact) == 1:
            return exact[0]
        return _error(
            "Multiple sources match. Please be more specific.",
            matches=[s.name for s in matches],
        )
    return matches[0]


async def add(ctx: FeedContext, args: list[str]) -> str:
    """add <url> [name...] - subscribe to a feed and select it."""
    if not args:
        return _error("Usage: add <url> [name]")
    url, name = args[0], " ".join(args[1:])

    before = len(ctx.sources)
    ok = await ctx.add_source(name, url)
    if len(ctx.sources) == before:
        return _error(ctx.error or "Invalid URL format")

    source = ctx.selected_source
    result = {
        "status": "subscribed" if ok else "subscribed_with_errors",
        "source": {"id": source.id, "name": source.name, "url": source.url},
        "item_count": len(ctx.items),
    }
    if not ok and ctx.error:
        result["error"] = ctx.error
    return json.dumps(result)


async def remove(ctx: FeedContext, args: list[str]) -> str:
    """remove <source> - unsubscribe and forget its read/archived state."""
    if not args:
        return _error("Usage: remove <source>")
    source = _resolve_source(ctx, " ".join(args))
    if isinstance(source, str):
        return source

    await ctx.remove_source(source.id)
    selected = ctx.selected_source
    return json.dumps({
        "status": "unsubscribed",
        "source": source.name,
        "selected": selected.name if selected else None,
    })


async def select(ctx: FeedContext, args: list[str]) -> str:
    """select <source> - switch to another source and fetch it."""
    if not args:
        return _error("Usage: select <source>")
    source = _resolve_source(ctx, " ".join(args))
    if isinstance(source, str):
        return source

    await ctx.select_source(source.id)
    result = {"status": "selected", "source": source.name, "item_count": len(ctx.items)}
    if ctx.error:
        result["error"] = ctx.error
    return json.dumps(result)


async def sources(ctx: FeedContext, args: list[str]) -> str:
    """sources - list subscriptions."""
    selected = ctx.selected_source
    return json.dumps({
        "sources": [
            {
                "id": s.id,
                "name": s.name,
                "url": s.url,
                "created_at": s.created_at,
                "selected": selected is not None and s.id == selected.id,
            }
            for s in ctx.sources
        ],
        "total": len(ctx.sources),
    })


async def items(ctx: FeedContext, args: list[str]) -> str:
    """items [unread] - non-archived items, across sources in "all" mode."""
    unread_only = "unread" in args
    if ctx.home_view_mode == "all":
        pairs = [(s, i) for s, i in ctx.all_items() if not i.archived]
    else:
        pairs = [(None, i) for i in ctx.visible_items]
    if unread_only:
        pairs = [(s, i) for s, i in pairs if not i.read]

    result = {
        "items": [_item_to_dict(i, s) for s, i in pairs],
        "total": len(pairs),
        "loading": ctx.loading,
    }
    if ctx.error:
        result["error"] = ctx.error
    return json.dumps(result)


async def archived(ctx: FeedContext, args: list[str]) -> str:
    """archived - archived items of the selected source."""
    archived_items = ctx.archived_items
    return json.dumps({
        "items": [_item_to_dict(i) for i in archived_items],
        "total": len(archived_items),
    })


async def read(ctx: FeedContext, args: list[str]) -> str:
    """read <item_id> [source] - toggle read/unread."""
    return _toggle(ctx, args, ctx.toggle_read, "read", "read")


async def archive(ctx: FeedContext, args: list[str]) -> str:
    """archive <item_id> [source] - toggle archived/active."""
    return _toggle(ctx, args, ctx.toggle_archive, "archived", "archive")


def _has_item(ctx: FeedContext, source: Source, item_id: str) -> bool:
    return any(i.id == item_id for i in ctx.items_for(source.id))


def _item_source(ctx: FeedContext, item_id: str) -> Source | str:
    """Find the source an item belongs to when none was named.

    The selected source wins. In "all" mode any other source holding the
    id is accepted as long as exactly one does.
    """
    selected = ctx.selected_source
    if selected is not None and _has_item(ctx, selected, item_id):
        return selected

    if ctx.home_view_mode == "all":
        owners = [s for s in ctx.sources if _has_item(ctx, s, item_id)]
        if len(owners) == 1:
            return owners[0]
        if owners:
            return _error(
                f"Item '{item_id}' exists in several sources. Name the source too.",
                matches=[s.name for s in owners],
            )

    if selected is None:
        return _error("No source selected")
    return _error(f"No item with id '{item_id}' in the selected source")


def _toggle(ctx: FeedContext, args: list[str], toggle, flag: str, command: str) -> str:
    if not args:
        return _error(f"Usage: {command} <item_id> [source]")
    item_id = args[0]

    if len(args) > 1:
        source = _resolve_source(ctx, " ".join(args[1:]))
        if isinstance(source, str):
            return source
        if not _has_item(ctx, source, item_id):
            return _error(f"No item with id '{item_id}' in '{source.name}'")
    else:
        source = _item_source(ctx, item_id)
        if isinstance(source, str):
            return source

    meta = toggle(item_id, source_id=source.id)
    return json.dumps({
        "status": "success",
        "id": item_id,
        "source": source.name,
        flag: getattr(meta, flag),
    })


async def refresh(ctx: FeedContext, args: list[str]) -> str:
    """refresh - refetch the selected source."""
    if ctx.selected_source is None:
        return _error("No source selected")
    ok = await ctx.refresh()
    if not ok:
        return _error(ctx.error or "Refresh failed")
    return json.dumps({"status": "success", "item_count": len(ctx.items)})


async def refresh_all(ctx: FeedContext, args: list[str]) -> str:
    """refresh-all - refetch every source."""
    ok = await ctx.refresh_all()
    result = {"status": "success" if ok else "partial", "sources": len(ctx.sources)}
    if not ok and ctx.error:
        result["error"] = ctx.error
    return json.dumps(result)


async def interval(ctx: FeedContext, args: list[str]) -> str:
    """interval [minutes] - show or set the auto-refresh period (1-120)."""
    if args:
        ctx.set_refresh_interval_minutes(args[0])
    return json.dumps({"refresh_minutes": ctx.refresh_minutes})


async def mode(ctx: FeedContext, args: list[str]) -> str:
    """mode [single|all] - show or set the home view mode."""
    if args:
        try:
            ctx.set_home_view_mode(args[0])
        except ValueError as e:
            return _error(str(e))
    return json.dumps({"home_view_mode": ctx.home_view_mode})


COMMANDS = {
    "add": add,
    "remove": remove,
    "select": select,
    "sources": sources,
    "items": items,
    "archived": archived,
    "read": read,
    "archive": archive,
    "refresh": refresh,
    "refresh-all": refresh_all,
    "interval": interval,
    "mode": mode,
}


def help_text() -> str:
    lines = [COMMANDS[name].__doc__.split("\n")[0] for name in COMMANDS]
    lines += ["help - show this message", "quit - exit"]
    return "\n".join(lines)


async def run_command(ctx: FeedContext, line: str) -> str:
    """Parse one input line and dispatch it."""
    try:
        parts = shlex.split(line)
    except ValueError as e:
        return _error(f"Could not parse command: {e}")
    if not parts:
        return ""

    name, args = parts[0].lower(), parts[1:]
    if name == "help":
        return help_text()
    command = COMMANDS.get(name)
    if command is None:
        return _error(f"Unknown command '{name}'. Type 'help' for a list.")
    return await command(ctx, args)
