"""Entry point for RSS Feed Reader: python -m rssfeed_reader"""

import asyncio
import logging
import os

from rssfeed_reader.commands import run_command
from rssfeed_reader.context import FeedContext
from rssfeed_reader.database import Database
from rssfeed_reader.fetcher import DEFAULT_TIMEOUT, FeedFetcher

DEFAULT_DB_PATH = "rssfeed_reader.db"
DEFAULT_ID_FALLBACK = "index"

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(name)s] %(message)s",
    datefmt="%H:%M:%S",
)
# Quiet noisy loggers
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)

logger = logging.getLogger("rssfeed_reader")


async def command_loop(ctx: FeedContext) -> None:
    """Run the interactive command loop."""
    print("RSS Feed Reader ready! Type 'help' for commands (Ctrl+C to quit).\n")

    while True:
        try:
            line = await asyncio.to_thread(input, "rss> ")
        except EOFError:
            break

        line = line.strip()
        if not line:
            continue
        if line in ("quit", "exit"):
            break

        output = await run_command(ctx, line)
        if output:
            print(f"{output}\n")


async def main() -> None:
    """Initialize and run the RSS Feed Reader."""
    db_path = os.environ.get("RSS_DB_PATH", DEFAULT_DB_PATH)
    timeout = float(os.environ.get("RSS_FETCH_TIMEOUT", DEFAULT_TIMEOUT))
    id_fallback = os.environ.get("RSS_ITEM_ID_FALLBACK", DEFAULT_ID_FALLBACK)
    if id_fallback not in ("index", "content"):
        logger.warning("Unknown RSS_ITEM_ID_FALLBACK %r, using 'index'", id_fallback)
        id_fallback = DEFAULT_ID_FALLBACK

    db = Database(db_path)
    db.connect()
    fetcher = FeedFetcher(timeout=timeout)
    ctx = FeedContext(db, fetcher, id_fallback=id_fallback)

    try:
        await ctx.init()
        await command_loop(ctx)
    except KeyboardInterrupt:
        print("\nGoodbye!")
    finally:
        await ctx.dispose()
        await fetcher.aclose()
        db.close()


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()
