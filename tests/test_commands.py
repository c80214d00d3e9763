"""Tests for the interactive command layer."""

import json

import pytest

from conftest import SAMPLE_ATOM_XML, SAMPLE_NO_GUID_XML, SAMPLE_RSS_XML
from rssfeed_reader.commands import run_command

BLOG_URL = "https://example.com/rss"
NEWS_URL = "https://news.example.com/atom"


async def _run(ctx, line: str) -> dict:
    return json.loads(await run_command(ctx, line))


@pytest.mark.asyncio
async def test_add_and_list_sources(ctx, fetcher):
    fetcher.responses[BLOG_URL] = SAMPLE_RSS_XML

    result = await _run(ctx, f"add {BLOG_URL} My Blog")

    assert result["status"] == "subscribed"
    assert result["source"]["name"] == "My Blog"
    assert result["item_count"] == 2

    listing = await _run(ctx, "sources")
    assert listing["total"] == 1
    assert listing["sources"][0]["selected"] is True


@pytest.mark.asyncio
async def test_add_invalid_url(ctx):
    result = await _run(ctx, "add nonsense")

    assert result["status"] == "error"
    assert "Invalid URL" in result["message"]


@pytest.mark.asyncio
async def test_read_and_archive_toggle(ctx, fetcher):
    fetcher.responses[BLOG_URL] = SAMPLE_RSS_XML
    await _run(ctx, f"add {BLOG_URL} Blog")

    assert (await _run(ctx, "read article-1"))["read"] is True
    assert (await _run(ctx, "archive article-2"))["archived"] is True

    items = await _run(ctx, "items")
    assert [i["id"] for i in items["items"]] == ["article-1"]
    assert items["items"][0]["read"] is True
    assert items["items"][0]["source"] == "Blog"

    archived = await _run(ctx, "archived")
    assert [i["id"] for i in archived["items"]] == ["article-2"]


@pytest.mark.asyncio
async def test_toggle_item_of_unselected_source_in_all_mode(ctx, fetcher):
    fetcher.responses[BLOG_URL] = SAMPLE_RSS_XML
    fetcher.responses[NEWS_URL] = SAMPLE_ATOM_XML
    await _run(ctx, f"add {BLOG_URL} Blog")
    await _run(ctx, f"add {NEWS_URL} News")

    result = await _run(ctx, "read article-1")

    assert result["status"] == "success"
    assert result["source"] == "Blog"
    items = {i["id"]: i for i in (await _run(ctx, "items"))["items"]}
    assert items["article-1"]["read"] is True
    assert items["article-1"]["source_id"] == ctx.sources[0].id


@pytest.mark.asyncio
async def test_toggle_with_source_argument_disambiguates(ctx, fetcher):
    other_url = "https://other.example.com/rss"
    fetcher.responses[BLOG_URL] = SAMPLE_NO_GUID_XML
    fetcher.responses[other_url] = SAMPLE_NO_GUID_XML
    await _run(ctx, f"add {BLOG_URL} Blog")
    await _run(ctx, f"add {other_url} Other")
    blog_id = ctx.sources[0].id

    result = await _run(ctx, "archive 0 Blog")

    assert result["status"] == "success"
    assert result["archived"] is True
    assert ctx.items_for(blog_id)[0].archived is True
    assert ctx.items[0].archived is False


@pytest.mark.asyncio
async def test_toggle_item_not_in_named_source(ctx, fetcher):
    fetcher.responses[BLOG_URL] = SAMPLE_RSS_XML
    await _run(ctx, f"add {BLOG_URL} Blog")

    result = await _run(ctx, "read nope Blog")

    assert result["status"] == "error"
    assert "Blog" in result["message"]


@pytest.mark.asyncio
async def test_toggle_in_single_mode_only_looks_at_selected_source(ctx, fetcher):
    fetcher.responses[BLOG_URL] = SAMPLE_RSS_XML
    fetcher.responses[NEWS_URL] = SAMPLE_ATOM_XML
    await _run(ctx, f"add {BLOG_URL} Blog")
    await _run(ctx, f"add {NEWS_URL} News")
    await _run(ctx, "mode single")

    result = await _run(ctx, "read article-1")

    assert result["status"] == "error"


@pytest.mark.asyncio
async def test_toggle_unknown_item(ctx, fetcher):
    fetcher.responses[BLOG_URL] = SAMPLE_RSS_XML
    await _run(ctx, f"add {BLOG_URL} Blog")

    result = await _run(ctx, "read nope")

    assert result["status"] == "error"


@pytest.mark.asyncio
async def test_items_unread_filter_in_single_mode(ctx, fetcher):
    fetcher.responses[BLOG_URL] = SAMPLE_RSS_XML
    await _run(ctx, f"add {BLOG_URL} Blog")
    await _run(ctx, "mode single")
    await _run(ctx, "read article-1")

    items = await _run(ctx, "items unread")

    assert [i["id"] for i in items["items"]] == ["article-2"]
    assert "source" not in items["items"][0]


@pytest.mark.asyncio
async def test_select_and_remove_by_name(ctx, fetcher):
    fetcher.responses[BLOG_URL] = SAMPLE_RSS_XML
    fetcher.responses[NEWS_URL] = SAMPLE_ATOM_XML
    await _run(ctx, f"add {BLOG_URL} Blog")
    await _run(ctx, f"add {NEWS_URL} News")

    selected = await _run(ctx, "select blog")
    assert selected["source"] == "Blog"

    removed = await _run(ctx, "remove Blog")
    assert removed["status"] == "unsubscribed"
    assert removed["selected"] == "News"


@pytest.mark.asyncio
async def test_ambiguous_source_name(ctx, fetcher):
    fetcher.responses[BLOG_URL] = SAMPLE_RSS_XML
    fetcher.responses[NEWS_URL] = SAMPLE_ATOM_XML
    await _run(ctx, f"add {BLOG_URL} 'Tech Blog'")
    await _run(ctx, f"add {NEWS_URL} 'Tech News'")

    result = await _run(ctx, "select tech")

    assert result["status"] == "error"
    assert sorted(result["matches"]) == ["Tech Blog", "Tech News"]


@pytest.mark.asyncio
async def test_interval_and_mode(ctx):
    assert (await _run(ctx, "interval 500"))["refresh_minutes"] == 120
    assert (await _run(ctx, "interval"))["refresh_minutes"] == 120
    assert (await _run(ctx, "mode single"))["home_view_mode"] == "single"
    assert (await _run(ctx, "mode grid"))["status"] == "error"


@pytest.mark.asyncio
async def test_refresh_without_source(ctx):
    result = await _run(ctx, "refresh")

    assert result["status"] == "error"
    assert result["message"] == "No source selected"


@pytest.mark.asyncio
async def test_unknown_command_and_help(ctx):
    assert (await _run(ctx, "frobnicate"))["status"] == "error"

    help_text = await run_command(ctx, "help")
    assert "add <url>" in help_text
    assert "refresh-all" in help_text
