from __future__ import annotations

import json

import httpx
import pytest

from synapsebot.errors import ToolExecutionError
from synapsebot.web.extractor import ContentExtractor
from synapsebot.web.search import WebSearcher, parse_results

RESULTS_PAGE = """
<html><body>
  <div class="g"><a href="https://one.test/"><h3>One</h3></a><div class="VwiC3b">First snippet</div></div>
  <div class="g"><span>no heading</span></div>
  <div class="g"><a href="https://two.test/"><h3>Two</h3></a></div>
</body></html>
"""


def test_parse_results_reads_blocks_in_order() -> None:
    results = parse_results(RESULTS_PAGE)

    assert [(item.title, item.link, item.snippet, item.position) for item in results] == [
        ("One", "https://one.test/", "First snippet", 1),
        ("Two", "https://two.test/", "", 2),
    ]


@pytest.mark.asyncio
async def test_search_without_extraction_returns_results_json() -> None:
    seen: list[httpx.URL] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.url)
        return httpx.Response(200, text=RESULTS_PAGE)

    extractor = ContentExtractor(httpx.AsyncClient(transport=httpx.MockTransport(handler)))
    searcher = WebSearcher(extractor, search_url="https://search.test/search")

    payload = json.loads(await searcher.run("python asyncio", extract_websites=False))

    assert [item["link"] for item in payload] == ["https://one.test/", "https://two.test/"]
    assert seen[0].params["q"] == "python asyncio"


@pytest.mark.asyncio
async def test_search_with_extraction_fetches_top_links() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "search.test":
            return httpx.Response(200, text=RESULTS_PAGE)
        return httpx.Response(200, text=f"<title>{request.url.host}</title>")

    extractor = ContentExtractor(httpx.AsyncClient(transport=httpx.MockTransport(handler)))
    searcher = WebSearcher(extractor, search_url="https://search.test/search", extract_limit=1)

    payload = json.loads(await searcher.run("python", extract_websites=True))

    assert [(item["url"], item["title"]) for item in payload] == [("https://one.test/", "one.test")]


@pytest.mark.asyncio
async def test_search_rejects_blank_query_and_bad_status() -> None:
    extractor = ContentExtractor(httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(503))))
    searcher = WebSearcher(extractor, search_url="https://search.test/search")

    with pytest.raises(ToolExecutionError):
        await searcher.search("   ")
    with pytest.raises(ToolExecutionError, match="non-200"):
        await searcher.search("python")
