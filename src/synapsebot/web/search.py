"""Search engine results scraping."""

from __future__ import annotations

import asyncio
import json
from dataclasses import asdict, dataclass

import httpx
from bs4 import BeautifulSoup
from loguru import logger

from synapsebot.errors import ToolExecutionError
from synapsebot.web.extractor import BROWSER_HEADERS, ContentExtractor, records_to_json

DEFAULT_EXTRACT_LIMIT = 5


@dataclass(frozen=True)
class SearchResult:
    title: str
    link: str
    snippet: str
    position: int


def parse_results(html: str) -> list[SearchResult]:
    """Read result blocks from a Google results page."""
    soup = BeautifulSoup(html, "html.parser")
    results: list[SearchResult] = []
    for block in soup.select("div.g"):
        heading = block.find("h3")
        anchor = block.find("a", href=True)
        if heading is None or anchor is None:
            continue
        title = heading.get_text().strip()
        link = str(anchor["href"]).strip()
        snippet_tag = block.select_one(".VwiC3b")
        snippet = snippet_tag.get_text().strip() if snippet_tag is not None else ""
        if title and link:
            results.append(SearchResult(title=title, link=link, snippet=snippet, position=len(results) + 1))
    return results


class WebSearcher:
    """Run a search query and optionally extract the top result pages."""

    def __init__(
        self,
        extractor: ContentExtractor,
        *,
        search_url: str,
        extract_limit: int = DEFAULT_EXTRACT_LIMIT,
    ) -> None:
        self._extractor = extractor
        self.search_url = search_url
        self.extract_limit = extract_limit

    async def search(self, query: str) -> list[SearchResult]:
        query = query.strip()
        if not query:
            raise ToolExecutionError("invalid or missing query argument")

        try:
            response = await self._extractor.client.get(
                self.search_url,
                params={"q": query, "hl": "en"},
                headers=BROWSER_HEADERS,
            )
        except httpx.HTTPError as exc:
            raise ToolExecutionError(f"failed to fetch results for query '{query}': {exc}") from exc

        if response.status_code != httpx.codes.OK:
            raise ToolExecutionError(f"received non-200 status code: {response.status_code}")

        results = await asyncio.to_thread(parse_results, response.text)
        logger.info("search.results query={} count={}", query, len(results))
        return results

    async def run(self, query: str, *, extract_websites: bool) -> str:
        results = await self.search(query)
        if extract_websites:
            links = [result.link for result in results[: self.extract_limit]]
            records = await self._extractor.extract(links)
            return records_to_json(records)
        return json.dumps([asdict(result) for result in results], ensure_ascii=False)
