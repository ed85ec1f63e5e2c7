"""Bounded-concurrency web page extraction."""

from __future__ import annotations

import asyncio
import json
from collections.abc import Sequence
from dataclasses import asdict, dataclass

import httpx
from bs4 import BeautifulSoup
from loguru import logger

from synapsebot.errors import FetchError

DEFAULT_DEADLINE_SECONDS = 10.0
DEFAULT_FETCH_TIMEOUT_SECONDS = 5.0
MAX_CONCURRENT_FETCHES = 4
MAX_BODY_BYTES = 10 << 20

BROWSER_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/101.0.4951.54 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.5",
}

# Ordered from most to least specific; navigation lists are excluded.
CONTENT_SELECTORS = (
    "article",
    "main",
    "#content",
    ".content",
    ".article-content",
    ".post-content",
    ".content p",
    "[role='main']",
    "[role='article']",
    "p",
    "h1",
    "h2",
    "h3",
    "h4",
    "h5",
    "ul:not(nav ul)",
    "ol:not(nav ol)",
)


@dataclass(frozen=True)
class WebPageRecord:
    url: str
    title: str = ""
    description: str = ""
    published_date: str = ""
    author: str = ""
    content: str = ""


def collapse_whitespace(text: str) -> str:
    return " ".join(text.split())


def dedupe_lines(content: str) -> str:
    """Drop repeated lines, keeping the first occurrence of each."""
    if not content:
        return ""
    return "\n".join(dict.fromkeys(content.split("\n")))


def parse_page(url: str, html: str) -> WebPageRecord:
    soup = BeautifulSoup(html, "html.parser")

    title_tag = soup.find("title")
    title = title_tag.get_text().strip() if title_tag is not None else ""
    description = _meta_content(soup, "description")
    author = _meta_content(soup, "author")
    time_tag = soup.find("time")
    published = str(time_tag.get("datetime", "")) if time_tag is not None else ""

    blocks: list[str] = []
    for selector in CONTENT_SELECTORS:
        for element in soup.select(selector):
            text = element.get_text().strip()
            if text:
                blocks.append(collapse_whitespace(text))

    return WebPageRecord(
        url=url,
        title=title,
        description=description,
        published_date=published,
        author=author,
        content=dedupe_lines("\n".join(blocks)),
    )


def _meta_content(soup: BeautifulSoup, name: str) -> str:
    tag = soup.find("meta", attrs={"name": name})
    if tag is None:
        return ""
    return collapse_whitespace(str(tag.get("content", "")))


def records_to_json(records: Sequence[WebPageRecord]) -> str:
    return json.dumps([asdict(record) for record in records], ensure_ascii=False)


class ContentExtractor:
    """Fetch and parse many URLs under one shared deadline.

    Every URL gets its own task; a semaphore bounds how many fetches are in
    flight. Failed fetches yield a record that carries only the URL; tasks
    that fault are dropped. When the deadline fires, finished records are
    returned and the remaining tasks are cancelled.
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        *,
        deadline: float = DEFAULT_DEADLINE_SECONDS,
        fetch_timeout: float = DEFAULT_FETCH_TIMEOUT_SECONDS,
        max_concurrency: int = MAX_CONCURRENT_FETCHES,
    ) -> None:
        self._client = client
        self._owns_client = client is None
        self.deadline = deadline
        self.fetch_timeout = fetch_timeout
        self.max_concurrency = max_concurrency

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                headers=BROWSER_HEADERS,
                follow_redirects=True,
                timeout=httpx.Timeout(self.fetch_timeout, connect=3.0),
                limits=httpx.Limits(max_connections=100, max_keepalive_connections=100, keepalive_expiry=30.0),
            )
        return self._client

    async def aclose(self) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    async def extract(self, urls: Sequence[str], *, deadline: float | None = None) -> list[WebPageRecord]:
        if not urls:
            return []
        budget = self.deadline if deadline is None else deadline
        loop = asyncio.get_running_loop()
        expires_at = loop.time() + budget
        semaphore = asyncio.Semaphore(self.max_concurrency)

        tasks = [asyncio.create_task(self._run_unit(url, semaphore, expires_at)) for url in urls]
        try:
            done, pending = await asyncio.wait(tasks, timeout=budget)
            if pending:
                logger.warning("extractor.deadline completed={} cancelled={}", len(done), len(pending))
        finally:
            # Runs on the deadline and when the caller itself is cancelled.
            unfinished = [task for task in tasks if not task.done()]
            for task in unfinished:
                task.cancel()
            if unfinished:
                await asyncio.gather(*unfinished, return_exceptions=True)

        records = [record for task in done if not task.cancelled() and (record := task.result()) is not None]
        logger.info("extractor.batch urls={} records={}", len(urls), len(records))
        return records

    async def _run_unit(self, url: str, semaphore: asyncio.Semaphore, expires_at: float) -> WebPageRecord | None:
        try:
            async with semaphore:
                if asyncio.get_running_loop().time() >= expires_at:
                    logger.info("extractor.skip.expired url={}", url)
                    return None
                return await self.scrape(url)
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("extractor.unit.error url={}", url)
            return None

    async def scrape(self, url: str) -> WebPageRecord:
        """Fetch and parse one page; fetch failures produce a URL-only record."""
        try:
            html = await self._fetch(url)
        except FetchError as exc:
            logger.info("extractor.fetch.failed url={} error={}", url, exc)
            return WebPageRecord(url=url)

        try:
            return await asyncio.to_thread(parse_page, url, html)
        except Exception as exc:
            logger.info("extractor.parse.failed url={} error={!r}", url, exc)
            return WebPageRecord(url=url)

    async def _fetch(self, url: str) -> str:
        try:
            async with asyncio.timeout(self.fetch_timeout):
                async with self.client.stream("GET", url, headers=BROWSER_HEADERS) as response:
                    if response.status_code != httpx.codes.OK:
                        raise FetchError(f"status {response.status_code}")
                    body = bytearray()
                    async for chunk in response.aiter_bytes():
                        body.extend(chunk)
                        if len(body) >= MAX_BODY_BYTES:
                            del body[MAX_BODY_BYTES:]
                            break
                    encoding = response.encoding or "utf-8"
        except TimeoutError as exc:
            raise FetchError(f"timed out after {self.fetch_timeout}s") from exc
        except httpx.HTTPError as exc:
            raise FetchError(str(exc) or exc.__class__.__name__) from exc
        return _decode(bytes(body), encoding)


def _decode(body: bytes, encoding: str) -> str:
    try:
        return body.decode(encoding, errors="replace")
    except LookupError:
        return body.decode("utf-8", errors="replace")
