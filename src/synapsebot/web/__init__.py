"""Web search and content extraction."""

from synapsebot.web.extractor import ContentExtractor, WebPageRecord, dedupe_lines
from synapsebot.web.search import SearchResult, WebSearcher

__all__ = ["ContentExtractor", "SearchResult", "WebPageRecord", "WebSearcher", "dedupe_lines"]
