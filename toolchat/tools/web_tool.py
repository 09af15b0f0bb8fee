"""Web search tool backed by the DuckDuckGo HTML endpoint."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional
from urllib.parse import quote

import requests
from bs4 import BeautifulSoup
from pydantic import BaseModel, Field, field_validator

from toolchat.config import DEFAULT_USER_AGENT
from toolchat.errors import CapabilityFailure
from toolchat.tools import ToolSpec

logger = logging.getLogger(__name__)

SEARCH_URL = "https://html.duckduckgo.com/html/?q={query}"
DEFAULT_COUNT = 5
PAGE_TEXT_SELECTOR = "p, h1, h2, h3, h4, h5, h6, article, section"


@dataclass(frozen=True, slots=True)
class SearchResult:
    title: str
    url: str
    content: str


class SearchArgs(BaseModel):
    """Input schema for the websearch tool."""

    query: str = Field(description="The search query to do web search on.")
    count: int = Field(
        default=DEFAULT_COUNT,
        ge=0,
        description="Optional field to mention how many web search results are needed",
    )

    @field_validator("query")
    @classmethod
    def _query_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("query must be a non-empty string")
        return value


class WebSearchClient:
    """
    Thin DuckDuckGo scraper.

    Holds no per-request state, so one instance can serve every request.
    """

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        user_agent: str = DEFAULT_USER_AGENT,
        timeout: float = 20.0,
    ) -> None:
        self._session = session or requests.Session()
        self._headers = {"User-Agent": user_agent}
        self._timeout = timeout

    def search(self, query: str, count: int = DEFAULT_COUNT) -> List[SearchResult]:
        """
        Return up to ``count`` results in the engine's ranking order.

        Raises
        ------
        requests.RequestException
            On network failure or a non-success HTTP status.
        """
        if count <= 0:
            return []
        logger.info("Performing DuckDuckGo search for query: %s", query)
        response = self._session.get(
            SEARCH_URL.format(query=quote(query)),
            headers=self._headers,
            timeout=self._timeout,
        )
        response.raise_for_status()

        soup = BeautifulSoup(response.text, "lxml")
        results: List[SearchResult] = []
        for node in soup.select(".result")[:count]:
            title_elem = node.select_one(".result__title a")
            snippet_elem = node.select_one(".result__snippet")
            if title_elem is None or snippet_elem is None:
                continue
            url = title_elem.get("href") or ""
            if not url:
                continue
            results.append(
                SearchResult(
                    title=title_elem.get_text().strip(),
                    url=url,
                    content=snippet_elem.get_text().strip(),
                )
            )

        logger.info("Found %d DuckDuckGo search results", len(results))
        return results

    def fetch_page_content(self, url: str) -> str:
        """Return the readable text blocks of a page joined by blank lines."""
        response = self._session.get(url, headers=self._headers, timeout=self._timeout)
        response.raise_for_status()
        soup = BeautifulSoup(response.text, "lxml")
        blocks = [element.get_text() for element in soup.select(PAGE_TEXT_SELECTOR)]
        return "\n\n".join(blocks).strip()


def render_results(results: List[SearchResult]) -> str:
    """Render results the way they are fed back to the model."""
    return "\n".join(
        f"Title: {result.title}\nURL: {result.url}\nContent: {result.content}\n---" for result in results
    )


def build_search_tool(client: WebSearchClient) -> ToolSpec:
    """Wrap ``client`` as the ``websearch`` tool."""

    def _run(args: SearchArgs) -> str:
        try:
            results = client.search(args.query, args.count)
        except requests.RequestException as exc:
            logger.error("Web search error: %s", exc)
            raise CapabilityFailure(f"Web search failed: {exc}") from exc
        return render_results(results)

    return ToolSpec(
        name="websearch",
        description="Get search results from web for latest events, news.",
        args_model=SearchArgs,
        fn=_run,
    )
