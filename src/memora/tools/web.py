"""Web tools: read a page, search the web."""

import re
from typing import Any

import httpx
from bs4 import BeautifulSoup, Comment
from tavily import AsyncTavilyClient

from ..logging import get_logger
from ..types import ToolResult
from .base import BaseTool

logger = get_logger(__name__)

MAX_PAGE_CHARS = 12000
TRUNCATION_MARKER = "... [truncated for brevity]"
MAX_SEARCH_RESULTS = 8
USER_AGENT = "Mozilla/5.0 (compatible; Memora/1.0)"

STRIP_TAGS = ["script", "style", "noscript"]
_SPACE_RE = re.compile(r"\s+")


def html_to_text(html: str) -> str:
    """Reduce an HTML document to whitespace-collapsed plain text."""
    soup = BeautifulSoup(html, "html.parser")
    for element in soup.find_all(STRIP_TAGS):
        element.decompose()
    for comment in soup.find_all(string=lambda s: isinstance(s, Comment)):
        comment.extract()
    text = soup.get_text(" ")
    return _SPACE_RE.sub(" ", text).strip()


def truncate(text: str, limit: int = MAX_PAGE_CHARS) -> str:
    if len(text) <= limit:
        return text
    return text[:limit] + TRUNCATION_MARKER


class WebFetchTool(BaseTool):
    """Fetch a URL and return its readable text."""

    def __init__(
        self,
        timeout: float = 20.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the tool.

        Args:
            timeout: Request timeout in seconds.
            transport: Optional httpx transport (tests use httpx.MockTransport).
        """
        self._timeout = timeout
        self._transport = transport

    @property
    def name(self) -> str:
        return "web_fetch"

    @property
    def description(self) -> str:
        return (
            "Read and analyze the content of a specific URL. Use it to summarize "
            "articles, extract data from a page, or read documentation. "
            "Use this tool whenever the user provides a direct link."
        )

    @property
    def parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "url": {
                    "type": "string",
                    "description": "The exact URL to fetch and analyze.",
                },
            },
            "required": ["url"],
        }

    async def execute(self, url: str, **kwargs: Any) -> ToolResult:
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout,
                follow_redirects=True,
                headers={"User-Agent": USER_AGENT},
                transport=self._transport,
            ) as client:
                response = await client.get(url)
        except httpx.TimeoutException as e:
            return ToolResult.failure(f"Error fetching URL: timed out after {self._timeout}s", e)
        except httpx.HTTPError as e:
            return ToolResult.failure(f"Error fetching URL: {e}", e)

        if not response.is_success:
            return ToolResult.failure(
                f"Error fetching URL: {response.status_code} {response.reason_phrase}"
            )

        text = truncate(html_to_text(response.text))
        return ToolResult(
            for_model=f"Content from {url}:\n\n{text}",
            for_user=f"I've retrieved the information from {url}.",
        )


class WebSearchTool(BaseTool):
    """Search the web through the Tavily API."""

    def __init__(
        self,
        api_key: str | None = None,
        max_results: int = MAX_SEARCH_RESULTS,
        client: AsyncTavilyClient | None = None,
    ) -> None:
        """Initialize the tool.

        The tool registers even without a key so the model learns it exists;
        calls then fail with an explanatory result.

        Args:
            api_key: Tavily API key.
            max_results: Maximum number of results to return.
            client: Preconfigured client, mainly for tests.
        """
        self._max_results = min(max(1, max_results), MAX_SEARCH_RESULTS)
        if client is not None:
            self.client = client
        elif api_key:
            self.client = AsyncTavilyClient(api_key=api_key)
        else:
            self.client = None

    @property
    def name(self) -> str:
        return "web_search"

    @property
    def description(self) -> str:
        return (
            "Search the web for real-time information: latest news, sports scores, "
            "business details, product reviews, fact verification. "
            "Always use this for questions involving current or changing data."
        )

    @property
    def parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "query": {
                    "type": "string",
                    "description": "A specific, detailed search query.",
                },
            },
            "required": ["query"],
        }

    async def execute(self, query: str, **kwargs: Any) -> ToolResult:
        if self.client is None:
            return ToolResult.failure("Error: TAVILY_API_KEY not found in environment variables.")

        response = await self.client.search(
            query=query,
            search_depth="basic",
            max_results=self._max_results,
        )
        results = (response or {}).get("results", [])[: self._max_results]
        if not results:
            return ToolResult(
                for_model="No search results found. Try a different query.",
                for_user="I couldn't find any results for that search.",
            )

        formatted = [
            f"Title: {r.get('title', 'No Title')}\n"
            f"URL: {r.get('url', 'No URL')}\n"
            f"Snippet: {(r.get('content') or '').strip()}\n"
            for r in results
        ]
        return ToolResult(
            for_model=f'Search results for "{query}":\n\n' + "\n---\n".join(formatted),
            for_user=f'Search complete for "{query}".',
        )
