"""Search augmentation: rewrites ``search:`` messages with web results.

Messages starting with the trigger prefix are sent to SerpAPI and the top
organic results are embedded in the prompt. Search failures degrade to a
substitute prompt; nothing is raised past ``augment``.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from src.webhook.models import AugmentedPrompt, SearchResult

logger = logging.getLogger(__name__)

SEARCH_PREFIX = "search:"
SERPAPI_URL = "https://serpapi.com/search.json"
NO_RESULTS_TEXT = "No relevant results found."

_MAX_RESULTS = 3
_SEARCH_TIMEOUT_SECONDS = 10.0


class SearchUnavailableError(Exception):
    """Raised internally when the search API cannot produce results."""


def parse_search_query(text: str) -> str | None:
    """Return the trimmed query for a trigger message, or None if not a search."""
    if not text.lower().startswith(SEARCH_PREFIX):
        return None
    return text[len(SEARCH_PREFIX):].strip()


def format_results(results: list[SearchResult]) -> str:
    if not results:
        return NO_RESULTS_TEXT
    return "\n\n".join(
        f"{index}. {result.title}: {result.snippet}"
        for index, result in enumerate(results, start=1)
    )


def build_search_prompt(query: str, results: list[SearchResult]) -> str:
    return (
        f'User searched for: "{query}"\n\n'
        f"Search Results:\n{format_results(results)}\n\n"
        "Based on these results, provide a helpful and concise answer."
    )


def build_unavailable_prompt(query: str) -> str:
    return f'I couldn\'t search for "{query}" right now. Please try again later.'


class SearchAugmenter:
    """Augments trigger messages with SerpAPI results."""

    def __init__(
        self,
        api_key: str | None,
        endpoint: str = SERPAPI_URL,
        timeout: float = _SEARCH_TIMEOUT_SECONDS,
    ) -> None:
        self._api_key = api_key
        self._endpoint = endpoint
        self._timeout = timeout

    async def augment(self, text: str) -> AugmentedPrompt:
        query = parse_search_query(text)
        if not query or not self._api_key:
            return AugmentedPrompt(prompt=text, used_search=False)

        logger.info("Performing search: %r", query)
        try:
            results = await self.search(query)
        except SearchUnavailableError as exc:
            logger.warning("Search API error for %r: %s", query, exc)
            return AugmentedPrompt(prompt=build_unavailable_prompt(query), used_search=False)

        logger.info("Search returned %d result(s)", len(results))
        return AugmentedPrompt(prompt=build_search_prompt(query, results), used_search=True)

    async def search(self, query: str) -> list[SearchResult]:
        """Query SerpAPI and return at most three organic results."""
        params = {
            "q": query,
            "api_key": self._api_key or "",
            "engine": "google",
            "num": _MAX_RESULTS,
        }
        try:
            async with httpx.AsyncClient(verify=True) as client:
                resp = await client.get(self._endpoint, params=params, timeout=self._timeout)
                resp.raise_for_status()
                data = resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise SearchUnavailableError(str(exc) or type(exc).__name__) from exc

        return _parse_organic_results(data)


def _parse_organic_results(data: Any) -> list[SearchResult]:
    if not isinstance(data, dict):
        raise SearchUnavailableError("Search response is not a JSON object")
    organic = data.get("organic_results") or []
    if not isinstance(organic, list):
        raise SearchUnavailableError("organic_results is not a list")

    results: list[SearchResult] = []
    for item in organic[:_MAX_RESULTS]:
        if not isinstance(item, dict):
            continue
        results.append(SearchResult(
            title=str(item.get("title") or ""),
            snippet=str(item.get("snippet") or ""),
        ))
    return results
