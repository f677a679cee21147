# /helpdesk_bot/services/search_service.py

import httpx
import logging
import tenacity
from typing import Any, Dict, List

from helpdesk_bot.config.settings import settings
from helpdesk_bot.models.domain import SearchItem, SearchResult, FacetValue
from helpdesk_bot.models.errors import SearchUnavailable
from helpdesk_bot.utils.circuit_breaker import CircuitBreaker, CircuitOpenError
from helpdesk_bot.utils.metrics import external_calls_counter

# This service queries the knowledge base search index. Callers describe a
# query with a single "name=value" expression in the index's query-string
# syntax (facet=, $filter=, search=); the value is URL-encoded here.

logger = logging.getLogger(__name__)


def facet_expression(field: str) -> str:
    return f"facet={field}"


def filter_eq_expression(field: str, value: str) -> str:
    """Exact-match OData filter. Single quotes are doubled inside string literals."""
    escaped = value.replace("'", "''")
    return f"$filter={field} eq '{escaped}'"


def search_expression(text: str) -> str:
    return f"search={text}"


class SearchService:
    def __init__(self, service_name: str, index_name: str, api_key: str, api_version: str, timeout: float):
        self.base_url = f"https://{service_name}.search.windows.net/indexes/{index_name}/docs"
        self.api_key = api_key
        self.api_version = api_version
        self.circuit_breaker = CircuitBreaker("search")
        self.http_client = httpx.AsyncClient(
            timeout=httpx.Timeout(timeout, connect=5.0)
        )

    @tenacity.retry(
        retry=tenacity.retry_if_exception_type((httpx.RequestError, httpx.TimeoutException)),
        stop=tenacity.stop_after_attempt(3),
        wait=tenacity.wait_exponential(multiplier=0.5, min=0.5, max=4),
        before_sleep=tenacity.before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    async def resilient_api_call(self, func, *args, **kwargs):
        return await self.circuit_breaker.call(func, *args, **kwargs)

    async def query(self, expression: str) -> SearchResult:
        """Run one query expression against the index. Failures raise SearchUnavailable."""
        name, sep, value = expression.partition("=")
        if not sep or not name:
            raise ValueError(f"Malformed search expression: {expression!r}")

        params = {"api-version": self.api_version, name: value}
        headers = {"api-key": self.api_key, "Accept": "application/json"}
        try:
            response = await self.resilient_api_call(
                self.http_client.get, self.base_url, params=params, headers=headers
            )
            response.raise_for_status()
            body = response.json()
        except (httpx.HTTPError, CircuitOpenError, ValueError) as e:
            external_calls_counter.labels(service="search", status="error").inc()
            logger.error(f"search_query_error for '{expression}': {e}")
            raise SearchUnavailable(str(e)) from e

        external_calls_counter.labels(service="search", status="success").inc()
        result = self._parse_response(body)
        logger.info(f"Search '{expression}' returned {len(result.items)} items")
        return result

    @staticmethod
    def _parse_response(body: Dict[str, Any]) -> SearchResult:
        items = [SearchItem.from_index_document(doc) for doc in body.get("value") or []]

        facets: Dict[str, List[FacetValue]] = {}
        for field, values in (body.get("@search.facets") or {}).items():
            facets[field] = [
                FacetValue(value=str(v.get("value")), count=int(v.get("count") or 0))
                for v in values
            ]
        return SearchResult(items=items, facets=facets)

    async def cleanup(self):
        await self.http_client.aclose()


# Globally accessible instance
search_service = SearchService(
    settings.search_service_name,
    settings.search_index_name,
    settings.search_api_key,
    settings.search_api_version,
    settings.search_timeout_seconds,
)
