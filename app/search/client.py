"""
Client for the AI-backed search: sends the query to an OpenAI-compatible
chat completion API and parses the JSON answer it is asked to produce.
"""

import asyncio
import json
import logging
from typing import Optional

import aiohttp
from opentelemetry import trace
from pydantic import ValidationError

from app.search.models import SearchResult
from app.utils import mask_token
from app.vars import LLM_TOKEN, LLM_URL, SEARCH_MODEL, SEARCH_TIMEOUT

logger = logging.getLogger("uvicorn.error")
tracer = trace.get_tracer(__name__)

SEARCH_SYSTEM_PROMPT = (
    "You are an ultra-advanced search engine. Provide a comprehensive, accurate, "
    "and insightful response. Also provide 5 highly relevant URLs with titles and "
    "short descriptions. Format as JSON: "
    '{ "answer": "...", "results": [{ "title": "...", "url": "...", "snippet": "..." }] }'
)


class SearchError(Exception):
    """The completion API failed or returned something that is not a search result."""


def parse_search_content(content: Optional[str]) -> SearchResult:
    """Parse the assistant message content into a SearchResult.

    An empty message yields an empty result.
    """
    try:
        data = json.loads(content or "{}")
    except json.JSONDecodeError as e:
        raise SearchError(f"Completion is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise SearchError("Completion is not a JSON object")
    try:
        return SearchResult.model_validate(data)
    except ValidationError as e:
        raise SearchError(f"Completion has an unexpected shape: {e}") from e


class SearchClient:
    """Client for the chat completion API used by the search endpoint."""

    def __init__(
        self,
        base_url: str = LLM_URL,
        token: str = LLM_TOKEN,
        model: str = SEARCH_MODEL,
        timeout: float = SEARCH_TIMEOUT,
    ):
        # Ensure the base URL doesn't end with slash for consistent URL building
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.model = model
        self.timeout = timeout

        logger.info(f"[Search] Initialized with URL: {self.base_url or '<unset>'}")
        if self.token:
            logger.info(
                mask_token(
                    f"[Search] Using authentication token: {self.token[:10]}...",
                    self.token[:10],
                )
            )

    def _get_headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def build_payload(self, query: str) -> dict:
        return {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SEARCH_SYSTEM_PROMPT},
                {"role": "user", "content": query},
            ],
            "response_format": {"type": "json_object"},
        }

    async def _post_completion(self, payload: dict) -> dict:
        if not self.base_url:
            raise SearchError("LLM_URL is not configured")
        async with aiohttp.ClientSession(
            timeout=aiohttp.ClientTimeout(total=self.timeout)
        ) as session:
            async with session.post(
                f"{self.base_url}/chat/completions",
                headers=self._get_headers(),
                json=payload,
            ) as response:
                if not response.ok:
                    error_text = await response.text()
                    raise SearchError(f"LLM API error: {response.status} {error_text}")
                return await response.json(content_type=None)

    async def search(self, query: str) -> SearchResult:
        with tracer.start_as_current_span("search") as span:
            span.set_attribute("search.model", self.model)
            span.set_attribute("search.query_length", len(query))
            try:
                completion = await self._post_completion(self.build_payload(query))
            except asyncio.TimeoutError as e:
                raise SearchError(
                    f"LLM API request timed out after {self.timeout}s"
                ) from e
            except (aiohttp.ClientError, json.JSONDecodeError) as e:
                raise SearchError(f"LLM API request failed: {e}") from e

            try:
                content = completion["choices"][0]["message"]["content"]
            except (KeyError, IndexError, TypeError) as e:
                raise SearchError("Completion has no message content") from e

            result = parse_search_content(content)
            span.set_attribute("search.result_count", len(result.results))
            return result
