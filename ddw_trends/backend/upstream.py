from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from ddw_trends.backend.queries import scroll_payload


logger = logging.getLogger(__name__)

CURSOR_KEYS = ("scroll_id", "cursor")
MAX_SCROLL_PAGES = 50


class UpstreamError(Exception):
    """Non-success answer from the threat-intelligence API."""

    def __init__(self, status_code: int, body: str):
        self.status_code = status_code
        self.body = body
        super().__init__(f"{status_code}: {body}")


class MalformedResponse(UpstreamError):
    pass


def _as_count(value: Any) -> Optional[int]:
    if isinstance(value, dict):
        value = value.get("value")
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValueError(f"invalid count: {value!r}")
    return value


def extract_count(data: dict[str, Any]) -> int:
    """
    Pull the hit count out of a search response.

    Supported shapes, first match wins:
    - {"num_results": n}
    - {"hits": {"total": n}} or {"hits": {"total": {"value": n}}}
    - {"total": {"value": n}} or {"total": n}
    """
    if "num_results" in data:
        count = _as_count(data["num_results"])
        if count is not None:
            return count

    hits = data.get("hits")
    if isinstance(hits, dict) and "total" in hits:
        count = _as_count(hits["total"])
        if count is not None:
            return count

    if "total" in data:
        count = _as_count(data["total"])
        if count is not None:
            return count

    return 0


def extract_cursor(data: dict[str, Any]) -> Optional[tuple[str, str]]:
    for key in CURSOR_KEYS:
        value = data.get(key)
        if isinstance(value, str) and value:
            return key, value
    return None


async def _fetch_page(
    client: httpx.AsyncClient, url: str, api_key: str, payload: dict[str, Any]
) -> tuple[int, Optional[tuple[str, str]], int]:
    """POST one page and return (count, cursor, status)."""
    response = await client.post(
        url,
        headers={
            "Accept": "application/json",
            "Content-Type": "application/json",
            "Authorization": f"Bearer {api_key}",
        },
        json=payload,
    )

    if not response.is_success:
        raise UpstreamError(response.status_code, response.text)

    try:
        data = response.json()
    except ValueError:
        raise MalformedResponse(response.status_code, response.text)

    if not isinstance(data, dict):
        raise MalformedResponse(response.status_code, response.text)

    try:
        count = extract_count(data)
    except ValueError as e:
        raise MalformedResponse(response.status_code, str(e))
    return count, extract_cursor(data), response.status_code


async def fetch_count(
    client: httpx.AsyncClient,
    url: str,
    api_key: str,
    payload: dict[str, Any],
    scroll_url: Optional[str] = None,
    max_pages: int = MAX_SCROLL_PAGES,
) -> int:
    """
    POST `payload` and return the number of matching documents.

    When the answer carries a scroll/cursor token and a continuation endpoint
    is configured, keep following it and add up the page counts until no
    token comes back, a page is empty, or a page echoes the token it was
    asked for (an exhausted scroll; that page is not counted). More than
    `max_pages` pages raises MalformedResponse. No retries: the first
    failure propagates.
    """
    total, cursor, status = await _fetch_page(client, url, api_key, payload)

    pages = 1
    while cursor and scroll_url:
        if pages >= max_pages:
            raise MalformedResponse(status, f"scroll still open after {pages} pages")

        key, token = cursor
        page_count, cursor, status = await _fetch_page(client, scroll_url, api_key, scroll_payload(key, token))
        pages += 1
        logger.debug(f"Continuation page {pages} via {key}: {page_count} results")
        if page_count == 0 or (cursor is not None and cursor[1] == token):
            break
        total += page_count

    return total
