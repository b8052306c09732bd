from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, Union

import httpx

from ddw_trends.backend.config import ConfigurationError, Settings
from ddw_trends.backend.months import MonthRange, last_full_months
from ddw_trends.backend.queries import (
    credentials_payload,
    mentions_payload,
    normalize_domain,
    normalize_keyword,
)
from ddw_trends.backend.upstream import UpstreamError, fetch_count


logger = logging.getLogger(__name__)

PayloadBuilder = Callable[[MonthRange], dict[str, Any]]
Sleep = Callable[[float], Awaitable[Any]]


@dataclass(frozen=True)
class MonthCount:
    month: MonthRange
    count: int


@dataclass(frozen=True)
class MonthFailure:
    month: MonthRange
    reason: str

    @property
    def count(self) -> int:
        return 0


MonthOutcome = Union[MonthCount, MonthFailure]


async def probe_month(
    client: httpx.AsyncClient,
    settings: Settings,
    builder: PayloadBuilder,
    url: str,
    scroll_url: Optional[str],
    month: MonthRange,
    subject: str = "",
) -> MonthOutcome:
    try:
        count = await fetch_count(client, url, settings.api_key or "", builder(month), scroll_url)
    except (UpstreamError, httpx.HTTPError) as e:
        logger.error(f"Upstream error for {subject!r} in {month.label}: {e}")
        return MonthFailure(month=month, reason=str(e) or type(e).__name__)
    return MonthCount(month=month, count=count)


async def collect_monthly(
    client: httpx.AsyncClient,
    settings: Settings,
    builder: PayloadBuilder,
    url: str,
    scroll_url: Optional[str],
    months: list[MonthRange],
    subject: str = "",
    sleep: Sleep = asyncio.sleep,
) -> list[MonthOutcome]:
    """
    Query each month in order, one at a time, pausing
    `settings.throttle_seconds` between consecutive months. Always returns
    one outcome per month.
    """
    outcomes: list[MonthOutcome] = []
    for i, month in enumerate(months):
        if i:
            await sleep(settings.throttle_seconds)
        outcomes.append(await probe_month(client, settings, builder, url, scroll_url, month, subject))
    return outcomes


def to_monthly_results(outcomes: list[MonthOutcome]) -> list[dict[str, Any]]:
    return [{"date": o.month.label, "count": o.count} for o in outcomes]


async def monthly_mentions(
    keyword: str,
    client: httpx.AsyncClient,
    settings: Settings,
    months: Optional[list[MonthRange]] = None,
    sleep: Sleep = asyncio.sleep,
) -> list[dict[str, Any]]:
    """Mention counts for `keyword` over the last 12 full months."""
    if not settings.mentions_configured:
        raise ConfigurationError("THREAT_API_URL / THREAT_API_KEY not configured")

    keyword = normalize_keyword(keyword)
    if months is None:
        months = last_full_months()
    outcomes = await collect_monthly(
        client,
        settings,
        lambda m: mentions_payload(keyword, m),
        settings.threat_api_url,
        settings.threat_scroll_url,
        months,
        subject=keyword,
        sleep=sleep,
    )
    return to_monthly_results(outcomes)


async def monthly_credentials(
    domain: str,
    client: httpx.AsyncClient,
    settings: Settings,
    months: Optional[list[MonthRange]] = None,
    sleep: Sleep = asyncio.sleep,
) -> list[dict[str, Any]]:
    """Credential-sighting counts for `domain` over the last 12 full months."""
    if not settings.credentials_configured:
        raise ConfigurationError("CREDENTIALS_API_URL / THREAT_API_KEY not configured")

    domain = normalize_domain(domain)
    if months is None:
        months = last_full_months()
    outcomes = await collect_monthly(
        client,
        settings,
        lambda m: credentials_payload(domain, m, settings.credentials_date_field),
        settings.credentials_api_url,
        settings.credentials_scroll_url,
        months,
        subject=domain,
        sleep=sleep,
    )
    return to_monthly_results(outcomes)
