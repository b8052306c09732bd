from __future__ import annotations

from typing import Any

from ddw_trends.backend.months import MonthRange


def normalize_domain(value: str) -> str:
    return value.strip().lower()


def normalize_keyword(value: str) -> str:
    return value.strip()


def mentions_payload(keyword: str, month: MonthRange) -> dict[str, Any]:
    """
    Body for the all-sources search: no documents, just the total hit count
    for `keyword` inside the month.
    """
    return {
        "page": 0,
        "size": 0,
        "highlight": {"enabled": True},
        "include_total": True,
        "query": keyword,
        "include": {
            "date": {"start": month.start_iso, "end": month.end_iso},
        },
    }


def credentials_payload(domain: str, month: MonthRange, date_field: str) -> dict[str, Any]:
    """
    Lucene-style body for credential sightings on `domain`, filtered on
    `date_field` with epoch-second bounds.
    """
    query = (
        f'+domain:("{domain}") '
        f"+basetypes:(credential-sighting) "
        f"+{date_field}:[{month.start_epoch} TO {month.end_epoch}]"
    )
    return {
        "size": 0,
        "query": query,
        "sort": [f"{date_field}:desc"],
    }


def scroll_payload(cursor_key: str, cursor: str) -> dict[str, Any]:
    return {cursor_key: cursor}
