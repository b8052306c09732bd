import asyncio

import httpx
import pytest

from ddw_trends.backend.months import month_range
from ddw_trends.backend.queries import (
    credentials_payload,
    mentions_payload,
    normalize_domain,
    normalize_keyword,
)
from ddw_trends.backend.upstream import (
    MalformedResponse,
    UpstreamError,
    extract_count,
    extract_cursor,
    fetch_count,
)

from .fakes import FakeUpstream


URL = "https://fp.test/search"
SCROLL_URL = "https://fp.test/search/scroll"


def run_fetch(upstream, payload=None, scroll_url=None):
    async def _go():
        async with httpx.AsyncClient(transport=httpx.MockTransport(upstream)) as client:
            return await fetch_count(client, URL, "secret", payload or {"q": 1}, scroll_url)

    return asyncio.run(_go())


def test_normalize_domain():
    assert normalize_domain("Example.COM ") == "example.com"


def test_normalize_keyword_keeps_case():
    assert normalize_keyword("  Acme Corp ") == "Acme Corp"


def test_mentions_payload_shape():
    body = mentions_payload("acme", month_range(2026, 2))
    assert body["size"] == 0
    assert body["include_total"] is True
    assert body["query"] == "acme"
    assert body["include"]["date"] == {
        "start": "2026-02-01T00:00:00Z",
        "end": "2026-02-28T23:59:59Z",
    }


def test_credentials_payload_embeds_domain_and_epochs():
    month = month_range(2025, 1)
    body = credentials_payload("example.com", month, "breach.first_observed_at.timestamp")
    assert body["size"] == 0
    assert '+domain:("example.com")' in body["query"]
    assert "+basetypes:(credential-sighting)" in body["query"]
    assert "+breach.first_observed_at.timestamp:[1735689600 TO 1738367999]" in body["query"]
    assert body["sort"] == ["breach.first_observed_at.timestamp:desc"]


@pytest.mark.parametrize(
    "data, expected",
    [
        ({"num_results": 7}, 7),
        ({"hits": {"total": 12}}, 12),
        ({"hits": {"total": {"value": 4, "relation": "eq"}}}, 4),
        ({"total": {"value": 9}}, 9),
        ({"total": 3}, 3),
        ({}, 0),
    ],
)
def test_extract_count(data, expected):
    assert extract_count(data) == expected


def test_extract_count_rejects_negative():
    with pytest.raises(ValueError):
        extract_count({"num_results": -1})


def test_extract_cursor():
    assert extract_cursor({"scroll_id": "abc"}) == ("scroll_id", "abc")
    assert extract_cursor({"cursor": "xyz"}) == ("cursor", "xyz")
    assert extract_cursor({"scroll_id": ""}) is None
    assert extract_cursor({}) is None


def test_fetch_sends_bearer_and_json():
    upstream = FakeUpstream([{"hits": {"total": 5}}])
    assert run_fetch(upstream, {"size": 0}) == 5

    req = upstream.requests[0]
    assert req.method == "POST"
    assert str(req.url) == URL
    assert req.headers["Authorization"] == "Bearer secret"
    assert req.headers["Accept"] == "application/json"
    assert upstream.bodies[0] == {"size": 0}


def test_fetch_follows_scroll_until_no_cursor():
    upstream = FakeUpstream([
        {"num_results": 100, "scroll_id": "s1"},
        {"num_results": 100, "scroll_id": "s2"},
        {"num_results": 25},
    ])
    assert run_fetch(upstream, scroll_url=SCROLL_URL) == 225

    assert [str(r.url) for r in upstream.requests] == [URL, SCROLL_URL, SCROLL_URL]
    assert upstream.bodies[1:] == [{"scroll_id": "s1"}, {"scroll_id": "s2"}]


def test_fetch_stops_on_empty_continuation_page():
    upstream = FakeUpstream([
        {"num_results": 10, "cursor": "c1"},
        {"num_results": 0, "cursor": "c1"},
    ])
    assert run_fetch(upstream, scroll_url=SCROLL_URL) == 10
    assert len(upstream.requests) == 2


def test_fetch_ignores_cursor_without_scroll_endpoint():
    upstream = FakeUpstream([{"num_results": 10, "scroll_id": "s1"}])
    assert run_fetch(upstream) == 10
    assert len(upstream.requests) == 1


def test_fetch_raises_upstream_error_with_status_and_body():
    upstream = FakeUpstream([(429, "rate limited")])
    with pytest.raises(UpstreamError) as exc:
        run_fetch(upstream)
    assert exc.value.status_code == 429
    assert exc.value.body == "rate limited"


def test_fetch_scroll_failure_propagates():
    upstream = FakeUpstream([{"num_results": 1, "scroll_id": "s1"}, (500, "boom")])
    with pytest.raises(UpstreamError):
        run_fetch(upstream, scroll_url=SCROLL_URL)


def test_fetch_malformed_json():
    upstream = FakeUpstream([(200, "<html>not json</html>")])
    with pytest.raises(MalformedResponse):
        run_fetch(upstream)


def test_fetch_non_object_json():
    upstream = FakeUpstream([(200, "[1, 2, 3]")])
    with pytest.raises(MalformedResponse):
        run_fetch(upstream)


def test_fetch_stops_when_scroll_repeats_its_cursor():
    upstream = FakeUpstream(default={"hits": {"total": 5}, "scroll_id": "s1"})

    assert run_fetch(upstream, scroll_url=SCROLL_URL) == 5
    assert len(upstream.requests) == 2


def test_fetch_gives_up_after_page_cap():
    requests = []

    def endless(request):
        requests.append(request)
        return httpx.Response(200, json={"num_results": 1, "cursor": f"c{len(requests)}"})

    async def _go():
        async with httpx.AsyncClient(transport=httpx.MockTransport(endless)) as client:
            return await fetch_count(client, URL, "secret", {"q": 1}, SCROLL_URL, max_pages=5)

    with pytest.raises(MalformedResponse) as exc:
        asyncio.run(_go())
    assert exc.value.status_code == 200
    assert len(requests) == 5


def test_malformed_count_keeps_response_status():
    upstream = FakeUpstream([(203, '{"num_results": -4}')])
    with pytest.raises(MalformedResponse) as exc:
        run_fetch(upstream)
    assert exc.value.status_code == 203
