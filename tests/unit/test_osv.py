"""Tests for OSV lookups, batch fetching and deduplication."""

import asyncio
import json
from datetime import datetime, timezone

import httpx
import pytest

from conftest import FakeOSV, finding
from maintcost.metrics import classify_severity
from maintcost.models import Severity
from maintcost.osv import (
    OSVClient,
    VulnerabilityCache,
    deduplicate_vulnerabilities,
    query_vulnerabilities_batch,
)


def osv_client(handler):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return OSVClient("https://osv.test/v1", client=client)


class TestOSVClient:
    """Test the OSV query adapter."""

    @pytest.mark.asyncio
    async def test_query_parses_findings(self):
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(200, json={
                "vulns": [
                    {
                        "id": "GHSA-1",
                        "published": "2021-03-04T10:00:00Z",
                        "database_specific": {"severity": "MODERATE"},
                    },
                    {
                        "id": "GHSA-2",
                        "published": "2022-01-01T00:00:00Z",
                        "severity": [{"type": "CVSS_V3", "score": "9.1"}],
                    },
                ]
            })

        findings = await osv_client(handler).query_vulnerabilities("lodash")

        assert json.loads(requests[0].content) == {"package": {"name": "lodash", "ecosystem": "npm"}}
        assert str(requests[0].url) == "https://osv.test/v1/query"
        assert [f.id for f in findings] == ["GHSA-1", "GHSA-2"]
        assert findings[0].severity is Severity.MODERATE
        assert findings[0].published.year == 2021
        assert findings[1].severity is None
        assert findings[1].cvss_score == 9.1

    @pytest.mark.asyncio
    async def test_empty_body_means_no_findings(self):
        findings = await osv_client(lambda request: httpx.Response(200, json={})).query_vulnerabilities("left-pad")
        assert findings == []

    @pytest.mark.asyncio
    async def test_http_error_returns_empty_list(self):
        findings = await osv_client(lambda request: httpx.Response(500)).query_vulnerabilities("lodash")
        assert findings == []

    @pytest.mark.asyncio
    async def test_network_error_returns_empty_list(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        findings = await osv_client(handler).query_vulnerabilities("lodash")
        assert findings == []

    @pytest.mark.asyncio
    async def test_malformed_body_returns_empty_list(self):
        handler = lambda request: httpx.Response(200, content=b"not json")
        findings = await osv_client(handler).query_vulnerabilities("lodash")
        assert findings == []

    @pytest.mark.asyncio
    async def test_numeric_cvss_score_is_bucketed(self):
        handler = lambda request: httpx.Response(200, json={
            "vulns": [
                {"id": "GHSA-num", "severity": [{"type": "CVSS_V3", "score": 9.8}]},
                {"id": "GHSA-high", "database_specific": {"severity": "HIGH"}},
            ]
        })

        findings = await osv_client(handler).query_vulnerabilities("minimist")

        assert [f.id for f in findings] == ["GHSA-num", "GHSA-high"]
        assert findings[0].cvss_score == 9.8
        assert classify_severity(findings[0]) is Severity.CRITICAL
        assert findings[1].severity is Severity.HIGH

    @pytest.mark.asyncio
    async def test_non_string_severity_label_is_unknown(self):
        handler = lambda request: httpx.Response(200, json={
            "vulns": [{"id": "GHSA-odd", "database_specific": {"severity": 7}}]
        })

        findings = await osv_client(handler).query_vulnerabilities("a")

        assert [f.id for f in findings] == ["GHSA-odd"]
        assert findings[0].severity is Severity.UNKNOWN

    @pytest.mark.asyncio
    async def test_unexpected_shape_returns_empty_list(self):
        handler = lambda request: httpx.Response(200, json={"vulns": [{"id": "X-1", "severity": "HIGH"}]})
        findings = await osv_client(handler).query_vulnerabilities("lodash")
        assert findings == []

    @pytest.mark.asyncio
    async def test_nanosecond_timestamp_is_parsed(self):
        handler = lambda request: httpx.Response(200, json={
            "vulns": [{"id": "X-1", "published": "2021-05-06T15:57:46.123456789Z"}]
        })

        findings = await osv_client(handler).query_vulnerabilities("lodash")

        assert findings[0].published == datetime(2021, 5, 6, 15, 57, 46, 123456, tzinfo=timezone.utc)


class TestBatchFetch:
    """Test cached, bounded batch fetching."""

    @pytest.mark.asyncio
    async def test_cached_names_are_not_queried(self):
        source = FakeOSV({"a": [finding("X-1", "2020-01-01")]})
        cache = VulnerabilityCache()
        cache.set("b", [])

        result = await query_vulnerabilities_batch(source, ["a", "b"], cache=cache)

        assert source.calls == ["a"]
        assert list(result) == ["a", "b"]
        assert result["b"] == []
        assert "a" in cache

    @pytest.mark.asyncio
    async def test_second_batch_is_served_from_cache(self):
        source = FakeOSV({"a": [finding("X-1", "2020-01-01")]})
        cache = VulnerabilityCache()

        await query_vulnerabilities_batch(source, ["a", "b"], cache=cache)
        again = await query_vulnerabilities_batch(source, ["b", "a"], cache=cache)

        assert source.calls == ["a", "b"]
        assert [f.id for f in again["a"]] == ["X-1"]
        assert len(cache) == 2

    @pytest.mark.asyncio
    async def test_preseeded_cache_never_queried(self):
        source = FakeOSV({"p": [finding("X-9", "2021-01-01")]})
        cached = [finding("X-1", "2020-01-01")]
        cache = VulnerabilityCache()
        cache.set("p", cached)

        first = await query_vulnerabilities_batch(source, ["p"], cache=cache)
        second = await query_vulnerabilities_batch(source, ["p"], cache=cache)

        assert source.calls == []
        assert first["p"] == cached
        assert second["p"] == cached

    @pytest.mark.asyncio
    async def test_duplicate_names_queried_once(self):
        source = FakeOSV()
        result = await query_vulnerabilities_batch(source, ["a", "a", "b"])
        assert source.calls == ["a", "b"]
        assert list(result) == ["a", "b"]

    @pytest.mark.asyncio
    async def test_one_bad_response_leaves_other_names_intact(self):
        bodies = {
            "good": {"vulns": [{"id": "GHSA-good", "database_specific": {"severity": "HIGH"}}]},
            "broken": {"vulns": "not-a-list"},
            "odd": {"vulns": [{"id": "GHSA-odd", "database_specific": {"severity": 7}}]},
        }

        def handler(request):
            name = json.loads(request.content)["package"]["name"]
            if name == "down":
                return httpx.Response(503)
            return httpx.Response(200, json=bodies[name])

        result = await query_vulnerabilities_batch(osv_client(handler), ["good", "broken", "down", "odd"], concurrency=4)

        assert list(result) == ["good", "broken", "down", "odd"]
        assert [f.id for f in result["good"]] == ["GHSA-good"]
        assert result["broken"] == []
        assert result["down"] == []
        assert [f.severity for f in result["odd"]] == [Severity.UNKNOWN]

    @pytest.mark.asyncio
    async def test_concurrency_is_capped(self):
        in_flight = 0
        peak = 0

        class SlowSource:
            async def query_vulnerabilities(self, name):
                nonlocal in_flight, peak
                in_flight += 1
                peak = max(peak, in_flight)
                await asyncio.sleep(0.01)
                in_flight -= 1
                return []

        names = ["a", "b", "c", "d", "e", "f"]
        result = await query_vulnerabilities_batch(SlowSource(), names, concurrency=2)

        assert peak == 2
        assert list(result) == names


class TestDeduplication:
    """Test cross-package advisory deduplication."""

    def test_same_id_counted_once(self):
        merged = deduplicate_vulnerabilities({
            "qs": [finding("GHSA-1", "2022-01-01", severity=Severity.HIGH)],
            "body-parser": [
                finding("GHSA-1", "2022-01-01", severity=Severity.LOW),
                finding("GHSA-2", "2023-01-01"),
            ],
        })

        assert [f.id for f in merged] == ["GHSA-1", "GHSA-2"]
        assert merged[0].severity is Severity.HIGH

    def test_findings_without_id_are_dropped(self):
        merged = deduplicate_vulnerabilities({"a": [finding(None, "2022-01-01"), finding("X-1", None)]})
        assert [f.id for f in merged] == ["X-1"]

    def test_empty(self):
        assert deduplicate_vulnerabilities({}) == []
