"""Tests for the BeenVerified connector, against a mocked transport."""

import json

import httpx
import pytest

from connectors import (
    BeenVerifiedConnector,
    ConnectorDataFailure,
    ConnectorTransportFailure,
    ConnectorUnsupportedCapability,
    MissingQueryField,
    PersonQuery,
)
from connectors.beenverified import (
    HTML_SEARCH_URL,
    JSON_SEARCH_URL,
    BvRecord,
    bv_record_to_found_records,
    parse_search_response,
)

QUERY = PersonQuery(first_name="Jane", last_name="Doe", state="NY")

SEARCH_BODY = {
    "records": [
        {
            "first_name": "Jane",
            "last_name": "Doe",
            "age": 42,
            "addresses": ["1 Elm St, Albany, NY"],
            "relatives": ["John Doe", "Mary Doe"],
            "profile_url": "https://www.beenverified.com/p/1",
            "unexpected": "ignored",
        }
    ]
}


def make_connector(handler) -> BeenVerifiedConnector:
    return BeenVerifiedConnector(timeout=5.0, transport=httpx.MockTransport(handler))


class TestParsing:
    """JSON payload parsing."""

    def test_record_to_found_records(self):
        records = bv_record_to_found_records(BvRecord.model_validate(SEARCH_BODY["records"][0]))

        assert [(r.kind, r.value) for r in records] == [
            ("name", "Jane Doe"),
            ("age", "42"),
            ("address", "1 Elm St, Albany, NY"),
            ("relatives", "John Doe, Mary Doe"),
        ]
        assert all(r.profile_url == "https://www.beenverified.com/p/1" for r in records)

    def test_city_state_fallback(self):
        records = bv_record_to_found_records(BvRecord(city="Albany", state="NY"))
        assert [(r.kind, r.value) for r in records] == [("address", "Albany, NY")]

    def test_results_key_is_accepted(self):
        body = json.dumps({"results": [{"first_name": "Jane"}]})
        assert [r.value for r in parse_search_response(body)] == ["Jane"]

    def test_empty_payload(self):
        assert parse_search_response("{}") == []

    def test_malformed_payload(self):
        with pytest.raises(ConnectorDataFailure):
            parse_search_response("not json")


class TestBeenVerifiedConnector:
    """Scan strategies and refusals."""

    def test_capabilities_and_country(self):
        connector = BeenVerifiedConnector()
        caps = connector.capabilities()

        assert caps.can_scan
        assert not caps.can_delete
        assert not caps.can_check_status
        assert connector.home_country() == "US"
        assert connector.data_countries() == frozenset({"US"})

    @pytest.mark.asyncio
    async def test_scan_requires_state(self):
        connector = make_connector(lambda request: httpx.Response(200, json=SEARCH_BODY))

        with pytest.raises(MissingQueryField) as exc:
            await connector.scan(PersonQuery(first_name="Jane", last_name="Doe"))
        assert "state" in str(exc.value)
        await connector.aclose()

    @pytest.mark.asyncio
    async def test_scan_json_endpoint(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=SEARCH_BODY)

        connector = make_connector(handler)
        records = await connector.scan(QUERY)
        await connector.aclose()

        assert len(records) == 4
        assert len(seen) == 1
        assert str(seen[0].url).startswith(JSON_SEARCH_URL)
        assert seen[0].url.params["firstName"] == "Jane"
        assert seen[0].url.params["state"] == "NY"

    @pytest.mark.asyncio
    async def test_falls_back_to_html_on_bad_json(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(str(request.url))
            if str(request.url).startswith(JSON_SEARCH_URL):
                return httpx.Response(200, text="<html>not json</html>")
            return httpx.Response(200, text="<html>results</html>")

        connector = make_connector(handler)
        records = await connector.scan(QUERY)
        await connector.aclose()

        assert records == []
        assert seen[1].startswith(HTML_SEARCH_URL)

    @pytest.mark.asyncio
    async def test_both_strategies_failing_is_transport_failure(self):
        connector = make_connector(lambda request: httpx.Response(503))

        with pytest.raises(ConnectorTransportFailure, match="HTTP 503"):
            await connector.scan(QUERY)
        await connector.aclose()

    @pytest.mark.asyncio
    async def test_network_errors_are_transport_failure(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        connector = make_connector(handler)
        with pytest.raises(ConnectorTransportFailure):
            await connector.scan(QUERY)
        await connector.aclose()

    @pytest.mark.asyncio
    async def test_deletion_refused_with_reason(self):
        connector = BeenVerifiedConnector()

        with pytest.raises(ConnectorUnsupportedCapability, match="CAPTCHA"):
            await connector.request_deletion(QUERY, [])
        with pytest.raises(ConnectorUnsupportedCapability):
            await connector.check_deletion_status("ref")
        await connector.aclose()
