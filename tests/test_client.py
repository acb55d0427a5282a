"""Tests for the httpx-backed NSX client."""

import httpx
import pytest

from models.manager import Manager
from nsx.base import NsxApiError
from nsx.client import NsxClient, build_http_client

BASE = "https://nsx.example.net"


def _client(handler):
    http = httpx.AsyncClient(
        base_url=BASE,
        transport=httpx.MockTransport(handler),
        auth=("admin", "secret"),
    )
    return NsxClient(http, site="dc1")


# =============================================================================
# Pagination
# =============================================================================


class TestPagination:
    @pytest.mark.asyncio
    async def test_follows_cursor_until_empty(self):
        seen = []

        def handler(request):
            cursor = request.url.params.get("cursor")
            seen.append(cursor)
            assert request.url.params["page_size"] == "100"
            if cursor is None:
                return httpx.Response(200, json={"results": [{"id": "n1"}], "cursor": "c2"})
            if cursor == "c2":
                return httpx.Response(200, json={"results": [{"id": "n2"}], "cursor": "c3"})
            return httpx.Response(200, json={"results": [{"id": "n3"}], "cursor": ""})

        nodes = await _client(handler).get_transport_nodes()

        assert [n.id for n in nodes] == ["n1", "n2", "n3"]
        assert seen == [None, "c2", "c3"]

    @pytest.mark.asyncio
    async def test_stops_on_empty_page_even_with_cursor(self):
        calls = []

        def handler(request):
            calls.append(request.url.params.get("cursor"))
            if len(calls) == 1:
                return httpx.Response(200, json={"results": [{"id": "r1"}], "cursor": "next"})
            return httpx.Response(200, json={"results": [], "cursor": "again"})

        routers = await _client(handler).get_logical_routers()

        assert [r.id for r in routers] == ["r1"]
        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_alarms_filtered_to_open(self):
        def handler(request):
            assert request.url.path == "/api/v1/alarms"
            assert request.url.params["status"] == "OPEN"
            return httpx.Response(200, json={"results": [{"id": "a1", "severity": "LOW"}]})

        alarms = await _client(handler).get_alarms()

        assert alarms[0].severity == "LOW"


# =============================================================================
# Requests and decoding
# =============================================================================


class TestRequests:
    @pytest.mark.asyncio
    async def test_basic_auth_sent(self):
        def handler(request):
            assert request.headers["authorization"].startswith("Basic ")
            return httpx.Response(200, json={"cluster_id": "c-1"})

        status = await _client(handler).get_cluster_status()

        assert status.cluster_id == "c-1"

    @pytest.mark.asyncio
    async def test_bgp_requests_realtime_source(self):
        def handler(request):
            assert request.url.path == "/api/v1/logical-routers/t0a/routing/bgp/neighbors/status"
            assert request.url.params["source"] == "realtime"
            return httpx.Response(
                200,
                json={"results": [{"neighbor_address": "10.0.0.1", "connection_state": "ESTABLISHED"}]},
            )

        neighbors = await _client(handler).get_bgp_neighbor_status("t0a")

        assert neighbors[0].neighbor_address == "10.0.0.1"

    @pytest.mark.asyncio
    async def test_ns_services_count(self):
        def handler(request):
            return httpx.Response(200, json={"result_count": 57, "results": [{}]})

        assert await _client(handler).get_ns_services_count() == 57

    @pytest.mark.asyncio
    async def test_capacity_usage_key(self):
        def handler(request):
            return httpx.Response(
                200,
                json={"capacity_usage": [{"usage_type": "NUMBER_OF_GROUPS", "max_supported_count": 10}]},
            )

        items = await _client(handler).get_capacity_usage()

        assert items[0].max_supported == 10

    @pytest.mark.asyncio
    async def test_lb_service_status_decoded(self):
        def handler(request):
            return httpx.Response(
                200,
                json={
                    "service_id": "s1",
                    "service_status": "UP",
                    "virtual_servers": [{"virtual_server_id": "v1", "virtual_server_status": "DOWN"}],
                    "pools": [{"pool_id": "p1", "pool_status": "UP", "members": [{"status": "UP"}]}],
                },
            )

        status = await _client(handler).get_lb_service_status("s1")

        assert status.virtual_servers[0].status == "DOWN"
        assert status.pools[0].members[0].status == "UP"


class TestErrors:
    @pytest.mark.asyncio
    async def test_non_200_raises(self):
        def handler(request):
            return httpx.Response(403, json={"error_message": "forbidden"})

        with pytest.raises(NsxApiError, match="unexpected status 403"):
            await _client(handler).get_cluster_status()

    @pytest.mark.asyncio
    async def test_transport_error_raises(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(NsxApiError, match="request failed"):
            await _client(handler).get_transport_node_status("n1")

    @pytest.mark.asyncio
    async def test_invalid_json_raises(self):
        def handler(request):
            return httpx.Response(200, content=b"<html>login</html>")

        with pytest.raises(NsxApiError, match="decoding"):
            await _client(handler).get_cluster_status()

    @pytest.mark.asyncio
    async def test_unexpected_shape_raises(self):
        def handler(request):
            return httpx.Response(200, json={"results": {"id": "n1"}})

        with pytest.raises(NsxApiError, match="expected JSON array"):
            await _client(handler).get_transport_nodes()

    @pytest.mark.asyncio
    async def test_non_object_body_raises(self):
        def handler(request):
            return httpx.Response(200, json=[1, 2, 3])

        with pytest.raises(NsxApiError):
            await _client(handler).get_interface_stats("n3", "fp-eth0")


def test_build_http_client_uses_manager_settings():
    mgr = Manager(site="dc1", url="https://nsx.example.net/", username="u", password="p", tls_skip_verify=True)

    http = build_http_client(mgr, timeout=5.0)

    assert str(http.base_url) == "https://nsx.example.net/"
    assert http.timeout.read == 5.0
    assert http.headers["accept"] == "application/json"
