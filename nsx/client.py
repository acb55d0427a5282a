from __future__ import annotations

import logging
from typing import Any, Callable, TypeVar

import httpx

from models.manager import Manager
from models.nsx import (
    Alarm,
    BgpNeighborStatus,
    CapacityUsage,
    ClusterStatus,
    InterfaceStats,
    LBPool,
    LBService,
    LBServiceStatus,
    LBVirtualServer,
    LogicalRouter,
    LogicalRouterPort,
    NetworkInterface,
    TransportNode,
    TransportNodeStatus,
)
from nsx.base import ManagerApi, NsxApiError

DEFAULT_TIMEOUT = 15.0
PAGE_SIZE = 100

log = logging.getLogger(__name__)

T = TypeVar("T")


def build_http_client(manager: Manager, timeout: float = DEFAULT_TIMEOUT) -> httpx.AsyncClient:
    """Create the ``httpx.AsyncClient`` dedicated to one manager.

    TLS verification is a client-level setting in httpx, so managers do not
    share a connection pool.
    """
    return httpx.AsyncClient(
        base_url=manager.url.rstrip("/"),
        auth=(manager.username, manager.password),
        verify=manager.verify_tls,
        timeout=timeout,
        headers={"Accept": "application/json"},
    )


class NsxClient(ManagerApi):
    """``ManagerApi`` backed by an authenticated ``httpx.AsyncClient``.

    The client is injected so its lifetime (and connection pool) is owned by
    the caller, and so tests can swap in ``httpx.MockTransport``.
    """

    def __init__(self, client: httpx.AsyncClient, site: str = "") -> None:
        self._client = client
        self.site = site

    async def _get(self, path: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        try:
            resp = await self._client.get(path, params=params)
        except httpx.HTTPError as exc:
            raise NsxApiError(path, f"request failed: {exc!r}") from exc

        if resp.status_code != 200:
            raise NsxApiError(path, f"unexpected status {resp.status_code}")

        try:
            body = resp.json()
        except ValueError as exc:
            raise NsxApiError(path, f"decoding response: {exc}") from exc

        if not isinstance(body, dict):
            raise NsxApiError(path, f"expected JSON object, got {type(body).__name__}")
        return body

    @staticmethod
    def _decode(path: str, data: Any, build: Callable[[dict[str, Any]], T]) -> T:
        if not isinstance(data, dict):
            raise NsxApiError(path, f"expected JSON object, got {type(data).__name__}")
        try:
            return build(data)
        except (TypeError, ValueError, AttributeError) as exc:
            raise NsxApiError(path, f"decoding response: {exc}") from exc

    def _decode_list(
        self, path: str, items: Any, build: Callable[[dict[str, Any]], T]
    ) -> list[T]:
        if items is None:
            return []
        if not isinstance(items, list):
            raise NsxApiError(path, f"expected JSON array, got {type(items).__name__}")
        return [self._decode(path, item, build) for item in items]

    async def _get_paged(
        self,
        path: str,
        build: Callable[[dict[str, Any]], T],
        params: dict[str, Any] | None = None,
    ) -> list[T]:
        """Follow ``cursor`` until it is empty or a page comes back empty."""
        results: list[T] = []
        cursor = ""
        while True:
            query: dict[str, Any] = {"page_size": PAGE_SIZE, **(params or {})}
            if cursor:
                query["cursor"] = cursor
            page = await self._get(path, query)
            items = self._decode_list(path, page.get("results"), build)
            results.extend(items)
            cursor = page.get("cursor") or ""
            if not cursor or not items:
                break
        log.debug("[%s] %s: %d item(s)", self.site, path, len(results))
        return results

    # -- cluster / transport nodes -------------------------------------------

    async def get_cluster_status(self) -> ClusterStatus:
        path = "/api/v1/cluster/status"
        return self._decode(path, await self._get(path), ClusterStatus.from_dict)

    async def get_transport_nodes(self) -> list[TransportNode]:
        return await self._get_paged("/api/v1/transport-nodes", TransportNode.from_dict)

    async def get_transport_node_status(self, node_id: str) -> TransportNodeStatus:
        path = f"/api/v1/transport-nodes/{node_id}/status"
        return self._decode(path, await self._get(path), TransportNodeStatus.from_dict)

    async def get_transport_node_interfaces(self, node_id: str) -> list[NetworkInterface]:
        path = f"/api/v1/transport-nodes/{node_id}/network/interfaces"
        body = await self._get(path)
        return self._decode_list(path, body.get("results"), NetworkInterface.from_dict)

    async def get_interface_stats(self, node_id: str, interface_id: str) -> InterfaceStats:
        path = f"/api/v1/transport-nodes/{node_id}/network/interfaces/{interface_id}/stats"
        return self._decode(path, await self._get(path), InterfaceStats.from_dict)

    # -- routing --------------------------------------------------------------

    async def get_logical_routers(self) -> list[LogicalRouter]:
        return await self._get_paged("/api/v1/logical-routers", LogicalRouter.from_dict)

    async def get_logical_router_ports(self) -> list[LogicalRouterPort]:
        return await self._get_paged("/api/v1/logical-router-ports", LogicalRouterPort.from_dict)

    async def get_bgp_neighbor_status(self, router_id: str) -> list[BgpNeighborStatus]:
        path = f"/api/v1/logical-routers/{router_id}/routing/bgp/neighbors/status"
        body = await self._get(path, {"source": "realtime"})
        return self._decode_list(path, body.get("results"), BgpNeighborStatus.from_dict)

    # -- alarms / capacity ----------------------------------------------------

    async def get_alarms(self) -> list[Alarm]:
        return await self._get_paged("/api/v1/alarms", Alarm.from_dict, {"status": "OPEN"})

    async def get_capacity_usage(self) -> list[CapacityUsage]:
        path = "/api/v1/capacity/usage"
        body = await self._get(path)
        return self._decode_list(path, body.get("capacity_usage"), CapacityUsage.from_dict)

    async def get_ns_services_count(self) -> int:
        path = "/api/v1/ns-services"
        body = await self._get(path, {"page_size": 1})
        count = body.get("result_count", 0)
        if isinstance(count, bool) or not isinstance(count, int):
            raise NsxApiError(path, f"result_count is not an integer: {count!r}")
        return count

    # -- load balancer --------------------------------------------------------

    async def get_lb_services(self) -> list[LBService]:
        return await self._get_paged("/api/v1/loadbalancer/services", LBService.from_dict)

    async def get_lb_virtual_servers(self) -> list[LBVirtualServer]:
        return await self._get_paged(
            "/api/v1/loadbalancer/virtual-servers", LBVirtualServer.from_dict
        )

    async def get_lb_pools(self) -> list[LBPool]:
        return await self._get_paged("/api/v1/loadbalancer/pools", LBPool.from_dict)

    async def get_lb_service_status(self, service_id: str) -> LBServiceStatus:
        path = f"/api/v1/loadbalancer/services/{service_id}/status"
        return self._decode(path, await self._get(path), LBServiceStatus.from_dict)
