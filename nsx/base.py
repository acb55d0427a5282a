from __future__ import annotations

from abc import ABC, abstractmethod

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


class NsxApiError(Exception):
    """A single upstream call failed (transport, auth, status or decode)."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"{path}: {reason}")
        self.path = path
        self.reason = reason


class ManagerApi(ABC):
    """Read-only view of one NSX Manager's REST API.

    Every method performs one logical fetch (following pagination cursors
    where the endpoint is paged) and returns typed models. Any failure is
    raised as ``NsxApiError``; callers decide how far the failure spreads.
    """

    @abstractmethod
    async def get_cluster_status(self) -> ClusterStatus: ...

    @abstractmethod
    async def get_transport_nodes(self) -> list[TransportNode]: ...

    @abstractmethod
    async def get_transport_node_status(self, node_id: str) -> TransportNodeStatus: ...

    @abstractmethod
    async def get_transport_node_interfaces(self, node_id: str) -> list[NetworkInterface]: ...

    @abstractmethod
    async def get_interface_stats(self, node_id: str, interface_id: str) -> InterfaceStats: ...

    @abstractmethod
    async def get_logical_routers(self) -> list[LogicalRouter]: ...

    @abstractmethod
    async def get_logical_router_ports(self) -> list[LogicalRouterPort]: ...

    @abstractmethod
    async def get_bgp_neighbor_status(self, router_id: str) -> list[BgpNeighborStatus]:
        """Realtime BGP neighbor state; empty when BGP is not configured."""

    @abstractmethod
    async def get_alarms(self) -> list[Alarm]:
        """Open platform alarms."""

    @abstractmethod
    async def get_capacity_usage(self) -> list[CapacityUsage]: ...

    @abstractmethod
    async def get_ns_services_count(self) -> int: ...

    @abstractmethod
    async def get_lb_services(self) -> list[LBService]: ...

    @abstractmethod
    async def get_lb_virtual_servers(self) -> list[LBVirtualServer]: ...

    @abstractmethod
    async def get_lb_pools(self) -> list[LBPool]: ...

    @abstractmethod
    async def get_lb_service_status(self, service_id: str) -> LBServiceStatus: ...
