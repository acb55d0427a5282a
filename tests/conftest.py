"""Shared fakes for the collector tests."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Sequence

import pytest
from prometheus_client import CollectorRegistry

from core.telemetry import CollectorMetrics
from models.manager import Manager
from models.nsx import (
    Alarm,
    BgpNeighborStatus,
    CapacityUsage,
    ClusterStatus,
    EdgeSystemStatus,
    InterfaceStats,
    LBMemberStatus,
    LBPool,
    LBPoolStatus,
    LBService,
    LBServiceStatus,
    LBVirtualServer,
    LBVirtualServerStatus,
    LogicalRouter,
    LogicalRouterPort,
    NetworkInterface,
    TransportNode,
    TransportNodeStatus,
)
from models.point import MetricPoint
from nsx.base import ManagerApi, NsxApiError
from writers.base import PointWriter, WriteError


class FakeApi(ManagerApi):
    """In-memory ManagerApi; ``fail()`` makes chosen calls raise NsxApiError."""

    def __init__(self) -> None:
        self.cluster = ClusterStatus()
        self.nodes: list[TransportNode] = []
        self.node_status: dict[str, TransportNodeStatus] = {}
        self.interfaces: dict[str, list[NetworkInterface]] = {}
        self.interface_stats: dict[tuple[str, str], InterfaceStats] = {}
        self.routers: list[LogicalRouter] = []
        self.ports: list[LogicalRouterPort] = []
        self.bgp: dict[str, list[BgpNeighborStatus]] = {}
        self.alarms: list[Alarm] = []
        self.capacity: list[CapacityUsage] = []
        self.ns_services = 0
        self.lb_services: list[LBService] = []
        self.lb_virtual_servers: list[LBVirtualServer] = []
        self.lb_pools: list[LBPool] = []
        self.lb_status: dict[str, LBServiceStatus] = {}
        self.calls: list[tuple] = []
        self._failures: set[tuple] = set()

    def fail(self, method: str, *args: str) -> None:
        self._failures.add((method, *args))

    def _call(self, method: str, *args: str) -> None:
        self.calls.append((method, *args))
        if (method,) in self._failures or (method, *args) in self._failures:
            raise NsxApiError(f"/{method}", "simulated failure")

    def called(self, method: str) -> list[tuple]:
        return [c for c in self.calls if c[0] == method]

    async def get_cluster_status(self):
        self._call("get_cluster_status")
        return self.cluster

    async def get_transport_nodes(self):
        self._call("get_transport_nodes")
        return list(self.nodes)

    async def get_transport_node_status(self, node_id):
        self._call("get_transport_node_status", node_id)
        return self.node_status.get(node_id, TransportNodeStatus())

    async def get_transport_node_interfaces(self, node_id):
        self._call("get_transport_node_interfaces", node_id)
        return list(self.interfaces.get(node_id, []))

    async def get_interface_stats(self, node_id, interface_id):
        self._call("get_interface_stats", node_id, interface_id)
        return self.interface_stats.get((node_id, interface_id), InterfaceStats())

    async def get_logical_routers(self):
        self._call("get_logical_routers")
        return list(self.routers)

    async def get_logical_router_ports(self):
        self._call("get_logical_router_ports")
        return list(self.ports)

    async def get_bgp_neighbor_status(self, router_id):
        self._call("get_bgp_neighbor_status", router_id)
        return list(self.bgp.get(router_id, []))

    async def get_alarms(self):
        self._call("get_alarms")
        return list(self.alarms)

    async def get_capacity_usage(self):
        self._call("get_capacity_usage")
        return list(self.capacity)

    async def get_ns_services_count(self):
        self._call("get_ns_services_count")
        return self.ns_services

    async def get_lb_services(self):
        self._call("get_lb_services")
        return list(self.lb_services)

    async def get_lb_virtual_servers(self):
        self._call("get_lb_virtual_servers")
        return list(self.lb_virtual_servers)

    async def get_lb_pools(self):
        self._call("get_lb_pools")
        return list(self.lb_pools)

    async def get_lb_service_status(self, service_id):
        self._call("get_lb_service_status", service_id)
        return self.lb_status.get(service_id, LBServiceStatus())


class RecordingWriter(PointWriter):
    def __init__(self) -> None:
        self.batches: list[list[MetricPoint]] = []
        self.error: str | None = None

    async def write_batch(self, points: Sequence[MetricPoint]) -> None:
        if self.error:
            raise WriteError(len(points), self.error)
        self.batches.append(list(points))


class FakeClock:
    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def manager() -> Manager:
    return Manager(site="dc1", url="https://nsx-dc1.example.net", username="u", password="p")


@pytest.fixture
def metrics() -> CollectorMetrics:
    return CollectorMetrics(registry=CollectorRegistry())


@pytest.fixture
def writer() -> RecordingWriter:
    return RecordingWriter()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def api() -> FakeApi:
    """A small site: three transport nodes (one edge), T0/T1/VRF, one LB."""
    fake = FakeApi()
    fake.cluster = ClusterStatus(
        cluster_id="c-1",
        mgmt_status="STABLE",
        control_status="STABLE",
        overall_status="STABLE",
        online_nodes=3,
    )

    fake.nodes = [
        TransportNode(id="n1", display_name="esx-01", node_type="HostNode"),
        TransportNode(id="n2", display_name="esx-02", node_type=""),
        TransportNode(id="n3", display_name="edge-01", node_type="EdgeNode"),
    ]
    fake.node_status = {
        "n1": TransportNodeStatus(status="UP", tunnel_up=4),
        "n2": TransportNodeStatus(status="DOWN"),
        "n3": TransportNodeStatus(
            status="UP",
            system=EdgeSystemStatus(
                cpu_cores=8,
                load_average=(0.5, 0.4, 0.3),
                disk_total=1000,
                disk_used=250,
            ),
        ),
    }
    fake.interfaces = {
        "n3": [
            NetworkInterface(interface_id="fp-eth0", link_status="UP", link_speed_mbps=10000),
            NetworkInterface(interface_id="mgmt0", interface_type="MANAGEMENT"),
        ]
    }
    fake.interface_stats = {("n3", "fp-eth0"): InterfaceStats(rx_bytes=100, tx_bytes=200)}

    fake.routers = [
        LogicalRouter(id="t0a", display_name="T0-A", router_type="TIER0"),
        LogicalRouter(id="t1a", display_name="T1-A", router_type="TIER1"),
        LogicalRouter(id="vrf1", display_name="VRF-1", router_type="VRF"),
    ]
    fake.ports = [
        LogicalRouterPort(id="pA", logical_router_id="t0a", resource_type="LogicalRouterLinkPortOnTIER0"),
        LogicalRouterPort(
            id="pB",
            logical_router_id="t1a",
            resource_type="LogicalRouterLinkPortOnTIER1",
            linked_port_id="pA",
        ),
    ]
    fake.bgp = {
        "t0a": [
            BgpNeighborStatus(
                neighbor_address="10.0.0.1",
                remote_as="65001",
                connection_state="ESTABLISHED",
                total_in_prefix_count=12,
            )
        ]
    }

    fake.alarms = [Alarm(id="a1", severity="HIGH", feature_name="edge_health")]
    fake.capacity = [
        CapacityUsage(usage_type="NUMBER_OF_GROUPS", display_name="Groups", current_usage=10, max_supported=100, usage_pct=10.0)
    ]
    fake.ns_services = 42
    fake.lb_services = [LBService(id="s1", display_name="web-lb", size="SMALL")]
    fake.lb_virtual_servers = [
        LBVirtualServer(id="v1", display_name="web-vs", ip_address="10.1.1.10", ports=("443",), ip_protocol="TCP")
    ]
    fake.lb_pools = [LBPool(id="p1", display_name="web-pool")]
    fake.lb_status = {
        "s1": LBServiceStatus(
            status="UP",
            virtual_servers=(LBVirtualServerStatus(virtual_server_id="v1", status="UP"),),
            pools=(
                LBPoolStatus(
                    pool_id="p1",
                    status="UP",
                    members=(
                        LBMemberStatus(status="UP"),
                        LBMemberStatus(status="DOWN"),
                    ),
                ),
            ),
        )
    }
    return fake
