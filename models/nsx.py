"""Typed views of NSX Manager API responses.

Each dataclass is built from the decoded JSON body via ``from_dict``.
Missing or null keys collapse to zero / empty values so the point mapper
never has to guard against absent sub-objects.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


def _obj(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _list(value: Any) -> list[Any]:
    return value if isinstance(value, list) else []


def _str(data: dict[str, Any], key: str) -> str:
    value = data.get(key)
    if value is None:
        return ""
    return str(value)


def _int(data: dict[str, Any], key: str) -> int:
    value = data.get(key)
    if isinstance(value, bool) or value is None:
        return 0
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def _float(data: dict[str, Any], key: str) -> float:
    value = data.get(key)
    if isinstance(value, bool) or value is None:
        return 0.0
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def parse_linked_port_id(raw: Any) -> str:
    """Normalise ``linked_logical_router_port_id`` to a plain port id.

    Older managers send the bare UUID string, newer ones a
    ResourceReference object carrying ``target_id``.
    """
    if isinstance(raw, str):
        return raw
    if isinstance(raw, dict):
        target = raw.get("target_id")
        if isinstance(target, str):
            return target
    return ""


# ---------------------------------------------------------------------------
# Cluster
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ClusterStatus:
    cluster_id: str = ""
    mgmt_status: str = ""
    control_status: str = ""
    overall_status: str = ""
    online_nodes: int = 0
    offline_nodes: int = 0

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ClusterStatus:
        mgmt = _obj(data.get("mgmt_cluster_status"))
        return cls(
            cluster_id=_str(data, "cluster_id"),
            mgmt_status=_str(mgmt, "status"),
            control_status=_str(_obj(data.get("control_cluster_status")), "status"),
            overall_status=_str(_obj(data.get("detailed_cluster_status")), "overall_status"),
            online_nodes=len(_list(mgmt.get("online_nodes"))),
            offline_nodes=len(_list(mgmt.get("offline_nodes"))),
        )


# ---------------------------------------------------------------------------
# Transport nodes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TransportNode:
    id: str
    display_name: str = ""
    node_type: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TransportNode:
        info = _obj(data.get("node_deployment_info"))
        return cls(
            id=_str(data, "id"),
            display_name=_str(data, "display_name"),
            node_type=_str(info, "resource_type"),
        )


@dataclass(frozen=True)
class EdgeSystemStatus:
    cpu_cores: int = 0
    load_average: tuple[float, ...] = ()
    mem_total: int = 0
    mem_used: int = 0
    disk_total: int = 0
    disk_used: int = 0
    uptime_ms: int = 0
    cpu_dpdk_avg: float = 0.0
    cpu_dpdk_peak: float = 0.0
    cpu_non_dpdk_avg: float = 0.0
    cpu_non_dpdk_peak: float = 0.0
    mem_system_pct: float = 0.0
    mem_swap_pct: float = 0.0
    mem_cache_pct: float = 0.0
    mem_datapath_pct: float = 0.0
    mem_datapath_pool_peak: float = 0.0

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> EdgeSystemStatus:
        cpu = _obj(data.get("cpu_usage"))
        mem = _obj(data.get("edge_mem_usage"))
        pools = _obj(mem.get("datapath_mem_usage_details"))
        load = tuple(
            float(v) for v in _list(data.get("load_average"))
            if isinstance(v, (int, float)) and not isinstance(v, bool)
        )
        return cls(
            cpu_cores=_int(data, "cpu_cores"),
            load_average=load,
            mem_total=_int(data, "mem_total"),
            mem_used=_int(data, "mem_used"),
            disk_total=_int(data, "disk_space_total"),
            disk_used=_int(data, "disk_space_used"),
            uptime_ms=_int(data, "uptime"),
            cpu_dpdk_avg=_float(cpu, "avg_cpu_core_usage_dpdk"),
            cpu_dpdk_peak=_float(cpu, "highest_cpu_core_usage_dpdk"),
            cpu_non_dpdk_avg=_float(cpu, "avg_cpu_core_usage_non_dpdk"),
            cpu_non_dpdk_peak=_float(cpu, "highest_cpu_core_usage_non_dpdk"),
            mem_system_pct=_float(mem, "system_mem_usage"),
            mem_swap_pct=_float(mem, "swap_usage"),
            mem_cache_pct=_float(mem, "cache_usage"),
            mem_datapath_pct=_float(mem, "datapath_total_usage"),
            mem_datapath_pool_peak=_float(pools, "highest_datapath_mem_pool_usage"),
        )


@dataclass(frozen=True)
class TransportNodeStatus:
    status: str = ""
    pnic_up: int = 0
    pnic_down: int = 0
    mgmt_connection_status: str = ""
    control_connection_status: str = ""
    tunnel_up: int = 0
    tunnel_down: int = 0
    bfd_up: int = 0
    bfd_down: int = 0
    bfd_admin_down: int = 0
    bfd_init: int = 0
    maintenance_mode: str = ""
    system: EdgeSystemStatus = field(default_factory=EdgeSystemStatus)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TransportNodeStatus:
        pnic = _obj(data.get("pnic_status"))
        control = _obj(data.get("control_connection_status"))
        tunnel = _obj(data.get("tunnel_status"))
        bfd = _obj(tunnel.get("bfd_status"))
        node = _obj(data.get("node_status"))
        return cls(
            status=_str(data, "status"),
            pnic_up=_int(pnic, "up_count"),
            pnic_down=_int(pnic, "down_count"),
            mgmt_connection_status=_str(data, "mgmt_connection_status"),
            control_connection_status=_str(control, "status"),
            tunnel_up=_int(tunnel, "up_count"),
            tunnel_down=_int(tunnel, "down_count"),
            bfd_up=_int(bfd, "bfd_up_count"),
            bfd_down=_int(bfd, "bfd_down_count"),
            bfd_admin_down=_int(bfd, "bfd_admin_down_count"),
            bfd_init=_int(bfd, "bfd_init_count"),
            maintenance_mode=_str(node, "maintenance_mode"),
            system=EdgeSystemStatus.from_dict(_obj(node.get("system_status"))),
        )


@dataclass(frozen=True)
class NetworkInterface:
    interface_id: str
    interface_type: str = ""
    admin_status: str = ""
    link_status: str = ""
    link_speed_mbps: int = 0

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> NetworkInterface:
        return cls(
            interface_id=_str(data, "interface_id"),
            interface_type=_str(data, "interface_type"),
            admin_status=_str(data, "admin_status"),
            link_status=_str(data, "link_status"),
            link_speed_mbps=_int(data, "link_speed"),
        )


@dataclass(frozen=True)
class InterfaceStats:
    """Cumulative counters since the edge last booted."""

    rx_bytes: int = 0
    tx_bytes: int = 0
    rx_packets: int = 0
    tx_packets: int = 0
    rx_dropped: int = 0
    tx_dropped: int = 0
    rx_errors: int = 0
    tx_errors: int = 0

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> InterfaceStats:
        return cls(**{name: _int(data, name) for name in cls.__dataclass_fields__})


# ---------------------------------------------------------------------------
# Routing
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LogicalRouter:
    id: str
    display_name: str = ""
    router_type: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> LogicalRouter:
        return cls(
            id=_str(data, "id"),
            display_name=_str(data, "display_name"),
            router_type=_str(data, "router_type"),
        )


@dataclass(frozen=True)
class LogicalRouterPort:
    id: str
    logical_router_id: str = ""
    resource_type: str = ""
    linked_port_id: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> LogicalRouterPort:
        return cls(
            id=_str(data, "id"),
            logical_router_id=_str(data, "logical_router_id"),
            resource_type=_str(data, "resource_type"),
            linked_port_id=parse_linked_port_id(data.get("linked_logical_router_port_id")),
        )


@dataclass(frozen=True)
class BgpNeighborStatus:
    neighbor_address: str = ""
    source_address: str = ""
    remote_as: str = ""
    connection_state: str = ""
    total_in_prefix_count: int = 0
    total_out_prefix_count: int = 0
    messages_received: int = 0
    messages_sent: int = 0
    time_since_established_ms: int = 0

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BgpNeighborStatus:
        return cls(
            neighbor_address=_str(data, "neighbor_address"),
            source_address=_str(data, "source_address"),
            remote_as=_str(data, "remote_as_number"),
            connection_state=_str(data, "connection_state"),
            total_in_prefix_count=_int(data, "total_in_prefix_count"),
            total_out_prefix_count=_int(data, "total_out_prefix_count"),
            messages_received=_int(data, "messages_received"),
            messages_sent=_int(data, "messages_sent"),
            time_since_established_ms=_int(data, "time_since_established"),
        )


# ---------------------------------------------------------------------------
# Alarms and capacity
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Alarm:
    id: str
    feature_name: str = ""
    event_type: str = ""
    severity: str = ""
    node_display_name: str = ""
    summary: str = ""
    last_reported_time_ms: int = 0

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Alarm:
        return cls(
            id=_str(data, "id"),
            feature_name=_str(data, "feature_name"),
            event_type=_str(data, "event_type_display_name"),
            severity=_str(data, "severity"),
            node_display_name=_str(data, "node_display_name"),
            summary=_str(data, "summary"),
            last_reported_time_ms=_int(data, "last_reported_time"),
        )


@dataclass(frozen=True)
class CapacityUsage:
    usage_type: str
    display_name: str = ""
    current_usage: int = 0
    max_supported: int = 0
    usage_pct: float = 0.0

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CapacityUsage:
        return cls(
            usage_type=_str(data, "usage_type"),
            display_name=_str(data, "display_name"),
            current_usage=_int(data, "current_usage_count"),
            max_supported=_int(data, "max_supported_count"),
            usage_pct=_float(data, "current_usage_percentage"),
        )


# ---------------------------------------------------------------------------
# Load balancer
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LBService:
    id: str
    display_name: str = ""
    size: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> LBService:
        return cls(
            id=_str(data, "id"),
            display_name=_str(data, "display_name"),
            size=_str(data, "size"),
        )


@dataclass(frozen=True)
class LBVirtualServer:
    id: str
    display_name: str = ""
    ip_address: str = ""
    ports: tuple[str, ...] = ()
    ip_protocol: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> LBVirtualServer:
        return cls(
            id=_str(data, "id"),
            display_name=_str(data, "display_name"),
            ip_address=_str(data, "ip_address"),
            ports=tuple(str(p) for p in _list(data.get("ports"))),
            ip_protocol=_str(data, "ip_protocol"),
        )


@dataclass(frozen=True)
class LBPool:
    id: str
    display_name: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> LBPool:
        return cls(id=_str(data, "id"), display_name=_str(data, "display_name"))


@dataclass(frozen=True)
class LBMemberStatus:
    status: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> LBMemberStatus:
        return cls(status=_str(data, "status"))


@dataclass(frozen=True)
class LBPoolStatus:
    pool_id: str
    status: str = ""
    members: tuple[LBMemberStatus, ...] = ()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> LBPoolStatus:
        return cls(
            pool_id=_str(data, "pool_id"),
            status=_str(data, "pool_status"),
            members=tuple(
                LBMemberStatus.from_dict(_obj(m)) for m in _list(data.get("members"))
            ),
        )


@dataclass(frozen=True)
class LBVirtualServerStatus:
    virtual_server_id: str
    status: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> LBVirtualServerStatus:
        return cls(
            virtual_server_id=_str(data, "virtual_server_id"),
            status=_str(data, "virtual_server_status"),
        )


@dataclass(frozen=True)
class LBServiceStatus:
    status: str = ""
    virtual_servers: tuple[LBVirtualServerStatus, ...] = ()
    pools: tuple[LBPoolStatus, ...] = ()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> LBServiceStatus:
        return cls(
            status=_str(data, "service_status"),
            virtual_servers=tuple(
                LBVirtualServerStatus.from_dict(_obj(v))
                for v in _list(data.get("virtual_servers"))
            ),
            pools=tuple(LBPoolStatus.from_dict(_obj(p)) for p in _list(data.get("pools"))),
        )
