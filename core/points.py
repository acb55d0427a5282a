"""Pure conversions from NSX models to ``MetricPoint`` objects.

Nothing here performs I/O or raises on odd input: absent values were
already collapsed to zero / empty by the model decoders, and identity tags
that may come back empty are replaced with ``"-"`` so the backend never
drops the series.
"""
from __future__ import annotations

from datetime import datetime
from typing import Mapping

from models.nsx import (
    Alarm,
    BgpNeighborStatus,
    CapacityUsage,
    ClusterStatus,
    InterfaceStats,
    LBPool,
    LBPoolStatus,
    LBService,
    LBServiceStatus,
    LBVirtualServer,
    LBVirtualServerStatus,
    LogicalRouter,
    NetworkInterface,
    TransportNodeStatus,
)
from models.point import MetricPoint

EMPTY_TAG = "-"
DEFAULT_NODE_TYPE = "HostNode"

CLUSTER = "nsx_cluster"
TRANSPORT_NODE = "nsx_transport_node"
EDGE_RESOURCE = "nsx_edge_resource"
EDGE_UPLINK = "nsx_edge_uplink"
LOGICAL_ROUTER = "nsx_logical_router"
BGP_NEIGHBOR = "nsx_bgp_neighbor"
ALARM = "nsx_alarm"
CAPACITY = "nsx_capacity"
LB_SERVICE = "nsx_lb_service"
LB_VIRTUAL_SERVER = "nsx_lb_virtual_server"
LB_POOL = "nsx_lb_pool"

_SEVERITY = {"CRITICAL": 4, "HIGH": 3, "MEDIUM": 2, "LOW": 1}

_UPLINK_TYPES = frozenset({"PHYSICAL", "UPLINK", "DATA", "DATAPATH", "FABRIC"})
_NON_UPLINK_TYPES = frozenset({"MANAGEMENT", "MGMT", "LOOPBACK", "VIRTUAL", "TUNNEL"})
_UPLINK_ID_PREFIXES = ("fp-", "eth", "vmnic", "pnic")
_UPLINK_ID_MARKERS = ("uplink", "dpdk")


# ---------------------------------------------------------------------------
# Normalisation helpers
# ---------------------------------------------------------------------------


def status_int(value: str, expected: str) -> int:
    """1 iff ``value`` is exactly the healthy token, else 0."""
    return 1 if value == expected else 0


def severity_num(severity: str) -> int:
    """Ordinal for alarm severity (higher is worse, unknown is 0)."""
    return _SEVERITY.get(severity, 0)


def ratio_pct(used: float, total: float) -> float:
    if total > 0:
        return float(used) / float(total) * 100.0
    return 0.0


def tag_or_dash(value: str) -> str:
    return value if value else EMPTY_TAG


def in_maintenance(mode: str) -> int:
    return 0 if mode in ("", "DISABLED") else 1


def node_type_or_default(node_type: str) -> str:
    return node_type if node_type else DEFAULT_NODE_TYPE


def is_edge_node(node_type: str) -> bool:
    nt = node_type.strip().lower()
    return nt == "edgenode" or "edge" in nt


def is_edge_uplink(iface: NetworkInterface) -> bool:
    """Whether an edge interface likely carries dataplane uplink traffic.

    ``interface_type`` values differ between NSX releases, so the declared
    type wins when it is recognised and the interface id is used otherwise.
    """
    itype = iface.interface_type.strip().upper()
    iid = iface.interface_id.strip().lower()

    if itype in _UPLINK_TYPES:
        return True
    if itype in _NON_UPLINK_TYPES:
        return False
    return iid.startswith(_UPLINK_ID_PREFIXES) or any(m in iid for m in _UPLINK_ID_MARKERS)


def _point(
    measurement: str,
    tags: Mapping[str, str],
    fields: Mapping[str, int | float],
    now: datetime,
) -> MetricPoint:
    return MetricPoint(measurement=measurement, tags=tags, fields=fields, timestamp=now)


# ---------------------------------------------------------------------------
# Fast tier
# ---------------------------------------------------------------------------


def cluster_point(site: str, cs: ClusterStatus, now: datetime) -> MetricPoint:
    return _point(
        CLUSTER,
        {"site": site, "cluster_id": tag_or_dash(cs.cluster_id)},
        {
            "mgmt_status": status_int(cs.mgmt_status, "STABLE"),
            "control_status": status_int(cs.control_status, "STABLE"),
            "overall_status": status_int(cs.overall_status, "STABLE"),
            "online_nodes": cs.online_nodes,
            "offline_nodes": cs.offline_nodes,
        },
        now,
    )


def transport_node_points(
    site: str,
    node_id: str,
    node_name: str,
    node_type: str,
    ts: TransportNodeStatus,
    now: datetime,
) -> list[MetricPoint]:
    """One ``nsx_transport_node`` point, plus ``nsx_edge_resource`` for edges."""
    tags = {
        "site": site,
        "node_id": tag_or_dash(node_id),
        "node_name": tag_or_dash(node_name),
        "node_type": node_type_or_default(node_type),
    }
    points = [
        _point(
            TRANSPORT_NODE,
            tags,
            {
                "status": status_int(ts.status, "UP"),
                "pnic_up": ts.pnic_up,
                "pnic_down": ts.pnic_down,
                "tunnel_up": ts.tunnel_up,
                "tunnel_down": ts.tunnel_down,
                "bfd_up": ts.bfd_up,
                "bfd_down": ts.bfd_down,
                "bfd_admin_down": ts.bfd_admin_down,
                "bfd_init": ts.bfd_init,
                "mgmt_conn": status_int(ts.mgmt_connection_status, "UP"),
                "control_conn": status_int(ts.control_connection_status, "UP"),
                "maintenance": in_maintenance(ts.maintenance_mode),
            },
            now,
        )
    ]

    if is_edge_node(tags["node_type"]):
        sys = ts.system
        load = sys.load_average if len(sys.load_average) >= 3 else (0.0, 0.0, 0.0)
        points.append(
            _point(
                EDGE_RESOURCE,
                tags,
                {
                    "cpu_dpdk_avg": sys.cpu_dpdk_avg,
                    "cpu_dpdk_peak": sys.cpu_dpdk_peak,
                    "cpu_non_dpdk_avg": sys.cpu_non_dpdk_avg,
                    "cpu_non_dpdk_peak": sys.cpu_non_dpdk_peak,
                    "mem_system_pct": sys.mem_system_pct,
                    "mem_swap_pct": sys.mem_swap_pct,
                    "mem_cache_pct": sys.mem_cache_pct,
                    "mem_datapath_pct": sys.mem_datapath_pct,
                    "mem_datapath_pool_peak": sys.mem_datapath_pool_peak,
                    "mem_total_kb": sys.mem_total,
                    "mem_used_kb": sys.mem_used,
                    "disk_total_kb": sys.disk_total,
                    "disk_used_kb": sys.disk_used,
                    "disk_used_pct": ratio_pct(sys.disk_used, sys.disk_total),
                    "load_avg_1m": load[0],
                    "load_avg_5m": load[1],
                    "load_avg_15m": load[2],
                    "uptime_ms": sys.uptime_ms,
                    "cpu_cores": sys.cpu_cores,
                },
                now,
            )
        )
    return points


def edge_uplink_point(
    site: str,
    node_id: str,
    node_name: str,
    iface: NetworkInterface,
    stats: InterfaceStats,
    now: datetime,
) -> MetricPoint:
    # Cumulative counters; rates are derived at query time.
    return _point(
        EDGE_UPLINK,
        {
            "site": site,
            "node_id": tag_or_dash(node_id),
            "node_name": tag_or_dash(node_name),
            "interface_id": tag_or_dash(iface.interface_id),
        },
        {
            "rx_bytes": stats.rx_bytes,
            "tx_bytes": stats.tx_bytes,
            "rx_packets": stats.rx_packets,
            "tx_packets": stats.tx_packets,
            "rx_dropped": stats.rx_dropped,
            "tx_dropped": stats.tx_dropped,
            "rx_errors": stats.rx_errors,
            "tx_errors": stats.tx_errors,
            "admin_up": status_int(iface.admin_status, "UP"),
            "link_up": status_int(iface.link_status, "UP"),
            "link_speed_mbps": iface.link_speed_mbps,
        },
        now,
    )


def logical_router_point(
    site: str, parent_t0: str, lr: LogicalRouter, now: datetime
) -> MetricPoint:
    """Inventory point; ``parent_t0`` is only tagged when non-empty."""
    tags = {
        "site": site,
        "router_id": tag_or_dash(lr.id),
        "router_name": tag_or_dash(lr.display_name),
        "router_type": tag_or_dash(lr.router_type),
    }
    if parent_t0:
        tags["parent_t0"] = parent_t0
    return _point(LOGICAL_ROUTER, tags, {"up": 1}, now)


def bgp_neighbor_point(
    site: str, lr: LogicalRouter, nb: BgpNeighborStatus, now: datetime
) -> MetricPoint:
    return _point(
        BGP_NEIGHBOR,
        {
            "site": site,
            "router_id": tag_or_dash(lr.id),
            "router_name": tag_or_dash(lr.display_name),
            "router_type": tag_or_dash(lr.router_type),
            "neighbor_address": tag_or_dash(nb.neighbor_address),
            "source_address": tag_or_dash(nb.source_address),
            "remote_as": tag_or_dash(nb.remote_as),
        },
        {
            "established": status_int(nb.connection_state, "ESTABLISHED"),
            "in_prefixes": nb.total_in_prefix_count,
            "out_prefixes": nb.total_out_prefix_count,
            "messages_received": nb.messages_received,
            "messages_sent": nb.messages_sent,
            "time_since_established_ms": nb.time_since_established_ms,
        },
        now,
    )


# ---------------------------------------------------------------------------
# Slow tier
# ---------------------------------------------------------------------------


def alarm_point(site: str, alarm: Alarm, now: datetime) -> MetricPoint:
    # event_type and summary are tags so dashboards can display them
    # without pivoting string fields.
    return _point(
        ALARM,
        {
            "site": site,
            "alarm_id": tag_or_dash(alarm.id),
            "severity": tag_or_dash(alarm.severity),
            "feature_name": tag_or_dash(alarm.feature_name),
            "node_name": tag_or_dash(alarm.node_display_name),
            "event_type": tag_or_dash(alarm.event_type),
            "summary": tag_or_dash(alarm.summary),
        },
        {
            "severity_num": severity_num(alarm.severity),
            "last_reported_ms": alarm.last_reported_time_ms,
        },
        now,
    )


def capacity_point(site: str, item: CapacityUsage, now: datetime) -> MetricPoint:
    return _point(
        CAPACITY,
        {
            "site": site,
            "usage_type": tag_or_dash(item.usage_type),
            "display_name": tag_or_dash(item.display_name),
        },
        {
            "current_usage": item.current_usage,
            "max_supported": item.max_supported,
            "usage_pct": item.usage_pct,
        },
        now,
    )


def ns_services_point(site: str, count: int, now: datetime) -> MetricPoint:
    return capacity_point(
        site,
        CapacityUsage(
            usage_type="NUMBER_OF_NS_SERVICES",
            display_name="NS Services",
            current_usage=count,
        ),
        now,
    )


def lb_service_point(
    site: str, svc: LBService, status: LBServiceStatus, now: datetime
) -> MetricPoint:
    return _point(
        LB_SERVICE,
        {
            "site": site,
            "service_id": tag_or_dash(svc.id),
            "service_name": tag_or_dash(svc.display_name),
            "size": tag_or_dash(svc.size),
        },
        {
            "status": status_int(status.status, "UP"),
            "vs_count": len(status.virtual_servers),
            "pool_count": len(status.pools),
        },
        now,
    )


def lb_virtual_server_point(
    site: str,
    service_id: str,
    virtual_servers: Mapping[str, LBVirtualServer],
    vs: LBVirtualServerStatus,
    now: datetime,
) -> MetricPoint:
    """VS health, named via the virtual-server lookup table when available."""
    meta = virtual_servers.get(vs.virtual_server_id)
    return _point(
        LB_VIRTUAL_SERVER,
        {
            "site": site,
            "service_id": tag_or_dash(service_id),
            "vs_id": tag_or_dash(vs.virtual_server_id),
            "vs_name": tag_or_dash(meta.display_name if meta else ""),
            "ip_address": tag_or_dash(meta.ip_address if meta else ""),
            "port": tag_or_dash(",".join(meta.ports) if meta else ""),
            "protocol": tag_or_dash(meta.ip_protocol if meta else ""),
        },
        {"status": status_int(vs.status, "UP")},
        now,
    )


def lb_pool_point(
    site: str,
    service_id: str,
    pools: Mapping[str, LBPool],
    pool: LBPoolStatus,
    now: datetime,
) -> MetricPoint:
    meta = pools.get(pool.pool_id)
    members_up = sum(1 for m in pool.members if m.status == "UP")
    return _point(
        LB_POOL,
        {
            "site": site,
            "service_id": tag_or_dash(service_id),
            "pool_id": tag_or_dash(pool.pool_id),
            "pool_name": tag_or_dash(meta.display_name if meta else ""),
        },
        {
            "status": status_int(pool.status, "UP"),
            "members_total": len(pool.members),
            "members_up": members_up,
            "members_down": len(pool.members) - members_up,
        },
        now,
    )
