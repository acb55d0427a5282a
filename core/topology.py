from __future__ import annotations

from typing import Iterable

from models.nsx import LogicalRouter, LogicalRouterPort

CHILD_LINK_PORT_TYPE = "LogicalRouterLinkPortOnTIER1"
UNRESOLVED_PARENT = "N/A"


def resolve_parent_routers(
    routers: Iterable[LogicalRouter],
    ports: Iterable[LogicalRouterPort],
) -> dict[str, str]:
    """Map each tier-1 router id to the display name of its tier-0 parent.

    A tier-1 attaches upward through a link port on its own side whose
    ``linked_port_id`` names the peer port on the tier-0. The peer port's
    owning router is the parent. Children whose link cannot be followed to a
    known router are left out of the map.
    """
    router_names = {r.id: r.display_name for r in routers}
    ports = list(ports)
    port_owner = {p.id: p.logical_router_id for p in ports}

    parents: dict[str, str] = {}
    for port in ports:
        if port.resource_type != CHILD_LINK_PORT_TYPE or not port.linked_port_id:
            continue
        parent_id = port_owner.get(port.linked_port_id, "")
        if not parent_id:
            continue
        if parent_id in router_names:
            parents[port.logical_router_id] = router_names[parent_id]
    return parents
