from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Callable

from core import points as pm
from core.outcome import CycleReport, DomainOutcome
from core.telemetry import CollectorMetrics
from core.topology import UNRESOLVED_PARENT, resolve_parent_routers
from models.manager import Manager
from models.nsx import LBPool, LBVirtualServer, LogicalRouter, TransportNode
from nsx.base import ManagerApi, NsxApiError
from writers.base import PointWriter, WriteError

log = logging.getLogger(__name__)

DEFAULT_SLOW_INTERVAL = 300.0
BGP_ROUTER_TYPES = frozenset({"TIER0", "VRF"})


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Worker:
    """Collects every metric domain of one NSX Manager and writes one batch.

    A cycle runs its fetches strictly in sequence because later domains
    need identifiers from earlier ones (node ids for node status, router
    ids and types for BGP, LB lookup tables for service status). Each fetch
    is isolated: a failure becomes a failed ``DomainOutcome`` and the cycle
    moves on. Only the final write decides whether the cycle's points land.

    Alarms, capacity, NS-service count and load-balancer state form the
    slow tier and run at most once per ``slow_interval`` seconds.
    """

    def __init__(
        self,
        manager: Manager,
        api: ManagerApi,
        writer: PointWriter,
        metrics: CollectorMetrics | None = None,
        slow_interval: float = DEFAULT_SLOW_INTERVAL,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.manager = manager
        self._api = api
        self._writer = writer
        self._metrics = metrics
        self._slow_interval = slow_interval
        self._clock = clock
        self._last_slow: datetime | None = None
        self._busy = False

    @property
    def site(self) -> str:
        return self.manager.site

    @property
    def busy(self) -> bool:
        return self._busy

    @property
    def last_slow_run(self) -> datetime | None:
        return self._last_slow

    def _slow_tier_due(self, now: datetime) -> bool:
        # The gate moves before the slow fetches run, so the cadence is
        # measured between cycle starts, not cycle ends.
        if self._last_slow is None or (now - self._last_slow).total_seconds() >= self._slow_interval:
            self._last_slow = now
            return True
        return False

    async def collect(self) -> CycleReport | None:
        """Run one full collection cycle.

        Returns the cycle report, or ``None`` when a previous cycle of this
        Worker is still in flight and this one was skipped.
        """
        if self._busy:
            log.warning("[%s] Previous cycle still running, skipping", self.site)
            return None
        self._busy = True
        started = time.perf_counter()
        try:
            now = self._clock()
            report = CycleReport(
                site=self.site,
                started_at=now,
                slow_tier=self._slow_tier_due(now),
            )

            await self._collect_cluster(report, now)
            await self._collect_transport_nodes(report, now)
            routers = await self._collect_logical_routers(report, now)
            await self._collect_bgp(report, routers, now)

            if report.slow_tier:
                await self._collect_alarms(report, now)
                await self._collect_capacity(report, now)
                await self._collect_ns_services(report, now)
                await self._collect_load_balancers(report, now)

            await self._write(report)

            report.duration_seconds = time.perf_counter() - started
            if self._metrics is not None:
                self._metrics.record(report)
            log.debug(
                "[%s] Cycle complete in %.2fs (slow_tier=%s, errors=%d)",
                self.site,
                report.duration_seconds,
                report.slow_tier,
                len(report.failures),
            )
            return report
        finally:
            self._busy = False

    def _fail(
        self, report: CycleReport, domain: str, exc: Exception, subject: str = ""
    ) -> None:
        context = {"site": self.site, "domain": domain, "subject": subject}
        if subject:
            log.warning("[%s] %s failed for %s: %s", self.site, domain, subject, exc, extra=context)
        else:
            log.warning("[%s] %s failed: %s", self.site, domain, exc, extra=context)
        report.add(DomainOutcome.failure(domain, exc, subject))

    # -- fast tier --------------------------------------------------------------

    async def _collect_cluster(self, report: CycleReport, now: datetime) -> None:
        try:
            cs = await self._api.get_cluster_status()
        except NsxApiError as exc:
            self._fail(report, "cluster", exc)
            return
        report.add(DomainOutcome.success("cluster", [pm.cluster_point(self.site, cs, now)]))

    async def _collect_transport_nodes(self, report: CycleReport, now: datetime) -> None:
        try:
            nodes = await self._api.get_transport_nodes()
        except NsxApiError as exc:
            self._fail(report, "transport_nodes", exc)
            return
        report.add(DomainOutcome.success("transport_nodes"))

        for node in nodes:
            node_type = pm.node_type_or_default(node.node_type)
            label = node.display_name or node.id
            try:
                ts = await self._api.get_transport_node_status(node.id)
            except NsxApiError as exc:
                self._fail(report, "transport_node_status", exc, subject=label)
                continue

            report.add(
                DomainOutcome.success(
                    "transport_node_status",
                    pm.transport_node_points(
                        self.site, node.id, node.display_name, node_type, ts, now
                    ),
                    subject=label,
                )
            )
            if pm.is_edge_node(node_type):
                await self._collect_edge_uplinks(report, node, now)

        log.debug("[%s] Transport nodes collected: %d", self.site, len(nodes))

    async def _collect_edge_uplinks(
        self, report: CycleReport, node: TransportNode, now: datetime
    ) -> None:
        label = node.display_name or node.id
        try:
            ifaces = await self._api.get_transport_node_interfaces(node.id)
        except NsxApiError as exc:
            self._fail(report, "edge_interfaces", exc, subject=label)
            return

        uplinks = [i for i in ifaces if pm.is_edge_uplink(i)]
        for iface in uplinks:
            subject = f"{label}/{iface.interface_id}"
            try:
                stats = await self._api.get_interface_stats(node.id, iface.interface_id)
            except NsxApiError as exc:
                self._fail(report, "edge_interface_stats", exc, subject=subject)
                continue
            report.add(
                DomainOutcome.success(
                    "edge_interface_stats",
                    [pm.edge_uplink_point(self.site, node.id, node.display_name, iface, stats, now)],
                    subject=subject,
                )
            )
        log.debug(
            "[%s] Edge %s: %d interface(s), %d uplink candidate(s)",
            self.site,
            label,
            len(ifaces),
            len(uplinks),
        )

    async def _collect_logical_routers(
        self, report: CycleReport, now: datetime
    ) -> list[LogicalRouter]:
        try:
            routers = await self._api.get_logical_routers()
        except NsxApiError as exc:
            self._fail(report, "logical_routers", exc)
            return []

        try:
            ports = await self._api.get_logical_router_ports()
        except NsxApiError as exc:
            self._fail(report, "logical_router_ports", exc)
            ports = []
        parents = resolve_parent_routers(routers, ports)

        router_points = []
        for lr in routers:
            parent = parents.get(lr.id, "")
            if lr.router_type == "TIER1" and not parent:
                parent = UNRESOLVED_PARENT
            router_points.append(pm.logical_router_point(self.site, parent, lr, now))
        report.add(DomainOutcome.success("logical_routers", router_points))
        log.debug("[%s] Logical routers collected: %d", self.site, len(routers))
        return routers

    async def _collect_bgp(
        self, report: CycleReport, routers: list[LogicalRouter], now: datetime
    ) -> None:
        for lr in routers:
            if lr.router_type not in BGP_ROUTER_TYPES:
                continue
            label = lr.display_name or lr.id
            try:
                neighbors = await self._api.get_bgp_neighbor_status(lr.id)
            except NsxApiError as exc:
                self._fail(report, "bgp_neighbors", exc, subject=label)
                continue
            report.add(
                DomainOutcome.success(
                    "bgp_neighbors",
                    [pm.bgp_neighbor_point(self.site, lr, nb, now) for nb in neighbors],
                    subject=label,
                )
            )

    # -- slow tier --------------------------------------------------------------

    async def _collect_alarms(self, report: CycleReport, now: datetime) -> None:
        try:
            alarms = await self._api.get_alarms()
        except NsxApiError as exc:
            self._fail(report, "alarms", exc)
            return
        report.add(
            DomainOutcome.success("alarms", [pm.alarm_point(self.site, a, now) for a in alarms])
        )
        log.debug("[%s] Alarms collected: %d", self.site, len(alarms))

    async def _collect_capacity(self, report: CycleReport, now: datetime) -> None:
        try:
            items = await self._api.get_capacity_usage()
        except NsxApiError as exc:
            self._fail(report, "capacity", exc)
            return
        report.add(
            DomainOutcome.success(
                "capacity", [pm.capacity_point(self.site, item, now) for item in items]
            )
        )

    async def _collect_ns_services(self, report: CycleReport, now: datetime) -> None:
        try:
            count = await self._api.get_ns_services_count()
        except NsxApiError as exc:
            self._fail(report, "ns_services", exc)
            return
        report.add(
            DomainOutcome.success("ns_services", [pm.ns_services_point(self.site, count, now)])
        )

    async def _collect_load_balancers(self, report: CycleReport, now: datetime) -> None:
        try:
            services = await self._api.get_lb_services()
        except NsxApiError as exc:
            self._fail(report, "lb_services", exc)
            return
        if not services:
            return

        # Lookup tables for name/IP/port tags; a failed listing only costs
        # the tags, not the status points.
        virtual_servers: dict[str, LBVirtualServer] = {}
        try:
            virtual_servers = {vs.id: vs for vs in await self._api.get_lb_virtual_servers()}
        except NsxApiError as exc:
            self._fail(report, "lb_virtual_servers", exc)

        pools: dict[str, LBPool] = {}
        try:
            pools = {p.id: p for p in await self._api.get_lb_pools()}
        except NsxApiError as exc:
            self._fail(report, "lb_pools", exc)

        for svc in services:
            label = svc.display_name or svc.id
            try:
                status = await self._api.get_lb_service_status(svc.id)
            except NsxApiError as exc:
                self._fail(report, "lb_service_status", exc, subject=label)
                continue

            lb_points = [pm.lb_service_point(self.site, svc, status, now)]
            lb_points.extend(
                pm.lb_virtual_server_point(self.site, svc.id, virtual_servers, vs, now)
                for vs in status.virtual_servers
            )
            lb_points.extend(
                pm.lb_pool_point(self.site, svc.id, pools, pool, now) for pool in status.pools
            )
            report.add(DomainOutcome.success("lb_service_status", lb_points, subject=label))

        log.debug("[%s] LB services collected: %d", self.site, len(services))

    # -- output -----------------------------------------------------------------

    async def _write(self, report: CycleReport) -> None:
        batch = report.points
        try:
            await self._writer.write(batch)
        except WriteError as exc:
            log.error(
                "[%s] Write failed: %s",
                self.site,
                exc,
                extra={"site": self.site, "domain": "write", "points": exc.count},
            )
            report.add(DomainOutcome.failure("write", exc))
            return
        report.written = len(batch)
        log.info("[%s] %d point(s) written", self.site, len(batch))
