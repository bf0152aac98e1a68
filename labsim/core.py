from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Set, Tuple
import copy
import heapq
import ipaddress

import structlog

from .errors import PropagationError
from .state import (
    DeviceState,
    Interface,
    OspfNeighbor,
    Route,
    insert_route,
    interface_kind,
    new_device,
    normalize_interface_name,
    split_subinterface,
)

logger = structlog.get_logger(__name__)


MAX_PING_HOPS = 16

REASON_NO_ROUTE = "no route"
REASON_LINK_DOWN = "link down"
REASON_ACL_DENY = "ACL deny"
REASON_TTL_EXCEEDED = "TTL exceeded"
REASON_HOST_UNREACHABLE = "host unreachable"


@dataclass
class LinkEnd:
    device: str
    port: str


@dataclass
class Link:
    link_id: str
    a: LinkEnd
    b: LinkEnd
    up: bool = False

    def ends(self) -> Tuple[LinkEnd, LinkEnd]:
        return self.a, self.b

    def touches(self, device: str, port: Optional[str] = None) -> bool:
        return any(e.device == device and (port is None or e.port == port) for e in self.ends())

    def other(self, device: str, port: str) -> Optional[LinkEnd]:
        if self.a.device == device and self.a.port == port:
            return self.b
        if self.b.device == device and self.b.port == port:
            return self.a
        return None


@dataclass
class PingHop:
    hop: int
    device: str
    interface: Optional[str] = None  # ingress interface, None for the source
    address: Optional[str] = None


@dataclass
class PingFailure:
    hop: int
    device: str
    reason: str
    detail: str = ""


@dataclass
class PingReport:
    target: str
    source: Optional[str]
    success: bool
    hops: List[PingHop] = field(default_factory=list)
    failure: Optional[PingFailure] = None


def lookup_route(routes: Iterable[Route], dst: ipaddress.IPv4Address) -> Optional[Route]:
    """Longest prefix, then lowest administrative distance, then table order."""
    best: Optional[Route] = None
    best_key = None
    for route in routes:
        prefix = route.prefix
        if dst not in prefix:
            continue
        key = (prefix.prefixlen, -route.distance)
        if best is None or key > best_key:
            best, best_key = route, key
    return best


def effective_router_id(dev: DeviceState) -> Optional[str]:
    if dev.ospf is None:
        return None
    if dev.ospf.router_id:
        return dev.ospf.router_id

    # Highest loopback address, else highest active interface address.
    loopbacks: List[ipaddress.IPv4Address] = []
    actives: List[ipaddress.IPv4Address] = []
    for itf in dev.interfaces.values():
        if not itf.oper_up or not itf.has_ip():
            continue
        if interface_kind(itf.name) == "loopback":
            loopbacks.append(ipaddress.IPv4Address(itf.ip))
        else:
            actives.append(ipaddress.IPv4Address(itf.ip))
    if loopbacks:
        return str(max(loopbacks))
    if actives:
        return str(max(actives))
    return None


def ospf_cost(ifname: str) -> int:
    # Reference bandwidth 100 Mbit/s.
    if ifname.startswith("Serial"):
        return 64
    if ifname.startswith("Ethernet"):
        return 10
    return 1


@dataclass
class Topology:
    """Devices, links and the derived forwarding state between them.

    Public functions in this module never mutate their input: they work on a
    deep copy and return it. The methods below mutate in place and are meant
    to run on such a copy.
    """

    devices: Dict[str, DeviceState] = field(default_factory=dict)
    links: List[Link] = field(default_factory=list)
    next_link_id: int = 1

    # ───────────────────────────── Devices / Links ─────────────────────────────

    def device(self, device_id: str) -> DeviceState:
        dev = self.devices.get((device_id or "").strip())
        if dev is None:
            raise KeyError(f"Unknown device: {device_id}")
        return dev

    def find_device(self, name: str) -> Optional[DeviceState]:
        if name in self.devices:
            return self.devices[name]
        wanted = name.lower()
        for dev_id in sorted(self.devices):
            if self.devices[dev_id].hostname.lower() == wanted:
                return self.devices[dev_id]
        return None

    def link_for(self, device_id: str, port: str) -> Optional[Link]:
        for link in self.links:
            if link.touches(device_id, port):
                return link
        return None

    def peer_of(self, device_id: str, port: str) -> Optional[LinkEnd]:
        link = self.link_for(device_id, port)
        return link.other(device_id, port) if link else None

    def physical_port(self, device_id: str, port: str) -> str:
        dev = self.device(device_id)
        name = normalize_interface_name(port) or port
        if name not in dev.interfaces or interface_kind(name) != "physical":
            raise ValueError(f"{device_id} has no physical port {port}")
        return name

    def _interface(self, end: LinkEnd) -> Interface:
        return self.devices[end.device].interfaces[end.port]

    # ───────────────────────────── Propagation ─────────────────────────────

    def propagate(self, device_id: str, interfaces: Iterable[str] = (), routing_changed: bool = False) -> Set[Tuple[str, str]]:
        return self.propagate_ports([(device_id, n) for n in interfaces], routing_changed, devices=[device_id])

    def propagate_ports(
        self,
        ports: Iterable[Tuple[str, str]],
        routing_changed: bool = False,
        devices: Iterable[str] = (),
    ) -> Set[Tuple[str, str]]:
        """Fold interface changes into links, dependent interfaces and routes.

        Returns the (device, interface) pairs whose derived state was refreshed.
        """
        dirty: Set[Tuple[str, str]] = set()
        for device_id, ifname in sorted(set(ports)):
            if device_id in self.devices:
                self._refresh_port(device_id, ifname, dirty)

        for device_id in sorted({d for d, _ in dirty} | set(devices)):
            if device_id in self.devices:
                self._refresh_logical(device_id, dirty)

        for device_id, ifname in sorted(dirty):
            self._refresh_connected(device_id, ifname)

        if dirty or routing_changed:
            self.recompute_ospf()

        self.verify()
        return dirty

    def _refresh_port(self, device_id: str, ifname: str, dirty: Set[Tuple[str, str]]) -> None:
        dirty.add((device_id, ifname))
        parent, _sub = split_subinterface(ifname)
        dev = self.devices[device_id]
        if parent not in dev.interfaces or interface_kind(parent) != "physical":
            return
        link = self.link_for(device_id, parent)
        if link is None:
            self._set_oper(device_id, parent, False, dirty)
            return
        link.up = self._interface(link.a).admin_up and self._interface(link.b).admin_up
        for end in link.ends():
            self._set_oper(end.device, end.port, link.up, dirty)

    def _set_oper(self, device_id: str, ifname: str, value: bool, dirty: Set[Tuple[str, str]]) -> None:
        self.devices[device_id].interfaces[ifname].oper_up = value
        dirty.add((device_id, ifname))

    def _refresh_logical(self, device_id: str, dirty: Set[Tuple[str, str]]) -> None:
        dev = self.devices[device_id]
        for itf in dev.sorted_interfaces():
            kind = interface_kind(itf.name)
            if kind == "physical":
                continue
            if kind == "subinterface":
                parent = dev.interfaces.get(split_subinterface(itf.name)[0])
                up = itf.admin_up and parent is not None and parent.oper_up
            elif kind == "loopback":
                up = itf.admin_up
            elif kind == "svi":
                vlan = int(itf.name[len("Vlan"):])
                up = itf.admin_up and vlan in dev.vlans and any(
                    p.oper_up and p.carries_vlan(vlan)
                    for p in dev.interfaces.values()
                    if interface_kind(p.name) == "physical"
                )
            else:
                group = int(itf.name[len("Port-channel"):])
                up = itf.admin_up and any(p.oper_up and p.channel_group == group for p in dev.interfaces.values())
            if itf.oper_up != up:
                itf.oper_up = up
                dirty.add((device_id, itf.name))

    def _refresh_connected(self, device_id: str, ifname: str) -> None:
        dev = self.devices[device_id]
        dev.routes = [r for r in dev.routes if not (r.source == "connected" and r.interface == ifname)]
        itf = dev.interfaces.get(ifname)
        if itf is None or not itf.oper_up or not itf.has_ip():
            return
        net = itf.ip_interface().network
        insert_route(
            dev.routes,
            Route(network=str(net.network_address), mask=str(net.netmask), source="connected", distance=0, interface=ifname),
        )

    # ───────────────────────────── OSPF ─────────────────────────────

    def _ospf_active(self, dev: DeviceState, itf: Interface) -> bool:
        return (
            dev.ospf is not None
            and itf.oper_up
            and itf.has_ip()
            and dev.ospf.area_for(itf.ip) is not None
        )

    def recompute_ospf(self) -> None:
        routers = {uid: d for uid, d in self.devices.items() if d.ospf is not None}
        for dev in self.devices.values():
            dev.ospf_neighbors = []
            dev.routes = [r for r in dev.routes if r.source != "ospf"]
        if not routers:
            return

        rids = {uid: effective_router_id(dev) for uid, dev in routers.items()}

        # uid -> [(peer uid, local interface, peer address, cost)]
        edges: Dict[str, List[Tuple[str, str, str, int]]] = {uid: [] for uid in routers}
        for uid in sorted(routers):
            dev = routers[uid]
            if not rids[uid]:
                continue
            for itf in dev.sorted_interfaces():
                if not self._ospf_active(dev, itf) or itf.name in dev.ospf.passive_interfaces:
                    continue
                area = dev.ospf.area_for(itf.ip)
                endpoints, _blocked = self.l2_domain(uid, itf.name)
                for peer_uid, peer_if in endpoints:
                    peer = routers.get(peer_uid)
                    if peer is None or peer_uid == uid or not rids[peer_uid] or rids[peer_uid] == rids[uid]:
                        continue
                    p_itf = peer.interfaces[peer_if]
                    if not self._ospf_active(peer, p_itf) or peer_if in peer.ospf.passive_interfaces:
                        continue
                    if peer.ospf.area_for(p_itf.ip) != area:
                        continue
                    if p_itf.ip_interface().network != itf.ip_interface().network:
                        continue
                    dev.ospf_neighbors.append(OspfNeighbor(neighbor_id=rids[peer_uid], address=p_itf.ip, interface=itf.name))
                    edges[uid].append((peer_uid, itf.name, p_itf.ip, ospf_cost(itf.name)))

        stubs: Dict[str, List[Tuple[ipaddress.IPv4Network, int]]] = {}
        for uid, dev in routers.items():
            stubs[uid] = [
                (itf.ip_interface().network, ospf_cost(itf.name))
                for itf in dev.sorted_interfaces()
                if self._ospf_active(dev, itf)
            ]

        for uid in sorted(routers):
            if not rids[uid]:
                continue
            dev = routers[uid]
            dist, first = self._spf(uid, edges)
            connected = {r.prefix for r in dev.routes if r.source == "connected"}
            best: Dict[ipaddress.IPv4Network, Route] = {}
            for dst_uid in sorted(dist):
                if dst_uid == uid:
                    continue
                local_if, next_hop = first[dst_uid]
                for net, cost in stubs[dst_uid]:
                    if net in connected:
                        continue
                    cand = Route(
                        network=str(net.network_address),
                        mask=str(net.netmask),
                        source="ospf",
                        distance=110,
                        next_hop=next_hop,
                        interface=local_if,
                        metric=dist[dst_uid] + cost,
                    )
                    cur = best.get(net)
                    if cur is None or (cand.metric, cand.next_hop) < (cur.metric, cur.next_hop):
                        best[net] = cand
            for route in best.values():
                insert_route(dev.routes, route)

        logger.debug("ospf_recomputed", routers=len(routers), adjacencies=sum(len(e) for e in edges.values()))

    def _spf(self, src: str, edges: Dict[str, List[Tuple[str, str, str, int]]]):
        dist: Dict[str, int] = {src: 0}
        first: Dict[str, Tuple[str, str]] = {}
        done: Set[str] = set()
        heap: List[Tuple[int, str]] = [(0, src)]
        while heap:
            d, u = heapq.heappop(heap)
            if u in done:
                continue
            done.add(u)
            for peer, local_if, peer_ip, cost in sorted(edges.get(u, [])):
                if peer in done:
                    continue
                nd = d + cost
                hop = (local_if, peer_ip) if u == src else first[u]
                if peer not in dist or nd < dist[peer] or (nd == dist[peer] and hop < first[peer]):
                    dist[peer] = nd
                    first[peer] = hop
                    heapq.heappush(heap, (nd, peer))
        return dist, first

    # ───────────────────────────── L2 helpers ─────────────────────────────

    def l2_domain(self, device_id: str, ifname: str) -> Tuple[List[Tuple[str, str]], bool]:
        """L3 interfaces sharing a broadcast domain with (device_id, ifname).

        Frames are walked through switches honoring access VLANs, trunk allowed
        lists and native VLANs. The flag is True when a cabled port or link on
        the way was down.
        """
        found: List[Tuple[str, str]] = []
        blocked = False
        queue: List[Tuple[str, str, Optional[int]]] = []
        visited: Set[Tuple[str, str, Optional[int]]] = set()

        def leave(dev_id: str, port: str, tag: Optional[int]) -> None:
            nonlocal blocked
            link = self.link_for(dev_id, port)
            if link is None:
                return
            if not link.up:
                blocked = True
                return
            peer = link.other(dev_id, port)
            queue.append((peer.device, peer.port, tag))

        def flood(dev_id: str, vlan: int, except_port: Optional[str] = None) -> None:
            nonlocal blocked
            sw = self.devices[dev_id]
            svi = sw.interfaces.get(f"Vlan{vlan}")
            if svi is not None and svi.oper_up and svi.has_ip():
                found.append((dev_id, svi.name))
            for itf in sw.sorted_interfaces():
                if itf.name == except_port or interface_kind(itf.name) != "physical":
                    continue
                if not itf.carries_vlan(vlan) or self.link_for(dev_id, itf.name) is None:
                    continue
                if not itf.oper_up:
                    blocked = True
                    continue
                tag = None if itf.mode == "access" or vlan == itf.native_vlan else vlan
                leave(dev_id, itf.name, tag)

        start = self.devices[device_id]
        if start.device_type == "switch" and interface_kind(ifname) == "svi":
            flood(device_id, int(ifname[len("Vlan"):]))
        else:
            parent, _sub = split_subinterface(ifname)
            itf = start.interfaces[ifname]
            tag = itf.dot1q_vlan if interface_kind(ifname) == "subinterface" else None
            leave(device_id, parent, tag)

        while queue:
            dev_id, port, tag = queue.pop(0)
            if (dev_id, port, tag) in visited:
                continue
            visited.add((dev_id, port, tag))
            node = self.devices[dev_id]
            itf = node.interfaces[port]
            if node.device_type == "switch" and itf.is_switchport():
                if itf.mode == "access":
                    if tag not in (None, itf.access_vlan):
                        continue
                    vlan = itf.access_vlan
                else:
                    vlan = tag if tag is not None else itf.native_vlan
                    if not itf.carries_vlan(vlan):
                        continue
                if vlan not in node.vlans:
                    continue
                flood(dev_id, vlan, except_port=port)
                continue
            receiver = self._l3_receiver(node, port, tag)
            if receiver is not None:
                found.append((dev_id, receiver))

        unique: List[Tuple[str, str]] = []
        for item in found:
            if item not in unique and item != (device_id, ifname):
                unique.append(item)
        return unique, blocked

    def _l3_receiver(self, dev: DeviceState, port: str, tag: Optional[int]) -> Optional[str]:
        if tag is None:
            itf = dev.interfaces[port]
            return port if itf.oper_up and itf.has_ip() else None
        for itf in dev.sorted_interfaces():
            parent, sub = split_subinterface(itf.name)
            if parent == port and sub is not None and itf.dot1q_vlan == tag and itf.oper_up and itf.has_ip():
                return itf.name
        return None

    # ───────────────────────────── Data plane: ping ─────────────────────────────

    def resolve_target(self, text: str) -> Optional[str]:
        """IPv4 address for a ping target given as an address or a hostname."""
        try:
            return str(ipaddress.IPv4Address(text))
        except ValueError:
            pass
        dev = self.find_device(text)
        if dev is None:
            return None
        for itf in dev.sorted_interfaces():
            if itf.has_ip() and itf.oper_up:
                return itf.ip
        for itf in dev.sorted_interfaces():
            if itf.has_ip():
                return itf.ip
        return None

    def _down_interface_toward(self, dev: DeviceState, dst: ipaddress.IPv4Address) -> Optional[str]:
        for itf in dev.sorted_interfaces():
            if itf.has_ip() and not itf.oper_up and dst in itf.ip_interface().network:
                return itf.name
        return None

    def _forwarding_decision(self, dev: DeviceState, dst: ipaddress.IPv4Address) -> Tuple[Optional[str], Optional[str], str, str]:
        """(egress interface, next-hop address, failure reason, detail)."""
        route = lookup_route(dev.routes, dst)
        if route is None:
            down = self._down_interface_toward(dev, dst)
            if down:
                return None, None, REASON_LINK_DOWN, f"{down} is down"
            return None, None, REASON_NO_ROUTE, f"no route to {dst}"

        egress, next_hop = route.interface, route.next_hop
        depth = 0
        while egress is None:
            depth += 1
            inner = lookup_route(dev.routes, ipaddress.IPv4Address(next_hop)) if depth <= 4 else None
            if inner is None:
                down = self._down_interface_toward(dev, ipaddress.IPv4Address(next_hop))
                if down:
                    return None, None, REASON_LINK_DOWN, f"{down} is down"
                return None, None, REASON_NO_ROUTE, f"next hop {next_hop} is unresolved"
            egress = inner.interface
            if inner.next_hop:
                next_hop = inner.next_hop

        itf = dev.interfaces.get(egress)
        if itf is None or not itf.oper_up:
            return None, None, REASON_LINK_DOWN, f"{egress} is down"
        return egress, next_hop or str(dst), "", ""

    def _acl_permits(self, dev: DeviceState, ifname: str, direction: str, src_ip: str, dst_ip: str) -> Tuple[bool, Optional[str]]:
        itf = dev.interfaces.get(ifname)
        if itf is None:
            return True, None
        name = itf.acl_in if direction == "in" else itf.acl_out
        if not name:
            return True, None
        acl = dev.acls.get(name)
        if acl is None:
            return True, name
        return acl.permits("icmp", src_ip, dst_ip), name

    def trace(self, src_id: str, dst_ip: str, source_interface: Optional[str] = None) -> PingReport:
        """Follow an ICMP echo hop by hop. Read-only: no counters advance."""
        dst = ipaddress.IPv4Address(dst_ip)
        target = str(dst)
        src_ip: Optional[str] = None
        if source_interface:
            src_ip = self.device(src_id).interfaces[source_interface].ip

        hops = [PingHop(hop=1, device=src_id)]

        def failed(hop: int, device: str, reason: str, detail: str) -> PingReport:
            return PingReport(
                target=target,
                source=src_ip,
                success=False,
                hops=hops,
                failure=PingFailure(hop=hop, device=device, reason=reason, detail=detail),
            )

        cur = src_id
        for hop in range(1, MAX_PING_HOPS + 1):
            dev = self.devices[cur]
            if dev.owns_ip(target):
                return PingReport(target=target, source=src_ip or target, success=True, hops=hops)
            if hop > 1 and not dev.ip_routing:
                return failed(hop, cur, REASON_NO_ROUTE, f"{dev.hostname} does not route")

            egress, next_hop, reason, detail = self._forwarding_decision(dev, dst)
            if egress is None:
                return failed(hop, cur, reason, detail)
            if src_ip is None:
                src_ip = dev.interfaces[egress].ip or "0.0.0.0"

            ok, acl = self._acl_permits(dev, egress, "out", src_ip, target)
            if not ok:
                return failed(hop, cur, REASON_ACL_DENY, f"denied by access list {acl} out on {egress}")

            endpoints, blocked = self.l2_domain(cur, egress)
            arrival = next(((d, i) for d, i in endpoints if self.devices[d].interfaces[i].ip == next_hop), None)
            if arrival is None:
                reason = REASON_LINK_DOWN if blocked else REASON_HOST_UNREACHABLE
                return failed(hop, cur, reason, f"{next_hop} not reachable out {egress}")

            nxt, ingress = arrival
            hops.append(PingHop(hop=hop + 1, device=nxt, interface=ingress, address=self.devices[nxt].interfaces[ingress].ip))
            ok, acl = self._acl_permits(self.devices[nxt], ingress, "in", src_ip, target)
            if not ok:
                return failed(hop + 1, nxt, REASON_ACL_DENY, f"denied by access list {acl} in on {ingress}")
            cur = nxt

        return failed(len(hops), cur, REASON_TTL_EXCEEDED, f"more than {MAX_PING_HOPS} hops")

    # ───────────────────────────── Neighbors ─────────────────────────────

    def cdp_neighbors(self, device_id: str) -> List[Tuple[str, DeviceState, str]]:
        """(local port, neighbor device, neighbor port) over up links."""
        out = []
        for link in self.links:
            if not link.up:
                continue
            for end in link.ends():
                if end.device != device_id:
                    continue
                peer = link.other(end.device, end.port)
                peer_dev = self.devices[peer.device]
                if peer_dev.device_type != "pc":
                    out.append((end.port, peer_dev, peer.port))
        return out

    # ───────────────────────────── Invariants ─────────────────────────────

    def verify(self) -> None:
        seen: Set[Tuple[str, str]] = set()
        for link in self.links:
            for end in link.ends():
                dev = self.devices.get(end.device)
                if dev is None or end.port not in dev.interfaces:
                    raise PropagationError(f"link {link.link_id} references unknown endpoint {end.device}:{end.port}")
                if (end.device, end.port) in seen:
                    raise PropagationError(f"port {end.device}:{end.port} appears in more than one link")
                seen.add((end.device, end.port))
            both_admin = self._interface(link.a).admin_up and self._interface(link.b).admin_up
            if link.up != both_admin:
                raise PropagationError(f"link {link.link_id} is {'up' if link.up else 'down'} against endpoint admin state")
        for dev in self.devices.values():
            for itf in dev.interfaces.values():
                if itf.oper_up and not itf.admin_up:
                    raise PropagationError(f"{dev.device_id} {itf.name} is operationally up while shut down")


# ───────────────────────────── Value API ─────────────────────────────


def add_device(topology: Topology, device_id: str, device_type: str, hostname: Optional[str] = None) -> Topology:
    device_id = (device_id or "").strip()
    if not device_id:
        raise ValueError("Device id must not be empty")
    if device_id in topology.devices:
        raise ValueError(f"Device already exists: {device_id}")
    topo = copy.deepcopy(topology)
    topo.devices[device_id] = new_device(device_type, hostname or device_id, device_id=device_id)
    topo.verify()
    return topo


def remove_device(topology: Topology, device_id: str) -> Topology:
    topo = copy.deepcopy(topology)
    topo.device(device_id)
    peers: List[Tuple[str, str]] = []
    kept: List[Link] = []
    for link in topo.links:
        if link.touches(device_id):
            peers.extend((e.device, e.port) for e in link.ends() if e.device != device_id)
        else:
            kept.append(link)
    topo.links = kept
    del topo.devices[device_id]
    topo.propagate_ports(peers, routing_changed=True)
    return topo


def connect_ports(topology: Topology, device_a: str, port_a: str, device_b: str, port_b: str) -> Topology:
    topo = copy.deepcopy(topology)
    pa = topo.physical_port(device_a, port_a)
    pb = topo.physical_port(device_b, port_b)
    if (device_a, pa) == (device_b, pb):
        raise ValueError("Cannot connect a port to itself")
    for dev_id, port in ((device_a, pa), (device_b, pb)):
        if topo.link_for(dev_id, port) is not None:
            raise ValueError(f"{dev_id} {port} is already connected")
    link = Link(link_id=f"L{topo.next_link_id}", a=LinkEnd(device_a, pa), b=LinkEnd(device_b, pb))
    topo.next_link_id += 1
    topo.links.append(link)
    topo.propagate_ports([(device_a, pa), (device_b, pb)])
    return topo


def disconnect_ports(topology: Topology, device_id: str, port: str) -> Topology:
    topo = copy.deepcopy(topology)
    name = topo.physical_port(device_id, port)
    link = topo.link_for(device_id, name)
    if link is None:
        raise ValueError(f"{device_id} {name} is not connected")
    topo.links.remove(link)
    link.up = False
    topo.propagate_ports([(e.device, e.port) for e in link.ends()])
    return topo
