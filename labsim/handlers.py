"""Command handlers.

Every :class:`~labsim.grammar.Handler` member maps to exactly one function in
``HANDLERS``. A handler edits only the active device's state and reports what
it touched in a :class:`TopologyPatch`; the engine folds the patch into the
topology afterwards.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional, Set
import copy
import ipaddress
import re

from . import show
from .core import PingReport, Topology
from .errors import CLIError, ErrorKind, INCOMPLETE_COMMAND, PropagationError, SemanticError
from .grammar import Handler
from .state import (
    ACLRule,
    AccessList,
    DeviceState,
    DhcpPool,
    Interface,
    LineConfig,
    Mode,
    NatDynamic,
    NatPool,
    NatStatic,
    OspfConfig,
    OspfNetwork,
    PortSecurity,
    RipConfig,
    Route,
    insert_route,
    interface_kind,
    mac_from_text,
    split_subinterface,
)


@dataclass
class TopologyPatch:
    interfaces: Set[str] = field(default_factory=set)
    routing_changed: bool = False
    close_session: bool = False

    def touch(self, *ifnames: str) -> "TopologyPatch":
        self.interfaces.update(ifnames)
        return self


@dataclass
class HandlerOutcome:
    output: str = ""
    patch: TopologyPatch = field(default_factory=TopologyPatch)
    report: Optional[PingReport] = None


@dataclass
class HandlerContext:
    device: DeviceState
    topology: Topology
    columns: Dict[str, int] = field(default_factory=dict)
    # Runs a line against the current mode grammar; used by `do`.
    run_line: Optional[Callable[[str, int], HandlerOutcome]] = None


HandlerFn = Callable[[HandlerContext, Dict[str, Any]], HandlerOutcome]

HANDLERS: Dict[Handler, HandlerFn] = {}


def handles(*handler_ids: Handler):
    def register(fn: HandlerFn) -> HandlerFn:
        for hid in handler_ids:
            if hid in HANDLERS:
                raise RuntimeError(f"duplicate handler registered for {hid}")
            HANDLERS[hid] = fn
        return fn

    return register


def _done(output: str = "", *touched: str, routing: bool = False) -> HandlerOutcome:
    return HandlerOutcome(output=output, patch=TopologyPatch(interfaces=set(touched), routing_changed=routing))


def _require_type(dev: DeviceState, *types: str) -> None:
    if dev.device_type in types:
        return
    if types == ("switch",):
        raise SemanticError("% Command only valid on switches")
    raise SemanticError("% Command only valid on routers")


def _current_interface(ctx: HandlerContext) -> Interface:
    name = ctx.device.context.interface
    if name is None or name not in ctx.device.interfaces:
        raise PropagationError(f"interface mode without a valid interface context: {name!r}")
    return ctx.device.interfaces[name]


# ───────────────────────────── EXEC ─────────────────────────────


@handles(Handler.ENABLE)
def _enable(ctx: HandlerContext, args) -> HandlerOutcome:
    ctx.device.mode = Mode.PRIVILEGED
    return _done()


@handles(Handler.DISABLE)
def _disable(ctx: HandlerContext, args) -> HandlerOutcome:
    ctx.device.mode = Mode.USER
    ctx.device.mode_stack.clear()
    return _done()


@handles(Handler.EXIT)
def _exit(ctx: HandlerContext, args) -> HandlerOutcome:
    if ctx.device.device_type == "pc":
        close = True
    else:
        close = ctx.device.exit_mode()
    outcome = _done()
    outcome.patch.close_session = close
    return outcome


@handles(Handler.END)
def _end(ctx: HandlerContext, args) -> HandlerOutcome:
    ctx.device.end_config()
    return _done()


@handles(Handler.DO)
def _do(ctx: HandlerContext, args) -> HandlerOutcome:
    dev = ctx.device
    saved_mode = dev.mode
    saved_stack = list(dev.mode_stack.items)
    saved_context = copy.copy(dev.context)
    dev.mode = Mode.PRIVILEGED
    try:
        outcome = ctx.run_line(args["command"], ctx.columns.get("command", 0))
    finally:
        dev.mode = saved_mode
        dev.mode_stack.items = saved_stack
        dev.context = saved_context
    # The caller stays in its configuration mode.
    outcome.patch.close_session = False
    return outcome


@handles(Handler.CONFIGURE_TERMINAL)
def _configure_terminal(ctx: HandlerContext, args) -> HandlerOutcome:
    ctx.device.enter_mode(Mode.GLOBAL_CONFIG)
    return _done("Enter configuration commands, one per line.  End with CNTL/Z.")


@handles(Handler.COPY_RUN_START)
def _copy_run_start(ctx: HandlerContext, args) -> HandlerOutcome:
    ctx.device.startup_config = show.running_config(ctx.device)
    return _done("Building configuration...\n[OK]")


def _ping_target(ctx: HandlerContext, args) -> str:
    target = ctx.topology.resolve_target(args["target"])
    if target is None:
        raise SemanticError("% Unrecognized host or address, or protocol not running.")
    return target


@handles(Handler.PING)
def _ping(ctx: HandlerContext, args) -> HandlerOutcome:
    target = _ping_target(ctx, args)
    source = args.get("source")
    if source is not None:
        itf = ctx.device.interfaces.get(source)
        if itf is None or not itf.has_ip():
            raise SemanticError("% Invalid source interface - IP not enabled or interface is down")
    report = ctx.topology.trace(ctx.device.device_id, target, source_interface=source)
    outcome = _done(show.ping_output(report, host=ctx.device.device_type == "pc"))
    outcome.report = report
    return outcome


@handles(Handler.TRACEROUTE)
def _traceroute(ctx: HandlerContext, args) -> HandlerOutcome:
    target = _ping_target(ctx, args)
    report = ctx.topology.trace(ctx.device.device_id, target)
    outcome = _done(show.traceroute_output(report, host=ctx.device.device_type == "pc"))
    outcome.report = report
    return outcome


# ───────────────────────────── show ─────────────────────────────


_SHOW_DEVICE: Dict[Handler, Callable[[DeviceState], str]] = {
    Handler.SHOW_RUNNING_CONFIG: show.running_config,
    Handler.SHOW_STARTUP_CONFIG: show.startup_config,
    Handler.SHOW_VERSION: show.version,
    Handler.SHOW_IP_INTERFACE_BRIEF: show.ip_interface_brief,
    Handler.SHOW_IP_ROUTE: show.ip_route,
    Handler.SHOW_IP_PROTOCOLS: show.ip_protocols,
    Handler.SHOW_IP_OSPF_NEIGHBOR: show.ip_ospf_neighbor,
    Handler.SHOW_IP_NAT_TRANSLATIONS: show.ip_nat_translations,
    Handler.SHOW_IP_DHCP_POOL: show.ip_dhcp_pool,
    Handler.SHOW_ACCESS_LISTS: show.access_lists,
}

_SHOW_SWITCH: Dict[Handler, Callable[[DeviceState], str]] = {
    Handler.SHOW_VLAN_BRIEF: show.vlan_brief,
    Handler.SHOW_INTERFACES_TRUNK: show.interfaces_trunk,
    Handler.SHOW_INTERFACES_STATUS: show.interfaces_status,
}


def _show_handler(hid: Handler, render: Callable[[DeviceState], str], switch_only: bool):
    @handles(hid)
    def _show(ctx: HandlerContext, args) -> HandlerOutcome:
        if switch_only:
            _require_type(ctx.device, "switch")
        return _done(render(ctx.device))

    return _show


for _hid, _render in _SHOW_DEVICE.items():
    _show_handler(_hid, _render, switch_only=False)
for _hid, _render in _SHOW_SWITCH.items():
    _show_handler(_hid, _render, switch_only=True)


@handles(Handler.SHOW_ETHERCHANNEL_SUMMARY)
def _show_etherchannel(ctx: HandlerContext, args) -> HandlerOutcome:
    return _done(show.etherchannel_summary(ctx.device))


@handles(Handler.SHOW_PORT_SECURITY)
def _show_port_security(ctx: HandlerContext, args) -> HandlerOutcome:
    _require_type(ctx.device, "switch")
    ifname = args.get("interface")
    if ifname is not None and ifname not in ctx.device.interfaces:
        raise SemanticError(f"% Interface {ifname} does not exist")
    return _done(show.port_security(ctx.device, ifname))


@handles(Handler.SHOW_CDP_NEIGHBORS)
def _show_cdp(ctx: HandlerContext, args) -> HandlerOutcome:
    return _done(show.cdp_neighbors(ctx.topology, ctx.device))


# ───────────────────────────── Global config ─────────────────────────────


_HOSTNAME_RE = re.compile(r"^[A-Za-z]([A-Za-z0-9-]{0,61}[A-Za-z0-9])?$")


@handles(Handler.HOSTNAME)
def _hostname(ctx: HandlerContext, args) -> HandlerOutcome:
    name = args["hostname"]
    if not _HOSTNAME_RE.match(name):
        raise SemanticError("% Hostname contains one or more illegal characters.")
    ctx.device.hostname = name
    return _done()


@handles(Handler.ENABLE_SECRET)
def _enable_secret(ctx: HandlerContext, args) -> HandlerOutcome:
    ctx.device.enable_secret = args["secret"]
    return _done()


@handles(Handler.BANNER_MOTD)
def _banner_motd(ctx: HandlerContext, args) -> HandlerOutcome:
    text = args["text"]
    # IOS wraps the banner in a delimiter character, e.g. "#Authorized only#".
    if len(text) >= 2 and text[0] == text[-1] and not text[0].isalnum():
        text = text[1:-1]
    ctx.device.banner_motd = text
    return _done()


@handles(Handler.DOMAIN_NAME)
def _domain_name(ctx: HandlerContext, args) -> HandlerOutcome:
    ctx.device.domain_name = args["domain"]
    return _done()


@handles(Handler.NO_DOMAIN_LOOKUP)
def _no_domain_lookup(ctx: HandlerContext, args) -> HandlerOutcome:
    ctx.device.domain_lookup = False
    return _done()


@handles(Handler.IP_ROUTING)
def _ip_routing(ctx: HandlerContext, args) -> HandlerOutcome:
    ctx.device.ip_routing = True
    return _done(routing=True)


def _route_prefix(args) -> ipaddress.IPv4Network:
    try:
        return ipaddress.IPv4Network(f"{args['network']}/{args['mask']}")
    except ValueError as e:
        raise SemanticError("%Inconsistent address and mask") from e


def _static_route(args) -> Route:
    net = _route_prefix(args)
    target = args["next_hop"]
    try:
        next_hop: Optional[str] = str(ipaddress.IPv4Address(target))
        interface = None
    except ValueError:
        next_hop, interface = None, target
    return Route(
        network=str(net.network_address),
        mask=str(net.netmask),
        source="static",
        distance=args.get("distance", 1),
        next_hop=next_hop,
        interface=interface,
    )


def _same_static(a: Route, b: Route) -> bool:
    return (a.source, a.network, a.mask, a.next_hop, a.interface) == (b.source, b.network, b.mask, b.next_hop, b.interface)


@handles(Handler.IP_ROUTE)
def _ip_route(ctx: HandlerContext, args) -> HandlerOutcome:
    route = _static_route(args)
    if route.next_hop and ctx.device.owns_ip(route.next_hop, operational=False):
        raise SemanticError("%Invalid next hop address (it's this router)")
    ctx.device.routes = [r for r in ctx.device.routes if not _same_static(r, route)]
    insert_route(ctx.device.routes, route)
    return _done()


@handles(Handler.NO_IP_ROUTE)
def _no_ip_route(ctx: HandlerContext, args) -> HandlerOutcome:
    route = _static_route(args)
    kept = [r for r in ctx.device.routes if not _same_static(r, route)]
    if len(kept) == len(ctx.device.routes):
        raise SemanticError("%No matching route to delete")
    ctx.device.routes = kept
    return _done()


@handles(Handler.INTERFACE)
def _interface(ctx: HandlerContext, args) -> HandlerOutcome:
    dev = ctx.device
    name = args["interface"]
    touched = []
    if name not in dev.interfaces:
        mode = "access" if dev.device_type == "switch" and interface_kind(name) == "port-channel" else "routed"
        dev.interfaces[name] = Interface(name=name, admin_up=True, mode=mode, mac=mac_from_text(f"{dev.device_id}:{name}"))
        touched.append(name)
    dev.enter_mode(Mode.INTERFACE_CONFIG, interface=name)
    return _done("", *touched)


@handles(Handler.ROUTER_OSPF)
def _router_ospf(ctx: HandlerContext, args) -> HandlerOutcome:
    dev = ctx.device
    _require_type(dev, "router")
    pid = args["process"]
    if dev.ospf is not None and dev.ospf.process_id != pid:
        raise SemanticError(f"% OSPF process {dev.ospf.process_id} is already configured")
    if dev.ospf is None:
        dev.ospf = OspfConfig(process_id=pid)
    dev.enter_mode(Mode.ROUTER_CONFIG, router="ospf")
    return _done(routing=True)


@handles(Handler.ROUTER_RIP)
def _router_rip(ctx: HandlerContext, args) -> HandlerOutcome:
    dev = ctx.device
    _require_type(dev, "router")
    if dev.rip is None:
        dev.rip = RipConfig()
    dev.enter_mode(Mode.ROUTER_CONFIG, router="rip")
    return _done()


@handles(Handler.NO_ROUTER_OSPF)
def _no_router_ospf(ctx: HandlerContext, args) -> HandlerOutcome:
    dev = ctx.device
    if dev.ospf is None or dev.ospf.process_id != args["process"]:
        raise SemanticError(f"%OSPF: Process {args['process']} is not configured")
    dev.ospf = None
    return _done(routing=True)


@handles(Handler.NO_ROUTER_RIP)
def _no_router_rip(ctx: HandlerContext, args) -> HandlerOutcome:
    ctx.device.rip = None
    return _done()


@handles(Handler.LINE)
def _line(ctx: HandlerContext, args) -> HandlerOutcome:
    first = args["first"]
    if args["line_type"] == "console":
        name = f"con {first}"
    elif "last" in args:
        if args["last"] < first:
            raise SemanticError("% Invalid line range")
        name = f"vty {first} {args['last']}"
    else:
        name = f"vty {first}"
    ctx.device.lines.setdefault(name, LineConfig(name=name))
    ctx.device.enter_mode(Mode.LINE_CONFIG, line=name)
    return _done()


@handles(Handler.VLAN)
def _vlan(ctx: HandlerContext, args) -> HandlerOutcome:
    dev = ctx.device
    _require_type(dev, "switch")
    dev.ensure_vlan(args["vlan"])
    dev.enter_mode(Mode.VLAN_CONFIG, vlan=args["vlan"])
    return _done()


@handles(Handler.NO_VLAN)
def _no_vlan(ctx: HandlerContext, args) -> HandlerOutcome:
    dev = ctx.device
    _require_type(dev, "switch")
    vlan = args["vlan"]
    if vlan == 1:
        raise SemanticError("%Default VLAN 1 may not be deleted.")
    if vlan not in dev.vlans:
        raise SemanticError(f"% VLAN {vlan} does not exist")
    users = [i.name for i in dev.sorted_interfaces() if i.mode == "access" and i.access_vlan == vlan]
    if users:
        raise SemanticError(f"% VLAN {vlan} is in use by {', '.join(users)}")
    del dev.vlans[vlan]
    return _done()


@handles(Handler.ACCESS_LIST_NAMED)
def _access_list_named(ctx: HandlerContext, args) -> HandlerOutcome:
    dev = ctx.device
    name, kind = args["name"], args["acl_kind"]
    existing = dev.acls.get(name)
    if existing is not None and existing.kind != kind:
        raise SemanticError(f"% A named {existing.kind} IP access list with this name already exists")
    dev.acls.setdefault(name, AccessList(name=name, kind=kind))
    dev.enter_mode(Mode.ACL_CONFIG, acl=name)
    return _done()


def _acl_rule(args) -> ACLRule:
    def endpoint(prefix: str):
        addr = args.get(prefix)
        if addr in (None, "any"):
            return "0.0.0.0", "255.255.255.255"
        return addr, args.get(f"{prefix}_wildcard", "0.0.0.0")

    src, src_wc = endpoint("src")
    dst, dst_wc = endpoint("dst")
    return ACLRule(
        action=args["action"],
        source=src,
        source_wildcard=src_wc,
        protocol=args.get("protocol", "ip"),
        destination=dst,
        destination_wildcard=dst_wc,
    )


def _append_rule(acl: AccessList, args) -> None:
    if acl.kind == "standard" and "protocol" in args:
        raise SemanticError("% Standard access lists match on source address only")
    if acl.kind == "extended" and "protocol" not in args:
        raise SemanticError("% Extended access lists require a protocol")
    rule = _acl_rule(args)
    if rule not in acl.rules:
        acl.rules.append(rule)


@handles(Handler.ACCESS_LIST_NUMBERED)
def _access_list_numbered(ctx: HandlerContext, args) -> HandlerOutcome:
    number = args["number"]
    kind = "standard" if number < 100 else "extended"
    acl = ctx.device.acls.setdefault(str(number), AccessList(name=str(number), kind=kind))
    _append_rule(acl, args)
    return _done()


@handles(Handler.NO_ACCESS_LIST)
def _no_access_list(ctx: HandlerContext, args) -> HandlerOutcome:
    name = args["name"] if "name" in args else str(args["number"])
    ctx.device.acls.pop(name, None)
    return _done()


@handles(Handler.DHCP_POOL)
def _dhcp_pool(ctx: HandlerContext, args) -> HandlerOutcome:
    name = args["pool"]
    ctx.device.dhcp_pools.setdefault(name, DhcpPool(name=name))
    ctx.device.enter_mode(Mode.DHCP_CONFIG, dhcp_pool=name)
    return _done()


@handles(Handler.DHCP_EXCLUDED)
def _dhcp_excluded(ctx: HandlerContext, args) -> HandlerOutcome:
    low = args["low"]
    high = args.get("high", low)
    if ipaddress.IPv4Address(high) < ipaddress.IPv4Address(low):
        raise SemanticError("% Invalid address range")
    if (low, high) not in ctx.device.dhcp_excluded:
        ctx.device.dhcp_excluded.append((low, high))
    return _done()


@handles(Handler.NAT_STATIC)
def _nat_static(ctx: HandlerContext, args) -> HandlerOutcome:
    nat = ctx.device.nat
    entry = NatStatic(local=args["local"], global_address=args["global"])
    for st in nat.static:
        if st.local == entry.local and st != entry:
            raise SemanticError(f"% {entry.local} already mapped ({st.local} -> {st.global_address})")
    if entry not in nat.static:
        nat.static.append(entry)
    return _done()


@handles(Handler.NAT_DYNAMIC)
def _nat_dynamic(ctx: HandlerContext, args) -> HandlerOutcome:
    nat = ctx.device.nat
    if "pool" in args and args["pool"] not in nat.pools:
        raise SemanticError(f"%Pool {args['pool']} not found")
    entry = NatDynamic(acl=args["acl"], interface=args.get("interface"), pool=args.get("pool"), overload="overload" in args)
    nat.dynamic = [d for d in nat.dynamic if d.acl != entry.acl] + [entry]
    return _done()


@handles(Handler.NAT_POOL)
def _nat_pool(ctx: HandlerContext, args) -> HandlerOutcome:
    if ipaddress.IPv4Address(args["end"]) < ipaddress.IPv4Address(args["start"]):
        raise SemanticError("%End address less than start address")
    pool = NatPool(name=args["pool"], start=args["start"], end=args["end"], netmask=args["netmask"])
    ctx.device.nat.pools[pool.name] = pool
    return _done()


@handles(Handler.STP_MODE)
def _stp_mode(ctx: HandlerContext, args) -> HandlerOutcome:
    _require_type(ctx.device, "switch")
    ctx.device.stp.mode = args["stp_mode"]
    return _done()


@handles(Handler.STP_VLAN_PRIORITY)
def _stp_vlan_priority(ctx: HandlerContext, args) -> HandlerOutcome:
    _require_type(ctx.device, "switch")
    priority = args["priority"]
    if priority % 4096:
        raise SemanticError("% Bridge Priority must be in increments of 4096.")
    ctx.device.stp.vlan_priority[args["vlan"]] = priority
    return _done()


# ───────────────────────────── Interface config ─────────────────────────────


@handles(Handler.DESCRIPTION)
def _description(ctx: HandlerContext, args) -> HandlerOutcome:
    _current_interface(ctx).description = args["text"]
    return _done()


@handles(Handler.NO_DESCRIPTION)
def _no_description(ctx: HandlerContext, args) -> HandlerOutcome:
    _current_interface(ctx).description = None
    return _done()


@handles(Handler.SHUTDOWN)
def _shutdown(ctx: HandlerContext, args) -> HandlerOutcome:
    itf = _current_interface(ctx)
    itf.admin_up = False
    return _done("", itf.name)


@handles(Handler.NO_SHUTDOWN)
def _no_shutdown(ctx: HandlerContext, args) -> HandlerOutcome:
    itf = _current_interface(ctx)
    itf.admin_up = True
    return _done("", itf.name)


@handles(Handler.IP_ADDRESS)
def _ip_address(ctx: HandlerContext, args) -> HandlerOutcome:
    dev = ctx.device
    itf = _current_interface(ctx)
    if dev.device_type == "switch" and interface_kind(itf.name) in ("physical", "port-channel"):
        raise SemanticError("% IP addresses may not be configured on L2 links.")
    if interface_kind(itf.name) == "subinterface" and itf.dot1q_vlan is None:
        raise SemanticError(
            "% Configuring IP routing on a LAN subinterface is only allowed if that "
            "subinterface is already configured as part of an IEEE 802.10, IEEE 802.1Q, or ISL vLAN."
        )
    ipi = ipaddress.IPv4Interface(f"{args['ip']}/{args['mask']}")
    net = ipi.network
    if net.prefixlen < 31 and ipi.ip in (net.network_address, net.broadcast_address):
        raise SemanticError(f"Bad mask /{net.prefixlen} for address {ipi.ip}")
    for other in dev.sorted_interfaces():
        if other.name == itf.name or not other.has_ip():
            continue
        if other.ip_interface().network.overlaps(net):
            raise SemanticError(f"% {net.network_address} overlaps with {other.name}")
    itf.ip, itf.mask = str(ipi.ip), str(net.netmask)
    return _done("", itf.name, routing=True)


@handles(Handler.NO_IP_ADDRESS)
def _no_ip_address(ctx: HandlerContext, args) -> HandlerOutcome:
    itf = _current_interface(ctx)
    if "ip" in args and (args["ip"], args["mask"]) != (itf.ip, itf.mask):
        raise SemanticError("% Address not found on this interface")
    itf.ip = None
    itf.mask = None
    return _done("", itf.name, routing=True)


@handles(Handler.ACCESS_GROUP)
def _access_group(ctx: HandlerContext, args) -> HandlerOutcome:
    itf = _current_interface(ctx)
    if args["acl"] not in ctx.device.acls:
        raise SemanticError("% Access list not found")
    if args["direction"] == "in":
        itf.acl_in = args["acl"]
    else:
        itf.acl_out = args["acl"]
    return _done()


@handles(Handler.NO_ACCESS_GROUP)
def _no_access_group(ctx: HandlerContext, args) -> HandlerOutcome:
    itf = _current_interface(ctx)
    if args["direction"] == "in" and itf.acl_in == args["acl"]:
        itf.acl_in = None
    if args["direction"] == "out" and itf.acl_out == args["acl"]:
        itf.acl_out = None
    return _done()


@handles(Handler.NAT_DIRECTION)
def _nat_direction(ctx: HandlerContext, args) -> HandlerOutcome:
    _current_interface(ctx).nat = args["nat"]
    return _done()


@handles(Handler.NO_NAT_DIRECTION)
def _no_nat_direction(ctx: HandlerContext, args) -> HandlerOutcome:
    itf = _current_interface(ctx)
    if itf.nat == args["nat"]:
        itf.nat = None
    return _done()


def _switchport(ctx: HandlerContext) -> Interface:
    _require_type(ctx.device, "switch")
    itf = _current_interface(ctx)
    if interface_kind(itf.name) not in ("physical", "port-channel"):
        raise SemanticError(f"% {itf.name} is not a switch port")
    return itf


@handles(Handler.SWITCHPORT_MODE)
def _switchport_mode(ctx: HandlerContext, args) -> HandlerOutcome:
    itf = _switchport(ctx)
    itf.mode = args["mode"]
    return _done("", itf.name)


@handles(Handler.SWITCHPORT_ACCESS_VLAN)
def _switchport_access_vlan(ctx: HandlerContext, args) -> HandlerOutcome:
    itf = _switchport(ctx)
    vlan = args["vlan"]
    output = ""
    if ctx.device.ensure_vlan(vlan):
        output = f"% Access VLAN does not exist. Creating vlan {vlan}"
    itf.access_vlan = vlan
    return _done(output, itf.name)


@handles(Handler.TRUNK_ALLOWED)
def _trunk_allowed(ctx: HandlerContext, args) -> HandlerOutcome:
    itf = _switchport(ctx)
    op = args.get("op")
    vlans = set(args.get("vlans", []))
    everything = set(range(1, 4095))
    current = everything if itf.trunk_vlans is None else set(itf.trunk_vlans)
    if op == "all":
        allowed = everything
    elif op == "none":
        allowed = set()
    elif op == "add":
        allowed = current | vlans
    elif op == "remove":
        allowed = current - vlans
    elif op == "except":
        allowed = everything - vlans
    else:
        allowed = vlans
    itf.trunk_vlans = None if allowed == everything else allowed
    return _done("", itf.name)


@handles(Handler.TRUNK_NATIVE)
def _trunk_native(ctx: HandlerContext, args) -> HandlerOutcome:
    itf = _switchport(ctx)
    itf.native_vlan = args["vlan"]
    return _done("", itf.name)


@handles(Handler.PORT_SECURITY)
def _port_security(ctx: HandlerContext, args) -> HandlerOutcome:
    itf = _switchport(ctx)
    if itf.mode == "trunk":
        raise SemanticError(f"Command rejected: {itf.name} is a trunk port.")
    ps = itf.port_security
    if "maximum" in args:
        if args["maximum"] < len(ps.mac_addresses):
            raise SemanticError("% Maximum is less than number of currently secured mac-addresses")
        ps.maximum = args["maximum"]
    elif "violation" in args:
        ps.violation = args["violation"]
    elif "sticky" in args:
        ps.sticky = True
    elif "mac" in args:
        if args["mac"] not in ps.mac_addresses:
            if len(ps.mac_addresses) >= ps.maximum:
                raise SemanticError(f"% Total secure mac-addresses on interface {itf.name} has reached maximum limit.")
            ps.mac_addresses.append(args["mac"])
    else:
        ps.enabled = True
    return _done()


@handles(Handler.NO_PORT_SECURITY)
def _no_port_security(ctx: HandlerContext, args) -> HandlerOutcome:
    _switchport(ctx).port_security = PortSecurity()
    return _done()


@handles(Handler.ENCAPSULATION)
def _encapsulation(ctx: HandlerContext, args) -> HandlerOutcome:
    itf = _current_interface(ctx)
    if interface_kind(itf.name) != "subinterface":
        raise SemanticError("% Encapsulation dot1Q is only supported on subinterfaces")
    parent, _sub = split_subinterface(itf.name)
    for other in ctx.device.interfaces.values():
        if other.name != itf.name and split_subinterface(other.name)[0] == parent and other.dot1q_vlan == args["vlan"]:
            raise SemanticError(f"Configuration of multiple subinterfaces of the same main interface with the same VID ({args['vlan']}) is not permitted.")
    itf.dot1q_vlan = args["vlan"]
    return _done("", itf.name)


_CHANNEL_PROTOCOL = {"active": "lacp", "passive": "lacp", "desirable": "pagp", "auto": "pagp", "on": "on"}


@handles(Handler.CHANNEL_GROUP)
def _channel_group(ctx: HandlerContext, args) -> HandlerOutcome:
    dev = ctx.device
    itf = _current_interface(ctx)
    if interface_kind(itf.name) != "physical":
        raise SemanticError(f"% {itf.name} cannot join a channel group")
    group, mode = args["group"], args["channel_mode"]
    for other in dev.sorted_interfaces():
        if other.name != itf.name and other.channel_group == group and _CHANNEL_PROTOCOL[other.channel_mode] != _CHANNEL_PROTOCOL[mode]:
            raise SemanticError(
                f"Command rejected (Channel protocol mismatch for interface {itf.name} in group {group}): "
                "the interface can not be added to the channel group"
            )
    output = ""
    po_name = f"Port-channel{group}"
    if po_name not in dev.interfaces:
        dev.interfaces[po_name] = Interface(
            name=po_name,
            admin_up=True,
            mode=itf.mode,
            access_vlan=itf.access_vlan,
            mac=mac_from_text(f"{dev.device_id}:{po_name}"),
        )
        output = f"Creating a port-channel interface Port-channel {group}"
    itf.channel_group, itf.channel_mode = group, mode
    return _done(output, itf.name, po_name)


@handles(Handler.NO_CHANNEL_GROUP)
def _no_channel_group(ctx: HandlerContext, args) -> HandlerOutcome:
    itf = _current_interface(ctx)
    group = itf.channel_group
    itf.channel_group, itf.channel_mode = None, None
    touched = [itf.name] + ([f"Port-channel{group}"] if f"Port-channel{group}" in ctx.device.interfaces else [])
    return _done("", *touched)


@handles(Handler.PORTFAST)
def _portfast(ctx: HandlerContext, args) -> HandlerOutcome:
    itf = _switchport(ctx)
    itf.portfast = True
    if itf.mode == "trunk":
        return _done(
            f"%Warning: portfast should only be enabled on ports connected to a single host.\n"
            f"%Portfast has been configured on {itf.name} but will only have effect when the interface is in a non-trunking mode."
        )
    return _done(
        "%Warning: portfast should only be enabled on ports connected to a single\n"
        " host. Connecting hubs, concentrators, switches, bridges, etc... to this\n"
        " interface  when portfast is enabled, can cause temporary bridging loops.\n"
        " Use with CAUTION"
    )


@handles(Handler.NO_PORTFAST)
def _no_portfast(ctx: HandlerContext, args) -> HandlerOutcome:
    _switchport(ctx).portfast = False
    return _done()


# ───────────────────────────── Router config ─────────────────────────────


def _router_process(ctx: HandlerContext, protocol: str):
    dev = ctx.device
    if ctx.device.context.router != protocol:
        return None
    config = dev.ospf if protocol == "ospf" else dev.rip
    if config is None:
        raise PropagationError(f"router mode for {protocol} without a process")
    return config


def _classful(address: str) -> str:
    first = int(address.split(".")[0])
    prefix = 8 if first < 128 else 16 if first < 192 else 24
    return str(ipaddress.IPv4Network(f"{address}/{prefix}", strict=False).network_address)


@handles(Handler.OSPF_NETWORK)
def _ospf_network(ctx: HandlerContext, args) -> HandlerOutcome:
    ospf = _router_process(ctx, "ospf")
    if ospf is None:
        raise SemanticError("% Command not applicable to router rip")
    entry = OspfNetwork(network=args["network"], wildcard=args["wildcard"], area=args["area"])
    for existing in ospf.networks:
        if (existing.network, existing.wildcard) == (entry.network, entry.wildcard) and existing.area != entry.area:
            raise SemanticError(f"% Network {entry.network} {entry.wildcard} is already configured for area {existing.area}")
    if entry not in ospf.networks:
        ospf.networks.append(entry)
    return _done(routing=True)


@handles(Handler.RIP_NETWORK)
def _rip_network(ctx: HandlerContext, args) -> HandlerOutcome:
    rip = _router_process(ctx, "rip")
    if rip is None:
        # OSPF expects a wildcard and area after the address.
        raise CLIError(INCOMPLETE_COMMAND, kind=ErrorKind.INCOMPLETE)
    network = _classful(args["network"])
    if network not in rip.networks:
        rip.networks.append(network)
    return _done()


@handles(Handler.NO_NETWORK)
def _no_network(ctx: HandlerContext, args) -> HandlerOutcome:
    dev = ctx.device
    if dev.context.router == "ospf":
        ospf = _router_process(ctx, "ospf")
        if "area" not in args:
            raise CLIError(INCOMPLETE_COMMAND, kind=ErrorKind.INCOMPLETE)
        entry = OspfNetwork(network=args["network"], wildcard=args["wildcard"], area=args["area"])
        if entry not in ospf.networks:
            raise SemanticError("% Network not configured")
        ospf.networks.remove(entry)
        return _done(routing=True)
    rip = _router_process(ctx, "rip")
    network = _classful(args["network"])
    if network in rip.networks:
        rip.networks.remove(network)
    return _done()


@handles(Handler.ROUTER_ID)
def _router_id(ctx: HandlerContext, args) -> HandlerOutcome:
    ospf = _router_process(ctx, "ospf")
    if ospf is None:
        raise SemanticError("% Command not applicable to router rip")
    ospf.router_id = args["router_id"]
    return _done(routing=True)


@handles(Handler.RIP_VERSION)
def _rip_version(ctx: HandlerContext, args) -> HandlerOutcome:
    rip = _router_process(ctx, "rip")
    if rip is None:
        raise SemanticError("% Command not applicable to router ospf")
    rip.version = args["version"]
    return _done()


@handles(Handler.NO_AUTO_SUMMARY)
def _no_auto_summary(ctx: HandlerContext, args) -> HandlerOutcome:
    rip = _router_process(ctx, "rip")
    if rip is None:
        raise SemanticError("% Command not applicable to router ospf")
    rip.auto_summary = False
    return _done()


@handles(Handler.PASSIVE_INTERFACE)
def _passive_interface(ctx: HandlerContext, args) -> HandlerOutcome:
    name = args["interface"]
    if name not in ctx.device.interfaces:
        raise SemanticError(f"% Interface {name} does not exist")
    process = _router_process(ctx, ctx.device.context.router)
    if name not in process.passive_interfaces:
        process.passive_interfaces.append(name)
    return _done(routing=True)


# ───────────────────────────── Line config ─────────────────────────────


def _current_line(ctx: HandlerContext) -> LineConfig:
    name = ctx.device.context.line
    if name is None or name not in ctx.device.lines:
        raise PropagationError(f"line mode without a valid line context: {name!r}")
    return ctx.device.lines[name]


@handles(Handler.LINE_PASSWORD)
def _line_password(ctx: HandlerContext, args) -> HandlerOutcome:
    _current_line(ctx).password = args["password"]
    return _done()


@handles(Handler.LINE_LOGIN)
def _line_login(ctx: HandlerContext, args) -> HandlerOutcome:
    line = _current_line(ctx)
    if args.get("method") != "local" and not line.password:
        line.login = "login"
        return _done("% Login disabled on line, until 'password' is set")
    line.login = "local" if args.get("method") == "local" else "login"
    return _done()


@handles(Handler.NO_LOGIN)
def _no_login(ctx: HandlerContext, args) -> HandlerOutcome:
    _current_line(ctx).login = None
    return _done()


@handles(Handler.TRANSPORT_INPUT)
def _transport_input(ctx: HandlerContext, args) -> HandlerOutcome:
    line = _current_line(ctx)
    if not line.name.startswith("vty"):
        raise SemanticError("% Transport input is only configurable on vty lines")
    line.transport_input = args["transport"]
    return _done()


@handles(Handler.EXEC_TIMEOUT)
def _exec_timeout(ctx: HandlerContext, args) -> HandlerOutcome:
    _current_line(ctx).exec_timeout = (args["minutes"], args.get("seconds", 0))
    return _done()


@handles(Handler.LOGGING_SYNCHRONOUS)
def _logging_synchronous(ctx: HandlerContext, args) -> HandlerOutcome:
    _current_line(ctx).logging_synchronous = True
    return _done()


# ───────────────────────────── VLAN / ACL / DHCP config ─────────────────────────────


@handles(Handler.VLAN_NAME)
def _vlan_name(ctx: HandlerContext, args) -> HandlerOutcome:
    vlan = ctx.device.context.vlan
    if vlan is None or vlan not in ctx.device.vlans:
        raise PropagationError(f"vlan mode without a valid vlan context: {vlan!r}")
    name = args["name"]
    if len(name) > 32:
        raise SemanticError("% VLAN name must be 32 characters or fewer")
    ctx.device.vlans[vlan] = name
    return _done()


@handles(Handler.ACL_RULE)
def _acl_rule_entry(ctx: HandlerContext, args) -> HandlerOutcome:
    name = ctx.device.context.acl
    if name is None or name not in ctx.device.acls:
        raise PropagationError(f"acl mode without a valid access list context: {name!r}")
    _append_rule(ctx.device.acls[name], args)
    return _done()


def _current_pool(ctx: HandlerContext) -> DhcpPool:
    name = ctx.device.context.dhcp_pool
    if name is None or name not in ctx.device.dhcp_pools:
        raise PropagationError(f"dhcp mode without a valid pool context: {name!r}")
    return ctx.device.dhcp_pools[name]


@handles(Handler.DHCP_NETWORK)
def _dhcp_network(ctx: HandlerContext, args) -> HandlerOutcome:
    pool = _current_pool(ctx)
    net = _route_prefix(args)
    pool.network, pool.mask = str(net.network_address), str(net.netmask)
    return _done()


@handles(Handler.DHCP_DEFAULT_ROUTER)
def _dhcp_default_router(ctx: HandlerContext, args) -> HandlerOutcome:
    _current_pool(ctx).default_router = args["address"]
    return _done()


@handles(Handler.DHCP_DNS_SERVER)
def _dhcp_dns_server(ctx: HandlerContext, args) -> HandlerOutcome:
    pool = _current_pool(ctx)
    if args["address"] not in pool.dns_servers:
        pool.dns_servers.append(args["address"])
    return _done()


@handles(Handler.DHCP_DOMAIN_NAME)
def _dhcp_domain_name(ctx: HandlerContext, args) -> HandlerOutcome:
    _current_pool(ctx).domain_name = args["domain"]
    return _done()


@handles(Handler.DHCP_LEASE)
def _dhcp_lease(ctx: HandlerContext, args) -> HandlerOutcome:
    _current_pool(ctx).lease_days = args["days"]
    return _done()


# ───────────────────────────── End hosts ─────────────────────────────


@handles(Handler.HOST_IP)
def _host_ip(ctx: HandlerContext, args) -> HandlerOutcome:
    dev = ctx.device
    itf = dev.sorted_interfaces()[0]
    ipi = ipaddress.IPv4Interface(f"{args['ip']}/{args['mask']}")
    net = ipi.network
    if net.prefixlen < 31 and ipi.ip in (net.network_address, net.broadcast_address):
        raise SemanticError("Invalid IP address for this subnet.")
    gateway = args.get("gateway")
    if gateway is not None and ipaddress.IPv4Address(gateway) not in net:
        raise SemanticError("Default gateway is not in the same subnet.")

    itf.ip, itf.mask = str(ipi.ip), str(net.netmask)
    itf.admin_up = True
    dev.default_gateway = gateway
    dev.routes = [r for r in dev.routes if not (r.source == "static" and r.prefix.prefixlen == 0)]
    if gateway is not None:
        insert_route(dev.routes, Route(network="0.0.0.0", mask="0.0.0.0", source="static", distance=1, next_hop=gateway))
    return _done("", itf.name)


@handles(Handler.HOST_IPCONFIG)
def _host_ipconfig(ctx: HandlerContext, args) -> HandlerOutcome:
    return _done(show.ipconfig(ctx.device))


_missing = [h.name for h in Handler if h not in HANDLERS]
if _missing:
    raise RuntimeError(f"handlers without an implementation: {', '.join(_missing)}")
