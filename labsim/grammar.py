"""Static command grammar.

One immutable token tree per CLI mode, shared by every device. Leaves carry a
:class:`Handler` member; the handler registry lives in :mod:`labsim.handlers`.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional, Union

from .state import Mode


class ArgKind(str, Enum):
    WORD = "word"
    LINE = "line"
    IPV4 = "ipv4"
    MASK = "mask"
    WILDCARD = "wildcard"
    INTERFACE = "interface"
    INT = "int"
    MAC = "mac"
    NEXT_HOP = "next_hop"
    VLAN_LIST = "vlan_list"


class Handler(Enum):
    # exec
    ENABLE = "enable"
    DISABLE = "disable"
    EXIT = "exit"
    END = "end"
    DO = "do"
    CONFIGURE_TERMINAL = "configure_terminal"
    COPY_RUN_START = "copy_run_start"
    PING = "ping"
    TRACEROUTE = "traceroute"
    SHOW_RUNNING_CONFIG = "show_running_config"
    SHOW_STARTUP_CONFIG = "show_startup_config"
    SHOW_VERSION = "show_version"
    SHOW_IP_INTERFACE_BRIEF = "show_ip_interface_brief"
    SHOW_IP_ROUTE = "show_ip_route"
    SHOW_IP_PROTOCOLS = "show_ip_protocols"
    SHOW_IP_OSPF_NEIGHBOR = "show_ip_ospf_neighbor"
    SHOW_IP_NAT_TRANSLATIONS = "show_ip_nat_translations"
    SHOW_IP_DHCP_POOL = "show_ip_dhcp_pool"
    SHOW_VLAN_BRIEF = "show_vlan_brief"
    SHOW_INTERFACES_TRUNK = "show_interfaces_trunk"
    SHOW_INTERFACES_STATUS = "show_interfaces_status"
    SHOW_ACCESS_LISTS = "show_access_lists"
    SHOW_ETHERCHANNEL_SUMMARY = "show_etherchannel_summary"
    SHOW_PORT_SECURITY = "show_port_security"
    SHOW_CDP_NEIGHBORS = "show_cdp_neighbors"

    # global config
    HOSTNAME = "hostname"
    ENABLE_SECRET = "enable_secret"
    BANNER_MOTD = "banner_motd"
    DOMAIN_NAME = "domain_name"
    NO_DOMAIN_LOOKUP = "no_domain_lookup"
    IP_ROUTING = "ip_routing"
    IP_ROUTE = "ip_route"
    NO_IP_ROUTE = "no_ip_route"
    INTERFACE = "interface"
    ROUTER_OSPF = "router_ospf"
    ROUTER_RIP = "router_rip"
    NO_ROUTER_OSPF = "no_router_ospf"
    NO_ROUTER_RIP = "no_router_rip"
    LINE = "line"
    VLAN = "vlan"
    NO_VLAN = "no_vlan"
    ACCESS_LIST_NAMED = "access_list_named"
    ACCESS_LIST_NUMBERED = "access_list_numbered"
    NO_ACCESS_LIST = "no_access_list"
    DHCP_POOL = "dhcp_pool"
    DHCP_EXCLUDED = "dhcp_excluded"
    NAT_STATIC = "nat_static"
    NAT_DYNAMIC = "nat_dynamic"
    NAT_POOL = "nat_pool"
    STP_MODE = "stp_mode"
    STP_VLAN_PRIORITY = "stp_vlan_priority"

    # interface config
    DESCRIPTION = "description"
    NO_DESCRIPTION = "no_description"
    SHUTDOWN = "shutdown"
    NO_SHUTDOWN = "no_shutdown"
    IP_ADDRESS = "ip_address"
    NO_IP_ADDRESS = "no_ip_address"
    ACCESS_GROUP = "access_group"
    NO_ACCESS_GROUP = "no_access_group"
    NAT_DIRECTION = "nat_direction"
    NO_NAT_DIRECTION = "no_nat_direction"
    SWITCHPORT_MODE = "switchport_mode"
    SWITCHPORT_ACCESS_VLAN = "switchport_access_vlan"
    TRUNK_ALLOWED = "trunk_allowed"
    TRUNK_NATIVE = "trunk_native"
    PORT_SECURITY = "port_security"
    NO_PORT_SECURITY = "no_port_security"
    ENCAPSULATION = "encapsulation"
    CHANNEL_GROUP = "channel_group"
    NO_CHANNEL_GROUP = "no_channel_group"
    PORTFAST = "portfast"
    NO_PORTFAST = "no_portfast"

    # router config
    OSPF_NETWORK = "ospf_network"
    RIP_NETWORK = "rip_network"
    NO_NETWORK = "no_network"
    ROUTER_ID = "router_id"
    RIP_VERSION = "rip_version"
    NO_AUTO_SUMMARY = "no_auto_summary"
    PASSIVE_INTERFACE = "passive_interface"

    # line config
    LINE_PASSWORD = "line_password"
    LINE_LOGIN = "line_login"
    NO_LOGIN = "no_login"
    TRANSPORT_INPUT = "transport_input"
    EXEC_TIMEOUT = "exec_timeout"
    LOGGING_SYNCHRONOUS = "logging_synchronous"

    # vlan / acl / dhcp config
    VLAN_NAME = "vlan_name"
    ACL_RULE = "acl_rule"
    DHCP_NETWORK = "dhcp_network"
    DHCP_DEFAULT_ROUTER = "dhcp_default_router"
    DHCP_DNS_SERVER = "dhcp_dns_server"
    DHCP_DOMAIN_NAME = "dhcp_domain_name"
    DHCP_LEASE = "dhcp_lease"

    # end hosts
    HOST_IP = "host_ip"
    HOST_IPCONFIG = "host_ipconfig"


class GrammarError(ValueError):
    pass


@dataclass(frozen=True, eq=False)
class GrammarNode:
    token: str
    kind: Optional[ArgKind] = None
    handler: Optional[Handler] = None
    children: Mapping[str, "GrammarNode"] = field(default_factory=lambda: MappingProxyType({}))
    # Literal nodes with `binds` record their own token under that argument name.
    binds: Optional[str] = None
    low: Optional[int] = None
    high: Optional[int] = None
    help: str = ""

    @property
    def is_placeholder(self) -> bool:
        return self.kind is not None

    @property
    def name(self) -> str:
        return self.token[1:-1] if self.is_placeholder else self.token

    def placeholder(self) -> Optional["GrammarNode"]:
        for child in self.children.values():
            if child.is_placeholder:
                return child
        return None

    def literals(self) -> List["GrammarNode"]:
        return [c for c in self.children.values() if not c.is_placeholder]


Children = Union[GrammarNode, Iterable[GrammarNode]]


def _flatten(children: Iterable[Children]) -> List[GrammarNode]:
    out: List[GrammarNode] = []
    for child in children:
        if isinstance(child, GrammarNode):
            out.append(child)
        else:
            out.extend(_flatten(child))
    return out


def _merge(a: GrammarNode, b: GrammarNode) -> GrammarNode:
    if (a.kind, a.low, a.high, a.binds) != (b.kind, b.low, b.high, b.binds):
        raise GrammarError(f"conflicting definitions for token {a.token!r}")
    if a.handler is not None and b.handler is not None and a.handler is not b.handler:
        raise GrammarError(f"conflicting handlers for token {a.token!r}: {a.handler} vs {b.handler}")
    children = _merge_children(list(a.children.values()) + list(b.children.values()))
    return replace(a, handler=a.handler or b.handler, children=children, help=a.help or b.help)


def _merge_children(children: Iterable[Children]) -> Mapping[str, GrammarNode]:
    merged: Dict[str, GrammarNode] = {}
    for child in _flatten(children):
        existing = merged.get(child.token)
        merged[child.token] = _merge(existing, child) if existing is not None else child
    placeholders = [c.token for c in merged.values() if c.is_placeholder]
    if len(placeholders) > 1:
        raise GrammarError(f"more than one argument placeholder among siblings: {placeholders}")
    return MappingProxyType(merged)


def kw(token: str, *children: Children, handler: Optional[Handler] = None, binds: Optional[str] = None, help: str = "") -> GrammarNode:
    return GrammarNode(token=token.lower(), handler=handler, children=_merge_children(children), binds=binds, help=help)


def arg(
    name: str,
    kind: ArgKind,
    *children: Children,
    handler: Optional[Handler] = None,
    low: Optional[int] = None,
    high: Optional[int] = None,
    help: str = "",
) -> GrammarNode:
    return GrammarNode(
        token=f"<{name}>",
        kind=kind,
        handler=handler,
        children=_merge_children(children),
        low=low,
        high=high,
        help=help,
    )


def choice(binds: str, tokens: Iterable[str], *children: Children, handler: Optional[Handler] = None) -> List[GrammarNode]:
    return [kw(t, *children, handler=handler, binds=binds) for t in tokens]


def child_for(node: GrammarNode, token: str) -> List[GrammarNode]:
    """Children of `node` that `token` may select.

    An exact literal wins, then every literal the token prefixes, and only
    when no literal matches, the argument placeholder.
    """
    t = token.lower()
    literals = node.literals()
    exact = [c for c in literals if c.token == t]
    if exact:
        return exact
    matches = sorted((c for c in literals if c.token.startswith(t)), key=lambda c: c.token)
    if matches:
        return matches
    ph = node.placeholder()
    return [ph] if ph is not None else []


H = Handler
A = ArgKind


# ───────────────────────────── Shared fragments ─────────────────────────────


def _config_common() -> List[GrammarNode]:
    return [
        kw("end", handler=H.END, help="Exit to privileged EXEC mode"),
        kw("exit", handler=H.EXIT, help="Exit from the current mode"),
        kw("do", arg("command", A.LINE, handler=H.DO), help="Run an EXEC command"),
    ]


def _mode_entries() -> List[GrammarNode]:
    """Commands that enter a configuration sub-mode, valid from any config mode."""
    vty_last = arg("last", A.INT, handler=H.LINE, low=0, high=15)
    return [
        kw("interface", arg("interface", A.INTERFACE, handler=H.INTERFACE), help="Select an interface to configure"),
        kw(
            "router",
            kw("ospf", arg("process", A.INT, handler=H.ROUTER_OSPF, low=1, high=65535)),
            kw("rip", handler=H.ROUTER_RIP),
            help="Enable a routing process",
        ),
        kw(
            "line",
            kw("console", arg("first", A.INT, handler=H.LINE, low=0, high=0), binds="line_type"),
            kw("vty", arg("first", A.INT, vty_last, handler=H.LINE, low=0, high=15), binds="line_type"),
            help="Configure a terminal line",
        ),
        kw("vlan", arg("vlan", A.INT, handler=H.VLAN, low=1, high=4094), help="VLAN commands"),
        kw(
            "ip",
            kw("access-list", choice("acl_kind", ("standard", "extended"), arg("name", A.WORD, handler=H.ACCESS_LIST_NAMED))),
            kw("dhcp", kw("pool", arg("pool", A.WORD, handler=H.DHCP_POOL))),
        ),
    ]


def _addr_spec(prefix: str, then: Children = (), handler: Optional[Handler] = None, optional_wildcard: bool = False) -> List[GrammarNode]:
    """`any` | `host <ip>` | `<ip> <wildcard>` for ACL source/destination."""
    wildcard = arg(f"{prefix}_wildcard", A.WILDCARD, then, handler=handler)
    return [
        kw("any", then, handler=handler, binds=prefix),
        kw("host", arg(prefix, A.IPV4, then, handler=handler)),
        arg(prefix, A.IPV4, wildcard, then if optional_wildcard else (), handler=handler if optional_wildcard else None),
    ]


def _acl_body(handler: Handler) -> List[GrammarNode]:
    standard = _addr_spec("src", handler=handler, optional_wildcard=True)
    extended = choice(
        "protocol",
        ("ip", "icmp", "tcp", "udp"),
        _addr_spec("src", then=_addr_spec("dst", handler=handler)),
    )
    return standard + extended


def _acl_entries(handler: Handler) -> List[GrammarNode]:
    return choice("action", ("permit", "deny"), _acl_body(handler))


def _ping_commands(host: bool = False) -> List[GrammarNode]:
    if host:
        ping = kw("ping", arg("target", A.WORD, handler=H.PING))
        trace = [
            kw("traceroute", arg("target", A.WORD, handler=H.TRACEROUTE)),
            kw("tracert", arg("target", A.WORD, handler=H.TRACEROUTE)),
        ]
        return [ping] + trace
    source = kw("source", arg("source", A.INTERFACE, handler=H.PING))
    return [
        kw("ping", arg("target", A.WORD, source, handler=H.PING), help="Send echo messages"),
        kw("traceroute", arg("target", A.WORD, handler=H.TRACEROUTE), help="Trace route to destination"),
    ]


def _show(privileged: bool) -> GrammarNode:
    ip_children: List[GrammarNode] = [
        kw("interface", kw("brief", handler=H.SHOW_IP_INTERFACE_BRIEF)),
        kw("route", handler=H.SHOW_IP_ROUTE),
    ]
    items: List[GrammarNode] = [kw("version", handler=H.SHOW_VERSION)]
    if privileged:
        ip_children += [
            kw("protocols", handler=H.SHOW_IP_PROTOCOLS),
            kw("ospf", kw("neighbor", handler=H.SHOW_IP_OSPF_NEIGHBOR)),
            kw("nat", kw("translations", handler=H.SHOW_IP_NAT_TRANSLATIONS)),
            kw("dhcp", kw("pool", handler=H.SHOW_IP_DHCP_POOL)),
        ]
        items += [
            kw("running-config", handler=H.SHOW_RUNNING_CONFIG),
            kw("startup-config", handler=H.SHOW_STARTUP_CONFIG),
            kw("vlan", kw("brief", handler=H.SHOW_VLAN_BRIEF), handler=H.SHOW_VLAN_BRIEF),
            kw(
                "interfaces",
                kw("trunk", handler=H.SHOW_INTERFACES_TRUNK),
                kw("status", handler=H.SHOW_INTERFACES_STATUS),
            ),
            kw("access-lists", handler=H.SHOW_ACCESS_LISTS),
            kw("etherchannel", kw("summary", handler=H.SHOW_ETHERCHANNEL_SUMMARY)),
            kw(
                "port-security",
                kw("interface", arg("interface", A.INTERFACE, handler=H.SHOW_PORT_SECURITY)),
                handler=H.SHOW_PORT_SECURITY,
            ),
            kw("cdp", kw("neighbors", handler=H.SHOW_CDP_NEIGHBORS)),
        ]
    items.append(kw("ip", ip_children))
    return kw("show", items, help="Show running system information")


# ───────────────────────────── Mode grammars ─────────────────────────────


def _user_exec() -> GrammarNode:
    return kw(
        "",
        kw("enable", handler=H.ENABLE, help="Turn on privileged commands"),
        kw("exit", handler=H.EXIT, help="Exit from the EXEC"),
        _ping_commands(),
        _show(privileged=False),
    )


def _privileged_exec() -> GrammarNode:
    return kw(
        "",
        kw("enable", handler=H.ENABLE),
        kw("disable", handler=H.DISABLE, help="Turn off privileged commands"),
        kw("exit", handler=H.EXIT),
        kw("configure", kw("terminal", handler=H.CONFIGURE_TERMINAL), help="Enter configuration mode"),
        kw("copy", kw("running-config", kw("startup-config", handler=H.COPY_RUN_START))),
        kw("write", kw("memory", handler=H.COPY_RUN_START), handler=H.COPY_RUN_START),
        _ping_commands(),
        _show(privileged=True),
    )


def _global_config() -> GrammarNode:
    route_args = arg(
        "network",
        A.IPV4,
        arg("mask", A.MASK, arg("next_hop", A.NEXT_HOP, arg("distance", A.INT, handler=H.IP_ROUTE, low=1, high=255), handler=H.IP_ROUTE)),
    )
    no_route_args = arg(
        "network",
        A.IPV4,
        arg("mask", A.MASK, arg("next_hop", A.NEXT_HOP, arg("distance", A.INT, handler=H.NO_IP_ROUTE, low=1, high=255), handler=H.NO_IP_ROUTE)),
    )
    nat_overload = kw("overload", handler=H.NAT_DYNAMIC, binds="overload")
    nat = kw(
        "nat",
        kw(
            "inside",
            kw(
                "source",
                kw("static", arg("local", A.IPV4, arg("global", A.IPV4, handler=H.NAT_STATIC))),
                kw(
                    "list",
                    arg(
                        "acl",
                        A.WORD,
                        kw("interface", arg("interface", A.INTERFACE, nat_overload, handler=H.NAT_DYNAMIC)),
                        kw("pool", arg("pool", A.WORD, nat_overload, handler=H.NAT_DYNAMIC)),
                    ),
                ),
            ),
        ),
        kw(
            "pool",
            arg("pool", A.WORD, arg("start", A.IPV4, arg("end", A.IPV4, kw("netmask", arg("netmask", A.MASK, handler=H.NAT_POOL))))),
        ),
    )
    return kw(
        "",
        _config_common(),
        _mode_entries(),
        kw("hostname", arg("hostname", A.WORD, handler=H.HOSTNAME), help="Set system's network name"),
        kw("enable", kw("secret", arg("secret", A.WORD, handler=H.ENABLE_SECRET))),
        kw("banner", kw("motd", arg("text", A.LINE, handler=H.BANNER_MOTD))),
        kw(
            "ip",
            kw("route", route_args),
            kw("routing", handler=H.IP_ROUTING),
            kw("domain-name", arg("domain", A.WORD, handler=H.DOMAIN_NAME)),
            kw(
                "dhcp",
                kw("excluded-address", arg("low", A.IPV4, arg("high", A.IPV4, handler=H.DHCP_EXCLUDED), handler=H.DHCP_EXCLUDED)),
            ),
            nat,
        ),
        kw("access-list", arg("number", A.INT, _acl_entries(H.ACCESS_LIST_NUMBERED), low=1, high=199)),
        kw(
            "spanning-tree",
            kw("mode", choice("stp_mode", ("pvst", "rapid-pvst", "mst"), handler=H.STP_MODE)),
            kw("vlan", arg("vlan", A.INT, kw("priority", arg("priority", A.INT, handler=H.STP_VLAN_PRIORITY, low=0, high=61440)), low=1, high=4094)),
        ),
        kw(
            "no",
            kw(
                "ip",
                kw("route", no_route_args),
                kw("domain-lookup", handler=H.NO_DOMAIN_LOOKUP),
                kw("access-list", choice("acl_kind", ("standard", "extended"), arg("name", A.WORD, handler=H.NO_ACCESS_LIST))),
            ),
            kw("vlan", arg("vlan", A.INT, handler=H.NO_VLAN, low=1, high=4094)),
            kw(
                "router",
                kw("ospf", arg("process", A.INT, handler=H.NO_ROUTER_OSPF, low=1, high=65535)),
                kw("rip", handler=H.NO_ROUTER_RIP),
            ),
            kw("access-list", arg("number", A.INT, handler=H.NO_ACCESS_LIST, low=1, high=199)),
        ),
    )


def _interface_config() -> GrammarNode:
    vlan_list = arg("vlans", A.VLAN_LIST, handler=H.TRUNK_ALLOWED)
    allowed = kw(
        "vlan",
        kw("all", handler=H.TRUNK_ALLOWED, binds="op"),
        kw("none", handler=H.TRUNK_ALLOWED, binds="op"),
        choice("op", ("add", "remove", "except"), vlan_list),
        vlan_list,
    )
    port_security = kw(
        "port-security",
        kw("maximum", arg("maximum", A.INT, handler=H.PORT_SECURITY, low=1, high=8192)),
        kw("violation", choice("violation", ("protect", "restrict", "shutdown"), handler=H.PORT_SECURITY)),
        kw(
            "mac-address",
            kw("sticky", handler=H.PORT_SECURITY, binds="sticky"),
            arg("mac", A.MAC, handler=H.PORT_SECURITY),
        ),
        handler=H.PORT_SECURITY,
    )
    direction = choice("direction", ("in", "out"), handler=H.ACCESS_GROUP)
    no_direction = choice("direction", ("in", "out"), handler=H.NO_ACCESS_GROUP)
    return kw(
        "",
        _config_common(),
        _mode_entries(),
        kw("description", arg("text", A.LINE, handler=H.DESCRIPTION), help="Interface specific description"),
        kw("shutdown", handler=H.SHUTDOWN, help="Shutdown the selected interface"),
        kw(
            "ip",
            kw("address", arg("ip", A.IPV4, arg("mask", A.MASK, handler=H.IP_ADDRESS))),
            kw("access-group", arg("acl", A.WORD, direction)),
            kw("nat", choice("nat", ("inside", "outside"), handler=H.NAT_DIRECTION)),
        ),
        kw(
            "switchport",
            kw("mode", choice("mode", ("access", "trunk"), handler=H.SWITCHPORT_MODE)),
            kw("access", kw("vlan", arg("vlan", A.INT, handler=H.SWITCHPORT_ACCESS_VLAN, low=1, high=4094))),
            kw(
                "trunk",
                kw("allowed", allowed),
                kw("native", kw("vlan", arg("vlan", A.INT, handler=H.TRUNK_NATIVE, low=1, high=4094))),
            ),
            port_security,
        ),
        kw("encapsulation", kw("dot1q", arg("vlan", A.INT, handler=H.ENCAPSULATION, low=1, high=4094))),
        kw(
            "channel-group",
            arg(
                "group",
                A.INT,
                kw("mode", choice("channel_mode", ("active", "passive", "on", "desirable", "auto"), handler=H.CHANNEL_GROUP)),
                low=1,
                high=64,
            ),
        ),
        kw("spanning-tree", kw("portfast", handler=H.PORTFAST)),
        kw(
            "no",
            kw("shutdown", handler=H.NO_SHUTDOWN),
            kw("description", handler=H.NO_DESCRIPTION),
            kw(
                "ip",
                kw("address", arg("ip", A.IPV4, arg("mask", A.MASK, handler=H.NO_IP_ADDRESS)), handler=H.NO_IP_ADDRESS),
                kw("access-group", arg("acl", A.WORD, no_direction)),
                kw("nat", choice("nat", ("inside", "outside"), handler=H.NO_NAT_DIRECTION)),
            ),
            kw("switchport", kw("port-security", handler=H.NO_PORT_SECURITY)),
            kw("channel-group", handler=H.NO_CHANNEL_GROUP),
            kw("spanning-tree", kw("portfast", handler=H.NO_PORTFAST)),
        ),
    )


def _router_config() -> GrammarNode:
    ospf_tail = arg("wildcard", A.WILDCARD, kw("area", arg("area", A.INT, handler=H.OSPF_NETWORK, low=0, high=4294967295)))
    no_ospf_tail = arg("wildcard", A.WILDCARD, kw("area", arg("area", A.INT, handler=H.NO_NETWORK, low=0, high=4294967295)))
    return kw(
        "",
        _config_common(),
        _mode_entries(),
        kw("network", arg("network", A.IPV4, ospf_tail, handler=H.RIP_NETWORK)),
        kw("router-id", arg("router_id", A.IPV4, handler=H.ROUTER_ID)),
        kw("version", arg("version", A.INT, handler=H.RIP_VERSION, low=1, high=2)),
        kw("passive-interface", arg("interface", A.INTERFACE, handler=H.PASSIVE_INTERFACE)),
        kw(
            "no",
            kw("auto-summary", handler=H.NO_AUTO_SUMMARY),
            kw("network", arg("network", A.IPV4, no_ospf_tail, handler=H.NO_NETWORK)),
        ),
    )


def _line_config() -> GrammarNode:
    return kw(
        "",
        _config_common(),
        _mode_entries(),
        kw("password", arg("password", A.WORD, handler=H.LINE_PASSWORD)),
        kw("login", kw("local", handler=H.LINE_LOGIN, binds="method"), handler=H.LINE_LOGIN),
        kw("transport", kw("input", choice("transport", ("ssh", "telnet", "all", "none"), handler=H.TRANSPORT_INPUT))),
        kw(
            "exec-timeout",
            arg("minutes", A.INT, arg("seconds", A.INT, handler=H.EXEC_TIMEOUT, low=0, high=2147483), handler=H.EXEC_TIMEOUT, low=0, high=35791),
        ),
        kw("logging", kw("synchronous", handler=H.LOGGING_SYNCHRONOUS)),
        kw("no", kw("login", handler=H.NO_LOGIN)),
    )


def _vlan_config() -> GrammarNode:
    return kw(
        "",
        _config_common(),
        _mode_entries(),
        kw("name", arg("name", A.WORD, handler=H.VLAN_NAME), help="Ascii name of the VLAN"),
    )


def _acl_config() -> GrammarNode:
    return kw("", _config_common(), _mode_entries(), _acl_entries(H.ACL_RULE))


def _dhcp_config() -> GrammarNode:
    return kw(
        "",
        _config_common(),
        _mode_entries(),
        kw("network", arg("network", A.IPV4, arg("mask", A.MASK, handler=H.DHCP_NETWORK))),
        kw("default-router", arg("address", A.IPV4, handler=H.DHCP_DEFAULT_ROUTER)),
        kw("dns-server", arg("address", A.IPV4, handler=H.DHCP_DNS_SERVER)),
        kw("domain-name", arg("domain", A.WORD, handler=H.DHCP_DOMAIN_NAME)),
        kw("lease", arg("days", A.INT, handler=H.DHCP_LEASE, low=0, high=365)),
    )


def _host() -> GrammarNode:
    return kw(
        "",
        kw("ip", arg("ip", A.IPV4, arg("mask", A.MASK, arg("gateway", A.IPV4, handler=H.HOST_IP), handler=H.HOST_IP))),
        kw("ipconfig", handler=H.HOST_IPCONFIG),
        kw("exit", handler=H.EXIT),
        _ping_commands(host=True),
    )


_GRAMMARS: Dict[Mode, GrammarNode] = {
    Mode.USER: _user_exec(),
    Mode.PRIVILEGED: _privileged_exec(),
    Mode.GLOBAL_CONFIG: _global_config(),
    Mode.INTERFACE_CONFIG: _interface_config(),
    Mode.ROUTER_CONFIG: _router_config(),
    Mode.LINE_CONFIG: _line_config(),
    Mode.VLAN_CONFIG: _vlan_config(),
    Mode.DHCP_CONFIG: _dhcp_config(),
    Mode.ACL_CONFIG: _acl_config(),
}

_HOST_GRAMMAR = _host()


def root(mode: Mode, platform: str = "ios") -> GrammarNode:
    if platform == "host":
        return _HOST_GRAMMAR
    return _GRAMMARS[mode]


def handlers_in_grammar() -> List[Handler]:
    """Every handler reachable from some grammar, in first-seen order."""
    seen: Dict[Handler, None] = {}
    stack: List[GrammarNode] = list(_GRAMMARS.values()) + [_HOST_GRAMMAR]
    visited = set()
    while stack:
        node = stack.pop()
        if id(node) in visited:
            continue
        visited.add(id(node))
        if node.handler is not None:
            seen.setdefault(node.handler, None)
        stack.extend(node.children.values())
    return list(seen)
