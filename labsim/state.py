from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Set, Tuple
import ipaddress
import re

from .errors import ModeStackError


MODE_STACK_CAPACITY = 4

DEVICE_TYPES = ("router", "switch", "pc")

ROUTE_DISTANCE = {"connected": 0, "static": 1, "ospf": 110}
ROUTE_CODES = {"connected": "C", "static": "S", "ospf": "O"}


class Mode(str, Enum):
    USER = "user"
    PRIVILEGED = "privileged"
    GLOBAL_CONFIG = "global_config"
    INTERFACE_CONFIG = "interface_config"
    ROUTER_CONFIG = "router_config"
    LINE_CONFIG = "line_config"
    VLAN_CONFIG = "vlan_config"
    DHCP_CONFIG = "dhcp_config"
    ACL_CONFIG = "acl_config"

    @property
    def prompt_suffix(self) -> str:
        return _PROMPT_SUFFIX[self]

    @property
    def is_config(self) -> bool:
        return self not in (Mode.USER, Mode.PRIVILEGED)

    @property
    def is_submode(self) -> bool:
        return self.is_config and self is not Mode.GLOBAL_CONFIG


_PROMPT_SUFFIX = {
    Mode.USER: ">",
    Mode.PRIVILEGED: "#",
    Mode.GLOBAL_CONFIG: "(config)#",
    Mode.INTERFACE_CONFIG: "(config-if)#",
    Mode.ROUTER_CONFIG: "(config-router)#",
    Mode.LINE_CONFIG: "(config-line)#",
    Mode.VLAN_CONFIG: "(config-vlan)#",
    Mode.DHCP_CONFIG: "(dhcp-config)#",
    Mode.ACL_CONFIG: "(config-ext-nacl)#",
}


# ───────────────────────────── Interface names ─────────────────────────────

INTERFACE_TYPES = (
    "Ethernet",
    "FastEthernet",
    "GigabitEthernet",
    "Loopback",
    "Port-channel",
    "Serial",
    "Vlan",
)

_IFNAME_RE = re.compile(r"^([A-Za-z][A-Za-z-]*)\s*(\d+(?:/\d+)*(?:\.\d+)?)$", re.ASCII)


def normalize_interface_name(text: str) -> Optional[str]:
    """Canonical interface name for user input like ``g0/0`` or ``vlan 10``.

    Returns None when the type prefix is unknown or matches several types.
    """
    m = _IFNAME_RE.match((text or "").strip())
    if not m:
        return None
    prefix, number = m.group(1).lower(), m.group(2)
    matches = [t for t in INTERFACE_TYPES if t.lower().startswith(prefix)]
    if len(matches) != 1:
        return None
    return f"{matches[0]}{number}"


def split_subinterface(ifname: str) -> Tuple[str, Optional[int]]:
    if "." not in ifname:
        return ifname, None
    parent, sub = ifname.split(".", 1)
    if not (sub.isascii() and sub.isdigit()):
        return ifname, None
    return parent, int(sub)


def interface_kind(ifname: str) -> str:
    """physical|subinterface|loopback|svi|port-channel"""
    if split_subinterface(ifname)[1] is not None:
        return "subinterface"
    if ifname.startswith("Loopback"):
        return "loopback"
    if ifname.startswith("Vlan"):
        return "svi"
    if ifname.startswith("Port-channel"):
        return "port-channel"
    return "physical"


def interface_sort_key(ifname: str):
    m = re.match(r"^([A-Za-z-]+)(.*)$", ifname)
    if not m:
        return (ifname, ())
    nums = tuple(int(n) for n in re.findall(r"\d+", m.group(2)))
    return (m.group(1), nums)


def short_interface_name(ifname: str) -> str:
    m = re.match(r"^([A-Za-z-]+)(.*)$", ifname)
    if not m:
        return ifname
    short = {
        "GigabitEthernet": "Gi",
        "FastEthernet": "Fa",
        "Ethernet": "Et",
        "Serial": "Se",
        "Loopback": "Lo",
        "Port-channel": "Po",
        "Vlan": "Vl",
    }.get(m.group(1), m.group(1))
    return f"{short}{m.group(2)}"


def mac_from_text(text: str) -> str:
    # Deterministic locally-administered unicast MAC, IOS dotted notation.
    h = 0
    for ch in text.encode("utf-8"):
        h = (h * 131 + ch) & 0xFFFFFFFF
    b = [0x02, (h >> 24) & 0xFF, (h >> 16) & 0xFF, (h >> 8) & 0xFF, h & 0xFF, (h >> 1) & 0xFF]
    raw = "".join(f"{x:02x}" for x in b)
    return f"{raw[0:4]}.{raw[4:8]}.{raw[8:12]}"


def default_vlan_name(vlan: int) -> str:
    return f"VLAN{vlan:04d}"


def wildcard_to_netmask(wildcard: str) -> str:
    wc = ipaddress.IPv4Address(wildcard)
    return str(ipaddress.IPv4Address((~int(wc)) & 0xFFFFFFFF))


# ───────────────────────────── State records ─────────────────────────────


@dataclass
class PortSecurity:
    enabled: bool = False
    maximum: int = 1
    violation: str = "shutdown"  # protect|restrict|shutdown
    sticky: bool = False
    mac_addresses: List[str] = field(default_factory=list)


@dataclass
class Interface:
    name: str
    admin_up: bool = False
    oper_up: bool = False

    # L2 identity
    mac: str = ""
    description: Optional[str] = None

    # L3
    ip: Optional[str] = None
    mask: Optional[str] = None
    dot1q_vlan: Optional[int] = None

    # L2
    mode: str = "routed"  # routed|access|trunk
    access_vlan: int = 1
    trunk_vlans: Optional[Set[int]] = None  # None means all VLANs
    native_vlan: int = 1
    port_security: PortSecurity = field(default_factory=PortSecurity)
    portfast: bool = False

    # EtherChannel
    channel_group: Optional[int] = None
    channel_mode: Optional[str] = None  # active|passive|on|desirable|auto

    # ACL / NAT
    acl_in: Optional[str] = None
    acl_out: Optional[str] = None
    nat: Optional[str] = None  # inside|outside

    def has_ip(self) -> bool:
        return bool(self.ip and self.mask)

    def ip_interface(self) -> Optional[ipaddress.IPv4Interface]:
        if not self.has_ip():
            return None
        return ipaddress.IPv4Interface(f"{self.ip}/{self.mask}")

    def is_switchport(self) -> bool:
        return self.mode in ("access", "trunk")

    def carries_vlan(self, vlan: int) -> bool:
        if self.mode == "access":
            return self.access_vlan == vlan
        if self.mode == "trunk":
            return self.trunk_vlans is None or vlan in self.trunk_vlans
        return False


@dataclass
class Route:
    network: str
    mask: str
    source: str  # connected|static|ospf
    distance: int
    next_hop: Optional[str] = None
    interface: Optional[str] = None
    metric: int = 0

    @property
    def prefix(self) -> ipaddress.IPv4Network:
        return ipaddress.IPv4Network(f"{self.network}/{self.mask}")

    @property
    def code(self) -> str:
        return ROUTE_CODES.get(self.source, "?")


def route_sort_key(route: Route):
    net = route.prefix
    return (int(net.network_address), net.prefixlen, route.distance, route.next_hop or "", route.interface or "")


def insert_route(routes: List[Route], route: Route) -> bool:
    """Insert keeping table order; returns False when an identical entry exists."""
    if route in routes:
        return False
    routes.append(route)
    routes.sort(key=route_sort_key)
    return True


@dataclass
class ACLRule:
    action: str  # permit|deny
    source: str = "0.0.0.0"
    source_wildcard: str = "255.255.255.255"
    protocol: str = "ip"  # ip|icmp|tcp|udp
    destination: str = "0.0.0.0"
    destination_wildcard: str = "255.255.255.255"
    hits: int = 0

    def matches(self, protocol: str, src_ip: str, dst_ip: str) -> bool:
        if self.protocol not in ("ip", protocol):
            return False
        return _wildcard_match(self.source, self.source_wildcard, src_ip) and _wildcard_match(
            self.destination, self.destination_wildcard, dst_ip
        )


def _wildcard_match(addr: str, wildcard: str, ip: str) -> bool:
    care = (~int(ipaddress.IPv4Address(wildcard))) & 0xFFFFFFFF
    return (int(ipaddress.IPv4Address(addr)) & care) == (int(ipaddress.IPv4Address(ip)) & care)


@dataclass
class AccessList:
    name: str
    kind: str = "extended"  # standard|extended
    rules: List[ACLRule] = field(default_factory=list)

    def permits(self, protocol: str, src_ip: str, dst_ip: str) -> bool:
        # An ACL with no entries filters nothing.
        if not self.rules:
            return True
        for rule in self.rules:
            if rule.matches(protocol, src_ip, dst_ip):
                return rule.action == "permit"
        return False


@dataclass
class OspfNetwork:
    network: str
    wildcard: str
    area: int = 0

    def covers(self, ip: str) -> bool:
        return _wildcard_match(self.network, self.wildcard, ip)


@dataclass
class OspfConfig:
    process_id: int = 1
    router_id: Optional[str] = None
    networks: List[OspfNetwork] = field(default_factory=list)
    passive_interfaces: List[str] = field(default_factory=list)

    def area_for(self, ip: str) -> Optional[int]:
        for net in self.networks:
            if net.covers(ip):
                return net.area
        return None


@dataclass
class OspfNeighbor:
    neighbor_id: str
    address: str
    interface: str
    state: str = "FULL"


@dataclass
class RipConfig:
    version: int = 1
    networks: List[str] = field(default_factory=list)
    auto_summary: bool = True
    passive_interfaces: List[str] = field(default_factory=list)


@dataclass
class LineConfig:
    name: str  # "console 0" | "vty 0 4"
    password: Optional[str] = None
    login: Optional[str] = None  # None|"login"|"local"
    transport_input: Optional[str] = None
    exec_timeout: Optional[Tuple[int, int]] = None
    logging_synchronous: bool = False


@dataclass
class DhcpPool:
    name: str
    network: Optional[str] = None
    mask: Optional[str] = None
    default_router: Optional[str] = None
    dns_servers: List[str] = field(default_factory=list)
    domain_name: Optional[str] = None
    lease_days: Optional[int] = None


@dataclass
class NatStatic:
    local: str
    global_address: str


@dataclass
class NatPool:
    name: str
    start: str
    end: str
    netmask: str


@dataclass
class NatDynamic:
    acl: str
    interface: Optional[str] = None
    pool: Optional[str] = None
    overload: bool = False


@dataclass
class NatConfig:
    static: List[NatStatic] = field(default_factory=list)
    pools: Dict[str, NatPool] = field(default_factory=dict)
    dynamic: List[NatDynamic] = field(default_factory=list)


@dataclass
class StpConfig:
    mode: str = "pvst"
    vlan_priority: Dict[int, int] = field(default_factory=dict)


# ───────────────────────────── Mode machine ─────────────────────────────


@dataclass
class ModeStack:
    items: List[Mode] = field(default_factory=list)
    capacity: int = MODE_STACK_CAPACITY

    def push(self, mode: Mode) -> None:
        if len(self.items) >= self.capacity:
            raise ModeStackError(f"mode stack overflow pushing {mode.value}")
        self.items.append(mode)

    def pop(self) -> Mode:
        if not self.items:
            raise ModeStackError("mode stack underflow")
        return self.items.pop()

    def clear(self) -> None:
        self.items.clear()

    def __len__(self) -> int:
        return len(self.items)


@dataclass
class EditContext:
    interface: Optional[str] = None
    router: Optional[str] = None  # ospf|rip
    line: Optional[str] = None
    vlan: Optional[int] = None
    acl: Optional[str] = None
    dhcp_pool: Optional[str] = None

    def clear(self) -> None:
        self.interface = None
        self.router = None
        self.line = None
        self.vlan = None
        self.acl = None
        self.dhcp_pool = None


@dataclass
class DeviceState:
    device_id: str
    device_type: str  # router|switch|pc
    hostname: str

    mode: Mode = Mode.USER
    mode_stack: ModeStack = field(default_factory=ModeStack)
    context: EditContext = field(default_factory=EditContext)

    interfaces: Dict[str, Interface] = field(default_factory=dict)
    vlans: Dict[int, str] = field(default_factory=dict)
    routes: List[Route] = field(default_factory=list)
    acls: Dict[str, AccessList] = field(default_factory=dict)

    ospf: Optional[OspfConfig] = None
    ospf_neighbors: List[OspfNeighbor] = field(default_factory=list)
    rip: Optional[RipConfig] = None

    lines: Dict[str, LineConfig] = field(default_factory=dict)
    dhcp_pools: Dict[str, DhcpPool] = field(default_factory=dict)
    dhcp_excluded: List[Tuple[str, str]] = field(default_factory=list)
    nat: NatConfig = field(default_factory=NatConfig)
    stp: StpConfig = field(default_factory=StpConfig)

    enable_secret: Optional[str] = None
    banner_motd: Optional[str] = None
    domain_name: Optional[str] = None
    domain_lookup: bool = True
    ip_routing: bool = True
    default_gateway: Optional[str] = None  # pc only
    startup_config: Optional[str] = None

    def prompt(self) -> str:
        return f"{self.hostname}{self.mode.prompt_suffix}"

    # Mode transitions. The stack holds the modes to return to with `exit`.

    def enter_mode(self, mode: Mode, **context) -> None:
        if self.mode.is_submode:
            self.exit_mode()
        self.mode_stack.push(self.mode)
        self.mode = mode
        for key, value in context.items():
            setattr(self.context, key, value)

    def exit_mode(self) -> bool:
        """Pop one mode. Returns True when the session should close."""
        if not self.mode.is_config:
            self.mode = Mode.USER
            self.mode_stack.clear()
            self.context.clear()
            return True
        self.mode = self.mode_stack.pop()
        self.context.clear()
        return False

    def end_config(self) -> None:
        self.mode = Mode.PRIVILEGED
        self.mode_stack.clear()
        self.context.clear()

    def ensure_vlan(self, vlan: int) -> bool:
        if vlan in self.vlans:
            return False
        self.vlans[vlan] = default_vlan_name(vlan)
        return True

    def sorted_interfaces(self) -> List[Interface]:
        return [self.interfaces[n] for n in sorted(self.interfaces, key=interface_sort_key)]

    def owns_ip(self, ip: str, operational: bool = True) -> Optional[str]:
        for itf in self.sorted_interfaces():
            if itf.ip == ip and itf.has_ip() and (itf.oper_up or not operational):
                return itf.name
        return None


def _default_interfaces(device_type: str) -> List[Tuple[str, str]]:
    # (name, switchport mode)
    if device_type == "router":
        names = [f"GigabitEthernet0/{i}" for i in range(3)] + [f"Serial0/0/{i}" for i in range(2)]
        return [(n, "routed") for n in names]
    if device_type == "switch":
        names = [f"FastEthernet0/{i}" for i in range(1, 25)] + [f"GigabitEthernet0/{i}" for i in range(1, 3)]
        return [(n, "access") for n in names]
    return [("FastEthernet0", "routed")]


def new_device(device_type: str, hostname: str, device_id: Optional[str] = None) -> DeviceState:
    """Factory-default device: every interface shut down, USER mode."""
    if device_type not in DEVICE_TYPES:
        raise ValueError(f"Unknown device type: {device_type}")
    device_id = (device_id or hostname).strip()
    dev = DeviceState(device_id=device_id, device_type=device_type, hostname=hostname)
    for name, mode in _default_interfaces(device_type):
        dev.interfaces[name] = Interface(name=name, mode=mode, mac=mac_from_text(f"{device_id}:{name}"))
    if device_type == "switch":
        dev.vlans[1] = "default"
    if device_type == "pc":
        # End hosts do not forward.
        dev.ip_routing = False
    return dev
