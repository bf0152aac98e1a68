"""Text renderers for `show` commands and command side output."""

from __future__ import annotations

from typing import List, Optional
import hashlib
import ipaddress

from .core import REASON_ACL_DENY, PingReport, Topology, effective_router_id
from .state import (
    ACLRule,
    AccessList,
    DeviceState,
    Interface,
    interface_kind,
    short_interface_name,
)


_PLATFORM = {
    "router": ("CISCO2911/K9", "C2900 Software (C2900-UNIVERSALK9-M), Version 15.1(4)M4, RELEASE SOFTWARE (fc2)"),
    "switch": ("WS-C2960-24TT-L", "C2960 Software (C2960-LANBASEK9-M), Version 15.0(2)SE4, RELEASE SOFTWARE (fc1)"),
    "pc": ("PC-PT", "PC Firmware"),
}


def _status(itf: Interface):
    if not itf.admin_up:
        return "administratively down", "down"
    if not itf.oper_up:
        return "down", "down"
    return "up", "up"


# ───────────────────────────── Running config ─────────────────────────────


def _addr_spec(addr: str, wildcard: str) -> str:
    if wildcard == "255.255.255.255":
        return "any"
    if wildcard == "0.0.0.0":
        return f"host {addr}"
    return f"{addr} {wildcard}"


def format_acl_rule(rule: ACLRule, kind: str) -> str:
    src = _addr_spec(rule.source, rule.source_wildcard)
    if kind == "standard":
        return f"{rule.action} {src}"
    return f"{rule.action} {rule.protocol} {src} {_addr_spec(rule.destination, rule.destination_wildcard)}"


def _interface_lines(dev: DeviceState, itf: Interface) -> List[str]:
    lines = [f"interface {itf.name}"]
    if itf.description:
        lines.append(f" description {itf.description}")
    if itf.dot1q_vlan is not None:
        lines.append(f" encapsulation dot1Q {itf.dot1q_vlan}")
    if dev.device_type == "switch" and itf.is_switchport():
        if itf.mode == "trunk":
            if itf.native_vlan != 1:
                lines.append(f" switchport trunk native vlan {itf.native_vlan}")
            if itf.trunk_vlans is not None:
                allowed = format_vlan_list(itf.trunk_vlans) or "none"
                lines.append(f" switchport trunk allowed vlan {allowed}")
            lines.append(" switchport mode trunk")
        else:
            if itf.access_vlan != 1:
                lines.append(f" switchport access vlan {itf.access_vlan}")
            lines.append(" switchport mode access")
        ps = itf.port_security
        if ps.enabled:
            lines.append(" switchport port-security")
        if ps.maximum != 1:
            lines.append(f" switchport port-security maximum {ps.maximum}")
        if ps.violation != "shutdown":
            lines.append(f" switchport port-security violation {ps.violation}")
        if ps.sticky:
            lines.append(" switchport port-security mac-address sticky")
        for mac in ps.mac_addresses:
            lines.append(f" switchport port-security mac-address {mac}")
        if itf.portfast:
            lines.append(" spanning-tree portfast")
    if itf.channel_group is not None:
        lines.append(f" channel-group {itf.channel_group} mode {itf.channel_mode}")
    if itf.has_ip():
        lines.append(f" ip address {itf.ip} {itf.mask}")
    elif not itf.is_switchport() and interface_kind(itf.name) in ("physical", "subinterface", "svi"):
        lines.append(" no ip address")
    if itf.acl_in:
        lines.append(f" ip access-group {itf.acl_in} in")
    if itf.acl_out:
        lines.append(f" ip access-group {itf.acl_out} out")
    if itf.nat:
        lines.append(f" ip nat {itf.nat}")
    if interface_kind(itf.name) == "physical" and not itf.name.startswith("Serial"):
        lines += [" duplex auto", " speed auto"]
    if not itf.admin_up:
        lines.append(" shutdown")
    lines.append("!")
    return lines


def _numbered(name: str) -> bool:
    return name.isascii() and name.isdigit()


def _acl_order(name: str):
    """Numbered lists first, in numeric order, then named lists."""
    return (not _numbered(name), int(name) if _numbered(name) else 0, name)


def _acl_lines(dev: DeviceState) -> List[str]:
    lines: List[str] = []
    for name in sorted(dev.acls, key=_acl_order):
        acl = dev.acls[name]
        if _numbered(name):
            lines += [f"access-list {name} {format_acl_rule(r, acl.kind)}" for r in acl.rules]
        else:
            lines.append(f"ip access-list {acl.kind} {name}")
            lines += [f" {format_acl_rule(r, acl.kind)}" for r in acl.rules]
    if lines:
        lines.append("!")
    return lines


def _secret_hash(secret: str) -> str:
    return "$1$mERr$" + hashlib.md5(secret.encode("utf-8")).hexdigest()[:22]


def running_config(dev: DeviceState) -> str:
    body: List[str] = ["!", "version 15.1", "no service timestamps log datetime msec", "!", f"hostname {dev.hostname}", "!"]
    if dev.enable_secret:
        body += [f"enable secret 5 {_secret_hash(dev.enable_secret)}", "!"]
    if not dev.domain_lookup:
        body.append("no ip domain-lookup")
    if dev.domain_name:
        body.append(f"ip domain-name {dev.domain_name}")
    for low, high in dev.dhcp_excluded:
        body.append(f"ip dhcp excluded-address {low}" + (f" {high}" if high != low else ""))
    for name in sorted(dev.dhcp_pools):
        pool = dev.dhcp_pools[name]
        body.append(f"ip dhcp pool {name}")
        if pool.network:
            body.append(f" network {pool.network} {pool.mask}")
        if pool.default_router:
            body.append(f" default-router {pool.default_router}")
        if pool.dns_servers:
            body.append(f" dns-server {' '.join(pool.dns_servers)}")
        if pool.domain_name:
            body.append(f" domain-name {pool.domain_name}")
        if pool.lease_days is not None:
            body.append(f" lease {pool.lease_days}")
        body.append("!")
    if dev.device_type == "switch":
        body.append(f"spanning-tree mode {dev.stp.mode}")
        for vlan in sorted(dev.stp.vlan_priority):
            body.append(f"spanning-tree vlan {vlan} priority {dev.stp.vlan_priority[vlan]}")
        body.append("!")
        for vid in sorted(dev.vlans):
            if vid == 1:
                continue
            body += [f"vlan {vid}", f" name {dev.vlans[vid]}", "!"]

    for itf in dev.sorted_interfaces():
        body += _interface_lines(dev, itf)

    if dev.ospf is not None:
        body.append(f"router ospf {dev.ospf.process_id}")
        if dev.ospf.router_id:
            body.append(f" router-id {dev.ospf.router_id}")
        body += [f" passive-interface {n}" for n in dev.ospf.passive_interfaces]
        body += [f" network {n.network} {n.wildcard} area {n.area}" for n in dev.ospf.networks]
        body.append("!")
    if dev.rip is not None:
        body.append("router rip")
        if dev.rip.version != 1:
            body.append(f" version {dev.rip.version}")
        body += [f" passive-interface {n}" for n in dev.rip.passive_interfaces]
        body += [f" network {n}" for n in dev.rip.networks]
        if not dev.rip.auto_summary:
            body.append(" no auto-summary")
        body.append("!")

    for pool in sorted(dev.nat.pools.values(), key=lambda p: p.name):
        body.append(f"ip nat pool {pool.name} {pool.start} {pool.end} netmask {pool.netmask}")
    for dyn in dev.nat.dynamic:
        target = f"interface {dyn.interface}" if dyn.interface else f"pool {dyn.pool}"
        body.append(f"ip nat inside source list {dyn.acl} {target}" + (" overload" if dyn.overload else ""))
    for st in dev.nat.static:
        body.append(f"ip nat inside source static {st.local} {st.global_address}")
    if not dev.ip_routing and dev.device_type == "router":
        body.append("no ip routing")
    body.append("ip classless")
    for r in dev.routes:
        if r.source != "static":
            continue
        target = r.next_hop or r.interface
        body.append(f"ip route {r.network} {r.mask} {target}" + (f" {r.distance}" if r.distance != 1 else ""))
    body.append("!")
    body += _acl_lines(dev)
    if dev.banner_motd:
        body += [f"banner motd ^C{dev.banner_motd}^C", "!"]

    lines = dict(dev.lines)
    lines.setdefault("con 0", None)
    lines.setdefault("vty 0 4", None)
    for name in sorted(lines, key=lambda n: (not n.startswith("con"), n)):
        body.append(f"line {name}")
        cfg = lines[name]
        if cfg is not None:
            if cfg.exec_timeout is not None:
                body.append(f" exec-timeout {cfg.exec_timeout[0]} {cfg.exec_timeout[1]}")
            if cfg.password:
                body.append(f" password {cfg.password}")
            if cfg.logging_synchronous:
                body.append(" logging synchronous")
            if cfg.login:
                body.append(" login local" if cfg.login == "local" else " login")
            if cfg.transport_input:
                body.append(f" transport input {cfg.transport_input}")
        body.append("!")
    body.append("end")

    text = "\n".join(body)
    header = ["Building configuration...", "", f"Current configuration : {len(text)} bytes"]
    return "\n".join(header + body)


def startup_config(dev: DeviceState) -> str:
    if dev.startup_config is None:
        return "startup-config is not present"
    return dev.startup_config


def version(dev: DeviceState) -> str:
    model, image = _PLATFORM[dev.device_type]
    ports = {}
    for itf in dev.interfaces.values():
        if interface_kind(itf.name) != "physical":
            continue
        kind = "".join(ch for ch in itf.name if ch.isalpha())
        ports[kind] = ports.get(kind, 0) + 1
    lines = [
        f"Cisco IOS Software, {image}",
        "Technical Support: http://www.cisco.com/techsupport",
        "",
        f"{dev.hostname} uptime is 0 minutes",
        "System image file is \"flash0:\"",
        "",
        f"cisco {model} processor with 491520K/32768K bytes of memory.",
    ]
    for kind in sorted(ports):
        lines.append(f"{ports[kind]} {kind} interfaces")
    lines += ["", "Configuration register is 0x2102"]
    return "\n".join(lines)


# ───────────────────────────── Interfaces ─────────────────────────────


def ip_interface_brief(dev: DeviceState) -> str:
    lines = [f"{'Interface':<27}{'IP-Address':<16}OK? Method Status                Protocol"]
    for itf in dev.sorted_interfaces():
        ip = itf.ip if itf.has_ip() else "unassigned"
        method = "manual" if itf.has_ip() else "unset"
        status, proto = _status(itf)
        lines.append(f"{itf.name:<27}{ip:<16}YES {method:<6} {status:<21} {proto}")
    return "\n".join(lines)


def interfaces_status(dev: DeviceState) -> str:
    lines = [f"{'Port':<10}{'Name':<19}{'Status':<13}{'Vlan':<11}{'Duplex':<7}{'Speed':<7}Type"]
    for itf in dev.sorted_interfaces():
        if interface_kind(itf.name) != "physical":
            continue
        if not itf.admin_up:
            status = "disabled"
        elif itf.oper_up:
            status = "connected"
        else:
            status = "notconnect"
        vlan = "trunk" if itf.mode == "trunk" else str(itf.access_vlan)
        kind = "10/100BaseTX" if itf.name.startswith("Fast") else "10/100/1000BaseTX"
        lines.append(
            f"{short_interface_name(itf.name):<10}{(itf.description or '')[:18]:<19}{status:<13}{vlan:<11}{'auto':<7}{'auto':<7}{kind}"
        )
    return "\n".join(lines)


def format_vlan_list(vlans) -> str:
    ordered = sorted(vlans)
    parts: List[str] = []
    i = 0
    while i < len(ordered):
        j = i
        while j + 1 < len(ordered) and ordered[j + 1] == ordered[j] + 1:
            j += 1
        parts.append(str(ordered[i]) if i == j else f"{ordered[i]}-{ordered[j]}")
        i = j + 1
    return ",".join(parts)


def interfaces_trunk(dev: DeviceState) -> str:
    trunks = [i for i in dev.sorted_interfaces() if i.mode == "trunk"]
    lines = [f"{'Port':<12}{'Mode':<13}{'Encapsulation':<15}{'Status':<14}Native vlan"]
    for itf in trunks:
        status = "trunking" if itf.oper_up else "not-trunking"
        lines.append(f"{short_interface_name(itf.name):<12}{'on':<13}{'802.1q':<15}{status:<14}{itf.native_vlan}")
    lines += ["", f"{'Port':<12}Vlans allowed on trunk"]
    for itf in trunks:
        allowed = "1-4094" if itf.trunk_vlans is None else (format_vlan_list(itf.trunk_vlans) or "none")
        lines.append(f"{short_interface_name(itf.name):<12}{allowed}")
    lines += ["", f"{'Port':<12}Vlans allowed and active in management domain"]
    for itf in trunks:
        active = [v for v in sorted(dev.vlans) if itf.carries_vlan(v)]
        lines.append(f"{short_interface_name(itf.name):<12}{format_vlan_list(active) or 'none'}")
    return "\n".join(lines)


def vlan_brief(dev: DeviceState) -> str:
    lines = [
        f"{'VLAN':<5}{'Name':<33}{'Status':<10}Ports",
        f"{'-' * 4} {'-' * 32} {'-' * 9} {'-' * 31}",
    ]
    for vid in sorted(dev.vlans):
        ports = [
            short_interface_name(i.name)
            for i in dev.sorted_interfaces()
            if interface_kind(i.name) == "physical" and i.mode == "access" and i.access_vlan == vid
        ]
        rows = [", ".join(ports[k:k + 4]) for k in range(0, len(ports), 4)] or [""]
        lines.append(f"{vid:<5}{dev.vlans[vid]:<33}{'active':<10}{rows[0]}".rstrip())
        lines += [f"{'':<48}{row}" for row in rows[1:]]
    return "\n".join(lines)


def etherchannel_summary(dev: DeviceState) -> str:
    groups = {}
    for itf in dev.sorted_interfaces():
        if itf.channel_group is not None:
            groups.setdefault(itf.channel_group, []).append(itf)
    lines = [
        "Flags:  D - down        P - bundled in port-channel",
        "        S - Layer2      R - Layer3      U - in use",
        "",
        f"Number of channel-groups in use: {len(groups)}",
        "",
        "Group  Port-channel  Protocol    Ports",
        "------+-------------+-----------+----------------------------------------------",
    ]
    for group in sorted(groups):
        members = groups[group]
        po = dev.interfaces.get(f"Port-channel{group}")
        layer = "S" if dev.device_type == "switch" else "R"
        po_flag = layer + ("U" if po is not None and po.oper_up else "D")
        mode = members[0].channel_mode
        protocol = "LACP" if mode in ("active", "passive") else "PAgP" if mode in ("desirable", "auto") else "-"
        ports = " ".join(f"{short_interface_name(m.name)}({'P' if m.oper_up else 'D'})" for m in members)
        lines.append(f"{group:<7}{f'Po{group}({po_flag})':<14}{protocol:<12}{ports}")
    return "\n".join(lines)


def port_security(dev: DeviceState, ifname: Optional[str] = None) -> str:
    if ifname is None:
        lines = ["Secure Port  MaxSecureAddr  CurrentAddr  SecurityViolation  Security Action"]
        for itf in dev.sorted_interfaces():
            ps = itf.port_security
            if ps.enabled:
                lines.append(
                    f"{short_interface_name(itf.name):>11}{ps.maximum:>15}{len(ps.mac_addresses):>13}{0:>19}  {ps.violation.capitalize()}"
                )
        return "\n".join(lines)
    itf = dev.interfaces[ifname]
    ps = itf.port_security
    if ps.enabled:
        port_status = "Secure-up" if itf.oper_up else "Secure-down"
    else:
        port_status = "Secure-down"
    rows = [
        ("Port Security", "Enabled" if ps.enabled else "Disabled"),
        ("Port Status", port_status),
        ("Violation Mode", ps.violation.capitalize()),
        ("Maximum MAC Addresses", str(ps.maximum)),
        ("Total MAC Addresses", str(len(ps.mac_addresses))),
        ("Configured MAC Addresses", str(len(ps.mac_addresses))),
        ("Sticky MAC Addresses", "0"),
        ("Security Violation Count", "0"),
    ]
    return "\n".join(f"{k:<27}: {v}" for k, v in rows)


# ───────────────────────────── Routing ─────────────────────────────


def ip_route(dev: DeviceState) -> str:
    lines = [
        "Codes: L - local, C - connected, S - static, R - RIP, O - OSPF",
        "       * - candidate default",
        "",
    ]
    defaults = [r for r in dev.routes if r.prefix.prefixlen == 0]
    if defaults:
        gw = defaults[0].next_hop or defaults[0].interface
        lines.append(f"Gateway of last resort is {gw} to network 0.0.0.0")
    else:
        lines.append("Gateway of last resort is not set")
    lines.append("")
    for r in dev.routes:
        code = r.code + ("*" if r.prefix.prefixlen == 0 else "")
        prefix = str(r.prefix)
        if r.source == "connected":
            lines.append(f"{code:<5}{prefix} is directly connected, {r.interface}")
        elif r.next_hop and r.interface:
            lines.append(f"{code:<5}{prefix} [{r.distance}/{r.metric}] via {r.next_hop}, 00:00:00, {r.interface}")
        elif r.next_hop:
            lines.append(f"{code:<5}{prefix} [{r.distance}/{r.metric}] via {r.next_hop}")
        else:
            lines.append(f"{code:<5}{prefix} is directly connected, {r.interface}")
    return "\n".join(lines)


def ip_protocols(dev: DeviceState) -> str:
    lines: List[str] = []
    if dev.ospf is not None:
        lines.append(f'Routing Protocol is "ospf {dev.ospf.process_id}"')
        rid = effective_router_id(dev)
        lines.append(f"  Router ID {rid}" if rid else "  Router ID not set")
        if dev.ospf.networks:
            lines.append("  Routing for Networks:")
            lines += [f"    {n.network} {n.wildcard} area {n.area}" for n in dev.ospf.networks]
        if dev.ospf.passive_interfaces:
            lines.append("  Passive Interface(s):")
            lines += [f"    {n}" for n in dev.ospf.passive_interfaces]
        lines.append("  Distance: (default is 110)")
        lines.append("")
    if dev.rip is not None:
        lines.append('Routing Protocol is "rip"')
        lines.append(f"  Default version control: send version {dev.rip.version}, receive version {dev.rip.version}")
        lines.append(f"  Automatic network summarization is {'in effect' if dev.rip.auto_summary else 'not in effect'}")
        lines.append("  Routing for Networks:")
        lines += [f"    {n}" for n in dev.rip.networks]
        lines.append("  Distance: (default is 120)")
        lines.append("")
    if not lines:
        return ""
    return "\n".join(lines).rstrip()


def ip_ospf_neighbor(dev: DeviceState) -> str:
    lines = [f"{'Neighbor ID':<17}{'Pri':<5}{'State':<17}{'Dead Time':<12}{'Address':<17}Interface"]
    for nb in dev.ospf_neighbors:
        lines.append(f"{nb.neighbor_id:<17}{1:<5}{nb.state + '/  -':<17}{'00:00:39':<12}{nb.address:<17}{nb.interface}")
    return "\n".join(lines)


def access_lists(dev: DeviceState) -> str:
    lines: List[str] = []
    for name in sorted(dev.acls, key=_acl_order):
        acl: AccessList = dev.acls[name]
        label = "Standard" if acl.kind == "standard" else "Extended"
        lines.append(f"{label} IP access list {name}")
        for seq, rule in enumerate(acl.rules, start=1):
            lines.append(f"    {seq * 10} {format_acl_rule(rule, acl.kind)}")
    return "\n".join(lines)


def ip_nat_translations(dev: DeviceState) -> str:
    lines = [f"{'Pro':<5}{'Inside global':<20}{'Inside local':<20}{'Outside local':<20}Outside global"]
    for st in dev.nat.static:
        lines.append(f"{'---':<5}{st.global_address:<20}{st.local:<20}{'---':<20}---")
    return "\n".join(lines)


def ip_dhcp_pool(dev: DeviceState) -> str:
    lines: List[str] = []
    for name in sorted(dev.dhcp_pools):
        pool = dev.dhcp_pools[name]
        lines.append(f"Pool {name} :")
        total = 0
        if pool.network:
            net = ipaddress.IPv4Network(f"{pool.network}/{pool.mask}")
            total = max(net.num_addresses - 2, 0)
        lines.append(f" Total addresses                : {total}")
        lines.append(" Leased addresses               : 0")
        lines.append(f" Default router                 : {pool.default_router or 'none'}")
        lines.append(f" DNS server                     : {', '.join(pool.dns_servers) or 'none'}")
        lines.append(f" Domain name                    : {pool.domain_name or 'none'}")
        lines.append(f" Lease (days)                   : {pool.lease_days if pool.lease_days is not None else 1}")
        if pool.network:
            lines.append(f" Network                        : {pool.network} {pool.mask}")
        lines.append("")
    return "\n".join(lines).rstrip()


def cdp_neighbors(topology: Topology, dev: DeviceState) -> str:
    lines = [
        "Capability Codes: R - Router, T - Trans Bridge, B - Source Route Bridge",
        "                  S - Switch, H - Host, I - IGMP, r - Repeater, P - Phone",
        f"{'Device ID':<17}{'Local Intrfce':<16}{'Holdtme':<11}{'Capability':<13}{'Platform':<12}Port ID",
    ]
    for local_port, peer, peer_port in sorted(topology.cdp_neighbors(dev.device_id), key=lambda n: n[0]):
        cap = "R" if peer.device_type == "router" else "S"
        platform = "C2900" if peer.device_type == "router" else "2960"
        lines.append(
            f"{peer.hostname:<17}{short_interface_name(local_port):<16}{160:<11}{cap:<13}{platform:<12}{short_interface_name(peer_port)}"
        )
    return "\n".join(lines)


# ───────────────────────────── End hosts ─────────────────────────────


def ipconfig(dev: DeviceState) -> str:
    lines: List[str] = []
    for itf in dev.sorted_interfaces():
        lines += [
            f"{itf.name} Connection:(default port)",
            "",
            f"   IPv4 Address....................: {itf.ip or '0.0.0.0'}",
            f"   Subnet Mask.....................: {itf.mask or '0.0.0.0'}",
            f"   Default Gateway.................: {dev.default_gateway or '0.0.0.0'}",
            "",
        ]
    return "\n".join(lines).rstrip()


# ───────────────────────────── Reachability ─────────────────────────────


def _failure_line(report: PingReport) -> str:
    f = report.failure
    detail = f" ({f.detail})" if f.detail else ""
    return f"% Failed at hop {f.hop} ({f.device}): {f.reason}{detail}"


def ping_output(report: PingReport, host: bool = False) -> str:
    if host:
        lines = [f"Pinging {report.target} with 32 bytes of data:", ""]
        if report.success:
            lines += [f"Reply from {report.target}: bytes=32 time<1ms TTL={255 - len(report.hops) + 1}"] * 4
            lines += ["", f"Ping statistics for {report.target}:", "    Packets: Sent = 4, Received = 4, Lost = 0 (0% loss),"]
        else:
            lines += ["Request timed out."] * 4
            lines += ["", f"Ping statistics for {report.target}:", "    Packets: Sent = 4, Received = 0, Lost = 4 (100% loss),"]
            lines.append(_failure_line(report))
        return "\n".join(lines)

    lines = [
        "Type escape sequence to abort.",
        f"Sending 5, 100-byte ICMP Echos to {report.target}, timeout is 2 seconds:",
    ]
    if report.success:
        lines += ["!!!!!", "Success rate is 100 percent (5/5), round-trip min/avg/max = 1/1/1 ms"]
    else:
        lines += ["U.U.U" if report.failure.reason == REASON_ACL_DENY else ".....", "Success rate is 0 percent (0/5)"]
        lines.append(_failure_line(report))
    return "\n".join(lines)


def traceroute_output(report: PingReport, host: bool = False) -> str:
    if host:
        lines = [f"Tracing route to {report.target} over a maximum of 30 hops: ", ""]
    else:
        lines = ["Type escape sequence to abort.", f"Tracing the route to {report.target}", ""]
    for hop in report.hops[1:]:
        n = hop.hop - 1
        lines.append(f"  {n:<2} {hop.address} 1 msec 1 msec 1 msec" if not host else f"  {n:<2} 0 ms 0 ms 0 ms {hop.address}")
    if not report.success:
        n = len(report.hops)
        lines.append(f"  {n:<2} *  *  *")
        lines.append(_failure_line(report))
    elif not host and len(report.hops) == 1:
        lines.append(f"  1  {report.target} 1 msec 1 msec 1 msec")
    if host and report.success:
        lines += ["", "Trace complete."]
    return "\n".join(lines)


def link_change_messages(before: DeviceState, after: DeviceState) -> List[str]:
    """Console notifications for interfaces whose state changed on this device."""
    lines: List[str] = []
    for itf in after.sorted_interfaces():
        old = before.interfaces.get(itf.name)
        was_admin = old.admin_up if old else False
        was_up = old.oper_up if old else False
        if itf.admin_up == was_admin and itf.oper_up == was_up:
            continue
        if not itf.admin_up:
            lines.append(f"%LINK-5-CHANGED: Interface {itf.name}, changed state to administratively down")
            if was_up:
                lines.append(f"%LINEPROTO-5-UPDOWN: Line protocol on Interface {itf.name}, changed state to down")
        elif itf.oper_up:
            lines.append(f"%LINK-5-CHANGED: Interface {itf.name}, changed state to up")
            lines.append(f"%LINEPROTO-5-UPDOWN: Line protocol on Interface {itf.name}, changed state to up")
        else:
            lines.append(f"%LINK-3-UPDOWN: Interface {itf.name}, changed state to down")
            if was_up:
                lines.append(f"%LINEPROTO-5-UPDOWN: Line protocol on Interface {itf.name}, changed state to down")
    return lines
