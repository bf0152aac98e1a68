from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple, Union
import ipaddress
import re

from .errors import CLIError, ErrorKind, INCOMPLETE_COMMAND, INVALID_INPUT
from .grammar import ArgKind, GrammarNode, Handler, child_for
from .state import DeviceState, interface_kind, normalize_interface_name, split_subinterface


@dataclass(frozen=True)
class ResolvedCommand:
    handler: Handler
    args: Dict[str, Any]
    path: Tuple[str, ...]
    # Input column of each bound argument, used to re-resolve `do` payloads.
    columns: Dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class ResolutionError:
    kind: ErrorKind
    token: str
    position: int
    column: int
    message: str

    def to_exception(self) -> CLIError:
        return CLIError(self.message, kind=self.kind, token=self.token, position=self.position, column=self.column)


Resolution = Union[ResolvedCommand, ResolutionError]


class ArgumentError(ValueError):
    pass


_TOKEN_RE = re.compile(r"\S+")
_MAC_RE = re.compile(r"^([0-9a-f]{4})\.([0-9a-f]{4})\.([0-9a-f]{4})$|^([0-9a-f]{2}[:-]){5}[0-9a-f]{2}$")
_IFTYPE_RE = re.compile(r"^[A-Za-z][A-Za-z-]*$")


def tokenize(line: str) -> List[Tuple[str, int]]:
    """Whitespace split keeping each token's column."""
    return [(m.group(0), m.start()) for m in _TOKEN_RE.finditer(line or "")]


def ambiguous_message(token: str) -> str:
    return f'% Ambiguous command:  "{token}"'


# ───────────────────────────── Argument validators ─────────────────────────────


def _ipv4(raw: str) -> str:
    try:
        return str(ipaddress.IPv4Address(raw))
    except ValueError as e:
        raise ArgumentError(str(e)) from e


def _mask(raw: str) -> str:
    value = int(ipaddress.IPv4Address(_ipv4(raw)))
    inverted = (~value) & 0xFFFFFFFF
    if inverted & (inverted + 1):
        raise ArgumentError(f"non-contiguous mask {raw}")
    return str(ipaddress.IPv4Address(value))


def _int(raw: str, low: Optional[int], high: Optional[int]) -> int:
    if not (raw.isascii() and raw.isdigit()):
        raise ArgumentError(f"not a number: {raw}")
    value = int(raw)
    if low is not None and value < low:
        raise ArgumentError(f"{value} below {low}")
    if high is not None and value > high:
        raise ArgumentError(f"{value} above {high}")
    return value


def _mac(raw: str) -> str:
    text = raw.lower()
    if not _MAC_RE.match(text):
        raise ArgumentError(f"bad MAC address {raw}")
    digits = re.sub(r"[^0-9a-f]", "", text)
    return f"{digits[0:4]}.{digits[4:8]}.{digits[8:12]}"


def _vlan_list(raw: str) -> List[int]:
    vlans = set()
    for part in raw.split(","):
        if not part:
            raise ArgumentError(f"bad VLAN list {raw}")
        if "-" in part:
            lo_s, _, hi_s = part.partition("-")
            lo, hi = _int(lo_s, 1, 4094), _int(hi_s, 1, 4094)
            if lo > hi:
                raise ArgumentError(f"bad VLAN range {part}")
            vlans.update(range(lo, hi + 1))
        else:
            vlans.add(_int(part, 1, 4094))
    return sorted(vlans)


def _interface(raw: str, device: Optional[DeviceState]) -> str:
    name = normalize_interface_name(raw)
    if name is None:
        raise ArgumentError(f"unknown interface {raw}")
    if device is None or name in device.interfaces:
        return name
    if device.device_type == "pc":
        raise ArgumentError(f"no interface {name}")
    kind = interface_kind(name)
    if kind in ("loopback", "port-channel"):
        return name
    if kind == "svi" and device.device_type == "switch":
        return name
    if kind == "subinterface":
        parent, _sub = split_subinterface(name)
        if parent in device.interfaces and interface_kind(parent) == "physical":
            return name
    raise ArgumentError(f"no interface {name}")


def _next_hop(raw: str, device: Optional[DeviceState]) -> str:
    try:
        return _ipv4(raw)
    except ArgumentError:
        pass
    name = normalize_interface_name(raw)
    if name is None or (device is not None and name not in device.interfaces):
        raise ArgumentError(f"bad next hop {raw}")
    return name


def validate(node: GrammarNode, raw: str, device: Optional[DeviceState] = None) -> Any:
    kind = node.kind
    if kind in (ArgKind.WORD, ArgKind.LINE):
        return raw
    if kind is ArgKind.INT:
        return _int(raw, node.low, node.high)
    if kind in (ArgKind.IPV4, ArgKind.WILDCARD):
        return _ipv4(raw)
    if kind is ArgKind.MASK:
        return _mask(raw)
    if kind is ArgKind.MAC:
        return _mac(raw)
    if kind is ArgKind.INTERFACE:
        return _interface(raw, device)
    if kind is ArgKind.NEXT_HOP:
        return _next_hop(raw, device)
    if kind is ArgKind.VLAN_LIST:
        return _vlan_list(raw)
    raise ArgumentError(f"unsupported argument kind {kind}")


# ───────────────────────────── Resolution ─────────────────────────────


def resolve(line: str, root: GrammarNode, device: Optional[DeviceState] = None, column_offset: int = 0) -> Optional[Resolution]:
    """Walk `line` down the grammar rooted at `root`.

    Returns None for blank input, otherwise a ResolvedCommand or a
    ResolutionError describing the first offending token.
    """
    tokens = tokenize(line)
    if not tokens:
        return None

    node = root
    args: Dict[str, Any] = {}
    columns: Dict[str, int] = {}
    path: List[str] = []

    i = 0
    while i < len(tokens):
        text, col = tokens[i]
        candidates = child_for(node, text)
        if not candidates:
            return ResolutionError(ErrorKind.UNRECOGNIZED, text, i, col + column_offset, INVALID_INPUT)
        if len(candidates) > 1:
            return ResolutionError(ErrorKind.AMBIGUOUS, text, i, col + column_offset, ambiguous_message(text))

        child = candidates[0]
        if not child.is_placeholder:
            if child.binds:
                args[child.binds] = child.token
            path.append(child.token)
            node = child
            i += 1
            continue

        if child.kind is ArgKind.LINE:
            value = line[col:].strip()
            args[child.name] = value
            columns[child.name] = col + column_offset
            path.append(value)
            node = child
            break

        # "interface vlan 10" style: a bare type name followed by its number.
        consumed = 1
        raw = text
        if (
            child.kind is ArgKind.INTERFACE
            and _IFTYPE_RE.match(text)
            and i + 1 < len(tokens)
            and tokens[i + 1][0][:1] in "0123456789"
        ):
            raw = text + tokens[i + 1][0]
            consumed = 2

        try:
            value = validate(child, raw, device)
        except ArgumentError:
            return ResolutionError(ErrorKind.INVALID_ARGUMENT, text, i, col + column_offset, INVALID_INPUT)

        args[child.name] = value
        columns[child.name] = col + column_offset
        path.append(str(value))
        node = child
        i += consumed

    if node.handler is None:
        text, col = tokens[-1]
        return ResolutionError(ErrorKind.INCOMPLETE, text, len(tokens) - 1, col + column_offset, INCOMPLETE_COMMAND)

    return ResolvedCommand(handler=node.handler, args=args, path=tuple(path), columns=columns)
