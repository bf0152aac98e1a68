"""Deterministic Cisco-IOS-like CLI and topology simulator.

Devices are configured one command line at a time; every command returns a
new Topology value with links, interface status and routes recomputed.
"""

from .core import Topology, add_device, connect_ports, disconnect_ports, remove_device
from .cli import CLIEngine, CLIResult, execute
from .errors import CLIError, ErrorKind
from .explain import Explainer, NullExplainer
from .session import LabSession
from .session_log import SessionLogger
from .snapshot import dumps, loads, topology_from_dict, topology_to_dict
from .state import DeviceState, Mode, new_device

__all__ = [
    "Topology",
    "add_device",
    "remove_device",
    "connect_ports",
    "disconnect_ports",
    "CLIEngine",
    "CLIResult",
    "execute",
    "CLIError",
    "ErrorKind",
    "Explainer",
    "NullExplainer",
    "LabSession",
    "SessionLogger",
    "dumps",
    "loads",
    "topology_to_dict",
    "topology_from_dict",
    "DeviceState",
    "Mode",
    "new_device",
]
