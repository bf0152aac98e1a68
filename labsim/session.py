from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional
import threading

from .cli import CLIEngine, CLIResult
from .core import Topology, add_device, connect_ports, disconnect_ports, remove_device
from .explain import Explainer
from .session_log import SessionLogger
from .snapshot import topology_from_dict, topology_to_dict
from .state import DeviceState


class LabSession:
    """Owner of one topology value.

    Commands and topology edits against the same session are serialized;
    independent sessions share nothing.
    """

    def __init__(
        self,
        topology: Optional[Topology] = None,
        explainer: Optional[Explainer] = None,
        session_log: Optional[SessionLogger] = None,
    ):
        self.topology = topology if topology is not None else Topology()
        self.log = session_log if session_log is not None else SessionLogger()
        self.engine = CLIEngine(explainer=explainer, session_log=self.log)
        self._lock = threading.Lock()

    # ───────────────────────────── Topology edits ─────────────────────────────

    def add_device(self, device_id: str, device_type: str, hostname: Optional[str] = None) -> DeviceState:
        with self._lock:
            self.topology = add_device(self.topology, device_id, device_type, hostname)
            self.log.add("device_added", device=device_id, type=device_type, hostname=hostname or device_id)
            return self.topology.device(device_id)

    def remove_device(self, device_id: str) -> None:
        with self._lock:
            self.topology = remove_device(self.topology, device_id)
            self.log.add("device_removed", device=device_id)

    def connect(self, device_a: str, port_a: str, device_b: str, port_b: str) -> None:
        with self._lock:
            self.topology = connect_ports(self.topology, device_a, port_a, device_b, port_b)
            link = self.topology.links[-1]
            self.log.add("link_added", link=link.link_id, a=f"{link.a.device}:{link.a.port}", b=f"{link.b.device}:{link.b.port}")

    def disconnect(self, device_id: str, port: str) -> None:
        with self._lock:
            self.topology = disconnect_ports(self.topology, device_id, port)
            self.log.add("link_removed", device=device_id, port=port)

    # ───────────────────────────── Commands ─────────────────────────────

    def execute(self, device_id: str, line: str) -> CLIResult:
        with self._lock:
            result = self.engine.execute(self.topology, device_id, line)
            self.topology = result.topology
            return result

    def run(self, device_id: str, lines: Iterable[str], stop_on_error: bool = False) -> List[CLIResult]:
        results: List[CLIResult] = []
        for line in lines:
            result = self.execute(device_id, line)
            results.append(result)
            if stop_on_error and not result.valid:
                break
        return results

    def device(self, device_id: str) -> DeviceState:
        return self.topology.device(device_id)

    # ───────────────────────────── Snapshots ─────────────────────────────

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            return topology_to_dict(self.topology)

    @classmethod
    def from_snapshot(cls, data: Dict[str, Any], explainer: Optional[Explainer] = None) -> "LabSession":
        return cls(topology=topology_from_dict(data), explainer=explainer)
