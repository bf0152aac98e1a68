"""JSON snapshots of a Topology value.

The caller owns persistence; these helpers only turn a topology into plain
data and back, validating the shape with pydantic and the cross-device
invariants with ``Topology.verify``.
"""

from __future__ import annotations

from typing import Any, Dict, Optional
import json

from pydantic import TypeAdapter

from .core import Topology
from .errors import PropagationError

SCHEMA = "labsim-topology/v1"

_ADAPTER = TypeAdapter(Topology)


def topology_to_dict(topology: Topology) -> Dict[str, Any]:
    return {"schema": SCHEMA, "topology": _ADAPTER.dump_python(topology, mode="json")}


def topology_from_dict(data: Dict[str, Any]) -> Topology:
    if not isinstance(data, dict):
        raise ValueError("Snapshot must be an object.")
    if data.get("schema") != SCHEMA:
        raise ValueError(f"Unsupported snapshot schema: {data.get('schema')!r}")
    topology = _ADAPTER.validate_python(data.get("topology") or {})
    try:
        topology.verify()
    except PropagationError as e:
        raise ValueError(f"Inconsistent snapshot: {e.message}") from e
    return topology


def dumps(topology: Topology, indent: Optional[int] = None) -> str:
    return json.dumps(topology_to_dict(topology), indent=indent, ensure_ascii=False)


def loads(text: str) -> Topology:
    return topology_from_dict(json.loads(text))
