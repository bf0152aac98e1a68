"""
Optional: MCP server exposing the lab simulator as tools.

An MCP client (MCP Inspector, a desktop assistant, a remote agent) can build a
lab, push IOS commands to its devices and get back the device output together
with the updated topology snapshot.

Run (example):
  pip install -e ".[mcp]"
  python -m mcp_server.lab_mcp_server

Then connect an MCP client to:
  http://localhost:8000/mcp
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from mcp.server.fastmcp import FastMCP

from labsim import LabSession
from labsim.snapshot import topology_from_dict

mcp = FastMCP(
    "Lab Simulator MCP Server",
    instructions=(
        "Tools for running Cisco-IOS-like commands against a simulated lab. "
        "Every call takes a topology snapshot and returns the updated one; the server keeps no state."
    ),
    stateless_http=True,
    json_response=True,
)


def _result_dict(result) -> Dict[str, Any]:
    out: Dict[str, Any] = {
        "valid": result.valid,
        "prompt": result.prompt,
        "output": result.output,
    }
    if result.mode_change is not None:
        out["modeChange"] = result.mode_change.value
    if result.hostname_change is not None:
        out["hostnameChange"] = result.hostname_change
    if result.close_session:
        out["closeSession"] = True
    if result.error is not None:
        out["error"] = {"kind": result.error.kind.value, "message": result.error.message}
    return out


@mcp.tool()
def validate_topology_snapshot(snapshot: Dict[str, Any]) -> Dict[str, Any]:
    """Validate a topology snapshot; returns problems list."""
    try:
        topology_from_dict(snapshot)
    except ValueError as e:
        return {"ok": False, "problems": [str(e)]}
    return {"ok": True, "problems": []}


@mcp.tool()
def run_lab_commands(snapshot: Dict[str, Any], device_id: str, commands: List[str]) -> Dict[str, Any]:
    """Run CLI lines on one device, in order, and return per-line results plus the new snapshot."""
    session = LabSession.from_snapshot(snapshot)
    results = session.run(device_id, commands)
    return {
        "results": [dict(_result_dict(r), command=c) for c, r in zip(commands, results)],
        "snapshot": session.snapshot(),
    }


@mcp.tool()
def new_lab(devices: List[Dict[str, str]], links: Optional[List[Dict[str, str]]] = None) -> Dict[str, Any]:
    """Build a lab snapshot.

    devices: [{"id": "R1", "type": "router|switch|pc", "hostname": "R1"}]
    links:   [{"a": "R1", "a_port": "Gi0/0", "b": "R2", "b_port": "Gi0/0"}]
    """
    session = LabSession()
    for d in devices:
        session.add_device(d["id"], d["type"], d.get("hostname"))
    for e in links or []:
        session.connect(e["a"], e["a_port"], e["b"], e["b_port"])
    return session.snapshot()


@mcp.tool()
def generate_two_router_lab_configured() -> Dict[str, Any]:
    """Generate a configured lab: PC1 -- R1 -- R2 -- PC2 with OSPF between the routers."""
    session = LabSession()
    for dev_id, typ in (("PC1", "pc"), ("R1", "router"), ("R2", "router"), ("PC2", "pc")):
        session.add_device(dev_id, typ)
    session.connect("PC1", "Fa0", "R1", "Gi0/0")
    session.connect("R1", "Gi0/1", "R2", "Gi0/0")
    session.connect("R2", "Gi0/1", "PC2", "Fa0")

    session.run("PC1", ["ip 10.0.1.10 255.255.255.0 10.0.1.1"])
    session.run("PC2", ["ip 10.0.2.10 255.255.255.0 10.0.2.1"])
    for dev_id, lan, transit in (("R1", "10.0.1.1", "10.0.12.1"), ("R2", "10.0.2.1", "10.0.12.2")):
        lan_if, transit_if = ("Gi0/0", "Gi0/1") if dev_id == "R1" else ("Gi0/1", "Gi0/0")
        session.run(
            dev_id,
            [
                "enable",
                "configure terminal",
                f"interface {lan_if}",
                f"ip address {lan} 255.255.255.0",
                "no shutdown",
                f"interface {transit_if}",
                f"ip address {transit} 255.255.255.0",
                "no shutdown",
                "router ospf 1",
                "network 10.0.0.0 0.0.255.255 area 0",
                "end",
            ],
        )
    return session.snapshot()


if __name__ == "__main__":
    # Streamable HTTP transport is recommended in the MCP SDK docs.
    mcp.run(transport="streamable-http")
