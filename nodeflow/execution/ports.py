"""Port types, compatibility checks and per-run port data flow."""

from __future__ import annotations

import sys
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any, Literal

from nodeflow.domain.models import Edge, Node

PortType = Literal["text", "number", "boolean", "image", "video", "audio"]
PortDirection = Literal["input", "output"]

PORT_TYPES: tuple[str, ...] = ("text", "number", "boolean", "image", "video", "audio")

# Every ordered pair is listed; anything missing from this table is incompatible.
PORT_COMPATIBILITY: dict[str, dict[str, bool]] = {
    "text": {
        "text": True, "number": False, "boolean": False,
        "image": False, "video": False, "audio": False,
    },
    "number": {
        "text": True, "number": True, "boolean": False,
        "image": False, "video": False, "audio": False,
    },
    "boolean": {
        "text": True, "number": False, "boolean": True,
        "image": False, "video": False, "audio": False,
    },
    "image": {
        "text": False, "number": False, "boolean": False,
        "image": True, "video": False, "audio": False,
    },
    "video": {
        "text": False, "number": False, "boolean": False,
        "image": False, "video": True, "audio": False,
    },
    "audio": {
        "text": False, "number": False, "boolean": False,
        "image": False, "video": False, "audio": True,
    },
}


def are_ports_compatible(source_type: str, target_type: str) -> bool:
    """Check whether a value of ``source_type`` may flow into ``target_type``."""
    return PORT_COMPATIBILITY.get(source_type, {}).get(target_type, False)


def infer_port_type(
    node: Node,
    port: str,
    direction: PortDirection,
    declared: Mapping[str, str] | None = None,
) -> str | None:
    """Infer the value type carried by a node port.

    Lookup order:
    1. The node's own declaration in ``data["outputs"]`` / ``data["inputs"]``
    2. ``declared``: port types published by the node type's executor
    3. The ``out_<type>`` / ``in_<type>`` handle naming convention

    Returns:
        One of ``PORT_TYPES`` or None when the port is untyped (including
        ports explicitly declared as ``"any"``).
    """
    section = node.data.get("outputs" if direction == "output" else "inputs")
    if isinstance(section, Mapping):
        entry = section.get(port)
        if isinstance(entry, Mapping) and "type" in entry:
            return _known(entry["type"])

    if declared and port in declared:
        return _known(declared[port])

    prefix = "out_" if direction == "output" else "in_"
    if port.startswith(prefix):
        return _known(port[len(prefix):])
    return None


def _known(port_type: Any) -> str | None:
    return port_type if port_type in PORT_TYPES else None


@dataclass
class PortConnection:
    """A connection between two ports."""

    source_node: str
    source_port: str
    target_node: str
    target_port: str

    @classmethod
    def from_edge(cls, edge: Edge) -> PortConnection:
        return cls(edge.source, edge.source_port, edge.target, edge.target_port)

    def __repr__(self) -> str:
        return f"{self.source_node}.{self.source_port} → {self.target_node}.{self.target_port}"


class PortRegistry:
    """Per-run registry of port connections and the values produced on them.

    Each node task writes only its own ``(node_id, port)`` slots.
    """

    def __init__(self, edges: Iterable[Edge] = ()) -> None:
        self._incoming: dict[str, list[PortConnection]] = {}
        self.values: dict[tuple[str, str], Any] = {}  # (node_id, port) → value
        for edge in edges:
            self.add_connection(PortConnection.from_edge(edge))

    def add_connection(self, conn: PortConnection) -> None:
        self._incoming.setdefault(conn.target_node, []).append(conn)
        sys.stderr.write(f"[PORTS] Connection: {conn}\n")
        sys.stderr.flush()

    def set_outputs(self, node_id: str, outputs: Mapping[str, Any]) -> None:
        for port, value in outputs.items():
            self.values[(node_id, port)] = value
        sys.stderr.write(f"[PORTS] Set {node_id} outputs: {sorted(outputs)}\n")
        sys.stderr.flush()

    def get_value(self, node_id: str, port: str) -> Any | None:
        return self.values.get((node_id, port))

    def get_inputs_for_node(self, node_id: str) -> dict[str, Any]:
        """Collect the values arriving on a node's input ports.

        Returns:
            Mapping of target port name to the upstream value. Ports whose
            source produced nothing are left out.
        """
        inputs: dict[str, Any] = {}
        for conn in self._incoming.get(node_id, []):
            key = (conn.source_node, conn.source_port)
            if key in self.values:
                inputs[conn.target_port] = self.values[key]
        return inputs
