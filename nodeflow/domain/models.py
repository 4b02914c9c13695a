"""Pydantic domain models for nodeflow workflows.

These models are the stable contract between the transport layers (CLI, RPC)
and the execution core:
- Node / Edge / Position: the graph as authored in the editor
- Variable: a named, typed value available to placeholder resolution
- NodeResult / RunResult: what a run hands back
- RunWorkflowRequest: shape validation for incoming run requests
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_PORT = "default"

VariableType = Literal["text", "number", "boolean", "image", "video", "audio"]

MAX_NODES = 100
MAX_EDGES = 500


class Position(BaseModel):
    """2D position in the editor canvas (ignored by the engine)."""

    model_config = ConfigDict(frozen=True)

    x: float = Field(..., description="X coordinate")
    y: float = Field(..., description="Y coordinate")


class Node(BaseModel):
    """A unit of work in a workflow graph."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1, description="Unique identifier within a run")
    type: str = Field(..., min_length=1, description="Node type tag selecting the executor")
    position: Position | None = Field(default=None, description="Optional canvas position")
    data: dict[str, Any] = Field(default_factory=dict, description="Node parameters")


class Edge(BaseModel):
    """A directed dependency between two node ports."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(..., min_length=1, description="Edge identifier")
    source: str = Field(..., min_length=1, description="Source node id")
    target: str = Field(..., min_length=1, description="Target node id")
    source_handle: str | None = Field(default=None, alias="sourceHandle", description="Output port name")
    target_handle: str | None = Field(default=None, alias="targetHandle", description="Input port name")

    @property
    def source_port(self) -> str:
        return self.source_handle or DEFAULT_PORT

    @property
    def target_port(self) -> str:
        return self.target_handle or DEFAULT_PORT


class Variable(BaseModel):
    """A named workflow variable."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Variable identifier")
    name: str = Field(..., min_length=1, description="Name used in {{placeholders}}")
    type: VariableType = Field("text", description="Declared value type")
    value: Any = Field(default=None, description="Raw value, coerced per type at run start")
    description: str | None = Field(default=None, description="Optional description")


class NodeStatus(str, Enum):
    """Lifecycle of a node inside a single run."""

    PENDING = "pending"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"

    @property
    def is_terminal(self) -> bool:
        return self not in (NodeStatus.PENDING, NodeStatus.RUNNING)


class NodeResult(BaseModel):
    """Final state of one node after a run."""

    model_config = ConfigDict(frozen=True)

    status: NodeStatus
    output: dict[str, Any] | None = None
    error: str | None = None
    attempts: int = 0


class RunResult(BaseModel):
    """Outcome of a workflow run.

    On validation failure only ``success``, ``error`` and ``rejected`` are set. Otherwise
    ``nodes`` holds the input nodes (input order) with status, outputs and
    errors written into their ``data``, and ``results`` the per-node map.
    """

    model_config = ConfigDict(frozen=True)

    success: bool
    nodes: list[Node] | None = None
    results: dict[str, NodeResult] | None = None
    execution_order: list[str] | None = None
    error: str | None = None
    cancelled: bool = False
    rejected: bool = Field(default=False, description="Refused before any node ran (payload or validation errors)")

    def status_of(self, node_id: str) -> NodeStatus | None:
        if self.results is None or node_id not in self.results:
            return None
        return self.results[node_id].status

    def output_of(self, node_id: str) -> dict[str, Any] | None:
        if self.results is None or node_id not in self.results:
            return None
        return self.results[node_id].output


class RunWorkflowRequest(BaseModel):
    """Shape validation for a run request (transport limits included)."""

    nodes: list[Node] = Field(default_factory=list, max_length=MAX_NODES)
    edges: list[Edge] = Field(default_factory=list, max_length=MAX_EDGES)
    variables: list[Variable] | dict[str, Any] | None = None
