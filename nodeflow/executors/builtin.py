"""Executors for input, variable and output nodes."""

from __future__ import annotations

from typing import Any

from nodeflow.executors.base import NodeExecutor


class InputExecutor(NodeExecutor):
    """Input nodes publish the values preset on their output ports.

    The engine already carries ``data["outputs"][port]["value"]`` forward, so
    this only adds ``params["value"]`` when the node stores its value there.
    """

    def __init__(self, port: str | None = None, port_type: str | None = None) -> None:
        self.port = port
        self.output_ports = {port: port_type} if port and port_type else {}

    async def execute(self, inputs: dict[str, Any], params: dict[str, Any]) -> dict[str, Any]:
        if self.port and "value" in params:
            return {self.port: params["value"]}
        return {}


class VariableExecutor(NodeExecutor):
    """Variable nodes output their stored value on ``out_value``."""

    async def execute(self, inputs: dict[str, Any], params: dict[str, Any]) -> dict[str, Any]:
        if "value" in params:
            value = params["value"]
        else:
            meta = params.get("meta") or {}
            value = meta.get("value", "")
        return {"out_value": value}


class OutputExecutor(NodeExecutor):
    """Terminal nodes: inputs are passed through as outputs."""

    async def execute(self, inputs: dict[str, Any], params: dict[str, Any]) -> dict[str, Any]:
        return dict(inputs)
