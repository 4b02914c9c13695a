"""Node executor capability.

An executor runs one node: it receives the values arriving on the node's
input ports and the node's resolved parameters, and returns a mapping of
output port name to value. Failures are signalled by raising; raise
``TransientExecutionError`` for failures worth retrying and
``TerminalExecutionError`` for ones that are not.
"""

from __future__ import annotations

import inspect
from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping
from typing import Any


class NodeExecutor(ABC):
    """Base class for node executors.

    ``input_ports`` / ``output_ports`` publish the value type of each port
    so edges can be type-checked without per-node declarations.
    """

    input_ports: Mapping[str, str] = {}
    output_ports: Mapping[str, str] = {}

    @abstractmethod
    async def execute(self, inputs: dict[str, Any], params: dict[str, Any]) -> Any:
        """Run the node.

        Args:
            inputs: Target port name → upstream value
            params: The node's ``data`` with placeholders resolved

        Returns:
            Output port name → value (any other value lands on the
            ``default`` port).
        """


ExecutorFunction = Callable[[dict[str, Any], dict[str, Any]], Any]


class FunctionExecutor(NodeExecutor):
    """Adapts a plain (sync or async) function to the executor interface."""

    def __init__(
        self,
        func: ExecutorFunction,
        *,
        input_ports: Mapping[str, str] | None = None,
        output_ports: Mapping[str, str] | None = None,
    ) -> None:
        self.func = func
        self.input_ports = dict(input_ports or {})
        self.output_ports = dict(output_ports or {})

    async def execute(self, inputs: dict[str, Any], params: dict[str, Any]) -> Any:
        if inspect.iscoroutinefunction(self.func):
            return await self.func(inputs, params)
        result = self.func(inputs, params)
        if inspect.isawaitable(result):
            result = await result
        return result

    def __repr__(self) -> str:
        return f"FunctionExecutor({getattr(self.func, '__name__', self.func)!r})"
