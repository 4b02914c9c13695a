"""Executor registry.

Maps node type tags (e.g. ``"llm"``, ``"imageGen"``) to executors. A registry
is plain data handed to an ``ExecutionEngine`` at construction time; there is
no process-wide instance.

Example:
    registry = ExecutorRegistry()

    @registry.register_executor("uppercase", output_ports={"out_text": "text"})
    def uppercase(inputs: dict, params: dict) -> dict:
        return {"out_text": str(inputs.get("in_text", "")).upper()}

    engine = ExecutionEngine(registry=registry)
"""

from __future__ import annotations

from collections.abc import Callable, Iterator, Mapping
from typing import Literal

from langchain_core.language_models import BaseChatModel

from nodeflow.executors.base import ExecutorFunction, FunctionExecutor, NodeExecutor
from nodeflow.executors.builtin import InputExecutor, OutputExecutor, VariableExecutor
from nodeflow.executors.llm import LLMExecutor
from nodeflow.executors.media import ExtractFrameExecutor, ImageGenExecutor, VideoGenExecutor


class ExecutorRegistry:
    """Registry of node executors keyed by node type."""

    def __init__(self) -> None:
        self._executors: dict[str, NodeExecutor] = {}

    def register(self, node_type: str, executor: NodeExecutor | ExecutorFunction) -> None:
        """Register an executor for a node type.

        Args:
            node_type: Node type tag
            executor: A NodeExecutor, or a function ``(inputs, params) -> outputs``
                (sync or async)
        """
        if not isinstance(executor, NodeExecutor):
            if not callable(executor):
                raise TypeError(f"Executor for '{node_type}' must be a NodeExecutor or callable")
            executor = FunctionExecutor(executor)
        self._executors[node_type] = executor

    def register_executor(
        self,
        node_type: str,
        *,
        input_ports: Mapping[str, str] | None = None,
        output_ports: Mapping[str, str] | None = None,
    ) -> Callable[[ExecutorFunction], ExecutorFunction]:
        """Decorator registering a function as the executor for ``node_type``."""
        def decorator(func: ExecutorFunction) -> ExecutorFunction:
            self.register(
                node_type,
                FunctionExecutor(func, input_ports=input_ports, output_ports=output_ports),
            )
            return func
        return decorator

    def get(self, node_type: str) -> NodeExecutor | None:
        return self._executors.get(node_type)

    def has_executor(self, node_type: str) -> bool:
        return node_type in self._executors

    def port_types(self, node_type: str, direction: Literal["input", "output"]) -> Mapping[str, str]:
        """Port types published by the executor for ``node_type``."""
        executor = self._executors.get(node_type)
        if executor is None:
            return {}
        return executor.input_ports if direction == "input" else executor.output_ports

    def types(self) -> list[str]:
        return sorted(self._executors)

    def __contains__(self, node_type: object) -> bool:
        return node_type in self._executors

    def __iter__(self) -> Iterator[str]:
        return iter(self.types())

    def __len__(self) -> int:
        return len(self._executors)


def create_default_registry(llm: BaseChatModel | None = None) -> ExecutorRegistry:
    """Build a registry with every built-in node type.

    Args:
        llm: Chat model for ``llm`` nodes; None uses the offline mock reply.
    """
    registry = ExecutorRegistry()

    registry.register("inputText", InputExecutor("out_text", "text"))
    registry.register("inputImage", InputExecutor("out_image", "image"))
    registry.register("inputVideo", InputExecutor("out_video", "video"))
    registry.register("inputAudio", InputExecutor("out_audio", "audio"))
    registry.register("systemPrompt", InputExecutor("out_text", "text"))

    registry.register("llm", LLMExecutor(llm))
    image_gen = ImageGenExecutor()
    registry.register("imageGen", image_gen)
    registry.register("upscaler", image_gen)
    registry.register("videoGen", VideoGenExecutor())
    registry.register("extractFrame", ExtractFrameExecutor())
    registry.register("audioGen", InputExecutor("out_audio", "audio"))

    registry.register("output", OutputExecutor())
    registry.register("variable", VariableExecutor())
    registry.register("comment", InputExecutor())
    return registry
