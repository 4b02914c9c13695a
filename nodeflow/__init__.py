"""nodeflow core package.

Executes node/edge workflow graphs: validation, ordering, variable
resolution and concurrent node execution with retries.

`nodeflow.execution` pulls in Pydantic and LangChain. To keep lightweight
entrypoints (``nodeflow --version``) cheap, the public symbols below are
imported lazily.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

__version__ = "0.1.0"

__all__ = ["EngineConfig", "ExecutionEngine", "ExecutorRegistry", "RunResult", "__version__"]


if TYPE_CHECKING:
    from .config import EngineConfig as EngineConfig
    from .domain.models import RunResult as RunResult
    from .execution.engine import ExecutionEngine as ExecutionEngine
    from .registry import ExecutorRegistry as ExecutorRegistry


def __getattr__(name: str) -> Any:
    if name == "EngineConfig":
        from .config import EngineConfig

        return EngineConfig
    if name == "ExecutionEngine":
        from .execution.engine import ExecutionEngine

        return ExecutionEngine
    if name == "ExecutorRegistry":
        from .registry import ExecutorRegistry

        return ExecutorRegistry
    if name == "RunResult":
        from .domain.models import RunResult

        return RunResult
    raise AttributeError(name)
