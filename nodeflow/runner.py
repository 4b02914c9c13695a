"""Workflow file runner.

Loads a workflow definition (``{"nodes": [...], "edges": [...],
"variables": ...}``) from a JSON file, checks it against the request schema
and hands it to an ``ExecutionEngine``. File and schema problems are returned
as failed ``RunResult`` values rather than raised.
"""

from __future__ import annotations

import asyncio
import json
import sys
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from nodeflow.config import EngineConfig
from nodeflow.domain.models import RunResult, RunWorkflowRequest, Variable
from nodeflow.execution.engine import ExecutionEngine, ValidationReport
from nodeflow.registry import ExecutorRegistry


class WorkflowLoadError(Exception):
    """The workflow file is missing, not JSON, or does not match the schema."""


def load_workflow(file_path: str | Path) -> RunWorkflowRequest:
    """Read and shape-validate a workflow file.

    Raises:
        WorkflowLoadError: With a readable message for any problem.
    """
    file_path = Path(file_path)
    if not file_path.exists():
        raise WorkflowLoadError(f"Workflow file not found: {file_path}")
    if file_path.suffix != ".json":
        raise WorkflowLoadError(f"Workflow file must be a .json file: {file_path}")

    try:
        payload = json.loads(file_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise WorkflowLoadError(f"Invalid JSON in {file_path}: {exc}") from exc

    try:
        return RunWorkflowRequest.model_validate(payload)
    except ValidationError as exc:
        raise WorkflowLoadError(f"Validation failed: {exc}") from exc


def merge_variables(
    variables: list[Variable] | dict[str, Any] | None,
    overrides: Mapping[str, Any],
) -> list[Variable] | dict[str, Any] | None:
    """Apply name → value overrides on top of a workflow's variables.

    Typed variables keep their declared type (the override value is coerced
    at run start); unknown names are added as text variables.
    """
    if not overrides:
        return variables
    if variables is None or isinstance(variables, dict):
        return {**(variables or {}), **overrides}

    merged = [
        variable.model_copy(update={"value": overrides[variable.name]})
        if variable.name in overrides
        else variable
        for variable in variables
    ]
    known = {variable.name for variable in variables}
    for name, value in overrides.items():
        if name not in known:
            merged.append(Variable(id=f"cli:{name}", name=name, type="text", value=value))
    return merged


class WorkflowRunner:
    """Runs workflow files through an execution engine.

    Example:
        ```python
        runner = WorkflowRunner()
        result = await runner.run_workflow_file("examples/hello.workflow.json")
        print(result.success, result.error)
        ```
    """

    def __init__(
        self,
        *,
        engine: ExecutionEngine | None = None,
        registry: ExecutorRegistry | None = None,
        config: EngineConfig | None = None,
    ) -> None:
        self.engine = engine or ExecutionEngine(registry=registry, config=config)

    async def run_workflow_file(
        self,
        file_path: str | Path,
        variables: Mapping[str, Any] | None = None,
        *,
        cancel_event: asyncio.Event | None = None,
    ) -> RunResult:
        """Execute a workflow from a JSON file.

        Args:
            file_path: Path to the workflow file
            variables: Name → value overrides for the workflow's variables
            cancel_event: Optional abort signal forwarded to the engine

        Returns:
            RunResult (failed, with ``error`` set, when the file cannot be loaded)
        """
        sys.stderr.write(f"[RUNNER] run_workflow_file: {file_path}\n")
        sys.stderr.flush()

        try:
            request = load_workflow(file_path)
        except WorkflowLoadError as exc:
            sys.stderr.write(f"[RUNNER] ERROR: {exc}\n")
            sys.stderr.flush()
            return RunResult(success=False, error=str(exc))

        return await self.run_request(request, variables, cancel_event=cancel_event)

    async def run_request(
        self,
        request: RunWorkflowRequest,
        variables: Mapping[str, Any] | None = None,
        *,
        cancel_event: asyncio.Event | None = None,
    ) -> RunResult:
        merged = merge_variables(request.variables, variables or {})
        sys.stderr.write(
            f"[RUNNER] Executing {len(request.nodes)} nodes, {len(request.edges)} edges\n"
        )
        sys.stderr.flush()
        return await self.engine.execute(request.nodes, request.edges, merged, cancel_event=cancel_event)

    def validate_workflow_file(
        self,
        file_path: str | Path,
        variables: Mapping[str, Any] | None = None,
    ) -> ValidationReport:
        """Validate a workflow file without running it.

        Raises:
            WorkflowLoadError: If the file cannot be loaded.
        """
        request = load_workflow(file_path)
        merged = merge_variables(request.variables, variables or {})
        return self.engine.validate(request.nodes, request.edges, merged)


def run_workflow_sync(
    file_path: str | Path,
    variables: Mapping[str, Any] | None = None,
    *,
    config: EngineConfig | None = None,
) -> RunResult:
    """Synchronous wrapper for running a workflow file.

    Example:
        ```python
        result = run_workflow_sync("examples/hello.workflow.json", {"name": "Ada"})
        print(result.results if result.success else result.error)
        ```
    """
    runner = WorkflowRunner(config=config)
    return asyncio.run(runner.run_workflow_file(file_path, variables))
