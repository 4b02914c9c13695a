"""Execution engine with graph-based node orchestration."""

from __future__ import annotations

import asyncio
import sys
from collections import ChainMap
from collections.abc import Awaitable, Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from pydantic import ValidationError

from nodeflow.config import EngineConfig
from nodeflow.domain.errors import (
    CancellationError,
    EmptyWorkflowError,
    IncompatiblePortsError,
    InvalidTransitionError,
    ResolutionError,
    VariableDefinitionError,
    WorkflowValidationError,
)
from nodeflow.domain.models import (
    DEFAULT_PORT,
    Edge,
    Node,
    NodeResult,
    NodeStatus,
    RunResult,
    Variable,
)
from nodeflow.execution.graph import DependencyGraph
from nodeflow.execution.ports import PortRegistry, are_ports_compatible, infer_port_type
from nodeflow.execution.resolver import VariableContext, VariableResolver, build_variable_context
from nodeflow.execution.retry import RetryPolicy, is_retryable_error
from nodeflow.executors.base import NodeExecutor
from nodeflow.registry import ExecutorRegistry, create_default_registry

Variables = Iterable[Variable] | Mapping[str, Any] | None

_TRANSITIONS: dict[NodeStatus, set[NodeStatus]] = {
    NodeStatus.PENDING: {NodeStatus.RUNNING, NodeStatus.SKIPPED},
    NodeStatus.RUNNING: {NodeStatus.SUCCEEDED, NodeStatus.FAILED},
}


@dataclass
class NodeState:
    """Mutable result slot for one node; only that node's task writes it."""

    status: NodeStatus = NodeStatus.PENDING
    output: dict[str, Any] | None = None
    error: str | None = None
    attempts: int = 0

    def transition(self, status: NodeStatus) -> None:
        if status not in _TRANSITIONS.get(self.status, set()):
            raise InvalidTransitionError(f"Cannot move node from {self.status.value} to {status.value}")
        self.status = status

    def snapshot(self) -> NodeResult:
        return NodeResult(
            status=self.status,
            output=self.output,
            error=self.error,
            attempts=self.attempts,
        )


@dataclass
class ValidationReport:
    """Every problem found before execution, plus the order when there are none."""

    errors: list[WorkflowValidationError] = field(default_factory=list)
    order: list[str] = field(default_factory=list)
    graph: DependencyGraph | None = None
    variables: VariableContext = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.errors

    def summary(self) -> str:
        if len(self.errors) == 1:
            return str(self.errors[0])
        details = "; ".join(str(error) for error in self.errors)
        return f"Workflow validation failed with {len(self.errors)} errors: {details}"


@dataclass
class ExecutionContext:
    """Run-scoped state. Created per ``execute`` call and dropped afterwards."""

    nodes: dict[str, Node]
    graph: DependencyGraph
    variables: VariableContext
    order: list[str]
    ports: PortRegistry
    states: dict[str, NodeState]
    dispatched: list[str] = field(default_factory=list)
    cancel_reason: str | None = None

    @classmethod
    def from_report(cls, nodes: Sequence[Node], edges: Sequence[Edge], report: ValidationReport) -> ExecutionContext:
        if report.graph is None or not report.ok:
            raise ValueError("Cannot build an execution context from a failed validation report")
        return cls(
            nodes={node.id: node for node in nodes},
            graph=report.graph,
            variables=report.variables,
            order=report.order,
            ports=PortRegistry(edges),
            states={node.id: NodeState() for node in nodes},
        )

    @property
    def cancelled(self) -> bool:
        return self.cancel_reason is not None


class ExecutionEngine:
    """Graph-based execution engine with port data flow.

    This engine:
    1. Validates the graph (ids, endpoints, cycles, port types, variables)
    2. Orders nodes topologically (ties broken by ascending node id)
    3. Admits ready nodes up to ``max_parallelism`` and runs them as tasks
    4. Resolves ``{{variables}}`` in each node's data, including values
       arriving over edges
    5. Retries transient executor failures with exponential backoff
    6. Skips everything downstream of a failed node

    Example:
        engine = ExecutionEngine(config=EngineConfig(max_parallelism=4))
        result = await engine.execute(nodes, edges, {"name": "World"})
    """

    def __init__(
        self,
        registry: ExecutorRegistry | None = None,
        config: EngineConfig | None = None,
        *,
        retryable: Callable[[BaseException], bool] = is_retryable_error,
        sleep: Callable[[float], Awaitable[Any]] | None = None,
    ) -> None:
        self.registry = registry if registry is not None else create_default_registry()
        self.config = config or EngineConfig()
        self.retry_policy = RetryPolicy.from_config(self.config.retry, retryable)
        self.resolver = VariableResolver()
        self._sleep = sleep or asyncio.sleep

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def validate(
        self,
        nodes: Sequence[Node | Mapping[str, Any]],
        edges: Sequence[Edge | Mapping[str, Any]],
        variables: Variables = None,
    ) -> ValidationReport:
        """Run every pre-execution check and collect the problems."""
        nodes = _coerce(nodes, Node)
        edges = _coerce(edges, Edge)
        variables = _coerce_variables(variables)
        report = ValidationReport()

        if not nodes:
            report.errors.append(EmptyWorkflowError())

        graph = DependencyGraph.build(nodes, edges)
        report.graph = graph
        report.errors.extend(graph.problems)

        cycle = graph.detect_cycle()
        if cycle is not None:
            report.errors.append(cycle)

        report.errors.extend(self._check_ports(nodes, graph))

        try:
            report.variables = build_variable_context(variables)
        except VariableDefinitionError as exc:
            report.errors.append(exc)

        if report.ok:
            report.order = graph.topological_order()
        return report

    def _check_ports(self, nodes: Sequence[Node], graph: DependencyGraph) -> list[IncompatiblePortsError]:
        by_id: dict[str, Node] = {}
        for node in nodes:
            by_id.setdefault(node.id, node)

        errors = []
        for node_id in graph.node_ids:
            for edge in graph.outgoing_edges(node_id):
                source, target = by_id[edge.source], by_id[edge.target]
                source_type = infer_port_type(
                    source, edge.source_port, "output", self.registry.port_types(source.type, "output")
                )
                target_type = infer_port_type(
                    target, edge.target_port, "input", self.registry.port_types(target.type, "input")
                )
                if source_type is None or target_type is None:
                    continue
                if not are_ports_compatible(source_type, target_type):
                    errors.append(
                        IncompatiblePortsError(
                            edge.id, edge.source_port, source_type, edge.target_port, target_type
                        )
                    )
        return errors

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def execute_sync(
        self,
        nodes: Sequence[Node | Mapping[str, Any]],
        edges: Sequence[Edge | Mapping[str, Any]],
        variables: Variables = None,
    ) -> RunResult:
        """Blocking wrapper around ``execute`` for callers without a loop."""
        return asyncio.run(self.execute(nodes, edges, variables))

    async def execute(
        self,
        nodes: Sequence[Node | Mapping[str, Any]],
        edges: Sequence[Edge | Mapping[str, Any]],
        variables: Variables = None,
        *,
        cancel_event: asyncio.Event | None = None,
    ) -> RunResult:
        """Execute a workflow.

        Args:
            nodes: Workflow nodes (models or plain dicts)
            edges: Workflow edges (models or plain dicts)
            variables: Typed variables or a plain name → value mapping
            cancel_event: Set it to abort the run cooperatively

        Returns:
            RunResult. Validation failures and internal faults come back as
            ``success=False`` with only ``error`` set.
        """
        sys.stderr.write("[ENGINE] Starting workflow run\n")
        sys.stderr.flush()

        try:
            nodes = _coerce(nodes, Node)
            edges = _coerce(edges, Edge)
            variables = _coerce_variables(variables)
        except ValidationError as exc:
            return RunResult(success=False, error=f"Invalid workflow payload: {exc}", rejected=True)

        report = self.validate(nodes, edges, variables)
        if not report.ok:
            sys.stderr.write(f"[ENGINE] Validation failed: {report.summary()}\n")
            sys.stderr.flush()
            return RunResult(success=False, error=report.summary(), rejected=True)

        sys.stderr.write(f"[ENGINE] Execution order: {report.order}\n")
        sys.stderr.flush()

        ctx = ExecutionContext.from_report(nodes, edges, report)
        try:
            await self._schedule(ctx, cancel_event)
        except Exception as exc:
            error_msg = f"{type(exc).__name__}: {exc}"
            sys.stderr.write(f"[ENGINE] Internal error, aborting run: {error_msg}\n")
            sys.stderr.flush()
            return RunResult(success=False, error=f"Internal engine error: {error_msg}")

        result = self._aggregate(ctx, nodes)
        sys.stderr.write(f"[ENGINE] Run completed, success={result.success}\n")
        sys.stderr.flush()
        return result

    async def _schedule(self, ctx: ExecutionContext, cancel_event: asyncio.Event | None) -> None:
        """Admit ready nodes and wait for completions until nothing is left."""
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.config.run_timeout if self.config.run_timeout else None
        running: dict[asyncio.Task[None], str] = {}
        cancel_waiter = asyncio.ensure_future(cancel_event.wait()) if cancel_event else None

        try:
            while True:
                if cancel_event is not None and cancel_event.is_set():
                    await self._cancel(ctx, running, "run cancelled by caller")
                    return

                self._admit(ctx, running)
                if not running:
                    return

                waiters: set[asyncio.Future[Any]] = set(running)
                if cancel_waiter is not None:
                    waiters.add(cancel_waiter)
                timeout = None if deadline is None else max(0.0, deadline - loop.time())

                done, _ = await asyncio.wait(waiters, timeout=timeout, return_when=asyncio.FIRST_COMPLETED)
                if not done:
                    await self._cancel(ctx, running, f"run timed out after {self.config.run_timeout}s")
                    return

                for task in done:
                    if task is cancel_waiter:
                        continue
                    running.pop(task)  # type: ignore[arg-type]
                    if not task.cancelled():
                        task.result()
        finally:
            for task in running:
                task.cancel()
            if cancel_waiter is not None:
                cancel_waiter.cancel()

    def _admit(self, ctx: ExecutionContext, running: dict[asyncio.Task[None], str]) -> None:
        limit = self.config.max_parallelism
        capacity = len(ctx.order) if limit is None else limit - len(running)

        for node_id in ctx.order:
            if capacity <= 0:
                return
            state = ctx.states[node_id]
            if state.status is not NodeStatus.PENDING:
                continue
            dependencies = ctx.graph.dependencies_of(node_id)
            if any(ctx.states[dep].status is not NodeStatus.SUCCEEDED for dep in dependencies):
                continue

            state.transition(NodeStatus.RUNNING)
            ctx.dispatched.append(node_id)
            task = asyncio.create_task(self._run_node(ctx, node_id), name=f"node:{node_id}")
            running[task] = node_id
            capacity -= 1

    async def _run_node(self, ctx: ExecutionContext, node_id: str) -> None:
        node = ctx.nodes[node_id]
        state = ctx.states[node_id]
        inputs = ctx.ports.get_inputs_for_node(node_id)
        sys.stderr.write(f"[ENGINE] Executing node: {node_id} ({node.type}), inputs: {sorted(inputs)}\n")
        sys.stderr.flush()

        try:
            params = self.resolver.resolve(node.data, ChainMap(inputs, ctx.variables))
        except ResolutionError as exc:
            self._fail(ctx, node_id, exc.for_node(node_id))
            return

        preset = _preset_outputs(node)
        executor = self.registry.get(node.type)
        if executor is None:
            sys.stderr.write(f"[ENGINE] No executor for type '{node.type}', passing {node_id} through\n")
            sys.stderr.flush()
            self._succeed(ctx, node_id, preset)
            return

        retry = self.retry_policy.start()
        try:
            while True:
                state.attempts = retry.begin_attempt()
                try:
                    result = await self._invoke(executor, inputs, params)
                except Exception as exc:
                    decision = retry.record_failure(exc)
                    if not decision.retry:
                        self._fail(ctx, node_id, exc)
                        return
                    sys.stderr.write(
                        f"[RETRY] {node_id} attempt {retry.attempts}/{self.retry_policy.max_attempts} "
                        f"failed ({type(exc).__name__}: {exc}); retrying in {decision.delay}s\n"
                    )
                    sys.stderr.flush()
                    await self._sleep(decision.delay)
                    continue
                self._succeed(ctx, node_id, {**preset, **_as_outputs(result)})
                return
        except asyncio.CancelledError:
            self._fail(ctx, node_id, CancellationError(ctx.cancel_reason or "run cancelled"))
            raise

    async def _invoke(self, executor: NodeExecutor, inputs: dict[str, Any], params: Any) -> Any:
        call = executor.execute(dict(inputs), params)
        if self.config.node_timeout is None:
            return await call
        return await asyncio.wait_for(call, timeout=self.config.node_timeout)

    def _succeed(self, ctx: ExecutionContext, node_id: str, outputs: dict[str, Any]) -> None:
        state = ctx.states[node_id]
        state.transition(NodeStatus.SUCCEEDED)
        state.output = outputs
        ctx.ports.set_outputs(node_id, outputs)
        sys.stderr.write(f"[ENGINE] Node {node_id} succeeded, output ports: {sorted(outputs)}\n")
        sys.stderr.flush()

    def _fail(self, ctx: ExecutionContext, node_id: str, error: BaseException) -> None:
        state = ctx.states[node_id]
        if state.status is not NodeStatus.RUNNING:
            return
        state.transition(NodeStatus.FAILED)
        state.error = _describe(error)
        sys.stderr.write(f"[ENGINE] Node {node_id} failed: {state.error}\n")
        sys.stderr.flush()

        if ctx.cancelled:
            reason = str(CancellationError(ctx.cancel_reason or "run cancelled"))
        else:
            reason = f"Skipped: upstream node '{node_id}' failed"
        for descendant in sorted(ctx.graph.descendants_of(node_id)):
            self._skip(ctx, descendant, reason)

    def _skip(self, ctx: ExecutionContext, node_id: str, reason: str) -> None:
        state = ctx.states[node_id]
        if state.status is NodeStatus.PENDING:
            state.transition(NodeStatus.SKIPPED)
            state.error = reason

    async def _cancel(self, ctx: ExecutionContext, running: dict[asyncio.Task[None], str], reason: str) -> None:
        sys.stderr.write(f"[ENGINE] Cancelling run: {reason}\n")
        sys.stderr.flush()
        ctx.cancel_reason = reason

        for task in running:
            task.cancel()
        if running:
            await asyncio.gather(*running, return_exceptions=True)
        # Tasks cancelled before their first step never reached their own handler.
        for node_id in running.values():
            self._fail(ctx, node_id, CancellationError(reason))
        running.clear()

        for node_id in ctx.order:
            self._skip(ctx, node_id, str(CancellationError(reason)))

    def _aggregate(self, ctx: ExecutionContext, nodes: Sequence[Node]) -> RunResult:
        results = {node.id: ctx.states[node.id].snapshot() for node in nodes}
        failed = [node_id for node_id in ctx.dispatched if ctx.states[node_id].status is NodeStatus.FAILED]

        error = None
        if failed:
            error = f"Node '{failed[0]}' failed: {ctx.states[failed[0]].error}"
        elif ctx.cancelled:
            error = str(CancellationError(ctx.cancel_reason or "run cancelled"))

        return RunResult(
            success=not failed and not ctx.cancelled,
            nodes=[_with_result(node, results[node.id]) for node in nodes],
            results=results,
            execution_order=list(ctx.dispatched),
            error=error,
            cancelled=ctx.cancelled,
        )


def _coerce(items: Sequence[Any], model: type[Any]) -> list[Any]:
    return [item if isinstance(item, model) else model.model_validate(item) for item in items]


def _coerce_variables(variables: Iterable[Variable | Mapping[str, Any]] | Mapping[str, Any] | None) -> Variables:
    """Typed variables may arrive as plain dicts; a name → value mapping passes as is."""
    if variables is None or isinstance(variables, Mapping):
        return variables
    return _coerce(list(variables), Variable)


def _describe(error: BaseException) -> str:
    return f"{type(error).__name__}: {error}"


def _preset_outputs(node: Node) -> dict[str, Any]:
    """Values already sitting on a node's output ports (e.g. uploaded inputs)."""
    outputs = node.data.get("outputs")
    if not isinstance(outputs, Mapping):
        return {}
    return {
        port: entry["value"]
        for port, entry in outputs.items()
        if isinstance(entry, Mapping) and "value" in entry
    }


def _as_outputs(result: Any) -> dict[str, Any]:
    if result is None:
        return {}
    if isinstance(result, Mapping):
        return dict(result)
    return {DEFAULT_PORT: result}


def _with_result(node: Node, result: NodeResult) -> Node:
    data = dict(node.data)
    data["status"] = result.status.value

    declared = data.get("outputs")
    outputs: dict[str, Any] = {}
    if isinstance(declared, Mapping):
        outputs = {port: dict(entry) for port, entry in declared.items() if isinstance(entry, Mapping)}
    for port, value in (result.output or {}).items():
        outputs.setdefault(port, {})["value"] = value
    if outputs:
        data["outputs"] = outputs

    if result.error:
        data["error"] = result.error
    else:
        data.pop("error", None)
    return node.model_copy(update={"data": data})
