"""Error taxonomy for workflow validation and execution.

Validation errors are collected (not raised) during the validation phase and
reported together. Execution errors are raised by executors or the resolver
and are localized to a single node by the engine.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence


class NodeflowError(Exception):
    """Base class for all nodeflow errors."""


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


class WorkflowValidationError(NodeflowError):
    """A problem detected before any node runs."""


class EmptyWorkflowError(WorkflowValidationError):
    def __init__(self) -> None:
        super().__init__("No nodes to execute")


class GraphValidationError(WorkflowValidationError):
    """Structural or type problem in the node/edge graph."""


class DanglingEdgeError(GraphValidationError):
    def __init__(self, edge_id: str, missing_node_id: str, endpoint: str) -> None:
        self.edge_id = edge_id
        self.missing_node_id = missing_node_id
        self.endpoint = endpoint
        super().__init__(
            f"Edge '{edge_id}' references unknown {endpoint} node '{missing_node_id}'"
        )


class DuplicateNodeError(GraphValidationError):
    def __init__(self, node_id: str) -> None:
        self.node_id = node_id
        super().__init__(f"Duplicate node id '{node_id}'")


class CycleError(GraphValidationError):
    def __init__(self, cycle: Sequence[str]) -> None:
        self.cycle = list(cycle)
        super().__init__(f"Cycle detected: {' → '.join(self.cycle)}")

    @property
    def members(self) -> set[str]:
        return set(self.cycle)


class IncompatiblePortsError(GraphValidationError):
    def __init__(
        self,
        edge_id: str,
        source_port: str,
        source_type: str,
        target_port: str,
        target_type: str,
    ) -> None:
        self.edge_id = edge_id
        self.source_type = source_type
        self.target_type = target_type
        super().__init__(
            f"Edge '{edge_id}' connects incompatible ports: "
            f"{source_port} ({source_type}) → {target_port} ({target_type})"
        )


class VariableDefinitionError(WorkflowValidationError):
    """A variable could not be added to the run's variable context."""


# ---------------------------------------------------------------------------
# Execution
# ---------------------------------------------------------------------------


class ResolutionError(NodeflowError):
    """A node's parameters reference variables that are not in the context."""

    def __init__(self, missing: Iterable[str], node_id: str | None = None) -> None:
        self.missing = sorted(set(missing))
        self.node_id = node_id
        names = ", ".join(self.missing)
        where = f" in node '{node_id}'" if node_id else ""
        super().__init__(f"Unresolved variables{where}: {names}")

    def for_node(self, node_id: str) -> ResolutionError:
        return ResolutionError(self.missing, node_id=node_id)


class ExecutionError(NodeflowError):
    """Raised by a node executor."""

    retryable = False


class TransientExecutionError(ExecutionError):
    """A failure worth retrying (timeouts, network blips, rate limits)."""

    retryable = True


class TerminalExecutionError(ExecutionError):
    """A failure that will not go away on retry (malformed input, bad config)."""

    retryable = False


class CancellationError(NodeflowError):
    """The run was aborted by the caller or by the run timeout."""

    def __init__(self, reason: str = "run cancelled") -> None:
        self.reason = reason
        super().__init__(f"Cancelled: {reason}")


class InvalidTransitionError(NodeflowError):
    """A node status change that would move backwards in its lifecycle."""
