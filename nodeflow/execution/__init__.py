"""Workflow execution core.

This package provides:
- Dependency graph building, cycle detection and deterministic ordering
- Port type inference and compatibility checks
- ``{{variable}}`` resolution in node parameters
- Concurrent node execution with bounded retry

Architecture:
- graph.py: DependencyGraph
- ports.py: Port compatibility table and per-run port values
- resolver.py: VariableResolver and variable context building
- retry.py: Retry policy state machine
- engine.py: Main execution orchestrator
"""

from __future__ import annotations

from nodeflow.execution.engine import ExecutionContext, ExecutionEngine, ValidationReport
from nodeflow.execution.graph import DependencyGraph
from nodeflow.execution.ports import are_ports_compatible
from nodeflow.execution.resolver import VariableResolver, build_variable_context
from nodeflow.execution.retry import RetryPolicy, is_retryable_error

__all__ = [
    "DependencyGraph",
    "ExecutionContext",
    "ExecutionEngine",
    "RetryPolicy",
    "ValidationReport",
    "VariableResolver",
    "are_ports_compatible",
    "build_variable_context",
    "is_retryable_error",
]
