"""nodeflow CLI - Command line interface for running workflows.

Usage:
    nodeflow run <workflow_file> [--var key=value]... [--config FILE]
                 [--max-parallelism N] [--timeout SECONDS] [--llm-model NAME]
    nodeflow validate <workflow_file> [--var key=value]...
    nodeflow --version
    nodeflow --help

Examples:
    nodeflow run examples/hello.workflow.json
    nodeflow run examples/hello.workflow.json --var name="World"
    nodeflow run examples/media.workflow.json --max-parallelism 1 --timeout 30
    nodeflow validate examples/cycle.workflow.json
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from nodeflow import __version__
from nodeflow.config import EngineConfig
from nodeflow.domain.models import NodeStatus
from nodeflow.execution.engine import ExecutionEngine
from nodeflow.registry import create_default_registry
from nodeflow.runner import WorkflowLoadError, WorkflowRunner

_STATUS_MARKS = {
    NodeStatus.SUCCEEDED: "✓",
    NodeStatus.FAILED: "✗",
    NodeStatus.SKIPPED: "-",
    NodeStatus.PENDING: "?",
    NodeStatus.RUNNING: "…",
}


def parse_arg_value(value: str) -> Any:
    """Parse a CLI argument value to appropriate Python type.

    Args:
        value: String value from CLI

    Returns:
        Parsed value (str, int, float, bool, list, dict, or None)
    """
    # Try JSON first
    try:
        return json.loads(value)
    except (json.JSONDecodeError, ValueError):
        pass

    if value.lower() == "true":
        return True
    if value.lower() == "false":
        return False
    if value.lower() in ("null", "none"):
        return None

    return value


def parse_variables(pairs: list[str] | None) -> dict[str, Any]:
    """Turn ``--var key=value`` pairs into a mapping.

    Raises:
        ValueError: If a pair has no ``=``.
    """
    variables: dict[str, Any] = {}
    for pair in pairs or []:
        if "=" not in pair:
            raise ValueError(f"Invalid variable format: {pair} (use --var key=value)")
        key, value = pair.split("=", 1)
        variables[key.strip()] = parse_arg_value(value.strip())
    return variables


def build_config(args: argparse.Namespace) -> EngineConfig:
    """Engine config from ``--config`` with per-flag overrides."""
    config = EngineConfig.from_file(args.config) if args.config else EngineConfig()
    overrides: dict[str, Any] = {}
    if args.max_parallelism is not None:
        overrides["max_parallelism"] = args.max_parallelism if args.max_parallelism > 0 else None
    if args.timeout is not None:
        overrides["run_timeout"] = args.timeout
    if not overrides:
        return config
    return EngineConfig.model_validate({**config.model_dump(), **overrides})


def cmd_run(args: argparse.Namespace) -> int:
    """Run a workflow file.

    Args:
        args: Parsed command line arguments

    Returns:
        Exit code (0 for success, 1 for error)
    """
    workflow_file = Path(args.file)

    try:
        variables = parse_variables(args.var)
        config = build_config(args)
    except (ValueError, ValidationError, OSError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    llm = None
    if args.llm_model:
        from nodeflow.library.llm import create_chat_model

        llm = create_chat_model(model_name=args.llm_model)

    engine = ExecutionEngine(registry=create_default_registry(llm), config=config)
    runner = WorkflowRunner(engine=engine)

    print(f"▶ Executing: {workflow_file}")
    if variables:
        print(f"  Variables: {json.dumps(variables, indent=2)}")
    print()

    result = asyncio.run(runner.run_workflow_file(workflow_file, variables))

    print("─" * 70)
    if result.results:
        for node_id, node_result in result.results.items():
            mark = _STATUS_MARKS[node_result.status]
            line = f"  {mark} {node_id}: {node_result.status.value}"
            if node_result.error:
                line += f" ({node_result.error})"
            print(line)
        print()

    if result.success:
        print("✓ Success!")
        print()
        outputs = {node_id: r.output for node_id, r in (result.results or {}).items() if r.output}
        print(json.dumps(outputs, indent=2, default=str))
        print("─" * 70)
        return 0

    print("✗ Error!")
    print()
    print(result.error)
    print("─" * 70)
    return 1


def cmd_validate(args: argparse.Namespace) -> int:
    """Validate a workflow file and print its execution order.

    Returns:
        Exit code (0 if valid, 1 otherwise)
    """
    try:
        variables = parse_variables(args.var)
        report = WorkflowRunner().validate_workflow_file(args.file, variables)
    except (ValueError, WorkflowLoadError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    print(f"File: {args.file}")
    print()
    if not report.ok:
        print(f"Invalid workflow ({len(report.errors)} errors):")
        for error in report.errors:
            print(f"  • {type(error).__name__}: {error}")
        return 1

    print("Valid workflow. Execution order:")
    for index, node_id in enumerate(report.order, start=1):
        print(f"  {index}. {node_id}")
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point.

    Returns:
        Exit code
    """
    parser = argparse.ArgumentParser(
        prog="nodeflow",
        description="nodeflow - node-graph workflow execution engine",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  nodeflow run examples/hello.workflow.json --var name="World"
  nodeflow validate examples/cycle.workflow.json
        """,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"nodeflow {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    run_parser = subparsers.add_parser("run", help="Run a workflow file")
    run_parser.add_argument("file", help="Path to the workflow .json file")
    run_parser.add_argument(
        "--var",
        action="append",
        help="Variable override in key=value format (can be used multiple times)",
    )
    run_parser.add_argument("--config", help="Engine configuration JSON file")
    run_parser.add_argument(
        "--max-parallelism",
        type=int,
        help="Maximum concurrently running nodes (0 = unbounded)",
    )
    run_parser.add_argument("--timeout", type=float, help="Whole-run timeout in seconds")
    run_parser.add_argument("--llm-model", help="Run llm nodes against this OpenAI chat model")

    validate_parser = subparsers.add_parser(
        "validate",
        help="Validate a workflow file and show its execution order",
    )
    validate_parser.add_argument("file", help="Path to the workflow .json file")
    validate_parser.add_argument("--var", action="append", help="Variable override in key=value format")

    args = parser.parse_args(argv)

    if args.command == "run":
        return cmd_run(args)
    elif args.command == "validate":
        return cmd_validate(args)
    else:
        parser.print_help()
        return 0


if __name__ == "__main__":
    sys.exit(main())
