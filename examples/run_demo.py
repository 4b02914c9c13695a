#!/usr/bin/env python3
"""Demo script for the workflow runner.

Runs the example workflows through an engine built in code, with a custom
executor registered next to the built-in ones.
"""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path

# Add the project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from nodeflow.config import EngineConfig
from nodeflow.execution.engine import ExecutionEngine
from nodeflow.registry import create_default_registry
from nodeflow.runner import WorkflowRunner, run_workflow_sync

HERE = Path(__file__).parent


def _report(result) -> None:
    print("\n" + "─" * 60)
    if result.success:
        print("✓ Success!")
        for node_id, node_result in (result.results or {}).items():
            print(f"  {node_id}: {node_result.output}")
    else:
        print("✗ Error!")
        print(f"  {result.error}")
    print("─" * 60)


async def demo_async():
    """Run the media workflow with a shouting output node."""
    print("=" * 60)
    print("nodeflow Runner - Async Demo")
    print("=" * 60)

    registry = create_default_registry()

    @registry.register_executor("output", input_ports={"in_text": "text"})
    def shout(inputs, params):
        return {key: str(value).upper() for key, value in inputs.items()}

    engine = ExecutionEngine(registry=registry, config=EngineConfig.from_file(HERE / "engine.config.json"))
    runner = WorkflowRunner(engine=engine)

    workflow_file = HERE / "media.workflow.json"
    print(f"\n▶ Executing workflow: {workflow_file.name}")
    result = await runner.run_workflow_file(workflow_file, {"weather": "summer"})
    print(f"  Order: {result.execution_order}")
    _report(result)


def demo_sync():
    """Run the hello workflow, then show the cycle being rejected."""
    print("\n\n" + "=" * 60)
    print("nodeflow Runner - Sync Demo")
    print("=" * 60)

    for name in ("hello.workflow.json", "cycle.workflow.json"):
        print(f"\n▶ Executing workflow: {name}")
        _report(run_workflow_sync(HERE / name, {"name": "Demo"}))


if __name__ == "__main__":
    asyncio.run(demo_async())
    demo_sync()
