"""Tests for the workflow runner.

These tests verify:
- Loading workflow files and reporting load errors
- Variable overrides
- Running workflows end to end (async and sync)
"""

from __future__ import annotations

import json

import pytest

from nodeflow.config import EngineConfig
from nodeflow.domain.models import NodeStatus, Variable
from nodeflow.runner import WorkflowLoadError, WorkflowRunner, load_workflow, merge_variables, run_workflow_sync

pytest_plugins = ("pytest_asyncio",)


HELLO_WORKFLOW = {
    "nodes": [
        {"id": "prompt", "type": "inputText", "data": {"value": "Hello {{name}}"}},
        {"id": "llm", "type": "llm"},
        {"id": "out", "type": "output"},
    ],
    "edges": [
        {"id": "e1", "source": "prompt", "target": "llm", "sourceHandle": "out_text", "targetHandle": "in_text"},
        {"id": "e2", "source": "llm", "target": "out", "sourceHandle": "out_text", "targetHandle": "in_text"},
    ],
    "variables": [{"id": "v1", "name": "name", "type": "text", "value": "World"}],
}


def write_workflow(tmp_path, payload, name="workflow.json"):
    path = tmp_path / name
    path.write_text(json.dumps(payload))
    return path


@pytest.fixture
def runner():
    return WorkflowRunner()


class TestLoadWorkflow:
    def test_load(self, tmp_path):
        request = load_workflow(write_workflow(tmp_path, HELLO_WORKFLOW))

        assert [n.id for n in request.nodes] == ["prompt", "llm", "out"]
        assert request.edges[0].source_port == "out_text"
        assert request.variables[0].name == "name"

    def test_missing_file(self, tmp_path):
        with pytest.raises(WorkflowLoadError, match="not found"):
            load_workflow(tmp_path / "nope.json")

    def test_wrong_suffix(self, tmp_path):
        path = tmp_path / "workflow.txt"
        path.write_text("{}")

        with pytest.raises(WorkflowLoadError, match=".json"):
            load_workflow(path)

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json")

        with pytest.raises(WorkflowLoadError, match="Invalid JSON"):
            load_workflow(path)

    def test_schema_violation(self, tmp_path):
        path = write_workflow(tmp_path, {"nodes": [{"id": "a"}], "edges": []})

        with pytest.raises(WorkflowLoadError, match="Validation failed"):
            load_workflow(path)

    def test_node_limit(self, tmp_path):
        nodes = [{"id": f"n{i}", "type": "const"} for i in range(101)]
        path = write_workflow(tmp_path, {"nodes": nodes, "edges": []})

        with pytest.raises(WorkflowLoadError):
            load_workflow(path)


class TestMergeVariables:
    def test_no_overrides(self):
        variables = {"a": 1}
        assert merge_variables(variables, {}) is variables

    def test_plain_mapping(self):
        assert merge_variables({"a": 1, "b": 2}, {"b": 3}) == {"a": 1, "b": 3}
        assert merge_variables(None, {"x": "y"}) == {"x": "y"}

    def test_typed_variables(self):
        variables = [Variable(id="1", name="count", type="number", value=1)]

        merged = merge_variables(variables, {"count": "5", "extra": "e"})

        assert merged[0].type == "number"
        assert merged[0].value == "5"
        assert merged[1] == Variable(id="cli:extra", name="extra", type="text", value="e")
        assert variables[0].value == 1


class TestWorkflowRunner:
    """Test WorkflowRunner class."""

    @pytest.mark.asyncio
    async def test_run_workflow_file(self, runner, tmp_path):
        """Test running a simple workflow file."""
        result = await runner.run_workflow_file(write_workflow(tmp_path, HELLO_WORKFLOW))

        assert result.success is True
        assert result.execution_order == ["prompt", "llm", "out"]
        assert result.output_of("llm") == {"out_text": "[Processed] Hello World"}
        assert result.output_of("out") == {"in_text": "[Processed] Hello World"}

    @pytest.mark.asyncio
    async def test_run_with_overrides(self, runner, tmp_path):
        """Test that CLI-style overrides replace workflow variables."""
        result = await runner.run_workflow_file(write_workflow(tmp_path, HELLO_WORKFLOW), {"name": "Ada"})

        assert result.output_of("llm") == {"out_text": "[Processed] Hello Ada"}

    @pytest.mark.asyncio
    async def test_missing_file_is_a_failed_result(self, runner, tmp_path):
        result = await runner.run_workflow_file(tmp_path / "missing.json")

        assert result.success is False
        assert "not found" in result.error
        assert result.nodes is None

    @pytest.mark.asyncio
    async def test_cycle_is_a_failed_result(self, runner, tmp_path):
        payload = {
            "nodes": [{"id": "a", "type": "const"}, {"id": "b", "type": "const"}],
            "edges": [
                {"id": "ab", "source": "a", "target": "b"},
                {"id": "ba", "source": "b", "target": "a"},
            ],
        }

        result = await runner.run_workflow_file(write_workflow(tmp_path, payload))

        assert result.success is False
        assert "Cycle" in result.error

    def test_validate_workflow_file(self, runner, tmp_path):
        report = runner.validate_workflow_file(write_workflow(tmp_path, HELLO_WORKFLOW))

        assert report.ok
        assert report.order == ["prompt", "llm", "out"]

    def test_validate_missing_file_raises(self, runner, tmp_path):
        with pytest.raises(WorkflowLoadError):
            runner.validate_workflow_file(tmp_path / "missing.json")


class TestSyncWrapper:
    """Test synchronous wrapper."""

    def test_run_workflow_sync(self, tmp_path):
        result = run_workflow_sync(
            write_workflow(tmp_path, HELLO_WORKFLOW),
            {"name": "Sync"},
            config=EngineConfig(max_parallelism=1),
        )

        assert result.success is True
        assert result.status_of("out") is NodeStatus.SUCCEEDED
