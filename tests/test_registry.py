"""Tests for the executor registry.

These tests verify:
- Registry registration and lookup
- Function and decorator registration
- Published port types
- The default registry's built-in node types
"""

from __future__ import annotations

import pytest

from nodeflow.executors.base import FunctionExecutor, NodeExecutor
from nodeflow.executors.llm import LLMExecutor
from nodeflow.registry import ExecutorRegistry, create_default_registry


class _Constant(NodeExecutor):
    output_ports = {"out_text": "text"}

    async def execute(self, inputs, params):
        return {"out_text": "constant"}


class TestExecutorRegistry:
    """Test the ExecutorRegistry class."""

    def test_register_and_get(self):
        """Test basic registration and lookup."""
        registry = ExecutorRegistry()
        executor = _Constant()

        registry.register("constant", executor)

        assert registry.get("constant") is executor
        assert registry.get("missing") is None

    def test_register_function(self):
        """Test that plain functions are wrapped."""
        registry = ExecutorRegistry()

        registry.register("double", lambda inputs, params: params["n"] * 2)

        assert isinstance(registry.get("double"), FunctionExecutor)

    def test_register_with_decorator(self):
        """Test registration using decorator."""
        registry = ExecutorRegistry()

        @registry.register_executor("upper", input_ports={"in_text": "text"}, output_ports={"out_text": "text"})
        def upper(inputs, params):
            return {"out_text": inputs["in_text"].upper()}

        assert upper({"in_text": "a"}, {}) == {"out_text": "A"}
        assert registry.port_types("upper", "input") == {"in_text": "text"}
        assert registry.port_types("upper", "output") == {"out_text": "text"}

    def test_register_non_callable(self):
        """Test registering something that cannot execute raises TypeError."""
        registry = ExecutorRegistry()

        with pytest.raises(TypeError, match="bogus"):
            registry.register("bogus", 42)  # type: ignore[arg-type]

    def test_has_executor(self):
        registry = ExecutorRegistry()
        registry.register("exists", _Constant())

        assert registry.has_executor("exists") is True
        assert registry.has_executor("missing") is False
        assert "exists" in registry
        assert len(registry) == 1

    def test_port_types_for_unknown_type(self):
        assert ExecutorRegistry().port_types("missing", "input") == {}

    def test_override_registration(self):
        """Test that later registration replaces earlier."""
        registry = ExecutorRegistry()
        first, second = _Constant(), _Constant()

        registry.register("type", first)
        registry.register("type", second)

        assert registry.get("type") is second

    def test_registries_are_independent(self):
        one, two = ExecutorRegistry(), ExecutorRegistry()
        one.register("only_here", _Constant())

        assert "only_here" not in two


class TestDefaultRegistry:
    """Test the built-in node types."""

    def test_builtin_types(self):
        registry = create_default_registry()

        for node_type in [
            "inputText",
            "inputImage",
            "inputVideo",
            "inputAudio",
            "systemPrompt",
            "llm",
            "imageGen",
            "upscaler",
            "videoGen",
            "extractFrame",
            "audioGen",
            "output",
            "variable",
            "comment",
        ]:
            assert node_type in registry, node_type

    def test_types_sorted(self):
        types = create_default_registry().types()
        assert types == sorted(types)
        assert list(create_default_registry()) == types

    def test_input_port_types(self):
        registry = create_default_registry()

        assert registry.port_types("inputImage", "output") == {"out_image": "image"}
        assert registry.port_types("llm", "input")["in_system"] == "text"
        assert registry.port_types("extractFrame", "input") == {"in_video": "video"}

    def test_llm_model_is_passed_through(self):
        sentinel = object()
        registry = create_default_registry(llm=sentinel)  # type: ignore[arg-type]

        executor = registry.get("llm")
        assert isinstance(executor, LLMExecutor)
        assert executor.llm is sentinel
