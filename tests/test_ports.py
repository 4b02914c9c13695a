"""Tests for port type compatibility and port data flow."""

from __future__ import annotations

import itertools

from nodeflow.domain.models import Edge, Node
from nodeflow.execution.ports import (
    PORT_COMPATIBILITY,
    PORT_TYPES,
    PortRegistry,
    are_ports_compatible,
    infer_port_type,
)


class TestCompatibilityTable:
    def test_table_is_total(self):
        assert set(PORT_COMPATIBILITY) == set(PORT_TYPES)
        for source in PORT_TYPES:
            assert set(PORT_COMPATIBILITY[source]) == set(PORT_TYPES)
        assert len(list(itertools.product(PORT_TYPES, PORT_TYPES))) == 36

    def test_reflexive(self):
        for port_type in PORT_TYPES:
            assert are_ports_compatible(port_type, port_type) is True

    def test_scalars_flow_into_text(self):
        assert are_ports_compatible("number", "text") is True
        assert are_ports_compatible("boolean", "text") is True

    def test_incompatible_pairs(self):
        assert are_ports_compatible("image", "text") is False
        assert are_ports_compatible("text", "number") is False
        assert are_ports_compatible("video", "image") is False
        assert are_ports_compatible("audio", "video") is False

    def test_unknown_types_are_incompatible(self):
        assert are_ports_compatible("hologram", "text") is False
        assert are_ports_compatible("text", "hologram") is False


class TestInferPortType:
    def test_node_declaration_wins(self):
        node = Node(id="n", type="custom", data={"outputs": {"result": {"type": "image"}}})
        assert infer_port_type(node, "result", "output", {"result": "text"}) == "image"

    def test_executor_declaration(self):
        node = Node(id="n", type="llm")
        assert infer_port_type(node, "in_system", "input", {"in_system": "text"}) == "text"

    def test_naming_convention(self):
        node = Node(id="n", type="custom")
        assert infer_port_type(node, "out_video", "output") == "video"
        assert infer_port_type(node, "in_audio", "input") == "audio"
        assert infer_port_type(node, "out_video", "input") is None

    def test_untyped_ports(self):
        node = Node(id="n", type="custom", data={"inputs": {"in_any": {"type": "any"}}})
        assert infer_port_type(node, "default", "output") is None
        assert infer_port_type(node, "in_any", "input") is None


class TestPortRegistry:
    def test_inputs_follow_connections(self):
        registry = PortRegistry(
            [
                Edge(id="e1", source="a", target="c", sourceHandle="out_text", targetHandle="in_text"),
                Edge(id="e2", source="b", target="c", sourceHandle="out_image", targetHandle="in_image"),
            ]
        )
        registry.set_outputs("a", {"out_text": "hello"})

        assert registry.get_inputs_for_node("c") == {"in_text": "hello"}

        registry.set_outputs("b", {"out_image": "http://img"})
        assert registry.get_inputs_for_node("c") == {"in_text": "hello", "in_image": "http://img"}

    def test_missing_handles_use_default_port(self):
        registry = PortRegistry([Edge(id="e", source="a", target="b")])
        registry.set_outputs("a", {"default": 3})

        assert registry.get_inputs_for_node("b") == {"default": 3}
        assert registry.get_value("a", "default") == 3

    def test_none_values_are_delivered(self):
        registry = PortRegistry([Edge(id="e", source="a", target="b")])
        registry.set_outputs("a", {"default": None})

        assert registry.get_inputs_for_node("b") == {"default": None}
