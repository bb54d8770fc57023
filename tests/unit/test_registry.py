"""
Unit tests for SwitchRegistry.

Tests registration order, candidate lookup, and topology diagnostics.
"""

import pytest

from switchlink.core.models import SwitchConfig
from switchlink.dependencies.registry import SwitchRegistry
from switchlink.errors import DuplicateSwitchError, UnknownSwitchError


def _registry(*configs):
    registry = SwitchRegistry()
    for config in configs:
        registry.register(config)
    return registry


class TestRegistration:
    """Tests for register/get."""

    def test_register_preserves_order(self):
        registry = _registry(
            SwitchConfig(name="C"),
            SwitchConfig(name="A"),
            SwitchConfig(name="B"),
        )
        assert registry.names() == ["C", "A", "B"]
        assert [e.order for e in registry] == [0, 1, 2]
        assert len(registry) == 3

    def test_duplicate_rejected(self):
        registry = _registry(SwitchConfig(name="A"))
        with pytest.raises(DuplicateSwitchError):
            registry.register(SwitchConfig(name="A"))
        assert len(registry) == 1

    def test_get_unknown_raises(self):
        with pytest.raises(UnknownSwitchError):
            SwitchRegistry().get("missing")

    def test_find_unknown_is_none(self):
        assert SwitchRegistry().find("missing") is None

    def test_contains(self):
        registry = _registry(SwitchConfig(name="A"))
        assert "A" in registry
        assert "B" not in registry


class TestDependents:
    """Tests for candidate lookup."""

    def test_dependents_on_in_registration_order(self):
        registry = _registry(
            SwitchConfig(name="A"),
            SwitchConfig(name="Z", depends_on=["A"]),
            SwitchConfig(name="M", depends_on=["B", "A"]),
            SwitchConfig(name="N", depends_off=["A"]),
        )
        assert [e.name for e in registry.dependents("A", True)] == ["Z", "M"]
        assert [e.name for e in registry.dependents("A", False)] == ["N"]

    def test_no_dependents(self):
        registry = _registry(SwitchConfig(name="A"))
        assert registry.dependents_on("A") == []
        assert registry.dependents_off("A") == []


class TestTopology:
    """Tests for graph diagnostics."""

    def test_graph_edge_kinds(self):
        registry = _registry(
            SwitchConfig(name="A"),
            SwitchConfig(name="B"),
            SwitchConfig(name="C", depends_on=["A", "B"], depends_off=["B"]),
        )
        graph = registry.to_graph()
        assert graph["A"]["C"]["kind"] == "on"
        assert graph["B"]["C"]["kind"] == "both"
        assert not graph.has_edge("C", "A")

    def test_find_cycles(self):
        registry = _registry(
            SwitchConfig(name="A", depends_on=["B"]),
            SwitchConfig(name="B", depends_on=["A"]),
            SwitchConfig(name="C", depends_on=["A"]),
        )
        cycles = registry.find_cycles()
        assert len(cycles) == 1
        assert sorted(cycles[0]) == ["A", "B"]

    def test_acyclic(self):
        registry = _registry(
            SwitchConfig(name="A"),
            SwitchConfig(name="B", depends_on=["A"]),
        )
        assert registry.find_cycles() == []

    def test_unknown_references(self):
        registry = _registry(
            SwitchConfig(name="D", depends_on=["E"]),
            SwitchConfig(name="F", depends_off=["E", "D"]),
        )
        assert registry.unknown_references() == {"E": {"D", "F"}}
