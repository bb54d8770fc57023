"""
SwitchLink Switch Registry

Table of every known switch and its static dependency declarations.

The registry is constructed explicitly and shared by reference with the
propagation engine and every switch entity. Registration order is
construction order, and candidate lookups preserve it so cascades are
reproducible.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Dict, Iterator, List, Optional, Set

import logging

import networkx as nx

from switchlink.core.models import SwitchConfig
from switchlink.errors import DuplicateSwitchError, UnknownSwitchError

if TYPE_CHECKING:
    from switchlink.dependencies.propagation import Cascade

logger = logging.getLogger(__name__)


# Update path invoked by the engine for a satisfied candidate; returning
# False means the switch was already in the requested state
UpdateFunc = Callable[[bool, "Cascade"], Awaitable[Any]]


@dataclass
class RegisteredSwitch:
    """A switch as the engine sees it: config plus its update path."""
    config: SwitchConfig
    update: Optional[UpdateFunc] = None
    order: int = 0

    @property
    def name(self) -> str:
        return self.config.name

    @property
    def depends_on(self) -> List[str]:
        return self.config.depends_on

    @property
    def depends_off(self) -> List[str]:
        return self.config.depends_off


class SwitchRegistry:
    """Registration-ordered table of switches."""

    def __init__(self):
        self._entries: Dict[str, RegisteredSwitch] = {}

    def register(self, config: SwitchConfig, update: Optional[UpdateFunc] = None) -> RegisteredSwitch:
        """
        Register a switch.

        Raises:
            DuplicateSwitchError: if the name is already registered
        """
        if config.name in self._entries:
            raise DuplicateSwitchError(config.name)

        entry = RegisteredSwitch(config=config, update=update, order=len(self._entries))
        self._entries[config.name] = entry
        logger.debug(
            f"Registered switch {config.name} "
            f"(dependsOn={config.depends_on}, dependsOff={config.depends_off})"
        )
        return entry

    def get(self, name: str) -> RegisteredSwitch:
        entry = self._entries.get(name)
        if entry is None:
            raise UnknownSwitchError(name)
        return entry

    def find(self, name: str) -> Optional[RegisteredSwitch]:
        return self._entries.get(name)

    def names(self) -> List[str]:
        return list(self._entries.keys())

    def dependents_on(self, name: str) -> List[RegisteredSwitch]:
        """Switches whose dependsOn contains name, in registration order."""
        return [e for e in self._entries.values() if name in e.depends_on]

    def dependents_off(self, name: str) -> List[RegisteredSwitch]:
        """Switches whose dependsOff contains name, in registration order."""
        return [e for e in self._entries.values() if name in e.depends_off]

    def dependents(self, name: str, state: bool) -> List[RegisteredSwitch]:
        """Candidates for a transition of name to state."""
        return self.dependents_on(name) if state else self.dependents_off(name)

    # -------------------------------------------------------------------------
    # Topology diagnostics
    # -------------------------------------------------------------------------

    def to_graph(self) -> nx.DiGraph:
        """
        Directed graph with an edge dependency -> dependent for every
        dependsOn / dependsOff declaration. Edge attribute 'kind' is
        "on" or "off".
        """
        graph = nx.DiGraph()
        for entry in self._entries.values():
            graph.add_node(entry.name)
            for dep in entry.depends_on:
                graph.add_edge(dep, entry.name, kind="on")
            for dep in entry.depends_off:
                if graph.has_edge(dep, entry.name):
                    graph[dep][entry.name]["kind"] = "both"
                else:
                    graph.add_edge(dep, entry.name, kind="off")
        return graph

    def find_cycles(self) -> List[List[str]]:
        """All elementary dependency cycles, each as a list of names."""
        return [list(c) for c in nx.simple_cycles(self.to_graph())]

    def unknown_references(self) -> Dict[str, Set[str]]:
        """Referenced names that were never registered, mapped to their referrers."""
        missing: Dict[str, Set[str]] = {}
        for entry in self._entries.values():
            for dep in list(entry.depends_on) + list(entry.depends_off):
                if dep not in self._entries:
                    missing.setdefault(dep, set()).add(entry.name)
        return missing

    def __contains__(self, name: object) -> bool:
        return name in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[RegisteredSwitch]:
        return iter(list(self._entries.values()))
