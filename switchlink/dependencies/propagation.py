"""
SwitchLink Propagation Engine

Given a switch that just transitioned, finds the dependents whose full
dependency set now agrees with the new state and drives their update path,
which re-enters the engine for the next hop.

Satisfaction rule:
- ON  cascade: candidate currently off, every dependsOn switch persisted on.
- OFF cascade: candidate currently on, no dependsOff switch persisted on.
- An empty dependency list never satisfies.
- A dependency with no stored value reads as off.

Each top-level trigger opens a Cascade. The cascade carries a visited set
and a depth counter; re-entering a switch already updated in the same
cascade, or going deeper than max_depth, aborts the whole cascade with
CyclicPropagationError. The cycle is reported once per distinct path.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Set, Tuple
import logging
import uuid

from switchlink.dependencies.registry import RegisteredSwitch, SwitchRegistry
from switchlink.dependencies.trigger_log import TriggerLog, TriggerType
from switchlink.errors import CyclicPropagationError, StoreError, SwitchLinkError
from switchlink.storage.state_store import StateStore

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _label(state: bool) -> str:
    return "On" if state else "Off"


# =============================================================================
# CASCADE RESULT
# =============================================================================

@dataclass
class CascadeResult:
    """Outcome of one top-level trigger and everything it caused."""
    cascade_id: str
    origin: str
    state: bool
    started_at: datetime = field(default_factory=_now)
    completed_at: Optional[datetime] = None

    # Switches auto-updated, in the order they were applied
    updated: List[str] = field(default_factory=list)
    # Candidate -> reason it was not updated
    skipped: Dict[str, str] = field(default_factory=dict)
    # Candidate -> error message
    failures: Dict[str, str] = field(default_factory=dict)

    aborted: bool = False
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return not self.aborted and not self.failures

    @property
    def total_time_ms(self) -> int:
        if self.completed_at is None:
            return 0
        return int((self.completed_at - self.started_at).total_seconds() * 1000)

    def get_summary(self) -> Dict[str, Any]:
        return {
            "cascade_id": self.cascade_id,
            "success": self.success,
            "updated": len(self.updated),
            "skipped": len(self.skipped),
            "failed": len(self.failures),
            "aborted": self.aborted,
            "total_time_ms": self.total_time_ms,
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "cascade_id": self.cascade_id,
            "origin": self.origin,
            "state": self.state,
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "updated": list(self.updated),
            "skipped": dict(self.skipped),
            "failures": dict(self.failures),
            "aborted": self.aborted,
            "error": self.error,
        }


# =============================================================================
# CASCADE
# =============================================================================

@dataclass
class Cascade:
    """Bookkeeping for one in-flight cascade."""
    origin: str
    state: bool
    max_depth: int
    cascade_id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    visited: Set[str] = field(default_factory=set)
    stack: List[str] = field(default_factory=list)
    result: Optional[CascadeResult] = None

    def __post_init__(self):
        self.visited.add(self.origin)
        self.stack.append(self.origin)
        if self.result is None:
            self.result = CascadeResult(
                cascade_id=self.cascade_id,
                origin=self.origin,
                state=self.state,
            )

    @property
    def depth(self) -> int:
        return len(self.stack) - 1

    def enter(self, name: str) -> None:
        """Guard re-entry and depth before updating name."""
        if name in self.visited:
            raise CyclicPropagationError(self.stack + [name])
        if self.depth + 1 > self.max_depth:
            raise CyclicPropagationError(self.stack + [name], depth_exceeded=True)
        self.visited.add(name)
        self.stack.append(name)

    def leave(self) -> None:
        self.stack.pop()


# =============================================================================
# PROPAGATION ENGINE
# =============================================================================

class PropagationEngine:
    """Resolves and applies dependent switch updates."""

    DEFAULT_MAX_DEPTH = 64

    def __init__(
        self,
        registry: SwitchRegistry,
        store: StateStore,
        trigger_log: Optional[TriggerLog] = None,
        max_depth: int = DEFAULT_MAX_DEPTH,
    ):
        self._registry = registry
        self._store = store
        self._trigger_log = trigger_log
        self._max_depth = max_depth
        self._reported_cycles: Set[Tuple[str, ...]] = set()

    @property
    def registry(self) -> SwitchRegistry:
        return self._registry

    @property
    def store(self) -> StateStore:
        return self._store

    def begin(self, origin: str, state: bool) -> Cascade:
        """Open a cascade for a transition that originates outside the engine."""
        return Cascade(origin=origin, state=state, max_depth=self._max_depth)

    async def trigger(
        self,
        name: str,
        state: bool,
        cascade: Optional[Cascade] = None,
    ) -> CascadeResult:
        """
        Propagate name's transition to state.

        Called without a cascade for a top-level transition; the update path
        of each candidate calls back in with the cascade it was handed.
        A cycle aborts the top-level cascade and is never raised past it.
        """
        top_level = cascade is None
        if top_level:
            cascade = self.begin(name, state)

        try:
            await self._propagate(name, state, cascade)
        except CyclicPropagationError as e:
            if not top_level:
                raise
            self._report_cycle(cascade, e)

        if top_level:
            result = cascade.result
            result.completed_at = _now()
            if result.updated or result.failures or result.aborted:
                logger.info(
                    f"[{name}]: Cascade {result.cascade_id} complete: "
                    f"{len(result.updated)} updated, {len(result.failures)} failed"
                    f"{', aborted' if result.aborted else ''} in {result.total_time_ms}ms"
                )
        return cascade.result

    async def _propagate(self, name: str, state: bool, cascade: Cascade) -> None:
        logger.info(
            f'[{name}]: Checking if there are other switches which depend on: '
            f'{name} for "{_label(state)}" state.'
        )

        candidates = self._registry.dependents(name, state)
        if not candidates:
            logger.info(f'[{name}]: Switch has no "{_label(state)}" dependents')
            return

        logger.info(
            f"[{name}]: Following switch(es) have a dependency: "
            f"{', '.join(c.name for c in candidates)}"
        )

        for candidate in candidates:
            await self._evaluate(name, state, candidate, cascade)

    async def _evaluate(
        self,
        name: str,
        state: bool,
        candidate: RegisteredSwitch,
        cascade: Cascade,
    ) -> None:
        result = cascade.result

        try:
            crnt_state = await self._store.get(candidate.name)
        except StoreError as e:
            self._record_failure(name, candidate.name, cascade, f"state read failed: {e}")
            return

        logger.info(f"[{name}]: The state of the dependent switch ({candidate.name}) is: {crnt_state}")

        if not crnt_state and state:
            deps = candidate.depends_on
        elif crnt_state and not state:
            deps = candidate.depends_off
        else:
            self._record_skip(name, candidate.name, cascade, f"already {_label(state)}")
            return

        try:
            dep_states = await self._store.get_many(list(deps))
        except StoreError as e:
            self._record_failure(name, candidate.name, cascade, f"dependency read failed: {e}")
            return

        logger.info(
            f"[{name}]: Other dependency switch states are: "
            f"{', '.join(str(s) for s in dep_states)}"
        )

        if not self.is_satisfied(dep_states, state):
            self._record_skip(name, candidate.name, cascade, "dependencies not satisfied")
            return

        if candidate.update is None:
            logger.warning(f"[{name}]: {candidate.name} has no update path bound, skipping")
            self._record_skip(name, candidate.name, cascade, "no update path")
            return

        cascade.enter(candidate.name)
        try:
            logger.info(f"[{name}]: The state of {candidate.name} will be updated")
            if self._trigger_log is not None:
                self._trigger_log.record(
                    TriggerType.CASCADE_UPDATE,
                    candidate.name,
                    new_value=state,
                    old_value=crnt_state,
                    source="PropagationEngine",
                    cascade_id=cascade.cascade_id,
                    caused_by=name,
                )
            result.updated.append(candidate.name)
            applied = await candidate.update(state, cascade)
            if applied is False:
                # Another cascade got there first
                result.updated.remove(candidate.name)
                self._record_skip(name, candidate.name, cascade, f"already {_label(state)}")
        except CyclicPropagationError:
            raise
        except SwitchLinkError as e:
            result.updated.remove(candidate.name)
            self._record_failure(name, candidate.name, cascade, f"update failed: {e}")
        finally:
            cascade.leave()

    @staticmethod
    def is_satisfied(dep_states: List[Optional[bool]], state: bool) -> bool:
        """
        True when the dependency vector is non-empty and every entry agrees
        with state. Missing entries (None) read as off.
        """
        if not dep_states:
            return False
        opposite = not state
        return not any(bool(s) == opposite for s in dep_states)

    # -------------------------------------------------------------------------
    # Reporting
    # -------------------------------------------------------------------------

    def _record_skip(self, name: str, candidate: str, cascade: Cascade, reason: str) -> None:
        logger.debug(f"[{name}]: Skipping {candidate}: {reason}")
        cascade.result.skipped[candidate] = reason
        if self._trigger_log is not None:
            self._trigger_log.record(
                TriggerType.CANDIDATE_SKIPPED,
                candidate,
                new_value=cascade.state,
                source="PropagationEngine",
                cascade_id=cascade.cascade_id,
                caused_by=name,
                reason=reason,
            )

    def _record_failure(self, name: str, candidate: str, cascade: Cascade, message: str) -> None:
        logger.error(f"[{name}]: Failed to update {candidate}: {message}")
        cascade.result.failures[candidate] = message
        if self._trigger_log is not None:
            self._trigger_log.record(
                TriggerType.FAILURE,
                candidate,
                new_value=cascade.state,
                source="PropagationEngine",
                cascade_id=cascade.cascade_id,
                caused_by=name,
                error=message,
            )

    def _report_cycle(self, cascade: Cascade, error: CyclicPropagationError) -> None:
        result = cascade.result
        result.aborted = True
        result.error = str(error)

        signature = tuple(error.path)
        if signature not in self._reported_cycles:
            self._reported_cycles.add(signature)
            logger.error(f"[{cascade.origin}]: {error}. Cascade {cascade.cascade_id} aborted.")
        else:
            logger.debug(f"[{cascade.origin}]: Repeated cycle {' -> '.join(error.path)}, cascade aborted")

        if self._trigger_log is not None:
            self._trigger_log.record(
                TriggerType.CYCLE,
                cascade.origin,
                new_value=cascade.state,
                source="PropagationEngine",
                cascade_id=cascade.cascade_id,
                path=list(error.path),
                depth_exceeded=error.depth_exceeded,
            )
