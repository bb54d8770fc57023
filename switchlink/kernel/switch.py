"""
SwitchLink Switch Entity

One instance per switch. Owns the cached state and the logic that turns a
set request into either a real transition or a bounce.

Request handling:
- ON while already ON is a stale re-assertion: nothing is persisted or
  propagated, and after bounce_delay_ms the visible indicator is pushed back
  off through the host's event-emitting set_value.
- Anything else is a real transition: cached state and store are updated
  under the switch's lock, any pending resync is cancelled, and the engine
  propagates the new state once the lock is released.

Cascade updates (auto_update) apply the same transition but never bounce.
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Union
import asyncio
import logging

from switchlink.core.models import SwitchConfig, SwitchKind
from switchlink.dependencies.propagation import Cascade, CascadeResult, PropagationEngine
from switchlink.dependencies.registry import SwitchRegistry
from switchlink.dependencies.trigger_log import TriggerLog, TriggerType
from switchlink.errors import StoreError, SwitchLinkError
from switchlink.host.interface import (
    AccessoryInformation,
    Characteristic,
    DoneCallback,
    HostHandle,
    SwitchService,
)
from switchlink.kernel.scheduler import ResyncScheduler
from switchlink.storage.state_store import StateStore

logger = logging.getLogger(__name__)


class RequestOutcome(Enum):
    """How a set request was handled."""
    TRANSITIONED = "transitioned"
    BOUNCED = "bounced"
    FAILED = "failed"


@dataclass
class RequestResult:
    """Response to a set request."""
    name: str
    requested: bool
    outcome: RequestOutcome
    state: bool
    cascade: Optional[CascadeResult] = None
    error: Optional[SwitchLinkError] = None

    @property
    def success(self) -> bool:
        return self.outcome is not RequestOutcome.FAILED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "requested": self.requested,
            "outcome": self.outcome.value,
            "state": self.state,
            "cascade": self.cascade.to_dict() if self.cascade else None,
            "error": self.error.to_dict() if self.error else None,
        }


class SwitchLogAdapter(logging.LoggerAdapter):
    """Prefixes messages with the switch name; debug switches log diagnostics at INFO."""

    def process(self, msg, kwargs):
        return f"[{self.extra['switch']}]: {msg}", kwargs

    def diagnostic(self, msg: str) -> None:
        self.log(logging.INFO if self.extra.get("debug") else logging.DEBUG, msg)


class SwitchEntity:
    """A named boolean switch wired to the host, store and engine."""

    DEFAULT_BOUNCE_DELAY_MS = 250
    DEFAULT_RESTORE_DELAY_MS = 250

    def __init__(
        self,
        config: SwitchConfig,
        host: HostHandle,
        registry: SwitchRegistry,
        engine: PropagationEngine,
        store: StateStore,
        scheduler: ResyncScheduler,
        trigger_log: Optional[TriggerLog] = None,
        information: Optional[AccessoryInformation] = None,
        bounce_delay_ms: int = DEFAULT_BOUNCE_DELAY_MS,
        restore_delay_ms: int = DEFAULT_RESTORE_DELAY_MS,
    ):
        self._config = config
        self._host = host
        self._engine = engine
        self._store = store
        self._scheduler = scheduler
        self._trigger_log = trigger_log
        self._information = information or AccessoryInformation()
        self._bounce_delay_ms = bounce_delay_ms
        self._restore_delay_ms = restore_delay_ms

        self._state = False
        self._lock = asyncio.Lock()
        self._started = False
        self.log = SwitchLogAdapter(logger, {"switch": config.name, "debug": config.debug})

        registry.register(config, self.auto_update)

    @property
    def name(self) -> str:
        return self._config.name

    @property
    def config(self) -> SwitchConfig:
        return self._config

    @property
    def is_blinds(self) -> bool:
        return self._config.kind is SwitchKind.BLINDS

    @property
    def control_characteristic(self) -> str:
        """Characteristic that carries client set requests."""
        return Characteristic.TARGET_POSITION if self.is_blinds else Characteristic.ON

    @property
    def indicator_characteristic(self) -> str:
        """Characteristic that shows the current state."""
        return Characteristic.POSITION_STATE if self.is_blinds else Characteristic.ON

    def _indicator_value(self, state: bool) -> Union[bool, int]:
        if self.is_blinds:
            return 100 if state else 0
        return state

    def current_state(self) -> bool:
        """Cached state, no store read."""
        return self._state

    # -------------------------------------------------------------------------
    # Startup
    # -------------------------------------------------------------------------

    async def start(self) -> None:
        """
        Bind the host set handler and restore the persisted state.

        A persisted ON is loaded into the cache and pushed to the indicator
        after restore_delay_ms. Restoring never propagates.
        """
        if self._started:
            return
        self._started = True

        self._host.on_set(self.name, self.control_characteristic, self.handle_set)

        try:
            stored = await self._store.get(self.name)
        except StoreError as e:
            self.log.error(f"Could not read persisted state, starting Off: {e}")
            return

        if not stored:
            return

        self._state = True
        if self._trigger_log is not None:
            self._trigger_log.record(
                TriggerType.RESTORE, self.name, new_value=True, source="SwitchEntity",
            )
        self._scheduler.schedule(
            self.name,
            self._restore_delay_ms,
            self._restore_indicator,
            reason="restore",
        )

    def _restore_indicator(self) -> None:
        self.log.info(f"Restoring persisted state: {self._state}")
        self._host.update_value(self.name, self.indicator_characteristic, self._indicator_value(self._state))

    # -------------------------------------------------------------------------
    # Requests
    # -------------------------------------------------------------------------

    async def handle_set(self, target: Any, done: Optional[DoneCallback] = None) -> Optional[RequestResult]:
        """
        Host set event adapter.

        Runs request_state and calls done exactly once, with None on success
        or the error that stopped the request.
        """
        error: Optional[BaseException] = None
        try:
            result = await self.request_state(bool(target))
            error = result.error
            return result
        except BaseException as e:
            error = e
            raise
        finally:
            if done is not None:
                done(error)

    async def request_state(self, turn_on: bool) -> RequestResult:
        """Handle an externally triggered set request."""
        turn_on = bool(turn_on)
        self.log.diagnostic(f"New state: {turn_on} - Previous state: {self._state}")
        if self._trigger_log is not None:
            self._trigger_log.record(
                TriggerType.REQUEST, self.name, new_value=turn_on, old_value=self._state, source="host",
            )

        async with self._lock:
            if turn_on and self._state:
                self._schedule_bounce()
                return RequestResult(
                    name=self.name,
                    requested=turn_on,
                    outcome=RequestOutcome.BOUNCED,
                    state=self._state,
                )

            error = await self._apply(turn_on, source="request")

        if error is not None:
            return RequestResult(
                name=self.name,
                requested=turn_on,
                outcome=RequestOutcome.FAILED,
                state=self._state,
                error=error,
            )

        cascade = await self._engine.trigger(self.name, turn_on)
        return RequestResult(
            name=self.name,
            requested=turn_on,
            outcome=RequestOutcome.TRANSITIONED,
            state=self._state,
            cascade=cascade,
        )

    async def auto_update(self, state: bool, cascade: Cascade) -> bool:
        """
        Cascade update path, invoked by the engine for a satisfied candidate.

        Returns False without writing when a concurrent cascade already
        moved the switch to state.

        Raises:
            StoreError: if the new state could not be persisted
        """
        async with self._lock:
            if self._state == state:
                self.log.diagnostic(f"Already {state}, nothing to update")
                return False
            self.log.info(f"Updating switch state: {state}")
            error = await self._apply(state, source="cascade", cascade_id=cascade.cascade_id)
        if error is not None:
            raise error
        await self._engine.trigger(self.name, state, cascade=cascade)
        return True

    async def _apply(self, state: bool, source: str, cascade_id: Optional[str] = None) -> Optional[StoreError]:
        """Persist and cache a transition. Caller holds the lock."""
        previous = self._state

        self.log.diagnostic(f"Setting switch to {state}.")
        try:
            await self._store.set(self.name, state)
        except StoreError as e:
            self.log.error(f"Could not persist state {state}, keeping {previous}: {e}")
            if self._trigger_log is not None:
                self._trigger_log.record(
                    TriggerType.FAILURE, self.name, new_value=state, old_value=previous,
                    source=source, cascade_id=cascade_id, error=str(e),
                )
            return e

        self._scheduler.cancel(self.name)
        self._state = state
        self._host.update_value(self.name, self.indicator_characteristic, self._indicator_value(state))
        if self._trigger_log is not None:
            self._trigger_log.record(
                TriggerType.TRANSITION, self.name, new_value=state, old_value=previous,
                source=source, cascade_id=cascade_id,
            )
        return None

    def _schedule_bounce(self) -> None:
        self.log.info(f"Switch is already {self._state}, setting to {not self._state}.")
        if self._trigger_log is not None:
            self._trigger_log.record(
                TriggerType.BOUNCE, self.name, new_value=False, old_value=True, source="host",
            )
        self._scheduler.schedule(
            self.name,
            self._bounce_delay_ms,
            self._bounce_indicator,
            reason="bounce",
        )

    async def _bounce_indicator(self) -> None:
        # set_value emits a set event back into handle_set
        await self._host.set_value(self.name, self.indicator_characteristic, self._indicator_value(False))

    # -------------------------------------------------------------------------
    # Host export
    # -------------------------------------------------------------------------

    def get_representations(self) -> List[Union[AccessoryInformation, SwitchService]]:
        """Accessory information plus the switch service, for the host to publish."""
        service = SwitchService(
            name=self.name,
            capability="WindowCovering" if self.is_blinds else "Switch",
            characteristic=self.control_characteristic,
            state=self._state,
            depends_on=tuple(self._config.depends_on),
            depends_off=tuple(self._config.depends_off),
        )
        return [self._information, service]

    def __repr__(self) -> str:
        return f"SwitchEntity({self.name!r}, state={self._state})"
