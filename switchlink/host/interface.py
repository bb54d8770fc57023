"""
SwitchLink host interface

The host platform owns the visible representation of each switch and
delivers client set requests. The core only needs a narrow capability
handle from it:

- update_value: refresh a characteristic without emitting a set event
- set_value: write a characteristic the way a client would; if a set
  handler is bound to that characteristic the host delivers the event
- on_set: bind a switch's set handler
- persist_path: directory the host reserves for persisted state

InMemoryHost is the reference implementation used by the bootstrap layer
and the tests.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, Protocol, Tuple, runtime_checkable
import asyncio
import logging

logger = logging.getLogger(__name__)


class Characteristic:
    """Characteristic names understood by the reference host."""
    ON = "On"
    TARGET_POSITION = "TargetPosition"
    POSITION_STATE = "PositionState"


# Done callback of the host's request/ack contract; receives None or the error
DoneCallback = Callable[[Optional[BaseException]], None]
SetHandler = Callable[[Any, Optional[DoneCallback]], Awaitable[Any]]


@runtime_checkable
class HostHandle(Protocol):
    """Capabilities a switch entity needs from its host."""

    def persist_path(self) -> str:
        ...

    def on_set(self, name: str, characteristic: str, handler: SetHandler) -> None:
        ...

    def update_value(self, name: str, characteristic: str, value: Any) -> None:
        ...

    async def set_value(self, name: str, characteristic: str, value: Any) -> None:
        ...


# =============================================================================
# REPRESENTATIONS
# =============================================================================

@dataclass
class AccessoryInformation:
    """Manufacturer metadata surfaced to host clients."""
    manufacturer: str = "SwitchLink"
    model: str = "Toggle Switch"
    serial_number: str = "SWL01"
    firmware_revision: str = "0.0.0"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": "AccessoryInformation",
            "manufacturer": self.manufacturer,
            "model": self.model,
            "serial_number": self.serial_number,
            "firmware_revision": self.firmware_revision,
        }


@dataclass
class SwitchService:
    """The switch itself as the host presents it."""
    name: str
    capability: str
    characteristic: str
    state: bool
    depends_on: Tuple[str, ...] = ()
    depends_off: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.capability,
            "name": self.name,
            "characteristic": self.characteristic,
            "state": self.state,
            "depends_on": list(self.depends_on),
            "depends_off": list(self.depends_off),
        }


# =============================================================================
# REFERENCE HOST
# =============================================================================

class InMemoryHost:
    """
    In-process host.

    Keeps the last value of every characteristic and routes set events to
    bound handlers. Every write is appended to `writes` as
    (method, name, characteristic, value) for inspection.
    """

    def __init__(self, persist_dir: str = "./storage/persist"):
        self._persist_dir = persist_dir
        self._values: Dict[Tuple[str, str], Any] = {}
        self._handlers: Dict[Tuple[str, str], SetHandler] = {}
        self.writes: List[Tuple[str, str, str, Any]] = []

    def persist_path(self) -> str:
        return self._persist_dir

    def on_set(self, name: str, characteristic: str, handler: SetHandler) -> None:
        self._handlers[(name, characteristic)] = handler

    def update_value(self, name: str, characteristic: str, value: Any) -> None:
        self._values[(name, characteristic)] = value
        self.writes.append(("update", name, characteristic, value))

    async def set_value(self, name: str, characteristic: str, value: Any) -> None:
        self._values[(name, characteristic)] = value
        self.writes.append(("set", name, characteristic, value))
        handler = self._handlers.get((name, characteristic))
        if handler is not None:
            await handler(value, None)

    def get_value(self, name: str, characteristic: str) -> Any:
        return self._values.get((name, characteristic))

    async def client_set(self, name: str, characteristic: str, value: Any) -> Optional[BaseException]:
        """
        Simulate a client writing a characteristic and wait for the ack.

        Returns whatever the switch passed to its done callback.
        """
        handler = self._handlers.get((name, characteristic))
        if handler is None:
            raise KeyError(f"No set handler bound for {name}/{characteristic}")

        acked: asyncio.Future = asyncio.get_running_loop().create_future()

        def done(error: Optional[BaseException] = None) -> None:
            if acked.done():
                logger.warning(f"[{name}]: done callback invoked more than once")
                return
            acked.set_result(error)

        self._values[(name, characteristic)] = value
        await handler(value, done)
        return await acked
