"""
SwitchLink - dependent boolean switches

Named switches that follow each other: a switch with dependsOn turns on once
every listed switch is on, a switch with dependsOff turns off once every
listed switch is off. State persists across restarts.
"""

__version__ = "1.0.0"

from switchlink.core.models import SwitchConfig, SwitchKind
from switchlink.dependencies import (
    CascadeResult,
    PropagationEngine,
    SwitchRegistry,
    TriggerLog,
)
from switchlink.kernel import (
    RequestOutcome,
    RequestResult,
    ResyncScheduler,
    SwitchEntity,
)
from switchlink.storage import FileStateStore, MemoryStateStore, StateStore

__all__ = [
    "__version__",
    "SwitchConfig",
    "SwitchKind",
    "CascadeResult",
    "PropagationEngine",
    "SwitchRegistry",
    "TriggerLog",
    "RequestOutcome",
    "RequestResult",
    "ResyncScheduler",
    "SwitchEntity",
    "FileStateStore",
    "MemoryStateStore",
    "StateStore",
]
