"""
SwitchLink Dependency & Propagation Engine

Provides:
- SwitchRegistry: registration-ordered switch table
- PropagationEngine: dependent resolution and cascade updates
- TriggerLog: audit trail for requests, transitions and cascades
"""

from .registry import (
    RegisteredSwitch,
    SwitchRegistry,
)
from .propagation import (
    Cascade,
    CascadeResult,
    PropagationEngine,
)
from .trigger_log import (
    TriggerLog,
    TriggerEntry,
    TriggerType,
)

__all__ = [
    # Registry
    "RegisteredSwitch",
    "SwitchRegistry",
    # Propagation
    "Cascade",
    "CascadeResult",
    "PropagationEngine",
    # Trigger Log
    "TriggerLog",
    "TriggerEntry",
    "TriggerType",
]
