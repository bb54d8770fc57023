"""
kernel/ - Switch entities and delayed resync scheduling
"""

from .scheduler import PendingResync, ResyncScheduler
from .switch import (
    RequestOutcome,
    RequestResult,
    SwitchEntity,
)

__all__ = [
    "PendingResync",
    "ResyncScheduler",
    "RequestOutcome",
    "RequestResult",
    "SwitchEntity",
]
