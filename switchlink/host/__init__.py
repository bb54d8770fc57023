"""
host/ - Host capability interface and reference host
"""

from .interface import (
    Characteristic,
    DoneCallback,
    SetHandler,
    HostHandle,
    AccessoryInformation,
    SwitchService,
    InMemoryHost,
)

__all__ = [
    "Characteristic",
    "DoneCallback",
    "SetHandler",
    "HostHandle",
    "AccessoryInformation",
    "SwitchService",
    "InMemoryHost",
]
