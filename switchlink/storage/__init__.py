"""
storage/ - Persisted switch state
"""

from .state_store import (
    StateStore,
    MemoryStateStore,
    FileStateStore,
)

__all__ = [
    "StateStore",
    "MemoryStateStore",
    "FileStateStore",
]
