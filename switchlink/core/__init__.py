"""
core/ - Switch configuration models
"""

from .models import SwitchConfig, SwitchKind

__all__ = [
    "SwitchConfig",
    "SwitchKind",
]
