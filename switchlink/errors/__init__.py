"""
errors/ - Error Taxonomy

Structured exceptions shared by the store, registry, engine and entry points.
"""

from .taxonomy import (
    ErrorSeverity,
    ErrorCategory,
    ErrorCode,
    SwitchLinkError,
    ConfigurationError,
    DuplicateSwitchError,
    SelfDependencyError,
    CyclicPropagationError,
    StoreError,
    UnknownSwitchError,
)

__all__ = [
    "ErrorSeverity",
    "ErrorCategory",
    "ErrorCode",
    "SwitchLinkError",
    "ConfigurationError",
    "DuplicateSwitchError",
    "SelfDependencyError",
    "CyclicPropagationError",
    "StoreError",
    "UnknownSwitchError",
]
