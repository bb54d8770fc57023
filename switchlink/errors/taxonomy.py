"""
errors/taxonomy.py - Error classification for SwitchLink

Exception hierarchy for configuration, storage, and propagation failures.
Every exception carries an ErrorCode and a severity so callers (API, CLI,
logging) can report it without inspecting the message text.
"""

from __future__ import annotations
from enum import Enum
from typing import Any, Dict, List, Optional


class ErrorSeverity(Enum):
    """Error severity levels."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(Enum):
    """Error categories."""
    CONFIGURATION = "configuration"
    STORAGE = "storage"
    PROPAGATION = "propagation"
    LOOKUP = "lookup"


class ErrorCode(Enum):
    """Specific error codes."""

    # Configuration (1xxx)
    CFG_INVALID = 1001
    CFG_DUPLICATE_NAME = 1002
    CFG_SELF_DEPENDENCY = 1003

    # Storage (2xxx)
    STO_READ = 2001
    STO_WRITE = 2002

    # Propagation (3xxx)
    PRP_CYCLE = 3001
    PRP_DEPTH = 3002

    # Lookup (4xxx)
    LKP_UNKNOWN_SWITCH = 4001


class SwitchLinkError(Exception):
    """Base exception for all SwitchLink errors."""

    code: ErrorCode = ErrorCode.CFG_INVALID
    category: ErrorCategory = ErrorCategory.CONFIGURATION
    severity: ErrorSeverity = ErrorSeverity.ERROR

    def __init__(self, message: str, switch: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.switch = switch

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code.value,
            "category": self.category.value,
            "severity": self.severity.value,
            "message": self.message,
            "switch": self.switch,
        }


class ConfigurationError(SwitchLinkError):
    """Invalid switch configuration."""


class DuplicateSwitchError(ConfigurationError):
    """A switch name was registered twice."""

    code = ErrorCode.CFG_DUPLICATE_NAME

    def __init__(self, name: str):
        super().__init__(f"Switch '{name}' is already registered", switch=name)


class SelfDependencyError(ConfigurationError):
    """A switch lists itself in dependsOn or dependsOff."""

    code = ErrorCode.CFG_SELF_DEPENDENCY

    def __init__(self, name: str, field_name: str):
        self.field_name = field_name
        super().__init__(
            f"Switch '{name}' cannot depend on itself ({field_name})",
            switch=name,
        )


class CyclicPropagationError(ConfigurationError):
    """
    A cascade re-entered a switch it had already updated, or ran too deep.

    Fatal for the cascade that raised it; the engine aborts that cascade and
    reports the cycle once.
    """

    category = ErrorCategory.PROPAGATION
    severity = ErrorSeverity.CRITICAL

    def __init__(self, path: List[str], depth_exceeded: bool = False):
        self.path = list(path)
        self.depth_exceeded = depth_exceeded
        self.code = ErrorCode.PRP_DEPTH if depth_exceeded else ErrorCode.PRP_CYCLE
        if depth_exceeded:
            message = f"Cascade depth limit exceeded: {' -> '.join(self.path)}"
        else:
            message = f"Cyclic propagation detected: {' -> '.join(self.path)}"
        super().__init__(message, switch=self.path[-1] if self.path else None)


class StoreError(SwitchLinkError):
    """A state store read or write failed."""

    category = ErrorCategory.STORAGE

    def __init__(self, message: str, switch: Optional[str] = None, write: bool = False):
        self.code = ErrorCode.STO_WRITE if write else ErrorCode.STO_READ
        super().__init__(message, switch=switch)


class UnknownSwitchError(SwitchLinkError):
    """Lookup of a switch that was never registered."""

    code = ErrorCode.LKP_UNKNOWN_SWITCH
    category = ErrorCategory.LOOKUP
    severity = ErrorSeverity.WARNING

    def __init__(self, name: str):
        super().__init__(f"Unknown switch: {name}", switch=name)
