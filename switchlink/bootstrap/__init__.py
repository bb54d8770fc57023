"""
bootstrap/ - Configuration, assembly and entry points
"""

from .config import (
    StorageConfig,
    EngineConfig,
    AccessoryInfoConfig,
    APIConfig,
    LoggingConfig,
    SwitchLinkConfig,
    load_config,
)
from .app import (
    AppState,
    AppContext,
    SwitchLinkApp,
)
from .entrypoints import (
    setup_logging,
    cli_main,
    main,
)

__all__ = [
    # Config
    "StorageConfig",
    "EngineConfig",
    "AccessoryInfoConfig",
    "APIConfig",
    "LoggingConfig",
    "SwitchLinkConfig",
    "load_config",
    # App
    "AppState",
    "AppContext",
    "SwitchLinkApp",
    # Entry points
    "setup_logging",
    "cli_main",
    "main",
]
