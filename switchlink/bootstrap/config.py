"""
bootstrap/config.py - Application configuration

Provides configuration loading from files, environment variables, and defaults.

The JSON file carries the platform settings plus the switch list, either
under "accessories" (host accessory config format) or "switches":

    {
      "storage": {"persist_dir": "./storage/persist"},
      "engine": {"bounce_delay_ms": 250},
      "accessories": [
        {"name": "Cinema", "dependsOn": ["Projector", "Amplifier"]}
      ]
    }
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from pathlib import Path
import os
import json
import logging

from pydantic import ValidationError

from switchlink import __version__
from switchlink.core.models import SwitchConfig
from switchlink.errors import ConfigurationError

logger = logging.getLogger("bootstrap.config")


@dataclass
class StorageConfig:
    """Where switch state is persisted."""

    persist_dir: str = "./storage/persist"
    backend: str = "file"  # "file" or "memory"

    @classmethod
    def from_env(cls) -> "StorageConfig":
        return cls(
            persist_dir=os.getenv("SWITCHLINK_PERSIST_DIR", "./storage/persist"),
            backend=os.getenv("SWITCHLINK_STORAGE_BACKEND", "file"),
        )


@dataclass
class EngineConfig:
    """Propagation and resync timing."""

    bounce_delay_ms: int = 250
    restore_delay_ms: int = 250
    max_cascade_depth: int = 64
    trigger_log_size: int = 10000

    @classmethod
    def from_env(cls) -> "EngineConfig":
        return cls(
            bounce_delay_ms=int(os.getenv("SWITCHLINK_BOUNCE_DELAY_MS", "250")),
            restore_delay_ms=int(os.getenv("SWITCHLINK_RESTORE_DELAY_MS", "250")),
            max_cascade_depth=int(os.getenv("SWITCHLINK_MAX_CASCADE_DEPTH", "64")),
            trigger_log_size=int(os.getenv("SWITCHLINK_TRIGGER_LOG_SIZE", "10000")),
        )


@dataclass
class AccessoryInfoConfig:
    """Manufacturer metadata published with every switch."""

    manufacturer: str = "SwitchLink"
    model: str = "Toggle Switch"
    serial_number: str = "SWL01"
    firmware_revision: str = __version__

    @classmethod
    def from_env(cls) -> "AccessoryInfoConfig":
        return cls(
            manufacturer=os.getenv("SWITCHLINK_MANUFACTURER", "SwitchLink"),
            model=os.getenv("SWITCHLINK_MODEL", "Toggle Switch"),
            serial_number=os.getenv("SWITCHLINK_SERIAL", "SWL01"),
            firmware_revision=os.getenv("SWITCHLINK_FIRMWARE", __version__),
        )


@dataclass
class APIConfig:
    """API server configuration."""

    host: str = "127.0.0.1"
    port: int = 8581
    enable_docs: bool = True

    @classmethod
    def from_env(cls) -> "APIConfig":
        return cls(
            host=os.getenv("SWITCHLINK_API_HOST", "127.0.0.1"),
            port=int(os.getenv("SWITCHLINK_API_PORT", "8581")),
            enable_docs=os.getenv("SWITCHLINK_API_ENABLE_DOCS", "true").lower() == "true",
        )


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    log_file: Optional[str] = None
    json_logs: bool = False

    @classmethod
    def from_env(cls) -> "LoggingConfig":
        return cls(
            level=os.getenv("SWITCHLINK_LOG_LEVEL", "INFO"),
            format=os.getenv("SWITCHLINK_LOG_FORMAT", "%(asctime)s - %(name)s - %(levelname)s - %(message)s"),
            log_file=os.getenv("SWITCHLINK_LOG_FILE"),
            json_logs=os.getenv("SWITCHLINK_JSON_LOGS", "false").lower() == "true",
        )


@dataclass
class SwitchLinkConfig:
    """Root configuration."""

    debug: bool = False

    storage: StorageConfig = field(default_factory=StorageConfig)
    engine: EngineConfig = field(default_factory=EngineConfig)
    accessory: AccessoryInfoConfig = field(default_factory=AccessoryInfoConfig)
    api: APIConfig = field(default_factory=APIConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    switches: List[SwitchConfig] = field(default_factory=list)

    @classmethod
    def from_env(cls) -> "SwitchLinkConfig":
        """Create configuration from environment variables."""
        return cls(
            debug=os.getenv("SWITCHLINK_DEBUG", "false").lower() == "true",
            storage=StorageConfig.from_env(),
            engine=EngineConfig.from_env(),
            accessory=AccessoryInfoConfig.from_env(),
            api=APIConfig.from_env(),
            logging=LoggingConfig.from_env(),
        )

    @classmethod
    def from_file(cls, filepath: str) -> "SwitchLinkConfig":
        """Load configuration from a JSON file."""
        path = Path(filepath)
        if not path.exists():
            logger.warning(f"Config file not found: {filepath}, using defaults")
            return cls.from_env()

        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        except ValueError as e:
            raise ConfigurationError(f"Config file {filepath} is not valid JSON: {e}") from e

        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SwitchLinkConfig":
        """Environment defaults overridden by the given values."""
        config = cls.from_env()

        if "debug" in data:
            config.debug = bool(data["debug"])

        for section in ("storage", "engine", "accessory", "api", "logging"):
            if section in data:
                target = getattr(config, section)
                for key, value in data[section].items():
                    if hasattr(target, key):
                        setattr(target, key, value)
                    else:
                        logger.warning(f"Ignoring unknown config key: {section}.{key}")

        blocks = data.get("accessories", data.get("switches", []))
        config.switches = [cls._parse_switch(block) for block in blocks]
        return config

    @staticmethod
    def _parse_switch(block: Dict[str, Any]) -> SwitchConfig:
        try:
            return SwitchConfig.from_dict(block)
        except ValidationError as e:
            name = block.get("name") if isinstance(block, dict) else None
            raise ConfigurationError(f"Invalid switch config {name or block!r}: {e}", switch=name) from e

    def to_dict(self) -> Dict[str, Any]:
        """Serialize config to dictionary."""
        return {
            "debug": self.debug,
            "storage": {
                "persist_dir": self.storage.persist_dir,
                "backend": self.storage.backend,
            },
            "engine": {
                "bounce_delay_ms": self.engine.bounce_delay_ms,
                "restore_delay_ms": self.engine.restore_delay_ms,
                "max_cascade_depth": self.engine.max_cascade_depth,
                "trigger_log_size": self.engine.trigger_log_size,
            },
            "api": {
                "host": self.api.host,
                "port": self.api.port,
            },
            "switches": [s.to_dict() for s in self.switches],
        }


def load_config(filepath: Optional[str] = None) -> SwitchLinkConfig:
    """
    Load configuration from file or environment.

    Without a path, SWITCHLINK_CONFIG and then ./switchlink.json are tried.
    """
    filepath = filepath or os.getenv("SWITCHLINK_CONFIG")
    if filepath:
        config = SwitchLinkConfig.from_file(filepath)
    elif Path("./switchlink.json").exists():
        logger.info("Loading config from: ./switchlink.json")
        config = SwitchLinkConfig.from_file("./switchlink.json")
    else:
        config = SwitchLinkConfig.from_env()

    logger.info(f"Configuration loaded: {len(config.switches)} switch(es)")
    return config
