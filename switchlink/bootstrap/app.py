"""
bootstrap/app.py - Application builder and lifecycle

Assembles the store, registry, engine, scheduler, host and switch entities
from a SwitchLinkConfig. Everything is constructed explicitly and handed
down; there is no module-level registry or host handle.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional
import logging
import time

from switchlink.dependencies.propagation import PropagationEngine
from switchlink.dependencies.registry import SwitchRegistry
from switchlink.dependencies.trigger_log import TriggerLog
from switchlink.errors import UnknownSwitchError
from switchlink.host.interface import AccessoryInformation, HostHandle, InMemoryHost
from switchlink.kernel.scheduler import ResyncScheduler
from switchlink.kernel.switch import RequestResult, SwitchEntity
from switchlink.storage.state_store import FileStateStore, MemoryStateStore, StateStore

from .config import SwitchLinkConfig, load_config

logger = logging.getLogger("bootstrap.app")


class AppState(Enum):
    """Application lifecycle states."""
    CREATED = "created"
    BUILT = "built"
    RUNNING = "running"
    STOPPED = "stopped"


@dataclass
class AppContext:
    """Runtime application context."""
    config: SwitchLinkConfig
    store: StateStore
    registry: SwitchRegistry
    engine: PropagationEngine
    scheduler: ResyncScheduler
    host: HostHandle
    trigger_log: TriggerLog
    switches: Dict[str, SwitchEntity] = field(default_factory=dict)
    state: AppState = AppState.BUILT
    start_time: float = 0

    def get_switch(self, name: str) -> SwitchEntity:
        entity = self.switches.get(name)
        if entity is None:
            raise UnknownSwitchError(name)
        return entity

    def get_uptime(self) -> float:
        if self.start_time == 0:
            return 0
        return time.time() - self.start_time


class SwitchLinkApp:
    """Main application class."""

    def __init__(
        self,
        config: Optional[SwitchLinkConfig] = None,
        config_file: Optional[str] = None,
        host: Optional[HostHandle] = None,
        store: Optional[StateStore] = None,
    ):
        self._config = config
        self._config_file = config_file
        self._host = host
        self._store = store
        self._context: Optional[AppContext] = None

    @property
    def config(self) -> SwitchLinkConfig:
        if self._config is None:
            self._config = load_config(self._config_file)
        return self._config

    @property
    def context(self) -> AppContext:
        if self._context is None:
            self.build()
        return self._context

    def build(self) -> AppContext:
        """Construct every component and register all switches."""
        if self._context is not None:
            return self._context

        config = self.config
        host = self._host or InMemoryHost(persist_dir=config.storage.persist_dir)
        store = self._store or self._create_store(config, host)

        registry = SwitchRegistry()
        trigger_log = TriggerLog(max_entries=config.engine.trigger_log_size)
        engine = PropagationEngine(
            registry,
            store,
            trigger_log=trigger_log,
            max_depth=config.engine.max_cascade_depth,
        )
        scheduler = ResyncScheduler()
        information = AccessoryInformation(
            manufacturer=config.accessory.manufacturer,
            model=config.accessory.model,
            serial_number=config.accessory.serial_number,
            firmware_revision=config.accessory.firmware_revision,
        )

        context = AppContext(
            config=config,
            store=store,
            registry=registry,
            engine=engine,
            scheduler=scheduler,
            host=host,
            trigger_log=trigger_log,
        )

        for switch_config in config.switches:
            entity = SwitchEntity(
                switch_config,
                host=host,
                registry=registry,
                engine=engine,
                store=store,
                scheduler=scheduler,
                trigger_log=trigger_log,
                information=information,
                bounce_delay_ms=config.engine.bounce_delay_ms,
                restore_delay_ms=config.engine.restore_delay_ms,
            )
            context.switches[entity.name] = entity

        self._check_topology(registry)
        self._context = context
        logger.info(f"SwitchLink built with {len(context.switches)} switch(es)")
        return context

    @staticmethod
    def _create_store(config: SwitchLinkConfig, host: HostHandle) -> StateStore:
        if config.storage.backend == "memory":
            return MemoryStateStore()
        persist_dir = Path(config.storage.persist_dir or host.persist_path())
        return FileStateStore(persist_dir)

    @staticmethod
    def _check_topology(registry: SwitchRegistry) -> None:
        for cycle in registry.find_cycles():
            logger.warning(f"Dependency cycle in configuration: {' -> '.join(cycle + cycle[:1])}")
        for name, referrers in sorted(registry.unknown_references().items()):
            logger.warning(
                f"Switch '{name}' is referenced by {', '.join(sorted(referrers))} "
                f"but not configured; those dependencies can never be satisfied"
            )

    async def start(self) -> AppContext:
        """Build if needed and restore every switch's persisted state."""
        context = self.context
        if context.state is AppState.RUNNING:
            return context

        for entity in context.switches.values():
            await entity.start()

        context.state = AppState.RUNNING
        context.start_time = time.time()
        logger.info("SwitchLink running")
        return context

    async def stop(self) -> None:
        """Cancel pending resyncs."""
        if self._context is None:
            return
        await self._context.scheduler.shutdown()
        self._context.state = AppState.STOPPED
        logger.info("SwitchLink stopped")

    async def request(self, name: str, turn_on: bool) -> RequestResult:
        """Issue a set request to a switch by name."""
        return await self.context.get_switch(name).request_state(turn_on)

    async def status(self) -> List[Dict[str, Any]]:
        """Cached and persisted state of every switch, in registration order."""
        context = self.context
        rows = []
        for name, entity in context.switches.items():
            rows.append({
                "name": name,
                "state": entity.current_state(),
                "persisted": await context.store.get(name),
            })
        return rows

    def run_api(self) -> None:
        """Run the REST API server."""
        import uvicorn

        from switchlink.deployment.api import create_fastapi_app

        app = create_fastapi_app(self)
        uvicorn.run(app, host=self.config.api.host, port=self.config.api.port)
