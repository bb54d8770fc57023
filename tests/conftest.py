"""
SwitchLink Test Configuration and Fixtures

Provides wired-up engine components and a factory for switch entities with
short resync delays.
"""

import asyncio

import pytest
from typing import Dict, List, Optional

from switchlink.core.models import SwitchConfig
from switchlink.dependencies.propagation import PropagationEngine
from switchlink.dependencies.registry import SwitchRegistry
from switchlink.dependencies.trigger_log import TriggerLog
from switchlink.errors import StoreError
from switchlink.host.interface import InMemoryHost
from switchlink.kernel.scheduler import ResyncScheduler
from switchlink.kernel.switch import SwitchEntity
from switchlink.storage.state_store import MemoryStateStore


# Short delays keep resync tests fast
TEST_BOUNCE_DELAY_MS = 20
TEST_RESTORE_DELAY_MS = 20


class FailingStore(MemoryStateStore):
    """MemoryStateStore that raises StoreError for selected names."""

    def __init__(self, initial: Optional[Dict[str, bool]] = None):
        super().__init__(initial)
        self.fail_reads: set = set()
        self.fail_writes: set = set()

    async def get(self, name: str):
        if name in self.fail_reads:
            raise StoreError(f"simulated read failure for {name}", switch=name)
        return await super().get(name)

    async def set(self, name: str, value: bool) -> None:
        if name in self.fail_writes:
            raise StoreError(f"simulated write failure for {name}", switch=name, write=True)
        await super().set(name, value)


class YieldingStore(MemoryStateStore):
    """MemoryStateStore that yields to the loop on every read and write."""

    async def get(self, name: str):
        await asyncio.sleep(0)
        return await super().get(name)

    async def set(self, name: str, value: bool) -> None:
        await asyncio.sleep(0)
        await super().set(name, value)


class SwitchBench:
    """Engine components plus a factory for entities sharing them."""

    def __init__(self, store=None):
        self.store = store if store is not None else MemoryStateStore()
        self.registry = SwitchRegistry()
        self.trigger_log = TriggerLog()
        self.engine = PropagationEngine(self.registry, self.store, trigger_log=self.trigger_log)
        self.scheduler = ResyncScheduler()
        self.host = InMemoryHost()
        self.switches: Dict[str, SwitchEntity] = {}

    def add(
        self,
        name: str,
        depends_on: Optional[List[str]] = None,
        depends_off: Optional[List[str]] = None,
        **kwargs,
    ) -> SwitchEntity:
        config = SwitchConfig(
            name=name,
            depends_on=depends_on or [],
            depends_off=depends_off or [],
            **kwargs,
        )
        entity = SwitchEntity(
            config,
            host=self.host,
            registry=self.registry,
            engine=self.engine,
            store=self.store,
            scheduler=self.scheduler,
            trigger_log=self.trigger_log,
            bounce_delay_ms=TEST_BOUNCE_DELAY_MS,
            restore_delay_ms=TEST_RESTORE_DELAY_MS,
        )
        self.switches[name] = entity
        return entity

    async def start(self) -> None:
        for entity in self.switches.values():
            await entity.start()

    async def persisted(self) -> Dict[str, Optional[bool]]:
        return {name: await self.store.get(name) for name in self.switches}


@pytest.fixture
def bench():
    """Fresh components backed by a MemoryStateStore."""
    return SwitchBench()


@pytest.fixture
def failing_bench():
    """Components backed by a FailingStore."""
    return SwitchBench(store=FailingStore())


@pytest.fixture
def failing_store():
    """A FailingStore with no failures armed."""
    return FailingStore()


@pytest.fixture
def make_bench():
    """Factory for a SwitchBench over a given store."""
    return SwitchBench


@pytest.fixture
def yielding_bench():
    """Components backed by a YieldingStore, so concurrent requests interleave."""
    return SwitchBench(store=YieldingStore())
