"""
SwitchLink State Store

Durable key/value mapping from switch name to last-known boolean state.

Two backends:
- FileStateStore: one JSON record per switch under a directory, survives
  process restarts, forgiving about corrupt records.
- MemoryStateStore: dict-backed, for tests and ephemeral runs.

Both expose the same async contract: get(name) -> bool | None and
set(name, value), durable on return.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, List, Optional, Union
import asyncio
import hashlib
import json
import logging
import os
import tempfile

from switchlink.errors import StoreError

logger = logging.getLogger(__name__)


class StateStore(ABC):
    """Async key/value contract consumed by the switch entities and engine."""

    @abstractmethod
    async def get(self, name: str) -> Optional[bool]:
        """Return the persisted state, or None when nothing was stored yet."""

    @abstractmethod
    async def set(self, name: str, value: bool) -> None:
        """Persist a state. Durable on return."""

    @abstractmethod
    async def keys(self) -> List[str]:
        """Names with a stored record."""

    async def get_many(self, names: List[str]) -> List[Optional[bool]]:
        """Read several names, preserving order."""
        return list(await asyncio.gather(*(self.get(n) for n in names)))

    async def snapshot(self) -> Dict[str, Optional[bool]]:
        """All stored records as a dict."""
        names = sorted(await self.keys())
        values = await self.get_many(names)
        return dict(zip(names, values))


# =============================================================================
# MEMORY BACKEND
# =============================================================================

class MemoryStateStore(StateStore):
    """In-memory store. Nothing survives the process."""

    def __init__(self, initial: Optional[Dict[str, bool]] = None):
        self._data: Dict[str, bool] = dict(initial or {})

    async def get(self, name: str) -> Optional[bool]:
        return self._data.get(name)

    async def set(self, name: str, value: bool) -> None:
        self._data[name] = bool(value)

    async def keys(self) -> List[str]:
        return list(self._data.keys())

    def __len__(self) -> int:
        return len(self._data)


# =============================================================================
# FILE BACKEND
# =============================================================================

class FileStateStore(StateStore):
    """
    Directory-backed store, one JSON file per switch.

    File names are the SHA-256 of the switch name so any name is a valid
    key. Each file holds {"key": name, "value": bool}. Writes go to a temp
    file first and are moved into place, so a crash mid-write leaves the
    previous record intact.

    A record that fails to parse, or whose key does not match, is treated as
    absent and logged. Per-key asyncio locks give read-your-writes ordering
    for concurrent callers in the same loop.
    """

    RECORD_SUFFIX = ".json"

    def __init__(self, directory: Union[str, Path]):
        self._dir = Path(directory)
        self._locks: Dict[str, asyncio.Lock] = {}
        self._initialized = False

    @property
    def directory(self) -> Path:
        return self._dir

    def init(self) -> None:
        """Create the storage directory if needed."""
        if self._initialized:
            return
        try:
            self._dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StoreError(f"Cannot create storage directory {self._dir}: {e}", write=True) from e
        self._initialized = True
        logger.debug(f"State store initialized at {self._dir}")

    def _lock_for(self, name: str) -> asyncio.Lock:
        lock = self._locks.get(name)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[name] = lock
        return lock

    def _path_for(self, name: str) -> Path:
        digest = hashlib.sha256(name.encode("utf-8")).hexdigest()
        return self._dir / f"{digest}{self.RECORD_SUFFIX}"

    async def get(self, name: str) -> Optional[bool]:
        self.init()
        async with self._lock_for(name):
            return await asyncio.to_thread(self._read_record, name)

    async def set(self, name: str, value: bool) -> None:
        self.init()
        async with self._lock_for(name):
            await asyncio.to_thread(self._write_record, name, bool(value))

    async def keys(self) -> List[str]:
        self.init()
        return await asyncio.to_thread(self._scan_keys)

    def _read_record(self, name: str) -> Optional[bool]:
        path = self._path_for(name)
        try:
            raw = path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as e:
            raise StoreError(f"Cannot read state for '{name}': {e}", switch=name) from e

        record = self._parse(raw, path)
        if record is None:
            return None
        if record.get("key") != name:
            logger.warning(f"State record {path.name} does not belong to '{name}', ignoring")
            return None
        return record.get("value")

    def _write_record(self, name: str, value: bool) -> None:
        path = self._path_for(name)
        payload = json.dumps({"key": name, "value": value})
        try:
            fd, tmp_name = tempfile.mkstemp(dir=self._dir, suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(payload)
                    f.flush()
                    os.fsync(f.fileno())
                os.replace(tmp_name, path)
            except BaseException:
                if os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                raise
        except OSError as e:
            raise StoreError(f"Cannot write state for '{name}': {e}", switch=name, write=True) from e

    def _scan_keys(self) -> List[str]:
        names = []
        for path in self._dir.glob(f"*{self.RECORD_SUFFIX}"):
            try:
                raw = path.read_bytes()
            except OSError as e:
                logger.warning(f"Skipping unreadable state record {path.name}: {e}")
                continue
            record = self._parse(raw, path)
            if record is not None and isinstance(record.get("key"), str):
                names.append(record["key"])
        return names

    @staticmethod
    def _parse(raw: bytes, path: Path) -> Optional[Dict]:
        try:
            record = json.loads(raw.decode("utf-8"))
        # Covers UnicodeDecodeError too
        except ValueError:
            logger.warning(f"Corrupt state record {path.name}, treating as absent")
            return None
        if not isinstance(record, dict) or not isinstance(record.get("value"), bool):
            logger.warning(f"Malformed state record {path.name}, treating as absent")
            return None
        return record
