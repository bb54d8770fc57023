"""
SwitchLink Trigger Log

Audit trail of set requests, transitions, cascades, bounces, restores and
failures. Queryable by switch, cascade, type and time; exportable to JSON
for debugging a misbehaving dependency chain.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Set
import json
import logging
import uuid

logger = logging.getLogger(__name__)


class TriggerType(Enum):
    """Type of trigger event."""
    REQUEST = "request"                    # External set request received
    TRANSITION = "transition"              # Real state change applied
    BOUNCE = "bounce"                      # Stale re-assertion collapsed
    RESTORE = "restore"                    # Persisted state restored at startup
    CASCADE_UPDATE = "cascade_update"      # Dependent updated by the engine
    CANDIDATE_SKIPPED = "candidate_skipped"
    FAILURE = "failure"                    # Store or update failure
    CYCLE = "cycle"                        # Cascade aborted by the cycle guard


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class TriggerEntry:
    """A single entry in the trigger log."""
    entry_id: str = field(default_factory=lambda: str(uuid.uuid4())[:12])
    timestamp: datetime = field(default_factory=_now)

    trigger_type: TriggerType = TriggerType.TRANSITION
    switch: Optional[str] = None

    old_value: Optional[bool] = None
    new_value: Optional[bool] = None

    source: str = "unknown"
    cascade_id: Optional[str] = None
    caused_by: Optional[str] = None  # Switch whose transition caused this

    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "entry_id": self.entry_id,
            "timestamp": self.timestamp.isoformat(),
            "trigger_type": self.trigger_type.value,
            "switch": self.switch,
            "old_value": self.old_value,
            "new_value": self.new_value,
            "source": self.source,
            "cascade_id": self.cascade_id,
            "caused_by": self.caused_by,
            "metadata": self.metadata,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TriggerEntry":
        return cls(
            entry_id=data.get("entry_id", str(uuid.uuid4())[:12]),
            timestamp=datetime.fromisoformat(data["timestamp"]) if data.get("timestamp") else _now(),
            trigger_type=TriggerType(data.get("trigger_type", "transition")),
            switch=data.get("switch"),
            old_value=data.get("old_value"),
            new_value=data.get("new_value"),
            source=data.get("source", "unknown"),
            cascade_id=data.get("cascade_id"),
            caused_by=data.get("caused_by"),
            metadata=data.get("metadata", {}),
        )


class TriggerLog:
    """Bounded, indexed audit trail."""

    DEFAULT_MAX_ENTRIES = 10000

    def __init__(self, max_entries: int = DEFAULT_MAX_ENTRIES):
        self._entries: List[TriggerEntry] = []
        self._max_entries = max_entries

        self._by_switch: Dict[str, List[TriggerEntry]] = {}
        self._by_cascade: Dict[str, List[TriggerEntry]] = {}

    def log(self, entry: TriggerEntry) -> str:
        """Add an entry. Returns its id."""
        self._entries.append(entry)
        self._index(entry)

        if len(self._entries) > self._max_entries:
            self._trim_entries()

        return entry.entry_id

    def record(
        self,
        trigger_type: TriggerType,
        switch: Optional[str],
        new_value: Optional[bool] = None,
        old_value: Optional[bool] = None,
        source: str = "unknown",
        cascade_id: Optional[str] = None,
        caused_by: Optional[str] = None,
        **metadata: Any,
    ) -> str:
        """Convenience wrapper around log()."""
        return self.log(TriggerEntry(
            trigger_type=trigger_type,
            switch=switch,
            old_value=old_value,
            new_value=new_value,
            source=source,
            cascade_id=cascade_id,
            caused_by=caused_by,
            metadata=metadata,
        ))

    def query(
        self,
        since: Optional[datetime] = None,
        switch: Optional[str] = None,
        trigger_types: Optional[Set[TriggerType]] = None,
        cascade_id: Optional[str] = None,
        limit: int = 100,
    ) -> List[TriggerEntry]:
        """Matching entries, newest first."""
        if switch is not None:
            entries = self._by_switch.get(switch, [])
        elif cascade_id is not None:
            entries = self._by_cascade.get(cascade_id, [])
        else:
            entries = self._entries

        filtered = []
        for entry in reversed(entries):
            if since and entry.timestamp < since:
                continue
            if trigger_types and entry.trigger_type not in trigger_types:
                continue
            if cascade_id and entry.cascade_id != cascade_id:
                continue
            filtered.append(entry)
            if len(filtered) >= limit:
                break
        return filtered

    def get_recent(self, count: int = 100) -> List[TriggerEntry]:
        return list(reversed(self._entries[-count:]))

    def get_for_switch(self, switch: str, limit: int = 100) -> List[TriggerEntry]:
        entries = self._by_switch.get(switch, [])
        return list(reversed(entries[-limit:]))

    def get_cascade(self, cascade_id: str) -> List[TriggerEntry]:
        """All entries of a cascade, oldest first."""
        return list(self._by_cascade.get(cascade_id, []))

    def export_to_json(self, path: Path, limit: int = 10000) -> int:
        """Write recent entries to a JSON file. Returns the count written."""
        entries = self.query(limit=limit)
        data = {
            "exported_at": _now().isoformat(),
            "entry_count": len(entries),
            "entries": [e.to_dict() for e in entries],
        }
        with open(path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)

        logger.info(f"Exported {len(entries)} trigger log entries to {path}")
        return len(entries)

    def _index(self, entry: TriggerEntry) -> None:
        if entry.switch:
            self._by_switch.setdefault(entry.switch, []).append(entry)
        if entry.cascade_id:
            self._by_cascade.setdefault(entry.cascade_id, []).append(entry)

    def _trim_entries(self) -> None:
        trim_count = len(self._entries) - self._max_entries
        self._entries = self._entries[trim_count:]

        self._by_switch.clear()
        self._by_cascade.clear()
        for entry in self._entries:
            self._index(entry)

        logger.debug(f"Trimmed {trim_count} trigger log entries")

    def clear(self) -> None:
        self._entries.clear()
        self._by_switch.clear()
        self._by_cascade.clear()

    def __len__(self) -> int:
        return len(self._entries)
