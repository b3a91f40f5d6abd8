"""Snapshot persistence for the engine registry.

A snapshot is a JSON-compatible dict produced by ``FleetEngine.snapshot()``:

    {
        "version": 1,
        "saved_at": <epoch seconds>,
        "last_daily_reset": <epoch seconds or null>,
        "vehicles": {vehicle_id: {"specs": {...}, "runtime": {...}}},
        "drivers": {driver_id: {...}},
    }

All timestamps are absolute so a reload resumes without clock drift.
"""

import copy
import json
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Optional

Snapshot = Dict[str, Any]


class SnapshotStore(ABC):
    """Storage boundary injected into the simulation clock."""

    @abstractmethod
    def save(self, snapshot: Snapshot) -> None:
        ...

    @abstractmethod
    def load(self) -> Optional[Snapshot]:
        """Return the last saved snapshot, or None if nothing was saved."""
        ...


class MemorySnapshotStore(SnapshotStore):
    """Keeps a deep copy of the last snapshot in memory."""

    def __init__(self) -> None:
        self._snapshot: Optional[Snapshot] = None
        self.saves = 0

    def save(self, snapshot: Snapshot) -> None:
        self._snapshot = copy.deepcopy(snapshot)
        self.saves += 1

    def load(self) -> Optional[Snapshot]:
        return copy.deepcopy(self._snapshot)


class JsonSnapshotStore(SnapshotStore):
    """Writes the snapshot to a JSON file.

    The file is replaced atomically, so a failed write leaves the previous
    snapshot intact.
    """

    def __init__(self, path: Path):
        self.path = Path(path)

    def save(self, snapshot: Snapshot) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = json.dumps(snapshot, indent=2, allow_nan=False) + "\n"
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp_path.write_text(payload)
        os.replace(tmp_path, self.path)

    def load(self) -> Optional[Snapshot]:
        if not self.path.exists():
            return None
        return json.loads(self.path.read_text())
