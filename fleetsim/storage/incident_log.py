"""Collect incident events from the bus and write them to Parquet."""

import logging
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional

import pandas as pd
import pyarrow as pa
import pyarrow.parquet as pq

from fleetsim.config.constants import EVENT_INCIDENT
from fleetsim.events.event_bus import Event, EventBus
from fleetsim.storage.schema_definition import INCIDENT_COLUMNS, INCIDENT_SCHEMA

logger = logging.getLogger(__name__)


class IncidentLog:
    """Buffers ``incident`` events in memory until ``write`` is called."""

    def __init__(self, bus: Optional[EventBus] = None):
        self._rows: List[Dict[str, Any]] = []
        self._lock = threading.Lock()
        if bus is not None:
            self.attach(bus)

    def attach(self, bus: EventBus) -> None:
        bus.subscribe(self._on_event, EVENT_INCIDENT)

    def _on_event(self, event: Event) -> None:
        self.record(event.data)

    def record(self, incident: Dict[str, Any]) -> None:
        row = {col: incident.get(col) for col in INCIDENT_COLUMNS}
        with self._lock:
            self._rows.append(row)

    def __len__(self) -> int:
        with self._lock:
            return len(self._rows)

    def to_dataframe(self) -> pd.DataFrame:
        with self._lock:
            rows = list(self._rows)
        df = pd.DataFrame(rows, columns=INCIDENT_COLUMNS)
        # Parquet stores whole seconds
        df["timestamp"] = pd.to_datetime(df["timestamp"].astype("float64").round(), unit="s")
        df["severity"] = df["severity"].astype("int32")
        df["distance_km"] = df["distance_km"].astype("float32")
        return df

    def write(self, path: Path) -> Path:
        """Write every buffered incident to ``path``. An empty log still writes a file."""
        output_path = Path(path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        df = self.to_dataframe()
        table = pa.Table.from_pandas(df, schema=INCIDENT_SCHEMA, preserve_index=False)
        pq.write_table(table, output_path, compression="snappy")
        logger.info(f"Wrote {len(df)} incidents to {output_path}")
        return output_path


def read_incidents(path: Path) -> pd.DataFrame:
    return pq.read_table(path).to_pandas()
