"""Tests for the Parquet incident log."""

import pyarrow.parquet as pq

from fleetsim.config.constants import EVENT_INCIDENT
from fleetsim.events.event_bus import EventBus
from fleetsim.simulation.fleet_engine import FleetEngine
from fleetsim.storage.incident_log import IncidentLog, read_incidents
from fleetsim.storage.schema_definition import INCIDENT_COLUMNS, INCIDENT_SCHEMA

from conftest import FakeRandom


def _incident(vehicle_id="V1", severity=40, timestamp=1_735_689_600.0):
    return {
        "vehicle_id": vehicle_id,
        "incident_type": "tire",
        "severity": severity,
        "distance_km": 1.3,
        "timestamp": timestamp,
        "cause": "Reliability=B | Durability=5 | Condition=80.0",
    }


class TestIncidentLog:
    def test_collects_only_incidents(self):
        bus = EventBus()
        log = IncidentLog(bus)
        bus.publish(EVENT_INCIDENT, _incident())
        bus.publish("live-update", {"vehicle_id": "V1"})
        assert len(log) == 1

    def test_write_schema(self, tmp_path):
        log = IncidentLog()
        log.record(_incident("V1", 40))
        log.record(_incident("V2", 90, timestamp=1_735_689_660.4))
        path = log.write(tmp_path / "out" / "incidents.parquet")

        table = pq.read_table(path)
        assert table.schema.names == INCIDENT_SCHEMA.names
        assert table.schema.field("severity").type == INCIDENT_SCHEMA.field("severity").type
        assert table.num_rows == 2

        df = read_incidents(path)
        assert list(df.columns) == INCIDENT_COLUMNS
        assert df["vehicle_id"].tolist() == ["V1", "V2"]
        assert df["severity"].tolist() == [40, 90]
        assert str(df["timestamp"].iloc[0]) == "2025-01-01 00:00:00"

    def test_empty_log_writes_file(self, tmp_path):
        path = IncidentLog().write(tmp_path / "incidents.parquet")
        assert path.exists()
        assert pq.read_table(path).num_rows == 0

    def test_engine_incidents_reach_log(self, specs_c, sim_time, tmp_path):
        bus = EventBus()
        log = IncidentLog(bus)
        engine = FleetEngine(bus=bus, rng=FakeRandom(0.0, 0.99, 0.5), time_source=sim_time)
        engine.register_vehicle("V2", specs_c)
        engine.start_driving("V2", "D1", None, "Hub", "Munich", 100.0)
        sim_time.advance(60.0)
        engine.tick(sim_time.now)

        df = log.to_dataframe()
        assert len(df) == 1
        assert df["incident_type"].iloc[0] == "brake"
        assert df["vehicle_id"].iloc[0] == "V2"
