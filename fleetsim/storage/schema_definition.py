"""PyArrow schema for the incident log Parquet file."""

import pyarrow as pa

INCIDENT_COLUMNS = [
    "timestamp",
    "vehicle_id",
    "incident_type",
    "severity",
    "distance_km",
    "cause",
]


def build_incident_schema() -> pa.Schema:
    fields = [
        pa.field("timestamp", pa.timestamp("s")),
        pa.field("vehicle_id", pa.string()),
        pa.field("incident_type", pa.string()),
        pa.field("severity", pa.int32()),
        pa.field("distance_km", pa.float32()),
        pa.field("cause", pa.string()),
    ]
    return pa.schema(fields)


INCIDENT_SCHEMA = build_incident_schema()
