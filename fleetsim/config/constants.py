"""Simulation constants: cadences, driving rules, wear, incident and maintenance tables."""

# =============================================================================
# Clock Cadence
# =============================================================================

TICK_INTERVAL_SEC = 2.0          # live update cadence
SNAPSHOT_INTERVAL_SEC = 60.0     # persistence cadence
DRIVER_DAY_INTERVAL_SEC = 60.0   # one simulated driver-day per minute

# =============================================================================
# Hours of Service
# =============================================================================

MAX_DRIVING_HOURS = 6.0          # continuous driving before mandatory rest
MIN_REST_SEC = 3600.0            # 1 hour
DAILY_RESET_SEC = 24 * 3600.0    # global reset window

# =============================================================================
# Vehicle Wear
# =============================================================================

CONDITION_DEGRADATION_PER_KM = 0.01   # condition points lost per km
MAX_CONDITION = 100.0
ROUTE_COMPLETION_EPSILON_KM = 1e-9

# Capacity thresholds (tonnes) for class inference
CLASS_CAPACITY_LIMITS = {
    "light": 10.0,
    "medium": 20.0,
}

# Default cruising speed per class (km/h)
AVERAGE_SPEEDS = {
    "light":  75.0,
    "medium": 70.0,
    "heavy":  65.0,
}

# Fuel consumption ranges per class (L/100km)
FUEL_CONSUMPTION_RANGES = {
    "light":  (7.0, 12.0),
    "medium": (25.0, 30.0),
    "heavy":  (30.0, 33.0),
}

DEFAULT_FUEL_CONSUMPTION = 25.0
DEFAULT_MAX_FUEL = 100.0
DEFAULT_START_FUEL = 75.0
DEFAULT_LOCATION = "Hub"
DEFAULT_PRICE = 30_000.0

# =============================================================================
# Incident Model
# =============================================================================

INCIDENT_BASE_PER_KM = 0.0006    # 0.06% per km

RELIABILITY_MULTIPLIERS = {
    "A": 0.6,
    "B": 1.0,
    "C": 1.6,
}

DEFAULT_DURABILITY = 5
DURABILITY_PIVOT = 5
DURABILITY_STEP = 0.08           # +8% per point below the pivot
CONDITION_RISK_PIVOT = 50.0

# Additive driver risk terms
DRIVER_UNFIT_RISK = 0.6
DRIVER_OVER_HOURS_RISK = 0.6
DRIVER_LONG_HOURS_RISK = 0.25
DRIVER_RESTING_RISK = 0.15
DRIVER_LONG_HOURS = 4.0

SEVERITY_MIN = 10
SEVERITY_MAX = 100
SEVERITY_BASE_CAP = 90
SEVERITY_JITTER = 10
SEVERITY_GRADE_C_BONUS = 8

# Weighted incident type table
INCIDENT_TYPE_WEIGHTS = {
    "minor":     50,
    "breakdown": 25,
    "tire":      12,
    "engine":     8,
    "brake":      5,
}

INCIDENT_DAMAGE_DIVISOR = 6.0    # condition lost = round(severity / 6)

# =============================================================================
# Maintenance
# =============================================================================

MAINTENANCE_BASE_COST_FACTOR = 0.02   # 2% of price

MAINTENANCE_GROUPS = {
    1: {"cost_multiplier": 1.0, "duration_days": (1, 1), "restore_multiplier": 1.0},
    2: {"cost_multiplier": 1.6, "duration_days": (1, 2), "restore_multiplier": 1.2},
    3: {"cost_multiplier": 2.0, "duration_days": (2, 4), "restore_multiplier": 1.45},
}

MAINTENANCE_RESTORE_BASE = 20.0
MAINTENANCE_DURABILITY_SCALE = 6.0

# =============================================================================
# Driver Fitness
# =============================================================================

FIT_DECAY_ASSIGNED = 2.0         # per driver-day while bound to a vehicle
FIT_RECOVERY_IDLE = 1.5          # per driver-day while unbound
UNFIT_THRESHOLD = 30.0

# =============================================================================
# Events
# =============================================================================

EVENT_LIVE_UPDATE = "live-update"
EVENT_ROUTE_COMPLETED = "route-completed"
EVENT_LOCATION_UPDATE = "location-update"
EVENT_INCIDENT = "incident"
EVENT_DRIVER_REST = "driver-rest"
EVENT_MAINTENANCE = "maintenance"
EVENT_SNAPSHOT = "snapshot"

EVENT_QUEUE_SIZE = 100

# =============================================================================
# Snapshot Format
# =============================================================================

SNAPSHOT_VERSION = 1
