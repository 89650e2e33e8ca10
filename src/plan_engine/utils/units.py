"""Distance unit conversion.

The engine works in a single distance unit per invocation. Activity records
arrive in meters and are converted once at the aggregation boundary.
"""

from __future__ import annotations

from plan_engine.training_plan.models import DistanceUnit

METERS_PER_UNIT = {
    DistanceUnit.KM: 1000.0,
    DistanceUnit.MI: 1609.34,
}


def meters_to_unit(meters: float, unit: DistanceUnit) -> float:
    """Convert meters to the given distance unit."""
    return meters / METERS_PER_UNIT[unit]


def seconds_per_km_to_unit(seconds_per_km: float, unit: DistanceUnit) -> float:
    """Convert a pace expressed per km into seconds per `unit`."""
    return seconds_per_km * METERS_PER_UNIT[unit] / 1000.0
