"""Tests for distance unit conversion."""

import pytest

from plan_engine.training_plan.models import DistanceUnit
from plan_engine.utils.units import meters_to_unit, seconds_per_km_to_unit


@pytest.mark.unit
class TestUnits:
    def test_meters_to_km(self):
        assert meters_to_unit(21097.5, DistanceUnit.KM) == pytest.approx(21.0975)

    def test_meters_to_miles(self):
        assert meters_to_unit(42195, DistanceUnit.MI) == pytest.approx(26.219, abs=0.001)

    def test_pace_per_km_unchanged_for_km(self):
        assert seconds_per_km_to_unit(300.0, DistanceUnit.KM) == 300.0

    def test_pace_per_km_to_miles(self):
        assert seconds_per_km_to_unit(300.0, DistanceUnit.MI) == pytest.approx(482.8, abs=0.1)
