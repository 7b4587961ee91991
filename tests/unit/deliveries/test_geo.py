"""Unit tests for distance, ETA and coordinate validation."""

from __future__ import annotations

import math

import pytest

from modules.core.exceptions import InvalidCoordinates
from modules.deliveries.geo import (
    estimate_eta_minutes,
    haversine_km,
    validate_coordinates,
)

pytestmark = pytest.mark.unit


class TestHaversine:
    def test_identical_points_are_zero_km_apart(self):
        assert haversine_km(12.9716, 77.5946, 12.9716, 77.5946) == 0.0

    def test_one_degree_of_latitude_is_about_111_km(self):
        assert haversine_km(0.0, 0.0, 1.0, 0.0) == pytest.approx(111.19, abs=0.01)

    def test_is_symmetric(self):
        a = haversine_km(12.9716, 77.5946, 13.0827, 80.2707)
        b = haversine_km(13.0827, 80.2707, 12.9716, 77.5946)
        assert a == b

    def test_rounds_to_two_decimals(self):
        value = haversine_km(12.9716, 77.5946, 12.9352, 77.6245)
        assert value == round(value, 2)

    def test_crosses_antimeridian(self):
        assert haversine_km(0.0, 179.5, 0.0, -179.5) == pytest.approx(111.19, abs=0.01)


class TestEstimateEta:
    def test_rounds_up_to_whole_minutes(self):
        # 10 km at 30 km/h is exactly 20 minutes; 10.1 km needs 21.
        assert estimate_eta_minutes(10.0, 30.0) == 20
        assert estimate_eta_minutes(10.1, 30.0) == 21

    def test_zero_distance_is_zero_minutes(self):
        assert estimate_eta_minutes(0.0) == 0

    def test_default_speed_is_30_kmh(self):
        assert estimate_eta_minutes(15.0) == 30

    @pytest.mark.parametrize("speed", [0, -5])
    def test_non_positive_speed_is_rejected(self, speed):
        with pytest.raises(ValueError):
            estimate_eta_minutes(5.0, speed)


class TestValidateCoordinates:
    @pytest.mark.parametrize(
        "lat,lng",
        [(0, 0), (90, 180), (-90, -180), (12.97, 77.59)],
    )
    def test_accepts_valid_points(self, lat, lng):
        validate_coordinates(lat, lng)

    @pytest.mark.parametrize(
        "lat,lng",
        [(90.01, 0), (-91, 0), (0, 180.5), (0, -181), (math.nan, 0), (0, math.inf)],
    )
    def test_rejects_out_of_range_or_non_finite(self, lat, lng):
        with pytest.raises(InvalidCoordinates):
            validate_coordinates(lat, lng)
