import pytest

from tworoute.services.transfer.geo import (
    driving_minutes,
    haversine_m,
    point_distance_m,
    round_half_up,
    taxi_fare,
    walking_minutes,
)


class TestHaversine:
    def test_same_point_is_zero(self):
        assert haversine_m(41.9, 12.5, 41.9, 12.5) == 0

    def test_one_degree_of_latitude(self):
        assert haversine_m(0.0, 0.0, 1.0, 0.0) == 111195

    def test_symmetric(self):
        assert haversine_m(41.9, 12.5, 41.8, 12.25) == haversine_m(41.8, 12.25, 41.9, 12.5)

    def test_hotel_to_airport(self, hotel, airport):
        distance = point_distance_m(hotel, airport)
        assert 23_000 < distance < 24_000
        assert isinstance(distance, int)


class TestEstimates:
    @pytest.mark.parametrize("distance,minutes", [(0, 0), (800, 10), (300, 4), (1200, 15), (1640, 21), (1800, 23)])
    def test_walking_minutes(self, distance, minutes):
        assert walking_minutes(distance) == minutes

    def test_driving_minutes_has_a_floor(self):
        assert driving_minutes(0) == 1
        assert driving_minutes(100) == 1

    def test_driving_minutes(self):
        assert driving_minutes(5000) == 10

    def test_taxi_fare(self):
        assert taxi_fare(0) == 3.0
        assert taxi_fare(5000) == 13.0
        assert taxi_fare(23_499) == 50.0


class TestRoundHalfUp:
    @pytest.mark.parametrize("value,expected", [
        (0.5, 1), (1.5, 2), (2.5, 3), (20.5, 21), (42.5, 43), (2.4999, 2), (-2.5, -2), (-2.6, -3),
    ])
    def test_halves_round_up(self, value, expected):
        assert round_half_up(value) == expected

    def test_returns_int(self):
        assert isinstance(round_half_up(3.0), int)
