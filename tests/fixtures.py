"""Test data fixtures for trip memories tests"""

from core.models import Coordinate, HomeLocation, Photo, UserSettings
from datetime import datetime, timedelta
from geopy.distance import great_circle
from utils.geocoding import Placemark

HOME = HomeLocation(37.7749, -122.4194)  # San Francisco
HOME_SETTINGS = UserSettings(home_location=HOME, home_country='United States')


def offset(origin: Coordinate, km: float, bearing: float = 90.0) -> Coordinate:
    """Point `km` away from origin along `bearing` degrees"""
    point = great_circle(kilometers=km).destination(origin.as_tuple(), bearing)
    return Coordinate(point.latitude, point.longitude)


class TestDataFixtures:
    """Centralized test data fixtures"""

    @staticmethod
    def burst(prefix: str, start: datetime, location: Coordinate, count: int, step: timedelta = timedelta(minutes=10)):
        """`count` photos at (nearly) the same place, `step` apart"""
        return [
            Photo(
                id=f"{prefix}-{i}",
                timestamp=start + step * i,
                location=Coordinate(location.latitude + i * 0.001, location.longitude),
            )
            for i in range(count)
        ]

    @staticmethod
    def far_location() -> Coordinate:
        """Los Angeles, ~560km from the test home"""
        return Coordinate(34.0522, -118.2437)

    @staticmethod
    def get_test_photo_records():
        """Raw photo export records as the photo library would write them"""
        return [
            {"id": "p1", "timestamp": "2024-06-01T10:00:00+00:00", "location": {"latitude": 48.8566, "longitude": 2.3522}},
            {"id": "p2", "timestamp": "2024-06-01T12:00:00+00:00", "location": {"latitude": 48.8606, "longitude": 2.3376}},
            {"id": "p3", "timestamp": "2024-06-02T09:30:00+00:00", "location": None},
            {"id": "p4", "timestamp": "2024-06-02T09:30:00+00:00", "location": {"latitude": 200, "longitude": 2.3}},
            {"id": "p5", "timestamp": "not-a-date"},
            {"timestamp": "2024-06-03T09:30:00+00:00"},
        ]

    @staticmethod
    def get_test_settings():
        return {
            "home_location": {"latitude": HOME.latitude, "longitude": HOME.longitude},
            "home_country": "United States",
        }


class FakeProvider:
    """Geocoding provider double: replays a list of outcomes and records calls.

    Each outcome is a Placemark, None, or an exception instance to raise. The
    last outcome repeats once the list is exhausted.
    """

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes) or [Placemark(locality='Paris', country='France')]
        self.calls = []

    def reverse(self, coordinate, timeout):
        self.calls.append((coordinate, timeout))
        outcome = self.outcomes[min(len(self.calls) - 1, len(self.outcomes) - 1)]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class FakeClock:
    """Manual clock whose sleep just advances time"""

    def __init__(self, start: float = 1000.0):
        self.now = start
        self.sleeps = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float):
        self.sleeps.append(seconds)
        self.now += seconds
