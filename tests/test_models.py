import pytest
from core.models import Coordinate, Photo, Trip, TripCategory, UserSettings, duration_in_days
from core.naming import classify_category, generate_title
from core.statistics import calculate_trip_stats
from datetime import datetime, timezone
from fixtures import TestDataFixtures


def make_trip(**overrides):
    values = {
        'title': 'June 2024 • France',
        'start_date': datetime(2024, 6, 1, 10, 0),
        'end_date': datetime(2024, 6, 5, 18, 0),
        'location_name': 'France',
        'photo_ids': ['a', 'b', 'c'],
        'cover_photo_id': 'a',
        'centroid': Coordinate(48.8566, 2.3522),
    }
    values.update(overrides)
    return Trip(**values)


class TestPhoto:
    def test_from_dict(self):
        """Test parsing a photo export record"""
        photo = Photo.from_dict(TestDataFixtures.get_test_photo_records()[0])

        assert photo.id == 'p1'
        assert photo.timestamp == datetime(2024, 6, 1, 10, 0, tzinfo=timezone.utc)
        assert photo.location == Coordinate(48.8566, 2.3522)

    def test_missing_or_invalid_location(self):
        """Test that bad coordinates become a missing location instead of an error"""
        records = TestDataFixtures.get_test_photo_records()

        assert Photo.from_dict(records[2]).location is None
        assert Photo.from_dict(records[3]).location is None

    def test_unparseable_timestamp(self):
        """Test that a garbage timestamp raises for the loader to skip"""
        with pytest.raises(ValueError):
            Photo.from_dict(TestDataFixtures.get_test_photo_records()[4])

    def test_naive_timestamp_is_read_as_utc(self):
        """Test that timestamps without an offset compare with offset-aware ones"""
        naive = Photo.from_dict({"id": "n", "timestamp": "2024-06-01T12:00:00"})
        aware = Photo.from_dict(TestDataFixtures.get_test_photo_records()[0])

        assert naive.timestamp == datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)
        assert aware.timestamp < naive.timestamp


class TestUserSettings:
    def test_from_dict(self):
        settings = UserSettings.from_dict(TestDataFixtures.get_test_settings())

        assert settings.home_location.latitude == pytest.approx(37.7749)
        assert settings.home_country == 'United States'

    def test_empty_settings(self):
        """Test that missing settings mean no home location"""
        settings = UserSettings.from_dict(None)

        assert settings.home_location is None
        assert settings.home_country is None


class TestTrip:
    def test_derived_properties(self):
        trip = make_trip()

        assert trip.display_title == 'June 2024 • France'
        assert trip.photo_count == 3
        assert trip.duration_days == 4
        assert trip.month_year == 'June 2024'
        assert trip.year == 2024
        assert trip.formatted_date_range == 'Jun 01, 2024 - Jun 05, 2024'

    def test_same_day_trip(self):
        """Test a trip within one day lasts one day and shows a single date"""
        trip = make_trip(end_date=datetime(2024, 6, 1, 11, 0))

        assert trip.duration_days == 1
        assert trip.formatted_date_range == 'Jun 01, 2024'

    def test_caller_mutations(self):
        trip = make_trip()

        trip.toggle_favorite()
        trip.set_custom_title('  Honeymoon ')
        trip.set_category('Family')
        trip.set_notes('Rained a lot')

        assert trip.is_favorite is True
        assert trip.display_title == 'Honeymoon'
        assert trip.category is TripCategory.FAMILY
        assert trip.notes == 'Rained a lot'

        trip.set_custom_title('   ')
        assert trip.display_title == 'June 2024 • France'

    def test_dict_round_trip(self):
        """Test that the JSON form restores an equal trip"""
        trip = make_trip(category=TripCategory.WEEKEND, notes='n', is_favorite=True)

        data = trip.to_dict()
        restored = Trip.from_dict(data)

        assert data['category'] == 'Weekend'
        assert data['start_date'] == '2024-06-01T10:00:00'
        assert restored == trip

    def test_fresh_ids(self):
        assert make_trip().id != make_trip().id


class TestDuration:
    @pytest.mark.parametrize(
        'start, end, expected',
        [
            (datetime(2024, 6, 1, 9), datetime(2024, 6, 1, 20), 1),
            (datetime(2024, 6, 1, 23), datetime(2024, 6, 2, 1), 1),
            (datetime(2024, 6, 1, 9), datetime(2024, 6, 3, 9), 2),
            (datetime(2024, 6, 1, 9), datetime(2024, 6, 8, 9), 7),
        ],
    )
    def test_duration_in_days(self, start, end, expected):
        assert duration_in_days(start, end) == expected


class TestCategoryClassifier:
    @pytest.mark.parametrize(
        'name, days, expected',
        [
            ('Business Park', 10, TripCategory.BUSINESS),
            ('Tech Conference Center', 2, TripCategory.BUSINESS),
            ('Rocky Mountain', 2, TripCategory.ADVENTURE),
            ('Hiking Trails, USA', 9, TripCategory.ADVENTURE),
            ('France', 1, TripCategory.WEEKEND),
            ('France', 3, TripCategory.WEEKEND),
            ('France', 5, TripCategory.VACATION),
            ('France', 7, TripCategory.VACATION),
            ('France', 21, TripCategory.VACATION),
        ],
    )
    def test_classify(self, name, days, expected):
        assert classify_category(name, days) is expected


class TestTitleGenerator:
    def test_title_format(self):
        assert generate_title('Japan', datetime(2023, 10, 14)) == 'October 2023 • Japan'


class TestTripStatistics:
    def test_stats(self):
        trips = [
            make_trip(location_name='France', is_favorite=True),
            make_trip(location_name='France', start_date=datetime(2023, 3, 1), end_date=datetime(2023, 3, 1)),
            make_trip(location_name='Japan', photo_ids=['x']),
        ]

        stats = calculate_trip_stats(trips)

        assert stats['total_trips'] == 3
        assert stats['total_photos'] == 7
        assert stats['total_days'] == 9
        assert stats['unique_locations'] == 2
        assert stats['favorites'] == 1
        assert stats['trips_by_year'] == {'2024': 2, '2023': 1}
        assert stats['top_destinations'] == [('France', 2), ('Japan', 1)]

    def test_empty(self):
        stats = calculate_trip_stats([])

        assert stats['total_trips'] == 0
        assert stats['top_destinations'] == []
