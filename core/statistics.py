from collections import Counter
from collections.abc import Iterable
from config import TOP_DESTINATIONS_LIMIT
from core.models import Trip


def calculate_trip_stats(trips: Iterable[Trip], top_limit: int = TOP_DESTINATIONS_LIMIT) -> dict:
    """Summary numbers for a list of trips"""
    trips = list(trips)

    trips_by_year = Counter(str(trip.year) for trip in trips)
    destinations = Counter(trip.location_name for trip in trips)

    return {
        'total_trips': len(trips),
        'total_photos': sum(trip.photo_count for trip in trips),
        'total_days': sum(trip.duration_days for trip in trips),
        'unique_locations': len(destinations),
        'favorites': sum(1 for trip in trips if trip.is_favorite),
        'trips_by_year': dict(sorted(trips_by_year.items(), reverse=True)),
        'top_destinations': destinations.most_common(top_limit),
    }
