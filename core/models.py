import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from dateutil.parser import parse as parse_date
from enum import Enum

MIN_VALID_LATITUDE = -90.0
MAX_VALID_LATITUDE = 90.0
MIN_VALID_LONGITUDE = -180.0
MAX_VALID_LONGITUDE = 180.0


def _parse_timestamp(value) -> datetime:
    if isinstance(value, datetime):
        return value
    return parse_date(value)


def _as_utc(value: datetime) -> datetime:
    """Read naive timestamps as UTC so one library can mix both forms"""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


@dataclass(frozen=True)
class Coordinate:
    latitude: float
    longitude: float

    def as_tuple(self) -> tuple[float, float]:
        return self.latitude, self.longitude

    def to_dict(self) -> dict:
        return {'latitude': self.latitude, 'longitude': self.longitude}

    @classmethod
    def from_dict(cls, data: dict | None) -> 'Coordinate | None':
        """Build a coordinate, or None when the values are missing or out of range"""
        if not data:
            return None
        try:
            lat = float(data['latitude'])
            lon = float(data['longitude'])
        except (KeyError, TypeError, ValueError):
            return None

        if not (MIN_VALID_LATITUDE <= lat <= MAX_VALID_LATITUDE and MIN_VALID_LONGITUDE <= lon <= MAX_VALID_LONGITUDE):
            return None
        return cls(lat, lon)


@dataclass(frozen=True)
class Photo:
    """A photo record as supplied by the photo library; never mutated"""

    id: str
    timestamp: datetime
    location: Coordinate | None = None

    @classmethod
    def from_dict(cls, data: dict) -> 'Photo':
        return cls(
            id=str(data['id']),
            timestamp=_as_utc(_parse_timestamp(data['timestamp'])),
            location=Coordinate.from_dict(data.get('location')),
        )

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'timestamp': self.timestamp.isoformat(),
            'location': self.location.to_dict() if self.location else None,
        }


@dataclass(frozen=True)
class HomeLocation:
    latitude: float
    longitude: float

    @property
    def coordinate(self) -> Coordinate:
        return Coordinate(self.latitude, self.longitude)


@dataclass(frozen=True)
class UserSettings:
    """Read-only settings consumed by the clustering pipeline"""

    home_location: HomeLocation | None = None
    home_country: str | None = None

    @classmethod
    def from_dict(cls, data: dict | None) -> 'UserSettings':
        if not data:
            return cls()
        home = Coordinate.from_dict(data.get('home_location'))
        return cls(
            home_location=HomeLocation(home.latitude, home.longitude) if home else None,
            home_country=data.get('home_country') or None,
        )


class TripCategory(str, Enum):
    VACATION = 'Vacation'
    BUSINESS = 'Business'
    WEEKEND = 'Weekend'
    ADVENTURE = 'Adventure'
    FAMILY = 'Family'
    FRIENDS = 'Friends'
    SOLO = 'Solo'
    OTHER = 'Other'


def duration_in_days(start: datetime, end: datetime) -> int:
    """Calendar days between start and end, never less than one"""
    return max(1, (end.date() - start.date()).days)


@dataclass
class Trip:
    """A group of photos taken away from home, as produced by the trip assembler.

    Favorite, category, notes and custom title belong to the caller; the
    pipeline only sets their initial values.
    """

    title: str
    start_date: datetime
    end_date: datetime
    location_name: str
    photo_ids: list[str]
    cover_photo_id: str | None
    centroid: Coordinate | None = None
    category: TripCategory = TripCategory.VACATION
    is_favorite: bool = False
    custom_title: str | None = None
    notes: str | None = None
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    @property
    def display_title(self) -> str:
        return self.custom_title or self.title

    @property
    def photo_count(self) -> int:
        return len(self.photo_ids)

    @property
    def duration_days(self) -> int:
        return duration_in_days(self.start_date, self.end_date)

    @property
    def month_year(self) -> str:
        return self.start_date.strftime('%B %Y')

    @property
    def year(self) -> int:
        return self.start_date.year

    @property
    def formatted_date_range(self) -> str:
        start = self.start_date.strftime('%b %d, %Y')
        if self.start_date.date() == self.end_date.date():
            return start
        return f"{start} - {self.end_date.strftime('%b %d, %Y')}"

    def toggle_favorite(self):
        self.is_favorite = not self.is_favorite

    def set_custom_title(self, title: str | None):
        # Blank titles fall back to the generated one
        self.custom_title = title.strip() if title and title.strip() else None

    def set_category(self, category: TripCategory | str):
        self.category = TripCategory(category)

    def set_notes(self, notes: str | None):
        self.notes = notes or None

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'title': self.title,
            'custom_title': self.custom_title,
            'start_date': self.start_date.isoformat(),
            'end_date': self.end_date.isoformat(),
            'location_name': self.location_name,
            'centroid': self.centroid.to_dict() if self.centroid else None,
            'photo_ids': list(self.photo_ids),
            'cover_photo_id': self.cover_photo_id,
            'is_favorite': self.is_favorite,
            'category': self.category.value,
            'notes': self.notes,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'Trip':
        return cls(
            id=data['id'],
            title=data['title'],
            custom_title=data.get('custom_title'),
            start_date=_parse_timestamp(data['start_date']),
            end_date=_parse_timestamp(data['end_date']),
            location_name=data['location_name'],
            centroid=Coordinate.from_dict(data.get('centroid')),
            photo_ids=list(data.get('photo_ids', [])),
            cover_photo_id=data.get('cover_photo_id'),
            is_favorite=bool(data.get('is_favorite', False)),
            category=TripCategory(data.get('category', TripCategory.VACATION.value)),
            notes=data.get('notes'),
        )
