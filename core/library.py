import json
import logging
from config import DATA_DIR, GEOCODING_CACHE_FILE, PHOTOS_FILE, SETTINGS_FILE, TRIPS_FILE
from core.models import Photo, Trip, UserSettings
from pathlib import Path

logger = logging.getLogger(__name__)


class LibraryStore:
    """JSON files backing the command line: photo export, settings, trips and geocoding cache.

    The clustering pipeline itself never touches disk; this is the caller's side.
    """

    def __init__(self, data_dir: Path = DATA_DIR):
        self.data_dir = Path(data_dir)
        self.photos_file = self.data_dir / PHOTOS_FILE
        self.settings_file = self.data_dir / SETTINGS_FILE
        self.trips_file = self.data_dir / TRIPS_FILE
        self.cache_file = self.data_dir / GEOCODING_CACHE_FILE

    def load_photos(self) -> list[Photo]:
        """Read the photo export, skipping records that cannot be parsed"""
        with open(self.photos_file) as f:
            records = json.load(f)

        photos = []
        skipped = 0
        for record in records:
            try:
                photos.append(Photo.from_dict(record))
            except (KeyError, TypeError, ValueError, OverflowError) as e:
                skipped += 1
                logger.debug(f"Skipping malformed photo record {record!r}: {e}")

        if skipped:
            logger.warning(f"Skipped {skipped} malformed photo records")
        logger.info(f"Loaded {len(photos)} photos from {self.photos_file}")
        return photos

    def load_settings(self) -> UserSettings:
        if not self.settings_file.exists():
            logger.warning(f"Settings file not found: {self.settings_file}")
            return UserSettings()

        with open(self.settings_file) as f:
            return UserSettings.from_dict(json.load(f))

    def load_trips(self) -> list[Trip]:
        if not self.trips_file.exists():
            return []

        with open(self.trips_file) as f:
            return [Trip.from_dict(item) for item in json.load(f)]

    def save_trips(self, trips: list[Trip]):
        self._write_json(self.trips_file, [trip.to_dict() for trip in trips])
        logger.info(f"Saved {len(trips)} trips to {self.trips_file}")

    def load_geocoding_cache(self) -> dict:
        """Return the saved bucket map, or an empty one if missing or unreadable"""
        if not self.cache_file.exists():
            return {}

        try:
            with open(self.cache_file) as f:
                data = json.load(f)
        except json.JSONDecodeError:
            backup = self.cache_file.with_suffix(self.cache_file.suffix + '.broken')
            self.cache_file.replace(backup)
            logger.warning(f"Could not load geocoding cache, moved it to {backup} and starting fresh")
            return {}

        if not isinstance(data, dict):
            logger.warning("Geocoding cache has unexpected format, starting fresh")
            return {}
        return data

    def save_geocoding_cache(self, entries: dict):
        self._write_json(self.cache_file, entries)
        logger.info(f"Saved geocoding cache ({len(entries)} entries)")

    def _write_json(self, path: Path, data):
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_suffix(path.suffix + '.tmp')
        with open(tmp, 'w') as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
        tmp.replace(path)
