import logging
import time
from config import (
    COUNTRY_CODES,
    GEOCODE_CACHE_PRECISION,
    GEOCODE_LANGUAGE,
    GEOCODE_MAX_ATTEMPTS,
    GEOCODE_RATE_LIMIT,
    GEOCODE_RATE_WINDOW_SECONDS,
    GEOCODE_RETRY_BACKOFF,
    GEOCODE_RETRY_DELAY_SECONDS,
    GEOCODE_TIMEOUT_SECONDS,
    LABELLED_CITIES,
    LABELLED_COUNTRIES,
    NOMINATIM_USER_AGENT,
    UNKNOWN_LOCATION,
)
from core.models import Coordinate
from dataclasses import dataclass
from geopy.exc import GeocoderRateLimited, GeopyError
from geopy.geocoders import Nominatim
from typing import Callable, Protocol

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Placemark:
    """The address parts of a reverse geocoding result that naming cares about"""

    locality: str | None = None
    sub_locality: str | None = None
    administrative_area: str | None = None
    country: str | None = None
    country_code: str | None = None

    @property
    def city(self) -> str | None:
        return self.locality or self.sub_locality or self.administrative_area or self.country


class GeocodeProvider(Protocol):
    def reverse(self, coordinate: Coordinate, timeout: float) -> Placemark | None: ...


class NominatimProvider:
    """Reverse geocoding through OpenStreetMap Nominatim"""

    LOCALITY_KEYS = ('city', 'town', 'village', 'municipality')
    SUB_LOCALITY_KEYS = ('suburb', 'city_district', 'neighbourhood')
    ADMINISTRATIVE_KEYS = ('state', 'region', 'county')

    def __init__(self, user_agent: str = NOMINATIM_USER_AGENT, language: str = GEOCODE_LANGUAGE, geocoder=None):
        self.geocoder = geocoder or Nominatim(user_agent=user_agent)
        self.language = language

    @staticmethod
    def _first(address: dict, keys: tuple[str, ...]) -> str | None:
        for key in keys:
            if address.get(key):
                return address[key]
        return None

    def placemark_from_address(self, address: dict) -> Placemark:
        return Placemark(
            locality=self._first(address, self.LOCALITY_KEYS),
            sub_locality=self._first(address, self.SUB_LOCALITY_KEYS),
            administrative_area=self._first(address, self.ADMINISTRATIVE_KEYS),
            country=address.get('country'),
            country_code=(address.get('country_code') or '').upper() or None,
        )

    def reverse(self, coordinate: Coordinate, timeout: float) -> Placemark | None:
        location = self.geocoder.reverse(
            coordinate.as_tuple(), exactly_one=True, language=self.language, addressdetails=True, timeout=timeout
        )
        if not location or not location.raw.get('address'):
            return None
        return self.placemark_from_address(location.raw['address'])


def coord_key(coordinate: Coordinate, precision: int = GEOCODE_CACHE_PRECISION) -> str:
    """Bucket key: "lat,lon" rounded to `precision` decimals"""
    # + 0.0 folds -0.0 into 0.0 so both sides of the equator share a bucket
    lat = round(coordinate.latitude, precision) + 0.0
    lon = round(coordinate.longitude, precision) + 0.0
    return f"{lat:.{precision}f},{lon:.{precision}f}"


class GeocodeCache:
    """In-memory bucket -> (city, country) map.

    Loading and saving the map is left to the caller: pass previously saved
    entries in, and persist `to_dict()` when done.
    """

    def __init__(self, entries: dict | None = None, precision: int = GEOCODE_CACHE_PRECISION):
        self.precision = precision
        self.entries: dict[str, dict[str, str]] = {}
        self.session_hits = 0
        self.session_misses = 0

        for key, value in (entries or {}).items():
            if isinstance(value, dict) and value.get('city') and 'country' in value:
                self.entries[key] = {'city': value['city'], 'country': value['country'] or ''}
            else:
                logger.warning(f"Ignoring malformed geocoding cache entry for {key}")

        if self.entries:
            logger.info(f"Loaded geocoding cache with {len(self.entries)} entries")

    def key_for(self, coordinate: Coordinate) -> str:
        return coord_key(coordinate, self.precision)

    def get(self, coordinate: Coordinate) -> dict[str, str] | None:
        entry = self.entries.get(self.key_for(coordinate))
        if entry is None:
            self.session_misses += 1
            return None
        self.session_hits += 1
        return entry

    def set(self, coordinate: Coordinate, city: str, country: str | None):
        self.entries[self.key_for(coordinate)] = {'city': city, 'country': country or ''}

    def invalidate(self, coordinate: Coordinate) -> bool:
        """Drop one bucket; returns whether it was present"""
        return self.entries.pop(self.key_for(coordinate), None) is not None

    def clear(self):
        entry_count = len(self.entries)
        self.entries = {}
        self.session_hits = 0
        self.session_misses = 0
        logger.info(f"Cleared {entry_count} cache entries")

    def to_dict(self) -> dict[str, dict[str, str]]:
        return {key: dict(value) for key, value in self.entries.items()}

    def get_stats(self) -> dict:
        total_requests = self.session_hits + self.session_misses
        hit_ratio = (self.session_hits / total_requests * 100) if total_requests > 0 else 0

        return {
            'total_entries': len(self.entries),
            'session_hits': self.session_hits,
            'session_misses': self.session_misses,
            'hit_ratio_percent': round(hit_ratio, 1),
            'precision': self.precision,
        }

    def __len__(self) -> int:
        return len(self.entries)

    def __contains__(self, coordinate: Coordinate) -> bool:
        return self.key_for(coordinate) in self.entries


class RateLimiter:
    """Fixed-window request counter.

    Allows `max_requests` per `window_seconds`; the next caller sleeps until
    the window ends. Bursts straddling a window boundary are not smoothed out.
    """

    def __init__(
        self,
        max_requests: int = GEOCODE_RATE_LIMIT,
        window_seconds: float = GEOCODE_RATE_WINDOW_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if max_requests < 1:
            raise ValueError("max_requests must be at least 1")
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._sleep = sleep
        self.request_count = 0
        self.window_start = clock()

    def reset(self):
        self.request_count = 0
        self.window_start = self._clock()

    def acquire(self):
        """Block until one more request fits in the current window, then count it"""
        now = self._clock()
        elapsed = now - self.window_start

        if elapsed >= self.window_seconds:
            self.request_count = 0
            self.window_start = now
        elif self.request_count >= self.max_requests:
            sleep_time = self.window_seconds - elapsed
            logger.debug(f"Rate limiting: sleeping {sleep_time:.2f} seconds")
            self._sleep(sleep_time)
            self.reset()

        self.request_count += 1


def location_display_name(city: str, country: str | None, home_country: str | None = None) -> str:
    """Name a place relative to the user's home country.

    Domestic places show the city. Abroad, the country name is used, except
    for labelled countries and cities which read "City, CODE".
    """
    if not country or (home_country and country == home_country):
        return city

    if city in LABELLED_CITIES or country in LABELLED_COUNTRIES:
        return f"{city}, {COUNTRY_CODES.get(country, country)}"

    return country


class GeocodeResolver:
    """Resolve coordinates to display names with caching, throttling and retries.

    `resolve` never raises for provider errors; after the last failed attempt it
    answers "Unknown Location" and leaves the bucket uncached so a later call
    or `refresh` tries the network again. With no provider, only cached
    buckets resolve.
    """

    def __init__(
        self,
        provider: GeocodeProvider | None,
        cache: GeocodeCache | None = None,
        rate_limiter: RateLimiter | None = None,
        timeout: float = GEOCODE_TIMEOUT_SECONDS,
        max_attempts: int = GEOCODE_MAX_ATTEMPTS,
        retry_delay: float = GEOCODE_RETRY_DELAY_SECONDS,
        retry_backoff: float = GEOCODE_RETRY_BACKOFF,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.provider = provider
        self.cache = cache if cache is not None else GeocodeCache()
        self.rate_limiter = rate_limiter if rate_limiter is not None else RateLimiter()
        self.timeout = timeout
        self.max_attempts = max(1, max_attempts)
        self.retry_delay = retry_delay
        self.retry_backoff = retry_backoff
        self._sleep = sleep
        self.request_count = 0

    def reset_rate_limit(self):
        self.rate_limiter.reset()

    def resolve(self, coordinate: Coordinate, home_country: str | None = None) -> tuple[str, str | None]:
        """Return (display name, country) for a coordinate"""
        cached = self.cache.get(coordinate)
        if cached is not None:
            country = cached['country'] or None
            return location_display_name(cached['city'], country, home_country), country

        result = self._lookup(coordinate)
        if result is None:
            logger.warning(f"Could not resolve {self.cache.key_for(coordinate)}, using '{UNKNOWN_LOCATION}'")
            return UNKNOWN_LOCATION, None

        city, country = result
        self.cache.set(coordinate, city, country)

        name = location_display_name(city, country, home_country)
        logger.info(f"Geocoded: {name} (City: {city}, Country: {country})")
        return name, country

    def refresh(self, coordinate: Coordinate, home_country: str | None = None) -> tuple[str, str | None]:
        """Forget the cached bucket for a coordinate and resolve it again"""
        if self.cache.invalidate(coordinate):
            logger.debug(f"Evicted cache entry {self.cache.key_for(coordinate)}")
        return self.resolve(coordinate, home_country)

    def _lookup(self, coordinate: Coordinate) -> tuple[str, str | None] | None:
        if self.provider is None:
            return None

        delay = self.retry_delay
        for attempt in range(1, self.max_attempts + 1):
            wait = delay
            self.rate_limiter.acquire()
            self.request_count += 1

            try:
                placemark = self.provider.reverse(coordinate, timeout=self.timeout)
                if placemark is not None and placemark.city:
                    return placemark.city, placemark.country
                logger.warning(f"Geocoding attempt {attempt} returned no usable place")
            except GeocoderRateLimited as e:
                logger.warning(f"Geocoding attempt {attempt} was rate limited by the provider")
                if e.retry_after:
                    wait = max(wait, float(e.retry_after))
            except GeopyError as e:
                logger.warning(f"Geocoding attempt {attempt} failed: {e}")
            except Exception as e:
                logger.warning(f"Geocoding attempt {attempt} failed unexpectedly: {e}")

            if attempt < self.max_attempts:
                self._sleep(wait)
                delay *= self.retry_backoff

        return None
