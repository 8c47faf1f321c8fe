from decouple import Choices, Csv, config
from pathlib import Path

# Directory paths
DATA_DIR = Path(config('DATA_DIR', default='data'))

# File names
PHOTOS_FILE = config('PHOTOS_FILE', default='photos.json')
SETTINGS_FILE = config('SETTINGS_FILE', default='settings.json')
TRIPS_FILE = config('TRIPS_FILE', default='trips.json')
GEOCODING_CACHE_FILE = config('GEOCODING_CACHE_FILE', default='geocoding_cache.json')

# Clustering constants
MIN_TRIP_DISTANCE_KM = config('MIN_TRIP_DISTANCE_KM', default=30.0, cast=float)  # Photos closer to home are local
GROUPING_RADIUS_KM = config('GROUPING_RADIUS_KM', default=150.0, cast=float)  # Max hop between consecutive photos
MAX_DAY_GAP_DAYS = config('MAX_DAY_GAP_DAYS', default=4.0, cast=float)
MIN_PHOTOS_PER_TRIP = config('MIN_PHOTOS_PER_TRIP', default=2, cast=int)
MERGE_RADIUS_KM = config('MERGE_RADIUS_KM', default=200.0, cast=float)  # Looser radius for recombining clusters
MAX_MERGE_DAY_GAP_DAYS = config('MAX_MERGE_DAY_GAP_DAYS', default=30.0, cast=float)

# What to do when no home location is configured: 'all' uses every geotagged photo, 'none' yields no trips
NO_HOME_POLICY = config('NO_HOME_POLICY', default='all', cast=Choices(['all', 'none']))

# Geocoding constants
GEOCODE_CACHE_PRECISION = config('GEOCODE_CACHE_PRECISION', default=2, cast=int)  # 2 decimals ~ 1.1km buckets
GEOCODE_RATE_LIMIT = config('GEOCODE_RATE_LIMIT', default=45, cast=int)  # Requests per window, under provider ceiling
GEOCODE_RATE_WINDOW_SECONDS = config('GEOCODE_RATE_WINDOW_SECONDS', default=60.0, cast=float)
GEOCODE_TIMEOUT_SECONDS = config('GEOCODE_TIMEOUT_SECONDS', default=12.0, cast=float)
GEOCODE_MAX_ATTEMPTS = config('GEOCODE_MAX_ATTEMPTS', default=3, cast=int)
GEOCODE_RETRY_DELAY_SECONDS = config('GEOCODE_RETRY_DELAY_SECONDS', default=1.0, cast=float)
GEOCODE_RETRY_BACKOFF = config('GEOCODE_RETRY_BACKOFF', default=2.0, cast=float)
GEOCODE_LANGUAGE = config('GEOCODE_LANGUAGE', default='en')
NOMINATIM_USER_AGENT = config('NOMINATIM_USER_AGENT', default='trip-memories/1.0')

UNKNOWN_LOCATION = 'Unknown Location'

# Countries (and cities) that get a "City, CODE" label instead of the bare country name
LABELLED_COUNTRIES = config(
    'LABELLED_COUNTRIES', default='United States,United Kingdom,Australia', cast=Csv(post_process=tuple)
)
LABELLED_CITIES = config(
    'LABELLED_CITIES',
    default='New York,Los Angeles,London,Manchester,Edinburgh,Sydney,Melbourne',
    cast=Csv(post_process=tuple),
)

COUNTRY_CODES = {
    "United States": "USA",
    "United Kingdom": "UK",
    "Australia": "AUS",
    "Canada": "CAN",
    "Germany": "DEU",
    "France": "FRA",
    "Italy": "ITA",
    "Spain": "ESP",
}

# Category keyword rules, checked in order against the lowercased location name
CATEGORY_KEYWORDS = [
    ('Business', ['business', 'conference']),
    ('Adventure', ['mountain', 'hiking', 'adventure']),
]
WEEKEND_MAX_DAYS = 3
VACATION_MIN_DAYS = 7

# Statistics
TOP_DESTINATIONS_LIMIT = 5
