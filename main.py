#!/usr/bin/env python

"""
Trip Memories - Organize geotagged photos into trips

Groups photos taken away from home into trips, names each trip after the place
it happened and files it under a category.

Usage:
    main.py [command] [options]

    Default command is 'organize' if none specified.

Commands:
    organize: Cluster the photo export into trips and save them (default)
    refresh-unknown: Retry geocoding for saved trips stuck at "Unknown Location"
    stats: Display statistics for saved trips
    cache-stats: Display geocoding cache statistics
    cache-clear: Clear all geocoding cache entries

Options:
    --dry-run: Show what would be done without writing files
    --verbose: Enable verbose logging output
    --data-dir: Directory holding photos.json, settings.json, trips.json and the geocoding cache
    --offline: Only use cached place names, never call the geocoding service
    --fresh-window: Start a fresh geocoding rate-limit window
"""

import argparse
import json
import logging
import sys
from config import DATA_DIR
from core.assembler import TripAssembler
from core.library import LibraryStore
from core.statistics import calculate_trip_stats
from pathlib import Path
from utils.geocoding import GeocodeCache, GeocodeResolver, NominatimProvider

logger = logging.getLogger(__name__)


def build_assembler(store: LibraryStore, offline: bool = False) -> TripAssembler:
    """Wire a resolver around the saved geocoding cache"""
    cache = GeocodeCache(entries=store.load_geocoding_cache())
    provider = None if offline else NominatimProvider()
    return TripAssembler(resolver=GeocodeResolver(provider=provider, cache=cache))


def organize(store: LibraryStore, dry_run: bool = False, offline: bool = False, fresh_window: bool = False) -> bool:
    if not store.photos_file.exists():
        logger.error(f"Photo export not found: {store.photos_file}")
        return False

    try:
        photos = store.load_photos()
        settings = store.load_settings()
    except (OSError, json.JSONDecodeError) as e:
        logger.error(f"Failed to load input files: {e}")
        return False

    assembler = build_assembler(store, offline=offline)
    result = assembler.organize(photos, settings, reset_rate_limit=fresh_window)

    print("\n=== Organize Results ===")
    print(f"Clusters: {result.cluster_count}")
    print(f"Trips: {len(result.trips)}")
    print(f"Unresolved locations: {result.unresolved_count}")
    for trip in result.trips:
        print(f"  {trip.display_title} ({trip.photo_count} photos, {trip.category.value})")

    if dry_run:
        logger.info(f"DRY RUN: Would save {len(result.trips)} trips to {store.trips_file}")
        return True

    try:
        store.save_trips(result.trips)
        store.save_geocoding_cache(assembler.resolver.cache.to_dict())
    except OSError as e:
        logger.error(f"Failed to save results: {e}")
        return False

    return True


def refresh_unknown(store: LibraryStore, dry_run: bool = False) -> bool:
    try:
        trips = store.load_trips()
        settings = store.load_settings()
    except (OSError, json.JSONDecodeError, KeyError, ValueError) as e:
        logger.error(f"Failed to load saved trips: {e}")
        return False

    assembler = build_assembler(store)
    trips, fixed = assembler.refresh_unknown(trips, settings.home_country)
    print(f"Fixed {fixed} trips")

    if dry_run:
        logger.info("DRY RUN: Would save refreshed trips")
        return True

    try:
        store.save_trips(trips)
        store.save_geocoding_cache(assembler.resolver.cache.to_dict())
    except OSError as e:
        logger.error(f"Failed to save results: {e}")
        return False

    return True


def show_stats(store: LibraryStore) -> bool:
    try:
        trips = store.load_trips()
    except (OSError, json.JSONDecodeError, KeyError, ValueError) as e:
        logger.error(f"Failed to load saved trips: {e}")
        return False

    stats = calculate_trip_stats(trips)

    print("\n=== Trip Statistics ===")
    print(f"Trips: {stats['total_trips']}")
    print(f"Photos: {stats['total_photos']}")
    print(f"Days traveled: {stats['total_days']}")
    print(f"Places: {stats['unique_locations']}")
    print(f"Favorites: {stats['favorites']}")
    print("Trips by year:")
    for year, count in stats['trips_by_year'].items():
        print(f"  {year}: {count}")
    print("Top destinations:")
    for location, count in stats['top_destinations']:
        print(f"  {location}: {count}")

    return True


def parse_arguments(argv=None):
    """Parse command line arguments"""
    parser = argparse.ArgumentParser(
        description="Trip Memories - Organize geotagged photos into trips",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )

    parser.add_argument('command', nargs='?', default='organize', help='Command to execute (default: organize)')
    parser.add_argument('--dry-run', action='store_true', help='Show what would be done without writing files')
    parser.add_argument('--verbose', action='store_true', help='Enable verbose logging output')
    parser.add_argument('--data-dir', type=Path, default=DATA_DIR, help='Path to the data directory')
    parser.add_argument('--offline', action='store_true', help='Only use cached place names')
    parser.add_argument('--fresh-window', action='store_true', help='Start a fresh geocoding rate-limit window')

    return parser.parse_args(argv)


def setup_logging(verbose: bool = False):
    """Configure logging based on verbosity level"""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format='%(asctime)s - %(levelname)s - %(message)s', force=True)


def main(argv=None):
    args = parse_arguments(argv)

    setup_logging(args.verbose)

    command = args.command
    store = LibraryStore(args.data_dir)

    if command == "organize":
        success = organize(store, dry_run=args.dry_run, offline=args.offline, fresh_window=args.fresh_window)
        sys.exit(0 if success else 1)

    elif command == "refresh-unknown":
        success = refresh_unknown(store, dry_run=args.dry_run)
        sys.exit(0 if success else 1)

    elif command == "stats":
        success = show_stats(store)
        sys.exit(0 if success else 1)

    elif command == "cache-stats":
        cache = GeocodeCache(entries=store.load_geocoding_cache())
        stats = cache.get_stats()

        print("\n=== Geocoding Cache Statistics ===")
        print(f"Total entries: {stats['total_entries']}")
        print(f"Bucket precision: {stats['precision']} decimals")
        sys.exit(0)

    elif command == "cache-clear":
        if args.dry_run:
            logger.info("DRY RUN: Would clear the geocoding cache")
            sys.exit(0)

        cache = GeocodeCache(entries=store.load_geocoding_cache())
        cache.clear()
        store.save_geocoding_cache(cache.to_dict())
        print("Cache cleared successfully")
        sys.exit(0)

    else:
        print(__doc__.strip())
        sys.exit(1)


if __name__ == "__main__":
    main()
