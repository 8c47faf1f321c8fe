import logging
import threading
from collections.abc import Iterable
from concurrent.futures import Future, ThreadPoolExecutor
from config import UNKNOWN_LOCATION
from core.clustering import ClusterBuilder, ClusterMerger, PhotoCluster, calculate_centroid
from core.models import Photo, Trip, UserSettings, duration_in_days
from core.naming import classify_category, generate_title
from dataclasses import dataclass, field, replace
from utils.geocoding import GeocodeResolver

logger = logging.getLogger(__name__)


@dataclass
class OrganizeResult:
    """Outcome of one organize run"""

    trips: list[Trip] = field(default_factory=list)
    cluster_count: int = 0
    unresolved_count: int = 0
    cancelled: bool = False

    @property
    def completed(self) -> bool:
        return not self.cancelled


class TripAssembler:
    """Turns a photo library into trips: cluster, merge, then name each cluster.

    Geocoding is done one cluster at a time so the resolver's cache and rate
    limiter are only ever touched by a single caller.
    """

    def __init__(
        self,
        resolver: GeocodeResolver,
        builder: ClusterBuilder | None = None,
        merger: ClusterMerger | None = None,
    ):
        self.resolver = resolver
        self.builder = builder or ClusterBuilder()
        self.merger = merger or ClusterMerger()
        self._executor: ThreadPoolExecutor | None = None

    def organize(
        self,
        photos: Iterable[Photo],
        settings: UserSettings | None = None,
        cancel_event: threading.Event | None = None,
        reset_rate_limit: bool = False,
    ) -> OrganizeResult:
        """Cluster, merge and name the photos, stopping early when `cancel_event` is set"""
        settings = settings or UserSettings()
        photos = list(photos)
        logger.info("Starting trip clustering")
        logger.info(f"Total photos: {len(photos)}")

        if reset_rate_limit:
            self.resolver.reset_rate_limit()

        clusters = self.merger.merge(self.builder.build(photos, settings.home_location))
        result = OrganizeResult(cluster_count=len(clusters))

        for index, cluster in enumerate(clusters, start=1):
            if cancel_event is not None and cancel_event.is_set():
                logger.warning(f"Organize cancelled after {index - 1}/{len(clusters)} clusters")
                result.cancelled = True
                break

            logger.info(f"Processing cluster {index}/{len(clusters)}...")
            trip = self.build_trip(cluster, settings.home_country)
            if trip.location_name == UNKNOWN_LOCATION:
                result.unresolved_count += 1
            result.trips.append(trip)

        # sorted() is stable, so equal start dates keep cluster order
        result.trips = sorted(result.trips, key=lambda t: t.start_date, reverse=True)

        logger.info(f"Created {len(result.trips)} trips ({result.unresolved_count} with unresolved location)")
        return result

    def build_trip(self, cluster: PhotoCluster, home_country: str | None = None) -> Trip:
        """Turn one time-sorted cluster into a named and categorised trip"""
        start_date = cluster[0].timestamp
        end_date = cluster[-1].timestamp
        centroid = calculate_centroid(cluster)

        location_name = self._resolve_name(centroid, home_country)

        return Trip(
            title=generate_title(location_name, start_date),
            start_date=start_date,
            end_date=end_date,
            location_name=location_name,
            photo_ids=[photo.id for photo in cluster],
            cover_photo_id=cluster[0].id,
            centroid=centroid,
            category=classify_category(location_name, duration_in_days(start_date, end_date)),
        )

    def _resolve_name(self, centroid, home_country: str | None, refresh: bool = False) -> str:
        if centroid is None:
            return UNKNOWN_LOCATION
        # The resolver absorbs provider errors; this only guards against its own bugs
        try:
            if refresh:
                name, _ = self.resolver.refresh(centroid, home_country)
            else:
                name, _ = self.resolver.resolve(centroid, home_country)
        except Exception as e:
            logger.error(f"Unexpected error resolving {centroid.as_tuple()}: {e}")
            return UNKNOWN_LOCATION
        return name

    def refresh_unknown(self, trips: Iterable[Trip], home_country: str | None = None) -> tuple[list[Trip], int]:
        """Re-resolve trips stuck at "Unknown Location".

        Returns the updated trip list (same order) and how many were fixed.
        Favorite, custom title, notes and id carry over unchanged.
        """
        refreshed = []
        fixed = 0

        for trip in trips:
            if trip.location_name != UNKNOWN_LOCATION or trip.centroid is None:
                refreshed.append(trip)
                continue

            location_name = self._resolve_name(trip.centroid, home_country, refresh=True)
            if location_name == UNKNOWN_LOCATION:
                refreshed.append(trip)
                continue

            fixed += 1
            refreshed.append(
                replace(
                    trip,
                    location_name=location_name,
                    title=generate_title(location_name, trip.start_date),
                    category=classify_category(location_name, trip.duration_days),
                )
            )

        logger.info(f"Fixed {fixed} trips with unknown location")
        return refreshed, fixed

    def submit(
        self,
        photos: Iterable[Photo],
        settings: UserSettings | None = None,
        cancel_event: threading.Event | None = None,
        reset_rate_limit: bool = False,
    ) -> Future:
        """Run `organize` on a background worker.

        The worker pool has a single thread, so overlapping submissions queue
        up instead of geocoding concurrently. Set `cancel_event` to stop at
        the next cluster boundary.
        """
        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix='trip-organize')
        return self._executor.submit(self.organize, list(photos), settings, cancel_event, reset_rate_limit)

    def shutdown(self, wait: bool = True):
        """Stop the background worker, if one was started"""
        if self._executor is not None:
            self._executor.shutdown(wait=wait)
            self._executor = None
