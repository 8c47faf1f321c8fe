import logging
from collections.abc import Iterable, Sequence
from config import (
    GROUPING_RADIUS_KM,
    MAX_DAY_GAP_DAYS,
    MAX_MERGE_DAY_GAP_DAYS,
    MERGE_RADIUS_KM,
    MIN_PHOTOS_PER_TRIP,
    MIN_TRIP_DISTANCE_KM,
    NO_HOME_POLICY,
)
from core.models import Coordinate, HomeLocation, Photo
from datetime import timedelta
from geopy.distance import great_circle

logger = logging.getLogger(__name__)

PhotoCluster = list[Photo]


def distance_km(a: Coordinate, b: Coordinate) -> float:
    """Great-circle distance in kilometers between two coordinates"""
    return great_circle(a.as_tuple(), b.as_tuple()).km


def calculate_centroid(photos: Iterable[Photo]) -> Coordinate | None:
    """Mean latitude/longitude of the located photos.

    Plain arithmetic mean, good enough at trip scale but wrong for clusters
    straddling the antimeridian.
    """
    located = [photo.location for photo in photos if photo.location is not None]
    if not located:
        return None

    total_lat = sum(location.latitude for location in located)
    total_lon = sum(location.longitude for location in located)

    return Coordinate(total_lat / len(located), total_lon / len(located))


class ClusterBuilder:
    """Split a photo sequence into candidate trip clusters with a single greedy pass"""

    def __init__(
        self,
        min_trip_distance_km: float = MIN_TRIP_DISTANCE_KM,
        grouping_radius_km: float = GROUPING_RADIUS_KM,
        max_day_gap: timedelta = timedelta(days=MAX_DAY_GAP_DAYS),
        min_photos_per_cluster: int = MIN_PHOTOS_PER_TRIP,
        no_home_policy: str = NO_HOME_POLICY,
    ):
        if no_home_policy not in ('all', 'none'):
            raise ValueError(f"Unknown no-home policy: {no_home_policy}")

        self.min_trip_distance_km = min_trip_distance_km
        self.grouping_radius_km = grouping_radius_km
        self.max_day_gap = max_day_gap
        self.min_photos_per_cluster = min_photos_per_cluster
        self.no_home_policy = no_home_policy

    def filter_trip_photos(self, photos: Iterable[Photo], home: HomeLocation | None) -> list[Photo]:
        """Keep located photos far enough from home, sorted by time"""
        located = [photo for photo in photos if photo.location is not None]

        if home is None:
            if self.no_home_policy == 'none':
                logger.warning("No home location set, skipping trip detection")
                return []
            logger.warning("No home location set, using all geotagged photos")
            trip_photos = located
        else:
            home_coordinate = home.coordinate
            trip_photos = [
                photo for photo in located if distance_km(photo.location, home_coordinate) >= self.min_trip_distance_km
            ]

        logger.info(
            f"Found {len(trip_photos)} trip photos out of {len(located)} geotagged "
            f"(>{self.min_trip_distance_km:g}km from home)"
        )
        return sorted(trip_photos, key=lambda p: p.timestamp)

    def belongs_with(self, photo: Photo, previous: Photo) -> bool:
        """Whether a photo continues the cluster whose last photo is `previous`"""
        if photo.timestamp - previous.timestamp > self.max_day_gap:
            return False
        if distance_km(photo.location, previous.location) > self.grouping_radius_km:
            return False
        return True

    def build(self, photos: Iterable[Photo], home: HomeLocation | None) -> list[PhotoCluster]:
        """Filter, sort and split photos into clusters of at least the minimum size"""
        trip_photos = self.filter_trip_photos(photos, home)
        if not trip_photos:
            return []

        clusters: list[PhotoCluster] = []
        current = [trip_photos[0]]

        for photo in trip_photos[1:]:
            if self.belongs_with(photo, current[-1]):
                current.append(photo)
            else:
                self._close(current, clusters)
                current = [photo]

        self._close(current, clusters)

        logger.info(f"Created {len(clusters)} raw clusters")
        return clusters

    def _close(self, cluster: PhotoCluster, clusters: list[PhotoCluster]):
        if len(cluster) >= self.min_photos_per_cluster:
            clusters.append(cluster)
        else:
            logger.debug(f"Dropping cluster of {len(cluster)} photo(s) starting {cluster[0].timestamp}")


class ClusterMerger:
    """Recombine clusters that the sequential pass split apart.

    Each unmerged cluster anchors a group and absorbs every later unmerged
    cluster close enough in space and time. This runs once over the list; it
    does not iterate to a fixed point, so merging is transitive only through
    the anchor.
    """

    def __init__(
        self,
        merge_radius_km: float = MERGE_RADIUS_KM,
        max_merge_day_gap: timedelta = timedelta(days=MAX_MERGE_DAY_GAP_DAYS),
    ):
        self.merge_radius_km = merge_radius_km
        self.max_merge_day_gap = max_merge_day_gap

    def should_merge(self, group: Sequence[Photo], candidate: Sequence[Photo]) -> bool:
        """Whether `candidate` is close to the running group in both space and time"""
        group_centroid = calculate_centroid(group)
        candidate_centroid = calculate_centroid(candidate)
        if group_centroid is None or candidate_centroid is None:
            return False

        if distance_km(group_centroid, candidate_centroid) > self.merge_radius_km:
            return False

        # The running group is extended in place, so it is not kept time-ordered
        group_end = max(photo.timestamp for photo in group)
        candidate_start = min(photo.timestamp for photo in candidate)
        gap = abs(candidate_start - group_end)
        return gap <= self.max_merge_day_gap

    def merge(self, clusters: Sequence[PhotoCluster]) -> list[PhotoCluster]:
        """Merge clusters in order; each output group is sorted by time"""
        merged: list[PhotoCluster] = []
        used: set[int] = set()

        for i, cluster in enumerate(clusters):
            if i in used:
                continue

            group = list(cluster)
            used.add(i)

            for j in range(i + 1, len(clusters)):
                if j in used:
                    continue
                if self.should_merge(group, clusters[j]):
                    group.extend(clusters[j])
                    used.add(j)

            merged.append(sorted(group, key=lambda p: p.timestamp))

        logger.info(f"Merged {len(clusters)} clusters into {len(merged)}")
        return merged
