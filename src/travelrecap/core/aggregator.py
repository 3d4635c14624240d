"""Destination aggregator.

Folds the tagged image list into an ordered itinerary of unique places.
Images resolving to the same place (compared case-insensitively, ignoring
surrounding whitespace) merge into one ``Destination``. Destinations are
ordered by the earliest capture time seen in each cluster; clusters with no
timestamped image go last, and ties keep first-appearance order.

Example:
    >>> destinations = aggregate(session.result())
    >>> [d.display_name for d in destinations]
    ['Paris, France', 'Japan']
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from typing import Callable, Iterable, NamedTuple

from travelrecap.core.models import Destination, LocationKind, ResolvedLocation, TaggedImage

logger = logging.getLogger(__name__)


class DestinationKey(NamedTuple):
    """Case-insensitive identity of a destination.

    Country-kind keys leave ``name`` empty so that only the country counts.
    """

    kind: LocationKind
    name: str
    country: str

    @classmethod
    def for_location(cls, location: ResolvedLocation) -> "DestinationKey":
        country = location.country.strip().lower()
        if location.kind == LocationKind.CITY:
            return cls(LocationKind.CITY, location.name.strip().lower(), country)
        return cls(LocationKind.COUNTRY, "", country)


@dataclass
class _Cluster:
    """Accumulator for one destination while images are being folded in."""

    kind: LocationKind
    name: str
    country: str
    first_seen: int
    images: list[str] = field(default_factory=list)
    timestamps: list[int] = field(default_factory=list)

    @property
    def earliest(self) -> int | None:
        return min(self.timestamps) if self.timestamps else None

    def sort_key(self) -> tuple[int, int, int]:
        # Dated clusters first (0), undated after (1); then by time, then appearance.
        earliest = self.earliest
        if earliest is None:
            return (1, 0, self.first_seen)
        return (0, earliest, self.first_seen)


def aggregate(
    images: Iterable[TaggedImage],
    id_factory: Callable[[], str] | None = None,
) -> list[Destination]:
    """Aggregate tagged images into an ordered list of destinations.

    Images without a resolved location are ignored. This never raises on
    empty input; it returns an empty list.

    Args:
        images: Tagged images in upload order.
        id_factory: Produces destination ids. Defaults to random UUIDs.

    Returns:
        Destinations sorted by earliest capture time, ``visit_order``
        assigned 1..N in that order.
    """
    make_id = id_factory or (lambda: str(uuid.uuid4()))
    resolved = [img for img in images if img.resolved_location is not None]
    if not resolved:
        logger.info("No tagged images, itinerary is empty")
        return []

    clusters: dict[DestinationKey, _Cluster] = {}
    for image in resolved:
        location = image.resolved_location
        key = DestinationKey.for_location(location)
        cluster = clusters.get(key)
        if cluster is None:
            cluster = _Cluster(
                kind=location.kind,
                name=location.name,
                country=location.country,
                first_seen=len(clusters),
            )
            clusters[key] = cluster
            logger.debug(f"New destination {key} from image {image.id}")
        cluster.images.append(image.preview_ref)
        if image.capture_timestamp is not None:
            cluster.timestamps.append(image.capture_timestamp)

    ordered = sorted(clusters.values(), key=_Cluster.sort_key)
    destinations = [
        Destination(
            id=make_id(),
            kind=cluster.kind,
            name=cluster.name,
            country=cluster.country,
            images=tuple(cluster.images),
            visit_order=rank,
            earliest_timestamp=cluster.earliest,
        )
        for rank, cluster in enumerate(ordered, start=1)
    ]

    undated = sum(1 for d in destinations if not d.is_dated)
    logger.info(
        f"Aggregated {len(resolved)} tagged images into {len(destinations)} destinations"
        + (f" ({undated} undated)" if undated else "")
    )
    return destinations
