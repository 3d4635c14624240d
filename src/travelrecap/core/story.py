"""Story compiler: quarter bucketing and slide deck assembly.

The compiled deck always has the same shape::

    intro
    quarter-intro(Q1), destination, destination, ...   # only if Q1 non-empty
    quarter-intro(Q2), destination, ...                # only if Q2 non-empty
    ...
    summary-stats
    summary                                            # terminal

Destinations without a capture time are placed in Q4 rather than dropped.
Compilation is total and deterministic: the same destinations always yield
the same deck.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone, tzinfo
from enum import Enum
from typing import Annotated, Iterable, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from travelrecap.core.models import Destination

logger = logging.getLogger(__name__)

DEFAULT_PREVIEW_LIMIT = 6


class Quarter(str, Enum):
    """Calendar quarter a destination is first visited in."""

    Q1 = "Q1"
    Q2 = "Q2"
    Q3 = "Q3"
    Q4 = "Q4"

    @property
    def display_name(self) -> str:
        return QUARTER_NAMES[self]

    @classmethod
    def for_month(cls, month: int) -> "Quarter":
        if not 1 <= month <= 12:
            raise ValueError(f"Month must be between 1 and 12, got {month}")
        return (cls.Q1, cls.Q2, cls.Q3, cls.Q4)[(month - 1) // 3]


QUARTER_NAMES: dict[Quarter, str] = {
    Quarter.Q1: "Beginning of the Year",
    Quarter.Q2: "Mid-Year Adventures",
    Quarter.Q3: "Late Summer Travels",
    Quarter.Q4: "Year-End Journeys",
}

QUARTER_ORDER: tuple[Quarter, ...] = (Quarter.Q1, Quarter.Q2, Quarter.Q3, Quarter.Q4)


# =============================================================================
# Slides
# =============================================================================


class _Slide(BaseModel):
    model_config = ConfigDict(frozen=True)


class IntroSlide(_Slide):
    """Opening slide, present even when nothing was tagged."""

    type: Literal["intro"] = "intro"
    destination_count: int = 0
    active_quarters: tuple[Quarter, ...] = ()


class QuarterIntroSlide(_Slide):
    """Announces a quarter and lists every destination in it."""

    type: Literal["quarter-intro"] = "quarter-intro"
    quarter: Quarter
    quarter_name: str
    destinations: tuple[Destination, ...]

    @property
    def count(self) -> int:
        return len(self.destinations)


class DestinationSlide(_Slide):
    """One place, with the quarter it was filed under."""

    type: Literal["destination"] = "destination"
    destination: Destination
    quarter: Quarter


class SummaryStatsSlide(_Slide):
    """Year-in-numbers slide ahead of the final summary."""

    type: Literal["summary-stats"] = "summary-stats"
    quarter_counts: dict[Quarter, int]
    destination_count: int
    country_count: int
    photo_count: int

    @property
    def active_quarter_count(self) -> int:
        return sum(1 for count in self.quarter_counts.values() if count)


class SummarySlide(_Slide):
    """Terminal slide: the stamp collection. Never auto-advances."""

    type: Literal["summary"] = "summary"
    preview: tuple[Destination, ...] = ()
    overflow_count: int = 0
    destination_count: int = 0


Slide = Annotated[
    Union[IntroSlide, QuarterIntroSlide, DestinationSlide, SummaryStatsSlide, SummarySlide],
    Field(discriminator="type"),
]

slide_list_adapter: TypeAdapter[list[Slide]] = TypeAdapter(list[Slide])

TERMINAL_SLIDE_TYPE = "summary"


# =============================================================================
# Bucketing
# =============================================================================


def quarter_for_timestamp(timestamp_ms: int, tz: tzinfo | None = None) -> Quarter:
    """Quarter of the calendar month ``timestamp_ms`` falls in."""
    moment = datetime.fromtimestamp(timestamp_ms / 1000, tz=tz or timezone.utc)
    return Quarter.for_month(moment.month)


def bucket_by_quarter(
    destinations: Iterable[Destination], tz: tzinfo | None = None
) -> dict[Quarter, list[Destination]]:
    """Group destinations by the quarter of their earliest timestamp.

    All four quarters are present in the result. Undated destinations go to
    Q4, as do destinations whose timestamp falls outside the representable
    calendar. Order within a quarter follows the input order.
    """
    buckets: dict[Quarter, list[Destination]] = {q: [] for q in QUARTER_ORDER}
    for destination in destinations:
        timestamp = destination.earliest_timestamp
        if timestamp is None:
            quarter = Quarter.Q4
        else:
            try:
                quarter = quarter_for_timestamp(timestamp, tz)
            except (ValueError, OverflowError, OSError) as e:
                logger.warning(
                    f"Capture time {timestamp} of {destination.display_name} is out of range ({e}), filing under Q4"
                )
                quarter = Quarter.Q4
        buckets[quarter].append(destination)
    return buckets


def active_quarters(buckets: dict[Quarter, list[Destination]]) -> tuple[Quarter, ...]:
    return tuple(q for q in QUARTER_ORDER if buckets.get(q))


# =============================================================================
# Compilation
# =============================================================================


def summary_tail(
    destinations: list[Destination],
    buckets: dict[Quarter, list[Destination]],
    preview_limit: int = DEFAULT_PREVIEW_LIMIT,
) -> list[Slide]:
    """The fixed closing slides of every deck."""
    stats = SummaryStatsSlide(
        quarter_counts={q: len(buckets[q]) for q in QUARTER_ORDER},
        destination_count=len(destinations),
        country_count=len({d.country.strip().lower() for d in destinations}),
        photo_count=sum(d.image_count for d in destinations),
    )
    preview = tuple(destinations[:preview_limit])
    final = SummarySlide(
        preview=preview,
        overflow_count=len(destinations) - len(preview),
        destination_count=len(destinations),
    )
    return [stats, final]


def compile_story(
    destinations: Iterable[Destination],
    tz: tzinfo | None = None,
    preview_limit: int = DEFAULT_PREVIEW_LIMIT,
) -> list[Slide]:
    """Compile destinations into the ordered slide deck.

    Args:
        destinations: Aggregator output, already in itinerary order.
        tz: Timezone used to read the month of each timestamp. UTC if None.
        preview_limit: How many stamps the final summary shows.

    Returns:
        Slides from intro to the terminal summary.
    """
    destinations = list(destinations)
    buckets = bucket_by_quarter(destinations, tz)
    quarters = active_quarters(buckets)

    slides: list[Slide] = [IntroSlide(destination_count=len(destinations), active_quarters=quarters)]
    for quarter in quarters:
        members = buckets[quarter]
        slides.append(
            QuarterIntroSlide(
                quarter=quarter,
                quarter_name=quarter.display_name,
                destinations=tuple(members),
            )
        )
        slides.extend(DestinationSlide(destination=d, quarter=quarter) for d in members)
    slides.extend(summary_tail(destinations, buckets, preview_limit))

    logger.info(
        f"Compiled {len(slides)} slides: {len(destinations)} destinations across "
        f"{len(quarters)} quarters"
    )
    for i, slide in enumerate(slides):
        if isinstance(slide, DestinationSlide):
            logger.debug(f"  Slide {i}: destination - {slide.destination.display_name} ({slide.quarter.value})")
        elif isinstance(slide, QuarterIntroSlide):
            logger.debug(f"  Slide {i}: quarter-intro - {slide.quarter.value} ({slide.count} places)")
        else:
            logger.debug(f"  Slide {i}: {slide.type}")
    return slides


def is_terminal(slide: Slide) -> bool:
    return slide.type == TERMINAL_SLIDE_TYPE
