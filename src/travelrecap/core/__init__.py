"""Core engine for Travel Recap.

This package contains the whole story pipeline:

- **Models**: TaggedImage, ResolvedLocation, Destination, UserProfile
- **Tagging**: one-image-at-a-time location resolution
- **Aggregator**: dedup tagged images into an ordered itinerary
- **Story**: quarter bucketing and slide deck compilation
- **Playback**: the autoplay/manual navigation state machine

Example:
    >>> from travelrecap.core import TaggingSession, aggregate, compile_story, PlaybackEngine
    >>>
    >>> session = TaggingSession(images)
    >>> ...  # confirm / submit_manual / skip each image
    >>> destinations = aggregate(session.result())
    >>> engine = PlaybackEngine(compile_story(destinations))
"""

from travelrecap.core.aggregator import DestinationKey, aggregate
from travelrecap.core.autoplay import AsyncioAutoplayTimer, run_until_terminal
from travelrecap.core.models import (
    Destination,
    GeoSuggestion,
    LocationKind,
    ResolvedLocation,
    SocialPlatform,
    TaggedImage,
    TravelRecap,
    UserProfile,
)
from travelrecap.core.playback import ExportContext, PlaybackEngine
from travelrecap.core.recap import build_recap, build_story, create_engine
from travelrecap.core.story import (
    DestinationSlide,
    IntroSlide,
    Quarter,
    QuarterIntroSlide,
    Slide,
    SummarySlide,
    SummaryStatsSlide,
    bucket_by_quarter,
    compile_story,
)
from travelrecap.core.tagging import (
    MissingCityNameError,
    MissingCountryError,
    NoSuggestionError,
    SessionCompleteError,
    SessionIncompleteError,
    TaggingError,
    TaggingSession,
    ValidationError,
    resolve_manual,
    resolve_suggestion,
)

__all__ = [
    # Models
    "Destination",
    "GeoSuggestion",
    "LocationKind",
    "ResolvedLocation",
    "SocialPlatform",
    "TaggedImage",
    "TravelRecap",
    "UserProfile",
    # Tagging
    "TaggingSession",
    "resolve_manual",
    "resolve_suggestion",
    "TaggingError",
    "ValidationError",
    "MissingCountryError",
    "MissingCityNameError",
    "NoSuggestionError",
    "SessionCompleteError",
    "SessionIncompleteError",
    # Aggregation
    "DestinationKey",
    "aggregate",
    # Story
    "Quarter",
    "Slide",
    "IntroSlide",
    "QuarterIntroSlide",
    "DestinationSlide",
    "SummaryStatsSlide",
    "SummarySlide",
    "bucket_by_quarter",
    "compile_story",
    # Playback
    "PlaybackEngine",
    "ExportContext",
    "AsyncioAutoplayTimer",
    "run_until_terminal",
    # Pipeline
    "build_recap",
    "build_story",
    "create_engine",
]
