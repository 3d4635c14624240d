"""Pipeline glue: tagged images to a playable story.

Runs the stages strictly forward (aggregate, then compile) and packages the
result with the user's profile.
"""

from __future__ import annotations

import logging
from typing import Callable, Iterable

from travelrecap.config import AppConfig, get_config
from travelrecap.core.aggregator import aggregate
from travelrecap.core.models import TaggedImage, TravelRecap, UserProfile
from travelrecap.core.playback import PlaybackEngine
from travelrecap.core.story import Slide, compile_story

logger = logging.getLogger(__name__)


def build_recap(
    images: Iterable[TaggedImage],
    profile: UserProfile,
    year: int | None = None,
    id_factory: Callable[[], str] | None = None,
    config: AppConfig | None = None,
) -> TravelRecap:
    """Aggregate tagged images into a recap for ``profile``."""
    config = config or get_config()
    destinations = aggregate(images, id_factory=id_factory)
    return TravelRecap(
        profile=profile,
        destinations=tuple(destinations),
        year=year if year is not None else config.story.year,
    )


def build_story(
    images: Iterable[TaggedImage],
    profile: UserProfile,
    year: int | None = None,
    id_factory: Callable[[], str] | None = None,
    config: AppConfig | None = None,
) -> tuple[TravelRecap, list[Slide]]:
    """Aggregate and compile in one go.

    Returns:
        The recap and its compiled slide deck.
    """
    config = config or get_config()
    recap = build_recap(images, profile, year=year, id_factory=id_factory, config=config)
    slides = compile_story(
        recap.destinations,
        tz=config.story.tzinfo,
        preview_limit=config.story.preview_limit,
    )
    return recap, slides


def create_engine(slides: list[Slide], config: AppConfig | None = None) -> PlaybackEngine:
    """A playback engine paced by the configured playback policy."""
    config = config or get_config()
    return PlaybackEngine(slides, config=config.playback)
