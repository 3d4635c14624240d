"""Location tagging session.

Walks the user through uploaded images one at a time. Each image is either
resolved from its geocoder suggestion, resolved from a manual
(kind, name, country) entry, or skipped. Advancing past the last image
completes the session and hands the tagged list to the next stage.

Example:
    >>> session = TaggingSession(images, on_complete=handle_tagged)
    >>> session.confirm_suggestion()      # image 1 had a GPS hint
    >>> session.submit_manual("city", "Lagos", "Nigeria")
    >>> session.skip()                    # image 3 stays untagged
    >>> session.is_complete
    True
"""

from __future__ import annotations

import logging
from typing import Callable, Iterable

from travelrecap.core.models import LocationKind, ResolvedLocation, TaggedImage

logger = logging.getLogger(__name__)


# =============================================================================
# Exceptions
# =============================================================================


class TaggingError(Exception):
    """Base exception for tagging errors."""

    pass


class ValidationError(TaggingError):
    """Manual location entry is missing a required field.

    Recoverable: the session stays on the same image so the user can be
    re-prompted.

    Attributes:
        field: Which input was missing (``"country"`` or ``"name"``).
    """

    field: str = ""

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message)
        if field is not None:
            self.field = field


class MissingCountryError(ValidationError):
    """No country was selected."""

    field = "country"


class MissingCityNameError(ValidationError):
    """A city entry was submitted without a city name."""

    field = "name"


class NoSuggestionError(TaggingError):
    """A suggestion was confirmed for an image that has none.

    The UI only offers confirmation when a suggestion exists, so reaching
    this is a caller bug.
    """

    pass


class SessionCompleteError(TaggingError):
    """An operation was attempted on a session that already finished."""

    pass


class SessionIncompleteError(TaggingError):
    """The tagged result was requested before every image was visited."""

    pass


# =============================================================================
# Resolvers
# =============================================================================


def resolve_suggestion(image: TaggedImage) -> ResolvedLocation:
    """Turn an image's geocoder suggestion into a resolved location.

    A suggested city produces a city-kind location; a country-only suggestion
    produces a country-kind one.

    Raises:
        NoSuggestionError: If the image carries no usable suggestion.
    """
    suggestion = image.suggested_location
    if suggestion is None or not suggestion.has_suggestion:
        raise NoSuggestionError(f"Image {image.id} has no location suggestion to confirm")
    if not suggestion.country:
        raise NoSuggestionError(
            f"Image {image.id} suggestion '{suggestion.city}' has no country to confirm"
        )

    if suggestion.city:
        return ResolvedLocation(kind=LocationKind.CITY, name=suggestion.city, country=suggestion.country)
    return ResolvedLocation(kind=LocationKind.COUNTRY, name=suggestion.country, country=suggestion.country)


def resolve_manual(kind: LocationKind | str, name: str | None, country: str | None) -> ResolvedLocation:
    """Build a resolved location from manual input.

    Raises:
        MissingCountryError: ``country`` is empty.
        MissingCityNameError: ``kind`` is city and ``name`` is empty.
    """
    kind = LocationKind(kind)
    country = (country or "").strip()
    name = (name or "").strip()

    if not country:
        raise MissingCountryError("Please select a country")
    if kind == LocationKind.CITY and not name:
        raise MissingCityNameError("Please enter a city name")

    if kind == LocationKind.COUNTRY:
        name = country
    return ResolvedLocation(kind=kind, name=name, country=country)


# =============================================================================
# Session
# =============================================================================


class TaggingSession:
    """Forward-only walk over a list of images collecting locations.

    The session owns a private copy of the image list. Once an image has been
    confirmed, entered manually or skipped, the session moves on and never
    returns to it.

    Attributes:
        position: Index of the image currently presented.
    """

    def __init__(
        self,
        images: Iterable[TaggedImage],
        on_complete: Callable[[list[TaggedImage]], None] | None = None,
    ) -> None:
        self._images: list[TaggedImage] = list(images)
        self._on_complete = on_complete
        self.position = 0
        self._completed = False

        logger.debug(
            f"Tagging session started: {len(self._images)} images, "
            f"{self.geo_tagged_count} with suggestions"
        )
        if not self._images:
            self._complete()

    # -------------------------------------------------------------------------
    # State
    # -------------------------------------------------------------------------

    @property
    def total(self) -> int:
        return len(self._images)

    @property
    def is_complete(self) -> bool:
        return self._completed

    @property
    def current_image(self) -> TaggedImage | None:
        if self._completed:
            return None
        return self._images[self.position]

    @property
    def images(self) -> list[TaggedImage]:
        return list(self._images)

    @property
    def tagged_count(self) -> int:
        return sum(1 for img in self._images if img.is_resolved)

    @property
    def geo_tagged_count(self) -> int:
        return sum(1 for img in self._images if img.has_suggestion)

    @property
    def progress_fraction(self) -> float:
        """Share of images already presented, including the current one."""
        if not self._images:
            return 1.0
        if self._completed:
            return 1.0
        return (self.position + 1) / len(self._images)

    # -------------------------------------------------------------------------
    # Operations
    # -------------------------------------------------------------------------

    def confirm_suggestion(self) -> TaggedImage:
        """Accept the current image's geocoder suggestion and move on."""
        image = self._require_current()
        location = resolve_suggestion(image)
        return self._commit(image, location)

    def submit_manual(self, kind: LocationKind | str, name: str | None, country: str | None) -> TaggedImage:
        """Resolve the current image from manual input and move on.

        On ``ValidationError`` the session does not advance.
        """
        image = self._require_current()
        location = resolve_manual(kind, name, country)
        return self._commit(image, location)

    def skip(self) -> TaggedImage:
        """Leave the current image unresolved and move on."""
        image = self._require_current()
        logger.debug(f"Image {image.id} skipped")
        self._advance()
        return image

    def result(self) -> list[TaggedImage]:
        """The final tagged image list.

        Raises:
            SessionIncompleteError: If images remain to be visited.
        """
        if not self._completed:
            raise SessionIncompleteError(
                f"Tagging session is at image {self.position + 1} of {self.total}"
            )
        return list(self._images)

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _require_current(self) -> TaggedImage:
        if self._completed:
            raise SessionCompleteError("Tagging session already completed")
        return self._images[self.position]

    def _commit(self, image: TaggedImage, location: ResolvedLocation) -> TaggedImage:
        tagged = image.with_location(location)
        self._images[self.position] = tagged
        logger.debug(f"Image {image.id} tagged as {location.kind.value} '{location.display_name}'")
        self._advance()
        return tagged

    def _advance(self) -> None:
        if self.position < len(self._images) - 1:
            self.position += 1
        else:
            self._complete()

    def _complete(self) -> None:
        self._completed = True
        logger.info(f"Tagging complete: {self.tagged_count} of {self.total} images tagged")
        if self._on_complete is not None:
            self._on_complete(list(self._images))
