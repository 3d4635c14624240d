"""Core data models for Travel Recap.

This module holds every data structure that flows through the story pipeline.
Models follow a tiered flow:

1. RAW UPLOAD (GeoSuggestion, TaggedImage)
2. USER RESOLUTION (ResolvedLocation)
3. AGGREGATED ITINERARY (Destination)
4. FINAL RECAP (UserProfile, TravelRecap)

Images are the only records that change after creation, and only through
``TaggedImage.with_location()``, which returns a copy. Destinations are
frozen once the aggregator emits them.
"""

import uuid as uuid_module
from enum import Enum
from typing import Any, Self

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, computed_field, field_validator, model_validator


# =============================================================================
# Enums
# =============================================================================


class LocationKind(str, Enum):
    """Granularity of a tagged place."""

    CITY = "city"
    COUNTRY = "country"


class SocialPlatform(str, Enum):
    """Where the user's handle comes from, used for the story byline."""

    INSTAGRAM = "instagram"
    TWITTER = "twitter"
    NONE = "none"


# =============================================================================
# Location Models
# =============================================================================


class GeoSuggestion(BaseModel):
    """Advisory place hint produced by EXIF extraction and reverse geocoding.

    Coordinates and names are opaque; nothing here is validated against a
    gazetteer.

    Attributes:
        latitude: GPS latitude from EXIF, if any.
        longitude: GPS longitude from EXIF, if any.
        city: Geocoded city (or town/village) name.
        country: Geocoded country name.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    latitude: float | None = Field(default=None, validation_alias=AliasChoices("latitude", "lat"))
    longitude: float | None = Field(default=None, validation_alias=AliasChoices("longitude", "lng"))
    city: str | None = Field(default=None, validation_alias=AliasChoices("city", "suggestedCity"))
    country: str | None = Field(
        default=None, validation_alias=AliasChoices("country", "suggestedCountry")
    )

    @field_validator("city", "country", mode="before")
    @classmethod
    def blank_to_none(cls, v: Any) -> str | None:
        if isinstance(v, str):
            return v.strip() or None
        return v

    @property
    def has_suggestion(self) -> bool:
        return bool(self.city or self.country)

    @property
    def is_confirmable(self) -> bool:
        """A suggestion can only be confirmed as-is when it names a country."""
        return bool(self.country)

    @property
    def label(self) -> str:
        """Human readable form, e.g. ``"Paris, France"``."""
        if self.city and self.country:
            return f"{self.city}, {self.country}"
        return self.city or self.country or ""


class ResolvedLocation(BaseModel):
    """A place the user confirmed or typed in for one image.

    Invariants:
        - ``country`` is never empty.
        - Country-kind locations carry ``name == country``.
        - City-kind locations carry a non-empty ``name``.
    """

    model_config = ConfigDict(frozen=True)

    kind: LocationKind
    name: str = ""
    country: str

    @field_validator("name", "country", mode="before")
    @classmethod
    def strip_whitespace(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip()
        return v

    @model_validator(mode="before")
    @classmethod
    def country_kind_uses_country_name(cls, data: Any) -> Any:
        if isinstance(data, dict) and LocationKind(data.get("kind", "city")) == LocationKind.COUNTRY:
            data = {**data, "name": data.get("country")}
        return data

    @model_validator(mode="after")
    def check_required_parts(self) -> Self:
        if not self.country:
            raise ValueError("A resolved location requires a country")
        if self.kind == LocationKind.CITY and not self.name:
            raise ValueError("A city location requires a city name")
        return self

    @property
    def display_name(self) -> str:
        if self.kind == LocationKind.CITY:
            return f"{self.name}, {self.country}"
        return self.country


# =============================================================================
# Image Model
# =============================================================================


class TaggedImage(BaseModel):
    """One uploaded photo plus its location resolution state.

    ``capture_timestamp`` is epoch milliseconds. The upload collaborator falls
    back to the upload time when no capture time is recoverable, so ``None``
    here means it explicitly had nothing to offer.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(default_factory=lambda: str(uuid_module.uuid4()))
    preview_ref: str = Field(
        validation_alias=AliasChoices("preview_ref", "previewRef", "preview"), serialization_alias="previewRef"
    )
    capture_timestamp: int | None = Field(
        default=None,
        validation_alias=AliasChoices("capture_timestamp", "captureTimestamp", "timestamp"),
        serialization_alias="captureTimestamp",
    )
    suggested_location: GeoSuggestion | None = Field(
        default=None,
        validation_alias=AliasChoices("suggested_location", "suggestedLocation", "geoTag"),
        serialization_alias="suggestedLocation",
    )
    resolved_location: ResolvedLocation | None = Field(
        default=None,
        validation_alias=AliasChoices("resolved_location", "resolvedLocation", "location"),
        serialization_alias="resolvedLocation",
    )

    @field_validator("id", mode="before")
    @classmethod
    def generate_id_if_empty(cls, v: str | None) -> str:
        """Generate UUID if empty or None."""
        if not v:
            return str(uuid_module.uuid4())
        return v

    @property
    def is_resolved(self) -> bool:
        return self.resolved_location is not None

    @property
    def has_suggestion(self) -> bool:
        return self.suggested_location is not None and self.suggested_location.has_suggestion

    @property
    def can_confirm_suggestion(self) -> bool:
        return self.suggested_location is not None and self.suggested_location.is_confirmable

    def with_location(self, location: ResolvedLocation | None) -> "TaggedImage":
        """Return a copy of this image carrying ``location``."""
        return self.model_copy(update={"resolved_location": location})


# =============================================================================
# Aggregated Models
# =============================================================================


class Destination(BaseModel):
    """A deduplicated place built from one or more tagged images.

    Attributes:
        id: Assigned at aggregation time.
        kind: Copied from the first contributing image.
        name: Copied from the first contributing image.
        country: Copied from the first contributing image.
        images: Preview handles in the order their images were encountered.
        visit_order: 1-based rank in the aggregated itinerary.
        earliest_timestamp: Minimum capture time (epoch ms) of the
            contributing images, ``None`` when none of them had one.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid_module.uuid4()))
    kind: LocationKind
    name: str
    country: str
    images: tuple[str, ...] = ()
    visit_order: int = Field(ge=1)
    earliest_timestamp: int | None = None

    @computed_field
    @property
    def display_name(self) -> str:
        if self.kind == LocationKind.CITY:
            return f"{self.name}, {self.country}"
        return self.name

    @property
    def image_count(self) -> int:
        return len(self.images)

    @property
    def is_dated(self) -> bool:
        return self.earliest_timestamp is not None


# =============================================================================
# Recap Models
# =============================================================================


class UserProfile(BaseModel):
    """The person the story is about.

    Attributes:
        username: Handle or plain name, stripped.
        platform: Social platform the handle belongs to.
    """

    model_config = ConfigDict(frozen=True)

    username: str = Field(min_length=1)
    platform: SocialPlatform = SocialPlatform.NONE

    @field_validator("username", mode="before")
    @classmethod
    def strip_handle(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip().lstrip("@").strip()
        return v

    @property
    def display_name(self) -> str:
        if self.platform == SocialPlatform.NONE:
            return self.username
        return f"@{self.username}"


class TravelRecap(BaseModel):
    """Everything a finished story is built from."""

    model_config = ConfigDict(frozen=True)

    profile: UserProfile
    destinations: tuple[Destination, ...] = ()
    year: int

    @property
    def destination_count(self) -> int:
        return len(self.destinations)

    @property
    def country_count(self) -> int:
        return len({d.country.strip().lower() for d in self.destinations})

    @property
    def image_count(self) -> int:
        return sum(d.image_count for d in self.destinations)
