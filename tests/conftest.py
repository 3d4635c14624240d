"""Central Pytest Fixtures for Travel Recap.

Fixtures included:
- Images: make_image factory, paris_japan_images scenario, year_of_travel
- Determinism: id_factory for reproducible destination ids, FakeClock
- Config: isolated configuration (no env vars, no config files)
- Utilities: write_manifest helper
"""

import itertools
import json
import logging
import os
from datetime import datetime, timezone
from pathlib import Path

import pytest

from travelrecap.config import PlaybackConfig, reset_config
from travelrecap.core.models import GeoSuggestion, LocationKind, ResolvedLocation, TaggedImage
from travelrecap.utils.logging import PACKAGE_NAME, PLAYBACK_LOGGERS

# =============================================================================
# Helper Functions
# =============================================================================


def epoch_ms(year: int, month: int, day: int = 15) -> int:
    """Epoch milliseconds of noon UTC on the given date."""
    return int(datetime(year, month, day, 12, tzinfo=timezone.utc).timestamp() * 1000)


def city(name: str, country: str) -> ResolvedLocation:
    return ResolvedLocation(kind=LocationKind.CITY, name=name, country=country)


def country(name: str) -> ResolvedLocation:
    return ResolvedLocation(kind=LocationKind.COUNTRY, name=name, country=name)


class FakeClock:
    """Manually advanced monotonic clock, in seconds."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance_ms(self, ms: float) -> None:
        self.now += ms / 1000


class RecordingTimer:
    """AutoplayTimer double that records every arm/cancel call."""

    def __init__(self) -> None:
        self.calls: list[tuple] = []
        self.armed: tuple[int, int] | None = None

    def arm(self, duration_ms: int, epoch: int) -> None:
        self.calls.append(("arm", duration_ms, epoch))
        self.armed = (duration_ms, epoch)

    def cancel(self) -> None:
        self.calls.append(("cancel",))
        self.armed = None


def _reset_package_logger() -> None:
    """Drop handlers and levels installed by setup_logging so caplog sees records."""
    package_logger = logging.getLogger(PACKAGE_NAME)
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
        handler.close()
    package_logger.setLevel(logging.NOTSET)
    package_logger.propagate = True
    for name in PLAYBACK_LOGGERS:
        logging.getLogger(name).setLevel(logging.NOTSET)


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch: pytest.MonkeyPatch, tmp_path: Path):
    """Keep tests independent of env vars, config files and earlier logging setup."""
    for key in list(os.environ):
        if key.upper().startswith("TRAVELRECAP_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    reset_config()
    yield
    reset_config()
    _reset_package_logger()


@pytest.fixture
def make_image():
    """Factory for TaggedImage with sensible defaults."""
    counter = itertools.count(1)

    def _make(
        location: ResolvedLocation | None = None,
        timestamp: int | None = None,
        suggestion: GeoSuggestion | None = None,
        preview: str | None = None,
    ) -> TaggedImage:
        n = next(counter)
        return TaggedImage(
            id=f"img-{n}",
            preview_ref=preview or f"blob:{n}",
            capture_timestamp=timestamp,
            suggested_location=suggestion,
            resolved_location=location,
        )

    return _make


@pytest.fixture
def id_factory():
    """Reproducible destination ids: dest-1, dest-2, ..."""

    def _factory():
        counter = itertools.count(1)
        return lambda: f"dest-{next(counter)}"

    return _factory


@pytest.fixture
def paris_japan_images(make_image) -> list[TaggedImage]:
    """Paris at t=100, paris at t=50, Japan at t=200."""
    return [
        make_image(city("Paris", "France"), timestamp=100, preview="img100"),
        make_image(city("paris", "france"), timestamp=50, preview="img50"),
        make_image(country("Japan"), timestamp=200, preview="img200"),
    ]


@pytest.fixture
def year_of_travel(make_image) -> list[TaggedImage]:
    """Images spread over Q1, Q3 and one undated destination."""
    return [
        make_image(city("Lisbon", "Portugal"), timestamp=epoch_ms(2025, 8, 3)),
        make_image(city("Lagos", "Nigeria"), timestamp=epoch_ms(2025, 2, 10)),
        make_image(country("Iceland")),
        make_image(city("Lisbon", "Portugal"), timestamp=epoch_ms(2025, 7, 30)),
        make_image(None, timestamp=epoch_ms(2025, 5, 1)),
        make_image(city("Lagos", "Nigeria"), timestamp=epoch_ms(2025, 2, 11)),
    ]


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def recording_timer() -> RecordingTimer:
    return RecordingTimer()


@pytest.fixture
def playback_config() -> PlaybackConfig:
    return PlaybackConfig()


@pytest.fixture
def write_manifest(tmp_path: Path):
    """Write a JSON manifest and return its path."""

    def _write(data, name: str = "manifest.json") -> Path:
        path = tmp_path / name
        path.write_text(json.dumps(data, indent=2), encoding="utf-8")
        return path

    return _write
