"""Playback engine for a compiled story.

The engine is the single owner of playback state: the current slide index,
the progress toward auto-advancing it (0-100), an epoch counter and the
autoplay timer. All input is cooperative and single-threaded:

- ``tick(elapsed_ms)`` from the autoplay timer fills the progress bar and
  advances once it reaches 100%.
- ``advance()``, ``retreat()`` and ``tap_at(x)`` come from the user.

Every index change follows the same discipline: cancel the timer, reset
progress and bump the epoch, then arm the timer for the new slide. Ticks
armed under an older epoch are discarded, so progress from a previous slide
never leaks into the next one.

Invalid transitions (past the end, before the start, during the settle
window after a change) are silently ignored; user input timing is racy and
must never crash the story.

Example:
    >>> engine = PlaybackEngine(compile_story(destinations))
    >>> engine.tick(2500)           # halfway through the intro
    False
    >>> engine.tap_at(0.9)          # skip ahead
    True
    >>> engine.index
    1
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Protocol, Sequence

from pydantic import BaseModel, ConfigDict

from travelrecap.config import PlaybackConfig
from travelrecap.core.models import UserProfile
from travelrecap.core.story import (
    DestinationSlide,
    IntroSlide,
    QuarterIntroSlide,
    Slide,
    SummaryStatsSlide,
    is_terminal,
)

logger = logging.getLogger(__name__)

BACK_TAP_FRACTION = 1 / 3


class AutoplayTimer(Protocol):
    """A repeating, cancellable tick source driven by the engine."""

    def arm(self, duration_ms: int, epoch: int) -> None: ...

    def cancel(self) -> None: ...


class ExportContext(BaseModel):
    """Minimal context an exporter needs to snapshot the current slide."""

    model_config = ConfigDict(frozen=True)

    slide_index: int
    display_name: str
    filename: str


TransitionListener = Callable[[int, int], None]


class PlaybackEngine:
    """Single-threaded state machine over an immutable slide list.

    Attributes:
        slides: The compiled deck. Never modified during playback.
        config: Pacing policy.
    """

    def __init__(
        self,
        slides: Sequence[Slide],
        config: PlaybackConfig | None = None,
        clock: Callable[[], float] = time.monotonic,
        timer: AutoplayTimer | None = None,
    ) -> None:
        if not slides:
            raise ValueError("A story needs at least one slide")
        self.slides: tuple[Slide, ...] = tuple(slides)
        self.config = config or PlaybackConfig()
        self._clock = clock
        self._timer: AutoplayTimer | None = None
        self._listeners: list[TransitionListener] = []

        self._index = 0
        self._progress = 0.0
        self._epoch = 0
        self._settle_until = float("-inf")

        if timer is not None:
            self.attach_timer(timer)

    # -------------------------------------------------------------------------
    # State
    # -------------------------------------------------------------------------

    @property
    def index(self) -> int:
        return self._index

    @property
    def progress(self) -> float:
        """Progress toward auto-advance of the current slide, 0-100."""
        return self._progress

    @property
    def epoch(self) -> int:
        """Incremented on every index change; identifies the live timer."""
        return self._epoch

    @property
    def current_slide(self) -> Slide:
        return self.slides[self._index]

    @property
    def slide_count(self) -> int:
        return len(self.slides)

    @property
    def is_terminal(self) -> bool:
        return self._index == len(self.slides) - 1 and is_terminal(self.current_slide)

    @property
    def is_settling(self) -> bool:
        return self._now_ms() < self._settle_until

    @property
    def current_duration_ms(self) -> int | None:
        return self.duration_for(self.current_slide)

    def duration_for(self, slide: Slide) -> int | None:
        """Auto-advance duration of ``slide``; None means it never advances."""
        if is_terminal(slide):
            return None
        if isinstance(slide, DestinationSlide):
            return self.config.destination_duration_ms(slide.destination.image_count)
        if isinstance(slide, QuarterIntroSlide):
            return self.config.quarter_intro_ms
        if isinstance(slide, IntroSlide):
            return self.config.intro_ms
        if isinstance(slide, SummaryStatsSlide):
            return self.config.summary_ms
        return self.config.intro_ms

    def progress_for(self, i: int) -> float:
        """Fill level of the i-th segment in the story progress bar."""
        if i < self._index:
            return 100.0
        if i == self._index:
            return self._progress
        return 0.0

    # -------------------------------------------------------------------------
    # Wiring
    # -------------------------------------------------------------------------

    def attach_timer(self, timer: AutoplayTimer) -> None:
        """Use ``timer`` for autoplay and arm it for the current slide."""
        if self._timer is not None:
            self._timer.cancel()
        self._timer = timer
        self._arm()

    def detach_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def add_listener(self, listener: TransitionListener) -> None:
        """Call ``listener(old_index, new_index)`` after every slide change."""
        self._listeners.append(listener)

    # -------------------------------------------------------------------------
    # Transitions
    # -------------------------------------------------------------------------

    def advance(self) -> bool:
        """Move to the next slide. Returns False when ignored."""
        if self._index >= len(self.slides) - 1 or self.is_settling:
            return False
        self._go_to(self._index + 1)
        return True

    def retreat(self) -> bool:
        """Move to the previous slide. Returns False when ignored."""
        if self._index <= 0 or self.is_settling:
            return False
        self._go_to(self._index - 1)
        return True

    def tap_at(self, x_fraction: float) -> bool:
        """Manual navigation: left third goes back, the rest goes forward."""
        if x_fraction < BACK_TAP_FRACTION:
            return self.retreat()
        return self.advance()

    def tick(self, elapsed_ms: float, epoch: int | None = None) -> bool:
        """Accumulate autoplay progress.

        Args:
            elapsed_ms: Time since the previous tick.
            epoch: Epoch the tick was armed under. Ticks from an older epoch
                are dropped.

        Returns:
            True if this tick advanced the story.
        """
        if epoch is not None and epoch != self._epoch:
            logger.debug(f"Dropped stale tick from epoch {epoch} (now {self._epoch})")
            return False
        duration = self.current_duration_ms
        if duration is None or elapsed_ms <= 0:
            return False

        self._progress = min(100.0, self._progress + elapsed_ms / duration * 100.0)
        if self._progress < 100.0:
            return False
        # Blocked by the settle window: hold at 100 and retry on the next tick.
        return self.advance()

    def jump_to(self, index: int) -> bool:
        """Go straight to ``index``, ignoring the settle window."""
        if not 0 <= index < len(self.slides) or index == self._index:
            return False
        self._go_to(index)
        return True

    def restart(self) -> None:
        """Rewind to the intro with a fresh timer."""
        self._go_to(0, settle=False)

    # -------------------------------------------------------------------------
    # Export
    # -------------------------------------------------------------------------

    def export_context(self, profile: UserProfile, year: int) -> ExportContext:
        """What an exporter needs to render the current slide to an image."""
        return ExportContext(
            slide_index=self._index,
            display_name=profile.display_name,
            filename=f"travel-recap-{year}-{profile.username}.png",
        )

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _now_ms(self) -> float:
        return self._clock() * 1000.0

    def _go_to(self, index: int, settle: bool = True) -> None:
        previous = self._index
        if self._timer is not None:
            self._timer.cancel()
        self._epoch += 1
        self._progress = 0.0
        self._index = index
        if settle:
            self._settle_until = self._now_ms() + self.config.settle_ms
        else:
            self._settle_until = float("-inf")
        self._arm()

        logger.debug(
            f"Slide {previous + 1} -> {index + 1} of {len(self.slides)} "
            f"(type: {self.current_slide.type})"
        )
        for listener in list(self._listeners):
            listener(previous, index)

    def _arm(self) -> None:
        if self._timer is None:
            return
        duration = self.current_duration_ms
        if duration is None:
            logger.debug("Terminal slide reached, autoplay stopped")
            return
        self._timer.arm(duration, self._epoch)
