"""Asyncio autoplay timer.

A repeating callback scheduled with ``loop.call_later`` that feeds
``PlaybackEngine.tick``. The engine cancels and re-arms it on every slide
change; each armed run carries the epoch it was armed under so any callback
that slips through after a cancel is rejected by the engine.

Example:
    >>> async def play(slides):
    ...     engine = PlaybackEngine(slides)
    ...     await run_until_terminal(engine)
"""

from __future__ import annotations

import asyncio
import logging

from travelrecap.core.playback import PlaybackEngine

logger = logging.getLogger(__name__)


class AsyncioAutoplayTimer:
    """Repeating interval ticker bound to one engine.

    Attributes:
        interval_ms: Time between ticks.
        armed_epoch: Epoch of the current run, None while cancelled.
    """

    def __init__(
        self,
        engine: PlaybackEngine,
        interval_ms: int | None = None,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        self.engine = engine
        self.interval_ms = interval_ms or engine.config.tick_interval_ms
        self._loop = loop
        self._handle: asyncio.TimerHandle | None = None
        self.armed_epoch: int | None = None
        self.armed_duration_ms: int | None = None

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    @property
    def is_armed(self) -> bool:
        return self._handle is not None

    def arm(self, duration_ms: int, epoch: int) -> None:
        self.cancel()
        self.armed_epoch = epoch
        self.armed_duration_ms = duration_ms
        self._schedule()

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        self.armed_epoch = None
        self.armed_duration_ms = None

    def _schedule(self) -> None:
        self._handle = self.loop.call_later(self.interval_ms / 1000, self._fire)

    def _fire(self) -> None:
        epoch = self.armed_epoch
        self._handle = None
        if epoch is None:
            return
        # tick() may advance, which cancels and re-arms this timer.
        self.engine.tick(self.interval_ms, epoch=epoch)
        if self.armed_epoch == epoch and self._handle is None:
            self._schedule()


async def run_until_terminal(
    engine: PlaybackEngine,
    interval_ms: int | None = None,
    poll_s: float = 0.01,
) -> int:
    """Play ``engine`` on the running loop until the terminal slide.

    Manual input may interleave freely while this runs.

    Returns:
        The index of the slide playback stopped on.
    """
    timer = AsyncioAutoplayTimer(engine, interval_ms=interval_ms, loop=asyncio.get_running_loop())
    engine.attach_timer(timer)
    try:
        while not engine.is_terminal:
            if engine.index == engine.slide_count - 1 and engine.progress >= 100:
                break
            await asyncio.sleep(poll_s)
    finally:
        engine.detach_timer()
    logger.debug(f"Autoplay finished on slide {engine.index + 1} of {engine.slide_count}")
    return engine.index
