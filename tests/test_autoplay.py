"""Tests for the asyncio autoplay timer."""

import asyncio

import pytest

from travelrecap.config import PlaybackConfig
from travelrecap.core.aggregator import aggregate
from travelrecap.core.autoplay import AsyncioAutoplayTimer, run_until_terminal
from travelrecap.core.playback import PlaybackEngine
from travelrecap.core.story import compile_story


@pytest.fixture
def fast_config() -> PlaybackConfig:
    return PlaybackConfig(
        intro_ms=5,
        quarter_intro_ms=5,
        destination_base_ms=5,
        destination_per_image_ms=0,
        destination_max_ms=5,
        summary_ms=5,
        settle_ms=0,
        tick_interval_ms=1,
    )


@pytest.fixture
def slides(paris_japan_images):
    return compile_story(aggregate(paris_japan_images))


class TestRunUntilTerminal:
    def test_plays_whole_story(self, slides, fast_config):
        engine = PlaybackEngine(slides, config=fast_config)
        seen = []
        engine.add_listener(lambda old, new: seen.append(new))

        final = asyncio.run(run_until_terminal(engine, poll_s=0.001))

        assert final == len(slides) - 1
        assert engine.is_terminal
        assert seen == list(range(1, len(slides)))

    def test_empty_story(self, fast_config):
        engine = PlaybackEngine(compile_story([]), config=fast_config)
        assert asyncio.run(run_until_terminal(engine, poll_s=0.001)) == 2

    def test_already_terminal(self, slides, fast_config):
        engine = PlaybackEngine(slides, config=fast_config)
        engine.jump_to(len(slides) - 1)
        assert asyncio.run(run_until_terminal(engine)) == len(slides) - 1

    def test_timer_detached_afterwards(self, slides, fast_config, recording_timer):
        engine = PlaybackEngine(slides, config=fast_config)
        asyncio.run(run_until_terminal(engine, poll_s=0.001))

        # A later restart must not try to arm the finished asyncio timer.
        engine.restart()
        assert engine.index == 0
        engine.attach_timer(recording_timer)
        assert recording_timer.armed == (5, engine.epoch)


class TestAsyncioAutoplayTimer:
    def test_arm_and_cancel(self, slides):
        async def scenario():
            engine = PlaybackEngine(slides)
            timer = AsyncioAutoplayTimer(engine, interval_ms=1000)
            engine.attach_timer(timer)
            assert timer.is_armed
            assert timer.armed_epoch == engine.epoch
            assert timer.armed_duration_ms == 5000

            engine.detach_timer()
            assert not timer.is_armed
            assert timer.armed_epoch is None

        asyncio.run(scenario())

    def test_manual_advance_rearms_with_new_epoch(self, slides):
        async def scenario():
            engine = PlaybackEngine(slides, config=PlaybackConfig(settle_ms=0))
            timer = AsyncioAutoplayTimer(engine, interval_ms=1000)
            engine.attach_timer(timer)

            engine.advance()
            assert timer.armed_epoch == engine.epoch == 1
            assert timer.armed_duration_ms == 4000
            engine.detach_timer()

        asyncio.run(scenario())

    def test_ticks_accumulate_progress(self, slides):
        async def scenario():
            engine = PlaybackEngine(slides)
            timer = AsyncioAutoplayTimer(engine, interval_ms=1)
            engine.attach_timer(timer)
            await asyncio.sleep(0.05)
            engine.detach_timer()
            return engine

        engine = asyncio.run(scenario())
        assert engine.index == 0
        assert 0 < engine.progress < 100

    def test_stale_fire_is_ignored(self, slides):
        async def scenario():
            engine = PlaybackEngine(slides)
            timer = AsyncioAutoplayTimer(engine, interval_ms=1)
            engine.attach_timer(timer)
            engine.detach_timer()
            # A callback that was already due runs after cancel.
            timer._fire()
            return engine

        engine = asyncio.run(scenario())
        assert engine.progress == 0.0
