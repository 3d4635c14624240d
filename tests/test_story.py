"""Tests for quarter bucketing and slide deck compilation."""

import logging
from zoneinfo import ZoneInfo

import pytest
from conftest import country, epoch_ms

from travelrecap.core.aggregator import aggregate
from travelrecap.core.models import Destination
from travelrecap.core.story import (
    DestinationSlide,
    IntroSlide,
    Quarter,
    QuarterIntroSlide,
    SummarySlide,
    SummaryStatsSlide,
    active_quarters,
    bucket_by_quarter,
    compile_story,
    is_terminal,
    quarter_for_timestamp,
    slide_list_adapter,
)


def dest(name: str, order: int, timestamp: int | None, images: int = 1) -> Destination:
    return Destination(
        id=f"d-{name}",
        kind="country",
        name=name,
        country=name,
        images=tuple(f"{name}-{i}" for i in range(images)),
        visit_order=order,
        earliest_timestamp=timestamp,
    )


# =============================================================================
# Quarters
# =============================================================================


class TestQuarter:
    @pytest.mark.parametrize(
        "month, expected",
        [(1, Quarter.Q1), (3, Quarter.Q1), (4, Quarter.Q2), (6, Quarter.Q2), (7, Quarter.Q3), (9, Quarter.Q3),
         (10, Quarter.Q4), (12, Quarter.Q4)],
    )
    def test_for_month(self, month, expected):
        assert Quarter.for_month(month) == expected

    def test_invalid_month(self):
        with pytest.raises(ValueError):
            Quarter.for_month(13)

    def test_display_names(self):
        assert Quarter.Q1.display_name == "Beginning of the Year"
        assert Quarter.Q4.display_name == "Year-End Journeys"

    def test_timestamp_in_utc_by_default(self):
        assert quarter_for_timestamp(epoch_ms(2025, 3, 31)) == Quarter.Q1
        assert quarter_for_timestamp(epoch_ms(2025, 4, 1)) == Quarter.Q2

    def test_timestamp_in_configured_zone(self):
        # 2025-03-31 23:30 UTC is already April in Tokyo.
        ts = epoch_ms(2025, 3, 31) + int(11.5 * 3600 * 1000)
        assert quarter_for_timestamp(ts) == Quarter.Q1
        assert quarter_for_timestamp(ts, ZoneInfo("Asia/Tokyo")) == Quarter.Q2


class TestBucketByQuarter:
    def test_all_quarters_present(self):
        buckets = bucket_by_quarter([])
        assert list(buckets) == [Quarter.Q1, Quarter.Q2, Quarter.Q3, Quarter.Q4]
        assert all(v == [] for v in buckets.values())

    def test_undated_goes_to_q4(self):
        undated = dest("Nowhere", 1, None)
        buckets = bucket_by_quarter([undated])
        assert buckets[Quarter.Q4] == [undated]

    def test_order_within_quarter_preserved(self):
        a = dest("A", 1, epoch_ms(2025, 10))
        b = dest("B", 2, epoch_ms(2025, 11))
        c = dest("C", 3, None)
        buckets = bucket_by_quarter([a, b, c])
        assert [d.name for d in buckets[Quarter.Q4]] == ["A", "B", "C"]
        assert active_quarters(buckets) == (Quarter.Q4,)

    @pytest.mark.parametrize("timestamp", [8_000_000_000_000_000, -8_000_000_000_000_000])
    def test_out_of_range_timestamp_goes_to_q4(self, timestamp, caplog):
        far_off = dest("Japan", 1, timestamp)
        with caplog.at_level(logging.WARNING, logger="travelrecap.core.story"):
            buckets = bucket_by_quarter([far_off])

        assert buckets[Quarter.Q4] == [far_off]
        assert "out of range" in caplog.text

    def test_out_of_range_timestamp_still_compiles(self, make_image):
        images = [
            make_image(country("Japan"), timestamp=8_000_000_000_000_000),
            make_image(country("Chile"), timestamp=epoch_ms(2025, 2)),
        ]
        slides = compile_story(aggregate(images))

        dest_slides = [s for s in slides if isinstance(s, DestinationSlide)]
        assert [(s.destination.name, s.quarter) for s in dest_slides] == [
            ("Chile", Quarter.Q1),
            ("Japan", Quarter.Q4),
        ]


# =============================================================================
# Compilation
# =============================================================================


class TestCompileStory:
    """compile_story() deck shape."""

    def test_empty_input_collapses_to_intro_and_summary(self):
        slides = compile_story([])

        assert [s.type for s in slides] == ["intro", "summary-stats", "summary"]
        assert slides[0].destination_count == 0
        assert slides[-1].destination_count == 0
        assert is_terminal(slides[-1])

    def test_paris_japan_scenario(self, paris_japan_images):
        destinations = aggregate(paris_japan_images)
        slides = compile_story(destinations)

        assert [s.type for s in slides] == [
            "intro",
            "quarter-intro",
            "destination",
            "destination",
            "summary-stats",
            "summary",
        ]
        quarter_intro = slides[1]
        assert isinstance(quarter_intro, QuarterIntroSlide)
        assert quarter_intro.quarter == Quarter.Q1
        assert [d.name for d in quarter_intro.destinations] == ["Paris", "Japan"]
        assert quarter_intro.count == 2
        assert slides[2].destination.name == "Paris"
        assert slides[3].destination.name == "Japan"
        assert all(s.quarter == Quarter.Q1 for s in slides[2:4])

    def test_slide_count_invariant(self, year_of_travel):
        destinations = aggregate(year_of_travel)
        slides = compile_story(destinations)
        buckets = bucket_by_quarter(destinations)
        non_empty = [q for q, members in buckets.items() if members]

        baseline = len(compile_story([]))
        assert len(slides) == baseline + len(non_empty) + len(destinations)
        assert sum(isinstance(s, QuarterIntroSlide) for s in slides) == len(non_empty)
        assert sum(isinstance(s, DestinationSlide) for s in slides) == len(destinations)

    def test_quarters_emitted_in_calendar_order(self, year_of_travel):
        slides = compile_story(aggregate(year_of_travel))
        quarters = [s.quarter for s in slides if isinstance(s, QuarterIntroSlide)]
        assert quarters == [Quarter.Q1, Quarter.Q3, Quarter.Q4]

        names = [s.destination.display_name for s in slides if isinstance(s, DestinationSlide)]
        assert names == ["Lagos, Nigeria", "Lisbon, Portugal", "Iceland"]

    def test_undated_destination_never_dropped(self):
        undated = dest("Mystery", 1, None)
        slides = compile_story([undated])
        dest_slides = [s for s in slides if isinstance(s, DestinationSlide)]
        assert len(dest_slides) == 1
        assert dest_slides[0].quarter == Quarter.Q4

    def test_intro_lists_active_quarters(self, year_of_travel):
        intro = compile_story(aggregate(year_of_travel))[0]
        assert isinstance(intro, IntroSlide)
        assert intro.destination_count == 3
        assert intro.active_quarters == (Quarter.Q1, Quarter.Q3, Quarter.Q4)

    def test_summary_tail(self, year_of_travel):
        slides = compile_story(aggregate(year_of_travel))
        stats, final = slides[-2], slides[-1]

        assert isinstance(stats, SummaryStatsSlide)
        assert stats.quarter_counts == {Quarter.Q1: 1, Quarter.Q2: 0, Quarter.Q3: 1, Quarter.Q4: 1}
        assert stats.destination_count == 3
        assert stats.country_count == 3
        assert stats.photo_count == 5
        assert stats.active_quarter_count == 3

        assert isinstance(final, SummarySlide)
        assert len(final.preview) == 3
        assert final.overflow_count == 0

    def test_summary_preview_overflow(self):
        destinations = [dest(f"C{i}", i, epoch_ms(2025, 1)) for i in range(1, 9)]
        final = compile_story(destinations, preview_limit=6)[-1]
        assert [d.name for d in final.preview] == ["C1", "C2", "C3", "C4", "C5", "C6"]
        assert final.overflow_count == 2

    def test_deterministic(self, year_of_travel, id_factory):
        destinations = aggregate(year_of_travel, id_factory=id_factory())
        first = slide_list_adapter.dump_json(compile_story(destinations))
        second = slide_list_adapter.dump_json(compile_story(destinations))
        assert first == second

    def test_json_round_trip_keeps_slide_types(self, paris_japan_images):
        slides = compile_story(aggregate(paris_japan_images))
        restored = slide_list_adapter.validate_json(slide_list_adapter.dump_json(slides))
        assert [type(s) for s in restored] == [type(s) for s in slides]
