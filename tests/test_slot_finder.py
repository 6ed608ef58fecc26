"""
Tests for the slot finder.
"""

import pendulum

from calendar_filler.domain.models import (
    DayRange,
    FailureReason,
    SchedulingConstraints,
    SlotFailure,
    TimeInterval,
)
from calendar_filler.domain.slot_finder import (
    CandidateRange,
    SlotFinder,
    format_duration,
    generate_time_range,
    intervals_overlap,
)

TZ = "Europe/Berlin"


def _at(text: str):
    return pendulum.parse(text, tz=TZ)


def _interval(start: str, end: str) -> TimeInterval:
    return TimeInterval(start=_at(start), end=_at(end))


def _constraints(start=8, end=21, increment=15, attempts=50) -> SchedulingConstraints:
    return SchedulingConstraints(
        working_hours_start=start,
        working_hours_end=end,
        search_increment_minutes=increment,
        max_attempts=attempts,
    )


WEEK = DayRange(start=_at("2024-01-01 00:00"), end=_at("2024-01-07 23:59"))


class TestOverlap:
    """Tests for the half-open overlap rule."""

    def test_overlapping_intervals(self):
        first = _interval("2024-01-01 08:00", "2024-01-01 09:00")
        second = _interval("2024-01-01 08:30", "2024-01-01 09:30")

        assert intervals_overlap(first, second)
        assert intervals_overlap(second, first)

    def test_touching_intervals_do_not_overlap(self):
        first = _interval("2024-01-01 08:00", "2024-01-01 09:00")
        second = _interval("2024-01-01 09:00", "2024-01-01 10:00")

        assert not intervals_overlap(first, second)
        assert not intervals_overlap(second, first)

    def test_contained_interval_overlaps(self):
        outer = _interval("2024-01-01 08:00", "2024-01-01 12:00")
        inner = _interval("2024-01-01 09:00", "2024-01-01 10:00")

        assert intervals_overlap(outer, inner)
        assert intervals_overlap(inner, outer)


class TestCandidateRange:
    """Tests for the candidate start generator."""

    def test_steps_by_increment_and_stops_at_max_attempts(self):
        candidates = generate_time_range(_at("2024-01-01 08:00"), 15, 4)

        assert isinstance(candidates, CandidateRange)
        assert list(candidates) == [
            _at("2024-01-01 08:00"),
            _at("2024-01-01 08:15"),
            _at("2024-01-01 08:30"),
            _at("2024-01-01 08:45"),
        ]
        assert len(candidates) == 4

    def test_is_restartable(self):
        candidates = CandidateRange(_at("2024-01-01 08:00"), 30, 3)

        assert list(candidates) == list(candidates)

    def test_zero_attempts_is_empty(self):
        assert list(CandidateRange(_at("2024-01-01 08:00"), 15, 0)) == []


class TestFormatDuration:
    """Tests for the duration formatter."""

    def test_formats_hours_and_minutes(self):
        assert format_duration(90) == "1h 30m"
        assert format_duration(125) == "2h 5m"

    def test_formats_whole_hours(self):
        assert format_duration(60) == "1h"

    def test_formats_minutes_only(self):
        assert format_duration(45) == "45m"
        assert format_duration(0) == "0m"


class TestSlotFinder:
    """Tests for SlotFinder.find_slot."""

    def test_scenario_second_event_steps_past_first(self):
        """An empty calendar takes the desired start; the next event steps past it."""
        finder = SlotFinder()
        constraints = _constraints(increment=15)

        first = finder.find_slot([], _at("2024-01-01 08:00"), 60, WEEK, TZ, constraints)
        assert first == _interval("2024-01-01 08:00", "2024-01-01 09:00")

        second = finder.find_slot([first], _at("2024-01-01 08:00"), 30, WEEK, TZ, constraints)
        assert second == _interval("2024-01-01 09:00", "2024-01-01 09:30")

    def test_empty_schedule_succeeds_on_first_candidate(self):
        result = SlotFinder().find_slot([], _at("2024-01-03 10:07"), 45, WEEK, TZ, _constraints())

        assert result == _interval("2024-01-03 10:07", "2024-01-03 10:52")

    def test_label_is_attached(self):
        result = SlotFinder().find_slot(
            [], _at("2024-01-01 08:00"), 30, WEEK, TZ, _constraints(), label="Gym Workout"
        )

        assert isinstance(result, TimeInterval)
        assert result.label == "Gym Workout"

    def test_desired_start_before_window_is_clamped(self):
        result = SlotFinder().find_slot([], _at("2024-01-01 06:30"), 60, WEEK, TZ, _constraints())

        assert result == _interval("2024-01-01 08:00", "2024-01-01 09:00")

    def test_desired_start_after_window_moves_to_next_day(self):
        result = SlotFinder().find_slot([], _at("2024-01-01 22:00"), 60, WEEK, TZ, _constraints())

        assert result == _interval("2024-01-02 08:00", "2024-01-02 09:00")

    def test_duration_exactly_filling_window_succeeds(self):
        result = SlotFinder().find_slot([], _at("2024-01-01 20:00"), 60, WEEK, TZ, _constraints(end=21))

        assert result == _interval("2024-01-01 20:00", "2024-01-01 21:00")

    def test_duration_exceeding_window_wraps_to_next_day(self):
        result = SlotFinder().find_slot([], _at("2024-01-01 20:00"), 90, WEEK, TZ, _constraints(end=21))

        assert result == _interval("2024-01-02 08:00", "2024-01-02 09:30")

    def test_duration_exceeding_window_on_last_day_is_exhausted(self):
        single_day = DayRange(start=_at("2024-01-01 00:00"), end=_at("2024-01-01 23:59"))

        result = SlotFinder().find_slot([], _at("2024-01-01 20:00"), 90, single_day, TZ, _constraints(end=21))

        assert isinstance(result, SlotFailure)
        assert result.reason == FailureReason.SLOT_EXHAUSTED

    def test_densely_packed_schedule_is_exhausted(self):
        scheduled = [
            _interval(f"2024-01-0{day} 08:00", f"2024-01-0{day} 21:00")
            for day in range(1, 8)
        ]

        result = SlotFinder().find_slot(
            scheduled, _at("2024-01-01 08:00"), 60, WEEK, TZ, _constraints(attempts=10)
        )

        assert isinstance(result, SlotFailure)
        assert result.reason == FailureReason.SLOT_EXHAUSTED
        assert result.attempts == 10

    def test_window_shorter_than_duration_is_exhausted_without_attempts(self):
        result = SlotFinder().find_slot(
            [], _at("2024-01-01 08:00"), 90, WEEK, TZ, _constraints(start=8, end=9)
        )

        assert isinstance(result, SlotFailure)
        assert result.reason == FailureReason.SLOT_EXHAUSTED
        assert result.attempts == 0

    def test_non_positive_duration_is_rejected(self):
        finder = SlotFinder()

        for duration in (0, -30):
            result = finder.find_slot([], _at("2024-01-01 08:00"), duration, WEEK, TZ, _constraints())
            assert isinstance(result, SlotFailure)
            assert result.reason == FailureReason.INVALID_DURATION

    def test_empty_window_is_invalid(self):
        result = SlotFinder().find_slot(
            [], _at("2024-01-01 08:00"), 60, WEEK, TZ, _constraints(start=9, end=9)
        )

        assert isinstance(result, SlotFailure)
        assert result.reason == FailureReason.INVALID_WINDOW

    def test_out_of_range_hour_is_invalid(self):
        result = SlotFinder().find_slot(
            [], _at("2024-01-01 08:00"), 60, WEEK, TZ, _constraints(start=8, end=24)
        )

        assert isinstance(result, SlotFailure)
        assert result.reason == FailureReason.INVALID_WINDOW

    def test_deterministic(self):
        finder = SlotFinder()
        scheduled = [_interval("2024-01-01 08:00", "2024-01-01 10:00")]

        results = [
            finder.find_slot(scheduled, _at("2024-01-01 08:00"), 45, WEEK, TZ, _constraints())
            for _ in range(3)
        ]

        assert results[0] == results[1] == results[2]

    def test_no_overlap_across_a_scheduling_pass(self):
        """Intervals placed one after another never overlap each other."""
        finder = SlotFinder()
        scheduled = []

        for duration in [60, 30, 90, 45, 120, 20, 75, 60, 180, 30, 60, 90]:
            result = finder.find_slot(scheduled, _at("2024-01-01 08:00"), duration, WEEK, TZ, _constraints())
            assert isinstance(result, TimeInterval)
            scheduled.append(result)

        for index, first in enumerate(scheduled):
            for second in scheduled[index + 1:]:
                assert not intervals_overlap(first, second)

    def test_scheduled_sequence_is_not_modified(self):
        scheduled = [_interval("2024-01-01 08:00", "2024-01-01 09:00")]

        SlotFinder().find_slot(scheduled, _at("2024-01-01 08:00"), 60, WEEK, TZ, _constraints())

        assert scheduled == [_interval("2024-01-01 08:00", "2024-01-01 09:00")]


class TestMidnightWrappingWindow:
    """Working hours whose end hour is below the start hour close the next day."""

    def test_event_may_run_past_midnight(self):
        result = SlotFinder().find_slot(
            [], _at("2024-01-01 23:30"), 60, WEEK, TZ, _constraints(start=8, end=1)
        )

        assert result == _interval("2024-01-01 23:30", "2024-01-02 00:30")

    def test_early_morning_start_belongs_to_previous_window(self):
        result = SlotFinder().find_slot(
            [], _at("2024-01-02 00:15"), 30, WEEK, TZ, _constraints(start=8, end=1)
        )

        assert result == _interval("2024-01-02 00:15", "2024-01-02 00:45")

    def test_crossing_window_close_wraps_to_next_opening(self):
        result = SlotFinder().find_slot(
            [], _at("2024-01-02 00:30"), 60, WEEK, TZ, _constraints(start=8, end=1)
        )

        assert result == _interval("2024-01-02 08:00", "2024-01-02 09:00")


class TestCandidateWalk:
    """Tests for the sequence of candidates the finder evaluates."""

    def test_candidates_advance_by_increment_except_on_day_wrap(self):
        day_range = DayRange(start=_at("2024-01-01 00:00"), end=_at("2024-01-03 23:59"))
        constraints = _constraints(start=8, end=10, increment=15, attempts=20)

        candidates = list(
            SlotFinder().iter_candidates(
                desired_start=_at("2024-01-01 08:00"),
                duration_minutes=60,
                day_range=day_range,
                timezone=TZ,
                constraints=constraints,
            )
        )

        # Five candidates fit each 08:00-10:00 window; the range ends after day three.
        assert len(candidates) == 15
        assert candidates[4].start == _at("2024-01-01 09:00")
        assert candidates[5].start == _at("2024-01-02 08:00")

        for previous, current in zip(candidates, candidates[1:]):
            assert current.start > previous.start
            step = (current.start - previous.start).total_seconds() / 60
            assert step == 15 or current.start.hour == 8

    def test_candidates_are_bounded_by_max_attempts(self):
        candidates = list(
            SlotFinder().iter_candidates(
                desired_start=_at("2024-01-01 08:00"),
                duration_minutes=30,
                day_range=WEEK,
                timezone=TZ,
                constraints=_constraints(attempts=7),
            )
        )

        assert len(candidates) == 7
