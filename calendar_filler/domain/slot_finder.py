"""
Core scheduling logic: place an event of known duration without overlaps.

Pure domain code - no API calls, no I/O, no randomness. Given the same
inputs, ``SlotFinder.find_slot`` always returns the same result.
"""

from __future__ import annotations

from typing import Iterator, Sequence, Tuple

from pendulum import DateTime

from .models import (
    DayRange,
    FailureReason,
    SchedulingConstraints,
    SlotFailure,
    TimeInterval,
)


def intervals_overlap(first: TimeInterval, second: TimeInterval) -> bool:
    """
    Half-open overlap test: ``[s1, e1)`` and ``[s2, e2)`` overlap iff
    ``s1 < e2 and s2 < e1``. Touching intervals do not overlap.
    """
    return first.overlaps(second)


class CandidateRange:
    """
    Lazy, finite sequence of candidate start times.

    Starts at ``start`` and steps by ``increment_minutes``, yielding at most
    ``max_attempts`` values. Every call to ``iter()`` starts over.
    """

    def __init__(self, start: DateTime, increment_minutes: int, max_attempts: int):
        if increment_minutes <= 0:
            raise ValueError("increment_minutes must be greater than zero")
        if max_attempts < 0:
            raise ValueError("max_attempts must not be negative")
        self.start = start
        self.increment_minutes = increment_minutes
        self.max_attempts = max_attempts

    def __iter__(self) -> Iterator[DateTime]:
        current = self.start
        for _ in range(self.max_attempts):
            yield current
            current = current.add(minutes=self.increment_minutes)

    def __len__(self) -> int:
        return self.max_attempts


def generate_time_range(
    start: DateTime,
    increment_minutes: int,
    max_attempts: int,
) -> CandidateRange:
    """Build the candidate sequence the slot finder walks."""
    return CandidateRange(start, increment_minutes, max_attempts)


def format_duration(minutes: int) -> str:
    """Format minutes as ``"Xh Ym"``: 90 -> "1h 30m", 60 -> "1h", 45 -> "45m"."""
    hours, rest = divmod(max(int(minutes), 0), 60)
    if hours and rest:
        return f"{hours}h {rest}m"
    if hours:
        return f"{hours}h"
    return f"{rest}m"


class SlotFinder:
    """
    Finds a start time for a new event that overlaps none of the
    already-scheduled intervals.

    Algorithm:
    1. Clamp the desired start into the working-hours window of its day
    2. Walk candidates in fixed increments, testing each against every
       scheduled interval
    3. When a candidate would run past the window close, continue at the
       opening of the next day's window
    4. Stop at the first free candidate, when the day range is used up,
       or after ``max_attempts`` candidates
    """

    def find_slot(
        self,
        scheduled: Sequence[TimeInterval],
        desired_start: DateTime,
        duration_minutes: int,
        day_range: DayRange,
        timezone: str,
        constraints: SchedulingConstraints,
        label: str | None = None,
    ) -> TimeInterval | SlotFailure:
        """
        Find a free interval of ``duration_minutes``.

        Args:
            scheduled: Intervals already claimed in this batch (not modified)
            desired_start: Preferred start time
            duration_minutes: Length of the event, must be positive
            day_range: Absolute bounds the interval must stay inside
            timezone: IANA timezone used to read the hour of day
            constraints: Working hours and search budget
            label: Optional title attached to the returned interval

        Returns:
            The placed TimeInterval, or a SlotFailure describing why no
            interval was found. "No slot" is never raised.
        """
        if duration_minutes <= 0:
            return SlotFailure(
                reason=FailureReason.INVALID_DURATION,
                message=f"Duration must be positive, got {duration_minutes} minutes",
            )

        window_error = constraints.window_error()
        if window_error:
            return SlotFailure(reason=FailureReason.INVALID_WINDOW, message=window_error)

        attempts = 0
        for candidate in self.iter_candidates(
            desired_start=desired_start,
            duration_minutes=duration_minutes,
            day_range=day_range,
            timezone=timezone,
            constraints=constraints,
        ):
            attempts += 1
            if not any(intervals_overlap(candidate, taken) for taken in scheduled):
                if label is None:
                    return candidate
                return TimeInterval(start=candidate.start, end=candidate.end, label=label)

        return SlotFailure(
            reason=FailureReason.SLOT_EXHAUSTED,
            message=(
                f"No free {duration_minutes}-minute slot between "
                f"{day_range.start.to_iso8601_string()} and "
                f"{day_range.end.to_iso8601_string()} after {attempts} attempt(s)"
            ),
            attempts=attempts,
        )

    def iter_candidates(
        self,
        *,
        desired_start: DateTime,
        duration_minutes: int,
        day_range: DayRange,
        timezone: str,
        constraints: SchedulingConstraints,
    ) -> Iterator[TimeInterval]:
        """
        Yield the candidate intervals ``find_slot`` evaluates, in order.

        Every yielded candidate lies inside the working window and the day
        range. Consecutive candidates are ``search_increment_minutes`` apart
        unless the search wrapped to the next day's window. At most
        ``max_attempts`` candidates are yielded.
        """
        if duration_minutes <= 0 or constraints.window_error():
            return
        if constraints.window_length_minutes() < duration_minutes:
            return

        start = desired_start.in_timezone(timezone)
        lower_bound = day_range.start.in_timezone(timezone)
        if start < lower_bound:
            start = lower_bound

        window_open, window_close = self._window_at_or_after(start, constraints)
        if start < window_open:
            start = window_open

        remaining = constraints.max_attempts
        while remaining > 0:
            if window_open > day_range.end:
                return

            candidates = generate_time_range(
                start, constraints.search_increment_minutes, remaining
            )
            for candidate_start in candidates:
                candidate = TimeInterval(
                    start=candidate_start,
                    end=candidate_start.add(minutes=duration_minutes),
                )
                if not day_range.contains(candidate):
                    # Later candidates only end later.
                    return
                if candidate.end > window_close:
                    break
                remaining -= 1
                yield candidate
            else:
                return

            window_open, window_close = self._window_bounds(
                window_open.add(days=1), constraints
            )
            start = window_open

    @staticmethod
    def _window_bounds(
        day: DateTime,
        constraints: SchedulingConstraints,
    ) -> Tuple[DateTime, DateTime]:
        """Opening and closing time of the window that opens on ``day``."""
        window_open = day.set(
            hour=constraints.working_hours_start,
            minute=0,
            second=0,
            microsecond=0,
        )
        close_day = day.add(days=1) if constraints.wraps_midnight else day
        window_close = close_day.set(
            hour=constraints.working_hours_end,
            minute=0,
            second=0,
            microsecond=0,
        )
        return window_open, window_close

    def _window_at_or_after(
        self,
        moment: DateTime,
        constraints: SchedulingConstraints,
    ) -> Tuple[DateTime, DateTime]:
        """
        The window containing ``moment``, or the next one to open after it.

        A window wrapping past midnight that opened the previous day may
        still contain an early-morning ``moment``.
        """
        day = moment.start_of("day")
        for offset in (-1, 0, 1):
            window_open, window_close = self._window_bounds(day.add(days=offset), constraints)
            if window_close > moment:
                return window_open, window_close
        # Unreachable for a valid window: the next day's window always closes later.
        raise AssertionError("no working window found after candidate start")
